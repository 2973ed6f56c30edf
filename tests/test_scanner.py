import os
from pathlib import Path

import pytest

from booksync.channels import Channel
from booksync.errors import TraversalError
from booksync.models import Statistic
from booksync.scanner import file_extension, find_books


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_file_extension_matches_text_after_final_dot() -> None:
    assert file_extension(Path("a.epub")) == "epub"
    assert file_extension(Path("archive.tar.gz")) == "gz"
    assert file_extension(Path("README")) is None
    assert file_extension(Path(".epub")) is None


@pytest.mark.asyncio
async def test_find_books_emits_one_candidate_and_one_found_event_per_match(tmp_path: Path) -> None:
    docs = tmp_path / "docs"
    _write(docs / "a.epub", "a")
    _write(docs / "b.pdf", "b")
    _write(docs / "c.txt", "c")
    _write(docs / "nested" / "deeper" / "d.epub", "d")
    _write(docs / "nested" / "E.EPUB", "e")
    (docs / "folder.epub").mkdir()

    books: Channel[Path] = Channel(16)
    stats: Channel[Statistic] = Channel(16)

    found = await find_books([docs], ["epub", ".pdf"], books, stats)

    paths = [path async for path in books]
    events = [event async for event in stats]
    assert found == 3
    assert sorted(path.name for path in paths) == ["a.epub", "b.pdf", "d.epub"]
    assert all(path.is_absolute() for path in paths)
    assert events == [Statistic.FOUND_SOURCE] * 3


@pytest.mark.asyncio
async def test_find_books_walks_every_source_directory(tmp_path: Path) -> None:
    _write(tmp_path / "one" / "a.epub", "a")
    _write(tmp_path / "two" / "b.epub", "b")

    books: Channel[Path] = Channel(16)
    stats: Channel[Statistic] = Channel(16)

    found = await find_books([tmp_path / "one", tmp_path / "two"], ["epub"], books, stats)

    assert found == 2
    assert sorted([path.name async for path in books]) == ["a.epub", "b.epub"]


@pytest.mark.asyncio
async def test_find_books_does_not_follow_symlinked_directories(tmp_path: Path) -> None:
    _write(tmp_path / "elsewhere" / "linked.epub", "x")
    docs = tmp_path / "docs"
    _write(docs / "own.epub", "y")
    try:
        os.symlink(tmp_path / "elsewhere", docs / "link", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks unavailable")

    books: Channel[Path] = Channel(16)
    stats: Channel[Statistic] = Channel(16)

    await find_books([docs], ["epub"], books, stats)

    assert [path.name async for path in books] == ["own.epub"]


@pytest.mark.asyncio
async def test_find_books_traversal_failure_is_fatal_and_closes_channels(tmp_path: Path) -> None:
    books: Channel[Path] = Channel(16)
    stats: Channel[Statistic] = Channel(16)

    with pytest.raises(TraversalError):
        await find_books([tmp_path / "missing"], ["epub"], books, stats)

    assert await books.recv() is None
    assert await stats.recv() is None


@pytest.mark.asyncio
async def test_find_books_uses_each_source_directory_own_extensions(tmp_path: Path) -> None:
    apple_books = tmp_path / "apple-books"
    docs = tmp_path / "docs"
    _write(apple_books / "a.pdf", "a")
    _write(apple_books / "b.mobi", "b")
    _write(docs / "c.mobi", "c")
    _write(docs / "d.pdf", "d")

    books: Channel[Path] = Channel(16)
    stats: Channel[Statistic] = Channel(16)

    found = await find_books(
        [apple_books, docs],
        ["pdf", "mobi"],
        books,
        stats,
        source_extensions={apple_books: ["pdf"], docs: [".mobi"]},
    )

    assert found == 2
    assert sorted([path.name async for path in books]) == ["a.pdf", "c.mobi"]
