from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable, Mapping
import logging
import os
from pathlib import Path

from booksync.channels import Channel
from booksync.config import normalize_extensions
from booksync.errors import TraversalError
from booksync.models import Statistic


log = logging.getLogger("booksync.scanner")


def file_extension(path: Path) -> str | None:
    stem, dot, extension = path.name.rpartition(".")
    if not dot or not stem:
        return None
    return extension


def _list_directory(directory: Path) -> list[tuple[Path, bool, bool]]:
    with os.scandir(directory) as entries:
        return [
            (Path(entry.path), entry.is_dir(follow_symlinks=False), entry.is_file())
            for entry in entries
        ]


async def walk_files(root: Path) -> AsyncIterator[Path]:
    """Yield every regular file below ``root``; symlinked directories are not followed."""
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            listed = await asyncio.to_thread(_list_directory, directory)
        except OSError as exc:
            raise TraversalError(directory, exc) from exc

        subdirs: list[Path] = []
        for path, is_dir, is_file in sorted(listed):
            if is_dir:
                subdirs.append(path)
            elif is_file:
                yield path
        pending.extend(reversed(subdirs))


async def find_books(
    dirs: Iterable[Path],
    extensions: Iterable[str],
    books: Channel[Path],
    stats: Channel[Statistic],
    source_extensions: Mapping[Path, Iterable[str]] | None = None,
) -> int:
    """Send every matching file under ``dirs`` to ``books``.

    A directory listed in ``source_extensions`` is matched against its own extensions
    instead of ``extensions``.
    """
    default_wanted = frozenset(normalize_extensions(extensions))
    per_source = source_extensions or {}
    found = 0
    try:
        for directory in dirs:
            wanted = (
                frozenset(normalize_extensions(per_source[directory]))
                if directory in per_source
                else default_wanted
            )
            root = Path(directory).absolute()
            log.debug("Scanning %s for %s", root, ", ".join(sorted(wanted)))
            async for path in walk_files(root):
                if file_extension(path) not in wanted:
                    continue
                await stats.send(Statistic.FOUND_SOURCE)
                await books.send(path)
                found += 1
    finally:
        await books.close()
        await stats.close()
    log.debug("Scanner finished with %s candidate(s)", found)
    return found
