from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiofiles
import aiofiles.os
from aiofiles.threadpool.binary import AsyncBufferedIOBase

from booksync.errors import CopyError, path_str


log = logging.getLogger("booksync.copier")

CHUNK_SIZE = 1024 * 1024


async def _announce_dry_run(source_text: str, destination_text: str) -> None:
    print(f"Dry-running; would otherwise copy {source_text} to {destination_text}")


async def copy_book(source: Path, destination: Path, destination_file: AsyncBufferedIOBase) -> None:
    """Stream ``source`` into the already exclusively created ``destination_file``."""
    source_text, destination_text = path_str(source), path_str(destination)
    try:
        try:
            async with aiofiles.open(source, "rb") as source_file:
                while True:
                    chunk = await source_file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await destination_file.write(chunk)
        finally:
            await destination_file.close()
    except OSError as exc:
        raise CopyError(source, destination, exc) from exc
    print(f"Copied {source_text} to {destination_text}")


async def copy_to_non_existent(
    source: Path,
    destination: Path,
    dry_run: bool,
    claimed: set[Path] | None = None,
) -> asyncio.Task[None] | None:
    """Dispatch a copy of ``source`` unless ``destination`` already exists.

    Returns the running copy task, or None when the destination is already present. In real
    mode the destination is created with ``O_EXCL`` so that only one caller can ever win a
    given name. Dry runs touch nothing; names seen earlier in the run are tracked in
    ``claimed`` so they resolve the way a real run would.
    """
    source_text, destination_text = path_str(source), path_str(destination)

    if dry_run:
        claims = claimed if claimed is not None else set()
        if destination in claims or await aiofiles.os.path.exists(destination):
            return None
        claims.add(destination)
        return asyncio.create_task(_announce_dry_run(source_text, destination_text))

    try:
        destination_file = await aiofiles.open(destination, "xb")
    except FileExistsError:
        return None

    log.debug("Created %s exclusively; dispatching copy from %s", destination, source)
    return asyncio.create_task(copy_book(source, destination, destination_file))
