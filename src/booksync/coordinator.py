from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from booksync.channels import Channel
from booksync.copier import copy_to_non_existent
from booksync.errors import path_str
from booksync.models import Statistic


async def _join_copy_tasks(tasks: list[asyncio.Task[None]], log: logging.Logger) -> Exception | None:
    first_failure: Exception | None = None
    for task in tasks:
        try:
            await task
        except Exception as exc:
            if first_failure is None:
                first_failure = exc
            else:
                log.error("Copy failed after an earlier failure: %s", exc)
    return first_failure


async def sync_books(
    dest_dir: Path,
    dry_run: bool,
    books: Channel[Path],
    stats: Channel[Statistic],
    logger: logging.Logger | None = None,
) -> int:
    """Resolve every candidate into a copy or a skip, then wait for all copies in dispatch order.

    Returns the number of copies dispatched. The first copy failure is re-raised once every
    dispatched copy has finished.
    """
    log = logger or logging.getLogger("booksync.coordinator")
    copy_tasks: list[asyncio.Task[None]] = []
    claimed: set[Path] = set()
    failure: Exception | None = None
    aborted = True

    try:
        async for book in books:
            book_name = book.name
            if not book_name:
                log.debug("Dropping candidate without a file name: %r", book)
                continue
            dest_path = dest_dir / book_name

            copy_task = await copy_to_non_existent(book, dest_path, dry_run, claimed)
            if copy_task is None:
                print(
                    f"Book {path_str(dest_path)} already exists on the destination; "
                    "will not copy across."
                )
                await stats.send(Statistic.SKIPPED_EXISTING)
            else:
                copy_tasks.append(copy_task)
                await stats.send(Statistic.COPIED)
        aborted = False
    finally:
        books.close_receiver()
        failure = await _join_copy_tasks(copy_tasks, log)
        await stats.close()
        if aborted and failure is not None:
            log.error("Copy failed while the coordinator was aborting: %s", failure)

    if failure is not None:
        raise failure
    return len(copy_tasks)
