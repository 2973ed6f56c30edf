from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from pathlib import Path

from booksync.aggregator import collect_stats
from booksync.channels import DEFAULT_CHANNEL_BOUND, Channel
from booksync.coordinator import sync_books
from booksync.models import RunSummary, Statistic
from booksync.scanner import find_books


@dataclass(slots=True)
class SyncRunOptions:
    dry_run: bool = False
    channel_bound: int = DEFAULT_CHANNEL_BOUND
    source_extensions: dict[Path, list[str]] = field(default_factory=dict)


async def run_pipeline(
    destination: Path,
    sources: Iterable[Path],
    extensions: Iterable[str],
    options: SyncRunOptions | None = None,
    logger: logging.Logger | None = None,
) -> RunSummary:
    """Scan ``sources``, copy matches into ``destination`` and return the printed summary.

    On the first fatal error from the scanner or the coordinator the summary is not printed;
    the other stages are left to observe channel closure and the error is re-raised.
    """
    opts = options or SyncRunOptions()
    source_dirs = list(sources)

    books: Channel[Path] = Channel(opts.channel_bound)
    stats: Channel[Statistic] = Channel(opts.channel_bound, senders=2)

    aggregation = asyncio.create_task(collect_stats(source_dirs, stats))
    book_finding = asyncio.create_task(
        find_books(source_dirs, extensions, books, stats, opts.source_extensions)
    )

    try:
        await sync_books(destination, opts.dry_run, books, stats, logger=logger)
        await book_finding
    except BaseException:
        aggregation.cancel()
        await asyncio.gather(book_finding, aggregation, return_exceptions=True)
        raise

    return await aggregation


def sync(
    destination: Path,
    sources: Iterable[Path],
    extensions: Iterable[str],
    options: SyncRunOptions | None = None,
    logger: logging.Logger | None = None,
) -> RunSummary:
    return asyncio.run(run_pipeline(destination, sources, extensions, options, logger=logger))
