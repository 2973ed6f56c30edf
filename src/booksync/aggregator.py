from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from booksync.channels import Channel
from booksync.errors import path_str
from booksync.models import RunSummary, Statistic


def format_summary(summary: RunSummary) -> str:
    dirs = " and ".join(path_str(directory) for directory in summary.source_dirs)
    return (
        "\n"
        f"Found documents in documents directory at {dirs}: {summary.found}\n"
        f"Books not copied because they already exist on the destination: {summary.skipped}\n"
        f"Books copied: {summary.copied}"
    )


async def collect_stats(source_dirs: Iterable[Path], stats: Channel[Statistic]) -> RunSummary:
    summary = RunSummary(source_dirs=list(source_dirs))
    try:
        async for stat in stats:
            summary.absorb(stat)
    finally:
        stats.close_receiver()

    print(format_summary(summary))
    return summary
