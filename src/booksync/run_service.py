from __future__ import annotations

import logging
from pathlib import Path

from booksync.config import SyncConfig, resolve_config, validate_directories
from booksync.errors import SyncError
from booksync.models import RunSummary
from booksync.pipeline import SyncRunOptions, sync


EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_INVALID_CONFIG = 3


def run_sync(config: SyncConfig, logger: logging.Logger | None = None) -> tuple[int, RunSummary | None]:
    log = logger or logging.getLogger("booksync.run")

    try:
        validate_directories(config)
    except ValueError as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, None

    log.info(
        "Synchronising %s -> %s | extensions=%s dry_run=%s",
        " and ".join(str(source) for source in config.sources),
        config.destination,
        ",".join(config.extensions),
        config.dry_run,
    )

    options = SyncRunOptions(
        dry_run=config.dry_run,
        channel_bound=config.channel_bound,
        source_extensions=config.source_extensions,
    )
    try:
        summary = sync(config.destination, config.sources, config.extensions, options, logger=log)
    except (SyncError, OSError) as exc:
        log.error("Synchronisation failed: %s", exc)
        return EXIT_RUNTIME_ERROR, None

    log.info(
        "Finished | found=%s skipped=%s copied=%s",
        summary.found,
        summary.skipped,
        summary.copied,
    )
    return EXIT_SUCCESS, summary


def run_sync_jobs(
    config_path: Path | None = None,
    profile: str | None = None,
    destination: Path | None = None,
    sources: list[Path] | None = None,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[int, RunSummary | None]:
    log = logger or logging.getLogger("booksync.run")

    try:
        config = resolve_config(
            config_path=config_path,
            profile=profile,
            destination=destination,
            sources=sources,
            dry_run=dry_run,
        )
    except Exception as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, None

    return run_sync(config, logger=log)
