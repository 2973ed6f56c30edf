from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from booksync.config import PROFILES, SyncConfig, load_config, resolve_config
from booksync.run_service import EXIT_INVALID_CONFIG, EXIT_SUCCESS, run_sync_jobs


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booksync",
        description=(
            "Synchronise books from local documents directories onto a mounted e-book reader. "
            "Files already present on the reader are never overwritten."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Copy new books onto the reader")
    _add_selection_arguments(run_parser)
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be copied without touching the destination",
    )
    run_parser.add_argument("--verbose", action="store_true", help="Log debug output to stderr")
    run_parser.add_argument("--log-file", type=Path, default=None)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    list_parser = subparsers.add_parser("list", help="Show the resolved sources and destination")
    _add_selection_arguments(list_parser)

    return parser


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--profile", choices=sorted(PROFILES), default=None)
    parser.add_argument(
        "--destination",
        type=Path,
        default=None,
        help="Mounted reader storage directory to synchronise books to",
    )
    parser.add_argument(
        "--source",
        dest="sources",
        action="append",
        type=Path,
        default=None,
        help="Documents directory to synchronise books from (repeatable)",
    )


def _configure_logging(verbose: bool, log_file: Path | None) -> logging.Logger:
    logger = logging.getLogger("booksync")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logging.getLogger("booksync.run")


def _print_config(config: SyncConfig) -> None:
    print(f"profile: {config.profile} (dryRun={str(config.dry_run).lower()})")
    print(f"  destination: {config.destination}")
    for source in config.sources:
        if source in config.source_extensions:
            print(f"  - source: {source} (extensions: {', '.join(config.source_extensions[source])})")
        else:
            print(f"  - source: {source}")
    print(f"  extensions: {', '.join(config.extensions)}")


def cmd_validate(config_path: Path) -> int:
    try:
        overrides = load_config(config_path)
        config = resolve_config(overrides=overrides)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path}")
    if overrides.unknown_keys:
        print(f"  ignored keys: {', '.join(overrides.unknown_keys)}")
    _print_config(config)
    return EXIT_SUCCESS


def cmd_list(
    config_path: Path | None,
    profile: str | None,
    destination: Path | None,
    sources: list[Path] | None,
) -> int:
    try:
        config = resolve_config(
            config_path=config_path,
            profile=profile,
            destination=destination,
            sources=sources,
        )
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    _print_config(config)
    return EXIT_SUCCESS


def cmd_run(
    config_path: Path | None,
    profile: str | None,
    destination: Path | None,
    sources: list[Path] | None,
    dry_run: bool,
    verbose: bool = False,
    log_file: Path | None = None,
) -> int:
    logger = _configure_logging(verbose, log_file)
    exit_code, _ = run_sync_jobs(
        config_path=config_path,
        profile=profile,
        destination=destination,
        sources=sources,
        dry_run=dry_run,
        logger=logger,
    )
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "list":
        return cmd_list(
            config_path=args.config,
            profile=args.profile,
            destination=args.destination,
            sources=args.sources,
        )
    if args.command == "run":
        return cmd_run(
            config_path=args.config,
            profile=args.profile,
            destination=args.destination,
            sources=args.sources,
            dry_run=args.dry_run,
            verbose=args.verbose,
            log_file=args.log_file,
        )

    parser.print_help()
    return EXIT_INVALID_CONFIG


if __name__ == "__main__":
    raise SystemExit(main())
