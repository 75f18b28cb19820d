"""Sync CLI Entry Point

Command-line interface for the Directus → Typesense sync. Handles argument
parsing, logging configuration and client setup, then runs every category
(or the requested subset) sequentially.

Scheduled hourly from cron:
    0 * * * *  showcase-sync

Usage:
    showcase-sync
    showcase-sync --collections carriers,services
    showcase-sync --dry-run --output-dir output
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from .config import Settings
from .directus import DirectusClient
from .models import SyncSummary
from .pipeline import resolve_categories, sync_all
from .typesense import TypesenseClient

LOG_DIR = Path("logs")


def configure_logging(level: str = "INFO", log_dir: Path = LOG_DIR) -> None:
    """Configure logging with both console and file output.

    Sets up:
      - Root logger at DEBUG level
      - Console handler at ``level`` for operator-facing messages
      - File handler at DEBUG level for detailed troubleshooting
      - Reduced verbosity for httpx / httpcore loggers
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "sync.log"

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    # Clear existing handlers to avoid duplicates if run multiple times
    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def parse_collections(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    names = [n.strip() for n in value.split(",") if n.strip()]
    return names or None


async def run(
    settings: Settings,
    collections: Optional[List[str]] = None,
    dry_run: bool = False,
    output_dir: Optional[Path] = None,
) -> SyncSummary:
    """Build clients from settings, run the sync and close the clients."""
    async with DirectusClient.from_settings(settings) as directus:
        if dry_run:
            return await sync_all(directus, None, collections, dry_run=True, output_dir=output_dir)
        async with TypesenseClient.from_settings(settings) as typesense:
            return await sync_all(directus, typesense, collections)


def main(argv=None) -> int:
    """
    CLI entrypoint for the search index sync.

    Returns a Unix-style exit code: 0 when every category synced cleanly,
    1 when any category failed, 2 on invalid arguments.
    """
    parser = argparse.ArgumentParser(
        description="Sync Directus content into Typesense search collections"
    )
    parser.add_argument(
        "--collections",
        default=None,
        help="Comma-separated categories to sync (default: all). "
        "Short names os, help and selfhosted are accepted.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and transform only; don't touch Typesense",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="With --dry-run, write transformed documents to this directory",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=LOG_DIR,
        help="Directory for the sync log file (default: logs)",
    )

    args = parser.parse_args(argv)
    settings = Settings()

    configure_logging(settings.log_level, args.log_dir)
    logger = logging.getLogger(__name__)

    collections = parse_collections(args.collections)
    try:
        resolve_categories(collections)
    except ValueError as e:
        logger.error("Invalid --collections value: %s", e)
        return 2

    logger.info("=== Starting search index sync ===")
    logger.info("Collections: %s", ", ".join(collections) if collections else "all")
    logger.info("Dry run: %s", args.dry_run)
    if args.dry_run and args.output_dir:
        logger.info("Output directory: %s", args.output_dir)

    try:
        summary = asyncio.run(
            run(settings, collections, dry_run=args.dry_run, output_dir=args.output_dir)
        )
    except Exception as e:
        logger.exception("Sync failed with an unhandled exception: %s", e)
        return 1

    if summary.output_paths:
        logger.info("Output files:")
        for name, path in summary.output_paths.items():
            logger.info("  %-24s %s", f"{name}:", path)

    return 0 if summary.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
