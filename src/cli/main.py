"""Ingest CLI entry point.

With no flags a run performs one pass over each feed and exits. The
exit code is 0 only when every pass succeeded.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from core.config import IngestSettings, load_store_connection_config
from core.errors import IngestConfigError
from core.logging_config import configure_logging, get_logger
from core.types import DEFAULT_FEEDS, FeedKind, FeedSpec, PassOutcome, PassResult
from ingest.pipeline import run_ingestion
from store.metric_store import InfluxMetricStore

_LOGGER = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="covid-ingest",
        description="Ingest COVID-19 feeds into InfluxDB",
    )
    parser.add_argument(
        "--config",
        help="Store connection file (overrides COVID_INGEST_CONFIG, default ./config.json)",
    )
    parser.add_argument(
        "--feed",
        action="append",
        choices=[kind.value for kind in FeedKind],
        help="Feed to ingest; repeat for several (default: all feeds)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and map records, log points, and skip store writes",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the ingest CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        settings = _build_settings(args)
        store = _build_store(settings)
    except IngestConfigError as error:
        print(f"error: {error}", file=sys.stderr)
        return EXIT_FAILED
    feeds = _select_feeds(args.feed)
    try:
        results = run_ingestion(settings, store, feeds=feeds)
    except KeyboardInterrupt:
        _LOGGER.warning("ingestion_cancelled")
        return EXIT_CANCELLED
    _print_results(results)
    if all(result.outcome is PassOutcome.SUCCESS for result in results):
        return EXIT_OK
    return EXIT_FAILED


def _build_settings(args: argparse.Namespace) -> IngestSettings:
    """Apply CLI overrides on top of environment settings."""
    settings = IngestSettings.from_env()
    if args.config:
        settings = replace(settings, config_path=Path(args.config).expanduser())
    if args.dry_run:
        settings = replace(settings, dry_run=True)
    return settings


def _build_store(settings: IngestSettings) -> InfluxMetricStore | None:
    """Load the connection file once and bind the store to it.

    Dry runs never touch the store, so they do not require the file.
    """
    if settings.dry_run:
        return None
    connection = load_store_connection_config(settings.config_path)
    return InfluxMetricStore(connection)


def _select_feeds(feed_names: Sequence[str] | None) -> tuple[FeedSpec, ...]:
    if not feed_names:
        return DEFAULT_FEEDS
    requested = {FeedKind(name) for name in feed_names}
    return tuple(feed for feed in DEFAULT_FEEDS if feed.kind in requested)


def _print_results(results: Sequence[PassResult]) -> None:
    """Print one tab-separated summary row per pass; causes go to stderr."""
    for result in results:
        run = result.run
        print(
            f"{result.feed.kind.value}\t"
            f"{result.outcome.value}\t"
            f"seen={run.seen}\t"
            f"admitted={run.admitted}\t"
            f"skipped={run.skipped_stale}\t"
            f"failed={run.failed_parse}\t"
            f"invalid={run.invalid_values}\t"
            f"written={run.written}\t"
            f"write_failed={run.write_failed}"
        )
        if result.error:
            print(f"{result.feed.kind.value}: {result.error}", file=sys.stderr)
