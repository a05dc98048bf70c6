"""Ingest orchestration for feed-processing passes.

This module drives fetch, parse, staleness filtering, mapping, and
batched store writes for one feed at a time, and aggregates per-record
outcomes into a pass result.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence

from core.config import IngestSettings
from core.errors import (
    FeedDecodeError,
    FetchError,
    IngestDependencyError,
    IngestError,
    StoreConnectError,
    StoreWriteError,
)
from core.logging_config import get_logger
from core.types import (
    DEFAULT_FEEDS,
    FeedSpec,
    IngestionRun,
    InvalidValue,
    MetricPoint,
    ParsedFeed,
    ParseIssue,
    PassOutcome,
    PassResult,
    PassState,
    RawFeed,
)
from ingest.feed_source import fetch_feed
from ingest.metric_mapper import to_metric_point
from ingest.progress import IngestProgressTracker
from ingest.record_parser import parse_feed
from ingest.staleness import is_admissible
from store.metric_store import MetricStore, MetricStoreSession, open_store_session
from store.point_payload import point_to_line_protocol

_LOGGER = get_logger(__name__)

FeedFetcher = Callable[[FeedSpec, float], RawFeed]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestPassRunner:
    """Stateful runner for one fetch-parse-filter-map-write pass.

    A runner is single-use: ``run`` walks the pass state machine once
    and returns the terminal result. Record-level failures are counted;
    fetch, decode, and store-connect failures end the pass as fatal.
    """

    def __init__(
        self,
        feed: FeedSpec,
        settings: IngestSettings,
        store: MetricStore | None,
        fetcher: FeedFetcher = fetch_feed,
        clock: Clock = _utc_now,
    ) -> None:
        """Create a pass runner.

        Args:
            feed: Feed to process.
            settings: Runtime settings.
            store: Store to write to; may be None only in dry-run mode.
            fetcher: Callable returning raw feed bytes.
            clock: Source of the current time for staleness checks.
        """
        if store is None and not settings.dry_run:
            raise ValueError("A metric store is required unless dry_run is enabled.")
        self._feed = feed
        self._settings = settings
        self._store = store
        self._fetcher = fetcher
        self._clock = clock
        self._state = PassState.IDLE
        self._run = IngestionRun()
        self._tracker = IngestProgressTracker(feed)
        self._write_error: str | None = None

    @property
    def state(self) -> PassState:
        """Current pass state."""
        return self._state

    def run(self) -> PassResult:
        """Execute the pass and return its terminal result."""
        if self._state is not PassState.IDLE:
            raise RuntimeError(f"Pass for {self._feed.kind.value} has already run.")
        self._tracker.log_pass_started()
        try:
            parsed_feed = self._fetch_and_parse()
        except (FetchError, FeedDecodeError) as error:
            return self._finish_fatal(error)
        self._state = PassState.FILTERING_MAPPING
        points = self._filter_and_map(parsed_feed)
        self._state = PassState.WRITING
        return self._write_points(points)

    def _fetch_and_parse(self) -> ParsedFeed:
        self._state = PassState.FETCHING
        raw_feed = self._fetcher(self._feed, self._settings.fetch_timeout_seconds)
        self._state = PassState.PARSING
        parsed_feed = parse_feed(raw_feed, self._settings.rt_invalid_mean)
        self._tracker.total = parsed_feed.total
        return parsed_feed

    def _filter_and_map(self, parsed_feed: ParsedFeed) -> list[MetricPoint]:
        """Apply the staleness filter and mapper to entries in feed order."""
        points: list[MetricPoint] = []
        window_days = self._settings.staleness_window_days
        for position, entry in enumerate(parsed_feed.entries, 1):
            self._run.seen += 1
            if isinstance(entry, ParseIssue):
                self._run.failed_parse += 1
                self._tracker.log_record_rejected(entry)
                continue
            if isinstance(entry, InvalidValue):
                self._run.invalid_values += 1
                self._tracker.log_invalid_value(entry)
                continue
            if not is_admissible(entry.event_date, self._clock(), window_days):
                self._run.skipped_stale += 1
                self._tracker.log_record_skipped(position, entry)
                continue
            points.append(to_metric_point(entry))
            self._run.admitted += 1
            self._tracker.log_record_admitted(position, entry)
        return points

    def _write_points(self, points: Sequence[MetricPoint]) -> PassResult:
        if not points:
            return self._finish(PassOutcome.SUCCESS)
        if self._settings.dry_run or self._store is None:
            _log_dry_run_points(self._feed, points)
            return self._finish(PassOutcome.SUCCESS)
        try:
            with open_store_session(self._store) as session:
                self._write_batches(session, points)
        except (StoreConnectError, IngestDependencyError) as error:
            self._run.write_failed = len(points) - self._run.written
            return self._finish_fatal(error)
        if self._run.write_failed:
            return self._finish(PassOutcome.PARTIAL_FAILURE, self._write_error)
        return self._finish(PassOutcome.SUCCESS)

    def _write_batches(self, session: MetricStoreSession, points: Sequence[MetricPoint]) -> None:
        """Write points in batches; the first rejected batch ends writing."""
        batch_size = self._settings.write_batch_size
        for start in range(0, len(points), batch_size):
            batch = tuple(points[start : start + batch_size])
            try:
                session.write_batch(self._feed.measurement, batch)
            except StoreWriteError as error:
                self._run.write_failed = len(points) - self._run.written
                self._write_error = str(error)
                _LOGGER.error(
                    "store_write_failed",
                    feed=self._feed.kind.value,
                    measurement=self._feed.measurement,
                    batch_start=start,
                    batch_size=len(batch),
                    unwritten=self._run.write_failed,
                    error=str(error),
                )
                return
            self._run.written += len(batch)
            _LOGGER.info(
                "store_batch_written",
                feed=self._feed.kind.value,
                measurement=self._feed.measurement,
                batch_size=len(batch),
                written=self._run.written,
                total=len(points),
            )

    def _finish(self, outcome: PassOutcome, error: str | None = None) -> PassResult:
        last_state = self._state
        self._state = PassState.DONE
        result = PassResult(
            feed=self._feed,
            outcome=outcome,
            run=self._run,
            last_state=PassState.DONE if outcome is PassOutcome.SUCCESS else last_state,
            error=error,
        )
        self._tracker.log_pass_completed(result)
        return result

    def _finish_fatal(self, error: IngestError) -> PassResult:
        _LOGGER.error(
            "ingest_pass_failed",
            feed=self._feed.kind.value,
            state=self._state.value,
            error_type=type(error).__name__,
            error=str(error),
        )
        return self._finish(PassOutcome.FATAL, str(error))


def run_ingest_pass(
    feed: FeedSpec,
    settings: IngestSettings,
    store: MetricStore | None,
    fetcher: FeedFetcher = fetch_feed,
    clock: Clock = _utc_now,
) -> PassResult:
    """Run one feed-processing pass.

    Args:
        feed: Feed to process.
        settings: Runtime settings.
        store: Target store, or None in dry-run mode.
        fetcher: Callable returning raw feed bytes.
        clock: Source of the current time.

    Returns:
        Terminal pass result with counters.
    """
    runner = IngestPassRunner(feed, settings, store, fetcher=fetcher, clock=clock)
    return runner.run()


def run_ingestion(
    settings: IngestSettings,
    store: MetricStore | None,
    feeds: Iterable[FeedSpec] = DEFAULT_FEEDS,
    fetcher: FeedFetcher = fetch_feed,
    clock: Clock = _utc_now,
) -> list[PassResult]:
    """Run independent passes over each feed in order.

    Each pass opens its own store session, so a failing pass never
    affects the others.

    Args:
        settings: Runtime settings.
        store: Target store, or None in dry-run mode.
        feeds: Feeds to process.
        fetcher: Callable returning raw feed bytes.
        clock: Source of the current time.

    Returns:
        One result per feed, in feed order.
    """
    results = [
        run_ingest_pass(feed, settings, store, fetcher=fetcher, clock=clock) for feed in feeds
    ]
    _LOGGER.info(
        "ingestion_completed",
        passes=len(results),
        outcomes={result.feed.kind.value: result.outcome.value for result in results},
    )
    return results


def _log_dry_run_points(feed: FeedSpec, points: Sequence[MetricPoint]) -> None:
    """Log points as line protocol instead of writing them."""
    for point in points:
        _LOGGER.info("point_dry_run", feed=feed.kind.value, line=point_to_line_protocol(point))
