"""Structured ingest progress reporting.

This module emits one event per record (admitted, skipped, rejected)
with its ``position/total`` and parsed values, plus pass start and
completion summaries.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from core.logging_config import get_logger
from core.types import (
    FeedSpec,
    InvalidValue,
    ParseIssue,
    PassOutcome,
    PassResult,
    Record,
    RtRecord,
    StateDailyRecord,
)

_LOGGER = get_logger(__name__)


@dataclass
class IngestProgressTracker:
    """Track and emit progress events for one feed-processing pass."""

    feed: FeedSpec
    total: int = 0
    pass_started_at: float = field(default_factory=time.monotonic)

    def log_pass_started(self) -> None:
        """Log one event when a pass starts."""
        _LOGGER.info("ingest_pass_started", feed=self.feed.kind.value, url=self.feed.url)

    def log_record_admitted(self, position: int, record: Record) -> None:
        """Log a record that passed the staleness filter."""
        _LOGGER.info(
            "record_admitted",
            feed=self.feed.kind.value,
            position=_position_label(position, self.total),
            **_record_fields(record),
        )

    def log_record_skipped(self, position: int, record: Record) -> None:
        """Log a record older than the staleness window."""
        _LOGGER.info(
            "record_skipped",
            feed=self.feed.kind.value,
            position=_position_label(position, self.total),
            reason="stale",
            **_record_fields(record),
        )

    def log_record_rejected(self, issue: ParseIssue) -> None:
        """Log an entry the parser could not decode."""
        _LOGGER.warning(
            "record_rejected",
            feed=self.feed.kind.value,
            position=_position_label(issue.position, self.total),
            error_type=type(issue.error).__name__,
            reason=issue.reason,
        )

    def log_invalid_value(self, invalid: InvalidValue) -> None:
        """Log a row dropped for an unusable value under the skip policy."""
        _LOGGER.warning(
            "rt_mean_invalid",
            feed=self.feed.kind.value,
            position=_position_label(invalid.position, self.total),
            column=invalid.column,
            raw_value=invalid.raw_value,
        )

    def log_pass_completed(self, result: PassResult) -> None:
        """Log the pass summary with counters and elapsed time."""
        elapsed_seconds = max(0.0, time.monotonic() - self.pass_started_at)
        log_method = _LOGGER.info if result.outcome is PassOutcome.SUCCESS else _LOGGER.error
        log_method(
            "ingest_pass_completed",
            feed=self.feed.kind.value,
            outcome=result.outcome.value,
            last_state=result.last_state.value,
            error=result.error,
            elapsed_seconds=round(elapsed_seconds, 3),
            **result.run.as_log_fields(),
        )


def _position_label(position: int, total: int) -> str:
    """Render a one-based position as ``index/total``."""
    return f"{position}/{total}"


def _record_fields(record: Record) -> dict[str, object]:
    """Select the parsed values shown in per-record progress events."""
    if isinstance(record, StateDailyRecord):
        return {
            "event_date": record.event_date.isoformat(),
            "state": record.state_code,
            "death": record.death,
            "case": record.positive,
            "death_increase": record.death_increase,
        }
    if isinstance(record, RtRecord):
        return {
            "event_date": record.event_date.isoformat(),
            "state": record.region,
            "rt_mean": record.rt_mean,
        }
    return {}
