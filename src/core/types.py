"""Shared typed models.

This module defines the record, metric point, and pass-result models
used by the parser, mapper, store, and orchestrator layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterator, Mapping, Union

from core.constants import (
    RT_SERIES_FEED_URL,
    RT_SERIES_MEASUREMENT,
    STATE_DAILY_FEED_URL,
    STATE_DAILY_MEASUREMENT,
)
from core.errors import IngestError


class FeedKind(str, Enum):
    """Upstream payload formats understood by the record parser."""

    STATE_DAILY = "state-daily"
    RT_SERIES = "rt"


class RtInvalidMeanPolicy(str, Enum):
    """How the parser treats an empty or non-numeric Rt mean."""

    SKIP = "skip"
    FAIL = "fail"


class PassState(str, Enum):
    """Orchestrator states for one feed-processing pass."""

    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    FILTERING_MAPPING = "filtering_mapping"
    WRITING = "writing"
    DONE = "done"


class PassOutcome(str, Enum):
    """Terminal result of one feed-processing pass."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FATAL = "fatal"


@dataclass(frozen=True)
class FeedSpec:
    """Fixed upstream feed definition.

    Attributes:
        kind: Payload format of the feed.
        url: HTTPS endpoint returning the payload.
        measurement: Store measurement the feed's points are written to.
    """

    kind: FeedKind
    url: str
    measurement: str


STATE_DAILY_FEED = FeedSpec(
    kind=FeedKind.STATE_DAILY,
    url=STATE_DAILY_FEED_URL,
    measurement=STATE_DAILY_MEASUREMENT,
)
RT_SERIES_FEED = FeedSpec(
    kind=FeedKind.RT_SERIES,
    url=RT_SERIES_FEED_URL,
    measurement=RT_SERIES_MEASUREMENT,
)
DEFAULT_FEEDS: tuple[FeedSpec, ...] = (STATE_DAILY_FEED, RT_SERIES_FEED)


@dataclass(frozen=True)
class RawFeed:
    """Raw bytes fetched for one feed.

    Attributes:
        kind: Payload format tag.
        payload: Undecoded response body.
    """

    kind: FeedKind
    payload: bytes


@dataclass(frozen=True)
class StateDailyRecord:
    """One state's daily snapshot from the state-daily feed."""

    event_date: date
    state_code: str
    positive: int = 0
    negative: int = 0
    death: int = 0
    hospitalized_currently: int = 0
    hospitalized_cumulative: int = 0
    in_icu_currently: int = 0
    in_icu_cumulative: int = 0
    on_ventilator_currently: int = 0
    on_ventilator_cumulative: int = 0
    recovered: int = 0
    death_increase: int = 0
    positive_increase: int = 0
    negative_increase: int = 0
    total_test_results_increase: int = 0
    hospitalized_increase: int = 0


@dataclass(frozen=True)
class RtRecord:
    """One region's daily reproduction-number estimate.

    Attributes:
        event_date: Calendar date of the estimate.
        region: Free-text region label, used as the state tag.
        rt_mean: Finite mean Rt value.
    """

    event_date: date
    region: str
    rt_mean: float


Record = Union[StateDailyRecord, RtRecord]


@dataclass(frozen=True)
class MetricPoint:
    """Unit written to the time-series store.

    Attributes:
        measurement: Series grouping name.
        tags: Indexed string dimensions; never empty.
        fields: Numeric values; never empty.
        timestamp: Event date of the source record.
    """

    measurement: str
    tags: Mapping[str, str]
    fields: Mapping[str, Union[int, float]]
    timestamp: date

    def __post_init__(self) -> None:
        if not self.tags:
            raise ValueError(f"Metric point for '{self.measurement}' must have at least one tag.")
        if not self.fields:
            raise ValueError(f"Metric point for '{self.measurement}' must have at least one field.")


@dataclass(frozen=True)
class ParseIssue:
    """A payload entry the parser could not turn into a record.

    Attributes:
        position: One-based entry position in the payload (header excluded).
        error: Record-level error describing the failure.
    """

    position: int
    error: IngestError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class InvalidValue:
    """A row dropped for an empty or non-numeric value under the skip policy.

    Attributes:
        position: One-based entry position in the payload (header excluded).
        column: Name of the offending column.
        raw_value: Value as it appeared upstream.
    """

    position: int
    column: str
    raw_value: str


ParsedEntry = Union[StateDailyRecord, RtRecord, ParseIssue, InvalidValue]


@dataclass
class ParsedFeed:
    """Lazy parse result for one raw feed.

    Attributes:
        kind: Payload format tag.
        total: Number of entries in the payload, known after top-level decode.
        entries: Single-use iterator of parsed entries in feed order.
    """

    kind: FeedKind
    total: int
    entries: Iterator[ParsedEntry]


@dataclass
class IngestionRun:
    """Per-pass counters. Logged at pass end and never persisted."""

    seen: int = 0
    admitted: int = 0
    skipped_stale: int = 0
    failed_parse: int = 0
    invalid_values: int = 0
    written: int = 0
    write_failed: int = 0

    def as_log_fields(self) -> dict[str, int]:
        return {
            "seen": self.seen,
            "admitted": self.admitted,
            "skipped_stale": self.skipped_stale,
            "failed_parse": self.failed_parse,
            "invalid_values": self.invalid_values,
            "written": self.written,
            "write_failed": self.write_failed,
        }


@dataclass(frozen=True)
class PassResult:
    """Outcome of one feed-processing pass.

    Attributes:
        feed: Feed processed by the pass.
        outcome: Terminal outcome.
        run: Final counters.
        last_state: State the pass was in when it finished or aborted.
        error: Cause of a fatal or partial failure, if any.
    """

    feed: FeedSpec
    outcome: PassOutcome
    run: IngestionRun = field(default_factory=IngestionRun)
    last_state: PassState = PassState.DONE
    error: str | None = None
