"""Feed payload decoding.

This module turns raw feed bytes into typed records. Upstream schema
quirks (integer or string dates, null counters, the two historical
``dateChecked`` shapes) stay inside this module; downstream layers only
see ``StateDailyRecord`` and ``RtRecord``.
"""

from __future__ import annotations

import csv
import io
import json
import math
from datetime import date, datetime
from typing import Any, Iterator, Mapping, Sequence

from core.constants import (
    RT_DATE_COLUMN,
    RT_MEAN_COLUMN,
    RT_MIN_COLUMN_COUNT,
    RT_REGION_COLUMN,
    RT_SERIES_DATE_FORMAT,
    STATE_DAILY_DATE_FORMAT,
)
from core.errors import FeedDecodeError, RowDecodeError, ValueParseError
from core.types import (
    FeedKind,
    InvalidValue,
    ParsedEntry,
    ParsedFeed,
    ParseIssue,
    RawFeed,
    RtInvalidMeanPolicy,
    RtRecord,
    StateDailyRecord,
)

# StateDailyRecord attribute -> upstream JSON key
_STATE_DAILY_COUNTER_KEYS: dict[str, str] = {
    "positive": "positive",
    "negative": "negative",
    "death": "death",
    "hospitalized_currently": "hospitalizedCurrently",
    "hospitalized_cumulative": "hospitalizedCumulative",
    "in_icu_currently": "inIcuCurrently",
    "in_icu_cumulative": "inIcuCumulative",
    "on_ventilator_currently": "onVentilatorCurrently",
    "on_ventilator_cumulative": "onVentilatorCumulative",
    "recovered": "recovered",
    "death_increase": "deathIncrease",
    "positive_increase": "positiveIncrease",
    "negative_increase": "negativeIncrease",
    "total_test_results_increase": "totalTestResultsIncrease",
    "hospitalized_increase": "hospitalizedIncrease",
}


def parse_feed(
    raw_feed: RawFeed,
    rt_invalid_mean: RtInvalidMeanPolicy = RtInvalidMeanPolicy.SKIP,
) -> ParsedFeed:
    """Decode a raw feed into a lazy sequence of parsed entries.

    Top-level structure is validated eagerly; individual records are
    decoded as the caller iterates.

    Args:
        raw_feed: Raw payload and its kind.
        rt_invalid_mean: Treatment of empty or non-numeric Rt means.

    Returns:
        Parsed feed with entry count and single-use entry iterator.

    Raises:
        FeedDecodeError: If the payload is structurally malformed.
    """
    if raw_feed.kind is FeedKind.STATE_DAILY:
        return _parse_state_daily(raw_feed.payload)
    if raw_feed.kind is FeedKind.RT_SERIES:
        return _parse_rt_series(raw_feed.payload, rt_invalid_mean)
    raise FeedDecodeError(f"Unsupported feed kind: {raw_feed.kind!r}.")


def _parse_state_daily(payload: bytes) -> ParsedFeed:
    """Validate the state-daily JSON array and defer per-object decoding.

    Args:
        payload: Raw JSON bytes.

    Returns:
        Parsed feed over state-daily objects.

    Raises:
        FeedDecodeError: If payload is not a JSON array of objects.
    """
    try:
        items = json.loads(_decode_text(payload, "utf-8"))
    except json.JSONDecodeError as error:
        raise FeedDecodeError(
            f"State-daily payload is not valid JSON: {error.msg} at line {error.lineno}."
        ) from error
    if not isinstance(items, list):
        raise FeedDecodeError(
            f"State-daily payload must be a JSON array, got {type(items).__name__}."
        )
    for position, item in enumerate(items, 1):
        if not isinstance(item, dict):
            raise FeedDecodeError(
                f"State-daily entry #{position} must be an object, got {type(item).__name__}."
            )
    return ParsedFeed(
        kind=FeedKind.STATE_DAILY,
        total=len(items),
        entries=_iter_state_daily(items),
    )


def _iter_state_daily(items: Sequence[Mapping[str, Any]]) -> Iterator[ParsedEntry]:
    for position, item in enumerate(items, 1):
        try:
            yield _state_daily_record(item)
        except ValueParseError as error:
            yield ParseIssue(position=position, error=error)


def _state_daily_record(item: Mapping[str, Any]) -> StateDailyRecord:
    """Build a record from one upstream object.

    Raises:
        ValueParseError: If the date, state, or any counter is invalid.
    """
    event_date = _parse_compact_date(item.get("date"))
    state_code = item.get("state")
    if not isinstance(state_code, str) or not state_code.strip():
        raise ValueParseError(f"Missing state code for {event_date.isoformat()}.")
    counters = {
        attribute: _parse_counter(item, json_key)
        for attribute, json_key in _STATE_DAILY_COUNTER_KEYS.items()
    }
    return StateDailyRecord(event_date=event_date, state_code=state_code.strip(), **counters)


def _parse_compact_date(raw_value: object) -> date:
    """Parse the compact ``YYYYMMDD`` date, given as an int or a string."""
    if isinstance(raw_value, bool) or not isinstance(raw_value, (int, str)):
        raise ValueParseError(f"Invalid date value {raw_value!r}: expected YYYYMMDD.")
    text = str(raw_value).strip()
    if len(text) != 8 or not text.isdigit():
        raise ValueParseError(f"Invalid date value {raw_value!r}: expected YYYYMMDD.")
    try:
        return datetime.strptime(text, STATE_DAILY_DATE_FORMAT).date()
    except ValueError as error:
        raise ValueParseError(f"Invalid date value {raw_value!r}: {error}.") from error


def _parse_counter(item: Mapping[str, Any], json_key: str) -> int:
    # Upstream reports unknown counters as null.
    raw_value = item.get(json_key)
    if raw_value is None:
        return 0
    if isinstance(raw_value, bool):
        raise ValueParseError(f"Counter '{json_key}' must be an integer, got {raw_value!r}.")
    if isinstance(raw_value, int):
        return raw_value
    if isinstance(raw_value, float) and raw_value.is_integer():
        return int(raw_value)
    raise ValueParseError(f"Counter '{json_key}' must be an integer, got {raw_value!r}.")


def _parse_rt_series(payload: bytes, policy: RtInvalidMeanPolicy) -> ParsedFeed:
    """Split the Rt CSV into rows and defer per-row decoding.

    Args:
        payload: Raw CSV bytes, header first.
        policy: Treatment of empty or non-numeric Rt means.

    Returns:
        Parsed feed over data rows.

    Raises:
        FeedDecodeError: If the CSV is unreadable or has no usable header.
    """
    text = _decode_text(payload, "utf-8-sig")
    try:
        rows = [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    except csv.Error as error:
        raise FeedDecodeError(f"Rt payload is not valid CSV: {error}.") from error
    if not rows:
        raise FeedDecodeError("Rt payload is empty: expected a header row.")
    header = rows[0]
    if len(header) < RT_MIN_COLUMN_COUNT:
        raise FeedDecodeError(
            f"Rt header has {len(header)} columns, expected at least {RT_MIN_COLUMN_COUNT}."
        )
    data_rows = rows[1:]
    return ParsedFeed(
        kind=FeedKind.RT_SERIES,
        total=len(data_rows),
        entries=_iter_rt_rows(data_rows, header, policy),
    )


def _iter_rt_rows(
    rows: Sequence[Sequence[str]],
    header: Sequence[str],
    policy: RtInvalidMeanPolicy,
) -> Iterator[ParsedEntry]:
    width = len(header)
    mean_column = header[RT_MEAN_COLUMN] or "mean"
    for position, row in enumerate(rows, 1):
        if len(row) != width:
            yield ParseIssue(
                position=position,
                error=RowDecodeError(f"Rt row has {len(row)} columns, expected {width}."),
            )
            continue
        try:
            event_date = _parse_iso_date(row[RT_DATE_COLUMN])
            region = _parse_region(row[RT_REGION_COLUMN])
        except ValueParseError as error:
            yield ParseIssue(position=position, error=error)
            continue
        raw_mean = row[RT_MEAN_COLUMN]
        rt_mean = _parse_rt_mean(raw_mean)
        if rt_mean is not None:
            yield RtRecord(event_date=event_date, region=region, rt_mean=rt_mean)
        elif policy is RtInvalidMeanPolicy.FAIL:
            error = ValueParseError(
                f"Rt mean for {region} must be a finite number, got {raw_mean!r}."
            )
            yield ParseIssue(position=position, error=error)
        else:
            yield InvalidValue(position=position, column=mean_column, raw_value=raw_mean)


def _parse_iso_date(raw_value: str) -> date:
    try:
        return datetime.strptime(raw_value.strip(), RT_SERIES_DATE_FORMAT).date()
    except ValueError as error:
        raise ValueParseError(f"Invalid date value {raw_value!r}: expected YYYY-MM-DD.") from error


def _parse_region(raw_value: str) -> str:
    region = raw_value.strip()
    if not region:
        raise ValueParseError("Rt row has an empty region.")
    return region


def _parse_rt_mean(raw_value: str) -> float | None:
    """Return the mean as a finite float, or None when unusable."""
    try:
        value = float(raw_value)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _decode_text(payload: bytes, encoding: str) -> str:
    try:
        return payload.decode(encoding)
    except UnicodeDecodeError as error:
        raise FeedDecodeError(f"Feed payload is not valid {encoding}: {error.reason}.") from error
