"""Recency policy for historical records.

Upstream feeds are append-mostly, so only records inside a trailing
window are (re-)written. The cutoff is recomputed on every call.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from core.constants import DEFAULT_STALENESS_WINDOW_DAYS


def is_admissible(
    event_date: date,
    now: datetime,
    window_days: int = DEFAULT_STALENESS_WINDOW_DAYS,
) -> bool:
    """Return whether a record is recent enough to be written.

    A record is admissible iff its event date, taken as UTC midnight, is at
    or after ``now - window_days``.

    Args:
        event_date: Calendar date of the record.
        now: Current time; naive values are treated as UTC.
        window_days: Trailing window length in days.

    Returns:
        True when the record should be mapped and written.
    """
    return event_start(event_date) >= staleness_cutoff(now, window_days)


def staleness_cutoff(now: datetime, window_days: int = DEFAULT_STALENESS_WINDOW_DAYS) -> datetime:
    """Return the oldest admissible instant for the given time."""
    aware_now = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    return aware_now - timedelta(days=window_days)


def event_start(event_date: date) -> datetime:
    """Return UTC midnight of an event date."""
    return datetime.combine(event_date, time.min, tzinfo=timezone.utc)
