"""Shared serialization for MetricPoint payloads.

This module renders metric points as InfluxDB JSON point bodies for
client writes and as line protocol for dry-run output.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Union

from core.types import MetricPoint


def point_time(timestamp: date) -> datetime:
    """Return the UTC midnight instant a point is stored at."""
    return datetime.combine(timestamp, time.min, tzinfo=timezone.utc)


def point_to_payload(point: MetricPoint) -> dict[str, object]:
    """Serialize a metric point into an InfluxDB JSON point body.

    Args:
        point: Metric point instance.

    Returns:
        Dictionary accepted by ``InfluxDBClient.write_points``.
    """
    return {
        "measurement": point.measurement,
        "tags": dict(point.tags),
        "fields": dict(point.fields),
        "time": point_time(point.timestamp),
    }


def point_to_line_protocol(point: MetricPoint) -> str:
    """Render a metric point as one line of InfluxDB line protocol.

    Timestamps are written with second precision.

    Args:
        point: Metric point instance.

    Returns:
        Line protocol text without a trailing newline.
    """
    tag_text = ",".join(
        f"{_escape_key(key)}={_escape_key(value)}" for key, value in sorted(point.tags.items())
    )
    field_text = ",".join(
        f"{_escape_key(key)}={_format_field_value(value)}"
        for key, value in sorted(point.fields.items())
    )
    seconds = int(point_time(point.timestamp).timestamp())
    return f"{_escape_measurement(point.measurement)},{tag_text} {field_text} {seconds}"


def _escape_measurement(value: str) -> str:
    return value.replace(",", r"\,").replace(" ", r"\ ")


def _escape_key(value: str) -> str:
    return value.replace(",", r"\,").replace("=", r"\=").replace(" ", r"\ ")


def _format_field_value(value: Union[int, float]) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    return repr(float(value))
