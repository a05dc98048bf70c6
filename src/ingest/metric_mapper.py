"""Record to metric point mapping.

Both measurements carry a single ``state`` tag so the two series can be
joined by tag. Values are copied as-is: no conversion, derivation, or
rounding.
"""

from __future__ import annotations

from core.constants import (
    RT_MEAN_FIELD_NAME,
    RT_SERIES_MEASUREMENT,
    STATE_DAILY_MEASUREMENT,
    STATE_TAG_KEY,
)
from core.types import MetricPoint, Record, RtRecord, StateDailyRecord


def to_metric_point(record: Record) -> MetricPoint:
    """Map an admitted record onto its store point.

    Args:
        record: State-daily or Rt record.

    Returns:
        Metric point timestamped at the record's event date.

    Raises:
        TypeError: If the record type is unknown.
    """
    if isinstance(record, StateDailyRecord):
        return _state_daily_point(record)
    if isinstance(record, RtRecord):
        return _rt_point(record)
    raise TypeError(f"Cannot map record of type {type(record).__name__} to a metric point.")


def _state_daily_point(record: StateDailyRecord) -> MetricPoint:
    # "case" is the historical field name for cumulative positives.
    fields = {
        "case": record.positive,
        "negative": record.negative,
        "death": record.death,
        "hospitalizedCurrently": record.hospitalized_currently,
        "hospitalizedCumulative": record.hospitalized_cumulative,
        "inIcuCurrently": record.in_icu_currently,
        "inIcuCumulative": record.in_icu_cumulative,
        "onVentilatorCurrently": record.on_ventilator_currently,
        "onVentilatorCumulative": record.on_ventilator_cumulative,
        "recovered": record.recovered,
        "deathIncrease": record.death_increase,
        "positiveIncrease": record.positive_increase,
        "negativeIncrease": record.negative_increase,
        "totalTestResultsIncrease": record.total_test_results_increase,
        "hospitalizedIncrease": record.hospitalized_increase,
    }
    return MetricPoint(
        measurement=STATE_DAILY_MEASUREMENT,
        tags={STATE_TAG_KEY: record.state_code},
        fields=fields,
        timestamp=record.event_date,
    )


def _rt_point(record: RtRecord) -> MetricPoint:
    return MetricPoint(
        measurement=RT_SERIES_MEASUREMENT,
        tags={STATE_TAG_KEY: record.region},
        fields={RT_MEAN_FIELD_NAME: record.rt_mean},
        timestamp=record.event_date,
    )
