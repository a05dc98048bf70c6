"""Public import surface for the COVID feed ingester.

This module provides a stable import path for library users.
It re-exports the pass runners, settings, and typed models.
"""

from __future__ import annotations

from core.config import IngestSettings, StoreConnectionConfig, load_store_connection_config
from core.types import (
    DEFAULT_FEEDS,
    RT_SERIES_FEED,
    STATE_DAILY_FEED,
    FeedKind,
    FeedSpec,
    IngestionRun,
    MetricPoint,
    PassOutcome,
    PassResult,
    RtRecord,
    StateDailyRecord,
)
from ingest.metric_mapper import to_metric_point
from ingest.pipeline import IngestPassRunner, run_ingest_pass, run_ingestion
from ingest.record_parser import parse_feed
from ingest.staleness import is_admissible
from store.metric_store import InfluxMetricStore, open_store_session

__all__ = [
    "DEFAULT_FEEDS",
    "FeedKind",
    "FeedSpec",
    "InfluxMetricStore",
    "IngestPassRunner",
    "IngestSettings",
    "IngestionRun",
    "MetricPoint",
    "PassOutcome",
    "PassResult",
    "RT_SERIES_FEED",
    "RtRecord",
    "STATE_DAILY_FEED",
    "StateDailyRecord",
    "StoreConnectionConfig",
    "is_admissible",
    "load_store_connection_config",
    "open_store_session",
    "parse_feed",
    "run_ingest_pass",
    "run_ingestion",
    "to_metric_point",
]
