"""Core constants used across ingest modules.

This module centralizes feed endpoints, measurement names, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

STATE_DAILY_FEED_URL = "https://api.covidtracking.com/v1/states/daily.json"
RT_SERIES_FEED_URL = "https://d14wlfuexuxgcm.cloudfront.net/covid/rt.csv"
STATE_DAILY_MEASUREMENT = "covid19"
RT_SERIES_MEASUREMENT = "covid19Rt"
STATE_TAG_KEY = "state"
RT_MEAN_FIELD_NAME = "RtMean"
STATE_DAILY_DATE_FORMAT = "%Y%m%d"
RT_SERIES_DATE_FORMAT = "%Y-%m-%d"
RT_DATE_COLUMN = 0
RT_REGION_COLUMN = 1
RT_MEAN_COLUMN = 3
RT_MIN_COLUMN_COUNT = RT_MEAN_COLUMN + 1
DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_STALENESS_WINDOW_DAYS = 7
DEFAULT_WRITE_BATCH_SIZE = 5000
DEFAULT_RT_INVALID_MEAN_POLICY = "skip"
STORE_TIME_PRECISION = "s"
STORE_CONNECTION_KEYS = ("host", "port", "database", "username", "password")
REQUIRED_STORE_CONNECTION_KEYS = ("host", "port", "database")
