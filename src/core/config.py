"""Runtime configuration models.

This module owns all environment variable parsing and the store
connection file loader. Other modules consume typed config objects
instead of raw env reads or process-wide globals.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, cast

import yaml

from core.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_RT_INVALID_MEAN_POLICY,
    DEFAULT_STALENESS_WINDOW_DAYS,
    DEFAULT_WRITE_BATCH_SIZE,
    REQUIRED_STORE_CONNECTION_KEYS,
    STORE_CONNECTION_KEYS,
)
from core.errors import IngestConfigError
from core.types import RtInvalidMeanPolicy


@dataclass(frozen=True)
class IngestSettings:
    """Validated runtime settings.

    Attributes:
        config_path: Store connection file path.
        fetch_timeout_seconds: Upper bound for one feed HTTP request.
        staleness_window_days: Records older than this many days are skipped.
        write_batch_size: Maximum points per store write call.
        rt_invalid_mean: Treatment of empty or non-numeric Rt means.
        dry_run: Map and log points without opening the store.
    """

    config_path: Path
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    staleness_window_days: int = DEFAULT_STALENESS_WINDOW_DAYS
    write_batch_size: int = DEFAULT_WRITE_BATCH_SIZE
    rt_invalid_mean: RtInvalidMeanPolicy = RtInvalidMeanPolicy.SKIP
    dry_run: bool = False

    @classmethod
    def from_env(cls) -> "IngestSettings":
        """Build settings from process environment variables.

        Returns:
            A validated settings object.

        Raises:
            IngestConfigError: If environment values are invalid.
        """
        config_path = os.getenv("COVID_INGEST_CONFIG", str(DEFAULT_CONFIG_PATH))
        return cls(
            config_path=Path(config_path).expanduser(),
            fetch_timeout_seconds=_parse_timeout(
                os.getenv("COVID_INGEST_FETCH_TIMEOUT", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
            ),
            staleness_window_days=_parse_int_setting(
                "COVID_INGEST_STALENESS_DAYS",
                os.getenv("COVID_INGEST_STALENESS_DAYS", str(DEFAULT_STALENESS_WINDOW_DAYS)),
                minimum=0,
            ),
            write_batch_size=_parse_int_setting(
                "COVID_INGEST_WRITE_BATCH_SIZE",
                os.getenv("COVID_INGEST_WRITE_BATCH_SIZE", str(DEFAULT_WRITE_BATCH_SIZE)),
                minimum=1,
            ),
            rt_invalid_mean=_parse_rt_policy(
                os.getenv("COVID_INGEST_RT_INVALID_MEAN", DEFAULT_RT_INVALID_MEAN_POLICY)
            ),
        )


@dataclass(frozen=True)
class StoreConnectionConfig:
    """Time-series store connection parameters.

    Attributes:
        host: Store hostname.
        port: Store HTTP API port.
        database: Target database name.
        username: Static credential user, empty for anonymous access.
        password: Static credential password.
    """

    host: str
    port: int
    database: str
    username: str = ""
    password: str = ""


def load_store_connection_config(config_path: Path) -> StoreConnectionConfig:
    """Load the store connection file from disk.

    ``.yaml``/``.yml`` files are parsed with PyYAML, everything else as JSON.

    Args:
        config_path: Path to the connection file.

    Returns:
        Validated connection config.

    Raises:
        IngestConfigError: If the file is missing, unreadable, or invalid.
    """
    resolved_path = config_path.expanduser().resolve()
    if not resolved_path.is_file():
        raise IngestConfigError(
            f"Store config file does not exist at {resolved_path}. "
            "Create it with host, port, database, username and password."
        )
    try:
        text = resolved_path.read_text(encoding="utf-8")
    except OSError as error:
        raise IngestConfigError(
            f"Failed to read store config at {resolved_path}: {error}. "
            "Check file permissions and retry."
        ) from error
    payload = _decode_config_text(resolved_path, text)
    return _parse_connection_mapping(_expect_mapping(payload, resolved_path))


def _decode_config_text(config_path: Path, text: str) -> object:
    try:
        if config_path.suffix.lower() in (".yaml", ".yml"):
            return cast(object, yaml.safe_load(text))
        return cast(object, json.loads(text))
    except (json.JSONDecodeError, yaml.YAMLError) as error:
        raise IngestConfigError(
            f"Failed to parse store config at {config_path}: {error}. Fix the syntax and retry."
        ) from error


def _expect_mapping(payload: object, config_path: Path) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        raise IngestConfigError(
            f"Invalid store config at {config_path}: expected an object, "
            f"got {type(payload).__name__}."
        )
    unknown_keys = sorted(str(key) for key in payload if key not in STORE_CONNECTION_KEYS)
    if unknown_keys:
        raise IngestConfigError(
            f"Unknown store config keys {unknown_keys} in {config_path}. "
            f"Use only: {', '.join(STORE_CONNECTION_KEYS)}."
        )
    missing_keys = [key for key in REQUIRED_STORE_CONNECTION_KEYS if payload.get(key) in (None, "")]
    if missing_keys:
        raise IngestConfigError(
            f"Store config at {config_path} is missing required keys: {', '.join(missing_keys)}."
        )
    return cast(Mapping[str, object], payload)


def _parse_connection_mapping(payload: Mapping[str, object]) -> StoreConnectionConfig:
    return StoreConnectionConfig(
        host=str(payload["host"]),
        port=_parse_port(payload["port"]),
        database=str(payload["database"]),
        username=_optional_string(payload, "username"),
        password=_optional_string(payload, "password"),
    )


def _parse_port(raw_port: object) -> int:
    if isinstance(raw_port, bool):
        raise IngestConfigError("Store config 'port' must be an integer, got a boolean.")
    try:
        port = int(str(raw_port).strip())
    except ValueError as error:
        raise IngestConfigError(
            f"Store config 'port' must be an integer, got '{raw_port}'."
        ) from error
    if not 0 < port < 65536:
        raise IngestConfigError(f"Store config 'port' must be in 1-65535, got {port}.")
    return port


def _optional_string(payload: Mapping[str, object], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise IngestConfigError(f"Store config '{key}' must be a string.")
    return value


def _parse_timeout(raw_value: str) -> float:
    """Parse the fetch timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive timeout in seconds.

    Raises:
        IngestConfigError: If value is not a positive finite number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise IngestConfigError(
            "Invalid COVID_INGEST_FETCH_TIMEOUT value: "
            f"expected seconds, got '{raw_value}'."
        ) from error
    if not math.isfinite(timeout) or timeout <= 0:
        raise IngestConfigError(
            f"Invalid COVID_INGEST_FETCH_TIMEOUT value: expected > 0, got '{raw_value}'."
        )
    return timeout


def _parse_int_setting(name: str, raw_value: str, minimum: int) -> int:
    try:
        value = int(raw_value)
    except ValueError as error:
        raise IngestConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'."
        ) from error
    if value < minimum:
        raise IngestConfigError(f"Invalid {name} value: expected >= {minimum}, got {value}.")
    return value


def _parse_rt_policy(raw_value: str) -> RtInvalidMeanPolicy:
    try:
        return RtInvalidMeanPolicy(raw_value.strip().lower())
    except ValueError as error:
        supported = ", ".join(policy.value for policy in RtInvalidMeanPolicy)
        raise IngestConfigError(
            f"Invalid COVID_INGEST_RT_INVALID_MEAN value '{raw_value}'. Use one of: {supported}."
        ) from error
