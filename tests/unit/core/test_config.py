"""Unit tests for core config parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import IngestSettings, load_store_connection_config
from core.errors import IngestConfigError
from core.types import RtInvalidMeanPolicy
from tests.fixture_paths import fixture_path


def test_from_env_uses_defaults() -> None:
    """Settings should fall back to documented defaults."""
    settings = IngestSettings.from_env()

    assert settings.config_path == Path("config.json")
    assert settings.staleness_window_days == 7
    assert settings.rt_invalid_mean is RtInvalidMeanPolicy.SKIP
    assert settings.dry_run is False


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings should parse every supported environment override."""
    monkeypatch.setenv("COVID_INGEST_FETCH_TIMEOUT", "2.5")
    monkeypatch.setenv("COVID_INGEST_STALENESS_DAYS", "14")
    monkeypatch.setenv("COVID_INGEST_WRITE_BATCH_SIZE", "100")
    monkeypatch.setenv("COVID_INGEST_RT_INVALID_MEAN", "FAIL")

    settings = IngestSettings.from_env()

    assert settings.fetch_timeout_seconds == 2.5
    assert settings.staleness_window_days == 14
    assert settings.write_batch_size == 100
    assert settings.rt_invalid_mean is RtInvalidMeanPolicy.FAIL


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("COVID_INGEST_FETCH_TIMEOUT", "0"),
        ("COVID_INGEST_FETCH_TIMEOUT", "soon"),
        ("COVID_INGEST_STALENESS_DAYS", "-1"),
        ("COVID_INGEST_WRITE_BATCH_SIZE", "0"),
        ("COVID_INGEST_RT_INVALID_MEAN", "ignore"),
    ],
)
def test_from_env_raises_for_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    """Settings should reject out-of-range or unparseable values."""
    monkeypatch.setenv(name, value)

    with pytest.raises(IngestConfigError):
        IngestSettings.from_env()


def test_load_store_connection_config_reads_json() -> None:
    """JSON connection files should yield all five options, port as int."""
    connection = load_store_connection_config(fixture_path("config/valid.json"))

    assert (connection.host, connection.port, connection.database) == (
        "influx.local",
        8086,
        "covid",
    )
    assert (connection.username, connection.password) == ("writer", "s3cret")


def test_load_store_connection_config_reads_yaml_with_empty_credentials() -> None:
    """YAML connection files should parse and default credentials to empty."""
    connection = load_store_connection_config(fixture_path("config/valid.yaml"))

    assert connection.port == 8086
    assert connection.username == ""


@pytest.mark.parametrize(
    "relative_path",
    ["config/unknown_key.json", "config/malformed.json", "config/does_not_exist.json"],
)
def test_load_store_connection_config_rejects_bad_files(relative_path: str) -> None:
    """Unknown keys, syntax errors, and missing files should all fail fast."""
    with pytest.raises(IngestConfigError):
        load_store_connection_config(fixture_path(relative_path))


def test_load_store_connection_config_rejects_missing_database(tmp_path: Path) -> None:
    """Host, port, and database are required."""
    config_file = tmp_path / "config.json"
    config_file.write_text('{"host": "influx.local", "port": 8086}', encoding="utf-8")

    with pytest.raises(IngestConfigError, match="database"):
        load_store_connection_config(config_file)


def test_load_store_connection_config_rejects_non_numeric_port(tmp_path: Path) -> None:
    """Port must parse as an integer in the valid TCP range."""
    config_file = tmp_path / "config.json"
    config_file.write_text(
        '{"host": "influx.local", "port": "eighty", "database": "covid"}', encoding="utf-8"
    )

    with pytest.raises(IngestConfigError, match="port"):
        load_store_connection_config(config_file)
