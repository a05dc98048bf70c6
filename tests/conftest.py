"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_SETTINGS_ENV_VARS = (
    "COVID_INGEST_CONFIG",
    "COVID_INGEST_FETCH_TIMEOUT",
    "COVID_INGEST_STALENESS_DAYS",
    "COVID_INGEST_WRITE_BATCH_SIZE",
    "COVID_INGEST_RT_INVALID_MEAN",
)


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host COVID_INGEST_* overrides out of every test."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
