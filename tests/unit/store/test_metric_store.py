"""Unit tests for InfluxDB store sessions."""

from __future__ import annotations

from datetime import date

import pytest
import requests

from core.config import StoreConnectionConfig
from core.errors import StoreConnectError, StoreWriteError
from core.types import MetricPoint
from store.metric_store import InfluxMetricStore, open_store_session


class _FakeClientError(Exception):
    pass


class _FakeInfluxClient:
    instances: list["_FakeInfluxClient"] = []

    def __init__(self, **kwargs: object) -> None:
        self.kwargs = kwargs
        self.writes: list[tuple[list[dict[str, object]], dict[str, object]]] = []
        self.closed = False
        _FakeInfluxClient.instances.append(self)

    def ping(self) -> str:
        if _PING_ERRORS:
            raise _PING_ERRORS[0]
        return "1.8.10"

    def write_points(self, points, **kwargs):  # type: ignore[no-untyped-def]
        if _WRITE_ERRORS:
            raise _WRITE_ERRORS[0]
        self.writes.append((points, kwargs))
        return True

    def close(self) -> None:
        self.closed = True


_PING_ERRORS: list[Exception] = []
_WRITE_ERRORS: list[Exception] = []


@pytest.fixture(autouse=True)
def _fake_influx(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeInfluxClient.instances.clear()
    _PING_ERRORS.clear()
    _WRITE_ERRORS.clear()
    monkeypatch.setattr(
        "store.metric_store._load_influx_client",
        lambda: (_FakeInfluxClient, (_FakeClientError,)),
    )


def _store() -> InfluxMetricStore:
    return InfluxMetricStore(
        StoreConnectionConfig(host="influx.local", port=8086, database="covid", username="w")
    )


def _point(state: str = "MA") -> MetricPoint:
    return MetricPoint("covid19", {"state": state}, {"death": 1}, date(2020, 6, 1))


def test_open_passes_connection_options_to_client() -> None:
    """The five connection options should reach the client constructor."""
    session = _store().open()
    session.close()

    client = _FakeInfluxClient.instances[0]
    assert client.kwargs == {
        "host": "influx.local",
        "port": 8086,
        "username": "w",
        "password": "",
        "database": "covid",
    }


def test_open_raises_connect_error_when_ping_fails() -> None:
    """An unreachable server should raise StoreConnectError and close the client."""
    _PING_ERRORS.append(requests.ConnectionError("refused"))

    with pytest.raises(StoreConnectError):
        _store().open()

    assert _FakeInfluxClient.instances[0].closed is True


def test_write_batch_sends_all_points_in_one_call() -> None:
    """One batch should be one write_points call with second precision."""
    with open_store_session(_store()) as session:
        session.write_batch("covid19", [_point("MA"), _point("NY")])

    client = _FakeInfluxClient.instances[0]
    points, kwargs = client.writes[0]
    assert len(client.writes) == 1 and len(points) == 2
    assert kwargs == {"time_precision": "s", "database": "covid"}


def test_write_batch_wraps_client_errors() -> None:
    """Client-side rejections should surface as StoreWriteError."""
    _WRITE_ERRORS.append(_FakeClientError("field type conflict"))

    with open_store_session(_store()) as session:
        with pytest.raises(StoreWriteError):
            session.write_batch("covid19", [_point()])


def test_write_batch_rejects_mixed_measurements() -> None:
    """Each batch call targets exactly one measurement."""
    with open_store_session(_store()) as session:
        with pytest.raises(StoreWriteError):
            session.write_batch("covid19Rt", [_point()])


def test_open_store_session_closes_on_error() -> None:
    """The session should be released even when the body raises."""
    with pytest.raises(KeyboardInterrupt):
        with open_store_session(_store()):
            raise KeyboardInterrupt

    assert _FakeInfluxClient.instances[0].closed is True
