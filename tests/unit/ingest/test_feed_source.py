"""Unit tests for HTTP feed retrieval."""

from __future__ import annotations

import pytest
import requests

from core.errors import FetchError
from core.types import STATE_DAILY_FEED, FeedKind
from ingest.feed_source import fetch_feed


class _FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)


def test_fetch_feed_returns_tagged_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 200 response should become a RawFeed with the feed's kind."""
    calls: list[tuple[str, float]] = []

    def fake_get(url: str, timeout: float) -> _FakeResponse:
        calls.append((url, timeout))
        return _FakeResponse(200, b"[]")

    monkeypatch.setattr("requests.get", fake_get)

    raw_feed = fetch_feed(STATE_DAILY_FEED, timeout_seconds=5.0)

    assert raw_feed.kind is FeedKind.STATE_DAILY and raw_feed.payload == b"[]"
    assert calls == [(STATE_DAILY_FEED.url, 5.0)]


def test_fetch_feed_raises_on_http_500(monkeypatch: pytest.MonkeyPatch) -> None:
    """Server errors should map onto FetchError with the status code."""
    monkeypatch.setattr("requests.get", lambda url, timeout: _FakeResponse(500))

    with pytest.raises(FetchError, match="HTTP 500"):
        fetch_feed(STATE_DAILY_FEED, timeout_seconds=5.0)


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("read timed out"), requests.ConnectionError("dns failure")],
)
def test_fetch_feed_raises_on_transport_errors(
    monkeypatch: pytest.MonkeyPatch, error: Exception
) -> None:
    """Timeouts and network failures should map onto FetchError."""

    def fake_get(url: str, timeout: float) -> _FakeResponse:
        raise error

    monkeypatch.setattr("requests.get", fake_get)

    with pytest.raises(FetchError):
        fetch_feed(STATE_DAILY_FEED, timeout_seconds=0.1)
