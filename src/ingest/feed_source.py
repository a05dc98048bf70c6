"""HTTP feed retrieval.

This module downloads raw feed bytes with a bounded timeout and maps
every transport or status failure onto ``FetchError``.
"""

from __future__ import annotations

import requests

from core.errors import FetchError
from core.logging_config import get_logger
from core.types import FeedSpec, RawFeed

_LOGGER = get_logger(__name__)


def fetch_feed(feed: FeedSpec, timeout_seconds: float) -> RawFeed:
    """Fetch one feed over HTTP GET.

    Args:
        feed: Feed definition with URL and payload kind.
        timeout_seconds: Connect and read timeout for the request.

    Returns:
        Raw payload tagged with the feed kind.

    Raises:
        FetchError: On network failure, timeout, or non-2xx status.
    """
    try:
        response = requests.get(feed.url, timeout=timeout_seconds)
        response.raise_for_status()
    except requests.Timeout as error:
        raise FetchError(
            f"Timed out after {timeout_seconds}s fetching {feed.url}. "
            "Raise COVID_INGEST_FETCH_TIMEOUT or retry later."
        ) from error
    except requests.HTTPError as error:
        raise FetchError(
            f"Feed {feed.url} returned HTTP {_status_code(error)}. "
            "The upstream may be down; retry the pass later."
        ) from error
    except requests.RequestException as error:
        raise FetchError(f"Failed to fetch {feed.url}: {error}.") from error
    payload = response.content
    _LOGGER.info(
        "feed_fetched",
        feed=feed.kind.value,
        url=feed.url,
        status_code=response.status_code,
        payload_bytes=len(payload),
    )
    return RawFeed(kind=feed.kind, payload=payload)


def _status_code(error: requests.HTTPError) -> str:
    if error.response is None:
        return "?"
    return str(error.response.status_code)
