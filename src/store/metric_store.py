"""Time-series store sessions.

This module defines the narrow store interface the ingest pipeline
writes through, and its InfluxDB implementation. A session is opened
once per pass and always closed through ``open_store_session``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol, Sequence

import requests

from core.config import StoreConnectionConfig
from core.constants import STORE_TIME_PRECISION
from core.errors import IngestDependencyError, StoreConnectError, StoreWriteError
from core.logging_config import get_logger
from core.types import MetricPoint
from store.point_payload import point_to_payload

_LOGGER = get_logger(__name__)


class MetricStoreSession(Protocol):
    """Open store handle accepting batched point writes."""

    def write_batch(self, measurement: str, points: Sequence[MetricPoint]) -> None:
        """Write one batch of points for a measurement.

        Raises:
            StoreWriteError: If the store rejects the batch.
        """

    def close(self) -> None:
        """Release the handle."""


class MetricStore(Protocol):
    """Factory for store sessions."""

    def open(self) -> MetricStoreSession:
        """Open a new session.

        Raises:
            StoreConnectError: If the store is unreachable.
        """


@contextmanager
def open_store_session(store: MetricStore) -> Iterator[MetricStoreSession]:
    """Open a store session and close it on every exit path.

    Args:
        store: Store to open.

    Yields:
        Open session.

    Raises:
        StoreConnectError: If the session cannot be opened.
    """
    session = store.open()
    try:
        yield session
    finally:
        session.close()


class InfluxMetricStore:
    """InfluxDB 1.x backed metric store."""

    def __init__(self, connection: StoreConnectionConfig) -> None:
        """Create a store bound to connection parameters.

        Args:
            connection: Store host, port, database, and credentials.
        """
        self._connection = connection

    def open(self) -> "InfluxMetricStoreSession":
        """Create a client and verify the server answers a ping.

        Returns:
            Open session for the configured database.

        Raises:
            StoreConnectError: If the client cannot reach the server.
        """
        client_class, client_errors = _load_influx_client()
        connection = self._connection
        client = client_class(
            host=connection.host,
            port=connection.port,
            username=connection.username,
            password=connection.password,
            database=connection.database,
        )
        try:
            server_version = client.ping()
        except (requests.RequestException, *client_errors) as error:
            client.close()
            raise StoreConnectError(
                f"Failed to reach InfluxDB at {connection.host}:{connection.port}: {error}. "
                "Check host, port and credentials in the store config."
            ) from error
        _LOGGER.info(
            "store_session_opened",
            host=connection.host,
            port=connection.port,
            database=connection.database,
            server_version=server_version,
        )
        return InfluxMetricStoreSession(client, connection.database, client_errors)


class InfluxMetricStoreSession:
    """Open InfluxDB client scoped to one database."""

    def __init__(self, client: Any, database: str, client_errors: tuple[type[Exception], ...]):
        self._client = client
        self._database = database
        self._client_errors = client_errors

    def write_batch(self, measurement: str, points: Sequence[MetricPoint]) -> None:
        """Write points for one measurement in a single request.

        Args:
            measurement: Measurement every point must belong to.
            points: Points to write.

        Raises:
            StoreWriteError: If the store rejects the batch.
        """
        mismatched = [point for point in points if point.measurement != measurement]
        if mismatched:
            raise StoreWriteError(
                f"Batch for '{measurement}' contains points for "
                f"'{mismatched[0].measurement}'."
            )
        payload = [point_to_payload(point) for point in points]
        try:
            accepted = self._client.write_points(
                payload,
                time_precision=STORE_TIME_PRECISION,
                database=self._database,
            )
        except (requests.RequestException, *self._client_errors) as error:
            raise StoreWriteError(
                f"InfluxDB rejected {len(points)} '{measurement}' points: {error}."
            ) from error
        if not accepted:
            raise StoreWriteError(f"InfluxDB did not accept {len(points)} '{measurement}' points.")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._client.close()


def _load_influx_client() -> tuple[Any, tuple[type[Exception], ...]]:
    """Import the InfluxDB client class and its error types.

    Returns:
        Client class and the exceptions it raises for rejected requests.

    Raises:
        IngestDependencyError: If the influxdb package is missing.
    """
    try:
        from influxdb import InfluxDBClient
        from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError
    except ImportError as error:
        raise IngestDependencyError(
            "Store writes require the influxdb package, but it is not installed. "
            "Install influxdb or run with --dry-run."
        ) from error
    return InfluxDBClient, (InfluxDBClientError, InfluxDBServerError)
