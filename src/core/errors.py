"""Ingest exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Record-level errors are collected per pass; feed- and store-level errors
abort only the pass that raised them.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base exception for all ingest failures."""


class IngestConfigError(IngestError):
    """Raised for invalid runtime configuration or connection files."""


class IngestDependencyError(IngestError):
    """Raised when a required runtime dependency cannot be imported."""


class FetchError(IngestError):
    """Raised when a feed cannot be retrieved (network, timeout, HTTP status)."""


class FeedDecodeError(IngestError):
    """Raised when a feed payload is structurally malformed at the top level."""


class RowDecodeError(IngestError):
    """Raised for a single tabular row with the wrong column count."""


class ValueParseError(IngestError):
    """Raised for an unparseable date or numeric value inside a record."""


class StoreError(IngestError):
    """Base class for time-series store failures."""


class StoreConnectError(StoreError):
    """Raised when a store session cannot be opened."""


class StoreWriteError(StoreError):
    """Raised when the store rejects a batch write."""
