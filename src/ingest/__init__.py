"""Feed ingestion pipeline.

This package fetches upstream feeds, parses them into typed records,
applies the staleness policy, and maps admitted records onto metric
points for the store layer.
"""
