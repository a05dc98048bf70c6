"""Time-series store layer.

This package writes metric points to the store behind a narrow
open / write-batch / close session interface.
"""
