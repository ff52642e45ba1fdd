"""
Core Utilities Package

This package contains utility functions and helpers used throughout the library.

Modules:
    - time: Timestamp conversion and nonce helpers
"""

from core.utils.time import to_utc_datetime, optional_utc_datetime, datetime_to_timestamp, current_utc_timestamp

__all__ = ["to_utc_datetime", "optional_utc_datetime", "datetime_to_timestamp", "current_utc_timestamp"]
