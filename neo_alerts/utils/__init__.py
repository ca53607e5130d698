"""Utility functions for time handling."""

from .timestamps import ensure_utc, parse_iso_date, utc_now, utc_today

__all__ = [
    "utc_now",
    "utc_today",
    "ensure_utc",
    "parse_iso_date",
]
