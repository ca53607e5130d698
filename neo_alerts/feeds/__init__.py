"""Clients for NASA's NeoWs feed and Astronomy Picture of the Day."""

from .apod import ApodClient
from .base import NasaApiClient
from .exceptions import (
    EnrichmentError,
    FeedError,
    FeedHTTPError,
    FeedResponseError,
    FeedTimeoutError,
    InvalidDateRangeError,
)
from .neows import NeoFeedClient, parse_detection, validate_date_range

__all__ = [
    "NasaApiClient",
    "NeoFeedClient",
    "ApodClient",
    "parse_detection",
    "validate_date_range",
    "FeedError",
    "FeedHTTPError",
    "FeedTimeoutError",
    "FeedResponseError",
    "InvalidDateRangeError",
    "EnrichmentError",
]
