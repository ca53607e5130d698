"""Exceptions for the NASA API clients."""


class FeedError(Exception):
    """Base exception for NeoWs feed errors.

    The detection run catches this and records the failure in its result
    instead of aborting the process.
    """

    pass


class FeedHTTPError(FeedError):
    """Request failed with a 4xx/5xx status or a connection error (status 0)."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FeedTimeoutError(FeedError):
    """Request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class FeedResponseError(FeedError):
    """Response could not be parsed or did not have the expected shape."""

    pass


class InvalidDateRangeError(FeedError):
    """Requested feed range is reversed or longer than the API allows."""

    pass


class EnrichmentError(Exception):
    """Picture-of-the-day content could not be fetched.

    Never fatal: emails are sent without the enrichment section.
    """

    pass
