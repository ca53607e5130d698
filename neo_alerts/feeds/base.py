"""Shared HTTP handling for api.nasa.gov clients."""

import logging
from typing import Any, Dict, Optional

import requests

from neo_alerts.logging import get_logger

from .exceptions import FeedHTTPError, FeedResponseError, FeedTimeoutError

logger = get_logger(__name__, component="feed")

REDACTED = "***"


class NasaApiClient:
    """Base class for clients of api.nasa.gov endpoints.

    Holds a requests.Session with the User-Agent set, applies the timeout to
    every call, maps transport failures to FeedError subclasses, and keeps
    the API key out of log records.

    Attributes:
        api_key: api.nasa.gov key sent as the ``api_key`` query parameter
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for HTTP requests
    """

    def __init__(
        self,
        api_key: str,
        timeout: int = 30,
        user_agent: str = "NeoAlerts/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key cannot be empty")
        if not 1 <= timeout <= 300:
            raise ValueError(f"Timeout must be between 1 and 300 seconds, got: {timeout}")

        self.api_key = api_key
        self.timeout = timeout
        self.user_agent = user_agent

        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        """GET ``url`` with the API key and return the decoded JSON body.

        Raises:
            FeedHTTPError: On 4xx/5xx status or connection failure
            FeedTimeoutError: On request timeout
            FeedResponseError: On a body that is not valid JSON
        """
        query = dict(params or {})
        query["api_key"] = self.api_key
        log_params = {**query, "api_key": REDACTED}

        logger.debug(
            f"HTTP GET {url}",
            extra={"event": "feed.request", "url": url, "params": log_params, "timeout": self.timeout},
        )

        try:
            response = self._session.get(url, params=query, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={"event": "feed.request.timeout", "url": url, "timeout": self.timeout},
            )
            raise FeedTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            message = self._redact(str(e))
            logger.error(
                f"Request to {url} failed: {message}",
                extra={"event": "feed.request.error", "url": url, "error_type": type(e).__name__},
            )
            raise FeedHTTPError(f"Request to {url} failed: {message}", status_code=0, url=url) from e

        if response.status_code >= 400:
            is_retryable = response.status_code >= 500 or response.status_code == 429
            logger.log(
                logging.WARNING if is_retryable else logging.ERROR,
                f"HTTP {response.status_code} error from {url}",
                extra={
                    "event": "feed.request.retryable_error" if is_retryable else "feed.request.error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise FeedHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Failed to parse JSON response from {url}",
                extra={"event": "feed.response.invalid", "url": url},
            )
            raise FeedResponseError(f"Failed to parse JSON response from {url}: {e}") from e

    def _redact(self, text: str) -> str:
        return text.replace(self.api_key, REDACTED) if self.api_key else text

    def close(self) -> None:
        self._session.close()
