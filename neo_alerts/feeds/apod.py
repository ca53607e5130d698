"""Astronomy Picture of the Day client used to enrich alert emails."""

from datetime import date
from typing import Callable, Optional

from neo_alerts.domain.models import Enrichment
from neo_alerts.logging import get_logger
from neo_alerts.utils.timestamps import parse_iso_date, utc_today

from .base import NasaApiClient
from .exceptions import EnrichmentError, FeedError

logger = get_logger(__name__, component="apod")

DEFAULT_APOD_URL = "https://api.nasa.gov/planetary/apod"


class ApodClient(NasaApiClient):
    """Fetches the picture of the day.

    Only image entries are usable in email; videos and other media types
    yield None.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_APOD_URL,
        today: Callable[[], date] = utc_today,
        **kwargs,
    ) -> None:
        super().__init__(api_key, **kwargs)
        self.base_url = base_url
        self._today = today

    def fetch_today(self) -> Optional[Enrichment]:
        return self.fetch_for_date(self._today())

    def fetch_for_date(self, day: date) -> Optional[Enrichment]:
        """
        Fetch the entry for ``day``.

        Returns:
            Enrichment for an image entry, None for other media types

        Raises:
            EnrichmentError: On any transport, API or response error
        """
        try:
            payload = self._get_json(self.base_url, params={"date": day.isoformat()})
        except FeedError as e:
            raise EnrichmentError(f"APOD request for {day.isoformat()} failed: {e}") from e

        if not isinstance(payload, dict):
            raise EnrichmentError(f"Unexpected APOD response type: {type(payload).__name__}")

        if payload.get("error") or payload.get("code"):
            raise EnrichmentError(
                f"APOD API returned error {payload.get('code')}: {payload.get('error') or payload.get('msg')}"
            )

        media_type = payload.get("media_type")
        if media_type != "image":
            logger.info(
                f"APOD for {day.isoformat()} is {media_type!r}, not an image; skipping",
                extra={"event": "apod.fetch.not_image", "media_type": media_type},
            )
            return None

        title = payload.get("title")
        image_url = payload.get("url")
        if not title or not image_url:
            raise EnrichmentError("APOD response is missing title or url")

        return Enrichment(
            title=title,
            image_url=image_url,
            explanation=payload.get("explanation"),
            picture_date=parse_iso_date(payload.get("date")),
            copyright=(payload.get("copyright") or "").strip() or None,
        )
