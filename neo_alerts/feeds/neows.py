"""NASA NeoWs feed client.

API Details:
    Endpoint: https://api.nasa.gov/neo/rest/v1/feed
    Method: GET
    Query: start_date, end_date (YYYY-MM-DD, at most 7 days apart), api_key
    Response: {"near_earth_objects": {"YYYY-MM-DD": [object, ...], ...}}
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from neo_alerts.domain.models import CloseApproach, DiameterRange, NeoDetection
from neo_alerts.logging import get_logger
from neo_alerts.utils.timestamps import parse_iso_date, utc_today

from .base import NasaApiClient
from .exceptions import FeedError, FeedResponseError, InvalidDateRangeError

logger = get_logger(__name__, component="feed")

DEFAULT_FEED_URL = "https://api.nasa.gov/neo/rest/v1/feed"
MAX_RANGE_DAYS = 7


class NeoFeedClient(NasaApiClient):
    """Fetches raw near-Earth object detections for a date range."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_FEED_URL, **kwargs) -> None:
        super().__init__(api_key, **kwargs)
        self.base_url = base_url

    def fetch(self, start: date, end: date) -> List[NeoDetection]:
        """
        Fetch detections with close approaches between ``start`` and ``end``.

        Objects are returned grouped by feed date in ascending date order.
        Individual malformed objects are skipped with a warning.

        Raises:
            InvalidDateRangeError: If end is before start or the range exceeds 7 days
            FeedError: On HTTP, timeout or response-shape failures
        """
        validate_date_range(start, end)

        logger.info(
            f"Fetching NeoWs feed {start.isoformat()} to {end.isoformat()}",
            extra={"event": "feed.fetch.started", "start_date": start.isoformat(), "end_date": end.isoformat()},
        )

        payload = self._get_json(
            self.base_url,
            params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )

        if not isinstance(payload, dict):
            raise FeedResponseError(f"Expected JSON object response, got {type(payload).__name__}")

        by_date = payload.get("near_earth_objects")
        if by_date is None:
            logger.warning(
                "No near_earth_objects in feed response",
                extra={"event": "feed.fetch.empty"},
            )
            return []
        if not isinstance(by_date, dict):
            raise FeedResponseError(
                f"Expected 'near_earth_objects' to be an object, got {type(by_date).__name__}"
            )

        detections: List[NeoDetection] = []
        for feed_date in sorted(by_date):
            objects = by_date[feed_date]
            if not isinstance(objects, list):
                raise FeedResponseError(f"Expected list of objects for {feed_date}")

            for raw in objects:
                detection = parse_detection(raw)
                if detection is not None:
                    detections.append(detection)

        logger.info(
            f"Fetched {len(detections)} objects from NeoWs",
            extra={"event": "feed.fetch.completed", "object_count": len(detections)},
        )
        return detections

    def check_health(self, day: Optional[date] = None) -> bool:
        """Report whether the feed answers a one-day request.

        Failures are logged and reported as False, never raised.
        """
        day = day or utc_today()
        try:
            self.fetch(day, day)
        except FeedError as e:
            logger.warning(
                f"NeoWs feed unavailable: {e}",
                extra={"event": "feed.health.failed", "error_type": type(e).__name__},
            )
            return False

        logger.info("NeoWs feed available", extra={"event": "feed.health.ok"})
        return True


def validate_date_range(start: date, end: date) -> None:
    """Reject missing, reversed, or over-long ranges.

    Raises:
        InvalidDateRangeError: If the range is not acceptable to the feed
    """
    if start is None or end is None:
        raise InvalidDateRangeError("Start date and end date cannot be None")
    if start > end:
        raise InvalidDateRangeError(f"Start date {start} is after end date {end}")
    if (end - start).days > MAX_RANGE_DAYS:
        raise InvalidDateRangeError(
            f"Date range cannot exceed {MAX_RANGE_DAYS} days, got {(end - start).days}"
        )


def parse_detection(raw: Any) -> Optional[NeoDetection]:
    """Convert one feed object into a NeoDetection, or None if unusable."""
    if not isinstance(raw, dict) or not raw.get("id") or not raw.get("name"):
        logger.warning(
            "Skipping feed object without id or name",
            extra={"event": "feed.object.skipped", "reason": "missing_id_or_name"},
        )
        return None

    approaches = [
        CloseApproach(
            close_approach_date=parse_iso_date(item.get("close_approach_date")),
            miss_distance_km=_parse_decimal(_nested(item, "miss_distance", "kilometers")),
            orbiting_body=item.get("orbiting_body"),
        )
        for item in raw.get("close_approach_data") or []
        if isinstance(item, dict)
    ]

    return NeoDetection(
        id=str(raw["id"]),
        name=str(raw["name"]),
        is_potentially_hazardous=bool(raw.get("is_potentially_hazardous_asteroid")),
        close_approaches=approaches,
        diameter=_parse_diameter(raw.get("estimated_diameter")),
    )


def _parse_diameter(estimated: Optional[Dict[str, Any]]) -> Optional[DiameterRange]:
    if not isinstance(estimated, dict):
        return None

    meters = estimated.get("meters")
    if not isinstance(meters, dict):
        return None

    return DiameterRange(
        min_m=_parse_float(meters.get("estimated_diameter_min")),
        max_m=_parse_float(meters.get("estimated_diameter_max")),
    )


def _nested(data: Dict[str, Any], outer: str, inner: str) -> Any:
    value = data.get(outer)
    return value.get(inner) if isinstance(value, dict) else None


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
