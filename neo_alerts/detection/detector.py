"""Hazard detection: turns raw feed detections into hazard events."""

from typing import Iterable, List, Optional

from pydantic import ValidationError

from neo_alerts.domain.models import HazardEvent, NeoDetection
from neo_alerts.logging import get_logger

logger = get_logger(__name__, component="detector")


class HazardDetector:
    """
    Filters raw detections down to hazard events.

    A detection becomes an event only when the upstream hazard flag is set,
    it has at least one close approach with a date and miss distance, and
    both diameter bounds are known. The first close approach is used and the
    diameter is the midpoint of the estimated range.
    """

    def detect(self, detections: Iterable[NeoDetection]) -> List[HazardEvent]:
        """
        Build hazard events from raw detections.

        Never raises for malformed candidates; each dropped hazardous
        candidate is logged with the reason. Input order is preserved.

        Args:
            detections: Raw detections from the feed

        Returns:
            List of HazardEvent, at most one per input detection
        """
        events: List[HazardEvent] = []
        hazardous_count = 0

        for detection in detections:
            if not detection.is_potentially_hazardous:
                continue

            hazardous_count += 1
            reason = self._rejection_reason(detection)
            if reason:
                logger.warning(
                    f"Skipping hazardous object {detection.name}: {reason}",
                    extra={
                        "event": "detector.candidate.skipped",
                        "neo_id": detection.id,
                        "asteroid_name": detection.name,
                        "reason": reason,
                    },
                )
                continue

            approach = detection.close_approaches[0]
            try:
                event = HazardEvent(
                    asteroid_name=detection.name,
                    close_approach_date=approach.close_approach_date,
                    miss_distance_km=approach.miss_distance_km,
                    estimated_diameter_avg_m=detection.diameter.average_m,
                )
            except ValidationError as e:
                logger.warning(
                    f"Skipping hazardous object {detection.name}: invalid values",
                    extra={
                        "event": "detector.candidate.skipped",
                        "neo_id": detection.id,
                        "asteroid_name": detection.name,
                        "reason": "invalid values",
                        "error": str(e),
                    },
                )
                continue

            events.append(event)

        logger.info(
            f"Detected {len(events)} hazard events from {hazardous_count} hazardous objects",
            extra={
                "event": "detector.detect.completed",
                "hazardous_count": hazardous_count,
                "event_count": len(events),
            },
        )
        return events

    @staticmethod
    def _rejection_reason(detection: NeoDetection) -> Optional[str]:
        if not detection.close_approaches:
            return "no close approach data"

        approach = detection.close_approaches[0]
        if approach.close_approach_date is None:
            return "close approach has no date"
        if approach.miss_distance_km is None:
            return "close approach has no miss distance"

        if detection.diameter is None or not detection.diameter.is_complete:
            return "no estimated diameter"

        return None
