"""Detection run: fetch the feed, pick out hazards, publish them."""

import threading
from datetime import date, timedelta
from typing import Callable, List, Protocol
from uuid import uuid4

from neo_alerts.detection.detector import HazardDetector
from neo_alerts.domain.models import NeoDetection
from neo_alerts.feeds.exceptions import FeedError
from neo_alerts.logging import get_logger
from neo_alerts.logging.context import log_context
from neo_alerts.messaging.exceptions import AggregatePublishError
from neo_alerts.messaging.publisher import EventPublisher
from neo_alerts.utils.timestamps import utc_now, utc_today

from .models import DetectionRunResult

logger = get_logger(__name__, component="pipeline")


class DetectionFeed(Protocol):
    def fetch(self, start: date, end: date) -> List[NeoDetection]: ...


class DetectionPipeline:
    """
    Runs one detection pass over the upcoming close-approach window.

    Feed and publish failures are captured in the result so that a
    scheduled run never raises into the scheduler.
    """

    def __init__(
        self,
        feed_client: DetectionFeed,
        detector: HazardDetector,
        publisher: EventPublisher,
        lookahead_days: int = 7,
        today: Callable[[], date] = utc_today,
    ):
        """
        Initialize the detection pipeline.

        Args:
            feed_client: Source of raw detections for a date range
            detector: Filters detections down to hazard events
            publisher: Publishes hazard events to the topic
            lookahead_days: Days after today to include in the window
            today: Returns the current UTC date
        """
        self.feed_client = feed_client
        self.detector = detector
        self.publisher = publisher
        self.lookahead_days = lookahead_days
        self._today = today
        self._lock = threading.Lock()

    def run_once(self) -> DetectionRunResult:
        """
        Execute a single detection run.

        Returns:
            DetectionRunResult with counts and any captured error
        """
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Detection run skipped: previous run still in progress",
                    extra={"event": "pipeline.run.skipped", "reason": "lock_held"},
                )
            return DetectionRunResult(
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id):
                return self._run(run_started_at)
        finally:
            self._lock.release()

    def _run(self, run_started_at) -> DetectionRunResult:
        start = self._today()
        end = start + timedelta(days=self.lookahead_days)

        logger.info(
            "Detection run started",
            extra={
                "event": "pipeline.run.started",
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            },
        )

        fetched_count = 0
        hazardous_count = 0
        event_count = 0
        published_count = 0
        publish_failures = 0
        error_message = None

        try:
            detections = self.feed_client.fetch(start, end)
            fetched_count = len(detections)
            hazardous_count = sum(1 for d in detections if d.is_potentially_hazardous)

            events = self.detector.detect(detections)
            event_count = len(events)

            report = self.publisher.publish(events)
            published_count = report.published

        except FeedError as e:
            error_message = f"Feed error: {e}"
            logger.error(
                f"Feed fetch failed: {e}",
                extra={"event": "pipeline.feed.failed", "error_type": type(e).__name__},
            )

        except AggregatePublishError as e:
            published_count = e.succeeded
            publish_failures = len(e.failed_keys)
            error_message = str(e)
            logger.error(
                f"Publishing failed for {publish_failures} events",
                extra={
                    "event": "pipeline.publish.failed",
                    "failed_keys": e.failed_keys,
                    "published_count": published_count,
                },
            )

        result = DetectionRunResult(
            run_started_at=run_started_at,
            run_finished_at=utc_now(),
            fetched_count=fetched_count,
            hazardous_count=hazardous_count,
            event_count=event_count,
            published_count=published_count,
            publish_failures=publish_failures,
            had_errors=error_message is not None,
            error_message=error_message,
        )

        logger.info(
            "Detection run completed",
            extra={
                "event": "pipeline.run.completed",
                "duration_ms": int(result.duration_seconds * 1000),
                "fetched_count": result.fetched_count,
                "hazardous_count": result.hazardous_count,
                "event_count": result.event_count,
                "published_count": result.published_count,
                "publish_failures": result.publish_failures,
                "had_errors": result.had_errors,
            },
        )
        return result
