"""Concurrent publishing of hazard events to the topic."""

import contextvars
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from neo_alerts.domain.models import HazardEvent
from neo_alerts.logging import get_logger

from .codec import encode_event
from .exceptions import AggregatePublishError

logger = get_logger(__name__, component="publisher")

DEFAULT_MAX_CONCURRENCY = 8


class Topic(Protocol):
    name: str

    def publish(self, payload: str) -> int: ...


@dataclass
class PublishReport:
    """Outcome of a batch in which every event was acknowledged."""

    published: int = 0
    message_ids: List[int] = field(default_factory=list)


class EventPublisher:
    """
    Publishes hazard events to a topic, one independent publish per event.

    Publishes run on a bounded thread pool and the call returns only after
    every one of them has been acknowledged or has failed. Failures are
    collected and raised together; successful publishes are kept.
    """

    def __init__(self, topic: Topic, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.topic = topic
        self.max_concurrency = max_concurrency

    def publish(self, events: Sequence[HazardEvent]) -> PublishReport:
        """
        Publish every event and wait for all acknowledgments.

        Args:
            events: Hazard events to publish (may be empty)

        Returns:
            PublishReport when every event was published

        Raises:
            AggregatePublishError: If at least one event failed; carries the
                failed event keys and the number that succeeded
        """
        if not events:
            logger.debug("No events to publish", extra={"event": "publisher.publish.empty"})
            return PublishReport()

        workers = min(len(events), self.max_concurrency)
        message_ids: List[int] = []
        failed_keys: List[str] = []
        errors: List[str] = []

        logger.info(
            f"Publishing {len(events)} events to {self.topic.name}",
            extra={
                "event": "publisher.publish.started",
                "topic": self.topic.name,
                "event_count": len(events),
                "workers": workers,
            },
        )

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="publisher") as executor:
            # Each task gets its own context copy so log fields reach worker threads
            futures = {
                executor.submit(contextvars.copy_context().run, self._publish_one, event): event
                for event in events
            }
            for future in as_completed(futures):
                event = futures[future]
                try:
                    message_ids.append(future.result())
                except Exception as e:
                    failed_keys.append(event.key)
                    errors.append(f"{event.key}: {e}")
                    logger.error(
                        f"Failed to publish {event.key}: {e}",
                        extra={
                            "event": "publisher.publish.failed",
                            "topic": self.topic.name,
                            "event_key": event.key,
                            "error_type": type(e).__name__,
                        },
                    )

        if failed_keys:
            raise AggregatePublishError(failed_keys, succeeded=len(message_ids), errors=errors)

        logger.info(
            f"Published {len(message_ids)} events to {self.topic.name}",
            extra={
                "event": "publisher.publish.completed",
                "topic": self.topic.name,
                "published": len(message_ids),
            },
        )
        return PublishReport(published=len(message_ids), message_ids=sorted(message_ids))

    def _publish_one(self, event: HazardEvent) -> int:
        return self.topic.publish(encode_event(event))
