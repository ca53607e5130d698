"""Consumes hazard events from the topic into the notification store."""

import math
from typing import Optional, Protocol

from neo_alerts.domain.models import HazardEvent, Notification
from neo_alerts.logging import get_logger

from .codec import decode_event
from .exceptions import EventValidationError
from .topic import SqlTopic, TopicDrainResult

logger = get_logger(__name__, component="consumer")


class PendingNotificationStore(Protocol):
    def add_pending(self, event: HazardEvent) -> Notification: ...


def validate_event(event: HazardEvent) -> None:
    """
    Check that an event carries usable values.

    Raises:
        EventValidationError: On a blank name, missing date, negative or
            non-finite miss distance, or non-positive or non-finite diameter
    """
    if not event.asteroid_name or not event.asteroid_name.strip():
        raise EventValidationError("asteroid name is blank", field="asteroid_name")

    if event.close_approach_date is None:
        raise EventValidationError("close approach date is missing", field="close_approach_date")

    distance = event.miss_distance_km
    if distance is None or not distance.is_finite() or distance < 0:
        raise EventValidationError(
            f"miss distance must be finite and >= 0, got {distance}", field="miss_distance_km"
        )

    diameter = event.estimated_diameter_avg_m
    if diameter is None or not math.isfinite(diameter) or diameter <= 0:
        raise EventValidationError(
            f"estimated diameter must be finite and > 0, got {diameter}",
            field="estimated_diameter_avg_m",
        )


class EventConsumer:
    """
    Turns each valid hazard event into one unsent notification.

    There is no deduplication: the same event delivered twice yields two
    rows. Invalid events are logged and dropped. Persistence failures
    propagate so the topic keeps the message for redelivery.
    """

    def __init__(self, store: PendingNotificationStore):
        self.store = store
        self._topic: Optional[SqlTopic] = None

    def on_event(self, event: HazardEvent) -> Optional[Notification]:
        """
        Validate and persist one event. Safe to call from several threads.

        Returns:
            The stored Notification, or None if the event was dropped

        Raises:
            PersistenceError: If the store rejects the insert
        """
        try:
            validate_event(event)
        except EventValidationError as e:
            logger.warning(
                f"Dropping invalid hazard event {event.key}: {e}",
                extra={
                    "event": "consumer.event.dropped",
                    "event_key": event.key,
                    "field": e.field,
                    "reason": str(e),
                },
            )
            return None

        return self.store.add_pending(event)

    def handle_message(self, payload: str) -> Optional[Notification]:
        """Decode a raw topic payload and process it.

        Undecodable payloads are logged and dropped so they get acked.
        """
        try:
            event = decode_event(payload)
        except EventValidationError as e:
            logger.warning(
                f"Dropping undecodable message: {e}",
                extra={
                    "event": "consumer.message.undecodable",
                    "field": e.field,
                    "reason": str(e),
                    "payload_preview": payload[:200] if isinstance(payload, str) else None,
                },
            )
            return None

        return self.on_event(event)

    def subscribe(self, topic: SqlTopic) -> None:
        """Register this consumer as the topic's handler."""
        topic.subscribe(self.handle_message)
        self._topic = topic

    def drain(self) -> TopicDrainResult:
        """
        Deliver pending topic messages to this consumer.

        Raises:
            RuntimeError: If subscribe() has not been called
            PersistenceError: If pending messages cannot be read
        """
        if self._topic is None:
            raise RuntimeError("EventConsumer.drain() called before subscribe()")
        return self._topic.deliver_pending()
