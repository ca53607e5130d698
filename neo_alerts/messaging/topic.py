"""Durable SQL-backed topic with at-least-once delivery.

Published messages are appended to the ``topic_messages`` table. A drain
hands each pending message to the subscribed handler and acks it only after
the handler returns. A handler exception leaves the message pending, bumps
its ``delivery_attempts`` and the message is redelivered on the next drain.
A message that fails ``max_delivery_attempts`` times is dead-lettered and
no longer delivered, so it cannot hold back the messages behind it.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from neo_alerts.logging import get_logger
from neo_alerts.persistence.database import transaction
from neo_alerts.persistence.exceptions import PersistenceError
from neo_alerts.persistence.repositories import TopicMessageRepository

from .exceptions import PublishError

logger = get_logger(__name__, component="topic")

MessageHandler = Callable[[str], object]


@dataclass
class TopicDrainResult:
    """Outcome of one drain over a topic's pending messages."""

    delivered: int = 0
    acked: int = 0
    failed: int = 0
    dead_lettered: int = 0
    skipped: bool = False


class SqlTopic:
    """A named topic stored in the ``topic_messages`` table."""

    def __init__(self, name: str, batch_size: int = 100, max_delivery_attempts: int = 5):
        if not name:
            raise ValueError("Topic name must be non-empty")
        if max_delivery_attempts < 1:
            raise ValueError("max_delivery_attempts must be at least 1")
        self.name = name
        self.batch_size = batch_size
        self.max_delivery_attempts = max_delivery_attempts
        self._handler: Optional[MessageHandler] = None
        self._lock = threading.Lock()

    def publish(self, payload: str) -> int:
        """Append a message and return its id once it is durably committed.

        Raises:
            PublishError: If the message could not be stored
        """
        try:
            with transaction() as session:
                message_id = TopicMessageRepository(session).append(self.name, payload)
        except PersistenceError as e:
            raise PublishError(f"Failed to publish to topic {self.name}: {e}") from e

        logger.debug(
            f"Published message {message_id} to {self.name}",
            extra={"event": "topic.message.published", "topic": self.name, "message_id": message_id},
        )
        return message_id

    def subscribe(self, handler: MessageHandler) -> None:
        """Register the handler that receives each pending payload."""
        if self._handler is not None and self._handler is not handler:
            logger.warning(
                f"Replacing existing subscriber on topic {self.name}",
                extra={"event": "topic.subscriber.replaced", "topic": self.name},
            )
        self._handler = handler
        logger.info(
            f"Subscribed handler to topic {self.name}",
            extra={"event": "topic.subscribed", "topic": self.name},
        )

    @property
    def has_subscriber(self) -> bool:
        return self._handler is not None

    def deliver_pending(self) -> TopicDrainResult:
        """Deliver up to ``batch_size`` pending messages to the subscriber.

        Only one drain runs at a time; an overlapping call returns a
        skipped result without touching the table.

        Raises:
            PersistenceError: If pending messages cannot be read
        """
        if self._handler is None:
            logger.warning(
                f"Drain skipped: no subscriber on topic {self.name}",
                extra={"event": "topic.drain.skipped", "topic": self.name, "reason": "no_subscriber"},
            )
            return TopicDrainResult(skipped=True)

        if not self._lock.acquire(blocking=False):
            logger.warning(
                f"Drain skipped: previous drain of {self.name} still in progress",
                extra={"event": "topic.drain.skipped", "topic": self.name, "reason": "lock_held"},
            )
            return TopicDrainResult(skipped=True)

        try:
            return self._drain(self._handler)
        finally:
            self._lock.release()

    def _drain(self, handler: MessageHandler) -> TopicDrainResult:
        with transaction() as session:
            pending = [
                (message.id, message.payload, message.delivery_attempts)
                for message in TopicMessageRepository(session).fetch_pending(self.name, self.batch_size)
            ]

        result = TopicDrainResult()
        for message_id, payload, attempts in pending:
            result.delivered += 1
            try:
                handler(payload)
            except Exception as e:
                result.failed += 1
                if self._record_failure(message_id, attempts + 1, e):
                    result.dead_lettered += 1
                continue

            self._ack(message_id)
            result.acked += 1

        if pending:
            logger.info(
                f"Drained {result.delivered} messages from {self.name}",
                extra={
                    "event": "topic.drain.completed",
                    "topic": self.name,
                    "delivered": result.delivered,
                    "acked": result.acked,
                    "failed": result.failed,
                    "dead_lettered": result.dead_lettered,
                },
            )
        return result

    def pending_count(self) -> int:
        with transaction() as session:
            return TopicMessageRepository(session).count_pending(self.name)

    def dead_letter_count(self) -> int:
        with transaction() as session:
            return TopicMessageRepository(session).count_dead_lettered(self.name)

    def _ack(self, message_id: int) -> None:
        with transaction() as session:
            TopicMessageRepository(session).ack(message_id)

    def _record_failure(self, message_id: int, attempts: int, error: Exception) -> bool:
        """Count a failed delivery; return True if the message was dead-lettered."""
        reason = f"{type(error).__name__}: {error}"
        try:
            with transaction() as session:
                dead = TopicMessageRepository(session).record_failure(
                    message_id, reason, max_attempts=self.max_delivery_attempts
                )
        except PersistenceError as e:
            # The message is still pending either way
            logger.error(
                f"Could not record delivery failure for message {message_id}: {e}",
                extra={"event": "topic.failure_record.failed", "message_id": message_id},
            )
            return False

        if dead:
            logger.error(
                f"Dead-lettered message {message_id} on {self.name} after {attempts} failed deliveries: {error}",
                extra={
                    "event": "topic.message.dead_lettered",
                    "topic": self.name,
                    "message_id": message_id,
                    "delivery_attempts": attempts,
                    "error_type": type(error).__name__,
                },
            )
        else:
            logger.warning(
                f"Handler failed for message {message_id}; leaving it for redelivery: {error}",
                extra={
                    "event": "topic.message.redelivery_scheduled",
                    "topic": self.name,
                    "message_id": message_id,
                    "delivery_attempts": attempts,
                    "error_type": type(error).__name__,
                },
            )
        return dead
