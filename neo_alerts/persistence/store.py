"""Session-owning facades over the repositories.

The consumer, dispatcher and startup code talk to these classes instead of
managing sessions themselves. Each call runs in its own transaction.
"""

from typing import Iterable, List, Sequence

from neo_alerts.domain.models import HazardEvent, Notification, Recipient
from neo_alerts.logging import get_logger

from .database import transaction
from .repositories import NotificationRepository, RecipientRepository, chunked

logger = get_logger(__name__, component="store")


class NotificationStore:
    """Durable store of notifications awaiting email delivery."""

    def add_pending(self, event: HazardEvent) -> Notification:
        """Persist a new unsent notification for ``event``.

        Raises:
            PersistenceError: If the insert or commit fails
        """
        with transaction() as session:
            notification = NotificationRepository(session).add_pending(event)

        logger.info(
            f"Stored notification {notification.id} for {event.key}",
            extra={
                "event": "store.notification.added",
                "notification_id": notification.id,
                "asteroid_name": event.asteroid_name,
            },
        )
        return notification

    def load_unsent(self) -> List[Notification]:
        """Return unsent notifications in insertion order.

        Raises:
            PersistenceError: If the query fails
        """
        with transaction() as session:
            return NotificationRepository(session).load_unsent()

    def mark_sent(self, ids: Sequence[int]) -> int:
        """Mark the given notifications sent in one transaction.

        Returns:
            Number of rows that moved from unsent to sent

        Raises:
            PersistenceError: If the update or commit fails; no rows change
        """
        if not ids:
            return 0

        with transaction() as session:
            repo = NotificationRepository(session)
            flipped = sum(repo.mark_sent(batch) for batch in chunked(ids))

        logger.info(
            f"Marked {flipped} notifications sent",
            extra={"event": "store.notifications.marked_sent", "requested": len(ids), "flipped": flipped},
        )
        return flipped

    def count(self, sent=None) -> int:
        with transaction() as session:
            return NotificationRepository(session).count(sent=sent)


class SqlRecipientDirectory:
    """Recipient directory backed by the recipients table."""

    def list_enabled(self) -> List[Recipient]:
        """Return recipients with notifications enabled.

        Raises:
            PersistenceError: If the query fails
        """
        with transaction() as session:
            return RecipientRepository(session).list_enabled()

    def seed(self, recipients: Iterable) -> int:
        """Upsert configured recipients by email.

        Args:
            recipients: Objects with ``name``, ``email`` and ``notifications_enabled``

        Returns:
            Number of recipients upserted
        """
        count = 0
        with transaction() as session:
            repo = RecipientRepository(session)
            for recipient in recipients:
                repo.upsert(
                    email=str(recipient.email),
                    display_name=recipient.name,
                    notifications_enabled=recipient.notifications_enabled,
                )
                count += 1

        logger.info(
            f"Seeded {count} recipients from configuration",
            extra={"event": "recipients.seeded", "count": count},
        )
        return count
