"""Data access layer (repositories) for persistence operations.

Repositories wrap a caller-owned session, translate SQLAlchemy failures into
PersistenceError subclasses, and return domain models rather than ORM rows.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from neo_alerts.domain.models import HazardEvent, Notification, Recipient
from neo_alerts.utils.timestamps import utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import NotificationModel, RecipientModel, TopicMessageModel, format_datetime

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for notification rows."""

    def __init__(self, session: Session):
        self.session = session

    def add_pending(self, event: HazardEvent) -> Notification:
        """Insert a new unsent notification for ``event``.

        Raises:
            PersistenceError: If the insert fails
        """
        try:
            model = NotificationModel(
                asteroid_name=event.asteroid_name,
                close_approach_date=event.close_approach_date.isoformat(),
                miss_distance_km=str(event.miss_distance_km),
                estimated_diameter_avg_m=float(event.estimated_diameter_avg_m),
                sent=False,
                created_at=format_datetime(utc_now()),
            )
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error inserting notification for {event.key}: {e}")
            raise DataIntegrityError(f"Failed to insert notification: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting notification for {event.key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert notification: {e}") from e

    def load_unsent(self) -> List[Notification]:
        """Return every unsent notification in insertion order.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            stmt = (
                select(NotificationModel)
                .where(NotificationModel.sent.is_(False))
                .order_by(NotificationModel.id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error loading unsent notifications: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load unsent notifications: {e}") from e

    def mark_sent(self, ids: Sequence[int]) -> int:
        """Flip ``sent`` to true for the given ids that are still unsent.

        The update is conditional on ``sent = false`` so rows are never
        touched twice and the returned count reflects actual transitions.

        Returns:
            Number of rows flipped

        Raises:
            PersistenceError: If the update fails
        """
        if not ids:
            return 0

        try:
            stmt = (
                update(NotificationModel)
                .where(NotificationModel.id.in_(list(ids)), NotificationModel.sent.is_(False))
                .values(sent=True, sent_at=format_datetime(utc_now()))
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            return result.rowcount or 0

        except SQLAlchemyError as e:
            logger.error(f"Error marking {len(ids)} notifications sent: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark notifications sent: {e}") from e

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        """Return one notification, or None if it does not exist."""
        try:
            model = self.session.get(NotificationModel, notification_id)
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification {notification_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e

    def count(self, sent: Optional[bool] = None) -> int:
        """Count notifications, optionally filtered by sent flag."""
        try:
            stmt = select(func.count()).select_from(NotificationModel)
            if sent is not None:
                stmt = stmt.where(NotificationModel.sent.is_(sent))
            return self.session.execute(stmt).scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error counting notifications: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count notifications: {e}") from e


class RecipientRepository:
    """Repository for recipient rows."""

    def __init__(self, session: Session):
        self.session = session

    def list_enabled(self) -> List[Recipient]:
        """Return recipients with notifications enabled, ordered by id."""
        try:
            stmt = (
                select(RecipientModel)
                .where(RecipientModel.notifications_enabled.is_(True))
                .order_by(RecipientModel.id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error loading enabled recipients: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load recipients: {e}") from e

    def get_by_email(self, email: str) -> Optional[Recipient]:
        try:
            stmt = select(RecipientModel).where(RecipientModel.email == email.lower())
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving recipient {email}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve recipient: {e}") from e

    def upsert(
        self,
        email: str,
        display_name: Optional[str] = None,
        notifications_enabled: bool = True,
    ) -> Recipient:
        """Insert a recipient or update the existing row with the same email.

        Emails are stored lower-cased so lookups are case-insensitive.

        Raises:
            DataIntegrityError: On a concurrent insert of the same email
            PersistenceError: If the database operation fails
        """
        normalized = email.strip().lower()
        now = format_datetime(utc_now())

        try:
            stmt = select(RecipientModel).where(RecipientModel.email == normalized)
            model = self.session.execute(stmt).scalar_one_or_none()

            if model is None:
                model = RecipientModel(
                    email=normalized,
                    display_name=display_name,
                    notifications_enabled=notifications_enabled,
                    created_at=now,
                    updated_at=now,
                )
                self.session.add(model)
            else:
                model.display_name = display_name
                model.notifications_enabled = notifications_enabled
                model.updated_at = now

            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting recipient {normalized}: {e}")
            raise DataIntegrityError(f"Failed to upsert recipient: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting recipient {normalized}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert recipient: {e}") from e


class TopicMessageRepository:
    """Repository for the durable topic log."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, topic: str, payload: str) -> int:
        """Insert a pending message and return its id."""
        try:
            model = TopicMessageModel(
                topic=topic,
                payload=payload,
                published_at=format_datetime(utc_now()),
                delivery_attempts=0,
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except SQLAlchemyError as e:
            logger.error(f"Error appending message to topic {topic}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to append topic message: {e}") from e

    def fetch_pending(self, topic: str, limit: int) -> List[TopicMessageModel]:
        """Return unacked, live messages for ``topic`` in publish order."""
        try:
            stmt = (
                select(TopicMessageModel)
                .where(*_pending(topic))
                .order_by(TopicMessageModel.id.asc())
                .limit(limit)
            )
            return list(self.session.execute(stmt).scalars())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching pending messages for {topic}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to fetch topic messages: {e}") from e

    def ack(self, message_id: int) -> None:
        """Mark a message as delivered.

        Raises:
            RecordNotFoundError: If the message does not exist
        """
        try:
            model = self.session.get(TopicMessageModel, message_id)
            if model is None:
                raise RecordNotFoundError(f"Topic message {message_id} not found")
            if model.acked_at is None:
                model.acked_at = format_datetime(utc_now())
            self.session.flush()

        except SQLAlchemyError as e:
            logger.error(f"Error acking topic message {message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to ack topic message: {e}") from e

    def record_failure(self, message_id: int, error: str, max_attempts: Optional[int] = None) -> bool:
        """Count a failed delivery.

        The message stays pending unless ``max_attempts`` is given and the
        attempt count has reached it, in which case ``dead_at`` is set and
        the message is no longer delivered.

        Returns:
            True if the message was dead-lettered by this call
        """
        try:
            stmt = (
                update(TopicMessageModel)
                .where(TopicMessageModel.id == message_id)
                .values(
                    delivery_attempts=TopicMessageModel.delivery_attempts + 1,
                    last_error=error[:2000],
                )
            )
            self.session.execute(stmt)

            if max_attempts is None:
                return False

            stmt = (
                update(TopicMessageModel)
                .where(
                    TopicMessageModel.id == message_id,
                    TopicMessageModel.dead_at.is_(None),
                    TopicMessageModel.delivery_attempts >= max_attempts,
                )
                .values(dead_at=format_datetime(utc_now()))
            )
            return self.session.execute(stmt).rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Error recording failure for message {message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record delivery failure: {e}") from e

    def count_pending(self, topic: str) -> int:
        try:
            stmt = (
                select(func.count())
                .select_from(TopicMessageModel)
                .where(*_pending(topic))
            )
            return self.session.execute(stmt).scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error counting pending messages for {topic}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count topic messages: {e}") from e

    def count_dead_lettered(self, topic: str) -> int:
        try:
            stmt = (
                select(func.count())
                .select_from(TopicMessageModel)
                .where(TopicMessageModel.topic == topic, TopicMessageModel.dead_at.is_not(None))
            )
            return self.session.execute(stmt).scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error counting dead-lettered messages for {topic}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count topic messages: {e}") from e


def _pending(topic: str):
    return (
        TopicMessageModel.topic == topic,
        TopicMessageModel.acked_at.is_(None),
        TopicMessageModel.dead_at.is_(None),
    )


def chunked(ids: Iterable[int], size: int = 500) -> Iterable[List[int]]:
    """Yield ``ids`` in lists of at most ``size`` (SQLite caps bound parameters)."""
    batch: List[int] = []
    for item in ids:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
