"""Database schema definition and ORM models.

Timestamps are stored as ISO 8601 strings with a 'Z' suffix, calendar dates
as "YYYY-MM-DD", and miss distances as decimal strings so that no precision
is lost between the topic payload and the notification row.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Column, Float, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from neo_alerts.domain.models import Notification, Recipient

logger = logging.getLogger(__name__)

Base = declarative_base()


class NotificationModel(Base):
    """ORM model for the notifications table.

    One row per consumed hazard event. Rows are never deduplicated and
    ``sent`` only flips from false to true.
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)

    asteroid_name = Column(String(255), nullable=False)
    close_approach_date = Column(String(10), nullable=False)
    miss_distance_km = Column(String(64), nullable=False)
    estimated_diameter_avg_m = Column(Float, nullable=False)

    sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)
    sent_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_notifications_sent", "sent", "id"),)

    def to_domain(self) -> Notification:
        return Notification(
            id=self.id,
            asteroid_name=self.asteroid_name,
            close_approach_date=date.fromisoformat(self.close_approach_date),
            miss_distance_km=Decimal(self.miss_distance_km),
            estimated_diameter_avg_m=self.estimated_diameter_avg_m,
            sent=bool(self.sent),
            created_at=_parse_datetime(self.created_at),
        )


class RecipientModel(Base):
    """ORM model for the recipients table."""

    __tablename__ = "recipients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    display_name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=False, unique=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_recipients_enabled", "notifications_enabled"),)

    def to_domain(self) -> Recipient:
        return Recipient(
            id=self.id,
            display_name=self.display_name,
            email=self.email,
            notifications_enabled=bool(self.notifications_enabled),
        )


class TopicMessageModel(Base):
    """ORM model for the topic_messages table.

    Durable log of published messages. A row is pending until ``acked_at``
    or ``dead_at`` is set; ``delivery_attempts`` counts handler failures.
    ``dead_at`` marks a message parked after too many failed deliveries.
    """

    __tablename__ = "topic_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(String(255), nullable=False)
    payload = Column(Text, nullable=False)
    published_at = Column(String(50), nullable=False)
    acked_at = Column(String(50), nullable=True)
    delivery_attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    dead_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_topic_messages_pending", "topic", "acked_at", "id"),)


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as an ISO 8601 UTC string for storage."""
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    if not dt_str:
        return None

    dt_str = dt_str.rstrip("Z")
    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    Base.metadata.create_all(engine, checkfirst=True)
    tables = inspect(engine).get_table_names()
    logger.info(
        f"Database schema ready. Tables: {', '.join(tables)}",
        extra={"event": "database.schema.ready"},
    )
