"""Persistence layer: SQLAlchemy engine, schema, repositories and stores.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None

    # Stores (own their sessions)
    - NotificationStore: add_pending / load_unsent / mark_sent
    - SqlRecipientDirectory: list_enabled / seed

Example usage:
    >>> from neo_alerts.persistence import init_database, NotificationStore
    >>> init_database("sqlite:///./data/neo_alerts.db")
    >>> NotificationStore().load_unsent()
    []
"""

from .database import close_database, get_engine, get_session, init_database, transaction
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import NotificationRepository, RecipientRepository, TopicMessageRepository
from .store import NotificationStore, SqlRecipientDirectory

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "transaction",
    "close_database",
    "get_engine",
    # Repositories
    "NotificationRepository",
    "RecipientRepository",
    "TopicMessageRepository",
    # Stores
    "NotificationStore",
    "SqlRecipientDirectory",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
