"""Persistence layer exceptions.

Everything raised by the store and repositories derives from PersistenceError,
so callers that only need "the database step failed" can catch one type.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the engine cannot be created, reached, or is not initialized."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a row that does not exist.

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations, e.g. a duplicate recipient email."""

    pass
