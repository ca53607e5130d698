"""Scoped logging context backed by contextvars.

Fields pushed here (``cycle_id``, ``run_id``, ``recipient`` ...) are merged
into every record emitted inside the scope. Pool tasks see the context only
when submitted through ``contextvars.copy_context().run``.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("neo_alerts_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return LogContextVar.get().copy()


def push_log_context(**fields) -> Token:
    """Merge ``fields`` into the active context.

    Returns:
        Token to hand back to pop_log_context()
    """
    return LogContextVar.set({**LogContextVar.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context that was active before push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Mostly useful in tests."""
    LogContextVar.set({})


class log_context:
    """Context manager form of push/pop.

    Example:
        >>> with log_context(cycle_id="3f2a", recipient="ada@example.com"):
        ...     logger.info("Sending")  # record carries cycle_id and recipient
    """

    def __init__(self, **fields):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False
