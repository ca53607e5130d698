"""Structured logging helpers shared by every component."""

import logging
from typing import Optional


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps a component name onto every record.

    Fields passed through ``extra`` at the call site win over the adapter's
    defaults, so a caller can still override ``component`` for one line.
    """

    def process(self, msg, kwargs):
        call_extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **call_extra}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Return a module logger, optionally bound to a component name.

    Args:
        name: Logger name (normally ``__name__``)
        component: Component label added to every record (e.g. "dispatcher")

    Returns:
        Logger, or ComponentLoggerAdapter when ``component`` is given

    Example:
        >>> logger = get_logger(__name__, component="dispatcher")
        >>> logger.info("Cycle started", extra={"event": "dispatch.cycle.started"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
