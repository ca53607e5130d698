"""Messaging exceptions for the hazard event topic."""

from typing import List, Optional


class MessagingError(Exception):
    """Base exception for topic and codec errors."""

    pass


class EventValidationError(MessagingError):
    """Raised when a message or event fails validation.

    Invalid events are logged and dropped, never retried.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class PublishError(MessagingError):
    """Raised when a single message cannot be appended to the topic."""

    pass


class AggregatePublishError(MessagingError):
    """Raised when one or more events in a batch failed to publish.

    Successful publishes in the same batch are not rolled back.

    Attributes:
        failed_keys: Keys ("name@date") of the events that failed
        succeeded: Number of events published successfully
        errors: One error message per failed key, in the same order
    """

    def __init__(self, failed_keys: List[str], succeeded: int, errors: Optional[List[str]] = None):
        self.failed_keys = list(failed_keys)
        self.succeeded = succeeded
        self.errors = list(errors or [])
        super().__init__(
            f"{len(self.failed_keys)} of {len(self.failed_keys) + succeeded} events failed to publish: "
            f"{', '.join(self.failed_keys)}"
        )
