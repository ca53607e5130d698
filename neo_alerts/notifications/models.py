"""Result types and exceptions for alert email delivery."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class ContentBuildError(NotificationError):
    """Raised when the email body cannot be rendered from its templates."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when the SMTP server rejects or fails to accept a message."""

    pass


class TransientDeliveryError(SMTPDeliveryError):
    """A delivery failure worth retrying (network, timeout, SMTP error)."""

    pass


@dataclass
class DeliveryResult:
    """Per-cycle tally of recipient deliveries.

    Build failures count as failures here as well as in
    ``CycleResult.build_failure_count``.
    """

    success_count: int = 0
    failure_count: int = 0

    @property
    def any_delivered(self) -> bool:
        return self.success_count > 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


@dataclass
class CycleResult:
    """
    Outcome of one dispatch cycle.

    Attributes:
        notifications_considered: Unsent notifications loaded at the start
        success_count: Recipients whose email was accepted by the server
        failure_count: Recipients that failed (build or send)
        recipients_considered: Enabled recipients loaded for the cycle
        build_failure_count: Recipients whose content could not be built
        notifications_committed: Rows flipped to sent by the commit policy
        skipped: True when another cycle held the lock
        cycle_id: Correlation id used in log records
        duration_seconds: Wall time of the cycle
        error: Message of an error that aborted the cycle, if any
    """

    notifications_considered: int = 0
    success_count: int = 0
    failure_count: int = 0
    recipients_considered: int = 0
    build_failure_count: int = 0
    notifications_committed: int = 0
    skipped: bool = False
    cycle_id: Optional[str] = None
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        """True when there was nothing to send or nobody to send it to."""
        return not self.skipped and (self.notifications_considered == 0 or self.recipients_considered == 0)
