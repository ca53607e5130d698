"""Commit policies: which notifications to mark sent after a cycle."""

from typing import Callable, List, Sequence

from neo_alerts.domain.models import Notification

from .models import DeliveryResult

CommitPolicy = Callable[[Sequence[Notification], DeliveryResult], List[int]]


def commit_when_any_delivered(
    notifications: Sequence[Notification], delivery: DeliveryResult
) -> List[int]:
    """Mark every loaded notification sent once at least one recipient got the email.

    A recipient who failed in a cycle with some success will not see those
    notifications again.
    """
    if not delivery.any_delivered:
        return []
    return [n.id for n in notifications]


def commit_when_all_delivered(
    notifications: Sequence[Notification], delivery: DeliveryResult
) -> List[int]:
    """Mark notifications sent only when no recipient failed."""
    if delivery.failure_count or not delivery.any_delivered:
        return []
    return [n.id for n in notifications]
