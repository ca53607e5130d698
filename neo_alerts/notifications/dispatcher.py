"""Periodic email dispatch of unsent notifications to enabled recipients."""

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Protocol, Sequence, Tuple
from uuid import uuid4

from neo_alerts.domain.models import Enrichment, Notification, Recipient
from neo_alerts.logging import get_logger
from neo_alerts.logging.context import log_context
from neo_alerts.persistence.exceptions import PersistenceError

from .content import ContentBuilder
from .models import ContentBuildError, CycleResult, DeliveryResult
from .policy import CommitPolicy, commit_when_any_delivered
from .sender import EmailSender

logger = get_logger(__name__, component="dispatcher")

DEFAULT_SUBJECT = "NASA Asteroid Alert - Close Approach Detected"
DEFAULT_MAX_CONCURRENCY = 8


class UnsentNotificationStore(Protocol):
    def load_unsent(self) -> List[Notification]: ...

    def mark_sent(self, ids: Sequence[int]) -> int: ...


class RecipientDirectory(Protocol):
    def list_enabled(self) -> List[Recipient]: ...


class EmailDispatcher:
    """
    Runs alert cycles: load unsent notifications, email every enabled
    recipient, then mark the notifications sent according to the commit
    policy.

    Only one cycle runs at a time; an overlapping call returns a skipped
    result without touching the store. A failure for one recipient never
    affects the others. Persistence errors abort the cycle and propagate so
    the next tick retries from the same unsent rows.
    """

    def __init__(
        self,
        store: UnsentNotificationStore,
        recipients: RecipientDirectory,
        content_builder: ContentBuilder,
        sender: EmailSender,
        subject: str = DEFAULT_SUBJECT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        commit_policy: CommitPolicy = commit_when_any_delivered,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.store = store
        self.recipients = recipients
        self.content_builder = content_builder
        self.sender = sender
        self.subject = subject
        self.max_concurrency = max_concurrency
        self.commit_policy = commit_policy
        self._lock = threading.Lock()

    def run_alert_cycle(self) -> CycleResult:
        """
        Execute one dispatch cycle.

        Returns:
            CycleResult with counts for the cycle

        Raises:
            PersistenceError: If loading or committing fails
        """
        cycle_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(cycle_id=cycle_id):
                logger.warning(
                    "Dispatch cycle skipped: previous cycle still in progress",
                    extra={"event": "dispatch.cycle.skipped", "reason": "lock_held"},
                )
            return CycleResult(skipped=True, cycle_id=cycle_id)

        started = time.monotonic()
        try:
            with log_context(cycle_id=cycle_id):
                result = self._run_cycle(cycle_id)
                result.duration_seconds = time.monotonic() - started
                return result
        finally:
            self._lock.release()

    def _run_cycle(self, cycle_id: str) -> CycleResult:
        result = CycleResult(cycle_id=cycle_id)

        notifications = self.store.load_unsent()
        result.notifications_considered = len(notifications)
        if not notifications:
            logger.debug(
                "No unsent notifications; nothing to dispatch",
                extra={"event": "dispatch.cycle.noop", "reason": "no_notifications"},
            )
            return result

        recipients = self.recipients.list_enabled()
        result.recipients_considered = len(recipients)
        if not recipients:
            logger.info(
                f"{len(notifications)} unsent notifications but no enabled recipients",
                extra={"event": "dispatch.cycle.noop", "reason": "no_recipients"},
            )
            return result

        logger.info(
            f"Dispatch cycle started: {len(notifications)} notifications, {len(recipients)} recipients",
            extra={
                "event": "dispatch.cycle.started",
                "notification_count": len(notifications),
                "recipient_count": len(recipients),
            },
        )

        enrichment = self._fetch_enrichment()
        ready, build_failures = self._build_messages(notifications, recipients, enrichment)
        result.build_failure_count = build_failures

        delivery = self._send_all(ready)
        delivery.failure_count += build_failures
        result.success_count = delivery.success_count
        result.failure_count = delivery.failure_count

        ids = self.commit_policy(notifications, delivery)
        if ids:
            try:
                result.notifications_committed = self.store.mark_sent(ids)
            except PersistenceError as e:
                logger.error(
                    f"Failed to commit sent flag for {len(ids)} notifications: {e}",
                    extra={"event": "dispatch.commit.failed", "notification_count": len(ids)},
                )
                raise
        else:
            logger.warning(
                "No recipient received the alert; notifications stay unsent",
                extra={"event": "dispatch.commit.withheld", "failure_count": delivery.failure_count},
            )

        logger.info(
            f"Dispatch cycle completed: {delivery.success_count} delivered, "
            f"{delivery.failure_count} failed, {result.notifications_committed} committed",
            extra={
                "event": "dispatch.cycle.completed",
                "success_count": delivery.success_count,
                "failure_count": delivery.failure_count,
                "build_failure_count": build_failures,
                "notifications_committed": result.notifications_committed,
            },
        )
        return result

    def _fetch_enrichment(self) -> Optional[Enrichment]:
        try:
            return self.content_builder.fetch_enrichment()
        except Exception as e:
            logger.warning(
                f"Enrichment stage failed, continuing without it: {e}",
                extra={"event": "dispatch.enrichment.failed", "error_type": type(e).__name__},
            )
            return None

    def _build_messages(
        self,
        notifications: Sequence[Notification],
        recipients: Sequence[Recipient],
        enrichment: Optional[Enrichment],
    ) -> Tuple[List[Tuple[Recipient, str]], int]:
        """Render a body per recipient; returns (ready, build failure count)."""
        ready: List[Tuple[Recipient, str]] = []
        failures = 0

        for recipient in recipients:
            try:
                body = self.content_builder.build(notifications, recipient.display_name, enrichment)
            except ContentBuildError as e:
                body = ""
                logger.error(
                    f"Failed to build content for {recipient.email}: {e}",
                    extra={"event": "dispatch.content.failed", "recipient": recipient.email},
                )

            if not body:
                failures += 1
                continue
            ready.append((recipient, body))

        return ready, failures

    def _send_all(self, ready: Sequence[Tuple[Recipient, str]]) -> DeliveryResult:
        delivery = DeliveryResult()
        if not ready:
            return delivery

        workers = min(len(ready), self.max_concurrency)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dispatch") as executor:
            futures = {
                executor.submit(contextvars.copy_context().run, self._send_one, recipient, body): recipient
                for recipient, body in ready
            }
            for future in as_completed(futures):
                recipient = futures[future]
                try:
                    delivered = future.result()
                except Exception as e:
                    delivered = False
                    logger.error(
                        f"Send task for {recipient.email} raised: {e}",
                        exc_info=True,
                        extra={"event": "dispatch.send.crashed", "recipient": recipient.email},
                    )

                if delivered:
                    delivery.success_count += 1
                else:
                    delivery.failure_count += 1

        return delivery

    def _send_one(self, recipient: Recipient, body: str) -> bool:
        with log_context(recipient=recipient.email):
            return self.sender.send(recipient.email, self.subject, body)
