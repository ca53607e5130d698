"""Single-recipient email sending with bounded retries."""

import time
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from neo_alerts.logging import get_logger

from .models import TransientDeliveryError
from .smtp_client import SMTPClient

logger = get_logger(__name__, component="sender")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 30.0

PLAIN_TEXT_FALLBACK = (
    "This alert is formatted as HTML. Please view it in an HTML-capable email client."
)


class EmailSender:
    """
    Sends one HTML email to one recipient.

    Transient failures are retried up to ``max_attempts`` times in total.
    After failed attempt n the sender waits n * ``retry_delay_seconds``
    (1s then 2s with the defaults). Each attempt uses its own SMTP
    connection with a socket timeout. ``send`` never raises.
    """

    def __init__(
        self,
        smtp_client: SMTPClient,
        from_address: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.smtp_client = smtp_client
        self.from_address = from_address
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.attempt_timeout_seconds = attempt_timeout_seconds
        self._sleep = sleep or time.sleep

    def send(self, to: str, subject: str, html_body: str) -> bool:
        """
        Deliver an HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html_body: Rendered HTML body

        Returns:
            True if the server accepted the message, False otherwise
        """
        try:
            recipient = validate_email(to, check_deliverability=False).normalized
        except EmailNotValidError as e:
            logger.error(
                f"Not sending to invalid address {to!r}: {e}",
                extra={"event": "sender.address.invalid", "recipient": to},
            )
            return False

        try:
            message = self._build_message(recipient, subject, html_body)
        except (ValueError, TypeError) as e:
            logger.error(
                f"Failed to build email message for {recipient}: {e}",
                extra={"event": "sender.message.invalid", "recipient": recipient},
            )
            return False

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.smtp_client.send(message, timeout=self.attempt_timeout_seconds)
            except TransientDeliveryError as e:
                retry_remaining = attempt < self.max_attempts
                logger.warning(
                    f"Failed to send email to {recipient} (attempt {attempt}/{self.max_attempts}): {e}",
                    extra={
                        "event": "sender.attempt.failed",
                        "recipient": recipient,
                        "attempt": attempt,
                        "retry_remaining": retry_remaining,
                    },
                )
                if retry_remaining:
                    self._sleep(attempt * self.retry_delay_seconds)
                continue
            except Exception as e:
                logger.error(
                    f"Unexpected error sending email to {recipient}: {e}",
                    exc_info=True,
                    extra={
                        "event": "sender.send.error",
                        "recipient": recipient,
                        "attempt": attempt,
                        "error_type": type(e).__name__,
                    },
                )
                return False

            logger.info(
                f"Email sent to {recipient} (attempt {attempt})",
                extra={"event": "sender.send.succeeded", "recipient": recipient, "attempt": attempt},
            )
            return True

        logger.error(
            f"Giving up on {recipient} after {self.max_attempts} attempts",
            extra={"event": "sender.send.exhausted", "recipient": recipient, "attempts": self.max_attempts},
        )
        return False

    def _build_message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = to
        message.set_content(PLAIN_TEXT_FALLBACK)
        message.add_alternative(html_body, subtype="html")
        return message
