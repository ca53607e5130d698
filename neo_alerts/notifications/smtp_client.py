"""SMTP client wrapper for email delivery.

A thin layer over smtplib that handles implicit TLS on port 465, STARTTLS
elsewhere, optional authentication, a per-connection socket timeout, and
always closes the connection.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from neo_alerts.config.environment import EnvironmentConfig

from .models import TransientDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class SMTPClient:
    """Sends prepared EmailMessage objects through one SMTP server.

    The smtplib classes can be replaced through the factory arguments so
    tests never open sockets.
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.env_config = env_config
        self.use_tls = use_tls
        self.timeout = timeout
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(self, message: EmailMessage, timeout: Optional[float] = None) -> None:
        """Open a connection, send ``message`` and close the connection.

        Args:
            message: Fully constructed message with From/To/Subject set
            timeout: Socket timeout for this attempt (defaults to the client's)

        Raises:
            TransientDeliveryError: On any SMTP, network or timeout failure
        """
        host = self.env_config.smtp_host
        port = self.env_config.smtp_port
        timeout = timeout if timeout is not None else self.timeout
        smtp = None

        try:
            if port == 465:
                logger.debug(f"Connecting to {host}:{port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    host, port, timeout=timeout, context=ssl.create_default_context()
                )
            else:
                logger.debug(f"Connecting to {host}:{port}")
                smtp = self.smtp_factory(host, port, timeout=timeout)
                if self.use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if self.env_config.smtp_user and self.env_config.smtp_pass:
                smtp.login(self.env_config.smtp_user, self.env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message accepted for {message['To']}")

        except smtplib.SMTPException as e:
            raise TransientDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            # Includes socket.timeout and connection refused
            raise TransientDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.debug(f"Error closing SMTP connection: {e}")


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the From header value.

    Uses ALERT_FROM_EMAIL, then SMTP_USER, then noreply@SMTP_HOST, with
    SMTP_SENDER_NAME as the display name.

    Example:
        "NASA Space Watch <alerts@example.com>"
    """
    if env_config.alert_from_email:
        sender_email = env_config.alert_from_email
    elif env_config.smtp_user:
        sender_email = env_config.smtp_user
    else:
        sender_email = f"noreply@{env_config.smtp_host}"

    return f"{env_config.smtp_sender_name} <{sender_email}>"
