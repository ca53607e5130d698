"""Alert email delivery.

- EmailDispatcher: periodic cycle over unsent notifications and recipients
- ContentBuilder: enrichment fetch plus pure Jinja2 rendering
- EmailSender: one recipient, bounded retries, never raises
- SMTPClient: smtplib wrapper with TLS/SSL support
"""

from .content import ContentBuilder
from .dispatcher import EmailDispatcher
from .models import (
    ContentBuildError,
    CycleResult,
    DeliveryResult,
    NotificationError,
    SMTPDeliveryError,
    TransientDeliveryError,
)
from .policy import commit_when_all_delivered, commit_when_any_delivered
from .sender import EmailSender
from .smtp_client import SMTPClient, build_sender_address
from .templates import TemplateRenderer

__all__ = [
    "EmailDispatcher",
    "ContentBuilder",
    "EmailSender",
    "SMTPClient",
    "TemplateRenderer",
    "build_sender_address",
    "commit_when_any_delivered",
    "commit_when_all_delivered",
    "CycleResult",
    "DeliveryResult",
    "NotificationError",
    "ContentBuildError",
    "SMTPDeliveryError",
    "TransientDeliveryError",
]
