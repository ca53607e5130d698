"""Domain models for NEO Alerts."""

from .models import (
    CloseApproach,
    DiameterRange,
    Enrichment,
    HazardEvent,
    NeoDetection,
    Notification,
    Recipient,
)

__all__ = [
    "NeoDetection",
    "CloseApproach",
    "DiameterRange",
    "HazardEvent",
    "Notification",
    "Recipient",
    "Enrichment",
]
