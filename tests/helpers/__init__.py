"""Test helper utilities for NEO Alerts tests."""

from .factories import (
    RecordingSender,
    StaticRecipients,
    make_detection,
    make_event,
    make_feed_object,
    make_notification,
    make_recipient,
)

__all__ = [
    "RecordingSender",
    "StaticRecipients",
    "make_detection",
    "make_event",
    "make_feed_object",
    "make_notification",
    "make_recipient",
]
