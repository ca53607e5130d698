"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    # Very short dispatch intervals hammer the notifications table
    dispatch = config_dict.get("dispatch", {})
    if isinstance(dispatch, dict):
        interval = dispatch.get("interval")
        if isinstance(interval, str):
            try:
                if parse_duration(interval) < 10:
                    warning_messages.append(
                        f"Short dispatch interval ({interval}) will poll the database very frequently"
                    )
            except DurationParseError:
                # Reported by model validation
                pass

    # Recipients that will never receive anything
    recipients = config_dict.get("recipients", [])
    if isinstance(recipients, list):
        for recipient in recipients:
            if isinstance(recipient, dict) and recipient.get("notifications_enabled") is False:
                email = recipient.get("email", "unknown")
                warning_messages.append(
                    f"Recipient '{email}' has notifications disabled and will not receive alerts"
                )

    enrichment = config_dict.get("enrichment", {})
    if isinstance(enrichment, dict) and enrichment.get("enabled") is False and recipients:
        warning_messages.append(
            "Enrichment is disabled: alert emails will be sent without the picture of the day"
        )

    feed = config_dict.get("feed", {})
    if isinstance(feed, dict) and feed.get("lookahead_days") == 0:
        warning_messages.append("feed.lookahead_days is 0: only today's close approaches are checked")

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
