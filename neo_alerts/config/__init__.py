"""Configuration management module for NEO Alerts."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AdvancedConfig,
    AppConfig,
    DispatchConfig,
    EmailConfig,
    EnrichmentConfig,
    FeedConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    MessagingConfig,
    RecipientConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "FeedConfig",
    "EnrichmentConfig",
    "EmailConfig",
    "DispatchConfig",
    "MessagingConfig",
    "RecipientConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
