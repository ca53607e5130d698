"""Environment variable loading and validation."""

import os
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/neo_alerts.db"
DEFAULT_NASA_API_KEY = "DEMO_KEY"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings sourced from the environment."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        alert_from_email: Optional[str] = None,
        nasa_api_key: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "NASA Space Watch"
        self.alert_from_email = alert_from_email
        self.nasa_api_key = nasa_api_key or DEFAULT_NASA_API_KEY
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required:
    - SMTP_HOST: SMTP server hostname
    - SMTP_PORT: SMTP server port (1-65535)

    Optional:
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - SMTP_SENDER_NAME: Display name for the From header
    - ALERT_FROM_EMAIL: From address (defaults to SMTP_USER, then noreply@SMTP_HOST)
    - NASA_API_KEY: api.nasa.gov key (default: DEMO_KEY)
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/neo_alerts.db)

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    alert_from_email = os.getenv("ALERT_FROM_EMAIL")
    log_level = os.getenv("LOG_LEVEL")

    if not smtp_host:
        errors.append("Missing required environment variable: SMTP_HOST")

    smtp_port = None
    if not smtp_port_str:
        errors.append("Missing required environment variable: SMTP_PORT")
    else:
        try:
            smtp_port = int(smtp_port_str)
            if not 1 <= smtp_port <= 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    if alert_from_email:
        try:
            validate_email(alert_from_email, check_deliverability=False)
        except EmailNotValidError as e:
            errors.append(f"Invalid ALERT_FROM_EMAIL: '{alert_from_email}' - {e}")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if smtp_user and not smtp_pass:
        errors.append("SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication.")
    elif smtp_pass and not smtp_user:
        errors.append("SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure SMTP_HOST and SMTP_PORT are set",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=os.getenv("SMTP_SENDER_NAME"),
        alert_from_email=alert_from_email,
        nasa_api_key=os.getenv("NASA_API_KEY"),
        log_level=log_level.upper() if log_level else None,
        database_url=os.getenv("DATABASE_URL"),
    )
