"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

DEFAULT_TOPIC = "asteroid-alert"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _check_interval(value: str, min_seconds: int, max_seconds: int, label: str) -> str:
    """Validate a duration string's syntax and range for a pydantic field."""
    try:
        validate_duration_range(parse_duration(value), min_seconds, max_seconds, label=label)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return value


class FeedConfig(BaseModel):
    """Upstream NeoWs feed settings."""

    base_url: str = Field(
        "https://api.nasa.gov/neo/rest/v1/feed",
        min_length=1,
        description="NeoWs feed endpoint",
    )
    lookahead_days: int = Field(
        7, ge=0, le=7, description="Days after today to include (the feed caps ranges at 7)"
    )


class EnrichmentConfig(BaseModel):
    """Picture-of-the-day enrichment settings."""

    enabled: bool = Field(True, description="Fetch APOD content for outgoing emails")
    base_url: str = Field(
        "https://api.nasa.gov/planetary/apod", min_length=1, description="APOD endpoint"
    )


class EmailConfig(BaseModel):
    """Email delivery settings."""

    subject: str = Field(
        "NASA Asteroid Alert - Close Approach Detected",
        min_length=1,
        description="Subject line for alert emails",
    )
    use_tls: bool = Field(True, description="Use STARTTLS on non-465 ports")
    max_attempts: int = Field(3, ge=1, le=10, description="Send attempts per recipient")
    retry_delay_seconds: float = Field(
        1.0, ge=0.0, le=60.0, description="Linear backoff unit: attempt n waits n * delay"
    )
    attempt_timeout_seconds: float = Field(
        30.0, gt=0.0, le=300.0, description="Socket timeout for a single SMTP attempt"
    )

    @field_validator("subject")
    @classmethod
    def single_line_subject(cls, v: str) -> str:
        """Collapse the subject to one stripped line."""
        stripped = " ".join(v.split())
        if not stripped:
            raise ValueError("subject cannot be empty or whitespace-only")
        return stripped


class DispatchConfig(BaseModel):
    """Dispatch cycle settings."""

    interval: str = Field("10s", description="Delay between dispatch cycles")
    max_concurrency: int = Field(
        8, ge=1, le=64, description="Upper bound on concurrent sends per cycle"
    )

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        return _check_interval(v, 5, 86400, "Dispatch interval")


class MessagingConfig(BaseModel):
    """Topic and consumer settings."""

    topic: str = Field(DEFAULT_TOPIC, min_length=1, description="Topic name for hazard events")
    drain_interval: str = Field("15s", description="Delay between topic drains")
    batch_size: int = Field(100, ge=1, le=1000, description="Messages delivered per drain")
    max_delivery_attempts: int = Field(
        5, ge=1, le=100, description="Failed deliveries before a message is dead-lettered"
    )
    publish_max_concurrency: int = Field(
        8, ge=1, le=64, description="Upper bound on concurrent publishes"
    )

    @field_validator("drain_interval")
    @classmethod
    def validate_drain_interval(cls, v: str) -> str:
        return _check_interval(v, 1, 3600, "Drain interval")


class RecipientConfig(BaseModel):
    """Recipient seeded into the directory at startup."""

    name: str = Field(..., min_length=1, description="Display name used in the greeting")
    email: EmailStr = Field(..., description="Delivery address")
    notifications_enabled: bool = Field(True, description="Whether alerts are delivered")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """HTTP client settings shared by the feed and enrichment clients."""

    http_request_timeout: int = Field(
        30, ge=5, le=300, description="Request timeout for NASA API calls (seconds)"
    )
    user_agent: str = Field(
        "NeoAlerts/1.0", min_length=1, description="User-Agent string for HTTP requests"
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object."""

    detection_interval: str = Field("6h", description="Delay between detection runs")
    feed: FeedConfig = Field(default_factory=FeedConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)
    recipients: List[RecipientConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)

    # Computed fields
    detection_interval_seconds: Optional[int] = None
    dispatch_interval_seconds: Optional[int] = None
    drain_interval_seconds: Optional[int] = None

    @field_validator("detection_interval")
    @classmethod
    def validate_detection_interval(cls, v: str) -> str:
        return _check_interval(v, 300, 7 * 86400, "Detection interval")

    @model_validator(mode="after")
    def validate_recipients_and_compute_fields(self):
        """Reject duplicate recipient emails and compute interval seconds."""
        seen = set()
        for recipient in self.recipients:
            key = recipient.email.lower()
            if key in seen:
                raise ValueError(f"Duplicate recipient email: {recipient.email}")
            seen.add(key)

        self.detection_interval_seconds = parse_duration(self.detection_interval)
        self.dispatch_interval_seconds = parse_duration(self.dispatch.interval)
        self.drain_interval_seconds = parse_duration(self.messaging.drain_interval)
        return self

    def get_enabled_recipients(self) -> List[RecipientConfig]:
        """Seeded recipients that should receive alerts."""
        return [r for r in self.recipients if r.notifications_enabled]
