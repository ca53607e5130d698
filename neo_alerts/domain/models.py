"""Core domain models for detections, hazard events, and notifications.

This module defines the data structures used throughout the application:
- NeoDetection: raw near-Earth object record as returned by the feed
- HazardEvent: immutable message published for each hazardous detection
- Notification: persisted, per-event alert waiting to be emailed
- Recipient: subscriber read from the recipient directory
- Enrichment: optional picture-of-the-day content for alert emails
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from neo_alerts.utils.timestamps import ensure_utc


class CloseApproach(BaseModel):
    """One close approach of a detection to Earth."""

    close_approach_date: Optional[date] = Field(None, description="Approach date")
    miss_distance_km: Optional[Decimal] = Field(None, description="Miss distance in kilometers")
    orbiting_body: Optional[str] = Field(None, description="Body being approached")


class DiameterRange(BaseModel):
    """Estimated diameter bounds in meters; either bound may be missing."""

    min_m: Optional[float] = Field(None, description="Minimum estimated diameter (meters)")
    max_m: Optional[float] = Field(None, description="Maximum estimated diameter (meters)")

    @property
    def is_complete(self) -> bool:
        return self.min_m is not None and self.max_m is not None

    @property
    def average_m(self) -> Optional[float]:
        if not self.is_complete:
            return None
        return (self.min_m + self.max_m) / 2


class NeoDetection(BaseModel):
    """Raw near-Earth object detection before hazard filtering."""

    id: str = Field(..., description="Upstream object identifier")
    name: str = Field(..., description="Object designation, e.g. '(2024 AB1)'")
    is_potentially_hazardous: bool = Field(False, description="Upstream hazard flag")
    close_approaches: List[CloseApproach] = Field(default_factory=list)
    diameter: Optional[DiameterRange] = Field(None, description="Estimated diameter range")


class HazardEvent(BaseModel):
    """Immutable fact: a hazardous object will make a close approach.

    Events carry no identity of their own. Replays of the same event are
    indistinguishable and each becomes its own notification.
    """

    model_config = ConfigDict(frozen=True)

    asteroid_name: str = Field(..., description="Object designation")
    close_approach_date: date = Field(..., description="First close approach date")
    miss_distance_km: Decimal = Field(..., description="Miss distance in kilometers")
    estimated_diameter_avg_m: float = Field(..., description="Average estimated diameter (meters)")

    @property
    def key(self) -> str:
        """Human-readable event key used in logs and publish reports."""
        return f"{self.asteroid_name}@{self.close_approach_date.isoformat()}"


class Notification(BaseModel):
    """Persisted alert for one hazard event.

    `sent` only ever moves from False to True.
    """

    id: int = Field(..., description="Store-assigned identifier")
    asteroid_name: str
    close_approach_date: date
    miss_distance_km: Decimal
    estimated_diameter_avg_m: float
    sent: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    model_config = ConfigDict(from_attributes=True)


class Recipient(BaseModel):
    """Subscriber eligible to receive alert emails."""

    id: int
    display_name: Optional[str] = None
    email: str
    notifications_enabled: bool = True

    model_config = ConfigDict(from_attributes=True)


class Enrichment(BaseModel):
    """Astronomy Picture of the Day content embedded in alert emails."""

    title: str
    image_url: str
    explanation: Optional[str] = None
    picture_date: Optional[date] = None
    copyright: Optional[str] = None
