"""Data models for detection run tracking and reporting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class DetectionRunResult:
    """
    Results from a single detection run.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        duration_seconds: Time spent on the run
        fetched_count: Objects returned by the feed
        hazardous_count: Fetched objects flagged potentially hazardous
        event_count: Hazard events produced by the detector
        published_count: Events acknowledged by the topic
        publish_failures: Events that failed to publish
        had_errors: Whether the feed or the publisher failed
        error_message: Description of the first failure, if any
        skipped: Whether the run was skipped (lock already held)
    """

    run_started_at: datetime
    run_finished_at: datetime
    duration_seconds: float = 0.0
    fetched_count: int = 0
    hazardous_count: int = 0
    event_count: int = 0
    published_count: int = 0
    publish_failures: int = 0
    had_errors: bool = False
    error_message: Optional[str] = None
    skipped: bool = False

    def __post_init__(self):
        if self.duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.duration_seconds = delta.total_seconds()
