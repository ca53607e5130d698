"""Scheduling module for the periodic detection, drain and dispatch jobs."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
