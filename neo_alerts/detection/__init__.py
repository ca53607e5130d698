"""Hazard detection over raw feed records."""

from .detector import HazardDetector

__all__ = ["HazardDetector"]
