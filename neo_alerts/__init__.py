"""Hazardous near-Earth object alert service."""

__version__ = "1.0.0"
