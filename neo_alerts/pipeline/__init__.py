"""Detection run orchestration: feed, detector, publisher."""

from .models import DetectionRunResult
from .runner import DetectionPipeline

__all__ = [
    "DetectionPipeline",
    "DetectionRunResult",
]
