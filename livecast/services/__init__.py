"""Services layer for LiveCast recording and status."""

from .recorder import SegmentRecorder
from .liveness import LivenessTracker

__all__ = [
    "SegmentRecorder",
    "LivenessTracker",
]
