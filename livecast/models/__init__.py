"""Data models for the LiveCast application."""

from .segment import (
    Segment,
    SegmentInfo,
    DroppedSegment,
    segment_filename,
    parse_segment_filename,
)
from .session import Session, SessionState, SessionSummary, new_session_id
from .status import StreamStatus
from .ui import RecorderDisplayStatus
from .events import SegmentEvent, SessionEvent

__all__ = [
    "Segment",
    "SegmentInfo",
    "DroppedSegment",
    "segment_filename",
    "parse_segment_filename",
    "Session",
    "SessionState",
    "SessionSummary",
    "new_session_id",
    "StreamStatus",
    "RecorderDisplayStatus",
    # Pub/sub events
    "SegmentEvent",
    "SessionEvent",
]
