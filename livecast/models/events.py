"""Event models for the pub/sub segment lifecycle."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class SegmentEvent:
    """A segment was stored or dropped."""
    session_id: str
    segment_id: int
    filename: str
    size_bytes: int = 0
    reason: Optional[str] = None  # Set for dropped segments
    stage: Optional[str] = None   # "transcode" or "store" for dropped segments
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SessionEvent:
    """Session lifecycle event."""
    session_id: str
    event_type: str  # "started", "ended", "manifest_failed"
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
