"""Session-related data models."""

import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..errors import InvalidStateTransition
from .segment import DroppedSegment, SegmentInfo


class SessionState(Enum):
    """Lifecycle of a recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    ENDED = "ended"


_ALLOWED_TRANSITIONS = {
    SessionState.IDLE: SessionState.RECORDING,
    SessionState.RECORDING: SessionState.ENDED,
}


def new_session_id() -> str:
    """Timestamp-based session id with a random suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


@dataclass
class Session:
    """A bounded recording interval.

    Owned by exactly one SegmentRecorder; status consumers read the store
    instead of this object.
    """
    session_id: str
    rotation_interval_seconds: float
    state: SessionState = SessionState.IDLE
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    segments: List[SegmentInfo] = field(default_factory=list)
    dropped: List[DroppedSegment] = field(default_factory=list)
    total_size_bytes: int = 0

    def transition(self, target: SessionState, at: float) -> None:
        """Move to `target`, stamping start/end times."""
        if _ALLOWED_TRANSITIONS.get(self.state) != target:
            raise InvalidStateTransition(
                f"Session {self.session_id} cannot move from "
                f"{self.state.value} to {target.value}"
            )
        self.state = target
        if target is SessionState.RECORDING:
            self.started_at = at
        elif target is SessionState.ENDED:
            self.ended_at = at

    def record_segment(self, info: SegmentInfo) -> None:
        self.segments.append(info)
        self.total_size_bytes += info.size_bytes

    def record_drop(self, dropped: DroppedSegment) -> None:
        self.dropped.append(dropped)

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.ended_at if self.ended_at is not None else self.started_at
        return max(0.0, end - self.started_at)


@dataclass(frozen=True)
class SessionSummary:
    """Outcome of ending a session."""
    session_id: str
    segment_count: int
    dropped_count: int
    total_size_bytes: int
    duration_seconds: float
    manifest_name: str
