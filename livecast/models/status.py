"""Stream status model."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StreamStatus:
    """Liveness answer derived from store contents."""
    is_live: bool
    segment_count: int
    last_segment_id: Optional[int] = None
    last_segment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Shape used by the status endpoint."""
        return {
            "isLive": self.is_live,
            "segments": self.segment_count,
            "lastSegment": self.last_segment,
        }
