"""UI-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RecorderDisplayStatus:
    """What the console status screen shows."""
    session_id: Optional[str] = None
    is_live: bool = False
    started_at: Optional[float] = None
    segment_count: int = 0
    dropped_count: int = 0
    total_size_bytes: int = 0
    manifest_written: Optional[bool] = None

    @property
    def status_text(self) -> str:
        if self.is_live:
            return "LIVE - Recording & Auto-Saving..."
        if self.segment_count > 0:
            return f"Recording ended - {self.segment_count} segments saved"
        return "Ready to go live"
