"""Segment-related data models."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SEGMENT_PREFIX = "segment_"
SEGMENT_EXTENSION = ".ts"
SEGMENT_CONTENT_TYPE = "video/mp2t"

_SEGMENT_NAME_RE = re.compile(r"^segment_(\d{6})\.ts$")


def segment_filename(segment_id: int) -> str:
    """Return the fixed-width filename for a segment id."""
    if segment_id < 0:
        raise ValueError(f"Segment id must be non-negative: {segment_id}")
    return f"{SEGMENT_PREFIX}{segment_id:06d}{SEGMENT_EXTENSION}"


def parse_segment_filename(filename: str) -> Optional[int]:
    """Return the id encoded in a segment filename, or None if it is not one."""
    match = _SEGMENT_NAME_RE.match(filename)
    if not match:
        return None
    return int(match.group(1))


@dataclass(frozen=True)
class SegmentInfo:
    """Segment metadata without the payload."""
    id: int
    filename: str
    duration_seconds: float
    created_at: float  # Unix timestamp when the store persisted the segment
    size_bytes: int

    def to_listing(self) -> Dict[str, Any]:
        """Shape used by the segment listing endpoint."""
        modified = datetime.fromtimestamp(self.created_at, tz=timezone.utc)
        return {
            "filename": self.filename,
            "index": self.id,
            "size": self.size_bytes,
            "modified": modified.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "duration_seconds": self.duration_seconds,
            "created_at": self.created_at,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SegmentInfo":
        return cls(
            id=int(data["id"]),
            filename=data["filename"],
            duration_seconds=float(data["duration_seconds"]),
            created_at=float(data["created_at"]),
            size_bytes=int(data["size_bytes"]),
        )


@dataclass(frozen=True)
class Segment:
    """One independently playable chunk of media, immutable once created."""
    id: int
    data: bytes
    duration_seconds: float
    created_at: float = 0.0

    @property
    def filename(self) -> str:
        return segment_filename(self.id)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def stamped(self, created_at: float) -> "Segment":
        """Copy of this segment carrying the persistence timestamp."""
        return Segment(
            id=self.id,
            data=self.data,
            duration_seconds=self.duration_seconds,
            created_at=created_at,
        )

    def info(self) -> SegmentInfo:
        return SegmentInfo(
            id=self.id,
            filename=self.filename,
            duration_seconds=self.duration_seconds,
            created_at=self.created_at,
            size_bytes=self.size_bytes,
        )


@dataclass(frozen=True)
class DroppedSegment:
    """A segment that never reached the store or the manifest."""
    id: int
    reason: str
    stage: str  # "transcode" or "store"
