"""Segment and manifest persistence."""

from .segment_store import (
    SegmentStore,
    MemorySegmentStore,
    FileSegmentStore,
    create_store,
    MANIFEST_NAME,
    MANIFEST_CONTENT_TYPE,
)

__all__ = [
    "SegmentStore",
    "MemorySegmentStore",
    "FileSegmentStore",
    "create_store",
    "MANIFEST_NAME",
    "MANIFEST_CONTENT_TYPE",
]
