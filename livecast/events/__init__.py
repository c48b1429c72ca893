"""Pub/sub events for the recorder lifecycle."""

from .publisher import (
    SegmentEventPublisher,
    TOPIC_SESSION_STARTED,
    TOPIC_SESSION_ENDED,
    TOPIC_SEGMENT_STORED,
    TOPIC_SEGMENT_DROPPED,
    TOPIC_MANIFEST_UPDATED,
)

__all__ = [
    "SegmentEventPublisher",
    "TOPIC_SESSION_STARTED",
    "TOPIC_SESSION_ENDED",
    "TOPIC_SEGMENT_STORED",
    "TOPIC_SEGMENT_DROPPED",
    "TOPIC_MANIFEST_UPDATED",
]
