"""Segment lifecycle publisher for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.events import SegmentEvent, SessionEvent

logger = logging.getLogger(__name__)

TOPIC_SESSION_STARTED = "session.started"
TOPIC_SESSION_ENDED = "session.ended"
TOPIC_SEGMENT_STORED = "segment.stored"
TOPIC_SEGMENT_DROPPED = "segment.dropped"
TOPIC_MANIFEST_UPDATED = "manifest.updated"


class SegmentEventPublisher:
    """Publishes recorder events using pubsub.pub."""

    def __init__(self, topic_prefix: str = ""):
        """Initialize segment event publisher.

        Args:
            topic_prefix: Optional prefix so several recorders can share one process
        """
        self.topic_prefix = topic_prefix
        logger.info(f"SegmentEventPublisher initialized with prefix: '{topic_prefix}'")

    def topic(self, name: str) -> str:
        return f"{self.topic_prefix}.{name}" if self.topic_prefix else name

    def session_started(self, event: SessionEvent) -> None:
        pub.sendMessage(self.topic(TOPIC_SESSION_STARTED), event=event)

    def session_ended(self, event: SessionEvent) -> None:
        pub.sendMessage(self.topic(TOPIC_SESSION_ENDED), event=event)

    def segment_stored(self, event: SegmentEvent) -> None:
        pub.sendMessage(self.topic(TOPIC_SEGMENT_STORED), event=event)
        logger.debug(f"Published stored segment: {event.filename}")

    def segment_dropped(self, event: SegmentEvent) -> None:
        pub.sendMessage(self.topic(TOPIC_SEGMENT_DROPPED), event=event)
        logger.debug(f"Published dropped segment: {event.filename} ({event.stage})")

    def manifest_updated(self, event: SessionEvent) -> None:
        pub.sendMessage(self.topic(TOPIC_MANIFEST_UPDATED), event=event)
