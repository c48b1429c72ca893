"""Stream liveness derived from segment arrival recency."""

import time
import logging
from typing import Callable, Optional

from ..models.status import StreamStatus
from ..storage.segment_store import SegmentStore

logger = logging.getLogger(__name__)

DEFAULT_LIVENESS_WINDOW_SECONDS = 30.0


class LivenessTracker:
    """Answers "is the stream live" from the store alone.

    A stream is live while the newest segment is younger than the window.
    A producer whose rotation interval is at least the window is reported
    as not live between segments.
    """

    def __init__(self,
                 store: SegmentStore,
                 window_seconds: float = DEFAULT_LIVENESS_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.time):
        """Initialize liveness tracker.

        Args:
            store: Store the recorder writes to (possibly from another process)
            window_seconds: Age after which the newest segment no longer counts as live
            clock: Source of the current time when status() is called without one
        """
        if window_seconds <= 0:
            raise ValueError(f"Liveness window must be positive: {window_seconds}")
        self.store = store
        self.window_seconds = window_seconds
        self.clock = clock

    @classmethod
    def from_config(cls, config, store: SegmentStore,
                    clock: Callable[[], float] = time.time) -> "LivenessTracker":
        return cls(
            store,
            window_seconds=float(config.get('liveness.window_seconds', DEFAULT_LIVENESS_WINDOW_SECONDS)),
            clock=clock,
        )

    def status(self, now: Optional[float] = None) -> StreamStatus:
        if now is None:
            now = self.clock()

        segments = self.store.list()
        if not segments:
            return StreamStatus(is_live=False, segment_count=0)

        # Count, newest write and last segment come from one listing.
        newest_write = max(s.created_at for s in segments)
        is_live = (now - newest_write) < self.window_seconds
        last = segments[-1]

        logger.debug(f"Status: {len(segments)} segments, last={last.filename}, live={is_live}")
        return StreamStatus(
            is_live=is_live,
            segment_count=len(segments),
            last_segment_id=last.id,
            last_segment=last.filename,
        )
