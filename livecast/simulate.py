"""Dummy segment producers for exercising the viewer without a camera."""

import time
import logging
from typing import Callable, List, Optional

from .capture.buffered import BufferedEncoder
from .manifest.builder import ManifestBuilder
from .models.segment import Segment, SegmentInfo
from .models.session import SessionSummary
from .services.recorder import SegmentRecorder
from .storage.segment_store import SegmentStore

logger = logging.getLogger(__name__)


def dummy_segment_data(index: int) -> bytes:
    """Placeholder payload; not playable media."""
    return f"# Test segment {index} - This is dummy data for testing purposes.".encode('utf-8') * 100


def create_test_segments(store: SegmentStore,
                         count: int = 5,
                         rotation_interval_seconds: float = 6.0,
                         builder: Optional[ManifestBuilder] = None) -> List[SegmentInfo]:
    """Write `count` segments and a sealed manifest straight to the store."""
    builder = builder or ManifestBuilder()
    store.clear()
    infos = []
    for index in range(count):
        info = store.put(Segment(
            id=index,
            data=dummy_segment_data(index),
            duration_seconds=rotation_interval_seconds,
        ))
        infos.append(info)
        logger.info(f"Created test segment: {info.filename}")

    store.put_manifest(builder.sealed_manifest(infos, rotation_interval_seconds))
    logger.info(f"Created test manifest with {count} segments")
    return infos


def simulate_live_stream(recorder: SegmentRecorder,
                         encoder: BufferedEncoder,
                         duration_seconds: float = 30.0,
                         feed_interval_seconds: float = 0.5,
                         clock: Callable[[], float] = time.monotonic,
                         sleep: Callable[[float], None] = time.sleep) -> SessionSummary:
    """Run a real recorder session fed with dummy chunks for `duration_seconds`."""
    logger.info(f"Starting live stream simulation for {duration_seconds} seconds...")
    recorder.start()
    deadline = clock() + duration_seconds
    chunk_index = 0
    try:
        while clock() < deadline:
            encoder.feed(dummy_segment_data(chunk_index))
            chunk_index += 1
            sleep(feed_interval_seconds)
    finally:
        summary = recorder.end()

    logger.info(f"Live stream simulation completed. Created {summary.segment_count} segments.")
    return summary
