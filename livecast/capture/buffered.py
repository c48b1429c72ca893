"""Encoder fed with chunks by the caller."""

import logging
import threading
from typing import List

from .base import AbstractEncoder

logger = logging.getLogger(__name__)


class BufferedEncoder(AbstractEncoder):
    """Collects chunks pushed through feed() into per-segment blobs.

    Stands in for a device whose encoder hands data over in callbacks. Chunks
    fed while no segment is running are discarded.
    """

    def __init__(self):
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._flushed = threading.Event()
        self._running = False
        self._opened = False
        self.segments_started = 0
        self.chunks_discarded = 0

    def open(self) -> None:
        self._opened = True
        logger.info("BufferedEncoder opened")

    def start(self) -> None:
        with self._lock:
            self._chunks = []
            self._running = True
            self._flushed.clear()
            self.segments_started += 1

    def feed(self, chunk: bytes) -> None:
        """Append encoded data to the running segment."""
        if not chunk:
            return
        with self._lock:
            if not self._running:
                self.chunks_discarded += 1
                logger.debug(f"Discarding {len(chunk)} bytes fed while stopped")
                return
            self._chunks.append(chunk)

    def stop(self) -> None:
        with self._lock:
            self._running = False
        self._flushed.set()

    def drain(self, timeout: float) -> bytes:
        if not self._flushed.wait(timeout):
            logger.warning(f"Encoder did not flush within {timeout:.3f}s")
        with self._lock:
            blob = b"".join(self._chunks)
            self._chunks = []
        return blob

    def close(self) -> None:
        with self._lock:
            self._running = False
            self._chunks = []
        self._opened = False
        logger.info("BufferedEncoder closed")

    @property
    def is_running(self) -> bool:
        return self._running
