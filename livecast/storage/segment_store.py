"""Segment persistence: bytes plus metadata keyed by segment id."""

import os
import json
import time
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..errors import ManifestNotFound, SegmentNotFound, StoreFailure
from ..models.segment import (
    Segment,
    SegmentInfo,
    SEGMENT_PREFIX,
    parse_segment_filename,
    segment_filename,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "playlist.m3u8"
MANIFEST_CONTENT_TYPE = "application/vnd.apple.mpegurl"


class SegmentStore(ABC):
    """Byte-addressable segment repository.

    The recorder is the only writer. Readers may run concurrently and never
    observe a segment whose bytes and metadata are not both in place.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    @abstractmethod
    def put(self, segment: Segment) -> SegmentInfo:
        """Store a segment by id, overwriting any existing entry.

        Returns:
            Metadata of the stored segment, including its persistence time

        Raises:
            StoreFailure: the write did not complete
        """
        pass

    @abstractmethod
    def get(self, segment_id: int) -> Segment:
        """Return the segment with `segment_id` or raise SegmentNotFound."""
        pass

    @abstractmethod
    def list(self) -> List[SegmentInfo]:
        """Metadata for all stored segments, ordered by id ascending."""
        pass

    @abstractmethod
    def last_write_time(self) -> Optional[float]:
        """Timestamp of the newest segment write, or None if empty."""
        pass

    @abstractmethod
    def put_manifest(self, text: str) -> None:
        pass

    @abstractmethod
    def get_manifest(self) -> str:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all segments and the manifest."""
        pass

    def get_by_filename(self, filename: str) -> Segment:
        segment_id = parse_segment_filename(filename)
        if segment_id is None:
            raise SegmentNotFound(f"Not a segment filename: {filename}")
        return self.get(segment_id)


class MemorySegmentStore(SegmentStore):
    """In-process store, used for tests and single-process deployments."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._segments: Dict[int, Segment] = {}
        self._manifest: Optional[str] = None
        self._last_write: Optional[float] = None
        self._lock = threading.Lock()

    def put(self, segment: Segment) -> SegmentInfo:
        stored = segment.stamped(self.clock())
        with self._lock:
            self._segments[stored.id] = stored
            self._last_write = stored.created_at
        logger.debug(f"Stored {stored.filename} in memory ({stored.size_bytes} bytes)")
        return stored.info()

    def get(self, segment_id: int) -> Segment:
        with self._lock:
            segment = self._segments.get(segment_id)
        if segment is None:
            raise SegmentNotFound(f"Segment {segment_id} not found")
        return segment

    def list(self) -> List[SegmentInfo]:
        with self._lock:
            segments = sorted(self._segments.values(), key=lambda s: s.id)
        return [segment.info() for segment in segments]

    def last_write_time(self) -> Optional[float]:
        with self._lock:
            return self._last_write

    def put_manifest(self, text: str) -> None:
        with self._lock:
            self._manifest = text

    def get_manifest(self) -> str:
        with self._lock:
            manifest = self._manifest
        if manifest is None:
            raise ManifestNotFound("No manifest has been written")
        return manifest

    def clear(self) -> None:
        with self._lock:
            self._segments.clear()
            self._manifest = None
            self._last_write = None


class FileSegmentStore(SegmentStore):
    """Directory-backed store readable by other processes.

    Each segment is `segment_XXXXXX.ts` plus a `segment_XXXXXX.json` sidecar.
    The sidecar is written last and marks the segment as committed.
    """

    def __init__(self, directory: str, clock: Callable[[], float] = time.time):
        """Initialize file store with its directory.

        Args:
            directory: Directory holding segments and the manifest
            clock: Source of persistence timestamps
        """
        super().__init__(clock)
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"FileSegmentStore initialized with directory: {self.directory}")

    def _data_path(self, segment_id: int) -> Path:
        return self.directory / segment_filename(segment_id)

    def _meta_path(self, segment_id: int) -> Path:
        return self._data_path(segment_id).with_suffix(".json")

    def _write_atomic(self, path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)

    def put(self, segment: Segment) -> SegmentInfo:
        stored = segment.stamped(self.clock())
        info = stored.info()
        try:
            self._write_atomic(self._data_path(stored.id), stored.data)
            meta = json.dumps(info.to_dict(), indent=2).encode('utf-8')
            self._write_atomic(self._meta_path(stored.id), meta)
        except OSError as e:
            raise StoreFailure(f"Failed to write {stored.filename}: {e}") from e

        logger.debug(f"Stored {stored.filename} ({stored.size_bytes} bytes)")
        return info

    def _load_info(self, meta_path: Path) -> Optional[SegmentInfo]:
        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                return SegmentInfo.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Ignoring unreadable segment metadata {meta_path}: {e}")
            return None

    def get(self, segment_id: int) -> Segment:
        info = self._load_info(self._meta_path(segment_id))
        if info is None:
            raise SegmentNotFound(f"Segment {segment_id} not found")
        try:
            with open(self._data_path(segment_id), 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            raise SegmentNotFound(f"Segment {segment_id} has metadata but no data") from None

        return Segment(
            id=info.id,
            data=data,
            duration_seconds=info.duration_seconds,
            created_at=info.created_at,
        )

    def list(self) -> List[SegmentInfo]:
        segments = []
        for meta_path in self.directory.glob(f"{SEGMENT_PREFIX}*.json"):
            if parse_segment_filename(meta_path.with_suffix(".ts").name) is None:
                continue
            info = self._load_info(meta_path)
            if info is not None:
                segments.append(info)

        segments.sort(key=lambda s: s.id)
        return segments

    def last_write_time(self) -> Optional[float]:
        # Derived from the sidecars so another process sees the same value.
        segments = self.list()
        if not segments:
            return None
        return max(s.created_at for s in segments)

    def put_manifest(self, text: str) -> None:
        try:
            self._write_atomic(self.directory / MANIFEST_NAME, text.encode('utf-8'))
        except OSError as e:
            raise StoreFailure(f"Failed to write {MANIFEST_NAME}: {e}") from e

    def get_manifest(self) -> str:
        manifest_path = self.directory / MANIFEST_NAME
        try:
            return manifest_path.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise ManifestNotFound(f"Manifest not found: {manifest_path}") from None

    @staticmethod
    def _is_store_file(name: str) -> bool:
        # Includes tmp files left by an interrupted _write_atomic
        if name.startswith(".") and name.endswith(".tmp"):
            name = name[1:-len(".tmp")]
        return name == MANIFEST_NAME or name.startswith(SEGMENT_PREFIX)

    def clear(self) -> None:
        removed = 0
        for path in self.directory.iterdir():
            if self._is_store_file(path.name):
                path.unlink()
                removed += 1
        logger.info(f"Cleared {removed} files from {self.directory}")


def create_store(config, clock: Callable[[], float] = time.time) -> SegmentStore:
    """Build the store selected by `storage.backend`."""
    backend = config.get('storage.backend', 'file')
    if backend == 'memory':
        return MemorySegmentStore(clock=clock)
    if backend == 'file':
        return FileSegmentStore(config.get_store_directory(), clock=clock)
    raise ValueError(f"Unknown storage backend: {backend}")
