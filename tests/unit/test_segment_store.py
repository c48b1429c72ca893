"""Unit tests for segment stores."""

import json
import os
import threading

import pytest

from livecast.errors import ManifestNotFound, SegmentNotFound, StoreFailure
from livecast.models.segment import Segment
from livecast.storage.segment_store import (
    FileSegmentStore,
    MANIFEST_NAME,
    MemorySegmentStore,
    create_store,
)
from livecast.config import LiveCastConfig


def make_segment(segment_id, payload=None):
    return Segment(id=segment_id, data=payload or f"payload-{segment_id}".encode(), duration_seconds=6.0)


@pytest.mark.unit
class TestSegmentStoreContract:
    """Behaviour shared by every store backend."""

    def test_put_then_get(self, any_store, fake_clock):
        info = any_store.put(make_segment(0))
        segment = any_store.get(0)

        assert segment.data == b"payload-0"
        assert segment.filename == "segment_000000.ts"
        assert segment.duration_seconds == 6.0
        assert segment.created_at == fake_clock.now
        assert info.size_bytes == len(b"payload-0")

    def test_get_missing_raises(self, any_store):
        with pytest.raises(SegmentNotFound):
            any_store.get(7)

    def test_get_by_filename(self, any_store):
        any_store.put(make_segment(42))

        assert any_store.get_by_filename("segment_000042.ts").id == 42
        with pytest.raises(SegmentNotFound):
            any_store.get_by_filename("../etc/passwd")

    def test_list_is_ordered_by_id_without_payload(self, any_store):
        for segment_id in (2, 0, 1):
            any_store.put(make_segment(segment_id))

        listed = any_store.list()

        assert [s.id for s in listed] == [0, 1, 2]
        assert not hasattr(listed[0], "data")

    def test_put_overwrites_same_id(self, any_store, fake_clock):
        any_store.put(make_segment(0, b"first"))
        fake_clock.advance(5)
        any_store.put(make_segment(0, b"second"))

        assert any_store.get(0).data == b"second"
        assert len(any_store.list()) == 1
        assert any_store.last_write_time() == fake_clock.now

    def test_last_write_time_tracks_newest_put(self, any_store, fake_clock):
        assert any_store.last_write_time() is None

        any_store.put(make_segment(0))
        first = fake_clock.now
        fake_clock.advance(6)
        any_store.put(make_segment(1))

        assert any_store.last_write_time() == first + 6

    def test_manifest_round_trip_and_missing(self, any_store):
        with pytest.raises(ManifestNotFound):
            any_store.get_manifest()

        any_store.put_manifest("#EXTM3U\n")
        assert any_store.get_manifest() == "#EXTM3U\n"

    def test_clear_removes_everything(self, any_store):
        any_store.put(make_segment(0))
        any_store.put_manifest("#EXTM3U\n")

        any_store.clear()

        assert any_store.list() == []
        assert any_store.last_write_time() is None
        with pytest.raises(ManifestNotFound):
            any_store.get_manifest()

    def test_listing_shape(self, any_store):
        any_store.put(make_segment(3, b"abcd"))

        listing = any_store.list()[0].to_listing()

        assert listing["filename"] == "segment_000003.ts"
        assert listing["index"] == 3
        assert listing["size"] == 4
        assert listing["modified"].endswith("+00:00")


@pytest.mark.unit
class TestFileSegmentStore:
    """File-specific behaviour."""

    def test_files_on_disk(self, file_store):
        file_store.put(make_segment(5))
        file_store.put_manifest("#EXTM3U\n")

        directory = file_store.directory
        assert (directory / "segment_000005.ts").read_bytes() == b"payload-5"
        meta = json.loads((directory / "segment_000005.json").read_text())
        assert meta["id"] == 5
        assert (directory / MANIFEST_NAME).read_text() == "#EXTM3U\n"
        assert not [p for p in directory.iterdir() if p.name.endswith(".tmp")]

    def test_segment_without_metadata_is_invisible(self, file_store):
        # Bytes written but the sidecar not yet in place
        (file_store.directory / "segment_000000.ts").write_bytes(b"partial")

        assert file_store.list() == []
        with pytest.raises(SegmentNotFound):
            file_store.get(0)

    def test_unreadable_metadata_is_skipped(self, file_store):
        file_store.put(make_segment(0))
        (file_store.directory / "segment_000001.ts").write_bytes(b"x")
        (file_store.directory / "segment_000001.json").write_text("{not json")

        assert [s.id for s in file_store.list()] == [0]

    def test_foreign_files_are_ignored(self, file_store):
        (file_store.directory / "notes.json").write_text("{}")
        (file_store.directory / "segment_abc.json").write_text("{}")

        assert file_store.list() == []

    def test_second_reader_sees_writes(self, file_store, fake_clock):
        reader = FileSegmentStore(str(file_store.directory))
        file_store.put(make_segment(0))

        assert [s.id for s in reader.list()] == [0]
        assert reader.last_write_time() == fake_clock.now

    def test_write_error_raises_store_failure(self, file_store, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)

        with pytest.raises(StoreFailure, match="disk full"):
            file_store.put(make_segment(0))
        with pytest.raises(StoreFailure):
            file_store.put_manifest("#EXTM3U\n")

    def test_clear_keeps_unrelated_files(self, file_store):
        keep = file_store.directory / "README.txt"
        keep.write_text("keep me")
        file_store.put(make_segment(0))

        file_store.clear()

        assert keep.exists()
        assert file_store.list() == []

    def test_clear_removes_interrupted_writes(self, file_store):
        leftovers = [file_store.directory / ".segment_000001.ts.tmp",
                     file_store.directory / ".segment_000001.json.tmp",
                     file_store.directory / ".playlist.m3u8.tmp"]
        for path in leftovers:
            path.write_bytes(b"partial")
        unrelated = file_store.directory / ".notes.tmp"
        unrelated.write_text("keep me")

        file_store.clear()

        assert [path for path in leftovers if path.exists()] == []
        assert unrelated.exists()


@pytest.mark.unit
class TestMemorySegmentStore:

    def test_concurrent_puts_and_lists(self, memory_store):
        errors = []

        def writer():
            for i in range(200):
                memory_store.put(make_segment(i))

        def reader():
            for _ in range(200):
                ids = [s.id for s in memory_store.list()]
                if ids != sorted(ids):
                    errors.append(ids)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(memory_store.list()) == 200


@pytest.mark.unit
class TestCreateStore:

    def test_memory_backend(self):
        config = LiveCastConfig()
        config.set('storage.backend', 'memory')

        assert isinstance(create_store(config), MemorySegmentStore)

    def test_file_backend(self, temp_data_dir):
        config = LiveCastConfig()
        config.set('storage.directory', temp_data_dir)

        store = create_store(config)

        assert isinstance(store, FileSegmentStore)
        assert str(store.directory) == os.path.abspath(temp_data_dir)

    def test_unknown_backend(self):
        config = LiveCastConfig()
        config.set('storage.backend', 's3')

        with pytest.raises(ValueError):
            create_store(config)
