"""Unit tests for segment and session models."""

import pytest

from livecast.errors import InvalidStateTransition, SegmentNotFound
from livecast.models.segment import (
    DroppedSegment,
    Segment,
    SegmentInfo,
    parse_segment_filename,
    segment_filename,
)
from livecast.models.session import Session, SessionState, new_session_id
from livecast.models.ui import RecorderDisplayStatus


@pytest.mark.unit
class TestSegmentNames:

    def test_filename_is_zero_padded(self):
        assert segment_filename(0) == "segment_000000.ts"
        assert segment_filename(42) == "segment_000042.ts"
        assert segment_filename(123456) == "segment_123456.ts"

    def test_negative_id_rejected(self):
        with pytest.raises(ValueError):
            segment_filename(-1)

    def test_parse_round_trips(self):
        assert parse_segment_filename("segment_000042.ts") == 42

    @pytest.mark.parametrize("name", [
        "segment_42.ts",
        "segment_000042.m3u8",
        "playlist.m3u8",
        "../segment_000001.ts",
        "segment_000001.ts.bak",
    ])
    def test_parse_rejects_other_names(self, name):
        assert parse_segment_filename(name) is None


@pytest.mark.unit
class TestSegment:

    def test_derived_fields(self):
        segment = Segment(id=3, data=b"12345", duration_seconds=6.0)

        assert segment.filename == "segment_000003.ts"
        assert segment.size_bytes == 5

    def test_stamped_copy_is_new_object(self):
        segment = Segment(id=1, data=b"x", duration_seconds=6.0)

        stamped = segment.stamped(100.0)

        assert stamped.created_at == 100.0
        assert segment.created_at == 0.0

    def test_info_dict_round_trip(self):
        info = Segment(id=2, data=b"abc", duration_seconds=6.0, created_at=5.5).info()

        assert SegmentInfo.from_dict(info.to_dict()) == info

    def test_listing_timestamp_is_utc(self):
        info = SegmentInfo(id=0, filename="segment_000000.ts", duration_seconds=6.0,
                           created_at=0.0, size_bytes=1)

        assert info.to_listing()["modified"] == "1970-01-01T00:00:00+00:00"


@pytest.mark.unit
class TestSession:
    """Test cases for the session state machine."""

    def test_forward_transitions(self):
        session = Session(session_id="s", rotation_interval_seconds=6.0)

        session.transition(SessionState.RECORDING, 10.0)
        session.transition(SessionState.ENDED, 25.0)

        assert session.state is SessionState.ENDED
        assert session.started_at == 10.0
        assert session.ended_at == 25.0
        assert session.duration_seconds == 15.0

    @pytest.mark.parametrize("start,target", [
        (SessionState.IDLE, SessionState.ENDED),
        (SessionState.IDLE, SessionState.IDLE),
        (SessionState.RECORDING, SessionState.IDLE),
        (SessionState.RECORDING, SessionState.RECORDING),
        (SessionState.ENDED, SessionState.RECORDING),
        (SessionState.ENDED, SessionState.IDLE),
    ])
    def test_invalid_transitions(self, start, target):
        session = Session(session_id="s", rotation_interval_seconds=6.0, state=start)

        with pytest.raises(InvalidStateTransition):
            session.transition(target, 1.0)
        assert session.state is start

    def test_records_segments_and_drops(self):
        session = Session(session_id="s", rotation_interval_seconds=6.0)
        session.record_segment(Segment(id=0, data=b"abcd", duration_seconds=6.0).info())
        session.record_drop(DroppedSegment(id=1, reason="corrupt", stage="transcode"))

        assert session.segment_count == 1
        assert session.total_size_bytes == 4
        assert session.dropped[0].id == 1

    def test_session_ids_are_unique(self):
        assert new_session_id() != new_session_id()


@pytest.mark.unit
class TestErrorsAndDisplay:

    def test_segment_not_found_is_a_key_error(self):
        error = SegmentNotFound("Segment 7 not found")

        assert isinstance(error, KeyError)
        assert str(error) == "Segment 7 not found"

    def test_display_status_text(self):
        assert RecorderDisplayStatus().status_text == "Ready to go live"
        assert RecorderDisplayStatus(is_live=True).status_text.startswith("LIVE")
        assert RecorderDisplayStatus(segment_count=3).status_text == "Recording ended - 3 segments saved"
