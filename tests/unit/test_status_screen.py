"""Unit tests for the console status screen."""

import pytest
from rich.console import Console

from livecast.events.publisher import SegmentEventPublisher
from livecast.models.events import SegmentEvent, SessionEvent
from livecast.ui.status_screen import MAX_LOG_ENTRIES, StatusScreen, format_elapsed


def render_text(screen):
    console = Console(record=True, width=100, color_system=None)
    console.print(screen.render())
    return console.export_text()


@pytest.fixture
def publisher():
    return SegmentEventPublisher(topic_prefix="screen")


@pytest.fixture
def screen(publisher, fake_clock):
    return StatusScreen(publisher, console=Console(record=True), clock=fake_clock)


@pytest.mark.unit
class TestStatusScreen:
    """Test cases for event-driven display state."""

    def test_idle_screen(self, screen):
        text = render_text(screen)

        assert "Ready to go live" in text
        assert "No activity yet" in text
        assert "00:00" in text

    def test_tracks_a_session(self, screen, publisher, fake_clock):
        publisher.session_started(SessionEvent(session_id="abc", event_type="started"))
        publisher.segment_stored(SegmentEvent(session_id="abc", segment_id=0,
                                              filename="segment_000000.ts", size_bytes=2048))
        publisher.segment_dropped(SegmentEvent(session_id="abc", segment_id=1,
                                               filename="segment_000001.ts",
                                               reason="corrupt", stage="transcode"))
        fake_clock.advance(75)

        assert screen.status.is_live
        assert screen.status.segment_count == 1
        assert screen.status.dropped_count == 1
        assert screen.status.total_size_bytes == 2048
        text = render_text(screen)
        assert "LIVE - Recording & Auto-Saving..." in text
        assert "01:15" in text
        assert "Saved segment: segment_000000.ts (2.0 KB)" in text
        assert "Dropped segment_000001.ts (transcode): corrupt" in text

    def test_session_end(self, screen, publisher):
        publisher.session_started(SessionEvent(session_id="abc", event_type="started"))
        publisher.segment_stored(SegmentEvent(session_id="abc", segment_id=0,
                                              filename="segment_000000.ts", size_bytes=10))
        publisher.session_ended(SessionEvent(session_id="abc", event_type="ended",
                                             metadata={"segments": 1}))

        assert not screen.status.is_live
        assert screen.status.manifest_written is True
        assert "Recording ended - 1 segments saved" in render_text(screen)

    def test_failed_seal_is_logged(self, screen, publisher):
        publisher.session_started(SessionEvent(session_id="abc", event_type="started"))
        publisher.session_ended(SessionEvent(session_id="abc", event_type="manifest_failed",
                                             metadata={"segments": 0, "error": "disk full"}))

        assert screen.status.manifest_written is False
        assert any("FAILED: disk full" in entry for entry in screen.log_entries)

    def test_log_is_bounded(self, screen):
        for i in range(MAX_LOG_ENTRIES + 10):
            screen.add_log_entry(f"entry {i}")

        assert len(screen.log_entries) == MAX_LOG_ENTRIES
        assert screen.log_entries[-1].endswith(f"entry {MAX_LOG_ENTRIES + 9}")

    def test_start_and_stop(self, screen):
        screen.refresh_seconds = 0.01
        screen.start()
        screen.stop()

        assert screen._thread is None


@pytest.mark.unit
def test_format_elapsed():
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(59.9) == "00:59"
    assert format_elapsed(3600) == "60:00"
    assert format_elapsed(-5) == "00:00"
