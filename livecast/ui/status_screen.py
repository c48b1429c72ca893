"""Console status screen for a recording session."""

import time
import logging
import threading
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Callable, Deque, Optional

from pubsub import pub
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..events.publisher import (
    SegmentEventPublisher,
    TOPIC_SEGMENT_DROPPED,
    TOPIC_SEGMENT_STORED,
    TOPIC_SESSION_ENDED,
    TOPIC_SESSION_STARTED,
)
from ..models.events import SegmentEvent, SessionEvent
from ..models.ui import RecorderDisplayStatus

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 50


def format_elapsed(seconds: float) -> str:
    """mm:ss for the recording timer."""
    elapsed = max(0, int(seconds))
    return f"{elapsed // 60:02d}:{elapsed % 60:02d}"


class StatusScreen:
    """Renders recorder progress from pub/sub events on a fixed refresh timer."""

    def __init__(self,
                 publisher: SegmentEventPublisher,
                 console: Optional[Console] = None,
                 refresh_seconds: float = 1.0,
                 clock: Callable[[], float] = time.time):
        self.console = console or Console()
        self.refresh_seconds = refresh_seconds
        self.clock = clock
        self.status = RecorderDisplayStatus()
        self.log_entries: Deque[str] = deque(maxlen=MAX_LOG_ENTRIES)

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        pub.subscribe(self.on_session_started, publisher.topic(TOPIC_SESSION_STARTED))
        pub.subscribe(self.on_session_ended, publisher.topic(TOPIC_SESSION_ENDED))
        pub.subscribe(self.on_segment_stored, publisher.topic(TOPIC_SEGMENT_STORED))
        pub.subscribe(self.on_segment_dropped, publisher.topic(TOPIC_SEGMENT_DROPPED))

    def add_log_entry(self, message: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self.log_entries.append(f"[{timestamp}] {message}")

    def on_session_started(self, event: SessionEvent) -> None:
        with self._lock:
            self.status = RecorderDisplayStatus(
                session_id=event.session_id,
                is_live=True,
                started_at=self.clock(),
            )
        self.add_log_entry(f"Live recording started (session {event.session_id})")

    def on_segment_stored(self, event: SegmentEvent) -> None:
        with self._lock:
            self.status.segment_count += 1
            self.status.total_size_bytes += event.size_bytes
        self.add_log_entry(f"Saved segment: {event.filename} ({event.size_bytes / 1024:.1f} KB)")

    def on_segment_dropped(self, event: SegmentEvent) -> None:
        with self._lock:
            self.status.dropped_count += 1
        self.add_log_entry(f"Dropped {event.filename} ({event.stage}): {event.reason}")

    def on_session_ended(self, event: SessionEvent) -> None:
        written = event.event_type == "ended"
        with self._lock:
            self.status.is_live = False
            self.status.manifest_written = written
        if written:
            self.add_log_entry(f"Recording ended. Final manifest written with "
                               f"{event.metadata.get('segments', 0)} segments")
        else:
            self.add_log_entry(f"Recording ended. Final manifest FAILED: {event.metadata.get('error')}")

    def render(self) -> Group:
        with self._lock:
            status = replace(self.status)
            entries = list(self.log_entries)

        elapsed = self.clock() - status.started_at if status.started_at else 0.0
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Session", status.session_id or "None")
        table.add_row("Recording time", format_elapsed(elapsed))
        table.add_row("Segments", str(status.segment_count))
        table.add_row("Dropped", str(status.dropped_count))
        table.add_row("Total size", f"{status.total_size_bytes / (1024 * 1024):.2f} MB")

        style = "bold red" if status.is_live else "bold yellow"
        header = Panel(Text(status.status_text, style=style), border_style="bright_blue")
        log_panel = Panel(Text("\n".join(entries[-10:]) or "No activity yet", style="dim"),
                          title="Log", border_style="green")
        return Group(header, table, log_panel)

    def start(self) -> None:
        """Start redrawing in a background thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="StatusScreen", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        with Live(self.render(), console=self.console, auto_refresh=False) as live:
            while not self._stop_event.wait(self.refresh_seconds):
                live.update(self.render(), refresh=True)
            live.update(self.render(), refresh=True)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
