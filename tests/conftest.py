"""Pytest configuration and fixtures for LiveCast tests."""

import pytest
import tempfile
import threading
import logging
from typing import Dict, List, Optional

from pubsub import pub

from livecast.capture.base import AbstractTranscoder
from livecast.capture.buffered import BufferedEncoder
from livecast.errors import AcquisitionFailure, TranscodeFailure
from livecast.storage.segment_store import FileSegmentStore, MemorySegmentStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests spanning several components")


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


class ScriptedTranscoder(AbstractTranscoder):
    """Passthrough transcoder with scripted failures and gates.

    Blobs starting with b"BAD" fail. A blob listed in `gates` blocks until
    its event is set.
    """

    def __init__(self, gates: Optional[Dict[bytes, threading.Event]] = None):
        self.gates = gates or {}
        self.transcoded: List[bytes] = []
        self.done = threading.Condition()

    def transcode(self, data: bytes) -> bytes:
        gate = self.gates.get(data)
        if gate is not None:
            assert gate.wait(timeout=5.0), "gate was never released"
        if data.startswith(b"BAD"):
            raise TranscodeFailure(f"corrupt input: {data!r}")
        with self.done:
            self.transcoded.append(data)
            self.done.notify_all()
        return b"TS:" + data

    def wait_for(self, data: bytes, timeout: float = 5.0) -> bool:
        with self.done:
            return self.done.wait_for(lambda: data in self.transcoded, timeout=timeout)


class UnavailableEncoder(BufferedEncoder):
    """Encoder whose device cannot be opened."""

    def open(self) -> None:
        raise AcquisitionFailure("Permission denied: camera")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock):
    return MemorySegmentStore(clock=fake_clock)


@pytest.fixture
def file_store(temp_data_dir, fake_clock):
    return FileSegmentStore(temp_data_dir, clock=fake_clock)


@pytest.fixture(params=["memory", "file"])
def any_store(request, temp_data_dir, fake_clock):
    """Each test runs against both store backends."""
    if request.param == "memory":
        return MemorySegmentStore(clock=fake_clock)
    return FileSegmentStore(temp_data_dir, clock=fake_clock)


@pytest.fixture
def encoder():
    return BufferedEncoder()


@pytest.fixture
def transcoder():
    return ScriptedTranscoder()


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Listeners registered by one test must not see another test's events."""
    yield
    pub.unsubAll()


@pytest.fixture
def transcoder_factory():
    """Build ScriptedTranscoders with custom gates."""
    return ScriptedTranscoder


@pytest.fixture
def unavailable_encoder():
    return UnavailableEncoder()
