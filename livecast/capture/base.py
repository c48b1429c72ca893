"""Abstract base classes for encoders and transcoders."""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class AbstractEncoder(ABC):
    """Capture device plus encoder producing one blob per segment.

    Lifecycle: open() once per session, then start()/stop()/drain() once per
    segment, then close().
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the capture device.

        Raises:
            AcquisitionFailure: the device or encoder cannot be used
        """
        pass

    @abstractmethod
    def start(self) -> None:
        """Begin encoder output for a new segment."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Ask the encoder to end output for the current segment."""
        pass

    @abstractmethod
    def drain(self, timeout: float) -> bytes:
        """Wait up to `timeout` seconds for the stopped output to flush.

        Returns:
            Everything the encoder produced for the segment, possibly empty
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the capture device."""
        pass

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True between start() and stop()."""
        pass


class AbstractTranscoder(ABC):
    """Converts a raw encoder blob to the final segment container."""

    @abstractmethod
    def transcode(self, data: bytes) -> bytes:
        """Return the final segment payload.

        Raises:
            TranscodeFailure: the blob could not be converted
        """
        pass
