"""Exception types raised by the LiveCast segment pipeline."""


class LiveCastError(RuntimeError):
    """Base class for all LiveCast errors."""


class AcquisitionFailure(LiveCastError):
    """The encoder or capture device could not be opened."""


class TranscodeFailure(LiveCastError):
    """A single segment could not be converted to its final container."""


class StoreFailure(LiveCastError):
    """A segment or manifest could not be written to the store."""


class ManifestWriteFailure(LiveCastError):
    """The sealed manifest could not be persisted at session end."""


class SegmentNotFound(LiveCastError, KeyError):
    """No segment exists for the requested id or filename."""

    def __str__(self) -> str:
        return RuntimeError.__str__(self)


class ManifestNotFound(LiveCastError):
    """No manifest has been written to the store yet."""


class RecorderBusy(LiveCastError):
    """A session is already recording."""


class RecorderIdle(LiveCastError):
    """No session is recording."""


class InvalidStateTransition(LiveCastError):
    """A session was asked to move to a state it cannot reach."""
