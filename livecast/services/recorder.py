"""Segment recorder that owns the rotation cadence and session lifecycle."""

import math
import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional, Union

from ..capture.base import AbstractEncoder, AbstractTranscoder
from ..capture.transcoder import PassthroughTranscoder
from ..errors import (
    AcquisitionFailure,
    ManifestWriteFailure,
    RecorderBusy,
    RecorderIdle,
    StoreFailure,
    TranscodeFailure,
)
from ..events.publisher import SegmentEventPublisher
from ..manifest.builder import ManifestBuilder
from ..models.events import SegmentEvent, SessionEvent
from ..models.segment import DroppedSegment, Segment, segment_filename
from ..models.session import Session, SessionState, SessionSummary, new_session_id
from ..storage.segment_store import MANIFEST_NAME, SegmentStore

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_INTERVAL_SECONDS = 6.0
DEFAULT_FLUSH_GRACE_SECONDS = 0.1

_Outcome = Union[Segment, DroppedSegment]


def next_rotation_deadline(deadline: float, interval: float, now: float) -> float:
    """Next tick after `deadline`, skipping ticks that are already in the past."""
    deadline += interval
    if deadline <= now:
        missed = math.floor((now - deadline) / interval) + 1
        logger.warning(f"Rotation fell behind by {missed} tick(s)")
        deadline += missed * interval
    return deadline


class SegmentRecorder:
    """Rotates an open recording into sequential segments.

    Each rotation closes the running encoder output, restarts it for the next
    segment and hands the closed blob to a finalize pool (transcode, store,
    live manifest). Finalizes may overlap, but commits happen in id order.
    """

    def __init__(self,
                 store: SegmentStore,
                 encoder: AbstractEncoder,
                 transcoder: Optional[AbstractTranscoder] = None,
                 builder: Optional[ManifestBuilder] = None,
                 publisher: Optional[SegmentEventPublisher] = None,
                 rotation_interval_seconds: float = DEFAULT_ROTATION_INTERVAL_SECONDS,
                 flush_grace_seconds: float = DEFAULT_FLUSH_GRACE_SECONDS,
                 finalize_workers: int = 2,
                 clear_on_start: bool = True,
                 clock: Callable[[], float] = time.time):
        """Initialize segment recorder.

        Args:
            store: Destination for segments and manifests
            encoder: Capture encoder producing one blob per segment
            transcoder: Converts blobs to the final container (passthrough if None)
            builder: Manifest generator
            publisher: Pub/sub publisher for lifecycle events (none if None)
            rotation_interval_seconds: Nominal segment duration
            flush_grace_seconds: Bounded wait for the encoder's final chunk
            finalize_workers: Threads transcoding closed segments
            clear_on_start: Remove prior store contents when a session starts
            clock: Time source for session timestamps
        """
        if rotation_interval_seconds <= 0:
            raise ValueError(f"Rotation interval must be positive: {rotation_interval_seconds}")
        if finalize_workers < 1:
            raise ValueError(f"Need at least one finalize worker: {finalize_workers}")

        self.store = store
        self.encoder = encoder
        self.transcoder = transcoder or PassthroughTranscoder()
        self.builder = builder or ManifestBuilder()
        self.publisher = publisher
        self.rotation_interval_seconds = rotation_interval_seconds
        self.flush_grace_seconds = flush_grace_seconds
        self.finalize_workers = finalize_workers
        self.clear_on_start = clear_on_start
        self.clock = clock

        self._session: Optional[Session] = None
        self._next_id = 0

        # start()/end() exclusion, and rotate() vs. the final flush in end()
        self._state_lock = threading.Lock()
        self._rotation_lock = threading.Lock()
        self._end_requested = threading.Event()
        self._stop_loop = threading.Event()
        self._loop_thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

        # Commit sequencing
        self._commit_lock = threading.Lock()
        self._ready: Dict[int, _Outcome] = {}
        self._next_commit_id = 0

        logger.info(f"SegmentRecorder ready: {rotation_interval_seconds}s segments, "
                    f"{flush_grace_seconds * 1000:.0f}ms flush grace, {finalize_workers} finalize workers")

    @classmethod
    def from_config(cls, config, store: SegmentStore, encoder: AbstractEncoder,
                    transcoder: Optional[AbstractTranscoder] = None,
                    publisher: Optional[SegmentEventPublisher] = None,
                    clock: Callable[[], float] = time.time) -> "SegmentRecorder":
        return cls(
            store=store,
            encoder=encoder,
            transcoder=transcoder,
            publisher=publisher,
            rotation_interval_seconds=float(config.get('recorder.rotation_interval_seconds',
                                                       DEFAULT_ROTATION_INTERVAL_SECONDS)),
            flush_grace_seconds=float(config.get('recorder.flush_grace_seconds',
                                                 DEFAULT_FLUSH_GRACE_SECONDS)),
            finalize_workers=int(config.get('recorder.finalize_workers', 2)),
            clear_on_start=bool(config.get('storage.clear_on_start', True)),
            clock=clock,
        )

    @property
    def session(self) -> Optional[Session]:
        """The current or most recent session."""
        return self._session

    @property
    def is_recording(self) -> bool:
        session = self._session
        return session is not None and session.state is SessionState.RECORDING

    def start(self, session_id: Optional[str] = None) -> Session:
        """Start a new session with a fresh id range.

        Raises:
            RecorderBusy: a session is already recording
            AcquisitionFailure: the encoder could not be opened or started
            StoreFailure: prior store contents could not be cleared
        """
        with self._state_lock:
            if self.is_recording:
                raise RecorderBusy(f"Session {self._session.session_id} is already recording")

            session = Session(
                session_id=session_id or new_session_id(),
                rotation_interval_seconds=self.rotation_interval_seconds,
            )
            logger.info(f"Starting session {session.session_id}...")

            try:
                self.encoder.open()
                self.encoder.start()
            except AcquisitionFailure as e:
                logger.error(f"Cannot start session {session.session_id}: {e}")
                self._close_encoder()
                raise
            except OSError as e:
                logger.error(f"Cannot start session {session.session_id}: {e}")
                self._close_encoder()
                raise AcquisitionFailure(str(e)) from e

            # Previous session files are only removed once capture is running.
            if self.clear_on_start:
                try:
                    self.store.clear()
                except (OSError, StoreFailure) as e:
                    logger.error(f"Cannot start session {session.session_id}: {e}")
                    self._close_encoder()
                    raise StoreFailure(f"Failed to clear previous session: {e}") from e

            self._next_id = 0
            with self._commit_lock:
                self._ready = {}
                self._next_commit_id = 0
            self._end_requested.clear()
            self._stop_loop.clear()
            self._executor = ThreadPoolExecutor(max_workers=self.finalize_workers,
                                                thread_name_prefix="SegmentFinalize")

            session.transition(SessionState.RECORDING, self.clock())
            self._session = session
            self._write_live_manifest(session)

            self._loop_thread = threading.Thread(target=self._rotation_loop,
                                                 name="SegmentRotation", daemon=True)
            self._loop_thread.start()

            logger.info(f"Session {session.session_id} recording")
            self._publish("session_started", SessionEvent(
                session_id=session.session_id,
                event_type="started",
                metadata={"rotation_interval_seconds": self.rotation_interval_seconds},
            ))
            return session

    def _rotation_loop(self) -> None:
        """Tick on a fixed schedule until end() sets the stop event.

        Deadlines advance by whole intervals from the loop start, so time spent
        inside rotate() does not stretch the cadence.
        """
        deadline = time.monotonic() + self.rotation_interval_seconds
        while not self._stop_loop.wait(max(0.0, deadline - time.monotonic())):
            try:
                self.rotate()
            except Exception as e:
                logger.error(f"Rotation failed: {e}", exc_info=True)
            deadline = next_rotation_deadline(deadline, self.rotation_interval_seconds, time.monotonic())
        logger.debug("Rotation loop exiting")

    def rotate(self) -> Optional[int]:
        """Close the running segment and open the next one.

        Returns:
            Id assigned to the closed segment, or None if it was empty or no
            session is recording
        """
        with self._rotation_lock:
            session = self._session
            if session is None or session.state is not SessionState.RECORDING:
                return None

            if not self.encoder.is_running:
                # A previous restart failed; try again on this tick.
                if not self._end_requested.is_set():
                    self._restart_encoder()
                return None

            blob = self._close_current_segment()
            if not self._end_requested.is_set():
                self._restart_encoder()
            return self._submit_blob(session, blob)

    def _close_current_segment(self) -> bytes:
        self.encoder.stop()
        return self.encoder.drain(self.flush_grace_seconds)

    def _restart_encoder(self) -> None:
        try:
            self.encoder.start()
        except AcquisitionFailure as e:
            logger.error(f"Encoder restart failed, retrying next rotation: {e}")

    def _close_encoder(self) -> None:
        try:
            self.encoder.close()
        except Exception as e:
            logger.error(f"Error closing encoder: {e}")

    def _submit_blob(self, session: Session, blob: bytes) -> Optional[int]:
        if not blob:
            logger.debug("Closed segment was empty; no id assigned")
            return None

        segment_id = self._next_id
        self._next_id += 1
        logger.debug(f"Closed {segment_filename(segment_id)} ({len(blob)} bytes raw)")
        future = self._executor.submit(self._finalize, session, segment_id, blob)
        future.add_done_callback(self._log_finalize_error)
        return segment_id

    def _log_finalize_error(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Segment finalize failed: {error}", exc_info=error)

    def _finalize(self, session: Session, segment_id: int, blob: bytes) -> None:
        outcome: _Outcome
        try:
            data = self.transcoder.transcode(blob)
        except TranscodeFailure as e:
            outcome = DroppedSegment(id=segment_id, reason=str(e), stage="transcode")
        except Exception as e:
            logger.error(f"Unexpected transcoder error for segment {segment_id}: {e}", exc_info=True)
            outcome = DroppedSegment(id=segment_id, reason=str(e), stage="transcode")
        else:
            outcome = Segment(
                id=segment_id,
                data=data,
                duration_seconds=session.rotation_interval_seconds,
            )
        self._sequence(session, segment_id, outcome)

    def _sequence(self, session: Session, segment_id: int, outcome: _Outcome) -> None:
        """Commit outcomes strictly in id order, holding back early finishers."""
        with self._commit_lock:
            self._ready[segment_id] = outcome
            while self._next_commit_id in self._ready:
                pending = self._ready.pop(self._next_commit_id)
                self._next_commit_id += 1
                try:
                    self._commit(session, pending)
                except Exception as e:
                    # Later ids must still be committed.
                    logger.error(f"Commit of {segment_filename(pending.id)} failed: {e}", exc_info=True)

    def _commit(self, session: Session, outcome: _Outcome) -> None:
        if isinstance(outcome, DroppedSegment):
            self._drop(session, outcome)
            return

        try:
            info = self.store.put(outcome)
        except StoreFailure as e:
            self._drop(session, DroppedSegment(id=outcome.id, reason=str(e), stage="store"))
            return
        except Exception as e:
            logger.error(f"Unexpected store error for {outcome.filename}: {e}", exc_info=True)
            self._drop(session, DroppedSegment(id=outcome.id, reason=str(e), stage="store"))
            return

        session.record_segment(info)
        logger.info(f"Stored segment: {info.filename} ({info.size_bytes / 1024:.1f} KB)")
        self._publish("segment_stored", SegmentEvent(
            session_id=session.session_id,
            segment_id=info.id,
            filename=info.filename,
            size_bytes=info.size_bytes,
        ))
        self._write_live_manifest(session)

    def _drop(self, session: Session, dropped: DroppedSegment) -> None:
        session.record_drop(dropped)
        filename = segment_filename(dropped.id)
        if dropped.stage == "store":
            logger.error(f"Dropped {filename}: store write failed, segment lost: {dropped.reason}")
        else:
            logger.warning(f"Dropped {filename}: {dropped.stage} failed: {dropped.reason}")
        self._publish("segment_dropped", SegmentEvent(
            session_id=session.session_id,
            segment_id=dropped.id,
            filename=filename,
            reason=dropped.reason,
            stage=dropped.stage,
        ))

    def _publish(self, name: str, event) -> None:
        """Send an event; a failing listener never reaches the pipeline."""
        if not self.publisher:
            return
        try:
            getattr(self.publisher, name)(event)
        except Exception as e:
            logger.error(f"Listener for {name} failed: {e}", exc_info=True)

    def _write_live_manifest(self, session: Session) -> None:
        text = self.builder.live_manifest(session.segments, session.rotation_interval_seconds)
        try:
            self.store.put_manifest(text)
        except StoreFailure as e:
            # Rewritten in full on the next commit.
            logger.warning(f"Live manifest write failed: {e}")
            return

        logger.debug(f"Live manifest updated ({session.segment_count} segments)")
        self._publish("manifest_updated", SessionEvent(
            session_id=session.session_id,
            event_type="manifest_updated",
            metadata={"segments": session.segment_count},
        ))

    def end(self) -> SessionSummary:
        """End the session, flush the open segment and write the sealed manifest.

        Raises:
            RecorderIdle: no session is recording
            ManifestWriteFailure: the sealed manifest could not be persisted
        """
        with self._state_lock:
            session = self._session
            if session is None or session.state is not SessionState.RECORDING:
                raise RecorderIdle("No session is recording")

            logger.info(f"Ending session {session.session_id}...")
            self._end_requested.set()
            self._stop_loop.set()
            if self._loop_thread:
                self._loop_thread.join()
                self._loop_thread = None

            with self._rotation_lock:
                if self.encoder.is_running:
                    blob = self._close_current_segment()
                    self._submit_blob(session, blob)
                self._close_encoder()

            # In-flight finalizes, including the last segment, complete here.
            self._executor.shutdown(wait=True)
            self._executor = None

            session.transition(SessionState.ENDED, self.clock())
            summary = SessionSummary(
                session_id=session.session_id,
                segment_count=session.segment_count,
                dropped_count=len(session.dropped),
                total_size_bytes=session.total_size_bytes,
                duration_seconds=session.duration_seconds,
                manifest_name=MANIFEST_NAME,
            )
            self._seal(session)
            return summary

    def _seal(self, session: Session) -> None:
        text = self.builder.sealed_manifest(session.segments, session.rotation_interval_seconds)
        try:
            self.store.put_manifest(text)
        except StoreFailure as e:
            logger.error(f"Sealed manifest for session {session.session_id} was not written: {e}")
            self._publish("session_ended", SessionEvent(
                session_id=session.session_id,
                event_type="manifest_failed",
                metadata={"segments": session.segment_count, "error": str(e)},
            ))
            raise ManifestWriteFailure(f"Sealed manifest not written: {e}") from e

        logger.info(f"Session {session.session_id} ended: sealed manifest written with "
                    f"{session.segment_count} segments ({len(session.dropped)} dropped)")
        self._publish("session_ended", SessionEvent(
            session_id=session.session_id,
            event_type="ended",
            metadata={
                "segments": session.segment_count,
                "dropped": len(session.dropped),
                "total_size_bytes": session.total_size_bytes,
            },
        ))

    def cleanup(self) -> None:
        """End any running session, logging instead of raising."""
        try:
            if self.is_recording:
                self.end()
            logger.info("SegmentRecorder cleaned up")
        except ManifestWriteFailure as e:
            logger.error(f"Error during SegmentRecorder cleanup: {e}")
