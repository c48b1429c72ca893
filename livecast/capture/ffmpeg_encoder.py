#!/usr/bin/env python3
"""
FFmpegEncoder: captures a device through ffmpeg, one process per segment.

- open() checks that ffmpeg and the input device are usable
- start() launches ffmpeg writing WebM to a pipe; a reader thread collects it
- stop() asks ffmpeg to quit so it can finish the container
- drain() waits a bounded time for the reader to hit EOF, then kills ffmpeg
"""

import os
import shutil
import logging
import subprocess
import threading
from typing import List, Optional

from ..errors import AcquisitionFailure
from .base import AbstractEncoder

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024


class FFmpegEncoder(AbstractEncoder):
    def __init__(
        self,
        input_format: str = "v4l2",
        input_device: str = "/dev/video0",
        audio_format: Optional[str] = None,
        audio_device: Optional[str] = None,
        width: int = 1280,
        height: int = 720,
        frame_rate: int = 30,
        video_bitrate: int = 2000000,
        audio_bitrate: int = 128000,
        ffmpeg_binary: str = "ffmpeg",
    ):
        self.input_format = input_format
        self.input_device = input_device
        self.audio_format = audio_format
        self.audio_device = audio_device
        self.width = width
        self.height = height
        self.frame_rate = frame_rate
        self.video_bitrate = video_bitrate
        self.audio_bitrate = audio_bitrate
        self.ffmpeg_binary = ffmpeg_binary

        self._proc: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._running = False
        self._opened = False

    @classmethod
    def from_config(cls, config) -> "FFmpegEncoder":
        return cls(
            input_format=config.get('encoder.input_format', 'v4l2'),
            input_device=config.get('encoder.input_device', '/dev/video0'),
            audio_format=config.get('encoder.audio_format'),
            audio_device=config.get('encoder.audio_device'),
            width=int(config.get('encoder.width', 1280)),
            height=int(config.get('encoder.height', 720)),
            frame_rate=int(config.get('encoder.frame_rate', 30)),
            video_bitrate=int(config.get('encoder.video_bitrate', 2000000)),
            audio_bitrate=int(config.get('encoder.audio_bitrate', 128000)),
            ffmpeg_binary=config.get('transcode.ffmpeg_binary', 'ffmpeg'),
        )

    def open(self) -> None:
        if not shutil.which(self.ffmpeg_binary):
            raise AcquisitionFailure(f"{self.ffmpeg_binary} not found in PATH")
        # Device nodes can be checked up front; other inputs only fail on start.
        if self.input_device.startswith("/dev/") and not os.path.exists(self.input_device):
            raise AcquisitionFailure(f"Capture device not found: {self.input_device}")
        if self.input_device.startswith("/dev/") and not os.access(self.input_device, os.R_OK):
            raise AcquisitionFailure(f"Permission denied for capture device: {self.input_device}")
        self._opened = True
        logger.info(f"FFmpegEncoder opened {self.input_format}:{self.input_device}")

    def build_command(self) -> List[str]:
        cmd = [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel", "warning",
            "-f", self.input_format,
            "-framerate", str(self.frame_rate),
            "-video_size", f"{self.width}x{self.height}",
            "-i", self.input_device,
        ]
        has_audio = bool(self.audio_format and self.audio_device)
        if has_audio:
            cmd.extend(["-f", self.audio_format, "-i", self.audio_device])
        cmd.extend([
            "-c:v", "libvpx",
            "-b:v", str(self.video_bitrate),
            "-deadline", "realtime",
        ])
        if has_audio:
            cmd.extend(["-c:a", "libopus", "-b:a", str(self.audio_bitrate)])
        else:
            cmd.append("-an")
        cmd.extend(["-f", "webm", "pipe:1"])
        return cmd

    def start(self) -> None:
        if not self._opened:
            raise AcquisitionFailure("Encoder started before open()")

        cmd = self.build_command()
        logger.debug("Launching ffmpeg: %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                start_new_session=True,
            )
        except OSError as e:
            raise AcquisitionFailure(f"Failed to launch {self.ffmpeg_binary}: {e}") from e

        with self._lock:
            self._chunks = []
        self._proc = proc
        self._running = True
        self._reader = threading.Thread(target=self._read_output, args=(proc,),
                                        name="ffmpeg_encoder_reader", daemon=True)
        self._reader.start()
        threading.Thread(target=self._log_stderr, args=(proc,),
                         name="ffmpeg_encoder_stderr", daemon=True).start()

    def _read_output(self, proc: subprocess.Popen) -> None:
        stdout = proc.stdout
        assert stdout is not None
        while True:
            chunk = stdout.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            with self._lock:
                self._chunks.append(chunk)

    def _log_stderr(self, proc: subprocess.Popen) -> None:  # pragma: no cover - threaded logging helper
        stderr = proc.stderr
        if stderr is None:
            return
        for line in stderr:
            line = line.decode('utf-8', errors='replace').strip()
            if line:
                logger.debug(f"[ffmpeg] {line}")

    def stop(self) -> None:
        self._running = False
        proc = self._proc
        if not proc or not proc.stdin:
            return
        try:
            # 'q' lets ffmpeg write the container trailer before exiting.
            proc.stdin.write(b"q")
            proc.stdin.flush()
            proc.stdin.close()
        except (BrokenPipeError, OSError) as e:
            logger.debug("ffmpeg stdin close error: %r", e)

    def drain(self, timeout: float) -> bytes:
        reader = self._reader
        if reader:
            reader.join(timeout=timeout)
            if reader.is_alive():
                logger.warning(f"ffmpeg did not flush within {timeout:.3f}s; terminating")
                self._terminate()
                reader.join(timeout=1.0)
        self._reap()

        with self._lock:
            blob = b"".join(self._chunks)
            self._chunks = []
        return blob

    def _terminate(self) -> None:
        proc = self._proc
        if not proc or proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=1.5)
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg did not exit after SIGTERM; sending SIGKILL")
            proc.kill()
            proc.wait(timeout=1.0)

    def _reap(self) -> None:
        proc = self._proc
        self._proc = None
        self._reader = None
        if not proc:
            return
        try:
            rc = proc.wait(timeout=1.0)
            if rc not in (0, 255):
                logger.warning(f"ffmpeg exited with rc={rc}")
        except subprocess.TimeoutExpired:
            self._proc = proc
            self._terminate()
            self._proc = None

    def close(self) -> None:
        if self._running:
            self.stop()
        self._terminate()
        self._reap()
        self._opened = False
        logger.info("FFmpegEncoder closed")

    @property
    def is_running(self) -> bool:
        return self._running
