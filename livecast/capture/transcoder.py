"""Transcoders turning encoder blobs into MPEG-TS segments."""

import logging
import subprocess
from typing import List

from ..errors import TranscodeFailure
from .base import AbstractTranscoder

logger = logging.getLogger(__name__)


class PassthroughTranscoder(AbstractTranscoder):
    """Used when the encoder already produces the final container."""

    def transcode(self, data: bytes) -> bytes:
        return data


class FFmpegTranscoder(AbstractTranscoder):
    """Converts WebM (VP8/Opus) blobs to MPEG-TS (H.264/AAC) through ffmpeg pipes."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg", timeout_seconds: float = 30.0):
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout_seconds = timeout_seconds

    def build_command(self) -> List[str]:
        return [
            self.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-i", "pipe:0",
            "-c:v", "libx264",
            "-preset", "ultrafast",
            "-c:a", "aac",
            "-f", "mpegts",
            "pipe:1",
        ]

    def transcode(self, data: bytes) -> bytes:
        if not data:
            raise TranscodeFailure("Empty input")

        try:
            result = subprocess.run(
                self.build_command(),
                input=data,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError:
            raise TranscodeFailure(f"{self.ffmpeg_binary} not found") from None
        except subprocess.TimeoutExpired:
            raise TranscodeFailure(f"ffmpeg timed out after {self.timeout_seconds}s") from None

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            last_line = stderr.splitlines()[-1] if stderr else "no output"
            raise TranscodeFailure(f"ffmpeg exited with {result.returncode}: {last_line}")
        if not result.stdout:
            raise TranscodeFailure("ffmpeg produced no output")

        logger.debug(f"Transcoded {len(data)} bytes to {len(result.stdout)} bytes")
        return result.stdout
