"""Capture encoders and segment transcoders."""

from .base import AbstractEncoder, AbstractTranscoder
from .buffered import BufferedEncoder
from .ffmpeg_encoder import FFmpegEncoder
from .transcoder import PassthroughTranscoder, FFmpegTranscoder

__all__ = [
    'AbstractEncoder',
    'AbstractTranscoder',
    'BufferedEncoder',
    'FFmpegEncoder',
    'PassthroughTranscoder',
    'FFmpegTranscoder',
    'create_encoder',
    'create_transcoder',
]


def create_encoder(config) -> AbstractEncoder:
    """Build the encoder selected by `encoder.type`."""
    encoder_type = config.get('encoder.type', 'ffmpeg')
    if encoder_type == 'ffmpeg':
        return FFmpegEncoder.from_config(config)
    if encoder_type == 'buffered':
        return BufferedEncoder()
    raise ValueError(f"Unknown encoder type: {encoder_type}")


def create_transcoder(config) -> AbstractTranscoder:
    """FFmpeg transcoding when `transcode.enabled`, passthrough otherwise."""
    if not config.get('transcode.enabled', True):
        return PassthroughTranscoder()
    return FFmpegTranscoder(
        ffmpeg_binary=config.get('transcode.ffmpeg_binary', 'ffmpeg'),
        timeout_seconds=float(config.get('transcode.timeout_seconds', 30.0)),
    )
