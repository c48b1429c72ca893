"""HLS manifest generation."""

from .builder import ManifestBuilder

__all__ = ["ManifestBuilder"]
