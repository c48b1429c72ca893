"""Live and sealed HLS manifest text from an ordered segment list."""

import math
from typing import Iterable, List, Protocol


class ManifestEntry(Protocol):
    filename: str
    duration_seconds: float


HLS_VERSION = 3
END_MARKER = "#EXT-X-ENDLIST"
VOD_MARKER = "#EXT-X-PLAYLIST-TYPE:VOD"


class ManifestBuilder:
    """Stateless manifest generator.

    Both views share the same header and entry lines. The live view has no
    end marker, so the text for segments [0..k] is a prefix of the text for
    [0..k+1]. The sealed view declares a VOD playlist and ends with
    #EXT-X-ENDLIST.
    """

    def _header(self, rotation_interval_seconds: float) -> List[str]:
        if rotation_interval_seconds <= 0:
            raise ValueError(f"Rotation interval must be positive: {rotation_interval_seconds}")
        return [
            "#EXTM3U",
            f"#EXT-X-VERSION:{HLS_VERSION}",
            f"#EXT-X-TARGETDURATION:{math.ceil(rotation_interval_seconds)}",
            "#EXT-X-MEDIA-SEQUENCE:0",
        ]

    def _entries(self, segments: Iterable[ManifestEntry]) -> List[str]:
        lines = []
        for segment in segments:
            lines.append(f"#EXTINF:{segment.duration_seconds:.6f},")
            lines.append(segment.filename)
        return lines

    def live_manifest(self, segments: Iterable[ManifestEntry],
                      rotation_interval_seconds: float) -> str:
        """Growing playlist for segments recorded so far."""
        lines = self._header(rotation_interval_seconds) + self._entries(segments)
        return "\n".join(lines) + "\n"

    def sealed_manifest(self, segments: Iterable[ManifestEntry],
                        rotation_interval_seconds: float) -> str:
        """Final on-demand playlist, written once when the session ends."""
        lines = self._header(rotation_interval_seconds)
        lines.append(VOD_MARKER)
        lines.extend(self._entries(segments))
        lines.append(END_MARKER)
        return "\n".join(lines) + "\n"
