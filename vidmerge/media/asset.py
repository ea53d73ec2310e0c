"""Source assets and their tracks, as reported by ffprobe."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from vidmerge.media.transform import AffineTransform, Size
from vidmerge.utils import media_info

logger = logging.getLogger(__name__)


class TrackKind(Enum):
    """Media type of a track."""

    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class TimeRange:
    """Half-open range [start_ms, start_ms + duration_ms)."""

    start_ms: int
    duration_ms: int

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

    def contains(self, other: "TimeRange", tolerance_ms: int = 0) -> bool:
        """Check that other lies inside this range, allowing tolerance_ms slack at both ends."""
        return (
            other.start_ms >= self.start_ms - tolerance_ms
            and other.end_ms <= self.end_ms + tolerance_ms
        )

    def to_dict(self) -> dict[str, int]:
        return {"start_ms": self.start_ms, "duration_ms": self.duration_ms}


@dataclass(frozen=True)
class Track:
    """A single video or audio stream within an asset."""

    kind: TrackKind
    index: int  # ffmpeg stream index within the container
    time_range: TimeRange
    natural_size: Size = Size(0, 0)
    preferred_transform: AffineTransform = field(default_factory=AffineTransform.identity)
    codec: Optional[str] = None

    @classmethod
    def from_stream(cls, stream: dict[str, Any], asset_duration_ms: int) -> Optional["Track"]:
        """Build a track from an ffprobe stream entry, None for unsupported streams."""
        try:
            kind = TrackKind(stream.get("codec_type"))
        except ValueError:
            return None
        # Cover art is reported as a video stream
        if kind is TrackKind.VIDEO and (stream.get("disposition") or {}).get("attached_pic"):
            return None

        start_ms = media_info.seconds_to_ms(stream.get("start_time")) or 0
        duration_ms = media_info.seconds_to_ms(stream.get("duration"))
        if duration_ms is None:
            duration_ms = max(asset_duration_ms - start_ms, 0)

        if kind is TrackKind.VIDEO:
            transform = AffineTransform.from_stream(
                matrix=media_info.get_display_matrix(stream),
                rotation=media_info.get_stream_rotation(stream),
            )
            size = Size(stream.get("width") or 0, stream.get("height") or 0)
        else:
            transform = AffineTransform.identity()
            size = Size(0, 0)

        return cls(
            kind=kind,
            index=int(stream.get("index", 0)),
            time_range=TimeRange(start_ms, duration_ms),
            natural_size=size,
            preferred_transform=transform,
            codec=stream.get("codec_name"),
        )


@dataclass(frozen=True)
class SourceAsset:
    """A decodable media container: duration plus video and audio tracks."""

    path: Path
    duration_ms: int
    tracks: tuple[Track, ...] = ()

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SourceAsset":
        """
        Probe a media file.

        Raises:
            MediaProbeError: If ffprobe fails or reports no duration
        """
        path = Path(path)
        data = media_info.probe(str(path))
        duration_ms = media_info.seconds_to_ms(data.get("format", {}).get("duration"))
        if duration_ms is None:
            # Fall back to the longest stream
            durations = [
                media_info.seconds_to_ms(s.get("duration")) or 0 for s in data.get("streams", [])
            ]
            duration_ms = max(durations, default=0)

        tracks = []
        for stream in data.get("streams", []):
            track = Track.from_stream(stream, duration_ms)
            if track is not None:
                tracks.append(track)

        asset = cls(path=path, duration_ms=duration_ms, tracks=tuple(tracks))
        logger.info(
            f"[PROBE] Loaded {path.name}: duration={duration_ms}ms, "
            f"video={len(asset.video_tracks)}, audio={len(asset.audio_tracks)}"
        )
        return asset

    def tracks_with_kind(self, kind: TrackKind) -> list[Track]:
        return [track for track in self.tracks if track.kind is kind]

    @property
    def video_tracks(self) -> list[Track]:
        return self.tracks_with_kind(TrackKind.VIDEO)

    @property
    def audio_tracks(self) -> list[Track]:
        return self.tracks_with_kind(TrackKind.AUDIO)
