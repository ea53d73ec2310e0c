"""Mutable compositions and their compositing instructions.

A composition is assembled from source tracks by copying time ranges into
new composition tracks. It describes what the export reads; the instruction
describes how the video track is presented over the composition duration.
"""

import logging
from dataclasses import dataclass, field
from itertools import count
from pathlib import Path
from typing import Optional

from vidmerge.exceptions import CompositionBuildError
from vidmerge.media.asset import TimeRange, Track, TrackKind
from vidmerge.media.transform import AffineTransform

logger = logging.getLogger(__name__)

# Container and stream durations disagree by a few packets (AAC priming,
# rounding to the stream timebase).
RANGE_TOLERANCE_MS = 100


@dataclass(frozen=True)
class Segment:
    """A source time range placed at a composition time."""

    source_path: Path
    source_track: Track
    source_range: TimeRange
    at_ms: int

    @property
    def target_range(self) -> TimeRange:
        return TimeRange(self.at_ms, self.source_range.duration_ms)


@dataclass
class CompositionTrack:
    """A track of a composition, populated by inserting source ranges."""

    track_id: int
    kind: TrackKind
    segments: list[Segment] = field(default_factory=list)

    def insert_time_range(
        self,
        time_range: TimeRange,
        source_track: Track,
        source_path: Path,
        at_ms: int = 0,
    ) -> None:
        """
        Copy time_range of source_track into this track at at_ms.

        Raises:
            CompositionBuildError: If the source track does not cover time_range
                or its kind differs from this track
        """
        if source_track.kind is not self.kind:
            raise CompositionBuildError(
                f"Cannot insert {source_track.kind.value} track into {self.kind.value} track"
            )
        if time_range.duration_ms <= 0:
            raise CompositionBuildError(f"Empty time range: {time_range.to_dict()}")
        available = source_track.time_range
        if not available.contains(time_range, tolerance_ms=RANGE_TOLERANCE_MS):
            raise CompositionBuildError(
                kind=self.kind.value,
                requested=(time_range.start_ms / 1000, time_range.end_ms / 1000),
                available=(available.start_ms / 1000, available.end_ms / 1000),
            )
        self.segments.append(Segment(source_path, source_track, time_range, at_ms))

    @property
    def time_range(self) -> TimeRange:
        if not self.segments:
            return TimeRange(0, 0)
        start = min(s.target_range.start_ms for s in self.segments)
        end = max(s.target_range.end_ms for s in self.segments)
        return TimeRange(start, end - start)


@dataclass
class Composition:
    """An editable container combining tracks for export."""

    tracks: list[CompositionTrack] = field(default_factory=list)
    _ids: count = field(default_factory=lambda: count(1), repr=False)

    def add_track(self, kind: TrackKind) -> CompositionTrack:
        track = CompositionTrack(track_id=next(self._ids), kind=kind)
        self.tracks.append(track)
        return track

    def tracks_with_kind(self, kind: TrackKind) -> list[CompositionTrack]:
        return [t for t in self.tracks if t.kind is kind]

    @property
    def video_track(self) -> Optional[CompositionTrack]:
        tracks = self.tracks_with_kind(TrackKind.VIDEO)
        return tracks[0] if tracks else None

    @property
    def audio_track(self) -> Optional[CompositionTrack]:
        tracks = self.tracks_with_kind(TrackKind.AUDIO)
        return tracks[0] if tracks else None

    @property
    def duration_ms(self) -> int:
        return max((t.time_range.end_ms for t in self.tracks), default=0)


def build_composition(
    duration_ms: int,
    source_path: Path,
    video_track: Track,
    audio_track: Optional[Track] = None,
) -> Composition:
    """Copy [0, duration) of the video track, and the audio track if given, into a new composition.

    Raises:
        CompositionBuildError: If a source track does not cover [0, duration)
    """
    composition = Composition()
    full_range = TimeRange(0, duration_ms)

    video = composition.add_track(TrackKind.VIDEO)
    video.insert_time_range(full_range, video_track, source_path, at_ms=0)

    if audio_track is not None:
        audio = composition.add_track(TrackKind.AUDIO)
        audio.insert_time_range(full_range, audio_track, source_path, at_ms=0)

    logger.info(
        f"[COMPOSITION] Built {len(composition.tracks)} tracks over {duration_ms}ms "
        f"(video stream {video_track.index}"
        f"{f', audio stream {audio_track.index}' if audio_track else ''})"
    )
    return composition


# ============================================================================
# Instructions
# ============================================================================


@dataclass(frozen=True)
class OpacityRamp:
    """Opacity from at_ms onwards (a step, not a fade)."""

    at_ms: int
    opacity: float


@dataclass
class LayerInstruction:
    """How one composition track is presented: transform and opacity over time."""

    track_id: int
    transform: AffineTransform = field(default_factory=AffineTransform.identity)
    opacity_ramps: list[OpacityRamp] = field(default_factory=list)

    @classmethod
    def for_track(
        cls, track: CompositionTrack, transform: AffineTransform, duration_ms: int
    ) -> "LayerInstruction":
        """Full opacity from zero, hidden at duration to suppress a stray final frame."""
        instruction = cls(track_id=track.track_id, transform=transform)
        instruction.set_opacity(1.0, at_ms=0)
        instruction.set_opacity(0.0, at_ms=duration_ms)
        return instruction

    def set_opacity(self, opacity: float, at_ms: int) -> None:
        self.opacity_ramps = [r for r in self.opacity_ramps if r.at_ms != at_ms]
        self.opacity_ramps.append(OpacityRamp(at_ms, max(0.0, min(1.0, opacity))))
        self.opacity_ramps.sort(key=lambda r: r.at_ms)

    def opacity_at(self, time_ms: int) -> float:
        opacity = 1.0
        for ramp in self.opacity_ramps:
            if ramp.at_ms > time_ms:
                break
            opacity = ramp.opacity
        return opacity

    @property
    def hidden_from_ms(self) -> Optional[int]:
        """First time after which the track stays fully transparent."""
        hidden_from = None
        for ramp in self.opacity_ramps:
            if ramp.opacity <= 0.0:
                if hidden_from is None:
                    hidden_from = ramp.at_ms
            else:
                hidden_from = None
        return hidden_from


@dataclass
class CompositionInstruction:
    """Presentation of the composition's video tracks over a time range."""

    time_range: TimeRange
    layer_instructions: list[LayerInstruction] = field(default_factory=list)
