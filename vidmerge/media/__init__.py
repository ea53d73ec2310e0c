from vidmerge.media.asset import SourceAsset, TimeRange, Track, TrackKind
from vidmerge.media.composition import (
    Composition,
    CompositionInstruction,
    LayerInstruction,
    build_composition,
)
from vidmerge.media.transform import AffineTransform, Rect, Size, natural_size

__all__ = [
    "SourceAsset",
    "Track",
    "TrackKind",
    "TimeRange",
    "Composition",
    "CompositionInstruction",
    "LayerInstruction",
    "build_composition",
    "AffineTransform",
    "Rect",
    "Size",
    "natural_size",
]
