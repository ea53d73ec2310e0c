"""Overlay placement policies."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from vidmerge.media.transform import Rect, Size


class PlacementMode(Enum):
    """How the overlay is positioned on the video frame."""

    STRETCH_FIT = "stretch_fit"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Placement:
    """Where the overlay is drawn, in render-frame coordinates.

    stretch_fit stretches the overlay over the entire frame, which suits
    drawings made on top of the video. custom takes an explicit rectangle
    verbatim; out-of-frame rectangles are not clamped and render clipped.
    """

    mode: PlacementMode = PlacementMode.STRETCH_FIT
    custom_rect: Optional[Rect] = None

    @classmethod
    def stretch_fit(cls) -> "Placement":
        return cls(PlacementMode.STRETCH_FIT)

    @classmethod
    def custom(cls, x: float, y: float, width: float, height: float) -> "Placement":
        return cls(PlacementMode.CUSTOM, Rect(x, y, width, height))

    def rect(self, video_size: Size) -> Rect:
        if self.mode is PlacementMode.CUSTOM and self.custom_rect is not None:
            return self.custom_rect
        return Rect.from_size(video_size)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        data = {"mode": self.mode.value}
        rect = self.custom_rect
        if rect is not None:
            data.update(x=rect.x, y=rect.y, width=rect.width, height=rect.height)
        return data
