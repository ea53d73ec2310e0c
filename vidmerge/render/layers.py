"""Render layer graph for overlay compositing.

Layer structure (bottom to top, all under one parent):
L1: video   - decoded video frames, filled in by the renderer during export
L2: overlay - the still image, clipped to its own frame
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from vidmerge.media.transform import Rect, Size


class LayerType(IntEnum):
    """Layer types ordered from bottom to top."""

    PARENT = 0
    VIDEO = 1
    OVERLAY = 2


@dataclass
class Layer:
    """A rectangle in the render frame, optionally with static image contents."""

    layer_type: LayerType
    frame: Rect
    contents: Optional[Image.Image] = None
    masks_to_bounds: bool = False
    sublayers: list["Layer"] = field(default_factory=list)

    def add_sublayer(self, layer: "Layer") -> None:
        """Add a layer above the existing sublayers."""
        self.sublayers.append(layer)

    def find(self, layer_type: LayerType) -> Optional["Layer"]:
        if self.layer_type is layer_type:
            return self
        for sublayer in self.sublayers:
            found = sublayer.find(layer_type)
            if found is not None:
                return found
        return None


@dataclass
class LayerStack:
    """Parent layer plus the layer the renderer fills with video frames."""

    parent: Layer
    video: Layer

    @property
    def overlay(self) -> Optional[Layer]:
        return self.parent.find(LayerType.OVERLAY)

    @property
    def render_size(self) -> Size:
        return self.parent.frame.size


def load_overlay_image(overlay: Union[Image.Image, str, Path]) -> Image.Image:
    """Accept a PIL image or a path to one, returning an RGBA image."""
    if isinstance(overlay, Image.Image):
        image = overlay
    else:
        with Image.open(overlay) as opened:
            image = opened.copy()
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return image


def build_layer_stack(
    overlay: Union[Image.Image, str, Path],
    size: Size,
    overlay_rect: Rect,
) -> LayerStack:
    """Build parent, video and overlay layers for a render size.

    Args:
        overlay: Overlay image or path to it
        size: Orientation-corrected render size
        overlay_rect: Resolved overlay frame in render coordinates

    Returns:
        LayerStack whose parent holds the video layer with the overlay above it
    """
    frame = Rect.from_size(size)

    overlay_layer = Layer(
        layer_type=LayerType.OVERLAY,
        frame=overlay_rect,
        contents=load_overlay_image(overlay),
        masks_to_bounds=True,
    )
    video_layer = Layer(layer_type=LayerType.VIDEO, frame=frame)

    parent_layer = Layer(layer_type=LayerType.PARENT, frame=frame)
    parent_layer.add_sublayer(video_layer)
    parent_layer.add_sublayer(overlay_layer)

    return LayerStack(parent=parent_layer, video=video_layer)
