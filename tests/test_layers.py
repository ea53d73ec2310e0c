"""Tests for the render layer graph.

Layer structure (under one parent):
L2: overlay (still image, clipped to its frame)
L1: video (decoded frames)
"""

from PIL import Image

from vidmerge.media.transform import Rect, Size
from vidmerge.render.layers import (
    Layer,
    LayerType,
    build_layer_stack,
    load_overlay_image,
)


class TestLayerType:
    """Tests for LayerType enum."""

    def test_layer_order(self):
        """Parent is the root, overlay is the top."""
        layers = sorted(LayerType, key=lambda x: x.value)
        assert layers[0] == LayerType.PARENT
        assert layers[-1] == LayerType.OVERLAY


class TestBuildLayerStack:
    """Tests for build_layer_stack."""

    def test_full_frame_overlay(self, overlay_image):
        stack = build_layer_stack(overlay_image, Size(1920, 1080), Rect(0, 0, 1920, 1080))

        assert stack.parent.frame == Rect(0, 0, 1920, 1080)
        assert stack.video.frame == Rect(0, 0, 1920, 1080)
        assert stack.overlay.frame == Rect(0, 0, 1920, 1080)
        assert stack.render_size == Size(1920, 1080)

    def test_overlay_is_above_video(self, overlay_image):
        stack = build_layer_stack(overlay_image, Size(640, 360), Rect(0, 0, 640, 360))
        types = [layer.layer_type for layer in stack.parent.sublayers]
        assert types == [LayerType.VIDEO, LayerType.OVERLAY]
        assert stack.parent.sublayers[0] is stack.video

    def test_overlay_contents_and_clipping(self, overlay_image):
        stack = build_layer_stack(overlay_image, Size(640, 360), Rect(10, 20, 200, 100))
        overlay = stack.overlay
        assert overlay.frame == Rect(10, 20, 200, 100)
        assert overlay.masks_to_bounds is True
        assert overlay.contents.size == overlay_image.size
        assert stack.video.contents is None


class TestLayer:
    """Tests for Layer helpers."""

    def test_find(self):
        parent = Layer(LayerType.PARENT, Rect(0, 0, 10, 10))
        child = Layer(LayerType.VIDEO, Rect(0, 0, 10, 10))
        parent.add_sublayer(child)
        assert parent.find(LayerType.VIDEO) is child
        assert parent.find(LayerType.OVERLAY) is None


class TestLoadOverlayImage:
    """Tests for load_overlay_image."""

    def test_converts_to_rgba(self):
        image = load_overlay_image(Image.new("RGB", (4, 4), (0, 255, 0)))
        assert image.mode == "RGBA"

    def test_from_path(self, temp_output_dir):
        path = temp_output_dir / "logo.png"
        Image.new("RGBA", (8, 6), (0, 0, 255, 255)).save(path)
        image = load_overlay_image(path)
        assert image.size == (8, 6)
        assert image.mode == "RGBA"
