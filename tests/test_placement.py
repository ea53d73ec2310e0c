"""Tests for overlay placement policies."""

from vidmerge.media.transform import Rect, Size
from vidmerge.render.placement import Placement, PlacementMode


class TestPlacement:
    """Tests for Placement.rect."""

    def test_default_is_stretch_fit(self):
        assert Placement().mode is PlacementMode.STRETCH_FIT

    def test_stretch_fit_covers_frame(self):
        """Stretch-to-fit yields the full render rectangle."""
        rect = Placement.stretch_fit().rect(Size(1920, 1080))
        assert rect == Rect(0, 0, 1920, 1080)

    def test_custom_is_verbatim(self):
        """Custom placement ignores the render size."""
        placement = Placement.custom(x=10, y=20, width=200, height=100)
        assert placement.rect(Size(1920, 1080)) == Rect(10, 20, 200, 100)
        assert placement.rect(Size(64, 64)) == Rect(10, 20, 200, 100)

    def test_custom_out_of_frame_is_not_clamped(self):
        placement = Placement.custom(x=-50, y=2000, width=300, height=300)
        assert placement.rect(Size(1920, 1080)) == Rect(-50, 2000, 300, 300)

    def test_to_dict(self):
        assert Placement.stretch_fit().to_dict() == {"mode": "stretch_fit"}
        assert Placement.custom(1, 2, 3, 4).to_dict() == {
            "mode": "custom",
            "x": 1,
            "y": 2,
            "width": 3,
            "height": 4,
        }
