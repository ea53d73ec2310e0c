"""Tests for track orientation and render geometry."""

import pytest

from vidmerge.media.transform import AffineTransform, Rect, Size, natural_size


class TestPortraitClassification:
    """Tests for AffineTransform.is_portrait on the cardinal transforms."""

    @pytest.mark.parametrize(
        "a,b,c,d",
        [
            (0, 1, -1, 0),
            (0, -1, 1, 0),
        ],
    )
    def test_quarter_turns_are_portrait(self, a, b, c, d):
        """90 and 270 degree transforms are portrait."""
        assert AffineTransform(a=a, b=b, c=c, d=d).is_portrait is True

    @pytest.mark.parametrize(
        "a,b,c,d",
        [
            (1, 0, 0, 1),  # identity
            (-1, 0, 0, -1),  # 180 degrees
        ],
    )
    def test_upright_and_upside_down_are_not_portrait(self, a, b, c, d):
        """Identity and 180 degree transforms are not portrait."""
        assert AffineTransform(a=a, b=b, c=c, d=d).is_portrait is False

    def test_translation_is_ignored(self):
        """iPhone portrait transforms carry a translation; it does not matter."""
        transform = AffineTransform(a=0, b=1, c=-1, d=0, tx=1080, ty=0)
        assert transform.is_portrait is True

    def test_diagonal_rotation_is_not_portrait(self):
        """A 45 degree rotation is not classified as portrait and does not raise."""
        assert AffineTransform.rotation(45).is_portrait is False
        assert AffineTransform.rotation(45).quarter_turns is None

    def test_skewed_transform_is_not_portrait(self):
        """Shear is not a supported orientation."""
        transform = AffineTransform(a=0, b=1, c=-1, d=0.5)
        assert transform.decompose().skew != 0
        assert transform.is_portrait is False

    def test_degenerate_transform_is_not_portrait(self):
        """An all-zero matrix decomposes to zero scale."""
        transform = AffineTransform(a=0, b=0, c=0, d=0)
        assert transform.quarter_turns is None
        assert transform.is_portrait is False


class TestDecomposition:
    """Tests for rotation/scale/skew decomposition."""

    def test_identity(self):
        parts = AffineTransform.identity().decompose()
        assert parts.rotation == 0
        assert parts.scale_x == 1
        assert parts.scale_y == 1
        assert parts.skew == 0
        assert parts.mirrored is False

    def test_clockwise_quarter_turn(self):
        parts = AffineTransform(a=0, b=1, c=-1, d=0).decompose()
        assert parts.rotation == pytest.approx(90)
        assert parts.scale_y == pytest.approx(1)

    def test_half_turn_is_180_not_minus_180(self):
        parts = AffineTransform(a=-1, b=-0.0, c=0, d=-1).decompose()
        assert parts.rotation == pytest.approx(180)

    def test_mirror(self):
        """A vertical flip has negative y scale."""
        parts = AffineTransform(a=1, b=0, c=0, d=-1).decompose()
        assert parts.mirrored is True
        assert parts.rotation == 0

    def test_scaled_rotation_keeps_quarter_turns(self):
        transform = AffineTransform(a=0, b=2, c=-2, d=0)
        assert transform.quarter_turns == 1

    @pytest.mark.parametrize("degrees,turns", [(0, 0), (90, 1), (180, 2), (270, 3), (-90, 3)])
    def test_rotation_factory(self, degrees, turns):
        """Cardinal rotations snap to exact coefficients."""
        transform = AffineTransform.rotation(degrees)
        assert transform.quarter_turns == turns
        assert {transform.a, transform.b, transform.c, transform.d} <= {-1, 0, 1}


class TestFromStream:
    """Tests for building transforms from probed stream data."""

    def test_matrix_wins_over_rotation(self):
        transform = AffineTransform.from_stream(matrix=(0, 1, -1, 0, 0, 0), rotation=180)
        assert transform.quarter_turns == 1

    def test_rotation_only(self):
        assert AffineTransform.from_stream(rotation=90).quarter_turns == 1

    def test_nothing_is_identity(self):
        assert AffineTransform.from_stream() == AffineTransform.identity()


class TestNaturalSize:
    """Tests for orientation-corrected render size."""

    def test_portrait_swaps_dimensions(self):
        assert natural_size(True, Size(1080, 1920)) == Size(1920, 1080)

    def test_landscape_keeps_dimensions(self):
        assert natural_size(False, Size(1080, 1920)) == Size(1080, 1920)


class TestRect:
    """Tests for Rect helpers."""

    def test_from_size(self):
        rect = Rect.from_size(Size(1920, 1080))
        assert (rect.x, rect.y, rect.width, rect.height) == (0, 0, 1920, 1080)
        assert rect.size == Size(1920, 1080)
