"""Track orientation and render geometry.

A track's preferred transform is the 2D affine transform recorded with the
stream that maps stored pixels to display orientation:

    [ a  b  0 ]
    [ c  d  0 ]
    [ tx ty 1 ]

The transform is decomposed into rotation, scale and skew so orientation can
be answered for any transform instead of a handful of literal matrices.
"""

import math
from dataclasses import dataclass
from typing import Optional

# Coefficients from 16.16 fixed point matrices are exact, but rotations built
# from angles are not.
_EPSILON = 1e-6


@dataclass(frozen=True)
class Size:
    """Width/height pair in pixels."""

    width: float
    height: float

    def transposed(self) -> "Size":
        return Size(self.height, self.width)


@dataclass(frozen=True)
class Rect:
    """Rectangle in render-frame coordinates (origin top left)."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_size(cls, size: Size) -> "Rect":
        return cls(0, 0, size.width, size.height)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)


@dataclass(frozen=True)
class Decomposition:
    """Rotation/scale/skew components of a 2x2 linear transform."""

    rotation: float  # degrees, (-180, 180]
    scale_x: float
    scale_y: float  # negative when the transform mirrors
    skew: float  # shear factor, 0 for rigid transforms

    @property
    def mirrored(self) -> bool:
        return self.scale_y < 0


@dataclass(frozen=True)
class AffineTransform:
    """Preferred transform of a video track."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def rotation(cls, degrees: float) -> "AffineTransform":
        """Build a pure rotation, snapping cardinal angles to exact values."""
        quarter = degrees / 90.0
        if abs(quarter - round(quarter)) < _EPSILON:
            cos, sin = [(1, 0), (0, 1), (-1, 0), (0, -1)][int(round(quarter)) % 4]
        else:
            radians = math.radians(degrees)
            cos, sin = math.cos(radians), math.sin(radians)
        return cls(a=cos, b=sin, c=-sin, d=cos)

    @classmethod
    def from_stream(
        cls,
        matrix: Optional[tuple[float, float, float, float, float, float]] = None,
        rotation: Optional[float] = None,
    ) -> "AffineTransform":
        """Build from a probed display matrix, else a rotation angle, else identity."""
        if matrix is not None:
            return cls(*matrix)
        if rotation is not None:
            return cls.rotation(rotation)
        return cls.identity()

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def decompose(self) -> Decomposition:
        """
        Split the linear part into rotation, scale and skew (QR style).

        The first row (a, b) fixes rotation and x scale; what remains of the
        second row becomes skew and y scale. Degenerate transforms decompose
        to zero scale.
        """
        scale_x = math.hypot(self.a, self.b)
        if scale_x < _EPSILON:
            return Decomposition(rotation=0.0, scale_x=0.0, scale_y=0.0, skew=0.0)
        rotation = math.degrees(math.atan2(self.b, self.a))
        if rotation <= -180.0:
            rotation += 360.0
        scale_y = self.determinant / scale_x
        skew = (self.a * self.c + self.b * self.d) / (scale_x * scale_x)
        return Decomposition(rotation=rotation, scale_x=scale_x, scale_y=scale_y, skew=skew)

    @property
    def quarter_turns(self) -> Optional[int]:
        """Clockwise quarter turns (0-3), or None for non-cardinal transforms."""
        parts = self.decompose()
        if parts.scale_x < _EPSILON or abs(parts.scale_y) < _EPSILON:
            return None
        if abs(parts.skew) > _EPSILON:
            return None
        quarter = parts.rotation / 90.0
        if abs(quarter - round(quarter)) > _EPSILON:
            return None
        return int(round(quarter)) % 4

    @property
    def is_portrait(self) -> bool:
        """True when display orientation is rotated 90 or 270 degrees from storage."""
        return self.quarter_turns in (1, 3)


def natural_size(is_portrait: bool, size: Size) -> Size:
    """Orientation-corrected render size for a track's encoded size."""
    return size.transposed() if is_portrait else size
