"""Rectangle helpers (pure, easily unit tested).

Rectangles are integer ``(x, y, width, height)`` in frame pixel coordinates.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Rect:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"negative rect size: {self.width}x{self.height}")

    @property
    def empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height

    def contains(self, other: "Rect") -> bool:
        """True when ``other`` lies inside this rect (edges may touch)."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def center_zoom(self, factor: float) -> "Rect":
        """Scale the rect about its own center.

        factor < 1 shrinks toward the center. Offsets and sizes are truncated
        to integers, so a shrunk rect never grows past the original edges.
        """
        half_w = int(self.width * (1.0 - factor) / 2)
        half_h = int(self.height * (1.0 - factor) / 2)
        return Rect(
            max(0, self.x + half_w),
            max(0, self.y + half_h),
            max(0, int(self.width * factor)),
            max(0, int(self.height * factor)),
        )

    def clip_to(self, width: int, height: int) -> "Rect":
        """Intersect with a ``width`` x ``height`` frame anchored at (0, 0)."""
        x0 = min(max(0, self.x), width)
        y0 = min(max(0, self.y), height)
        x1 = min(max(0, self.right), width)
        y1 = min(max(0, self.bottom), height)
        return Rect(x0, y0, max(0, x1 - x0), max(0, y1 - y0))

    @classmethod
    def from_points(cls, points: Iterable[Tuple[int, int]]) -> "Rect":
        """Axis-aligned bounding box of integer points.

        The first point initialises all four edges, so coordinates equal to 0
        are handled like any other value. Raises ValueError on no points.
        """
        it = iter(points)
        try:
            left, top = next(it)
        except StopIteration:
            raise ValueError("bounding box of no points") from None
        right, bottom = left, top
        for px, py in it:
            if px < left:
                left = px
            elif px > right:
                right = px
            if py < top:
                top = py
            elif py > bottom:
                bottom = py
        return cls(int(left), int(top), int(right - left), int(bottom - top))


@dataclass(frozen=True)
class TextArea:
    """A recognized label and where it sits on screen."""

    text: str
    rect: Rect
