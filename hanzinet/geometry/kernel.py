"""
Geometry kernel for flashcard networks.

Pure functions over points, rectangles and polyline paths:
- side rectangles and centers (with default side size)
- segment/segment and segment/rectangle intersection
- distance from a point to a segment
- arc length and point-at-percent along a path

Nothing here raises on degenerate input; empty paths and zero-length
segments produce neutral results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, Sequence

# =============================================================================
# Constants
# =============================================================================

DEFAULT_SIDE_WIDTH = 120.0
DEFAULT_SIDE_HEIGHT = 80.0


# =============================================================================
# Primitives
# =============================================================================


@dataclass(frozen=True)
class Point:
    """A point in document space."""

    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @classmethod
    def centered_on(cls, point: Point, width: float, height: float) -> Rect:
        return cls(point.x - width / 2, point.y - height / 2, width, height)

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def edges(self) -> list[tuple[Point, Point]]:
        """Top, right, bottom and left edges as segments."""
        top_left = Point(self.x, self.y)
        top_right = Point(self.right, self.y)
        bottom_right = Point(self.right, self.bottom)
        bottom_left = Point(self.x, self.bottom)
        return [
            (top_left, top_right),
            (top_right, bottom_right),
            (bottom_right, bottom_left),
            (bottom_left, top_left),
        ]


class SideLike(Protocol):
    """Anything with an id, a position and an optional size."""

    id: str
    position: object
    width: float | None
    height: float | None


Path = list[Point]


# =============================================================================
# Sides
# =============================================================================


def side_rect(side: SideLike) -> Rect:
    """Bounding rectangle of a side, applying the default size."""
    width = side.width or DEFAULT_SIDE_WIDTH
    height = side.height or DEFAULT_SIDE_HEIGHT
    return Rect(side.position.x, side.position.y, width, height)  # type: ignore[attr-defined]


def side_center(side: SideLike) -> Point:
    return side_rect(side).center


def is_point_in_side(point: Point, side: SideLike) -> bool:
    """Inclusive hit test against a side's rectangle."""
    return side_rect(side).contains(point)


def snap_to_grid(point: Point, grid_size: float) -> Point:
    if grid_size <= 0:
        return point
    return Point(round(point.x / grid_size) * grid_size, round(point.y / grid_size) * grid_size)


# =============================================================================
# Intersections
# =============================================================================


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """
    Check whether segment p1-p2 crosses segment p3-p4.

    Parallel (including collinear) segments never intersect.
    """
    denominator = (p4.y - p3.y) * (p2.x - p1.x) - (p4.x - p3.x) * (p2.y - p1.y)
    if denominator == 0:
        return False

    ua = ((p4.x - p3.x) * (p1.y - p3.y) - (p4.y - p3.y) * (p1.x - p3.x)) / denominator
    ub = ((p2.x - p1.x) * (p1.y - p3.y) - (p2.y - p1.y) * (p1.x - p3.x)) / denominator
    return 0 <= ua <= 1 and 0 <= ub <= 1


def segment_crosses_rect(start: Point, end: Point, rect: Rect) -> bool:
    """True if the segment crosses any of the rectangle's four edges."""
    return any(segments_intersect(start, end, a, b) for a, b in rect.edges())


def segment_touches_rect(start: Point, end: Point, rect: Rect) -> bool:
    """Like segment_crosses_rect, but also true for segments lying inside."""
    return rect.contains(start) or rect.contains(end) or segment_crosses_rect(start, end, rect)


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Inclusive overlap test; touching rectangles overlap."""
    return not (a.right < b.x or b.right < a.x or a.bottom < b.y or b.bottom < a.y)


def path_segments(path: Sequence[Point]) -> list[tuple[Point, Point]]:
    return [(path[i], path[i + 1]) for i in range(len(path) - 1)]


# =============================================================================
# Distances along paths
# =============================================================================


def distance_to_segment(point: Point, start: Point, end: Point) -> float:
    """Shortest distance from point to the segment start-end."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return point.distance_to(start)

    t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return point.distance_to(Point(start.x + t * dx, start.y + t * dy))


def path_length(path: Sequence[Point]) -> float:
    return sum(a.distance_to(b) for a, b in path_segments(path))


def point_at_percent(path: Sequence[Point], percent: float) -> Point:
    """
    Point at a fraction of the path's cumulative arc length.

    Args:
        path: Polyline points
        percent: 0.0 (start) to 1.0 (end)

    Returns:
        Interpolated point; the first point (or the origin) for paths
        with fewer than two points
    """
    if len(path) < 2:
        return path[0] if path else Point(0.0, 0.0)

    target = path_length(path) * percent
    travelled = 0.0
    for start, end in path_segments(path):
        segment = start.distance_to(end)
        if segment > 0 and travelled + segment >= target:
            ratio = (target - travelled) / segment
            return Point(start.x + (end.x - start.x) * ratio, start.y + (end.y - start.y) * ratio)
        travelled += segment
    return path[-1] if travelled > 0 else path[0]


def is_point_near_path(point: Point, path: Sequence[Point], tolerance: float = 10.0) -> bool:
    if len(path) < 2:
        return False
    return any(distance_to_segment(point, a, b) <= tolerance for a, b in path_segments(path))
