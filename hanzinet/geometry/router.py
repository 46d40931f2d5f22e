"""
Orthogonal arrow routing between sides.

Every drawable arrow is a 4-point path: the source connection point, two
right-angle corners and the destination connection point. Routing works
in three steps:

1. Edge selection: the compass edge where the center-to-center vector
   leaves the source (and, swapped, enters the destination).
2. Slot assignment: arrows sharing one edge of a side are sorted by the
   position of their other endpoint and spread over 10%-90% of the edge.
3. Collision avoidance: if the middle segment hits another side or
   another arrow, the first leg is lengthened (then reversed) until it
   clears, falling back to the uncorrected path.
"""

from __future__ import annotations

import functools
import math
from enum import Enum
from typing import Protocol, Sequence

from loguru import logger

from .kernel import (
    Path,
    Point,
    SideLike,
    is_point_in_side,
    is_point_near_path,
    path_segments,
    segment_crosses_rect,
    segments_intersect,
    side_center,
    side_rect,
)

# =============================================================================
# Constants
# =============================================================================

MIN_TRAVEL = 40.0  # Minimum first-leg length
TRAVEL_RATIO = 0.2  # First leg as a share of the straight-line distance
SORT_TOLERANCE = 5.0  # Other endpoints closer than this count as aligned
SLOT_MARGIN = 0.1  # Slots are spread over 10%-90% of an edge
RETRY_MULTIPLIERS = (1.5, 2.0, 2.5, 3.0, 3.5)


class Edge(str, Enum):
    """Compass edge of a side."""

    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"

    @property
    def is_horizontal(self) -> bool:
        return self in (Edge.TOP, Edge.BOTTOM)


class ArrowLike(Protocol):
    id: str
    source_id: str
    destination_id: str


# =============================================================================
# Edge selection and slots
# =============================================================================


def determine_edge(from_side: SideLike, to_side: SideLike) -> Edge:
    """
    Edge of from_side that the center-to-center vector exits through.

    Each edge the vector can reach is intersected and the nearest
    intersection wins. Coincident centers resolve to RIGHT.
    """
    rect = side_rect(from_side)
    start = rect.center
    end = side_center(to_side)
    dx = end.x - start.x
    dy = end.y - start.y
    half_w = rect.width / 2
    half_h = rect.height / 2

    candidates: dict[Edge, float] = {}
    if dx > 0:
        t = half_w / dx
        if rect.y <= start.y + dy * t <= rect.bottom:
            candidates[Edge.RIGHT] = math.hypot(half_w, dy * t)
    if dx < 0:
        t = -half_w / dx
        if rect.y <= start.y + dy * t <= rect.bottom:
            candidates[Edge.LEFT] = math.hypot(half_w, dy * t)
    if dy > 0:
        t = half_h / dy
        if rect.x <= start.x + dx * t <= rect.right:
            candidates[Edge.BOTTOM] = math.hypot(dx * t, half_h)
    if dy < 0:
        t = -half_h / dy
        if rect.x <= start.x + dx * t <= rect.right:
            candidates[Edge.TOP] = math.hypot(dx * t, half_h)

    if not candidates:
        return Edge.RIGHT
    # dict order (right, left, bottom, top) breaks exact corner ties
    return min(candidates, key=lambda edge: candidates[edge])


def edge_point(side: SideLike, edge: Edge, index: int, total: int) -> Point:
    """
    Connection point for slot index of total on an edge.

    Top and left run forwards from the start of the edge, bottom and
    right run in reverse.
    """
    rect = side_rect(side)
    distribution = index / (total - 1) if total > 1 else 0.5
    adjusted = SLOT_MARGIN + distribution * (1 - 2 * SLOT_MARGIN)

    if edge == Edge.TOP:
        return Point(rect.x + rect.width * adjusted, rect.y)
    if edge == Edge.BOTTOM:
        return Point(rect.x + rect.width * (1 - adjusted), rect.bottom)
    if edge == Edge.LEFT:
        return Point(rect.x, rect.y + rect.height * adjusted)
    return Point(rect.right, rect.y + rect.height * (1 - adjusted))


def orthogonal_path(source: Point, destination: Point, source_edge: Edge, travel: float) -> Path:
    """Two-bend path whose first leg runs `travel` units away from source_edge."""
    if source_edge.is_horizontal:
        step = travel if source_edge == Edge.BOTTOM else -travel
        first = Point(source.x, source.y + step)
        second = Point(destination.x, first.y)
    else:
        step = travel if source_edge == Edge.RIGHT else -travel
        first = Point(source.x + step, source.y)
        second = Point(first.x, destination.y)
    return [source, first, second, destination]


def base_travel(source: Point, destination: Point) -> float:
    return max(source.distance_to(destination) * TRAVEL_RATIO, MIN_TRAVEL)


# =============================================================================
# Router
# =============================================================================


class EdgeRouter:
    """
    Routes the arrows of one flashcard network.

    The router is built over a snapshot of sides and arrows; build a new
    one after the network changes. Uncorrected paths are cached per
    arrow because every collision check needs all of them.
    """

    def __init__(self, sides: Sequence[SideLike], arrows: Sequence[ArrowLike]):
        self.sides = list(sides)
        self.arrows = list(arrows)
        self._sides_by_id = {side.id: side for side in self.sides}
        self._uncorrected: dict[str, Path] = {}

    def side(self, side_id: str) -> SideLike | None:
        return self._sides_by_id.get(side_id)

    def endpoints(self, arrow: ArrowLike) -> tuple[SideLike, SideLike] | None:
        source = self.side(arrow.source_id)
        destination = self.side(arrow.destination_id)
        if source is None or destination is None:
            return None
        return source, destination

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def _uses_edge(self, arrow: ArrowLike, side: SideLike, edge: Edge) -> bool:
        ends = self.endpoints(arrow)
        if ends is None:
            return False
        source, destination = ends
        if source.id == side.id:
            return determine_edge(source, destination) == edge
        if destination.id == side.id:
            return determine_edge(destination, source) == edge
        return False

    def _other_end(self, arrow: ArrowLike, side: SideLike) -> SideLike | None:
        if arrow.source_id == side.id:
            return self.side(arrow.destination_id)
        return self.side(arrow.source_id)

    def edge_arrows(self, side: SideLike, edge: Edge) -> list[ArrowLike]:
        """
        Arrows attached to one edge of a side, in slot order.

        Ordered by the other endpoint's center (x for top/bottom, y for
        left/right), larger first. Within the tolerance band, arrows to
        the same other side put the inbound one first; remaining ties go
        by the cross coordinate, then by arrow id.
        """

        def compare(a: ArrowLike, b: ArrowLike) -> int:
            a_other = self._other_end(a, side)
            b_other = self._other_end(b, side)
            if a_other is None or b_other is None:
                return 0
            a_center = side_center(a_other)
            b_center = side_center(b_other)

            if edge.is_horizontal:
                primary = b_center.x - a_center.x
                cross = abs(a_center.y) - abs(b_center.y)
            else:
                primary = b_center.y - a_center.y
                cross = abs(a_center.x) - abs(b_center.x)

            if abs(primary) > SORT_TOLERANCE:
                return 1 if primary > 0 else -1

            if a_other.id == b_other.id:
                a_outbound = a.source_id == side.id
                b_outbound = b.source_id == side.id
                if a_outbound != b_outbound:
                    return 1 if a_outbound else -1

            if cross:
                return 1 if cross > 0 else -1
            return (a.id > b.id) - (a.id < b.id)

        attached = [arrow for arrow in self.arrows if self._uses_edge(arrow, side, edge)]
        return sorted(attached, key=functools.cmp_to_key(compare))

    def connection_point(self, side: SideLike, edge: Edge, arrow: ArrowLike) -> Point:
        ordered = self.edge_arrows(side, edge)
        ids = [a.id for a in ordered]
        if arrow.id not in ids:
            # arrow not part of this network snapshot: give it its own slot
            return edge_point(side, edge, 0, 1)
        return edge_point(side, edge, ids.index(arrow.id), len(ordered))

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def uncorrected_path(self, arrow: ArrowLike) -> Path:
        """Path before collision avoidance; empty if an endpoint is missing."""
        cached = self._uncorrected.get(arrow.id)
        if cached is not None:
            return list(cached)

        ends = self.endpoints(arrow)
        if ends is None:
            return []
        source, destination = ends
        source_edge = determine_edge(source, destination)
        destination_edge = determine_edge(destination, source)
        start = self.connection_point(source, source_edge, arrow)
        end = self.connection_point(destination, destination_edge, arrow)
        path = orthogonal_path(start, end, source_edge, base_travel(start, end))

        self._uncorrected[arrow.id] = path
        return list(path)

    def middle_segment_collides(self, path: Path, arrow: ArrowLike) -> bool:
        """True if the path's middle segment hits another side or arrow."""
        if len(path) != 4:
            return False
        start, end = path[1], path[2]

        for side in self.sides:
            if side.id in (arrow.source_id, arrow.destination_id):
                continue
            if segment_crosses_rect(start, end, side_rect(side)):
                return True

        for other in self.arrows:
            if other.id == arrow.id:
                continue
            other_path = self.uncorrected_path(other)
            for a, b in path_segments(other_path):
                if segments_intersect(start, end, a, b):
                    return True
        return False

    def route(self, arrow: ArrowLike, skip_collisions: bool = False) -> Path:
        """
        Route an arrow.

        Args:
            arrow: Arrow to route
            skip_collisions: Return the uncorrected path

        Returns:
            Four points, or an empty list when an endpoint side is missing
        """
        path = self.uncorrected_path(arrow)
        if skip_collisions or len(path) != 4:
            return path
        if not self.middle_segment_collides(path, arrow):
            return path

        source_side = self.side(arrow.source_id)
        destination_side = self.side(arrow.destination_id)
        source_edge = determine_edge(source_side, destination_side)
        opposite = {
            Edge.TOP: Edge.BOTTOM,
            Edge.BOTTOM: Edge.TOP,
            Edge.LEFT: Edge.RIGHT,
            Edge.RIGHT: Edge.LEFT,
        }[source_edge]

        start, end = path[0], path[3]
        travel = base_travel(start, end)
        for direction in (source_edge, opposite):
            for multiplier in RETRY_MULTIPLIERS:
                candidate = orthogonal_path(start, end, direction, travel * multiplier)
                if not self.middle_segment_collides(candidate, arrow):
                    return candidate

        logger.debug(f"Arrow {arrow.id}: no collision-free route, using uncorrected path")
        return path

    def route_all(self) -> dict[str, Path]:
        return {arrow.id: self.route(arrow) for arrow in self.arrows}

    # -------------------------------------------------------------------------
    # Hit testing
    # -------------------------------------------------------------------------

    def hit_test_arrow(self, point: Point, tolerance: float = 10.0) -> ArrowLike | None:
        """Topmost arrow whose uncorrected path passes within tolerance."""
        for arrow in reversed(self.arrows):
            if is_point_near_path(point, self.uncorrected_path(arrow), tolerance):
                return arrow
        return None

    def hit_test_side(self, point: Point) -> SideLike | None:
        """Topmost side containing the point."""
        for side in reversed(self.sides):
            if is_point_in_side(point, side):
                return side
        return None
