"""
Arrow label placement.

Labels are centered on a point along the routed path. The midpoint is
preferred; otherwise candidates step outward by 5% of the path length
up to 20% either side (never outside 30%-70%). If every candidate
collides, the least bad one wins: overlapping a side costs 100,
crossing another arrow's segment costs 10.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .kernel import Path, Point, Rect, path_segments, point_at_percent, rects_overlap, segment_touches_rect, side_rect
from .router import ArrowLike, EdgeRouter

PREFERRED_PERCENT = 50
STEP_PERCENT = 5
MAX_OFFSET_PERCENT = 20
WINDOW_PERCENT = (30, 70)

SIDE_COLLISION_COST = 100
ARROW_COLLISION_COST = 10

LABEL_HEIGHT = 24.0
MIN_LABEL_WIDTH = 24.0
LABEL_CHAR_WIDTH = 8.0  # Approximate glyph width for sizing from text
LABEL_PADDING = 8.0


def estimate_label_size(label: str) -> tuple[float, float]:
    """Approximate label box from its text."""
    width = max(len(label) * LABEL_CHAR_WIDTH + LABEL_PADDING * 2, MIN_LABEL_WIDTH)
    return width, LABEL_HEIGHT


def candidate_percents() -> list[int]:
    """50, 45, 55, 40, 60, ... within the 30-70 window."""
    low, high = WINDOW_PERCENT
    order = [PREFERRED_PERCENT]
    for offset in range(STEP_PERCENT, MAX_OFFSET_PERCENT + 1, STEP_PERCENT):
        for percent in (PREFERRED_PERCENT - offset, PREFERRED_PERCENT + offset):
            if low <= percent <= high:
                order.append(percent)
    return order


@dataclass
class LabelPlacement:
    """Chosen label position and how it was reached."""

    position: Point
    percent: float | None
    score: int


class LabelPlacer:
    """Places arrow labels over a routed network."""

    def __init__(self, router: EdgeRouter):
        self.router = router

    def _other_paths(self, arrow: ArrowLike) -> list[Path]:
        return [
            self.router.uncorrected_path(other)
            for other in self.router.arrows
            if other.id != arrow.id
        ]

    def collision_score(
        self,
        position: Point,
        width: float,
        height: float,
        arrow: ArrowLike,
        other_paths: Sequence[Path] | None = None,
    ) -> int:
        """Weighted count of sides and arrow segments the label box touches."""
        box = Rect.centered_on(position, width, height)
        score = 0
        for side in self.router.sides:
            if side.id in (arrow.source_id, arrow.destination_id):
                continue
            if rects_overlap(box, side_rect(side)):
                score += SIDE_COLLISION_COST

        paths = other_paths if other_paths is not None else self._other_paths(arrow)
        for path in paths:
            for a, b in path_segments(path):
                if segment_touches_rect(a, b, box):
                    score += ARROW_COLLISION_COST
        return score

    def place(
        self,
        arrow: ArrowLike,
        path: Path | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> LabelPlacement:
        """
        Find a label position for an arrow.

        Args:
            arrow: Arrow whose label is placed
            path: Routed path (routed here if omitted)
            width: Label box width (estimated from the label if omitted)
            height: Label box height

        Returns:
            LabelPlacement; degenerate paths give their first point (or the
            origin) with percent None
        """
        if path is None:
            path = self.router.route(arrow)
        if len(path) < 2:
            return LabelPlacement(path[0] if path else Point(0.0, 0.0), None, 0)

        est_width, est_height = estimate_label_size(getattr(arrow, "label", "") or "")
        width = width if width is not None else est_width
        height = height if height is not None else est_height
        other_paths = self._other_paths(arrow)

        for percent in candidate_percents():
            position = point_at_percent(path, percent / 100)
            if self.collision_score(position, width, height, arrow, other_paths) == 0:
                return LabelPlacement(position, percent / 100, 0)

        low, high = WINDOW_PERCENT
        best: LabelPlacement | None = None
        for percent in [PREFERRED_PERCENT] + list(range(low, high + 1, STEP_PERCENT)):
            position = point_at_percent(path, percent / 100)
            score = self.collision_score(position, width, height, arrow, other_paths)
            if best is None or score < best.score:
                best = LabelPlacement(position, percent / 100, score)
        return best
