"""
Geometry for flashcard networks: arrow routing and label placement.

Components:
- kernel: points, rectangles, intersections, arc length
- router: edge selection, slot assignment, orthogonal paths
- labels: label placement along routed paths
"""

from .kernel import DEFAULT_SIDE_HEIGHT, DEFAULT_SIDE_WIDTH, Point, Rect, side_center, side_rect
from .labels import LabelPlacement, LabelPlacer
from .router import Edge, EdgeRouter, determine_edge

__all__ = [
    # Kernel
    "DEFAULT_SIDE_HEIGHT",
    "DEFAULT_SIDE_WIDTH",
    "Point",
    "Rect",
    "side_center",
    "side_rect",
    # Routing
    "Edge",
    "EdgeRouter",
    "determine_edge",
    # Labels
    "LabelPlacement",
    "LabelPlacer",
]
