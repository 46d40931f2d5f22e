"""
Unit tests for orthogonal arrow routing.

Tests edge selection, slot ordering on shared edges, collision
avoidance and hit testing.

Run: pytest tests/unit/test_edge_router.py -v
"""

import pytest

from hanzinet.documents.models import Arrow, Position, Side
from hanzinet.geometry.kernel import Point, path_segments, segment_crosses_rect, segments_intersect, side_rect
from hanzinet.geometry.router import Edge, EdgeRouter, base_travel, determine_edge, edge_point, orthogonal_path


def side(side_id, x, y, **size):
    return Side(id=side_id, position=Position(x=x, y=y), **size)


def arrow(arrow_id, source, destination, label=""):
    return Arrow(id=arrow_id, source_id=source, destination_id=destination, label=label)


class TestDetermineEdge:
    """Test compass edge selection."""

    @pytest.mark.parametrize(
        "x,y,expected",
        [
            (400, 0, Edge.RIGHT),
            (-400, 0, Edge.LEFT),
            (0, 300, Edge.BOTTOM),
            (0, -300, Edge.TOP),
            (400, 200, Edge.RIGHT),
        ],
    )
    def test_direction(self, x, y, expected):
        assert determine_edge(side("a", 0, 0), side("b", x, y)) == expected

    def test_coincident_centers_default_right(self):
        assert determine_edge(side("a", 0, 0), side("b", 0, 0)) == Edge.RIGHT

    def test_reverse_direction(self):
        assert determine_edge(side("b", 400, 200), side("a", 0, 0)) == Edge.LEFT


class TestSlots:
    """Test connection points."""

    def test_single_slot_is_edge_midpoint(self):
        s = side("a", 0, 0)
        assert edge_point(s, Edge.RIGHT, 0, 1) == Point(120, 40)
        assert edge_point(s, Edge.TOP, 0, 1) == Point(60, 0)

    def test_slots_spread_over_ten_to_ninety_percent(self):
        s = side("a", 0, 0)
        assert edge_point(s, Edge.TOP, 0, 3).x == pytest.approx(12)
        assert edge_point(s, Edge.TOP, 2, 3).x == pytest.approx(108)
        # right edge runs bottom to top
        assert edge_point(s, Edge.RIGHT, 0, 3).y == pytest.approx(72)
        assert edge_point(s, Edge.RIGHT, 2, 3).y == pytest.approx(8)

    def test_edge_arrows_ordered_by_other_endpoint(self):
        hub = side("hub", 0, 0)
        sides = [hub, side("mid", 400, 0), side("low", 400, 30), side("high", 400, -30)]
        arrows = [arrow("to-mid", "hub", "mid"), arrow("to-low", "hub", "low"), arrow("to-high", "hub", "high")]
        router = EdgeRouter(sides, arrows)

        ordered = router.edge_arrows(hub, Edge.RIGHT)
        assert [a.id for a in ordered] == ["to-low", "to-mid", "to-high"]
        assert router.connection_point(hub, Edge.RIGHT, arrows[1]).y == pytest.approx(72)
        assert router.connection_point(hub, Edge.RIGHT, arrows[2]).y == pytest.approx(8)

    def test_inbound_before_outbound_to_same_side(self):
        hub = side("hub", 0, 0)
        other = side("other", 400, 0)
        outbound = arrow("a-out", "hub", "other")
        inbound = arrow("b-in", "other", "hub")
        router = EdgeRouter([hub, other], [outbound, inbound])

        assert [a.id for a in router.edge_arrows(hub, Edge.RIGHT)] == ["b-in", "a-out"]


class TestRouting:
    """Test path construction and collision avoidance."""

    def test_orthogonal_path_shape(self):
        path = orthogonal_path(Point(0, 0), Point(100, 50), Edge.RIGHT, 40)
        assert path == [Point(0, 0), Point(40, 0), Point(40, 50), Point(100, 50)]

    def test_base_travel_minimum(self):
        assert base_travel(Point(0, 0), Point(50, 0)) == 40
        assert base_travel(Point(0, 0), Point(500, 0)) == pytest.approx(100)

    def test_straight_route(self, simple_flashcard):
        router = EdgeRouter(simple_flashcard.sides, simple_flashcard.arrows)
        path = router.route(simple_flashcard.arrows[0])
        assert path == [Point(120, 40), Point(160, 40), Point(160, 40), Point(300, 40)]

    def test_vertical_route(self):
        router = EdgeRouter([side("a", 0, 0), side("b", 0, 300)], [arrow("x", "a", "b")])
        path = router.route(router.arrows[0])
        assert path[0] == Point(60, 80)
        assert path[3] == Point(60, 300)
        assert path[1].x == 60
        assert path[1].y == pytest.approx(124)

    def test_every_path_has_four_points(self, network_flashcard):
        router = EdgeRouter(network_flashcard.sides, network_flashcard.arrows)
        for path in router.route_all().values():
            assert len(path) == 4

    def test_missing_endpoint_gives_empty_path(self):
        router = EdgeRouter([side("a", 0, 0)], [arrow("x", "a", "gone")])
        assert router.route(router.arrows[0]) == []

    def test_obstacle_pushes_middle_segment_out(self):
        obstacle = side("c", 150, 100)
        router = EdgeRouter(
            [side("a", 0, 0), side("b", 400, 200), obstacle],
            [arrow("x", "a", "b")],
        )
        target = router.arrows[0]
        uncorrected = router.route(target, skip_collisions=True)
        assert segment_crosses_rect(uncorrected[1], uncorrected[2], side_rect(obstacle))

        path = router.route(target)
        assert path[0] == uncorrected[0]
        assert path[3] == uncorrected[3]
        assert not segment_crosses_rect(path[1], path[2], side_rect(obstacle))
        assert path[1].x > side_rect(obstacle).right


class TestCollisionRetries:
    """Test the retry passes for an arrow from (120, 40) to (400, 240)."""

    START = Point(120, 40)
    END = Point(400, 240)

    def travel(self):
        return base_travel(self.START, self.END)

    def test_opposite_direction_when_forward_blocked(self):
        # wide enough to catch every rightward first leg
        wall = side("wall", 170, 100, width=220)
        router = EdgeRouter([side("a", 0, 0), side("b", 400, 200), wall], [arrow("x", "a", "b")])
        target = router.arrows[0]

        for multiplier in (1.0, 1.5, 2.0, 2.5, 3.0, 3.5):
            candidate = orthogonal_path(self.START, self.END, Edge.RIGHT, self.travel() * multiplier)
            assert router.middle_segment_collides(candidate, target)

        path = router.route(target)
        assert path == orthogonal_path(self.START, self.END, Edge.LEFT, self.travel() * 1.5)
        assert path[1].x < self.START.x

    def test_falls_back_when_every_retry_collides(self):
        sides = [
            side("a", 0, 0),
            side("b", 400, 200),
            side("right-wall", 170, 100, width=220),
            side("left-wall", -150, 100, width=190),
        ]
        router = EdgeRouter(sides, [arrow("x", "a", "b")])
        target = router.arrows[0]

        uncorrected = router.route(target, skip_collisions=True)
        assert router.route(target) == uncorrected

    def test_other_arrow_counts_as_obstacle(self):
        sides = [
            side("a", 0, 0),
            side("b", 400, 200),
            side("p", 100, 130, width=20, height=20),
            side("q", 260, 130, width=20, height=20),
        ]
        target = arrow("x", "a", "b")
        crossing = arrow("y", "p", "q")
        router = EdgeRouter(sides, [target, crossing])

        uncorrected = router.route(target, skip_collisions=True)
        assert router.middle_segment_collides(uncorrected, target)
        assert not EdgeRouter(sides, [target]).middle_segment_collides(uncorrected, target)

        path = router.route(target)
        assert path[1].x == pytest.approx(self.START.x + self.travel() * 2.5)
        other = router.uncorrected_path(crossing)
        assert not any(segments_intersect(path[1], path[2], a, b) for a, b in path_segments(other))


class TestDeterminism:
    """Routing the same snapshot gives the same points."""

    def test_route_twice(self, network_flashcard):
        router = EdgeRouter(network_flashcard.sides, network_flashcard.arrows)
        for target in network_flashcard.arrows:
            assert router.route(target) == router.route(target)

    def test_fresh_router_same_paths(self, network_flashcard):
        first = EdgeRouter(network_flashcard.sides, network_flashcard.arrows).route_all()
        second = EdgeRouter(network_flashcard.sides, network_flashcard.arrows).route_all()
        assert first == second

    def test_shared_edge_slots_stable(self):
        hub = side("hub", 0, 0)
        sides = [hub, side("mid", 400, 0), side("low", 400, 30), side("high", 400, -30)]
        arrows = [arrow("to-mid", "hub", "mid"), arrow("to-low", "hub", "low"), arrow("to-high", "hub", "high")]
        paths = [EdgeRouter(sides, arrows).route_all() for _ in range(3)]
        assert paths[0] == paths[1] == paths[2]


class TestHitTesting:
    """Test pointer hit tests."""

    def test_hit_arrow(self, simple_flashcard):
        router = EdgeRouter(simple_flashcard.sides, simple_flashcard.arrows)
        assert router.hit_test_arrow(Point(200, 42)).id == "a1"
        assert router.hit_test_arrow(Point(200, 100)) is None

    def test_hit_side(self, simple_flashcard):
        router = EdgeRouter(simple_flashcard.sides, simple_flashcard.arrows)
        assert router.hit_test_side(Point(10, 10)).id == "s1"
        assert router.hit_test_side(Point(200, 200)) is None
