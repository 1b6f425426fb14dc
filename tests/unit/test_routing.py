"""Unit tests for the routing module."""

from retromermaid.renderer import BoxRenderer, Canvas
from retromermaid.routing import (
    LANE_STEP,
    LaneRouter,
    Occupancy,
    Rect,
    lane_offsets,
    lane_width,
)


class TestRect:
    """Tests for Rect."""

    def test_edges_and_center(self):
        """Test derived coordinates."""
        rect = Rect(2, 1, 5, 3)
        assert (rect.right, rect.bottom) == (6, 3)
        assert (rect.center_x, rect.center_y) == (4, 2)

    def test_contains_is_inclusive(self):
        """Test borders count as inside."""
        rect = Rect(0, 0, 3, 3)
        assert rect.contains(0, 0)
        assert rect.contains(2, 2)
        assert not rect.contains(3, 0)


class TestOccupancy:
    """Tests for Occupancy."""

    def test_inside_any_box(self):
        """Test points in any of the boxes are reported."""
        occupancy = Occupancy([Rect(0, 0, 3, 3), Rect(10, 0, 3, 3)])
        assert occupancy.is_inside_box(11, 1)
        assert not occupancy.is_inside_box(5, 1)

    def test_usable_as_skip_predicate(self):
        """Test the occupancy can be called like a function."""
        occupancy = Occupancy([Rect(0, 0, 3, 3)])
        assert occupancy(1, 1) is True


class TestLanes:
    """Tests for lane spacing."""

    def test_unlabelled_lanes(self):
        """Test unlabelled lanes sit LANE_STEP apart."""
        assert lane_offsets([None, None, None]) == [0, LANE_STEP, 2 * LANE_STEP]

    def test_labelled_lane_reserves_room(self):
        """Test a labelled lane pushes the next lane past its label."""
        assert lane_offsets([None, "ab", None]) == [0, 2, 7]
        assert lane_width("ab") == 5
        assert lane_width(None) == LANE_STEP


class TestLaneRouter:
    """Tests for LaneRouter."""

    def test_route_right(self):
        """Test a back edge up the right side of two stacked boxes."""
        canvas = Canvas(7, 8)
        top = Rect(0, 0, 5, 3)
        bottom = Rect(0, 5, 5, 3)
        for rect in (top, bottom):
            canvas.set(rect.right, rect.center_y, "│")
        router = LaneRouter(Occupancy([top, bottom]))
        router.route_right(canvas, bottom, top, 6)
        lines = canvas.render().split("\n")
        assert lines[1] == "    │<┐"
        assert lines[3] == "      │"
        assert lines[6] == "    ├─┘"

    def test_route_right_from_corner(self):
        """Test a route leaving a top corner turns it into a tee."""
        canvas = Canvas(9, 8)
        top = Rect(0, 0, 5, 3)
        bottom = Rect(0, 5, 5, 3)
        BoxRenderer().draw_box(canvas, 0, 5, 5, 3)
        router = LaneRouter(Occupancy([top, bottom]))
        router.route_right(canvas, bottom, top, 8, source_y=bottom.y)
        lines = canvas.render().split("\n")
        assert lines[1] == "     <──┐"
        assert lines[5] == "┌───┬───┘"

    def test_route_right_open_end(self):
        """Test a route without a head is joined to the target border."""
        canvas = Canvas(7, 8)
        top = Rect(0, 0, 5, 3)
        bottom = Rect(0, 5, 5, 3)
        for rect in (top, bottom):
            canvas.set(rect.right, rect.center_y, "│")
        router = LaneRouter(Occupancy([top, bottom]))
        router.route_right(canvas, bottom, top, 6, head=None)
        lines = canvas.render().split("\n")
        assert lines[1] == "    ├─┐"
        assert lines[6] == "    ├─┘"

    def test_route_below_with_head(self):
        """Test a route under two boxes ending in an up arrow."""
        canvas = Canvas(9, 5)
        router = LaneRouter(Occupancy())
        router.route_below(canvas, 6, 2, 2, 2, 4)
        lines = canvas.render().split("\n")
        assert lines[2] == "      ┬"
        assert lines[3] == "  ▲   │"
        assert lines[4] == "  └───┘"

    def test_route_below_without_head(self):
        """Test both ends get a tee when no head is drawn."""
        canvas = Canvas(9, 5)
        router = LaneRouter(Occupancy())
        router.route_below(canvas, 2, 2, 6, 2, 4, head=None)
        lines = canvas.render().split("\n")
        assert lines[2] == "  ┬   ┬"
        assert lines[4] == "  └───┘"

    def test_route_below_from_corner(self):
        """Test a route leaving a bottom corner keeps the corner joined."""
        canvas = Canvas(9, 5)
        BoxRenderer().draw_box(canvas, 0, 0, 5, 3)
        router = LaneRouter(Occupancy([Rect(0, 0, 5, 3)]))
        router.route_below(canvas, 4, 2, 8, 2, 4)
        lines = canvas.render().split("\n")
        assert lines[2] == "└───┤"
        assert lines[3] == "    │   ▲"
        assert lines[4] == "    └───┘"
