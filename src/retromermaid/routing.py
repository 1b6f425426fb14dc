"""
Box geometry and margin-lane routing shared by the graph and ER renderers.

Edges that cannot be drawn in the flow direction (back edges, and for ER
diagrams any relationship that does not advance by rank) are routed through
lanes reserved outside the content: to the right of a top-down layout or
below a left-to-right one. Lane segments never draw over box interiors.

Classes:
    Rect: Axis-aligned box footprint.
    Occupancy: Set of box footprints used to keep lines out of boxes.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .metrics import display_width
from .renderer import (
    ARROW_CHARS,
    DOWN,
    GLYPH_MASKS,
    LINE_CHARS,
    RIGHT,
    Canvas,
    LineRenderer,
    glyph_for_mask,
)

# Distance between neighbouring unlabelled lanes
LANE_STEP = 2


@dataclass(frozen=True)
class Rect:
    """A box occupying columns x..right and rows y..bottom."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width - 1

    @property
    def bottom(self) -> int:
        return self.y + self.height - 1

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2

    @property
    def center_y(self) -> int:
        return self.y + self.height // 2

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom


class Occupancy:
    """
    Box footprints on the canvas.

    Used as the ``skip`` predicate of LineRenderer so routed lines pass
    behind boxes instead of overwriting them.
    """

    def __init__(self, rects: Iterable[Rect] = ()):
        self.rects: List[Rect] = list(rects)

    def __call__(self, x: int, y: int) -> bool:
        return self.is_inside_box(x, y)

    def is_inside_box(self, x: int, y: int) -> bool:
        """Check if (x, y) lies on or inside any box."""
        return any(rect.contains(x, y) for rect in self.rects)


def lane_offsets(labels: Sequence[Optional[str]]) -> List[int]:
    """
    Offsets of consecutive lanes from the first one.

    An unlabelled lane takes LANE_STEP columns; a labelled one leaves room
    for its label beside the lane.
    """
    offsets = []
    offset = 0
    for label in labels:
        offsets.append(offset)
        offset += lane_width(label)
    return offsets


def lane_width(label: Optional[str]) -> int:
    if label:
        return display_width(label) + 3
    return LANE_STEP


class LaneRouter:
    """Draws lane routes between boxes."""

    def __init__(self, occupancy: Occupancy):
        self.occupancy = occupancy
        self.lines = LineRenderer()

    def route_right(
        self,
        canvas: Canvas,
        source: Rect,
        target: Rect,
        lane_x: int,
        source_y: Optional[int] = None,
        target_y: Optional[int] = None,
        horizontal: str = LINE_CHARS["horizontal"],
        vertical: str = LINE_CHARS["vertical"],
        head: Optional[str] = ARROW_CHARS["left"],
    ) -> None:
        """
        Route from the right side of ``source`` to the right side of ``target``
        through the vertical lane at ``lane_x``.

        The route leaves and arrives on the middle rows unless ``source_y`` or
        ``target_y`` pick other rows of the right borders.

        ┌───┐
        │ B │<─┐
        └───┘  │
        ┌───┐  │
        │ A │──┘
        └───┘
        """
        if source_y is None:
            source_y = source.center_y
        if target_y is None:
            target_y = target.center_y

        self._attach(canvas, source.right, source_y, RIGHT)
        self.lines.draw_horizontal(
            canvas,
            source.right + 1,
            lane_x - 1,
            source_y,
            horizontal,
            skip=self.occupancy,
        )
        self.lines.draw_horizontal(
            canvas,
            target.right + 1,
            lane_x - 1,
            target_y,
            horizontal,
            skip=self.occupancy,
        )
        if source_y != target_y:
            low, high = sorted((source_y, target_y))
            self.lines.draw_vertical(canvas, lane_x, low + 1, high - 1, vertical)
        self._corner(canvas, lane_x, source_y, target_y)
        self._corner(canvas, lane_x, target_y, source_y)
        if head:
            canvas.set(target.right + 1, target_y, head)
        else:
            self._attach(canvas, target.right, target_y, RIGHT)

    def route_below(
        self,
        canvas: Canvas,
        source_x: int,
        source_bottom: int,
        target_x: int,
        target_bottom: int,
        lane_y: int,
        horizontal: str = LINE_CHARS["horizontal"],
        vertical: str = LINE_CHARS["vertical"],
        head: Optional[str] = ARROW_CHARS["up"],
    ) -> None:
        """
        Route from a bottom border down to the lane row ``lane_y`` and back
        up to another bottom border.

        └─┬─┘   └─┬─┘
          │       ▲
          └───────┘
        """
        self._attach(canvas, source_x, source_bottom, DOWN)
        if head is None:
            self._attach(canvas, target_x, target_bottom, DOWN)
        self.lines.draw_vertical(
            canvas,
            source_x,
            source_bottom + 1,
            lane_y - 1,
            vertical,
            skip=self.occupancy,
        )
        self.lines.draw_vertical(
            canvas,
            target_x,
            target_bottom + 1,
            lane_y - 1,
            vertical,
            skip=self.occupancy,
        )
        if source_x != target_x:
            low, high = sorted((source_x, target_x))
            self.lines.draw_horizontal(canvas, low + 1, high - 1, lane_y, horizontal)
            canvas.merge(low, lane_y, LINE_CHARS["corner_bottom_left"])
            canvas.merge(high, lane_y, LINE_CHARS["corner_bottom_right"])
        else:
            canvas.merge(source_x, lane_y, LINE_CHARS["vertical"])
        if head:
            canvas.set(target_x, target_bottom + 1, head)

    @staticmethod
    def _attach(canvas: Canvas, x: int, y: int, direction: int) -> None:
        """
        Open the border glyph at (x, y) toward ``direction``.

        A side gets a tee and a corner gains the missing arm, so ``┐`` opened
        to the right becomes ``┬``. Borders that are not light lines (rounded
        or diagonal corners) are replaced by the plain tee.
        """
        mask = GLYPH_MASKS.get(canvas.get(x, y), 0)
        if mask:
            canvas.set(x, y, glyph_for_mask(mask | direction))
        elif direction == RIGHT:
            canvas.set(x, y, LINE_CHARS["tee_right"])
        else:
            canvas.set(x, y, LINE_CHARS["tee_down"])

    def _corner(self, canvas: Canvas, x: int, y: int, other_y: int) -> None:
        """Merge the lane corner at (x, y) that turns toward ``other_y``."""
        if other_y < y:
            canvas.merge(x, y, LINE_CHARS["corner_bottom_right"])
        elif other_y > y:
            canvas.merge(x, y, LINE_CHARS["corner_top_right"])
        else:
            canvas.merge(x, y, LINE_CHARS["horizontal"])
