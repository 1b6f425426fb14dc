"""
Character canvas and shape drawing shared by all diagram renderers.

The canvas stores tagged cells rather than raw characters so that wide
(two-column) glyphs and box-drawing junctions compose predictably:

- ``set`` never leaves half of a wide character behind;
- ``write`` advances by display width and reserves continuation cells;
- ``merge`` joins line glyphs by OR-ing their connection directions.

Classes:
    CellKind: Tag for a canvas cell.
    Cell: One canvas cell.
    Canvas: Fixed-size 2D buffer of cells.
    BoxRenderer: Draws rectangular, rounded and diamond boxes with labels.
    LineRenderer: Draws straight runs of connector glyphs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .metrics import char_width, display_width

# Unicode box-drawing characters
BOX_CHARS = {
    "top_left": "┌",
    "top_right": "┐",
    "bottom_left": "└",
    "bottom_right": "┘",
    "horizontal": "─",
    "vertical": "│",
}

ROUND_CHARS = {
    "top_left": "╭",
    "top_right": "╮",
    "bottom_left": "╰",
    "bottom_right": "╯",
    "horizontal": "─",
    "vertical": "│",
}

DIAMOND_CHARS = {
    "top_left": "╱",
    "top_right": "╲",
    "bottom_left": "╲",
    "bottom_right": "╱",
    "horizontal": "─",
    "vertical": "│",
}

# Line drawing characters for routing
LINE_CHARS = {
    "horizontal": "─",
    "vertical": "│",
    "heavy_vertical": "┃",
    "dotted_horizontal": "╌",
    "dotted_vertical": "┊",
    "thick_horizontal": "═",
    "thick_vertical": "║",
    "corner_top_left": "┌",
    "corner_top_right": "┐",
    "corner_bottom_left": "└",
    "corner_bottom_right": "┘",
    "tee_right": "├",
    "tee_left": "┤",
    "tee_down": "┬",
    "tee_up": "┴",
    "cross": "┼",
}

# Arrow characters
ARROW_CHARS = {
    "down": "▼",
    "up": "▲",
    "right": ">",
    "left": "<",
}

# Connection directions of a box-drawing glyph
LEFT = 1
RIGHT = 2
UP = 4
DOWN = 8

GLYPH_MASKS: Dict[str, int] = {
    "─": LEFT | RIGHT,
    "═": LEFT | RIGHT,
    "╌": LEFT | RIGHT,
    "│": UP | DOWN,
    "║": UP | DOWN,
    "┊": UP | DOWN,
    "┌": RIGHT | DOWN,
    "┐": LEFT | DOWN,
    "└": RIGHT | UP,
    "┘": LEFT | UP,
    "┬": LEFT | RIGHT | DOWN,
    "┴": LEFT | RIGHT | UP,
    "├": UP | DOWN | RIGHT,
    "┤": UP | DOWN | LEFT,
    "┼": LEFT | RIGHT | UP | DOWN,
}

MASK_GLYPHS: Dict[int, str] = {
    LEFT | RIGHT: "─",
    UP | DOWN: "│",
    RIGHT | DOWN: "┌",
    LEFT | DOWN: "┐",
    RIGHT | UP: "└",
    LEFT | UP: "┘",
    LEFT | RIGHT | DOWN: "┬",
    LEFT | RIGHT | UP: "┴",
    UP | DOWN | RIGHT: "├",
    UP | DOWN | LEFT: "┤",
    LEFT | RIGHT | UP | DOWN: "┼",
}


def glyph_for_mask(mask: int) -> str:
    """Return the light box-drawing glyph joining the directions in ``mask``."""
    return MASK_GLYPHS.get(mask, " ")


class CellKind(Enum):
    """What a canvas cell currently holds."""

    BLANK = "blank"
    GLYPH = "glyph"
    CONTINUATION = "continuation"


@dataclass
class Cell:
    """A single canvas cell."""

    kind: CellKind = CellKind.BLANK
    char: str = " "


class Canvas:
    """
    A 2D character canvas for drawing ASCII art.

    Coordinates are (x, y) = (column, row). Writes outside the canvas are
    ignored; the canvas is never resized after creation.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.grid: List[List[Cell]] = [
            [Cell() for _ in range(width)] for _ in range(height)
        ]

    def in_bounds(self, x: int, y: int) -> bool:
        """Check whether (x, y) lies on the canvas."""
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, x: int, y: int) -> Cell:
        """Get the cell at (x, y); out-of-bounds positions read as blank."""
        if self.in_bounds(x, y):
            return self.grid[y][x]
        return Cell()

    def get(self, x: int, y: int) -> str:
        """
        Get the character at (x, y).

        Blank cells read as a space and continuation cells as an empty
        string.
        """
        cell = self.cell(x, y)
        if cell.kind is CellKind.CONTINUATION:
            return ""
        return cell.char

    def _clear(self, x: int, y: int) -> None:
        self.grid[y][x] = Cell()

    def set(self, x: int, y: int, char: str) -> None:
        """
        Set a single-column glyph at (x, y).

        Overwriting half of a wide character blanks the other half, so no
        orphaned fragment is ever rendered.
        """
        if not self.in_bounds(x, y):
            return
        row = self.grid[y]
        if row[x].kind is CellKind.CONTINUATION:
            base = x - 1
            while base >= 0 and row[base].kind is CellKind.CONTINUATION:
                self._clear(base, y)
                base -= 1
            if base >= 0:
                self._clear(base, y)
        following = x + 1
        while following < self.width and row[following].kind is CellKind.CONTINUATION:
            self._clear(following, y)
            following += 1
        if char == " ":
            row[x] = Cell()
        else:
            row[x] = Cell(CellKind.GLYPH, char)

    def write(self, x: int, y: int, text: str) -> None:
        """
        Write text starting at (x, y), honoring display widths.

        A wide character is followed by continuation cells; a zero-width
        character (combining mark) attaches to the preceding glyph.
        """
        offset = 0
        for char in text:
            width = char_width(char)
            if width == 0:
                prev = x + offset - 1
                if (
                    self.in_bounds(prev, y)
                    and self.grid[y][prev].kind is CellKind.GLYPH
                ):
                    self.grid[y][prev].char += char
                continue
            self.set(x + offset, y, char)
            for extra in range(1, width):
                if self.in_bounds(x + offset + extra, y):
                    self.set(x + offset + extra, y, " ")
                    self.grid[y][x + offset + extra] = Cell(CellKind.CONTINUATION, "")
            offset += width

    def merge(self, x: int, y: int, char: str) -> None:
        """
        Merge a box-drawing glyph into the cell at (x, y).

        Both glyphs are decomposed into their connection directions and the
        union is drawn as a single light glyph. If either glyph is not a
        line-drawing character, the new glyph simply replaces the old one.
        """
        if not self.in_bounds(x, y):
            return
        existing = self.grid[y][x]
        if existing.char == char:
            return
        existing_mask = 0
        if existing.kind is CellKind.GLYPH:
            existing_mask = GLYPH_MASKS.get(existing.char, 0)
        new_mask = GLYPH_MASKS.get(char, 0)
        if existing_mask == 0 or new_mask == 0:
            self.set(x, y, char)
            return
        self.set(x, y, glyph_for_mask(existing_mask | new_mask))

    def render(self) -> str:
        """Render the canvas to a string with right-trimmed lines."""
        lines = []
        for row in self.grid:
            line = "".join(
                cell.char for cell in row if cell.kind is not CellKind.CONTINUATION
            )
            lines.append(line.rstrip())
        return "\n".join(lines)


class BoxRenderer:
    """
    Draws bordered boxes and their labels.

    The border style is chosen per box; labels are vertically centered and
    either left-aligned after two columns of padding or horizontally
    centered (used for rounded shapes).
    """

    def draw_box(
        self,
        canvas: Canvas,
        x: int,
        y: int,
        width: int,
        height: int,
        chars: Dict[str, str] = BOX_CHARS,
    ) -> None:
        """
        Draw a box outline with its top-left corner at (x, y).

        ┌─────┐
        │     │
        └─────┘
        """
        right = x + width - 1
        bottom = y + height - 1
        canvas.set(x, y, chars["top_left"])
        canvas.set(right, y, chars["top_right"])
        canvas.set(x, bottom, chars["bottom_left"])
        canvas.set(right, bottom, chars["bottom_right"])
        for col in range(x + 1, right):
            canvas.set(col, y, chars["horizontal"])
            canvas.set(col, bottom, chars["horizontal"])
        for row in range(y + 1, bottom):
            canvas.set(x, row, chars["vertical"])
            canvas.set(right, row, chars["vertical"])

    def clear_interior(
        self, canvas: Canvas, x: int, y: int, width: int, height: int
    ) -> None:
        """Blank everything strictly inside a box outline."""
        for row in range(y + 1, y + height - 1):
            for col in range(x + 1, x + width - 1):
                canvas.set(col, row, " ")

    def draw_label(
        self,
        canvas: Canvas,
        x: int,
        y: int,
        width: int,
        height: int,
        lines: Sequence[str],
        centered: bool = False,
    ) -> None:
        """
        Draw label lines inside a box.

        Args:
            canvas: The canvas to draw on.
            x: Box left column.
            y: Box top row.
            width: Box width including borders.
            height: Box height including borders.
            lines: Label lines, top to bottom.
            centered: Center each line horizontally instead of padding by 2.
        """
        interior = height - 2
        top = y + 1 + max(interior - len(lines), 0) // 2
        for i, line in enumerate(lines):
            if centered:
                text_x = x + 1 + max(width - 2 - display_width(line), 0) // 2
            else:
                text_x = x + 2
            canvas.write(text_x, top + i, line)


class LineRenderer:
    """
    Draws straight runs of connector glyphs.

    Runs drawn with ``merge=True`` join any line glyphs already on the
    canvas; cells listed in ``skip`` are left untouched.
    """

    def draw_horizontal(
        self,
        canvas: Canvas,
        x_start: int,
        x_end: int,
        y: int,
        char: str = LINE_CHARS["horizontal"],
        merge: bool = True,
        skip: Optional[Callable[[int, int], bool]] = None,
    ) -> None:
        """
        Draw a horizontal run over columns x_start..x_end inclusive.

        Nothing is drawn when x_start > x_end.
        """
        for x in range(x_start, x_end + 1):
            if skip is not None and skip(x, y):
                continue
            if merge:
                canvas.merge(x, y, char)
            else:
                canvas.set(x, y, char)

    def draw_vertical(
        self,
        canvas: Canvas,
        x: int,
        y_start: int,
        y_end: int,
        char: str = LINE_CHARS["vertical"],
        merge: bool = True,
        skip: Optional[Callable[[int, int], bool]] = None,
    ) -> None:
        """Draw a vertical run over rows y_start..y_end inclusive."""
        for y in range(y_start, y_end + 1):
            if skip is not None and skip(x, y):
                continue
            if merge:
                canvas.merge(x, y, char)
            else:
                canvas.set(x, y, char)
