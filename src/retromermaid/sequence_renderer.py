"""
Renderer for sequence diagram layouts.

Draws the top participant boxes, walks the body rows top to bottom, and
finishes with the bottom boxes. Lifelines are redrawn for every message and
note row with the activation state recorded for that row; block frames keep
their side borders on every row while they are open.
"""

from typing import List, Sequence

from .metrics import display_width, split_lines
from .models import ArrowHead, LineStyle
from .renderer import BOX_CHARS, LINE_CHARS, BoxRenderer, Canvas, LineRenderer
from .sequence_layout import (
    SELF_LOOP_ARM,
    DestroyRow,
    FrameKind,
    FrameRow,
    MessageDirection,
    MessageRow,
    NoteRow,
    SequenceLayout,
)

DESTROY_MARKER = "●"

# Arrow head glyphs: (pointing right, pointing left)
HEAD_GLYPHS = {
    ArrowHead.NONE: (None, None),
    ArrowHead.ARROWHEAD: (">", "<"),
    ArrowHead.CROSS: ("x", "x"),
    ArrowHead.OPEN: (")", "("),
}

FRAME_BORDERS = {
    FrameKind.START: (BOX_CHARS["top_left"], BOX_CHARS["top_right"]),
    FrameKind.DIVIDER: (LINE_CHARS["tee_right"], LINE_CHARS["tee_left"]),
    FrameKind.END: (BOX_CHARS["bottom_left"], BOX_CHARS["bottom_right"]),
}


class SequenceRenderer:
    """Renders a SequenceLayout to text."""

    def __init__(self):
        self.boxes = BoxRenderer()
        self.lines = LineRenderer()

    def render(self, layout: SequenceLayout) -> str:
        """
        Render a layout.

        Args:
            layout: Positioned sequence diagram.

        Returns:
            The diagram text, without trailing whitespace on any line.
        """
        canvas = Canvas(layout.total_width, layout.height)
        self._draw_participants(canvas, layout, 0, top=True)

        alive = [True] * len(layout.participants)
        open_frames: List[FrameRow] = []

        for row, active in zip(layout.rows, layout.activations):
            if isinstance(row, FrameRow):
                if row.kind is FrameKind.END:
                    open_frames.pop()
                divider = row.kind is FrameKind.DIVIDER
                outer = open_frames[:-1] if divider else open_frames
                self._draw_lifelines(canvas, layout, row.y, 1, active, alive)
                self._draw_frame_row(canvas, layout, row, alive)
                self._draw_frame_sides(canvas, outer, row.y, 1)
                if row.kind is FrameKind.START:
                    open_frames.append(row)
                continue

            self._draw_lifelines(canvas, layout, row.y, row.height, active, alive)
            if isinstance(row, MessageRow):
                self._draw_message(canvas, row, active)
            elif isinstance(row, NoteRow):
                self._draw_note(canvas, row)
            elif isinstance(row, DestroyRow):
                canvas.set(row.col, row.y, DESTROY_MARKER)
                alive[row.participant] = False
            self._draw_frame_sides(canvas, open_frames, row.y, row.height)

        self._draw_participants(
            canvas, layout, layout.box_height + layout.body_height, top=False
        )
        return canvas.render()

    def _lifeline_char(self, active: bool) -> str:
        return LINE_CHARS["heavy_vertical"] if active else LINE_CHARS["vertical"]

    def _draw_participants(
        self, canvas: Canvas, layout: SequenceLayout, y: int, top: bool
    ) -> None:
        for index, participant in enumerate(layout.participants):
            if not top and layout.destroyed[index]:
                continue
            width = participant.box_width
            self.boxes.draw_box(
                canvas, participant.box_left, y, width, layout.box_height
            )
            self.boxes.draw_label(
                canvas,
                participant.box_left,
                y,
                width,
                layout.box_height,
                split_lines(participant.name),
            )
            if top:
                bottom = y + layout.box_height - 1
                canvas.set(participant.center, bottom, LINE_CHARS["tee_down"])
            else:
                canvas.set(participant.center, y, LINE_CHARS["tee_up"])

    def _draw_lifelines(
        self,
        canvas: Canvas,
        layout: SequenceLayout,
        y: int,
        height: int,
        active: Sequence[bool],
        alive: Sequence[bool],
    ) -> None:
        for index, participant in enumerate(layout.participants):
            if not alive[index]:
                continue
            char = self._lifeline_char(active[index])
            for row in range(y, y + height):
                canvas.set(participant.center, row, char)

    def _draw_message(
        self, canvas: Canvas, row: MessageRow, active: Sequence[bool]
    ) -> None:
        if row.direction is MessageDirection.SELF:
            self._draw_self_message(canvas, row, active)
            return

        left, right = sorted((row.from_col, row.to_col))
        text_lines = split_lines(row.text)
        for i, line in enumerate(text_lines):
            canvas.write(left + 2, row.y + i, line)

        arrow_y = row.y + len(text_lines)
        for col in range(left + 1, right):
            if row.arrow.line_style is LineStyle.DOTTED and (col - left - 1) % 2:
                canvas.set(col, arrow_y, " ")
            else:
                canvas.set(col, arrow_y, LINE_CHARS["horizontal"])

        right_head, left_head = HEAD_GLYPHS[row.arrow.head]
        if row.direction is MessageDirection.LEFT_TO_RIGHT:
            if right_head:
                canvas.set(right - 1, arrow_y, right_head)
        else:
            if left_head:
                canvas.set(left + 1, arrow_y, left_head)
            canvas.set(right - 1, arrow_y, LINE_CHARS["horizontal"])

        sides = ((row.from_col, row.source), (row.to_col, row.target))
        for col, index in sides:
            canvas.set(col, arrow_y, self._lifeline_char(active[index]))

    def _draw_self_message(
        self, canvas: Canvas, row: MessageRow, active: Sequence[bool]
    ) -> None:
        """
        Draw a message to the sender's own lifeline.

        │ text
        │──┐
        │<─┘
        """
        center = row.from_col
        arm_end = center + SELF_LOOP_ARM
        text_lines = split_lines(row.text)
        for i, line in enumerate(text_lines):
            canvas.write(center + 2, row.y + i, line)

        arm_y = row.y + len(text_lines)
        self.lines.draw_horizontal(canvas, center + 1, arm_end - 1, arm_y, merge=False)
        canvas.set(arm_end, arm_y, LINE_CHARS["corner_top_right"])

        return_y = arm_y + 1
        self.lines.draw_horizontal(
            canvas, center + 1, arm_end - 1, return_y, merge=False
        )
        canvas.set(arm_end, return_y, LINE_CHARS["corner_bottom_right"])
        _, left_head = HEAD_GLYPHS[row.arrow.head]
        if left_head:
            canvas.set(center + 1, return_y, left_head)

        char = self._lifeline_char(active[row.source])
        for y in range(row.y, row.y + row.height):
            canvas.set(center, y, char)

    def _draw_note(self, canvas: Canvas, row: NoteRow) -> None:
        width = row.right - row.left + 1
        self.boxes.draw_box(canvas, row.left, row.y, width, row.height)
        self.boxes.clear_interior(canvas, row.left, row.y, width, row.height)
        self.boxes.draw_label(
            canvas, row.left, row.y, width, row.height, split_lines(row.text)
        )

    def _draw_frame_row(
        self,
        canvas: Canvas,
        layout: SequenceLayout,
        row: FrameRow,
        alive: Sequence[bool],
    ) -> None:
        left_char, right_char = FRAME_BORDERS[row.kind]
        self.lines.draw_horizontal(
            canvas, row.left + 1, row.right - 1, row.y, merge=False
        )
        canvas.set(row.left, row.y, left_char)
        canvas.set(row.right, row.y, right_char)
        label_end = row.left + 2 + display_width(row.label)
        if row.label:
            canvas.write(row.left + 2, row.y, row.label)

        for index, participant in enumerate(layout.participants):
            if not alive[index]:
                continue
            if not row.left < participant.center < row.right:
                continue
            if row.label and participant.center <= label_end:
                continue
            canvas.set(participant.center, row.y, LINE_CHARS["cross"])

    def _draw_frame_sides(
        self, canvas: Canvas, frames: Sequence[FrameRow], y: int, height: int
    ) -> None:
        for frame in frames:
            for row in range(y, y + height):
                canvas.set(frame.left, row, LINE_CHARS["vertical"])
                canvas.set(frame.right, row, LINE_CHARS["vertical"])


def render_sequence(layout: SequenceLayout) -> str:
    """Convenience function to render a sequence layout."""
    return SequenceRenderer().render(layout)
