"""
Renderer for ER diagram layouts.

Relationships between neighbouring ranks are drawn as a connector with the
cardinality glyphs at both ends and the label set into the line:

    ┌──────────┐              ┌───────┐
    │ CUSTOMER │||──places──o{│ ORDER │
    └──────────┘              └───────┘

When the two entities sit on different rows the connector turns once; other
relationships run through lanes below the content.
"""

from typing import Dict, List, Tuple

from .er_layout import ErLayout, EntityLayout, RelationshipLayout, lane_columns
from .metrics import display_width
from .renderer import (
    DOWN,
    LEFT,
    LINE_CHARS,
    RIGHT,
    UP,
    BoxRenderer,
    Canvas,
    LineRenderer,
    glyph_for_mask,
)
from .routing import LaneRouter, Occupancy


class ErRenderer:
    """Renders an ErLayout to text."""

    def __init__(self):
        self.boxes = BoxRenderer()
        self.lines = LineRenderer()

    def render(self, layout: ErLayout) -> str:
        canvas = Canvas(layout.width, layout.height)
        occupancy = Occupancy(entity.rect for entity in layout.entities)
        router = LaneRouter(occupancy)
        entities = {entity.name: entity for entity in layout.entities}
        # Text is written after all lines so merges never touch it
        texts: List[Tuple[int, int, str]] = []

        for entity in layout.entities:
            self._draw_entity(canvas, entity)

        forward_counts: Dict[str, int] = {}
        for relationship in layout.relationships:
            if relationship.lane is None:
                forward_counts[relationship.source] = (
                    forward_counts.get(relationship.source, 0) + 1
                )

        for relationship in layout.relationships:
            source = entities[relationship.source]
            target = entities[relationship.target]
            if relationship.lane is None:
                shared = forward_counts[relationship.source] > 1
                texts.extend(
                    self._draw_forward(
                        canvas, occupancy, relationship, source, target, shared
                    )
                )
            else:
                texts.extend(
                    self._draw_lane(canvas, router, relationship, source, target)
                )

        for x, y, text in texts:
            canvas.write(x, y, text)
        return canvas.render()

    def _draw_entity(self, canvas: Canvas, entity: EntityLayout) -> None:
        """
        Draw an entity box, with an attribute section when it has any.

        ┌──────────────┐
        │ CUSTOMER     │
        ├──────────────┤
        │ string name  │
        └──────────────┘
        """
        self.boxes.draw_box(canvas, entity.x, entity.y, entity.width, entity.height)
        canvas.write(entity.x + 2, entity.y + 1, entity.name)
        if not entity.attributes:
            return
        separator = entity.y + 2
        canvas.set(entity.x, separator, LINE_CHARS["tee_right"])
        canvas.set(entity.right, separator, LINE_CHARS["tee_left"])
        self.lines.draw_horizontal(
            canvas, entity.x + 1, entity.right - 1, separator, merge=False
        )
        for i, attribute in enumerate(entity.attributes):
            canvas.write(entity.x + 2, separator + 1 + i, attribute)

    def _draw_forward(
        self,
        canvas: Canvas,
        occupancy: Occupancy,
        relationship: RelationshipLayout,
        source: EntityLayout,
        target: EntityLayout,
        shared: bool,
    ) -> List[Tuple[int, int, str]]:
        """
        Draw a relationship across the gap between two ranks.

        A connector between different rows turns just before the target,
        or just after the source when the source has several connectors,
        so that every label sits on a run of its own.
        """
        from_right = source.right + 1
        to_left = target.x
        source_row = source.name_row
        target_row = target.name_row
        texts = [
            (from_right, source_row, relationship.left_glyph),
            (to_left - 2, target_row, relationship.right_glyph),
        ]

        if source_row == target_row:
            self.lines.draw_horizontal(
                canvas, from_right + 2, to_left - 3, source_row, skip=occupancy
            )
            texts.append(
                self._centered(
                    from_right + 2, to_left - 3, source_row, relationship.label
                )
            )
            return texts

        turn = from_right + 2 if shared else to_left - 3
        toward_target = DOWN if target_row > source_row else UP
        toward_source = UP if target_row > source_row else DOWN

        self.lines.draw_horizontal(
            canvas, from_right + 2, turn - 1, source_row, skip=occupancy
        )
        canvas.merge(turn, source_row, glyph_for_mask(LEFT | toward_target))
        low, high = sorted((source_row, target_row))
        self.lines.draw_vertical(canvas, turn, low + 1, high - 1, skip=occupancy)
        canvas.merge(turn, target_row, glyph_for_mask(RIGHT | toward_source))
        self.lines.draw_horizontal(
            canvas, turn + 1, to_left - 3, target_row, skip=occupancy
        )

        if shared:
            texts.append(
                self._centered(turn + 1, to_left - 3, target_row, relationship.label)
            )
        else:
            texts.append(
                self._centered(from_right + 2, turn - 1, source_row, relationship.label)
            )
        return texts

    def _draw_lane(
        self,
        canvas: Canvas,
        router: LaneRouter,
        relationship: RelationshipLayout,
        source: EntityLayout,
        target: EntityLayout,
    ) -> List[Tuple[int, int, str]]:
        """
        Draw a relationship through its lane below the content, with each
        cardinality glyph beside the vertical it belongs to.

        └─┬────┘ └─┬───┘
          │||      │o{
          └──rel───┘
        """
        source_x, target_x = lane_columns(source, target)
        router.route_below(
            canvas,
            source_x,
            source.bottom,
            target_x,
            target.bottom,
            relationship.lane,
            head=None,
        )
        texts = [
            (source_x + 1, source.bottom + 1, relationship.left_glyph),
            (target_x + 1, target.bottom + 1, relationship.right_glyph),
        ]
        low, high = sorted((source_x, target_x))
        if display_width(relationship.label) <= high - low - 1:
            texts.append(
                self._centered(low + 1, high - 1, relationship.lane, relationship.label)
            )
        else:
            texts.append((high + 2, relationship.lane, relationship.label))
        return texts

    @staticmethod
    def _centered(low: int, high: int, row: int, text: str) -> Tuple[int, int, str]:
        """Position ``text`` centered over columns low..high."""
        room = high - low + 1
        return low + max(room - display_width(text), 0) // 2, row, text


def render_er(layout: ErLayout) -> str:
    """Convenience function to render an ER layout."""
    return ErRenderer().render(layout)
