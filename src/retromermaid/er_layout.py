"""
Layout engine for entity-relationship diagrams.

Entities are ranked left to right over the relationship graph and stacked
top to bottom within a rank. Relationships between consecutive ranks are
drawn through the gap between them; any other relationship (same rank,
backwards, or an entity related to itself) runs through a lane below the
content.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import EmptyDiagramError, InfeasibleWidthError
from .logging import get_logger
from .metrics import display_width
from .models import Cardinality, ErDiagram
from .ranking import assign_ranks, group_by_rank
from .routing import Rect

log = get_logger(__name__)

BOX_PADDING = 4
ENTITY_GAP = 1
MIN_RANK_GAP = 6
# Cardinality glyphs and connector runs on both sides of a label
LABEL_MARGIN = 8
# Rows between the content and the first lane, and between lanes
LANE_STEP = 2
# Cardinality glyph width
CARD_WIDTH = 2

LEFT_CARD_GLYPHS = {
    Cardinality.EXACTLY_ONE: "||",
    Cardinality.ZERO_OR_ONE: "o|",
    Cardinality.ONE_OR_MANY: "}|",
    Cardinality.ZERO_OR_MANY: "}o",
}

RIGHT_CARD_GLYPHS = {
    Cardinality.EXACTLY_ONE: "||",
    Cardinality.ZERO_OR_ONE: "|o",
    Cardinality.ONE_OR_MANY: "|{",
    Cardinality.ZERO_OR_MANY: "o{",
}


@dataclass(frozen=True)
class EntityLayout:
    """
    A positioned entity box.

    Attributes:
        name: Entity name, shown on the first interior row.
        attributes: Formatted attribute rows, possibly empty.
        x: Left column.
        y: Top row.
        width: Box width including borders.
        height: Box height including borders.
    """

    name: str
    attributes: Tuple[str, ...]
    x: int
    y: int
    width: int
    height: int

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2

    @property
    def name_row(self) -> int:
        """Row relationships attach to."""
        return self.y + 1

    @property
    def right(self) -> int:
        return self.x + self.width - 1

    @property
    def bottom(self) -> int:
        return self.y + self.height - 1

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class RelationshipLayout:
    """
    A relationship between two positioned entities.

    ``lane`` is the row of the lane below the content for relationships that
    do not advance by exactly one rank, and None otherwise.
    """

    source: str
    target: str
    left_card: Cardinality
    right_card: Cardinality
    label: str
    lane: Optional[int] = None

    @property
    def left_glyph(self) -> str:
        return LEFT_CARD_GLYPHS[self.left_card]

    @property
    def right_glyph(self) -> str:
        return RIGHT_CARD_GLYPHS[self.right_card]


@dataclass(frozen=True)
class ErLayout:
    entities: Tuple[EntityLayout, ...]
    relationships: Tuple[RelationshipLayout, ...]
    width: int
    height: int

    def entity(self, name: str) -> EntityLayout:
        for entity in self.entities:
            if entity.name == name:
                return entity
        raise KeyError(name)


def lane_columns(source: EntityLayout, target: EntityLayout) -> Tuple[int, int]:
    """Columns of the two verticals of a lane route."""
    if source.name == target.name:
        return source.x + 1, source.right - 1
    source_x, target_x = source.center_x, target.center_x
    if source_x == target_x:
        source_x += 1
    return source_x, target_x


class ErLayoutEngine:
    """Computes ErLayout objects."""

    def compute(self, diagram: ErDiagram) -> ErLayout:
        """
        Lay out an ER diagram.

        Raises:
            EmptyDiagramError: If the diagram has no entities.
        """
        if not diagram.entities:
            raise EmptyDiagramError("no entities found")

        names = [entity.name for entity in diagram.entities]
        pairs = [(r.source, r.target) for r in diagram.relationships]
        ranks = assign_ranks(names, pairs)
        layers = group_by_rank(names, ranks)

        rows = {
            entity.name: tuple(str(attr) for attr in entity.attributes)
            for entity in diagram.entities
        }
        sizes = {name: self._box_size(name, rows[name]) for name in names}

        placed: Dict[str, EntityLayout] = {}
        x = 0
        for rank, layer in enumerate(layers):
            y = 0
            for name in layer:
                width, height = sizes[name]
                placed[name] = EntityLayout(name, rows[name], x, y, width, height)
                y += height + ENTITY_GAP
            gap = MIN_RANK_GAP
            for relationship in diagram.relationships:
                if (
                    ranks[relationship.source] == rank
                    and ranks[relationship.target] == rank + 1
                ):
                    gap = max(gap, display_width(relationship.label) + LABEL_MARGIN)
            x += max(sizes[name][0] for name in layer) + gap

        entities = [placed[name] for name in names]
        width = max(e.x + e.width for e in entities)
        height = max(e.y + e.height for e in entities)

        relationships: List[RelationshipLayout] = []
        lane = height + 1
        for relationship in diagram.relationships:
            source, target = placed[relationship.source], placed[relationship.target]
            routed = ranks[relationship.target] != ranks[relationship.source] + 1
            relationships.append(
                RelationshipLayout(
                    source=relationship.source,
                    target=relationship.target,
                    left_card=relationship.left_card,
                    right_card=relationship.right_card,
                    label=relationship.label,
                    lane=lane if routed else None,
                )
            )
            if routed:
                low, high = sorted(lane_columns(source, target))
                label_width = display_width(relationship.label)
                if label_width > high - low - 1:
                    # Label does not fit between the verticals; it follows the lane
                    width = max(width, high + 2 + label_width)
                width = max(width, high + 1 + CARD_WIDTH)
                height = lane + 1
                lane += LANE_STEP

        layout = ErLayout(tuple(entities), tuple(relationships), width, height)
        log.debug(
            "layout_computed",
            kind="er",
            entities=len(entities),
            relationships=len(relationships),
            width=width,
            height=height,
        )
        return layout

    def compute_with_max_width(self, diagram: ErDiagram, max_width: int) -> ErLayout:
        """
        Lay out an ER diagram no wider than ``max_width`` columns.

        ER layouts have no shrinkable spacing, so a diagram that does not
        fit at its natural size is rejected.

        Raises:
            EmptyDiagramError: If the diagram has no entities.
            InfeasibleWidthError: If the natural layout is too wide.
        """
        layout = self.compute(diagram)
        if layout.width > max_width:
            raise InfeasibleWidthError(
                f"diagram needs at least {layout.width} columns, "
                f"but the maximum width is {max_width}",
                max_width=max_width,
                min_width=layout.width,
            )
        return layout

    def _box_size(self, name: str, attributes: Tuple[str, ...]) -> Tuple[int, int]:
        widest = max([display_width(name)] + [display_width(a) for a in attributes])
        if attributes:
            # Name row, separator, one row per attribute
            return widest + BOX_PADDING, 4 + len(attributes)
        return widest + BOX_PADDING, 3


def compute_er_layout(diagram: ErDiagram, max_width: Optional[int] = None) -> ErLayout:
    """Convenience wrapper around ErLayoutEngine."""
    engine = ErLayoutEngine()
    if max_width is None:
        return engine.compute(diagram)
    return engine.compute_with_max_width(diagram, max_width)
