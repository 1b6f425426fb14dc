"""
Diagram syntax trees produced by the parsers.

Each diagram kind has its own immutable tree. Sequence diagrams are an
ordered list of statements in which blocks nest recursively; graph and ER
diagrams are flat lists of deduplicated declarations.

Classes:
    LineStyle, ArrowHead, Arrow: Sequence message decoration.
    NotePlacement, NotePosition: Where a sequence note is anchored.
    ParticipantDecl, Message, Note, Activate, Deactivate, Destroy,
    AutoNumber, Block, Branch, BranchBlock: Sequence statements.
    SequenceDiagram: A parsed sequence diagram.
    Direction, NodeShape, EdgeType: Graph enumerations.
    NodeDecl, Edge, Subgraph, GraphDiagram: A parsed flowchart.
    Cardinality, EntityAttribute, Entity, Relationship, ErDiagram:
        A parsed entity-relationship diagram.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

# ---------------------------------------------------------------------------
# Sequence diagrams
# ---------------------------------------------------------------------------


class LineStyle(Enum):
    """Message line style."""

    SOLID = "solid"
    DOTTED = "dotted"


class ArrowHead(Enum):
    """Message arrow head."""

    NONE = "none"
    ARROWHEAD = "arrowhead"
    CROSS = "cross"
    OPEN = "open"


@dataclass(frozen=True)
class Arrow:
    """Decoration of a message line."""

    line_style: LineStyle = LineStyle.SOLID
    head: ArrowHead = ArrowHead.ARROWHEAD


class NotePosition(Enum):
    """Anchor of a note relative to its participant(s)."""

    RIGHT_OF = "right of"
    LEFT_OF = "left of"
    OVER = "over"


@dataclass(frozen=True)
class NotePlacement:
    """
    Note anchor.

    Attributes:
        kind: Side of the participant the note sits on.
        participants: One participant id, or two for ``over A,B``.
    """

    kind: NotePosition
    participants: Tuple[str, ...]


@dataclass(frozen=True)
class ParticipantDecl:
    """``participant``/``actor`` declaration, optionally with a display alias."""

    id: str
    alias: Optional[str] = None
    created: bool = False

    @property
    def display_name(self) -> str:
        return self.alias if self.alias else self.id


@dataclass(frozen=True)
class Message:
    """
    A message between two participants.

    Attributes:
        source: Sending participant id.
        target: Receiving participant id (may equal source).
        arrow: Line style and head.
        text: Message label.
        activate_target: ``+`` shorthand after the arrow.
        deactivate_source: ``-`` shorthand after the arrow.
    """

    source: str
    target: str
    arrow: Arrow
    text: str
    activate_target: bool = False
    deactivate_source: bool = False


@dataclass(frozen=True)
class Note:
    placement: NotePlacement
    text: str


@dataclass(frozen=True)
class Activate:
    participant: str


@dataclass(frozen=True)
class Deactivate:
    participant: str


@dataclass(frozen=True)
class Destroy:
    participant: str


@dataclass(frozen=True)
class AutoNumber:
    pass


@dataclass(frozen=True)
class Block:
    """
    A framed block with a single body: loop, opt, break or rect.

    Attributes:
        kind: Block keyword.
        label: Text after the keyword (may be empty).
        body: Nested statements.
    """

    kind: str
    label: str
    body: Tuple["Statement", ...] = ()


@dataclass(frozen=True)
class Branch:
    """A divider section (else/and/option) of a branching block."""

    label: str
    body: Tuple["Statement", ...] = ()


@dataclass(frozen=True)
class BranchBlock:
    """
    A framed block with divider sections: alt, par or critical.

    Attributes:
        kind: Block keyword.
        label: Text after the keyword.
        body: Statements before the first divider.
        branches: Divider sections in order.
    """

    kind: str
    label: str
    body: Tuple["Statement", ...] = ()
    branches: Tuple[Branch, ...] = ()


# Divider keyword used by each branching block
DIVIDER_KEYWORDS = {
    "alt": "else",
    "par": "and",
    "critical": "option",
}

Statement = Union[
    ParticipantDecl,
    Message,
    Note,
    Activate,
    Deactivate,
    Destroy,
    AutoNumber,
    Block,
    BranchBlock,
]


@dataclass(frozen=True)
class SequenceDiagram:
    statements: Tuple[Statement, ...] = ()


# ---------------------------------------------------------------------------
# Graphs / flowcharts
# ---------------------------------------------------------------------------


class Direction(Enum):
    """Flow direction of a graph."""

    TD = "TD"
    LR = "LR"


class NodeShape(Enum):
    BOX = "box"
    ROUND = "round"
    CIRCLE = "circle"
    DIAMOND = "diamond"


class EdgeType(Enum):
    """Graph edge operator."""

    ARROW = "-->"
    OPEN_LINK = "---"
    DOTTED_ARROW = "-.->"
    DOTTED_LINK = "-.-"
    THICK_ARROW = "==>"
    THICK_LINK = "==="

    @property
    def has_arrow_head(self) -> bool:
        return self in (EdgeType.ARROW, EdgeType.DOTTED_ARROW, EdgeType.THICK_ARROW)

    @property
    def is_dotted(self) -> bool:
        return self in (EdgeType.DOTTED_ARROW, EdgeType.DOTTED_LINK)

    @property
    def is_thick(self) -> bool:
        return self in (EdgeType.THICK_ARROW, EdgeType.THICK_LINK)


@dataclass(frozen=True)
class NodeDecl:
    id: str
    label: str
    shape: NodeShape = NodeShape.BOX


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    edge_type: EdgeType = EdgeType.ARROW
    label: Optional[str] = None


@dataclass(frozen=True)
class Subgraph:
    """
    A titled group of nodes.

    Attributes:
        id: Identifier derived from the title.
        label: Title shown in the border.
        node_ids: Member nodes in first-reference order.
    """

    id: str
    label: str
    node_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GraphDiagram:
    direction: Direction
    nodes: Tuple[NodeDecl, ...] = ()
    edges: Tuple[Edge, ...] = ()
    subgraphs: Tuple[Subgraph, ...] = ()


# ---------------------------------------------------------------------------
# Entity-relationship diagrams
# ---------------------------------------------------------------------------


class Cardinality(Enum):
    EXACTLY_ONE = "exactly_one"
    ZERO_OR_ONE = "zero_or_one"
    ONE_OR_MANY = "one_or_many"
    ZERO_OR_MANY = "zero_or_many"


@dataclass(frozen=True)
class EntityAttribute:
    """One ``type name [key]`` line of an entity block."""

    attr_type: str
    name: str
    key: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.attr_type, self.name]
        if self.key:
            parts.append(self.key)
        return " ".join(parts)


@dataclass(frozen=True)
class Entity:
    name: str
    attributes: Tuple[EntityAttribute, ...] = ()


@dataclass(frozen=True)
class Relationship:
    source: str
    target: str
    left_card: Cardinality
    right_card: Cardinality
    label: str


@dataclass(frozen=True)
class ErDiagram:
    entities: Tuple[Entity, ...] = ()
    relationships: Tuple[Relationship, ...] = ()
