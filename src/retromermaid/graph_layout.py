"""
Layout engine for graph/flowchart diagrams.

Nodes are layered by longest-path rank (see ranking.py). In top-down
diagrams ranks are rows of boxes centered on the widest rank; in
left-to-right diagrams ranks are columns of boxes stacked from the top.

Subgraphs are laid out independently: each one, and then the group of nodes
that belong to no subgraph, is positioned as a separate block and the blocks
are placed one after another along the flow direction. Edges are classified
from the final geometry: an edge whose target lies beyond its source in the
flow direction is drawn directly, any other edge is routed through a margin
lane, and an edge from a node to itself is drawn as a small loop.

Classes:
    EdgeClass: How an edge is routed.
    NodeLayout: Positioned node box.
    EdgeLayout: Classified edge.
    SubgraphLayout: Positioned subgraph border.
    GraphLayout: Complete positioned graph.
    GraphLayoutEngine: Computes layouts, optionally within a width limit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from .errors import EmptyDiagramError, InfeasibleWidthError, UnsupportedLayoutError
from .logging import get_logger
from .metrics import display_width, line_count, multiline_width
from .models import (
    Direction,
    Edge,
    EdgeType,
    GraphDiagram,
    NodeDecl,
    NodeShape,
    Subgraph,
)
from .ranking import assign_ranks, group_by_rank
from .routing import Rect, lane_offsets, lane_width

log = get_logger(__name__)

# Box width = label width + BOX_PADDING; circles get CIRCLE_EXTRA more
BOX_PADDING = 4
CIRCLE_EXTRA = 4

# Top-down spacing
TD_RANK_SPACING = 2
TD_NODE_GAP = 3

# Left-to-right spacing
LR_RANK_GAP = 5
LR_NODE_GAP = 2
LR_BENT_MIN_GAP = 3

# Subgraph border padding (blank cells between border and content)
SUBGRAPH_PAD_X = 2
SUBGRAPH_PAD_Y = 1
SUBGRAPH_TITLE_DECOR = 6

# Space between consecutive groups
TD_GROUP_GAP = 2
LR_GROUP_GAP = 5

# Self-loop arm length beyond the node border
SELF_LOOP_ARM = 2


class EdgeClass(Enum):
    FORWARD = "forward"
    BACK = "back"
    SELF = "self"


@dataclass(frozen=True)
class NodeLayout:
    """
    A positioned node.

    Attributes:
        id: Node id.
        label: Label text, possibly with line breaks.
        shape: Border style.
        x: Left column.
        y: Top row.
        width: Box width including borders.
        height: Box height including borders.
    """

    id: str
    label: str
    shape: NodeShape
    x: int
    y: int
    width: int
    height: int

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2

    @property
    def center_y(self) -> int:
        return self.y + self.height // 2

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
class EdgeLayout:
    """
    A classified edge.

    Attributes:
        source: Source node id.
        target: Target node id.
        edge_type: Line and head decoration.
        label: Optional label.
        edge_class: Direct, lane-routed or self-loop.
        lane: Lane column (top-down) or row (left-to-right) for back edges.
    """

    source: str
    target: str
    edge_type: EdgeType
    label: Optional[str]
    edge_class: EdgeClass
    lane: Optional[int] = None


@dataclass(frozen=True)
class SubgraphLayout:
    id: str
    label: str
    x: int
    y: int
    width: int
    height: int

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class GraphLayout:
    direction: Direction
    nodes: Tuple[NodeLayout, ...]
    edges: Tuple[EdgeLayout, ...]
    subgraphs: Tuple[SubgraphLayout, ...]
    width: int
    height: int

    def node(self, node_id: str) -> NodeLayout:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)


def box_size(label: str, shape: NodeShape) -> Tuple[int, int]:
    """Width and height of the box drawn for ``label``."""
    width = multiline_width(label) + BOX_PADDING
    if shape is NodeShape.CIRCLE:
        width += CIRCLE_EXTRA
    return width, 2 + line_count(label)


def _self_loop_labels(edges: Sequence[Edge]) -> Dict[str, str]:
    """Widest self-loop label per node ("" for unlabelled loops)."""
    loops: Dict[str, str] = {}
    for edge in edges:
        if edge.source == edge.target:
            label = edge.label or ""
            if display_width(label) >= display_width(loops.get(edge.source, "")):
                loops[edge.source] = label
    return loops


def back_edge_ports(
    source: NodeLayout,
    target: NodeLayout,
    looped: Collection[str],
    direction: Direction,
) -> Tuple[int, int]:
    """
    Where a back edge leaves ``source`` and where it reaches ``target``.

    Top-down lanes attach by row on the right border and left-to-right lanes
    by column on the bottom border. A node with a self-loop leaves the middle
    of that border to its loop, so the lane attaches at the corner instead.
    """
    if direction is Direction.TD:
        source_port = source.y if source.id in looped else source.center_y
        target_port = target.y if target.id in looped else target.center_y
        return source_port, target_port
    source_port = source.right if source.id in looped else source.center_x
    target_port = target.right if target.id in looped else target.center_x
    if source_port == target_port:
        source_port += 1 if source_port < source.right else -1
    return source_port, target_port


@dataclass
class _Block:
    """A group of nodes laid out in local coordinates."""

    subgraph: Optional[Subgraph]
    positions: Dict[str, Tuple[int, int]]
    width: int
    height: int


class GraphLayoutEngine:
    """
    Computes GraphLayout objects.

    Args:
        node_gap: Columns between boxes of one rank (top-down).
        rank_gap: Minimum columns between ranks (left-to-right).
    """

    def __init__(self, node_gap: int = TD_NODE_GAP, rank_gap: int = LR_RANK_GAP):
        self.node_gap = node_gap
        self.rank_gap = rank_gap

    def compute(self, diagram: GraphDiagram) -> GraphLayout:
        """
        Lay out a graph at its natural size.

        Raises:
            EmptyDiagramError: If the diagram has no nodes.
        """
        if not diagram.nodes:
            raise EmptyDiagramError("no nodes found")

        sizes = {n.id: box_size(n.label, n.shape) for n in diagram.nodes}
        loops = _self_loop_labels(diagram.edges)
        blocks = [
            self._layout_block(subgraph, nodes, diagram, sizes, loops)
            for subgraph, nodes in self._partition(diagram)
        ]
        nodes, subgraphs = self._place_blocks(blocks, diagram, sizes)
        layout = self._finish(diagram, nodes, subgraphs, loops)
        log.debug(
            "layout_computed",
            kind="graph",
            direction=diagram.direction.value,
            nodes=len(layout.nodes),
            subgraphs=len(layout.subgraphs),
            width=layout.width,
            height=layout.height,
        )
        return layout

    def compute_with_max_width(
        self, diagram: GraphDiagram, max_width: int
    ) -> GraphLayout:
        """
        Lay out a graph no wider than ``max_width`` columns.

        Gaps are reduced one column at a time, down to 1. Diagrams with
        subgraphs are only laid out at their natural size.

        Raises:
            EmptyDiagramError: If the diagram has no nodes.
            UnsupportedLayoutError: If a diagram with subgraphs is too wide.
            InfeasibleWidthError: If even the smallest gaps are too wide.
        """
        layout = self.compute(diagram)
        if layout.width <= max_width:
            return layout
        if layout.subgraphs:
            raise UnsupportedLayoutError(
                f"diagram with subgraphs needs {layout.width} columns, "
                f"but the maximum width is {max_width}",
                max_width=max_width,
                min_width=layout.width,
            )

        start = max(self.node_gap, self.rank_gap)
        for gap in range(start - 1, 0, -1):
            engine = GraphLayoutEngine(
                node_gap=min(self.node_gap, gap), rank_gap=min(self.rank_gap, gap)
            )
            layout = engine.compute(diagram)
            log.debug(
                "shrink_step",
                kind="graph",
                gap=gap,
                width=layout.width,
                max_width=max_width,
            )
            if layout.width <= max_width:
                return layout

        raise InfeasibleWidthError(
            f"diagram needs at least {layout.width} columns, "
            f"but the maximum width is {max_width}",
            max_width=max_width,
            min_width=layout.width,
        )

    # -- grouping -----------------------------------------------------------

    def _partition(
        self, diagram: GraphDiagram
    ) -> List[Tuple[Optional[Subgraph], List[NodeDecl]]]:
        """
        Split nodes into subgraph groups followed by the bare nodes.

        A node listed by several subgraphs belongs to the first one.
        Subgraphs left without members are dropped.
        """
        owner: Dict[str, int] = {}
        for index, subgraph in enumerate(diagram.subgraphs):
            for node_id in subgraph.node_ids:
                owner.setdefault(node_id, index)

        groups: List[Tuple[Optional[Subgraph], List[NodeDecl]]] = []
        for index, subgraph in enumerate(diagram.subgraphs):
            members = [n for n in diagram.nodes if owner.get(n.id) == index]
            if members:
                groups.append((subgraph, members))
        bare = [n for n in diagram.nodes if n.id not in owner]
        if bare:
            groups.append((None, bare))
        return groups

    def _layout_block(
        self,
        subgraph: Optional[Subgraph],
        nodes: List[NodeDecl],
        diagram: GraphDiagram,
        sizes: Dict[str, Tuple[int, int]],
        loops: Dict[str, str],
    ) -> _Block:
        ids = [n.id for n in nodes]
        members = set(ids)
        edges = [
            e for e in diagram.edges if e.source in members and e.target in members
        ]
        ranks = assign_ranks(ids, [(e.source, e.target) for e in edges])
        layers = group_by_rank(ids, ranks)

        if diagram.direction is Direction.TD:
            positions = self._layout_td(layers, edges, ranks, sizes, loops)
        else:
            positions = self._layout_lr(layers, edges, ranks, sizes, loops)

        width = max(
            positions[i][0] + self._footprint(i, sizes, loops, diagram.direction)[0]
            for i in ids
        )
        height = max(
            positions[i][1] + self._footprint(i, sizes, loops, diagram.direction)[1]
            for i in ids
        )
        return _Block(subgraph, positions, width, height)

    def _footprint(
        self,
        node_id: str,
        sizes: Dict[str, Tuple[int, int]],
        loops: Dict[str, str],
        direction: Direction,
    ) -> Tuple[int, int]:
        """Width and height a node occupies, including its self-loop."""
        width, height = sizes[node_id]
        if node_id not in loops:
            return width, height
        label = loops[node_id]
        label_room = display_width(label) + 2 if label else 0
        if direction is Direction.TD:
            # ─┐ beside the right border, label after it
            return width + SELF_LOOP_ARM + label_room, height
        # Loop hangs two rows below the box; label follows its corner
        return max(width, width // 2 + 2 + label_room), height + 2

    # -- top-down -----------------------------------------------------------

    def _layout_td(
        self, layers, edges, ranks, sizes, loops
    ) -> Dict[str, Tuple[int, int]]:
        footprints = {
            node_id: self._footprint(node_id, sizes, loops, Direction.TD)
            for layer in layers
            for node_id in layer
        }
        rank_widths = [
            sum(footprints[n][0] for n in layer) + self.node_gap * (len(layer) - 1)
            for layer in layers
        ]
        widest = max(rank_widths)

        xs: Dict[str, int] = {}
        for layer, rank_width in zip(layers, rank_widths):
            x = (widest - rank_width) // 2
            for node_id in layer:
                xs[node_id] = x
                x += footprints[node_id][0] + self.node_gap

        positions: Dict[str, Tuple[int, int]] = {}
        y = 0
        for rank, layer in enumerate(layers):
            for node_id in layer:
                positions[node_id] = (xs[node_id], y)
            rank_height = max(sizes[n][1] for n in layer)
            y += rank_height + TD_RANK_SPACING
            if self._needs_label_row(rank, edges, ranks, xs, sizes):
                y += 1
        return positions

    def _needs_label_row(self, rank, edges, ranks, xs, sizes) -> bool:
        """
        Check whether a labelled edge leaving ``rank`` needs an extra row.

        Straight single edges carry their label in the first gap row; fan
        bars and bends need that row for themselves.
        """
        forward = [e for e in edges if ranks[e.target] > ranks[e.source]]
        out_degree: Dict[str, int] = {}
        in_degree: Dict[str, int] = {}
        for edge in forward:
            out_degree[edge.source] = out_degree.get(edge.source, 0) + 1
            in_degree[edge.target] = in_degree.get(edge.target, 0) + 1

        def center(node_id: str) -> int:
            return xs[node_id] + sizes[node_id][0] // 2

        for edge in forward:
            if ranks[edge.source] != rank or not edge.label:
                continue
            if out_degree[edge.source] > 1 or in_degree[edge.target] > 1:
                return True
            if center(edge.source) != center(edge.target):
                return True
        return False

    # -- left-to-right ------------------------------------------------------

    def _layout_lr(
        self, layers, edges, ranks, sizes, loops
    ) -> Dict[str, Tuple[int, int]]:
        ys: Dict[str, int] = {}
        for layer in layers:
            y = 0
            for node_id in layer:
                ys[node_id] = y
                # A self-loop hangs in the gap below its node
                gap = LR_NODE_GAP + (1 if node_id in loops else 0)
                y += sizes[node_id][1] + gap

        def center_y(node_id: str) -> int:
            return ys[node_id] + sizes[node_id][1] // 2

        positions: Dict[str, Tuple[int, int]] = {}
        x = 0
        for rank, layer in enumerate(layers):
            for node_id in layer:
                positions[node_id] = (x, ys[node_id])
            column_width = max(
                self._footprint(n, sizes, loops, Direction.LR)[0] for n in layer
            )
            gap = self.rank_gap
            for edge in edges:
                if ranks[edge.source] != rank or ranks[edge.target] != rank + 1:
                    continue
                bent = center_y(edge.source) != center_y(edge.target)
                if bent:
                    gap = max(gap, LR_BENT_MIN_GAP)
                if edge.label:
                    label_width = display_width(edge.label)
                    gap = max(gap, 2 * label_width + 6 if bent else label_width + 2)
            x += column_width + gap
        return positions

    # -- assembly -----------------------------------------------------------

    def _place_blocks(
        self,
        blocks: List[_Block],
        diagram: GraphDiagram,
        sizes: Dict[str, Tuple[int, int]],
    ) -> Tuple[List[NodeLayout], List[SubgraphLayout]]:
        """Offset each block into the shared coordinate space."""
        framed = []
        for block in blocks:
            if block.subgraph is None:
                framed.append((block.width, block.height))
            else:
                width = max(
                    block.width + 2 * (SUBGRAPH_PAD_X + 1),
                    display_width(block.subgraph.label) + SUBGRAPH_TITLE_DECOR,
                )
                framed.append((width, block.height + 2 * (SUBGRAPH_PAD_Y + 1)))

        decls = {n.id: n for n in diagram.nodes}
        nodes: List[NodeLayout] = []
        subgraphs: List[SubgraphLayout] = []
        widest = max(w for w, _ in framed)
        cursor = 0
        for block, (width, height) in zip(blocks, framed):
            if diagram.direction is Direction.TD:
                left, top = (widest - width) // 2, cursor
                cursor += height + TD_GROUP_GAP
            else:
                left, top = cursor, 0
                cursor += width + LR_GROUP_GAP

            origin_x = left + (width - block.width) // 2
            origin_y = top
            if block.subgraph is not None:
                origin_y = top + SUBGRAPH_PAD_Y + 1
                subgraphs.append(
                    SubgraphLayout(
                        id=block.subgraph.id,
                        label=block.subgraph.label,
                        x=left,
                        y=top,
                        width=width,
                        height=height,
                    )
                )
            for node_id, (x, y) in block.positions.items():
                decl = decls[node_id]
                width_, height_ = sizes[node_id]
                nodes.append(
                    NodeLayout(
                        id=node_id,
                        label=decl.label,
                        shape=decl.shape,
                        x=origin_x + x,
                        y=origin_y + y,
                        width=width_,
                        height=height_,
                    )
                )

        order = {n.id: i for i, n in enumerate(diagram.nodes)}
        nodes.sort(key=lambda n: order[n.id])
        return nodes, subgraphs

    def _classify(
        self, direction: Direction, source: NodeLayout, target: NodeLayout
    ) -> EdgeClass:
        if source.id == target.id:
            return EdgeClass.SELF
        if direction is Direction.TD:
            forward = target.y >= source.y + source.height + 2
        else:
            forward = target.x >= source.x + source.width + 1
        return EdgeClass.FORWARD if forward else EdgeClass.BACK

    def _finish(
        self,
        diagram: GraphDiagram,
        nodes: List[NodeLayout],
        subgraphs: List[SubgraphLayout],
        loops: Dict[str, str],
    ) -> GraphLayout:
        """Classify edges, reserve margin lanes and measure the result."""
        by_id = {n.id: n for n in nodes}
        direction = diagram.direction

        width = 0
        height = 0
        for node in nodes:
            foot_w, foot_h = self._footprint(
                node.id, {node.id: (node.width, node.height)}, loops, direction
            )
            width = max(width, node.x + foot_w)
            height = max(height, node.y + foot_h)
        for subgraph in subgraphs:
            width = max(width, subgraph.x + subgraph.width)
            height = max(height, subgraph.y + subgraph.height)

        classes = [
            self._classify(direction, by_id[e.source], by_id[e.target])
            for e in diagram.edges
        ]
        back_labels = [
            e.label for e, c in zip(diagram.edges, classes) if c is EdgeClass.BACK
        ]
        if direction is Direction.TD:
            offsets = [width + 1 + o for o in lane_offsets(back_labels)]
        else:
            offsets = [height + 1 + 2 * i for i in range(len(back_labels))]

        edges = []
        lanes = iter(offsets)
        for edge, edge_class in zip(diagram.edges, classes):
            lane = next(lanes) if edge_class is EdgeClass.BACK else None
            edges.append(
                EdgeLayout(
                    edge.source,
                    edge.target,
                    edge.edge_type,
                    edge.label,
                    edge_class,
                    lane,
                )
            )

        if offsets:
            if direction is Direction.TD:
                width = offsets[-1] + lane_width(back_labels[-1]) - 1
            else:
                height = offsets[-1] + 1
                for edge in edges:
                    if edge.lane is not None and edge.label:
                        source, target = by_id[edge.source], by_id[edge.target]
                        ports = back_edge_ports(source, target, loops, direction)
                        low = min(ports)
                        width = max(width, low + 1 + display_width(edge.label))

        return GraphLayout(
            direction=direction,
            nodes=tuple(nodes),
            edges=tuple(edges),
            subgraphs=tuple(subgraphs),
            width=width,
            height=height,
        )


def compute_graph_layout(
    diagram: GraphDiagram, max_width: Optional[int] = None
) -> GraphLayout:
    """Convenience wrapper around GraphLayoutEngine."""
    engine = GraphLayoutEngine()
    if max_width is None:
        return engine.compute(diagram)
    return engine.compute_with_max_width(diagram, max_width)
