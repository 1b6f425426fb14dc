"""
Renderer for graph/flowchart layouts.

Drawing happens in layers: subgraph borders, node boxes, edges and finally
edge labels and subgraph titles, so text always stays readable. Junctions
where several edges meet (fan-out bars below a parent, fan-in bars above a
child) are built by merging connection directions on the canvas.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from .graph_layout import (
    EdgeClass,
    EdgeLayout,
    GraphLayout,
    NodeLayout,
    SubgraphLayout,
    back_edge_ports,
)
from .metrics import display_width, split_lines
from .models import Direction, EdgeType, NodeShape
from .renderer import (
    ARROW_CHARS,
    BOX_CHARS,
    DIAMOND_CHARS,
    DOWN,
    LEFT,
    LINE_CHARS,
    RIGHT,
    ROUND_CHARS,
    UP,
    BoxRenderer,
    Canvas,
    LineRenderer,
    glyph_for_mask,
)
from .routing import LaneRouter, Occupancy

SHAPE_CHARS = {
    NodeShape.BOX: BOX_CHARS,
    NodeShape.ROUND: ROUND_CHARS,
    NodeShape.CIRCLE: ROUND_CHARS,
    NodeShape.DIAMOND: DIAMOND_CHARS,
}

# Shapes whose labels are centered horizontally
CENTERED_SHAPES = {NodeShape.ROUND, NodeShape.CIRCLE}


def edge_glyphs(edge_type: EdgeType) -> Tuple[str, str]:
    """Return the (horizontal, vertical) line glyphs for an edge type."""
    if edge_type.is_dotted:
        return LINE_CHARS["dotted_horizontal"], LINE_CHARS["dotted_vertical"]
    if edge_type.is_thick:
        return LINE_CHARS["thick_horizontal"], LINE_CHARS["thick_vertical"]
    return LINE_CHARS["horizontal"], LINE_CHARS["vertical"]


def _span_mask(value: int, low: int, high: int, before: int, after: int) -> int:
    """Directions a cell at ``value`` needs to join a run from low to high."""
    mask = 0
    if value > low:
        mask |= before
    if value < high:
        mask |= after
    return mask


class GraphRenderer:
    """Renders a GraphLayout to text."""

    def __init__(self):
        self.boxes = BoxRenderer()
        self.lines = LineRenderer()

    def render(self, layout: GraphLayout) -> str:
        """
        Render a layout.

        Args:
            layout: Positioned graph.

        Returns:
            The diagram text, without trailing whitespace on any line.
        """
        canvas = Canvas(layout.width, layout.height)
        self.occupancy = Occupancy(node.rect for node in layout.nodes)
        self.labels: List[Tuple[int, int, str]] = []

        for subgraph in layout.subgraphs:
            self._draw_subgraph(canvas, subgraph)
        for node in layout.nodes:
            self._draw_node(canvas, node)

        nodes = {node.id: node for node in layout.nodes}
        forward = [e for e in layout.edges if e.edge_class is EdgeClass.FORWARD]
        if layout.direction is Direction.TD:
            self._draw_forward_td(canvas, forward, nodes)
        else:
            self._draw_forward_lr(canvas, forward, nodes)

        router = LaneRouter(self.occupancy)
        for edge in layout.edges:
            if edge.edge_class is EdgeClass.SELF:
                self._draw_self_loop(canvas, nodes[edge.source], edge, layout.direction)
            elif edge.edge_class is EdgeClass.BACK:
                self._draw_back_edge(canvas, router, edge, nodes, layout)

        for x, y, text in self.labels:
            canvas.write(x, y, text)
        return canvas.render()

    # -- shapes -------------------------------------------------------------

    def _draw_subgraph(self, canvas: Canvas, subgraph: SubgraphLayout) -> None:
        """
        Draw a subgraph border with its title set into the top edge.

        ┌─ Title ──────┐
        │              │
        └──────────────┘
        """
        self.boxes.draw_box(
            canvas, subgraph.x, subgraph.y, subgraph.width, subgraph.height
        )
        self._add_label(subgraph.x + 2, subgraph.y, f" {subgraph.label} ")

    def _draw_node(self, canvas: Canvas, node: NodeLayout) -> None:
        self.boxes.draw_box(
            canvas, node.x, node.y, node.width, node.height, SHAPE_CHARS[node.shape]
        )
        self.boxes.draw_label(
            canvas,
            node.x,
            node.y,
            node.width,
            node.height,
            split_lines(node.label),
            centered=node.shape in CENTERED_SHAPES,
        )

    def _add_label(self, x: int, y: int, text: Optional[str]) -> None:
        if text:
            self.labels.append((max(x, 0), y, text))

    def _add_centered_label(self, center: int, y: int, text: Optional[str]) -> None:
        if text:
            self._add_label(center - display_width(text) // 2, y, text)

    def _add_label_between(
        self, low: int, high: int, y: int, text: Optional[str]
    ) -> None:
        """Queue a label centered over columns low..high."""
        if text:
            room = high - low + 1
            self._add_label(low + max(room - display_width(text), 0) // 2, y, text)

    # -- shared helpers -----------------------------------------------------

    @staticmethod
    def _group_edges(
        edges: Sequence[EdgeLayout],
    ) -> Tuple[
        Dict[str, List[EdgeLayout]], Dict[str, List[EdgeLayout]], List[EdgeLayout]
    ]:
        """
        Split forward edges into fan-outs, fan-ins and single edges.

        An edge leaving a node with several forward children belongs to that
        node's fan-out; otherwise an edge entering a node with several
        remaining parents belongs to its fan-in.
        """
        outs: Dict[str, List[EdgeLayout]] = {}
        for edge in edges:
            outs.setdefault(edge.source, []).append(edge)

        fan_out = {source: group for source, group in outs.items() if len(group) > 1}
        ins: Dict[str, List[EdgeLayout]] = {}
        for edge in edges:
            if edge.source not in fan_out:
                ins.setdefault(edge.target, []).append(edge)

        fan_in = {target: group for target, group in ins.items() if len(group) > 1}
        singles = [
            e for e in edges if e.source not in fan_out and e.target not in fan_in
        ]
        return fan_out, fan_in, singles

    def _head_or_line(self, edge_type: EdgeType, head: str, line: str) -> str:
        return head if edge_type.has_arrow_head else line

    # -- top-down forward edges ---------------------------------------------

    def _draw_forward_td(self, canvas, edges, nodes) -> None:
        fan_out, fan_in, singles = self._group_edges(edges)

        for source_id, group in fan_out.items():
            source = nodes[source_id]
            bar_row = source.bottom + 1
            canvas.merge(source.center_x, source.bottom, LINE_CHARS["tee_down"])
            drops = [nodes[e.target].center_x for e in group]
            self._draw_td_bar(canvas, bar_row, [source.center_x], drops)
            for edge in group:
                target = nodes[edge.target]
                self._draw_td_drop(canvas, edge, target, bar_row + 1)
                self._add_centered_label(target.center_x, bar_row + 1, edge.label)

        for target_id, group in fan_in.items():
            target = nodes[target_id]
            bar_row = target.y - 2
            rises = []
            for edge in group:
                source = nodes[edge.source]
                rises.append(source.center_x)
                _, vertical = edge_glyphs(edge.edge_type)
                canvas.merge(source.center_x, source.bottom, LINE_CHARS["tee_down"])
                self.lines.draw_vertical(
                    canvas,
                    source.center_x,
                    source.bottom + 1,
                    bar_row - 1,
                    vertical,
                    skip=self.occupancy,
                )
                self._add_centered_label(source.center_x, source.bottom + 1, edge.label)
            self._draw_td_bar(canvas, bar_row, rises, [target.center_x])
            self._draw_td_head(canvas, group[0].edge_type, target)

        for edge in singles:
            self._draw_td_single(canvas, edge, nodes[edge.source], nodes[edge.target])

    def _draw_td_bar(
        self, canvas: Canvas, row: int, rises: Sequence[int], drops: Sequence[int]
    ) -> None:
        """Draw a horizontal bar joining lines from above and below."""
        low = min(list(rises) + list(drops))
        high = max(list(rises) + list(drops))
        for col in range(low, high + 1):
            mask = _span_mask(col, low, high, LEFT, RIGHT)
            if col in rises:
                mask |= UP
            if col in drops:
                mask |= DOWN
            canvas.merge(col, row, glyph_for_mask(mask))

    def _draw_td_drop(
        self, canvas: Canvas, edge: EdgeLayout, target: NodeLayout, start: int
    ) -> None:
        _, vertical = edge_glyphs(edge.edge_type)
        self.lines.draw_vertical(
            canvas, target.center_x, start, target.y - 2, vertical, skip=self.occupancy
        )
        self._draw_td_head(canvas, edge.edge_type, target)

    def _draw_td_head(
        self, canvas: Canvas, edge_type: EdgeType, target: NodeLayout
    ) -> None:
        _, vertical = edge_glyphs(edge_type)
        glyph = self._head_or_line(edge_type, ARROW_CHARS["down"], vertical)
        canvas.set(target.center_x, target.y - 1, glyph)

    def _draw_td_single(
        self, canvas: Canvas, edge: EdgeLayout, source: NodeLayout, target: NodeLayout
    ) -> None:
        """
        Draw a lone edge straight down, bending once above the target when
        the two centers differ.
        """
        _, vertical = edge_glyphs(edge.edge_type)
        canvas.merge(source.center_x, source.bottom, LINE_CHARS["tee_down"])
        if source.center_x == target.center_x:
            self._draw_td_drop(canvas, edge, target, source.bottom + 1)
        else:
            bend_row = target.y - 2
            self.lines.draw_vertical(
                canvas,
                source.center_x,
                source.bottom + 1,
                bend_row - 1,
                vertical,
                skip=self.occupancy,
            )
            self._draw_td_bar(canvas, bend_row, [source.center_x], [target.center_x])
            self._draw_td_head(canvas, edge.edge_type, target)
        self._add_centered_label(source.center_x, source.bottom + 1, edge.label)

    # -- left-to-right forward edges ----------------------------------------

    def _draw_forward_lr(self, canvas, edges, nodes) -> None:
        fan_out, fan_in, singles = self._group_edges(edges)

        for source_id, group in fan_out.items():
            source = nodes[source_id]
            nearest = min(nodes[e.target].x for e in group)
            mid = source.right + (nearest - source.right) // 2
            horizontal, _ = edge_glyphs(group[0].edge_type)
            self.lines.draw_horizontal(
                canvas, source.right + 1, mid - 1, source.center_y, horizontal
            )
            rows = [nodes[e.target].center_y for e in group]
            self._draw_lr_bar(canvas, mid, [source.center_y], rows)
            for edge in group:
                target = nodes[edge.target]
                self._draw_lr_run_in(canvas, edge, target, mid + 1)
                self._add_label_between(
                    mid + 1, target.x - 2, target.center_y - 1, edge.label
                )

        for target_id, group in fan_in.items():
            target = nodes[target_id]
            farthest = max(nodes[e.source].right for e in group)
            mid = farthest + (target.x - farthest) // 2
            rows = []
            for edge in group:
                source = nodes[edge.source]
                rows.append(source.center_y)
                horizontal, _ = edge_glyphs(edge.edge_type)
                self.lines.draw_horizontal(
                    canvas,
                    source.right + 1,
                    mid - 1,
                    source.center_y,
                    horizontal,
                    skip=self.occupancy,
                )
                self._add_label_between(
                    source.right + 1, mid - 1, source.center_y - 1, edge.label
                )
            self._draw_lr_bar(canvas, mid, rows, [target.center_y])
            self._draw_lr_run_in(canvas, group[0], target, mid + 1)

        for edge in singles:
            self._draw_lr_single(canvas, edge, nodes[edge.source], nodes[edge.target])

    def _draw_lr_bar(
        self, canvas: Canvas, col: int, entries: Sequence[int], exits: Sequence[int]
    ) -> None:
        """Draw a vertical bar joining runs from the left and to the right."""
        low = min(list(entries) + list(exits))
        high = max(list(entries) + list(exits))
        for row in range(low, high + 1):
            mask = _span_mask(row, low, high, UP, DOWN)
            if row in entries:
                mask |= LEFT
            if row in exits:
                mask |= RIGHT
            canvas.merge(col, row, glyph_for_mask(mask))

    def _draw_lr_run_in(
        self, canvas: Canvas, edge: EdgeLayout, target: NodeLayout, start: int
    ) -> None:
        """Draw the final run into ``target`` and its head."""
        horizontal, _ = edge_glyphs(edge.edge_type)
        row = target.center_y
        self.lines.draw_horizontal(
            canvas, start, target.x - 1, row, horizontal, skip=self.occupancy
        )
        if edge.edge_type.has_arrow_head:
            canvas.set(target.x - 1, row, ARROW_CHARS["right"])

    def _draw_lr_single(
        self, canvas: Canvas, edge: EdgeLayout, source: NodeLayout, target: NodeLayout
    ) -> None:
        """
        Draw a lone edge as a straight run, or as an L-shaped route when
        the two boxes are on different rows.

        ┌───┐        ┌───┐
        │ A │──┐     │ A │───>┌───┐
        └───┘  │     └───┘    │ B │
               └──>┌───┐
                   │ C │
        """
        if source.center_y == target.center_y:
            self._draw_lr_run_in(canvas, edge, target, source.right + 1)
            self._add_label_between(
                source.right + 1, target.x - 1, source.center_y - 1, edge.label
            )
            return

        mid = source.right + (target.x - source.right) // 2
        horizontal, _ = edge_glyphs(edge.edge_type)
        self.lines.draw_horizontal(
            canvas,
            source.right + 1,
            mid - 1,
            source.center_y,
            horizontal,
            skip=self.occupancy,
        )
        self._draw_lr_bar(canvas, mid, [source.center_y], [target.center_y])
        self._draw_lr_run_in(canvas, edge, target, mid + 1)
        self._add_label_between(
            source.right + 1, mid - 1, source.center_y - 1, edge.label
        )

    # -- self-loops and back edges ------------------------------------------

    def _draw_self_loop(
        self, canvas: Canvas, node: NodeLayout, edge: EdgeLayout, direction: Direction
    ) -> None:
        horizontal, vertical = edge_glyphs(edge.edge_type)
        if direction is Direction.TD:
            # ┌───┐
            # │ A │─┐
            # └───┘<┘
            row = node.center_y
            canvas.set(node.right + 1, row, horizontal)
            canvas.set(node.right + 2, row, LINE_CHARS["corner_top_right"])
            canvas.set(
                node.right + 1,
                row + 1,
                self._head_or_line(edge.edge_type, ARROW_CHARS["left"], horizontal),
            )
            canvas.set(node.right + 2, row + 1, LINE_CHARS["corner_bottom_right"])
            self._add_label(node.right + 4, row, edge.label)
            return

        # ┌───┐
        # │ A │
        # └──┬┘
        #  ▲ │
        #  └─┘
        center = node.center_x
        canvas.merge(center + 1, node.bottom, LINE_CHARS["tee_down"])
        canvas.set(
            center - 1,
            node.bottom + 1,
            self._head_or_line(edge.edge_type, ARROW_CHARS["up"], vertical),
        )
        canvas.set(center + 1, node.bottom + 1, vertical)
        canvas.set(center - 1, node.bottom + 2, LINE_CHARS["corner_bottom_left"])
        canvas.set(center, node.bottom + 2, horizontal)
        canvas.set(center + 1, node.bottom + 2, LINE_CHARS["corner_bottom_right"])
        self._add_label(center + 3, node.bottom + 2, edge.label)

    def _draw_back_edge(
        self,
        canvas: Canvas,
        router: LaneRouter,
        edge: EdgeLayout,
        nodes: Dict[str, NodeLayout],
        layout: GraphLayout,
    ) -> None:
        source, target = nodes[edge.source], nodes[edge.target]
        horizontal, vertical = edge_glyphs(edge.edge_type)
        looped = {e.source for e in layout.edges if e.edge_class is EdgeClass.SELF}
        source_port, target_port = back_edge_ports(
            source, target, looped, layout.direction
        )
        if layout.direction is Direction.TD:
            head = ARROW_CHARS["left"] if edge.edge_type.has_arrow_head else None
            router.route_right(
                canvas,
                source.rect,
                target.rect,
                edge.lane,
                source_y=source_port,
                target_y=target_port,
                horizontal=horizontal,
                vertical=vertical,
                head=head,
            )
            label_row = (source.center_y + target.center_y) // 2
            self._add_label(edge.lane + 2, label_row, edge.label)
            return

        head = ARROW_CHARS["up"] if edge.edge_type.has_arrow_head else None
        router.route_below(
            canvas,
            source_port,
            source.bottom,
            target_port,
            target.bottom,
            edge.lane,
            horizontal=horizontal,
            vertical=vertical,
            head=head,
        )
        low, high = sorted((source_port, target_port))
        self._add_label_between(low + 1, high - 1, edge.lane, edge.label)


def render_graph(layout: GraphLayout) -> str:
    """Convenience function to render a graph layout."""
    return GraphRenderer().render(layout)
