"""
Parser for graph/flowchart diagrams.

Statement lines are scanned left to right: a node group (one or more node
references joined by ``&``), then any number of ``edge node-group`` pairs.
Every node of a group is connected to every node of the next group, so
``A --> B & C --> D`` yields A→B, A→C, B→D and C→D.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .models import (
    Direction,
    Edge,
    EdgeType,
    GraphDiagram,
    NodeDecl,
    NodeShape,
    Subgraph,
)
from .parser import BaseParser

# Edge operators, longest first
EDGE_OPERATORS: List[Tuple[str, EdgeType]] = [
    ("-.->", EdgeType.DOTTED_ARROW),
    ("-.-", EdgeType.DOTTED_LINK),
    ("==>", EdgeType.THICK_ARROW),
    ("===", EdgeType.THICK_LINK),
    ("-->", EdgeType.ARROW),
    ("---", EdgeType.OPEN_LINK),
]

# Inline-labelled edges: "A -- text --> B", "A == text ==> B", "A -. text .-> B"
INLINE_EDGE_TYPES: Dict[Tuple[str, str], EdgeType] = {
    ("--", "-->"): EdgeType.ARROW,
    ("--", "---"): EdgeType.OPEN_LINK,
    ("==", "==>"): EdgeType.THICK_ARROW,
    ("==", "==="): EdgeType.THICK_LINK,
    ("-.", ".->"): EdgeType.DOTTED_ARROW,
    ("-.", ".-"): EdgeType.DOTTED_LINK,
}

# Opening bracket -> (closing bracket, shape); "((" must be tried before "("
SHAPE_DELIMITERS: List[Tuple[str, str, NodeShape]] = [
    ("((", "))", NodeShape.CIRCLE),
    ("(", ")", NodeShape.ROUND),
    ("{", "}", NodeShape.DIAMOND),
    ("[", "]", NodeShape.BOX),
]


class _SyntaxMismatch(Exception):
    """Internal signal: the current line does not fit the grammar."""

    pass


@dataclass
class _OpenSubgraph:
    id: str
    label: str
    line_num: int
    index: int
    node_ids: List[str] = field(default_factory=list)


class _LineScanner:
    """Cursor over a single statement line."""

    NODE_ID_PATTERN = re.compile(r"\w+")
    INLINE_EDGE_PATTERN = re.compile(
        r"(--|==|-\.)\s+(.+?)\s+(-->|---|==>|===|\.->|\.-)"
    )

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def skip_spaces(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        self.skip_spaces()
        return self.pos >= len(self.text) or self.text[self.pos:] == ";"

    def accept(self, token: str) -> bool:
        if self.text.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def node_ref(self) -> Tuple[str, Optional[Tuple[str, NodeShape]]]:
        """Read ``id`` with an optional shape; returns (id, (label, shape) or None)."""
        self.skip_spaces()
        match = self.NODE_ID_PATTERN.match(self.text, self.pos)
        if not match:
            raise _SyntaxMismatch()
        self.pos = match.end()
        for opener, closer, shape in SHAPE_DELIMITERS:
            if self.accept(opener):
                return match.group(0), (self._shape_label(closer), shape)
        return match.group(0), None

    def _shape_label(self, closer: str) -> str:
        if self.accept('"'):
            end = self.text.find('"', self.pos)
            if end < 0:
                raise _SyntaxMismatch()
            label = self.text[self.pos:end]
            self.pos = end + 1
            if not self.accept(closer):
                raise _SyntaxMismatch()
            return label
        end = self.text.find(closer, self.pos)
        if end <= self.pos:
            raise _SyntaxMismatch()
        label = self.text[self.pos:end].strip()
        self.pos = end + len(closer)
        if not label:
            raise _SyntaxMismatch()
        return label

    def edge(self) -> Optional[Tuple[EdgeType, Optional[str]]]:
        """Read an edge operator with its optional label, or None if absent."""
        self.skip_spaces()
        for operator, edge_type in EDGE_OPERATORS:
            if self.accept(operator):
                return edge_type, self._pipe_label()
        match = self.INLINE_EDGE_PATTERN.match(self.text, self.pos)
        if match:
            edge_type = INLINE_EDGE_TYPES.get((match.group(1), match.group(3)))
            if edge_type is None:
                raise _SyntaxMismatch()
            self.pos = match.end()
            return edge_type, match.group(2).strip()
        return None

    def _pipe_label(self) -> Optional[str]:
        self.skip_spaces()
        if not self.accept("|"):
            return None
        end = self.text.find("|", self.pos)
        if end < 0:
            raise _SyntaxMismatch()
        label = self.text[self.pos:end].strip()
        self.pos = end + 1
        return label or None


class GraphParser(BaseParser):
    """Parses ``graph``/``flowchart`` text into a GraphDiagram."""

    HEADER_PATTERN = re.compile(r"^(?:graph|flowchart)(?:\s+(TD|TB|LR))?\s*;?$")
    SUBGRAPH_PATTERN = re.compile(r"^subgraph\s+(.+)$")
    SUBGRAPH_ID_PATTERN = re.compile(r"^(\w+)\s*\[\s*\"?(.+?)\"?\s*\]$")
    END_PATTERN = re.compile(r"^end$")

    ERROR_SCOPE = " in graph diagram"

    def _parse_lines(self, header, lines) -> GraphDiagram:
        direction = Direction.LR if header.group(1) == "LR" else Direction.TD
        nodes: Dict[str, NodeDecl] = {}
        labelled: Set[str] = set()
        edges: List[Edge] = []
        subgraphs: List[Optional[Subgraph]] = []
        stack: List[_OpenSubgraph] = []

        for line_num, line in lines:
            if self.END_PATTERN.match(line):
                if not stack:
                    raise self._error(line_num, line)
                closed = stack.pop()
                subgraphs[closed.index] = Subgraph(
                    closed.id, closed.label, tuple(closed.node_ids)
                )
                continue

            match = self.SUBGRAPH_PATTERN.match(line)
            if match:
                subgraph_id, label = self._subgraph_title(match.group(1).strip())
                stack.append(
                    _OpenSubgraph(subgraph_id, label, line_num, len(subgraphs))
                )
                subgraphs.append(None)
                continue

            try:
                references, line_edges = self._parse_statement(line)
            except _SyntaxMismatch:
                raise self._error(line_num, line) from None

            for node_id, shape_label in references:
                self._add_node(nodes, labelled, node_id, shape_label)
                if stack and node_id not in stack[-1].node_ids:
                    stack[-1].node_ids.append(node_id)
            edges.extend(line_edges)

        if stack:
            raise self._unclosed(stack[-1].line_num, "subgraph")

        return GraphDiagram(
            direction=direction,
            nodes=tuple(nodes.values()),
            edges=tuple(edges),
            subgraphs=tuple(sg for sg in subgraphs if sg is not None),
        )

    def _subgraph_title(self, title: str) -> Tuple[str, str]:
        """Split ``id [Title]`` or derive the id from a bare title."""
        match = self.SUBGRAPH_ID_PATTERN.match(title)
        if match:
            return match.group(1), match.group(2)
        label = title.strip('"')
        return label.replace(" ", "_").lower(), label

    def _parse_statement(self, line: str):
        """
        Parse one node or edge statement.

        Returns:
            A tuple (references, edges): every node reference in source order
            as (id, (label, shape) or None), and the edges the line declares.

        Raises:
            _SyntaxMismatch: If the line is not a valid statement.
        """
        scanner = _LineScanner(line)
        references = []
        edges: List[Edge] = []

        group = self._node_group(scanner, references)
        while not scanner.at_end():
            edge = scanner.edge()
            if edge is None:
                raise _SyntaxMismatch()
            edge_type, label = edge
            next_group = self._node_group(scanner, references)
            for source in group:
                for target in next_group:
                    edges.append(Edge(source, target, edge_type, label))
            group = next_group

        return references, edges

    def _node_group(self, scanner: _LineScanner, references: list) -> List[str]:
        group = []
        while True:
            node_id, shape_label = scanner.node_ref()
            references.append((node_id, shape_label))
            group.append(node_id)
            scanner.skip_spaces()
            if not scanner.accept("&"):
                return group

    def _add_node(
        self,
        nodes: Dict[str, NodeDecl],
        labelled: Set[str],
        node_id: str,
        shape_label: Optional[Tuple[str, NodeShape]],
    ) -> None:
        """Register a node reference; the first explicit label wins."""
        if shape_label is None:
            if node_id not in nodes:
                nodes[node_id] = NodeDecl(node_id, node_id, NodeShape.BOX)
            return
        if node_id in labelled:
            return
        label, shape = shape_label
        nodes[node_id] = NodeDecl(node_id, label, shape)
        labelled.add(node_id)


def parse_graph(input_text: str) -> GraphDiagram:
    """
    Convenience function to parse a flowchart.

    Args:
        input_text: Diagram source starting with ``graph`` or ``flowchart``.

    Returns:
        The parsed GraphDiagram.
    """
    return GraphParser().parse(input_text)
