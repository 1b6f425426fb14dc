"""
RetroMermaid - Mermaid diagrams as text

A Python library for rendering sequence diagrams, flowcharts and
entity-relationship diagrams as Unicode box-drawing text.

Example:
    >>> from retromermaid import render
    >>> print(render('''
    ... sequenceDiagram
    ...     Alice->>Bob: Hello
    ...     Bob-->>Alice: Hi!
    ... '''))

Width-limited Example:
    >>> from retromermaid import DiagramGenerator
    >>> generator = DiagramGenerator(max_width=60)
    >>> print(generator.render("graph LR\\n    A --> B --> C"))
"""

from .er_layout import ErLayout, ErLayoutEngine, compute_er_layout
from .er_parser import ErParser, parse_er
from .er_renderer import ErRenderer, render_er
from .errors import (
    EmptyDiagramError,
    InfeasibleWidthError,
    ParseError,
    RenderError,
    UnsupportedLayoutError,
)
from .export import DiagramExporter
from .generator import DiagramGenerator, render, render_with_options
from .graph_layout import GraphLayout, GraphLayoutEngine, compute_graph_layout
from .graph_parser import GraphParser, parse_graph
from .graph_renderer import GraphRenderer, render_graph
from .logging import configure_logging, get_logger
from .parser import DiagramKind, detect_kind
from .renderer import BoxRenderer, Canvas, LineRenderer
from .sequence_layout import (
    SequenceLayout,
    SequenceLayoutEngine,
    compute_sequence_layout,
)
from .sequence_parser import SequenceParser, parse_sequence
from .sequence_renderer import SequenceRenderer, render_sequence

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DiagramGenerator",
    "render",
    "render_with_options",
    "detect_kind",
    "DiagramKind",
    # Errors
    "RenderError",
    "ParseError",
    "EmptyDiagramError",
    "InfeasibleWidthError",
    "UnsupportedLayoutError",
    # Parsers
    "SequenceParser",
    "GraphParser",
    "ErParser",
    "parse_sequence",
    "parse_graph",
    "parse_er",
    # Layout
    "SequenceLayout",
    "SequenceLayoutEngine",
    "GraphLayout",
    "GraphLayoutEngine",
    "ErLayout",
    "ErLayoutEngine",
    "compute_sequence_layout",
    "compute_graph_layout",
    "compute_er_layout",
    # Rendering
    "Canvas",
    "BoxRenderer",
    "LineRenderer",
    "SequenceRenderer",
    "GraphRenderer",
    "ErRenderer",
    "render_sequence",
    "render_graph",
    "render_er",
    # Export and logging
    "DiagramExporter",
    "configure_logging",
    "get_logger",
]
