"""
Main diagram generator module.

Detects the diagram kind from the header line, then runs the matching
parser, layout engine and renderer to produce the text diagram.
"""

import time
from typing import Any, Callable, Dict, NamedTuple, Optional

from .er_layout import compute_er_layout
from .er_parser import parse_er
from .er_renderer import render_er
from .export import DiagramExporter
from .graph_layout import compute_graph_layout
from .graph_parser import parse_graph
from .graph_renderer import render_graph
from .logging import get_logger
from .parser import DiagramKind
from .parser import detect_kind as _detect_kind
from .sequence_layout import compute_sequence_layout
from .sequence_parser import parse_sequence
from .sequence_renderer import render_sequence

log = get_logger(__name__)


class Pipeline(NamedTuple):
    """The three stages that turn source text of one kind into a diagram."""

    parse: Callable[[str], Any]
    layout: Callable[..., Any]
    render: Callable[[Any], str]


PIPELINES: Dict[DiagramKind, Pipeline] = {
    DiagramKind.SEQUENCE: Pipeline(
        parse_sequence, compute_sequence_layout, render_sequence
    ),
    DiagramKind.GRAPH: Pipeline(parse_graph, compute_graph_layout, render_graph),
    DiagramKind.ER: Pipeline(parse_er, compute_er_layout, render_er),
}


class DiagramGenerator:
    """
    Generate text diagrams from Mermaid-style descriptions.

    Example:
        >>> generator = DiagramGenerator()
        >>> print(generator.render('''
        ... sequenceDiagram
        ...     Alice->>Bob: Hello
        ... '''))
    """

    def __init__(self, max_width: Optional[int] = None, font: Optional[str] = None):
        """
        Initialize the generator.

        Args:
            max_width: Default maximum output width in columns; None means
                unlimited.
            font: Font name for PNG output (e.g., "Cascadia Code", "Monaco").
        """
        self.max_width = max_width
        self.font = font
        self.exporter = DiagramExporter(default_font=font)

    @staticmethod
    def detect_kind(input_text: str) -> DiagramKind:
        """Return the diagram kind selected by the header of ``input_text``."""
        return _detect_kind(input_text)

    def render(self, input_text: str) -> str:
        """
        Render a diagram using the instance's default width.

        Args:
            input_text: Diagram source, header line included.

        Returns:
            The diagram text.

        Raises:
            RenderError: If parsing or layout fails.
        """
        return self.render_with_options(input_text)

    def render_with_options(
        self, input_text: str, max_width: Optional[int] = None
    ) -> str:
        """
        Render a diagram, optionally within a maximum width.

        Args:
            input_text: Diagram source, header line included.
            max_width: Maximum output width in columns; overrides the
                instance default when given.

        Returns:
            The diagram text.

        Raises:
            ParseError: If the source is malformed.
            EmptyDiagramError: If the diagram has nothing to draw.
            InfeasibleWidthError: If the diagram cannot fit ``max_width``.
        """
        width = max_width if max_width is not None else self.max_width
        kind = self.detect_kind(input_text)
        pipeline = PIPELINES[kind]
        start = time.perf_counter()

        diagram = pipeline.parse(input_text)
        log.debug("parse_complete", kind=kind.value)

        layout = pipeline.layout(diagram, max_width=width)
        output = pipeline.render(layout)
        log.debug(
            "render_complete",
            kind=kind.value,
            max_width=width,
            lines=output.count("\n") + 1,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return output

    def save_txt(
        self, input_text: str, filename: str, max_width: Optional[int] = None
    ) -> None:
        """
        Render a diagram and save it to a text file.

        Args:
            input_text: Diagram source.
            filename: Output filename (should end in .txt).
            max_width: Maximum output width in columns.
        """
        diagram = self.render_with_options(input_text, max_width)
        self.exporter.save_txt(diagram, filename)

    def save_png(
        self,
        input_text: str,
        filename: str,
        max_width: Optional[int] = None,
        **options: Any,
    ) -> None:
        """
        Render a diagram and save it as a PNG image.

        Args:
            input_text: Diagram source.
            filename: Output filename (should end in .png).
            max_width: Maximum output width in columns.
            **options: Passed to DiagramExporter.save_png (font_size,
                bg_color, fg_color, padding, font, scale).

        Example:
            >>> generator = DiagramGenerator(font="Cascadia Code")
            >>> generator.save_png("graph LR\\nA --> B", "graph.png", font_size=24)
        """
        diagram = self.render_with_options(input_text, max_width)
        self.exporter.save_png(diagram, filename, **options)


def render(input_text: str) -> str:
    """Render a diagram at its natural width."""
    return DiagramGenerator().render(input_text)


def render_with_options(input_text: str, max_width: Optional[int] = None) -> str:
    """Render a diagram no wider than ``max_width`` columns, if given."""
    return DiagramGenerator().render_with_options(input_text, max_width=max_width)
