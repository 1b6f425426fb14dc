"""
Exception hierarchy for diagram rendering.

Every failure the pipeline can report is a subclass of RenderError, so
callers can catch one type and show the message to the user.

Classes:
    RenderError: Base class for all rendering failures.
    ParseError: Source text could not be parsed.
    EmptyDiagramError: The diagram declares nothing to draw.
    InfeasibleWidthError: The requested maximum width cannot be met.
    UnsupportedLayoutError: Width fitting is not attempted for this layout.
"""

from typing import Optional


class RenderError(Exception):
    """Base class for errors raised while rendering a diagram."""

    pass


class ParseError(RenderError):
    """Raised when input parsing fails."""

    pass


class EmptyDiagramError(RenderError):
    """Raised when a diagram has no participants, nodes or entities."""

    pass


class InfeasibleWidthError(RenderError):
    """
    Raised when a diagram cannot be laid out within a maximum width.

    Attributes:
        max_width: The width that was requested.
        min_width: The narrowest width the layout could reach, if known.
    """

    def __init__(self, message: str, max_width: int, min_width: Optional[int] = None):
        super().__init__(message)
        self.max_width = max_width
        self.min_width = min_width


class UnsupportedLayoutError(InfeasibleWidthError):
    """Raised when a layout that cannot be shrunk (subgraphs) is too wide."""

    pass
