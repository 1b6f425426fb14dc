"""
Shared parsing infrastructure.

Every diagram parser reads its input line by line: ``%%`` comments and blank
lines are dropped, the first remaining line must be the diagram header, and
each statement line is matched against a small set of regular expressions.
Errors are reported as ParseError with the offending line number and a
shortened copy of the line.
"""

import re
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from .errors import ParseError

# Maximum number of characters of the offending line quoted in errors
CONTEXT_LIMIT = 40

COMMENT_PREFIX = "%%"


class DiagramKind(Enum):
    """Diagram families the renderer understands."""

    SEQUENCE = "sequence"
    GRAPH = "graph"
    ER = "er"


def error_context(line: str) -> str:
    """Trim a source line for inclusion in an error message."""
    context = line.strip()
    if len(context) > CONTEXT_LIMIT:
        return context[:CONTEXT_LIMIT] + "..."
    return context


def significant_lines(input_text: str) -> List[Tuple[int, str]]:
    """
    Return the (line number, stripped text) pairs that carry content.

    Blank lines and lines starting with ``%%`` are skipped. Line numbers
    are 1-based positions in the original text.
    """
    result = []
    for line_num, line in enumerate(input_text.splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue
        result.append((line_num, stripped))
    return result


def detect_kind(input_text: str) -> DiagramKind:
    """
    Decide which parser should handle ``input_text``.

    Only the first significant line is inspected: ``graph``/``flowchart``
    selects the graph parser, ``erDiagram`` the ER parser, and everything
    else is treated as a sequence diagram.
    """
    lines = significant_lines(input_text)
    if not lines:
        return DiagramKind.SEQUENCE
    first_word = lines[0][1].split()[0]
    if first_word in ("graph", "flowchart"):
        return DiagramKind.GRAPH
    if first_word == "erDiagram":
        return DiagramKind.ER
    return DiagramKind.SEQUENCE


class BaseParser:
    """
    Common driver for the line-oriented diagram parsers.

    Subclasses set HEADER_PATTERN and implement ``_parse_lines``.
    """

    HEADER_PATTERN: Optional[Pattern] = None

    # Inserted after "syntax error" in messages, e.g. " in ER diagram"
    ERROR_SCOPE = ""

    def parse(self, input_text: str):
        """
        Parse a complete diagram.

        Args:
            input_text: Diagram source, header line included.

        Returns:
            The diagram syntax tree.

        Raises:
            ParseError: If the header is missing or a line is malformed.
        """
        lines = significant_lines(input_text)
        if not lines:
            raise ParseError(
                f"syntax error{self.ERROR_SCOPE} at line 1: unexpected ``"
            )
        line_num, header = lines[0]
        match = self.HEADER_PATTERN.match(header)
        if not match:
            raise self._error(line_num, header)
        return self._parse_lines(match, lines[1:])

    def _parse_lines(self, header: "re.Match", lines: List[Tuple[int, str]]):
        raise NotImplementedError

    def _error(self, line_num: int, line: str) -> ParseError:
        return ParseError(
            f"syntax error{self.ERROR_SCOPE} at line {line_num}: "
            f"unexpected `{error_context(line)}`"
        )

    def _unclosed(self, line_num: int, keyword: str, closer: str = "end") -> ParseError:
        return ParseError(
            f"syntax error{self.ERROR_SCOPE} at line {line_num}: "
            f"`{keyword}` block is never closed with `{closer}`"
        )
