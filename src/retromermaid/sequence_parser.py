"""
Parser for sequence diagrams.

Handles parsing of ``sequenceDiagram`` source into a SequenceDiagram tree.
Blocks (loop, alt, par, ...) may nest arbitrarily; they are collected with an
explicit stack of open frames and frozen when their ``end`` line is reached.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import (
    DIVIDER_KEYWORDS,
    Activate,
    Arrow,
    ArrowHead,
    AutoNumber,
    Block,
    Branch,
    BranchBlock,
    Deactivate,
    Destroy,
    LineStyle,
    Message,
    Note,
    NotePlacement,
    NotePosition,
    ParticipantDecl,
    SequenceDiagram,
    Statement,
)
from .parser import BaseParser

# Arrow operator -> (line style, head)
ARROWS = {
    "->": (LineStyle.SOLID, ArrowHead.NONE),
    "->>": (LineStyle.SOLID, ArrowHead.ARROWHEAD),
    "-x": (LineStyle.SOLID, ArrowHead.CROSS),
    "-)": (LineStyle.SOLID, ArrowHead.OPEN),
    "-->": (LineStyle.DOTTED, ArrowHead.NONE),
    "-->>": (LineStyle.DOTTED, ArrowHead.ARROWHEAD),
    "--x": (LineStyle.DOTTED, ArrowHead.CROSS),
    "--)": (LineStyle.DOTTED, ArrowHead.OPEN),
}

SIMPLE_BLOCKS = ("loop", "opt", "break", "rect")
BRANCH_BLOCKS = tuple(DIVIDER_KEYWORDS)


@dataclass
class _OpenBlock:
    """A block whose ``end`` has not been seen yet."""

    kind: str
    label: str
    line_num: int
    body: List[Statement] = field(default_factory=list)
    branches: List[Tuple[str, List[Statement]]] = field(default_factory=list)

    @property
    def current(self) -> List[Statement]:
        if self.branches:
            return self.branches[-1][1]
        return self.body

    def freeze(self) -> Statement:
        if self.kind in SIMPLE_BLOCKS:
            return Block(self.kind, self.label, tuple(self.body))
        return BranchBlock(
            self.kind,
            self.label,
            tuple(self.body),
            tuple(Branch(label, tuple(body)) for label, body in self.branches),
        )


class SequenceParser(BaseParser):
    """Parses ``sequenceDiagram`` text into a SequenceDiagram."""

    HEADER_PATTERN = re.compile(r"^sequenceDiagram\s*$")

    PARTICIPANT_PATTERN = re.compile(
        r"^(?:(create)\s+)?(?:participant|actor)\s+(\w+)(?:\s+as\s+(.+))?$"
    )
    SINGLE_ID_PATTERN = re.compile(r"^(activate|deactivate|destroy)\s+(\w+)$")
    AUTONUMBER_PATTERN = re.compile(r"^autonumber(?:\s.*)?$")
    NOTE_PATTERN = re.compile(
        r"^[Nn]ote\s+(right of|left of|over)\s+(\w+)(?:\s*,\s*(\w+))?\s*:(.*)$"
    )
    BLOCK_PATTERN = re.compile(
        r"^(loop|opt|break|rect|alt|par|critical)(?:\s+(.*))?$"
    )
    DIVIDER_PATTERN = re.compile(r"^(else|and|option)(?:\s+(.*))?$")
    END_PATTERN = re.compile(r"^end$")
    # Longer operators first so "-->>" is not read as "-->" followed by ">"
    MESSAGE_PATTERN = re.compile(
        r"^(\w+)\s*(-->>|->>|--x|-x|--\)|-\)|-->|->)([+-]?)\s*(\w+)\s*:(.*)$"
    )

    def _parse_lines(self, header, lines) -> SequenceDiagram:
        statements: List[Statement] = []
        stack: List[_OpenBlock] = []

        for line_num, line in lines:
            target = stack[-1].current if stack else statements

            if self.END_PATTERN.match(line):
                if not stack:
                    raise self._error(line_num, line)
                block = stack.pop()
                (stack[-1].current if stack else statements).append(block.freeze())
                continue

            match = self.DIVIDER_PATTERN.match(line)
            if match:
                if not stack or DIVIDER_KEYWORDS.get(stack[-1].kind) != match.group(1):
                    raise self._error(line_num, line)
                stack[-1].branches.append(((match.group(2) or "").strip(), []))
                continue

            match = self.BLOCK_PATTERN.match(line)
            if match:
                stack.append(
                    _OpenBlock(match.group(1), (match.group(2) or "").strip(), line_num)
                )
                continue

            statement = self._parse_statement(line)
            if statement is None:
                raise self._error(line_num, line)
            target.append(statement)

        if stack:
            raise self._unclosed(stack[-1].line_num, stack[-1].kind)

        return SequenceDiagram(tuple(statements))

    def _parse_statement(self, line: str) -> Optional[Statement]:
        """Parse a single non-block line, or return None if nothing matches."""
        match = self.PARTICIPANT_PATTERN.match(line)
        if match:
            alias = match.group(3).strip() if match.group(3) else None
            return ParticipantDecl(match.group(2), alias, created=bool(match.group(1)))

        match = self.SINGLE_ID_PATTERN.match(line)
        if match:
            keyword, participant = match.groups()
            if keyword == "activate":
                return Activate(participant)
            if keyword == "deactivate":
                return Deactivate(participant)
            return Destroy(participant)

        if self.AUTONUMBER_PATTERN.match(line):
            return AutoNumber()

        match = self.NOTE_PATTERN.match(line)
        if match:
            return self._parse_note(match)

        match = self.MESSAGE_PATTERN.match(line)
        if match:
            source, operator, modifier, target, text = match.groups()
            line_style, head = ARROWS[operator]
            return Message(
                source=source,
                target=target,
                arrow=Arrow(line_style, head),
                text=text.strip(),
                activate_target=modifier == "+",
                deactivate_source=modifier == "-",
            )

        return None

    def _parse_note(self, match: "re.Match") -> Optional[Note]:
        position_text, first, second, text = match.groups()
        position = NotePosition(position_text)
        if second is not None and position is not NotePosition.OVER:
            # Only "over" accepts a participant pair
            return None
        participants = (first,) if second is None else (first, second)
        return Note(NotePlacement(position, participants), text.strip())


def parse_sequence(input_text: str) -> SequenceDiagram:
    """
    Convenience function to parse a sequence diagram.

    Args:
        input_text: Diagram source starting with ``sequenceDiagram``.

    Returns:
        The parsed SequenceDiagram.
    """
    return SequenceParser().parse(input_text)
