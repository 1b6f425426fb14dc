"""
Parser for entity-relationship diagrams.

Relationships declare their entities implicitly; an attribute block
``NAME { ... }`` adds (or replaces) the attributes of an entity. Entities
are kept in first-mention order.
"""

import re
from typing import Dict, List, Optional

from .models import Cardinality, Entity, EntityAttribute, ErDiagram, Relationship
from .parser import BaseParser

LEFT_CARDINALITIES = {
    "||": Cardinality.EXACTLY_ONE,
    "o|": Cardinality.ZERO_OR_ONE,
    "}|": Cardinality.ONE_OR_MANY,
    "}o": Cardinality.ZERO_OR_MANY,
}

RIGHT_CARDINALITIES = {
    "||": Cardinality.EXACTLY_ONE,
    "|o": Cardinality.ZERO_OR_ONE,
    "|{": Cardinality.ONE_OR_MANY,
    "o{": Cardinality.ZERO_OR_MANY,
}


class ErParser(BaseParser):
    """Parses ``erDiagram`` text into an ErDiagram."""

    HEADER_PATTERN = re.compile(r"^erDiagram\s*$")

    # CUSTOMER ||--o{ ORDER : places   ("--" identifying, ".." non-identifying)
    RELATIONSHIP_PATTERN = re.compile(
        r"^([\w-]+)\s+([|o}{]{2})(?:--|\.\.)([|o}{]{2})\s+([\w-]+)\s*:\s*(.+)$"
    )
    BLOCK_OPEN_PATTERN = re.compile(r"^([\w-]+)\s*\{$")
    EMPTY_BLOCK_PATTERN = re.compile(r"^([\w-]+)\s*\{\s*\}$")
    ENTITY_PATTERN = re.compile(r"^([\w-]+)$")
    # type name [key[,key]] ["comment"]
    ATTRIBUTE_PATTERN = re.compile(
        r'^(\S+)\s+([\w-]+)(?:\s+([A-Za-z]+(?:\s*,\s*[A-Za-z]+)*))?(?:\s+"[^"]*")?$'
    )

    ERROR_SCOPE = " in ER diagram"

    def _parse_lines(self, header, lines) -> ErDiagram:
        entities: Dict[str, List[EntityAttribute]] = {}
        relationships: List[Relationship] = []
        open_block: Optional[str] = None
        open_line = 0

        for line_num, line in lines:
            if open_block is not None:
                if line == "}":
                    open_block = None
                    continue
                match = self.ATTRIBUTE_PATTERN.match(line)
                if not match:
                    raise self._error(line_num, line)
                attr_type, name, key = match.groups()
                if key is not None:
                    key = re.sub(r"\s*,\s*", ",", key)
                entities[open_block].append(EntityAttribute(attr_type, name, key))
                continue

            match = self.RELATIONSHIP_PATTERN.match(line)
            if match:
                relationship = self._relationship(match)
                if relationship is None:
                    raise self._error(line_num, line)
                entities.setdefault(relationship.source, [])
                entities.setdefault(relationship.target, [])
                relationships.append(relationship)
                continue

            match = self.EMPTY_BLOCK_PATTERN.match(line)
            if match:
                entities[match.group(1)] = []
                continue

            match = self.BLOCK_OPEN_PATTERN.match(line)
            if match:
                open_block = match.group(1)
                open_line = line_num
                # A later block replaces earlier attributes
                entities[open_block] = []
                continue

            match = self.ENTITY_PATTERN.match(line)
            if match:
                entities.setdefault(match.group(1), [])
                continue

            raise self._error(line_num, line)

        if open_block is not None:
            raise self._unclosed(open_line, open_block, closer="}")

        return ErDiagram(
            entities=tuple(
                Entity(name, tuple(attrs)) for name, attrs in entities.items()
            ),
            relationships=tuple(relationships),
        )

    def _relationship(self, match: "re.Match") -> Optional[Relationship]:
        source, left, right, target, label = match.groups()
        if left not in LEFT_CARDINALITIES or right not in RIGHT_CARDINALITIES:
            return None
        label = label.strip()
        if len(label) >= 2 and label[0] == label[-1] == '"':
            label = label[1:-1]
        return Relationship(
            source=source,
            target=target,
            left_card=LEFT_CARDINALITIES[left],
            right_card=RIGHT_CARDINALITIES[right],
            label=label,
        )


def parse_er(input_text: str) -> ErDiagram:
    """
    Convenience function to parse an ER diagram.

    Args:
        input_text: Diagram source starting with ``erDiagram``.

    Returns:
        The parsed ErDiagram.
    """
    return ErParser().parse(input_text)
