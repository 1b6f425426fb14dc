"""
Text measurement helpers.

All sizing in the layout engines goes through these functions so that
East-Asian wide characters occupy two columns and combining marks none.
Labels may contain explicit line breaks written as ``<br/>``, ``<br>`` or
``<br />`` in any letter case.
"""

import re
from typing import List

from wcwidth import wcwidth

LINE_BREAK_PATTERN = re.compile(r"<br(?: /|/)?>", re.IGNORECASE)

ELLIPSIS = "…"


def char_width(char: str) -> int:
    """Column width of a single character; non-printable characters count as 1."""
    width = wcwidth(char)
    return 1 if width < 0 else width


def display_width(text: str) -> int:
    """Number of terminal columns needed to show ``text`` on one line."""
    return sum(char_width(c) for c in text)


def split_lines(text: str) -> List[str]:
    """
    Split text on explicit line-break markers.

    Args:
        text: Label text, possibly containing ``<br/>`` markers.

    Returns:
        The lines in order; single-line text yields a one-element list.
    """
    return LINE_BREAK_PATTERN.split(text)


def multiline_width(text: str) -> int:
    """Width of the widest line of ``text``."""
    return max(display_width(line) for line in split_lines(text))


def line_count(text: str) -> int:
    """Number of lines in ``text`` after splitting on line breaks."""
    return len(split_lines(text))


def truncate(text: str, width: int) -> str:
    """
    Shorten ``text`` so its display width is at most ``width``.

    When characters are removed the last visible column becomes an
    ellipsis. Text that already fits is returned unchanged.
    """
    if display_width(text) <= width:
        return text
    if width <= 0:
        return ""

    kept = []
    used = 0
    limit = width - display_width(ELLIPSIS)
    for char in text:
        w = char_width(char)
        if used + w > limit:
            break
        kept.append(char)
        used += w
    return "".join(kept) + ELLIPSIS
