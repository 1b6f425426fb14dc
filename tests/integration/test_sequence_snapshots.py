"""End-to-end tests rendering sequence diagrams from source text."""

import pytest

from retromermaid import render, render_with_options
from retromermaid.errors import InfeasibleWidthError


def lines_of(source, **kwargs):
    return render_with_options(source, **kwargs).split("\n")


class TestBasicSnapshots:
    """Full-text snapshots of small diagrams."""

    def test_request_and_reply(self, basic_sequence):
        """Test a solid request and a dotted reply."""
        assert lines_of(basic_sequence) == [
            "┌───────┐  ┌─────┐",
            "│ Alice │  │ Bob │",
            "└───┬───┘  └──┬──┘",
            "    │ Hello   │",
            "    │────────>│",
            "    │         │",
            "    │ Hi!     │",
            "    │< ─ ─ ─ ─│",
            "    │         │",
            "┌───┴───┐  ┌──┴──┐",
            "│ Alice │  │ Bob │",
            "└───────┘  └─────┘",
        ]

    def test_activation(self):
        """Test an activated participant gets a heavy lifeline."""
        lines = lines_of(
            "sequenceDiagram\nAlice->>+Bob: Hello\nBob-->>-Alice: Hi!"
        )
        body = lines[3:9]
        assert all(line[14] == "┃" for line in body)
        assert lines[7] == "    │< ─ ─ ─ ─┃"

    def test_note_right_of(self):
        """Test a note is drawn beside the lifeline after the message."""
        lines = lines_of(
            "sequenceDiagram\nAlice->>Bob: Hello\nNote right of Bob: Got it!"
        )
        assert lines[6:9] == [
            "    │         │ ┌─────────┐",
            "    │         │ │ Got it! │",
            "    │         │ └─────────┘",
        ]

    def test_self_message(self):
        """Test a message to oneself loops back to the same lifeline."""
        assert lines_of("sequenceDiagram\nAlice->>Alice: Think") == [
            "┌───────┐",
            "│ Alice │",
            "└───┬───┘",
            "    │ Think",
            "    │───┐",
            "    │<──┘",
            "┌───┴───┐",
            "│ Alice │",
            "└───────┘",
        ]

    def test_loop_frame(self, framed_sequence):
        """Test a loop frame wraps its messages and crosses lifelines."""
        assert lines_of(framed_sequence) == [
            "┌───────┐  ┌─────┐",
            "│ Alice │  │ Bob │",
            "└───┬───┘  └──┬──┘",
            "    │ Start   │",
            "    │────────>│",
            "    │         │",
            "  ┌─loop Check──┐",
            "  │ │ Ping    │ │",
            "  │ │────────>│ │",
            "  │ │         │ │",
            "  └─┼─────────┼─┘",
            "    │ Done    │",
            "    │< ─ ─ ─ ─│",
            "    │         │",
            "┌───┴───┐  ┌──┴──┐",
            "│ Alice │  │ Bob │",
            "└───────┘  └─────┘",
        ]


class TestFrames:
    """Tests for combined fragments."""

    @pytest.mark.parametrize("keyword", ["loop", "opt", "critical", "break", "rect"])
    def test_single_section_blocks(self, keyword):
        """Test each block keyword opens and closes a frame."""
        text = render(
            f"sequenceDiagram\nA->>B: x\n{keyword} Label\nA->>B: y\nend"
        )
        start = next(line for line in text.split("\n") if f"{keyword} Label" in line)
        assert "┌" in start and "┐" in start
        end = [line for line in text.split("\n") if "┼" in line]
        assert end and "└" in end[-1] and "┘" in end[-1]

    def test_alt_else_divider(self):
        """Test else branches are separated by a divider line."""
        lines = lines_of(
            "sequenceDiagram\nA->>B: x\nalt ok\nB->>A: yes\nelse failed\nB->>A: no\nend"
        )
        divider = next(line for line in lines if "else failed" in line)
        assert "├" in divider and "┤" in divider
        assert any("alt ok" in line for line in lines)

    def test_par_and_branches(self):
        """Test par blocks divide with their and keyword."""
        text = render(
            "sequenceDiagram\npar first\nA->>B: x\nand second\nA->>C: y\nend"
        )
        assert "par first" in text
        assert "and second" in text

    def test_nested_frames(self):
        """Test an inner frame sits inside the outer frame."""
        lines = lines_of(
            "sequenceDiagram\nloop outer\nopt inner\nA->>B: x\nend\nend"
        )
        outer = next(line for line in lines if "loop outer" in line)
        inner = next(line for line in lines if "opt inner" in line)
        assert outer.index("┌") < inner.index("┌")
        assert outer.rindex("┐") > inner.rindex("┐")

    def test_unclosed_block(self):
        """Test a block without end is a parse error."""
        from retromermaid.errors import ParseError

        with pytest.raises(ParseError, match="never closed"):
            render("sequenceDiagram\nloop forever\nA->>B: x")


class TestMessages:
    """Tests for message decorations."""

    def test_autonumber(self):
        """Test autonumber prefixes message labels with a counter."""
        text = render("sequenceDiagram\nautonumber\nA->>B: one\nB->>A: two")
        assert "1. one" in text
        assert "2. two" in text

    def test_cross_head(self):
        """Test -x ends the arrow with a cross."""
        text = render("sequenceDiagram\nAlice-xBob: Stop")
        assert "─x│" in text

    def test_open_head(self):
        """Test -) ends the arrow with an open head."""
        text = render("sequenceDiagram\nAlice-)Bob: Async")
        assert "─)│" in text

    def test_no_head(self):
        """Test -> draws a line without a head."""
        text = render("sequenceDiagram\nAlice->Bob: Plain")
        assert "│─────────│" in text

    def test_destroy(self):
        """Test a destroyed participant is marked and loses its footer box."""
        text = render("sequenceDiagram\nAlice->>Bob: Bye\ndestroy Bob")
        assert "●" in text
        assert text.count("│ Bob │") == 1
        assert text.count("│ Alice │") == 2

    def test_actor_alias_and_comment(self):
        """Test aliases set display names and comments are ignored."""
        text = render(
            "sequenceDiagram\n%% who talks\nactor U as User\nU->>S: Login"
        )
        assert "│ User │" in text
        assert "who talks" not in text

    def test_note_over_two(self):
        """Test a note over two participants spans both lifelines."""
        lines = lines_of("sequenceDiagram\nA->>B: x\nNote over A,B: Both")
        note = next(line for line in lines if "Both" in line)
        assert note.index("│ Both") < 2

    def test_width_limit(self, basic_sequence):
        """Test a width limit narrows the gaps between participants."""
        lines = lines_of(basic_sequence, max_width=16)
        assert max(len(line) for line in lines) <= 16

    def test_width_limit_keeps_message_text(self):
        """Test shrinking never cuts a message label short."""
        lines = lines_of(
            "sequenceDiagram\nparticipant A\nparticipant B\n"
            "A->>B: a very long message text",
            max_width=30,
        )
        assert max(len(line) for line in lines) <= 30
        assert any("a very long message text" in line for line in lines)

    def test_width_limit_too_narrow_for_message(self):
        """Test a label wider than the limit allows is an error, not clipped."""
        with pytest.raises(InfeasibleWidthError) as exc_info:
            render_with_options(
                "sequenceDiagram\nparticipant A\nparticipant B\n"
                "A->>B: a very long message text",
                max_width=16,
            )
        assert exc_info.value.min_width > 16
