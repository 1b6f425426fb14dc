"""Unit tests for the sequence layout module."""

import pytest

from retromermaid.errors import EmptyDiagramError, InfeasibleWidthError
from retromermaid.metrics import ELLIPSIS
from retromermaid.sequence_layout import (
    FrameKind,
    FrameRow,
    MessageDirection,
    MessageRow,
    NoteRow,
    SequenceLayoutEngine,
    collect_participants,
    compute_sequence_layout,
)
from retromermaid.sequence_parser import parse_sequence


def layout_of(source, max_width=None):
    return compute_sequence_layout(parse_sequence(source), max_width=max_width)


class TestParticipants:
    """Tests for participant collection and placement."""

    def test_first_seen_order(self):
        """Test participants are ordered by first mention."""
        diagram = parse_sequence("sequenceDiagram\nB->>A: x\nparticipant C\nA->>C: y")
        context = collect_participants(diagram)
        assert context.ids == ("B", "A", "C")

    def test_alias_is_display_name(self):
        """Test a participant alias replaces the id in the box."""
        layout = layout_of("sequenceDiagram\nparticipant A as Alice\nA->>B: x")
        assert layout.participants[0].name == "Alice"

    def test_late_declaration_keeps_first_name(self):
        """Test the first sighting fixes the display name."""
        layout = layout_of("sequenceDiagram\nA->>B: x\nparticipant A as Alice")
        assert layout.participants[0].name == "A"

    def test_basic_positions(self, basic_sequence):
        """Test lifeline centers and total width of the basic diagram."""
        layout = layout_of(basic_sequence)
        assert [p.center for p in layout.participants] == [4, 14]
        assert layout.participants[0].box_left == 0
        assert layout.participants[1].box_right == 17
        assert layout.total_width == 18

    def test_box_height_follows_tallest_name(self):
        """Test multi-line names make every participant box taller."""
        layout = layout_of("sequenceDiagram\nparticipant A as One<br/>Two\nA->>B: x")
        assert layout.box_height == 4

    def test_no_participants(self):
        """Test a diagram without participants is rejected."""
        with pytest.raises(EmptyDiagramError):
            layout_of("sequenceDiagram")


class TestGaps:
    """Tests for lifeline spacing."""

    def test_minimum_gap(self, basic_sequence):
        """Test short messages keep the default gap."""
        layout = layout_of(basic_sequence)
        centers = [p.center for p in layout.participants]
        assert centers[1] - centers[0] == 10

    def test_long_message_widens_gap(self):
        """Test a label wider than the gap pushes participants apart."""
        text = "x" * 20
        layout = layout_of(f"sequenceDiagram\nA->>B: {text}")
        centers = [p.center for p in layout.participants]
        assert centers[1] - centers[0] == 24

    def test_spanning_message_spreads_demand(self):
        """Test a message over two gaps splits its width between them."""
        text = "y" * 26
        layout = layout_of(
            f"sequenceDiagram\nparticipant A\nparticipant B\nA->>C: {text}"
        )
        centers = [p.center for p in layout.participants]
        assert centers[1] - centers[0] == 15
        assert centers[2] - centers[1] == 15

    def test_long_names_keep_boxes_apart(self):
        """Test neighbouring boxes never touch."""
        layout = layout_of("sequenceDiagram\nLongParticipant->>AnotherLongOne: x")
        first, second = layout.participants
        assert second.box_left > first.box_right + 1

    def test_self_message_extends_width(self):
        """Test a self-message label widens a single-participant diagram."""
        layout = layout_of("sequenceDiagram\nA->>A: hello world")
        assert layout.total_width == 2 + 1 + 11 + 1


class TestRows:
    """Tests for body rows."""

    def test_message_rows(self, basic_sequence):
        """Test each message occupies three rows below the boxes."""
        layout = layout_of(basic_sequence)
        first, second = layout.rows
        assert isinstance(first, MessageRow)
        assert (first.y, second.y) == (3, 6)
        assert first.direction is MessageDirection.LEFT_TO_RIGHT
        assert second.direction is MessageDirection.RIGHT_TO_LEFT
        assert layout.height == 12

    def test_self_direction(self):
        """Test a message to oneself."""
        layout = layout_of("sequenceDiagram\nA->>A: think")
        assert layout.rows[0].direction is MessageDirection.SELF

    def test_multiline_message_is_taller(self):
        """Test each extra label line adds a row."""
        layout = layout_of("sequenceDiagram\nA->>B: one<br/>two")
        assert layout.rows[0].height == 4

    def test_autonumber(self):
        """Test messages are numbered in order when autonumber is on."""
        layout = layout_of("sequenceDiagram\nautonumber\nA->>B: a\nB->>A: b")
        assert [row.text for row in layout.rows] == ["1. a", "2. b"]

    def test_activation_tracking(self):
        """Test activation state per row, including shorthand."""
        layout = layout_of(
            "sequenceDiagram\nA->>+B: go\nB->>A: working\nB-->>-A: done\nA->>B: idle"
        )
        assert layout.activations == (
            (False, True),
            (False, True),
            (False, True),
            (False, False),
        )

    def test_deactivate_never_goes_negative(self):
        """Test extra deactivations are ignored."""
        layout = layout_of("sequenceDiagram\ndeactivate A\nactivate A\nA->>B: x")
        assert layout.activations[0] == (True, False)

    def test_note_right_of(self):
        """Test a note to the right starts past the lifeline."""
        layout = layout_of("sequenceDiagram\nA->>B: hi\nNote right of B: Got it!")
        note = layout.rows[1]
        assert isinstance(note, NoteRow)
        assert note.left == layout.participants[1].center + 2
        assert note.right - note.left + 1 == len("Got it!") + 4

    def test_note_over_pair_spans_both(self):
        """Test a note over two participants covers both lifelines."""
        layout = layout_of("sequenceDiagram\nA->>B: hi\nNote over A,B: shared")
        note = layout.rows[1]
        a, b = layout.participants
        assert note.left < a.center < b.center < note.right

    def test_destroy_row(self):
        """Test destroy marks the participant."""
        layout = layout_of("sequenceDiagram\nA->>B: bye\ndestroy B")
        assert layout.destroyed == (False, True)


class TestFrames:
    """Tests for block frames."""

    def test_frame_rows(self, framed_sequence):
        """Test a loop produces start and end rows around its body."""
        layout = layout_of(framed_sequence)
        kinds = [row.kind for row in layout.rows if isinstance(row, FrameRow)]
        assert kinds == [FrameKind.START, FrameKind.END]
        start = layout.rows[1]
        assert start.label == "loop Check"
        assert start.left == layout.participants[0].center - 2

    def test_alt_divider(self):
        """Test else branches add divider rows."""
        layout = layout_of(
            "sequenceDiagram\nalt ok\nA->>B: yes\nelse no\nA->>B: no\nend"
        )
        frames = [row for row in layout.rows if isinstance(row, FrameRow)]
        assert [f.kind for f in frames] == [
            FrameKind.START,
            FrameKind.DIVIDER,
            FrameKind.END,
        ]
        assert frames[1].label == "else no"

    def test_nested_frames_are_inset(self):
        """Test an inner frame sits inside its outer frame."""
        layout = layout_of(
            "sequenceDiagram\nloop outer\nopt inner\nA->>B: x\nend\nend"
        )
        outer, inner = [
            row for row in layout.rows
            if isinstance(row, FrameRow) and row.kind is FrameKind.START
        ]
        assert outer.left < inner.left
        assert inner.right < outer.right
        assert (outer.depth, inner.depth) == (0, 1)

    def test_long_frame_label_widens_frame(self):
        """Test the frame is wide enough for its label."""
        label = "a rather long loop description"
        layout = layout_of(f"sequenceDiagram\nloop {label}\nA->>B: x\nend")
        start = layout.rows[0]
        assert start.right - start.left >= len("loop " + label) + 3
        assert layout.total_width > start.right


class TestMaxWidth:
    """Tests for width-limited layout."""

    def test_natural_width_when_it_fits(self, basic_sequence):
        """Test a generous limit leaves the layout unchanged."""
        layout = layout_of(basic_sequence, max_width=80)
        assert layout.total_width == 18

    def test_gaps_shrink_first(self, basic_sequence):
        """Test slack in gaps is removed before names are touched."""
        layout = layout_of(basic_sequence, max_width=17)
        assert layout.total_width <= 17
        assert [p.name for p in layout.participants] == ["Alice", "Bob"]

    def test_message_label_counts_toward_width(self):
        """Test gaps never shrink below the width of a message label."""
        text = "a very long message text"
        layout = layout_of(
            f"sequenceDiagram\nparticipant A\nparticipant B\nA->>B: {text}",
            max_width=30,
        )
        assert layout.total_width <= 30
        assert layout.total_width >= layout.participants[0].center + 2 + len(text)

    def test_names_truncated_when_gaps_exhausted(self, basic_sequence):
        """Test the longest name is shortened with an ellipsis."""
        layout = layout_of(basic_sequence, max_width=16)
        assert layout.total_width <= 16
        assert layout.participants[0].name.endswith(ELLIPSIS)

    def test_infeasible(self, basic_sequence):
        """Test an impossible limit raises with the reachable width."""
        with pytest.raises(InfeasibleWidthError) as exc_info:
            layout_of(basic_sequence, max_width=5)
        assert exc_info.value.max_width == 5
        assert exc_info.value.min_width > 5

    def test_engine_directly(self, basic_sequence):
        """Test the engine entry point matches the convenience wrapper."""
        diagram = parse_sequence(basic_sequence)
        engine = SequenceLayoutEngine()
        assert engine.compute(diagram) == compute_sequence_layout(diagram)
