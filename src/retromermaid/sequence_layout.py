"""
Layout engine for sequence diagrams.

The statement tree is flattened depth-first into rows. Participant columns
come first: every gap between neighbouring lifelines starts at MIN_GAP and is
widened by the messages, notes and self-messages that need room there, and
finally by the participant boxes themselves. Rows are then stacked from the
top; each message and note row is ``2 + lines`` tall, frame and destroy rows
are one row tall.

Classes:
    ParticipantContext: Read-only participant order and display names.
    ParticipantLayout: Box and lifeline position of one participant.
    MessageRow, NoteRow, FrameRow, DestroyRow: Positioned body rows.
    SequenceLayout: Complete positioned diagram.
    SequenceLayoutEngine: Computes layouts, optionally within a width limit.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import EmptyDiagramError, InfeasibleWidthError
from .logging import get_logger
from .metrics import display_width, line_count, multiline_width, split_lines, truncate
from .models import (
    DIVIDER_KEYWORDS,
    Activate,
    Arrow,
    AutoNumber,
    Block,
    BranchBlock,
    Deactivate,
    Destroy,
    Message,
    Note,
    NotePosition,
    ParticipantDecl,
    SequenceDiagram,
    Statement,
)

log = get_logger(__name__)

# Minimum distance between neighbouring lifelines
MIN_GAP = 10

# Box width = name width + BOX_PADDING (two borders, one space each side)
BOX_PADDING = 4

# Room a message needs on top of its text (arrow head and margins)
MESSAGE_PADDING = 4

# Self-message loop: arm length and minimum room to the right
SELF_LOOP_ARM = 4
SELF_LOOP_MIN_GAP = 6

# Distance between a lifeline and a note beside it
NOTE_OFFSET = 2

# Outermost frame sits this far outside the first/last lifeline
FRAME_MARGIN = 2


class MessageDirection(Enum):
    LEFT_TO_RIGHT = "ltr"
    RIGHT_TO_LEFT = "rtl"
    SELF = "self"


class FrameKind(Enum):
    """Which border of a block a frame row draws."""

    START = "start"
    DIVIDER = "divider"
    END = "end"


@dataclass(frozen=True)
class ParticipantContext:
    """
    Participant order and display names, fixed before any positioning.

    Attributes:
        ids: Participant ids in first-seen order.
        names: Display names aligned with ``ids``.
    """

    ids: Tuple[str, ...]
    names: Tuple[str, ...]

    def index(self, participant_id: str) -> int:
        return self.ids.index(participant_id)

    def with_name(self, index: int, name: str) -> "ParticipantContext":
        names = list(self.names)
        names[index] = name
        return replace(self, names=tuple(names))

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class ParticipantLayout:
    id: str
    name: str
    center: int
    box_left: int
    box_right: int

    @property
    def box_width(self) -> int:
        return self.box_right - self.box_left + 1


@dataclass(frozen=True)
class MessageRow:
    """
    A message between two lifelines (or a lifeline and itself).

    Attributes:
        y: Top canvas row.
        source: Index of the sending participant.
        target: Index of the receiving participant.
        from_col: Sender lifeline column.
        to_col: Receiver lifeline column.
        text: Label, already numbered when autonumber is on.
        arrow: Line style and head.
        direction: Derived from participant order.
    """

    y: int
    source: int
    target: int
    from_col: int
    to_col: int
    text: str
    arrow: Arrow
    direction: MessageDirection

    @property
    def height(self) -> int:
        return 2 + line_count(self.text)


@dataclass(frozen=True)
class NoteRow:
    y: int
    left: int
    right: int
    text: str

    @property
    def height(self) -> int:
        return 2 + line_count(self.text)


@dataclass(frozen=True)
class FrameRow:
    """
    One border row of a block frame.

    Attributes:
        y: Canvas row.
        kind: Start, divider or end border.
        label: Text inset into the border (empty for end rows).
        left: Frame left column.
        right: Frame right column.
        depth: Nesting depth, 0 for outermost blocks.
    """

    y: int
    kind: FrameKind
    label: str
    left: int
    right: int
    depth: int

    height = 1


@dataclass(frozen=True)
class DestroyRow:
    y: int
    participant: int
    col: int

    height = 1


Row = Union[MessageRow, NoteRow, FrameRow, DestroyRow]


@dataclass(frozen=True)
class SequenceLayout:
    """
    A fully positioned sequence diagram.

    Attributes:
        participants: Participant boxes in column order.
        rows: Body rows top to bottom.
        activations: Per row, whether each participant's lifeline is active.
        destroyed: Per participant, whether it is destroyed in the diagram.
        box_height: Height of the top and bottom participant boxes.
        total_width: Rightmost used column + 1.
    """

    participants: Tuple[ParticipantLayout, ...]
    rows: Tuple[Row, ...]
    activations: Tuple[Tuple[bool, ...], ...]
    destroyed: Tuple[bool, ...]
    box_height: int
    total_width: int

    @property
    def body_height(self) -> int:
        return sum(row.height for row in self.rows)

    @property
    def height(self) -> int:
        return 2 * self.box_height + self.body_height


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


@dataclass
class _Step:
    """A body row before columns are known."""

    statement: Optional[Statement]
    active: Tuple[bool, ...]
    frame: Optional["_Frame"] = None
    frame_kind: Optional[FrameKind] = None
    label: str = ""


@dataclass
class _Frame:
    depth: int
    label_width: int = 0
    members: List[Union[_Step, "_Frame"]] = field(default_factory=list)
    left: int = 0
    right: int = 0


def _iter_statements(statements):
    """Yield every statement depth-first, block bodies in source order."""
    for statement in statements:
        yield statement
        if isinstance(statement, (Block, BranchBlock)):
            yield from _iter_statements(statement.body)
        if isinstance(statement, BranchBlock):
            for branch in statement.branches:
                yield from _iter_statements(branch.body)


def _frame_label(keyword: str, label: str) -> str:
    return f"{keyword} {label}" if label else keyword


def collect_participants(diagram: SequenceDiagram) -> ParticipantContext:
    """
    Determine participant order and display names.

    Participants appear in first-seen order across declarations and every
    statement that names one. The first sighting fixes the display name.
    """
    ids: List[str] = []
    names: List[str] = []

    def see(participant_id: str, name: Optional[str] = None) -> None:
        if participant_id not in ids:
            ids.append(participant_id)
            names.append(name or participant_id)

    for statement in _iter_statements(diagram.statements):
        if isinstance(statement, ParticipantDecl):
            see(statement.id, statement.display_name)
        elif isinstance(statement, Message):
            see(statement.source)
            see(statement.target)
        elif isinstance(statement, Note):
            for participant_id in statement.placement.participants:
                see(participant_id)
        elif isinstance(statement, (Activate, Deactivate, Destroy)):
            see(statement.participant)

    return ParticipantContext(tuple(ids), tuple(names))


class _Flattener:
    """Walks the statement tree, tracking activation depth and numbering."""

    def __init__(self, context: ParticipantContext, autonumber: bool):
        self.context = context
        self.autonumber = autonumber
        self.depths = [0] * len(context)
        self.counter = 0
        self.steps: List[_Step] = []
        self.frames: List[_Frame] = []

    def snapshot(self) -> Tuple[bool, ...]:
        return tuple(depth > 0 for depth in self.depths)

    def _emit(self, members: list, step: _Step) -> None:
        self.steps.append(step)
        members.append(step)

    def walk(self, statements, depth: int, members: list) -> None:
        for statement in statements:
            if isinstance(statement, Message):
                self.counter += 1
                if self.autonumber:
                    text = f"{self.counter}. {statement.text}"
                    statement = replace(statement, text=text)
                if statement.activate_target:
                    self.depths[self.context.index(statement.target)] += 1
                self._emit(members, _Step(statement, self.snapshot()))
                if statement.deactivate_source:
                    self._deactivate(statement.source)
            elif isinstance(statement, (Note, Destroy)):
                self._emit(members, _Step(statement, self.snapshot()))
            elif isinstance(statement, Activate):
                self.depths[self.context.index(statement.participant)] += 1
            elif isinstance(statement, Deactivate):
                self._deactivate(statement.participant)
            elif isinstance(statement, (Block, BranchBlock)):
                self._walk_block(statement, depth, members)

    def _deactivate(self, participant_id: str) -> None:
        index = self.context.index(participant_id)
        self.depths[index] = max(0, self.depths[index] - 1)

    def _walk_block(self, block, depth: int, members: list) -> None:
        frame = _Frame(depth)
        members.append(frame)
        self.frames.append(frame)

        label = _frame_label(block.kind, block.label)
        frame.label_width = display_width(label)
        self._emit(
            frame.members,
            _Step(None, self.snapshot(), frame, FrameKind.START, label),
        )
        self.walk(block.body, depth + 1, frame.members)

        if isinstance(block, BranchBlock):
            divider = DIVIDER_KEYWORDS[block.kind]
            for branch in block.branches:
                label = _frame_label(divider, branch.label)
                frame.label_width = max(frame.label_width, display_width(label))
                self._emit(
                    frame.members,
                    _Step(None, self.snapshot(), frame, FrameKind.DIVIDER, label),
                )
                self.walk(branch.body, depth + 1, frame.members)

        self._emit(frame.members, _Step(None, self.snapshot(), frame, FrameKind.END))


# ---------------------------------------------------------------------------
# Layout engine
# ---------------------------------------------------------------------------


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


class SequenceLayoutEngine:
    """
    Computes SequenceLayout objects.

    Usage:
        engine = SequenceLayoutEngine()
        layout = engine.compute(diagram)
        narrow = engine.compute_with_max_width(diagram, 60)
    """

    def compute(self, diagram: SequenceDiagram) -> SequenceLayout:
        """
        Lay out a sequence diagram at its natural width.

        Raises:
            EmptyDiagramError: If the diagram has no participants.
        """
        context = collect_participants(diagram)
        if not len(context):
            raise EmptyDiagramError("no participants found")
        steps, frames = self._flatten(diagram, context)
        gaps = self.compute_gaps(steps, context)
        layout = self._build(context, steps, frames, gaps)
        log.debug(
            "layout_computed",
            kind="sequence",
            participants=len(layout.participants),
            rows=len(layout.rows),
            width=layout.total_width,
            height=layout.height,
        )
        return layout

    def compute_with_max_width(
        self, diagram: SequenceDiagram, max_width: int
    ) -> SequenceLayout:
        """
        Lay out a sequence diagram no wider than ``max_width`` columns.

        Gaps are first shrunk toward their structural minimum in proportion
        to their excess. When no gap can shrink further, the longest display
        name is truncated by one column and the search repeats.

        Args:
            diagram: Parsed diagram.
            max_width: Maximum total width in columns.

        Returns:
            A layout whose total width is at most ``max_width``.

        Raises:
            EmptyDiagramError: If the diagram has no participants.
            InfeasibleWidthError: If every name is already minimal and the
                layout is still too wide.
        """
        context = collect_participants(diagram)
        if not len(context):
            raise EmptyDiagramError("no participants found")

        steps, frames = self._flatten(diagram, context)
        gaps = self.compute_gaps(steps, context)
        layout = self._build(context, steps, frames, gaps)

        # Every step removes gap slack or a name column; truncating a name
        # frees at most two columns of slack in its neighbouring gaps
        name_columns = sum(multiline_width(n) for n in context.names)
        limit = sum(gaps) + 3 * name_columns + 1
        for step in range(limit):
            if layout.total_width <= max_width:
                break
            minimums = self.minimum_gaps(context)
            excess = layout.total_width - max_width
            shrunk = self._shrink_gaps(gaps, minimums, excess)
            if shrunk is not None:
                gaps = shrunk
                action = "shrink_gaps"
            else:
                index = self._longest_name(context)
                name = context.names[index]
                if multiline_width(name) <= 2:
                    break
                context = context.with_name(index, self._truncate_name(name))
                action = "truncate_name"
            layout = self._build(context, steps, frames, gaps)
            log.debug(
                "shrink_step",
                kind="sequence",
                step=step,
                action=action,
                width=layout.total_width,
                max_width=max_width,
            )

        if layout.total_width > max_width:
            raise InfeasibleWidthError(
                f"diagram needs at least {layout.total_width} columns, "
                f"but the maximum width is {max_width}",
                max_width=max_width,
                min_width=layout.total_width,
            )
        return layout

    # -- gaps ---------------------------------------------------------------

    def compute_gaps(
        self, steps: List[_Step], context: ParticipantContext
    ) -> List[int]:
        """
        Compute the distance between each pair of neighbouring lifelines.

        Returns:
            ``len(participants) - 1`` gap widths.
        """
        count = len(context)
        gaps = [MIN_GAP] * max(count - 1, 0)

        def demand(left: int, right: int, width: int) -> None:
            span = right - left
            if span <= 0 or left < 0 or right > len(gaps):
                return
            per_gap = _ceil_div(width, span)
            for i in range(left, right):
                gaps[i] = max(gaps[i], per_gap)

        for step in steps:
            statement = step.statement
            if isinstance(statement, Message):
                width = multiline_width(statement.text)
                source = context.index(statement.source)
                target = context.index(statement.target)
                if source == target:
                    # Loop arm and label sit in the gap to the right
                    loop_width = max(width + MESSAGE_PADDING, SELF_LOOP_MIN_GAP)
                    demand(source, source + 1, loop_width)
                else:
                    low, high = sorted((source, target))
                    demand(low, high, width + MESSAGE_PADDING)
            elif isinstance(statement, Note):
                self._note_demand(statement, context, demand)

        for i, minimum in enumerate(self.minimum_gaps(context)):
            gaps[i] = max(gaps[i], minimum)
        return gaps

    def _note_demand(self, note: Note, context: ParticipantContext, demand) -> None:
        width = multiline_width(note.text)
        indices = sorted(context.index(p) for p in note.placement.participants)
        position = note.placement.kind
        if len(indices) == 2:
            demand(indices[0], indices[1], width + BOX_PADDING)
            return
        index = indices[0]
        beside = width + BOX_PADDING + NOTE_OFFSET + 1 + NOTE_OFFSET
        if position is NotePosition.RIGHT_OF:
            demand(index, index + 1, beside)
        elif position is NotePosition.LEFT_OF:
            demand(index - 1, index, beside)
        else:
            half = _ceil_div(width + BOX_PADDING, 2) + 1
            demand(index - 1, index, half)
            demand(index, index + 1, half)

    def minimum_gaps(self, context: ParticipantContext) -> List[int]:
        """Smallest gaps that keep neighbouring participant boxes apart."""
        widths = [multiline_width(name) for name in context.names]
        return [
            (widths[i] // 2 + 2) + (widths[i + 1] // 2 + 2) + 2
            for i in range(len(widths) - 1)
        ]

    # -- shrinking ----------------------------------------------------------

    def _shrink_gaps(
        self, gaps: List[int], minimums: List[int], excess: int
    ) -> Optional[List[int]]:
        """
        Shrink gaps toward their minimums, in proportion to each gap's slack.

        Returns:
            The new gaps, or None when no gap has slack left.
        """
        slacks = [max(g - m, 0) for g, m in zip(gaps, minimums)]
        total_slack = sum(slacks)
        if total_slack == 0:
            return None
        reduction = min(excess, total_slack)
        cuts = [reduction * s // total_slack for s in slacks]
        remainder = reduction - sum(cuts)
        for i, slack in enumerate(slacks):
            if remainder == 0:
                break
            if cuts[i] < slack:
                cuts[i] += 1
                remainder -= 1
        return [g - c for g, c in zip(gaps, cuts)]

    def _longest_name(self, context: ParticipantContext) -> int:
        widths = [multiline_width(name) for name in context.names]
        return widths.index(max(widths))

    def _truncate_name(self, name: str) -> str:
        lines = split_lines(name)
        widths = [display_width(line) for line in lines]
        widest = widths.index(max(widths))
        lines[widest] = truncate(lines[widest], widths[widest] - 1)
        return "<br/>".join(lines)

    # -- assembly -----------------------------------------------------------

    def _flatten(
        self, diagram: SequenceDiagram, context: ParticipantContext
    ) -> Tuple[List[_Step], List[_Frame]]:
        autonumber = any(
            isinstance(s, AutoNumber) for s in _iter_statements(diagram.statements)
        )
        flattener = _Flattener(context, autonumber)
        flattener.walk(diagram.statements, 0, [])
        return flattener.steps, flattener.frames

    def _position(
        self, context: ParticipantContext, gaps: List[int], origin: int
    ) -> List[ParticipantLayout]:
        participants = []
        center = origin
        for i, (participant_id, name) in enumerate(zip(context.ids, context.names)):
            box_width = multiline_width(name) + BOX_PADDING
            if i == 0:
                center = origin + box_width // 2
            else:
                center += gaps[i - 1]
            participants.append(
                ParticipantLayout(
                    id=participant_id,
                    name=name,
                    center=center,
                    box_left=center - box_width // 2,
                    box_right=center + (box_width - 1) // 2,
                )
            )
        return participants

    def _note_bounds(
        self, note: Note, context: ParticipantContext, participants
    ) -> Tuple[int, int]:
        width = multiline_width(note.text)
        centers = sorted(
            participants[context.index(p)].center for p in note.placement.participants
        )
        if len(centers) == 2:
            left = centers[0] - 1
            return left, max(centers[1] + 1, left + width + 3)
        center = centers[0]
        position = note.placement.kind
        if position is NotePosition.RIGHT_OF:
            left = center + NOTE_OFFSET
        elif position is NotePosition.LEFT_OF:
            left = center - NOTE_OFFSET - (width + 3)
        else:
            left = center - (width + BOX_PADDING) // 2
        return left, left + width + 3

    def _extent(
        self, step: _Step, context: ParticipantContext, participants
    ) -> Tuple[int, int]:
        """Horizontal extent of a non-frame row."""
        statement = step.statement
        if isinstance(statement, Note):
            return self._note_bounds(statement, context, participants)
        if isinstance(statement, Destroy):
            center = participants[context.index(statement.participant)].center
            return center, center
        source = participants[context.index(statement.source)].center
        target = participants[context.index(statement.target)].center
        low = min(source, target)
        text_end = low + 1 + multiline_width(statement.text)
        if source == target:
            return source, max(source + SELF_LOOP_ARM, text_end)
        # Shrunk gaps can leave the label running past the far lifeline
        return low, max(source, target, text_end)

    def _place_frames(
        self, frames: List[_Frame], context: ParticipantContext, participants
    ) -> None:
        if not frames:
            return
        max_depth = max(frame.depth for frame in frames) + 1
        first = participants[0].center
        last = participants[-1].center

        def place(frame: _Frame) -> None:
            inset = max_depth - 1 - frame.depth
            left = first - FRAME_MARGIN - inset
            right = last + FRAME_MARGIN + inset
            for member in frame.members:
                if isinstance(member, _Frame):
                    place(member)
                    left = min(left, member.left - 1)
                    right = max(right, member.right + 1)
                elif member.frame is None:
                    low, high = self._extent(member, context, participants)
                    left = min(left, low - 1)
                    right = max(right, high + 1)
            frame.left = left
            frame.right = max(right, left + frame.label_width + 3)

        for frame in frames:
            if frame.depth == 0:
                place(frame)

    def _bounds(
        self, steps, frames, context: ParticipantContext, participants
    ) -> Tuple[int, int]:
        """Leftmost and rightmost columns used by anything in the diagram."""
        low = min(p.box_left for p in participants)
        high = max(p.box_right for p in participants)
        for step in steps:
            if step.frame is None:
                left, right = self._extent(step, context, participants)
                low, high = min(low, left), max(high, right)
        for frame in frames:
            low, high = min(low, frame.left), max(high, frame.right)
        return low, high

    def _build(
        self,
        context: ParticipantContext,
        steps: List[_Step],
        frames: List[_Frame],
        gaps: List[int],
    ) -> SequenceLayout:
        participants = self._position(context, gaps, 0)
        self._place_frames(frames, context, participants)
        low, high = self._bounds(steps, frames, context, participants)
        if low < 0:
            participants = self._position(context, gaps, -low)
            self._place_frames(frames, context, participants)
            low, high = self._bounds(steps, frames, context, participants)

        box_height = 2 + max(line_count(name) for name in context.names)
        rows: List[Row] = []
        destroyed = [False] * len(context)
        y = box_height
        for step in steps:
            row = self._make_row(step, y, context, participants)
            if isinstance(row, DestroyRow):
                destroyed[row.participant] = True
            rows.append(row)
            y += row.height

        return SequenceLayout(
            participants=tuple(participants),
            rows=tuple(rows),
            activations=tuple(step.active for step in steps),
            destroyed=tuple(destroyed),
            box_height=box_height,
            total_width=high + 1,
        )

    def _make_row(
        self, step: _Step, y: int, context: ParticipantContext, participants
    ) -> Row:
        statement = step.statement
        if step.frame is not None:
            return FrameRow(
                y=y,
                kind=step.frame_kind,
                label=step.label,
                left=step.frame.left,
                right=step.frame.right,
                depth=step.frame.depth,
            )
        if isinstance(statement, Note):
            left, right = self._note_bounds(statement, context, participants)
            return NoteRow(y=y, left=left, right=right, text=statement.text)
        if isinstance(statement, Destroy):
            index = context.index(statement.participant)
            return DestroyRow(y=y, participant=index, col=participants[index].center)

        source = context.index(statement.source)
        target = context.index(statement.target)
        if source == target:
            direction = MessageDirection.SELF
        elif source < target:
            direction = MessageDirection.LEFT_TO_RIGHT
        else:
            direction = MessageDirection.RIGHT_TO_LEFT
        return MessageRow(
            y=y,
            source=source,
            target=target,
            from_col=participants[source].center,
            to_col=participants[target].center,
            text=statement.text,
            arrow=statement.arrow,
            direction=direction,
        )


def compute_sequence_layout(
    diagram: SequenceDiagram, max_width: Optional[int] = None
) -> SequenceLayout:
    """Convenience wrapper around SequenceLayoutEngine."""
    engine = SequenceLayoutEngine()
    if max_width is None:
        return engine.compute(diagram)
    return engine.compute_with_max_width(diagram, max_width)
