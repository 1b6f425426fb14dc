"""End-to-end tests rendering graph diagrams from source text."""

import pytest

from retromermaid import render, render_with_options
from retromermaid.errors import InfeasibleWidthError


def lines_of(source, **kwargs):
    return render_with_options(source, **kwargs).split("\n")


class TestTopDown:
    """Snapshots of top-down graphs."""

    def test_chain(self, chain_graph):
        """Test two boxes joined by a downward arrow."""
        assert lines_of(chain_graph) == [
            "┌───────┐",
            "│ Start │",
            "└───┬───┘",
            "    │",
            "    ▼",
            " ┌─────┐",
            " │ End │",
            " └─────┘",
        ]

    def test_fan_out(self):
        """Test one source feeding two targets through a shared bar."""
        assert lines_of("graph TD\nA --> B\nA --> C") == [
            "    ┌───┐",
            "    │ A │",
            "    └─┬─┘",
            "  ┌───┴───┐",
            "  ▼       ▼",
            "┌───┐   ┌───┐",
            "│ B │   │ C │",
            "└───┘   └───┘",
        ]

    def test_fan_in(self):
        """Test two sources merging into one target."""
        assert lines_of("graph TD\nA --> C\nB --> C") == [
            "┌───┐   ┌───┐",
            "│ A │   │ B │",
            "└─┬─┘   └─┬─┘",
            "  └───┬───┘",
            "      ▼",
            "    ┌───┐",
            "    │ C │",
            "    └───┘",
        ]

    def test_open_link(self):
        """Test an open link has no arrow head."""
        lines = lines_of("graph TD\nA --- B")
        assert lines[3] == "  │"
        assert lines[4] == "  │"

    def test_subgraph(self, subgraph_graph):
        """Test a subgraph draws a titled border around its nodes."""
        assert lines_of(subgraph_graph) == [
            "┌─ One ───┐",
            "│         │",
            "│  ┌───┐  │",
            "│  │ A │  │",
            "│  └─┬─┘  │",
            "│    │    │",
            "│    ▼    │",
            "│  ┌───┐  │",
            "│  │ B │  │",
            "│  └───┘  │",
            "│         │",
            "└─────────┘",
        ]

    def test_back_edge(self):
        """Test an edge closing a cycle is routed up the right side."""
        assert lines_of("graph TD\nA --> B\nB --> A") == [
            "┌───┐",
            "│ B │<┐",
            "└─┬─┘ │",
            "  │   │",
            "  ▼   │",
            "┌───┐ │",
            "│ A ├─┘",
            "└───┘",
        ]

    def test_self_loop(self):
        """Test an edge to itself hooks back into the box."""
        lines = lines_of("graph TD\nA --> A")
        assert lines[:3] == ["┌───┐", "│ A │─┐", "└───┘<┘"]

    def test_back_edge_beside_self_loop(self):
        """Test a back edge leaves from the top corner of a looped node."""
        assert lines_of("graph TD\nA --> B\nB --> A\nA --> A") == [
            " ┌───┐",
            " │ B │<─┐",
            " └─┬─┘  │",
            "  ┌┘    │",
            "  ▼     │",
            "┌───┬───┘",
            "│ A │─┐",
            "└───┘<┘",
        ]

    def test_subgraph_titles_stay_readable(self):
        """Test an edge crossing into a subgraph does not cut its title."""
        lines = lines_of(
            "graph TD\nsubgraph One\nA --> B\nend\n"
            "subgraph Two\nC --> D\nend\nB --> C"
        )
        assert any("┌─ One ───┐" in line for line in lines)
        assert any("┌─ Two ───┐" in line for line in lines)


class TestLeftRight:
    """Snapshots of left-to-right graphs."""

    def test_chain(self):
        """Test two boxes side by side joined by an arrow."""
        assert lines_of("graph LR\nA[Start] --> B[End]") == [
            "┌───────┐     ┌─────┐",
            "│ Start │────>│ End │",
            "└───────┘     └─────┘",
        ]

    def test_flowchart_header(self):
        """Test the flowchart keyword is accepted like graph."""
        assert render("flowchart LR\nA[Start] --> B[End]") == render(
            "graph LR\nA[Start] --> B[End]"
        )

    def test_labelled_edge(self):
        """Test an edge label sits in the gap above the arrow."""
        assert lines_of("graph LR\nA -->|yes| B") == [
            "┌───┐ yes ┌───┐",
            "│ A │────>│ B │",
            "└───┘     └───┘",
        ]

    def test_open_link(self):
        """Test an open link in left-to-right layout."""
        assert lines_of("graph LR\nA --- B")[1] == "│ A │─────│ B │"

    def test_thick_link(self):
        """Test thick links use double lines."""
        assert lines_of("graph LR\nA ==> B")[1] == "│ A │════>│ B │"

    def test_dotted_link(self):
        """Test dotted links use dashed lines."""
        assert lines_of("graph LR\nA -.-> B")[1] == "│ A │╌╌╌╌>│ B │"

    def test_back_edge_is_drawn(self):
        """Test a cycle in left-to-right layout still renders both edges."""
        text = render("graph LR\nA --> B\nB --> A")
        assert text.count("│ A │") == 1
        assert text.count("│ B │") == 1
        assert "▲" in text

    def test_back_edge_beside_self_loop(self):
        """Test a back edge arrives at the corner of a looped node."""
        assert lines_of("graph LR\nA --> B\nB --> A\nB --> B") == [
            "┌───┐     ┌───┐",
            "│ B │────>│ A │",
            "└──┬┘     └─┬─┘",
            " ▲ │▲       │",
            " └─┘│       │",
            "    │       │",
            "    └───────┘",
        ]


class TestShapes:
    """Tests for node shapes."""

    def test_round(self):
        """Test parentheses give rounded corners."""
        assert lines_of("graph TD\nA(Round)") == [
            "╭───────╮",
            "│ Round │",
            "╰───────╯",
        ]

    def test_diamond(self):
        """Test braces give a diamond-cornered box."""
        assert lines_of("graph TD\nB{Yes?}") == [
            "╱──────╲",
            "│ Yes? │",
            "╲──────╱",
        ]

    def test_circle(self):
        """Test double parentheses give a wider rounded box."""
        assert lines_of("graph TD\nC((c))")[1] == "│   c   │"

    def test_multiline_label(self):
        """Test <br> splits a label over several lines."""
        lines = lines_of("graph TD\nA[one<br>two]")
        assert lines[1] == "│ one │"
        assert lines[2] == "│ two │"


class TestWidth:
    """Tests for width-limited graph output."""

    def test_shrinks_gaps(self):
        """Test a tight width narrows the gap between nodes."""
        lines = lines_of("graph LR\nA --> B", max_width=13)
        assert max(len(line) for line in lines) <= 13
        assert "│ A │" in lines[1] and "│ B │" in lines[1]

    def test_infeasible(self):
        """Test a width no layout can meet is an error."""
        with pytest.raises(InfeasibleWidthError):
            render_with_options("graph LR\nA --> B", max_width=8)
