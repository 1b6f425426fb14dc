"""Unit tests for the metrics module."""

from retromermaid.metrics import (
    ELLIPSIS,
    char_width,
    display_width,
    line_count,
    multiline_width,
    split_lines,
    truncate,
)


class TestCharWidth:
    """Tests for single-character widths."""

    def test_ascii_is_one_column(self):
        """Test plain ASCII letters take one column."""
        assert char_width("a") == 1

    def test_cjk_is_two_columns(self):
        """Test East-Asian wide characters take two columns."""
        assert char_width("漢") == 2

    def test_combining_mark_is_zero_columns(self):
        """Test combining marks take no columns."""
        assert char_width("\u0301") == 0

    def test_control_character_counts_as_one(self):
        """Test non-printable characters fall back to one column."""
        assert char_width("\x07") == 1


class TestDisplayWidth:
    """Tests for display_width."""

    def test_empty_string(self):
        """Test empty text has width zero."""
        assert display_width("") == 0

    def test_mixed_text(self):
        """Test wide and narrow characters add up."""
        assert display_width("ab漢字") == 6

    def test_combining_sequence(self):
        """Test a letter with a combining accent is one column."""
        assert display_width("e\u0301") == 1


class TestLineBreaks:
    """Tests for split_lines, multiline_width and line_count."""

    def test_single_line(self):
        """Test text without markers is a single line."""
        assert split_lines("Hello") == ["Hello"]

    def test_all_marker_spellings(self):
        """Test every <br> spelling splits the text."""
        assert split_lines("a<br/>b<br>c<br />d") == ["a", "b", "c", "d"]

    def test_markers_are_case_insensitive(self):
        """Test upper-case markers are recognised."""
        assert split_lines("a<BR/>b") == ["a", "b"]

    def test_multiline_width_uses_widest_line(self):
        """Test multiline width is the widest line's width."""
        assert multiline_width("ab<br/>abcd<br/>a") == 4

    def test_line_count(self):
        """Test the number of lines after splitting."""
        assert line_count("one") == 1
        assert line_count("one<br/>two") == 2


class TestTruncate:
    """Tests for truncate."""

    def test_fitting_text_is_unchanged(self):
        """Test text within the limit is returned as-is."""
        assert truncate("Alice", 5) == "Alice"

    def test_truncated_text_ends_with_ellipsis(self):
        """Test shortened text ends with an ellipsis and fits."""
        result = truncate("Alexander", 5)
        assert result == "Alex" + ELLIPSIS
        assert display_width(result) == 5

    def test_wide_character_not_split(self):
        """Test a wide character that would overflow is dropped whole."""
        result = truncate("漢字漢字", 4)
        assert result == "漢" + ELLIPSIS
        assert display_width(result) <= 4

    def test_non_positive_width(self):
        """Test truncating to zero columns yields an empty string."""
        assert truncate("Alice", 0) == ""
