"""Unit tests for the command-line interface."""

import io
import logging

import pytest

from retromermaid.cli import build_parser, main


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo the handler main() installs on the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def diagram_file(tmp_path, basic_sequence):
    """A sequence diagram saved to disk."""
    path = tmp_path / "diagram.mmd"
    path.write_text(basic_sequence, encoding="utf-8")
    return path


class TestBuildParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test every option is off by default."""
        args = build_parser().parse_args([])
        assert args.file is None
        assert args.width is None
        assert args.output is None
        assert args.png is False
        assert args.verbose is False

    def test_all_options(self):
        """Test long and short option spellings."""
        args = build_parser().parse_args(
            ["in.mmd", "-w", "40", "-o", "out.png", "--png", "--font", "Menlo", "-v"]
        )
        assert (args.file, args.width, args.output) == ("in.mmd", 40, "out.png")
        assert args.png and args.verbose
        assert args.font == "Menlo"


class TestMain:
    """Tests for running the command."""

    def test_print_diagram(self, diagram_file, capsys):
        """Test the diagram is printed to stdout."""
        assert main([str(diagram_file)]) == 0
        out = capsys.readouterr().out
        assert "│ Alice │" in out

    def test_read_stdin(self, monkeypatch, capsys, chain_graph):
        """Test input is read from stdin when no file is given."""
        monkeypatch.setattr("sys.stdin", io.StringIO(chain_graph))
        assert main([]) == 0
        assert "│ Start │" in capsys.readouterr().out

    def test_width_limit(self, diagram_file, capsys):
        """Test -w narrows the output."""
        assert main([str(diagram_file), "-w", "16"]) == 0
        lines = capsys.readouterr().out.rstrip("\n").split("\n")
        assert max(len(line) for line in lines) <= 16

    @pytest.mark.parametrize("width", ["0", "-3"])
    def test_non_positive_width(self, diagram_file, capsys, width):
        """Test a width that is not positive is rejected."""
        assert main([str(diagram_file), "-w", width]) == 1
        assert capsys.readouterr().err.strip() == (
            "ERROR: width must be a positive integer"
        )

    def test_parse_error(self, tmp_path, capsys):
        """Test syntax errors are reported on stderr with status 1."""
        path = tmp_path / "bad.mmd"
        path.write_text("graph TD\nA -> B\n", encoding="utf-8")
        assert main([str(path)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith(
            "ERROR: syntax error in graph diagram at line 2"
        )

    def test_infeasible_width(self, diagram_file, capsys):
        """Test an unreachable width is reported as an error."""
        assert main([str(diagram_file), "-w", "4"]) == 1
        assert "ERROR:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test an unreadable input file is reported as an error."""
        assert main([str(tmp_path / "missing.mmd")]) == 1
        assert capsys.readouterr().err.startswith("ERROR:")

    def test_write_txt(self, diagram_file, tmp_path, capsys):
        """Test -o writes the diagram instead of printing it."""
        out = tmp_path / "out.txt"
        assert main([str(diagram_file), "-o", str(out)]) == 0
        assert capsys.readouterr().out == ""
        assert "│ Alice │" in out.read_text(encoding="utf-8")

    def test_write_png_by_extension(self, diagram_file, tmp_path):
        """Test a .png output name selects image export."""
        out = tmp_path / "out.png"
        assert main([str(diagram_file), "-o", str(out)]) == 0
        assert out.read_bytes()[:4] == b"\x89PNG"

    def test_write_png_by_flag(self, diagram_file, tmp_path):
        """Test --png forces image export whatever the extension."""
        out = tmp_path / "out.img"
        assert main([str(diagram_file), "-o", str(out), "--png"]) == 0
        assert out.read_bytes()[:4] == b"\x89PNG"

    def test_verbose_logs_to_stderr(self, diagram_file, capsys):
        """Test -v emits pipeline events on stderr."""
        assert main([str(diagram_file), "-v"]) == 0
        err = capsys.readouterr().err
        assert "render_complete" in err
