"""Unit tests for the export module."""

from PIL import Image

from retromermaid.export import MIN_IMAGE_SIZE, DiagramExporter

DIAGRAM = "┌───┐\n│ A │\n└───┘"


class TestSaveTxt:
    """Tests for text export."""

    def test_writes_utf8(self, tmp_path):
        """Test box-drawing characters survive the round trip to disk."""
        path = tmp_path / "out.txt"
        DiagramExporter().save_txt(DIAGRAM, str(path))
        assert path.read_text(encoding="utf-8") == DIAGRAM


class TestSavePng:
    """Tests for PNG export."""

    def test_creates_image(self, tmp_path):
        """Test a PNG image is written."""
        path = tmp_path / "out.png"
        DiagramExporter().save_png(DIAGRAM, str(path))
        with Image.open(path) as img:
            assert img.format == "PNG"

    def test_minimum_size(self, tmp_path):
        """Test tiny diagrams are padded up to the minimum size."""
        path = tmp_path / "tiny.png"
        DiagramExporter().save_png("x", str(path), padding=0, scale=1)
        with Image.open(path) as img:
            assert img.size[0] >= MIN_IMAGE_SIZE
            assert img.size[1] >= MIN_IMAGE_SIZE

    def test_scale_multiplies_size(self, tmp_path):
        """Test the scale factor enlarges the image."""
        wide = "─" * 80
        small, large = tmp_path / "small.png", tmp_path / "large.png"
        exporter = DiagramExporter()
        exporter.save_png(wide, str(small), scale=1)
        exporter.save_png(wide, str(large), scale=2)
        with Image.open(small) as a, Image.open(large) as b:
            assert b.size[0] > a.size[0]

    def test_background_color(self, tmp_path):
        """Test the background color fills the padding."""
        path = tmp_path / "bg.png"
        DiagramExporter().save_png(DIAGRAM, str(path), bg_color="#FF0000")
        with Image.open(path) as img:
            assert img.convert("RGB").getpixel((0, 0)) == (255, 0, 0)

    def test_unknown_font_falls_back(self, tmp_path):
        """Test a missing font name does not prevent export."""
        path = tmp_path / "font.png"
        DiagramExporter(default_font="No Such Font 12345").save_png(DIAGRAM, str(path))
        assert path.exists()


class TestGridCells:
    """Tests for mapping characters to grid columns."""

    def test_spaces_are_skipped(self):
        """Test blank cells are not drawn but still advance the column."""
        assert DiagramExporter._grid_cells("a b") == [(0, "a"), (2, "b")]

    def test_wide_character_takes_two_columns(self):
        """Test the character after a wide one starts two columns later."""
        assert DiagramExporter._grid_cells("漢a") == [(0, "漢"), (2, "a")]

    def test_combining_mark_joins_previous_cell(self):
        """Test zero-width marks stay with their base character."""
        assert DiagramExporter._grid_cells("e\u0301x") == [(0, "e\u0301"), (1, "x")]
