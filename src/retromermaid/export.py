"""
File export for rendered diagrams.

Supported formats:
- Text files (.txt): the diagram text as UTF-8
- PNG images: the character grid rasterized with a monospace font

The DiagramExporter class handles font loading, image rendering and file I/O.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .logging import get_logger
from .metrics import char_width, display_width

log = get_logger(__name__)

# Monospace fonts tried after the caller's choice, in order
FALLBACK_FONTS = [
    # Linux
    "DejaVuSansMono",
    "DejaVu Sans Mono",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    # macOS
    "Monaco",
    "Menlo",
    "/System/Library/Fonts/Monaco.ttf",
    "/System/Library/Fonts/Menlo.ttc",
    # Windows
    "Consolas",
    "Cascadia Code",
    "Courier New",
    "C:/Windows/Fonts/consola.ttf",
]

LINE_SPACING = 1.2
MIN_IMAGE_SIZE = 100


class DiagramExporter:
    """
    Exports rendered diagrams to files.

    Attributes:
        default_font: Default font name for PNG export.
    """

    def __init__(self, default_font: Optional[str] = None):
        """
        Initialize the exporter.

        Args:
            default_font: Default font name for PNG export (e.g., "Cascadia Code").
        """
        self.default_font = default_font

    def save_txt(self, diagram: str, filename: str) -> None:
        """
        Save a diagram to a text file.

        Args:
            diagram: The rendered diagram text.
            filename: Output filename.
        """
        output_path = Path(filename)
        output_path.write_text(diagram, encoding="utf-8")
        log.debug("export_complete", format="txt", path=str(output_path))

    def save_png(
        self,
        diagram: str,
        filename: str,
        font_size: int = 16,
        bg_color: str = "#FFFFFF",
        fg_color: str = "#000000",
        padding: int = 20,
        font: Optional[str] = None,
        scale: int = 2,
    ) -> None:
        """
        Save a diagram as a high-resolution PNG image.

        Every character is drawn at its grid column, so wide characters keep
        the two-column footprint they have in the text output regardless of
        the font's own glyph widths.

        Args:
            diagram: The rendered diagram text.
            filename: Output filename (should end in .png).
            font_size: Font size in points (higher = higher resolution).
            bg_color: Background color as hex string (e.g., "#FFFFFF").
            fg_color: Foreground/text color as hex string (e.g., "#000000").
            padding: Padding around the diagram in pixels.
            font: Font name to use (overrides default_font if provided).
            scale: Resolution multiplier for crisp output (default 2 for retina).

        Example:
            >>> exporter = DiagramExporter(default_font="Cascadia Code")
            >>> exporter.save_png(diagram, "diagram.png", font_size=24)
        """
        lines = diagram.split("\n")

        font_name = font or self.default_font
        loaded_font = self._load_monospace_font(font_size * scale, font_name)

        # Character cell size from a reference glyph
        bbox = loaded_font.getbbox("M")
        cell_width = bbox[2] - bbox[0]
        cell_height = bbox[3] - bbox[1]
        line_height = int(cell_height * LINE_SPACING)

        scaled_padding = padding * scale
        columns = max((display_width(line) for line in lines), default=0)
        img_width = max(
            cell_width * columns + scaled_padding * 2, MIN_IMAGE_SIZE * scale
        )
        img_height = max(
            line_height * len(lines) + scaled_padding * 2, MIN_IMAGE_SIZE * scale
        )

        img = Image.new("RGB", (img_width, img_height), bg_color)
        draw = ImageDraw.Draw(img)

        y = scaled_padding
        for line in lines:
            for column, char in self._grid_cells(line):
                x = scaled_padding + column * cell_width
                draw.text((x, y), char, font=loaded_font, fill=fg_color)
            y += line_height

        output_path = Path(filename)
        img.save(output_path, "PNG")
        log.debug(
            "export_complete",
            format="png",
            path=str(output_path),
            width=img_width,
            height=img_height,
        )

    @staticmethod
    def _grid_cells(line: str) -> List[Tuple[int, str]]:
        """
        Split a line into (column, text) pairs, one per visible cell.

        Zero-width characters stay attached to the preceding glyph.
        """
        cells: List[Tuple[int, str]] = []
        column = 0
        for char in line:
            width = char_width(char)
            if width == 0 and cells:
                start, text = cells[-1]
                cells[-1] = (start, text + char)
                continue
            if char != " ":
                cells.append((column, char))
            column += width
        return cells

    def _load_monospace_font(
        self, font_size: int, font_name: Optional[str] = None
    ) -> ImageFont.FreeTypeFont:
        """
        Load a monospace font for PNG rendering.

        Tries the following in order:
        1. User-specified font name if provided
        2. Common system monospace fonts
        3. Pillow's default font

        Args:
            font_size: Font size in points.
            font_name: Optional font name (e.g., "Cascadia Code", "Monaco").

        Returns:
            A PIL ImageFont object.
        """
        fonts_to_try = [font_name] if font_name else []
        fonts_to_try.extend(FALLBACK_FONTS)

        for candidate in fonts_to_try:
            try:
                return ImageFont.truetype(candidate, font_size)
            except OSError:
                continue

        log.warning("monospace_font_not_found", tried=len(fonts_to_try))
        try:
            return ImageFont.load_default(size=font_size)
        except TypeError:
            # Older Pillow versions don't support size parameter
            return ImageFont.load_default()
