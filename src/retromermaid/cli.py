"""
Command-line interface.

Reads a diagram from a file (or stdin), renders it and prints the result or
writes it to a text/PNG file. Failures are reported as ``ERROR: <message>``
on stderr with exit status 1.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import RenderError
from .generator import DiagramGenerator
from .logging import configure_logging, get_logger

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``retromermaid`` command."""
    parser = argparse.ArgumentParser(
        prog="retromermaid",
        description="Render Mermaid-style diagrams as text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  retromermaid diagram.mmd                 # Print the diagram
  retromermaid diagram.mmd -w 80           # Fit within 80 columns
  cat diagram.mmd | retromermaid           # Read from stdin
  retromermaid diagram.mmd -o out.png      # Save as PNG
        """,
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="diagram source file (default: read stdin)",
    )
    parser.add_argument(
        "-w",
        "--width",
        type=int,
        default=None,
        help="maximum output width in columns",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="write the diagram to this file instead of stdout",
    )
    parser.add_argument(
        "--png",
        action="store_true",
        help="write the output file as PNG (implied by a .png extension)",
    )
    parser.add_argument(
        "--font",
        default=None,
        help="font name for PNG output (e.g. 'DejaVu Sans Mono')",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log pipeline stages to stderr",
    )
    return parser


def _read_source(path: Optional[str]) -> str:
    if path is None:
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command line.

    Args:
        argv: Arguments without the program name; defaults to sys.argv[1:].

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else None)

    if args.width is not None and args.width <= 0:
        print("ERROR: width must be a positive integer", file=sys.stderr)
        return 1

    generator = DiagramGenerator(max_width=args.width, font=args.font)
    try:
        source = _read_source(args.file)
        diagram = generator.render(source)
        if args.output is None:
            print(diagram)
        elif args.png or args.output.lower().endswith(".png"):
            generator.exporter.save_png(diagram, args.output)
        else:
            generator.exporter.save_txt(diagram, args.output)
    except (RenderError, OSError) as e:
        log.debug("cli_failed", error=str(e), error_type=type(e).__name__)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
