"""
Render Markdown as ANSI-styled text wrapped to the terminal width.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .conversion import read_lines, run_conversion
from .models import RenderConfig, detect_terminal_width
from .version import __version__


def write_output(path: Optional[Path], content: str) -> None:
    if path is None:
        sys.stdout.write(content)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render Markdown as ANSI-styled text for the terminal.")
    parser.add_argument(
        "input_path",
        nargs="?",
        default="-",
        help="Path to the Markdown input file, or '-' for standard input (default).",
    )
    parser.add_argument("-o", "--output", type=Path, help="Optional path to write the rendered text to.")
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Terminal width in columns (default: detected, falling back to 80).",
    )
    parser.add_argument("--no-trailer", action="store_true", help="Do not append the version banner.")
    parser.add_argument("--hyphenate", action="store_true", help="Hyphenate words at line breaks.")
    parser.add_argument("--hyphen-lang", default=None, help="Hyphenation dictionary language (default: en_US).")
    parser.add_argument("--debug", action="store_true", help="Log diagnostics for unsupported constructs.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.width is not None:
        overrides["terminal_width"] = args.width
    if args.no_trailer:
        overrides["suppress_trailer"] = True
    if args.hyphenate:
        overrides["hyphenate"] = True
    if args.hyphen_lang:
        overrides["hyphen_lang"] = args.hyphen_lang
    if args.debug:
        overrides["debug_logging"] = True
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")
    try:
        if args.input_path == "-":
            lines = sys.stdin.readlines()
        else:
            lines = read_lines(Path(args.input_path))
        rendered = run_conversion(
            lines,
            config=RenderConfig(terminal_width=detect_terminal_width()),
            overrides=_overrides(args),
        )
    except (OSError, RuntimeError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 2
    write_output(args.output, rendered)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
