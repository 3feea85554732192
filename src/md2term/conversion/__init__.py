"""Markdown-to-terminal conversion pipeline."""

from .core import (
    DocumentWalker,
    config_from_frontmatter,
    parse_frontmatter,
    read_lines,
    render_markdown,
    run_conversion,
)

__all__ = [
    "DocumentWalker",
    "config_from_frontmatter",
    "parse_frontmatter",
    "read_lines",
    "render_markdown",
    "run_conversion",
]
