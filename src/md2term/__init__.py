"""Render Markdown as ANSI-styled text wrapped to the terminal width."""

from .conversion import DocumentWalker, render_markdown, run_conversion
from .models import RenderConfig
from .output import OutputBuffer
from .renderers import TerminalRenderer
from .version import __version__

__all__ = [
    "DocumentWalker",
    "OutputBuffer",
    "RenderConfig",
    "TerminalRenderer",
    "__version__",
    "render_markdown",
    "run_conversion",
]
