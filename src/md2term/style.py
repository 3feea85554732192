from __future__ import annotations

from dataclasses import replace

from .models import Color, RenderState, StyleAttributes
from .output import OutputBuffer

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
UNDERLINE = "\x1b[4m"
INVERSE = "\x1b[7m"


def foreground(color: Color) -> str:
    return f"\x1b[{int(color)}m"


def style_sequence(style: StyleAttributes) -> str:
    """Escape sequences that turn on every attribute set in ``style``."""
    parts = []
    if style.foreground is not None:
        parts.append(foreground(style.foreground))
    if style.bold:
        parts.append(BOLD)
    if style.underline:
        parts.append(UNDERLINE)
    if style.inverse:
        parts.append(INVERSE)
    return "".join(parts)


class StyleStack:
    """Saved text styles for nested spans.

    Terminals only offer a single reset, so leaving a span resets everything
    and re-applies the whole restored style.
    """

    def __init__(self, state: RenderState) -> None:
        self.state = state

    def push(self) -> None:
        self.state.style_stack.append(self.state.active_style)

    def pop(self, out: OutputBuffer) -> StyleAttributes:
        if self.state.style_stack:
            restored = self.state.style_stack.pop()
        else:
            restored = StyleAttributes()
        self.state.active_style = restored
        out.write(RESET + style_sequence(restored))
        return restored

    def set_foreground(self, out: OutputBuffer, color: Color) -> None:
        self.state.active_style = replace(self.state.active_style, foreground=color)
        out.write(foreground(color))

    def set_bold(self, out: OutputBuffer) -> None:
        self.state.active_style = replace(self.state.active_style, bold=True)
        out.write(BOLD)

    def set_underline(self, out: OutputBuffer) -> None:
        self.state.active_style = replace(self.state.active_style, underline=True)
        out.write(UNDERLINE)

    def set_inverse(self, out: OutputBuffer) -> None:
        self.state.active_style = replace(self.state.active_style, inverse=True)
        out.write(INVERSE)

    @property
    def depth(self) -> int:
        return len(self.state.style_stack)
