from __future__ import annotations

import re
from typing import TYPE_CHECKING, List, Optional, Sequence

from .models import RenderState, StyleAttributes
from .output import OutputBuffer
from .style import RESET, style_sequence
from .width import cell_width, is_escape, split_units, unit_width

if TYPE_CHECKING:  # pragma: no cover
    import pyphen


WHITESPACE_RE = re.compile(r"\s+")
INDENT_WIDTH = 4
HYPHEN = "-"


class LineWrapper:
    """Word-wraps text runs onto the live output stream.

    Each call continues the current output line at ``state.cursor_column``.
    Continuation lines start with the block margin (``indent_level * 4``, or
    ``indent_override`` while a list item is being written).
    """

    def __init__(self, state: RenderState, hyphenator: Optional["pyphen.Pyphen"] = None) -> None:
        self.state = state
        self.hyphenator = hyphenator

    def margin(self) -> int:
        state = self.state
        if state.indent_override is not None:
            indent = state.indent_override
        else:
            indent = state.indent_level * INDENT_WIDTH
        return max(0, min(indent, state.terminal_width - 1))

    def emit(self, out: OutputBuffer, text: str) -> None:
        """Write ``text`` unwrapped, keeping the cursor column in step."""
        if not text:
            return
        out.write(text)
        if not out.live:
            return
        state = self.state
        if "\n" in text:
            tail = text.rsplit("\n", 1)[1]
            column = cell_width(tail)
        else:
            column = state.cursor_column + cell_width(text)
        state.cursor_column = min(column, state.terminal_width)

    def newline(self, out: OutputBuffer) -> None:
        out.write("\n")
        if out.live:
            self.state.cursor_column = 0

    def write(self, out: OutputBuffer, text: str) -> None:
        if not text:
            return
        if not out.live:
            out.write(text)
            return

        state = self.state
        units = split_units(WHITESPACE_RE.sub(" ", text))
        widths = [unit_width(unit) for unit in units]
        margin = self.margin()
        total = len(units)
        pos = 0

        if state.cursor_column == 0 and margin:
            self._place_margin(out, margin)
        line_origin = state.cursor_column if state.cursor_column == margin else -1

        while pos < total:
            budget = max(0, state.terminal_width - state.cursor_column)
            if sum(widths[pos:]) <= budget:
                self._place_units(out, units[pos:], widths[pos:])
                return

            fit = pos
            used = 0
            while fit < total and used + widths[fit] <= budget:
                used += widths[fit]
                fit += 1

            at_line_start = state.cursor_column == line_origin
            split = self._hyphenate_at(units, widths, pos, fit, budget)
            if split is not None:
                head, consumed = split
                self._place(out, head, cell_width(head))
                pos = consumed
            else:
                brk = self._find_break(units, pos, fit)
                if brk is not None and not (brk == pos and at_line_start):
                    self._place_units(out, units[pos:brk], widths[pos:brk])
                    pos = brk + 1
                elif brk is not None:
                    pos = brk + 1
                    continue
                elif at_line_start:
                    end = max(fit, pos + 1)
                    self._place_units(out, units[pos:end], widths[pos:end])
                    pos = end

            if pos >= total:
                return
            self.newline(out)
            while pos < total and units[pos] == " ":
                pos += 1
            if pos < total and margin:
                self._place_margin(out, margin)
            line_origin = state.cursor_column

    # Helpers ------------------------------------------------------------
    def _place(self, out: OutputBuffer, text: str, width: int) -> None:
        out.write(text)
        state = self.state
        state.cursor_column = min(state.cursor_column + width, state.terminal_width)

    def _place_margin(self, out: OutputBuffer, margin: int) -> None:
        # Margins are never styled; the active style resumes after them.
        active = self.state.active_style
        if active == StyleAttributes():
            self._place(out, " " * margin, margin)
            return
        out.write(RESET)
        self._place(out, " " * margin, margin)
        out.write(style_sequence(active))

    def _place_units(self, out: OutputBuffer, units: Sequence[str], widths: Sequence[int]) -> None:
        if units:
            self._place(out, "".join(units), sum(widths))

    def _find_break(self, units: List[str], pos: int, fit: int) -> Optional[int]:
        # The unit just past the boundary is checked too: a space sitting
        # exactly on the boundary is the best place to break.
        for index in range(min(fit, len(units) - 1), pos - 1, -1):
            if units[index] == " ":
                return index
        return None

    def _hyphenate_at(
        self,
        units: List[str],
        widths: List[int],
        pos: int,
        fit: int,
        budget: int,
    ) -> Optional[tuple[str, int]]:
        if self.hyphenator is None or fit >= len(units) or units[fit] == " ":
            return None
        word_start = fit
        while word_start > pos and units[word_start - 1] != " ":
            word_start -= 1
        word_end = fit
        while word_end < len(units) and units[word_end] != " ":
            word_end += 1
        word_units = units[word_start:word_end]
        if any(is_escape(unit) or unit_width(unit) != 1 for unit in word_units):
            return None
        available = budget - sum(widths[pos:word_start])
        if available <= len(HYPHEN):
            return None
        word = "".join(word_units)
        result = self.hyphenator.wrap(word, available, hyphen=HYPHEN)
        if not result:
            return None
        first, rest = result
        consumed = word_end - len(rest)
        return "".join(units[pos:word_start]) + first, consumed
