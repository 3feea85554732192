from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..models import (
    Color,
    LinkKind,
    RenderConfig,
    RenderState,
    StyleAttributes,
    TableAlignment,
    normalize_width,
)
from ..output import OutputBuffer
from ..style import RESET, StyleStack, style_sequence
from ..version import __version__
from ..width import cell_width, clip_cells, strip_ansi
from ..wrap import INDENT_WIDTH, LineWrapper

try:
    import pyphen
except ImportError:  # pragma: no cover - handled at runtime
    pyphen = None  # type: ignore[assignment]

try:
    from pyfiglet import Figlet, FontNotFound
except ImportError:  # pragma: no cover - headings fall back to plain text
    Figlet = None  # type: ignore[assignment, misc]
    FontNotFound = ValueError  # type: ignore[assignment, misc]

logger = logging.getLogger(__name__)

RenderChildren = Callable[[], bool]
EntityDecoder = Callable[[str], str]

HEADING_COLORS = (
    Color.RED,
    Color.YELLOW,
    Color.GREEN,
    Color.BLUE,
    Color.MAGENTA,
    Color.CYAN,
)
BULLET = "•"
RULE_CHAR = "-"
CELL_SEPARATOR = " | "
TRAILER = f"md2term(1) Version {__version__}"


def decode_entity(entity: str) -> str:
    return html.unescape(entity)


@dataclass
class Checkpoint:
    length: int
    cursor_column: int
    indent_level: int
    style_depth: int
    active_style: StyleAttributes


class TerminalRenderer:
    """Render document callbacks as ANSI-styled text wrapped to a terminal width.

    The driver calls :meth:`document_start`, then block and inline handlers in
    document order, then :meth:`document_end`. Block handlers receive a
    ``render_children`` callback that renders nested content and reports
    whether it succeeded; a block whose children fail leaves no output behind.
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        *,
        decode_entity: EntityDecoder = decode_entity,
    ) -> None:
        self.config = config or RenderConfig()
        self.width = normalize_width(self.config.terminal_width)
        self.decode_entity = decode_entity
        self.figlets: Dict[tuple, Figlet] = {}
        self.hyphenator: Optional[pyphen.Pyphen]
        if self.config.hyphenate:
            if pyphen is None:
                raise RuntimeError("pyphen is required for hyphenation but is not installed.")
            try:
                self.hyphenator = pyphen.Pyphen(lang=self.config.hyphen_lang)
            except KeyError as exc:
                raise RuntimeError(
                    f"Failed to initialise hyphenator for language '{self.config.hyphen_lang}': {exc}"
                ) from exc
        else:
            self.hyphenator = None
        self.state: Optional[RenderState] = None
        self.styles: Optional[StyleStack] = None
        self.wrapper: Optional[LineWrapper] = None

    # Document lifecycle --------------------------------------------------
    def document_start(self, out: OutputBuffer) -> None:
        self.state = RenderState(terminal_width=self.width, output=out)
        self.styles = StyleStack(self.state)
        self.wrapper = LineWrapper(self.state, self.hyphenator)

    def document_end(self, out: OutputBuffer) -> None:
        if not self.config.suppress_trailer:
            self.wrapper.newline(out)
            self.wrapper.emit(out, TRAILER)
            self.wrapper.newline(out)
        self.state = None
        self.styles = None
        self.wrapper = None

    # Block rendering -----------------------------------------------------
    def heading(self, out: OutputBuffer, render_children: RenderChildren, level: int) -> None:
        color = HEADING_COLORS[min(max(level, 1), len(HEADING_COLORS)) - 1]
        checkpoint = self._checkpoint(out)
        font = self._heading_font(level)
        if font is not None and self._figlet_heading(out, render_children, font, color, checkpoint):
            return
        self.wrapper.newline(out)
        self.styles.push()
        self.styles.set_foreground(out, color)
        self.styles.set_bold(out)
        if not render_children():
            self._rollback(out, checkpoint)
            return
        self.styles.pop(out)
        self.wrapper.newline(out)

    def horizontal_rule(self, out: OutputBuffer) -> None:
        if self.state.cursor_column:
            self.wrapper.newline(out)
        self.wrapper.emit(out, RULE_CHAR * self.width)
        self.wrapper.newline(out)

    def list(self, out: OutputBuffer, render_children: RenderChildren, ordered: bool) -> None:
        state = self.state
        checkpoint = self._checkpoint(out)
        outer_counter = state.ordered_list_counter
        if ordered:
            state.ordered_list_counter = 0
        state.indent_level += 1
        try:
            completed = render_children()
        finally:
            state.indent_level -= 1
            state.ordered_list_counter = outer_counter
        if not completed:
            self._rollback(out, checkpoint)
            return
        self.wrapper.newline(out)

    def list_item(self, out: OutputBuffer, text: str, ordered: bool) -> None:
        state = self.state
        if ordered:
            state.ordered_list_counter += 1
            marker = f"{state.ordered_list_counter}. "
        else:
            marker = f"{BULLET} "
        self._hanging_line(out, marker, text)

    def paragraph(self, out: OutputBuffer, render_children: RenderChildren) -> None:
        checkpoint = self._checkpoint(out)
        self.wrapper.newline(out)
        if not render_children():
            self._rollback(out, checkpoint)
            return
        self.wrapper.newline(out)

    def block_quote(self, out: OutputBuffer, render_children: RenderChildren) -> None:
        state = self.state
        checkpoint = self._checkpoint(out)
        state.indent_level += 1
        try:
            completed = render_children()
        finally:
            state.indent_level -= 1
        if not completed:
            self._rollback(out, checkpoint)
            return
        self.wrapper.newline(out)

    def block_code(self, out: OutputBuffer, text: str, lang: str = "") -> None:
        self.wrapper.newline(out)
        if not text:
            return
        self.wrapper.emit(out, text)
        if not text.endswith("\n"):
            self.wrapper.newline(out)

    def block_html(self, out: OutputBuffer, text: str) -> None:
        self._debug("Skipping raw HTML block (%d chars)", len(text))

    def table(
        self,
        out: OutputBuffer,
        header: str,
        body: str,
        alignments: List[TableAlignment],
    ) -> None:
        self._debug("Rendering %d-column table in flattened form", len(alignments))
        if self.state.cursor_column:
            self.wrapper.newline(out)
        self.wrapper.newline(out)
        for section in (header, body):
            if section:
                self.wrapper.emit(out, section)
                self.wrapper.newline(out)

    def table_row(self, out: OutputBuffer, text: str) -> None:
        if len(out) > 0:
            out.write("\n")
        out.write(text)

    def table_header_cell(self, out: OutputBuffer, text: str, align: TableAlignment) -> None:
        self.table_cell(out, text, align)

    def table_cell(self, out: OutputBuffer, text: str, align: TableAlignment) -> None:
        if len(out) > 0:
            out.write(CELL_SEPARATOR)
        out.write(text.strip())

    def footnotes(self, out: OutputBuffer, render_children: RenderChildren) -> None:
        self._debug("Rendering footnotes without cross references")
        checkpoint = self._checkpoint(out)
        self.wrapper.newline(out)
        if not render_children():
            self._rollback(out, checkpoint)
            return
        self.wrapper.newline(out)

    def footnote_item(self, out: OutputBuffer, name: str, text: str, index: int) -> None:
        self._hanging_line(out, f"[{index}] ", text)

    # Inline rendering ----------------------------------------------------
    def emphasis(self, out: OutputBuffer, text: str) -> None:
        self._styled_span(out, text, self.styles.set_underline)

    def double_emphasis(self, out: OutputBuffer, text: str) -> None:
        self._styled_span(out, text, self.styles.set_bold)

    def triple_emphasis(self, out: OutputBuffer, text: str) -> None:
        self._styled_span(out, text, self.styles.set_inverse)

    def strikethrough(self, out: OutputBuffer, text: str) -> None:
        if not text:
            return
        self.wrapper.write(out, f"~~{text}~~")

    def link(self, out: OutputBuffer, url: str, title: str, content: str) -> None:
        self.emphasis(out, url)
        if content and content != url:
            self.wrapper.write(out, f"[{content}]")

    def auto_link(self, out: OutputBuffer, url: str, kind: LinkKind) -> None:
        prefix = "mailto:" if kind is LinkKind.EMAIL else ""
        self.wrapper.write(out, f"href[{prefix}{url}][{url}]")

    def image(self, out: OutputBuffer, url: str, title: str, alt: str) -> None:
        if url.startswith(("http://", "https://")):
            self.link(out, url, title, alt)
        else:
            self.wrapper.write(out, f"[{url}]")

    def code_span(self, out: OutputBuffer, text: str) -> None:
        self.wrapper.write(out, text)

    def line_break(self, out: OutputBuffer) -> None:
        self.wrapper.newline(out)

    def entity(self, out: OutputBuffer, entity: str) -> None:
        self.normal_text(out, self.decode_entity(entity))

    def normal_text(self, out: OutputBuffer, text: str) -> None:
        self.wrapper.write(out, text)

    def raw_html_tag(self, out: OutputBuffer, tag: str) -> None:
        self._debug("Skipping raw HTML tag %r", tag)

    def footnote_ref(self, out: OutputBuffer, ref: str, index: int) -> None:
        self.wrapper.write(out, f"[{index}]")

    # Helpers ------------------------------------------------------------
    def _styled_span(self, out: OutputBuffer, text: str, apply: Callable[[OutputBuffer], None]) -> None:
        if not text:
            return
        self.styles.push()
        apply(out)
        # Nested spans were pre-rendered before this one began; their resets
        # must bring back this span's style, not the one active before it.
        text = text.replace(RESET, RESET + style_sequence(self.state.active_style))
        self.wrapper.write(out, text)
        self.styles.pop(out)

    def _hanging_line(self, out: OutputBuffer, marker: str, text: str) -> None:
        state = self.state
        self.wrapper.newline(out)
        marker_width = cell_width(marker)
        if marker_width > self.width:
            marker = clip_cells(marker.strip(), self.width)
            marker_width = cell_width(marker)
        lead = max(0, state.indent_level - 1) * INDENT_WIDTH
        lead = min(lead, self.width - marker_width)
        state.indent_override = lead + marker_width
        try:
            self.wrapper.emit(out, " " * lead + marker)
            for index, line in enumerate(text.strip().split("\n")):
                if index:
                    self.wrapper.newline(out)
                self.wrapper.write(out, line.strip())
        finally:
            state.indent_override = None

    def _checkpoint(self, out: OutputBuffer) -> Checkpoint:
        state = self.state
        return Checkpoint(
            length=len(out),
            cursor_column=state.cursor_column,
            indent_level=state.indent_level,
            style_depth=len(state.style_stack),
            active_style=state.active_style,
        )

    def _rollback(self, out: OutputBuffer, checkpoint: Checkpoint) -> None:
        state = self.state
        out.truncate(checkpoint.length)
        if out.live:
            state.cursor_column = checkpoint.cursor_column
        state.indent_level = checkpoint.indent_level
        del state.style_stack[checkpoint.style_depth :]
        state.active_style = checkpoint.active_style

    def _heading_font(self, level: int) -> Optional[str]:
        if level > 3:
            return None
        font = getattr(self.config, f"h{max(level, 1)}_font", None)
        return font or None

    def _figlet_heading(
        self,
        out: OutputBuffer,
        render_children: RenderChildren,
        font: str,
        color: Color,
        checkpoint: Checkpoint,
    ) -> bool:
        if not render_children():
            self._rollback(out, checkpoint)
            return True
        text = " ".join(strip_ansi(out.getvalue()[checkpoint.length :]).split())
        self._rollback(out, checkpoint)
        if not text:
            return True
        banner = self._render_figlet(font, text)
        if banner is None:
            self._debug("Figlet font %r unavailable, using plain heading", font)
            return False
        self.wrapper.newline(out)
        self.styles.push()
        self.styles.set_foreground(out, color)
        self.styles.set_bold(out)
        self.wrapper.emit(out, "\n".join(banner))
        self.styles.pop(out)
        self.wrapper.newline(out)
        return True

    def _render_figlet(self, font: str, text: str) -> Optional[List[str]]:
        cache_key = (font, self.width)
        figlet = self.figlets.get(cache_key)
        if figlet is None:
            if Figlet is None:
                return None
            try:
                figlet = Figlet(font=font, width=self.width)
            except FontNotFound:
                return None
            self.figlets[cache_key] = figlet
        rendered = figlet.renderText(text).rstrip("\n").splitlines()
        lines = [line.rstrip() for line in rendered]
        return lines or None

    def _debug(self, message: str, *args: object) -> None:
        if self.config.debug_logging:
            logger.debug(message, *args)
