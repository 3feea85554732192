from __future__ import annotations

import logging
import re
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import mistune

from ..models import LinkKind, RenderConfig, TableAlignment
from ..output import OutputBuffer
from ..renderers.terminal import EntityDecoder, TerminalRenderer

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\s*$")
ENTITY_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9A-Fa-f]+|[A-Za-z][A-Za-z0-9]*);")
DEFAULT_PLUGINS = ("strikethrough", "table", "footnotes")
ALIGNMENTS = {
    "left": TableAlignment.LEFT,
    "center": TableAlignment.CENTER,
    "right": TableAlignment.RIGHT,
}

Token = Dict[str, Any]


def _parse_int(value: Optional[str], default: int = 0) -> int:
    if value is None:
        return default
    match = re.search(r"-?\d+", value)
    if not match:
        return default
    try:
        return int(match.group())
    except ValueError:
        return default


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "1", "on"}:
        return True
    if lowered in {"false", "no", "0", "off"}:
        return False
    return default


def _parse_font(value: Optional[str], default: Optional[str]) -> Optional[str]:
    if value is None:
        return default
    stripped = value.strip()
    if stripped.lower() in {"", "none", "off"}:
        return None
    return stripped


def config_from_frontmatter(values: Dict[str, str], base: Optional[RenderConfig] = None) -> RenderConfig:
    base = base or RenderConfig()
    return replace(
        base,
        terminal_width=_parse_int(values.get("width"), base.terminal_width),
        suppress_trailer=_parse_bool(values.get("suppress_trailer"), base.suppress_trailer),
        hyphenate=_parse_bool(values.get("hyphenate"), base.hyphenate),
        hyphen_lang=(values.get("hyphen_lang") or base.hyphen_lang).strip() or base.hyphen_lang,
        h1_font=_parse_font(values.get("h1_font"), base.h1_font),
        h2_font=_parse_font(values.get("h2_font"), base.h2_font),
        h3_font=_parse_font(values.get("h3_font"), base.h3_font),
    )


def parse_frontmatter(
    lines: List[str],
    base: Optional[RenderConfig] = None,
) -> Tuple[RenderConfig, List[str]]:
    base = base or RenderConfig()
    if not lines or not FRONTMATTER_PATTERN.match(lines[0]):
        return base, lines
    frontmatter: Dict[str, str] = {}
    idx = 1
    while idx < len(lines):
        if FRONTMATTER_PATTERN.match(lines[idx]):
            break
        if ":" in lines[idx]:
            key, value = lines[idx].split(":", 1)
            frontmatter[key.strip()] = value.strip()
        idx += 1
    if idx >= len(lines):
        return base, lines
    remaining = lines[idx + 1 :] if idx + 1 < len(lines) else []
    return config_from_frontmatter(frontmatter, base), remaining


def read_lines(path: Path) -> List[str]:
    with path.open("r", encoding="utf-8") as handle:
        return handle.readlines()


class DocumentWalker:
    """Walk a mistune token tree and issue renderer callbacks in document order.

    Block content renders straight into the live output. Nested inline content
    (emphasis bodies, link labels, list item text, table cells) is rendered
    into a scratch buffer first and handed to the renderer as text.
    """

    def __init__(self, renderer: TerminalRenderer, *, plugins: Sequence[str] = DEFAULT_PLUGINS) -> None:
        self.renderer = renderer
        self._markdown = mistune.create_markdown(renderer=None, plugins=list(plugins))

    def parse(self, text: str) -> List[Token]:
        tokens = self._markdown(text)
        if isinstance(tokens, list):
            return tokens
        return []

    def render(self, text: str, out: OutputBuffer) -> None:
        tokens = self.parse(text)
        self.renderer.document_start(out)
        self._render_blocks(tokens, out)
        self.renderer.document_end(out)

    # Block tokens ------------------------------------------------------
    def _render_blocks(self, tokens: List[Token], out: OutputBuffer) -> bool:
        rendered = False
        for token in tokens:
            if self._render_block(token, out):
                rendered = True
        return rendered

    def _render_block(self, token: Token, out: OutputBuffer) -> bool:
        renderer = self.renderer
        token_type = token.get("type", "")
        children = token.get("children") or []
        attrs = token.get("attrs") or {}

        if token_type == "heading":
            renderer.heading(out, partial(self._render_inline, children, out), attrs.get("level", 1))
        elif token_type in {"paragraph", "block_text"}:
            renderer.paragraph(out, partial(self._render_inline, children, out))
        elif token_type == "block_quote":
            renderer.block_quote(out, partial(self._render_blocks, children, out))
        elif token_type == "list":
            ordered = bool(attrs.get("ordered", False))
            renderer.list(out, partial(self._render_list_items, children, ordered, out), ordered)
        elif token_type == "block_code":
            info = attrs.get("info") or ""
            lang = info.split()[0] if info.strip() else ""
            renderer.block_code(out, token.get("raw", ""), lang)
        elif token_type == "thematic_break":
            renderer.horizontal_rule(out)
        elif token_type == "block_html":
            renderer.block_html(out, token.get("raw", ""))
        elif token_type == "table":
            self._render_table(children, out)
        elif token_type == "footnotes":
            renderer.footnotes(out, partial(self._render_footnote_items, children, out))
        elif token_type == "blank_line":
            return False
        else:
            logger.debug("Ignoring unsupported block token %r", token_type)
            return False
        return True

    def _render_list_items(self, items: List[Token], ordered: bool, out: OutputBuffer) -> bool:
        for item in items:
            children = item.get("children") or []
            text = ""
            if children and children[0].get("type") in {"block_text", "paragraph"}:
                text = self._inline_text(children[0].get("children") or [])
                children = children[1:]
            self.renderer.list_item(out, text, ordered)
            self._render_blocks(children, out)
        return bool(items)

    def _render_table(self, sections: List[Token], out: OutputBuffer) -> None:
        renderer = self.renderer
        header = OutputBuffer()
        body = OutputBuffer()
        alignments: List[TableAlignment] = []
        for section in sections:
            section_type = section.get("type")
            if section_type == "table_head":
                for cell in section.get("children") or []:
                    align = self._alignment(cell)
                    alignments.append(align)
                    renderer.table_header_cell(header, self._inline_text(cell.get("children") or []), align)
            elif section_type == "table_body":
                for row in section.get("children") or []:
                    row_out = OutputBuffer()
                    for cell in row.get("children") or []:
                        renderer.table_cell(row_out, self._inline_text(cell.get("children") or []), self._alignment(cell))
                    renderer.table_row(body, row_out.getvalue())
        renderer.table(out, header.getvalue(), body.getvalue(), alignments)

    def _alignment(self, cell: Token) -> TableAlignment:
        align = (cell.get("attrs") or {}).get("align")
        return ALIGNMENTS.get(align or "", TableAlignment.NONE)

    def _render_footnote_items(self, items: List[Token], out: OutputBuffer) -> bool:
        for number, item in enumerate(items, start=1):
            attrs = item.get("attrs") or {}
            parts = [
                self._inline_text(child.get("children") or [])
                for child in item.get("children") or []
                if child.get("children")
            ]
            self.renderer.footnote_item(out, str(attrs.get("key", "")), " ".join(parts), attrs.get("index", number))
        return bool(items)

    # Inline tokens -----------------------------------------------------
    def _inline_text(self, tokens: List[Token]) -> str:
        scratch = OutputBuffer()
        self._render_inline(tokens, scratch)
        return scratch.getvalue()

    def _render_inline(self, tokens: List[Token], out: OutputBuffer) -> bool:
        for token in tokens:
            self._render_inline_token(token, out)
        return bool(tokens)

    def _render_inline_token(self, token: Token, out: OutputBuffer) -> None:
        renderer = self.renderer
        token_type = token.get("type", "")
        children = token.get("children") or []
        attrs = token.get("attrs") or {}

        if token_type == "text":
            self._render_text(token.get("raw", ""), out)
        elif token_type in {"emphasis", "strong"}:
            nested = "strong" if token_type == "emphasis" else "emphasis"
            if len(children) == 1 and children[0].get("type") == nested:
                renderer.triple_emphasis(out, self._inline_text(children[0].get("children") or []))
            elif token_type == "emphasis":
                renderer.emphasis(out, self._inline_text(children))
            else:
                renderer.double_emphasis(out, self._inline_text(children))
        elif token_type == "codespan":
            renderer.code_span(out, token.get("raw", ""))
        elif token_type == "linebreak":
            renderer.line_break(out)
        elif token_type == "softbreak":
            renderer.normal_text(out, " ")
        elif token_type == "link":
            self._render_link(children, attrs, out)
        elif token_type == "image":
            renderer.image(out, attrs.get("url", ""), attrs.get("title") or "", _plain_text(children))
        elif token_type == "strikethrough":
            renderer.strikethrough(out, self._inline_text(children))
        elif token_type == "inline_html":
            renderer.raw_html_tag(out, token.get("raw", ""))
        elif token_type == "footnote_ref":
            renderer.footnote_ref(out, token.get("raw", ""), attrs.get("index", 0))
        elif children:
            self._render_inline(children, out)
        elif token.get("raw"):
            renderer.normal_text(out, token["raw"])

    def _render_link(self, children: List[Token], attrs: Dict[str, Any], out: OutputBuffer) -> None:
        url = attrs.get("url", "")
        if len(children) == 1 and children[0].get("type") == "text":
            label = children[0].get("raw", "")
            if label == url:
                self.renderer.auto_link(out, url, LinkKind.NORMAL)
                return
            if url == f"mailto:{label}":
                self.renderer.auto_link(out, label, LinkKind.EMAIL)
                return
        self.renderer.link(out, url, attrs.get("title") or "", self._inline_text(children))

    def _render_text(self, text: str, out: OutputBuffer) -> None:
        last = 0
        for match in ENTITY_RE.finditer(text):
            if match.start() > last:
                self.renderer.normal_text(out, text[last : match.start()])
            self.renderer.entity(out, match.group(0))
            last = match.end()
        if last < len(text):
            self.renderer.normal_text(out, text[last:])


def _plain_text(tokens: List[Token]) -> str:
    parts: List[str] = []
    for token in tokens:
        if token.get("children"):
            parts.append(_plain_text(token["children"]))
        else:
            parts.append(token.get("raw", ""))
    return "".join(parts)


def render_markdown(
    text: str,
    config: Optional[RenderConfig] = None,
    *,
    decode_entity: Optional[EntityDecoder] = None,
) -> str:
    if decode_entity is None:
        renderer = TerminalRenderer(config)
    else:
        renderer = TerminalRenderer(config, decode_entity=decode_entity)
    out = OutputBuffer(live=True)
    DocumentWalker(renderer).render(text, out)
    return out.getvalue()


def run_conversion(
    lines: Iterable[str],
    *,
    config: Optional[RenderConfig] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> str:
    frontmatter_config, content = parse_frontmatter(list(lines), config)
    if overrides:
        frontmatter_config = replace(frontmatter_config, **overrides)
    return render_markdown("".join(content), frontmatter_config)
