"""Tests for the block and inline handlers of the terminal renderer."""

import logging

import pytest

from md2term.models import LinkKind, RenderConfig, StyleAttributes, TableAlignment
from md2term.output import OutputBuffer
from md2term.renderers.terminal import TRAILER, TerminalRenderer


def start(width=20, **kwargs):
    kwargs.setdefault("suppress_trailer", True)
    renderer = TerminalRenderer(RenderConfig(terminal_width=width, **kwargs))
    out = OutputBuffer(live=True)
    renderer.document_start(out)
    return renderer, out


def text_children(renderer, out, text):
    def render_children():
        renderer.normal_text(out, text)
        return True

    return render_children


# Block handlers ---------------------------------------------------------


def test_heading_colors_by_level():
    expected = {1: "31", 2: "33", 3: "32", 4: "34", 5: "35", 6: "36", 7: "36"}
    for level, code in expected.items():
        renderer, out = start()
        renderer.heading(out, text_children(renderer, out, "Title"), level)
        assert out.getvalue() == f"\n\x1b[{code}m\x1b[1mTitle\x1b[0m\n"


def test_heading_rollback_leaves_no_trace():
    renderer, out = start()
    renderer.normal_text(out, "before")
    renderer.heading(out, lambda: False, 1)
    assert out.getvalue() == "before"
    assert renderer.state.cursor_column == 6
    assert renderer.state.style_stack == []
    assert renderer.state.active_style == StyleAttributes()


def test_paragraph_rollback_discards_partial_children():
    renderer, out = start()
    renderer.normal_text(out, "before")

    def failing_children():
        renderer.normal_text(out, "partial text that wraps past the width")
        return False

    renderer.paragraph(out, failing_children)
    assert out.getvalue() == "before"
    assert renderer.state.cursor_column == 6


def test_paragraph_surrounds_text_with_newlines():
    renderer, out = start()
    renderer.paragraph(out, text_children(renderer, out, "This is a wrap test. Wrap on."))
    assert out.getvalue() == "\nThis is a wrap test.\nWrap on.\n"


def test_horizontal_rule_spans_width():
    renderer, out = start()
    renderer.horizontal_rule(out)
    assert out.getvalue() == "-" * 20 + "\n"

    renderer, out = start()
    renderer.normal_text(out, "abc")
    renderer.horizontal_rule(out)
    assert out.getvalue() == "abc\n" + "-" * 20 + "\n"


def test_ordered_list_numbers_items():
    renderer, out = start()

    def items():
        renderer.list_item(out, "first", True)
        renderer.list_item(out, " second ", True)
        return True

    renderer.list(out, items, True)
    assert out.getvalue() == "\n1. first\n2. second\n"
    assert renderer.state.indent_level == 0


def test_unordered_list_uses_bullets():
    renderer, out = start()

    def items():
        renderer.list_item(out, "one", False)
        renderer.list_item(out, "two", False)
        return True

    renderer.list(out, items, False)
    assert out.getvalue() == "\n• one\n• two\n"


def test_nested_ordered_list_keeps_outer_numbering():
    renderer, out = start()

    def inner():
        renderer.list_item(out, "b", True)
        return True

    def outer():
        renderer.list_item(out, "a", True)
        renderer.list(out, inner, True)
        renderer.list_item(out, "c", True)
        return True

    renderer.list(out, outer, True)
    assert out.getvalue() == "\n1. a\n    1. b\n\n2. c\n"


def test_list_item_wraps_under_text():
    renderer, out = start()

    def items():
        renderer.list_item(out, "alpha beta gamma delta epsilon", False)
        return True

    renderer.list(out, items, False)
    assert out.getvalue() == "\n• alpha beta gamma\n  delta epsilon\n"
    assert renderer.state.indent_override is None


def test_list_item_keeps_hard_line_breaks():
    renderer, out = start()

    def items():
        renderer.list_item(out, "a\nb", False)
        return True

    renderer.list(out, items, False)
    assert out.getvalue() == "\n• a\n  b\n"


def test_list_marker_is_clipped_to_narrow_width():
    renderer, out = start(width=2)

    def items():
        renderer.list_item(out, "one", True)
        return True

    renderer.list(out, items, True)
    assert out.getvalue() == "\n1.\n o\n n\n e\n"


def test_list_indent_balanced_on_failure():
    renderer, out = start()
    renderer.list(out, lambda: False, True)
    assert out.getvalue() == ""
    assert renderer.state.indent_level == 0


def test_list_indent_balanced_when_children_raise():
    renderer, out = start()

    def exploding():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        renderer.list(out, exploding, False)
    assert renderer.state.indent_level == 0


def test_block_quote_indents_children():
    renderer, out = start()

    def children():
        renderer.paragraph(out, text_children(renderer, out, "quoted text here that wraps"))
        return True

    renderer.block_quote(out, children)
    assert out.getvalue() == "\n    quoted text here\n    that wraps\n\n"
    assert renderer.state.indent_level == 0


def test_block_quote_rollback():
    renderer, out = start()
    renderer.block_quote(out, lambda: False)
    assert out.getvalue() == ""
    assert renderer.state.indent_level == 0


def test_code_block_is_not_reflowed():
    renderer, out = start()
    code = "x = 1  # a comment much wider than twenty columns\n"
    renderer.block_code(out, code, "python")
    assert out.getvalue() == "\n" + code
    assert renderer.state.cursor_column == 0


def test_table_is_flattened():
    renderer, out = start()
    header = OutputBuffer()
    renderer.table_header_cell(header, "a", TableAlignment.LEFT)
    renderer.table_header_cell(header, " b ", TableAlignment.NONE)
    body = OutputBuffer()
    for cells in (("1", "2"), ("3", "4")):
        row = OutputBuffer()
        for cell in cells:
            renderer.table_cell(row, cell, TableAlignment.NONE)
        renderer.table_row(body, row.getvalue())
    renderer.table(out, header.getvalue(), body.getvalue(), [TableAlignment.LEFT, TableAlignment.NONE])
    assert out.getvalue() == "\na | b\n1 | 2\n3 | 4\n"


def test_footnotes_render_numbered_items():
    renderer, out = start(width=40)

    def items():
        renderer.footnote_item(out, "note", "The note text.", 1)
        return True

    renderer.footnotes(out, items)
    assert out.getvalue() == "\n\n[1] The note text.\n"


def test_unsupported_html_logs_when_debugging(caplog):
    caplog.set_level(logging.DEBUG, logger="md2term.renderers.terminal")
    renderer, out = start(debug_logging=True)
    renderer.block_html(out, "<div>hi</div>")
    renderer.raw_html_tag(out, "<b>")
    assert out.getvalue() == ""
    assert "raw HTML" in caplog.text


def test_unsupported_html_is_silent_without_debugging(caplog):
    caplog.set_level(logging.DEBUG, logger="md2term.renderers.terminal")
    renderer, out = start()
    renderer.block_html(out, "<div>hi</div>")
    assert caplog.text == ""


# Inline handlers --------------------------------------------------------


def test_emphasis_variants():
    for method, code in (("emphasis", "4"), ("double_emphasis", "1"), ("triple_emphasis", "7")):
        renderer, out = start()
        getattr(renderer, method)(out, "hi")
        assert out.getvalue() == f"\x1b[{code}mhi\x1b[0m"
        assert renderer.state.style_stack == []


def test_outer_emphasis_resumes_after_nested_span():
    renderer, out = start(width=40)
    inner = OutputBuffer()
    renderer.emphasis(inner, "b")
    renderer.double_emphasis(out, f"a {inner.getvalue()} c")
    assert out.getvalue() == "\x1b[1ma \x1b[4mb\x1b[0m\x1b[1m c\x1b[0m"
    assert renderer.state.style_stack == []


def test_empty_emphasis_emits_nothing():
    renderer, out = start()
    renderer.emphasis(out, "")
    renderer.double_emphasis(out, "")
    renderer.triple_emphasis(out, "")
    renderer.strikethrough(out, "")
    assert out.getvalue() == ""


def test_emphasis_participates_in_wrapping():
    renderer, out = start()
    renderer.normal_text(out, "some words then ")
    renderer.double_emphasis(out, "bold words")
    assert out.getvalue() == "some words then \x1b[1mbold\nwords\x1b[0m"


def test_emphasis_into_scratch_buffer_is_not_wrapped():
    renderer, out = start()
    scratch = OutputBuffer()
    renderer.emphasis(scratch, "a long emphasised phrase that exceeds the width")
    assert scratch.getvalue() == "\x1b[4ma long emphasised phrase that exceeds the width\x1b[0m"
    assert renderer.state.cursor_column == 0


def test_strikethrough_uses_markers():
    renderer, out = start()
    renderer.strikethrough(out, "gone")
    assert out.getvalue() == "~~gone~~"


def test_link_underlines_url_then_label():
    renderer, out = start(width=80)
    renderer.link(out, "http://x.io", "", "site")
    assert out.getvalue() == "\x1b[4mhttp://x.io\x1b[0m[site]"


def test_link_without_distinct_label():
    renderer, out = start(width=80)
    renderer.link(out, "http://x.io", "", "http://x.io")
    assert out.getvalue() == "\x1b[4mhttp://x.io\x1b[0m"


def test_auto_link_formats():
    renderer, out = start(width=80)
    renderer.auto_link(out, "http://x.io", LinkKind.NORMAL)
    assert out.getvalue() == "href[http://x.io][http://x.io]"

    renderer, out = start(width=80)
    renderer.auto_link(out, "me@x.io", LinkKind.EMAIL)
    assert out.getvalue() == "href[mailto:me@x.io][me@x.io]"


def test_image_links_absolute_urls_only():
    renderer, out = start(width=80)
    renderer.image(out, "https://x.io/a.png", "", "alt")
    assert out.getvalue() == "\x1b[4mhttps://x.io/a.png\x1b[0m[alt]"

    renderer, out = start(width=80)
    renderer.image(out, "images/a.png", "", "alt")
    assert out.getvalue() == "[images/a.png]"


def test_entity_uses_decoder():
    renderer, out = start()
    renderer.entity(out, "&copy;")
    assert out.getvalue() == "©"
    assert renderer.state.cursor_column == 1

    renderer = TerminalRenderer(
        RenderConfig(terminal_width=20, suppress_trailer=True),
        decode_entity=lambda name: name.strip("&;").upper(),
    )
    out = OutputBuffer(live=True)
    renderer.document_start(out)
    renderer.entity(out, "&amp;")
    assert out.getvalue() == "AMP"


def test_code_span_is_plain_text():
    renderer, out = start()
    renderer.code_span(out, "x = 1")
    assert out.getvalue() == "x = 1"


def test_line_break_resets_column():
    renderer, out = start()
    renderer.normal_text(out, "abc")
    renderer.line_break(out)
    assert out.getvalue() == "abc\n"
    assert renderer.state.cursor_column == 0


def test_footnote_ref_renders_index():
    renderer, out = start()
    renderer.footnote_ref(out, "note", 3)
    assert out.getvalue() == "[3]"


# Lifecycle and configuration ---------------------------------------------


def test_document_end_appends_trailer():
    renderer, out = start(suppress_trailer=False)
    renderer.normal_text(out, "body")
    renderer.document_end(out)
    assert out.getvalue() == f"body\n{TRAILER}\n"
    assert renderer.state is None


def test_document_end_can_suppress_trailer():
    renderer, out = start()
    renderer.document_end(out)
    assert out.getvalue() == ""


def test_non_positive_width_is_normalised():
    renderer, out = start(width=0)
    assert renderer.width == 1
    renderer.paragraph(out, text_children(renderer, out, "ab"))
    assert out.getvalue() == "\na\nb\n"


def test_unknown_hyphenation_language_raises():
    with pytest.raises(RuntimeError):
        TerminalRenderer(RenderConfig(hyphenate=True, hyphen_lang="xx_NOPE"))


def test_figlet_heading_renders_banner():
    pytest.importorskip("pyfiglet")
    renderer, out = start(width=80, h1_font="standard")
    renderer.heading(out, text_children(renderer, out, "Hi"), 1)
    value = out.getvalue()
    assert value.startswith("\n\x1b[31m\x1b[1m")
    assert value.endswith("\x1b[0m\n")
    assert value.count("\n") > 3
    assert renderer.state.style_stack == []


def test_figlet_heading_falls_back_for_unknown_font():
    renderer, out = start(width=80, h1_font="no-such-font-here")
    renderer.heading(out, text_children(renderer, out, "Hi"), 1)
    assert out.getvalue() == "\n\x1b[31m\x1b[1mHi\x1b[0m\n"
