"""Tests for the terminal page preview."""

from unittest.mock import Mock, patch

from pageflow.model import doc, heading, page, paragraph, table, table_row
from pageflow.preview import PagePreview


def make_preview(width=80, num_columns=None):
    term = Mock()
    term.width = width
    term.bold = lambda s: f"*{s}*"
    return PagePreview(terminal=term, num_columns=num_columns)


def test_columns_follow_terminal_width_up_to_80():
    assert make_preview(width=60).num_columns == 60
    assert make_preview(width=200).num_columns == 80
    assert make_preview(width=0).num_columns == 80
    assert make_preview(num_columns=20).num_columns == 20


def test_page_break_line_is_centered():
    line = make_preview()._create_page_break_line(3)
    assert len(line) == 80
    assert line == "─" * 36 + " Page 3 " + "─" * 36


def test_page_break_line_keeps_minimum_rule():
    line = make_preview(num_columns=10)._create_page_break_line(12)
    assert line == "────" + " Page 12 " + "────"


def test_render_pages_and_blocks():
    d = doc(page(heading("Title"), paragraph("body text")), page(paragraph("")))
    lines = make_preview().render(d)
    assert lines[0].strip("─") == " Page 1 "
    assert lines[1:3] == ["*Title*", "body text"]
    assert lines[3].strip("─") == " Page 2 "
    assert lines[4] == ""


def test_long_paragraph_wraps():
    lines = make_preview(num_columns=10).render(doc(page(paragraph("aaaa bbbb cccc"))))
    assert lines[1:] == ["aaaa bbbb", "cccc"]


def test_split_table_fragments_show_row_ranges():
    rows = [table_row(f"r{i}") for i in range(5)]
    d = doc(
        page(table(*rows[:2], groupId="g1")),
        page(table(*rows[2:], groupId="g1"), table(*rows[:1])),
    )
    lines = make_preview().render(d)
    assert "[table: rows 1-2 of group g1]" in lines
    assert "[table: rows 3-5 of group g1]" in lines
    assert lines[-1] == "[table: rows 1-1]"


def test_show_prints_every_line():
    preview = make_preview()
    with patch("builtins.print") as mock_print:
        preview.show(doc(page(paragraph("x"))))
    assert mock_print.call_count == 2
