"""Tests for the document tree and position resolution."""

import pytest

from pageflow.model import (
    Node,
    child_after,
    child_before,
    descendants,
    doc,
    hard_break,
    node_at,
    page,
    paragraph,
    resolve,
    table,
    table_cell,
    table_row,
    text,
)


def hello_world():
    return doc(page(paragraph("Hello")), page(paragraph("World")))


def test_node_sizes():
    assert text("Hello").node_size == 5
    assert hard_break().node_size == 1
    assert paragraph("Hello").node_size == 7
    assert paragraph().node_size == 2
    assert page(paragraph("Hello")).node_size == 9


def test_hello_world_positions():
    d = hello_world()
    assert d.content_size == 18
    assert node_at(d, 0).type == "page"
    assert node_at(d, 1).type == "paragraph"
    assert node_at(d, 2).text == "Hello"
    assert node_at(d, 9).type == "page"
    assert node_at(d, 10).type == "paragraph"
    assert node_at(d, 11).text == "World"


def test_resolve_inside_text():
    d = hello_world()
    rpos = resolve(d, 4)
    assert rpos.depth == 2
    assert rpos.parent.type == "paragraph"
    assert rpos.parent_offset == 2
    assert rpos.start() == 2
    assert rpos.end() == 7
    assert rpos.before() == 1
    assert rpos.after() == 8
    assert rpos.before(1) == 0
    assert rpos.node_before.text == "He"
    assert rpos.node_after.text == "llo"


def test_resolve_between_pages():
    rpos = resolve(hello_world(), 9)
    assert rpos.depth == 0
    assert rpos.index() == 1
    assert rpos.node_before.type == "page"
    assert rpos.node_after.type == "page"


def test_resolve_out_of_range():
    with pytest.raises(IndexError):
        resolve(hello_world(), 19)
    with pytest.raises(IndexError):
        resolve(hello_world(), -1)


def test_ancestors_innermost_first():
    depths = [depth for depth, _ in resolve(hello_world(), 12).ancestors()]
    assert depths == [2, 1, 0]


def test_adjacent_text_nodes_merge():
    p = paragraph([text("He"), text("llo")])
    assert p.child_count == 1
    assert p.first_child.text == "Hello"


def test_cut_slices_text():
    p = paragraph("Hello")
    assert p.copy(p.cut(1, 3)).text_content == "el"
    assert p.cut(0, 0) == ()


def test_cut_through_block_raises():
    node = page(paragraph("Hello"))
    with pytest.raises(ValueError):
        node.cut(2, 5)


def test_child_before_and_after():
    d = hello_world()
    assert child_after(d, 9)[0].type == "page"
    assert child_after(d, 9)[1] == 1
    assert child_before(d, 9)[1] == 0
    assert child_before(d, 0)[0] is None
    assert child_after(d, 18)[0] is None


def test_descendants_positions():
    found = [(node.type, pos) for node, pos in descendants(hello_world()) if not node.is_text]
    assert found == [("page", 0), ("paragraph", 1), ("page", 9), ("paragraph", 10)]


def test_table_factories():
    t = table(table_row("a", "b"), table_row("c", "d"), headerRows=1)
    assert t.child_count == 2
    assert t.first_child.child_count == 2
    assert t.attrs["headerRows"] == 1
    # text(1) + paragraph(2) + cell(2) per cell, row adds 2
    assert t.first_child.node_size == 2 + 2 * 5


def test_empty_cell_gets_paragraph():
    assert table_cell().first_child.type == "paragraph"


def test_nodes_compare_by_value():
    assert hello_world() == hello_world()
    assert isinstance(hello_world().first_child, Node)
    assert paragraph("a") != paragraph("b")
