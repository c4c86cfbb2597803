"""Tests for page and paragraph position queries."""

from pageflow.model import doc, page, paragraph, table, table_row
from pageflow.positions import (
    get_end_of_page_position,
    get_next_paragraph,
    get_page_node_and_position,
    get_page_number,
    get_paragraph_node_and_position,
    get_previous_paragraph,
    get_start_of_page_position,
    get_start_of_paragraph_position,
    get_end_of_paragraph_position,
    is_at_end_of_paragraph,
    is_next_paragraph_empty,
    is_pos_at_end_of_document,
    is_pos_at_end_of_page,
    is_pos_at_first_child_of_page,
    is_pos_at_last_child_of_page,
    is_pos_at_start_of_document,
    is_pos_at_start_of_page,
    is_previous_paragraph_empty,
)


def three_pages():
    # page0 @0: "ab" @1, "" @5 | page1 @8: "cd" @9 | page2 @14: "ef" @15
    return doc(
        page(paragraph("ab"), paragraph()),
        page(paragraph("cd")),
        page(paragraph("ef")),
    )


def test_page_and_paragraph_lookup():
    d = three_pages()
    assert get_page_node_and_position(d, 11)[0] == 8
    assert get_paragraph_node_and_position(d, 11)[0] == 9
    assert get_paragraph_node_and_position(d, 8) == (-1, None)
    assert get_page_node_and_position(d, 99) == (-1, None)


def test_page_and_paragraph_bounds():
    d = three_pages()
    assert get_start_of_page_position(d, 11) == 9
    assert get_end_of_page_position(d, 11) == 13
    assert get_start_of_paragraph_position(d, 3) == 2
    assert get_end_of_paragraph_position(d, 3) == 4


def test_document_edges():
    d = three_pages()
    assert is_pos_at_start_of_document(d, 2)
    assert not is_pos_at_start_of_document(d, 3)
    assert is_pos_at_end_of_document(d, 18)
    assert not is_pos_at_end_of_document(d, 17)


def test_page_edges():
    d = three_pages()
    assert is_pos_at_start_of_page(d, 10)
    assert not is_pos_at_start_of_page(d, 11)
    assert is_pos_at_end_of_page(d, 12)
    assert is_pos_at_end_of_page(d, 6)
    assert not is_pos_at_end_of_page(d, 4)


def test_first_and_last_child_of_page():
    d = three_pages()
    assert is_pos_at_first_child_of_page(d, 11)
    assert not is_pos_at_first_child_of_page(d, 6)
    assert is_pos_at_last_child_of_page(d, 6)
    assert not is_pos_at_last_child_of_page(d, 3)


def test_paragraph_in_table_cell_is_not_a_page_edge():
    d = doc(page(paragraph("x"), table(table_row("a")), paragraph("y")))
    cell_text = 1 + 3 + 4
    assert get_paragraph_node_and_position(d, cell_text)[1].text_content == "a"
    assert not is_pos_at_start_of_page(d, cell_text)
    assert not is_pos_at_end_of_page(d, cell_text + 1)


def test_previous_and_next_paragraph():
    d = three_pages()
    assert get_previous_paragraph(d, 9)[0] == 5
    assert get_previous_paragraph(d, 1) == (-1, None)
    assert get_next_paragraph(d, 6)[0] == 9
    assert get_next_paragraph(d, 17) == (-1, None)


def test_paragraph_edges_and_emptiness():
    d = three_pages()
    assert is_at_end_of_paragraph(d, 4)
    assert not is_at_end_of_paragraph(d, 3)
    assert is_previous_paragraph_empty(d, 10)
    assert not is_previous_paragraph_empty(d, 3)
    assert is_next_paragraph_empty(d, 3)
    assert not is_next_paragraph_empty(d, 10)


def test_page_number():
    d = three_pages()
    assert get_page_number(d, 2) == 0
    assert get_page_number(d, 17) == 2
    assert get_page_number(d, 17, zero_indexed=False) == 3
    assert get_page_number(d, 0) == -1
