"""Tests for cursor placement helpers and selection relocation."""

from pageflow.mapper import (
    PLACEMENT_TABLE,
    BoundaryFlags,
    SelectionPlacement,
    boundary_flags,
    choose_placement,
    choose_selection,
    map_cursor_position,
    relocate_selection,
)
from pageflow.measure import HeightMeasurer, StaticLayoutHost
from pageflow.model import descendants, doc, page, paragraph, resolve, table, table_row
from pageflow.pages import PageBudget
from pageflow.pagination import ContentEntry, repaginate
from pageflow.selection import (
    is_highlighting,
    is_valid_cursor_position,
    move_to_nearest_valid_cursor_position,
    move_to_next_text_block,
    move_to_previous_text_block,
    move_to_this_text_block,
    selection_at_end_of_document,
    set_selection,
    text_block_ranges,
)
from pageflow.transaction import EditorState, TextSelection


def two_pages():
    # page0 @0: "aa" @1 (text 2-4) | page1 @6: "bb" @7 (text 8-10)
    return doc(page(paragraph("aa")), page(paragraph("bb")))


def test_text_block_ranges():
    assert list(text_block_ranges(two_pages())) == [(2, 4), (8, 10)]


def test_valid_cursor_positions():
    d = two_pages()
    assert is_valid_cursor_position(d, 2)
    assert is_valid_cursor_position(d, 4)
    assert not is_valid_cursor_position(d, 5)
    assert not is_valid_cursor_position(d, 6)
    assert not is_valid_cursor_position(d, -1)
    assert not is_valid_cursor_position(d, 99)


def test_is_highlighting():
    d = two_pages()
    assert not is_highlighting(EditorState(d, TextSelection(3)))
    assert is_highlighting(EditorState(d, TextSelection(2, 4)))


def test_move_to_text_blocks():
    d = two_pages()
    assert move_to_this_text_block(d, 3) == TextSelection(3)
    assert move_to_this_text_block(d, 6) is None
    assert move_to_next_text_block(d, 5) == TextSelection(8)
    assert move_to_next_text_block(d, 9) is None
    assert move_to_previous_text_block(d, 6) == TextSelection(4)
    assert move_to_previous_text_block(d, 1) is None


def test_nearest_position_prefers_forward_on_ties():
    d = two_pages()
    assert move_to_nearest_valid_cursor_position(d, 6) == TextSelection(8)
    assert move_to_nearest_valid_cursor_position(d, 5) == TextSelection(4)
    assert move_to_nearest_valid_cursor_position(d, 9) == TextSelection(9)
    assert move_to_nearest_valid_cursor_position(doc(page()), 0) is None


def test_selection_at_end_of_document():
    assert selection_at_end_of_document(two_pages()) == TextSelection(10)


def test_set_selection_falls_back_to_end_of_document():
    tr = EditorState(two_pages()).tr
    set_selection(tr, None)
    assert tr.selection == TextSelection(10)


class TestMapCursorPosition:

    def test_keeps_offset_from_anchor(self):
        entries = [ContentEntry(paragraph("aa"), 1), ContentEntry(paragraph("bb"), 5)]
        cursor_map = {1: 1, 5: 7}
        assert map_cursor_position(entries, 6, cursor_map) == 8
        assert map_cursor_position(entries, 3, cursor_map) == 3

    def test_position_outside_entries(self):
        entries = [ContentEntry(paragraph("aa"), 1)]
        assert map_cursor_position(entries, 0, {1: 1}) is None

    def test_missing_anchor(self):
        entries = [ContentEntry(paragraph("aa"), 5)]
        assert map_cursor_position(entries, 6, {1: 1}) is None


class TestPlacement:

    def test_decision_table(self):
        assert PLACEMENT_TABLE[(True, True, False, False)] is SelectionPlacement.NEXT_TEXT_BLOCK
        assert PLACEMENT_TABLE[(True, False, False, False)] is SelectionPlacement.NEXT_TEXT_BLOCK
        assert PLACEMENT_TABLE[(True, False, True, False)] is SelectionPlacement.NEXT_TEXT_BLOCK
        assert PLACEMENT_TABLE[(False, False, True, True)] is SelectionPlacement.PREVIOUS_TEXT_BLOCK
        assert PLACEMENT_TABLE[(False, False, True, False)] is SelectionPlacement.PREVIOUS_TEXT_BLOCK
        assert PLACEMENT_TABLE[(False, False, False, False)] is SelectionPlacement.NEXT_TEXT_BLOCK
        assert (True, True, True, True) not in PLACEMENT_TABLE

    def test_valid_position_is_kept(self):
        assert choose_placement(two_pages(), 3) is SelectionPlacement.KEEP

    def test_page_start_moves_forward(self):
        d = doc(page(paragraph("aa"), paragraph("bb")))
        assert boundary_flags(d, 1) == BoundaryFlags(True, True, False, False)
        assert choose_selection(d, 1) == TextSelection(2)

    def test_page_end_moves_back(self):
        d = doc(page(paragraph("aa"), paragraph("bb")))
        assert boundary_flags(d, 9) == BoundaryFlags(False, False, True, True)
        assert choose_selection(d, 9) == TextSelection(8)

    def test_between_blocks_moves_forward(self):
        d = doc(page(paragraph("aa"), paragraph("bb")))
        assert boundary_flags(d, 5).key() == (False, False, False, False)
        assert choose_selection(d, 5) == TextSelection(6)

    def test_off_page_uses_nearest(self):
        assert boundary_flags(two_pages(), 0) is None
        assert choose_placement(two_pages(), 0) is SelectionPlacement.NEAREST
        assert choose_selection(two_pages(), 0) == TextSelection(2)

    def test_out_of_range_is_clamped(self):
        assert choose_selection(two_pages(), 500) == TextSelection(10)


class FixedBudget:

    def __init__(self, height):
        self.height = height

    def has_page(self, index):
        return index == 0

    def budget_for_page(self, index):
        return PageBudget(content_width=600, content_height=self.height)


def test_relocate_selection_follows_moved_paragraph():
    d = doc(page(paragraph("aa"), paragraph("bb"), paragraph("cc")))
    result = repaginate(d, FixedBudget(250), HeightMeasurer(StaticLayoutHost({"paragraph": 100})))
    # "cc" moved from @9 to @11 on the second page; cursor sat after the first "c"
    selection = relocate_selection(11, result.cursor_map, result.entries, result.new_doc)
    assert selection == TextSelection(13)


def test_relocate_selection_in_table_row():
    d = doc(page(paragraph("aa"), table(*[table_row(f"r{i}") for i in range(6)])))
    measurer = HeightMeasurer(StaticLayoutHost({"paragraph": 100, "table_row": 50}))
    result = repaginate(d, FixedBudget(250), measurer)
    assert result.page_count == 2
    old_pos = next(pos for node, pos in descendants(d) if node.is_text and node.text == "r5")
    selection = relocate_selection(old_pos + 1, result.cursor_map, result.entries, result.new_doc)
    rpos = resolve(result.new_doc, selection.head)
    assert rpos.parent.text_content == "r5"
    assert rpos.parent_offset == 1


def test_relocate_unmapped_position_goes_to_end():
    d = two_pages()
    selection = relocate_selection(0, {}, [], d)
    assert selection == TextSelection(10)
