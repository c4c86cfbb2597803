"""Tests for the editor controller: edits, repagination, history and files."""

import pytest

from pageflow.editor import Editor, document_from_text
from pageflow.measure import FontMetricsLayoutHost, StaticLayoutHost
from pageflow.model import doc, page, paragraph
from pageflow.options import PaginationOptions
from pageflow.page_commands import set_document_paper_size
from pageflow.settings_persistence import SettingsPersistence
from pageflow.transaction import EditorState, TextSelection


def make_editor(content=None, **kwargs):
    # An A4 page holds about 930px of content: two 400px paragraphs
    kwargs.setdefault("host", StaticLayoutHost({"paragraph": 400}))
    if content is None:
        return Editor(**kwargs)
    return Editor.from_text(content, **kwargs)


def texts(editor):
    return [[block.text_content for block in p.content] for p in editor.doc.content]


def place_cursor(editor, pos):
    editor.state = EditorState(editor.doc, TextSelection(pos))


def test_document_from_text():
    d = document_from_text("one\ntwo")
    assert [b.text_content for b in d.first_child.content] == ["one", "two"]
    assert document_from_text("").first_child.first_child.is_empty


def test_new_editor_has_one_empty_page():
    editor = make_editor()
    assert texts(editor) == [[""]]
    assert editor.selection == TextSelection(2)
    assert not editor.modified


def test_loading_text_paginates():
    editor = make_editor("a\nb\nc")
    assert texts(editor) == [["a", "b"], ["c"]]
    assert editor.last_result.page_count == 2
    assert editor.doc.first_child.attrs["paperSize"] == "A4"


def test_default_host_uses_page_width():
    editor = Editor()
    assert isinstance(editor.measurer.host, FontMetricsLayoutHost)
    assert editor.measurer.host.content_width == pytest.approx(
        editor._resolver().budget_for_page(0).content_width)


def test_insert_text():
    editor = make_editor("ab")
    assert editor.insert_text("X")
    assert texts(editor) == [["Xab"]]
    assert editor.selection == TextSelection(3)
    assert editor.modified
    assert not editor.insert_text("")


def test_insert_replaces_selected_range():
    editor = make_editor("abcd")
    editor.state = EditorState(editor.doc, TextSelection(3, 5))
    assert editor.insert_text("Z")
    assert texts(editor) == [["aZd"]]
    assert editor.selection == TextSelection(4)


def test_enter_overflowing_page_moves_cursor_to_new_page():
    editor = make_editor("a\nb")
    place_cursor(editor, 6)
    assert editor.execute("Enter")
    assert texts(editor) == [["a", "b"], [""]]
    # page0 is 8 wide; the new paragraph opens at 9
    assert editor.selection == TextSelection(10)


def test_backspace_at_start_of_page_merges_paragraphs():
    editor = make_editor("a\nb\nc")
    place_cursor(editor, 10)
    assert editor.execute("Backspace")
    assert texts(editor) == [["a", "bc"]]
    assert editor.selection == TextSelection(6)


def test_default_backspace_deletes_character():
    editor = make_editor("abc")
    place_cursor(editor, 4)
    assert editor.execute("Backspace")
    assert texts(editor) == [["ac"]]
    assert editor.selection == TextSelection(3)


def test_default_backspace_joins_paragraphs_on_same_page():
    editor = make_editor("ab\ncd")
    place_cursor(editor, 6)
    assert editor.execute("Backspace")
    assert texts(editor) == [["abcd"]]
    assert editor.selection == TextSelection(4)


def test_default_delete_joins_next_paragraph():
    editor = make_editor("ab\ncd")
    place_cursor(editor, 4)
    assert editor.execute("Delete")
    assert texts(editor) == [["abcd"]]
    assert editor.selection == TextSelection(4)


def test_unknown_command():
    editor = make_editor("ab")
    assert not editor.execute("Tab")


def test_undo_and_redo():
    editor = make_editor("ab")
    assert not editor.undo()
    editor.insert_text("X")
    editor.insert_text("Y")
    assert editor.undo()
    assert texts(editor) == [["Xab"]]
    assert editor.undo()
    assert texts(editor) == [["ab"]]
    assert not editor.history.can_undo()
    assert editor.redo()
    assert texts(editor) == [["Xab"]]
    assert editor.selection == TextSelection(3)


def test_undo_restores_layout_and_redo_repaginates():
    editor = make_editor("a\nb")
    place_cursor(editor, 6)
    editor.execute("Enter")
    assert texts(editor) == [["a", "b"], [""]]
    assert editor.undo()
    assert texts(editor) == [["a", "b"]]
    assert editor.selection == TextSelection(6)
    assert editor.history.can_redo()
    assert editor.redo()
    assert texts(editor) == [["a", "b"], [""]]
    assert editor.selection == TextSelection(10)


def test_undo_page_command():
    editor = make_editor("a\nb")
    editor.run_command(set_document_paper_size, "A5")
    assert editor.last_result.page_count == 2
    assert editor.undo()
    assert editor.doc.first_child.attrs["paperSize"] == "A4"
    assert editor.last_result.page_count == 1
    assert not editor.history.can_undo()


def test_new_edit_clears_redo():
    editor = make_editor("ab")
    editor.insert_text("X")
    editor.undo()
    editor.insert_text("Y")
    assert not editor.redo()


def test_selection_only_change_is_not_recorded():
    editor = make_editor("ab")
    tr = editor.state.tr
    tr.set_selection(3)
    editor.dispatch(tr)
    assert editor.selection == TextSelection(3)
    assert not editor.history.can_undo()
    assert not editor.modified


def test_page_command_triggers_repagination():
    editor = make_editor("a\nb")
    assert editor.last_result.page_count == 1
    assert editor.run_command(set_document_paper_size, "A5")
    assert editor.doc.first_child.attrs["paperSize"] == "A5"
    assert editor.last_result.page_count == 2


def test_load_file_uses_saved_settings(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("one\ntwo\nthree", encoding="utf-8")
    persistence = SettingsPersistence(config_dir=tmp_path / "config")
    persistence.save_settings(str(path), {"paper_size": "Letter"})

    editor = make_editor(persistence=persistence)
    editor.load_file(str(path))
    assert editor.filename == str(path)
    assert editor.options.default_paper_size == "Letter"
    assert texts(editor) == [["one", "two"], ["three"]]
    assert all(p.attrs["paperSize"] == "Letter" for p in editor.doc.content)
    assert not editor.modified
    assert not editor.history.can_undo()


def test_load_missing_file_starts_empty(tmp_path):
    persistence = SettingsPersistence(config_dir=tmp_path / "config")
    editor = make_editor("old", persistence=persistence)
    editor.load_file(str(tmp_path / "missing.txt"))
    assert texts(editor) == [[""]]
    assert editor.options == PaginationOptions()


def test_save_settings(tmp_path):
    persistence = SettingsPersistence(config_dir=tmp_path / "config")
    editor = make_editor(persistence=persistence)
    assert not editor.save_settings()

    editor.filename = str(tmp_path / "doc.txt")
    editor.options = PaginationOptions(default_paper_size="A5", default_paper_orientation="landscape")
    assert editor.save_settings()
    saved = persistence.load_settings(editor.filename)
    assert saved["paper_size"] == "A5"
    assert saved["paper_orientation"] == "landscape"
    assert saved["page_margins"]["top"] == pytest.approx(25.4)


def test_paper_without_content_area_is_refused():
    editor = make_editor("hello")
    before = editor.doc
    assert not editor.run_command(set_document_paper_size, "A10")
    assert editor.doc == before
    assert not editor.history.can_undo()


def test_document_with_no_content_width_still_opens():
    editor = Editor(document=doc(page(paragraph("x"), paperSize="A10")))
    assert editor.measurer.host.content_width > 0
    assert texts(editor) == [["x"]]
