"""Cursor placement helpers.

A valid cursor position is one whose parent is a text block. These helpers
find such positions near an arbitrary position; each returns ``None`` when
the document has no suitable text block.
"""

from typing import Iterator, Optional, Tuple

from .model import Node, descendants, resolve
from .transaction import EditorState, TextSelection, Transaction


def text_block_ranges(doc: Node) -> Iterator[Tuple[int, int]]:
    """Yield ``(start, end)`` text ranges of every text block in document order."""
    for node, pos in descendants(doc):
        if node.is_textblock:
            yield pos + 1, pos + 1 + node.content_size


def is_highlighting(state: EditorState) -> bool:
    """Whether a non-empty range is selected."""
    return not state.selection.empty


def is_valid_cursor_position(doc: Node, pos: int) -> bool:
    if pos < 0 or pos > doc.content_size:
        return False
    return resolve(doc, pos).parent.is_textblock


def move_to_this_text_block(doc: Node, pos: int) -> Optional[TextSelection]:
    if is_valid_cursor_position(doc, pos):
        return TextSelection(pos)
    return None


def move_to_next_text_block(doc: Node, pos: int) -> Optional[TextSelection]:
    """Start of the first text block that starts at or after ``pos``."""
    for start, _ in text_block_ranges(doc):
        if start >= pos:
            return TextSelection(start)
    return None


def move_to_previous_text_block(doc: Node, pos: int) -> Optional[TextSelection]:
    """End of the last text block that ends at or before ``pos``."""
    found = None
    for start, end in text_block_ranges(doc):
        if end > pos:
            break
        found = end
    return TextSelection(found) if found is not None else None


def move_to_nearest_valid_cursor_position(doc: Node, pos: int) -> Optional[TextSelection]:
    """Closest valid cursor position to ``pos``; ties go forward."""
    best = None
    best_distance = None
    for start, end in text_block_ranges(doc):
        if start <= pos <= end:
            return TextSelection(pos)
        candidate = start if start > pos else end
        distance = abs(candidate - pos)
        if best_distance is None or distance <= best_distance:
            best, best_distance = candidate, distance
        if start > pos:
            break
    return TextSelection(best) if best is not None else None


def selection_at_end_of_document(doc: Node) -> TextSelection:
    found = None
    for _, end in text_block_ranges(doc):
        found = end
    return TextSelection(found if found is not None else doc.content_size)


def selection_at_end_of_paragraph(paragraph_pos: int, paragraph: Node) -> TextSelection:
    return TextSelection(paragraph_pos + 1 + paragraph.content_size)


def set_selection(tr: Transaction, selection: Optional[TextSelection]) -> Transaction:
    """Apply ``selection``, falling back to the end of the document."""
    if selection is None:
        selection = selection_at_end_of_document(tr.doc)
    return tr.set_selection(selection)


def set_selection_at_pos(tr: Transaction, pos: int) -> Transaction:
    pos = min(max(pos, 0), tr.doc.content_size)
    return tr.set_selection(TextSelection(pos))
