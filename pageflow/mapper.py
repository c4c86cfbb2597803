"""Carry the cursor from the pre-pass document into the repaginated one."""

import bisect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from .model import Node, resolve
from .pages import is_page_node
from .pagination import ContentEntry, CursorMap
from .selection import (
    is_valid_cursor_position,
    move_to_nearest_valid_cursor_position,
    move_to_next_text_block,
    move_to_previous_text_block,
    selection_at_end_of_document,
)
from .transaction import TextSelection, Transaction

logger = logging.getLogger(__name__)


def map_cursor_position(entries: Sequence[ContentEntry], old_position: int, cursor_map: CursorMap) -> Optional[int]:
    """Translate an old position into the new document.

    The position keeps its distance from the closest recorded anchor at or
    before it within the content entry that contains it. Returns None when
    no entry contains the position.
    """
    keys = sorted(cursor_map)
    for entry in entries:
        if entry.original_position <= old_position <= entry.original_end:
            index = bisect.bisect_right(keys, old_position) - 1
            anchor = keys[index] if index >= 0 else None
            if anchor is None or anchor < entry.original_position:
                logger.error(f"No cursor map anchor for entry at {entry.original_position}")
                return None
            return cursor_map[anchor] + (old_position - anchor)
    logger.debug(f"Old position {old_position} is not inside any content entry")
    return None


class SelectionPlacement(Enum):
    KEEP = "keep"
    NEXT_TEXT_BLOCK = "next"
    PREVIOUS_TEXT_BLOCK = "previous"
    NEAREST = "nearest"


@dataclass(frozen=True)
class BoundaryFlags:
    """Where a position sits relative to its page."""
    is_first_child_of_page: bool
    is_exact_page_start: bool
    is_last_child_of_page: bool
    is_exact_page_end: bool

    def key(self) -> Tuple[bool, bool, bool, bool]:
        return (self.is_first_child_of_page, self.is_exact_page_start,
                self.is_last_child_of_page, self.is_exact_page_end)


# (first child, exact page start, last child, exact page end) -> placement
PLACEMENT_TABLE: Dict[Tuple[bool, bool, bool, bool], SelectionPlacement] = {
    (True, True, False, False): SelectionPlacement.NEXT_TEXT_BLOCK,
    (True, False, False, False): SelectionPlacement.NEXT_TEXT_BLOCK,
    (True, False, True, False): SelectionPlacement.NEXT_TEXT_BLOCK,
    (False, False, True, True): SelectionPlacement.PREVIOUS_TEXT_BLOCK,
    (False, False, True, False): SelectionPlacement.PREVIOUS_TEXT_BLOCK,
    (False, False, False, False): SelectionPlacement.NEXT_TEXT_BLOCK,
}


def boundary_flags(doc: Node, pos: int) -> Optional[BoundaryFlags]:
    """Classify a position against the page that contains it, or None off-page."""
    rpos = resolve(doc, pos)
    page_depth = None
    for depth, node in rpos.ancestors():
        if depth > 0 and is_page_node(node):
            page_depth = depth
            break
    if page_depth is None:
        return None

    page = rpos.node(page_depth)
    if rpos.depth == page_depth:
        # Between two blocks of the page
        index = rpos.index()
        is_first = page.child_count > 0 and index == 0
        is_last = page.child_count > 0 and index == page.child_count
    else:
        index = rpos.index(page_depth)
        is_first = index == 0
        is_last = index == page.child_count - 1
    return BoundaryFlags(
        is_first_child_of_page=is_first,
        is_exact_page_start=pos == rpos.start(page_depth),
        is_last_child_of_page=is_last,
        is_exact_page_end=pos == rpos.end(page_depth),
    )


def choose_placement(doc: Node, pos: int) -> SelectionPlacement:
    if is_valid_cursor_position(doc, pos):
        return SelectionPlacement.KEEP
    flags = boundary_flags(doc, pos)
    if flags is None:
        return SelectionPlacement.NEAREST
    return PLACEMENT_TABLE.get(flags.key(), SelectionPlacement.NEAREST)


def choose_selection(doc: Node, pos: int) -> TextSelection:
    """Turn a mapped position into a concrete cursor in ``doc``."""
    pos = min(max(pos, 0), doc.content_size)
    placement = choose_placement(doc, pos)
    if placement is SelectionPlacement.KEEP:
        return TextSelection(pos)

    selection = None
    if placement is SelectionPlacement.NEXT_TEXT_BLOCK:
        selection = move_to_next_text_block(doc, pos)
    elif placement is SelectionPlacement.PREVIOUS_TEXT_BLOCK:
        selection = move_to_previous_text_block(doc, pos)
    if selection is None:
        selection = move_to_nearest_valid_cursor_position(doc, pos)
    if selection is None:
        selection = selection_at_end_of_document(doc)
    return selection


def relocate_selection(old_position: int,
                       cursor_map: CursorMap,
                       entries: Sequence[ContentEntry],
                       new_doc: Node) -> TextSelection:
    """Map an old cursor position to a cursor in ``new_doc``.

    Falls back to the end of the document when the position cannot be mapped.
    """
    new_position = map_cursor_position(entries, old_position, cursor_map)
    if new_position is None:
        return selection_at_end_of_document(new_doc)
    return choose_selection(new_doc, new_position)


def update_cursor_position(tr: Transaction, new_position: Optional[int]) -> Transaction:
    """Set the selection of a repagination transaction."""
    if new_position is None:
        return tr.set_selection(selection_at_end_of_document(tr.doc))
    return tr.set_selection(choose_selection(tr.doc, new_position))
