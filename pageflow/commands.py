"""Boundary edit commands for Enter, Backspace and Delete.

Each command is a handler ``(state, dispatch) -> bool``. A handler only
claims an edit when the cursor sits on a page or paragraph boundary that
the default editing behaviour would get wrong; otherwise it returns False
and the host's default command runs. A transaction is dispatched only once
the whole edit has been computed.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from .constants import NodeTypes
from .model import Node, ResolvedPos, child_after, child_before, node_at, resolve
from .pages import is_page_node
from .positions import (
    get_next_paragraph,
    get_page_node_and_position,
    get_paragraph_node_and_position,
    get_previous_paragraph,
    is_at_start_or_end_of_paragraph,
    is_paragraph_node,
    is_pos_at_end_of_page,
    is_pos_at_start_of_page,
    is_position_within_paragraph,
)
from .selection import (
    is_highlighting,
    move_to_nearest_valid_cursor_position,
    move_to_next_text_block,
    move_to_previous_text_block,
    set_selection,
    set_selection_at_pos,
)
from .transaction import Dispatch, EditorState, TextSelection, Transaction

logger = logging.getLogger(__name__)


def _is_direct_page_child(doc: Node, pos: int) -> bool:
    return resolve(doc, pos).parent.type == NodeTypes.PAGE


def delete_block(tr: Transaction, block_pos: int, block: Node, page_pos: int, page: Node) -> Transaction:
    """Delete a page's child block; a page left with no content goes with it."""
    if page.child_count == 1:
        return tr.delete(page_pos, page_pos + page.node_size)
    return tr.delete(block_pos, block_pos + block.node_size)


def append_and_replace_node(tr: Transaction, target_pos: int, target: Node, source: Node) -> Node:
    """Replace ``target`` with a copy whose content is followed by ``source``'s."""
    merged = target.copy(target.content + source.content)
    tr.replace_with(target_pos, target_pos + target.node_size, merged)
    return merged


class BoundaryCommand(ABC):
    """Base class for boundary-aware edit commands."""

    name = ""

    def __call__(self, state: EditorState, dispatch: Optional[Dispatch] = None) -> bool:
        return self.execute(state, dispatch)

    def execute(self, state: EditorState, dispatch: Optional[Dispatch] = None) -> bool:
        """Run the command.

        Args:
            state: Current editor state.
            dispatch: Receives the transaction when the command handles the edit.

        Returns:
            True if the edit was handled and a transaction dispatched.
        """
        if dispatch is None:
            logger.warning("No dispatch function provided")
            return False
        if is_highlighting(state):
            return False

        rpos = resolve(state.doc, state.selection.head)
        if not is_position_within_paragraph(rpos):
            logger.debug(f"{self.name}: not inside a paragraph node")
            return False

        tr = self._build(state, rpos)
        if tr is None:
            return False
        dispatch(tr)
        return True

    @abstractmethod
    def _build(self, state: EditorState, rpos: ResolvedPos) -> Optional[Transaction]:
        """Return the complete transaction, or None to leave the edit to the host."""
        pass


class EnterCommand(BoundaryCommand):
    """Split the current paragraph, moving the cursor into the new block."""

    name = "Enter"

    def _build(self, state, rpos):
        doc = state.doc
        paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
        if paragraph is None:
            logger.warning("No current paragraph node found")
            return None

        tr = state.tr
        if paragraph.is_empty:
            insert_pos = paragraph_pos + paragraph.node_size
            tr.insert(insert_pos, paragraph.copy(()))
            cursor = insert_pos + 1
        else:
            offset = rpos.pos - (paragraph_pos + 1)
            if is_at_start_or_end_of_paragraph(doc, rpos):
                logger.debug(f"Enter at paragraph edge (offset {offset})")
            head = paragraph.copy(paragraph.cut(0, offset))
            tail = paragraph.copy(paragraph.cut(offset))
            tr.replace_with(paragraph_pos, paragraph_pos + paragraph.node_size, (head, tail))
            cursor = paragraph_pos + head.node_size + 1

        set_selection(tr, move_to_next_text_block(tr.doc, cursor))
        return tr


class BackspaceCommand(BoundaryCommand):
    """Backspace at the end of a page, or merge into the previous page at its start."""

    name = "Backspace"

    def _build(self, state, rpos):
        doc = state.doc
        if is_pos_at_end_of_page(doc, rpos):
            return self._at_end_of_page(state, rpos)
        if is_pos_at_start_of_page(doc, rpos):
            return self._at_start_of_page(state, rpos)
        return None

    def _at_end_of_page(self, state, rpos):
        doc = state.doc
        paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
        if paragraph is None:
            logger.warning("No current paragraph node found")
            return None

        if not paragraph.is_empty:
            tr = state.tr
            trimmed = paragraph.copy(paragraph.cut(0, paragraph.content_size - 1))
            tr.replace_with(paragraph_pos, paragraph_pos + paragraph.node_size, trimmed)
            return set_selection_at_pos(tr, rpos.pos - 1)

        if not _is_direct_page_child(doc, paragraph_pos):
            return None
        if move_to_previous_text_block(doc, paragraph_pos) is None:
            logger.debug("No previous text block to move into")
            return None
        page_pos, page = get_page_node_and_position(doc, rpos)
        if page is None:
            logger.error("Paragraph at the end of a page has no page node")
            return None

        tr = state.tr
        delete_block(tr, paragraph_pos, paragraph, page_pos, page)
        return set_selection(tr, move_to_previous_text_block(tr.doc, tr.map(paragraph_pos, -1)))

    def _at_start_of_page(self, state, rpos):
        doc = state.doc
        page_pos, page = get_page_node_and_position(doc, rpos)
        if page is None:
            logger.debug("Start of document is not on a page")
            return None
        paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
        if paragraph is None:
            logger.warning("No current paragraph node found")
            return None
        if paragraph_pos != page_pos + 1 or rpos.pos != paragraph_pos + 1:
            # Not the first position of the page
            return None

        previous_page, _, _ = child_before(doc, page_pos)
        if previous_page is None:
            logger.debug("No previous page node found")
            return None
        if not is_page_node(previous_page):
            logger.error(f"Node before page at {page_pos} is a {previous_page.type}, not a page")
            return None

        previous_pos, previous = get_previous_paragraph(doc, paragraph_pos)
        if previous is None:
            logger.warning("No previous paragraph node found")
            return None

        tr = state.tr
        if not (previous.is_empty and paragraph.is_empty):
            delete_block(tr, paragraph_pos, paragraph, page_pos, page)
        append_and_replace_node(tr, previous_pos, previous, paragraph)
        # Cursor goes to the join point
        return set_selection_at_pos(tr, previous_pos + 1 + previous.content_size)


class DeleteCommand(BoundaryCommand):
    """Delete at the end of a page pulls the next page's first paragraph up."""

    name = "Delete"

    def _build(self, state, rpos):
        doc = state.doc
        if not is_pos_at_end_of_page(doc, rpos):
            return None

        pos = rpos.pos
        node = node_at(doc, pos - 1)
        if node is None:
            logger.warning(f"No node found at position {pos - 1}")
            return None
        paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
        if paragraph is None:
            logger.warning("No current paragraph node found")
            return None
        if not (is_paragraph_node(node) or node.is_inline):
            logger.warning(f"Unexpected {node.type} node at position {pos - 1}")
            return None

        page_pos, page = get_page_node_and_position(doc, rpos)
        this_page, page_index, _ = child_after(doc, page_pos) if page is not None else (None, -1, 0)
        if not is_page_node(this_page):
            logger.error("No page node found")
            return None

        if page_index >= doc.child_count - 1:
            logger.debug("At end of document")
            # An empty transaction stops the default delete from removing this paragraph
            return state.tr

        next_page_pos = page_pos + page.node_size
        next_page = doc.child(page_index + 1)
        if not is_page_node(next_page):
            logger.error(f"Node after page {page_index} is a {next_page.type}, not a page")
            return None

        next_pos, next_paragraph = get_next_paragraph(doc, pos)
        if next_paragraph is None or next_pos != next_page_pos + 1:
            logger.debug("Next page does not start with a paragraph")
            return None

        this_empty = paragraph.is_empty
        next_empty = next_paragraph.is_empty

        tr = state.tr
        if not next_empty:
            delete_block(tr, next_pos, next_paragraph, next_page_pos, next_page)
        merged = append_and_replace_node(tr, paragraph_pos, paragraph, next_paragraph)

        if this_empty and next_empty:
            selection = move_to_next_text_block(tr.doc, paragraph_pos + merged.node_size)
        elif this_empty:
            selection = move_to_nearest_valid_cursor_position(tr.doc, pos)
        else:
            selection = TextSelection(pos)
        return set_selection(tr, selection)


Handler = Callable[[EditorState, Optional[Dispatch]], bool]


class CommandRegistry:
    """Registry mapping command names to boundary edit handlers."""

    def __init__(self):
        self._commands: Dict[str, BoundaryCommand] = {}
        self._setup_default_commands()

    def _setup_default_commands(self):
        self.register("Enter", EnterCommand())
        self.register("Backspace", BackspaceCommand())
        self.register("Delete", DeleteCommand())

    def register(self, name: str, command: BoundaryCommand):
        self._commands[name] = command

    def get_command(self, name: str) -> Optional[BoundaryCommand]:
        return self._commands.get(name)

    def names(self):
        return list(self._commands)

    def keymap(self) -> Dict[str, Handler]:
        """Handlers keyed by command name, ready for a host keymap."""
        return dict(self._commands)

    def execute(self, name: str, state: EditorState, dispatch: Optional[Dispatch]) -> bool:
        """Run the named command; unknown names are not handled."""
        command = self.get_command(name)
        if command is None:
            return False
        return command.execute(state, dispatch)
