"""Editor controller tying the document state to pagination."""

import logging
from typing import Optional

from .commands import CommandRegistry
from .measure import FontMetricsLayoutHost, HeightMeasurer, LayoutHost
from .model import Node, doc as make_doc, page, paragraph, resolve, text
from .options import PaginationOptions
from .pages import PageAttributeResolver
from .paper import PageAttributes, calculate_page_content_pixel_dimensions
from .pagination import PaginationResult, needs_repagination, repaginate
from .mapper import relocate_selection
from .selection import is_highlighting
from .tables import TableHandler
from .transaction import EditorState, TextSelection, Transaction
from .undo import History

logger = logging.getLogger(__name__)

PAGINATION_META = "pagination"


def document_from_text(content: str) -> Node:
    """Build a single-page document with one paragraph per line."""
    lines = content.split("\n") if content else [""]
    return make_doc(page(*[paragraph(line) for line in lines]))


class Editor:
    """Owns an editor state and keeps it paginated after every change.

    Args:
        document: Initial document; defaults to one page with an empty paragraph.
        options: Page defaults for pages without their own attributes.
        host: Layout host used to measure blocks. Defaults to a font-metrics
            host sized to the first page's content width.
        dark_theme: Passed to the options when resolving the paper colour.
        persistence: Settings store used by :meth:`load_file` and
            :meth:`save_settings`.
    """

    def __init__(self,
                 document: Optional[Node] = None,
                 options: Optional[PaginationOptions] = None,
                 host: Optional[LayoutHost] = None,
                 dark_theme: bool = False,
                 persistence=None):
        self.options = options or PaginationOptions()
        self.dark_theme = dark_theme
        self.persistence = persistence
        self.table_handler = TableHandler()
        self.command_registry = CommandRegistry()
        self.history = History()
        self.filename: Optional[str] = None
        self.modified = False
        self.last_result: Optional[PaginationResult] = None
        self.state = EditorState(document if document is not None else make_doc(page(paragraph())))
        self._auto_host = host is None
        self.measurer = HeightMeasurer(host or self._default_host())
        self.repaginate()

    @classmethod
    def from_text(cls, content: str, **kwargs) -> 'Editor':
        return cls(document_from_text(content), **kwargs)

    @property
    def doc(self) -> Node:
        return self.state.doc

    @property
    def selection(self) -> TextSelection:
        return self.state.selection

    def _resolver(self) -> PageAttributeResolver:
        return PageAttributeResolver(self.state.doc, self.options, self.dark_theme)

    def _measuring_width(self) -> float:
        width = self._resolver().budget_for_page(0).content_width
        if width <= 0:
            fallback = calculate_page_content_pixel_dimensions(PageAttributes()).content_width
            logger.warning(f"First page has no content width; measuring at {fallback:.1f}px")
            return fallback
        return width

    def _default_host(self) -> FontMetricsLayoutHost:
        return FontMetricsLayoutHost(self._measuring_width())

    def _refresh_host(self) -> None:
        """Resize the default host when the first page's width changes."""
        if not self._auto_host:
            return
        width = self._measuring_width()
        host = self.measurer.host
        if host.content_width != width:
            logger.debug(f"Content width changed from {host.content_width:.1f} to {width:.1f}")
            self.measurer = HeightMeasurer(FontMetricsLayoutHost(width, host.font_name, host.font_size,
                                                                 host.line_spacing))
            # Cached table rows were measured at the old width
            self.table_handler.clear()

    def dispatch(self, tr: Transaction) -> None:
        """Apply a transaction, then repaginate if the document changed."""
        before = self.state
        self.state = self.state.apply(tr)
        if not tr.doc_changed:
            return
        self.modified = True
        self.history.record(before, tr)
        self.repaginate()

    def repaginate(self) -> bool:
        """Run a pagination pass and relocate the selection.

        Returns:
            True if the page structure changed.
        """
        self._refresh_host()
        doc = self.state.doc
        result = repaginate(doc, self._resolver(), self.measurer, self.table_handler)
        self.last_result = result
        if not needs_repagination(doc, result):
            return False

        selection = self.state.selection
        anchor = relocate_selection(selection.anchor, result.cursor_map, result.entries, result.new_doc)
        if selection.empty:
            head = anchor
        else:
            head = relocate_selection(selection.head, result.cursor_map, result.entries, result.new_doc)

        tr = self.state.tr
        tr.replace_doc(result.new_doc)
        tr.set_selection(TextSelection(anchor.head, head.head))
        tr.set_meta(PAGINATION_META, True)
        self.state = self.state.apply(tr)
        logger.debug(f"Repaginated into {result.page_count} page(s)")
        return True

    def run_command(self, handler, *args, **kwargs) -> bool:
        """Run a ``(state, dispatch, ...) -> bool`` handler against this editor."""
        return handler(self.state, self.dispatch, *args, **kwargs)

    def execute(self, name: str) -> bool:
        """Run an edit command by key name, falling back to the default edit.

        Returns:
            True if the document or selection changed.
        """
        if self.command_registry.execute(name, self.state, self.dispatch):
            return True
        default = {
            "Enter": self._default_enter,
            "Backspace": self._default_backspace,
            "Delete": self._default_delete,
        }.get(name)
        if default is None:
            logger.warning(f"Unknown command: {name}")
            return False
        tr = default()
        if tr is None:
            return False
        self.dispatch(tr)
        return True

    def insert_text(self, value: str) -> bool:
        """Insert text at the cursor, replacing any selected range."""
        if not value:
            return False
        tr = self.state.tr
        pos = self.state.selection.from_
        if is_highlighting(self.state):
            if not self._delete_selection(tr):
                return False
        rpos = resolve(tr.doc, pos)
        if not rpos.parent.is_textblock:
            logger.debug(f"Cannot insert text at {pos}: not inside a text block")
            return False
        tr.insert(pos, text(value))
        tr.set_selection(pos + len(value))
        self.dispatch(tr)
        return True

    # Default edits, applied when no boundary command claims the key

    def _delete_selection(self, tr: Transaction) -> bool:
        selection = self.state.selection
        rfrom = resolve(tr.doc, selection.from_)
        rto = resolve(tr.doc, selection.to)
        if rfrom.depth != rto.depth or rfrom.start() != rto.start():
            logger.debug("Selection spans several blocks; not deleting")
            return False
        tr.delete(selection.from_, selection.to)
        tr.set_selection(selection.from_)
        return True

    def _default_enter(self) -> Optional[Transaction]:
        tr = self.state.tr
        if is_highlighting(self.state) and not self._delete_selection(tr):
            return None
        pos = tr.selection.head
        rpos = resolve(tr.doc, pos)
        block = rpos.parent
        if not block.is_textblock:
            return None
        block_pos = rpos.before()
        head = block.copy(block.cut(0, rpos.parent_offset))
        tail = block.copy(block.cut(rpos.parent_offset))
        tr.replace_with(block_pos, block_pos + block.node_size, (head, tail))
        return tr.set_selection(block_pos + head.node_size + 1)

    def _default_backspace(self) -> Optional[Transaction]:
        tr = self.state.tr
        if is_highlighting(self.state):
            return tr if self._delete_selection(tr) else None
        pos = self.state.selection.head
        rpos = resolve(tr.doc, pos)
        block = rpos.parent
        if not block.is_textblock:
            return None
        if rpos.parent_offset > 0:
            tr.delete(pos - 1, pos)
            return tr.set_selection(pos - 1)

        # Join with the previous sibling text block
        index = rpos.index(-1)
        container = rpos.node(-1)
        if index == 0 or not container.child(index - 1).is_textblock:
            return None
        previous = container.child(index - 1)
        previous_pos = rpos.before() - previous.node_size
        merged = previous.copy(previous.content + block.content)
        tr.replace_with(previous_pos, rpos.after(), merged)
        return tr.set_selection(previous_pos + 1 + previous.content_size)

    def _default_delete(self) -> Optional[Transaction]:
        tr = self.state.tr
        if is_highlighting(self.state):
            return tr if self._delete_selection(tr) else None
        pos = self.state.selection.head
        rpos = resolve(tr.doc, pos)
        block = rpos.parent
        if not block.is_textblock:
            return None
        if rpos.parent_offset < block.content_size:
            tr.delete(pos, pos + 1)
            return tr.set_selection(pos)

        # Join with the next sibling text block
        index = rpos.index(-1)
        container = rpos.node(-1)
        if index + 1 >= container.child_count or not container.child(index + 1).is_textblock:
            return None
        following = container.child(index + 1)
        block_pos = rpos.before()
        merged = block.copy(block.content + following.content)
        tr.replace_with(block_pos, rpos.after() + following.node_size, merged)
        return tr.set_selection(pos)

    # History

    def undo(self) -> bool:
        tr = self.history.undo(self.state)
        if tr is None:
            return False
        self.dispatch(tr)
        return True

    def redo(self) -> bool:
        tr = self.history.redo(self.state)
        if tr is None:
            return False
        self.dispatch(tr)
        return True

    # Files and settings

    def _persistence(self):
        if self.persistence is None:
            from .settings_persistence import get_persistence
            self.persistence = get_persistence()
        return self.persistence

    def load_file(self, filename: str) -> None:
        """Load a UTF-8 text file, one paragraph per line.

        A missing file starts an empty document under that name. Saved page
        settings for the file become the editor's defaults.
        """
        self.filename = filename
        self.options = PaginationOptions.from_settings(filename, self._persistence())
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            logger.info(f"{filename} does not exist; starting a new document")
            content = ""
        self.state = EditorState(document_from_text(content))
        self.history.clear()
        self.table_handler.clear()
        self.repaginate()
        self.modified = False

    def save_settings(self) -> bool:
        """Persist the editor's page defaults for the current file."""
        options = self.options
        settings = {
            "paper_size": options.default_paper_size,
            "paper_orientation": options.default_paper_orientation,
            "paper_colour": options.default_paper_colour,
            "page_margins": options.default_margin_config.to_dict(),
        }
        return self._persistence().save_settings(self.filename, settings)
