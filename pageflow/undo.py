"""Edit history built from dispatched transactions.

Each document-changing transaction the editor dispatches is recorded with the
state it started from and the document it produced, before repagination.
Undo and redo hand back ordinary transactions that swap the document in, so
the restored content flows through the same repagination pass as any edit.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .model import Node
from .transaction import EditorState, TextSelection, Transaction

logger = logging.getLogger(__name__)

# Transactions carrying this meta key set to False are not recorded
ADD_TO_HISTORY_META = "addToHistory"
HISTORY_META = "history"


@dataclass(frozen=True)
class HistoryEvent:
    """One recorded edit: the document and selection on either side of it."""
    doc_before: Node
    selection_before: TextSelection
    doc_after: Node
    selection_after: TextSelection


class History:
    """Undo and redo stacks fed by :meth:`record`.

    Args:
        depth: Oldest events are dropped once this many are recorded.
    """

    def __init__(self, depth: int = 500):
        self.depth = depth
        self._done: List[HistoryEvent] = []
        self._undone: List[HistoryEvent] = []

    def clear(self) -> None:
        self._done.clear()
        self._undone.clear()

    def can_undo(self) -> bool:
        return bool(self._done)

    def can_redo(self) -> bool:
        return bool(self._undone)

    def record(self, state: EditorState, tr: Transaction) -> bool:
        """Record ``tr`` as applied to ``state``. Returns True if it was kept."""
        if not tr.doc_changed or not tr.meta.get(ADD_TO_HISTORY_META, True):
            return False
        self._done.append(HistoryEvent(state.doc, state.selection, tr.doc, tr.selection))
        if len(self._done) > self.depth:
            del self._done[0]
        # A new edit invalidates redo history
        self._undone.clear()
        return True

    def undo(self, state: EditorState) -> Optional[Transaction]:
        """Build a transaction restoring the state before the last edit."""
        if not self._done:
            return None
        event = self._done.pop()
        self._undone.append(event)
        return _restore(state, event.doc_before, event.selection_before, "undo")

    def redo(self, state: EditorState) -> Optional[Transaction]:
        """Build a transaction reapplying the last undone edit."""
        if not self._undone:
            return None
        event = self._undone.pop()
        self._done.append(event)
        return _restore(state, event.doc_after, event.selection_after, "redo")


def _restore(state: EditorState, doc: Node, selection: TextSelection, kind: str) -> Transaction:
    logger.debug(f"History {kind}")
    tr = state.tr
    tr.replace_doc(doc)
    tr.set_selection(selection)
    tr.set_meta(ADD_TO_HISTORY_META, False)
    tr.set_meta(HISTORY_META, kind)
    return tr
