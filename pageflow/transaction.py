"""Editor state, selections and transactions.

A :class:`Transaction` accumulates replace steps against an immutable
document. Nothing is observable until the host applies the transaction to
an :class:`EditorState`, so a command either commits a complete edit or
nothing at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from .model import Node, ResolvedPos, descendants, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextSelection:
    """A text selection between ``anchor`` and ``head``."""

    anchor: int
    head: Optional[int] = None

    def __post_init__(self):
        if self.head is None:
            object.__setattr__(self, "head", self.anchor)

    @property
    def from_(self) -> int:
        return min(self.anchor, self.head)

    @property
    def to(self) -> int:
        return max(self.anchor, self.head)

    @property
    def empty(self) -> bool:
        return self.anchor == self.head

    def map(self, tr: Transaction) -> TextSelection:
        return TextSelection(tr.map(self.anchor), tr.map(self.head))


@dataclass(frozen=True)
class StepMap:
    """Position mapping for a single replace step."""

    start: int
    old_size: int
    new_size: int

    def map(self, pos: int, assoc: int = 1) -> int:
        end = self.start + self.old_size
        if pos < self.start:
            return pos
        if pos > end:
            return pos + self.new_size - self.old_size
        if not self.old_size:
            side = assoc
        elif pos == self.start:
            side = -1
        elif pos == end:
            side = 1
        else:
            side = assoc
        return self.start if side < 0 else self.start + self.new_size


class Transaction:
    """A pending sequence of document edits plus an optional new selection."""

    def __init__(self, state: EditorState):
        self.before = state.doc
        self.doc = state.doc
        self.steps: list[StepMap] = []
        self._initial_selection = state.selection
        self._selection: Optional[TextSelection] = None
        self.meta: dict = {}

    @property
    def doc_changed(self) -> bool:
        return bool(self.steps)

    @property
    def selection_set(self) -> bool:
        return self._selection is not None

    @property
    def selection(self) -> TextSelection:
        if self._selection is not None:
            return self._selection
        return self._initial_selection.map(self)

    def set_selection(self, selection: Union[TextSelection, int]) -> Transaction:
        if isinstance(selection, int):
            selection = TextSelection(selection)
        size = self.doc.content_size
        for pos in (selection.anchor, selection.head):
            if pos < 0 or pos > size:
                raise IndexError(f"Selection position {pos} out of range (document size {size})")
        self._selection = selection
        return self

    def set_meta(self, key: str, value) -> Transaction:
        self.meta[key] = value
        return self

    def map(self, pos: int, assoc: int = 1) -> int:
        """Map a position in the original document through every step."""
        for step in self.steps:
            pos = step.map(pos, assoc)
        return pos

    def replace_with(self, from_: int, to: int, nodes: Union[Node, Sequence[Node]] = ()) -> Transaction:
        """Replace the range ``[from_, to)`` of the current document with ``nodes``.

        Both ends of the range must lie in the same parent node.

        Raises:
            ValueError: If the range spans different parents or is inverted.
        """
        if isinstance(nodes, Node):
            nodes = (nodes,)
        nodes = tuple(nodes)
        if from_ > to:
            raise ValueError(f"Inverted replace range [{from_}, {to})")
        rfrom = resolve(self.doc, from_)
        rto = resolve(self.doc, to)
        if rfrom.depth != rto.depth or rfrom.start() != rto.start():
            raise ValueError(f"Replace range [{from_}, {to}) crosses node boundaries")

        parent = rfrom.parent
        start = rfrom.start()
        content = parent.cut(0, from_ - start) + nodes + parent.cut(to - start)
        self.doc = _rebuild(rfrom, parent.copy(content))
        self.steps.append(StepMap(from_, to - from_, sum(n.node_size for n in nodes)))
        return self

    def insert(self, pos: int, nodes: Union[Node, Sequence[Node]]) -> Transaction:
        return self.replace_with(pos, pos, nodes)

    def delete(self, from_: int, to: int) -> Transaction:
        return self.replace_with(from_, to, ())

    def replace_doc(self, new_doc: Node) -> Transaction:
        """Replace the whole document content."""
        old_size = self.doc.content_size
        self.doc = new_doc
        self.steps.append(StepMap(0, old_size, new_doc.content_size))
        return self

    def set_node_attrs(self, pos: int, **attrs) -> Transaction:
        """Update attributes of the node starting at ``pos``."""
        rpos = resolve(self.doc, pos)
        node = rpos.node_after
        if node is None or node.is_text:
            raise ValueError(f"No node to update at position {pos}")
        return self._replace_node(pos, node, node.with_attrs(**attrs))

    def _replace_node(self, pos: int, old: Node, new: Node) -> Transaction:
        rpos = resolve(self.doc, pos)
        parent = rpos.parent
        index = rpos.index()
        content = parent.content[:index] + (new,) + parent.content[index + 1:]
        self.doc = _rebuild(rpos, parent.copy(content))
        # Attribute changes keep sizes identical; record a no-op step when they differ
        if new.node_size != old.node_size:
            self.steps.append(StepMap(pos, old.node_size, new.node_size))
        else:
            self.steps.append(StepMap(pos, 0, 0))
        return self


def _rebuild(rpos: ResolvedPos, new_parent: Node) -> Node:
    """Rebuild ancestors of ``rpos.parent`` around ``new_parent``."""
    node = new_parent
    for depth in range(rpos.depth - 1, -1, -1):
        ancestor = rpos.node(depth)
        index = rpos.index(depth)
        content = ancestor.content[:index] + (node,) + ancestor.content[index + 1:]
        node = ancestor.copy(content)
    return node


class EditorState:
    """An immutable document plus selection."""

    def __init__(self, doc: Node, selection: Optional[TextSelection] = None):
        self.doc = doc
        self.selection = selection if selection is not None else TextSelection(_first_cursor_position(doc))

    @property
    def tr(self) -> Transaction:
        """Begin a new transaction against this state."""
        return Transaction(self)

    def apply(self, tr: Transaction) -> EditorState:
        if tr.before is not self.doc:
            logger.error("Transaction was not started from this state")
            raise ValueError("Transaction applied to a different state")
        return EditorState(tr.doc, tr.selection)

    def __repr__(self) -> str:
        return f"EditorState(doc={self.doc!r}, selection={self.selection!r})"


Dispatch = Callable[[Transaction], None]


def _first_cursor_position(doc: Node) -> int:
    for node, pos in descendants(doc):
        if node.is_textblock:
            return pos + 1
    return 0
