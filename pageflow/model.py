"""Document tree and position addressing.

Documents are immutable trees of :class:`Node` objects. Every node occupies
a run of integer positions in the document's linear address space:

- a text node occupies one position per character,
- a leaf node (hard break, image) occupies a single position,
- any other node occupies its content plus one opening and one closing token.

Positions inside a node are computed by prefix-summing the sizes of its
children; nodes hold no parent references.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any, Iterator, Optional, Sequence, Union

from .constants import NodeTypes, PageAttributeKeys


@dataclass(frozen=True)
class Node:
    """A document node.

    Attributes:
        type: Node type name (see :class:`NodeTypes`).
        attrs: Node attributes. Treated as read-only.
        content: Child nodes.
        text: Character data for text nodes, ``None`` otherwise.
    """

    type: str
    attrs: dict = field(default_factory=dict)
    content: tuple = ()
    text: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.type == NodeTypes.TEXT

    @property
    def is_leaf(self) -> bool:
        return self.type in NodeTypes.LEAVES

    @property
    def is_inline(self) -> bool:
        return self.is_text or self.is_leaf

    @property
    def is_textblock(self) -> bool:
        return self.type in NodeTypes.TEXTBLOCKS

    @property
    def is_block(self) -> bool:
        return not self.is_inline

    @cached_property
    def content_size(self) -> int:
        if self.is_text:
            return 0
        return self._offsets[-1]

    @cached_property
    def node_size(self) -> int:
        if self.is_text:
            return len(self.text or "")
        if self.is_leaf:
            return 1
        return self.content_size + 2

    @cached_property
    def _offsets(self) -> list[int]:
        # offsets[i] is the start of child i relative to the content start;
        # the final element is the content size.
        offsets = [0]
        for child in self.content:
            offsets.append(offsets[-1] + child.node_size)
        return offsets

    @property
    def child_count(self) -> int:
        return len(self.content)

    @property
    def first_child(self) -> Optional[Node]:
        return self.content[0] if self.content else None

    @property
    def last_child(self) -> Optional[Node]:
        return self.content[-1] if self.content else None

    @property
    def is_empty(self) -> bool:
        if self.is_text:
            return not self.text
        return self.content_size == 0

    @property
    def text_content(self) -> str:
        if self.is_text:
            return self.text or ""
        return "".join(child.text_content for child in self.content)

    def child(self, index: int) -> Node:
        return self.content[index]

    def child_offset(self, index: int) -> int:
        """Offset of child ``index`` relative to this node's content start."""
        return self._offsets[index]

    def find_index(self, offset: int) -> tuple[int, int]:
        """Find the child that contains ``offset``.

        Args:
            offset: Offset relative to this node's content start.

        Returns:
            ``(index, child_offset)``: the index of the child starting at or
            spanning ``offset`` and that child's start offset. When ``offset``
            equals the content size, the index is the child count.

        Raises:
            IndexError: If ``offset`` lies outside this node's content.
        """
        if offset < 0 or offset > self.content_size:
            raise IndexError(f"Offset {offset} outside of node content (size {self.content_size})")
        if offset == self.content_size:
            return self.child_count, offset
        index = bisect.bisect_right(self._offsets, offset) - 1
        return index, self._offsets[index]

    def children_with_offsets(self) -> Iterator[tuple[Node, int, int]]:
        """Yield ``(child, offset, index)`` for every child."""
        for index, child in enumerate(self.content):
            yield child, self._offsets[index], index

    def cut(self, start: int = 0, end: Optional[int] = None) -> tuple:
        """Return the children covering ``[start, end)`` of this node's content.

        Text nodes straddling either end are sliced. Cutting through any other
        node is an error; callers cut block content at child boundaries only.
        """
        if end is None:
            end = self.content_size
        if start < 0 or end > self.content_size or start > end:
            raise IndexError(f"Invalid cut [{start}, {end}) of content size {self.content_size}")
        result = []
        for child, offset, _ in self.children_with_offsets():
            child_end = offset + child.node_size
            if child_end <= start:
                continue
            if offset >= end:
                break
            if offset >= start and child_end <= end:
                result.append(child)
            elif child.is_text:
                piece = child.text[max(start, offset) - offset:min(end, child_end) - offset]
                if piece:
                    result.append(replace(child, text=piece))
            else:
                raise ValueError(f"Cannot cut through {child.type} node at offset {offset}")
        return tuple(result)

    def copy(self, content: Sequence[Node]) -> Node:
        """Return this node with new content, merging adjacent text nodes."""
        return replace(self, content=normalize_content(content))

    def with_attrs(self, **attrs: Any) -> Node:
        merged = dict(self.attrs)
        merged.update(attrs)
        return replace(self, attrs=merged)

    def __repr__(self) -> str:
        if self.is_text:
            return f"text({self.text!r})"
        inner = ", ".join(repr(child) for child in self.content)
        return f"{self.type}({inner})"


def normalize_content(content: Sequence[Node]) -> tuple:
    """Merge adjacent text nodes with equal attributes and drop empty ones."""
    merged: list[Node] = []
    for node in content:
        if node.is_text:
            if not node.text:
                continue
            if merged and merged[-1].is_text and merged[-1].attrs == node.attrs:
                merged[-1] = replace(merged[-1], text=merged[-1].text + node.text)
                continue
        merged.append(node)
    return tuple(merged)


# Node factories

def text(value: str, **attrs: Any) -> Node:
    return Node(NodeTypes.TEXT, attrs, (), value)


def _inline(content: Union[str, Node, Sequence[Node], None]) -> tuple:
    if content is None:
        return ()
    if isinstance(content, str):
        return normalize_content([text(content)])
    if isinstance(content, Node):
        return normalize_content([content])
    return normalize_content(content)


def paragraph(content: Union[str, Node, Sequence[Node], None] = None, **attrs: Any) -> Node:
    return Node(NodeTypes.PARAGRAPH, attrs, _inline(content))


def heading(content: Union[str, Node, Sequence[Node], None] = None, level: int = 1, **attrs: Any) -> Node:
    return Node(NodeTypes.HEADING, {"level": level, **attrs}, _inline(content))


def hard_break() -> Node:
    return Node(NodeTypes.HARD_BREAK)


def table_cell(*blocks: Union[str, Node], **attrs: Any) -> Node:
    content = tuple(paragraph(b) if isinstance(b, str) else b for b in blocks) or (paragraph(),)
    return Node(NodeTypes.TABLE_CELL, attrs, content)


def table_row(*cells: Union[str, Node], **attrs: Any) -> Node:
    return Node(NodeTypes.TABLE_ROW, attrs, tuple(table_cell(c) if isinstance(c, str) else c for c in cells))


def table(*rows: Node, **attrs: Any) -> Node:
    return Node(NodeTypes.TABLE, attrs, tuple(rows))


def page(*content: Node, **attrs: Any) -> Node:
    return Node(NodeTypes.PAGE, attrs, tuple(content))


def doc(*content: Node) -> Node:
    return Node(NodeTypes.DOC, {}, tuple(content))


def page_attrs(node: Node) -> dict:
    """Return only the page-level attributes of ``node``."""
    return {key: node.attrs[key] for key in PageAttributeKeys.ALL if key in node.attrs}


class ResolvedPos:
    """A position resolved against a document.

    ``depth`` 0 is the document itself; ``node(depth)`` is the innermost node
    whose content contains the position.
    """

    def __init__(self, pos: int, path: list[tuple[Node, int, int]], parent_offset: int):
        self.pos = pos
        # Each element is (node, index, absolute position of child at index)
        self._path = path
        self.parent_offset = parent_offset

    @property
    def depth(self) -> int:
        return len(self._path) - 1

    @property
    def parent(self) -> Node:
        return self._path[-1][0]

    @property
    def doc(self) -> Node:
        return self._path[0][0]

    def _resolve_depth(self, depth: Optional[int]) -> int:
        if depth is None:
            return self.depth
        if depth < 0:
            return self.depth + depth
        return depth

    def node(self, depth: Optional[int] = None) -> Node:
        return self._path[self._resolve_depth(depth)][0]

    def index(self, depth: Optional[int] = None) -> int:
        return self._path[self._resolve_depth(depth)][1]

    def start(self, depth: Optional[int] = None) -> int:
        """Absolute position of the start of the content of ``node(depth)``."""
        depth = self._resolve_depth(depth)
        return 0 if depth == 0 else self._path[depth - 1][2] + 1

    def end(self, depth: Optional[int] = None) -> int:
        depth = self._resolve_depth(depth)
        return self.start(depth) + self.node(depth).content_size

    def before(self, depth: Optional[int] = None) -> int:
        """Absolute position directly before ``node(depth)``."""
        depth = self._resolve_depth(depth)
        if depth == 0:
            raise ValueError("There is no position before the top-level node")
        return self._path[depth - 1][2]

    def after(self, depth: Optional[int] = None) -> int:
        depth = self._resolve_depth(depth)
        if depth == 0:
            raise ValueError("There is no position after the top-level node")
        return self.before(depth) + self.node(depth).node_size

    @property
    def text_offset(self) -> int:
        """Offset into the text node at this position, 0 at node boundaries."""
        return self.pos - self._path[-1][2]

    @property
    def node_after(self) -> Optional[Node]:
        parent = self.parent
        index = self.index()
        if index == parent.child_count:
            return None
        child = parent.child(index)
        offset = self.text_offset
        if offset:
            return replace(child, text=child.text[offset:])
        return child

    @property
    def node_before(self) -> Optional[Node]:
        parent = self.parent
        index = self.index()
        offset = self.text_offset
        if offset:
            child = parent.child(index)
            return replace(child, text=child.text[:offset])
        return parent.child(index - 1) if index > 0 else None

    def ancestors(self) -> Iterator[tuple[int, Node]]:
        """Yield ``(depth, node)`` from the innermost node outwards."""
        for depth in range(self.depth, -1, -1):
            yield depth, self._path[depth][0]

    def __repr__(self) -> str:
        return f"ResolvedPos({self.pos}, depth={self.depth}, parent={self.parent.type})"


def resolve(doc_node: Node, pos: int) -> ResolvedPos:
    """Resolve ``pos`` against ``doc_node``.

    Raises:
        IndexError: If the position lies outside the document.
    """
    if pos < 0 or pos > doc_node.content_size:
        raise IndexError(f"Position {pos} out of range (document size {doc_node.content_size})")
    path: list[tuple[Node, int, int]] = []
    node = doc_node
    start = 0
    parent_offset = pos
    while True:
        index, offset = node.find_index(parent_offset)
        remainder = parent_offset - offset
        path.append((node, index, start + offset))
        if not remainder:
            break
        child = node.child(index)
        if child.is_text:
            break
        node = child
        parent_offset = remainder - 1
        start += offset + 1
    return ResolvedPos(pos, path, parent_offset)


def node_at(doc_node: Node, pos: int) -> Optional[Node]:
    """Return the node that starts at ``pos`` (or the text node spanning it)."""
    if pos < 0 or pos > doc_node.content_size:
        return None
    node = doc_node
    while True:
        index, offset = node.find_index(pos)
        if index >= node.child_count:
            return None
        child = node.child(index)
        if offset == pos or child.is_text:
            return child
        pos -= offset + 1
        node = child


def child_after(node: Node, offset: int) -> tuple[Optional[Node], int, int]:
    """Return ``(child, index, child_offset)`` for the child at or spanning ``offset``."""
    index, child_offset = node.find_index(offset)
    if index >= node.child_count:
        return None, index, child_offset
    return node.child(index), index, child_offset


def child_before(node: Node, offset: int) -> tuple[Optional[Node], int, int]:
    """Return ``(child, index, child_offset)`` for the child ending at or spanning ``offset``."""
    if offset == 0:
        return None, 0, 0
    index, child_offset = node.find_index(offset)
    if child_offset < offset:
        return node.child(index), index, child_offset
    return node.child(index - 1), index - 1, node.child_offset(index - 1)


def descendants(node: Node, start: int = 0) -> Iterator[tuple[Node, int]]:
    """Yield ``(node, pos)`` for every descendant in document order.

    ``start`` is the absolute position of ``node``'s content start.
    """
    for child, offset, _ in node.children_with_offsets():
        pos = start + offset
        yield child, pos
        if not child.is_inline:
            yield from descendants(child, pos + 1)
