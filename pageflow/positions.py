"""Position queries relative to pages and paragraphs.

Every query accepts either an integer position or a :class:`ResolvedPos`.
Lookup misses return ``-1`` for positions and ``None`` for nodes; they never
raise.
"""

import logging
from typing import Optional, Tuple, Union

from .model import Node, ResolvedPos, descendants, resolve
from .pages import collect_page_nodes, is_page_node

logger = logging.getLogger(__name__)

PosLike = Union[int, ResolvedPos]


def is_paragraph_node(node: Optional[Node]) -> bool:
    return node is not None and node.is_textblock


def is_text_node(node: Optional[Node]) -> bool:
    return node is not None and node.is_text


def _resolve(doc: Node, pos: PosLike) -> Optional[ResolvedPos]:
    if isinstance(pos, ResolvedPos):
        return pos
    if pos < 0 or pos > doc.content_size:
        logger.debug(f"Position {pos} is outside the document")
        return None
    return resolve(doc, pos)


def is_position_within_paragraph(rpos: ResolvedPos) -> bool:
    return rpos.parent.is_textblock


def get_page_node_and_position(doc: Node, pos: PosLike) -> Tuple[int, Optional[Node]]:
    """Return ``(page_pos, page)`` for the page containing ``pos``."""
    rpos = _resolve(doc, pos)
    if rpos is None:
        return -1, None
    for depth, node in rpos.ancestors():
        if depth > 0 and is_page_node(node):
            return rpos.before(depth), node
    return -1, None


def get_paragraph_node_and_position(doc: Node, pos: PosLike) -> Tuple[int, Optional[Node]]:
    """Return ``(paragraph_pos, paragraph)`` for the innermost text block containing ``pos``."""
    rpos = _resolve(doc, pos)
    if rpos is None:
        return -1, None
    for depth, node in rpos.ancestors():
        if depth > 0 and node.is_textblock:
            return rpos.before(depth), node
    return -1, None


def get_this_page_node_position(doc: Node, pos: PosLike) -> int:
    return get_page_node_and_position(doc, pos)[0]


def get_this_paragraph_node_position(doc: Node, pos: PosLike) -> int:
    return get_paragraph_node_and_position(doc, pos)[0]


def get_start_of_page_position(doc: Node, pos: PosLike) -> int:
    """First position inside the page containing ``pos``."""
    page_pos, page = get_page_node_and_position(doc, pos)
    return page_pos + 1 if page is not None else -1


def get_end_of_page_position(doc: Node, pos: PosLike) -> int:
    """Last position inside the page containing ``pos``."""
    page_pos, page = get_page_node_and_position(doc, pos)
    return page_pos + 1 + page.content_size if page is not None else -1


def get_start_of_paragraph_position(doc: Node, pos: PosLike) -> int:
    """First text position of the paragraph containing ``pos``."""
    paragraph_pos, paragraph = get_paragraph_node_and_position(doc, pos)
    return paragraph_pos + 1 if paragraph is not None else -1


def get_end_of_paragraph_position(doc: Node, pos: PosLike) -> int:
    """Last text position of the paragraph containing ``pos``."""
    paragraph_pos, paragraph = get_paragraph_node_and_position(doc, pos)
    return paragraph_pos + 1 + paragraph.content_size if paragraph is not None else -1


def first_text_position(doc: Node) -> int:
    for node, pos in descendants(doc):
        if node.is_textblock:
            return pos + 1
    return -1


def last_text_position(doc: Node) -> int:
    last = -1
    for node, pos in descendants(doc):
        if node.is_textblock:
            last = pos + 1 + node.content_size
    return last


def is_pos_at_start_of_document(doc: Node, pos: PosLike) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    first = first_text_position(doc)
    return first < 0 or rpos.pos <= first


def is_pos_at_end_of_document(doc: Node, pos: PosLike) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    last = last_text_position(doc)
    return last < 0 or rpos.pos >= last


def _paragraph_in_page(doc: Node, rpos: ResolvedPos) -> Optional[Tuple[int, Node, int, Node]]:
    """``(page_pos, page, paragraph_pos, paragraph)`` when ``rpos`` is in a paragraph on a page."""
    if not is_position_within_paragraph(rpos):
        return None
    page_pos, page = get_page_node_and_position(doc, rpos)
    if page is None:
        logger.debug(f"Position {rpos.pos} is not on a page")
        return None
    paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
    if paragraph is None:
        return None
    return page_pos, page, paragraph_pos, paragraph


def _matches_start_of_page(doc: Node, pos: PosLike, exact: bool) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    if is_pos_at_start_of_document(doc, rpos):
        return True
    found = _paragraph_in_page(doc, rpos)
    if found is None:
        return False
    page_pos, _, paragraph_pos, _ = found
    is_first_child = paragraph_pos == page_pos + 1
    if not exact:
        return is_first_child
    return is_first_child and rpos.pos == paragraph_pos + 1


def _matches_end_of_page(doc: Node, pos: PosLike, exact: bool) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    if is_pos_at_end_of_document(doc, rpos):
        return True
    found = _paragraph_in_page(doc, rpos)
    if found is None:
        return False
    page_pos, page, paragraph_pos, paragraph = found
    is_last_child = paragraph_pos + paragraph.node_size == page_pos + 1 + page.content_size
    if not exact:
        return is_last_child
    return is_last_child and rpos.pos == paragraph_pos + 1 + paragraph.content_size


def is_pos_at_start_of_page(doc: Node, pos: PosLike) -> bool:
    """Whether ``pos`` is the first text position of a page."""
    return _matches_start_of_page(doc, pos, exact=True)


def is_pos_at_first_child_of_page(doc: Node, pos: PosLike) -> bool:
    """Whether ``pos`` is inside the first block of a page."""
    return _matches_start_of_page(doc, pos, exact=False)


def is_pos_at_end_of_page(doc: Node, pos: PosLike) -> bool:
    """Whether ``pos`` is the last text position of a page."""
    return _matches_end_of_page(doc, pos, exact=True)


def is_pos_at_last_child_of_page(doc: Node, pos: PosLike) -> bool:
    """Whether ``pos`` is inside the last block of a page."""
    return _matches_end_of_page(doc, pos, exact=False)


def get_previous_paragraph(doc: Node, pos: int) -> Tuple[int, Optional[Node]]:
    """Return ``(pos, paragraph)`` for the last paragraph starting before ``pos``."""
    found: Tuple[int, Optional[Node]] = (-1, None)
    for node, node_pos in descendants(doc):
        if node_pos >= pos:
            break
        if node.is_textblock:
            found = (node_pos, node)
    return found


def get_next_paragraph(doc: Node, pos: int) -> Tuple[int, Optional[Node]]:
    """Return ``(pos, paragraph)`` for the first paragraph starting after ``pos``."""
    for node, node_pos in descendants(doc):
        if node_pos > pos and node.is_textblock:
            return node_pos, node
    return -1, None


def is_at_start_of_paragraph(doc: Node, pos: PosLike) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
    if paragraph is None:
        return False
    return paragraph_pos <= rpos.pos <= paragraph_pos + 1


def is_at_end_of_paragraph(doc: Node, pos: PosLike) -> bool:
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    paragraph_pos, paragraph = get_paragraph_node_and_position(doc, rpos)
    if paragraph is None:
        return False
    return rpos.pos + 1 == paragraph_pos + paragraph.node_size


def is_at_start_or_end_of_paragraph(doc: Node, pos: PosLike) -> bool:
    return is_at_start_of_paragraph(doc, pos) or is_at_end_of_paragraph(doc, pos)


def is_previous_paragraph_empty(doc: Node, pos: PosLike) -> bool:
    """Whether the previous paragraph exists and is empty."""
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    _, previous = get_previous_paragraph(doc, get_this_paragraph_node_position(doc, rpos))
    return previous is not None and previous.is_empty


def is_next_paragraph_empty(doc: Node, pos: PosLike) -> bool:
    """Whether the next paragraph exists and is empty."""
    rpos = _resolve(doc, pos)
    if rpos is None:
        return False
    _, following = get_next_paragraph(doc, rpos.pos)
    return following is not None and following.is_empty


def get_page_number(doc: Node, pos: PosLike, zero_indexed: bool = True) -> int:
    """Index of the page containing ``pos``, or -1."""
    page_pos, page = get_page_node_and_position(doc, pos)
    if page is None:
        logger.debug("Unable to find page node")
        return -1
    for index, (_, candidate_pos) in enumerate(collect_page_nodes(doc)):
        if candidate_pos == page_pos:
            return index + (0 if zero_indexed else 1)
    return -1
