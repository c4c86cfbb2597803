"""Commands that change page attributes.

Every command has the handler shape ``(state, dispatch, ...) -> bool``:
invalid input is rejected with a warning and returns False without
dispatching. Changing attributes changes page budgets, so hosts repaginate
after any of these succeeds.
"""

import logging
from typing import Any, Dict, Optional

from .constants import PageAttributeKeys
from .model import Node
from .options import PaginationOptions
from .pages import (
    collect_page_nodes,
    get_page_node_by_page_num,
    get_page_node_pos_by_page_num,
    page_has_attribute,
)
from .paper import (
    MARGIN_SIDE_GROUPS,
    MarginConfig,
    PageAttributes,
    has_content_area,
    is_margin_valid,
    is_valid_colour,
    is_valid_orientation,
    is_valid_paper_margins,
    is_valid_paper_size,
)
from .transaction import Dispatch, EditorState, Transaction

logger = logging.getLogger(__name__)


def _margins_dict(margins: Any) -> Dict[str, float]:
    if isinstance(margins, MarginConfig):
        return margins.to_dict()
    return {side: float(margins[side]) for side in ("top", "right", "bottom", "left")}


def set_page_nodes_attribute(tr: Transaction, key: str, value: Any) -> bool:
    """Set ``key`` on every page. Returns True if any page changed."""
    changed = False
    for page, pos in collect_page_nodes(tr.doc):
        if page.attrs.get(key) != value:
            tr.set_node_attrs(pos, **{key: value})
            changed = True
    return changed


GEOMETRY_KEYS = (PageAttributeKeys.PAPER_SIZE, PageAttributeKeys.PAPER_ORIENTATION, PageAttributeKeys.PAGE_MARGINS)


def leaves_content_area(page: Node, key: str, value: Any, options: Optional[PaginationOptions] = None) -> bool:
    """Whether ``page`` still has room for content once ``key`` is set to ``value``."""
    if key not in GEOMETRY_KEYS:
        return True
    options = options or PaginationOptions()
    attrs = dict(page.attrs)
    attrs[key] = value
    return has_content_area(PageAttributes.from_node_attrs(attrs, options.default_page_attributes()))


def _set_page_attribute(state: EditorState, dispatch: Optional[Dispatch], page_num: int, key: str, value: Any,
                        options: Optional[PaginationOptions] = None) -> bool:
    page_pos = get_page_node_pos_by_page_num(state.doc, page_num)
    if page_pos < 0:
        logger.warning(f"Page {page_num} not found")
        return False
    if not leaves_content_area(get_page_node_by_page_num(state.doc, page_num), key, value, options):
        logger.warning(f"{key}={value!r} leaves no content area on page {page_num}")
        return False
    if dispatch is not None:
        tr = state.tr
        tr.set_node_attrs(page_pos, **{key: value})
        dispatch(tr)
    return True


def _set_document_attribute(state: EditorState, dispatch: Optional[Dispatch], key: str, value: Any,
                            options: Optional[PaginationOptions] = None) -> bool:
    for page_num, (page, _) in enumerate(collect_page_nodes(state.doc)):
        if not leaves_content_area(page, key, value, options):
            logger.warning(f"{key}={value!r} leaves no content area on page {page_num}")
            return False
    if dispatch is not None:
        tr = state.tr
        set_page_nodes_attribute(tr, key, value)
        dispatch(tr)
    return True


# Paper size

def set_document_paper_size(state: EditorState, dispatch: Optional[Dispatch], paper_size: str,
                            options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_paper_size(paper_size):
        logger.warning(f"Invalid paper size: {paper_size}")
        return False
    return _set_document_attribute(state, dispatch, PageAttributeKeys.PAPER_SIZE, paper_size, options)


def set_document_default_paper_size(state: EditorState, dispatch: Optional[Dispatch],
                                    options: Optional[PaginationOptions] = None) -> bool:
    options = options or PaginationOptions()
    return set_document_paper_size(state, dispatch, options.default_paper_size, options)


def set_page_paper_size(state: EditorState, dispatch: Optional[Dispatch], page_num: int, paper_size: str,
                        options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_paper_size(paper_size):
        logger.warning(f"Invalid paper size: {paper_size}")
        return False
    return _set_page_attribute(state, dispatch, page_num, PageAttributeKeys.PAPER_SIZE, paper_size, options)


def check_paper_sizes(state: EditorState, dispatch: Optional[Dispatch],
                      options: Optional[PaginationOptions] = None) -> bool:
    """Give every page without a valid paper size the default one.

    Returns True if any page was updated.
    """
    options = options or PaginationOptions()
    missing = [(page, pos) for page, pos in collect_page_nodes(state.doc)
               if not is_valid_paper_size(page.attrs.get(PageAttributeKeys.PAPER_SIZE))]
    if not missing:
        return False
    if not all(leaves_content_area(page, PageAttributeKeys.PAPER_SIZE, options.default_paper_size, options)
               for page, _ in missing):
        logger.warning(f"Default paper size {options.default_paper_size} leaves no content area")
        return False
    if dispatch is not None:
        tr = state.tr
        for _, pos in missing:
            tr.set_node_attrs(pos, **{PageAttributeKeys.PAPER_SIZE: options.default_paper_size})
        dispatch(tr)
    return True


# Paper colour

def set_document_paper_colour(state: EditorState, dispatch: Optional[Dispatch], paper_colour: str) -> bool:
    if not is_valid_colour(paper_colour):
        logger.warning(f"Invalid paper colour: {paper_colour}")
        return False
    return _set_document_attribute(state, dispatch, PageAttributeKeys.PAPER_COLOUR, paper_colour)


def set_document_default_paper_colour(state: EditorState, dispatch: Optional[Dispatch],
                                      options: Optional[PaginationOptions] = None,
                                      dark_theme: bool = False) -> bool:
    options = options or PaginationOptions()
    return set_document_paper_colour(state, dispatch, options.paper_colour(dark_theme))


def set_page_paper_colour(state: EditorState, dispatch: Optional[Dispatch], page_num: int, paper_colour: str) -> bool:
    if not is_valid_colour(paper_colour):
        logger.warning(f"Invalid paper colour: {paper_colour}")
        return False
    return _set_page_attribute(state, dispatch, page_num, PageAttributeKeys.PAPER_COLOUR, paper_colour)


# Orientation

def set_document_paper_orientation(state: EditorState, dispatch: Optional[Dispatch], orientation: str,
                                   options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_orientation(orientation):
        logger.warning(f"Invalid paper orientation: {orientation}")
        return False
    return _set_document_attribute(state, dispatch, PageAttributeKeys.PAPER_ORIENTATION, orientation, options)


def set_document_default_paper_orientation(state: EditorState, dispatch: Optional[Dispatch],
                                           options: Optional[PaginationOptions] = None) -> bool:
    options = options or PaginationOptions()
    return set_document_paper_orientation(state, dispatch, options.default_paper_orientation, options)


def set_page_paper_orientation(state: EditorState, dispatch: Optional[Dispatch], page_num: int,
                               orientation: str, options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_orientation(orientation):
        logger.warning(f"Invalid paper orientation: {orientation}")
        return False
    return _set_page_attribute(state, dispatch, page_num, PageAttributeKeys.PAPER_ORIENTATION, orientation,
                               options)


# Margins

def set_document_paper_margins(state: EditorState, dispatch: Optional[Dispatch], margins: Any,
                               options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_paper_margins(margins):
        logger.warning(f"Invalid paper margins: {margins}")
        return False
    return _set_document_attribute(state, dispatch, PageAttributeKeys.PAGE_MARGINS, _margins_dict(margins), options)


def set_document_default_paper_margins(state: EditorState, dispatch: Optional[Dispatch],
                                       options: Optional[PaginationOptions] = None) -> bool:
    options = options or PaginationOptions()
    return set_document_paper_margins(state, dispatch, options.default_margin_config, options)


def set_page_paper_margins(state: EditorState, dispatch: Optional[Dispatch], page_num: int, margins: Any,
                           options: Optional[PaginationOptions] = None) -> bool:
    if not is_valid_paper_margins(margins):
        logger.warning(f"Invalid paper margins: {margins}")
        return False
    return _set_page_attribute(state, dispatch, page_num, PageAttributeKeys.PAGE_MARGINS, _margins_dict(margins),
                               options)


def update_paper_margin(margins: Dict[str, float], side: str, value: float) -> Optional[Dict[str, float]]:
    """Return ``margins`` with ``side`` set to ``value``; None for an unknown side.

    ``side`` may be a single side or one of ``x``, ``y`` and ``all``.
    """
    sides = MARGIN_SIDE_GROUPS.get(side)
    if sides is None:
        return None
    updated = dict(margins)
    for name in sides:
        updated[name] = float(value)
    return updated


def _page_margins(page: Node, options: PaginationOptions) -> Dict[str, float]:
    if page_has_attribute(page, PageAttributeKeys.PAGE_MARGINS) and \
            is_valid_paper_margins(page.attrs[PageAttributeKeys.PAGE_MARGINS]):
        return _margins_dict(page.attrs[PageAttributeKeys.PAGE_MARGINS])
    return options.default_margin_config.to_dict()


def set_document_paper_margin(state: EditorState, dispatch: Optional[Dispatch], side: str, value: float,
                              options: Optional[PaginationOptions] = None) -> bool:
    """Set one margin side (or ``x``/``y``/``all``) on every page."""
    if side not in MARGIN_SIDE_GROUPS or not is_margin_valid(value):
        logger.warning(f"Invalid margin {side}={value}")
        return False
    options = options or PaginationOptions()
    updates = []
    for page_num, (page, pos) in enumerate(collect_page_nodes(state.doc)):
        margins = update_paper_margin(_page_margins(page, options), side, value)
        if not leaves_content_area(page, PageAttributeKeys.PAGE_MARGINS, margins, options):
            logger.warning(f"Margin {side}={value} leaves no content area on page {page_num}")
            return False
        updates.append((pos, margins))
    if dispatch is not None:
        tr = state.tr
        for pos, margins in updates:
            tr.set_node_attrs(pos, **{PageAttributeKeys.PAGE_MARGINS: margins})
        dispatch(tr)
    return True


def set_page_paper_margin(state: EditorState, dispatch: Optional[Dispatch], page_num: int, side: str,
                          value: float, options: Optional[PaginationOptions] = None) -> bool:
    """Set one margin side (or ``x``/``y``/``all``) on a single page."""
    if side not in MARGIN_SIDE_GROUPS or not is_margin_valid(value):
        logger.warning(f"Invalid margin {side}={value}")
        return False
    pages = collect_page_nodes(state.doc)
    if not 0 <= page_num < len(pages):
        logger.warning(f"Page {page_num} not found")
        return False
    options = options or PaginationOptions()
    page, _ = pages[page_num]
    margins = update_paper_margin(_page_margins(page, options), side, value)
    return _set_page_attribute(state, dispatch, page_num, PageAttributeKeys.PAGE_MARGINS, margins, options)
