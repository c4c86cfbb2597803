"""Page node queries and per-page attribute resolution."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import NodeTypes, PageAttributeKeys
from .model import Node
from .options import PaginationOptions
from .paper import (
    MarginConfig,
    PageAttributes,
    calculate_page_content_pixel_dimensions,
)

logger = logging.getLogger(__name__)


def is_page_node(node: Optional[Node]) -> bool:
    return node is not None and node.type == NodeTypes.PAGE


def collect_page_nodes(doc: Node) -> List[Tuple[Node, int]]:
    """Return ``(page, pos)`` for every top-level page of the document."""
    return [(child, offset) for child, offset, _ in doc.children_with_offsets() if is_page_node(child)]


def get_page_count(doc: Node) -> int:
    return sum(1 for child in doc.content if is_page_node(child))


def get_page_node_by_page_num(doc: Node, page_num: int) -> Optional[Node]:
    pages = collect_page_nodes(doc)
    if 0 <= page_num < len(pages):
        return pages[page_num][0]
    return None


def get_page_node_pos_by_page_num(doc: Node, page_num: int) -> int:
    pages = collect_page_nodes(doc)
    if 0 <= page_num < len(pages):
        return pages[page_num][1]
    return -1


def is_page_num_in_range(doc: Node, page_num: int) -> bool:
    return 0 <= page_num < get_page_count(doc)


def get_page_attribute(page: Node, key: str, default: Any = None) -> Any:
    return page.attrs.get(key, default)


def page_has_attribute(page: Node, key: str) -> bool:
    return page.attrs.get(key) is not None


def get_page_node_attributes(page: Node, options: Optional[PaginationOptions] = None) -> PageAttributes:
    """Resolve a page node's attributes, falling back to option defaults."""
    options = options or PaginationOptions()
    return PageAttributes.from_node_attrs(page.attrs, options.default_page_attributes())


def get_page_node_paper_size(page: Node) -> Optional[str]:
    return page.attrs.get(PageAttributeKeys.PAPER_SIZE)


def get_page_node_paper_orientation(page: Node) -> Optional[str]:
    return page.attrs.get(PageAttributeKeys.PAPER_ORIENTATION)


def get_page_node_paper_colour(page: Node) -> Optional[str]:
    return page.attrs.get(PageAttributeKeys.PAPER_COLOUR)


def get_page_node_margins(page: Node) -> Optional[MarginConfig]:
    margins = page.attrs.get(PageAttributeKeys.PAGE_MARGINS)
    if margins is None:
        return None
    try:
        return MarginConfig.from_dict(margins)
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Page has malformed margins: {margins!r}")
        return None


@dataclass(frozen=True)
class PageBudget:
    """Usable content area of one page plus the attributes to stamp on it."""
    content_width: float
    content_height: float
    attrs: Dict[str, Any] = field(default_factory=dict)


class PageAttributeResolver:
    """Maps a page index to that page's attributes and content budget.

    Pages that already exist in ``doc`` keep their own attributes; any page
    beyond them gets the defaults from ``options``.
    """

    def __init__(self, doc: Node, options: Optional[PaginationOptions] = None, dark_theme: bool = False):
        self.options = options or PaginationOptions()
        self._defaults = self.options.default_page_attributes(dark_theme)
        self._pages = [page for page, _ in collect_page_nodes(doc)]

    @property
    def page_count(self) -> int:
        """Number of pages with known attribute data."""
        return len(self._pages)

    def has_page(self, page_index: int) -> bool:
        return 0 <= page_index < len(self._pages)

    def attributes_for_page(self, page_index: int) -> PageAttributes:
        if self.has_page(page_index):
            return PageAttributes.from_node_attrs(self._pages[page_index].attrs, self._defaults)
        return self._defaults

    def budget_for_page(self, page_index: int) -> PageBudget:
        attributes = self.attributes_for_page(page_index)
        dimensions = calculate_page_content_pixel_dimensions(attributes)
        return PageBudget(
            content_width=dimensions.content_width,
            content_height=dimensions.content_height,
            attrs=attributes.to_node_attrs(),
        )
