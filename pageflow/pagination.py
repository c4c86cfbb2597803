"""Repagination: flatten, measure and repack content into pages.

A pass never edits pages in place. It collects the content of every page
into one stream, measures each block, then packs the stream greedily into
fresh page nodes, splitting tables that do not fit. Alongside the new
document it records where every old block (and table row) landed so the
cursor can follow its content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import LayoutConstants
from .measure import HeightMeasurer
from .model import Node, doc as make_doc, page as make_page, paragraph
from .pages import PageAttributeResolver, PageBudget, is_page_node
from .tables import (
    TableHandler,
    get_group_id,
    get_header_row_count,
    is_table_node,
    merge_table_fragments,
)

logger = logging.getLogger(__name__)

CursorMap = Dict[int, int]


@dataclass(frozen=True)
class ContentEntry:
    """A top-level content block and its start position before the pass."""
    node: Node
    original_position: int

    @property
    def original_end(self) -> int:
        return self.original_position + self.node.node_size


@dataclass
class PaginationResult:
    new_doc: Node
    cursor_map: CursorMap
    entries: List[ContentEntry]
    heights: List[float] = field(default_factory=list)
    page_heights: List[float] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return self.new_doc.child_count


def collect_content_nodes(doc: Node) -> List[ContentEntry]:
    """Flatten the document into its stream of content blocks.

    Children of page nodes are emitted in place of the page; any other
    top-level node is emitted as is.
    """
    entries: List[ContentEntry] = []
    for child, offset, _ in doc.children_with_offsets():
        if is_page_node(child):
            for grandchild, child_offset, _ in child.children_with_offsets():
                entries.append(ContentEntry(grandchild, offset + 1 + child_offset))
        else:
            entries.append(ContentEntry(child, offset))
    return entries


class _PageBuilder:
    """Greedy first-fit packing of content into pages."""

    def __init__(self, resolver, measurer: Optional[HeightMeasurer], table_handler: TableHandler,
                 min_height: float):
        self.resolver = resolver
        self.measurer = measurer
        self.table_handler = table_handler
        self.min_height = min_height

        self.pages: List[Node] = []
        self.page_heights: List[float] = []
        self.cursor_map: CursorMap = {}

        self.page_index = 0
        self.budget: PageBudget = resolver.budget_for_page(0)
        self.page_start = 0
        self.current_content: List[Node] = []
        self.current_size = 0
        self.current_height = 0.0

    @property
    def remaining_height(self) -> float:
        return self.budget.content_height - self.current_height

    def _next_budget(self) -> PageBudget:
        next_index = self.page_index + 1
        if self.resolver.has_page(next_index):
            return self.resolver.budget_for_page(next_index)
        return self.budget

    def close_page(self) -> None:
        page_node = make_page(*self.current_content, **self.budget.attrs)
        self.pages.append(page_node)
        self.page_heights.append(self.current_height)
        self.page_start += page_node.node_size
        self.current_content = []
        self.current_size = 0
        self.current_height = 0.0
        self.page_index += 1
        # Past the last known page, keep using the last resolved budget
        if self.resolver.has_page(self.page_index):
            self.budget = self.resolver.budget_for_page(self.page_index)

    def place(self, node: Node, height: float, anchors: Sequence[Tuple[int, int]]) -> int:
        """Append ``node`` to the current page, opening a new page if it does not fit.

        ``anchors`` are ``(old_position, offset_into_node)`` pairs to record in
        the cursor map. Returns the node's start position in the new document.
        """
        if self.current_height + height > self.budget.content_height and self.current_content:
            self.close_page()
        start = self.page_start + 1 + self.current_size
        for old_pos, offset in anchors:
            self.cursor_map[old_pos] = start + offset
        self.current_content.append(node)
        self.current_size += node.node_size
        self.current_height += max(height, self.min_height)
        return start

    def place_table_group(self, group: Sequence[ContentEntry], height: float) -> None:
        """Place a table, or the fragments of an earlier split, splitting if needed.

        A table that fits is placed with its attributes unchanged and is not
        registered, so a never-split table has no group id. Fragments that fit
        again are merged into one table that keeps the first fragment's attrs.
        """
        table = merge_table_fragments([entry.node for entry in group]) if len(group) > 1 else group[0].node

        row_origins: List[int] = []
        entry_first_rows: List[Tuple[int, int]] = []
        for entry in group:
            entry_first_rows.append((entry.original_position, len(row_origins)))
            pos = entry.original_position + 1
            for row in entry.node.content:
                row_origins.append(pos)
                pos += row.node_size

        if height <= self.remaining_height or not table.content or self.measurer is None:
            self.place(table, height, self._table_anchors(table, 0, row_origins, entry_first_rows))
            return

        measurement = self.table_handler.measure_table(table, group[0].original_position, self.measurer)
        leading = sum(measurement.row_heights[:max(get_header_row_count(table), 1)])
        if leading > self.remaining_height and self.current_content:
            self.close_page()

        available = self.remaining_height
        page_height = self._next_budget().content_height
        result = self.table_handler.split_table_at_height(table, available, measurement, page_height)
        fragments, measurements = self.table_handler.optimise_tables(
            result.fragments, result.measurements, available, page_height)

        positions = []
        first_row = 0
        for fragment, fragment_measurement in zip(fragments, measurements):
            anchors = self._table_anchors(fragment, first_row, row_origins, entry_first_rows)
            positions.append(self.place(fragment, fragment_measurement.total_height, anchors))
            first_row += fragment.child_count
        self.table_handler.record_positions(result.group_id, positions)

    @staticmethod
    def _table_anchors(fragment: Node, first_row: int, row_origins: Sequence[int],
                       entry_first_rows: Sequence[Tuple[int, int]]) -> List[Tuple[int, int]]:
        anchors: List[Tuple[int, int]] = []
        last_row = first_row + fragment.child_count
        for old_pos, row_index in entry_first_rows:
            if row_index == 0 and first_row == 0:
                anchors.append((old_pos, 0))
            elif first_row <= row_index < last_row:
                anchors.append((old_pos, 1 + fragment.child_offset(row_index - first_row)))
        for index in range(first_row, last_row):
            anchors.append((row_origins[index], 1 + fragment.child_offset(index - first_row)))
        return anchors

    def finish(self) -> Node:
        if self.current_content:
            self.close_page()
        if not self.pages:
            # A document always keeps one page with somewhere to type
            self.place(paragraph(), 0, ())
            self.close_page()
        return make_doc(*self.pages)


def build_new_document(entries: Sequence[ContentEntry],
                       heights: Sequence[float],
                       resolver,
                       measurer: Optional[HeightMeasurer] = None,
                       table_handler: Optional[TableHandler] = None,
                       min_height: float = LayoutConstants.MIN_PARAGRAPH_HEIGHT) -> PaginationResult:
    """Pack content entries into pages.

    Args:
        entries: Content stream from :func:`collect_content_nodes`.
        heights: Measured height of each entry, in the same order.
        resolver: Object with ``budget_for_page(index)`` and ``has_page(index)``.
        measurer: Used to measure table rows when a table must be split.
            Without it, oversized tables are placed whole.
        table_handler: Measurement cache and table-group registry.
        min_height: Floor applied to every entry's height.

    Returns:
        The new document, the old-to-new cursor map and per-page heights.
    """
    if len(entries) != len(heights):
        raise ValueError(f"Got {len(heights)} heights for {len(entries)} entries")
    builder = _PageBuilder(resolver, measurer, table_handler or TableHandler(), min_height)

    index = 0
    while index < len(entries):
        entry = entries[index]
        if is_table_node(entry.node):
            end = index + 1
            group_id = get_group_id(entry.node)
            if group_id:
                while end < len(entries) and get_group_id(entries[end].node) == group_id:
                    end += 1
            builder.place_table_group(entries[index:end], sum(heights[index:end]))
            index = end
            continue
        builder.place(entry.node, heights[index], ((entry.original_position, 0),))
        index += 1

    new_doc = builder.finish()
    limit_mapped_cursor_positions(builder.cursor_map, new_doc.content_size)
    logger.debug(f"Paginated {len(entries)} block(s) into {len(builder.pages)} page(s)")
    return PaginationResult(new_doc=new_doc, cursor_map=builder.cursor_map, entries=list(entries),
                            heights=list(heights), page_heights=builder.page_heights)


def limit_mapped_cursor_positions(cursor_map: CursorMap, doc_size: int) -> None:
    """Clamp every mapped position into ``[0, doc_size]``."""
    for old_pos, new_pos in cursor_map.items():
        cursor_map[old_pos] = min(max(new_pos, 0), doc_size)


def repaginate(doc: Node,
               attribute_resolver: Optional[PageAttributeResolver],
               measurer: HeightMeasurer,
               table_handler: Optional[TableHandler] = None) -> PaginationResult:
    """Run a full pass: collect, measure and rebuild the page sequence.

    Args:
        doc: The document before the pass.
        attribute_resolver: Page index to page attributes and budget. Defaults
            to a resolver reading ``doc``'s own pages.
        measurer: Height measurer backed by a layout host.
        table_handler: Cache and group registry kept across passes.
    """
    resolver = attribute_resolver or PageAttributeResolver(doc)
    entries = collect_content_nodes(doc)
    heights = measurer.measure_all(entries)
    return build_new_document(entries, heights, resolver, measurer=measurer, table_handler=table_handler,
                              min_height=measurer.min_height)


def needs_repagination(doc: Node, result: PaginationResult) -> bool:
    """Whether applying ``result`` would change ``doc``."""
    return result.new_doc != doc
