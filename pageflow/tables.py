"""Splitting oversized tables across pages.

A table that does not fit in the space left on a page is cut into
fragments. Every fragment keeps the original table's attributes plus a
shared ``groupId`` so a later pass can join the fragments back together
and redistribute their rows when the surrounding content changes.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from itertools import accumulate
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import GROUP_ID_ATTR, HEADER_ROWS_ATTR, LayoutConstants, NodeTypes
from .model import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableMeasurement:
    """Measured row heights of one table or fragment."""
    row_heights: Tuple[float, ...]
    header_row_count: int = 0

    @property
    def cumulative_heights(self) -> Tuple[float, ...]:
        return tuple(accumulate(self.row_heights))

    @property
    def total_height(self) -> float:
        return sum(self.row_heights)

    @classmethod
    def from_heights(cls, heights: Sequence[float], header_row_count: int = 0) -> TableMeasurement:
        return cls(row_heights=tuple(float(h) for h in heights), header_row_count=header_row_count)

    def slice(self, start: int, end: Optional[int] = None, header_row_count: int = 0) -> TableMeasurement:
        return TableMeasurement(row_heights=self.row_heights[start:end], header_row_count=header_row_count)


@dataclass(frozen=True)
class RowMapping:
    """Where a fragment starts relative to the first fragment.

    Attributes:
        from_row: Index, in the original table, of the fragment's first row.
        to_offset: Offset of the fragment's start from the first fragment's
            start, assuming fragments are laid out back to back.
    """
    from_row: int
    to_offset: int


@dataclass
class TableSplitResult:
    fragments: List[Node]
    row_mapping: List[RowMapping]
    group_id: str
    measurements: List[TableMeasurement]


@dataclass
class TableGroup:
    """Fragments descending from one original table."""
    fragments: List[Node]
    original_table: Node
    positions: List[int] = field(default_factory=list)


def get_header_row_count(table: Node) -> int:
    return table.attrs.get(HEADER_ROWS_ATTR) or LayoutConstants.DEFAULT_HEADER_ROWS


def new_group_id() -> str:
    return f"{LayoutConstants.TABLE_GROUP_PREFIX}{uuid.uuid4().hex[:12]}"


def table_cache_key(node: Node) -> str:
    """Structural digest over type, attributes, and content of ``node``.

    Any change to the table's content or attributes changes the key.
    """
    digest = hashlib.blake2b(digest_size=16)
    _feed(digest, node)
    return f"{node.type}-{node.content_size}-{digest.hexdigest()}"


def _feed(digest, node: Node) -> None:
    digest.update(node.type.encode("utf-8"))
    digest.update(b"\x00")
    for key in sorted(node.attrs):
        digest.update(f"{key}={node.attrs[key]!r};".encode("utf-8"))
    if node.is_text:
        digest.update(b"\x01")
        digest.update(node.text.encode("utf-8"))
    digest.update(b"(")
    for child in node.content:
        _feed(digest, child)
    digest.update(b")")


def _fragment(table: Node, rows: Sequence[Node], group_id: str) -> Node:
    return table.copy(rows).with_attrs(**{GROUP_ID_ATTR: group_id})


def _fit_prefix(heights: Sequence[float], budget: float, minimum: int) -> int:
    """Number of leading rows that fit in ``budget``, never fewer than ``minimum``."""
    count = min(minimum, len(heights))
    used = sum(heights[:count])
    while count < len(heights) and used + heights[count] <= budget:
        used += heights[count]
        count += 1
    return count


def split_table(table: Node,
                measurement: TableMeasurement,
                available_height: float,
                page_height: float,
                group_id: str,
                min_rows: Optional[int] = None) -> Tuple[List[Node], List[TableMeasurement], List[RowMapping]]:
    """Split ``table`` so the first fragment fits ``available_height``.

    The first fragment always keeps at least ``min_rows`` rows (the header
    rows by default). Any remainder taller than ``page_height`` is split
    again with ``page_height`` as its budget. Row mappings are relative to
    the first fragment.
    """
    if min_rows is None:
        min_rows = get_header_row_count(table)
    rows = table.content
    heights = measurement.row_heights
    header_row_count = measurement.header_row_count

    if measurement.total_height <= available_height or len(rows) <= 1:
        return ([_fragment(table, rows, group_id)],
                [measurement.slice(0, header_row_count=header_row_count)],
                [RowMapping(0, 0)])

    split_index = _fit_prefix(heights, available_height, max(min_rows, 1))
    first = _fragment(table, rows[:split_index], group_id)
    fragments = [first]
    measurements = [measurement.slice(0, split_index, header_row_count=header_row_count)]
    mapping = [RowMapping(0, 0)]

    if split_index < len(rows):
        remainder = table.copy(rows[split_index:])
        remainder_measurement = measurement.slice(split_index)
        if remainder_measurement.total_height > page_height:
            sub_fragments, sub_measurements, sub_mapping = split_table(
                remainder, remainder_measurement, page_height, page_height, group_id, min_rows=1)
        else:
            sub_fragments = [_fragment(table, remainder.content, group_id)]
            sub_measurements = [remainder_measurement]
            sub_mapping = [RowMapping(0, 0)]
        fragments.extend(sub_fragments)
        measurements.extend(sub_measurements)
        # Shift the remainder's relative mapping past the first fragment
        mapping.extend(RowMapping(m.from_row + split_index, m.to_offset + first.node_size)
                       for m in sub_mapping)

    return fragments, measurements, mapping


def optimise_fragments(fragments: Sequence[Node],
                       measurements: Sequence[TableMeasurement],
                       available_height: float,
                       page_height: float) -> Tuple[List[Node], List[TableMeasurement]]:
    """Rebalance rows between consecutive fragments of one group.

    Fragments are visited once, front to back. A fragment that overflows its
    budget pushes its minimal trailing run of rows to the next fragment
    (creating one when needed); otherwise a fragment with spare room pulls
    the largest leading run of the next fragment's rows that still fits.
    Fragments left without rows are dropped. Inputs are not modified.
    """
    if not fragments:
        return [], []
    # Work on (rows, heights) pairs; only the not-yet-visited tail is rewritten
    pending: List[Tuple[Tuple[Node, ...], Tuple[float, ...]]] = [
        (fragment.content, measurement.row_heights) for fragment, measurement in zip(fragments, measurements)
    ]
    header_row_count = measurements[0].header_row_count
    template = fragments[0]
    out_fragments: List[Node] = []
    out_measurements: List[TableMeasurement] = []

    index = 0
    while index < len(pending):
        rows, heights = pending[index]
        if not rows:
            index += 1
            continue
        budget = available_height if index == 0 else page_height
        total = sum(heights)

        if total > budget and len(rows) > 1:
            keep = len(rows)
            while keep > 1 and sum(heights[:keep]) > budget:
                keep -= 1
            moved = (rows[keep:], heights[keep:])
            if index + 1 < len(pending):
                next_rows, next_heights = pending[index + 1]
                pending[index + 1] = (moved[0] + next_rows, moved[1] + next_heights)
            else:
                pending.append(moved)
            rows, heights = rows[:keep], heights[:keep]
        elif total < budget and index + 1 < len(pending):
            next_rows, next_heights = pending[index + 1]
            take = _fit_prefix(next_heights, budget - total, 0)
            if take:
                rows = rows + next_rows[:take]
                heights = heights + next_heights[:take]
                pending[index + 1] = (next_rows[take:], next_heights[take:])

        source = fragments[index] if index < len(fragments) else template
        out_measurements.append(TableMeasurement(row_heights=heights,
                                                 header_row_count=0 if out_fragments else header_row_count))
        out_fragments.append(source.copy(rows))
        index += 1

    return out_fragments, out_measurements


def merge_table_fragments(fragments: Sequence[Node]) -> Node:
    """Join consecutive fragments of one group back into a single table."""
    first = fragments[0]
    rows: List[Node] = []
    for fragment in fragments:
        rows.extend(fragment.content)
    return first.copy(rows)


def is_table_node(node: Optional[Node]) -> bool:
    return node is not None and node.type == NodeTypes.TABLE


def get_group_id(node: Node) -> Optional[str]:
    return node.attrs.get(GROUP_ID_ATTR) if is_table_node(node) else None


class TableHandler:
    """Owns the table measurement cache and the table-group registry.

    One handler is typically kept per editor and passed to every
    repagination pass; the cache only saves re-measuring unchanged tables.
    Only split tables are registered. A table that fits where it lands is
    placed as is, without a group id.
    """

    def __init__(self):
        self._measurement_cache: Dict[str, TableMeasurement] = {}
        self._table_groups: Dict[str, TableGroup] = {}

    @property
    def table_groups(self) -> Dict[str, TableGroup]:
        return self._table_groups

    def get_group(self, group_id: str) -> Optional[TableGroup]:
        return self._table_groups.get(group_id)

    def cached_measurement(self, table: Node) -> Optional[TableMeasurement]:
        return self._measurement_cache.get(table_cache_key(table))

    def measure_table(self, table: Node, pos: int, measurer) -> TableMeasurement:
        """Measure ``table``'s rows, reusing a cached measurement when unchanged."""
        cache_key = table_cache_key(table)
        cached = self._measurement_cache.get(cache_key)
        if cached is not None:
            return cached

        measurement = TableMeasurement.from_heights(measurer.row_heights(table, pos),
                                                    header_row_count=get_header_row_count(table))
        # Never cache a degenerate measurement
        if measurement.total_height > 0:
            self._measurement_cache[cache_key] = measurement
        return measurement

    def split_table_at_height(self,
                              table: Node,
                              available_height: float,
                              measurement: TableMeasurement,
                              page_height: float) -> TableSplitResult:
        """Split ``table`` into fragments and register them as one group.

        A table that already belongs to a group keeps that group's identity.
        """
        group_id = get_group_id(table) or new_group_id()
        fragments, measurements, mapping = split_table(table, measurement, available_height, page_height, group_id)

        previous = self._table_groups.get(group_id)
        original_table = previous.original_table if previous else table
        self._table_groups[group_id] = TableGroup(fragments=list(fragments), original_table=original_table)
        logger.debug(f"Split table into {len(fragments)} fragment(s) for group {group_id}")
        return TableSplitResult(fragments=fragments, row_mapping=mapping, group_id=group_id,
                                measurements=measurements)

    def optimise_tables(self,
                        fragments: Sequence[Node],
                        measurements: Sequence[TableMeasurement],
                        available_height: float,
                        page_height: float) -> Tuple[List[Node], List[TableMeasurement]]:
        optimised, optimised_measurements = optimise_fragments(fragments, measurements, available_height, page_height)
        if optimised:
            group_id = get_group_id(optimised[0])
            group = self._table_groups.get(group_id) if group_id else None
            if group is not None:
                group.fragments = list(optimised)
        return optimised, optimised_measurements

    def record_positions(self, group_id: str, positions: Sequence[int]) -> None:
        group = self._table_groups.get(group_id)
        if group is not None:
            group.positions = list(positions)

    def clear(self) -> None:
        self._measurement_cache.clear()
        self._table_groups.clear()
