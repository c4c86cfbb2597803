"""Tests for table measurement, splitting and fragment rebalancing."""

import pytest

from pageflow.measure import HeightMeasurer, StaticLayoutHost
from pageflow.model import table, table_row
from pageflow.tables import (
    RowMapping,
    TableHandler,
    TableMeasurement,
    get_group_id,
    get_header_row_count,
    merge_table_fragments,
    optimise_fragments,
    split_table,
    table_cache_key,
)


def make_table(count, **attrs):
    return table(*[table_row(f"r{i}") for i in range(count)], **attrs)


def row_texts(fragment):
    return [row.text_content for row in fragment.content]


def measured(fragment, height=10, header_row_count=0):
    return TableMeasurement.from_heights([height] * fragment.child_count, header_row_count=header_row_count)


def test_measurement_totals():
    m = TableMeasurement.from_heights([10, 20, 30], header_row_count=1)
    assert m.cumulative_heights == (10, 30, 60)
    assert m.total_height == 60
    assert m.slice(1).row_heights == (20, 30)
    assert m.slice(1).header_row_count == 0


def test_header_row_count_defaults_to_one():
    assert get_header_row_count(make_table(2)) == 1
    assert get_header_row_count(make_table(2, headerRows=2)) == 2


def test_table_that_fits_is_not_split():
    t = make_table(3)
    fragments, measurements, mapping = split_table(t, measured(t), 100, 100, "g")
    assert len(fragments) == 1
    assert row_texts(fragments[0]) == ["r0", "r1", "r2"]
    assert get_group_id(fragments[0]) == "g"
    assert mapping == [RowMapping(0, 0)]


def test_split_into_two_fragments():
    t = make_table(5)
    fragments, measurements, mapping = split_table(t, measured(t, header_row_count=1), 25, 30, "g")
    assert [row_texts(f) for f in fragments] == [["r0", "r1"], ["r2", "r3", "r4"]]
    assert [m.total_height for m in measurements] == [20, 30]
    assert measurements[0].header_row_count == 1
    assert measurements[1].header_row_count == 0
    assert mapping == [RowMapping(0, 0), RowMapping(2, fragments[0].node_size)]
    assert all(get_group_id(f) == "g" for f in fragments)


def test_recursive_split_uses_page_height():
    t = make_table(7)
    fragments, measurements, mapping = split_table(t, measured(t), 15, 20, "g")
    assert [f.child_count for f in fragments] == [1, 2, 2, 2]
    assert [m.from_row for m in mapping] == [0, 1, 3, 5]
    offset = 0
    for fragment, row_map in zip(fragments, mapping):
        assert row_map.to_offset == offset
        offset += fragment.node_size


def test_first_fragment_keeps_header_rows_even_when_they_overflow():
    t = make_table(4, headerRows=2)
    fragments, _, _ = split_table(t, measured(t, header_row_count=2), 5, 100, "g")
    assert fragments[0].child_count == 2


def test_split_conserves_rows():
    t = make_table(23)
    heights = TableMeasurement.from_heights([7 + (i % 5) * 3 for i in range(23)])
    fragments, measurements, _ = split_table(t, heights, 33, 41, "g")
    assert merge_table_fragments(fragments).content == t.content
    assert sum(m.total_height for m in measurements) == pytest.approx(heights.total_height)
    for m in measurements[1:]:
        assert m.total_height <= 41 or len(m.row_heights) == 1


def test_split_does_not_mutate_input():
    t = make_table(5)
    before = t.content
    split_table(t, measured(t), 25, 30, "g")
    assert t.content == before
    assert "groupId" not in t.attrs


class TestOptimiseFragments:

    def fragments(self, *counts):
        rows = make_table(sum(counts)).content
        out, start = [], 0
        for count in counts:
            out.append(table(*rows[start:start + count], groupId="g"))
            start += count
        return out

    def test_underfull_fragment_pulls_rows_forward(self):
        frags = self.fragments(2, 3)
        out, measurements = optimise_fragments(frags, [measured(f, header_row_count=1) for f in frags], 40, 30)
        assert [f.child_count for f in out] == [4, 1]
        assert measurements[0].header_row_count == 1
        assert measurements[1].header_row_count == 0

    def test_overflowing_fragment_pushes_rows_back(self):
        frags = self.fragments(4, 1)
        out, _ = optimise_fragments(frags, [measured(f) for f in frags], 25, 30)
        assert [f.child_count for f in out] == [2, 3]

    def test_overflow_creates_new_fragment(self):
        frags = self.fragments(2, 4)
        out, _ = optimise_fragments(frags, [measured(f) for f in frags], 20, 30)
        assert [f.child_count for f in out] == [2, 3, 1]
        assert all(get_group_id(f) == "g" for f in out)

    def test_emptied_fragment_is_dropped(self):
        frags = self.fragments(3, 1)
        out, _ = optimise_fragments(frags, [measured(f) for f in frags], 40, 30)
        assert [f.child_count for f in out] == [4]

    def test_rows_are_conserved_and_inputs_untouched(self):
        frags = self.fragments(3, 5, 2)
        snapshot = [f.content for f in frags]
        out, _ = optimise_fragments(frags, [measured(f) for f in frags], 35, 50)
        assert merge_table_fragments(out).content == merge_table_fragments(frags).content
        assert [f.content for f in frags] == snapshot

    def test_no_fragments(self):
        assert optimise_fragments([], [], 10, 10) == ([], [])


class TestTableHandler:

    def setup_method(self):
        self.handler = TableHandler()
        self.measurer = HeightMeasurer(StaticLayoutHost({"table_row": 10}))

    def test_measure_caches_by_structure(self):
        t = make_table(3)
        m = self.handler.measure_table(t, 0, self.measurer)
        assert m.row_heights == (10, 10, 10)
        assert m.header_row_count == 1
        assert self.handler.cached_measurement(make_table(3)) == m
        assert self.handler.cached_measurement(make_table(4)) is None

    def test_degenerate_measurement_is_not_cached(self):
        t = table()
        m = self.handler.measure_table(t, 0, self.measurer)
        assert m.total_height == 0
        assert self.handler.cached_measurement(t) is None

    def test_cache_key_changes_with_content(self):
        assert table_cache_key(make_table(2)) == table_cache_key(make_table(2))
        assert table_cache_key(make_table(2)) != table_cache_key(make_table(2, headerRows=2))
        changed = table(table_row("r0"), table_row("rX"))
        assert table_cache_key(make_table(2)) != table_cache_key(changed)

    def test_split_registers_group(self):
        t = make_table(5)
        result = self.handler.split_table_at_height(t, 25, measured(t, header_row_count=1), 30)
        assert result.group_id.startswith("table-group-")
        group = self.handler.get_group(result.group_id)
        assert group.original_table is t
        assert len(group.fragments) == 2

    def test_split_inherits_existing_group(self):
        t = make_table(5, groupId="table-group-existing")
        result = self.handler.split_table_at_height(t, 25, measured(t), 30)
        assert result.group_id == "table-group-existing"
        assert all(get_group_id(f) == "table-group-existing" for f in result.fragments)

    def test_record_positions_and_clear(self):
        t = make_table(5)
        result = self.handler.split_table_at_height(t, 25, measured(t), 30)
        self.handler.record_positions(result.group_id, [3, 40])
        assert self.handler.get_group(result.group_id).positions == [3, 40]
        self.handler.clear()
        assert self.handler.table_groups == {}
