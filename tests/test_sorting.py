"""Tests for row sorting and header-click toggling."""

from __future__ import annotations

from workboard.models import SortDirection
from workboard.workboards.sorting import compare, sort_rows, toggle_sort

ROWS = [
    {"id": "a", "name": "beta", "value": 300, "close_date": "2026-12-01"},
    {"id": "b", "name": "Alpha", "value": None, "close_date": "2026-10-01"},
    {"id": "c", "name": "gamma", "value": 100, "close_date": None},
    {"id": "d", "name": "alpha", "value": 300, "close_date": "2026-11-01"},
]


def _ids(rows):
    return [r["id"] for r in rows]


class TestSortRows:
    def test_numeric_desc(self):
        assert _ids(sort_rows(ROWS, "value", "desc", entity_type="deals")) == ["a", "d", "c", "b"]

    def test_missing_number_sorts_as_zero(self):
        assert _ids(sort_rows(ROWS, "value", "asc", entity_type="deals"))[0] == "b"

    def test_text_case_insensitive_and_stable(self):
        assert _ids(sort_rows(ROWS, "name", SortDirection.ASC, entity_type="deals")) == [
            "b", "d", "a", "c"]

    def test_ties_keep_input_order_both_directions(self):
        asc = _ids(sort_rows(ROWS, "value", "asc", entity_type="deals"))
        desc = _ids(sort_rows(ROWS, "value", "desc", entity_type="deals"))
        assert asc.index("a") < asc.index("d")
        assert desc.index("a") < desc.index("d")

    def test_dates(self):
        assert _ids(sort_rows(ROWS, "close_date", "asc", entity_type="deals")) == [
            "c", "b", "d", "a"]

    def test_idempotent(self):
        once = sort_rows(ROWS, "value", "desc", entity_type="deals")
        twice = sort_rows(once, "value", "desc", entity_type="deals")
        assert once == twice

    def test_unknown_field_keeps_order(self):
        assert _ids(sort_rows(ROWS, "bogus", "asc", entity_type="deals")) == _ids(ROWS)

    def test_unsortable_field_keeps_order(self):
        assert _ids(sort_rows(ROWS, "spin_problem", "asc", entity_type="deals")) == _ids(ROWS)

    def test_no_field(self):
        assert _ids(sort_rows(ROWS, None, entity_type="deals")) == _ids(ROWS)

    def test_does_not_mutate_input(self):
        before = _ids(ROWS)
        sort_rows(ROWS, "value", "desc", entity_type="deals")
        assert _ids(ROWS) == before


class TestCompare:
    def test_directions(self):
        a, c = ROWS[0], ROWS[2]
        assert compare(a, c, "value", "asc", entity_type="deals") == 1
        assert compare(a, c, "value", "desc", entity_type="deals") == -1

    def test_equal(self):
        assert compare(ROWS[0], ROWS[3], "value", "asc", entity_type="deals") == 0

    def test_unknown_field(self):
        assert compare(ROWS[0], ROWS[1], "bogus", "asc", entity_type="deals") == 0


class TestToggleSort:
    def test_same_column_flips(self):
        assert toggle_sort("value", "asc", "value") == ("value", SortDirection.DESC)
        assert toggle_sort("value", SortDirection.DESC, "value") == ("value", SortDirection.ASC)

    def test_new_column_starts_ascending(self):
        assert toggle_sort("value", "desc", "name") == ("name", SortDirection.ASC)

    def test_from_unsorted(self):
        assert toggle_sort(None, None, "stage") == ("stage", SortDirection.ASC)
