"""Tests for type-aware row sorting."""

from spreadsheet_engine.models import SortDirection
from spreadsheet_engine.services.sorter import (
    is_numeric_column,
    plan_sort,
    sorted_row_order,
)


class TestIsNumericColumn:
    """Tests for numeric column detection."""

    def test_all_numbers(self) -> None:
        assert is_numeric_column(["1", " 2.5 ", "-3"])

    def test_blanks_ignored(self) -> None:
        assert is_numeric_column(["1", "", "  "])

    def test_any_text_makes_text_column(self) -> None:
        assert not is_numeric_column(["1", "two"])


class TestSortedRowOrder:
    """Tests for sorted_row_order."""

    def test_numeric_ascending(self) -> None:
        assert sorted_row_order([0, 1, 2], ["50", "0", "10"], SortDirection.ASC) == [1, 2, 0]

    def test_numeric_not_lexicographic(self) -> None:
        assert sorted_row_order([0, 1, 2], ["9", "10", "100"], SortDirection.ASC) == [0, 1, 2]

    def test_descending(self) -> None:
        assert sorted_row_order([0, 1, 2], ["50", "0", "10"], SortDirection.DESC) == [0, 2, 1]

    def test_text_case_insensitive(self) -> None:
        order = sorted_row_order([0, 1, 2], ["banana", "Apple", "cherry"], SortDirection.ASC)
        assert order == [1, 0, 2]

    def test_stable_on_ties(self) -> None:
        rows = [0, 1, 2, 3]
        values = ["b", "a", "b", "a"]
        assert sorted_row_order(rows, values, SortDirection.ASC) == [1, 3, 0, 2]
        assert sorted_row_order(rows, values, SortDirection.DESC) == [0, 2, 1, 3]

    def test_blanks_last_in_both_directions(self) -> None:
        rows = [0, 1, 2, 3]
        values = ["", "2", "", "1"]
        assert sorted_row_order(rows, values, SortDirection.ASC) == [3, 1, 0, 2]
        assert sorted_row_order(rows, values, SortDirection.DESC) == [1, 3, 0, 2]

    def test_row_offsets_preserved(self) -> None:
        assert sorted_row_order([4, 5], ["z", "y"], SortDirection.ASC) == [5, 4]

    def test_explicit_text_comparison(self) -> None:
        values = ["9", "10", "100"]
        assert sorted_row_order([0, 1, 2], values, SortDirection.ASC, numeric=False) == [
            1,
            2,
            0,
        ]


class TestPlanSort:
    """Tests for plan_sort."""

    def test_whole_rows_move(self) -> None:
        cells = {"A1": "50", "B1": "x", "A2": "0", "B2": "y", "A3": "10", "B3": "z"}
        plan = plan_sort(cells, 0, [0, 1, 2], 2, SortDirection.ASC)

        assert plan.numeric
        assert plan.order == (1, 2, 0)
        assert plan.after == {
            "A1": "0",
            "B1": "y",
            "A2": "10",
            "B2": "z",
            "A3": "50",
            "B3": "x",
        }
        assert plan.before == {key: cells[key] for key in plan.after}

    def test_text_column_plan(self) -> None:
        cells = {"A1": "b", "A2": "10", "A3": "a"}
        plan = plan_sort(cells, 0, [0, 1, 2], 1, SortDirection.ASC)
        assert not plan.numeric
        assert plan.order == (1, 2, 0)

    def test_absent_cells_tracked_as_none(self) -> None:
        cells = {"A1": "b", "A2": "a", "B2": "only-in-row-2"}
        plan = plan_sort(cells, 0, [0, 1], 2, SortDirection.ASC)
        assert plan.after["B1"] == "only-in-row-2"
        assert plan.before["B1"] is None
        assert plan.after["B2"] is None

    def test_identity(self) -> None:
        plan = plan_sort({"A1": "1", "A2": "2"}, 0, [0, 1], 1, SortDirection.ASC)
        assert plan.is_identity
