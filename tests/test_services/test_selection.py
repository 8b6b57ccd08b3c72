"""Tests for the anchor/head range selection model."""

import pytest

from spreadsheet_engine.services.selection import RangeBounds, RangeSelection
from spreadsheet_engine.sheet_document import CellAddress
from spreadsheet_engine.utils.exceptions import AddressError


class TestRangeBounds:
    """Tests for RangeBounds geometry."""

    def test_dimensions_and_label(self) -> None:
        bounds = RangeBounds(lo_col=0, hi_col=1, lo_row=0, hi_row=2)
        assert bounds.width == 2
        assert bounds.height == 3
        assert bounds.label == "A1:B3"

    def test_cell_ids_row_major(self) -> None:
        bounds = RangeBounds(lo_col=1, hi_col=2, lo_row=0, hi_row=1)
        assert bounds.cell_ids() == ["B1", "C1", "B2", "C2"]

    def test_contains_and_covers(self) -> None:
        bounds = RangeBounds(lo_col=1, hi_col=2, lo_row=1, hi_row=1)
        assert bounds.contains(CellAddress(2, 1))
        assert not bounds.contains(CellAddress(2, 2))
        assert bounds.covers_column(1)
        assert not bounds.covers_column(0)


class TestRangeSelection:
    """Tests for RangeSelection state transitions."""

    def test_inactive_by_default(self) -> None:
        selection = RangeSelection()
        assert not selection.is_active
        assert selection.bounds() is None
        assert not selection.has_multiple_cells
        assert not selection.contains(CellAddress(0, 0))

    def test_anchor_starts_single_cell_range(self) -> None:
        selection = RangeSelection()
        selection.set_anchor("B2")
        assert selection.anchor == "B2"
        assert selection.head == "B2"
        assert not selection.has_multiple_cells

    def test_head_extends_range(self) -> None:
        selection = RangeSelection()
        selection.set_anchor("C3")
        selection.set_head("A1")
        assert selection.has_multiple_cells
        assert selection.bounds() == RangeBounds(lo_col=0, hi_col=2, lo_row=0, hi_row=2)
        assert selection.contains(CellAddress(1, 1))

    def test_head_without_anchor_sets_both(self) -> None:
        selection = RangeSelection()
        selection.set_head("D4")
        assert selection.anchor == "D4"
        assert selection.head == "D4"

    def test_none_clears_both_corners(self) -> None:
        selection = RangeSelection()
        selection.set_anchor("A1")
        selection.set_head("B2")
        selection.set_head(None)
        assert selection.anchor is None
        assert selection.head is None

    def test_malformed_id_rejected(self) -> None:
        selection = RangeSelection()
        with pytest.raises(AddressError):
            selection.set_anchor("1A")
        assert not selection.is_active
