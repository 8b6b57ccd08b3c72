"""Tests for A1 addressing and range resolution."""

import pytest

from spreadsheet_engine.services.addressing import (
    column_index,
    column_label,
    decode,
    encode,
    is_cell_id,
    is_range_reference,
    range_bounds,
    range_reference,
    resolve_reference,
)
from spreadsheet_engine.sheet_document import CellAddress
from spreadsheet_engine.utils.exceptions import AddressError, ErrorCode, RangeError


class TestEncode:
    """Tests for converting coordinates to cell ids."""

    def test_first_cell(self) -> None:
        assert encode(0, 0) == "A1"

    def test_two_letter_column(self) -> None:
        assert encode(27, 0) == "AB1"

    @pytest.mark.parametrize(
        ("col", "label"),
        [(0, "A"), (25, "Z"), (26, "AA"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_column_labels(self, col: int, label: str) -> None:
        """Columns use bijective base-26 with no zero digit."""
        assert column_label(col) == label
        assert column_index(label) == col

    def test_row_is_one_based(self) -> None:
        assert encode(2, 9) == "C10"

    def test_negative_coordinates_rejected(self) -> None:
        with pytest.raises(AddressError) as exc_info:
            encode(-1, 0)
        assert exc_info.value.error_code == ErrorCode.NEGATIVE_COORDINATE

        with pytest.raises(AddressError):
            encode(0, -1)


class TestDecode:
    """Tests for parsing cell ids."""

    def test_two_letter_column(self) -> None:
        assert decode("AA1") == CellAddress(col=26, row=0)

    def test_round_trip_over_grid(self) -> None:
        for col in range(0, 800, 7):
            for row in range(0, 50, 3):
                assert decode(encode(col, row)) == CellAddress(col=col, row=row)

    @pytest.mark.parametrize("bad", ["", "a1", "1A", "A", "A1B", "A-1", " A1", "A1:B2"])
    def test_malformed_ids_raise(self, bad: str) -> None:
        with pytest.raises(AddressError) as exc_info:
            decode(bad)
        assert exc_info.value.error_code == ErrorCode.INVALID_CELL_ID
        assert exc_info.value.reference == bad

    def test_row_zero_rejected(self) -> None:
        with pytest.raises(AddressError):
            decode("A0")

    def test_is_cell_id(self) -> None:
        assert is_cell_id("B12")
        assert not is_cell_id("B0")
        assert not is_cell_id("b12")


class TestRanges:
    """Tests for range parsing and expansion."""

    def test_is_range_reference(self) -> None:
        assert is_range_reference("A1:B2")
        assert not is_range_reference("A1")
        assert not is_range_reference("A1:")
        assert not is_range_reference("A0:B2")

    def test_bounds_are_order_independent(self) -> None:
        assert range_bounds("C3:A1") == range_bounds("A1:C3")
        assert range_bounds("A3:C1") == (CellAddress(0, 0), CellAddress(2, 2))

    def test_single_cell_is_one_cell_range(self) -> None:
        assert list(resolve_reference("B2")) == [CellAddress(col=1, row=1)]

    def test_resolve_is_row_major(self) -> None:
        """Rows low to high, columns low to high within a row."""
        assert list(resolve_reference("B2:A1")) == [
            CellAddress(0, 0),
            CellAddress(1, 0),
            CellAddress(0, 1),
            CellAddress(1, 1),
        ]

    def test_resolve_is_lazy(self) -> None:
        addresses = resolve_reference("A1:ZZZ9999999")
        assert next(addresses) == CellAddress(0, 0)
        assert next(addresses) == CellAddress(1, 0)

    def test_malformed_range_raises(self) -> None:
        with pytest.raises(RangeError) as exc_info:
            resolve_reference("A1-B2")
        assert exc_info.value.error_code == ErrorCode.INVALID_RANGE
        assert "Expected format: A1:A10" in exc_info.value.message

    def test_range_reference_normalizes(self) -> None:
        assert range_reference("B3", "A1") == "A1:B3"
        assert range_reference("A3", "B1") == "A1:B3"
