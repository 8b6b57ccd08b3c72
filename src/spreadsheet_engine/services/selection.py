"""Anchor/head rectangular range selection."""

from __future__ import annotations

from dataclasses import dataclass

from spreadsheet_engine.services.addressing import decode, encode, normalize_corners
from spreadsheet_engine.sheet_document import CellAddress


@dataclass(frozen=True)
class RangeBounds:
    """Inclusive, normalized rectangle."""

    lo_col: int
    hi_col: int
    lo_row: int
    hi_row: int

    @property
    def width(self) -> int:
        return self.hi_col - self.lo_col + 1

    @property
    def height(self) -> int:
        return self.hi_row - self.lo_row + 1

    def contains(self, address: CellAddress) -> bool:
        return (
            self.lo_col <= address.col <= self.hi_col
            and self.lo_row <= address.row <= self.hi_row
        )

    def covers_column(self, col: int) -> bool:
        return self.lo_col <= col <= self.hi_col

    def cell_ids(self) -> list[str]:
        """Cell ids inside the rectangle, row-major."""
        return [
            encode(col, row)
            for row in range(self.lo_row, self.hi_row + 1)
            for col in range(self.lo_col, self.hi_col + 1)
        ]

    @property
    def label(self) -> str:
        return f"{encode(self.lo_col, self.lo_row)}:{encode(self.hi_col, self.hi_row)}"


class RangeSelection:
    """Tracks the fixed (anchor) and moving (head) corners of a range.

    Both corners are set or both are None. Setting the anchor starts a new
    one-cell range; setting the head without an anchor does the same.
    """

    def __init__(self) -> None:
        self._anchor: str | None = None
        self._head: str | None = None

    @property
    def anchor(self) -> str | None:
        return self._anchor

    @property
    def head(self) -> str | None:
        return self._head

    @property
    def is_active(self) -> bool:
        return self._anchor is not None

    def set_anchor(self, cell_id: str | None) -> None:
        if cell_id is None:
            self.clear()
            return
        decode(cell_id)
        self._anchor = cell_id
        self._head = cell_id

    def set_head(self, cell_id: str | None) -> None:
        if cell_id is None:
            self.clear()
            return
        decode(cell_id)
        if self._anchor is None:
            self._anchor = cell_id
        self._head = cell_id

    def clear(self) -> None:
        self._anchor = None
        self._head = None

    @property
    def has_multiple_cells(self) -> bool:
        return self.is_active and self._anchor != self._head

    def bounds(self) -> RangeBounds | None:
        """Normalized rectangle, or None when no range is active."""
        if self._anchor is None or self._head is None:
            return None
        low, high = normalize_corners(decode(self._anchor), decode(self._head))
        return RangeBounds(
            lo_col=low.col, hi_col=high.col, lo_row=low.row, hi_row=high.row
        )

    def contains(self, address: CellAddress) -> bool:
        bounds = self.bounds()
        return bounds is not None and bounds.contains(address)
