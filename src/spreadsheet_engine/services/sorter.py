"""Stable, type-aware row sorting.

A span of rows is ordered by the raw values in one column. The column is
compared numerically when every non-blank value in the span is a finite
number, and as case-insensitive text otherwise. Blank values always go to
the end of the span. Whole rows move together.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from spreadsheet_engine.models import SortDirection
from spreadsheet_engine.services.addressing import encode
from spreadsheet_engine.services.cell_values import parse_number


@dataclass(frozen=True)
class SortPlan:
    """Result of planning a sort: new row order and the cell diff applying it."""

    rows: tuple[int, ...]
    order: tuple[int, ...]
    numeric: bool
    before: dict[str, str | None]
    after: dict[str, str | None]

    @property
    def is_identity(self) -> bool:
        return self.rows == self.order


def is_numeric_column(values: Sequence[str]) -> bool:
    """True when every non-blank value parses as a finite number."""
    return all(parse_number(v) is not None for v in values if v.strip())


def sorted_row_order(
    rows: Sequence[int],
    values: Sequence[str],
    direction: SortDirection,
    numeric: bool | None = None,
) -> list[int]:
    """Order row indices by their values.

    Args:
        rows: Row indices in their current order.
        values: Raw value of the sort column for each row, aligned with rows.
        direction: Ascending or descending.
        numeric: Compare as numbers; detected from ``values`` when None.

    Returns:
        The row indices in sorted order; ties keep their relative order.
    """
    if numeric is None:
        numeric = is_numeric_column(values)
    filled: list[tuple[Any, int]] = []
    blank: list[int] = []
    for row, value in zip(rows, values, strict=True):
        if not value.strip():
            blank.append(row)
        elif numeric:
            filled.append((parse_number(value), row))
        else:
            filled.append(((value.casefold(), value), row))

    reverse = direction is SortDirection.DESC
    filled.sort(key=lambda pair: pair[0], reverse=reverse)
    return [row for _, row in filled] + blank


def plan_sort(
    cells: Mapping[str, str],
    col_index: int,
    rows: Sequence[int],
    width: int,
    direction: SortDirection,
) -> SortPlan:
    """Compute the cell writes that reorder ``rows`` by column ``col_index``.

    Args:
        cells: Current sparse cell map.
        col_index: Column whose values decide the order.
        rows: Contiguous row indices to reorder, ascending.
        width: Number of columns moved with each row.
        direction: Ascending or descending.
    """
    values = [cells.get(encode(col_index, row), "") for row in rows]
    numeric = is_numeric_column(values)
    order = sorted_row_order(rows, values, direction, numeric)

    before: dict[str, str | None] = {}
    after: dict[str, str | None] = {}
    for target_row, source_row in zip(rows, order, strict=True):
        for col in range(width):
            target_id = encode(col, target_row)
            old = cells.get(target_id)
            new = cells.get(encode(col, source_row))
            if old is None and new is None:
                continue
            before[target_id] = old
            after[target_id] = new

    return SortPlan(
        rows=tuple(rows),
        order=tuple(order),
        numeric=numeric,
        before=before,
        after=after,
    )
