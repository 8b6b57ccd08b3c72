"""Dataclasses representing the in-memory sheet."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CellAddress:
    """Zero-based (column, row) position of a data cell."""

    col: int
    row: int

    def __post_init__(self) -> None:
        if self.col < 0 or self.row < 0:
            raise ValueError(
                f"Cell coordinates must be non-negative, got col={self.col}, row={self.row}"
            )


@dataclass(frozen=True)
class HeaderAddress:
    """Position of a header cell; headers are addressed by column only."""

    col: int

    def __post_init__(self) -> None:
        if self.col < 0:
            raise ValueError(f"Header column must be non-negative, got {self.col}")


Address = CellAddress | HeaderAddress


@dataclass
class Column:
    """Column metadata; ``key`` joins the column to external item data."""

    name: str
    key: str
    width: float | None = None


@dataclass
class RowMeta:
    """Per-row metadata."""

    height: float | None = None


@dataclass
class SheetData:
    """Everything produced by the input transform."""

    cells: dict[str, str] = field(default_factory=dict)
    columns: list[Column] = field(default_factory=list)
    row_count: int = 0
    col_count: int = 0


def blank_column(index: int) -> Column:
    """Placeholder column used when metadata is padded past its length."""
    return Column(name="", key=f"__blank_{index}")
