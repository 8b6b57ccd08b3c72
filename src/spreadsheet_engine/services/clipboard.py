"""Rectangular copy/paste blocks.

A block is a row-major list of rows of raw values. Blocks are exchanged
with the system clipboard as tab-separated columns and newline-separated
rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from spreadsheet_engine.services.addressing import encode
from spreadsheet_engine.services.selection import RangeBounds
from spreadsheet_engine.sheet_document import CellAddress

Block = list[list[str]]


def capture_block(cells: Mapping[str, str], bounds: RangeBounds) -> Block:
    """Copy the raw values inside a rectangle."""
    return [
        [cells.get(encode(col, row), "") for col in range(bounds.lo_col, bounds.hi_col + 1)]
        for row in range(bounds.lo_row, bounds.hi_row + 1)
    ]


def block_to_text(block: Block) -> str:
    return "\n".join("\t".join(row) for row in block)


def text_to_block(text: str) -> Block:
    """Parse tab/newline text into a rectangular block.

    A single trailing line break is ignored and short rows are padded with
    blanks so every row has the same width.
    """
    if text.endswith("\r\n"):
        text = text[:-2]
    elif text.endswith("\n"):
        text = text[:-1]
    rows = [line.split("\t") for line in text.replace("\r\n", "\n").split("\n")]
    width = max(len(row) for row in rows)
    return [row + [""] * (width - len(row)) for row in rows]


@dataclass(frozen=True)
class PastePlan:
    """Cell writes for a paste plus the bounds the sheet must grow to."""

    updates: dict[str, str]
    required_cols: int
    required_rows: int


def plan_paste(block: Block, anchor: CellAddress) -> PastePlan:
    """Lay a block out with its top-left corner at ``anchor``."""
    updates: dict[str, str] = {}
    width = 0
    for row_offset, row in enumerate(block):
        width = max(width, len(row))
        for col_offset, value in enumerate(row):
            updates[encode(anchor.col + col_offset, anchor.row + row_offset)] = value
    return PastePlan(
        updates=updates,
        required_cols=anchor.col + width,
        required_rows=anchor.row + len(block),
    )
