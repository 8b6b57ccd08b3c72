"""Keyboard navigation between cells.

Moving left stops at column 0 and moving up from the first data row lands
on the header. Moving right or down is unbounded so the sheet can grow.
"""

from __future__ import annotations

from spreadsheet_engine.services.addressing import decode
from spreadsheet_engine.sheet_document import Address, CellAddress, HeaderAddress

NAV_KEYS = frozenset({"ArrowUp", "ArrowDown", "ArrowLeft", "ArrowRight", "Tab", "Enter"})


def keyboard_move(current: str | HeaderAddress, key: str, shift: bool = False) -> Address | None:
    """Compute the destination of a navigation key press.

    Args:
        current: Cell id or header the cursor is on.
        key: Key name, e.g. ``"ArrowUp"`` or ``"Tab"``.
        shift: Whether Shift is held (reverses Tab and Enter).

    Returns:
        The destination address, or None when the key does not navigate.
    """
    if key not in NAV_KEYS:
        return None

    if isinstance(current, HeaderAddress):
        col, row = current.col, -1
    else:
        address = decode(current)
        col, row = address.col, address.row

    if key == "ArrowRight":
        col += 1
    elif key == "ArrowLeft":
        col = max(0, col - 1)
    elif key == "ArrowDown":
        row += 1
    elif key == "ArrowUp":
        row = max(-1, row - 1)
    elif key == "Tab":
        col = max(0, col - 1) if shift else col + 1
    elif key == "Enter":
        row = max(-1, row - 1) if shift else row + 1

    if row == -1:
        return HeaderAddress(col=col)
    return CellAddress(col=col, row=row)
