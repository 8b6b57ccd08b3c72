"""A1-style cell addressing and range resolution.

Columns are rendered as bijective base-26 letters (A=0, Z=25, AA=26, ...)
and rows as 1-based integers. Header cells have no string form; they are
addressed with :class:`HeaderAddress` by column index alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from spreadsheet_engine.sheet_document import CellAddress
from spreadsheet_engine.utils.exceptions import AddressError, ErrorCode, RangeError

CELL_ID_PATTERN = re.compile(r"^([A-Z]+)([0-9]+)$")
RANGE_PATTERN = re.compile(r"^([A-Z]+[0-9]+):([A-Z]+[0-9]+)$")

_ALPHABET_SIZE = 26


def column_label(col: int) -> str:
    """Render a zero-based column index as letters (0 -> "A", 27 -> "AB")."""
    if col < 0:
        raise AddressError(
            f"Column index must be non-negative, got {col}",
            error_code=ErrorCode.NEGATIVE_COORDINATE,
        )
    label = ""
    n = col + 1
    while n > 0:
        n, remainder = divmod(n - 1, _ALPHABET_SIZE)
        label = chr(ord("A") + remainder) + label
    return label


def column_index(label: str) -> int:
    """Inverse of :func:`column_label`."""
    if not label or not label.isascii() or not label.isupper() or not label.isalpha():
        raise AddressError(f"Invalid column label: {label}", reference=label)
    result = 0
    for char in label:
        result = result * _ALPHABET_SIZE + (ord(char) - ord("A") + 1)
    return result - 1


def encode(col: int, row: int) -> str:
    """Convert a zero-based (col, row) pair to its cell id.

    Raises:
        AddressError: If either coordinate is negative.
    """
    if row < 0:
        raise AddressError(
            f"Row index must be non-negative, got {row}",
            error_code=ErrorCode.NEGATIVE_COORDINATE,
        )
    return f"{column_label(col)}{row + 1}"


def encode_address(address: CellAddress) -> str:
    return encode(address.col, address.row)


def decode(cell_id: str) -> CellAddress:
    """Parse a cell id such as ``"AB12"``.

    Raises:
        AddressError: If the id does not match ``^[A-Z]+[0-9]+$`` or names row 0.
    """
    match = CELL_ID_PATTERN.match(cell_id)
    if not match:
        raise AddressError(f"Invalid cell ID format: {cell_id}", reference=cell_id)
    letters, digits = match.groups()
    row = int(digits) - 1
    if row < 0:
        raise AddressError(
            f"Row numbers start at 1: {cell_id}",
            error_code=ErrorCode.NEGATIVE_COORDINATE,
            reference=cell_id,
        )
    return CellAddress(col=column_index(letters), row=row)


def is_cell_id(text: str) -> bool:
    """Check whether text is a well-formed cell id."""
    match = CELL_ID_PATTERN.match(text)
    return bool(match) and int(match.group(2)) > 0


def is_range_reference(text: str) -> bool:
    """Check whether text is a well-formed ``A1:B2`` range."""
    match = RANGE_PATTERN.match(text)
    return bool(match) and is_cell_id(match.group(1)) and is_cell_id(match.group(2))


def range_bounds(reference: str) -> tuple[CellAddress, CellAddress]:
    """Return the normalized (top-left, bottom-right) corners of a reference.

    A bare cell id is treated as a one-cell range. Corner order is
    irrelevant on both axes.

    Raises:
        RangeError: If the reference is neither a cell id nor a range.
    """
    if is_cell_id(reference):
        address = decode(reference)
        return address, address
    match = RANGE_PATTERN.match(reference)
    if not match or not is_range_reference(reference):
        raise RangeError(reference)
    first = decode(match.group(1))
    second = decode(match.group(2))
    return normalize_corners(first, second)


def normalize_corners(
    first: CellAddress, second: CellAddress
) -> tuple[CellAddress, CellAddress]:
    """Order two corners into (low, high) on both axes."""
    low = CellAddress(col=min(first.col, second.col), row=min(first.row, second.row))
    high = CellAddress(col=max(first.col, second.col), row=max(first.row, second.row))
    return low, high


def iter_range(low: CellAddress, high: CellAddress) -> Iterator[CellAddress]:
    """Addresses of the rectangle from ``low`` to ``high`` in row-major order."""
    for row in range(low.row, high.row + 1):
        for col in range(low.col, high.col + 1):
            yield CellAddress(col=col, row=row)


def resolve_reference(reference: str) -> Iterator[CellAddress]:
    """Expand a cell id or range into addresses in row-major order.

    Rows are visited low to high, and within each row columns low to high.
    The reference is validated immediately; addresses are produced lazily.

    Raises:
        RangeError: If the reference is malformed.
    """
    low, high = range_bounds(reference)
    return iter_range(low, high)


def range_reference(anchor: str, head: str) -> str:
    """Normalized ``A1:B3`` text for the rectangle spanned by two cell ids."""
    low, high = normalize_corners(decode(anchor), decode(head))
    return f"{encode_address(low)}:{encode_address(high)}"
