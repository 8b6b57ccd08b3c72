"""Numeric interpretation of raw cell text.

Raw values are always strings. Aggregates and the sort engine both need to
decide whether a string is a number, and formula results need to be turned
back into display strings; both conversions live here so they agree.
"""

from __future__ import annotations

import math
import re
from typing import Any

_DECIMAL_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_PREFIXED_PATTERN = re.compile(r"^0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")
_EXPONENT_PATTERN = re.compile(r"e([+-])0*(\d+)$")


def parse_number(text: str) -> float | None:
    """Parse trimmed cell text as a finite number.

    Accepts signed decimals with optional exponent, and unsigned ``0x``/``0o``/``0b``
    literals. Blank text, other text, and non-finite results yield None.
    """
    candidate = text.strip()
    if not candidate:
        return None
    if _DECIMAL_PATTERN.match(candidate):
        value = float(candidate)
    elif _PREFIXED_PATTERN.match(candidate):
        value = float(int(candidate, 0))
    else:
        return None
    return value if math.isfinite(value) else None


def is_numeric(text: str) -> bool:
    return parse_number(text) is not None


def format_number(value: float) -> str:
    """Render a number the way it is shown in a cell.

    Integral values drop the fractional part; exponents are not zero-padded.
    """
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    return _EXPONENT_PATTERN.sub(lambda m: f"e{m.group(1)}{m.group(2)}", text)


def stringify(value: Any) -> str:
    """Convert an external item value to raw cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return format_number(value)
    return str(value)
