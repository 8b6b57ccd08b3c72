"""Column auto-fit based on rendered text width."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import lru_cache

from PIL import ImageFont

from spreadsheet_engine.services.cell_values import is_numeric

TextMeasurer = Callable[[str], float]


@lru_cache(maxsize=8)
def _default_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


class PillowTextMeasurer:
    """Measures text with Pillow's bundled default font."""

    def __init__(self, font_size: int) -> None:
        self.font_size = font_size

    def __call__(self, text: str) -> float:
        if not text:
            return 0.0
        return float(_default_font(self.font_size).getlength(text))


def fit_width(
    texts: Iterable[str],
    measure: TextMeasurer,
    padding: float,
    minimum: float,
) -> float:
    """Width needed to show the widest text, never below ``minimum``."""
    widest = max((measure(text) for text in texts if text), default=0.0)
    return max(minimum, widest + padding)


def is_text_column(values: Iterable[str]) -> bool:
    """True when the column holds at least one non-blank, non-numeric value."""
    return any(value.strip() and not is_numeric(value) for value in values)
