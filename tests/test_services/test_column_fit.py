"""Tests for column auto-fit measurement."""

from spreadsheet_engine.services.column_fit import (
    PillowTextMeasurer,
    fit_width,
    is_text_column,
)


def char_width(text: str) -> float:
    return 7.0 * len(text)


class TestFitWidth:
    """Tests for fit_width."""

    def test_widest_text_plus_padding(self) -> None:
        assert fit_width(["ab", "abcd", "a"], char_width, padding=16, minimum=15) == 44.0

    def test_never_below_minimum(self) -> None:
        assert fit_width(["a"], char_width, padding=0, minimum=15) == 15

    def test_empty_column(self) -> None:
        assert fit_width(["", ""], char_width, padding=16, minimum=15) == 16.0


class TestIsTextColumn:
    """Tests for is_text_column."""

    def test_numeric_column(self) -> None:
        assert not is_text_column(["1", "2.5", ""])

    def test_blank_column(self) -> None:
        assert not is_text_column(["", "  "])

    def test_text_column(self) -> None:
        assert is_text_column(["1", "Oslo"])


class TestPillowTextMeasurer:
    """Tests for the Pillow-backed measurer."""

    def test_longer_text_is_wider(self) -> None:
        measure = PillowTextMeasurer(font_size=14)
        assert measure("") == 0.0
        assert 0 < measure("i") < measure("a much longer piece of text")

    def test_larger_font_is_wider(self) -> None:
        assert PillowTextMeasurer(28)("Header") > PillowTextMeasurer(10)("Header")
