"""Tests for formula parsing and aggregate evaluation."""

import pytest

from spreadsheet_engine.services.formula_engine import (
    AggregateFunction,
    FormulaEngine,
    FormulaRegistry,
    ParsedFormula,
    TokenType,
    available_formulas,
    evaluate_formula,
    formula_info,
    insert_range_reference,
    is_formula,
    parse_formula,
    tokenize,
)
from spreadsheet_engine.utils.exceptions import FormulaSyntaxError


@pytest.fixture
def cells() -> dict[str, str]:
    return {
        "A1": "10",
        "A2": "20",
        "A3": "30",
        "B1": "4",
        "B2": "hello",
        "B3": "",
        "B4": " 8 ",
        "C1": "1",
        "C2": "3",
    }


@pytest.fixture
def formula_engine(cells: dict[str, str]) -> FormulaEngine:
    return FormulaEngine(lambda cell_id: cells.get(cell_id, ""))


class TestIsFormula:
    """Tests for formula detection."""

    def test_leading_equals(self) -> None:
        assert is_formula("=SUM(A1)")
        assert is_formula("  =SUM(A1)")

    def test_plain_text(self) -> None:
        assert not is_formula("SUM(A1)")
        assert not is_formula("")
        assert not is_formula("a=b")


class TestTokenize:
    """Tests for the formula tokenizer."""

    def test_token_types(self) -> None:
        tokens = tokenize("=SUM(A1:B2)")
        assert [t.type for t in tokens] == [
            TokenType.EQUALS,
            TokenType.WORD,
            TokenType.LPAREN,
            TokenType.CELL,
            TokenType.COLON,
            TokenType.CELL,
            TokenType.RPAREN,
        ]

    def test_whitespace_skipped(self) -> None:
        tokens = tokenize("= SUM ( A1 )")
        assert [t.text for t in tokens] == ["=", "SUM", "(", "A1", ")"]

    def test_unexpected_character(self) -> None:
        with pytest.raises(FormulaSyntaxError) as exc_info:
            tokenize("=SUM(A1+A2)")
        assert exc_info.value.position == 7
        assert "Unexpected character '+'" in exc_info.value.message


class TestParseFormula:
    """Tests for classifying formula text."""

    def test_complete_call(self) -> None:
        assert parse_formula("=sum(A1:A3)") == ParsedFormula(name="SUM", args=("A1:A3",))

    def test_single_cell_argument(self) -> None:
        assert parse_formula("=MAX(B2)") == ParsedFormula(name="MAX", args=("B2",))

    @pytest.mark.parametrize(
        "text", ["=SUM(", "=SUM(A", "=SUM(A1", "=SUM(A1:", "=SUM(A1:A", "=SUM(A1:A5", "=SUM(A1,"]
    )
    def test_in_progress(self, text: str) -> None:
        assert parse_formula(text) is None

    @pytest.mark.parametrize(
        "text", ["=SUM", "=", "=SUM A1", "=(A1)", "=SUM(A1))", "=SUM(A1)x", "=SUM(a1)"]
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_formula(text)

    def test_missing_argument(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="Missing range argument"):
            parse_formula("=SUM()")


class TestEvaluate:
    """Tests for FormulaEngine.evaluate."""

    def test_sum_over_range(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=SUM(A1:A3)") == "60"

    def test_aggregates(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=AVERAGE(A1:A3)") == "20"
        assert formula_engine.evaluate("=MAX(A1:A3)") == "30"
        assert formula_engine.evaluate("=MIN(A1:A3)") == "10"
        assert formula_engine.evaluate("=MEDIAN(C1:C2)") == "2"

    def test_blank_and_text_ignored(self, formula_engine: FormulaEngine) -> None:
        """B2 is text and B3 is blank; B4 is trimmed."""
        assert formula_engine.evaluate("=SUM(B1:B4)") == "12"
        assert formula_engine.evaluate("=AVERAGE(B1:B4)") == "6"

    def test_empty_numeric_set_is_zero(self, formula_engine: FormulaEngine) -> None:
        for name in available_formulas():
            assert formula_engine.evaluate(f"={name}(Z1:Z9)") == "0"

    def test_case_insensitive_name(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=average(A1:A3)") == "20"

    def test_reversed_range(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=SUM(A3:A1)") == "60"

    def test_fractional_result(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=AVERAGE(C1:C2)") == "2"
        assert formula_engine.evaluate("=AVERAGE(A1:A2)") == "15"
        assert formula_engine.evaluate("=AVERAGE(B1:C1)") == "2.5"

    def test_in_progress_returned_verbatim(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=SUM(A1:A5") == "=SUM(A1:A5"

    def test_unknown_formula(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=FOO(A1:A3)") == "#ERROR: Unknown formula: FOO"

    def test_syntax_error_sentinel(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.evaluate("=SUM") == "#ERROR: Invalid formula format: =SUM"

    def test_too_many_arguments(self, formula_engine: FormulaEngine) -> None:
        assert (
            formula_engine.evaluate("=SUM(A1,A2)")
            == "#ERROR: SUM requires exactly one argument (range)"
        )

    def test_evaluate_formula_helper(self, cells: dict[str, str]) -> None:
        assert evaluate_formula("=SUM(A1:A2)", lambda cid: cells.get(cid, "")) == "30"

    def test_numeric_values_row_major(self, formula_engine: FormulaEngine) -> None:
        assert formula_engine.numeric_values("A1:B2") == [10.0, 4.0, 20.0]


class TestSparseRanges:
    """Tests for ranges larger than the cell map."""

    def test_huge_range_reads_only_present_cells(self, cells: dict[str, str]) -> None:
        read: list[str] = []

        def reader(cell_id: str) -> str:
            read.append(cell_id)
            return cells.get(cell_id, "")

        engine = FormulaEngine(reader, cells=cells)
        assert engine.evaluate("=SUM(A1:ZZZ9999999)") == "76"
        assert engine.evaluate("=MAX(A1:ZZZ9999999)") == "30"
        assert read == []

    def test_sparse_read_is_row_major(self, cells: dict[str, str]) -> None:
        engine = FormulaEngine(lambda cid: cells.get(cid, ""), cells=cells)
        assert engine.numeric_values("A1:Z100") == [10.0, 4.0, 1.0, 20.0, 3.0, 30.0, 8.0]

    def test_sparse_read_respects_bounds(self, cells: dict[str, str]) -> None:
        engine = FormulaEngine(lambda cid: cells.get(cid, ""), cells=cells)
        assert engine.numeric_values("C9999:B2") == [3.0, 8.0]

    def test_small_range_uses_reader(self, cells: dict[str, str]) -> None:
        read: list[str] = []

        def reader(cell_id: str) -> str:
            read.append(cell_id)
            return cells.get(cell_id, "")

        engine = FormulaEngine(reader, cells=cells)
        assert engine.evaluate("=SUM(A1:B1)") == "14"
        assert read == ["A1", "B1"]


class TestRegistry:
    """Tests for the aggregate registry and catalogue."""

    def test_available_formulas(self) -> None:
        assert available_formulas() == ["SUM", "AVERAGE", "MAX", "MIN", "MEDIAN"]

    def test_formula_info(self) -> None:
        info = formula_info("median")
        assert info is not None
        assert info.syntax == "MEDIAN(range)"
        assert info.description
        assert formula_info("NOPE") is None

    def test_custom_function(self, cells: dict[str, str]) -> None:
        registry = FormulaRegistry()
        registry.register(
            AggregateFunction(
                name="count",
                description="Counts numbers in a range",
                syntax="COUNT(range)",
                aggregate=lambda numbers: float(len(numbers)),
            )
        )
        engine = FormulaEngine(lambda cid: cells.get(cid, ""), registry)
        assert "COUNT" in registry
        assert engine.evaluate("=COUNT(B1:B4)") == "2"


class TestInsertRangeReference:
    """Tests for inserting a picked range into formula text."""

    def test_insert_at_cursor(self) -> None:
        assert insert_range_reference("=SUM()", 5, "A1:B2") == ("=SUM(A1:B2)", 10)

    def test_replace_existing_range(self) -> None:
        assert insert_range_reference("=SUM(A1:A3", 10, "B1:B4") == ("=SUM(B1:B4", 10)

    def test_no_open_paren(self) -> None:
        assert insert_range_reference("=SUM", 4, "A1:B2") is None
