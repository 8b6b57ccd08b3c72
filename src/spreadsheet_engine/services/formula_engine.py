"""Leaf aggregate formula evaluation.

A cell holds a formula when its stripped text starts with ``=``. The only
supported shape is a call of a registered aggregate over one reference:

    =SUM(A1:A10)    =average(B2)    =MAX(C3:A1)

Evaluation is a read-time projection: the raw value is never modified and
referenced cells are read raw, so formulas do not chain.

Text is classified by a small tokenizer into three outcomes:
- complete:     evaluate and return the result
- in progress:  input ends after the opening parenthesis on a valid prefix
                (``=SUM(A1:A``); the raw text is returned unchanged
- invalid:      anything else; an ``#ERROR: <message>`` sentinel is returned
"""

from __future__ import annotations

import re
import statistics
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from spreadsheet_engine.services.addressing import (
    decode,
    encode_address,
    is_cell_id,
    iter_range,
    range_bounds,
)
from spreadsheet_engine.services.cell_values import format_number, parse_number
from spreadsheet_engine.utils.exceptions import (
    ErrorCode,
    FormulaError,
    FormulaRuntimeError,
    FormulaSyntaxError,
)
from spreadsheet_engine.utils.logging import get_logger

logger = get_logger(__name__)

CellReader = Callable[[str], str]

_EXISTING_RANGE = re.compile(r"[A-Z]+\d+:[A-Z]+\d+")


def is_formula(value: str) -> bool:
    """Check whether raw cell text is a formula."""
    return value.strip().startswith("=")


# =============================================================================
# Aggregate registry
# =============================================================================


@dataclass(frozen=True)
class AggregateFunction:
    """A named aggregate over the numeric values of one reference."""

    name: str
    description: str
    syntax: str
    aggregate: Callable[[list[float]], float]

    def __call__(self, numbers: list[float]) -> float:
        if not numbers:
            return 0.0
        return self.aggregate(numbers)


DEFAULT_FUNCTIONS: tuple[AggregateFunction, ...] = (
    AggregateFunction(
        name="SUM",
        description="Returns the sum of all numbers in a range",
        syntax="SUM(range)",
        aggregate=lambda numbers: float(sum(numbers)),
    ),
    AggregateFunction(
        name="AVERAGE",
        description="Returns the average of all numbers in a range",
        syntax="AVERAGE(range)",
        aggregate=statistics.fmean,
    ),
    AggregateFunction(
        name="MAX",
        description="Returns the maximum value in a range",
        syntax="MAX(range)",
        aggregate=max,
    ),
    AggregateFunction(
        name="MIN",
        description="Returns the minimum value in a range",
        syntax="MIN(range)",
        aggregate=min,
    ),
    AggregateFunction(
        name="MEDIAN",
        description="Returns the median value in a range",
        syntax="MEDIAN(range)",
        aggregate=lambda numbers: float(statistics.median(numbers)),
    ),
)


class FormulaRegistry:
    """Mapping from upper-cased function name to its aggregate."""

    def __init__(self, functions: Sequence[AggregateFunction] = DEFAULT_FUNCTIONS) -> None:
        self._functions: dict[str, AggregateFunction] = {}
        for function in functions:
            self.register(function)

    def register(self, function: AggregateFunction) -> None:
        self._functions[function.name.upper()] = function

    def get(self, name: str) -> AggregateFunction | None:
        return self._functions.get(name.upper())

    def names(self) -> list[str]:
        return list(self._functions)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._functions


default_registry = FormulaRegistry()


def available_formulas() -> list[str]:
    """Names of all built-in aggregates."""
    return default_registry.names()


def formula_info(name: str) -> AggregateFunction | None:
    """Look up a built-in aggregate by (case-insensitive) name."""
    return default_registry.get(name)


# =============================================================================
# Tokenizer and parser
# =============================================================================


class TokenType(str, Enum):
    EQUALS = "="
    LPAREN = "("
    RPAREN = ")"
    COLON = ":"
    COMMA = ","
    WORD = "word"
    CELL = "cell"


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    position: int
    end: int


_PUNCTUATION = {
    "=": TokenType.EQUALS,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
}


def tokenize(formula: str) -> list[Token]:
    """Split formula text into tokens, skipping whitespace.

    Raises:
        FormulaSyntaxError: On a character that cannot start any token.
    """
    tokens: list[Token] = []
    i = 0
    length = len(formula)
    while i < length:
        char = formula[i]
        if char.isspace():
            i += 1
            continue
        if char in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[char], char, i, i + 1))
            i += 1
            continue
        if char.isascii() and char.isalpha():
            start = i
            while i < length and formula[i].isascii() and formula[i].isalpha():
                i += 1
            if i < length and formula[i].isdigit():
                while i < length and formula[i].isdigit():
                    i += 1
                tokens.append(Token(TokenType.CELL, formula[start:i], start, i))
            else:
                tokens.append(Token(TokenType.WORD, formula[start:i], start, i))
            continue
        raise FormulaSyntaxError(
            formula,
            message=f"Unexpected character '{char}' in formula: {formula}",
            position=i,
        )
    return tokens


@dataclass(frozen=True)
class ParsedFormula:
    """A complete call: upper-cased function name plus reference arguments."""

    name: str
    args: tuple[str, ...]


class _Parser:
    """Recursive-descent parser over formula tokens.

    Returns None from :meth:`parse` when the input is a valid prefix that
    ends after the opening parenthesis.
    """

    def __init__(self, formula: str) -> None:
        self.formula = formula
        self.tokens = tokenize(formula)
        self.pos = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _error(self, token: Token | None) -> FormulaSyntaxError:
        position = token.position if token is not None else len(self.formula)
        return FormulaSyntaxError(self.formula, position=position)

    def _expect(self, token_type: TokenType) -> Token:
        token = self._peek()
        if token is None or token.type is not token_type:
            raise self._error(token)
        self.pos += 1
        return token

    def parse(self) -> ParsedFormula | None:
        self._expect(TokenType.EQUALS)
        name = self._expect(TokenType.WORD)
        self._expect(TokenType.LPAREN)

        args: list[str] = []
        while True:
            reference = self._reference()
            if reference is None:
                return None
            args.append(reference)
            token = self._peek()
            if token is None:
                return None
            if token.type is TokenType.COMMA:
                self.pos += 1
                continue
            if token.type is TokenType.RPAREN:
                self.pos += 1
                break
            raise self._error(token)

        trailing = self._peek()
        if trailing is not None:
            raise self._error(trailing)
        return ParsedFormula(name=name.text.upper(), args=tuple(args))

    def _reference(self) -> str | None:
        start = self._cell()
        if start is None:
            return None
        token = self._peek()
        if token is None or token.type is not TokenType.COLON:
            return start
        self.pos += 1
        end = self._cell()
        if end is None:
            return None
        return f"{start}:{end}"

    def _cell(self) -> str | None:
        token = self._peek()
        if token is None:
            return None
        # A trailing column label is a reference still being typed.
        if (
            token.type is TokenType.WORD
            and self.pos == len(self.tokens) - 1
            and token.end == len(self.formula)
            and token.text.isupper()
        ):
            return None
        if token.type is TokenType.RPAREN:
            raise FormulaSyntaxError(
                self.formula,
                message=f"Missing range argument in formula: {self.formula}",
                position=token.position,
            )
        if token.type is not TokenType.CELL or not is_cell_id(token.text):
            raise FormulaSyntaxError(
                self.formula,
                message=f"Invalid reference '{token.text}' in formula: {self.formula}",
                position=token.position,
            )
        self.pos += 1
        return token.text


def parse_formula(formula: str) -> ParsedFormula | None:
    """Parse formula text.

    Returns:
        The parsed call, or None if the text is an unfinished call.

    Raises:
        FormulaSyntaxError: If the text can never become a valid call.
    """
    return _Parser(formula.strip()).parse()


# =============================================================================
# Evaluation
# =============================================================================


class FormulaEngine:
    """Evaluates formula text against a raw-value reader."""

    def __init__(
        self,
        reader: CellReader,
        registry: FormulaRegistry | None = None,
        cells: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            reader: Returns the raw text of a cell id ("" when absent).
            registry: Aggregates available to formulas.
            cells: The sparse cell map behind ``reader``, if there is one.
                Ranges larger than the map are then read from its keys
                instead of cell by cell.
        """
        self._reader = reader
        self._registry = registry or default_registry
        self._cells = cells

    @property
    def registry(self) -> FormulaRegistry:
        return self._registry

    def evaluate(self, formula: str) -> str:
        """Return the display value of formula text.

        Never raises: failures become ``#ERROR:`` sentinels and unfinished
        calls are returned verbatim.
        """
        try:
            parsed = parse_formula(formula)
            if parsed is None:
                return formula
            return format_number(self._apply(parsed, formula))
        except FormulaError as e:
            logger.debug(
                "Formula evaluation failed",
                error_code=e.error_code.value,
                formula=formula,
            )
            return e.sentinel

    def numeric_values(self, reference: str) -> list[float]:
        """Numbers found in the raw values of a reference, row-major.

        Blank and non-numeric cells are skipped.
        """
        numbers: list[float] = []
        for raw in self._raw_values(reference):
            number = parse_number(raw)
            if number is not None:
                numbers.append(number)
        return numbers

    def _raw_values(self, reference: str) -> Iterator[str]:
        low, high = range_bounds(reference)
        area = (high.col - low.col + 1) * (high.row - low.row + 1)
        if self._cells is None or area <= len(self._cells):
            for address in iter_range(low, high):
                yield self._reader(encode_address(address))
            return

        present: list[tuple[int, int, str]] = []
        for cell_id in self._cells:
            address = decode(cell_id)
            if (
                low.col <= address.col <= high.col
                and low.row <= address.row <= high.row
            ):
                present.append((address.row, address.col, cell_id))
        for _, _, cell_id in sorted(present):
            yield self._cells[cell_id]

    def _apply(self, parsed: ParsedFormula, formula: str) -> float:
        function = self._registry.get(parsed.name)
        if function is None:
            raise FormulaRuntimeError(
                f"Unknown formula: {parsed.name}",
                function_name=parsed.name,
                formula=formula,
            )
        if len(parsed.args) != 1:
            raise FormulaRuntimeError(
                f"{function.name} requires exactly one argument (range)",
                error_code=ErrorCode.FORMULA_ARITY,
                function_name=function.name,
                formula=formula,
            )
        return function(self.numeric_values(parsed.args[0]))


def evaluate_formula(formula: str, reader: CellReader) -> str:
    """Evaluate formula text with the default registry."""
    return FormulaEngine(reader).evaluate(formula)


# =============================================================================
# Editing helpers
# =============================================================================


def insert_range_reference(
    text: str, cursor: int, reference: str
) -> tuple[str, int] | None:
    """Put a range reference into formula text being edited.

    If a range already follows the last ``(`` before the cursor it is
    replaced; otherwise the reference is inserted at the cursor.

    Returns:
        The new text and cursor position, or None if no ``(`` precedes the cursor.
    """
    cursor = max(0, min(cursor, len(text)))
    open_paren = text.rfind("(", 0, cursor + 1)
    if open_paren == -1:
        return None
    after_paren = text[open_paren + 1 : cursor]
    if _EXISTING_RANGE.search(after_paren):
        new_text = text[: open_paren + 1] + reference + text[cursor:]
        return new_text, open_paren + 1 + len(reference)
    new_text = text[:cursor] + reference + text[cursor:]
    return new_text, cursor + len(reference)
