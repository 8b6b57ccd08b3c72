"""Centralized exception classes for the spreadsheet engine.

This module provides a hierarchy of custom exceptions with error codes and
structured error details for consistent error handling throughout the engine.

Exception Hierarchy:
    SheetEngineError (base)
    ├── AddressError
    │   └── RangeError
    ├── FormulaError
    │   ├── FormulaSyntaxError
    │   └── FormulaRuntimeError
    └── PayloadError

Only AddressError and RangeError escape the engine: they signal a malformed
cell id passed to an internal API. Formula errors are always converted to an
``#ERROR:`` display value by the formula engine.

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any

ERROR_SENTINEL_PREFIX = "#ERROR: "


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the engine.

    Error codes are grouped by category:
    - E1xxx: Addressing errors
    - E2xxx: Formula errors
    - E3xxx: Payload errors
    - E9xxx: Internal/unexpected errors
    """

    # Addressing errors (E1xxx)
    INVALID_CELL_ID = "E1001"
    INVALID_RANGE = "E1002"
    NEGATIVE_COORDINATE = "E1003"

    # Formula errors (E2xxx)
    FORMULA_SYNTAX = "E2001"
    UNKNOWN_FORMULA = "E2002"
    FORMULA_ARITY = "E2003"

    # Payload errors (E3xxx)
    INVALID_PAYLOAD = "E3001"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class SheetEngineError(Exception):
    """Base exception for all spreadsheet engine errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for logging.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Addressing Errors (E1xxx)
# =============================================================================


class AddressError(SheetEngineError):
    """Raised when a cell id or coordinate pair cannot be converted."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_CELL_ID,
        reference: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending reference.

        Args:
            message: Error message.
            error_code: Error code.
            reference: The cell id or range text that failed to parse.
            details: Additional details.
        """
        details = details or {}
        if reference is not None:
            details["reference"] = reference
        super().__init__(message, error_code, details)
        self.reference = reference


class RangeError(AddressError):
    """Raised when a range reference is malformed."""

    def __init__(
        self,
        reference: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = message or (
            f"Invalid range format: {reference}. Expected format: A1:A10"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_RANGE,
            reference=reference,
            details=details,
        )


# =============================================================================
# Formula Errors (E2xxx)
# =============================================================================


class FormulaError(SheetEngineError):
    """Base class for formula evaluation failures.

    These never propagate out of the formula engine; they are rendered
    as display values through :attr:`sentinel`.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FORMULA_SYNTAX,
        formula: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the formula text.

        Args:
            message: Error message shown after the sentinel prefix.
            error_code: Error code.
            formula: The formula text being evaluated.
            details: Additional details.
        """
        details = details or {}
        if formula is not None:
            details["formula"] = formula
        super().__init__(message, error_code, details)
        self.formula = formula

    @property
    def sentinel(self) -> str:
        """Display value for this failure."""
        return f"{ERROR_SENTINEL_PREFIX}{self.message}"


class FormulaSyntaxError(FormulaError):
    """Raised when formula text is neither a well-formed call nor in progress."""

    def __init__(
        self,
        formula: str,
        message: str | None = None,
        position: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if position is not None:
            details["position"] = position
        super().__init__(
            message=message or f"Invalid formula format: {formula}",
            error_code=ErrorCode.FORMULA_SYNTAX,
            formula=formula,
            details=details,
        )
        self.position = position


class FormulaRuntimeError(FormulaError):
    """Raised when a well-formed formula cannot be evaluated."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_FORMULA,
        function_name: str | None = None,
        formula: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if function_name:
            details["function_name"] = function_name
        super().__init__(
            message=message,
            error_code=error_code,
            formula=formula,
            details=details,
        )
        self.function_name = function_name


# =============================================================================
# Payload Errors (E3xxx)
# =============================================================================


class PayloadError(SheetEngineError):
    """Raised when an external sheet payload does not match the expected shape."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, ErrorCode.INVALID_PAYLOAD, details)
        self.errors = errors or []

