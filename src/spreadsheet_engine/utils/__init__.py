"""Utilities package for the spreadsheet engine.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from spreadsheet_engine.utils.exceptions import (
    AddressError,
    ErrorCode,
    FormulaError,
    FormulaRuntimeError,
    FormulaSyntaxError,
    PayloadError,
    RangeError,
    SheetEngineError,
)
from spreadsheet_engine.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_sheet_id,
    set_sheet_id,
)

__all__ = [
    # Exceptions
    "AddressError",
    "ErrorCode",
    "FormulaError",
    "FormulaRuntimeError",
    "FormulaSyntaxError",
    "PayloadError",
    "RangeError",
    "SheetEngineError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_sheet_id",
    "set_sheet_id",
]
