"""Services for the spreadsheet engine."""

from spreadsheet_engine.services.formula_engine import (
    FormulaEngine,
    available_formulas,
    formula_info,
)
from spreadsheet_engine.services.history import HistoryManager

__all__ = ["FormulaEngine", "HistoryManager", "available_formulas", "formula_info"]
