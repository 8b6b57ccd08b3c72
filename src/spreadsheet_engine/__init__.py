"""Spreadsheet Engine - in-memory spreadsheet state with formulas, history and sorting."""

from spreadsheet_engine.engine import ChangeEvent, SheetEngine, apply_settings

__all__ = ["ChangeEvent", "SheetEngine", "apply_settings"]
__version__ = "0.1.0"
