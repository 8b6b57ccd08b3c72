"""Spreadsheet state engine.

The engine owns the sheet state and exposes the command/query contract used
by a view layer:

- Reads: raw and display values, column/row metadata, selection, history.
- Commands: cell writes, metadata changes, growth, selection, sorting,
  clipboard transfer, undo/redo.

Every command runs synchronously and commits in one step. Commands that
change cell values or metadata append exactly one history entry. After a
command commits, subscribers receive a :class:`ChangeEvent` and re-read
whatever state they need.

Row and column counts only grow. Any command referencing a cell outside the
current bounds grows them first, so every cell id the engine hands out lies
inside ``[0, col_count) x [0, row_count)``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, assert_never

from spreadsheet_engine.config import (
    Settings,
    validate_settings_on_startup,
)
from spreadsheet_engine.config import settings as default_settings
from spreadsheet_engine.models import SortDirection
from spreadsheet_engine.services.addressing import decode, encode
from spreadsheet_engine.services.api_transform import (
    sheet_from_payload,
    sheet_to_payload,
)
from spreadsheet_engine.services.clipboard import (
    Block,
    block_to_text,
    capture_block,
    plan_paste,
    text_to_block,
)
from spreadsheet_engine.services.column_fit import (
    PillowTextMeasurer,
    TextMeasurer,
    fit_width,
    is_text_column,
)
from spreadsheet_engine.services.formula_engine import (
    FormulaEngine,
    FormulaRegistry,
    insert_range_reference,
    is_formula,
)
from spreadsheet_engine.services.history import (
    CellEntry,
    CellsEntry,
    ColumnNameEntry,
    ColumnWidthEntry,
    HistoryEntry,
    HistoryKind,
    HistoryManager,
    RowHeightEntry,
)
from spreadsheet_engine.services.navigation import keyboard_move
from spreadsheet_engine.services.selection import RangeBounds, RangeSelection
from spreadsheet_engine.services.sorter import plan_sort
from spreadsheet_engine.sheet_document import (
    Address,
    CellAddress,
    Column,
    HeaderAddress,
    RowMeta,
    blank_column,
)
from spreadsheet_engine.utils.logging import (
    LogContext,
    get_logger,
    set_package_log_level,
    timed_operation,
)

logger = get_logger(__name__)

_applied_settings: Settings | None = None


def apply_settings(config: Settings) -> None:
    """Apply the configured log level and run the startup checks.

    Engines built from the same settings object apply them once.
    """
    global _applied_settings
    if config is _applied_settings:
        return
    set_package_log_level(config.log_level_int)
    validate_settings_on_startup(config)
    _applied_settings = config


@dataclass(frozen=True)
class ChangeEvent:
    """Notification sent to subscribers after a command commits."""

    command: str
    history_kind: HistoryKind | None = None
    cell_ids: tuple[str, ...] = ()


Subscriber = Callable[[ChangeEvent], None]


class SheetEngine:
    """Single-sheet state engine.

    Usage:
        engine = SheetEngine({"values": {"columns": [...], "items": [...]}})
        engine.set_cell("A1", "=SUM(B1:B3)")
        engine.get_cell_value("A1")
        engine.undo()
    """

    def __init__(
        self,
        payload: Any = None,
        *,
        config: Settings | None = None,
        sheet_id: str | None = None,
        measurer: TextMeasurer | None = None,
        registry: FormulaRegistry | None = None,
        auto_fit_text_columns: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            payload: Optional ``{values: {columns, items}}`` payload to load.
            config: Settings to use. Defaults to the global settings. Its
                log level is applied to the package loggers.
            sheet_id: Identifier included in log lines. Generated if omitted.
            measurer: Text width function for auto-fit. Defaults to Pillow.
            registry: Aggregates available to formulas.
            auto_fit_text_columns: Auto-fit text columns when loading ``payload``.
        """
        self.config = config or default_settings
        apply_settings(self.config)
        self.sheet_id = sheet_id or uuid.uuid4().hex[:12]

        self._cells: dict[str, str] = {}
        self._columns: list[Column] = []
        self._row_meta: list[RowMeta] = []
        self._row_count = 0
        self._col_count = 0
        self._selection: str | None = None
        self._selected_header: int | None = None
        self._range = RangeSelection()
        self._history = HistoryManager(limit=self.config.history_limit)
        self._clipboard: Block | None = None
        self._subscribers: list[Subscriber] = []

        self._formulas = FormulaEngine(self.get_raw_value, registry, cells=self._cells)
        self._measure = measurer or PillowTextMeasurer(self.config.autofit_font_size)

        if payload is not None:
            self.load_payload(payload, auto_fit_text_columns=auto_fit_text_columns)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a change callback.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def _notify(
        self,
        command: str,
        history_kind: HistoryKind | None = None,
        cell_ids: tuple[str, ...] = (),
    ) -> None:
        event = ChangeEvent(command=command, history_kind=history_kind, cell_ids=cell_ids)
        for subscriber in list(self._subscribers):
            subscriber(event)

    # =========================================================================
    # State accessors
    # =========================================================================

    @property
    def cells(self) -> Mapping[str, str]:
        """Read-only view of the sparse raw cell map."""
        return MappingProxyType(self._cells)

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(replace(column) for column in self._columns)

    @property
    def row_meta(self) -> tuple[RowMeta, ...]:
        return tuple(replace(meta) for meta in self._row_meta)

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def col_count(self) -> int:
        return self._col_count

    @property
    def selection(self) -> str | None:
        return self._selection

    @property
    def selected_header(self) -> int | None:
        return self._selected_header

    @property
    def range_anchor(self) -> str | None:
        return self._range.anchor

    @property
    def range_head(self) -> str | None:
        return self._range.head

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self._history.entries

    @property
    def history_index(self) -> int:
        return self._history.index

    @property
    def clipboard(self) -> Block | None:
        if self._clipboard is None:
            return None
        return [list(row) for row in self._clipboard]

    def get_raw_value(self, cell_id: str) -> str:
        """Raw text of a cell; absent cells read as "".

        Raises:
            AddressError: If ``cell_id`` is malformed.
        """
        decode(cell_id)
        return self._cells.get(cell_id, "")

    def get_cell_value(self, cell_id: str) -> str:
        """Display value: the raw text, or the formula result for formulas."""
        raw = self.get_raw_value(cell_id)
        if is_formula(raw):
            return self._formulas.evaluate(raw)
        return raw

    def column_name(self, index: int) -> str:
        return self._columns[index].name if 0 <= index < len(self._columns) else ""

    def column_width(self, index: int) -> float:
        """Effective width of a column, falling back to the default."""
        if 0 <= index < len(self._columns) and self._columns[index].width is not None:
            return float(self._columns[index].width)
        return self.config.default_column_width_px

    def row_height(self, index: int) -> float:
        """Effective height of a row, falling back to the default."""
        if 0 <= index < len(self._row_meta) and self._row_meta[index].height is not None:
            return float(self._row_meta[index].height)
        return self.config.default_row_height_px

    def column_values(self, index: int) -> list[str]:
        """Raw values of one column for every data row."""
        return [self._cells.get(encode(index, row), "") for row in range(self._row_count)]

    def is_text_column(self, index: int) -> bool:
        return is_text_column(self.column_values(index))

    # =========================================================================
    # Loading and export
    # =========================================================================

    def load_payload(self, payload: Any, auto_fit_text_columns: bool = False) -> None:
        """Replace the sheet with the contents of an external payload.

        Resets selection, range, clipboard and history. Malformed payloads
        load as an empty sheet.
        """
        with LogContext(sheet_id=self.sheet_id, command="load_payload"):
            data = sheet_from_payload(payload)
            self._cells.clear()
            self._cells.update(data.cells)
            self._columns = data.columns
            self._row_meta = []
            self._row_count = data.row_count
            self._col_count = data.col_count
            self._selection = None
            self._selected_header = None
            self._range.clear()
            self._clipboard = None
            self._history.clear()

            if auto_fit_text_columns:
                for index in range(len(self._columns)):
                    if self.is_text_column(index):
                        self._columns[index].width = self._fit_width(index)

            logger.info(
                "Sheet loaded",
                rows=self._row_count,
                columns=self._col_count,
                cells=len(self._cells),
            )
        self._notify("load_payload")

    def to_payload(self) -> dict[str, Any]:
        """Export the sheet as a ``{values: {columns, items}}`` payload."""
        return sheet_to_payload(self._cells, self._columns, self._row_count)

    # =========================================================================
    # Growth
    # =========================================================================

    def _grow(self, cols: int, rows: int) -> bool:
        changed = False
        if cols > self._col_count:
            self._col_count = cols
            changed = True
        if rows > self._row_count:
            self._row_count = rows
            changed = True
        return changed

    def _ensure_bounds(self, address: CellAddress) -> None:
        self._grow(address.col + 1, address.row + 1)

    def set_row_count(self, rows: int) -> None:
        """Raise the row count; smaller values are ignored."""
        if self._grow(0, rows):
            self._notify("set_row_count")

    def set_col_count(self, cols: int) -> None:
        """Raise the column count; smaller values are ignored."""
        if self._grow(cols, 0):
            self._notify("set_col_count")

    # =========================================================================
    # Cell writes
    # =========================================================================

    def _set_raw(self, cell_id: str, value: str | None) -> None:
        if value is None:
            self._cells.pop(cell_id, None)
        else:
            self._cells[cell_id] = value

    def _record(self, entry: HistoryEntry, command: str) -> None:
        self._history.add(entry)
        logger.log_command(
            command,
            entry.kind.value,
            self._history.index,
            len(self._history),
        )

    def set_cell(self, cell_id: str, value: str) -> None:
        """Overwrite one cell's raw value.

        Raises:
            AddressError: If ``cell_id`` is malformed.
        """
        self._ensure_bounds(decode(cell_id))
        before = self._cells.get(cell_id)
        self._cells[cell_id] = value
        self._record(CellEntry(cell_id=cell_id, before=before, after=value), "set_cell")
        self._notify("set_cell", HistoryKind.CELL, (cell_id,))

    def set_cells(self, updates: Mapping[str, str]) -> None:
        """Write several cells as one undoable step.

        Raises:
            AddressError: If any id is malformed; nothing is written then.
        """
        self._commit_cells(dict(updates), "set_cells")

    def _commit_cells(
        self,
        after: Mapping[str, str | None],
        command: str,
        before: Mapping[str, str | None] | None = None,
    ) -> None:
        if not after:
            return
        addresses = [decode(cell_id) for cell_id in after]
        for address in addresses:
            self._ensure_bounds(address)
        if before is None:
            before = {cell_id: self._cells.get(cell_id) for cell_id in after}
        for cell_id, value in after.items():
            self._set_raw(cell_id, value)
        self._record(CellsEntry(before=before, after=after), command)
        self._notify(command, HistoryKind.CELLS, tuple(after))

    # =========================================================================
    # Column and row metadata
    # =========================================================================

    def _pad_columns(self, index: int) -> int | None:
        """Append placeholder columns up to ``index``.

        Returns:
            The column count before padding, or None if none was needed.
        """
        if index < len(self._columns):
            return None
        padded_from = len(self._columns)
        while len(self._columns) <= index:
            self._columns.append(blank_column(len(self._columns)))
        return padded_from

    def _pad_rows(self, index: int) -> int | None:
        if index < len(self._row_meta):
            return None
        padded_from = len(self._row_meta)
        while len(self._row_meta) <= index:
            self._row_meta.append(RowMeta())
        return padded_from

    def set_column_name(self, index: int, name: str) -> None:
        """Rename a header; negative indices are ignored."""
        if index < 0:
            return
        padded_from = self._pad_columns(index)
        self._grow(index + 1, 0)
        before = self._columns[index].name
        self._columns[index].name = name
        self._record(
            ColumnNameEntry(
                index=index, before=before, after=name, padded_from=padded_from
            ),
            "set_column_name",
        )
        self._notify("set_column_name", HistoryKind.COLUMN)

    def set_row_height(self, index: int, px: float) -> None:
        """Resize a row, clamped to the minimum height."""
        if index < 0:
            return
        height = max(self.config.min_row_height_px, float(px))
        padded_from = self._pad_rows(index)
        self._grow(0, index + 1)
        before = self._row_meta[index].height
        self._row_meta[index].height = height
        self._record(
            RowHeightEntry(
                index=index, before=before, after=height, padded_from=padded_from
            ),
            "set_row_height",
        )
        self._notify("set_row_height", HistoryKind.ROW_HEIGHT)

    def set_column_width(self, index: int, px: float) -> None:
        """Resize a column, clamped to the minimum width."""
        self._change_column_width(
            index, max(self.config.min_column_width_px, float(px)), "set_column_width"
        )

    def reset_column_width(self, index: int) -> None:
        """Return a column to the default width."""
        if 0 <= index < len(self._columns) and self._columns[index].width is None:
            return
        self._change_column_width(index, None, "reset_column_width")

    def auto_fit_column_width(self, index: int) -> None:
        """Size a column to its widest header or cell text."""
        if index < 0:
            return
        self._change_column_width(index, self._fit_width(index), "auto_fit_column_width")

    def _fit_width(self, index: int) -> float:
        texts = [self.column_name(index), *self.column_values(index)]
        return fit_width(
            texts,
            self._measure,
            padding=self.config.autofit_padding_px,
            minimum=self.config.min_column_width_px,
        )

    def _change_column_width(self, index: int, width: float | None, command: str) -> None:
        if index < 0:
            return
        padded_from = self._pad_columns(index)
        self._grow(index + 1, 0)
        before = self._columns[index].width
        self._columns[index].width = width
        self._record(
            ColumnWidthEntry(
                index=index, before=before, after=width, padded_from=padded_from
            ),
            command,
        )
        self._notify(command, HistoryKind.COLUMN_WIDTH)

    # =========================================================================
    # Selection
    # =========================================================================

    def set_selection(self, cell_id: str | None) -> None:
        """Select one cell, or clear the selection with None."""
        if cell_id is not None:
            self._ensure_bounds(decode(cell_id))
        self._selection = cell_id
        self._selected_header = None
        self._notify("set_selection")

    def select_header(self, col: int) -> None:
        """Put the cursor on a header cell."""
        header = HeaderAddress(col=col)
        self._grow(header.col + 1, 0)
        self._selection = None
        self._selected_header = header.col
        self._notify("select_header")

    def set_range_anchor(self, cell_id: str | None) -> None:
        """Start a range at ``cell_id``; None clears the range."""
        if cell_id is not None:
            self._ensure_bounds(decode(cell_id))
        self._range.set_anchor(cell_id)
        self._notify("set_range_anchor")

    def set_range_head(self, cell_id: str | None) -> None:
        """Move the free corner of the range; None clears the range."""
        if cell_id is not None:
            self._ensure_bounds(decode(cell_id))
        self._range.set_head(cell_id)
        self._notify("set_range_head")

    def clear_range(self) -> None:
        self._range.clear()
        self._notify("clear_range")

    @property
    def has_multiple_cells(self) -> bool:
        return self._range.has_multiple_cells

    def range_bounds(self) -> RangeBounds | None:
        return self._range.bounds()

    def in_range(self, cell_id: str) -> bool:
        return self._range.contains(decode(cell_id))

    def move_selection(self, key: str, shift: bool = False) -> Address | None:
        """Move the cursor with a navigation key, growing the sheet as needed.

        Returns:
            The new cursor position, or None if nothing is selected or the
            key does not navigate.
        """
        current: str | HeaderAddress
        if self._selection is not None:
            current = self._selection
        elif self._selected_header is not None:
            current = HeaderAddress(col=self._selected_header)
        else:
            return None

        destination = keyboard_move(current, key, shift)
        if destination is None:
            return None
        if isinstance(destination, HeaderAddress):
            self.select_header(destination.col)
        else:
            self.set_selection(encode(destination.col, destination.row))
        return destination

    def selection_summary(self) -> tuple[str, str]:
        """Label and comma-joined raw values of the current selection."""
        bounds = self._range.bounds()
        if bounds is not None and self._range.has_multiple_cells:
            values = [self._cells.get(cell_id, "") for cell_id in bounds.cell_ids()]
            return bounds.label, ", ".join(values)
        if self._selection is not None:
            return self._selection, self._cells.get(self._selection, "")
        return "No selection", ""

    def delete_selection(self) -> None:
        """Clear the active range, or the selected cell when no range spans cells."""
        bounds = self._range.bounds()
        if bounds is not None and self._range.has_multiple_cells:
            self._commit_cells(
                {cell_id: "" for cell_id in bounds.cell_ids()}, "delete_selection"
            )
        elif self._selection is not None:
            self.set_cell(self._selection, "")

    def insert_range_into_formula(self, cell_id: str, cursor: int) -> int | None:
        """Insert the active range into the formula being edited in ``cell_id``.

        Clears the range afterwards so another one can be picked.

        Returns:
            The cursor position after the inserted reference, or None if
            nothing was inserted.
        """
        bounds = self._range.bounds()
        if bounds is None or not self._range.has_multiple_cells:
            return None
        raw = self.get_raw_value(cell_id)
        if not is_formula(raw):
            return None
        result = insert_range_reference(raw, cursor, bounds.label)
        if result is None:
            return None
        new_text, new_cursor = result
        self.set_cell(cell_id, new_text)
        self.clear_range()
        return new_cursor

    # =========================================================================
    # Sorting
    # =========================================================================

    def sort_by_column(
        self,
        col_index: int,
        direction: SortDirection | str = SortDirection.ASC,
        row_range: tuple[int, int] | None = None,
    ) -> None:
        """Reorder rows by one column as a single undoable step.

        Args:
            col_index: Column whose values decide the order.
            direction: ``"asc"`` or ``"desc"``.
            row_range: Inclusive (first, last) rows to sort. Without it the
                active range's rows are sorted when the range covers
                ``col_index``, otherwise every row.
        """
        direction = SortDirection(direction)
        rows = self._sort_span(col_index, row_range)
        if len(rows) < 2:
            return

        with LogContext(sheet_id=self.sheet_id, command="sort_by_column"):
            with timed_operation(logger, "sort_by_column") as metrics:
                plan = plan_sort(
                    self._cells,
                    col_index,
                    rows,
                    max(self._col_count, len(self._columns)),
                    direction,
                )
                metrics.rows_sorted = len(rows)
                metrics.custom_metrics["numeric"] = plan.numeric
                if plan.is_identity:
                    logger.debug("Rows already in order", column=col_index)
                    return
                metrics.cells_touched = len(plan.after)
                self._commit_cells(plan.after, "sort_by_column", before=plan.before)

    def _sort_span(self, col_index: int, row_range: tuple[int, int] | None) -> list[int]:
        last_row = self._row_count - 1
        if row_range is not None:
            first, last = sorted(row_range)
            return list(range(max(0, first), min(last, last_row) + 1))
        bounds = self._range.bounds()
        if (
            bounds is not None
            and self._range.has_multiple_cells
            and bounds.covers_column(col_index)
        ):
            return list(range(bounds.lo_row, min(bounds.hi_row, last_row) + 1))
        return list(range(self._row_count))

    # =========================================================================
    # Clipboard
    # =========================================================================

    def copy_selection(self) -> str | None:
        """Capture the range (or the selected cell) into the clipboard.

        Returns:
            The block as tab/newline text for the system clipboard, or None
            when nothing is selected.
        """
        bounds = self._range.bounds()
        if bounds is not None and self._range.has_multiple_cells:
            block = capture_block(self._cells, bounds)
        elif self._selection is not None:
            block = [[self._cells.get(self._selection, "")]]
        else:
            return None
        self._clipboard = block
        self._notify("copy_selection")
        return block_to_text(block)

    def cut_selection(self) -> str | None:
        """Copy, then clear what was copied."""
        text = self.copy_selection()
        if text is not None:
            self.delete_selection()
        return text

    def paste_to_selection(self) -> None:
        """Write the clipboard block with its top-left corner at the selection."""
        if self._clipboard is None or self._selection is None:
            return
        with LogContext(sheet_id=self.sheet_id, command="paste_to_selection"):
            with timed_operation(logger, "paste_to_selection") as metrics:
                plan = plan_paste(self._clipboard, decode(self._selection))
                self._grow(plan.required_cols, plan.required_rows)
                metrics.cells_touched = len(plan.updates)
                self._commit_cells(plan.updates, "paste_to_selection")

    def paste_text(self, text: str) -> None:
        """Paste tab/newline text from the system clipboard."""
        self._clipboard = text_to_block(text)
        self.paste_to_selection()

    # =========================================================================
    # Undo / redo
    # =========================================================================

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def undo(self) -> None:
        """Restore the fields touched by the most recent entry."""
        entry = self._history.undo()
        if entry is None:
            return
        self._apply_entry(entry, use_after=False)
        logger.log_command("undo", entry.kind.value, self._history.index, len(self._history))
        self._notify("undo", entry.kind)

    def redo(self) -> None:
        """Re-apply the entry after the cursor."""
        entry = self._history.redo()
        if entry is None:
            return
        self._apply_entry(entry, use_after=True)
        logger.log_command("redo", entry.kind.value, self._history.index, len(self._history))
        self._notify("redo", entry.kind)

    def _apply_entry(self, entry: HistoryEntry, use_after: bool) -> None:
        if isinstance(entry, CellEntry):
            self._set_raw(entry.cell_id, entry.after if use_after else entry.before)
        elif isinstance(entry, CellsEntry):
            payload = entry.after if use_after else entry.before
            for cell_id, value in payload.items():
                self._set_raw(cell_id, value)
        elif isinstance(entry, ColumnNameEntry):
            self._pad_columns(entry.index)
            self._columns[entry.index].name = entry.after if use_after else entry.before
            if not use_after and entry.padded_from is not None:
                del self._columns[entry.padded_from :]
        elif isinstance(entry, RowHeightEntry):
            self._pad_rows(entry.index)
            self._row_meta[entry.index].height = entry.after if use_after else entry.before
            if not use_after and entry.padded_from is not None:
                del self._row_meta[entry.padded_from :]
        elif isinstance(entry, ColumnWidthEntry):
            self._pad_columns(entry.index)
            self._columns[entry.index].width = entry.after if use_after else entry.before
            if not use_after and entry.padded_from is not None:
                del self._columns[entry.padded_from :]
        else:
            assert_never(entry)
