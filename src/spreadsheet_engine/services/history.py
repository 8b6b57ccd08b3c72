"""Undo/redo log of per-command diffs.

Each committed command is described by exactly one immutable entry holding
the before/after values of the fields it touched. The manager keeps the
entries and a cursor; applying an entry's payload to the sheet is the
engine's job.

History states:
    index == -1                 nothing to undo
    index == len(entries) - 1   nothing to redo
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import ClassVar

from spreadsheet_engine.config import settings


class HistoryKind(str, Enum):
    """Closed set of diff kinds."""

    CELL = "cell"
    CELLS = "cells"
    COLUMN = "column"
    ROW_HEIGHT = "rowHeight"
    COLUMN_WIDTH = "columnWidth"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CellEntry:
    """One cell's raw value changed. ``None`` means the cell was absent."""

    kind: ClassVar[HistoryKind] = HistoryKind.CELL

    cell_id: str
    before: str | None
    after: str | None
    timestamp: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class CellsEntry:
    """A batch of cells changed together (paste, delete, sort)."""

    kind: ClassVar[HistoryKind] = HistoryKind.CELLS

    before: Mapping[str, str | None]
    after: Mapping[str, str | None]
    timestamp: datetime = field(default_factory=_now, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "before", MappingProxyType(dict(self.before)))
        object.__setattr__(self, "after", MappingProxyType(dict(self.after)))


@dataclass(frozen=True)
class ColumnNameEntry:
    """A header name changed.

    ``padded_from`` is the column count before placeholder columns were
    appended to reach ``index``; None when no padding happened.
    """

    kind: ClassVar[HistoryKind] = HistoryKind.COLUMN

    index: int
    before: str
    after: str
    padded_from: int | None = None
    timestamp: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class RowHeightEntry:
    """A row height changed. ``None`` means the default height.

    ``padded_from`` is the row metadata length before padding, if any.
    """

    kind: ClassVar[HistoryKind] = HistoryKind.ROW_HEIGHT

    index: int
    before: float | None
    after: float | None
    padded_from: int | None = None
    timestamp: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class ColumnWidthEntry:
    """A column width changed. ``None`` means the default width.

    ``padded_from`` is the column count before padding, if any.
    """

    kind: ClassVar[HistoryKind] = HistoryKind.COLUMN_WIDTH

    index: int
    before: float | None
    after: float | None
    padded_from: int | None = None
    timestamp: datetime = field(default_factory=_now, compare=False)


HistoryEntry = CellEntry | CellsEntry | ColumnNameEntry | RowHeightEntry | ColumnWidthEntry


class HistoryManager:
    """Bounded, append-only history with a cursor.

    Appending while the cursor is not at the tail discards the redo branch.
    When the log grows past ``limit`` the oldest entry is evicted and the
    cursor shifts with it.
    """

    def __init__(self, limit: int | None = None) -> None:
        """Initialize an empty history.

        Args:
            limit: Maximum retained entries. Defaults to ``settings.history_limit``.
        """
        self.limit = limit if limit is not None else settings.history_limit
        if self.limit < 1:
            raise ValueError(f"History limit must be at least 1, got {self.limit}")
        self._entries: list[HistoryEntry] = []
        self._index = -1

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def index(self) -> int:
        """Position of the most recently applied entry, or -1."""
        return self._index

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: HistoryEntry) -> None:
        """Append an entry, pruning redoable entries and evicting past the cap."""
        del self._entries[self._index + 1 :]
        self._entries.append(entry)
        self._index = len(self._entries) - 1
        if len(self._entries) > self.limit:
            overflow = len(self._entries) - self.limit
            del self._entries[:overflow]
            self._index -= overflow

    def can_undo(self) -> bool:
        return self._index >= 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self) -> HistoryEntry | None:
        """Step the cursor back, returning the entry whose ``before`` must be applied."""
        if not self.can_undo():
            return None
        entry = self._entries[self._index]
        self._index -= 1
        return entry

    def redo(self) -> HistoryEntry | None:
        """Step the cursor forward, returning the entry whose ``after`` must be applied."""
        if not self.can_redo():
            return None
        self._index += 1
        return self._entries[self._index]

    def clear(self) -> None:
        self._entries.clear()
        self._index = -1
