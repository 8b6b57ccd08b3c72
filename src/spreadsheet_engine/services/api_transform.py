"""Conversion between the external ``{values: {columns, items}}`` payload and sheet data."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from spreadsheet_engine.models import ApiColumn, ApiPayload, ApiValues
from spreadsheet_engine.services.addressing import encode
from spreadsheet_engine.services.cell_values import stringify
from spreadsheet_engine.sheet_document import Column, SheetData
from spreadsheet_engine.utils.exceptions import PayloadError
from spreadsheet_engine.utils.logging import get_logger

logger = get_logger(__name__)


def parse_payload(data: Any) -> ApiPayload:
    """Validate a raw payload.

    Raises:
        PayloadError: If ``values``, ``columns`` or ``items`` is missing or malformed.
    """
    if isinstance(data, ApiPayload):
        return data
    try:
        return ApiPayload.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise PayloadError("Sheet payload does not match the expected shape", errors=errors) from e


def sheet_from_payload(data: Any) -> SheetData:
    """Build sheet data from a payload.

    Total: a payload without ``values``, ``columns`` or ``items`` lists yields
    an empty sheet instead of raising. Item values are stringified; missing
    keys and non-object items become blank cells.
    """
    try:
        payload = parse_payload(data)
    except PayloadError as e:
        logger.warning(
            "Malformed sheet payload, starting empty",
            error_code=e.error_code.value,
            errors=len(e.errors),
        )
        return SheetData()

    columns = [
        Column(name=col.name, key=col.key, width=col.width)
        for col in payload.values.columns
    ]
    items = payload.values.items
    cells: dict[str, str] = {}
    for row, item in enumerate(items):
        if not isinstance(item, dict):
            item = {}
        for col, column in enumerate(columns):
            cells[encode(col, row)] = stringify(item.get(column.key))

    return SheetData(
        cells=cells,
        columns=columns,
        row_count=len(items),
        col_count=len(columns),
    )


def sheet_to_payload(
    cells: Mapping[str, str], columns: Sequence[Column], row_count: int
) -> dict[str, Any]:
    """Rebuild the external payload; missing cells export as blanks."""
    items: list[Any] = []
    for row in range(row_count):
        items.append(
            {
                column.key: cells.get(encode(col, row), "")
                for col, column in enumerate(columns)
            }
        )

    payload = ApiPayload(
        values=ApiValues(
            columns=[
                ApiColumn(name=column.name, key=column.key, width=column.width)
                for column in columns
            ],
            items=items,
        )
    )
    return payload.model_dump(exclude_none=True)
