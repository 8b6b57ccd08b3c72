"""Pydantic models for the external sheet payload."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from spreadsheet_engine.services.cell_values import parse_number, stringify


class SortDirection(str, Enum):
    """Direction of a column sort."""

    ASC = "asc"
    DESC = "desc"


class ApiColumn(BaseModel):
    """Column description as exchanged with the data-loading collaborator.

    Entries are read leniently: a non-object entry becomes a blank column,
    ``name`` and ``key`` are stringified, and an unreadable ``width`` is
    dropped.
    """

    name: str = Field(default="", description="Header text shown for the column")
    key: str = Field(default="", description="Key used to look up the column in each item")
    width: float | None = Field(
        default=None, description="Explicit column width in pixels"
    )

    @model_validator(mode="before")
    @classmethod
    def coerce_entry(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v
        if isinstance(v, BaseModel):
            return v.model_dump()
        return {}

    @field_validator("name", "key", mode="before")
    @classmethod
    def stringify_label(cls, v: Any) -> str:
        return stringify(v)

    @field_validator("width", mode="before")
    @classmethod
    def parse_width(cls, v: Any) -> float | None:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int | float):
            return parse_number(str(v))
        if isinstance(v, str):
            return parse_number(v)
        return None


class ApiValues(BaseModel):
    """Column definitions plus one entry per row.

    Only the two lists are required; items that are not objects load as
    blank rows.
    """

    columns: list[ApiColumn] = Field(..., description="Ordered column definitions")
    items: list[Any] = Field(..., description="Row items keyed by column key")


class ApiPayload(BaseModel):
    """Top-level payload wrapper: ``{"values": {"columns": [...], "items": [...]}}``."""

    values: ApiValues
