# date_slicer/filters/columns.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

_DOTTED = re.compile(r"^(?P<table>[^.\[]+)\.(?P<column>.+)$")
_BRACKETED = re.compile(r"^(?P<table>[^\[]+)\[(?P<column>[^\]]+)\]$")
_LEVEL_IN_QUERY = (
    re.compile(r"\.\[?(Year|Quarter|Month|Day)\]?$", re.IGNORECASE),
    re.compile(r"\]\.\[(Year|Quarter|Month|Day)\]$", re.IGNORECASE),
)
_LEVEL_NAME = re.compile(r"^(year|quarter|month|day)$", re.IGNORECASE)


class ColumnSource(BaseModel):
    """Metadata the host sends about the column bound to the widget."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    query_name: str = Field(default="", alias="queryName")
    display_name: str = Field(default="", alias="displayName")
    table: Optional[str] = None
    is_date_type: bool = Field(default=True, alias="isDateType")


@dataclass(frozen=True)
class ColumnRef:
    table: str
    column: str

    def as_target(self) -> dict[str, str]:
        return {"table": self.table, "column": self.column}

    def __str__(self) -> str:
        return f"{self.table}[{self.column}]"


def column_ref(source: ColumnSource) -> ColumnRef:
    """Derive table/column from `Table.Column` or `Table[Column]` query names."""
    q = source.query_name or ""
    for pattern in (_DOTTED, _BRACKETED):
        m = pattern.match(q)
        if m:
            return ColumnRef(m.group("table"), m.group("column"))
    return ColumnRef(source.table or "", source.display_name or q or "Date")


def is_hierarchy_field(source: ColumnSource) -> bool:
    """
    True when a date-hierarchy level (Year/Quarter/Month/Day) is bound instead of
    the base date column.
    """
    q = source.query_name or ""
    if "].[" in q:
        return True
    if any(p.search(q) for p in _LEVEL_IN_QUERY):
        return True
    return bool(_LEVEL_NAME.match(source.display_name or "")) and not source.is_date_type
