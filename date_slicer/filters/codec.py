"""Translate between host advanced-filter predicates and whole-day DateRanges."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from date_slicer.core.dates import DateRange, fmt_iso, parse_date_value
from date_slicer.core.logging_setup import get_logger, summarize_for_log
from date_slicer.filters.columns import ColumnRef

log = get_logger("codec")

ADVANCED_FILTER_SCHEMA = "http://powerbi.com/product/schema#advanced"
GREATER_OR_EQUAL = "GreaterThanOrEqual"
LESS_OR_EQUAL = "LessThanOrEqual"


class FilterTarget(BaseModel):
    model_config = ConfigDict(extra="ignore")

    table: str = ""
    column: str = ""

    def matches(self, ref: ColumnRef) -> bool:
        return self.table == ref.table and self.column == ref.column


class FilterCondition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operator: str
    value: Any = None


class AdvancedFilter(BaseModel):
    """The host's advanced filter JSON: a target column and AND-ed conditions."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_: str = Field(default=ADVANCED_FILTER_SCHEMA, alias="$schema")
    target: FilterTarget
    logical_operator: str = Field(default="And", alias="logicalOperator")
    conditions: List[FilterCondition] = Field(default_factory=list)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


Predicate = Union[AdvancedFilter, Dict[str, Any], Iterable[Union[AdvancedFilter, Dict[str, Any]]], None]


def as_filters(predicate: Predicate) -> List[AdvancedFilter]:
    """Coerce whatever the host handed over into validated filters; bad entries are skipped."""
    if predicate is None:
        return []
    if isinstance(predicate, (AdvancedFilter, dict)):
        items = [predicate]
    elif isinstance(predicate, (list, tuple)):
        items = list(predicate)
    else:
        log.debug(f"[as_filters] - unsupported_predicate_type - type={type(predicate).__name__}")
        return []

    out: List[AdvancedFilter] = []
    for item in items:
        if isinstance(item, AdvancedFilter):
            out.append(item)
            continue
        try:
            out.append(AdvancedFilter.model_validate(item))
        except ValidationError as exc:
            log.debug(
                f"[as_filters] - dropped_malformed_filter - errors={exc.error_count()} "
                f"item={summarize_for_log(item)}"
            )
    return out


def _conditions_for(predicate: Predicate, column: ColumnRef) -> List[List[FilterCondition]]:
    return [f.conditions for f in as_filters(predicate) if f.target.matches(column) and f.conditions]


def decode(predicate: Predicate, column: ColumnRef) -> Optional[DateRange]:
    """
    Find a lower ("greater...") and an upper ("less...") bound on `column`.

    Returns None when either bound is missing, the predicate targets a different
    column, or the bounds are inverted.
    """
    for conditions in _conditions_for(predicate, column):
        lo = hi = None
        for cond in conditions:
            op = (cond.operator or "").lower()
            parsed = parse_date_value(cond.value)
            if parsed is None:
                continue
            if "greater" in op:
                lo = parsed
            elif "less" in op:
                hi = parsed
        if lo is not None and hi is not None and lo <= hi:
            return DateRange.whole_days(lo, hi)
    return None


def encode(rng: DateRange, column: ColumnRef) -> AdvancedFilter:
    return AdvancedFilter(
        target=FilterTarget(table=column.table, column=column.column),
        conditions=[
            FilterCondition(operator=GREATER_OR_EQUAL, value=fmt_iso(rng.start)),
            FilterCondition(operator=LESS_OR_EQUAL, value=fmt_iso(rng.end)),
        ],
    )


def _canonical_value(value: Any) -> Any:
    parsed = parse_date_value(value)
    return fmt_iso(parsed) if parsed is not None else str(value)


def predicate_hash(predicate: Predicate, column: ColumnRef) -> Optional[str]:
    """
    Stable hash of the conditions on `column` (None when none apply). Used for
    equality only: values are canonicalized so a host re-serializing the same
    instant differently still hashes the same.
    """
    groups = _conditions_for(predicate, column)
    if not groups:
        return None
    canonical = [
        sorted(
            ({"operator": c.operator, "value": _canonical_value(c.value)} for c in conditions),
            key=lambda d: (d["operator"], d["value"]),
        )
        for conditions in groups
    ]
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
