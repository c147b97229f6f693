# date_slicer/services/datasets.py
from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from date_slicer.core.dates import parse_date_value
from date_slicer.core.logging_setup import get_logger
from date_slicer.filters.codec import AdvancedFilter, FilterCondition, FilterTarget, as_filters
from date_slicer.filters.columns import ColumnRef, ColumnSource

log = get_logger("datasets")

SALES_TABLE = "Sales"
DATE_COLUMN = "OrderDate"
CATEGORY_COLUMN = "Region"
AMOUNT_COLUMN = "Amount"
REGIONS = ("North", "South", "East", "West")


def make_sales_frame(
    rows: int = 2_000,
    days: int = 120,
    seed: int = 7,
    end: Optional[dt.date] = None,
) -> pd.DataFrame:
    """Synthetic order book ending on `end` (default today), spread over `days` days."""
    rng = np.random.default_rng(seed)
    end = end or dt.date.today()
    start = pd.Timestamp(end) - pd.Timedelta(days=days - 1)

    offsets = rng.integers(0, days, size=rows)
    dates = start + pd.to_timedelta(offsets, unit="D")
    regions = rng.choice(REGIONS, size=rows, p=[0.4, 0.25, 0.2, 0.15])
    amounts = np.round(rng.lognormal(mean=4.0, sigma=0.6, size=rows), 2)

    df = pd.DataFrame({DATE_COLUMN: dates, CATEGORY_COLUMN: regions, AMOUNT_COLUMN: amounts})
    return df.sort_values(DATE_COLUMN, kind="stable").reset_index(drop=True)


def column_source(table: str, column: str, *, is_date_type: bool = True) -> ColumnSource:
    return ColumnSource(query_name=f"{table}.{column}", display_name=column, table=table, is_date_type=is_date_type)


def category_filter(table: str, column: str, values: Sequence[str]) -> AdvancedFilter:
    """Equality filter on a text column; values are OR-ed."""
    return AdvancedFilter(
        target=FilterTarget(table=table, column=column),
        logical_operator="Or",
        conditions=[FilterCondition(operator="Is", value=v) for v in values],
    )


def _condition_mask(series: pd.Series, cond: FilterCondition) -> Optional[pd.Series]:
    op = (cond.operator or "").lower()
    if op in ("is", "isnot"):
        mask = series.astype(str) == str(cond.value)
        return ~mask if op == "isnot" else mask

    bound = parse_date_value(cond.value) if pd.api.types.is_datetime64_any_dtype(series) else cond.value
    if bound is None:
        return None
    if "greater" in op:
        return series >= bound if "equal" in op else series > bound
    if "less" in op:
        return series <= bound if "equal" in op else series < bound
    log.debug(f"[_condition_mask] - unsupported_operator - operator={cond.operator}")
    return None


def apply_filters(
    df: pd.DataFrame,
    filters: Any,
    *,
    table: str = SALES_TABLE,
    exclude: Optional[ColumnRef] = None,
) -> pd.DataFrame:
    """
    Apply bus filters that target `table`. A filter on `exclude` is skipped,
    which is how a slicer computes its bounds from everything but itself.
    """
    mask = pd.Series(True, index=df.index)
    for f in as_filters(filters):
        if f.target.table != table or f.target.column not in df.columns:
            continue
        if exclude is not None and f.target.column == exclude.column and f.target.table == exclude.table:
            continue
        parts: List[pd.Series] = [
            m for m in (_condition_mask(df[f.target.column], c) for c in f.conditions) if m is not None
        ]
        if not parts:
            continue
        combined = parts[0]
        for m in parts[1:]:
            combined = (combined | m) if f.logical_operator.lower() == "or" else (combined & m)
        mask &= combined
    return df[mask]


def daily_totals(df: pd.DataFrame, *, by: Optional[str] = CATEGORY_COLUMN) -> pd.DataFrame:
    """Amount per day (and per `by` group) for the activity chart."""
    if df.empty:
        cols = [DATE_COLUMN] + ([by] if by else []) + [AMOUNT_COLUMN]
        return pd.DataFrame(columns=cols)
    keys: List[Any] = [pd.Grouper(key=DATE_COLUMN, freq="D")]
    if by:
        keys.append(by)
    return df.groupby(keys)[AMOUNT_COLUMN].sum().reset_index()


def date_values(df: pd.DataFrame, column: str = DATE_COLUMN) -> Iterable[Any]:
    return df[column].tolist()
