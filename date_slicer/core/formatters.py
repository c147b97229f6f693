# date_slicer/core/formatters.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from date_slicer.core.dates import DateRange

SLIDER_FORMAT = "DD MMM YYYY"


def fmt_date(d: Optional[dt.date]) -> str:
    return "—" if d is None else d.strftime("%d %b %Y")


def fmt_range(rng: Optional[DateRange]) -> str:
    if rng is None:
        return "—"
    if rng.start.date() == rng.end.date():
        return fmt_date(rng.start)
    return f"{fmt_date(rng.start)} – {fmt_date(rng.end)}"


def fmt_days(rng: Optional[DateRange]) -> str:
    if rng is None:
        return "—"
    n = rng.days()
    return f"{n} day" if n == 1 else f"{n} days"


def fmt_ccy(x: float, symbol: str = "$", precision: int = 0) -> str:
    try:
        return f"{symbol}{float(x):,.{precision}f}"
    except (TypeError, ValueError):
        return "—"
