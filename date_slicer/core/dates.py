# date_slicer/core/dates.py
from __future__ import annotations

import datetime as dt
import math
import numbers
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import pandas as pd

# Excel serial days count from 1899-12-30; anything smaller than this is treated
# as a serial day number, anything larger as epoch milliseconds.
EXCEL_EPOCH = dt.datetime(1899, 12, 30)
EXCEL_SERIAL_LIMIT = 10_000_000_000

_ISO_DAY = re.compile(r"^(\d{4})[-/](\d{2})[-/](\d{2})$")
_DMY_DAY = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")

# datetime64[ns] representable window
_NS_MIN = dt.datetime(1677, 9, 22)
_NS_MAX = dt.datetime(2262, 4, 11)


def day_start(value: dt.datetime) -> dt.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_end(value: dt.datetime) -> dt.datetime:
    # Millisecond precision so ranges survive a trip through JS-style hosts.
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


@dataclass(frozen=True)
class DataBounds:
    """Min/max of the bound date column in the currently visible dataset."""
    min_date: dt.datetime
    max_date: dt.datetime

    def __post_init__(self) -> None:
        if self.min_date > self.max_date:
            raise ValueError(f"DataBounds min {self.min_date} is after max {self.max_date}")

    def normalized(self) -> "DataBounds":
        return DataBounds(day_start(self.min_date), day_end(self.max_date))

    def as_range(self) -> "DateRange":
        return DateRange(day_start(self.min_date), day_end(self.max_date))


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive whole-day range: `start` at 00:00:00.000, `end` at 23:59:59.999.

    `start <= end` always holds; construction with an inverted pair raises.
    """
    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    @classmethod
    def whole_days(cls, start: dt.datetime, end: dt.datetime) -> "DateRange":
        """Normalize to whole days; an inverted pair collapses onto the start day."""
        lo, hi = day_start(start), day_end(end)
        if hi < lo:
            hi = day_end(lo)
        return cls(lo, hi)

    @classmethod
    def single_day(cls, value: dt.datetime) -> "DateRange":
        return cls(day_start(value), day_end(value))

    def normalized(self) -> "DateRange":
        return DateRange.whole_days(self.start, self.end)

    def clamp(self, bounds: DataBounds) -> "DateRange":
        """
        Clamp into `bounds`. When the range lies entirely outside the bounds the
        result collapses to the single day min(start, bounds.max).
        """
        lo = max(self.start, bounds.min_date)
        hi = min(self.end, bounds.max_date)
        if lo > hi:
            return DateRange.single_day(min(lo, bounds.max_date))
        return DateRange(day_start(lo), day_end(hi))

    def days(self) -> int:
        return (self.end.date() - self.start.date()).days + 1

    def to_dict(self) -> Dict[str, str]:
        return {"from": fmt_iso(self.start), "to": fmt_iso(self.end)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["DateRange"]:
        lo = parse_date_value(data.get("from"))
        hi = parse_date_value(data.get("to"))
        if lo is None or hi is None:
            return None
        return cls.whole_days(lo, hi)


def fmt_iso(value: dt.datetime) -> str:
    return value.isoformat(timespec="milliseconds")


def _from_number(value: float) -> Optional[dt.datetime]:
    if not math.isfinite(value):
        return None
    try:
        if value < EXCEL_SERIAL_LIMIT:
            return EXCEL_EPOCH + dt.timedelta(days=value)
        return dt.datetime(1970, 1, 1) + dt.timedelta(milliseconds=value)
    except OverflowError:
        return None


def _from_string(text: str) -> Optional[dt.datetime]:
    text = text.strip()
    if not text:
        return None

    m = _ISO_DAY.match(text)
    if m:
        try:
            return dt.datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None

    m = _DMY_DAY.match(text)
    if m:
        try:
            return dt.datetime(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        except ValueError:
            return None

    try:
        return _naive(dt.datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    ts = pd.to_datetime(text, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return _naive(ts.to_pydatetime())


def _naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is not None:
        return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return value


def parse_date_value(value: Any) -> Optional[dt.datetime]:
    """
    Parse one raw host value into a naive datetime, or None.

    Accepts datetimes, dates, pandas Timestamps, Excel serial days, epoch
    milliseconds and the string layouts the host is known to emit.
    """
    if value is None or value is pd.NaT or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else _naive(value.to_pydatetime())
    if isinstance(value, dt.datetime):
        return _naive(value)
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, numbers.Real):
        return _from_number(float(value))
    if isinstance(value, str):
        return _from_string(value)
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return None if pd.isna(ts) else _naive(ts.to_pydatetime())


def parse_date_column(values: Iterable[Any]) -> pd.Series:
    """Parse a raw column; unparsable entries are dropped, never fatal."""
    lo, hi = _NS_MIN, _NS_MAX
    parsed = [parse_date_value(v) for v in values]
    kept = [p for p in parsed if p is not None and lo <= p <= hi]
    return pd.Series(kept, dtype="datetime64[ns]")


def bounds_from_values(values: Iterable[Any]) -> Optional[DataBounds]:
    ser = parse_date_column(values)
    if ser.empty:
        return None
    lo = ser.min().to_pydatetime()
    hi = ser.max().to_pydatetime()
    return DataBounds(lo, hi).normalized()
