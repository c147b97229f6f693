# date_slicer/core/presets.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Dict, Optional

from date_slicer.core.dates import DataBounds, DateRange, day_end, day_start


class PresetId(str, Enum):
    NONE = "none"
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_3_DAYS = "last3days"
    LAST_7_DAYS = "last7Days"
    LAST_30_DAYS = "last30Days"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    MIN_DATE = "minDate"
    MAX_DATE = "maxDate"

    def __str__(self) -> str:
        return self.value


# Presets computed from the clock alone; these must never be replayed as stored dates.
TIME_RELATIVE_PRESETS = frozenset({
    PresetId.TODAY,
    PresetId.YESTERDAY,
    PresetId.LAST_3_DAYS,
    PresetId.LAST_7_DAYS,
    PresetId.LAST_30_DAYS,
    PresetId.THIS_MONTH,
    PresetId.LAST_MONTH,
})

PRESET_LABELS: Dict[PresetId, str] = {
    PresetId.NONE: "None",
    PresetId.TODAY: "Today",
    PresetId.YESTERDAY: "Yesterday",
    PresetId.LAST_3_DAYS: "Last 3 days",
    PresetId.LAST_7_DAYS: "Last 7 days",
    PresetId.LAST_30_DAYS: "Last 30 days",
    PresetId.THIS_MONTH: "This month",
    PresetId.LAST_MONTH: "Last month",
    PresetId.MIN_DATE: "Earliest date",
    PresetId.MAX_DATE: "Latest date",
}


def coerce_preset(value: Any) -> PresetId:
    """Map a raw settings value onto a PresetId; anything unknown means `none`."""
    if isinstance(value, PresetId):
        return value
    try:
        return PresetId(str(value).strip()) if value is not None else PresetId.NONE
    except ValueError:
        return PresetId.NONE


def is_time_relative(preset: Optional[PresetId]) -> bool:
    return preset in TIME_RELATIVE_PRESETS


def _raw_range(preset: PresetId, now: dt.datetime, bounds: Optional[DataBounds]) -> Optional[tuple[dt.datetime, dt.datetime]]:
    day = dt.timedelta(days=1)
    if preset is PresetId.TODAY:
        return now, now
    if preset is PresetId.YESTERDAY:
        return now - day, now - day
    if preset is PresetId.LAST_3_DAYS:
        return now - 2 * day, now
    if preset is PresetId.LAST_7_DAYS:
        return now - 7 * day, now
    if preset is PresetId.LAST_30_DAYS:
        return now - 30 * day, now
    if preset is PresetId.THIS_MONTH:
        return now.replace(day=1), now
    if preset is PresetId.LAST_MONTH:
        first_this = now.replace(day=1)
        last_prev = first_this - day
        return last_prev.replace(day=1), last_prev
    if preset is PresetId.MIN_DATE:
        pin = bounds.min_date if bounds else now
        return pin, pin
    if preset is PresetId.MAX_DATE:
        pin = bounds.max_date if bounds else now
        return pin, pin
    return None


def resolve(preset: Any, now: dt.datetime, bounds: Optional[DataBounds]) -> Optional[DateRange]:
    """
    Resolve `preset` to a concrete whole-day range for the instant `now`.

    Time-relative presets depend on `now` only, so calling this again on a later
    day yields that day's range. The result is clamped into `bounds`; a range
    that falls entirely outside collapses to the single day
    min(from, bounds.max). `none` resolves to None. `bounds=None` skips clamping.
    """
    raw = _raw_range(coerce_preset(preset), now, bounds)
    if raw is None:
        return None

    lo, hi = raw
    if bounds is not None:
        lo = max(lo, bounds.min_date)
        hi = min(hi, bounds.max_date)
        if lo > hi:
            lo = hi = min(lo, bounds.max_date)

    return DateRange(day_start(lo), day_end(hi))
