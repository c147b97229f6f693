# date_slicer/filters/snapshot.py
"""Snapshot (bookmark) capture and restore.

Only the preset identifier is captured. On restore a preset is always resolved
again against the current clock and bounds, so a bookmark saved with
"yesterday" means the day before the restore, not the day before the capture.
Absolute dates are read only from blobs written by older versions, and only
when no usable preset is present.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from date_slicer.core.dates import DataBounds, DateRange, parse_date_value
from date_slicer.core.presets import PresetId, coerce_preset, resolve


class SnapshotBlob(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    preset_id: Optional[PresetId] = Field(
        default=None,
        validation_alias=AliasChoices("presetId", "lastPreset", "preset_id"),
        serialization_alias="presetId",
    )
    is_clear_selection: bool = Field(
        default=False,
        validation_alias=AliasChoices("isClearSelection", "is_clear_selection"),
        serialization_alias="isClearSelection",
    )
    # Legacy blobs only; never written by capture().
    selected_min_date: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("selectedMinDate", "selected_min_date"), exclude=True
    )
    selected_max_date: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("selectedMaxDate", "selected_max_date"), exclude=True
    )

    @field_validator("preset_id", mode="before")
    @classmethod
    def _coerce_preset(cls, v: Any) -> Optional[PresetId]:
        if v is None:
            return None
        preset = coerce_preset(v)
        return None if preset is PresetId.NONE else preset

    @property
    def usable_preset(self) -> Optional[PresetId]:
        return self.preset_id

    def absolute_range(self) -> Optional[DateRange]:
        lo = parse_date_value(self.selected_min_date)
        hi = parse_date_value(self.selected_max_date)
        if lo is None or hi is None:
            return None
        return DateRange.whole_days(min(lo, hi), max(lo, hi))

    def to_host(self) -> Dict[str, Any]:
        return {"presetId": self.preset_id.value if self.preset_id else None,
                "isClearSelection": self.is_clear_selection}


def capture(state: Any) -> SnapshotBlob:
    """Blob for the current state. `state` only needs an `active_preset` attribute."""
    return SnapshotBlob(preset_id=getattr(state, "active_preset", None), is_clear_selection=False)


def restore_selection(
    blob: SnapshotBlob,
    configured_preset: PresetId,
    now: dt.datetime,
    bounds: Optional[DataBounds],
) -> Tuple[Optional[DateRange], Optional[PresetId]]:
    """
    Work out the selection a restore should produce and the preset that owns it.

    Order: the blob's preset (live), then legacy absolute dates (clamped), then
    the configured preset (live), then the full data bounds. A clear-selection
    blob skips the absolute dates.
    """
    preset = blob.usable_preset
    if preset is not None:
        rng = resolve(preset, now, bounds)
        if rng is not None:
            return rng, preset

    if not blob.is_clear_selection:
        absolute = blob.absolute_range()
        if absolute is not None:
            return (absolute.clamp(bounds) if bounds else absolute), None

    if configured_preset is not PresetId.NONE:
        rng = resolve(configured_preset, now, bounds)
        if rng is not None:
            return rng, configured_preset

    return (bounds.as_range() if bounds else None), None
