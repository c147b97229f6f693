import datetime as dt
from types import SimpleNamespace

from date_slicer.core.dates import DateRange
from date_slicer.core.presets import PresetId, resolve
from date_slicer.filters.snapshot import SnapshotBlob, capture, restore_selection

T1 = dt.datetime(2024, 3, 10, 18, 0)
T2 = dt.datetime(2024, 3, 20, 8, 0)


def test_capture_keeps_only_the_preset():
    blob = capture(SimpleNamespace(active_preset=PresetId.YESTERDAY, selected=object()))
    assert blob.to_host() == {"presetId": "yesterday", "isClearSelection": False}
    assert blob.model_dump(by_alias=True) == {"presetId": PresetId.YESTERDAY, "isClearSelection": False}


def test_capture_of_manual_selection_has_no_preset():
    assert capture(SimpleNamespace(active_preset=None)).to_host() == {"presetId": None, "isClearSelection": False}


def test_blob_accepts_legacy_keys():
    blob = SnapshotBlob.model_validate({"lastPreset": "last7Days", "selectedMinDate": "2024-01-01"})
    assert blob.preset_id is PresetId.LAST_7_DAYS
    assert SnapshotBlob.model_validate({"presetId": "none"}).preset_id is None
    assert SnapshotBlob.model_validate({"presetId": "bogus"}).preset_id is None
    assert SnapshotBlob.model_validate({}).is_clear_selection is False


def test_restore_rederives_relative_preset_from_current_clock(bounds):
    blob = capture(SimpleNamespace(active_preset=PresetId.YESTERDAY))
    rng, owner = restore_selection(blob, PresetId.NONE, T2, bounds)
    assert owner is PresetId.YESTERDAY
    assert rng == resolve(PresetId.YESTERDAY, T2, bounds)
    assert rng != resolve(PresetId.YESTERDAY, T1, bounds)


def test_preset_wins_over_stored_absolute_dates(bounds):
    blob = SnapshotBlob.model_validate(
        {"presetId": "today", "selectedMinDate": "2024-01-01", "selectedMaxDate": "2024-01-05"}
    )
    rng, _ = restore_selection(blob, PresetId.NONE, T2, bounds)
    assert rng == DateRange.single_day(T2)


def test_absolute_dates_used_without_a_preset_and_clamped(bounds):
    blob = SnapshotBlob.model_validate({"selectedMinDate": "2023-12-20", "selectedMaxDate": "2024-01-05"})
    rng, owner = restore_selection(blob, PresetId.LAST_7_DAYS, T2, bounds)
    assert owner is None
    assert rng == DateRange.whole_days(dt.datetime(2024, 1, 1), dt.datetime(2024, 1, 5))


def test_clear_selection_blob_ignores_dates_and_falls_back(bounds):
    blob = SnapshotBlob.model_validate(
        {"isClearSelection": True, "selectedMinDate": "2024-01-01", "selectedMaxDate": "2024-01-05"}
    )
    rng, owner = restore_selection(blob, PresetId.LAST_7_DAYS, T2, bounds)
    assert owner is PresetId.LAST_7_DAYS
    assert rng == resolve(PresetId.LAST_7_DAYS, T2, bounds)

    rng, owner = restore_selection(blob, PresetId.NONE, T2, bounds)
    assert owner is None
    assert rng == bounds.as_range()
