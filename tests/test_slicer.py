import datetime as dt

import pytest

from date_slicer.components.engine_status import collect_engine_meta
from date_slicer.core.dates import DateRange
from date_slicer.core.presets import PresetId, resolve
from date_slicer.core.settings import SlicerSettings
from date_slicer.filters.codec import decode
from date_slicer.filters.columns import ColumnSource
from date_slicer.filters.engine import Phase, Rule
from date_slicer.services.datasets import category_filter
from date_slicer.services.filter_bus import FilterBus
from date_slicer.slicer import (
    HIERARCHY_MESSAGE,
    NO_DATA_MESSAGE,
    NO_FIELD_MESSAGE,
    NO_VALID_DATES_MESSAGE,
    DateSlicer,
    UpdateOptions,
)


@pytest.fixture
def bus():
    return FilterBus()


@pytest.fixture
def views():
    return []


@pytest.fixture
def slicer(bus, clock, views):
    return DateSlicer(bus, view=views.append, clock=clock)


def _opts(bus, values, source, preset="last7Days"):
    return UpdateOptions(values=values, source=source, filters=bus.filters(), settings=SlicerSettings(preset=preset))


# -------------------------- validation messages --------------------------

@pytest.mark.parametrize(
    "values, source, message",
    [
        ([], ColumnSource(query_name="Sales.OrderDate"), NO_DATA_MESSAGE),
        (None, ColumnSource(query_name="Sales.OrderDate"), NO_DATA_MESSAGE),
        ([dt.datetime(2024, 1, 1)], None, NO_FIELD_MESSAGE),
        ([dt.datetime(2024, 1, 1)], ColumnSource(query_name="Sales.OrderDate.Variation.Date Hierarchy.Year"), HIERARCHY_MESSAGE),
        (["garbage", None], ColumnSource(query_name="Sales.OrderDate"), NO_VALID_DATES_MESSAGE),
    ],
)
def test_invalid_input_renders_a_message_and_never_writes(slicer, bus, values, source, message):
    view = slicer.update(UpdateOptions(values=values, source=source, filters=bus.filters()))
    assert view.message == message
    assert not view.ready
    assert bus.version == 0


# -------------------------- writes --------------------------

def test_first_update_writes_preset_range_to_the_bus(slicer, bus, source, q1_values, now, bounds, column, views):
    view = slicer.update(_opts(bus, q1_values, source))
    assert view.ready
    assert view.wrote
    assert view.bounds == bounds
    assert view.preset_range == resolve(PresetId.LAST_7_DAYS, now, bounds)
    assert decode(bus.filters(), column) == view.selection
    assert views == [view]


def test_echo_is_not_written_again(slicer, bus, source, q1_values, clock):
    slicer.update(_opts(bus, q1_values, source))
    version = bus.version
    clock.advance(milliseconds=30)
    view = slicer.update(_opts(bus, q1_values, source))
    assert not view.wrote
    assert view.rule is Rule.IDLE
    assert view.phase is Phase.IDLE
    assert bus.version == version


def test_on_change_writes_with_merge_and_keeps_other_filters(slicer, bus, source, q1_values, column, clock):
    bus.apply_predicate(category_filter("Sales", "Region", ["North"]).to_json_dict())
    slicer.update(_opts(bus, q1_values, source, preset="none"))

    clock.advance(seconds=1)
    view = slicer.on_change(dt.date(2024, 2, 1), dt.date(2024, 2, 10))
    assert view.rule is Rule.LOCAL_CHANGE
    assert decode(bus.filters(), column) == DateRange.whole_days(dt.datetime(2024, 2, 1), dt.datetime(2024, 2, 10))
    assert bus.get("Sales", "Region") is not None
    assert len(bus) == 2


def test_on_change_before_first_update_is_ignored(slicer, bus):
    assert slicer.on_change(DateRange.single_day(dt.datetime(2024, 1, 1))) is None
    assert bus.version == 0


def test_on_change_rejects_non_dates(slicer, bus, source, q1_values):
    slicer.update(_opts(bus, q1_values, source))
    with pytest.raises(TypeError):
        slicer.on_change("2024-02-01", "2024-02-03")


def test_clear_selection_returns_to_the_preset(slicer, bus, source, q1_values, clock, bounds):
    slicer.update(_opts(bus, q1_values, source))
    clock.advance(seconds=1)
    slicer.on_change(dt.datetime(2024, 2, 1), dt.datetime(2024, 2, 3))
    view = slicer.clear_selection()
    assert view.rule is Rule.CLEAR_SELECTION
    assert view.selection == resolve(PresetId.LAST_7_DAYS, clock(), bounds)


# -------------------------- snapshot --------------------------

def test_capture_state_only_carries_the_preset(slicer, bus, source, q1_values, clock):
    slicer.update(_opts(bus, q1_values, source))
    assert slicer.capture_state() == {"presetId": "last7Days", "isClearSelection": False}

    clock.advance(seconds=1)
    slicer.on_change(dt.datetime(2024, 2, 1), dt.datetime(2024, 2, 3))
    assert slicer.capture_state() == {"presetId": None, "isClearSelection": False}


def test_restore_state_applies_on_next_update(slicer, bus, source, q1_values, clock, bounds, column):
    slicer.update(_opts(bus, q1_values, source, preset="none"))
    slicer.restore_state({"presetId": "yesterday"})

    clock.now = dt.datetime(2024, 3, 20, 8, 0)
    view = slicer.update(_opts(bus, q1_values, source, preset="none"))
    assert view.rule is Rule.SNAPSHOT_RESTORE
    assert view.selection == DateRange.single_day(dt.datetime(2024, 3, 19))
    assert decode(bus.filters(), column) == view.selection


def test_restore_state_tolerates_an_empty_blob(slicer, bus, source, q1_values, bounds):
    slicer.update(_opts(bus, q1_values, source, preset="none"))
    slicer.restore_state(None)
    view = slicer.update(_opts(bus, q1_values, source, preset="none"))
    assert view.rule is Rule.SNAPSHOT_RESTORE
    assert view.selection == bounds.as_range()


def test_malformed_restore_blob_is_skipped(slicer, bus, source, q1_values, bounds):
    slicer.update(_opts(bus, q1_values, source, preset="none"))
    slicer.restore_state({"isClearSelection": "maybe"})
    assert slicer.engine.state.pending_restore is None

    view = slicer.update(_opts(bus, q1_values, source, preset="none"))
    assert view.rule is Rule.IDLE
    assert view.selection == bounds.as_range()


# -------------------------- lifecycle --------------------------

def test_update_after_destroy_raises(slicer, bus, source, q1_values, views):
    slicer.update(_opts(bus, q1_values, source))
    slicer.destroy()
    with pytest.raises(RuntimeError):
        slicer.update(_opts(bus, q1_values, source))
    assert len(views) == 1


def test_engine_meta_lists_each_slicer_and_the_bus(slicer, bus, source, q1_values):
    slicer.update(_opts(bus, q1_values, source))
    meta = collect_engine_meta({"a": slicer}, bus)
    assert meta.order == ["a", "Filter bus"]
    assert meta.sections["a"]["rule"] == "bounds_changed"
    assert meta.sections["Filter bus"]["filters"] == 1
    assert meta.summary["slicers"] == 1
