# date_slicer/filters/engine.py
# ------------------------------------------------------------
# Reconciliation engine for one date slicer instance.
# - One call to `reconcile` per host update tick; first matching rule wins.
# - State is an explicit dataclass; `reconcile` never mutates its input.
# - Mode flags carry deadlines checked at tick start instead of timers.
# - Every write records its hash in the same call that emits it.
# ------------------------------------------------------------

from __future__ import annotations

import dataclasses
import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from date_slicer.core.dates import DataBounds, DateRange
from date_slicer.core.logging_setup import get_logger
from date_slicer.core.presets import PresetId, resolve
from date_slicer.core.settings import EngineTiming
from date_slicer.filters import clear_all, snapshot
from date_slicer.filters.codec import AdvancedFilter, Predicate, decode, encode, predicate_hash
from date_slicer.filters.columns import ColumnRef
from date_slicer.filters.loop_guard import EchoClass, classify, is_echo
from date_slicer.filters.snapshot import SnapshotBlob

log = get_logger("engine")


class Phase(str, Enum):
    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    LOCAL_CHANGE_IN_FLIGHT = "local_change_in_flight"
    RESTORING_SNAPSHOT = "restoring_snapshot"
    CLEAR_ALL_IN_FLIGHT = "clear_all_in_flight"


class Rule(str, Enum):
    BOUNDS_CHANGED = "bounds_changed"
    PRESET_CHANGED = "preset_changed"
    CLEAR_ALL = "clear_all"
    SNAPSHOT_RESTORE = "snapshot_restore"
    EXTERNAL_ADOPTED = "external_adopted"
    SEED = "seed"
    PRESET_DRIFT = "preset_drift"
    IDLE = "idle"
    LOCAL_CHANGE = "local_change"
    CLEAR_SELECTION = "clear_selection"


@dataclass
class ReconciliationState:
    selected: Optional[DateRange] = None
    bounds: Optional[DataBounds] = None
    has_manual_selection: bool = False

    active_preset: Optional[PresetId] = None
    last_preset_setting: Optional[PresetId] = None

    last_written_hash: Optional[str] = None

    filter_was_present_last_tick: bool = False
    is_first_tick: bool = True
    clear_all_pending: bool = False

    is_restoring_snapshot: bool = False
    pending_restore: Optional[SnapshotBlob] = None
    restore_deadline: Optional[dt.datetime] = None

    is_applying_local_change: bool = False
    local_change_deadline: Optional[dt.datetime] = None

    is_clear_all_in_flight: bool = False
    clear_all_deadline: Optional[dt.datetime] = None

    @property
    def restoring(self) -> bool:
        return self.is_restoring_snapshot or self.pending_restore is not None

    @property
    def write_in_flight(self) -> bool:
        return self.is_applying_local_change or self.is_clear_all_in_flight

    @property
    def phase(self) -> Phase:
        if self.selected is None and self.bounds is None and not self.restoring:
            return Phase.UNINITIALIZED
        if self.restoring:
            return Phase.RESTORING_SNAPSHOT
        if self.is_clear_all_in_flight:
            return Phase.CLEAR_ALL_IN_FLIGHT
        if self.is_applying_local_change:
            return Phase.LOCAL_CHANGE_IN_FLIGHT
        return Phase.IDLE


@dataclass(frozen=True)
class TickInput:
    bounds: DataBounds
    external: Predicate
    column: ColumnRef
    preset: PresetId = PresetId.NONE


@dataclass(frozen=True)
class TickOutcome:
    state: ReconciliationState
    selection: Optional[DateRange]
    write: Optional[AdvancedFilter]
    rule: Rule
    echo: EchoClass
    clear_all_edge: bool = False


# -------------------------- helpers --------------------------

def _after(now: dt.datetime, ms: int) -> dt.datetime:
    return now + dt.timedelta(milliseconds=ms)


def _expire_modes(s: ReconciliationState, now: dt.datetime) -> None:
    if s.local_change_deadline is not None and now >= s.local_change_deadline:
        s.is_applying_local_change = False
        s.local_change_deadline = None
    if s.clear_all_deadline is not None and now >= s.clear_all_deadline:
        s.is_clear_all_in_flight = False
        s.clear_all_deadline = None
    if s.restore_deadline is not None and now >= s.restore_deadline:
        s.is_restoring_snapshot = False
        s.restore_deadline = None


def _settle_on_echo(s: ReconciliationState) -> None:
    """Our last write came back: whatever mode produced it is finished."""
    s.is_applying_local_change = False
    s.local_change_deadline = None
    s.is_clear_all_in_flight = False
    s.clear_all_deadline = None
    if s.pending_restore is None:
        s.is_restoring_snapshot = False
        s.restore_deadline = None


def _write(s: ReconciliationState, column: ColumnRef) -> AdvancedFilter:
    predicate = encode(s.selected, column)
    s.last_written_hash = predicate_hash(predicate, column)
    return predicate


def _hold_local(s: ReconciliationState, now: dt.datetime, ms: int) -> None:
    s.is_applying_local_change = True
    s.local_change_deadline = _after(now, ms)


def _live_preset(preset: Optional[PresetId], now: dt.datetime, bounds: Optional[DataBounds]) -> Optional[DateRange]:
    if preset is None or preset is PresetId.NONE:
        return None
    return resolve(preset, now, bounds)


# -------------------------- tick --------------------------

def reconcile(
    state: ReconciliationState,
    tick: TickInput,
    now: dt.datetime,
    timing: Optional[EngineTiming] = None,
) -> TickOutcome:
    """
    Run one update tick and return the next state plus the write, if any.

    Precedence: bounds change, preset configuration change, clear-all, snapshot
    restore, genuine external predicate, first seed, preset drift, idle.
    """
    timing = timing or EngineTiming()
    s = dataclasses.replace(state)
    column, preset, bounds = tick.column, tick.preset, tick.bounds

    _expire_modes(s, now)

    ext_range = decode(tick.external, column)
    ext_hash = predicate_hash(tick.external, column) if ext_range is not None else None
    is_present = ext_hash is not None

    if is_echo(ext_hash, s.last_written_hash):
        _settle_on_echo(s)

    echo = classify(ext_hash, s.last_written_hash, s.write_in_flight)
    edge = clear_all.observe(s.filter_was_present_last_tick, is_present, s.is_first_tick)
    s.clear_all_pending = clear_all.latch(s.clear_all_pending, edge, is_present)

    first = s.is_first_tick
    if first:
        # The configuration seen on the first tick is the baseline, not a change.
        s.last_preset_setting = preset

    bounds_changed = bounds != s.bounds
    s.bounds = bounds

    write: Optional[AdvancedFilter] = None
    rule = Rule.IDLE

    if bounds_changed and not s.restoring:
        rule = Rule.BOUNDS_CHANGED
        if s.selected is not None:
            s.selected = s.selected.clamp(bounds)
        else:
            seeded = _live_preset(preset, now, bounds) if first else None
            if seeded is not None:
                s.selected = seeded
                s.active_preset = preset
                write = _write(s, column)
                _hold_local(s, now, timing.preset_write_timeout_ms)
            else:
                s.selected = bounds.as_range()

    elif preset != s.last_preset_setting and not s.restoring:
        rule = Rule.PRESET_CHANGED
        s.has_manual_selection = False
        s.clear_all_pending = False
        s.last_preset_setting = preset
        live = _live_preset(preset, now, bounds)
        s.active_preset = preset if live is not None else None
        s.selected = live if live is not None else bounds.as_range()
        write = _write(s, column)
        _hold_local(s, now, timing.preset_write_timeout_ms)

    elif s.clear_all_pending and not first and not s.restoring and not s.write_in_flight:
        rule = Rule.CLEAR_ALL
        s.clear_all_pending = False
        s.has_manual_selection = False
        live = _live_preset(preset, now, bounds)
        if live is not None:
            s.selected = live
            s.active_preset = preset
            write = _write(s, column)
            s.is_clear_all_in_flight = True
            s.clear_all_deadline = _after(now, timing.clear_all_timeout_ms)
        else:
            # The bus is empty now; a predicate we wrote earlier is no longer an echo.
            s.selected = bounds.as_range()
            s.active_preset = None
            s.last_written_hash = None

    elif s.pending_restore is not None:
        rule = Rule.SNAPSHOT_RESTORE
        blob = s.pending_restore
        s.pending_restore = None
        s.has_manual_selection = False
        s.clear_all_pending = False
        rng, owner = snapshot.restore_selection(blob, preset, now, bounds)
        s.active_preset = owner
        s.selected = rng
        if blob.is_clear_selection and owner is None:
            # Clear-all semantics without a preset: the bus is already clear.
            s.is_restoring_snapshot = False
            s.restore_deadline = None
            s.last_written_hash = None
        else:
            write = _write(s, column)
            s.is_restoring_snapshot = True
            s.restore_deadline = _after(now, timing.restore_timeout_ms)

    elif echo is EchoClass.GENUINE and not s.restoring:
        rule = Rule.EXTERNAL_ADOPTED
        s.selected = ext_range
        s.has_manual_selection = True
        s.active_preset = None
        # The adopted predicate is the bus state now, not our older write.
        s.last_written_hash = ext_hash

    elif not is_present and s.selected is None:
        rule = Rule.SEED
        live = _live_preset(preset, now, bounds)
        if live is not None:
            s.selected = live
            s.active_preset = preset
            write = _write(s, column)
            _hold_local(s, now, timing.preset_write_timeout_ms)
        else:
            s.selected = bounds.as_range()

    else:
        live = None
        if not s.has_manual_selection and not s.restoring and not s.write_in_flight:
            live = _live_preset(s.active_preset, now, bounds)
        if live is not None and live != s.selected:
            rule = Rule.PRESET_DRIFT
            s.selected = live
            write = _write(s, column)
            _hold_local(s, now, timing.preset_write_timeout_ms)

    s.filter_was_present_last_tick = is_present
    s.is_first_tick = False

    log.debug(
        f"[reconcile] - tick - rule={rule.value} echo={echo.value} edge={edge} "
        f"phase={s.phase.value} manual={s.has_manual_selection} "
        f"preset={s.active_preset} write={write is not None} "
        f"selected={s.selected.to_dict() if s.selected else None}"
    )
    return TickOutcome(state=s, selection=s.selected, write=write, rule=rule, echo=echo, clear_all_edge=edge)


# -------------------------- local interaction --------------------------

def apply_local_change(
    state: ReconciliationState,
    rng: DateRange,
    column: ColumnRef,
    now: dt.datetime,
    timing: Optional[EngineTiming] = None,
) -> Tuple[ReconciliationState, AdvancedFilter]:
    """The user picked `rng`: adopt it as a sticky manual selection and write it."""
    timing = timing or EngineTiming()
    s = dataclasses.replace(state)
    rng = rng.normalized()
    if s.bounds is not None:
        rng = rng.clamp(s.bounds)
    s.selected = rng
    s.has_manual_selection = True
    s.active_preset = None
    s.clear_all_pending = False
    write = _write(s, column)
    _hold_local(s, now, timing.local_change_timeout_ms)
    log.debug(f"[apply_local_change] - selection_set - selected={rng.to_dict()}")
    return s, write


def clear_selection(
    state: ReconciliationState,
    preset: PresetId,
    column: ColumnRef,
    now: dt.datetime,
    timing: Optional[EngineTiming] = None,
) -> Tuple[ReconciliationState, Optional[AdvancedFilter]]:
    """Reset to the configured preset, or the full data bounds, and write it."""
    timing = timing or EngineTiming()
    s = dataclasses.replace(state)
    if s.bounds is None:
        return s, None
    live = _live_preset(preset, now, s.bounds)
    s.selected = live if live is not None else s.bounds.as_range()
    s.active_preset = preset if live is not None else None
    s.has_manual_selection = False
    s.clear_all_pending = False
    write = _write(s, column)
    _hold_local(s, now, timing.preset_write_timeout_ms)
    log.debug(f"[clear_selection] - selection_reset - preset={s.active_preset} selected={s.selected.to_dict()}")
    return s, write


def request_restore(state: ReconciliationState, blob: SnapshotBlob) -> ReconciliationState:
    """Queue a snapshot restore; it is applied on the next tick."""
    s = dataclasses.replace(state)
    s.pending_restore = blob
    s.is_restoring_snapshot = True
    s.restore_deadline = None
    return s


# -------------------------- stateful wrapper --------------------------

class ReconciliationEngine:
    """Holds the state of one slicer instance between ticks."""

    def __init__(
        self,
        timing: Optional[EngineTiming] = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        self.timing = timing or EngineTiming()
        self.clock = clock
        self.state = ReconciliationState()
        self.column: Optional[ColumnRef] = None
        self.last_rule: Optional[Rule] = None

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def selection(self) -> Optional[DateRange]:
        return self.state.selected

    def tick(self, bounds: DataBounds, external: Predicate, column: ColumnRef, preset: PresetId) -> TickOutcome:
        self.column = column
        outcome = reconcile(self.state, TickInput(bounds, external, column, preset), self.clock(), self.timing)
        self.state = outcome.state
        self.last_rule = outcome.rule
        return outcome

    def on_change(self, rng: DateRange) -> Optional[AdvancedFilter]:
        if self.column is None:
            log.warning("[on_change] - ignored_before_first_tick")
            return None
        self.state, write = apply_local_change(self.state, rng, self.column, self.clock(), self.timing)
        self.last_rule = Rule.LOCAL_CHANGE
        return write

    def clear_selection(self, preset: PresetId) -> Optional[AdvancedFilter]:
        if self.column is None:
            return None
        self.state, write = clear_selection(self.state, preset, self.column, self.clock(), self.timing)
        self.last_rule = Rule.CLEAR_SELECTION
        return write

    def request_restore(self, blob: SnapshotBlob) -> None:
        self.state = request_restore(self.state, blob)

    def capture(self) -> SnapshotBlob:
        return snapshot.capture(self.state)
