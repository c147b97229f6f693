"""Host-facing glue: one DateSlicer per widget instance.

The host calls `update` once per data / filter / configuration change. The
slicer validates the bound column, computes data bounds, runs one reconciliation
tick, sends at most one predicate to the filter bus and hands the result to the
presentation layer.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from date_slicer.core.dates import DataBounds, DateRange, bounds_from_values
from date_slicer.core.logging_setup import get_logger, summarize_for_log
from date_slicer.core.presets import PresetId, resolve
from date_slicer.core.settings import EngineTiming, SlicerSettings
from date_slicer.filters.codec import AdvancedFilter, Predicate
from date_slicer.filters.columns import ColumnRef, ColumnSource, column_ref, is_hierarchy_field
from date_slicer.filters.engine import Phase, ReconciliationEngine, Rule
from date_slicer.filters.snapshot import SnapshotBlob

log = get_logger("slicer")

NO_DATA_MESSAGE = "No data available"
NO_FIELD_MESSAGE = "Please select a Date field"
NO_VALID_DATES_MESSAGE = "No valid dates found"
HIERARCHY_MESSAGE = (
    "Please bind the base Date column, not the Date Hierarchy (Year/Quarter/Month/Day). "
    "Right-click the Date field and select Date instead of Date Hierarchy."
)


class FilterSink(Protocol):
    def apply_predicate(self, predicate: Any, merge_strategy: str = "merge") -> None: ...


@dataclass
class UpdateOptions:
    """Everything the host supplies on one tick."""
    values: Sequence[Any] = ()
    source: Optional[ColumnSource] = None
    filters: Predicate = None
    settings: SlicerSettings = field(default_factory=SlicerSettings)


@dataclass
class SlicerView:
    """What the presentation layer renders after a tick."""
    settings: SlicerSettings
    message: Optional[str] = None
    bounds: Optional[DataBounds] = None
    selection: Optional[DateRange] = None
    preset_range: Optional[DateRange] = None
    phase: Phase = Phase.UNINITIALIZED
    rule: Optional[Rule] = None
    wrote: bool = False

    @property
    def ready(self) -> bool:
        return self.message is None and self.selection is not None


class DateSlicer:
    def __init__(
        self,
        bus: FilterSink,
        view: Optional[Callable[[SlicerView], None]] = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        timing: Optional[EngineTiming] = None,
    ):
        self.bus = bus
        self.view = view
        self.clock = clock
        self.engine = ReconciliationEngine(timing=timing, clock=clock)
        self.settings = SlicerSettings()
        self.column: Optional[ColumnRef] = None
        self.last_view: Optional[SlicerView] = None
        self.destroyed = False

    # -------------------------- host entry points --------------------------

    def update(self, options: UpdateOptions) -> SlicerView:
        if self.destroyed:
            raise RuntimeError("DateSlicer.update called after destroy()")

        self.settings = options.settings
        message = self._validate(options)
        if message is not None:
            log.debug(f"[update] - message_rendered - message={message!r}")
            return self._render(SlicerView(settings=self.settings, message=message, phase=self.engine.phase))

        bounds = bounds_from_values(options.values)
        if bounds is None:
            return self._render(
                SlicerView(settings=self.settings, message=NO_VALID_DATES_MESSAGE, phase=self.engine.phase)
            )

        self.column = column_ref(options.source)
        outcome = self.engine.tick(bounds, options.filters, self.column, self.settings.preset)
        if outcome.write is not None:
            self._send(outcome.write)

        return self._render(self._view(outcome.rule, wrote=outcome.write is not None))

    def on_change(self, start: Union[DateRange, dt.datetime, dt.date], end: Optional[Any] = None) -> Optional[SlicerView]:
        """Presentation callback: the user picked a range."""
        rng = start if isinstance(start, DateRange) else DateRange.whole_days(_as_datetime(start), _as_datetime(end))
        write = self.engine.on_change(rng)
        if write is None:
            return None
        self._send(write)
        return self._render(self._view(Rule.LOCAL_CHANGE, wrote=True))

    def clear_selection(self) -> Optional[SlicerView]:
        write = self.engine.clear_selection(self.settings.preset)
        if write is None:
            return None
        self._send(write)
        return self._render(self._view(Rule.CLEAR_SELECTION, wrote=True))

    def capture_state(self) -> Dict[str, Any]:
        return self.engine.capture().to_host()

    def restore_state(self, blob: Union[SnapshotBlob, Mapping[str, Any], None]) -> None:
        """Queue a restore; it takes effect on the next `update`."""
        try:
            parsed = blob if isinstance(blob, SnapshotBlob) else SnapshotBlob.model_validate(dict(blob or {}))
        except ValidationError as exc:
            log.warning(
                f"[restore_state] - restore_skipped - errors={exc.error_count()} "
                f"blob={summarize_for_log(blob)}"
            )
            return
        log.info(
            f"[restore_state] - restore_queued - preset={parsed.preset_id} "
            f"clear_selection={parsed.is_clear_selection}"
        )
        self.engine.request_restore(parsed)

    def destroy(self) -> None:
        self.destroyed = True
        self.view = None
        self.last_view = None

    # -------------------------- internals --------------------------

    @staticmethod
    def _validate(options: UpdateOptions) -> Optional[str]:
        if options.values is None or len(options.values) == 0:
            return NO_DATA_MESSAGE
        if options.source is None:
            return NO_FIELD_MESSAGE
        if is_hierarchy_field(options.source):
            return HIERARCHY_MESSAGE
        return None

    def _send(self, predicate: AdvancedFilter) -> None:
        log.info(f"[_send] - predicate_written - column={self.column} conditions={len(predicate.conditions)}")
        self.bus.apply_predicate(predicate.to_json_dict(), merge_strategy="merge")

    def _view(self, rule: Optional[Rule], wrote: bool) -> SlicerView:
        state = self.engine.state
        preset_range = None
        if self.settings.preset is not PresetId.NONE:
            preset_range = resolve(self.settings.preset, self.clock(), state.bounds)
        return SlicerView(
            settings=self.settings,
            bounds=state.bounds,
            selection=state.selected,
            preset_range=preset_range,
            phase=state.phase,
            rule=rule,
            wrote=wrote,
        )

    def _render(self, view: SlicerView) -> SlicerView:
        self.last_view = view
        if self.view is not None:
            self.view(view)
        return view


def _as_datetime(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    raise TypeError(f"Expected a date or datetime, got {type(value).__name__}")
