"""Replay a scripted sequence of host events against one DateSlicer.

Used by the CLI and the tests to drive the engine without a UI. A scenario is a
JSON document:

    {
      "preset": "last7Days",
      "min": "2024-01-01", "max": "2024-03-31",
      "now": "2024-03-15T09:00:00",
      "steps": [
        {"action": "tick"},
        {"action": "external", "from": "2024-02-01", "to": "2024-02-10"},
        {"action": "tick"},
        {"action": "clear_all"},
        {"action": "tick", "now": "2024-03-16T09:00:00"}
      ]
    }
"""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from date_slicer.core.dates import DateRange, parse_date_value
from date_slicer.core.presets import coerce_preset
from date_slicer.core.settings import EngineTiming, SlicerSettings
from date_slicer.filters.codec import encode
from date_slicer.filters.columns import ColumnSource, column_ref
from date_slicer.services.filter_bus import FilterBus
from date_slicer.slicer import DateSlicer, UpdateOptions

Action = Literal[
    "tick", "external", "clear_all", "change", "clear_selection",
    "restore", "capture", "set_preset", "set_bounds", "advance",
]


class ScenarioStep(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    action: Action
    now: Optional[str] = None
    start: Optional[str] = Field(default=None, alias="from")
    end: Optional[str] = Field(default=None, alias="to")
    preset: Optional[str] = None
    blob: Optional[Dict[str, Any]] = None
    ms: int = 0


class Scenario(BaseModel):
    model_config = ConfigDict(extra="forbid")

    preset: str = "none"
    column: str = "Sales.OrderDate"
    min: str
    max: str
    now: str
    steps: List[ScenarioStep] = Field(default_factory=list)


class StepResult(BaseModel):
    index: int
    action: str
    now: dt.datetime
    rule: Optional[str] = None
    phase: Optional[str] = None
    selection: Optional[Dict[str, str]] = None
    wrote: bool = False
    blob: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


def _dt(value: Optional[str], what: str) -> dt.datetime:
    parsed = parse_date_value(value)
    if parsed is None:
        raise ValueError(f"Scenario {what} {value!r} is not a date")
    return parsed


def load_scenario(path: str | Path) -> Scenario:
    with open(path, "r", encoding="utf-8") as fh:
        return Scenario.model_validate(json.load(fh))


class ScenarioRunner:
    def __init__(self, scenario: Scenario, timing: Optional[EngineTiming] = None):
        self.scenario = scenario
        self.now = _dt(scenario.now, "now")
        self.bus = FilterBus()
        self.source = ColumnSource(query_name=scenario.column, display_name=scenario.column.split(".")[-1])
        self.column = column_ref(self.source)
        self.settings = SlicerSettings(preset=coerce_preset(scenario.preset))
        self.values = self._values(scenario.min, scenario.max)
        self.slicer = DateSlicer(self.bus, clock=lambda: self.now, timing=timing)

    @staticmethod
    def _values(lo: str, hi: str) -> List[dt.datetime]:
        return [ts.to_pydatetime() for ts in pd.date_range(_dt(lo, "min"), _dt(hi, "max"), freq="D")]

    def _range(self, step: ScenarioStep) -> DateRange:
        return DateRange.whole_days(_dt(step.start, "from"), _dt(step.end, "to"))

    def step(self, index: int, step: ScenarioStep) -> StepResult:
        if step.now:
            self.now = _dt(step.now, "now")
        self.now += dt.timedelta(milliseconds=step.ms)

        result = StepResult(index=index, action=step.action, now=self.now)
        view = None
        if step.action == "tick":
            view = self.slicer.update(
                UpdateOptions(values=self.values, source=self.source, filters=self.bus.filters(), settings=self.settings)
            )
        elif step.action == "external":
            self.bus.apply_predicate(encode(self._range(step), self.column).to_json_dict())
        elif step.action == "clear_all":
            self.bus.clear_all()
        elif step.action == "change":
            view = self.slicer.on_change(self._range(step))
        elif step.action == "clear_selection":
            view = self.slicer.clear_selection()
        elif step.action == "restore":
            self.slicer.restore_state(step.blob or {})
        elif step.action == "capture":
            result.blob = self.slicer.capture_state()
        elif step.action == "set_preset":
            self.settings = self.settings.model_copy(update={"preset": coerce_preset(step.preset)})
        elif step.action == "set_bounds":
            self.values = self._values(step.start, step.end)

        if view is not None:
            result.rule = view.rule.value if view.rule else None
            result.phase = view.phase.value
            result.selection = view.selection.to_dict() if view.selection else None
            result.wrote = view.wrote
            result.message = view.message
        return result

    def run(self) -> List[StepResult]:
        return [self.step(i, s) for i, s in enumerate(self.scenario.steps, start=1)]
