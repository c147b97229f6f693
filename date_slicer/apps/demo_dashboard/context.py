# date_slicer/apps/demo_dashboard/context.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

import pandas as pd
import streamlit as st

from date_slicer.core import state
from date_slicer.core.logging_setup import get_logger, setup_logging
from date_slicer.core.settings import AppSettings, SlicerSettings, load_settings
from date_slicer.filters.columns import ColumnRef
from date_slicer.services.bookmarks import BookmarkStore
from date_slicer.services.datasets import (
    DATE_COLUMN,
    SALES_TABLE,
    apply_filters,
    column_source,
    date_values,
    make_sales_frame,
)
from date_slicer.services.filter_bus import FilterBus
from date_slicer.slicer import DateSlicer, SlicerView, UpdateOptions

log = get_logger("demo")

PREFIX = "demo"
SLICER_KEYS = ("slicer_a", "slicer_b")
MAX_SETTLE_PASSES = 3


@dataclass
class DashboardContext:
    app_settings: AppSettings
    frame: pd.DataFrame
    bus: FilterBus
    bookmarks: BookmarkStore
    slicers: Dict[str, DateSlicer]
    slicer_settings: Dict[str, SlicerSettings]
    views: Dict[str, SlicerView] = field(default_factory=dict)

    @property
    def date_ref(self) -> ColumnRef:
        return ColumnRef(SALES_TABLE, DATE_COLUMN)

    def filtered(self) -> pd.DataFrame:
        return apply_filters(self.frame, self.bus.filters(), table=SALES_TABLE)


# ---------- cacheable helpers ----------

@st.cache_resource(show_spinner=False)
def _init_logging(app_name: str, log_dir: str, level: str, file_level: str) -> str:
    return str(setup_logging(app_name, log_dir, level, file_level))


@st.cache_data(show_spinner=False)
def _sample_frame(rows: int, days: int, seed: int, end: dt.date) -> pd.DataFrame:
    return make_sales_frame(rows=rows, days=days, seed=seed, end=end)


def _new_slicer(bus: FilterBus, app_settings: AppSettings) -> DateSlicer:
    return DateSlicer(bus, timing=app_settings.timing)


# ---------- context ----------

def build_context() -> DashboardContext:
    app_settings = load_settings()
    lg = app_settings.logging
    _init_logging(lg.app_name, str(lg.log_dir), lg.level, lg.file_level)

    demo = app_settings.demo
    frame = _sample_frame(demo.rows, demo.days, demo.seed, dt.date.today())

    bus = state.get_or_create("bus", FilterBus, prefix=PREFIX)

    def _store() -> BookmarkStore:
        store = BookmarkStore(app_settings.bookmarks_path)
        store.load()
        return store

    bookmarks = state.get_or_create("bookmarks", _store, prefix=PREFIX)
    slicers = {
        key: state.get_or_create(key, lambda: _new_slicer(bus, app_settings), prefix=PREFIX)
        for key in SLICER_KEYS
    }
    settings = {
        key: state.get_or_create(f"{key}:settings", SlicerSettings, prefix=PREFIX)
        for key in SLICER_KEYS
    }
    return DashboardContext(app_settings, frame, bus, bookmarks, slicers, settings)


def recreate_slicers(ctx: DashboardContext) -> None:
    """
    Throw away the slicer instances the way a host does on navigation, keeping
    only their captured blobs. The new instances restore from those blobs.
    """
    for key, old in list(ctx.slicers.items()):
        blob = old.capture_state()
        old.destroy()
        fresh = _new_slicer(ctx.bus, ctx.app_settings)
        fresh.restore_state(blob)
        state.set(key, fresh, prefix=PREFIX)
        ctx.slicers[key] = fresh
    log.info(f"[recreate_slicers] - instances_recreated - count={len(ctx.slicers)}")


def tick_slicers(ctx: DashboardContext) -> Mapping[str, SlicerView]:
    """
    One host update for every slicer. Each slicer's data is filtered by every
    bus filter except those on its own column. Passes repeat while some slicer
    wrote or still holds a latched clear-all, so sibling slicers see each
    other's writes within one rerun.
    """
    source = column_source(SALES_TABLE, DATE_COLUMN)
    for n in range(MAX_SETTLE_PASSES):
        wrote: List[str] = []
        for key, slicer in ctx.slicers.items():
            visible = apply_filters(ctx.frame, ctx.bus.filters(), table=SALES_TABLE, exclude=ctx.date_ref)
            view = slicer.update(
                UpdateOptions(
                    values=date_values(visible),
                    source=source,
                    filters=ctx.bus.filters(),
                    settings=ctx.slicer_settings[key],
                )
            )
            ctx.views[key] = view
            if view.wrote:
                wrote.append(key)
        # A clear-all latched behind a bounds change is handled on the next pass.
        pending = [key for key, slicer in ctx.slicers.items() if slicer.engine.state.clear_all_pending]
        if not wrote and not pending:
            break
        log.debug(f"[tick_slicers] - settle_pass - pass={n + 1} wrote={wrote} pending={pending}")
    return ctx.views
