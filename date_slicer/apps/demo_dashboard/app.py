# date_slicer/apps/demo_dashboard/app.py
from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure repo root is importable when launched with `streamlit run`
ROOT = Path(__file__).resolve().parent
if str(ROOT.parents[2]) not in sys.path:
    sys.path.insert(0, str(ROOT.parents[2]))

from date_slicer.apps.demo_dashboard.context import (
    PREFIX,
    DashboardContext,
    build_context,
    recreate_slicers,
    tick_slicers,
)
from date_slicer.components.date_range_filter import date_range_filter
from date_slicer.components.engine_status import collect_engine_meta, render_engine_status
from date_slicer.core import state
from date_slicer.core.formatters import fmt_ccy
from date_slicer.core.presets import PRESET_LABELS, PresetId
from date_slicer.plots.activity import plot_daily_activity
from date_slicer.services.datasets import (
    AMOUNT_COLUMN,
    CATEGORY_COLUMN,
    REGIONS,
    SALES_TABLE,
    category_filter,
    daily_totals,
)


# --- Sidebar: per-slicer configuration (the host's format pane) --------------
def _render_settings(ctx: DashboardContext) -> None:
    presets = list(PresetId)
    st.sidebar.header("Slicer settings")
    for key, current in ctx.slicer_settings.items():
        with st.sidebar.expander(key.replace("_", " ").title(), expanded=key == "slicer_a"):
            preset = st.selectbox(
                "Preset", presets, index=presets.index(current.preset),
                format_func=lambda p: PRESET_LABELS[p], key=f"{key}:preset",
            )
            style = st.radio(
                "Selection style", ["slider", "calendar"], horizontal=True,
                index=["slider", "calendar"].index(current.selection_style), key=f"{key}:style",
            )
            popup = st.checkbox("Popup mode", value=current.popup_mode, key=f"{key}:popup")
            header = st.text_input("Header", value=current.header_text, key=f"{key}:header")
            ctx.slicer_settings[key] = current.model_copy(
                update={"preset": preset, "selection_style": style, "popup_mode": popup, "header_text": header}
            )
            state.set(f"{key}:settings", ctx.slicer_settings[key], prefix=PREFIX)


# --- Sidebar: dashboard-level actions ----------------------------------------
def _render_actions(ctx: DashboardContext) -> None:
    st.sidebar.header("Dashboard")

    regions = st.sidebar.multiselect("Region", REGIONS, key="demo:regions")
    if regions:
        wanted = category_filter(SALES_TABLE, CATEGORY_COLUMN, regions).to_json_dict()
        if ctx.bus.get(SALES_TABLE, CATEGORY_COLUMN) != wanted:
            ctx.bus.apply_predicate(wanted)
    elif ctx.bus.get(SALES_TABLE, CATEGORY_COLUMN) is not None:
        ctx.bus.remove(SALES_TABLE, CATEGORY_COLUMN)

    def _clear_all() -> None:
        ctx.bus.clear_all()
        st.session_state["demo:regions"] = []

    st.sidebar.button("Clear all filters", on_click=_clear_all, use_container_width=True)
    st.sidebar.button(
        "Recreate slicer instances", on_click=recreate_slicers, args=(ctx,), use_container_width=True,
        help="Drops in-memory state and restores each slicer from its captured blob.",
    )

    st.sidebar.subheader("Bookmarks")
    name = st.sidebar.text_input("Bookmark name", key="demo:bm_name")
    as_clear = st.sidebar.checkbox("Clear-selection bookmark", key="demo:bm_clear")
    if st.sidebar.button("Capture", disabled=not name, use_container_width=True):
        ctx.bookmarks.capture(name, ctx.slicers, ctx.bus, clear_selection=as_clear)
        ctx.bookmarks.save()
        st.sidebar.success(f"Captured '{name}'")

    names = ctx.bookmarks.names()
    if names:
        chosen = st.sidebar.selectbox("Saved", names, key="demo:bm_pick")

        def _apply() -> None:
            bm = ctx.bookmarks.apply(chosen, ctx.slicers, ctx.bus)
            st.session_state["demo:regions"] = _regions_in(bm.filters)

        st.sidebar.button("Apply bookmark", on_click=_apply, use_container_width=True)


def _regions_in(filters) -> list:
    for f in filters:
        target = f.get("target", {})
        if target.get("table") == SALES_TABLE and target.get("column") == CATEGORY_COLUMN:
            return [c.get("value") for c in f.get("conditions", [])]
    return []


# --- Body ---------------------------------------------------------------------
def _render_body(ctx: DashboardContext) -> None:
    st.title("Date Slicer Demo")
    st.caption("Two slicers bound to the same date column, a region filter and a shared filter bus.")

    render_engine_status(collect_engine_meta(ctx.slicers, ctx.bus), title="Reconciliation")

    cols = st.columns(len(ctx.slicers))
    for col, (key, slicer) in zip(cols, ctx.slicers.items()):
        with col:
            date_range_filter(slicer, ctx.views[key], key=f"demo:{key}:range")

    filtered = ctx.filtered()
    m1, m2, m3 = st.columns(3)
    m1.metric("Orders", f"{len(filtered):,}")
    m2.metric("Amount", fmt_ccy(filtered[AMOUNT_COLUMN].sum()))
    m3.metric("Bus filters", len(ctx.bus))

    first = next(iter(ctx.views.values()))
    fig = plot_daily_activity(daily_totals(filtered), selection=first.selection, bounds=first.bounds)
    st.plotly_chart(fig, use_container_width=True)

    with st.expander("Filter bus"):
        st.json(ctx.bus.filters())


st.set_page_config(page_title="Date Slicer Demo", layout="wide")
ctx = build_context()
_render_settings(ctx)
_render_actions(ctx)
tick_slicers(ctx)
_render_body(ctx)
