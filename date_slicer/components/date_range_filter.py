# date_slicer/components/date_range_filter.py
from __future__ import annotations

import datetime as dt
import html
from typing import Optional, Tuple

import streamlit as st

from date_slicer.core.dates import DateRange
from date_slicer.core.formatters import SLIDER_FORMAT, fmt_days, fmt_range
from date_slicer.core.presets import PRESET_LABELS, PresetId
from date_slicer.slicer import DateSlicer, SlicerView


def _dates(rng: DateRange) -> Tuple[dt.date, dt.date]:
    return rng.start.date(), rng.end.date()


def _sync_widget(key: str, value: Tuple[dt.date, dt.date]) -> None:
    """
    Push the engine's selection into the widget before it is instantiated.
    Only touched when it differs, so an in-progress calendar pick is not reset.
    """
    sync_key = f"{key}:synced"
    if st.session_state.get(sync_key) != value:
        st.session_state[key] = value
        st.session_state[sync_key] = value


def _on_widget_change(slicer: DateSlicer, key: str) -> None:
    picked = st.session_state.get(key)
    # date_input returns a 1-tuple while the user is half-way through a range pick.
    if not isinstance(picked, (tuple, list)) or len(picked) != 2:
        return
    start, end = picked
    view = slicer.on_change(min(start, end), max(start, end))
    if view is not None and view.selection is not None:
        st.session_state[f"{key}:synced"] = _dates(view.selection)
        st.session_state[key] = _dates(view.selection)


def _header(view: SlicerView) -> None:
    s = view.settings
    if not s.show_header:
        return
    st.markdown(
        f"<div style='background:{s.card_color};color:{s.font_color};font-size:{s.font_size + 2}px;"
        f"font-weight:600;padding:.25rem .5rem;border-radius:6px;'>{html.escape(s.header_text)}</div>",
        unsafe_allow_html=True,
    )


def _picker(slicer: DateSlicer, view: SlicerView, key: str) -> None:
    lo, hi = _dates(view.bounds.as_range())
    value = _dates(view.selection)
    _sync_widget(key, value)

    if view.settings.selection_style == "calendar":
        st.date_input(
            "Date range",
            min_value=lo,
            max_value=hi,
            key=key,
            format="YYYY-MM-DD",
            on_change=_on_widget_change,
            args=(slicer, key),
            label_visibility="collapsed",
        )
        return

    if lo == hi:
        # st.slider needs distinct ends.
        st.caption(f"Only {fmt_range(view.selection)} in the data")
        return

    st.slider(
        "Date range",
        min_value=lo,
        max_value=hi,
        key=key,
        format=SLIDER_FORMAT,
        on_change=_on_widget_change,
        args=(slicer, key),
        label_visibility="collapsed",
    )


def date_range_filter(slicer: DateSlicer, view: SlicerView, *, key: str) -> Optional[DateRange]:
    """
    Render one slicer: header, the slider / calendar (inside a popover in popup
    mode) and a Clear button. Returns the selection shown.
    """
    _header(view)
    if view.message is not None:
        st.info(view.message)
        return None
    if not view.ready:
        return None

    preset = view.settings.preset
    caption = fmt_range(view.selection) + f" · {fmt_days(view.selection)}"
    if preset is not PresetId.NONE:
        caption += f" · preset: {PRESET_LABELS[preset]}"

    if view.settings.popup_mode:
        with st.popover(fmt_range(view.selection), use_container_width=True):
            _picker(slicer, view, key)
    else:
        _picker(slicer, view, key)

    left, right = st.columns([4, 1])
    left.caption(caption)
    right.button("Clear", key=f"{key}:clear", on_click=slicer.clear_selection, use_container_width=True)
    return view.selection
