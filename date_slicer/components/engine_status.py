# date_slicer/components/engine_status.py
from __future__ import annotations

import datetime as dt
import html
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

import streamlit as st

from date_slicer.core.formatters import fmt_range
from date_slicer.services.filter_bus import FilterBus
from date_slicer.slicer import DateSlicer

# -------------------------- Runtime container ---------------------------------


@dataclass
class EngineMeta:
    """
    Free-form payload for the reconciliation HUD.
    - 'summary' renders in the chip line.
    - sections: {section_name: {key: value}}, one per slicer plus the bus.
    """
    summary: Dict[str, Any] = field(default_factory=dict)
    sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    def add(self, section: str, **mapping: Any) -> "EngineMeta":
        sec = self.sections.setdefault(section, {})
        for k, v in mapping.items():
            if v not in (None, "", []):
                sec[k] = v
        if section not in self.order:
            self.order.append(section)
        return self

    def add_summary(self, **mapping: Any) -> "EngineMeta":
        for k, v in mapping.items():
            if v not in (None, "", []):
                self.summary[k] = v
        return self


# -------------------------- Collector -----------------------------------------

def collect_engine_meta(slicers: Mapping[str, DateSlicer], bus: FilterBus) -> EngineMeta:
    meta = EngineMeta()
    for name, slicer in slicers.items():
        state = slicer.engine.state
        meta.add(
            name,
            phase=state.phase.value,
            rule=slicer.engine.last_rule.value if slicer.engine.last_rule else None,
            selected=fmt_range(state.selected),
            preset=str(state.active_preset) if state.active_preset else "—",
            manual=state.has_manual_selection,
            clear_all_pending=state.clear_all_pending or None,
            last_hash=state.last_written_hash[:10] if state.last_written_hash else None,
        )
    meta.add("Filter bus", filters=len(bus), version=bus.version)
    meta.add_summary(slicers=len(slicers), bus_version=bus.version)
    return meta


# -------------------------- Renderer ------------------------------------------

def render_engine_status(meta: EngineMeta, *, title: str = "Reconciliation", open: bool = False) -> None:
    """Sticky, right-aligned chip; click to expand per-slicer state."""
    summary_pairs, section_blocks = _normalize_for_render(meta)

    bar_style = "position: sticky; top: 0; z-index: 9999; width: 100%; margin: 0; padding: 0;"
    row_style = "display: flex; justify-content: flex-end; align-items: center; padding: 6px 12px 2px 12px;"
    chip_style = (
        "cursor: pointer; padding: .25rem .5rem; border-radius: 8px; "
        "border: 1px solid rgba(140,149,159,.3); background: rgba(30,30,30,.65); "
        "color: inherit; font-size: .80rem; user-select: none;"
    )
    summary_text = " · ".join(f"{k}: {_fmt(v)}" for k, v in summary_pairs) or title

    body = "".join(section_blocks)
    st.markdown(
        f"""
        <div style="{bar_style}">
          <div style="{row_style}">
            <details style="{chip_style}"{' open' if open else ''}>
              <summary>ⓘ {html.escape(title)} · {html.escape(summary_text)}</summary>
              {body}
            </details>
          </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


# -------------------------- Internals -----------------------------------------

_GRID = "display:grid; grid-template-columns:auto auto; gap:.25rem .75rem; margin-top:.25rem;"
_SECTION = "margin-top:.5rem; border-top:1px dashed rgba(140,149,159,.35); padding-top:.5rem;"


def _fmt(v: Any) -> str:
    if isinstance(v, dt.datetime):
        return v.strftime("%Y-%m-%d %H:%M")
    if isinstance(v, dt.date):
        return v.isoformat()
    return str(v)


def _normalize_for_render(meta: EngineMeta) -> Tuple[List[Tuple[str, Any]], List[str]]:
    names = meta.order or sorted(meta.sections)
    blocks = [_render_section(n, meta.sections[n]) for n in names if meta.sections.get(n)]
    return list(meta.summary.items()), blocks


def _render_section(name: str, mapping: Mapping[str, Any]) -> str:
    rows = "".join(
        f"<div style='white-space:nowrap;'><span style='font-weight:600;opacity:.7;margin-right:.5rem;'>"
        f"{html.escape(str(k))}</span><span>{html.escape(_fmt(v))}</span></div>"
        for k, v in mapping.items()
    )
    return f"<div style='{_SECTION}'><b>{html.escape(name)}</b><div style='{_GRID}'>{rows}</div></div>"
