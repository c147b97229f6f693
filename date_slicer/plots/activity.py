# date_slicer/plots/activity.py
from __future__ import annotations

from typing import Optional

import pandas as pd
import plotly.graph_objects as go

from date_slicer.core.dates import DataBounds, DateRange
from date_slicer.plots.theme import GraphTheme, apply_graph_theme
from date_slicer.services.datasets import AMOUNT_COLUMN, CATEGORY_COLUMN, DATE_COLUMN


def plot_daily_activity(
    totals: pd.DataFrame,
    *,
    selection: Optional[DateRange] = None,
    bounds: Optional[DataBounds] = None,
    theme: Optional[GraphTheme] = None,
    title: str = "Daily order amount",
) -> go.Figure:
    """
    Stacked daily bars per category. The active selection is shaded and the
    data bounds are marked with dotted lines.
    """
    t = theme or GraphTheme()
    fig = go.Figure()
    for cat, grp in totals.groupby(CATEGORY_COLUMN, sort=True):
        fig.add_bar(
            x=grp[DATE_COLUMN], y=grp[AMOUNT_COLUMN], name=str(cat), marker_color=t.color_for(str(cat)),
            hovertemplate=f"%{{x|%d %b %Y}}<br>{cat}: $%{{y:,.0f}}<extra></extra>",
        )

    if selection is not None:
        fig.add_vrect(x0=selection.start, x1=selection.end, fillcolor=t.selection_fill, line_width=0, layer="below")
    if bounds is not None:
        for x in (bounds.min_date, bounds.max_date):
            fig.add_vline(x=x, line_dash="dot", line_color=t.bounds_line)

    fig.update_layout(barmode="stack", title=title, yaxis_title="Amount ($)")
    return apply_graph_theme(fig, t)
