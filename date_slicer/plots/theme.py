# date_slicer/plots/theme.py
from __future__ import annotations

from typing import Dict

import plotly.graph_objects as go
from pydantic import BaseModel, ConfigDict, Field


class GraphTheme(BaseModel):
    """Shared look for the dashboard's Plotly figures."""
    model_config = ConfigDict(extra="forbid")

    template: str = "plotly_dark"
    paper_bgcolor: str = "#0E1117"
    plot_bgcolor: str = "#0E1117"
    font_family: str = "Inter, Segoe UI, Helvetica, Arial, sans-serif"
    font_color: str = "#E6E9EF"

    # One colour per category; unknown categories fall back to `accent`.
    accent: str = "#76B7FB"
    palette: Dict[str, str] = Field(default_factory=lambda: {
        "North": "#76B7FB",
        "South": "#F5B041",
        "East": "#58D68D",
        "West": "#EC7063",
    })
    selection_fill: str = "rgba(118,183,251,0.12)"
    bounds_line: str = "rgba(160,160,160,0.55)"

    legend_orientation: str = "h"
    legend_x: float = 0.0
    legend_y: float = -0.20

    default_height: int = 380

    def color_for(self, key: str) -> str:
        return self.palette.get(key, self.accent)


def apply_graph_theme(fig: go.Figure, theme: GraphTheme | None = None) -> go.Figure:
    """Apply the layout theme in place; width is left to the container."""
    t = theme or GraphTheme()
    fig.update_layout(
        template=t.template,
        paper_bgcolor=t.paper_bgcolor,
        plot_bgcolor=t.plot_bgcolor,
        font=dict(family=t.font_family, color=t.font_color),
        legend=dict(orientation=t.legend_orientation, x=t.legend_x, y=t.legend_y),
        margin=dict(l=40, r=20, t=50, b=40),
    )
    if fig.layout.height is None:
        fig.update_layout(height=t.default_height)
    return fig
