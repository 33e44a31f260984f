"""Chart rendering: ChartSpec -> plotly figure.

Pure functions. A missing chart, or a chart kind nobody draws, renders as
None.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

import plotly.express as px
import plotly.graph_objects as go

from analyzer.analysis.models import ChartKind, ChartSpec

log = logging.getLogger(__name__)

COLORS = ["#8884d8", "#82ca9d", "#ffc658", "#ff7c7c", "#8dd1e1"]
_HEIGHT = 300


def palette(n: int) -> list[str]:
    """One color per index, reusing the palette cyclically."""
    return [COLORS[i % len(COLORS)] for i in range(n)]


def _render_bar(chart: ChartSpec) -> go.Figure:
    fig = px.bar(
        x=[p.name for p in chart.data],
        y=[p.value for p in chart.data],
        labels={"x": "name", "y": "value"},
    )
    fig.update_traces(marker_color=COLORS[0])
    return fig


def _render_pie(chart: ChartSpec) -> go.Figure:
    return go.Figure(
        go.Pie(
            labels=[p.name for p in chart.data],
            values=[p.value for p in chart.data],
            marker={"colors": palette(len(chart.data))},
            sort=False,
        )
    )


def _render_scatter(chart: ChartSpec) -> go.Figure:
    fig = px.scatter(
        x=[p.x for p in chart.data],
        y=[p.y for p in chart.data],
        labels={"x": "x", "y": "y"},
    )
    fig.update_traces(marker_color=COLORS[0])
    return fig


_RENDERERS: dict[str, Callable[[ChartSpec], go.Figure]] = {
    ChartKind.BAR.value: _render_bar,
    ChartKind.PIE.value: _render_pie,
    ChartKind.SCATTER.value: _render_scatter,
}


def render(chart: ChartSpec | None) -> go.Figure | None:
    if chart is None:
        return None
    kind = getattr(chart.kind, "value", chart.kind)
    renderer = _RENDERERS.get(kind)
    if renderer is None:
        log.debug("No renderer for chart kind %r", kind)
        return None
    fig = renderer(chart)
    fig.update_layout(height=_HEIGHT, margin={"l": 40, "r": 20, "t": 20, "b": 40})
    return fig


def render_json(chart: ChartSpec | None) -> dict[str, Any] | None:
    """Rendered figure as plain JSON, for the HTTP API."""
    fig = render(chart)
    if fig is None:
        return None
    return json.loads(fig.to_json())
