"""
Standard chart wrappers using Plotly.
"""
import plotly.express as px
import plotly.graph_objects as go
from typing import List, Optional

from revenue_insights.metrics.records import (
    DealSizeBucket,
    MonthlyPoint,
    PipelineStage,
    SegmentWinRate,
)


# =============================================================================
# CHART THEME
# =============================================================================

CHART_COLORS = {
    "primary": "#1f77b4",
    "secondary": "#ff7f0e",
    "success": "#28a745",
    "warning": "#ffc107",
    "danger": "#dc3545",
    "neutral": "#6c757d",
    "light": "#f8f9fa",
}

CHART_TEMPLATE = "plotly_white"

DEFAULT_LAYOUT = {
    "template": CHART_TEMPLATE,
    "font": {"family": "Arial, sans-serif", "size": 12},
    "margin": {"l": 50, "r": 30, "t": 40, "b": 50},
    "hoverlabel": {"bgcolor": "white"},
}


def apply_layout(fig: go.Figure, **kwargs) -> go.Figure:
    """Apply standard layout to figure."""
    layout = {**DEFAULT_LAYOUT, **kwargs}
    fig.update_layout(**layout)
    return fig


# =============================================================================
# KPI CHARTS
# =============================================================================

def attainment_gauge(revenue: float, target: float, title: str = "Quarter Attainment") -> go.Figure:
    """
    Gauge of revenue as a share of target, with a marker at 100%.

    A zero target renders an empty gauge rather than dividing by zero.
    """
    attainment = revenue / target * 100 if target else 0.0
    upper = max(120.0, attainment * 1.1)

    if attainment >= 105:
        bar_color = CHART_COLORS["success"]
    elif attainment >= 95:
        bar_color = CHART_COLORS["warning"]
    else:
        bar_color = CHART_COLORS["danger"]

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=attainment,
        title={"text": title},
        number={"suffix": "%", "valueformat": ".1f"},
        gauge={
            "axis": {"range": [0, upper]},
            "bar": {"color": bar_color},
            "threshold": {
                "line": {"color": CHART_COLORS["neutral"], "width": 3},
                "value": 100,
            },
        },
    ))

    return apply_layout(fig, height=240)


# =============================================================================
# DRIVER BREAKDOWNS
# =============================================================================

def pipeline_by_stage_bar(stages: List[PipelineStage], title: str = "Pipeline by Stage") -> go.Figure:
    """Horizontal bar of open value per stage, coloured by stage."""
    fig = go.Figure(go.Bar(
        x=[s.value for s in stages],
        y=[s.stage for s in stages],
        orientation="h",
        marker={"color": [s.color for s in stages]},
        text=[f"{s.count} deals" for s in stages],
        textposition="auto",
        hovertemplate="%{y}<br>$%{x:,.0f}<extra></extra>",
    ))

    fig.update_layout(
        title=title,
        xaxis_title="Pipeline Value",
        yaxis_title="",
        yaxis={"autorange": "reversed"},
        showlegend=False,
    )

    return apply_layout(fig)


def segment_win_rate_bar(segments: List[SegmentWinRate],
                         benchmark: Optional[float] = None,
                         title: str = "Win Rate by Segment") -> go.Figure:
    fig = go.Figure(go.Bar(
        x=[s.segment for s in segments],
        y=[s.win_rate for s in segments],
        marker_color=CHART_COLORS["primary"],
        text=[f"{s.win_rate:.0f}% ({s.deal_count})" for s in segments],
        textposition="outside",
    ))

    if benchmark is not None:
        fig.add_hline(
            y=benchmark,
            line_dash="dash",
            line_color=CHART_COLORS["neutral"],
            annotation_text=f"Benchmark {benchmark:.0f}%",
        )

    fig.update_layout(title=title, xaxis_title="", yaxis_title="Win Rate (%)", showlegend=False)

    return apply_layout(fig)


def deal_size_donut(buckets: List[DealSizeBucket], title: str = "Won Deal Sizes") -> go.Figure:
    """Donut of won-deal counts per size band."""
    fig = px.pie(
        names=[b.range for b in buckets],
        values=[b.count for b in buckets],
        hole=0.5,
        title=title,
    )
    fig.update_traces(textinfo="label+value", sort=False)
    return apply_layout(fig, showlegend=False)


def monthly_trend_chart(points: List[MonthlyPoint], title: str = "Revenue vs Target") -> go.Figure:
    """
    Monthly won revenue as bars with the target as a line.
    """
    months = [p.month for p in points]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=months,
        y=[p.revenue for p in points],
        name="Revenue",
        marker_color=CHART_COLORS["primary"],
        customdata=[p.deals for p in points],
        hovertemplate="%{x}<br>$%{y:,.0f}<br>%{customdata} deals<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=months,
        y=[p.target for p in points],
        name="Target",
        mode="lines+markers",
        line={"color": CHART_COLORS["secondary"], "dash": "dash"},
    ))

    fig.update_layout(
        title=title,
        xaxis_title="",
        yaxis_title="Revenue",
        legend={"orientation": "h", "yanchor": "bottom", "y": 1.02, "xanchor": "right", "x": 1},
    )

    return apply_layout(fig)
