"""
Reusable UI components and dashboard sections.
"""
import streamlit as st
import pandas as pd
from typing import List, Optional

from revenue_insights.config import DRIVER_BENCHMARKS
from revenue_insights.exports import (
    export_dataframe_csv,
    recommendations_to_frame,
    risks_to_frame,
)
from revenue_insights.metrics.records import (
    DriverMetric,
    DriversResponse,
    RecommendationsResponse,
    RiskFactor,
    RiskFactorsResponse,
    SummaryResponse,
)
from revenue_insights.ui.charts import (
    attainment_gauge,
    deal_size_donut,
    monthly_trend_chart,
    pipeline_by_stage_bar,
    segment_win_rate_bar,
)
from revenue_insights.ui.formatting import (
    category_badge,
    fmt_count,
    fmt_currency,
    fmt_currency_compact,
    fmt_days,
    fmt_percent,
    fmt_variance,
    format_risk_table,
    impact_delta_color,
    metric_delta,
    severity_badge,
    severity_icon,
    status_badge,
    trend_arrow,
)


def section_header(title: str, description: Optional[str] = None):
    """Render section header with optional description."""
    st.subheader(title)
    if description:
        st.caption(description)


def empty_state(message: str, icon: str = "📭"):
    """Render empty state message."""
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(f"### {icon}")
        st.markdown(f"**{message}**")


def download_buttons(df: pd.DataFrame, basename: str, key: str):
    """CSV download for a table, skipped when the table is empty."""
    if len(df) == 0:
        return
    csv_bytes, filename = export_dataframe_csv(df, f"{basename}.csv")
    st.download_button(
        "Download CSV",
        data=csv_bytes,
        file_name=filename,
        mime="text/csv",
        key=key,
    )


# =============================================================================
# SUMMARY
# =============================================================================

def render_summary_section(summary: SummaryResponse):
    section_header(
        f"{summary.quarter_label} Revenue",
        f"{summary.days_remaining} days remaining in the quarter",
    )

    col_gauge, col_metrics = st.columns([1, 2])

    with col_gauge:
        st.plotly_chart(
            attainment_gauge(summary.current_quarter_revenue, summary.target),
            use_container_width=True,
            config={"displayModeBar": False},
        )
        st.markdown(status_badge(summary.status), unsafe_allow_html=True)

    with col_metrics:
        c1, c2, c3 = st.columns(3)
        with c1:
            st.metric("Revenue (QTD)", fmt_currency(summary.current_quarter_revenue))
        with c2:
            st.metric("Target", fmt_currency(summary.target))
        with c3:
            st.metric(
                "Gap to Target",
                fmt_variance(summary.gap),
                delta=metric_delta(summary.gap_percentage),
            )

        c4, c5, c6, c7 = st.columns(4)
        with c4:
            st.metric("vs Last Quarter", fmt_variance(summary.qoq_change, is_percent=True))
        with c5:
            st.metric("vs Last Year", fmt_variance(summary.yoy_change, is_percent=True))
        with c6:
            st.metric("Deals Won", fmt_count(summary.closed_deals))
        with c7:
            st.metric("Open Pipeline", fmt_currency_compact(summary.total_pipeline),
                      help=f"{fmt_count(summary.open_deals)} open deals")


# =============================================================================
# DRIVERS
# =============================================================================

_DRIVER_FORMATTERS = {
    "Pipeline Size": fmt_currency_compact,
    "Win Rate": fmt_percent,
    "Avg Deal Size": fmt_currency_compact,
    "Sales Cycle": fmt_days,
}


def driver_metric_card(metric: DriverMetric):
    formatter = _DRIVER_FORMATTERS.get(metric.name, fmt_currency)
    is_points = metric.name == "Win Rate"
    help_text = f"Previous quarter: {formatter(metric.previous)}"
    if metric.benchmark is not None:
        help_text += f" | Benchmark: {formatter(metric.benchmark)}"

    st.metric(
        label=f"{metric.name} {trend_arrow(metric.trend)}",
        value=formatter(metric.current),
        delta=metric_delta(metric.change_percentage, points=is_points),
        delta_color=impact_delta_color(metric.impact, metric.change_percentage),
        help=help_text,
    )


def render_drivers_section(drivers: DriversResponse):
    section_header("Revenue Drivers", "Current quarter compared with the previous quarter")

    cols = st.columns(len(drivers.metrics))
    for col, metric in zip(cols, drivers.metrics):
        with col:
            driver_metric_card(metric)

    left, right = st.columns(2)
    with left:
        if drivers.pipeline_by_stage:
            st.plotly_chart(pipeline_by_stage_bar(drivers.pipeline_by_stage), use_container_width=True)
        else:
            st.info("No open pipeline.")
    with right:
        if drivers.win_rate_by_segment:
            st.plotly_chart(
                segment_win_rate_bar(drivers.win_rate_by_segment, benchmark=DRIVER_BENCHMARKS["win_rate"]),
                use_container_width=True,
            )
        else:
            st.info("No closed deals to compare segments.")

    left, right = st.columns(2)
    with left:
        st.plotly_chart(deal_size_donut(drivers.deal_size_distribution), use_container_width=True)
    with right:
        if drivers.monthly_trend:
            st.plotly_chart(monthly_trend_chart(drivers.monthly_trend), use_container_width=True)
        else:
            st.info("No monthly targets loaded.")


# =============================================================================
# RISKS
# =============================================================================

def risk_card(risk: RiskFactor):
    with st.container(border=True):
        st.markdown(
            f"{severity_badge(risk.severity)} **{risk.title}**",
            unsafe_allow_html=True,
        )
        st.caption(risk.description)
        st.markdown(
            f"{risk.metric}: **{risk.metric_value:,.1f}** (threshold {risk.threshold:,.0f}) "
            f"| At risk: **{fmt_currency(risk.potential_impact)}**"
        )
        st.markdown(f"_{risk.suggested_action}_")


def _render_risk_list(risks: List[RiskFactor], empty_message: str):
    if not risks:
        st.success(empty_message)
        return
    for risk in risks:
        risk_card(risk)


def render_risk_section(risks: RiskFactorsResponse, as_of: str):
    section_header("Risk Factors")

    summary = risks.summary
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Total Risks", fmt_count(summary.total_risks))
    with c2:
        st.metric(f"{severity_icon('high')} High", fmt_count(summary.high_severity))
    with c3:
        st.metric(f"{severity_icon('medium')} Medium", fmt_count(summary.medium_severity))
    with c4:
        st.metric("Value at Risk", fmt_currency_compact(summary.total_at_risk))

    tabs = st.tabs([
        f"Stale Deals ({len(risks.stale_deals)})",
        f"Underperforming Reps ({len(risks.underperforming_reps)})",
        f"Low Activity Accounts ({len(risks.low_activity_accounts)})",
        "Table",
    ])
    with tabs[0]:
        _render_risk_list(risks.stale_deals, "No stale deals.")
    with tabs[1]:
        _render_risk_list(risks.underperforming_reps, "Every rep is within range of the team average.")
    with tabs[2]:
        _render_risk_list(risks.low_activity_accounts, "All accounts with pipeline are engaged.")
    with tabs[3]:
        frame = risks_to_frame(risks)
        if len(frame) == 0:
            empty_state("No risks detected.", icon="✅")
        else:
            st.dataframe(format_risk_table(frame), use_container_width=True, hide_index=True)
            download_buttons(frame, f"risk_factors_{as_of.replace('-', '')}", key="risk_csv")


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

def recommendation_card(rec):
    with st.container(border=True):
        st.markdown(
            f"**#{rec.priority} {rec.title}** {category_badge(rec.category)}",
            unsafe_allow_html=True,
        )
        st.markdown(rec.description)
        st.caption(rec.reasoning)

        c1, c2, c3 = st.columns(3)
        with c1:
            st.metric("Expected Impact", fmt_currency_compact(rec.expected_impact))
        with c2:
            st.metric("Effort", rec.effort.title())
        with c3:
            st.metric("Timeframe", rec.timeframe)

        with st.expander("Action items", expanded=False):
            st.markdown("\n".join(f"- {item}" for item in rec.action_items))
            if rec.related_entities:
                names = ", ".join(e.name for e in rec.related_entities)
                st.caption(f"Related: {names}")


def render_recommendations_section(recommendations: RecommendationsResponse):
    section_header(
        "Recommendations",
        f"Generated {recommendations.generated_at} ({recommendations.data_freshness})",
    )

    if not recommendations.recommendations:
        empty_state("No recommendations. Nothing crossed an action threshold.", icon="👍")
        return

    for rec in recommendations.recommendations:
        recommendation_card(rec)

    download_buttons(recommendations_to_frame(recommendations), "recommendations", key="rec_csv")
