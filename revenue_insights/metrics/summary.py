"""
Quarter-to-date revenue versus target.
"""
from __future__ import annotations

import logging

import pandas as pd

from revenue_insights.config import STATUS_THRESHOLD
from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.calculations import percentage_change
from revenue_insights.metrics.periods import (
    DateLike,
    current_quarter,
    days_remaining_in_quarter,
    months_in_quarter,
    previous_quarter,
    same_quarter_last_year,
)
from revenue_insights.metrics.records import SummaryResponse

logger = logging.getLogger(__name__)


def _sum_amount(df: pd.DataFrame) -> float:
    if len(df) == 0:
        return 0.0
    return float(df["amount"].fillna(0).sum())


def classify_status(gap_percentage: float) -> str:
    """ahead / behind beyond +/-5% of target, on-track in between."""
    if gap_percentage > STATUS_THRESHOLD:
        return "ahead"
    if gap_percentage < -STATUS_THRESHOLD:
        return "behind"
    return "on-track"


def compute_summary(store: SalesDataStore, now: DateLike) -> SummaryResponse:
    """Snapshot of the current quarter against target, last quarter and last year."""
    current = current_quarter(now)
    previous = previous_quarter(now)
    last_year = same_quarter_last_year(now)

    current_deals = store.get_closed_won_deals_in_range(current.start, current.end)
    current_revenue = _sum_amount(current_deals)
    previous_revenue = _sum_amount(store.get_closed_won_deals_in_range(previous.start, previous.end))
    last_year_revenue = _sum_amount(store.get_closed_won_deals_in_range(last_year.start, last_year.end))

    targets = store.get_all_targets()
    quarter_months = months_in_quarter(current)
    quarter_target = float(targets.loc[targets["month"].isin(quarter_months), "target"].sum())

    gap_percentage = percentage_change(current_revenue, quarter_target)

    open_deals = store.get_open_deals()

    logger.debug(
        "Summary %s: revenue=%.0f target=%.0f open=%d",
        current.label, current_revenue, quarter_target, len(open_deals),
    )

    return SummaryResponse(
        current_quarter_revenue=current_revenue,
        target=quarter_target,
        gap=current_revenue - quarter_target,
        gap_percentage=gap_percentage,
        status=classify_status(gap_percentage),
        yoy_change=percentage_change(current_revenue, last_year_revenue),
        qoq_change=percentage_change(current_revenue, previous_revenue),
        quarter_label=current.label,
        closed_deals=len(current_deals),
        open_deals=len(open_deals),
        total_pipeline=_sum_amount(open_deals),
        days_remaining=days_remaining_in_quarter(now),
    )
