"""
Revenue driver metrics: quarter-over-quarter comparisons plus pipeline,
segment, deal-size and monthly breakdowns.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import pandas as pd

from revenue_insights.config import (
    CLOSED_STAGES,
    DEAL_SIZE_BUCKETS,
    DEFAULT_STAGE_COLOR,
    DRIVER_BENCHMARKS,
    MONTHLY_TREND_MONTHS,
    STAGE_CLOSED_WON,
    STAGE_COLORS,
)
from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.calculations import (
    average,
    determine_impact,
    determine_trend,
    percentage_change,
    win_rate,
)
from revenue_insights.metrics.periods import (
    DateLike,
    QuarterWindow,
    current_quarter,
    days_between,
    month_label,
    previous_quarter,
)
from revenue_insights.metrics.records import (
    DealSizeBucket,
    DriverMetric,
    DriversResponse,
    MonthlyPoint,
    PipelineStage,
    SegmentWinRate,
)

logger = logging.getLogger(__name__)


def build_driver_metric(
    name: str,
    current: float,
    previous: float,
    higher_is_better: bool = True,
    benchmark: Optional[float] = None,
    change_percentage: Optional[float] = None,
) -> DriverMetric:
    """
    Compare a current value against the previous period.

    ``change_percentage`` overrides the relative change for metrics that are
    already percentages (win rate compares in raw points).
    """
    if change_percentage is None:
        change_percentage = percentage_change(current, previous)
    return DriverMetric(
        name=name,
        current=float(current),
        previous=float(previous),
        change=float(current - previous),
        change_percentage=float(change_percentage),
        trend=determine_trend(change_percentage),
        impact=determine_impact(change_percentage, higher_is_better),
        benchmark=benchmark,
    )


def _closed_in_window(deals: pd.DataFrame, window: QuarterWindow) -> pd.DataFrame:
    mask = deals["stage"].isin(CLOSED_STAGES) & deals["closed_at"].map(window.contains).astype(bool)
    return deals[mask]


def _won(deals: pd.DataFrame) -> pd.DataFrame:
    return deals[deals["stage"] == STAGE_CLOSED_WON]


def _cycle_days(won_deals: pd.DataFrame) -> List[int]:
    dated = won_deals[won_deals["created_at"].notna() & won_deals["closed_at"].notna()]
    return [
        days_between(created, closed)
        for created, closed in zip(dated["created_at"], dated["closed_at"])
    ]


# =============================================================================
# DRIVER METRICS
# =============================================================================

def compute_pipeline_size(
    deals: pd.DataFrame,
    open_deals: pd.DataFrame,
    previous: QuarterWindow,
) -> DriverMetric:
    """
    Open pipeline now versus the pipeline as of last quarter's end.

    The previous value is approximated from deals that are still open and
    were already created by then; there is no historical stage snapshot.
    """
    current_pipeline = float(open_deals["amount"].sum())
    was_open = (
        ~deals["stage"].isin(CLOSED_STAGES)
        & deals["created_at"].notna()
        & (deals["created_at"].where(deals["created_at"].notna(), "") <= previous.end)
    )
    previous_pipeline = float(deals.loc[was_open, "amount"].sum())
    return build_driver_metric(
        "Pipeline Size",
        current_pipeline,
        previous_pipeline,
        benchmark=DRIVER_BENCHMARKS["pipeline_size"],
    )


def compute_win_rate_metric(current_closed: pd.DataFrame, previous_closed: pd.DataFrame) -> DriverMetric:
    current_rate = win_rate(len(_won(current_closed)), len(current_closed))
    previous_rate = win_rate(len(_won(previous_closed)), len(previous_closed))
    return build_driver_metric(
        "Win Rate",
        current_rate,
        previous_rate,
        benchmark=DRIVER_BENCHMARKS["win_rate"],
        change_percentage=current_rate - previous_rate,
    )


def compute_avg_deal_size(current_closed: pd.DataFrame, previous_closed: pd.DataFrame) -> DriverMetric:
    return build_driver_metric(
        "Avg Deal Size",
        average(_won(current_closed)["amount"]),
        average(_won(previous_closed)["amount"]),
        benchmark=DRIVER_BENCHMARKS["avg_deal_size"],
    )


def compute_sales_cycle(current_closed: pd.DataFrame, previous_closed: pd.DataFrame) -> DriverMetric:
    """Mean created-to-closed days of won deals; shorter cycles are better."""
    return build_driver_metric(
        "Sales Cycle",
        average(_cycle_days(_won(current_closed))),
        average(_cycle_days(_won(previous_closed))),
        higher_is_better=False,
        benchmark=DRIVER_BENCHMARKS["sales_cycle"],
    )


# =============================================================================
# BREAKDOWNS
# =============================================================================

def compute_pipeline_by_stage(store: SalesDataStore) -> List[PipelineStage]:
    pipeline = store.get_pipeline_by_stage()
    return [
        PipelineStage(
            stage=row["stage"],
            value=float(row["total"]),
            count=int(row["count"]),
            color=STAGE_COLORS.get(row["stage"], DEFAULT_STAGE_COLOR),
        )
        for row in pipeline.to_dict("records")
    ]


def compute_win_rate_by_segment(store: SalesDataStore) -> List[SegmentWinRate]:
    segments = store.get_win_rate_by_segment()
    return [
        SegmentWinRate(
            segment=row.segment,
            win_rate=win_rate(row.won, row.total),
            deal_count=int(row.total),
        )
        for row in segments.itertuples(index=False)
    ]


def compute_deal_size_distribution(deals: pd.DataFrame) -> List[DealSizeBucket]:
    """Count and value of won deals per fixed size band. Every band is returned."""
    amounts = _won(deals)["amount"]
    buckets = []
    for label, lower, upper in DEAL_SIZE_BUCKETS:
        in_bucket = amounts[(amounts >= lower) & (amounts < upper)]
        buckets.append(DealSizeBucket(
            range=label,
            count=int(len(in_bucket)),
            value=float(in_bucket.sum()),
        ))
    return buckets


def compute_monthly_trend(store: SalesDataStore, months: int = MONTHLY_TREND_MONTHS) -> List[MonthlyPoint]:
    """Actual won revenue against target for the last ``months`` target months."""
    targets = store.get_all_targets().tail(months)
    revenue = store.get_revenue_by_month().set_index("month")

    points = []
    for row in targets.itertuples(index=False):
        if row.month in revenue.index:
            month_revenue = float(revenue.at[row.month, "revenue"])
            month_deals = int(revenue.at[row.month, "deals"])
        else:
            month_revenue, month_deals = 0.0, 0
        points.append(MonthlyPoint(
            month=month_label(row.month),
            revenue=month_revenue,
            target=float(row.target),
            deals=month_deals,
        ))
    return points


# =============================================================================
# ENTRY POINT
# =============================================================================

def compute_drivers(store: SalesDataStore, now: DateLike) -> DriversResponse:
    """Current-vs-previous quarter driver metrics and the supporting breakdowns."""
    current = current_quarter(now)
    previous = previous_quarter(now)

    deals = store.get_all_deals()
    open_deals = store.get_open_deals()
    current_closed = _closed_in_window(deals, current)
    previous_closed = _closed_in_window(deals, previous)

    logger.debug(
        "Drivers %s vs %s: closed %d vs %d",
        current.label, previous.label, len(current_closed), len(previous_closed),
    )

    return DriversResponse(
        pipeline_size=compute_pipeline_size(deals, open_deals, previous),
        win_rate=compute_win_rate_metric(current_closed, previous_closed),
        avg_deal_size=compute_avg_deal_size(current_closed, previous_closed),
        sales_cycle_time=compute_sales_cycle(current_closed, previous_closed),
        pipeline_by_stage=compute_pipeline_by_stage(store),
        win_rate_by_segment=compute_win_rate_by_segment(store),
        deal_size_distribution=compute_deal_size_distribution(deals),
        monthly_trend=compute_monthly_trend(store),
    )
