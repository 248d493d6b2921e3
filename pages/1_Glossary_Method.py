"""
Glossary & Method Page

Definitions and formulas behind every number on the dashboard.
"""
import streamlit as st
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.config import (
    ACCOUNT_RULES,
    DEAL_SIZE_BUCKETS,
    DRIVER_BENCHMARKS,
    REP_RULES,
    STALE_DEAL_RULES,
)
from revenue_insights.ui.components import section_header


st.set_page_config(page_title="Glossary & Method", page_icon="📖", layout="wide")


def main():
    st.title("Glossary & Method")
    st.caption("Definitions, formulas, and methodology documentation")

    # =========================================================================
    # PERIODS
    # =========================================================================
    section_header("Periods")

    st.markdown("""
    All windows are calendar quarters relative to the **As of** date.

    | Window | Definition |
    |--------|------------|
    | **Current quarter** | Quarter containing the as-of date, first to last day inclusive |
    | **Previous quarter** | Quarter immediately before (Q1 compares with Q4 of the prior year) |
    | **Same quarter last year** | Same quarter number, one year earlier |
    | **Days remaining** | Days from the as-of date to the quarter's last day, rounded up |
    """)

    st.markdown("---")

    # =========================================================================
    # SUMMARY
    # =========================================================================
    section_header("Summary Metrics")

    st.markdown("""
    | Metric | Formula | Notes |
    |--------|---------|-------|
    | **Revenue (QTD)** | `Σ amount WHERE stage = Closed Won AND closed_at in quarter` | |
    | **Target** | `Σ target` over the quarter's three months | Missing months contribute 0 |
    | **Gap** | `Revenue - Target` | |
    | **Gap %** | `(Revenue - Target) / Target × 100` | 100 if target is 0 and revenue > 0 |
    | **Status** | `ahead` if Gap % > 5, `behind` if < -5, else `on-track` | |
    | **QoQ / YoY** | Percent change against previous / same quarter last year | |
    | **Open pipeline** | `Σ amount` of deals not Closed Won or Closed Lost | |
    """)

    st.markdown("---")

    # =========================================================================
    # DRIVERS
    # =========================================================================
    section_header("Driver Metrics")

    st.markdown(f"""
    | Metric | Formula | Benchmark |
    |--------|---------|-----------|
    | **Pipeline Size** | Open pipeline now vs open deals created by last quarter's end | ${DRIVER_BENCHMARKS['pipeline_size']:,.0f} |
    | **Win Rate** | `Won / (Won + Lost) × 100` for deals closed in the quarter; change in points | {DRIVER_BENCHMARKS['win_rate']}% |
    | **Avg Deal Size** | Mean amount of deals won in the quarter | ${DRIVER_BENCHMARKS['avg_deal_size']:,.0f} |
    | **Sales Cycle** | Mean days from created to closed for deals won in the quarter; lower is better | {DRIVER_BENCHMARKS['sales_cycle']} days |

    **Trend** is `up` / `down` when the change exceeds ±2%, otherwise `stable`.
    **Impact** is `neutral` under 5% either way, otherwise positive or negative
    depending on whether a rise is good for that metric.
    """)

    bucket_lines = "\n".join(f"    - {label}" for label, _, _ in DEAL_SIZE_BUCKETS)
    st.markdown(f"""
    **Deal size bands** (won deals, all time):
{bucket_lines}
    """)

    st.markdown("---")

    # =========================================================================
    # RISKS
    # =========================================================================
    section_header("Risk Rules")

    st.markdown(f"""
    | Risk | Flagged when | High | Medium |
    |------|--------------|------|--------|
    | **Stale deal** | Open and ≥ {STALE_DEAL_RULES.threshold:.0f} days since last activity, or ≥ 30 days since created | ≥ {STALE_DEAL_RULES.high:.0f} days | ≥ {STALE_DEAL_RULES.medium:.0f} days |
    | **Underperforming rep** | ≥ 3 closed deals and win rate ≥ {REP_RULES.threshold:.0f} points below team average | ≥ {REP_RULES.high:.0f} pts | ≥ {REP_RULES.medium:.0f} pts |
    | **Low-activity account** | Open pipeline and fewer than 3 activities or ≥ {ACCOUNT_RULES.threshold:.0f} days since last activity | ≥ {ACCOUNT_RULES.high:.0f} days | ≥ {ACCOUNT_RULES.medium:.0f} days |

    Team average is the mean win rate of reps with at least one closed deal.
    Accounts that have never had an activity count as 999 days quiet. Only
    the ten largest low-activity accounts by open pipeline are listed.
    """)

    st.markdown("---")

    # =========================================================================
    # RECOMMENDATIONS
    # =========================================================================
    section_header("Recommendations")

    st.markdown("""
    Rules run in this order and each adds at most one recommendation (five at most):

    1. **Revive stale deals**: high-severity or > $50K stale deals (top 5); impact 30% of their value
    2. **Coach reps**: up to 3 underperforming reps; impact 10% of their open pipeline
    3. **Engage accounts**: low-activity accounts with > $30K pipeline; impact 25% of that pipeline
    4. **Accelerate Negotiation**: more than 10 open deals in Negotiation; impact 20% of stage value
    5. **Double down on segment**: best segment (≥ 5 closed deals) above 30% win rate; impact 5 × avg deal size
    """)


if __name__ == "__main__":
    main()
