"""
Risk detection: stale deals, underperforming reps and low-activity accounts.

Each detector returns a list of RiskFactor records with a severity derived
from its own thresholds and a potential impact in currency. The response
summary counts severities and totals the value at risk across all three.
"""
from __future__ import annotations

import logging
from typing import Dict, List

import pandas as pd

from revenue_insights.config import (
    ACCOUNT_MAX_RESULTS,
    ACCOUNT_MIN_ACTIVITIES,
    ACCOUNT_NO_ACTIVITY_DAYS,
    ACCOUNT_RULES,
    CLOSED_STAGES,
    REP_DEFAULT_TEAM_WIN_RATE,
    REP_MIN_CLOSED_DEALS,
    REP_RULES,
    SEVERITY_ORDER,
    STALE_DEAL_MAX_DAYS_IN_STAGE,
    STALE_DEAL_RULES,
)
from revenue_insights.data.store import UNKNOWN_LABEL, SalesDataStore
from revenue_insights.metrics.calculations import (
    average,
    determine_severity,
    format_thousands,
    win_rate,
)
from revenue_insights.metrics.periods import DateLike, days_between, format_date
from revenue_insights.metrics.records import (
    EntityRef,
    RiskFactor,
    RiskFactorsResponse,
    RiskSummary,
)

logger = logging.getLogger(__name__)


def _severity_rank(risk: RiskFactor) -> int:
    return SEVERITY_ORDER.get(risk.severity, SEVERITY_ORDER["low"])


def _present(value) -> bool:
    """True for a non-empty label; None, NaN and blank strings are missing."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return not pd.isna(value)


def _label(value, default: str = UNKNOWN_LABEL) -> str:
    return str(value) if _present(value) else default


def _lookup(mapping: Dict, key, *fallbacks) -> str:
    """Mapped value if present and non-empty, else the first present fallback."""
    value = mapping.get(key) if _present(key) else None
    if _present(value):
        return str(value)
    for fallback in fallbacks:
        if _present(fallback):
            return str(fallback)
    return UNKNOWN_LABEL



# =============================================================================
# STALE DEALS
# =============================================================================

def detect_stale_deals(store: SalesDataStore, now: DateLike) -> List[RiskFactor]:
    """
    Open deals with no activity for 14+ days, or open for 30+ days.

    Severity follows days since the last activity (the deal's creation date
    stands in when it has none): high >= 30, medium >= 21.
    """
    today = format_date(now)
    open_deals = store.get_open_deals()
    activities = store.get_all_activities()
    accounts = store.get_all_accounts()

    last_activity = (
        activities[activities["timestamp"].notna()]
        .groupby("deal_id")["timestamp"].max()
        .to_dict()
    )
    account_names = dict(zip(accounts["account_id"], accounts["name"]))

    risks: List[RiskFactor] = []
    for deal in open_deals.to_dict("records"):
        if not _present(deal["deal_id"]) or not _present(deal["created_at"]):
            continue

        last_seen = last_activity.get(deal["deal_id"])
        days_since_activity = days_between(last_seen if _present(last_seen) else deal["created_at"], today)
        days_in_stage = days_between(deal["created_at"], today)

        if (
            days_since_activity < STALE_DEAL_RULES.threshold
            and days_in_stage < STALE_DEAL_MAX_DAYS_IN_STAGE
        ):
            continue

        account_name = _lookup(account_names, deal["account_id"], deal["account_id"])
        risks.append(RiskFactor(
            id=f"stale-{deal['deal_id']}",
            type="stale-deal",
            severity=determine_severity(days_since_activity, STALE_DEAL_RULES._asdict()),
            title=f"Stale Deal: {account_name}",
            description=(
                f"Deal has had no activity for {days_since_activity} days. "
                f"Currently in {_label(deal['stage'])} stage."
            ),
            metric="Days Since Activity",
            metric_value=float(days_since_activity),
            threshold=float(STALE_DEAL_RULES.threshold),
            potential_impact=float(deal["amount"] or 0),
            entity=EntityRef(id=deal["deal_id"], name=account_name, type="deal"),
            suggested_action=(
                f"Schedule follow-up with {_lookup(account_names, deal['account_id'], 'account')}. "
                "Consider deal review if no progress in 7 days."
            ),
            last_updated=last_seen if _present(last_seen) else deal["created_at"],
        ))

    return sorted(risks, key=_severity_rank)


# =============================================================================
# UNDERPERFORMING REPS
# =============================================================================

def team_average_win_rate(performance) -> float:
    """Mean win rate across reps with at least one closed deal (25 if none)."""
    closed = performance["won"] + performance["lost"]
    rates = [
        win_rate(won, total)
        for won, total in zip(performance.loc[closed > 0, "won"], closed[closed > 0])
    ]
    if not rates:
        return REP_DEFAULT_TEAM_WIN_RATE
    return average(rates)


def detect_underperforming_reps(store: SalesDataStore, now: DateLike) -> List[RiskFactor]:
    """
    Reps whose win rate trails the team average by 15+ points.

    Reps with fewer than three closed deals are not judged. Severity follows
    the deviation: high >= 25, medium >= 20.
    """
    today = format_date(now)
    performance = store.get_rep_performance()
    avg_win_rate = team_average_win_rate(performance)

    risks: List[RiskFactor] = []
    for rep in performance.to_dict("records"):
        closed = int(rep["won"]) + int(rep["lost"])
        if closed < REP_MIN_CLOSED_DEALS:
            continue

        rep_win_rate = win_rate(rep["won"], closed)
        deviation = avg_win_rate - rep_win_rate
        if deviation < REP_RULES.threshold:
            continue

        rep_deals = store.get_deals_by_rep(rep["rep_id"])
        pipeline_at_risk = float(rep_deals.loc[~rep_deals["stage"].isin(CLOSED_STAGES), "amount"].sum())
        rep_name = _label(rep["name"])

        risks.append(RiskFactor(
            id=f"rep-{rep['rep_id']}",
            type="underperforming-rep",
            severity=determine_severity(deviation, REP_RULES._asdict()),
            title=f"Underperforming Rep: {rep_name}",
            description=(
                f"Win rate of {rep_win_rate:.1f}% is {deviation:.1f}% below "
                f"team average of {avg_win_rate:.1f}%."
            ),
            metric="Win Rate Deviation",
            metric_value=float(deviation),
            threshold=float(REP_RULES.threshold),
            potential_impact=pipeline_at_risk,
            entity=EntityRef(id=rep["rep_id"], name=rep_name, type="rep"),
            suggested_action=(
                f"Schedule coaching session with {_label(rep['name'], 'rep')}. "
                "Review lost deals to identify improvement areas."
            ),
            last_updated=today,
        ))

    return sorted(risks, key=lambda r: r.potential_impact, reverse=True)


# =============================================================================
# LOW-ACTIVITY ACCOUNTS
# =============================================================================

def detect_low_activity_accounts(store: SalesDataStore, now: DateLike) -> List[RiskFactor]:
    """
    Accounts with open pipeline but fewer than 3 activities or none for 21+ days.

    Accounts that never had an activity count as 999 days quiet. Severity
    follows days since activity: high >= 45, medium >= 30. Top 10 by value.
    """
    today = format_date(now)
    account_activity = store.get_account_activity_counts()

    risks: List[RiskFactor] = []
    for account in account_activity.to_dict("records"):
        open_value = float(account["open_deal_value"] or 0)
        if open_value == 0:
            continue

        last_seen = account["last_activity"]
        days_since_activity = days_between(last_seen, today) if _present(last_seen) else ACCOUNT_NO_ACTIVITY_DAYS
        activity_count = int(account["activity_count"] or 0)

        if days_since_activity < ACCOUNT_RULES.threshold and activity_count >= ACCOUNT_MIN_ACTIVITIES:
            continue

        account_name = _label(account["name"])
        risks.append(RiskFactor(
            id=f"account-{account['account_id']}",
            type="low-activity-account",
            severity=determine_severity(days_since_activity, ACCOUNT_RULES._asdict()),
            title=f"Low Activity: {account_name}",
            description=(
                f"{_label(account['segment'])} account with {format_thousands(open_value)} "
                f"in pipeline has only {activity_count} activities. "
                f"Last activity: {days_since_activity} days ago."
            ),
            metric="Days Since Activity",
            metric_value=float(days_since_activity),
            threshold=float(ACCOUNT_RULES.threshold),
            potential_impact=open_value,
            entity=EntityRef(id=account["account_id"], name=account_name, type="account"),
            suggested_action=(
                f"Increase engagement with {_label(account['name'], 'account')}. "
                "Schedule call or send relevant content."
            ),
            last_updated=last_seen if _present(last_seen) else today,
        ))

    risks = sorted(risks, key=lambda r: r.potential_impact, reverse=True)
    return risks[:ACCOUNT_MAX_RESULTS]


# =============================================================================
# ENTRY POINT
# =============================================================================

def summarise_risks(risks: List[RiskFactor]) -> RiskSummary:
    return RiskSummary(
        total_risks=len(risks),
        high_severity=sum(1 for r in risks if r.severity == "high"),
        medium_severity=sum(1 for r in risks if r.severity == "medium"),
        low_severity=sum(1 for r in risks if r.severity == "low"),
        total_at_risk=float(sum(r.potential_impact or 0 for r in risks)),
    )


def compute_risk_factors(store: SalesDataStore, now: DateLike) -> RiskFactorsResponse:
    stale_deals = detect_stale_deals(store, now)
    underperforming_reps = detect_underperforming_reps(store, now)
    low_activity_accounts = detect_low_activity_accounts(store, now)

    logger.debug(
        "Risk factors: %d stale deals, %d reps, %d accounts",
        len(stale_deals), len(underperforming_reps), len(low_activity_accounts),
    )

    return RiskFactorsResponse(
        summary=summarise_risks(stale_deals + underperforming_reps + low_activity_accounts),
        stale_deals=stale_deals,
        underperforming_reps=underperforming_reps,
        low_activity_accounts=low_activity_accounts,
    )
