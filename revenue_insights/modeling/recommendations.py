"""
Recommendation Engine - ranked action items for sales leaders.

Turns driver and risk outputs into at most five recommendations using a fixed
rule cascade. Rules are evaluated in order; each adds at most one
recommendation and priorities follow the order they fire in.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from revenue_insights.config import DATA_FRESHNESS_LABEL, MAX_RECOMMENDATIONS
from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.calculations import format_thousands
from revenue_insights.metrics.drivers import compute_drivers
from revenue_insights.metrics.periods import DateLike, to_timestamp
from revenue_insights.metrics.records import (
    DriversResponse,
    EntityRef,
    Recommendation,
    RecommendationsResponse,
    RiskFactor,
    RiskFactorsResponse,
    SegmentWinRate,
)
from revenue_insights.metrics.risk_factors import compute_risk_factors

logger = logging.getLogger(__name__)

STALE_DEAL_VALUE_FLOOR = 50_000
STALE_DEAL_LIMIT = 5
STALE_DEAL_RECOVERY = 0.30

COACHING_LIMIT = 3
COACHING_RECOVERY = 0.10

ACCOUNT_VALUE_FLOOR = 30_000
ACCOUNT_RECOVERY = 0.25
ACCOUNT_ENTITY_LIMIT = 5

BOTTLENECK_STAGE = "Negotiation"
BOTTLENECK_MIN_DEALS = 10
BOTTLENECK_RECOVERY = 0.20

SEGMENT_MIN_DEALS = 5
SEGMENT_MIN_WIN_RATE = 30
SEGMENT_DEAL_MULTIPLIER = 5


def segments_from_descriptions(descriptions: Iterable[str], limit: Optional[int] = None) -> List[str]:
    """
    Distinct first words of risk descriptions, in first-seen order.

    Low-activity account descriptions open with the account's segment, so
    the first word is read back as the segment name. Multi-word segments are
    truncated and any other description shape yields its first word.
    """
    segments: List[str] = []
    for description in descriptions:
        first_word = (description or "").split(" ")[0]
        if first_word not in segments:
            segments.append(first_word)
    return segments[:limit] if limit is not None else segments


def _refs(risks: Iterable[RiskFactor], entity_type: str) -> List[EntityRef]:
    return [EntityRef(type=entity_type, id=r.entity.id, name=r.entity.name) for r in risks]


def _total_impact(risks: Iterable[RiskFactor]) -> float:
    return float(sum(r.potential_impact for r in risks))


def best_segment(segments: List[SegmentWinRate], min_deals: int = SEGMENT_MIN_DEALS) -> Optional[SegmentWinRate]:
    """Highest win-rate segment among those with enough closed deals (first wins ties)."""
    best = None
    for segment in segments:
        if segment.deal_count < min_deals:
            continue
        if best is None or segment.win_rate > best.win_rate:
            best = segment
    return best


# =============================================================================
# RULES
# =============================================================================

def _revive_stale_deals(priority: int, risks: RiskFactorsResponse) -> Optional[Recommendation]:
    stale = [
        r for r in risks.stale_deals
        if r.severity == "high" or r.potential_impact > STALE_DEAL_VALUE_FLOOR
    ][:STALE_DEAL_LIMIT]
    if not stale:
        return None

    total_value = _total_impact(stale)
    return Recommendation(
        id=f"rec-{priority}",
        priority=priority,
        category="deal-focus",
        title="Revive High-Value Stale Deals",
        description=(
            f"{len(stale)} high-value deals worth {format_thousands(total_value)} have gone cold. "
            "Immediate attention needed to prevent loss."
        ),
        reasoning=(
            "These deals have had no activity for 30+ days but represent significant revenue. "
            "Quick engagement can prevent them from going to competitors."
        ),
        expected_impact=total_value * STALE_DEAL_RECOVERY,
        effort="low",
        timeframe="This week",
        action_items=[
            "Review each deal status with rep",
            "Send personalized re-engagement email",
            "Schedule follow-up calls within 48 hours",
            "Offer special incentive if appropriate",
        ],
        related_entities=_refs(stale, "deal"),
    )


def _coach_reps(priority: int, risks: RiskFactorsResponse) -> Optional[Recommendation]:
    reps = risks.underperforming_reps[:COACHING_LIMIT]
    if not reps:
        return None

    pipeline_at_risk = _total_impact(reps)
    return Recommendation(
        id=f"rec-{priority}",
        priority=priority,
        category="rep-coaching",
        title=f"Coach {len(reps)} Underperforming Reps",
        description=(
            f"{', '.join(r.entity.name for r in reps)} are performing below team average. "
            f"Combined pipeline at risk: {format_thousands(pipeline_at_risk)}."
        ),
        reasoning=(
            "Win rate improvement of even 5% for these reps could recover "
            f"{format_thousands(pipeline_at_risk * 0.05)} in additional revenue this quarter."
        ),
        expected_impact=pipeline_at_risk * COACHING_RECOVERY,
        effort="medium",
        timeframe="2-4 weeks",
        action_items=[
            "Schedule 1:1 coaching sessions",
            "Review lost deal patterns",
            "Shadow on upcoming calls",
            "Create personalized improvement plan",
            "Set weekly check-in meetings",
        ],
        related_entities=_refs(reps, "rep"),
    )


def _engage_accounts(priority: int, risks: RiskFactorsResponse) -> Optional[Recommendation]:
    accounts = [r for r in risks.low_activity_accounts if r.potential_impact > ACCOUNT_VALUE_FLOOR]
    if not accounts:
        return None

    total_at_risk = _total_impact(accounts)
    segments = segments_from_descriptions((r.description for r in accounts), limit=2)
    return Recommendation(
        id=f"rec-{priority}",
        priority=priority,
        category="account-activity",
        title="Increase Engagement with Key Accounts",
        description=(
            f"{len(accounts)} accounts with {format_thousands(total_at_risk)} pipeline have low engagement. "
            f"Focus on {' and '.join(segments)} segments."
        ),
        reasoning=(
            "Accounts with consistent engagement are 40% more likely to close. "
            "These accounts are at risk of going cold."
        ),
        expected_impact=total_at_risk * ACCOUNT_RECOVERY,
        effort="medium",
        timeframe="2 weeks",
        action_items=[
            "Create targeted email campaign",
            "Schedule discovery calls",
            "Share relevant case studies",
            "Assign dedicated follow-up owners",
        ],
        related_entities=_refs(accounts[:ACCOUNT_ENTITY_LIMIT], "account"),
    )


def _accelerate_bottleneck(priority: int, drivers: DriversResponse) -> Optional[Recommendation]:
    stage = next(
        (
            s for s in drivers.pipeline_by_stage
            if s.stage == BOTTLENECK_STAGE and s.count > BOTTLENECK_MIN_DEALS
        ),
        None,
    )
    if stage is None:
        return None

    return Recommendation(
        id=f"rec-{priority}",
        priority=priority,
        category="strategy",
        title=f"Accelerate {stage.stage} Stage Deals",
        description=(
            f"{stage.count} deals worth {format_thousands(stage.value)} are stuck in {stage.stage}. "
            "This stage has higher-than-normal deal count."
        ),
        reasoning=(
            f"Bottleneck in {stage.stage} suggests potential process or pricing issues. "
            "Streamlining could accelerate 20% more deals to close."
        ),
        expected_impact=stage.value * BOTTLENECK_RECOVERY,
        effort="medium",
        timeframe="2-3 weeks",
        action_items=[
            "Review common objections at this stage",
            "Create objection handling playbook",
            "Consider limited-time incentives",
            "Escalate stalled deals to leadership",
        ],
        related_entities=[],
    )


def _double_down_on_segment(priority: int, drivers: DriversResponse) -> Optional[Recommendation]:
    segment = best_segment(drivers.win_rate_by_segment)
    if segment is None or segment.win_rate <= SEGMENT_MIN_WIN_RATE:
        return None

    return Recommendation(
        id=f"rec-{priority}",
        priority=priority,
        category="strategy",
        title=f"Double Down on {segment.segment} Segment",
        description=(
            f"{segment.segment} segment has {segment.win_rate:.0f}% win rate, highest among all segments. "
            "Increase prospecting focus here."
        ),
        reasoning=(
            "Higher win rates mean more efficient use of sales resources. "
            f"Shifting 20% more effort to {segment.segment} could yield significant returns."
        ),
        expected_impact=drivers.avg_deal_size.current * SEGMENT_DEAL_MULTIPLIER,
        effort="low",
        timeframe="Ongoing",
        action_items=[
            f"Identify 10 new {segment.segment} prospects",
            "Create segment-specific messaging",
            "Share success patterns with team",
            "Adjust territory planning",
        ],
        related_entities=[],
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def build_recommendations(
    drivers: DriversResponse,
    risks: RiskFactorsResponse,
    now: DateLike,
) -> RecommendationsResponse:
    """Run the rule cascade over already-computed driver and risk outputs."""
    rules = [
        lambda p: _revive_stale_deals(p, risks),
        lambda p: _coach_reps(p, risks),
        lambda p: _engage_accounts(p, risks),
        lambda p: _accelerate_bottleneck(p, drivers),
        lambda p: _double_down_on_segment(p, drivers),
    ]

    recommendations: List[Recommendation] = []
    for rule in rules:
        recommendation = rule(len(recommendations) + 1)
        if recommendation is not None:
            recommendations.append(recommendation)

    logger.debug("Generated %d recommendations", len(recommendations))

    return RecommendationsResponse(
        recommendations=recommendations[:MAX_RECOMMENDATIONS],
        generated_at=to_timestamp(now).strftime("%Y-%m-%dT%H:%M:%SZ"),
        data_freshness=DATA_FRESHNESS_LABEL,
    )


def compute_recommendations(store: SalesDataStore, now: DateLike) -> RecommendationsResponse:
    """Recompute drivers and risks for ``now`` and derive recommendations from them."""
    drivers = compute_drivers(store, now)
    risks = compute_risk_factors(store, now)
    return build_recommendations(drivers, risks, now)
