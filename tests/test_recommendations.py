"""
Tests for the recommendation rule cascade.
"""
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.drivers import build_driver_metric
from revenue_insights.metrics.records import (
    DriversResponse,
    EntityRef,
    PipelineStage,
    RiskFactor,
    RiskFactorsResponse,
    RiskSummary,
    SegmentWinRate,
)
from revenue_insights.modeling.recommendations import (
    best_segment,
    build_recommendations,
    compute_recommendations,
    segments_from_descriptions,
)


NOW = "2024-05-15"


def _risk(entity_id, risk_type, severity, impact, description="", name=None):
    return RiskFactor(
        id=f"{risk_type}-{entity_id}",
        type=risk_type,
        severity=severity,
        title="",
        description=description,
        metric="",
        metric_value=0.0,
        threshold=0.0,
        potential_impact=float(impact),
        entity=EntityRef(id=entity_id, name=name or entity_id, type=risk_type.split("-")[-1]),
        suggested_action="",
        last_updated=NOW,
    )


def _risks(stale=(), reps=(), accounts=()):
    return RiskFactorsResponse(
        summary=RiskSummary(),
        stale_deals=list(stale),
        underperforming_reps=list(reps),
        low_activity_accounts=list(accounts),
    )


def _drivers(stages=(), segments=(), avg_deal_size=40000):
    flat = build_driver_metric("x", 0, 0)
    return DriversResponse(
        pipeline_size=flat,
        win_rate=flat,
        avg_deal_size=build_driver_metric("Avg Deal Size", avg_deal_size, avg_deal_size),
        sales_cycle_time=flat,
        pipeline_by_stage=list(stages),
        win_rate_by_segment=list(segments),
    )


def _all_rules_firing():
    risks = _risks(
        stale=[
            _risk("D1", "stale-deal", "high", 10000, name="Acme"),
            _risk("D2", "stale-deal", "low", 60000, name="Bolt"),
            _risk("D3", "stale-deal", "low", 20000, name="Core"),
        ],
        reps=[
            _risk("R1", "underperforming-rep", "high", 80000, name="Eli"),
            _risk("R2", "underperforming-rep", "medium", 20000, name="Fay"),
        ],
        accounts=[
            _risk("A1", "low-activity-account", "high", 60000,
                  "Enterprise account with $60K in pipeline has only 0 activities."),
            _risk("A2", "low-activity-account", "medium", 40000,
                  "SMB account with $40K in pipeline has only 1 activities."),
            _risk("A3", "low-activity-account", "medium", 35000,
                  "Enterprise account with $35K in pipeline has only 2 activities."),
            _risk("A4", "low-activity-account", "low", 10000,
                  "Mid account with $10K in pipeline has only 2 activities."),
        ],
    )
    drivers = _drivers(
        stages=[PipelineStage(stage="Negotiation", value=500000.0, count=12, color="#fbbf24")],
        segments=[
            SegmentWinRate(segment="SMB", win_rate=35.0, deal_count=20),
            SegmentWinRate(segment="Enterprise", win_rate=45.0, deal_count=8),
        ],
    )
    return drivers, risks


class TestHelpers:

    def test_segments_from_descriptions(self):
        descriptions = [
            "Enterprise account with $60K",
            "SMB account with $40K",
            "Enterprise account with $35K",
            "Mid-Market account with $20K",
        ]

        assert segments_from_descriptions(descriptions) == ["Enterprise", "SMB", "Mid-Market"]
        assert segments_from_descriptions(descriptions, limit=2) == ["Enterprise", "SMB"]

    def test_best_segment_needs_enough_deals(self):
        segments = [
            SegmentWinRate(segment="Tiny", win_rate=100.0, deal_count=2),
            SegmentWinRate(segment="SMB", win_rate=40.0, deal_count=10),
        ]

        assert best_segment(segments).segment == "SMB"

    def test_best_segment_first_wins_ties(self):
        segments = [
            SegmentWinRate(segment="A", win_rate=40.0, deal_count=5),
            SegmentWinRate(segment="B", win_rate=40.0, deal_count=9),
        ]

        assert best_segment(segments).segment == "A"

    def test_best_segment_none(self):
        assert best_segment([]) is None
        assert best_segment([SegmentWinRate(segment="A", win_rate=90.0, deal_count=4)]) is None


class TestRuleCascade:

    def test_no_signals_no_recommendations(self):
        response = build_recommendations(_drivers(), _risks(), NOW)

        assert response.recommendations == []
        assert response.generated_at == "2024-05-15T00:00:00Z"
        assert response.data_freshness == "Real-time"

    def test_all_rules_fire_in_order(self):
        drivers, risks = _all_rules_firing()

        recs = build_recommendations(drivers, risks, NOW).recommendations

        assert [r.category for r in recs] == [
            "deal-focus", "rep-coaching", "account-activity", "strategy", "strategy",
        ]
        assert [r.priority for r in recs] == [1, 2, 3, 4, 5]
        assert [r.id for r in recs] == ["rec-1", "rec-2", "rec-3", "rec-4", "rec-5"]

    def test_stale_deal_rule(self):
        drivers, risks = _all_rules_firing()

        rec = build_recommendations(drivers, risks, NOW).recommendations[0]

        # D3 is low severity and under the value floor
        assert [e.id for e in rec.related_entities] == ["D1", "D2"]
        assert rec.title == "Revive High-Value Stale Deals"
        assert rec.description.startswith("2 high-value deals worth $70K have gone cold.")
        assert rec.expected_impact == pytest.approx(70000 * 0.30)
        assert rec.effort == "low"
        assert rec.timeframe == "This week"
        assert len(rec.action_items) == 4

    def test_coaching_rule(self):
        drivers, risks = _all_rules_firing()

        rec = build_recommendations(drivers, risks, NOW).recommendations[1]

        assert rec.title == "Coach 2 Underperforming Reps"
        assert rec.description == (
            "Eli, Fay are performing below team average. Combined pipeline at risk: $100K."
        )
        assert rec.expected_impact == pytest.approx(10000.0)
        assert [e.type for e in rec.related_entities] == ["rep", "rep"]

    def test_account_rule(self):
        drivers, risks = _all_rules_firing()

        rec = build_recommendations(drivers, risks, NOW).recommendations[2]

        assert rec.description == (
            "3 accounts with $135K pipeline have low engagement. "
            "Focus on Enterprise and SMB segments."
        )
        assert rec.expected_impact == pytest.approx(135000 * 0.25)
        assert [e.id for e in rec.related_entities] == ["A1", "A2", "A3"]

    def test_bottleneck_rule(self):
        drivers, risks = _all_rules_firing()

        rec = build_recommendations(drivers, risks, NOW).recommendations[3]

        assert rec.title == "Accelerate Negotiation Stage Deals"
        assert rec.expected_impact == pytest.approx(100000.0)
        assert rec.related_entities == []

    def test_segment_rule(self):
        drivers, risks = _all_rules_firing()

        rec = build_recommendations(drivers, risks, NOW).recommendations[4]

        assert rec.title == "Double Down on Enterprise Segment"
        assert rec.description.startswith("Enterprise segment has 45% win rate")
        assert rec.expected_impact == pytest.approx(200000.0)
        assert rec.action_items[0] == "Identify 10 new Enterprise prospects"

    def test_priorities_follow_firing_order(self):
        drivers = _drivers(segments=[SegmentWinRate(segment="SMB", win_rate=50.0, deal_count=6)])
        risks = _risks(reps=[_risk("R1", "underperforming-rep", "high", 1000, name="Eli")])

        recs = build_recommendations(drivers, risks, NOW).recommendations

        assert [(r.priority, r.category) for r in recs] == [(1, "rep-coaching"), (2, "strategy")]

    def test_thresholds_are_strict(self):
        drivers = _drivers(
            stages=[PipelineStage(stage="Negotiation", value=1.0, count=10, color="#fbbf24")],
            segments=[SegmentWinRate(segment="SMB", win_rate=30.0, deal_count=50)],
        )
        risks = _risks(
            stale=[_risk("D1", "stale-deal", "medium", 50000)],
            accounts=[_risk("A1", "low-activity-account", "high", 30000, "SMB account")],
        )

        assert build_recommendations(drivers, risks, NOW).recommendations == []

    def test_coaching_takes_first_three_reps(self):
        reps = [_risk(f"R{i}", "underperforming-rep", "high", 1000, name=f"Rep {i}") for i in range(5)]

        rec = build_recommendations(_drivers(), _risks(reps=reps), NOW).recommendations[0]

        assert rec.title == "Coach 3 Underperforming Reps"
        assert [e.id for e in rec.related_entities] == ["R0", "R1", "R2"]


class TestComputeRecommendations:

    @pytest.fixture
    def store(self):
        return SalesDataStore.from_records(
            accounts=[{"account_id": "A1", "name": "Acme", "industry": "Tech", "segment": "Enterprise"}],
            reps=[{"rep_id": "R1", "name": "Dana"}],
            deals=[
                {"deal_id": "D1", "account_id": "A1", "rep_id": "R1", "stage": "Proposal",
                 "amount": 90000, "created_at": "2024-03-01", "closed_at": None},
            ],
        )

    def test_end_to_end(self, store):
        recs = compute_recommendations(store, NOW).recommendations

        assert [r.category for r in recs] == ["deal-focus", "account-activity"]
        assert recs[0].related_entities[0].name == "Acme"

    def test_idempotent(self, store):
        first = compute_recommendations(store, NOW).to_dict()
        second = compute_recommendations(store, NOW).to_dict()

        assert first == second
        assert len(first["recommendations"]) <= 5


class TestMissingReferences:

    @pytest.fixture
    def store(self):
        def deal(deal_id, stage, amount, created_at, closed_at=None, account_id="A1", rep_id="R1"):
            return {
                "deal_id": deal_id, "account_id": account_id, "rep_id": rep_id, "stage": stage,
                "amount": amount, "created_at": created_at, "closed_at": closed_at,
            }

        deals = [deal(f"W{i}", "Closed Won", 10000, "2024-01-01", "2024-02-01") for i in range(4)]
        deals += [deal(f"L{i}", "Closed Lost", 10000, "2024-01-01", "2024-02-01", rep_id="R2") for i in range(4)]
        deals += [
            deal("G1", None, 80000, "2024-03-01", account_id="A9", rep_id="R2"),
            deal("G2", "Proposal", 40000, "2024-04-01", account_id="A2", rep_id="R2"),
        ]
        return SalesDataStore.from_records(
            accounts=[
                {"account_id": "A1", "name": "Acme", "industry": "Tech", "segment": "Enterprise"},
                {"account_id": "A2", "name": None, "industry": None, "segment": None},
            ],
            reps=[{"rep_id": "R1", "name": "Dana"}, {"rep_id": "R2", "name": None}],
            deals=deals,
        )

    def test_placeholders_flow_into_recommendations(self, store):
        recs = {r.category: r for r in compute_recommendations(store, NOW).recommendations}

        assert {e.name for e in recs["deal-focus"].related_entities} == {"A9", "A2"}
        assert recs["rep-coaching"].description.startswith("Unknown are performing below team average.")
        assert recs["rep-coaching"].related_entities[0].name == "Unknown"
        assert recs["account-activity"].description.endswith("Focus on Unknown segments.")

    def test_output_is_strict_json(self, store):
        response = compute_recommendations(store, NOW)

        json.dumps(response.to_dict(), allow_nan=False)
        for rec in response.recommendations:
            assert all(isinstance(e.name, str) for e in rec.related_entities)
