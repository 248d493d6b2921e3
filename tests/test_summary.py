"""
Tests for the quarter summary.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.summary import compute_summary, classify_status


NOW = "2024-05-15"


def _deal(deal_id, stage, amount, created_at, closed_at=None):
    return {
        "deal_id": deal_id, "account_id": "A1", "rep_id": "R1", "stage": stage,
        "amount": amount, "created_at": created_at, "closed_at": closed_at,
    }


def _store(deals, targets=()):
    return SalesDataStore.from_records(
        accounts=[{"account_id": "A1", "name": "Acme", "industry": "Tech", "segment": "Enterprise"}],
        reps=[{"rep_id": "R1", "name": "Dana"}],
        deals=deals,
        targets=targets,
    )


@pytest.fixture
def store():
    return _store(
        deals=[
            _deal("D1", "Closed Won", 100000, "2024-04-01", "2024-05-10"),
            _deal("D2", "Closed Won", 50000, "2024-01-05", "2024-02-20"),
            _deal("D3", "Closed Won", 40000, "2023-04-01", "2023-05-01"),
            _deal("D4", "Proposal", 30000, "2024-05-01"),
            _deal("D5", "Closed Lost", 20000, "2024-04-01", "2024-05-02"),
        ],
        targets=[
            {"month": "2024-05", "target": 80000},
            {"month": "2024-07", "target": 90000},
        ],
    )


class TestClassifyStatus:

    @pytest.mark.parametrize("gap_pct,expected", [
        (5.1, "ahead"),
        (5.0, "on-track"),
        (0.0, "on-track"),
        (-5.0, "on-track"),
        (-5.1, "behind"),
    ])
    def test_bands(self, gap_pct, expected):
        assert classify_status(gap_pct) == expected


class TestComputeSummary:

    def test_revenue_against_target(self, store):
        summary = compute_summary(store, NOW)

        assert summary.current_quarter_revenue == 100000.0
        assert summary.target == 80000.0
        assert summary.gap == 20000.0
        assert summary.gap_percentage == pytest.approx(25.0)
        assert summary.status == "ahead"

    def test_period_comparisons(self, store):
        summary = compute_summary(store, NOW)

        assert summary.qoq_change == pytest.approx(100.0)
        assert summary.yoy_change == pytest.approx(150.0)

    def test_counts_and_pipeline(self, store):
        summary = compute_summary(store, NOW)

        assert summary.quarter_label == "Q2 2024"
        assert summary.closed_deals == 1
        assert summary.open_deals == 1
        assert summary.total_pipeline == 30000.0
        assert summary.days_remaining == 46

    def test_no_target_no_revenue(self):
        summary = compute_summary(_store(deals=[_deal("D1", "Proposal", 1000, "2024-05-01")]), NOW)

        assert summary.target == 0.0
        assert summary.gap_percentage == 0.0
        assert summary.status == "on-track"

    def test_revenue_without_target_is_ahead(self):
        summary = compute_summary(
            _store(deals=[_deal("D1", "Closed Won", 1000, "2024-04-01", "2024-04-15")]),
            NOW,
        )

        assert summary.gap_percentage == 100.0
        assert summary.status == "ahead"

    def test_camel_case_payload(self, store):
        payload = compute_summary(store, NOW).to_dict()

        assert payload["currentQuarterRevenue"] == 100000.0
        assert payload["gapPercentage"] == pytest.approx(25.0)
        assert payload["quarterLabel"] == "Q2 2024"
        assert payload["daysRemaining"] == 46

    def test_same_inputs_same_output(self, store):
        assert compute_summary(store, NOW) == compute_summary(store, NOW)
