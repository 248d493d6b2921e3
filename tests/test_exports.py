"""
Tests for report bundles and file exports.
"""
import json
import pytest
import pandas as pd
from io import BytesIO
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.data.store import SalesDataStore
from revenue_insights.exports import (
    RISK_SHEETS,
    build_report_bundle,
    export_dataframe_csv,
    export_dataframe_excel,
    export_report_json,
    export_risk_register_excel,
    recommendations_to_frame,
    response_to_json,
    risks_to_frame,
)
from revenue_insights.metrics.risk_factors import compute_risk_factors
from revenue_insights.metrics.summary import compute_summary
from revenue_insights.modeling.recommendations import compute_recommendations


NOW = "2024-05-15"


@pytest.fixture
def store():
    return SalesDataStore.from_records(
        accounts=[{"account_id": "A1", "name": "Acme", "industry": "Tech", "segment": "Enterprise"}],
        reps=[{"rep_id": "R1", "name": "Dana"}],
        deals=[
            {"deal_id": "D1", "account_id": "A1", "rep_id": "R1", "stage": "Closed Won",
             "amount": 100000, "created_at": "2024-04-01", "closed_at": "2024-05-10"},
            {"deal_id": "D2", "account_id": "A1", "rep_id": "R1", "stage": "Proposal",
             "amount": 90000, "created_at": "2024-03-01", "closed_at": None},
        ],
        targets=[{"month": "2024-05", "target": 80000}],
    )


class TestReportBundle:

    def test_bundle_sections(self, store):
        bundle = build_report_bundle(store, NOW)

        assert set(bundle) == {"asOf", "summary", "drivers", "riskFactors", "recommendations"}
        assert bundle["asOf"] == NOW
        assert bundle["summary"]["status"] == "ahead"

    def test_bundle_matches_individual_engines(self, store):
        bundle = build_report_bundle(store, NOW)

        assert bundle["summary"] == compute_summary(store, NOW).to_dict()
        assert bundle["riskFactors"] == compute_risk_factors(store, NOW).to_dict()
        assert bundle["recommendations"] == compute_recommendations(store, NOW).to_dict()

    def test_bundle_is_json_serialisable(self, store):
        payload = json.loads(response_to_json(build_report_bundle(store, NOW)))

        assert payload["drivers"]["pipelineSize"]["current"] == 90000.0

    def test_response_to_json_accepts_records(self, store):
        payload = json.loads(response_to_json(compute_summary(store, NOW), indent=None))

        assert payload["quarterLabel"] == "Q2 2024"


class TestFrames:

    def test_risks_to_frame(self, store):
        frame = risks_to_frame(compute_risk_factors(store, NOW))

        assert len(frame) == 2
        assert frame["type"].tolist() == ["stale-deal", "low-activity-account"]
        assert frame.loc[0, "entity_name"] == "Acme"

    def test_empty_risks_frame_keeps_columns(self):
        frame = risks_to_frame(compute_risk_factors(SalesDataStore(), NOW))

        assert len(frame) == 0
        assert "potential_impact" in frame.columns

    def test_recommendations_to_frame(self, store):
        frame = recommendations_to_frame(compute_recommendations(store, NOW))

        assert frame["priority"].tolist() == list(range(1, len(frame) + 1))
        assert "; " in frame.loc[0, "action_items"]


class TestFileExports:

    def test_csv(self):
        data, filename = export_dataframe_csv(pd.DataFrame({"a": [1, 2]}), "out.csv")

        assert filename == "out.csv"
        assert data.decode("utf-8").splitlines() == ["a", "1", "2"]

    def test_excel(self):
        data, filename = export_dataframe_excel(pd.DataFrame({"a": [1, 2]}))

        assert filename.endswith(".xlsx")
        assert pd.read_excel(BytesIO(data))["a"].tolist() == [1, 2]

    def test_risk_register_has_sheet_per_type(self, store):
        data, filename = export_risk_register_excel(compute_risk_factors(store, NOW), NOW)

        sheets = pd.read_excel(BytesIO(data), sheet_name=None)
        assert filename == "risk_register_20240515.xlsx"
        assert list(sheets) == list(RISK_SHEETS.values())
        assert len(sheets["Stale Deals"]) == 1
        assert len(sheets["Underperforming Reps"]) == 0

    def test_report_json(self, store):
        data, filename = export_report_json(build_report_bundle(store, NOW))

        assert filename == "revenue_report_20240515.json"
        assert json.loads(data)["asOf"] == NOW
