"""
Export utilities for tables and dashboard reports.
"""
import pandas as pd
import json
from typing import Optional, Dict, Any, Union
from datetime import datetime
from io import BytesIO

from revenue_insights.data.store import SalesDataStore
from revenue_insights.metrics.drivers import compute_drivers
from revenue_insights.metrics.periods import DateLike, format_date
from revenue_insights.metrics.records import RecommendationsResponse, RiskFactorsResponse
from revenue_insights.metrics.risk_factors import compute_risk_factors
from revenue_insights.metrics.summary import compute_summary
from revenue_insights.modeling.recommendations import build_recommendations


RISK_SHEETS = {
    "stale_deals": "Stale Deals",
    "underperforming_reps": "Underperforming Reps",
    "low_activity_accounts": "Low Activity Accounts",
}


def build_report_bundle(store: SalesDataStore, now: DateLike) -> Dict[str, Any]:
    """
    Compute all four responses for ``now`` as JSON-ready dicts.

    Recommendations reuse the drivers and risks computed here rather than
    recomputing them.
    """
    summary = compute_summary(store, now)
    drivers = compute_drivers(store, now)
    risks = compute_risk_factors(store, now)
    recommendations = build_recommendations(drivers, risks, now)

    return {
        "asOf": format_date(now),
        "summary": summary.to_dict(),
        "drivers": drivers.to_dict(),
        "riskFactors": risks.to_dict(),
        "recommendations": recommendations.to_dict(),
    }


def response_to_json(response: Union[Dict[str, Any], Any], indent: Optional[int] = 2) -> str:
    """Serialise a response record (or an already-built dict) to JSON text."""
    payload = response if isinstance(response, dict) else response.to_dict()
    return json.dumps(payload, indent=indent)


def risks_to_frame(risks: RiskFactorsResponse) -> pd.DataFrame:
    """Flatten every risk factor into one row per risk."""
    rows = []
    for risk in risks.all_risks:
        rows.append({
            "type": risk.type,
            "severity": risk.severity,
            "title": risk.title,
            "entity_id": risk.entity.id,
            "entity_name": risk.entity.name,
            "entity_type": risk.entity.type,
            "metric": risk.metric,
            "metric_value": risk.metric_value,
            "threshold": risk.threshold,
            "potential_impact": risk.potential_impact,
            "suggested_action": risk.suggested_action,
            "last_updated": risk.last_updated,
        })
    columns = [
        "type", "severity", "title", "entity_id", "entity_name", "entity_type",
        "metric", "metric_value", "threshold", "potential_impact",
        "suggested_action", "last_updated",
    ]
    return pd.DataFrame(rows, columns=columns)


def recommendations_to_frame(recommendations: RecommendationsResponse) -> pd.DataFrame:
    rows = [
        {
            "priority": rec.priority,
            "category": rec.category,
            "title": rec.title,
            "expected_impact": rec.expected_impact,
            "effort": rec.effort,
            "timeframe": rec.timeframe,
            "action_items": "; ".join(rec.action_items),
        }
        for rec in recommendations.recommendations
    ]
    columns = ["priority", "category", "title", "expected_impact", "effort", "timeframe", "action_items"]
    return pd.DataFrame(rows, columns=columns)


def export_dataframe_csv(df: pd.DataFrame, filename: Optional[str] = None) -> tuple:
    """
    Export dataframe to CSV bytes.

    Returns: (csv_bytes, filename)
    """
    if filename is None:
        filename = f"export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    csv_bytes = df.to_csv(index=False).encode('utf-8')

    return csv_bytes, filename


def export_dataframe_excel(df: pd.DataFrame, filename: Optional[str] = None,
                           sheet_name: str = "Data") -> tuple:
    """
    Export dataframe to Excel bytes.

    Returns: (excel_bytes, filename)
    """
    if filename is None:
        filename = f"export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)

    return buffer.getvalue(), filename


def export_risk_register_excel(risks: RiskFactorsResponse,
                               as_of: Optional[str] = None) -> tuple:
    """
    Export the three risk lists to one workbook, a sheet per risk type.

    Returns: (excel_bytes, filename)
    """
    stamp = (as_of or datetime.now().strftime('%Y-%m-%d')).replace("-", "")
    filename = f"risk_register_{stamp}.xlsx"

    frame = risks_to_frame(risks)
    type_for_sheet = {
        "stale_deals": "stale-deal",
        "underperforming_reps": "underperforming-rep",
        "low_activity_accounts": "low-activity-account",
    }

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for key, sheet_name in RISK_SHEETS.items():
            frame[frame["type"] == type_for_sheet[key]].to_excel(writer, sheet_name=sheet_name, index=False)

    return buffer.getvalue(), filename


def export_report_json(bundle: Dict[str, Any]) -> tuple:
    """
    Export a report bundle to JSON bytes.

    Returns: (json_bytes, filename)
    """
    stamp = (bundle.get("asOf") or datetime.now().strftime('%Y-%m-%d')).replace("-", "")
    filename = f"revenue_report_{stamp}.json"
    return response_to_json(bundle).encode("utf-8"), filename
