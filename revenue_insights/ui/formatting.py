"""
Consistent number and display formatting.
"""
import pandas as pd
import numpy as np
from typing import Union, Optional

from revenue_insights.config import (
    CATEGORY_COLORS,
    FORMAT_COUNT,
    FORMAT_CURRENCY,
    FORMAT_DAYS,
    FORMAT_PERCENT,
    SEVERITY_COLORS,
    STATUS_COLORS,
)
from revenue_insights.metrics.calculations import format_currency_compact


MISSING = "—"


def _is_missing(value) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value)) or bool(np.isinf(value))
    except TypeError:
        return False


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def fmt_currency(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format as currency: $1,234 or $1,234.56"""
    if _is_missing(value):
        return MISSING
    if decimals == 0:
        return ("-" if value < 0 else "") + FORMAT_CURRENCY.format(abs(value))
    if value < 0:
        return f"-${abs(value):,.{decimals}f}"
    return f"${value:,.{decimals}f}"


def fmt_currency_compact(value: Union[float, int, None]) -> str:
    """Format as $1.25M / $125K / $950."""
    if _is_missing(value):
        return MISSING
    if value < 0:
        return f"-{format_currency_compact(abs(value))}"
    return format_currency_compact(value)


def fmt_percent(value: Union[float, int, None], decimals: int = 1) -> str:
    """Format percentage: 12.3%"""
    if _is_missing(value):
        return MISSING
    if decimals == 1:
        return FORMAT_PERCENT.format(value)
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if _is_missing(value):
        return MISSING
    return FORMAT_COUNT.format(int(value))


def fmt_days(value: Union[float, int, None]) -> str:
    if _is_missing(value):
        return MISSING
    return FORMAT_DAYS.format(value)


def fmt_variance(value: Union[float, int, None], is_percent: bool = False) -> str:
    """Format variance with +/- sign."""
    if _is_missing(value):
        return MISSING

    sign = "+" if value > 0 else ""
    if is_percent:
        return f"{sign}{value:,.1f}%"
    if value < 0:
        return f"-${abs(value):,.0f}"
    return f"{sign}${value:,.0f}"


# =============================================================================
# DELTAS AND BADGES
# =============================================================================

def trend_arrow(trend: str) -> str:
    """Arrow for an up/down/stable trend label."""
    return {"up": "▲", "down": "▼"}.get(trend, "▬")


def metric_delta(change_percentage: Optional[float], points: bool = False) -> Optional[str]:
    """
    Delta string for st.metric.

    Win rate changes are already in points, so they render as ``pts``.
    """
    if _is_missing(change_percentage):
        return None
    sign = "+" if change_percentage > 0 else ""
    unit = " pts" if points else "%"
    return f"{sign}{change_percentage:.1f}{unit}"


def impact_delta_color(impact: str, change_percentage: float) -> str:
    """
    Map a driver's business impact onto st.metric's delta_color.

    Streamlit colours a positive delta green under "normal"; "inverse" flips
    that for metrics where a rise is bad (sales cycle).
    """
    if impact == "neutral":
        return "off"
    rising = change_percentage > 0
    if (impact == "positive") == rising:
        return "normal"
    return "inverse"


def _badge(label: str, color: str) -> str:
    return (
        f'<span style="background-color:{color};color:white;padding:2px 8px;'
        f'border-radius:10px;font-size:0.8em;">{label}</span>'
    )


def status_badge(status: str) -> str:
    """Return coloured HTML badge for ahead/on-track/behind."""
    color = STATUS_COLORS.get(status, SEVERITY_COLORS["low"])
    return _badge(status.replace("-", " ").title(), color)


def severity_badge(severity: str) -> str:
    color = SEVERITY_COLORS.get(severity, SEVERITY_COLORS["low"])
    return _badge(severity.upper(), color)


def category_badge(category: str) -> str:
    color = CATEGORY_COLORS.get(category, SEVERITY_COLORS["low"])
    return _badge(category.replace("-", " ").title(), color)


def severity_icon(severity: str) -> str:
    return {"high": "🔴", "medium": "🟡", "low": "⚪"}.get(severity, "⚪")


# =============================================================================
# TABLE FORMATTING
# =============================================================================

def format_risk_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    Display copy of a risk frame with currency and metric columns as text.
    """
    df = df.copy()
    if "potential_impact" in df.columns:
        df["potential_impact"] = df["potential_impact"].apply(fmt_currency)
    if "metric_value" in df.columns:
        df["metric_value"] = df["metric_value"].apply(lambda v: fmt_count(round(v)) if not _is_missing(v) else MISSING)
    if "severity" in df.columns:
        df["severity"] = df["severity"].apply(lambda s: f"{severity_icon(s)} {s}")
    return df
