"""
Scalar helpers shared by the summary, driver and risk engines.

All helpers guard their divisions so NaN/inf never reach a response.
"""
from __future__ import annotations

from typing import Iterable, Mapping, NamedTuple, Union

import numpy as np
import pandas as pd

from revenue_insights.config import IMPACT_THRESHOLD, TREND_THRESHOLD


class SeverityThresholds(NamedTuple):
    high: float
    medium: float


ThresholdsLike = Union[SeverityThresholds, Mapping[str, float]]


def _as_float(value) -> float:
    if value is None or pd.isna(value):
        return 0.0
    return float(value)


def percentage_change(current: float, previous: float) -> float:
    """
    Percent change from ``previous`` to ``current``.

    A zero baseline yields 100 when ``current`` is positive and 0 otherwise.
    A drop to zero from a positive baseline is not special-cased (-100).
    """
    current = _as_float(current)
    previous = _as_float(previous)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def win_rate(won: float, total: float) -> float:
    """Won share of closed decisions, in percent."""
    total = _as_float(total)
    if total == 0:
        return 0.0
    return _as_float(won) / total * 100


def average(values: Iterable[float]) -> float:
    """Arithmetic mean, 0 for empty input."""
    arr = np.asarray(
        [v for v in values if v is not None and not pd.isna(v)],
        dtype=float,
    )
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def determine_trend(change_pct: float) -> str:
    if change_pct > TREND_THRESHOLD:
        return "up"
    if change_pct < -TREND_THRESHOLD:
        return "down"
    return "stable"


def determine_impact(change_pct: float, higher_is_better: bool = True) -> str:
    """Classify a change as positive/negative/neutral for the business."""
    if abs(change_pct) < IMPACT_THRESHOLD:
        return "neutral"
    if higher_is_better:
        return "positive" if change_pct > 0 else "negative"
    return "positive" if change_pct < 0 else "negative"


def determine_severity(value: float, thresholds: ThresholdsLike) -> str:
    """Map a metric onto high/medium/low using caller-supplied cut-offs."""
    if isinstance(thresholds, Mapping):
        high, medium = thresholds["high"], thresholds["medium"]
    else:
        high, medium = thresholds.high, thresholds.medium

    if value >= high:
        return "high"
    if value >= medium:
        return "medium"
    return "low"


def format_currency_compact(value: float) -> str:
    """$1.25M / $125K / $950 style labels used in generated text."""
    value = _as_float(value)
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.0f}K"
    return f"${value:.0f}"


def format_thousands(value: float) -> str:
    """Amount in whole thousands with a K suffix, e.g. 125400 -> "$125K"."""
    return f"${_as_float(value) / 1000:.0f}K"
