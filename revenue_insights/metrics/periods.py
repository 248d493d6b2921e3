"""
Calendar-quarter windows and day arithmetic.

Dates cross the engine boundary as zero-padded ``YYYY-MM-DD`` strings so
window filters can compare them lexicographically. ``now`` is always passed
in by the caller; nothing here reads the system clock.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

import pandas as pd

DateLike = Union[str, date, datetime, pd.Timestamp]

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class QuarterWindow:
    """Inclusive calendar-day boundaries of one quarter."""
    start: str
    end: str
    label: str
    quarter: int
    year: int

    def contains(self, day: Optional[str]) -> bool:
        """True if a ``YYYY-MM-DD`` string falls inside the window."""
        if not day:
            return False
        return self.start <= day[:10] <= self.end


def to_timestamp(value: DateLike) -> pd.Timestamp:
    """Parse to a naive timestamp; tz-aware values are converted to UTC first."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def format_date(value: Optional[DateLike]) -> Optional[str]:
    """Normalise a date-like value to ``YYYY-MM-DD`` (None for missing)."""
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
    elif pd.isna(value):
        return None
    return to_timestamp(value).strftime("%Y-%m-%d")


def _quarter_window(year: int, quarter: int) -> QuarterWindow:
    start = pd.Timestamp(year=year, month=(quarter - 1) * 3 + 1, day=1)
    end = start + pd.DateOffset(months=3) - pd.Timedelta(days=1)
    return QuarterWindow(
        start=start.strftime("%Y-%m-%d"),
        end=end.strftime("%Y-%m-%d"),
        label=f"Q{quarter} {year}",
        quarter=quarter,
        year=year,
    )


def current_quarter(now: DateLike) -> QuarterWindow:
    """Quarter containing ``now``."""
    ts = to_timestamp(now)
    return _quarter_window(ts.year, (ts.month - 1) // 3 + 1)


def previous_quarter(now: DateLike) -> QuarterWindow:
    """Quarter immediately before the current one (Q1 wraps to Q4 of last year)."""
    current = current_quarter(now)
    if current.quarter == 1:
        return _quarter_window(current.year - 1, 4)
    return _quarter_window(current.year, current.quarter - 1)


def same_quarter_last_year(now: DateLike) -> QuarterWindow:
    current = current_quarter(now)
    return _quarter_window(current.year - 1, current.quarter)


def days_remaining_in_quarter(now: DateLike) -> int:
    """Whole days (rounded up) from ``now`` to midnight of the quarter's last day."""
    now_ts = to_timestamp(now)
    end_ts = to_timestamp(current_quarter(now_ts).end)
    diff_days = (end_ts - now_ts).total_seconds() / SECONDS_PER_DAY
    return max(0, math.ceil(diff_days))


def days_between(first: DateLike, second: DateLike) -> int:
    """Absolute difference in days, rounded up. Symmetric in its arguments."""
    delta = to_timestamp(second) - to_timestamp(first)
    return math.ceil(abs(delta.total_seconds()) / SECONDS_PER_DAY)


def months_in_quarter(quarter: QuarterWindow) -> List[str]:
    """``YYYY-MM`` keys spanned by the window, inclusive."""
    months = pd.period_range(start=quarter.start, end=quarter.end, freq="M")
    return [str(period) for period in months]


def month_label(month_key: str) -> str:
    """Short month name for a ``YYYY-MM`` key, e.g. ``"2024-01"`` -> ``"Jan"``."""
    return pd.Timestamp(f"{month_key[:7]}-01").strftime("%b")


def is_within_days(value: DateLike, days: float, now: DateLike) -> bool:
    """True if ``value`` is no more than ``days`` days before ``now``."""
    diff_days = (to_timestamp(now) - to_timestamp(value)).total_seconds() / SECONDS_PER_DAY
    return diff_days <= days
