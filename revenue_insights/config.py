"""
Application configuration management.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Cache settings (dataset load only, engines always recompute)
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "300")))

    @property
    def is_prod(self) -> bool:
        return self.app_env.lower() == "prod"


# Global config instance
config = AppConfig()


# =============================================================================
# DEAL STAGES
# =============================================================================

STAGE_CLOSED_WON = "Closed Won"
STAGE_CLOSED_LOST = "Closed Lost"
CLOSED_STAGES = (STAGE_CLOSED_WON, STAGE_CLOSED_LOST)

STAGE_ORDER = [
    "Prospecting",
    "Qualification",
    "Proposal",
    "Negotiation",
    STAGE_CLOSED_WON,
    STAGE_CLOSED_LOST,
]

STAGE_COLORS = {
    "Prospecting": "#94a3b8",
    "Qualification": "#60a5fa",
    "Proposal": "#a78bfa",
    "Negotiation": "#fbbf24",
    STAGE_CLOSED_WON: "#34d399",
    STAGE_CLOSED_LOST: "#f87171",
}
DEFAULT_STAGE_COLOR = "#64748b"


# =============================================================================
# RISK RULES
# =============================================================================

class RiskRule(NamedTuple):
    """Flag threshold plus severity cut-offs for one risk detector."""
    threshold: float
    high: float
    medium: float


# Days since last activity (flag) / days in stage (secondary flag)
STALE_DEAL_RULES = RiskRule(threshold=14, high=30, medium=21)
STALE_DEAL_MAX_DAYS_IN_STAGE = 30

# Win rate points below team average
REP_RULES = RiskRule(threshold=15, high=25, medium=20)
REP_MIN_CLOSED_DEALS = 3
REP_DEFAULT_TEAM_WIN_RATE = 25.0

# Days since last activity on any of the account's deals
ACCOUNT_RULES = RiskRule(threshold=21, high=45, medium=30)
ACCOUNT_MIN_ACTIVITIES = 3
ACCOUNT_NO_ACTIVITY_DAYS = 999
ACCOUNT_MAX_RESULTS = 10

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


# =============================================================================
# DRIVER METRICS
# =============================================================================

DRIVER_BENCHMARKS = {
    "pipeline_size": 2_500_000,
    "win_rate": 30,
    "avg_deal_size": 45_000,
    "sales_cycle": 45,
}

# Classification thresholds (percent)
TREND_THRESHOLD = 2.0
IMPACT_THRESHOLD = 5.0
STATUS_THRESHOLD = 5.0

# (label, lower bound inclusive, upper bound exclusive)
DEAL_SIZE_BUCKETS = [
    ("< $10K", 0, 10_000),
    ("$10K-$25K", 10_000, 25_000),
    ("$25K-$50K", 25_000, 50_000),
    ("$50K-$100K", 50_000, 100_000),
    ("> $100K", 100_000, float("inf")),
]

MONTHLY_TREND_MONTHS = 12


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

MAX_RECOMMENDATIONS = 5
DATA_FRESHNESS_LABEL = "Real-time"

CATEGORY_COLORS = {
    "deal-focus": "#3b82f6",
    "rep-coaching": "#8b5cf6",
    "account-activity": "#f59e0b",
    "strategy": "#10b981",
}

SEVERITY_COLORS = {
    "high": "#dc3545",
    "medium": "#ffc107",
    "low": "#6c757d",
}

STATUS_COLORS = {
    "ahead": "#28a745",
    "on-track": "#ffc107",
    "behind": "#dc3545",
}


# =============================================================================
# TABLES
# =============================================================================

# Table file names (without extension)
TABLE_FILES = {
    "accounts": "accounts",
    "reps": "reps",
    "deals": "deals",
    "activities": "activities",
    "targets": "targets",
}

# Tables the dashboard cannot run without
REQUIRED_TABLES = ["accounts", "reps", "deals"]

# Required columns (hard fail if missing)
REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "accounts": ["account_id", "name", "segment"],
    "reps": ["rep_id", "name"],
    "deals": ["deal_id", "account_id", "rep_id", "stage", "amount", "created_at"],
    "activities": ["activity_id", "deal_id", "timestamp"],
    "targets": ["month", "target"],
}

# Optional columns (soft warn if missing)
OPTIONAL_COLUMNS: Dict[str, List[str]] = {
    "accounts": ["industry"],
    "deals": ["closed_at"],
    "activities": ["type"],
}

# Formatting constants
FORMAT_CURRENCY = "${:,.0f}"
FORMAT_PERCENT = "{:.1f}%"
FORMAT_COUNT = "{:,}"
FORMAT_DAYS = "{:,.0f} days"
