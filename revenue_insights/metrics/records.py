"""
Response records produced by the analytics engines.

Records are plain dataclasses built fresh per call. ``to_dict`` renders the
camelCase field names the dashboard/API contract uses.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return _camelize(asdict(self))


# =============================================================================
# SHARED
# =============================================================================

@dataclass
class EntityRef(_Record):
    """Denormalised pointer to the deal/rep/account a record is about."""
    id: str
    name: str
    type: str


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass
class SummaryResponse(_Record):
    current_quarter_revenue: float
    target: float
    gap: float
    gap_percentage: float
    status: str
    yoy_change: float
    qoq_change: float
    quarter_label: str
    closed_deals: int
    open_deals: int
    total_pipeline: float
    days_remaining: int


# =============================================================================
# DRIVERS
# =============================================================================

@dataclass
class DriverMetric(_Record):
    name: str
    current: float
    previous: float
    change: float
    change_percentage: float
    trend: str
    impact: str
    benchmark: Optional[float] = None


@dataclass
class PipelineStage(_Record):
    stage: str
    value: float
    count: int
    color: str


@dataclass
class SegmentWinRate(_Record):
    segment: str
    win_rate: float
    deal_count: int


@dataclass
class DealSizeBucket(_Record):
    range: str
    count: int
    value: float


@dataclass
class MonthlyPoint(_Record):
    month: str
    revenue: float
    target: float
    deals: int


@dataclass
class DriversResponse(_Record):
    pipeline_size: DriverMetric
    win_rate: DriverMetric
    avg_deal_size: DriverMetric
    sales_cycle_time: DriverMetric
    pipeline_by_stage: List[PipelineStage] = field(default_factory=list)
    win_rate_by_segment: List[SegmentWinRate] = field(default_factory=list)
    deal_size_distribution: List[DealSizeBucket] = field(default_factory=list)
    monthly_trend: List[MonthlyPoint] = field(default_factory=list)

    @property
    def metrics(self) -> List[DriverMetric]:
        return [self.pipeline_size, self.win_rate, self.avg_deal_size, self.sales_cycle_time]


# =============================================================================
# RISK FACTORS
# =============================================================================

@dataclass
class RiskFactor(_Record):
    id: str
    type: str
    severity: str
    title: str
    description: str
    metric: str
    metric_value: float
    threshold: float
    potential_impact: float
    entity: EntityRef
    suggested_action: str
    last_updated: str


@dataclass
class RiskSummary(_Record):
    total_risks: int = 0
    high_severity: int = 0
    medium_severity: int = 0
    low_severity: int = 0
    total_at_risk: float = 0.0


@dataclass
class RiskFactorsResponse(_Record):
    summary: RiskSummary
    stale_deals: List[RiskFactor] = field(default_factory=list)
    underperforming_reps: List[RiskFactor] = field(default_factory=list)
    low_activity_accounts: List[RiskFactor] = field(default_factory=list)

    @property
    def all_risks(self) -> List[RiskFactor]:
        return [*self.stale_deals, *self.underperforming_reps, *self.low_activity_accounts]


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

@dataclass
class Recommendation(_Record):
    id: str
    priority: int
    category: str
    title: str
    description: str
    reasoning: str
    expected_impact: float
    effort: str
    timeframe: str
    action_items: List[str] = field(default_factory=list)
    related_entities: List[EntityRef] = field(default_factory=list)


@dataclass
class RecommendationsResponse(_Record):
    recommendations: List[Recommendation]
    generated_at: str
    data_freshness: str
