"""
Read-only data access over the five sales tables.

``SalesDataStore`` owns the raw frames and answers the entity and aggregate
queries the engines need. Every query returns a fresh copy, so callers can
filter or mutate results without touching the underlying dataset.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from revenue_insights.config import (
    CLOSED_STAGES,
    OPTIONAL_COLUMNS,
    STAGE_CLOSED_LOST,
    STAGE_CLOSED_WON,
    STAGE_ORDER,
    TABLE_FILES,
)
from revenue_insights.data.schema import empty_table, ensure_column_types, validate_schema

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"


def _between(series: pd.Series, start: str, end: str) -> pd.Series:
    """Inclusive lexicographic range mask on a date-string column; missing values never match."""
    filled = series.where(series.notna(), "")
    return series.notna() & (filled >= start) & (filled <= end)


def _first_row(df: pd.DataFrame) -> Optional[Dict[str, Any]]:
    if len(df) == 0:
        return None
    return df.iloc[0].to_dict()


def _stage_sort_key(stages: pd.Series) -> pd.Series:
    rank = {stage: i for i, stage in enumerate(STAGE_ORDER)}
    return stages.map(lambda s: (rank.get(s, len(rank)), s))


class SalesDataStore:
    """In-memory accounts/reps/deals/activities/targets tables with query helpers."""

    def __init__(
        self,
        accounts: Optional[pd.DataFrame] = None,
        reps: Optional[pd.DataFrame] = None,
        deals: Optional[pd.DataFrame] = None,
        activities: Optional[pd.DataFrame] = None,
        targets: Optional[pd.DataFrame] = None,
    ):
        raw = {
            "accounts": accounts,
            "reps": reps,
            "deals": deals,
            "activities": activities,
            "targets": targets,
        }
        self._tables: Dict[str, pd.DataFrame] = {
            name: self._prepare(name, df) for name, df in raw.items()
        }
        logger.debug(
            "Sales data store ready: %s",
            {name: len(df) for name, df in self._tables.items()},
        )

    @staticmethod
    def _prepare(table_name: str, df: Optional[pd.DataFrame]) -> pd.DataFrame:
        if df is None or len(df.columns) == 0:
            df = empty_table(table_name)
        else:
            validate_schema(df, table_name, strict=True)
            df = df.copy()
        for col in OPTIONAL_COLUMNS.get(table_name, []):
            if col not in df.columns:
                df[col] = None
        return ensure_column_types(df, table_name)

    @classmethod
    def from_records(
        cls,
        accounts: Iterable[Dict] = (),
        reps: Iterable[Dict] = (),
        deals: Iterable[Dict] = (),
        activities: Iterable[Dict] = (),
        targets: Iterable[Dict] = (),
    ) -> "SalesDataStore":
        """Build a store from lists of dicts shaped like the JSON data files."""
        frames = {}
        for name, records in (
            ("accounts", accounts),
            ("reps", reps),
            ("deals", deals),
            ("activities", activities),
            ("targets", targets),
        ):
            records = list(records)
            frames[name] = pd.DataFrame(records) if records else None
        return cls(**frames)

    def table(self, name: str) -> pd.DataFrame:
        if name not in TABLE_FILES:
            raise KeyError(f"Unknown table: {name}")
        return self._tables[name].copy()

    def row_counts(self) -> Dict[str, int]:
        return {name: len(df) for name, df in self._tables.items()}

    # =========================================================================
    # ENTITY READS
    # =========================================================================

    def get_all_accounts(self) -> pd.DataFrame:
        return self._tables["accounts"].copy()

    def get_account_by_id(self, account_id: str) -> Optional[Dict[str, Any]]:
        accounts = self._tables["accounts"]
        return _first_row(accounts[accounts["account_id"] == account_id])

    def get_all_reps(self) -> pd.DataFrame:
        return self._tables["reps"].copy()

    def get_rep_by_id(self, rep_id: str) -> Optional[Dict[str, Any]]:
        reps = self._tables["reps"]
        return _first_row(reps[reps["rep_id"] == rep_id])

    def get_all_deals(self) -> pd.DataFrame:
        return self._tables["deals"].copy()

    def get_deals_by_stage(self, stage: str) -> pd.DataFrame:
        deals = self._tables["deals"]
        return deals[deals["stage"] == stage].copy()

    def get_deals_by_rep(self, rep_id: str) -> pd.DataFrame:
        deals = self._tables["deals"]
        return deals[deals["rep_id"] == rep_id].copy()

    def get_deals_by_account(self, account_id: str) -> pd.DataFrame:
        deals = self._tables["deals"]
        return deals[deals["account_id"] == account_id].copy()

    def get_deals_in_date_range(self, start: str, end: str) -> pd.DataFrame:
        """Deals closed in range, plus still-unclosed deals created in range."""
        deals = self._tables["deals"]
        closed_in_range = _between(deals["closed_at"], start, end)
        created_in_range = deals["closed_at"].isna() & _between(deals["created_at"], start, end)
        return deals[closed_in_range | created_in_range].copy()

    def get_open_deals(self) -> pd.DataFrame:
        deals = self._tables["deals"]
        return deals[~deals["stage"].isin(CLOSED_STAGES)].copy()

    def get_closed_won_deals_in_range(self, start: str, end: str) -> pd.DataFrame:
        deals = self._tables["deals"]
        mask = (deals["stage"] == STAGE_CLOSED_WON) & _between(deals["closed_at"], start, end)
        return deals[mask].copy()

    def get_all_activities(self) -> pd.DataFrame:
        return self._tables["activities"].copy()

    def get_activities_by_deal(self, deal_id: str) -> pd.DataFrame:
        activities = self._tables["activities"]
        return activities[activities["deal_id"] == deal_id].copy()

    def get_activities_in_date_range(self, start: str, end: str) -> pd.DataFrame:
        """Activities whose calendar day falls inside [start, end]."""
        activities = self._tables["activities"]
        day = activities["timestamp"].where(activities["timestamp"].notna(), "").str[:10]
        mask = activities["timestamp"].notna() & (day >= start) & (day <= end)
        return activities[mask].copy()

    def get_all_targets(self) -> pd.DataFrame:
        return self._tables["targets"].sort_values("month").reset_index(drop=True)

    def get_target_by_month(self, month: str) -> Optional[Dict[str, Any]]:
        targets = self._tables["targets"]
        return _first_row(targets[targets["month"] == month])

    def get_targets_in_range(self, start_month: str, end_month: str) -> pd.DataFrame:
        targets = self._tables["targets"]
        mask = _between(targets["month"], start_month, end_month)
        return targets[mask].sort_values("month").reset_index(drop=True)

    # =========================================================================
    # AGGREGATE READS
    # =========================================================================

    def get_revenue_by_month(self) -> pd.DataFrame:
        """Closed Won revenue and deal count per ``YYYY-MM`` of close."""
        deals = self._tables["deals"]
        won = deals[(deals["stage"] == STAGE_CLOSED_WON) & deals["closed_at"].notna()].copy()
        if len(won) == 0:
            return pd.DataFrame(columns=["month", "revenue", "deals"])

        won["month"] = won["closed_at"].str[:7]
        out = won.groupby("month").agg(
            revenue=("amount", "sum"),
            deals=("amount", "size"),
        ).reset_index()
        return out.sort_values("month").reset_index(drop=True)

    def get_pipeline_by_stage(self) -> pd.DataFrame:
        """Open-deal value and count per stage, in funnel order."""
        open_deals = self.get_open_deals()
        if len(open_deals) == 0:
            return pd.DataFrame(columns=["stage", "total", "count"])

        open_deals["stage"] = open_deals["stage"].fillna(UNKNOWN_LABEL)
        out = open_deals.groupby("stage").agg(
            total=("amount", "sum"),
            count=("amount", "size"),
        ).reset_index()
        out = out.assign(_order=_stage_sort_key(out["stage"])).sort_values("_order")
        return out.drop(columns="_order").reset_index(drop=True)

    def get_win_rate_by_segment(self) -> pd.DataFrame:
        """Won and total closed decisions per account segment."""
        deals = self._tables["deals"]
        closed = deals[deals["stage"].isin(CLOSED_STAGES) & deals["account_id"].notna()]
        accounts = self._tables["accounts"][["account_id", "segment"]].drop_duplicates(subset=["account_id"])
        joined = closed.merge(accounts, on="account_id", how="inner")
        if len(joined) == 0:
            return pd.DataFrame(columns=["segment", "won", "total"])

        joined["segment"] = joined["segment"].fillna(UNKNOWN_LABEL)
        joined["is_won"] = (joined["stage"] == STAGE_CLOSED_WON).astype(int)
        out = joined.groupby("segment").agg(
            won=("is_won", "sum"),
            total=("is_won", "size"),
        ).reset_index()
        return out.sort_values("segment").reset_index(drop=True)

    def get_rep_performance(self) -> pd.DataFrame:
        """Won/lost counts, won revenue and total deals for every rep."""
        reps = self._tables["reps"][["rep_id", "name"]].drop_duplicates(subset=["rep_id"])
        deals = self._tables["deals"]

        is_won = deals["stage"] == STAGE_CLOSED_WON
        flagged = deals.assign(
            is_won=is_won.astype(int),
            is_lost=(deals["stage"] == STAGE_CLOSED_LOST).astype(int),
            won_amount=np.where(is_won, deals["amount"], 0.0),
        )
        stats = flagged.groupby("rep_id").agg(
            won=("is_won", "sum"),
            lost=("is_lost", "sum"),
            revenue=("won_amount", "sum"),
            deals=("is_won", "size"),
        ).reset_index()

        out = reps.merge(stats, on="rep_id", how="left")
        for col in ["won", "lost", "deals"]:
            out[col] = out[col].fillna(0).astype(int)
        out["revenue"] = out["revenue"].fillna(0.0).astype(float)
        return out.reset_index(drop=True)

    def get_account_activity_counts(self) -> pd.DataFrame:
        """Per account: distinct activities, latest activity timestamp, open-deal value."""
        accounts = self._tables["accounts"][["account_id", "name", "segment"]].drop_duplicates(subset=["account_id"])
        deals = self._tables["deals"]
        activities = self._tables["activities"]

        open_value = (
            deals[~deals["stage"].isin(CLOSED_STAGES)]
            .groupby("account_id")["amount"].sum()
            .rename("open_deal_value")
            .reset_index()
        )

        deal_activities = activities.merge(
            deals[["deal_id", "account_id"]].dropna(subset=["deal_id"]),
            on="deal_id",
            how="inner",
        )
        counts = (
            deal_activities.groupby("account_id")["activity_id"].nunique()
            .rename("activity_count")
            .reset_index()
        )
        last_seen = (
            deal_activities[deal_activities["timestamp"].notna()]
            .groupby("account_id")["timestamp"].max()
            .rename("last_activity")
            .reset_index()
        )

        out = (
            accounts
            .merge(counts, on="account_id", how="left")
            .merge(last_seen, on="account_id", how="left")
            .merge(open_value, on="account_id", how="left")
        )
        out["activity_count"] = out["activity_count"].fillna(0).astype(int)
        out["open_deal_value"] = out["open_deal_value"].fillna(0.0).astype(float)
        out["last_activity"] = pd.Series(
            [ts if pd.notna(ts) else None for ts in out["last_activity"]],
            index=out.index,
            dtype=object,
        )
        return out.reset_index(drop=True)
