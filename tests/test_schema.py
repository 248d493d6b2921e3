"""
Tests for schema validation and column normalisation.
"""
import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.data.schema import (
    validate_required_columns,
    check_optional_columns,
    validate_schema,
    ensure_column_types,
    empty_table,
    get_column_info,
    SchemaValidationError,
)
from revenue_insights.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS


class TestValidateRequiredColumns:
    """Tests for required column validation."""

    def test_all_columns_present(self):
        df = pd.DataFrame({
            "deal_id": ["D1"],
            "account_id": ["A1"],
            "rep_id": ["R1"],
            "stage": ["Proposal"],
            "amount": [1000.0],
            "created_at": ["2024-01-01"],
        })

        is_valid, missing = validate_required_columns(df, "deals")

        assert is_valid is True
        assert missing == []

    def test_missing_columns(self):
        df = pd.DataFrame({"deal_id": ["D1"], "stage": ["Proposal"]})

        is_valid, missing = validate_required_columns(df, "deals")

        assert is_valid is False
        assert "amount" in missing
        assert "created_at" in missing

    def test_unknown_table(self):
        """Unknown table name should pass (no requirements)."""
        df = pd.DataFrame({"any_col": [1, 2, 3]})

        is_valid, missing = validate_required_columns(df, "unknown_table")

        assert is_valid is True
        assert missing == []


class TestValidateSchema:

    def test_strict_mode_raises(self):
        df = pd.DataFrame({"account_id": ["A1"]})

        with pytest.raises(SchemaValidationError):
            validate_schema(df, "accounts", strict=True)

    def test_non_strict_mode_returns_result(self):
        df = pd.DataFrame({"account_id": ["A1"]})

        result = validate_schema(df, "accounts", strict=False)

        assert result["is_valid"] is False
        assert result["missing_required"] == ["name", "segment"]
        assert result["missing_optional"] == ["industry"]
        assert result["total_rows"] == 1

    def test_optional_columns(self):
        df = pd.DataFrame(columns=REQUIRED_COLUMNS["activities"])

        assert check_optional_columns(df, "activities") == OPTIONAL_COLUMNS["activities"]
        assert check_optional_columns(df, "reps") == []


class TestEnsureColumnTypes:
    """Tests for per-table normalisation."""

    def test_deal_dates_and_amounts(self):
        df = pd.DataFrame({
            "deal_id": [" D1 ", "D2"],
            "account_id": ["A1", None],
            "rep_id": ["R1", "R2"],
            "stage": ["Closed Won", "Proposal"],
            "amount": ["1200.5", "not a number"],
            "created_at": ["2024-05-01T08:15:00Z", "2024-05-02"],
            "closed_at": ["2024-05-10T13:45:00Z", None],
        })

        result = ensure_column_types(df, "deals")

        assert result["deal_id"].tolist() == ["D1", "D2"]
        assert result["account_id"].tolist() == ["A1", None]
        assert result["amount"].tolist() == [1200.5, 0.0]
        assert result["created_at"].tolist() == ["2024-05-01", "2024-05-02"]
        assert result["closed_at"].tolist() == ["2024-05-10", None]

    def test_deals_without_closed_at_get_column(self):
        df = pd.DataFrame({
            "deal_id": ["D1"],
            "account_id": ["A1"],
            "rep_id": ["R1"],
            "stage": ["Proposal"],
            "amount": [np.nan],
            "created_at": ["2024-05-01"],
        })

        result = ensure_column_types(df, "deals")

        assert "closed_at" in result.columns
        assert result["amount"].iloc[0] == 0.0

    def test_activity_timestamps_in_utc(self):
        df = pd.DataFrame({
            "activity_id": ["X1", "X2"],
            "deal_id": ["D1", "D1"],
            "timestamp": ["2024-05-10T13:45:00+02:00", "garbage"],
        })

        result = ensure_column_types(df, "activities")

        assert result["timestamp"].tolist() == ["2024-05-10T11:45:00", None]

    def test_numeric_ids_become_strings(self):
        df = pd.DataFrame({"rep_id": [7, 8], "name": ["Ann", "Bo"]})

        result = ensure_column_types(df, "reps")

        assert result["rep_id"].tolist() == ["7", "8"]

    def test_missing_labels_stay_none(self):
        df = pd.DataFrame({
            "account_id": ["A1", " ", None],
            "name": ["Acme", None, np.nan],
            "segment": [" SMB ", None, "Enterprise"],
        }).astype({"account_id": "string", "name": "string"})

        result = ensure_column_types(df, "accounts")

        assert result["account_id"].tolist() == ["A1", None, None]
        assert result["name"].tolist() == ["Acme", None, None]
        assert result["segment"].tolist() == ["SMB", None, "Enterprise"]
        assert result["name"].dtype == object

    def test_targets_month_key_and_dedupe(self):
        df = pd.DataFrame({
            "month": ["2024-05-01", "2024-04", "2024-05"],
            "target": ["50000", 40000, 80000],
        })

        result = ensure_column_types(df, "targets")

        assert result["month"].tolist() == ["2024-04", "2024-05"]
        assert result["target"].tolist() == [40000.0, 80000.0]


class TestHelpers:

    def test_empty_table_has_all_columns(self):
        df = empty_table("deals")

        assert len(df) == 0
        assert set(REQUIRED_COLUMNS["deals"]) <= set(df.columns)
        assert "closed_at" in df.columns

    def test_column_info(self):
        df = pd.DataFrame({"a": [1, None], "b": ["x", "y"]})

        info = get_column_info(df)

        assert info["column"].tolist() == ["a", "b"]
        assert info.loc[0, "non_null"] == 1
        assert info.loc[0, "null_pct"] == "50.0%"
