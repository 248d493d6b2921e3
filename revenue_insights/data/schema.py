"""
Schema validation and column normalisation for the sales tables.
"""
import pandas as pd
from typing import List, Tuple, Dict

from revenue_insights.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


ID_COLUMNS = {
    "accounts": ["account_id"],
    "reps": ["rep_id"],
    "deals": ["deal_id", "account_id", "rep_id"],
    "activities": ["activity_id", "deal_id"],
}

TEXT_COLUMNS = {
    "accounts": ["name", "industry", "segment"],
    "reps": ["name"],
    "deals": ["stage"],
    "activities": ["type"],
}

DATE_COLUMNS = {
    "deals": ["created_at", "closed_at"],
}

TIMESTAMP_COLUMNS = {
    "activities": ["timestamp"],
}


def empty_table(table_name: str) -> pd.DataFrame:
    """Empty frame carrying every known column for a table."""
    columns = REQUIRED_COLUMNS.get(table_name, []) + OPTIONAL_COLUMNS.get(table_name, [])
    return pd.DataFrame(columns=columns)


def validate_required_columns(df: pd.DataFrame, table_name: str) -> Tuple[bool, List[str]]:
    """
    Validate that required columns exist in dataframe.
    Returns (is_valid, missing_columns).
    """
    if table_name not in REQUIRED_COLUMNS:
        return True, []

    required = REQUIRED_COLUMNS[table_name]
    missing = [col for col in required if col not in df.columns]

    return len(missing) == 0, missing


def check_optional_columns(df: pd.DataFrame, table_name: str) -> List[str]:
    """
    Check which optional columns are missing.
    Returns list of missing optional columns.
    """
    if table_name not in OPTIONAL_COLUMNS:
        return []

    optional = OPTIONAL_COLUMNS[table_name]
    return [col for col in optional if col not in df.columns]


def validate_schema(df: pd.DataFrame, table_name: str, strict: bool = True) -> Dict:
    """
    Full schema validation.

    Args:
        df: DataFrame to validate
        table_name: Name of table for column requirements lookup
        strict: If True, raise error on missing required columns

    Returns:
        Dict with validation results
    """
    is_valid, missing_required = validate_required_columns(df, table_name)
    missing_optional = check_optional_columns(df, table_name)

    result = {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }

    if strict and not is_valid:
        raise SchemaValidationError(
            f"Missing required columns in {table_name}: {missing_required}"
        )

    return result


def _clean_scalar(value):
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    return str(value).strip()


def _normalise_ids(series: pd.Series) -> pd.Series:
    # Explicit object dtype keeps None; inferred string dtypes turn it into NaN
    values = [_clean_scalar(v) or None for v in series]
    return pd.Series(values, index=series.index, dtype=object, name=series.name)


def _normalise_text(series: pd.Series) -> pd.Series:
    values = [_clean_scalar(v) for v in series]
    return pd.Series(values, index=series.index, dtype=object, name=series.name)


def _normalise_timestamps(series: pd.Series, fmt: str) -> pd.Series:
    """Render parseable values with ``fmt``; anything unparseable becomes None."""
    ts = pd.to_datetime(series, errors="coerce", utc=True, format="mixed")
    rendered = ts.dt.tz_localize(None).dt.strftime(fmt)
    values = [text if present else None for text, present in zip(rendered, ts.notna())]
    return pd.Series(values, index=series.index, dtype=object, name=series.name)


def ensure_column_types(df: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """
    Coerce one table into the engine's canonical types.

    - ids and labels are stripped strings (None when missing)
    - deal dates are ``YYYY-MM-DD`` strings, activity timestamps ISO strings
    - amounts and targets are floats with missing values as 0
    - targets are keyed by ``YYYY-MM``, unique and sorted by month
    """
    df = df.copy()

    for col in ID_COLUMNS.get(table_name, []):
        if col in df.columns:
            df[col] = _normalise_ids(df[col])

    for col in TEXT_COLUMNS.get(table_name, []):
        if col in df.columns:
            df[col] = _normalise_text(df[col])

    for col in DATE_COLUMNS.get(table_name, []):
        if col in df.columns:
            df[col] = _normalise_timestamps(df[col], "%Y-%m-%d")

    for col in TIMESTAMP_COLUMNS.get(table_name, []):
        if col in df.columns:
            df[col] = _normalise_timestamps(df[col], "%Y-%m-%dT%H:%M:%S")

    if table_name == "deals":
        if "amount" in df.columns:
            df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0).astype(float)
        if "closed_at" not in df.columns:
            df["closed_at"] = None

    if table_name == "targets" and len(df.columns) > 0:
        if "month" in df.columns:
            df["month"] = _normalise_timestamps(df["month"], "%Y-%m")
            df = df[df["month"].notna()]
        if "target" in df.columns:
            df["target"] = pd.to_numeric(df["target"], errors="coerce").fillna(0.0).astype(float)
        if "month" in df.columns:
            df = df.drop_duplicates(subset=["month"], keep="last").sort_values("month")
        df = df.reset_index(drop=True)

    return df


def get_column_info(df: pd.DataFrame) -> pd.DataFrame:
    """Get summary info about all columns."""
    info = []
    for col in df.columns:
        info.append({
            "column": col,
            "dtype": str(df[col].dtype),
            "non_null": int(df[col].notna().sum()),
            "null_pct": f"{df[col].isna().mean()*100:.1f}%" if len(df) else "0.0%",
            "unique": int(df[col].nunique()),
        })
    return pd.DataFrame(info)
