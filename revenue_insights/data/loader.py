"""
Data loading utilities for the sales tables.
"""
import logging
import pandas as pd
from pathlib import Path
from typing import Optional, Dict, Any, Sequence

from revenue_insights.config import config, TABLE_FILES, REQUIRED_TABLES
from revenue_insights.data.store import SalesDataStore

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".parquet", ".csv", ".json")


class DatasetNotFoundError(FileNotFoundError):
    """Raised when a required table has no readable file."""
    pass


def _normalise_column_selection(columns: Optional[Sequence[str]]) -> Optional[list[str]]:
    """Deduplicate and normalise a requested column list."""
    if not columns:
        return None
    return list(dict.fromkeys(str(col) for col in columns))


def _find_file(filepath: Path) -> Optional[Path]:
    """First existing variant of ``filepath`` in parquet, csv, json order."""
    for suffix in SUPPORTED_SUFFIXES:
        candidate = filepath.with_suffix(suffix)
        if candidate.exists():
            return candidate
    return None


def _load_file(filepath: Path, columns: Optional[Sequence[str]] = None) -> Optional[pd.DataFrame]:
    """Load a single file (parquet, csv or json records), optionally selecting columns."""
    selected_cols = _normalise_column_selection(columns)
    path = _find_file(filepath)
    if path is None:
        return None

    if path.suffix == ".parquet":
        if selected_cols:
            try:
                return pd.read_parquet(path, columns=selected_cols)
            except (KeyError, ValueError):
                df = pd.read_parquet(path)
                return df[[col for col in selected_cols if col in df.columns]]
        return pd.read_parquet(path)

    if path.suffix == ".csv":
        # Keep ids and dates as text; the schema layer does the typing
        if selected_cols:
            try:
                return pd.read_csv(path, usecols=selected_cols, dtype=str)
            except ValueError:
                df = pd.read_csv(path, dtype=str)
                return df[[col for col in selected_cols if col in df.columns]]
        return pd.read_csv(path, dtype=str)

    df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    if selected_cols:
        df = df[[col for col in selected_cols if col in df.columns]]
    return df


def load_table(table_name: str, data_dir: Optional[Path] = None) -> Optional[pd.DataFrame]:
    """Load one raw table by logical name; None when no file exists."""
    if table_name not in TABLE_FILES:
        raise KeyError(f"Unknown table: {table_name}")

    data_dir = Path(data_dir) if data_dir is not None else config.data_dir
    df = _load_file(data_dir / TABLE_FILES[table_name])
    if df is None:
        return None

    logger.info("Loaded %s rows from %s", f"{len(df):,}", table_name)
    return df


def load_dataset(data_dir: Optional[Path] = None) -> SalesDataStore:
    """
    Load all five tables into a SalesDataStore.

    Missing required tables (accounts, reps, deals) raise DatasetNotFoundError;
    missing activities or targets load as empty tables.
    """
    data_dir = Path(data_dir) if data_dir is not None else config.data_dir

    frames: Dict[str, Optional[pd.DataFrame]] = {}
    for table_name in TABLE_FILES:
        df = load_table(table_name, data_dir)
        if df is None:
            if table_name in REQUIRED_TABLES:
                raise DatasetNotFoundError(
                    f"Could not find {TABLE_FILES[table_name]}.(parquet|csv|json) in {data_dir}"
                )
            logger.warning("Optional table %s not found in %s; using an empty table", table_name, data_dir)
        frames[table_name] = df

    return SalesDataStore(**frames)


def get_data_status(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Get status of all data files."""
    data_dir = Path(data_dir) if data_dir is not None else config.data_dir

    status: Dict[str, Any] = {}
    for key, filename in TABLE_FILES.items():
        found = _find_file(data_dir / filename)
        status[key] = {
            "exists": found is not None,
            "format": found.suffix.lstrip(".") if found is not None else None,
            "required": key in REQUIRED_TABLES,
        }

    return status
