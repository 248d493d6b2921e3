"""
Revenue Insights Dashboard

Main entry point for Streamlit app.
"""
import streamlit as st
from pathlib import Path
from datetime import date, datetime, timezone
import logging

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Revenue Insights",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from revenue_insights.config import config, TABLE_FILES
from revenue_insights.data.loader import load_dataset, get_data_status, DatasetNotFoundError
from revenue_insights.data.schema import SchemaValidationError
from revenue_insights.data.store import SalesDataStore
from revenue_insights.exports import build_report_bundle, export_report_json, export_risk_register_excel
from revenue_insights.metrics.drivers import compute_drivers
from revenue_insights.metrics.risk_factors import compute_risk_factors
from revenue_insights.metrics.summary import compute_summary
from revenue_insights.modeling.recommendations import build_recommendations
from revenue_insights.ui.components import (
    render_drivers_section,
    render_recommendations_section,
    render_risk_section,
    render_summary_section,
)

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def _load_store(data_dir: str) -> SalesDataStore:
    return load_dataset(Path(data_dir))


def render_setup_help(status):
    st.error("No data found!")
    missing = [name for name, info in status.items() if info["required"] and not info["exists"]]
    st.markdown(f"""
    ### Setup Required

    Please place your data files in: `{config.data_dir}`

    Missing required tables: {", ".join(f"`{name}`" for name in missing)}

    Each table is read from `<table>.parquet`, `<table>.csv` or `<table>.json`:
    - `accounts` (account_id, name, segment, industry)
    - `reps` (rep_id, name)
    - `deals` (deal_id, account_id, rep_id, stage, amount, created_at, closed_at)
    - `activities` (activity_id, deal_id, type, timestamp), optional
    - `targets` (month, target), optional
    """)
    st.info("Once data is in place, refresh this page.")


def render_data_fingerprint():
    with st.expander("Data fingerprint", expanded=False):
        rows = []
        for filename in TABLE_FILES.values():
            for ext in ("parquet", "csv", "json"):
                path = config.data_dir / f"{filename}.{ext}"
                if path.exists():
                    mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                    rows.append({
                        "file": path.name,
                        "size_kb": round(path.stat().st_size / 1024, 1),
                        "modified_utc": mtime.strftime("%Y-%m-%d %H:%M"),
                    })
        if rows:
            st.dataframe(rows, use_container_width=True)
        else:
            st.info(f"No files found in {config.data_dir}.")


def main():
    """Main app entry point."""

    # Header
    st.title("Revenue Insights")
    st.caption("Quarter performance, drivers, risks and next actions")

    # Check data availability
    status = get_data_status()
    if not all(info["exists"] for info in status.values() if info["required"]):
        render_setup_help(status)
        return

    if not config.is_prod:
        render_data_fingerprint()

    with st.sidebar:
        st.markdown("### Settings")
        as_of_date = st.date_input("As of", value=date.today())
        if st.button("Reload data"):
            _load_store.clear()

    now = datetime.combine(as_of_date, datetime.min.time())
    as_of = as_of_date.strftime("%Y-%m-%d")

    # Load and validate data
    with st.spinner("Loading data..."):
        try:
            store = _load_store(str(config.data_dir))
        except (DatasetNotFoundError, SchemaValidationError) as e:
            st.error(f"Error loading data: {e}")
            return

    with st.sidebar:
        counts = store.row_counts()
        st.markdown("### Rows Loaded")
        for table_name, count in counts.items():
            st.caption(f"{table_name}: {count:,}")

    logger.info("Rendering dashboard as of %s", as_of)

    summary = compute_summary(store, now)
    drivers = compute_drivers(store, now)
    risks = compute_risk_factors(store, now)
    recommendations = build_recommendations(drivers, risks, now)

    render_summary_section(summary)
    st.markdown("---")
    render_drivers_section(drivers)
    st.markdown("---")
    render_risk_section(risks, as_of)
    st.markdown("---")
    render_recommendations_section(recommendations)

    # Exports
    st.markdown("---")
    st.markdown("### Export")
    c1, c2 = st.columns(2)
    with c1:
        report_bytes, report_name = export_report_json(build_report_bundle(store, now))
        st.download_button("Download report (JSON)", data=report_bytes,
                           file_name=report_name, mime="application/json")
    with c2:
        excel_bytes, excel_name = export_risk_register_excel(risks, as_of)
        st.download_button(
            "Download risk register (Excel)",
            data=excel_bytes,
            file_name=excel_name,
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    st.page_link("pages/1_Glossary_Method.py", label="Glossary & Method", icon="📖")


if __name__ == "__main__":
    main()
