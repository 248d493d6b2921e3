#!/usr/bin/env python
"""
Compute the summary, drivers, risk factors and recommendations for a date
and write them as one JSON report.

Usage:
    python scripts/build_report.py
    python scripts/build_report.py --as-of 2024-05-15 --output report.json
    python scripts/build_report.py --data-dir /path/to/data -v
"""
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.config import config
from revenue_insights.data.loader import load_dataset, DatasetNotFoundError
from revenue_insights.data.schema import SchemaValidationError
from revenue_insights.exports import build_report_bundle, response_to_json


def main():
    parser = argparse.ArgumentParser(description="Build a revenue insights report")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory"
    )
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        help="Report date as YYYY-MM-DD (default: today)"
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write the report to this file instead of stdout"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    as_of = args.as_of or date.today().strftime("%Y-%m-%d")

    try:
        store = load_dataset(data_dir)
    except (DatasetNotFoundError, SchemaValidationError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    bundle = build_report_bundle(store, as_of)
    report = response_to_json(bundle)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report, encoding="utf-8")
        print(f"Report for {as_of} written to {output_path}", file=sys.stderr)
    else:
        print(report)


if __name__ == "__main__":
    main()
