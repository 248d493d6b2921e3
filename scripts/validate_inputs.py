#!/usr/bin/env python
"""
Validate input data files against schema requirements.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --data-dir /path/to/data
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from revenue_insights.config import config, TABLE_FILES
from revenue_insights.data.loader import load_table, get_data_status
from revenue_insights.data.schema import validate_schema, get_column_info


def validate_table(table_name: str, data_dir: Path, status: dict) -> dict:
    """Validate a single table."""
    result = {
        "exists": status["exists"],
        "format": status["format"],
        "required": status["required"],
        "rows": 0,
        "columns": 0,
        "valid": False,
        "missing_required": [],
        "missing_optional": [],
        "column_info": None,
        "errors": [],
    }

    if not status["exists"]:
        return result

    try:
        df = load_table(table_name, data_dir)
    except ValueError as e:
        result["errors"].append(f"Failed to load: {e}")
        return result

    result["rows"] = len(df)
    result["columns"] = len(df.columns)

    schema_result = validate_schema(df, table_name, strict=False)
    result["valid"] = schema_result["is_valid"]
    result["missing_required"] = schema_result["missing_required"]
    result["missing_optional"] = schema_result["missing_optional"]
    result["column_info"] = get_column_info(df)

    return result


def main():
    parser = argparse.ArgumentParser(description="Validate input data files")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory"
    )
    parser.add_argument(
        "--show-columns",
        action="store_true",
        help="Print per-column dtype and null summary"
    )

    args = parser.parse_args()

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir

    print("=" * 60)
    print("Data Input Validation")
    print("=" * 60)
    print(f"Source directory: {data_dir}")
    print()

    all_valid = True
    status = get_data_status(data_dir)

    for table_name, filename in TABLE_FILES.items():
        print(f"Validating: {table_name}")
        print("-" * 40)

        result = validate_table(table_name, data_dir, status[table_name])

        if result["exists"]:
            print(f"  ✓ Found: {filename}.{result['format']}")
            print(f"    Rows: {result['rows']:,}")
            print(f"    Columns: {result['columns']}")

            if result["valid"]:
                print("  ✓ Schema valid")
            elif not result["errors"]:
                print("  ✗ Schema invalid")
                print(f"    Missing required: {result['missing_required']}")
                all_valid = False

            if result["missing_optional"]:
                print(f"  ⚠ Missing optional: {result['missing_optional']}")

            if args.show_columns and result["column_info"] is not None:
                print(result["column_info"].to_string(index=False))
        else:
            print(f"  ✗ Not found: {filename}")
            if result["required"]:
                all_valid = False
                print("    (REQUIRED)")
            else:
                print("    (optional)")

        if result["errors"]:
            for err in result["errors"]:
                print(f"  ✗ Error: {err}")
            all_valid = False

        print()

    print("=" * 60)
    if all_valid:
        print("✓ All validations passed")
        sys.exit(0)
    else:
        print("✗ Validation failed - see errors above")
        sys.exit(1)


if __name__ == "__main__":
    main()
