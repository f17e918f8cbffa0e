#!/usr/bin/env python3
"""
Ingestion Runner
================

CLI script to load the raw housing export into a relational table.

IMPORTANT: No cleaning here - rows are loaded as exported. Only header
whitespace is fixed and the configured column types are applied, so the
database does not infer them wrongly.

Usage:
    python ingestion/run_ingestion.py load data/NashvilleHousingData.csv
    python ingestion/run_ingestion.py convert data/NashvilleHousingData.xlsx data/NashvilleHousingData.csv
    python ingestion/run_ingestion.py test
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ingestion.connectors.file_connector import (
    FileConnector,
    coerce_column_types,
    convert_xlsx_to_csv,
    normalize_column_names,
)
from ingestion.connectors.sql_connector import SQLTableConnector

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///nashville_housing.db"
DEFAULT_TABLE = "NashvilleHousing"
DEFAULT_COLUMN_TYPES = {
    "UniqueID": "integer",
    "SalePrice": "numeric",
}


def load_file(
    source: str,
    database_url: str = DEFAULT_DATABASE_URL,
    table_name: str = DEFAULT_TABLE,
    column_types: Optional[Dict[str, str]] = None,
    sheet_name=0,
    if_exists: str = "replace"
) -> Dict:
    """
    Load a CSV/XLSX export into a table.

    Args:
        source: Path to the export
        database_url: SQLAlchemy URL of the target database
        table_name: Target table
        column_types: Column -> "integer" | "numeric" | "text"
        sheet_name: Sheet to read for XLSX sources
        if_exists: "replace" (default) or "append"

    Returns:
        Result dict with status and row counts
    """
    column_types = DEFAULT_COLUMN_TYPES if column_types is None else column_types

    df = FileConnector({"sheet_name": sheet_name}).read(source)
    rows_read = len(df)

    df = normalize_column_names(df)
    df = coerce_column_types(df, column_types)

    connector = SQLTableConnector({"url": database_url})
    connector.connect()
    try:
        rows_loaded = connector.write_table(df, table_name, if_exists=if_exists)
        row_count = connector.get_row_count(table_name)
    finally:
        connector.disconnect()

    logger.info(f"✓ Loaded {rows_loaded} rows into {table_name} (table now has {row_count} rows)")

    return {
        "status": "success",
        "source": str(source),
        "table": table_name,
        "rows_read": rows_read,
        "rows_loaded": rows_loaded,
        "table_row_count": row_count,
        "columns": list(df.columns)
    }


def test_connection(database_url: str = DEFAULT_DATABASE_URL, table_name: str = DEFAULT_TABLE) -> bool:
    """Test the database connection and report the table size."""
    print("=" * 60)
    print("TESTING CONNECTION")
    print("=" * 60)

    connector = SQLTableConnector({"url": database_url})
    try:
        connector.connect()
        if connector.table_exists(table_name):
            count = connector.get_row_count(table_name)
            distinct = connector.get_distinct_count(table_name, "UniqueID")
            print(f"\n✓ {table_name}: {count:,} rows, {distinct:,} distinct UniqueIDs")
        else:
            print(f"\n  Table {table_name} does not exist yet")
        return True
    except Exception as e:
        print(f"\n✗ Connection failed: {e}")
        return False
    finally:
        connector.disconnect()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Nashville Housing Ingestion")
    parser.add_argument("command", choices=["test", "load", "convert"], help="Command to run")
    parser.add_argument("source", nargs="?", help="Source file (load/convert)")
    parser.add_argument("target", nargs="?", help="Target CSV (convert)")
    parser.add_argument("--db", default=DEFAULT_DATABASE_URL, help="SQLAlchemy database URL")
    parser.add_argument("--table", default=DEFAULT_TABLE, help="Target table name")
    parser.add_argument("--sheet", default=0, help="Sheet name for XLSX sources")
    parser.add_argument("--append", action="store_true", help="Append instead of replacing the table")

    args = parser.parse_args()

    if args.command == "test":
        success = test_connection(args.db, args.table)
    elif args.command == "convert":
        if not args.source or not args.target:
            parser.error("convert needs a source XLSX and a target CSV")
        convert_xlsx_to_csv(args.source, args.target, args.sheet)
        success = True
    else:
        if not args.source:
            parser.error("load needs a source file")
        try:
            result = load_file(
                args.source,
                database_url=args.db,
                table_name=args.table,
                sheet_name=args.sheet,
                if_exists="append" if args.append else "replace"
            )
            print(json.dumps(result, indent=2, default=str))
            success = True
        except Exception as e:
            logger.exception(f"Load failed: {e}")
            success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
