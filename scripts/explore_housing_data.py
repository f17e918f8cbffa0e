#!/usr/bin/env python3
"""
Housing Data Exploration
========================
Read-only report on the housing table: the checks to look at before
(and after) running the cleaning job. Nothing is modified.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ingestion.connectors.sql_connector import SQLTableConnector
from processing.common_code.cleaning.transforms import (
    BUSINESS_KEY,
    PROPERTY_ADDRESS,
    UNIQUE_ID,
    find_address_donors,
    find_duplicate_rows,
    find_duplicate_unique_ids,
    find_unconvertible_dates,
    find_unfillable_parcels,
    sold_as_vacant_counts,
)


def log(message, level="INFO"):
    """Structured logging."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] [{level}] {message}")


def section(title):
    """Print section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def explore(database_url: str, table_name: str) -> Dict:
    """Print the exploration report and return its figures."""
    connector = SQLTableConnector({"url": database_url})
    connector.connect()
    try:
        df = connector.read_table(table_name)
    finally:
        connector.disconnect()

    report = {"rows": len(df)}

    section("1. DUPLICATE UNIQUEIDS")
    report["distinct_unique_ids"] = int(df[UNIQUE_ID].nunique())
    report["duplicate_id_rows"] = len(find_duplicate_unique_ids(df))
    log(f"Rows: {report['rows']:,}, distinct {UNIQUE_ID}s: {report['distinct_unique_ids']:,}")
    level = "WARN" if report["duplicate_id_rows"] else "OK"
    log(f"Rows sharing a {UNIQUE_ID}: {report['duplicate_id_rows']:,}", level)

    section("2. SALEDATE CONVERTIBILITY")
    report["unconvertible_dates"] = len(find_unconvertible_dates(df))
    level = "WARN" if report["unconvertible_dates"] else "OK"
    log(f"Values that cannot be cast to a date: {report['unconvertible_dates']:,}", level)

    section("3. MISSING PROPERTY ADDRESSES")
    report["null_addresses"] = int(df[PROPERTY_ADDRESS].isna().sum())
    donors = find_address_donors(df)
    unfillable = find_unfillable_parcels(df)
    report["donor_pairs"] = len(donors)
    report["unfillable_parcels"] = len(unfillable)
    log(f"Null addresses: {report['null_addresses']:,}")
    log(f"Null-address rows x same-parcel donors: {report['donor_pairs']:,}")
    if unfillable:
        log(f"Parcels nobody can fill: {unfillable[:10]}", "WARN")
    else:
        log("Every null address has a same-parcel donor", "OK")

    section("4. SOLDASVACANT VALUES")
    counts = sold_as_vacant_counts(df)
    for value, count in zip(counts.iloc[:, 0], counts["countNY"]):
        log(f"{value!s:>5}: {count:,}")

    section("5. BUSINESS-KEY DUPLICATES")
    for column in BUSINESS_KEY:
        log(f"COUNT(DISTINCT {column}): {df[column].nunique():,}")
    report["duplicate_rows"] = len(find_duplicate_rows(df))
    log(f"Rows with rn > 1: {report['duplicate_rows']:,}")

    return report


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Housing table exploration report")
    parser.add_argument("--db", default="sqlite:///nashville_housing.db", help="SQLAlchemy database URL")
    parser.add_argument("--table", default="NashvilleHousing", help="Table name")
    args = parser.parse_args()

    try:
        explore(args.db, args.table)
    except Exception as e:
        log(f"Exploration failed: {e}", "ERROR")
        sys.exit(1)


if __name__ == "__main__":
    main()
