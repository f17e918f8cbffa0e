#!/usr/bin/env python3
"""
Housing Table Cleaning Job (Raw Table -> Cleaned Table)
=======================================================

Reads the raw housing table, runs the cleaning stages in order and
rebuilds the table with the cleaned rows.

Core Logic:
1. Read the table and re-apply the configured column types
2. Delete rows with repeated UniqueIDs
3. Normalize SaleDate (unparsable values -> NULL)
4. Populate null PropertyAddress from same-parcel rows
5. Split PropertyAddress / OwnerAddress into street, city, state
6. Normalize SoldAsVacant (Y/N -> Yes/No)
7. Detect business-key duplicates (reported, not deleted)
8. Check the cleaning contract, rebuild the table, write reports
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from ingestion.connectors.file_connector import coerce_column_types
from ingestion.connectors.sql_connector import SQLTableConnector
from processing.common_code.cleaning.transforms import (
    BUSINESS_KEY,
    DEDUP_POLICIES,
    DONOR_TIE_BREAKS,
    PROPERTY_ADDRESS,
    SALE_DATE,
    SOLD_AS_VACANT,
    deduplicate_unique_ids,
    drop_duplicate_rows,
    duplicate_group_counts,
    find_duplicate_rows,
    find_duplicate_unique_ids,
    find_unconvertible_dates,
    find_unfillable_parcels,
    normalize_sale_date,
    normalize_sold_as_vacant,
    populate_property_address,
    sold_as_vacant_counts,
    split_addresses,
)
from processing.common_code.utils import generate_batch_id, read_config
from quality_framework.cleaning_contract import CleaningContract
from quality_framework.dimension_metrics import DimensionMetrics

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "configs" / "nashville_housing.json"
REPORT_FORMATS = ("csv", "parquet")


def validate_config(config: Dict) -> Dict:
    """
    Check option values up front so a typo fails before any stage runs.

    Returns:
        The config, unchanged
    """
    if not config.get("table_name"):
        raise ValueError("Config must name a table_name")

    policy = config.get("dedup", {}).get("policy", "drop_all")
    if policy not in DEDUP_POLICIES:
        raise ValueError(f"Unknown dedup policy '{policy}', expected one of {DEDUP_POLICIES}")

    tie_break = config.get("address_fill", {}).get("tie_break", "any")
    if tie_break not in DONOR_TIE_BREAKS:
        raise ValueError(f"Unknown donor tie-break '{tie_break}', expected one of {DONOR_TIE_BREAKS}")

    report = config.get("output", {}).get("duplicates_report") or {}
    if report and report.get("format", "csv") not in REPORT_FORMATS:
        raise ValueError(f"Unknown report format '{report.get('format')}', expected one of {REPORT_FORMATS}")

    return config


def merge_config(base: Dict, overrides: Optional[Dict]) -> Dict:
    """
    Overlay `overrides` onto a config; nested sections merge key by key.

    Returns:
        A new dict, `base` is left unchanged
    """
    merged = dict(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def _count_changed(before: pd.Series, after: pd.Series) -> int:
    """Values that differ between two aligned columns (null == null)."""
    both_null = before.isna() & after.isna()
    return int((~both_null & (before.astype(object) != after.astype(object))).sum())


def clean_frame(df: pd.DataFrame, config: Dict) -> Tuple[pd.DataFrame, List[Dict]]:
    """
    Run the cleaning stages on an in-memory table.

    Args:
        df: Raw housing table
        config: Cleaning config (see configs/nashville_housing.json)

    Returns:
        (cleaned frame, per-stage stats)
    """
    stats: List[Dict] = []

    def run_stage(name: str, func: Callable[[pd.DataFrame], pd.DataFrame], frame: pd.DataFrame,
                  column: Optional[str] = None, **details) -> pd.DataFrame:
        result = func(frame)
        entry = {
            "stage": name,
            "rows_before": len(frame),
            "rows_after": len(result),
        }
        if column is not None:
            entry["values_changed"] = _count_changed(frame[column], result[column])
        entry.update(details)
        stats.append(entry)
        logger.info(f"  {name}: {entry['rows_before']} -> {entry['rows_after']} rows"
                    + (f", {entry['values_changed']} values changed" if column else ""))
        return result

    policy = config.get("dedup", {}).get("policy", "drop_all")
    tie_break = config.get("address_fill", {}).get("tie_break", "any")
    delimiter = config.get("address_split", {}).get("delimiter", ",")
    key_columns = config.get("duplicate_detection", {}).get("key_columns", BUSINESS_KEY)

    # 1. UniqueID duplicates
    duplicate_ids = find_duplicate_unique_ids(df)
    df = run_stage(
        "deduplicate_unique_ids",
        lambda f: deduplicate_unique_ids(f, policy),
        df,
        policy=policy,
        duplicate_id_rows=len(duplicate_ids)
    )

    # 2. SaleDate
    unconvertible = find_unconvertible_dates(df)
    df = run_stage(
        "normalize_sale_date",
        normalize_sale_date,
        df,
        unconvertible_dates=len(unconvertible)
    )
    if len(unconvertible):
        logger.warning(f"  {len(unconvertible)} {SALE_DATE} values could not be converted, set to NULL")

    # 3. PropertyAddress gap filling
    unfillable = find_unfillable_parcels(df)
    df = run_stage(
        "populate_property_address",
        lambda f: populate_property_address(f, tie_break),
        df,
        column=PROPERTY_ADDRESS,
        tie_break=tie_break,
        unfillable_parcels=len(unfillable)
    )

    # 4. Address splitting
    df = run_stage("split_addresses", lambda f: split_addresses(f, delimiter), df)

    # 5. SoldAsVacant
    counts = sold_as_vacant_counts(df)
    df = run_stage(
        "normalize_sold_as_vacant",
        normalize_sold_as_vacant,
        df,
        column=SOLD_AS_VACANT,
        value_counts_before={str(k): int(v) for k, v in zip(counts[SOLD_AS_VACANT], counts["countNY"])}
    )

    # 6. Business-key duplicates: reported only
    duplicates = find_duplicate_rows(df, key_columns)
    stats.append({
        "stage": "detect_duplicate_rows",
        "rows_before": len(df),
        "rows_after": len(df),
        "duplicate_rows": len(duplicates),
        "key_columns": list(key_columns)
    })
    logger.info(f"  detect_duplicate_rows: {len(duplicates)} duplicate transactions (kept in table)")

    return df, stats


class HousingDataCleaner:
    """Cleaning processor for the housing table."""

    def __init__(self, config: Dict, connector: SQLTableConnector):
        self.config = validate_config(config)
        self.connector = connector
        self.batch_id = generate_batch_id()
        self.contract = CleaningContract()
        self.metrics = DimensionMetrics()

    def run(self) -> Dict:
        """Execute the cleaning pipeline."""

        table_name = self.config["table_name"]
        output = self.config.get("output", {})
        key_columns = self.config.get("duplicate_detection", {}).get("key_columns", BUSINESS_KEY)
        logger.info(f"Starting cleaning: {table_name}")

        # 1. Load
        raw = self.connector.read_table(table_name)
        if raw.empty:
            logger.warning("No data found")
            return {"status": "empty", "table": table_name, "rows": 0}

        rows_loaded = len(raw)
        raw = coerce_column_types(raw, self.config.get("column_types", {}))

        # 2. Stages
        cleaned, stages = clean_frame(raw, self.config)

        # 3. Contract and metrics
        contract = self.contract.validate(cleaned, table_name)
        comparison = self.metrics.compare_stages(raw, cleaned, table_name)
        quality = {
            stage: self.metrics.calculate_all_dimensions(frame, table_name, stage)["overall_quality_score"]
            for stage, frame in (("raw", raw), ("cleaned", cleaned))
        }

        # 4. Rebuild the table
        if output.get("write_back", True):
            self.connector.replace_table(cleaned, table_name)

        # 5. Optional deduplicated copy and duplicates report
        deduplicated_table = output.get("deduplicated_table")
        if deduplicated_table:
            self.connector.replace_table(drop_duplicate_rows(cleaned, key_columns), deduplicated_table)

        report_path = self._write_duplicates_report(cleaned, key_columns)

        logger.info(f"✓ Complete: {len(cleaned)} rows written to {table_name}")

        return {
            "status": "success",
            "table": table_name,
            "batch_id": self.batch_id,
            "rows_loaded": rows_loaded,
            "rows_written": len(cleaned),
            "stages": stages,
            "duplicate_groups": len(duplicate_group_counts(cleaned, key_columns)),
            "contract": contract,
            "consistency": comparison["consistency"],
            "quality_scores": quality,
            "deduplicated_table": deduplicated_table,
            "duplicates_report": report_path
        }

    def _write_duplicates_report(self, df: pd.DataFrame, key_columns) -> Optional[str]:
        """Write the rank > 1 rows to CSV or Parquet, if configured."""
        report = self.config.get("output", {}).get("duplicates_report")
        if not report:
            return None

        duplicates = find_duplicate_rows(df, key_columns)
        path = Path(report["path"].format(batch_id=self.batch_id))
        path.parent.mkdir(parents=True, exist_ok=True)

        if report.get("format", "csv") == "parquet":
            duplicates.to_parquet(path, index=False, engine='pyarrow')
        else:
            duplicates.to_csv(path, index=False)

        logger.info(f"  Duplicates report: {len(duplicates)} rows -> {path}")
        return str(path)


def run_cleaning(
    config_path: Optional[str] = None,
    database_url: str = "sqlite:///nashville_housing.db",
    overrides: Optional[Dict] = None
) -> Dict:
    """
    Run the cleaning job for the configured table.

    `overrides` are merged into the config file (see merge_config).
    Failures are logged and returned as {"status": "failed", ...}.
    """
    config = merge_config(read_config(str(config_path or DEFAULT_CONFIG_PATH)), overrides)

    connector = SQLTableConnector({"url": database_url})
    started = datetime.now()
    try:
        connector.connect()
        result = HousingDataCleaner(config, connector).run()
    except Exception as e:
        logger.exception(f"Cleaning failed: {e}")
        result = {"status": "failed", "table": config.get("table_name"), "error": str(e)}
    finally:
        connector.disconnect()

    result["duration_seconds"] = (datetime.now() - started).total_seconds()
    return result


if __name__ == "__main__":
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Housing Table Cleaning Job")
    parser.add_argument("--config", help="Cleaning config path")
    parser.add_argument("--db", default="sqlite:///nashville_housing.db", help="SQLAlchemy database URL")
    parser.add_argument("--tie-break", choices=DONOR_TIE_BREAKS, help="Donor pick for address filling")

    args = parser.parse_args()

    overrides = {"address_fill": {"tie_break": args.tie_break}} if args.tie_break else None
    result = run_cleaning(args.config, args.db, overrides)
    print(json.dumps(result, indent=2, default=str))
