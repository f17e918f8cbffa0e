import json

import pandas as pd
import pytest

from ingestion.connectors.sql_connector import SQLTableConnector
from ingestion.run_ingestion import load_file
from processing.common_code.cleaning.scripts.clean_housing_table import (
    DEFAULT_CONFIG_PATH,
    clean_frame,
    merge_config,
    run_cleaning,
    validate_config,
)
from processing.common_code.cleaning.transforms import DERIVED_COLUMNS
from processing.common_code.utils import read_config

from tests.conftest import FOX_1832


@pytest.fixture
def config():
    return read_config(str(DEFAULT_CONFIG_PATH))


@pytest.fixture
def source_csv(tmp_path, raw_housing_df):
    """The raw export with the stray header space the real file has."""
    path = tmp_path / "NashvilleHousingData.csv"
    raw_housing_df.rename(columns={"UniqueID": "UniqueID "}).to_csv(path, index=False)
    return path


def read_back(url, table_name):
    with SQLTableConnector({"url": url}) as connector:
        return connector.read_table(table_name)


# ---------------------------------------------------------------
# Config
# ---------------------------------------------------------------

def test_default_config_is_valid(config):
    assert validate_config(config) is config
    assert config["dedup"]["policy"] == "drop_all"
    assert config["address_fill"]["tie_break"] == "any"


@pytest.mark.parametrize("patch, message", [
    ({"table_name": ""}, "table_name"),
    ({"dedup": {"policy": "keep_last"}}, "dedup policy"),
    ({"address_fill": {"tie_break": "newest"}}, "tie-break"),
    ({"output": {"duplicates_report": {"path": "x", "format": "json"}}}, "report format"),
])
def test_validate_config_rejects_bad_options(config, patch, message):
    config.update(patch)
    with pytest.raises(ValueError, match=message):
        validate_config(config)


def test_merge_config_keeps_sibling_keys(config):
    config["address_fill"]["max_donors"] = 5
    merged = merge_config(config, {"address_fill": {"tie_break": "lowest_unique_id"}, "table_name": "Other"})

    assert merged["address_fill"] == {"tie_break": "lowest_unique_id", "max_donors": 5}
    assert merged["table_name"] == "Other"
    assert merged["output"] == config["output"]
    assert config["address_fill"]["tie_break"] == "any"


# ---------------------------------------------------------------
# In-memory stages
# ---------------------------------------------------------------

def test_clean_frame_runs_stages_in_order(typed_housing_df, config):
    cleaned, stats = clean_frame(typed_housing_df, config)

    assert [s["stage"] for s in stats] == [
        "deduplicate_unique_ids",
        "normalize_sale_date",
        "populate_property_address",
        "split_addresses",
        "normalize_sold_as_vacant",
        "detect_duplicate_rows",
    ]
    by_stage = {s["stage"]: s for s in stats}

    assert by_stage["deduplicate_unique_ids"]["rows_before"] == 9
    assert by_stage["deduplicate_unique_ids"]["rows_after"] == 7
    assert by_stage["deduplicate_unique_ids"]["duplicate_id_rows"] == 2
    assert by_stage["normalize_sale_date"]["unconvertible_dates"] == 1
    assert by_stage["populate_property_address"]["values_changed"] == 1
    assert by_stage["populate_property_address"]["unfillable_parcels"] == 1
    assert by_stage["normalize_sold_as_vacant"]["values_changed"] == 2
    assert by_stage["detect_duplicate_rows"]["duplicate_rows"] == 1
    assert by_stage["detect_duplicate_rows"]["rows_after"] == 7

    assert len(cleaned) == 7
    assert cleaned["UniqueID"].is_unique
    assert set(cleaned["SoldAsVacant"]) == {"Yes", "No"}
    assert all(c in cleaned.columns for c in DERIVED_COLUMNS)

    row3 = cleaned[cleaned["UniqueID"] == 3].iloc[0]
    assert row3["PropertyAddress"] == FOX_1832
    assert row3["Property_City"] == "GOODLETTSVILLE"


def test_clean_frame_keep_first_policy(typed_housing_df, config):
    config["dedup"] = {"policy": "keep_first"}
    cleaned, _ = clean_frame(typed_housing_df, config)

    assert len(cleaned) == 8
    kept = cleaned[cleaned["UniqueID"] == 8].iloc[0]
    assert kept["SaleDate"] == pd.Timestamp("2015-01-01")


# ---------------------------------------------------------------
# Against a database
# ---------------------------------------------------------------

def test_load_file_fixes_headers_and_types(source_csv, sqlite_url):
    result = load_file(str(source_csv), database_url=sqlite_url)

    assert result["status"] == "success"
    assert result["rows_read"] == 9
    assert result["table_row_count"] == 9
    assert "UniqueID" in result["columns"]

    table = read_back(sqlite_url, "NashvilleHousing")
    assert pd.api.types.is_integer_dtype(table["UniqueID"])
    assert table["SalePrice"].iloc[0] == 240000.0


def test_run_cleaning_end_to_end(source_csv, sqlite_url, tmp_path):
    load_file(str(source_csv), database_url=sqlite_url)
    report_path = tmp_path / "reports" / "duplicates_{batch_id}.csv"

    result = run_cleaning(
        database_url=sqlite_url,
        overrides={"output": {
            "write_back": True,
            "deduplicated_table": "temp_NashvilleHousing",
            "duplicates_report": {"path": str(report_path), "format": "csv"},
        }}
    )

    assert result["status"] == "success"
    assert result["rows_loaded"] == 9
    assert result["rows_written"] == 7
    assert result["duplicate_groups"] == 1
    assert result["contract"]["passed"]
    assert result["quality_scores"]["cleaned"] > 0
    json.dumps(result, default=str)

    cleaned = read_back(sqlite_url, "NashvilleHousing")
    assert len(cleaned) == 7
    assert all(c in cleaned.columns for c in DERIVED_COLUMNS)
    dates = pd.to_datetime(cleaned.set_index("UniqueID")["SaleDate"])
    assert dates.loc[1] == pd.Timestamp("2013-04-09")
    assert pd.isna(dates.loc[4])

    deduplicated = read_back(sqlite_url, "temp_NashvilleHousing")
    assert len(deduplicated) == 6
    assert 7 not in set(deduplicated["UniqueID"])

    report = pd.read_csv(result["duplicates_report"])
    assert list(report["UniqueID"]) == [7]
    assert list(report["rn"]) == [2]


def test_run_cleaning_parquet_report(source_csv, sqlite_url, tmp_path):
    load_file(str(source_csv), database_url=sqlite_url)
    report_path = tmp_path / "duplicates_{batch_id}.parquet"

    result = run_cleaning(
        database_url=sqlite_url,
        overrides={"output": {
            "write_back": False,
            "deduplicated_table": None,
            "duplicates_report": {"path": str(report_path), "format": "parquet"},
        }}
    )

    assert result["status"] == "success"
    assert result["deduplicated_table"] is None
    assert len(pd.read_parquet(result["duplicates_report"])) == 1
    # raw table untouched without write_back
    assert len(read_back(sqlite_url, "NashvilleHousing")) == 9


def test_run_cleaning_missing_table_fails(sqlite_url):
    result = run_cleaning(database_url=sqlite_url, overrides={"table_name": "NoSuchTable"})

    assert result["status"] == "failed"
    assert result["table"] == "NoSuchTable"
    assert result["error"]
    assert "duration_seconds" in result
