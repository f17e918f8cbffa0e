import pandas as pd
import pytest

from ingestion.connectors.file_connector import (
    FileConnector,
    coerce_column_types,
    convert_xlsx_to_csv,
    normalize_column_names,
)
from ingestion.connectors.sql_connector import SQLTableConnector


def test_file_connector_reads_csv_as_text(tmp_path):
    path = tmp_path / "housing.csv"
    path.write_text("UniqueID,SalePrice\n1,120000\n2,\n")

    df = FileConnector().read(path)

    assert list(df["UniqueID"]) == ["1", "2"]
    assert pd.isna(df["SalePrice"].iloc[1])


def test_file_connector_rejects_unknown_suffix(tmp_path):
    with pytest.raises(ValueError, match="Unsupported"):
        FileConnector().read(tmp_path / "housing.json")


def test_convert_xlsx_to_csv(tmp_path):
    source = tmp_path / "housing.xlsx"
    target = tmp_path / "housing.csv"
    pd.DataFrame({"UniqueID": [1, 2], "ParcelID": ["A", "B"]}).to_excel(source, index=False)

    assert convert_xlsx_to_csv(source, target) == 2
    assert list(pd.read_csv(target)["ParcelID"]) == ["A", "B"]
    assert len(FileConnector().read(source)) == 2


def test_normalize_column_names():
    df = pd.DataFrame({"UniqueID ": [1], " ParcelID": ["A"], "SaleDate": ["x"]})
    assert list(normalize_column_names(df).columns) == ["UniqueID", "ParcelID", "SaleDate"]


def test_coerce_column_types():
    df = pd.DataFrame({
        "UniqueID": ["1", "2", "x", None],
        "SalePrice": ["$120,000", "95000", "abc", None],
        "LegalReference": ["a", "b", "c", "d"],
    })
    out = coerce_column_types(df, {"UniqueID": "integer", "SalePrice": "numeric",
                                   "LegalReference": "text", "NotThere": "integer"})

    assert str(out["UniqueID"].dtype) == "Int64"
    assert list(out["UniqueID"].iloc[:2]) == [1, 2]
    assert out["UniqueID"].iloc[2:].isna().all()
    assert list(out["SalePrice"].iloc[:2]) == [120000.0, 95000.0]
    assert out["SalePrice"].iloc[2:].isna().all()
    assert list(out["LegalReference"]) == ["a", "b", "c", "d"]


def test_coerce_column_types_rejects_unknown_type():
    with pytest.raises(ValueError, match="Unknown column type"):
        coerce_column_types(pd.DataFrame({"a": ["1"]}), {"a": "decimal"})


def test_sql_connector_round_trip(sqlite_url):
    df = pd.DataFrame({
        "UniqueID": pd.array([1, 2, 2], dtype="Int64"),
        "SaleDate": pd.to_datetime(["2014-01-01", None, "2015-02-03"]),
    })

    with SQLTableConnector({"url": sqlite_url}) as connector:
        assert not connector.table_exists("NashvilleHousing")

        connector.write_table(df, "NashvilleHousing")
        assert connector.table_exists("NashvilleHousing")
        assert connector.get_row_count("NashvilleHousing") == 3
        assert connector.get_distinct_count("NashvilleHousing", "UniqueID") == 2

        connector.replace_table(df.iloc[:1], "NashvilleHousing")
        back = connector.read_table("NashvilleHousing")

    assert len(back) == 1
    assert back["SaleDate"].iloc[0] == pd.Timestamp("2014-01-01")
