import pandas as pd
import pytest

from ingestion.connectors.file_connector import coerce_column_types

FOX_1808 = "1808  FOX CHASE DR, GOODLETTSVILLE"
FOX_1832 = "1832  FOX CHASE DR, GOODLETTSVILLE"
FOX_1833 = "1833  FOX CHASE DR, GOODLETTSVILLE"


@pytest.fixture
def raw_housing_df():
    """A raw export as read from CSV: every value is text."""
    rows = [
        # UniqueID, ParcelID, PropertyAddress, SaleDate, SalePrice, LegalReference, SoldAsVacant, OwnerAddress
        ("1", "007 00 0 125.00", FOX_1808, "April 9, 2013", "240,000", "20130412-0036474", "No",
         "1808  FOX CHASE DR, GOODLETTSVILLE, TN"),
        ("2", "007 00 0 130.00", FOX_1832, "June 10, 2014", "366000", "20140619-0053768", "N",
         "1832  FOX CHASE DR, GOODLETTSVILLE, TN"),
        ("3", "007 00 0 130.00", None, "2014-09-26", "435000", "20140926-0088708", "Y", None),
        ("4", "007 00 0 138.00", FOX_1833, "not a date", "255000", "20140626-0055793", "Yes",
         "1833  FOX CHASE DR"),
        ("5", "007 00 0 138.00", FOX_1833, "2014-06-26", "255000", "20140626-0055793", "No",
         "1833  FOX CHASE DR, GOODLETTSVILLE, TN"),
        ("6", "025 07 0 031.00", None, "January 24, 2013", "149000", "20130128-0008725", "No", None),
        ("7", "007 00 0 138.00", FOX_1833, "2014-06-26", "255000", "20140626-0055793", "No",
         "1833  FOX CHASE DR, GOODLETTSVILLE, TN"),
        ("8", "091 04 0 120.00", "100  MAIN ST, NASHVILLE", "2015-01-01", "100000", "20150105-0001111", "Y", None),
        ("8", "091 04 0 120.00", "100  MAIN ST, NASHVILLE", "2015-01-02", "100000", "20150105-0002222", "N", None),
    ]
    columns = [
        "UniqueID", "ParcelID", "PropertyAddress", "SaleDate", "SalePrice",
        "LegalReference", "SoldAsVacant", "OwnerAddress",
    ]
    return pd.DataFrame(rows, columns=columns)


@pytest.fixture
def typed_housing_df(raw_housing_df):
    return coerce_column_types(raw_housing_df, {"UniqueID": "integer", "SalePrice": "numeric"})


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'housing.db'}"
