"""
Housing Table Transforms
========================

Pure DataFrame transforms for the Nashville housing sales table.

Every transform takes the table as an explicit DataFrame and returns a
new frame; the input is never modified. The stages are meant to run in
the order they appear here:

1. deduplicate_unique_ids      - remove rows whose UniqueID is repeated
2. normalize_sale_date         - trial-cast SaleDate, failures become NaT
3. populate_property_address   - fill null addresses from parcel siblings
4. split_addresses             - street / city / state derived columns
5. normalize_sold_as_vacant    - Y/N -> Yes/No
6. rank_duplicate_rows         - ROW_NUMBER() over the business key
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from processing.common_code.utils import split_part, try_cast_date

logger = logging.getLogger(__name__)

UNIQUE_ID = "UniqueID"
PARCEL_ID = "ParcelID"
PROPERTY_ADDRESS = "PropertyAddress"
SALE_DATE = "SaleDate"
SALE_PRICE = "SalePrice"
SOLD_AS_VACANT = "SoldAsVacant"
OWNER_ADDRESS = "OwnerAddress"
LEGAL_REFERENCE = "LegalReference"

# Columns that identify a single sale transaction
BUSINESS_KEY = [PARCEL_ID, PROPERTY_ADDRESS, SALE_PRICE, SALE_DATE, LEGAL_REFERENCE]

PROPERTY_SPLIT_COLUMNS = ["Property_Address", "Property_City"]
OWNER_SPLIT_COLUMNS = ["Owner_Address", "Owner_City", "Owner_State"]
DERIVED_COLUMNS = PROPERTY_SPLIT_COLUMNS + OWNER_SPLIT_COLUMNS

SOLD_AS_VACANT_MAP = {"N": "No", "Y": "Yes"}

DEDUP_POLICIES = ("drop_all", "keep_first")
DONOR_TIE_BREAKS = ("any", "lowest_unique_id")

RANK_COLUMN = "rn"


def unique_id_order(ids: pd.Series) -> pd.Series:
    """
    Sort key for "ascending UniqueID" whatever the ids are stored as.

    Text ids compare as numbers ("9" before "10"). Values that are not
    numeric sort last, in table order.
    """
    return pd.to_numeric(ids, errors="coerce")


def require_columns(df: pd.DataFrame, columns: Sequence[str], stage: str):
    """Raise ValueError naming every column the stage needs but the table lacks."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{stage}: missing required columns: {missing}")


# =============================================================
# Deduplication by UniqueID
# =============================================================

def find_duplicate_unique_ids(df: pd.DataFrame) -> pd.DataFrame:
    """Rows whose UniqueID occurs more than once."""
    require_columns(df, [UNIQUE_ID], "find_duplicate_unique_ids")
    mask = df[UNIQUE_ID].notna() & df[UNIQUE_ID].duplicated(keep=False)
    return df[mask].copy()


def deduplicate_unique_ids(df: pd.DataFrame, policy: str = "drop_all") -> pd.DataFrame:
    """
    Make UniqueID a real key.

    Args:
        df: Housing table
        policy: "drop_all" removes every row of a repeated UniqueID (they are
            treated as wrong entries); "keep_first" keeps the first row in
            table order.

    Returns:
        Frame where COUNT(*) == COUNT(DISTINCT UniqueID)
    """
    if policy not in DEDUP_POLICIES:
        raise ValueError(f"Unknown dedup policy '{policy}', expected one of {DEDUP_POLICIES}")
    require_columns(df, [UNIQUE_ID], "deduplicate_unique_ids")

    # A row without an id cannot satisfy the key
    no_id = df[UNIQUE_ID].isna()
    if no_id.any():
        logger.warning(f"  Dropping {int(no_id.sum())} rows without a {UNIQUE_ID}")

    keyed = df[~no_id]
    if policy == "drop_all":
        duplicated = keyed[UNIQUE_ID].duplicated(keep=False)
    else:
        duplicated = keyed[UNIQUE_ID].duplicated(keep="first")

    return keyed[~duplicated].copy()


# =============================================================
# SaleDate normalization
# =============================================================

def find_unconvertible_dates(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with a non-null SaleDate that fails the trial cast."""
    require_columns(df, [SALE_DATE], "find_unconvertible_dates")
    cast = df[SALE_DATE].map(try_cast_date)
    return df[df[SALE_DATE].notna() & cast.isna()].copy()


def normalize_sale_date(df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert SaleDate to datetime64, best effort.

    Each value is probed with a non-throwing cast first, so a single
    malformed row becomes NaT instead of failing the whole column.
    """
    require_columns(df, [SALE_DATE], "normalize_sale_date")
    out = df.copy()
    out[SALE_DATE] = pd.to_datetime(df[SALE_DATE].map(try_cast_date))
    return out


# =============================================================
# PropertyAddress gap filling
# =============================================================

def _address_candidates(df: pd.DataFrame) -> pd.DataFrame:
    """
    Self-join of null-address rows with same-parcel donors.

    One row per (recipient, donor) pair. `_recipient_pos` and `_donor_pos`
    are row positions, so repeated index labels are fine.
    """
    require_columns(df, [UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS], "populate_property_address")

    keys = df[[UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS]].reset_index(drop=True)
    keys["_recipient_pos"] = range(len(keys))
    keys["_donor_pos"] = range(len(keys))
    keys["_donor_order"] = unique_id_order(keys[UNIQUE_ID])

    # NULL never equals NULL in a join
    has_parcel = keys[PARCEL_ID].notna()
    recipients = keys[has_parcel & keys[PROPERTY_ADDRESS].isna()]
    donors = keys[has_parcel & keys[PROPERTY_ADDRESS].notna()]

    pairs = recipients[["_recipient_pos", UNIQUE_ID, PARCEL_ID]].merge(
        donors[[UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS, "_donor_pos", "_donor_order"]],
        on=PARCEL_ID,
        suffixes=("", "_donor"),
    )

    donor_uid = f"{UNIQUE_ID}_donor"
    distinct = (
        pairs[UNIQUE_ID].notna()
        & pairs[donor_uid].notna()
        & (pairs[UNIQUE_ID] != pairs[donor_uid])
    )
    return pairs[distinct]


def find_address_donors(df: pd.DataFrame) -> pd.DataFrame:
    """
    Null-address rows paired with every sibling that could fill them.

    Returns:
        DataFrame with UniqueID, ParcelID, DonorUniqueID, DonorPropertyAddress
    """
    pairs = _address_candidates(df)
    return pairs.rename(columns={
        f"{UNIQUE_ID}_donor": "DonorUniqueID",
        PROPERTY_ADDRESS: "DonorPropertyAddress",
    })[[UNIQUE_ID, PARCEL_ID, "DonorUniqueID", "DonorPropertyAddress"]].reset_index(drop=True)


def find_unfillable_parcels(df: pd.DataFrame) -> List:
    """
    Parcels with a null address that no sibling row can fill.

    An empty result means every null address has at least one donor.
    """
    require_columns(df, [PARCEL_ID, PROPERTY_ADDRESS], "find_unfillable_parcels")
    missing = df.loc[df[PROPERTY_ADDRESS].isna(), PARCEL_ID].dropna().unique()
    fillable = set(_address_candidates(df)[PARCEL_ID].unique())
    return [parcel for parcel in missing if parcel not in fillable]


def populate_property_address(df: pd.DataFrame, tie_break: str = "any") -> pd.DataFrame:
    """
    Fill null PropertyAddress values from rows sharing the ParcelID.

    Existing addresses are never overwritten. When a parcel has several
    donors with different addresses the pick depends on `tie_break`:

    - "any": first donor in table order (no ordering guarantee is implied)
    - "lowest_unique_id": donor with the lowest UniqueID, compared as numbers
    """
    if tie_break not in DONOR_TIE_BREAKS:
        raise ValueError(f"Unknown donor tie-break '{tie_break}', expected one of {DONOR_TIE_BREAKS}")

    pairs = _address_candidates(df)
    out = df.copy()
    if pairs.empty:
        return out

    order = ["_donor_pos"] if tie_break == "any" else ["_donor_order", "_donor_pos"]
    chosen = (
        pairs.sort_values(["_recipient_pos"] + order, kind="mergesort", na_position="last")
        .drop_duplicates(subset="_recipient_pos", keep="first")
    )

    column = out.columns.get_loc(PROPERTY_ADDRESS)
    out.iloc[chosen["_recipient_pos"].to_numpy(), column] = chosen[PROPERTY_ADDRESS].to_numpy()
    return out


# =============================================================
# Address splitting
# =============================================================

def split_addresses(df: pd.DataFrame, delimiter: str = ",") -> pd.DataFrame:
    """
    Append street / city / state columns split from the composite addresses.

    PropertyAddress -> Property_Address, Property_City
    OwnerAddress    -> Owner_Address, Owner_City, Owner_State

    Missing segments become "", null sources stay null.
    """
    require_columns(df, [PROPERTY_ADDRESS, OWNER_ADDRESS], "split_addresses")
    out = df.copy()

    for position, column in enumerate(PROPERTY_SPLIT_COLUMNS, start=1):
        out[column] = df[PROPERTY_ADDRESS].map(lambda v, p=position: split_part(v, delimiter, p))

    for position, column in enumerate(OWNER_SPLIT_COLUMNS, start=1):
        out[column] = df[OWNER_ADDRESS].map(lambda v, p=position: split_part(v, delimiter, p))

    return out


# =============================================================
# SoldAsVacant
# =============================================================

def sold_as_vacant_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Distinct SoldAsVacant values with their counts, least frequent first."""
    require_columns(df, [SOLD_AS_VACANT], "sold_as_vacant_counts")
    counts = df[SOLD_AS_VACANT].value_counts().sort_values(kind="mergesort")
    return counts.rename_axis(SOLD_AS_VACANT).reset_index(name="countNY")


def normalize_sold_as_vacant(df: pd.DataFrame) -> pd.DataFrame:
    """Map "N" -> "No" and "Y" -> "Yes"; every other value is left as is."""
    require_columns(df, [SOLD_AS_VACANT], "normalize_sold_as_vacant")
    out = df.copy()
    out[SOLD_AS_VACANT] = df[SOLD_AS_VACANT].map(
        lambda v: SOLD_AS_VACANT_MAP.get(v, v) if isinstance(v, str) else v
    )
    return out


# =============================================================
# Business-key duplicate detection
# =============================================================

def rank_duplicate_rows(
    df: pd.DataFrame,
    key_columns: Optional[Sequence[str]] = None,
    rank_column: str = RANK_COLUMN
) -> pd.DataFrame:
    """
    ROW_NUMBER() OVER (PARTITION BY key ORDER BY UniqueID).

    Rows sharing the business key are numbered from 1 by ascending
    UniqueID (compared as numbers, see unique_id_order); rank 1 is the
    canonical row. Nulls in key columns partition together.
    """
    key_columns = list(key_columns or BUSINESS_KEY)
    require_columns(df, key_columns + [UNIQUE_ID], "rank_duplicate_rows")

    positional = df[key_columns + [UNIQUE_ID]].reset_index(drop=True)
    positional["_order"] = unique_id_order(positional[UNIQUE_ID])
    ordered = positional.sort_values("_order", kind="mergesort", na_position="last")
    ranks = ordered.groupby(key_columns, dropna=False, sort=False).cumcount() + 1

    out = df.copy()
    out[rank_column] = ranks.sort_index().to_numpy()
    return out


def find_duplicate_rows(df: pd.DataFrame, key_columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Rows ranked above 1 within their business key, i.e. the duplicates."""
    ranked = rank_duplicate_rows(df, key_columns)
    return ranked[ranked[RANK_COLUMN] > 1].copy()


def duplicate_group_counts(df: pd.DataFrame, key_columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Business keys occurring more than once, with DuplicateCount, largest first."""
    key_columns = list(key_columns or BUSINESS_KEY)
    require_columns(df, key_columns, "duplicate_group_counts")

    counts = df.groupby(key_columns, dropna=False).size().reset_index(name="DuplicateCount")
    counts = counts[counts["DuplicateCount"] > 1]
    return counts.sort_values("DuplicateCount", ascending=False, kind="mergesort").reset_index(drop=True)


def drop_duplicate_rows(df: pd.DataFrame, key_columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Keep only the canonical (rank 1) row of each business key.

    Returns a new frame; the table itself keeps its duplicates.
    """
    ranked = rank_duplicate_rows(df, key_columns)
    return ranked[ranked[RANK_COLUMN] == 1].drop(columns=[RANK_COLUMN])
