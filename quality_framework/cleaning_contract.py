"""
Cleaning Contract (Soft Contract)
=================================

Checks the invariants the cleaning pipeline is expected to establish on
the housing table. This is a SOFT contract - failed checks are reported
and logged, the pipeline continues.

Checks:
- unique_id_is_unique: COUNT(*) == COUNT(DISTINCT UniqueID)
- sale_date_is_valid: every non-null SaleDate is a valid date
- property_address_filled: no null address where a parcel sibling has one
- sold_as_vacant_domain: SoldAsVacant only holds Yes / No (or null)
- derived_columns_present: the split address columns exist
"""

import logging
from typing import Dict, List

import pandas as pd

from processing.common_code.cleaning.transforms import (
    DERIVED_COLUMNS,
    PARCEL_ID,
    PROPERTY_ADDRESS,
    SALE_DATE,
    SOLD_AS_VACANT,
    UNIQUE_ID,
    find_address_donors,
    find_unfillable_parcels,
)
from processing.common_code.utils import try_cast_date

logger = logging.getLogger(__name__)

VALID_SOLD_AS_VACANT = ("Yes", "No")


class CleaningContract:
    """
    Soft contract over the cleaned housing table.
    """

    def validate(self, df: pd.DataFrame, table_name: str = "NashvilleHousing") -> Dict:
        """
        Run every check against a DataFrame.

        Returns:
            Dict with `passed` (all checks passed) and per-check results
        """
        checks = [
            self.check_unique_ids(df),
            self.check_sale_dates(df),
            self.check_property_addresses(df),
            self.check_sold_as_vacant(df),
            self.check_derived_columns(df),
        ]

        for check in checks:
            if not check["passed"]:
                logger.warning(f"  ⚠️  {table_name}: {check['check']} failed - {check['message']}")

        return {
            "table_name": table_name,
            "passed": all(c["passed"] for c in checks),
            "checks": checks
        }

    @staticmethod
    def _result(name: str, passed: bool, message: str, **details) -> Dict:
        return {"check": name, "passed": passed, "message": message, "details": details}

    def check_unique_ids(self, df: pd.DataFrame) -> Dict:
        if UNIQUE_ID not in df.columns:
            return self._result("unique_id_is_unique", False, f"{UNIQUE_ID} column missing")

        total = len(df)
        distinct = int(df[UNIQUE_ID].nunique())
        return self._result(
            "unique_id_is_unique",
            total == distinct,
            f"{total} rows, {distinct} distinct {UNIQUE_ID}s",
            row_count=total,
            distinct_count=distinct
        )

    def check_sale_dates(self, df: pd.DataFrame) -> Dict:
        if SALE_DATE not in df.columns:
            return self._result("sale_date_is_valid", False, f"{SALE_DATE} column missing")

        non_null = df[SALE_DATE].dropna()
        invalid = int(non_null.map(try_cast_date).isna().sum())
        return self._result(
            "sale_date_is_valid",
            invalid == 0,
            f"{invalid} non-null values are not valid dates",
            invalid_count=invalid,
            null_count=int(df[SALE_DATE].isna().sum())
        )

    def check_property_addresses(self, df: pd.DataFrame) -> Dict:
        if any(c not in df.columns for c in (UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS)):
            return self._result(
                "property_address_filled", False, f"{UNIQUE_ID}, {PARCEL_ID} and {PROPERTY_ADDRESS} are required"
            )

        # Any null address that still has a same-parcel donor was missed
        remaining = len(find_address_donors(df).drop_duplicates(subset=[UNIQUE_ID, PARCEL_ID]))
        return self._result(
            "property_address_filled",
            remaining == 0,
            f"{remaining} null addresses could be filled from a sibling row",
            null_count=int(df[PROPERTY_ADDRESS].isna().sum()),
            unfillable_parcels=len(find_unfillable_parcels(df))
        )

    def check_sold_as_vacant(self, df: pd.DataFrame) -> Dict:
        if SOLD_AS_VACANT not in df.columns:
            return self._result("sold_as_vacant_domain", False, f"{SOLD_AS_VACANT} column missing")

        values = df[SOLD_AS_VACANT].dropna()
        outside: List = sorted(str(v) for v in values[~values.isin(VALID_SOLD_AS_VACANT)].unique())
        return self._result(
            "sold_as_vacant_domain",
            not outside,
            f"values outside {VALID_SOLD_AS_VACANT}: {outside}" if outside else "all values in domain",
            unexpected_values=outside
        )

    def check_derived_columns(self, df: pd.DataFrame) -> Dict:
        missing = [c for c in DERIVED_COLUMNS if c not in df.columns]
        return self._result(
            "derived_columns_present",
            not missing,
            f"missing derived columns: {missing}" if missing else "all derived columns present",
            missing_columns=missing
        )
