"""
Dimension Metrics
=================

Quality dimension scores for the housing table, used to compare the raw
table with the cleaned one.

Dimensions:
- Completeness: % of non-null values
- Uniqueness: % of distinct values among non-null ones
- Validity: % of values matching the expected domain (SaleDate, SoldAsVacant)
"""

import logging
from datetime import datetime
from typing import Dict

import pandas as pd

from processing.common_code.utils import try_cast_date

logger = logging.getLogger(__name__)

VALID_SOLD_AS_VACANT = {"Yes", "No"}


class DimensionMetrics:
    """
    Calculates quality dimension metrics for a DataFrame.
    """

    def calculate_all_dimensions(
        self,
        df: pd.DataFrame,
        table_name: str,
        stage: str = "raw"
    ) -> Dict:
        """
        Calculate all quality dimension metrics for a DataFrame.

        Returns dict with dimension scores (0-100).
        """
        metrics = {
            "table_name": table_name,
            "stage": stage,
            "timestamp": datetime.now().isoformat(),
            "row_count": len(df),
            "column_count": len(df.columns),
            "dimensions": {}
        }

        metrics["dimensions"]["completeness"] = self._calculate_completeness(df)
        metrics["dimensions"]["uniqueness"] = self._calculate_uniqueness(df)
        metrics["dimensions"]["validity"] = self._calculate_validity(df)

        weights = {
            "completeness": 0.40,
            "uniqueness": 0.20,
            "validity": 0.40
        }

        overall = sum(
            metrics["dimensions"][dim]["score"] * weight
            for dim, weight in weights.items()
        )
        metrics["overall_quality_score"] = round(overall, 2)

        logger.info(
            f"Quality {table_name}/{stage}: overall={metrics['overall_quality_score']} "
            f"rows={metrics['row_count']}"
        )
        return metrics

    def _calculate_completeness(self, df: pd.DataFrame) -> Dict:
        """Calculate completeness (non-null rate) for each column."""
        total_cells = len(df) * len(df.columns)
        null_cells = int(df.isna().sum().sum())

        completeness = {
            "score": round((1 - null_cells / total_cells) * 100, 2) if total_cells > 0 else 100,
            "total_cells": total_cells,
            "null_cells": null_cells,
            "columns": {}
        }

        for col in df.columns:
            null_count = int(df[col].isna().sum())
            completeness["columns"][col] = {
                "null_count": null_count,
                "null_rate": round(null_count / len(df) * 100, 2) if len(df) > 0 else 0
            }

        return completeness

    def _calculate_uniqueness(self, df: pd.DataFrame) -> Dict:
        """Calculate uniqueness (distinct rate) for each column."""
        uniqueness = {"score": 100, "columns": {}}

        scores = []
        for col in df.columns:
            non_null = df[col].dropna()
            total = len(non_null)
            distinct = int(non_null.nunique())

            unique_rate = round(distinct / total * 100, 2) if total > 0 else 100
            scores.append(unique_rate)

            uniqueness["columns"][col] = {
                "total_values": total,
                "distinct_values": distinct,
                "duplicate_values": int(non_null.duplicated().sum()),
                "unique_rate": unique_rate
            }

        uniqueness["score"] = round(sum(scores) / len(scores), 2) if scores else 100
        return uniqueness

    def _calculate_validity(self, df: pd.DataFrame) -> Dict:
        """Share of non-null SaleDate / SoldAsVacant values inside their domain."""
        validity = {"score": 100, "columns": {}}

        checks = {
            "SaleDate": lambda s: s.map(try_cast_date).notna(),
            "SoldAsVacant": lambda s: s.isin(VALID_SOLD_AS_VACANT),
        }

        scores = []
        for col, check in checks.items():
            if col not in df.columns:
                continue
            non_null = df[col].dropna()
            if len(non_null) == 0:
                scores.append(100)
                validity["columns"][col] = {"valid_rate": 100, "invalid_count": 0}
                continue

            valid = int(check(non_null).sum())
            valid_rate = round(valid / len(non_null) * 100, 2)
            scores.append(valid_rate)
            validity["columns"][col] = {
                "valid_rate": valid_rate,
                "invalid_count": len(non_null) - valid
            }

        validity["score"] = round(sum(scores) / len(scores), 2) if scores else 100
        return validity

    def compare_stages(
        self,
        source_df: pd.DataFrame,
        target_df: pd.DataFrame,
        table_name: str,
        key_column: str = "UniqueID"
    ) -> Dict:
        """
        Compare two stages (e.g., raw vs cleaned).

        Returns consistency metrics showing how many rows and keys survived.
        """
        comparison = {
            "table_name": table_name,
            "timestamp": datetime.now().isoformat(),
            "source_rows": len(source_df),
            "target_rows": len(target_df),
            "row_difference": len(target_df) - len(source_df),
            "consistency": {}
        }

        row_retention = len(target_df) / len(source_df) * 100 if len(source_df) > 0 else 100
        comparison["consistency"]["row_retention_rate"] = round(row_retention, 2)

        source_cols = set(source_df.columns)
        target_cols = set(target_df.columns)
        comparison["consistency"]["column_mapping"] = {
            "source_columns": len(source_cols),
            "target_columns": len(target_cols),
            "new_columns": sorted(target_cols - source_cols)
        }

        if key_column in source_df.columns and key_column in target_df.columns:
            source_keys = set(source_df[key_column].dropna().astype(str))
            target_keys = set(target_df[key_column].dropna().astype(str))

            comparison["consistency"]["key_integrity"] = {
                "source_unique_keys": len(source_keys),
                "target_unique_keys": len(target_keys),
                "missing_in_target": len(source_keys - target_keys),
                "new_in_target": len(target_keys - source_keys)
            }

        return comparison
