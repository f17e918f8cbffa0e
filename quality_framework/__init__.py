"""
Quality Framework
=================

Quality checks for the cleaned housing table:
- Cleaning contract (soft contract over the cleaning invariants)
- Dimension metrics (completeness, uniqueness, validity)

Usage:
    from quality_framework import CleaningContract, DimensionMetrics

    # Contract
    result = CleaningContract().validate(df, "NashvilleHousing")

    # Dimension metrics
    metrics = DimensionMetrics()
    scores = metrics.calculate_all_dimensions(df, "NashvilleHousing", "cleaned")
    comparison = metrics.compare_stages(raw_df, df, "NashvilleHousing")
"""

from .cleaning_contract import CleaningContract
from .dimension_metrics import DimensionMetrics

__version__ = "1.0.0"
__all__ = [
    "CleaningContract",
    "DimensionMetrics"
]
