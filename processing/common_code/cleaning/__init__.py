"""
Cleaning Layer
==============

Transforms and job for cleaning the Nashville housing table.
"""

from .transforms import (
    deduplicate_unique_ids,
    normalize_sale_date,
    populate_property_address,
    split_addresses,
    normalize_sold_as_vacant,
    rank_duplicate_rows,
    find_duplicate_rows,
    drop_duplicate_rows,
)

__all__ = [
    "deduplicate_unique_ids",
    "normalize_sale_date",
    "populate_property_address",
    "split_addresses",
    "normalize_sold_as_vacant",
    "rank_duplicate_rows",
    "find_duplicate_rows",
    "drop_duplicate_rows",
]
