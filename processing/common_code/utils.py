"""
Common Utilities
================

Shared utility functions for data processing.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, Optional
import pandas as pd


# Formats seen in the raw SaleDate column, tried in order
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
]


def read_config(config_path: str) -> Dict:
    """
    Read JSON configuration file.

    Args:
        config_path: Path to config file

    Returns:
        Config dictionary
    """
    with open(config_path, 'r') as f:
        return json.load(f)


def is_missing(value: Any) -> bool:
    """True for None, NaN, NaT and pd.NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def try_cast_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Trial cast of a value to a date.

    Never raises: anything that cannot be converted (including dates
    outside the representable range) returns None.

    Args:
        value: Value to parse

    Returns:
        Timestamp truncated to midnight, or None
    """
    if is_missing(value):
        return None

    if isinstance(value, (datetime, date)):
        return _to_day(value)

    value_str = str(value).strip()
    if value_str == '':
        return None

    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value_str, fmt)
        except ValueError:
            continue
        return _to_day(parsed)
    return None


def _to_day(value: Any) -> Optional[pd.Timestamp]:
    # datetime64[ns] covers roughly 1677-2262; anything outside is not castable
    if isinstance(value, datetime):
        value = value.date()
    if not (pd.Timestamp.min.date() < value <= pd.Timestamp.max.date()):
        return None
    return pd.Timestamp(value.year, value.month, value.day)


def split_part(value: Any, delimiter: str, position: int) -> Optional[str]:
    """
    Return the n-th (1-based) delimited segment of a string.

    Behaves like SQL SPLIT_PART: a missing segment yields an empty string
    instead of an error, and a null input yields None. Segments are
    stripped of surrounding whitespace.

    Args:
        value: Composite string, e.g. "1808 FOX CHASE DR, GOODLETTSVILLE"
        delimiter: Segment delimiter
        position: 1-based segment index

    Returns:
        The segment, "" when absent, None for null input
    """
    if position < 1:
        raise ValueError(f"position must be >= 1, got {position}")
    if is_missing(value):
        return None

    parts = str(value).split(delimiter)
    if position > len(parts):
        return ""
    return parts[position - 1].strip()


def parse_numeric(value: Any) -> Optional[float]:
    """
    Parse numeric value from string.

    Args:
        value: Value to parse

    Returns:
        Float or None
    """
    if is_missing(value) or value == '':
        return None

    try:
        # Remove common formatting
        value_str = str(value).replace(',', '').replace('$', '').replace(' ', '')
        return float(value_str)
    except (ValueError, TypeError):
        return None


def parse_integer(value: Any) -> Optional[int]:
    """Parse an integer; "123", "123.0" and 123.0 are accepted, 12.5 is not."""
    number = parse_numeric(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def generate_batch_id() -> str:
    """
    Generate a unique batch ID based on current timestamp.

    Returns:
        Batch ID string
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")
