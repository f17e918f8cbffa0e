"""
Common Code Module
==================

Shared utilities and functions for data processing pipelines.
"""

from .utils import (
    try_cast_date,
    split_part,
    parse_numeric,
    parse_integer,
    read_config
)

__all__ = [
    "try_cast_date",
    "split_part",
    "parse_numeric",
    "parse_integer",
    "read_config"
]
