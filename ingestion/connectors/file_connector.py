"""
File Source Connector
=====================

Reads the raw housing export (CSV or XLSX) into a DataFrame.

Data is read as text, exactly as exported; header cleanup and the
configured type coercion are the only changes applied before loading.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from processing.common_code.utils import parse_integer, parse_numeric

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls")

# Casts applied by coerce_column_types, keyed by the type name used in configs
TYPE_PARSERS = {
    "integer": parse_integer,
    "numeric": parse_numeric,
}


class FileConnector:
    """
    Local file connector for raw exports.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize file connector.

        Args:
            config: Optional dict with `sheet_name` (XLSX) and `encoding` (CSV)
        """
        self.config = config or {}

    def read(self, path: Union[str, Path]) -> pd.DataFrame:
        """
        Read a CSV or XLSX file with every column as text.

        Args:
            path: Source file

        Returns:
            Raw DataFrame
        """
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file type '{suffix}', expected one of {SUPPORTED_SUFFIXES}")

        if suffix == ".csv":
            df = pd.read_csv(
                path,
                dtype=str,
                low_memory=False,
                encoding=self.config.get("encoding", "utf-8")
            )
        else:
            df = pd.read_excel(path, sheet_name=self.config.get("sheet_name", 0), dtype=str)

        logger.info(f"Read {len(df)} rows, {len(df.columns)} columns from {path.name}")
        return df


def convert_xlsx_to_csv(
    source: Union[str, Path],
    target: Union[str, Path],
    sheet_name: Union[str, int] = 0
) -> int:
    """
    Convert an XLSX workbook sheet to CSV, which every DBMS import accepts.

    Returns:
        Number of rows written
    """
    df = pd.read_excel(source, sheet_name=sheet_name)
    df.to_csv(target, index=False)
    logger.info(f"Converted {source} [{sheet_name}] -> {target} ({len(df)} rows)")
    return len(df)


def normalize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """
    Strip stray whitespace from headers ("UniqueID " -> "UniqueID").
    """
    rename_map = {c: str(c).strip() for c in df.columns if str(c) != str(c).strip()}
    if rename_map:
        logger.warning(f"  Renaming {len(rename_map)} columns with stray whitespace: {list(rename_map.values())}")
    return df.rename(columns=rename_map)


def coerce_column_types(df: pd.DataFrame, column_types: Dict[str, str]) -> pd.DataFrame:
    """
    Cast configured columns; values that cannot be cast become null.

    Args:
        df: Raw DataFrame
        column_types: Column name -> "integer" | "numeric" | "text"

    Returns:
        Frame with integer columns as nullable Int64 and numeric as float
    """
    out = df.copy()
    for col, type_name in column_types.items():
        if col not in out.columns:
            continue
        if type_name == "text":
            continue
        if type_name not in TYPE_PARSERS:
            raise ValueError(f"Unknown column type '{type_name}' for {col}")

        parsed = out[col].map(TYPE_PARSERS[type_name])
        failed = int((out[col].notna() & parsed.isna()).sum())
        if failed:
            logger.warning(f"  {col}: {failed} values could not be cast to {type_name}, set to NULL")

        if type_name == "integer":
            out[col] = pd.array(parsed.tolist(), dtype="Int64")
        else:
            out[col] = pd.to_numeric(parsed, errors="coerce").astype(float)
    return out
