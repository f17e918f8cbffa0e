"""
SQL Table Connector
===================

Connector for reading and rebuilding the housing table in a relational
database through SQLAlchemy. Any SQLAlchemy URL works; SQLite is the
default for local runs.
"""

import logging
from typing import Dict

import pandas as pd
from sqlalchemy import column, create_engine, distinct, func, inspect, select, table, text
from sqlalchemy.types import Date, Float, Integer, Text

logger = logging.getLogger(__name__)

# Portable column types for the columns the cleaner produces, applied
# only when the frame already holds that kind of data
COLUMN_SQL_TYPES = {
    "UniqueID": (Integer(), pd.api.types.is_integer_dtype),
    "SalePrice": (Float(), pd.api.types.is_numeric_dtype),
    "SaleDate": (Date(), pd.api.types.is_datetime64_any_dtype),
    "Property_Address": (Text(), pd.api.types.is_object_dtype),
    "Property_City": (Text(), pd.api.types.is_object_dtype),
    "Owner_Address": (Text(), pd.api.types.is_object_dtype),
    "Owner_City": (Text(), pd.api.types.is_object_dtype),
    "Owner_State": (Text(), pd.api.types.is_object_dtype),
}


class SQLTableConnector:
    """
    Relational table connector for the cleaning pipeline.
    """

    def __init__(self, config: Dict):
        """
        Initialize SQL connector.

        Args:
            config: Connection configuration dict with `url` (SQLAlchemy URL)
                and optional `chunksize` for writes
        """
        self.config = config
        self.engine = None

    def connect(self):
        """Create the engine and test the connection."""
        self.engine = create_engine(self.config["url"])

        # Test connection
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        logger.info(f"Connected to database: {self.engine.url.render_as_string(hide_password=True)}")

    def disconnect(self):
        """Dispose of the engine."""
        if self.engine:
            self.engine.dispose()
            self.engine = None
            logger.info("Database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists."""
        return inspect(self.engine).has_table(table_name)

    def get_row_count(self, table_name: str) -> int:
        """
        Get row count for a table.

        Args:
            table_name: Table name

        Returns:
            Row count
        """
        query = select(func.count()).select_from(table(table_name))
        with self.engine.connect() as conn:
            return conn.execute(query).scalar()

    def get_distinct_count(self, table_name: str, column_name: str) -> int:
        """COUNT(DISTINCT column) for a table."""
        query = select(func.count(distinct(column(column_name)))).select_from(table(table_name))
        with self.engine.connect() as conn:
            return conn.execute(query).scalar()

    def read_table(self, table_name: str) -> pd.DataFrame:
        """
        Read an entire table.

        Args:
            table_name: Table name

        Returns:
            DataFrame with table data
        """
        logger.info(f"Reading table: {table_name}")
        df = pd.read_sql_table(table_name, self.engine)
        logger.info(f"Read {len(df)} rows from {table_name}")
        return df

    def write_table(self, df: pd.DataFrame, table_name: str, if_exists: str = "append") -> int:
        """
        Write a DataFrame to a table.

        Args:
            df: Data to write
            table_name: Target table
            if_exists: "append", "replace" or "fail"

        Returns:
            Number of rows written
        """
        dtype = {
            c: sql_type for c, (sql_type, matches) in COLUMN_SQL_TYPES.items()
            if c in df.columns and matches(df[c])
        }
        df.to_sql(
            table_name,
            self.engine,
            if_exists=if_exists,
            index=False,
            chunksize=self.config.get("chunksize", 5000),
            dtype=dtype
        )
        logger.info(f"Wrote {len(df)} rows to {table_name} ({if_exists})")
        return len(df)

    def replace_table(self, df: pd.DataFrame, table_name: str) -> int:
        """
        Rebuild a table from a DataFrame (drop + create + insert).

        Used instead of ALTER TABLE, which not every engine supports for
        changing column types or adding the derived columns.
        """
        return self.write_table(df, table_name, if_exists="replace")

