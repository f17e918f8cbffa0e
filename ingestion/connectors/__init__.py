"""
Ingestion Connectors
====================

Source and target connectors for loading and cleaning the housing table.
"""

from .sql_connector import SQLTableConnector
from .file_connector import FileConnector

__all__ = ["SQLTableConnector", "FileConnector"]
