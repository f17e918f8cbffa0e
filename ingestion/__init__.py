"""
Nashville Housing Ingestion
===========================

Loads the raw housing export (CSV/XLSX) into a relational table.

This step is responsible ONLY for moving data from the file to the table.
No cleaning - rows are loaded as exported.
"""

__version__ = "1.0.0"
