"""
Observability Module
====================

Structured logging for the cleaning jobs.

Usage:
    from observability import StructuredLogger

    logger = StructuredLogger("housing_cleaning")
    logger.info("Job started", extra={"run_id": "abc123"})
"""

from .logging.structured_logger import JsonFormatter, StructuredLogger, new_trace_id

__version__ = "1.0.0"
__all__ = ["JsonFormatter", "StructuredLogger", "new_trace_id"]
