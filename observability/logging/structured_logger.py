"""
Structured Logger
=================

JSON-lines event log for the housing cleaning job.

Each cleaning run writes one file under the job's log directory. Every
record carries the run's `run_id` / `trace_id` (set with `context()`),
and the job emits one event per milestone:

    pipeline_start -> task_end (one per cleaning stage)
                   -> quality_check (one per contract check)
                   -> pipeline_end
"""

import json
import logging
import os
import sys
import threading
import traceback
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Optional

# Run context shared by every record logged from this thread
_context = threading.local()

# LogRecord attributes that are not user-supplied fields
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "taskName"}


def _current_context() -> Dict:
    return getattr(_context, "data", {})


class JsonFormatter(logging.Formatter):
    """One JSON object per record; `extra` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc) if exc else None,
                "traceback": traceback.format_exception(exc_type, exc, tb),
            }

        if _current_context():
            entry["context"] = dict(_current_context())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                entry[key] = value

        return json.dumps(entry, default=str)


class StructuredLogger:
    """
    Event logger for one cleaning job.

    Usage:
        slog = StructuredLogger("nashville_housing_cleaning", enable_console=False,
                                log_file="logs/processing/cleaning_20240101_000000.jsonl")
        with slog.context(run_id=run_id, trace_id=run_id):
            slog.log_pipeline_start("nashville_housing_cleaning", run_id)
            ...
        slog.close()
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        enable_console: bool = True,
        log_file: Optional[str] = None
    ):
        """
        Args:
            name: Logger name, usually the job name
            level: Minimum level written
            enable_console: Also write JSON records to stdout
            log_file: JSON-lines file to append to (directories are created)
        """
        self.name = name
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self.close()

        handlers = []
        if enable_console:
            handlers.append(logging.StreamHandler(sys.stdout))
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(JsonFormatter())
            self._logger.addHandler(handler)

    def close(self):
        """Flush and detach every handler."""
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

    @contextmanager
    def context(self, **fields):
        """Attach `fields` to every record logged inside the block."""
        previous = dict(_current_context())
        _context.data = {**previous, **fields}
        try:
            yield
        finally:
            _context.data = previous

    def _log(self, level: int, message: str, extra: Optional[Dict] = None, exception: Optional[Exception] = None):
        extra = dict(extra or {})
        if "trace_id" not in extra and "trace_id" in _current_context():
            extra["trace_id"] = _current_context()["trace_id"]
        self._logger.log(level, message, extra=extra, exc_info=exception)

    def info(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict] = None, exception: Optional[Exception] = None):
        self._log(logging.ERROR, message, extra, exception)

    def _event(self, level: int, event: str, message: str, **fields):
        self._log(level, message, extra={"event": event, **fields})

    def log_pipeline_start(self, pipeline_name: str, run_id: str, config: Optional[Dict] = None):
        self._event(logging.INFO, "pipeline_start", f"Pipeline started: {pipeline_name}",
                    pipeline_name=pipeline_name, run_id=run_id, config=config)

    def log_pipeline_end(
        self,
        pipeline_name: str,
        run_id: str,
        status: str,
        duration_seconds: float,
        rows_processed: int = 0
    ):
        """Logged at ERROR unless the run succeeded."""
        level = logging.INFO if status == "success" else logging.ERROR
        self._event(level, "pipeline_end", f"Pipeline completed: {pipeline_name} ({status})",
                    pipeline_name=pipeline_name, run_id=run_id, status=status,
                    duration_seconds=duration_seconds, rows_processed=rows_processed)

    def log_task_end(self, task_name: str, run_id: str, rows_before: int, rows_after: int):
        """Row counts around one cleaning stage."""
        self._event(logging.INFO, "task_end", f"Task completed: {task_name}",
                    task_name=task_name, run_id=run_id, rows_before=rows_before, rows_after=rows_after)

    def log_quality_check(self, check_name: str, table_name: str, passed: bool, details: Optional[Dict] = None):
        """Failed checks are logged at WARNING; the job carries on."""
        level = logging.INFO if passed else logging.WARNING
        self._event(level, "quality_check", f"Quality check {'passed' if passed else 'failed'}: {check_name}",
                    check_name=check_name, table_name=table_name, passed=passed, details=details)


def new_trace_id() -> str:
    """Short random id for a run."""
    return uuid.uuid4().hex[:8]
