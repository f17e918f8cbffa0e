#!/usr/bin/env python3
"""
Cleaning Job Runner
===================

Main entry point for running the housing cleaning job.
Reads job settings, optionally loads the raw export first, cleans the
table and saves a JSON summary.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ingestion.run_ingestion import load_file
from observability import StructuredLogger, new_trace_id
from processing.common_code.cleaning.scripts.clean_housing_table import run_cleaning

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = PROJECT_ROOT / "jobs" / "job_settings.json"


def load_job_settings(settings_path: Optional[str] = None) -> Dict:
    """Load job settings from JSON file."""
    with open(settings_path or DEFAULT_SETTINGS_PATH, 'r') as f:
        return json.load(f)


def run_cleaning_job(source_file: Optional[str] = None, settings_path: Optional[str] = None) -> Dict:
    """
    Run the cleaning job.

    Args:
        source_file: Optional raw export to load into the table first
        settings_path: Job settings JSON (defaults to jobs/job_settings.json)

    Returns:
        Job summary dict
    """
    settings = load_job_settings(settings_path)
    job_name = settings["job_settings"]["name"]
    database_url = settings["connections"]["database"]["url"]
    cleaning_settings = settings["processing_stages"]["cleaning"]
    log_dir = settings["job_settings"].get("log_dir", "logs/processing")

    job_start = datetime.now()
    run_id = new_trace_id()
    os.makedirs(log_dir, exist_ok=True)

    slog = StructuredLogger(
        job_name,
        enable_console=False,
        log_file=os.path.join(log_dir, f"cleaning_{job_start.strftime('%Y%m%d_%H%M%S')}.jsonl")
    )

    logger.info("=" * 60)
    logger.info("NASHVILLE HOUSING CLEANING JOB")
    logger.info("=" * 60)
    logger.info(f"Job Name: {job_name}")
    logger.info(f"Start Time: {job_start.isoformat()}")
    logger.info(f"Config Path: {cleaning_settings['config_path']}")

    summary = {
        "job_name": job_name,
        "run_id": run_id,
        "start_time": job_start.isoformat()
    }

    with slog.context(run_id=run_id, trace_id=run_id):
        slog.log_pipeline_start(job_name, run_id, config=cleaning_settings)

        if source_file:
            try:
                summary["ingestion"] = load_file(
                    source_file,
                    database_url=database_url,
                    table_name=cleaning_settings["table_name"],
                    column_types=cleaning_settings.get("column_types")
                )
            except Exception as e:
                slog.error(f"Ingestion failed: {source_file}", exception=e)
                summary["ingestion"] = {"status": "failed", "error": str(e)}

        if summary.get("ingestion", {}).get("status") == "failed":
            result = {"status": "skipped", "reason": "ingestion_failed"}
        else:
            config_path = PROJECT_ROOT / cleaning_settings["config_path"]
            result = run_cleaning(str(config_path), database_url)

        for stage in result.get("stages", []):
            slog.log_task_end(stage["stage"], run_id, stage["rows_before"], stage["rows_after"])
        for check in result.get("contract", {}).get("checks", []):
            slog.log_quality_check(check["check"], cleaning_settings["table_name"], check["passed"], check["details"])

        job_end = datetime.now()
        duration = (job_end - job_start).total_seconds()
        slog.log_pipeline_end(job_name, run_id, result["status"], duration, result.get("rows_written", 0))

    slog.close()

    summary.update({
        "end_time": job_end.isoformat(),
        "duration_seconds": duration,
        "status": result["status"],
        "result": result
    })

    # Save results
    results_file = os.path.join(log_dir, f"cleaning_results_{job_start.strftime('%Y%m%d_%H%M%S')}.json")
    with open(results_file, 'w') as f:
        json.dump(summary, f, indent=2, default=str)
    summary["results_file"] = results_file

    logger.info("\n" + "=" * 60)
    logger.info("JOB COMPLETE")
    logger.info(f"Status: {result['status']}")
    logger.info(f"Duration: {duration:.2f} seconds")
    logger.info(f"Rows: {result.get('rows_loaded', 0)} loaded, {result.get('rows_written', 0)} written")
    logger.info(f"Results saved to: {results_file}")
    logger.info("=" * 60)

    return summary


if __name__ == "__main__":
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Run Cleaning Job")
    parser.add_argument("--source", type=str, help="Raw CSV/XLSX export to load before cleaning (optional)")
    parser.add_argument("--settings", type=str, help="Job settings JSON (optional)")

    args = parser.parse_args()

    summary = run_cleaning_job(args.source, args.settings)

    if summary["status"] != "success":
        sys.exit(1)
