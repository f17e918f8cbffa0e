import json
import os

import pytest

from jobs.run_cleaning_job import PROJECT_ROOT, run_cleaning_job


@pytest.fixture
def job_settings(tmp_path, sqlite_url):
    settings = {
        "job_settings": {"name": "nashville_housing_cleaning", "log_dir": "logs/processing"},
        "connections": {"database": {"url": sqlite_url}},
        "processing_stages": {
            "cleaning": {
                "table_name": "NashvilleHousing",
                "config_path": str(PROJECT_ROOT / "processing/common_code/cleaning/configs/nashville_housing.json"),
                "column_types": {"UniqueID": "integer", "SalePrice": "numeric"},
            }
        },
    }
    path = tmp_path / "job_settings.json"
    path.write_text(json.dumps(settings))
    return path


def test_job_loads_cleans_and_saves_summary(tmp_path, monkeypatch, job_settings, raw_housing_df):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "NashvilleHousingData.csv"
    raw_housing_df.to_csv(source, index=False)

    summary = run_cleaning_job(str(source), str(job_settings))

    assert summary["status"] == "success"
    assert summary["ingestion"]["rows_loaded"] == 9
    assert summary["result"]["rows_written"] == 7
    assert os.path.exists(summary["results_file"])

    with open(summary["results_file"]) as f:
        saved = json.load(f)
    assert saved["run_id"] == summary["run_id"]

    log_files = list((tmp_path / "logs" / "processing").glob("cleaning_*.jsonl"))
    assert len(log_files) == 1
    events = [json.loads(line).get("event") for line in log_files[0].read_text().splitlines()]
    assert events[0] == "pipeline_start"
    assert events.count("task_end") == 6
    assert "quality_check" in events
    assert events[-1] == "pipeline_end"


def test_job_skips_cleaning_when_ingestion_fails(tmp_path, monkeypatch, job_settings):
    monkeypatch.chdir(tmp_path)

    summary = run_cleaning_job(str(tmp_path / "missing.csv"), str(job_settings))

    assert summary["ingestion"]["status"] == "failed"
    assert summary["status"] == "skipped"
    assert os.path.exists(summary["results_file"])
