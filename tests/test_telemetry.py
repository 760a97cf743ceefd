from __future__ import annotations

from pathlib import Path

import pytest

from oeekit.telemetry import AnalysisTelemetryLogger, append_jsonl, read_jsonl


def test_append_and_read_jsonl(tmp_path: Path):
    log_path = tmp_path / "nested" / "runs.jsonl"
    append_jsonl(log_path, {"command": "metrics", "oee": 0.5})
    append_jsonl(log_path, {"command": "trend", "label": "Línea A"})

    records = read_jsonl(log_path)
    assert [record["command"] for record in records] == ["metrics", "trend"]
    assert records[1]["label"] == "Línea A"
    assert read_jsonl(tmp_path / "absent.jsonl") == []


def test_logger_records_finalized_metrics(tmp_path: Path):
    log_path = tmp_path / "telemetry.jsonl"
    with AnalysisTelemetryLogger(
        log_path=log_path,
        command="report",
        dataset="fixture-plant",
        filters={"machine_id": "M1"},
        context={"top": 3},
    ) as logger:
        logger.finalize(metrics={"oee": 0.74})

    (record,) = read_jsonl(log_path)
    assert record["record_type"] == "analysis"
    assert record["status"] == "ok"
    assert record["command"] == "report"
    assert record["metrics"] == {"oee": 0.74}
    assert record["filters"] == {"machine_id": "M1"}
    assert record["context"] == {"top": 3}
    assert record["run_id"] == logger.run_id
    assert record["duration_seconds"] >= 0


def test_logger_records_errors(tmp_path: Path):
    log_path = tmp_path / "telemetry.jsonl"
    with pytest.raises(RuntimeError):
        with AnalysisTelemetryLogger(log_path=log_path, command="metrics"):
            raise RuntimeError("boom")

    (record,) = read_jsonl(log_path)
    assert record["status"] == "error"
    assert "boom" in record["error"]


def test_logger_without_finalize_writes_ok_record(tmp_path: Path):
    log_path = tmp_path / "telemetry.jsonl"
    with AnalysisTelemetryLogger(log_path=log_path, command="trend") as logger:
        pass
    assert logger.closed
    assert read_jsonl(log_path)[0]["status"] == "ok"
