"""Context manager for capturing analysis run telemetry."""

from __future__ import annotations

import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping
from uuid import uuid4

from .jsonl import append_jsonl


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(slots=True)
class AnalysisTelemetryLogger(AbstractContextManager["AnalysisTelemetryLogger"]):
    """Record high-level telemetry for one analysis command.

    Parameters
    ----------
    log_path:
        JSONL path where run records are appended.
    command:
        Command identifier (e.g., ``"metrics"``, ``"report"``).
    dataset:
        Human-readable plant dataset name.
    dataset_path:
        Optional filesystem path to the ``plant.yaml`` file.
    filters:
        Record filters applied by the command.
    context:
        Additional metadata (output paths, top-N settings, seeds).
    """

    log_path: Path
    command: str
    dataset: str | None = None
    dataset_path: str | None = None
    filters: Mapping[str, Any] | None = None
    context: Mapping[str, Any] | None = None
    schema_version: str = "1.0"
    run_id: str = field(default_factory=lambda: uuid4().hex, init=False)
    _start_time: float = field(default=0.0, init=False)
    _start_timestamp: str | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.log_path = Path(self.log_path)

    def __enter__(self) -> "AnalysisTelemetryLogger":
        self._start_time = time.perf_counter()
        self._start_timestamp = _iso_now()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type:
            self._close(status="error", metrics=None, error=repr(exc))
            return False
        self._close(status="ok", metrics=None, error=None)
        return False

    def elapsed(self) -> float:
        """Return the elapsed wall-clock seconds since the run started."""
        return time.perf_counter() - self._start_time

    @property
    def closed(self) -> bool:
        return self._closed

    def finalize(
        self,
        *,
        status: str = "ok",
        metrics: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        """Write the terminal run record."""
        self._close(status=status, metrics=metrics, error=error)

    def _close(
        self,
        *,
        status: str,
        metrics: Mapping[str, Any] | None,
        error: str | None,
    ) -> None:
        if self._closed:
            return
        duration = self.elapsed() if self._start_time else 0.0
        record = {
            "record_type": "analysis",
            "schema_version": self.schema_version,
            "run_id": self.run_id,
            "command": self.command,
            "dataset": self.dataset,
            "dataset_path": self.dataset_path,
            "status": status,
            "filters": dict(self.filters or {}),
            "metrics": dict(metrics or {}),
            "context": dict(self.context or {}),
            "error": error,
            "started_at": self._start_timestamp,
            "finished_at": _iso_now(),
            "duration_seconds": round(duration, 3),
        }
        append_jsonl(self.log_path, record)
        self._closed = True


__all__ = ["AnalysisTelemetryLogger"]
