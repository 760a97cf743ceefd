"""Telemetry helpers for analysis runs."""

from .jsonl import append_jsonl, read_jsonl
from .run_logger import AnalysisTelemetryLogger

__all__ = ["append_jsonl", "read_jsonl", "AnalysisTelemetryLogger"]
