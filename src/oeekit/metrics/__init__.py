"""Metric calculators (OEE factors, level bands)."""

from .oee import (
    LEVEL_COLORS,
    LEVEL_LABELS,
    LEVEL_THRESHOLDS,
    MetricResult,
    OEELevel,
    classify_level,
    compute_metrics,
    compute_record_metrics,
    level_color,
    level_label,
)

__all__ = [
    "MetricResult",
    "OEELevel",
    "LEVEL_THRESHOLDS",
    "LEVEL_COLORS",
    "LEVEL_LABELS",
    "compute_metrics",
    "compute_record_metrics",
    "classify_level",
    "level_color",
    "level_label",
]
