"""Record and label validation helpers."""

from .records import (
    RecordIssue,
    find_invalid_records,
    require_valid_shift_record,
    require_valid_stoppage_record,
    resolve_machine,
    shift_record_problem,
    stoppage_record_problem,
    validate_labels,
)

__all__ = [
    "RecordIssue",
    "find_invalid_records",
    "require_valid_shift_record",
    "require_valid_stoppage_record",
    "resolve_machine",
    "shift_record_problem",
    "stoppage_record_problem",
    "validate_labels",
]
