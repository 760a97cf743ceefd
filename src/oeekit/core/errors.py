"""Common oeekit-specific exceptions."""

from __future__ import annotations


class OEEValueError(ValueError):
    """Raised when oeekit detects invalid user-provided data."""


class InvalidRecordError(OEEValueError):
    """A production or stoppage record breaks the input contract.

    Raised for upstream data-integrity problems (unknown machine, negative
    quantities, more defects than units produced) rather than for empty or idle
    reporting windows, which resolve to zero-valued metrics.
    """

    def __init__(self, record: object, reason: str) -> None:
        self.record = record
        self.reason = reason
        super().__init__(f"Invalid record ({reason}): {record!r}")


__all__ = ["OEEValueError", "InvalidRecordError"]
