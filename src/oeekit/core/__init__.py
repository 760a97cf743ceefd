"""Core utilities shared across oeekit modules."""

from .errors import InvalidRecordError, OEEValueError

__all__ = ["OEEValueError", "InvalidRecordError"]
