"""Exceptions raised by the data completeness analysis."""

from __future__ import annotations

from typing import Any


class CompletenessError(Exception):
    """Base class for data completeness failures."""


class DataValidationError(CompletenessError, ValueError):
    """Input rows violated required-field preconditions in strict mode."""

    def __init__(self, message: str, rejected_counts: dict[str, int] | None = None):
        super().__init__(message)
        self.rejected_counts = rejected_counts or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": str(self),
            "rejected_counts": self.rejected_counts,
        }


class InputAccessError(CompletenessError):
    """An input relation could not be read or is missing required columns."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
