"""Typed failures raised at the Leave Pulse component boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


class LeavePulseError(RuntimeError):
    """Base class for every error Leave Pulse raises on purpose."""


class ClassificationError(LeavePulseError):
    """Raised when the classifier is unavailable or returns unusable output."""


@dataclass(slots=True, frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(LeavePulseError):
    """Raised when a candidate event fails validation."""

    def __init__(self, errors: List[FieldError]) -> None:
        super().__init__("invalid event: " + "; ".join(str(error) for error in errors))
        self.errors = list(errors)

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]


class StorageError(LeavePulseError):
    """Raised when the event store fails a lookup, write or aggregation."""


class ExportError(LeavePulseError):
    """Raised when a tabular export could not be delivered."""


__all__ = [
    "LeavePulseError",
    "ClassificationError",
    "FieldError",
    "ValidationError",
    "StorageError",
    "ExportError",
]
