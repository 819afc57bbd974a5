"""
Exceptions and per-record error reports.
"""

from dataclasses import dataclass
from typing import Any


class AgencyError(Exception):
    """Base class for errors raised by the agency core."""


class DataError(AgencyError, ValueError):
    """A stored record holds a value the core cannot interpret."""


class InvalidDateError(DataError):
    """Raised when a date field cannot be parsed."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid date: {value!r}")


class StoreError(AgencyError):
    """Raised when a collection cannot be read from or written to the store."""


@dataclass(frozen=True)
class RecordError:
    """A problem found in one record; the rest of the collection is still processed."""
    kind: str           # "booking" | "client"
    record_id: str
    field: str
    value: Any
    message: str

    def __str__(self) -> str:
        return f"{self.kind} {self.record_id}: {self.field} {self.message}"
