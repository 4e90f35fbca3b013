"""Exceptions raised at the quantity-sheet and scan-session boundaries.

Malformed scan geometry never raises; it is filtered out where it is read.
"""

from __future__ import annotations


class TakeoffError(Exception):
    """Base class for errors raised by this package."""


class InvalidStateError(TakeoffError):
    """An operation is not legal for the record or session's current state.

    Raised when editing or relocking a locked sheet, versioning an unlocked
    one, or feeding snapshots to a finished scan session.
    """


class ConcurrentModificationError(TakeoffError):
    """A writer tried to replace a sheet that changed since it was read."""

    def __init__(self, sheet_id: str, message: str | None = None):
        self.sheet_id = sheet_id
        super().__init__(message or f"Quantity sheet {sheet_id} was modified concurrently")


class SheetNotFoundError(TakeoffError, KeyError):
    """No quantity sheet is stored under the requested id."""

    def __init__(self, sheet_id: str):
        self.sheet_id = sheet_id
        super().__init__(sheet_id)

    def __str__(self) -> str:
        return f"No quantity sheet with id {self.sheet_id!r}"
