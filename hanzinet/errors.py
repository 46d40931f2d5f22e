"""
Exception types raised across HanziNet.

Geometry and answer verification never raise for bad input; they return
empty results or "no match" instead. Everything else reports through the
hierarchy below so the CLI can catch HanziNetError in one place.
"""

from __future__ import annotations


class HanziNetError(Exception):
    """Base class for all HanziNet errors."""


class DocumentValidationError(HanziNetError):
    """A flashcard set document failed validation on load."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return f"{base}: " + "; ".join(self.errors)


class TemplateValidationError(DocumentValidationError):
    """A template is structurally invalid (bad indices, no sides)."""


class NotIntroducedError(HanziNetError):
    """An answer was submitted for an item that has no introduced progress record."""

    def __init__(self, item_id: int | str):
        super().__init__(f"Item {item_id} has not been introduced")
        self.item_id = item_id


class PersistenceError(HanziNetError):
    """A write that must not be lost (exit reconciliation, explicit save) failed."""


class SessionStateError(HanziNetError):
    """An operation was invoked in a session state that does not allow it."""
