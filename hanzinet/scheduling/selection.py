"""
Due-item selection and retention for both scheduling tracks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, TypeVar


class Schedulable(Protocol):
    @property
    def record_id(self) -> object: ...

    next_review: datetime | None
    times_correct: int

    @property
    def times_studied(self) -> int: ...


T = TypeVar("T", bound=Schedulable)


def due_items(progress: Iterable[T], now: datetime | None = None, limit: int | None = None) -> list[T]:
    """
    Records whose next review has passed, soonest first.

    Records without a next-review time are never due. Ties are broken by
    record id so the order is stable for unchanged input.

    Args:
        progress: Arrow or character progress records
        now: Reference time (defaults to now)
        limit: Maximum number of records to return

    Returns:
        Due records sorted ascending by next review
    """
    now = now or datetime.now()
    due = [p for p in progress if p.next_review is not None and p.next_review <= now]
    due.sort(key=lambda p: (p.next_review, str(p.record_id)))
    if limit is not None:
        return due[: max(0, limit)]
    return due


def retention(progress: Schedulable) -> float:
    """Share of correct answers; 0.0 for unstudied records."""
    if progress.times_studied == 0:
        return 0.0
    return progress.times_correct / progress.times_studied
