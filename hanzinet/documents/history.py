"""
Undo/redo history for flashcard edits.

A bounded buffer of snapshots with a cursor. Pushing after an undo drops
the redo branch; pushing past capacity drops the oldest snapshot.
Snapshots are deep copies, so later edits never leak into history.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass

from .models import Flashcard

DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class Snapshot:
    flashcard: Flashcard
    timestamp: float


class DocumentHistory:
    """Undo/redo stack for one flashcard."""

    def __init__(self, max_size: int = DEFAULT_MAX_HISTORY):
        if max_size < 1:
            raise ValueError("history needs room for at least one snapshot")
        self.max_size = max_size
        self._snapshots: deque[Snapshot] = deque(maxlen=max_size)
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    def push(self, flashcard: Flashcard) -> None:
        """Record a new state, discarding any redo states."""
        while len(self._snapshots) > self._cursor + 1:
            self._snapshots.pop()
        self._snapshots.append(Snapshot(flashcard.model_copy(deep=True), time.time()))
        self._cursor = len(self._snapshots) - 1

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def undo(self) -> Flashcard | None:
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self.current()

    def redo(self) -> Flashcard | None:
        if not self.can_redo():
            return None
        self._cursor += 1
        return self.current()

    def current(self) -> Flashcard | None:
        if 0 <= self._cursor < len(self._snapshots):
            return self._snapshots[self._cursor].flashcard.model_copy(deep=True)
        return None

    def clear(self) -> None:
        self._snapshots.clear()
        self._cursor = -1
