"""
Per-set study progress, kept apart from the flashcard set itself.

Progress is stored as `{flashcardSetId, flashcardSetName, progress,
lastUpdated, version}` where `progress` maps arrow ids to StudyProgress.

Where it goes depends on the injected StorageCapabilities:
- with a filesystem and a known set path: `<set name>.progress.json`
  beside the set file
- otherwise: a keyed store (one JSON entry per set id)

Loading never fails: unreadable or malformed progress resets to empty
with a warning. Saving and clearing raise PersistenceError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Iterable

from loguru import logger

from hanzinet.errors import PersistenceError
from hanzinet.scheduling.selection import due_items
from hanzinet.scheduling.sm2 import StudyProgress

from .store import write_json_atomic

PROGRESS_VERSION = "1.0.0"
PROGRESS_KEY_PREFIX = "hanzinet-progress-"


@dataclass(frozen=True)
class StorageCapabilities:
    """What the host environment can do, decided once by the caller."""

    has_filesystem: bool = True


class KeyedProgressStorage:
    """Key/value store for progress when no set file path is available."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, content: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(content, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def progress_file_path(set_path: Path) -> Path:
    """`deck.json` -> `deck.progress.json` in the same directory."""
    set_path = Path(set_path)
    stem = set_path.name[:-5] if set_path.name.endswith(".json") else set_path.name
    return set_path.with_name(f"{stem}.progress.json")


def parse_progress_data(data: object) -> dict[str, StudyProgress] | None:
    """Progress map from a progress document, or None if it is malformed."""
    if not isinstance(data, dict):
        return None
    if not isinstance(data.get("flashcardSetId"), str) or not isinstance(data.get("version"), str):
        return None
    entries = data.get("progress")
    if not isinstance(entries, dict) or not data.get("lastUpdated"):
        return None

    progress: dict[str, StudyProgress] = {}
    for arrow_id, entry in entries.items():
        if not isinstance(entry, dict):
            return None
        try:
            record = StudyProgress.from_dict({"arrowId": arrow_id, **entry})
        except (KeyError, TypeError, ValueError):
            return None
        progress[arrow_id] = record
    return progress


class ProgressStore:
    """Loads and saves arrow progress for flashcard sets."""

    def __init__(self, capabilities: StorageCapabilities, keyed_storage: KeyedProgressStorage):
        self.capabilities = capabilities
        self.keyed_storage = keyed_storage

    def _use_file(self, set_path: Path | None) -> bool:
        return self.capabilities.has_filesystem and set_path is not None

    def load(self, set_id: str, set_path: Path | None = None) -> dict[str, StudyProgress]:
        """
        Load progress for a set.

        Args:
            set_id: Flashcard set id (key for the keyed store)
            set_path: Path of the set file, if known

        Returns:
            arrow id -> StudyProgress; empty if nothing valid is stored
        """
        try:
            if self._use_file(set_path):
                path = progress_file_path(set_path)
                if not path.exists():
                    return {}
                raw = path.read_text(encoding="utf-8")
            else:
                raw = self.keyed_storage.get(PROGRESS_KEY_PREFIX + set_id)
                if raw is None:
                    return {}
            progress = parse_progress_data(json.loads(raw))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read progress for set {set_id}: {e}")
            return {}

        if progress is None:
            logger.warning(f"Invalid progress data for set {set_id}, resetting progress")
            if not self._use_file(set_path):
                self.keyed_storage.remove(PROGRESS_KEY_PREFIX + set_id)
            return {}
        return progress

    def _document(self, set_id: str, set_name: str, progress: dict[str, StudyProgress]) -> dict:
        return {
            "flashcardSetId": set_id,
            "flashcardSetName": set_name,
            "progress": {arrow_id: p.to_dict() for arrow_id, p in progress.items()},
            "lastUpdated": datetime.now().isoformat(),
            "version": PROGRESS_VERSION,
        }

    def save(
        self,
        set_id: str,
        set_name: str,
        progress: dict[str, StudyProgress],
        set_path: Path | None = None,
    ) -> None:
        """Save progress; raises PersistenceError on failure."""
        document = self._document(set_id, set_name, progress)
        if self._use_file(set_path):
            write_json_atomic(progress_file_path(set_path), document)
            return
        try:
            self.keyed_storage.set(PROGRESS_KEY_PREFIX + set_id, json.dumps(document, indent=2))
        except OSError as e:
            raise PersistenceError(f"Cannot save progress for set {set_id}: {e}") from e

    def clear(self, set_id: str, set_path: Path | None = None) -> None:
        """Reset progress; file storage keeps an empty progress file."""
        if self._use_file(set_path):
            write_json_atomic(progress_file_path(set_path), self._document(set_id, "", {}))
            return
        try:
            self.keyed_storage.remove(PROGRESS_KEY_PREFIX + set_id)
        except OSError as e:
            raise PersistenceError(f"Cannot clear progress for set {set_id}: {e}") from e

    @staticmethod
    def ready_count(progress: dict[str, StudyProgress], now: datetime | None = None) -> int:
        """Number of stored arrows due for review."""
        return len(due_items(progress.values(), now))

    @staticmethod
    def ready_arrows(
        arrow_ids: Iterable[str],
        progress: dict[str, StudyProgress],
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """
        Arrow ids due for review, most overdue first.

        Arrows with no progress (or no next review) are due now.
        """
        now = now or datetime.now()
        records = []
        for arrow_id in arrow_ids:
            record = progress.get(arrow_id)
            if record is None:
                record = StudyProgress(arrow_id=arrow_id, next_review=now)
            elif record.next_review is None:
                record = replace(record, next_review=now)
            records.append(record)
        return [record.arrow_id for record in due_items(records, now, limit)]
