"""
SQLite State Store for HanziNet.

Provides persistence for:
- Dictionary items (characters and words) with frequency ranks
- Character-track SRS progress per item
- Practice log of every scored answer
- Study session history
- Unlock pacing state

Database location: ~/.hanzinet/state.db
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable

from loguru import logger

from hanzinet.errors import NotIntroducedError, PersistenceError
from hanzinet.scheduling.character_track import CharacterScheduler, ProgressRecord
from hanzinet.scheduling.unlock import UnlockDecision, UnlockGate

from .cedict import CedictEntry, rank_for
from .models import UNRANKED, LearningItem, StudyItem, introduction_score

# =============================================================================
# Helpers
# =============================================================================


def _ts(value: datetime | None) -> str | None:
    """Timestamps are stored as fixed-width ISO text so they sort correctly."""
    return value.isoformat(sep=" ", timespec="microseconds") if value else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _item_from_row(row: sqlite3.Row) -> LearningItem:
    components = row["component_ids"] or ""
    return LearningItem(
        id=row["id"],
        character=row["character"],
        simplified=row["simplified"],
        traditional=row["traditional"],
        pinyin=row["pinyin"],
        definition=row["definition"],
        frequency_rank=row["frequency_rank"],
        is_word=bool(row["is_word"]),
        component_ids=[int(c) for c in components.split(",") if c],
        introduction_score=row["introduction_score"],
    )


def _progress_from_row(row: sqlite3.Row) -> ProgressRecord:
    return ProgressRecord(
        item_id=row["item_id"],
        introduced=bool(row["introduced"]),
        introduced_at=_parse_ts(row["introduced_at"]),
        times_reviewed=row["times_reviewed"],
        times_correct=row["times_correct"],
        times_incorrect=row["times_incorrect"],
        current_interval_days=row["current_interval_days"],
        previous_interval_days=row["previous_interval_days"],
        ease_factor=row["ease_factor"],
        has_reached_milestone=bool(row["has_reached_milestone"]),
        last_reviewed=_parse_ts(row["last_reviewed"]),
        next_review=_parse_ts(row["next_review"]),
    )


# =============================================================================
# State Store
# =============================================================================


class StateStore:
    """
    SQLite-backed learning state.

    Implements the backend commands used by study sessions:
    introduce_item, get_due_items, submit_answer, unlock_next_item,
    record_practice, start_session, end_session, get_characters_for_ids,
    mark_reviewable, get_self_study_items and check_and_unlock.
    """

    DEFAULT_DB_PATH = Path.home() / ".hanzinet" / "state.db"

    def __init__(
        self,
        db_path: Path | None = None,
        scheduler: CharacterScheduler | None = None,
        gate: UnlockGate | None = None,
    ):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.hanzinet/state.db)
            scheduler: Character-track scheduler (defaults to standard constants)
            gate: Unlock pacing policy (defaults to standard pacing)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.scheduler = scheduler or CharacterScheduler()
        self.gate = gate or UnlockGate()

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"StateStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS characters (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                character TEXT NOT NULL UNIQUE,
                simplified TEXT NOT NULL,
                traditional TEXT,
                pinyin TEXT NOT NULL,
                definition TEXT NOT NULL,
                frequency_rank INTEGER DEFAULT 999999,
                is_word BOOLEAN DEFAULT 0,
                component_ids TEXT,
                introduction_score REAL DEFAULT 999999
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_progress (
                item_id INTEGER PRIMARY KEY,
                introduced BOOLEAN DEFAULT 0,
                introduced_at TIMESTAMP,
                times_reviewed INTEGER DEFAULT 0,
                times_correct INTEGER DEFAULT 0,
                times_incorrect INTEGER DEFAULT 0,
                current_interval_days REAL NOT NULL,
                previous_interval_days REAL NOT NULL,
                ease_factor REAL DEFAULT 2.5,
                has_reached_milestone BOOLEAN DEFAULT 0,
                last_reviewed TIMESTAMP,
                next_review TIMESTAMP,
                unlocked_at TIMESTAMP,
                FOREIGN KEY (item_id) REFERENCES characters(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS practice_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL,
                mode TEXT NOT NULL,
                question_type TEXT NOT NULL,
                user_answer TEXT,
                is_correct BOOLEAN NOT NULL,
                practiced_at TIMESTAMP NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS study_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mode TEXT NOT NULL,
                started_at TIMESTAMP NOT NULL,
                ended_at TIMESTAMP,
                cards_studied INTEGER DEFAULT 0,
                cards_correct INTEGER DEFAULT 0,
                cards_incorrect INTEGER DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS store_meta (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_progress_next_review
            ON user_progress(next_review)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_characters_score
            ON characters(introduction_score)
        """)

        self.conn.commit()

    # =========================================================================
    # Dictionary Items
    # =========================================================================

    def import_items(
        self,
        entries: Iterable[CedictEntry],
        character_ranks: dict[str, int] | None = None,
        word_ranks: dict[str, int] | None = None,
        ranked_only: bool = False,
    ) -> int:
        """
        Insert or update dictionary entries, then recompute components and scores.

        Args:
            entries: Parsed dictionary entries (one per simplified form)
            character_ranks: Character -> frequency rank
            word_ranks: Word -> frequency rank
            ranked_only: Skip entries with no frequency rank

        Returns:
            Number of entries written
        """
        character_ranks = character_ranks or {}
        word_ranks = word_ranks or {}
        cursor = self.conn.cursor()
        written = 0
        for entry in entries:
            rank = rank_for(entry, character_ranks, word_ranks)
            if ranked_only and rank == UNRANKED:
                continue
            cursor.execute(
                """
                INSERT INTO characters (
                    character, simplified, traditional, pinyin, definition,
                    frequency_rank, is_word, introduction_score
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(character) DO UPDATE SET
                    traditional = excluded.traditional,
                    pinyin = excluded.pinyin,
                    definition = excluded.definition,
                    frequency_rank = excluded.frequency_rank,
                    is_word = excluded.is_word
            """,
                (
                    entry.simplified,
                    entry.simplified,
                    entry.traditional if entry.traditional != entry.simplified else None,
                    entry.pinyin,
                    entry.definition,
                    rank,
                    entry.is_word,
                    float(rank),
                ),
            )
            written += 1
        self.conn.commit()
        self._populate_components()
        logger.info(f"Imported {written} dictionary entries")
        return written

    def _populate_components(self) -> None:
        """Link words to their component characters and refresh introduction scores."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, character, frequency_rank FROM characters WHERE is_word = 0")
        characters = {row["character"]: (row["id"], row["frequency_rank"]) for row in cursor.fetchall()}

        cursor.execute("SELECT id, character, frequency_rank FROM characters WHERE is_word = 1")
        for row in cursor.fetchall():
            found = [characters.get(ch) for ch in row["character"]]
            if found and all(found):
                ids = ",".join(str(item_id) for item_id, _ in found)
                score = introduction_score(row["frequency_rank"], True, [rank for _, rank in found])
            else:
                ids = None
                score = introduction_score(row["frequency_rank"])
            cursor.execute(
                "UPDATE characters SET component_ids = ?, introduction_score = ? WHERE id = ?",
                (ids, score, row["id"]),
            )

        cursor.execute("UPDATE characters SET introduction_score = frequency_rank WHERE is_word = 0")
        self.conn.commit()

    def add_item(
        self,
        character: str,
        pinyin: str,
        definition: str,
        frequency_rank: int = UNRANKED,
        traditional: str | None = None,
    ) -> LearningItem:
        """Add a single item (mainly for tests and manual entries)."""
        entry = CedictEntry(traditional or character, character, pinyin, [definition])
        table = {character: frequency_rank}
        self.import_items([entry], character_ranks=table, word_ranks=table)
        return self.get_item_by_character(character)

    def get_item(self, item_id: int) -> LearningItem | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM characters WHERE id = ?", (item_id,))
        row = cursor.fetchone()
        return _item_from_row(row) if row else None

    def get_item_by_character(self, character: str) -> LearningItem | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM characters WHERE character = ?", (character,))
        row = cursor.fetchone()
        return _item_from_row(row) if row else None

    def get_characters_for_ids(self, ids: Iterable[int]) -> list[LearningItem]:
        """Items for the given ids, in the order given; unknown ids are skipped."""
        ids = list(ids)
        if not ids:
            return []
        cursor = self.conn.cursor()
        placeholders = ",".join("?" for _ in ids)
        cursor.execute(f"SELECT * FROM characters WHERE id IN ({placeholders})", ids)
        by_id = {row["id"]: _item_from_row(row) for row in cursor.fetchall()}
        return [by_id[i] for i in ids if i in by_id]

    def count_items(self) -> int:
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) AS cnt FROM characters")
        return cursor.fetchone()["cnt"]

    # =========================================================================
    # Progress
    # =========================================================================

    def get_progress(self, item_id: int) -> ProgressRecord | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM user_progress WHERE item_id = ?", (item_id,))
        row = cursor.fetchone()
        return _progress_from_row(row) if row else None

    def save_progress(self, record: ProgressRecord, unlocked_at: datetime | None = None) -> None:
        """Insert or update a progress record."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO user_progress (
                item_id, introduced, introduced_at, times_reviewed, times_correct,
                times_incorrect, current_interval_days, previous_interval_days,
                ease_factor, has_reached_milestone, last_reviewed, next_review, unlocked_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(item_id) DO UPDATE SET
                introduced = excluded.introduced,
                introduced_at = excluded.introduced_at,
                times_reviewed = excluded.times_reviewed,
                times_correct = excluded.times_correct,
                times_incorrect = excluded.times_incorrect,
                current_interval_days = excluded.current_interval_days,
                previous_interval_days = excluded.previous_interval_days,
                ease_factor = excluded.ease_factor,
                has_reached_milestone = excluded.has_reached_milestone,
                last_reviewed = excluded.last_reviewed,
                next_review = excluded.next_review
        """,
            (
                record.item_id,
                record.introduced,
                _ts(record.introduced_at),
                record.times_reviewed,
                record.times_correct,
                record.times_incorrect,
                record.current_interval_days,
                record.previous_interval_days,
                record.ease_factor,
                record.has_reached_milestone,
                _ts(record.last_reviewed),
                _ts(record.next_review),
                _ts(unlocked_at),
            ),
        )
        self.conn.commit()

    def introduce_item(self, item_id: int, now: datetime | None = None) -> ProgressRecord:
        """
        Mark an item introduced; it becomes due for initial study immediately.

        Items that were never unlocked get a progress record first.
        """
        now = now or datetime.now()
        if self.get_item(item_id) is None:
            raise PersistenceError(f"Unknown item {item_id}")
        record = self.get_progress(item_id) or self.scheduler.new_record(item_id, now)
        if not record.introduced:
            record.introduced = True
            record.introduced_at = now
            record.next_review = now
        self.save_progress(record, unlocked_at=now)
        logger.info(f"Introduced item {item_id}")
        return record

    def get_due_items(self, now: datetime | None = None, limit: int | None = None) -> list[StudyItem]:
        """Introduced items due for review, soonest first."""
        now = now or datetime.now()
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT c.*, p.* FROM characters c
            JOIN user_progress p ON c.id = p.item_id
            WHERE p.introduced = 1 AND p.next_review <= ?
            ORDER BY p.next_review ASC, c.id ASC
            LIMIT ?
        """,
            (_ts(now), -1 if limit is None else limit),
        )
        return [StudyItem(_item_from_row(row), _progress_from_row(row)) for row in cursor.fetchall()]

    def submit_answer(self, item_id: int, correct: bool, now: datetime | None = None) -> bool:
        """
        Apply one review result to an introduced item.

        Returns:
            True if this review reached the milestone for the first time

        Raises:
            NotIntroducedError: If the item has no introduced progress record
            PersistenceError: If the update cannot be written
        """
        record = self.get_progress(item_id)
        if record is None or not record.introduced:
            raise NotIntroducedError(item_id)
        updated, reached = self.scheduler.review(record, correct, now)
        try:
            self.save_progress(updated)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not save review for item {item_id}: {e}") from e
        return reached

    def mark_reviewable(self, item_id: int, now: datetime | None = None) -> None:
        """Make an introduced item due now without scoring it."""
        now = now or datetime.now()
        try:
            self.conn.execute(
                "UPDATE user_progress SET next_review = ? WHERE item_id = ? AND introduced = 1",
                (_ts(now), item_id),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not reschedule item {item_id}: {e}") from e

    def get_self_study_items(self, limit: int = 20) -> list[StudyItem]:
        """Introduced items, most recently reviewed first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT c.*, p.* FROM characters c
            JOIN user_progress p ON c.id = p.item_id
            WHERE p.introduced = 1
            ORDER BY p.last_reviewed IS NULL, p.last_reviewed DESC, c.id ASC
            LIMIT ?
        """,
            (limit,),
        )
        return [StudyItem(_item_from_row(row), _progress_from_row(row)) for row in cursor.fetchall()]

    def get_ready_to_learn(self, limit: int | None = None) -> list[LearningItem]:
        """Unlocked items that have not been introduced yet, by introduction score."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT c.* FROM characters c
            JOIN user_progress p ON c.id = p.item_id
            WHERE p.introduced = 0
            ORDER BY c.introduction_score ASC, c.id ASC
            LIMIT ?
        """,
            (-1 if limit is None else limit,),
        )
        return [_item_from_row(row) for row in cursor.fetchall()]

    # =========================================================================
    # Unlocking
    # =========================================================================

    def unlock_next_item(self, now: datetime | None = None) -> LearningItem | None:
        """Unlock the lowest-scoring item without progress. None when all are unlocked."""
        now = now or datetime.now()
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT c.* FROM characters c
            LEFT JOIN user_progress p ON c.id = p.item_id
            WHERE p.item_id IS NULL
            ORDER BY c.introduction_score ASC, c.id ASC
            LIMIT 1
        """)
        row = cursor.fetchone()
        if row is None:
            return None
        item = _item_from_row(row)
        self.save_progress(self.scheduler.new_record(item.id, now), unlocked_at=now)
        logger.info(f"Unlocked {item.character} (score {item.introduction_score:g})")
        return item

    def unlock_for_milestone(self, now: datetime | None = None) -> list[LearningItem]:
        """Unlock the items earned by a review that reached its milestone."""
        unlocked = []
        for _ in range(self.gate.milestone_unlocks(True)):
            item = self.unlock_next_item(now)
            if item is None:
                break
            unlocked.append(item)
        return unlocked

    def _get_meta(self, key: str) -> str | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM store_meta WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def _set_meta(self, key: str, value: str) -> None:
        self.conn.execute(
            """
            INSERT INTO store_meta (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
            (key, value),
        )
        self.conn.commit()

    def _count(self, where: str) -> int:
        cursor = self.conn.cursor()
        cursor.execute(f"SELECT COUNT(*) AS cnt FROM user_progress WHERE {where}")
        return cursor.fetchone()["cnt"]

    def check_and_unlock(self, now: datetime | None = None) -> UnlockDecision:
        """
        Ask the unlock gate what to unlock, and unlock it.

        On first run (no progress at all) the initial batch is unlocked.
        """
        now = now or datetime.now()
        if self._count("1 = 1") == 0:
            decision = self.gate.first_run(self.count_items())
        else:
            decision = self.gate.evaluate(
                now=now,
                last_unlock_at=_parse_ts(self._get_meta("last_unlock_at")),
                pending_count=self._count("introduced = 0"),
                incomplete_count=self._count("introduced = 1 AND times_reviewed = 0"),
            )

        unlocked = 0
        for _ in range(decision.unlock_count):
            if self.unlock_next_item(now) is None:
                break
            unlocked += 1
        if unlocked:
            self._set_meta("last_unlock_at", _ts(now))
        if unlocked != decision.unlock_count:
            decision.ready_to_learn_count -= decision.unlock_count - unlocked
            decision.unlock_count = unlocked
        return decision

    # =========================================================================
    # Practice Log and Sessions
    # =========================================================================

    def record_practice(
        self,
        item_id: int,
        mode: str,
        question_type: str,
        user_answer: str,
        correct: bool,
        now: datetime | None = None,
    ) -> int:
        """Log one scored answer. Returns the log row id."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                INSERT INTO practice_log (item_id, mode, question_type, user_answer, is_correct, practiced_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (item_id, mode, question_type, user_answer, correct, _ts(now or datetime.now())),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not log practice for item {item_id}: {e}") from e
        return cursor.lastrowid

    def get_practice_log(self, item_id: int | None = None, limit: int = 50) -> list[dict]:
        cursor = self.conn.cursor()
        if item_id is None:
            cursor.execute("SELECT * FROM practice_log ORDER BY id DESC LIMIT ?", (limit,))
        else:
            cursor.execute(
                "SELECT * FROM practice_log WHERE item_id = ? ORDER BY id DESC LIMIT ?",
                (item_id, limit),
            )
        return [dict(row) for row in cursor.fetchall()]

    def start_session(self, mode: str, now: datetime | None = None) -> int:
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO study_sessions (mode, started_at) VALUES (?, ?)",
            (mode, _ts(now or datetime.now())),
        )
        self.conn.commit()
        return cursor.lastrowid

    def end_session(
        self,
        session_id: int,
        studied: int,
        correct: int,
        incorrect: int,
        now: datetime | None = None,
    ) -> None:
        try:
            self.conn.execute(
                """
                UPDATE study_sessions
                SET ended_at = ?, cards_studied = ?, cards_correct = ?, cards_incorrect = ?
                WHERE id = ?
            """,
                (_ts(now or datetime.now()), studied, correct, incorrect, session_id),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not close session {session_id}: {e}") from e

    def get_recent_sessions(self, limit: int = 10) -> list[dict]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM study_sessions ORDER BY id DESC LIMIT ?", (limit,))
        return [dict(row) for row in cursor.fetchall()]

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self, now: datetime | None = None) -> dict:
        """Dashboard counts."""
        now = now or datetime.now()
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT
                COUNT(*) AS unlocked,
                COALESCE(SUM(introduced), 0) AS introduced,
                COALESCE(SUM(has_reached_milestone), 0) AS milestone,
                COALESCE(SUM(CASE WHEN introduced = 1 AND next_review <= ? THEN 1 ELSE 0 END), 0) AS due,
                COALESCE(SUM(times_correct), 0) AS correct,
                COALESCE(SUM(times_reviewed), 0) AS reviewed
            FROM user_progress
        """,
            (_ts(now),),
        )
        row = cursor.fetchone()
        return {
            "total_items": self.count_items(),
            "introduced": row["introduced"],
            "ready_to_learn": row["unlocked"] - row["introduced"],
            "reached_milestone": row["milestone"],
            "due_for_review": row["due"],
            "retention": (row["correct"] / row["reviewed"]) if row["reviewed"] else 0.0,
        }
