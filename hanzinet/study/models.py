"""
Study session types.

Session state is a tagged union: exactly one of Loading, Presenting,
Feedback or Complete. Per-card sub-progress lives in CardProgress.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol, Union

from hanzinet.store.models import LearningItem, StudyItem
from hanzinet.verification import AnswerResult, QuestionType


class SessionMode(str, Enum):
    """How a session treats the scheduler."""

    REVIEW = "review"  # Due items; results submitted as each card completes
    INITIAL_STUDY = "initial-study"  # Newly introduced items; results submitted at the end
    SELF_STUDY = "self-study"  # Practice only; the schedule is never touched


CARD_QUESTION_TYPES = (QuestionType.MEANING, QuestionType.PRONUNCIATION)


@dataclass(frozen=True)
class Question:
    """One question about one item."""

    item_id: int
    question_type: QuestionType
    prompt: str
    reference: str

    @property
    def id(self) -> str:
        return f"{self.item_id}-{self.question_type.value}"


@dataclass
class CardProgress:
    """Per-card state within a session."""

    item: LearningItem
    answered: dict[QuestionType, bool] = field(
        default_factory=lambda: {qt: False for qt in CARD_QUESTION_TYPES}
    )
    ever_incorrect: bool = False
    attempted: bool = False
    submitted: bool = False
    submitted_correct: bool | None = None
    marked_reviewable: bool = False

    @property
    def is_complete(self) -> bool:
        return all(self.answered.values())

    @property
    def is_resolved(self) -> bool:
        return self.submitted or self.marked_reviewable


@dataclass
class SessionStats:
    """Aggregate counters for a session."""

    total_cards: int = 0
    cards_correct: int = 0
    cards_incorrect: int = 0
    successful_answers: int = 0
    total_answers: int = 0
    retries_granted: int = 0

    @property
    def cards_studied(self) -> int:
        return self.cards_correct + self.cards_incorrect

    @property
    def accuracy(self) -> float:
        if self.total_answers == 0:
            return 0.0
        return self.successful_answers / self.total_answers


# =============================================================================
# States
# =============================================================================


@dataclass(frozen=True)
class Loading:
    """Session created, items not loaded yet."""


@dataclass(frozen=True)
class Presenting:
    """Waiting for an answer to `question`."""

    question: Question
    remaining: int


@dataclass(frozen=True)
class Feedback:
    """An answer was checked; `advance()` moves on."""

    question: Question
    result: AnswerResult
    retry_allowed: bool = False
    card_complete: bool = False


@dataclass(frozen=True)
class Complete:
    """Session over; stats are final."""

    stats: SessionStats
    exited_early: bool = False


SessionState = Union[Loading, Presenting, Feedback, Complete]


# =============================================================================
# Backend
# =============================================================================


class LearningBackend(Protocol):
    """Commands a session issues against persistent learning state."""

    def introduce_item(self, item_id: int, now: datetime | None = None) -> object: ...

    def get_due_items(self, now: datetime | None = None, limit: int | None = None) -> list[StudyItem]: ...

    def get_self_study_items(self, limit: int = 20) -> list[StudyItem]: ...

    def submit_answer(self, item_id: int, correct: bool, now: datetime | None = None) -> bool: ...

    def mark_reviewable(self, item_id: int, now: datetime | None = None) -> None: ...

    def unlock_next_item(self, now: datetime | None = None) -> LearningItem | None: ...

    def unlock_for_milestone(self, now: datetime | None = None) -> list[LearningItem]: ...

    def record_practice(
        self,
        item_id: int,
        mode: str,
        question_type: str,
        user_answer: str,
        correct: bool,
        now: datetime | None = None,
    ) -> object: ...

    def start_session(self, mode: str, now: datetime | None = None) -> int: ...

    def end_session(
        self, session_id: int, studied: int, correct: int, incorrect: int, now: datetime | None = None
    ) -> None: ...

    def get_characters_for_ids(self, ids: Iterable[int]) -> list[LearningItem]: ...
