"""
Network study: questions generated from the arrows of a flashcard set.

Every arrow asks "source --label--> ?" with the destination's value as the
answer. Modes:
- self-test: typed answer, small typos forgiven
- spaced-repetition: self-test plus SM-2 progress per arrow, saved after
  every answer
- flash: the learner reveals the answer and marks themselves
- multiple-choice: pick the destination among up to four options
- custom-path: walk the network outward from one side
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Sequence

from loguru import logger

from hanzinet.documents.models import Arrow, Flashcard, FlashcardSet
from hanzinet.documents.progress_store import ProgressStore
from hanzinet.errors import SessionStateError
from hanzinet.scheduling.sm2 import SM2Scheduler, StudyProgress
from hanzinet.verification import CheckerOptions, QuestionType, get_checker

MAX_WRONG_OPTIONS = 3
CUSTOM_PATH_MAX_DEPTH = 5
NEUTRAL_DIFFICULTY = 3.0


class StudyMode(str, Enum):
    SELF_TEST = "self-test"
    SPACED_REPETITION = "spaced-repetition"
    FLASH = "flash"
    MULTIPLE_CHOICE = "multiple-choice"
    CUSTOM_PATH = "custom-path"


@dataclass
class StudyQuestion:
    """One arrow turned into a question."""

    id: str
    arrow_id: str
    flashcard_id: str
    source_value: str
    arrow_label: str
    correct_answer: str
    mode: StudyMode
    options: list[str] | None = None
    user_answer: str | None = None
    is_correct: bool | None = None


def outgoing_arrows(flashcard: Flashcard, side_id: str) -> list[Arrow]:
    return [arrow for arrow in flashcard.arrows if arrow.source_id == side_id]


def find_most_connected_side(flashcard: Flashcard) -> str | None:
    """Side with the most arrows in or out; the first side when nothing is connected."""
    if not flashcard.sides:
        return None
    counts = {side.id: 0 for side in flashcard.sides}
    for arrow in flashcard.arrows:
        counts[arrow.source_id] += 1
        counts[arrow.destination_id] += 1
    best_id, best = flashcard.sides[0].id, 0
    for side_id, count in counts.items():
        if count > best:
            best_id, best = side_id, count
    return best_id


def _question(flashcard: Flashcard, arrow: Arrow, mode: StudyMode, question_id: str) -> StudyQuestion:
    source = flashcard.side(arrow.source_id)
    destination = flashcard.side(arrow.destination_id)
    return StudyQuestion(
        id=question_id,
        arrow_id=arrow.id,
        flashcard_id=flashcard.id,
        source_value=source.value if source else "",
        arrow_label=arrow.label,
        correct_answer=destination.value if destination else "",
        mode=mode,
    )


def multiple_choice_options(
    correct_answer: str,
    flashcard: Flashcard,
    arrow_label: str,
    rng: random.Random | None = None,
) -> list[str]:
    """
    The correct answer plus up to three distractors, shuffled.

    Distractors come from destinations of arrows with the same label
    first, then from any other side of the flashcard.
    """
    rng = rng or random.Random()
    wrong: dict[str, None] = {}
    for arrow in flashcard.arrows:
        if arrow.label != arrow_label:
            continue
        destination = flashcard.side(arrow.destination_id)
        if destination and destination.value != correct_answer:
            wrong.setdefault(destination.value)

    for side in flashcard.sides:
        if len(wrong) >= MAX_WRONG_OPTIONS:
            break
        if side.value != correct_answer:
            wrong.setdefault(side.value)

    options = [correct_answer, *list(wrong)[:MAX_WRONG_OPTIONS]]
    rng.shuffle(options)
    return options


def generate_questions(
    flashcards: Sequence[Flashcard],
    mode: StudyMode | str,
    count: int = 20,
    rng: random.Random | None = None,
    arrow_ids: Sequence[str] | None = None,
) -> list[StudyQuestion]:
    """
    Pick up to `count` random arrows and turn them into questions.

    Args:
        flashcards: Flashcards to draw arrows from
        mode: Study mode (multiple-choice questions get options)
        count: Maximum number of questions
        rng: Random source
        arrow_ids: Restrict to these arrows (e.g. the ones due for review)

    Returns:
        Questions with ids q0, q1, ...
    """
    mode = StudyMode(mode)
    rng = rng or random.Random()
    pool = [(card, arrow) for card in flashcards for arrow in card.arrows]
    if arrow_ids is not None:
        wanted = set(arrow_ids)
        pool = [(card, arrow) for card, arrow in pool if arrow.id in wanted]
    if not pool:
        return []

    rng.shuffle(pool)
    questions = []
    for i, (card, arrow) in enumerate(pool[:count]):
        question = _question(card, arrow, mode, f"q{i}")
        if mode == StudyMode.MULTIPLE_CHOICE:
            question.options = multiple_choice_options(question.correct_answer, card, arrow.label, rng)
        questions.append(question)
    return questions


def generate_custom_path(
    flashcard: Flashcard, start_side_id: str, max_depth: int = CUSTOM_PATH_MAX_DEPTH
) -> list[StudyQuestion]:
    """Depth-first walk along outgoing arrows, each side visited once."""
    visited: set[str] = set()
    path: list[StudyQuestion] = []

    def traverse(side_id: str, depth: int) -> None:
        if depth >= max_depth or side_id in visited:
            return
        visited.add(side_id)
        for index, arrow in enumerate(outgoing_arrows(flashcard, side_id)):
            path.append(_question(flashcard, arrow, StudyMode.CUSTOM_PATH, f"path{depth}-{index}"))
            traverse(arrow.destination_id, depth + 1)

    traverse(start_side_id, 0)
    return path


def calculate_difficulty(times_studied: int, times_correct: int, average_ms: float) -> float:
    """SM-2 difficulty on a 1-5 scale from accuracy and answer time."""
    if times_studied == 0:
        return NEUTRAL_DIFFICULTY
    accuracy = times_correct / times_studied
    difficulty = 5 - accuracy * 4
    if average_ms > 10_000:
        difficulty += 0.5
    if average_ms > 20_000:
        difficulty += 0.5
    return max(1.0, min(5.0, difficulty))


# =============================================================================
# Session
# =============================================================================


@dataclass
class NetworkSessionStats:
    total: int = 0
    correct: int = 0
    incorrect: int = 0


@dataclass
class NetworkStudySession:
    """
    Walks a list of network questions.

    Spaced-repetition sessions keep SM-2 progress for each question's
    arrow and save it after every answer. A failed save is logged and
    the session goes on.
    """

    flashcard_set: FlashcardSet
    mode: StudyMode
    questions: list[StudyQuestion]
    progress_store: ProgressStore | None = None
    set_path: Path | None = None
    scheduler: SM2Scheduler = field(default_factory=SM2Scheduler)
    options: CheckerOptions = field(default_factory=CheckerOptions)
    progress: dict[str, StudyProgress] = field(default_factory=dict)
    index: int = 0
    stats: NetworkSessionStats = field(default_factory=NetworkSessionStats)
    started_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.mode = StudyMode(self.mode)
        if self.mode == StudyMode.SPACED_REPETITION:
            self._load_progress()

    @classmethod
    def create(
        cls,
        flashcard_set: FlashcardSet,
        mode: StudyMode | str,
        count: int = 20,
        rng: random.Random | None = None,
        progress_store: ProgressStore | None = None,
        set_path: Path | None = None,
        start_side_id: str | None = None,
        scheduler: SM2Scheduler | None = None,
        options: CheckerOptions | None = None,
    ) -> NetworkStudySession:
        """
        Generate questions for a set and open a session on them.

        Custom-path sessions start from `start_side_id`, or the most
        connected side of the first flashcard with sides. Spaced
        repetition asks the `count` most overdue arrows; arrows never
        studied count as due now.
        """
        mode = StudyMode(mode)
        if mode == StudyMode.CUSTOM_PATH:
            card = next((c for c in flashcard_set.flashcards if c.sides), None)
            if card is None:
                raise SessionStateError("Custom path needs a flashcard with at least one side")
            start = start_side_id or find_most_connected_side(card)
            questions = generate_custom_path(card, start)
        elif mode == StudyMode.SPACED_REPETITION and progress_store is not None:
            stored = progress_store.load(flashcard_set.id, set_path)
            due = ProgressStore.ready_arrows(
                [arrow.id for _, arrow in flashcard_set.all_arrows()], stored, limit=count
            )
            questions = generate_questions(flashcard_set.flashcards, mode, count, rng, arrow_ids=due)
        else:
            questions = generate_questions(flashcard_set.flashcards, mode, count, rng)

        return cls(
            flashcard_set=flashcard_set,
            mode=mode,
            questions=questions,
            progress_store=progress_store,
            set_path=set_path,
            scheduler=scheduler or SM2Scheduler(),
            options=options or CheckerOptions(),
        )

    def _load_progress(self) -> None:
        stored = {}
        if self.progress_store is not None:
            stored = self.progress_store.load(self.flashcard_set.id, self.set_path)
        self.progress = dict(stored)
        for question in self.questions:
            if question.arrow_id not in self.progress:
                self.progress[question.arrow_id] = self.scheduler.initialize_progress(question.arrow_id)

    @property
    def current(self) -> StudyQuestion | None:
        if self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def finished(self) -> bool:
        return self.current is None

    def answer(self, user_answer: str) -> bool:
        """Check a typed (or chosen) answer to the current question."""
        question = self.current
        if question is None:
            raise SessionStateError("No question to answer")
        if self.mode == StudyMode.MULTIPLE_CHOICE:
            correct = user_answer == question.correct_answer
        else:
            checker = get_checker(QuestionType.SELF_TEST, self.options)
            correct = checker.check(user_answer, question.correct_answer).correct
        question.user_answer = user_answer
        return self._record(question, correct)

    def mark(self, correct: bool) -> bool:
        """Self-assessment after revealing a flash card."""
        question = self.current
        if question is None:
            raise SessionStateError("No question to mark")
        return self._record(question, correct)

    def _record(self, question: StudyQuestion, correct: bool) -> bool:
        question.is_correct = correct
        self.stats.total += 1
        if correct:
            self.stats.correct += 1
        else:
            self.stats.incorrect += 1

        if self.mode == StudyMode.SPACED_REPETITION:
            existing = self.progress.get(question.arrow_id)
            if existing is not None:
                self.progress[question.arrow_id] = self.scheduler.compute_next_state(existing, correct)
                self.save_progress()
        return correct

    def next(self) -> StudyQuestion | None:
        self.index += 1
        return self.current

    def save_progress(self) -> None:
        if self.progress_store is None or self.mode != StudyMode.SPACED_REPETITION:
            return
        try:
            self.progress_store.save(
                self.flashcard_set.id, self.flashcard_set.name, self.progress, self.set_path
            )
        except Exception as e:
            logger.error(f"Failed to save progress for set {self.flashcard_set.id}: {e}")

    def end(self) -> NetworkSessionStats:
        """Final save and stats."""
        self.save_progress()
        logger.info(
            f"Network study ({self.mode.value}) on {self.flashcard_set.name!r}: "
            f"{self.stats.correct}/{self.stats.total} correct"
        )
        return self.stats
