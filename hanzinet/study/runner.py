"""
Study session state machine.

A session turns a batch of learning items into a queue of questions (one
meaning and one pronunciation question per item) and walks it:

    Loading -> Presenting -> Feedback -> Presenting ... -> Complete

Rules:
- A card is complete once both of its questions have been answered
  correctly. A wrong answer sends the question to the back of the queue
  and marks the card as missed for the rest of the session.
- Review sessions submit each card as soon as it is complete. Initial
  study submits completed cards when the queue runs out. Self-study
  never touches the schedule.
- A pronunciation answer with the right syllables but wrong tones gets
  one free retry (review and initial study only). The free miss is
  neither scored nor logged.
- Exiting early resolves every card once: complete cards are submitted
  as correct; started review cards are submitted as incorrect;
  unfinished initial-study cards are made reviewable instead.
- Practice-log failures are logged and ignored. Failures while
  resolving cards at the end raise PersistenceError and leave the
  session retryable.
"""

from __future__ import annotations

import random
from collections import deque
from typing import Sequence

from loguru import logger

from hanzinet.errors import HanziNetError, PersistenceError, SessionStateError
from hanzinet.store.models import LearningItem
from hanzinet.verification import CheckerOptions, QuestionType, check_answer

from .models import (
    CARD_QUESTION_TYPES,
    CardProgress,
    Complete,
    Feedback,
    LearningBackend,
    Loading,
    Presenting,
    Question,
    SessionMode,
    SessionState,
    SessionStats,
)


def build_questions(item: LearningItem) -> list[Question]:
    """The meaning and pronunciation questions for one item."""
    references = {
        QuestionType.MEANING: item.definition,
        QuestionType.PRONUNCIATION: item.pinyin,
    }
    return [
        Question(item_id=item.id, question_type=qt, prompt=item.character, reference=references[qt])
        for qt in CARD_QUESTION_TYPES
    ]


class SessionRunner:
    """
    Runs one study session against a learning backend.

    Usage:
        runner = SessionRunner(store, SessionMode.REVIEW)
        state = runner.start()
        while isinstance(state, Presenting):
            runner.submit_answer(input(state.question.prompt))
            state = runner.advance()
    """

    def __init__(
        self,
        backend: LearningBackend,
        mode: SessionMode | str,
        rng: random.Random | None = None,
        batch_size: int = 20,
        shuffle: bool = True,
        options: CheckerOptions | None = None,
    ):
        """
        Initialize a session.

        Args:
            backend: Persistent learning state
            mode: review, initial-study or self-study
            rng: Random source for question order
            batch_size: Items to load when start() is given none
            shuffle: Shuffle questions (off keeps item order, meaning first)
            options: Answer checking settings
        """
        self.backend = backend
        self.mode = SessionMode(mode)
        self.rng = rng or random.Random()
        self.batch_size = batch_size
        self.shuffle = shuffle
        self.options = options or CheckerOptions()

        self.state: SessionState = Loading()
        self.cards: dict[int, CardProgress] = {}
        self.queue: deque[Question] = deque()
        self.stats = SessionStats()
        self.session_id: int | None = None
        self.unlocked_items: list[LearningItem] = []
        self._retry_used: set[str] = set()
        self._session_closed = False

    # =========================================================================
    # Transitions
    # =========================================================================

    def start(self, items: Sequence[LearningItem] | None = None) -> SessionState:
        """
        Load the items and present the first question.

        Args:
            items: Items to study; loaded from the backend when omitted
                (due items for review, recent items for self-study)

        Returns:
            Presenting, or Complete when there is nothing to study
        """
        if not isinstance(self.state, Loading):
            return self.state
        if items is None:
            items = self._load_items()

        questions: list[Question] = []
        for item in items:
            if item.id in self.cards:
                continue
            self.cards[item.id] = CardProgress(item=item)
            questions.extend(build_questions(item))
        if self.shuffle:
            self.rng.shuffle(questions)
        self.queue = deque(questions)
        self.stats.total_cards = len(self.cards)

        self.session_id = self.backend.start_session(self.mode.value)
        logger.info(
            f"Started {self.mode.value} session {self.session_id} "
            f"with {len(self.cards)} cards ({len(self.queue)} questions)"
        )

        if not self.queue:
            return self._finish(exited_early=False)
        self.state = Presenting(self.queue[0], len(self.queue))
        return self.state

    def submit_answer(self, answer: str) -> SessionState:
        """
        Check an answer to the presented question.

        Only valid while presenting; otherwise the current state is
        returned unchanged, so a repeated submit has no effect.
        """
        if not isinstance(self.state, Presenting):
            return self.state

        question = self.state.question
        result = check_answer(answer, question.reference, question.question_type, self.options)
        card = self.cards[question.item_id]
        card.attempted = True

        if (
            not result.correct
            and result.wrong_tone
            and self.mode != SessionMode.SELF_STUDY
            and question.id not in self._retry_used
        ):
            self._retry_used.add(question.id)
            self.stats.retries_granted += 1
            logger.debug(f"Wrong tones for {question.id}, retry allowed")
            self.state = Feedback(question, result, retry_allowed=True)
            return self.state

        self._retry_used.discard(question.id)
        self.queue.popleft()
        self.stats.total_answers += 1
        self._log_practice(question, answer, result.correct)

        if result.correct:
            card.answered[question.question_type] = True
            self.stats.successful_answers += 1
            if card.is_complete and not card.is_resolved:
                self._on_card_complete(card)
        else:
            card.ever_incorrect = True
            card.answered[question.question_type] = False
            self.queue.append(question)

        self.state = Feedback(question, result, retry_allowed=False, card_complete=card.is_complete)
        return self.state

    def advance(self) -> SessionState:
        """Leave feedback: re-present after a free retry, else next question or Complete."""
        if not isinstance(self.state, Feedback):
            return self.state
        if self.state.retry_allowed:
            self.state = Presenting(self.state.question, len(self.queue))
            return self.state
        if not self.queue:
            return self._finish(exited_early=False)
        self.state = Presenting(self.queue[0], len(self.queue))
        return self.state

    def exit_early(self) -> SessionState:
        """Stop now and resolve every card. Repeated calls return the same Complete."""
        if isinstance(self.state, Complete):
            return self.state
        if isinstance(self.state, Loading):
            self.state = Complete(self.stats, exited_early=True)
            return self.state
        return self._finish(exited_early=True)

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_items(self) -> list[LearningItem]:
        if self.mode == SessionMode.REVIEW:
            rows = self.backend.get_due_items(limit=self.batch_size)
        elif self.mode == SessionMode.SELF_STUDY:
            rows = self.backend.get_self_study_items(limit=self.batch_size)
        else:
            raise SessionStateError("Initial study needs the newly introduced items")
        return [row.item for row in rows]

    def _log_practice(self, question: Question, answer: str, correct: bool) -> None:
        try:
            self.backend.record_practice(
                question.item_id,
                self.mode.value,
                question.question_type.value,
                answer,
                correct,
            )
        except Exception as e:
            logger.warning(f"Failed to record practice for {question.id}: {e}")

    def _submit(self, card: CardProgress, correct: bool) -> None:
        item_id = card.item.id
        try:
            reached = self.backend.submit_answer(item_id, correct)
        except HanziNetError:
            raise
        except Exception as e:
            raise PersistenceError(f"Could not submit result for item {item_id}: {e}") from e

        card.submitted = True
        card.submitted_correct = correct
        logger.debug(f"Submitted item {item_id} as {'correct' if correct else 'incorrect'}")

        if reached:
            self.unlocked_items.extend(self.backend.unlock_for_milestone())

    def _on_card_complete(self, card: CardProgress) -> None:
        if self.mode == SessionMode.SELF_STUDY:
            card.submitted = True
            card.submitted_correct = True
        elif self.mode == SessionMode.REVIEW:
            try:
                self._submit(card, True)
            except PersistenceError as e:
                # retried when the session ends
                logger.warning(str(e))

    def _reconcile(self) -> None:
        for card in self.cards.values():
            if card.is_resolved:
                continue
            if card.is_complete:
                if self.mode == SessionMode.SELF_STUDY:
                    card.submitted = True
                    card.submitted_correct = True
                else:
                    self._submit(card, True)
            elif self.mode == SessionMode.REVIEW and (card.ever_incorrect or card.attempted):
                self._submit(card, False)
            elif self.mode == SessionMode.INITIAL_STUDY:
                try:
                    self.backend.mark_reviewable(card.item.id)
                except HanziNetError:
                    raise
                except Exception as e:
                    raise PersistenceError(f"Could not reschedule item {card.item.id}: {e}") from e
                card.marked_reviewable = True

    def _final_stats(self) -> SessionStats:
        cards = self.cards.values()
        self.stats.cards_correct = sum(1 for c in cards if c.is_complete and not c.ever_incorrect)
        self.stats.cards_incorrect = sum(
            1 for c in cards if c.ever_incorrect or c.submitted_correct is False
        )
        return self.stats

    def _finish(self, exited_early: bool) -> SessionState:
        self._reconcile()
        stats = self._final_stats()
        if not self._session_closed and self.session_id is not None:
            self.backend.end_session(
                self.session_id, stats.cards_studied, stats.cards_correct, stats.cards_incorrect
            )
            self._session_closed = True
        logger.info(
            f"Session {self.session_id} complete: {stats.cards_correct} correct, "
            f"{stats.cards_incorrect} incorrect{' (exited early)' if exited_early else ''}"
        )
        self.state = Complete(stats, exited_early=exited_early)
        return self.state
