"""
Unit tests for the study session state machine.

Uses an in-memory backend that records every command the session
issues, so the tests can assert on submissions, reschedules and logs.

Run: pytest tests/unit/test_session_runner.py -v
"""

import random

import pytest

from hanzinet.errors import PersistenceError, SessionStateError
from hanzinet.scheduling import ProgressRecord, UnlockConfig, UnlockGate
from hanzinet.store.models import LearningItem, StudyItem
from hanzinet.study import (
    Complete,
    Feedback,
    Loading,
    Presenting,
    SessionMode,
    SessionRunner,
    build_questions,
)
from hanzinet.verification import QuestionType

XUE = LearningItem(
    id=1, character="学", simplified="学", traditional=None, pinyin="xue2", definition="to learn; to study"
)
HAO = LearningItem(id=2, character="好", simplified="好", traditional=None, pinyin="hao3", definition="good; well")
REN = LearningItem(id=3, character="人", simplified="人", traditional=None, pinyin="ren2", definition="person")

ANSWERS = {
    (1, QuestionType.MEANING): "to learn",
    (1, QuestionType.PRONUNCIATION): "xue2",
    (2, QuestionType.MEANING): "good",
    (2, QuestionType.PRONUNCIATION): "hao3",
    (3, QuestionType.MEANING): "person",
    (3, QuestionType.PRONUNCIATION): "ren2",
}


class FakeBackend:
    """Records session commands in memory."""

    def __init__(self, due=None, self_study=None, gate=None):
        self.due = due or []
        self.gate = gate or UnlockGate()
        self.self_study = self_study or []
        self.submissions = []
        self.reviewable = []
        self.practice = []
        self.sessions_started = []
        self.sessions_ended = []
        self.milestone_items = set()
        self.unlockable = []
        self.fail_practice = False
        self.fail_submits = 0
        self.fail_reviewable = 0

    def introduce_item(self, item_id, now=None):
        return None

    def get_due_items(self, now=None, limit=None):
        return [StudyItem(item, ProgressRecord(item_id=item.id, introduced=True)) for item in self.due][:limit]

    def get_self_study_items(self, limit=20):
        return [StudyItem(item, ProgressRecord(item_id=item.id, introduced=True)) for item in self.self_study][
            :limit
        ]

    def submit_answer(self, item_id, correct, now=None):
        if self.fail_submits:
            self.fail_submits -= 1
            raise RuntimeError("database is locked")
        self.submissions.append((item_id, correct))
        return correct and item_id in self.milestone_items

    def mark_reviewable(self, item_id, now=None):
        if self.fail_reviewable:
            self.fail_reviewable -= 1
            raise RuntimeError("disk I/O error")
        self.reviewable.append(item_id)

    def unlock_next_item(self, now=None):
        return self.unlockable.pop(0) if self.unlockable else None

    def unlock_for_milestone(self, now=None):
        unlocked = [self.unlock_next_item(now) for _ in range(self.gate.milestone_unlocks(True))]
        return [item for item in unlocked if item is not None]

    def record_practice(self, item_id, mode, question_type, user_answer, correct, now=None):
        if self.fail_practice:
            raise RuntimeError("practice log unavailable")
        self.practice.append((item_id, mode, question_type, user_answer, correct))

    def start_session(self, mode, now=None):
        self.sessions_started.append(mode)
        return len(self.sessions_started)

    def end_session(self, session_id, studied, correct, incorrect, now=None):
        self.sessions_ended.append((session_id, studied, correct, incorrect))

    def get_characters_for_ids(self, ids):
        return []


def correct_answer(state):
    question = state.question
    return ANSWERS[(question.item_id, question.question_type)]


def answer(runner, text):
    runner.submit_answer(text)
    return runner.advance()


def answer_correctly(runner, count):
    state = runner.state
    for _ in range(count):
        state = answer(runner, correct_answer(state))
    return state


@pytest.fixture
def backend():
    return FakeBackend(due=[XUE])


def make_runner(backend, mode=SessionMode.REVIEW, **kwargs):
    return SessionRunner(backend, mode, shuffle=False, **kwargs)


class TestQuestions:
    """Test question construction."""

    def test_two_questions_per_item(self):
        meaning, pronunciation = build_questions(XUE)
        assert meaning.question_type == QuestionType.MEANING
        assert meaning.reference == "to learn; to study"
        assert pronunciation.reference == "xue2"
        assert meaning.prompt == pronunciation.prompt == "学"
        assert meaning.id == "1-meaning"

    def test_shuffle_is_seeded(self):
        first = SessionRunner(FakeBackend(), SessionMode.SELF_STUDY, rng=random.Random(7))
        second = SessionRunner(FakeBackend(), SessionMode.SELF_STUDY, rng=random.Random(7))
        first.start([XUE, HAO, REN])
        second.start([XUE, HAO, REN])
        assert [q.id for q in first.queue] == [q.id for q in second.queue]
        assert len(first.queue) == 6


class TestStart:
    """Test loading."""

    def test_starts_in_loading(self, backend):
        assert isinstance(make_runner(backend).state, Loading)

    def test_review_loads_due_items(self, backend):
        state = make_runner(backend).start()
        assert isinstance(state, Presenting)
        assert state.question.id == "1-meaning"
        assert state.remaining == 2
        assert backend.sessions_started == ["review"]

    def test_self_study_loads_recent_items(self):
        backend = FakeBackend(self_study=[HAO])
        state = make_runner(backend, SessionMode.SELF_STUDY).start()
        assert state.question.item_id == 2

    def test_initial_study_needs_items(self, backend):
        with pytest.raises(SessionStateError):
            make_runner(backend, SessionMode.INITIAL_STUDY).start()

    def test_duplicate_items_collapse(self, backend):
        runner = make_runner(backend)
        runner.start([XUE, XUE])
        assert runner.stats.total_cards == 1
        assert len(runner.queue) == 2

    def test_nothing_due_completes_immediately(self):
        backend = FakeBackend()
        state = make_runner(backend).start()
        assert isinstance(state, Complete)
        assert not state.exited_early
        assert backend.sessions_ended == [(1, 0, 0, 0)]


class TestReview:
    """Test review sessions."""

    def test_missed_question_requeued_and_card_counted_incorrect(self, backend):
        runner = make_runner(backend)
        runner.start()

        state = answer(runner, "to learn")
        assert state.question.question_type == QuestionType.PRONUNCIATION

        feedback = runner.submit_answer("ma1")
        assert isinstance(feedback, Feedback)
        assert not feedback.result.correct
        assert not feedback.retry_allowed
        state = runner.advance()
        assert state.question.question_type == QuestionType.PRONUNCIATION

        feedback = runner.submit_answer("xue2")
        assert feedback.card_complete
        assert backend.submissions == [(1, True)]

        state = runner.advance()
        assert isinstance(state, Complete)
        assert state.stats.cards_correct == 0
        assert state.stats.cards_incorrect == 1
        assert state.stats.total_answers == 3
        assert state.stats.successful_answers == 2
        assert backend.submissions == [(1, True)]
        assert backend.sessions_ended == [(1, 1, 0, 1)]

    def test_clean_card(self, backend):
        runner = make_runner(backend)
        runner.start()
        state = answer_correctly(runner, 2)
        assert isinstance(state, Complete)
        assert state.stats.cards_correct == 1
        assert state.stats.cards_incorrect == 0
        assert state.stats.accuracy == 1.0

    def test_every_answer_logged(self, backend):
        runner = make_runner(backend)
        runner.start()
        answer(runner, "to eat")
        answer_correctly(runner, 2)
        assert [p[4] for p in backend.practice] == [False, True, True]
        assert backend.practice[0] == (1, "review", "meaning", "to eat", False)

    def test_submit_failure_retried_at_end(self, backend):
        backend.fail_submits = 1
        runner = make_runner(backend)
        runner.start()
        state = answer_correctly(runner, 2)
        assert isinstance(state, Complete)
        assert backend.submissions == [(1, True)]

    def test_milestone_unlocks_next_item(self, backend):
        backend.milestone_items = {1}
        backend.unlockable = [REN]
        runner = make_runner(backend)
        runner.start()
        answer_correctly(runner, 2)
        assert runner.unlocked_items == [REN]

    @pytest.mark.parametrize("per_milestone,expected", [(0, []), (2, [REN, HAO])])
    def test_milestone_unlock_count(self, per_milestone, expected):
        backend = FakeBackend(due=[XUE], gate=UnlockGate(UnlockConfig(unlocks_per_milestone=per_milestone)))
        backend.milestone_items = {1}
        backend.unlockable = [REN, HAO]
        runner = make_runner(backend)
        runner.start()
        answer_correctly(runner, 2)
        assert runner.unlocked_items == expected

    def test_no_unlock_without_milestone(self, backend):
        backend.unlockable = [REN]
        runner = make_runner(backend)
        runner.start()
        answer_correctly(runner, 2)
        assert runner.unlocked_items == []
        assert backend.unlockable == [REN]


class TestWrongToneRetry:
    """Test the free retry for tone mistakes."""

    def test_one_free_retry(self, backend):
        runner = make_runner(backend)
        runner.start()
        answer(runner, "to learn")

        feedback = runner.submit_answer("xue3")
        assert feedback.retry_allowed
        assert feedback.result.wrong_tone
        assert runner.stats.total_answers == 1
        assert len(backend.practice) == 1

        state = runner.advance()
        assert isinstance(state, Presenting)
        assert state.question.id == "1-pronunciation"

        feedback = runner.submit_answer("xue3")
        assert not feedback.retry_allowed
        assert runner.cards[1].ever_incorrect
        assert runner.stats.retries_granted == 1

    def test_retry_then_correct_keeps_card_clean(self, backend):
        runner = make_runner(backend)
        runner.start()
        answer(runner, "to learn")
        runner.submit_answer("xue3")
        runner.advance()
        state = answer(runner, "xue2")
        assert isinstance(state, Complete)
        assert state.stats.cards_correct == 1
        assert backend.submissions == [(1, True)]

    def test_no_retry_in_self_study(self):
        backend = FakeBackend(self_study=[XUE])
        runner = make_runner(backend, SessionMode.SELF_STUDY)
        runner.start()
        answer(runner, "to learn")
        feedback = runner.submit_answer("xue3")
        assert not feedback.retry_allowed
        assert runner.cards[1].ever_incorrect


class TestInitialStudy:
    """Test initial study sessions."""

    def test_submits_only_at_end(self):
        backend = FakeBackend()
        runner = make_runner(backend, SessionMode.INITIAL_STUDY)
        runner.start([XUE, HAO])
        answer_correctly(runner, 3)
        assert backend.submissions == []
        state = answer_correctly(runner, 1)
        assert isinstance(state, Complete)
        assert backend.submissions == [(1, True), (2, True)]
        assert backend.sessions_started == ["initial-study"]


class TestSelfStudy:
    """Test practice-only sessions."""

    def test_never_touches_schedule(self):
        backend = FakeBackend(self_study=[XUE, HAO])
        runner = make_runner(backend, SessionMode.SELF_STUDY)
        runner.start()
        answer(runner, "wrong")
        state = answer_correctly(runner, 4)
        assert isinstance(state, Complete)
        assert backend.submissions == []
        assert backend.reviewable == []
        assert state.stats.cards_correct == 1
        assert state.stats.cards_incorrect == 1
        assert len(backend.practice) == 5

    def test_exit_early_never_touches_schedule(self):
        backend = FakeBackend(self_study=[XUE])
        runner = make_runner(backend, SessionMode.SELF_STUDY)
        runner.start()
        answer(runner, "to learn")
        runner.exit_early()
        assert backend.submissions == []
        assert backend.reviewable == []


class TestExitEarly:
    """Test resolving cards on early exit."""

    def _half_done(self, backend, mode):
        runner = make_runner(backend, mode)
        runner.start([XUE, HAO])
        # XUE complete, HAO meaning answered
        answer_correctly(runner, 3)
        return runner

    def test_initial_study(self):
        backend = FakeBackend()
        runner = self._half_done(backend, SessionMode.INITIAL_STUDY)
        state = runner.exit_early()
        assert isinstance(state, Complete)
        assert state.exited_early
        assert backend.submissions == [(1, True)]
        assert backend.reviewable == [2]

    def test_review(self):
        backend = FakeBackend()
        runner = self._half_done(backend, SessionMode.REVIEW)
        state = runner.exit_early()
        assert backend.submissions == [(1, True), (2, False)]
        assert backend.reviewable == []
        assert state.stats.cards_correct == 1
        assert state.stats.cards_incorrect == 1

    def test_untouched_review_card_left_alone(self):
        backend = FakeBackend()
        runner = make_runner(backend)
        runner.start([XUE, HAO])
        answer_correctly(runner, 2)
        runner.exit_early()
        assert backend.submissions == [(1, True)]

    def test_idempotent(self):
        backend = FakeBackend()
        runner = self._half_done(backend, SessionMode.REVIEW)
        first = runner.exit_early()
        second = runner.exit_early()
        assert first is second
        assert backend.submissions == [(1, True), (2, False)]
        assert len(backend.sessions_ended) == 1

    def test_from_loading(self, backend):
        runner = make_runner(backend)
        state = runner.exit_early()
        assert isinstance(state, Complete)
        assert state.exited_early
        assert backend.sessions_started == []

    def test_answers_ignored_after_complete(self, backend):
        runner = make_runner(backend)
        runner.start()
        state = runner.exit_early()
        assert runner.submit_answer("to learn") is state
        assert runner.advance() is state


class TestFailures:
    """Test persistence failures."""

    def test_practice_log_failure_is_ignored(self, backend):
        backend.fail_practice = True
        runner = make_runner(backend)
        runner.start()
        state = answer_correctly(runner, 2)
        assert isinstance(state, Complete)
        assert backend.submissions == [(1, True)]

    def test_reconcile_failure_is_retryable(self):
        backend = FakeBackend()
        backend.fail_reviewable = 1
        runner = self._runner_with_half_done_card(backend)

        with pytest.raises(PersistenceError):
            runner.exit_early()
        assert not isinstance(runner.state, Complete)
        assert backend.sessions_ended == []

        state = runner.exit_early()
        assert isinstance(state, Complete)
        assert backend.submissions == [(1, True)]
        assert backend.reviewable == [2]
        assert len(backend.sessions_ended) == 1

    @staticmethod
    def _runner_with_half_done_card(backend):
        runner = make_runner(backend, SessionMode.INITIAL_STUDY)
        runner.start([XUE, HAO])
        answer_correctly(runner, 3)
        return runner
