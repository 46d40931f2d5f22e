"""
Unit tests for the character-track scheduler.

Tests the interval ladder, ease handling, milestone detection and the
graduation step out of initial study.

Run: pytest tests/unit/test_character_track.py -v
"""

from dataclasses import replace

import pytest

from hanzinet.errors import NotIntroducedError
from hanzinet.scheduling.character_track import (
    INTRODUCTORY_INTERVAL_DAYS,
    CharacterScheduler,
    CharacterTrackConfig,
    ProgressRecord,
)


@pytest.fixture
def scheduler():
    return CharacterScheduler()


@pytest.fixture
def introduced(scheduler, now):
    record = scheduler.new_record(1, now)
    return replace(record, introduced=True, introduced_at=now)


def review_many(scheduler, record, answers, now):
    reached = []
    for correct in answers:
        record, hit = scheduler.review(record, correct, now)
        reached.append(hit)
    return record, reached


class TestLadder:
    """Test the fixed interval ladder."""

    def test_new_record(self, scheduler, now):
        record = scheduler.new_record(7, now)
        assert not record.introduced
        assert record.next_review == now
        assert record.current_interval_days == INTRODUCTORY_INTERVAL_DAYS

    def test_initial_study_graduates_to_introductory_interval(self, scheduler, introduced, now):
        record, _ = scheduler.review(introduced, True, now)
        assert record.current_interval_days == pytest.approx(1 / 24)
        assert (record.next_review - now).total_seconds() == pytest.approx(3600)
        assert record.initial_study_complete

    def test_climbs_ladder(self, scheduler, introduced, now):
        intervals = []
        record = introduced
        for _ in range(6):
            record, _ = scheduler.review(record, True, now)
            intervals.append(record.current_interval_days)
        assert intervals[:5] == pytest.approx([1 / 24, 0.5, 1.0, 3.0, 7.0])
        assert intervals[5] == pytest.approx(7.0 * 2.25)

    def test_ease_capped_on_correct(self, scheduler, introduced, now):
        record, _ = scheduler.review(introduced, True, now)
        assert record.ease_factor == 2.25


class TestIncorrect:
    """Test wrong answers."""

    def test_falls_back_to_previous_interval(self, scheduler, introduced, now):
        record, _ = review_many(scheduler, introduced, [True, True, True, True], now)
        assert record.current_interval_days == pytest.approx(3.0)
        record, _ = scheduler.review(record, False, now)
        assert record.current_interval_days == pytest.approx(1.0)
        assert record.ease_factor == pytest.approx(2.05)
        assert record.times_incorrect == 1

    def test_never_below_one_hour(self, scheduler, introduced, now):
        record, _ = scheduler.review(introduced, False, now)
        assert record.current_interval_days == pytest.approx(1 / 24)

    def test_ease_floor(self, scheduler, introduced, now):
        record = replace(introduced, ease_factor=1.4)
        record, _ = scheduler.review(record, False, now)
        assert record.ease_factor == 1.3


class TestMilestone:
    """Test milestone detection."""

    def test_reached_once(self, scheduler, introduced, now):
        record, reached = review_many(scheduler, introduced, [True] * 7, now)
        assert reached == [False, False, False, False, True, False, False]
        assert record.has_reached_milestone

    def test_not_reached_again_after_lapse(self, scheduler, introduced, now):
        record, _ = review_many(scheduler, introduced, [True] * 5, now)
        record, reached = review_many(scheduler, record, [False, True, True, True], now)
        assert not any(reached)

    def test_configured_milestone(self, introduced, now):
        scheduler = CharacterScheduler(CharacterTrackConfig(milestone_interval_days=1.0))
        _, reached = review_many(scheduler, introduced, [True, True, True], now)
        assert reached == [False, False, True]


class TestGuards:
    """Test precondition checks."""

    def test_not_introduced(self, scheduler, now):
        with pytest.raises(NotIntroducedError):
            scheduler.compute_next_state(scheduler.new_record(1, now), True, now)

    def test_missing_record(self, scheduler, now):
        with pytest.raises(NotIntroducedError):
            scheduler.compute_next_state(None, True, now)

    def test_record_counts(self):
        record = ProgressRecord(item_id=3, times_reviewed=4, times_correct=3)
        assert record.record_id == 3
        assert record.times_studied == 4
