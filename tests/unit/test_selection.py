"""
Unit tests for due-item selection and retention.

Run: pytest tests/unit/test_selection.py -v
"""

from datetime import timedelta

from hanzinet.scheduling import ProgressRecord, StudyProgress, due_items, retention


def arrow(arrow_id, next_review, **kwargs):
    return StudyProgress(arrow_id=arrow_id, next_review=next_review, **kwargs)


class TestDueItems:
    """Test due selection."""

    def test_only_past_reviews_are_due(self, now):
        records = [
            arrow("a", now - timedelta(hours=1)),
            arrow("b", now + timedelta(hours=1)),
            arrow("c", now),
        ]
        assert [p.arrow_id for p in due_items(records, now)] == ["a", "c"]

    def test_unscheduled_records_never_due(self, now):
        assert due_items([arrow("a", None)], now) == []

    def test_ties_broken_by_id(self, now):
        records = [arrow("z", now), arrow("m", now), arrow("a", now - timedelta(days=1))]
        assert [p.arrow_id for p in due_items(records, now)] == ["a", "m", "z"]

    def test_limit(self, now):
        records = [arrow(str(i), now - timedelta(minutes=i)) for i in range(5)]
        assert [p.arrow_id for p in due_items(records, now, limit=2)] == ["4", "3"]
        assert due_items(records, now, limit=0) == []

    def test_repeat_call_same_result(self, now):
        records = [arrow(name, now - timedelta(minutes=m)) for name, m in [("b", 5), ("a", 5), ("c", 30)]]
        before = list(records)
        first = due_items(records, now, limit=2)
        second = due_items(records, now, limit=2)
        assert first == second
        assert [p.arrow_id for p in first] == ["c", "a"]
        assert records == before

    def test_works_for_character_records(self, now):
        records = [
            ProgressRecord(item_id=2, next_review=now - timedelta(hours=2)),
            ProgressRecord(item_id=1, next_review=now + timedelta(hours=2)),
        ]
        assert [r.item_id for r in due_items(records, now)] == [2]


class TestRetention:
    """Test retention ratio."""

    def test_unstudied(self):
        assert retention(StudyProgress(arrow_id="a")) == 0.0

    def test_ratio(self):
        assert retention(StudyProgress(arrow_id="a", times_studied=4, times_correct=3)) == 0.75
        assert retention(ProgressRecord(item_id=1, times_reviewed=2, times_correct=1)) == 0.5
