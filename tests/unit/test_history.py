"""
Unit tests for undo/redo history.

Run: pytest tests/unit/test_history.py -v
"""

import pytest

from hanzinet.documents import DocumentHistory


def edited(flashcard, value):
    card = flashcard.model_copy(deep=True)
    card.sides[0].value = value
    return card


class TestDocumentHistory:
    """Test the snapshot buffer."""

    def test_empty(self):
        history = DocumentHistory()
        assert history.current() is None
        assert not history.can_undo()
        assert history.undo() is None
        assert history.redo() is None

    def test_undo_redo(self, simple_flashcard):
        history = DocumentHistory()
        for value in ("a", "b", "c"):
            history.push(edited(simple_flashcard, value))

        assert history.undo().sides[0].value == "b"
        assert history.undo().sides[0].value == "a"
        assert history.undo() is None
        assert history.redo().sides[0].value == "b"
        assert history.cursor == 1

    def test_push_after_undo_drops_redo(self, simple_flashcard):
        history = DocumentHistory()
        for value in ("a", "b", "c"):
            history.push(edited(simple_flashcard, value))
        history.undo()
        history.undo()
        history.push(edited(simple_flashcard, "d"))
        assert len(history) == 2
        assert not history.can_redo()
        assert history.undo().sides[0].value == "a"

    def test_bounded(self, simple_flashcard):
        history = DocumentHistory(max_size=3)
        for value in "abcde":
            history.push(edited(simple_flashcard, value))
        assert len(history) == 3
        assert history.current().sides[0].value == "e"
        history.undo()
        history.undo()
        assert history.current().sides[0].value == "c"
        assert not history.can_undo()

    def test_snapshots_are_isolated(self, simple_flashcard):
        history = DocumentHistory()
        card = edited(simple_flashcard, "before")
        history.push(card)
        card.sides[0].value = "after"
        assert history.current().sides[0].value == "before"

        current = history.current()
        current.sides[0].value = "changed"
        assert history.current().sides[0].value == "before"

    def test_clear(self, simple_flashcard):
        history = DocumentHistory()
        history.push(simple_flashcard)
        history.clear()
        assert len(history) == 0
        assert history.cursor == -1

    def test_needs_capacity(self):
        with pytest.raises(ValueError):
            DocumentHistory(max_size=0)
