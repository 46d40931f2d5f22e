"""
Flashcard network documents.

Components:
- models: FlashcardSet, Flashcard, Side, Arrow and Template (pydantic)
- templates: create, apply and validate structural templates
- history: bounded undo/redo of flashcard snapshots
- store: JSON load/save with validation
- progress_store: per-set arrow progress beside the set file
"""

from .history import DocumentHistory
from .models import Arrow, Flashcard, FlashcardSet, Position, Side, Template
from .progress_store import KeyedProgressStorage, ProgressStore, StorageCapabilities
from .store import load_flashcard_set, new_flashcard_set, parse_flashcard_set, save_flashcard_set

__all__ = [
    # Models
    "Arrow",
    "Flashcard",
    "FlashcardSet",
    "Position",
    "Side",
    "Template",
    # History
    "DocumentHistory",
    # Storage
    "load_flashcard_set",
    "new_flashcard_set",
    "parse_flashcard_set",
    "save_flashcard_set",
    "KeyedProgressStorage",
    "ProgressStore",
    "StorageCapabilities",
]
