"""
Persistence for learning items, progress, practice logs and sessions.
"""

from .cedict import CedictEntry, merge_entries, parse_cedict, parse_cedict_line, parse_frequency_list
from .models import LearningItem, StudyItem, introduction_score
from .state_store import StateStore

__all__ = [
    "CedictEntry",
    "merge_entries",
    "parse_cedict",
    "parse_cedict_line",
    "parse_frequency_list",
    "LearningItem",
    "StudyItem",
    "introduction_score",
    "StateStore",
]
