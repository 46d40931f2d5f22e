"""
Study sessions.

- runner: character sessions (review, initial study, self-study)
- network: arrow questions generated from flashcard networks
"""

from .models import (
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
from .network import (
    NetworkStudySession,
    StudyMode,
    StudyQuestion,
    calculate_difficulty,
    find_most_connected_side,
    generate_custom_path,
    generate_questions,
    multiple_choice_options,
    outgoing_arrows,
)
from .runner import SessionRunner, build_questions

__all__ = [
    "CardProgress",
    "Complete",
    "Feedback",
    "LearningBackend",
    "Loading",
    "Presenting",
    "Question",
    "SessionMode",
    "SessionState",
    "SessionStats",
    "NetworkStudySession",
    "StudyMode",
    "StudyQuestion",
    "calculate_difficulty",
    "find_most_connected_side",
    "generate_custom_path",
    "generate_questions",
    "multiple_choice_options",
    "outgoing_arrows",
    "SessionRunner",
    "build_questions",
]
