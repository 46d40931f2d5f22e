"""
Base protocol and types for answer checkers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class QuestionType(str, Enum):
    """Kinds of answers HanziNet checks."""

    MEANING = "meaning"
    PRONUNCIATION = "pronunciation"
    SELF_TEST = "self_test"


# Names the original UI used for the same question types
QUESTION_TYPE_ALIASES = {
    "definition": QuestionType.MEANING,
    "pinyin": QuestionType.PRONUNCIATION,
    "self-test": QuestionType.SELF_TEST,
}


def parse_question_type(value: "str | QuestionType") -> QuestionType | None:
    """Resolve a question type name or alias. Returns None if unknown."""
    if isinstance(value, QuestionType):
        return value
    key = value.strip().lower()
    if key in QUESTION_TYPE_ALIASES:
        return QUESTION_TYPE_ALIASES[key]
    try:
        return QuestionType(key)
    except ValueError:
        return None


@dataclass(frozen=True)
class CheckerOptions:
    """Settings a checker is built with."""
    accept_toneless_pinyin: bool = True
    fuzzy_max_distance: int = 2


@dataclass
class AnswerResult:
    """Result of checking an answer."""
    correct: bool
    feedback: str
    user_answer: str
    correct_answer: str
    partial_score: float = 1.0  # 0.0-1.0 for partial credit
    wrong_tone: bool = False  # Syllables right, tones wrong
    matched: str | None = None  # Reading or keyword that matched


class AnswerChecker(Protocol):
    """Protocol for answer checkers."""

    def check(self, answer: str, reference: str) -> AnswerResult:
        """Check the answer against the reference and return a result."""
        ...

    def display(self, reference: str) -> str:
        """Reference formatted for showing to the user."""
        ...
