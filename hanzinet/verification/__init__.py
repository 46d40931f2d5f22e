"""
Answer checkers for HanziNet study sessions.

Each question type has a checker class registered under its QuestionType:
- pronunciation: pinyin with tone marks, tone numbers or no tones
- meaning: keyword containment against the dictionary gloss
- self_test: exact or small-typo matching for network self-tests

Checkers are built per call from the caller's CheckerOptions.
"""

from typing import TYPE_CHECKING, Any

from .base import AnswerResult, CheckerOptions, QuestionType, parse_question_type

if TYPE_CHECKING:
    from .base import AnswerChecker


# Checker registry - populated by @register decorator
CHECKERS: dict[QuestionType, type] = {}


def register(question_type: QuestionType):
    """Decorator to register an answer checker class."""
    def decorator(cls):
        CHECKERS[question_type] = cls
        return cls
    return decorator


def get_checker(
    question_type: "str | QuestionType", options: CheckerOptions | None = None
) -> "AnswerChecker | None":
    """Build the checker for a question type (aliases such as 'pinyin' work)."""
    resolved = parse_question_type(question_type)
    if resolved is None or resolved not in CHECKERS:
        return None
    return CHECKERS[resolved](options or CheckerOptions())


def check_answer(
    answer: str,
    reference: str,
    question_type: "str | QuestionType",
    options: CheckerOptions | None = None,
) -> AnswerResult:
    """Check an answer and return the full result."""
    checker = get_checker(question_type, options)
    if checker is None:
        raise ValueError(f"Unknown question type: {question_type}")
    return checker.check(answer, reference)


def verify_answer(
    answer: str,
    reference: str,
    question_type: "str | QuestionType",
    options: CheckerOptions | None = None,
) -> bool:
    """True if the answer is correct for the question type."""
    return check_answer(answer, reference, question_type, options).correct


def debug_verification(
    answer: str,
    reference: str,
    question_type: "str | QuestionType",
    options: CheckerOptions | None = None,
) -> dict[str, Any]:
    """Normalized forms and the matched candidate, for diagnosing a verdict."""
    resolved = parse_question_type(question_type)
    if resolved == QuestionType.PRONUNCIATION:
        normalized_user = normalize_pinyin(answer)
        normalized_correct: str | list[str] = [
            normalize_pinyin(r) for r in split_readings(reference)
        ]
    elif resolved == QuestionType.MEANING:
        normalized_user = (answer or "").lower().strip()
        normalized_correct = extract_keywords(reference)
    else:
        normalized_user = normalize_free_text(answer or "")
        normalized_correct = normalize_free_text(reference or "")

    result = check_answer(answer, reference, question_type, options)
    return {
        "is_correct": result.correct,
        "normalized_user": normalized_user,
        "normalized_correct": normalized_correct,
        "matched": result.matched,
    }


# Import checkers to trigger registration
from . import checkers  # noqa: E402
from .checkers import normalize_free_text, validate_self_test_answer  # noqa: E402
from .definitions import extract_keywords, verify_definition  # noqa: E402
from .pinyin import (  # noqa: E402
    convert_tone_marks_to_numbers,
    convert_tone_numbers_to_marks,
    has_correct_syllables_but_wrong_tones,
    normalize_pinyin,
    remove_tones,
    split_readings,
    verify_pinyin,
)

__all__ = [
    "AnswerResult",
    "CheckerOptions",
    "QuestionType",
    "CHECKERS",
    "register",
    "get_checker",
    "check_answer",
    "verify_answer",
    "debug_verification",
    "checkers",
    "normalize_free_text",
    "validate_self_test_answer",
    "extract_keywords",
    "verify_definition",
    "convert_tone_marks_to_numbers",
    "convert_tone_numbers_to_marks",
    "has_correct_syllables_but_wrong_tones",
    "normalize_pinyin",
    "remove_tones",
    "split_readings",
    "verify_pinyin",
]
