"""
Answer checkers for each question type.

- PronunciationChecker: pinyin in marks, numbers or (optionally) no tones
- MeaningChecker: keyword containment against a dictionary gloss
- SelfTestChecker: exact or edit distance <= 2, used by network study
"""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

from . import QuestionType, register
from .base import AnswerResult, CheckerOptions
from .definitions import matching_keyword
from .pinyin import (
    convert_tone_numbers_to_marks,
    has_correct_syllables_but_wrong_tones,
    normalize_pinyin,
    split_readings,
    verify_pinyin,
)


@register(QuestionType.PRONUNCIATION)
class PronunciationChecker:
    """Checks pinyin answers."""

    def __init__(self, options: CheckerOptions | None = None):
        self.accept_toneless = (options or CheckerOptions()).accept_toneless_pinyin

    def check(self, answer: str, reference: str) -> AnswerResult:
        correct = verify_pinyin(answer, reference, accept_toneless=self.accept_toneless)
        wrong_tone = not correct and has_correct_syllables_but_wrong_tones(
            answer, reference, accept_toneless=self.accept_toneless
        )
        matched = None
        if correct:
            user = normalize_pinyin(answer)
            matched = next(
                (r for r in split_readings(reference) if normalize_pinyin(r) == user),
                reference,
            )

        if correct:
            feedback = "Correct!"
        elif wrong_tone:
            feedback = "Right syllables, check the tones"
        else:
            feedback = f"Incorrect. Answer: {self.display(reference)}"

        return AnswerResult(
            correct=correct,
            feedback=feedback,
            user_answer=answer,
            correct_answer=reference,
            partial_score=1.0 if correct else (0.5 if wrong_tone else 0.0),
            wrong_tone=wrong_tone,
            matched=matched,
        )

    def display(self, reference: str) -> str:
        return " / ".join(convert_tone_numbers_to_marks(r) for r in split_readings(reference))


@register(QuestionType.MEANING)
class MeaningChecker:
    """Checks definition answers by keyword containment."""

    def __init__(self, options: CheckerOptions | None = None):
        self.options = options or CheckerOptions()

    def check(self, answer: str, reference: str) -> AnswerResult:
        matched = matching_keyword(answer, reference)
        correct = matched is not None
        return AnswerResult(
            correct=correct,
            feedback="Correct!" if correct else f"Incorrect. Answer: {reference}",
            user_answer=answer,
            correct_answer=reference,
            partial_score=1.0 if correct else 0.0,
            matched=matched,
        )

    def display(self, reference: str) -> str:
        return reference


def normalize_free_text(text: str) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    return re.sub(r"\s+", " ", text.strip().lower())


@register(QuestionType.SELF_TEST)
class SelfTestChecker:
    """Lenient matching for arrow self-tests: typos within a small distance pass."""

    def __init__(self, options: CheckerOptions | None = None):
        self.max_distance = (options or CheckerOptions()).fuzzy_max_distance

    def check(self, answer: str, reference: str) -> AnswerResult:
        correct = validate_self_test_answer(answer, reference, self.max_distance)
        return AnswerResult(
            correct=correct,
            feedback="Correct!" if correct else f"Incorrect. Answer: {reference}",
            user_answer=answer,
            correct_answer=reference,
            partial_score=1.0 if correct else 0.0,
            matched=reference if correct else None,
        )

    def display(self, reference: str) -> str:
        return reference


def validate_self_test_answer(answer: str, reference: str, max_distance: int = 2) -> bool:
    """Exact match after normalization, or within max_distance edits."""
    user = normalize_free_text(answer or "")
    expected = normalize_free_text(reference or "")
    if not user or not expected:
        return False
    return user == expected or Levenshtein.distance(user, expected, score_cutoff=max_distance) <= max_distance
