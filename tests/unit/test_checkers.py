"""
Unit tests for answer checkers and the verification facade.

Run: pytest tests/unit/test_checkers.py -v
"""

import pytest

from hanzinet.verification import (
    CheckerOptions,
    QuestionType,
    check_answer,
    debug_verification,
    get_checker,
    validate_self_test_answer,
    verify_answer,
)
from hanzinet.verification.checkers import PronunciationChecker, SelfTestChecker


class TestRegistry:
    """Test checker lookup."""

    def test_all_types_registered(self):
        for question_type in QuestionType:
            assert get_checker(question_type) is not None

    @pytest.mark.parametrize(
        "alias,expected",
        [
            ("pinyin", PronunciationChecker),
            ("pronunciation", PronunciationChecker),
            ("self-test", SelfTestChecker),
        ],
    )
    def test_aliases(self, alias, expected):
        assert isinstance(get_checker(alias), expected)

    def test_unknown_type(self):
        assert get_checker("essay") is None
        with pytest.raises(ValueError):
            check_answer("x", "y", "essay")


class TestVerifyAnswer:
    """Known scenarios for verify_answer."""

    def test_toneless_pinyin(self):
        assert verify_answer("xuexi", "xué xí", "pinyin") is True

    def test_definition_keyword(self):
        assert verify_answer("study", "to study; to learn", "definition") is True

    def test_empty_definition_answer(self):
        assert verify_answer("", "to study; to learn", "definition") is False

    def test_toneless_can_be_disabled(self):
        options = CheckerOptions(accept_toneless_pinyin=False)
        assert verify_answer("xuexi", "xué xí", "pinyin", options) is False

    def test_options_do_not_leak(self):
        verify_answer("xuexi", "xué xí", "pinyin", CheckerOptions(accept_toneless_pinyin=False))
        assert verify_answer("xuexi", "xué xí", "pinyin") is True


class TestPronunciationChecker:
    """Test the pinyin checker's result details."""

    def test_wrong_tone_result(self):
        result = check_answer("xue3", "xué", QuestionType.PRONUNCIATION)
        assert not result.correct
        assert result.wrong_tone
        assert result.partial_score == 0.5

    def test_matched_reading(self):
        result = check_answer("hao4", "hao3; hao4", QuestionType.PRONUNCIATION)
        assert result.correct
        assert result.matched == "hao4"

    def test_display_uses_marks(self):
        checker = get_checker(QuestionType.PRONUNCIATION)
        assert checker.display("hao3; hao4") == "hǎo / hào"


class TestMeaningChecker:
    """Test the definition checker."""

    def test_phrase_answer(self):
        result = check_answer("to learn", "to study; to learn", QuestionType.MEANING)
        assert result.correct
        assert result.matched == "to learn"

    def test_wrong_answer(self):
        result = check_answer("to eat", "to study; to learn", QuestionType.MEANING)
        assert not result.correct
        assert "to study; to learn" in result.feedback


class TestSelfTest:
    """Test the lenient self-test matching."""

    def test_exact_after_normalization(self):
        assert validate_self_test_answer("  Good   Person ", "good person")

    def test_small_typo_forgiven(self):
        assert validate_self_test_answer("pesron", "person")

    def test_large_difference_rejected(self):
        assert not validate_self_test_answer("dog", "person")

    def test_empty_rejected(self):
        assert not validate_self_test_answer("", "person")

    @pytest.mark.parametrize(
        "answer,reference,max_distance,expected",
        [
            ("persn", "person", 1, True),
            ("pesron", "person", 1, False),
            ("pesron", "person", 2, True),
            ("sitting", "kitten", 2, False),
            ("Kitten", "kitten", 0, True),
        ],
    )
    def test_distance_limit(self, answer, reference, max_distance, expected):
        assert validate_self_test_answer(answer, reference, max_distance) is expected

    def test_configured_distance(self):
        options = CheckerOptions(fuzzy_max_distance=0)
        assert not verify_answer("pesron", "person", QuestionType.SELF_TEST, options)
        assert verify_answer("pesron", "person", QuestionType.SELF_TEST)

    def test_checker_built_with_options(self):
        checker = get_checker(QuestionType.SELF_TEST, CheckerOptions(fuzzy_max_distance=5))
        assert isinstance(checker, SelfTestChecker)
        assert checker.max_distance == 5


class TestDebugVerification:
    """Test the diagnostic helper."""

    def test_pinyin_debug(self):
        info = debug_verification("xue2", "xué", "pinyin")
        assert info["is_correct"] is True
        assert info["normalized_user"] == "xue2"
        assert info["normalized_correct"] == ["xue2"]

    def test_definition_debug(self):
        info = debug_verification("learn", "to study; to learn", "definition")
        assert info["is_correct"] is True
        assert "study" in info["normalized_correct"]
