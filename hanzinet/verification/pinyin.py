"""
Pinyin normalization and matching.

Three spellings of the same reading are accepted everywhere:
- tone marks:   "xué xí"
- tone numbers: "xue2 xi2" (also "xue2xi2")
- toneless:     "xuexi"

The canonical form used for comparison is the tone-number form with
whitespace removed, e.g. "xue2xi2". Neutral-tone syllables carry "5".

Syllables are segmented with an initial/vowel-cluster/coda pattern so
that "nǐhǎo" and "ni3hao3" split the same way.
"""

from __future__ import annotations

import re

from loguru import logger

# =============================================================================
# Tone tables
# =============================================================================

TONED_VOWELS: dict[str, str] = {
    "a": "āáǎà",
    "e": "ēéěè",
    "i": "īíǐì",
    "o": "ōóǒò",
    "u": "ūúǔù",
    "v": "ǖǘǚǜ",
}

# marked character -> (base letter, tone number)
MARK_TO_TONE: dict[str, tuple[str, int]] = {
    mark: (base, tone + 1)
    for base, marks in TONED_VOWELS.items()
    for tone, mark in enumerate(marks)
}

NEUTRAL_TONE = 5
VOWELS = frozenset("aeiouv")
SYLLABLE_BOUNDARIES = re.compile(r"[\s\-']+")

# initial, vowel cluster, optional coda (n/ng/r only when no vowel follows),
# optional tone digits
SYLLABLE_PATTERN = re.compile(
    r"(zh|ch|sh|[bpmfdtnlgkhjqxrzcsyw])?"
    r"([aeiouv]+)"
    r"(ng(?![aeiouv])|n(?![aeiouv])|r(?![aeiouv]))?"
    r"([1-5]*)"
)


# =============================================================================
# Segmentation
# =============================================================================


def _strip_marks(chunk: str) -> tuple[str, list[int | None]]:
    """Split a lower-cased chunk into base letters and per-letter tones."""
    bases: list[str] = []
    tones: list[int | None] = []
    for char in chunk.replace("u:", "v").replace("ü", "v"):
        if char in MARK_TO_TONE:
            base, tone = MARK_TO_TONE[char]
            bases.append(base)
            tones.append(tone)
        else:
            bases.append(char)
            tones.append(None)
    return "".join(bases), tones


def _segment(chunk: str) -> list[tuple[str, int | None, bool]]:
    """
    Segment one whitespace-free chunk into syllables.

    Returns:
        (base letters, tone, is_syllable) triples. Tone is None when the
        syllable carries no mark and no digit. Pieces that are not pinyin
        syllables come back with is_syllable False and stray digits dropped.
    """
    bases, tones = _strip_marks(chunk)
    pieces: list[tuple[str, int | None, bool]] = []
    pos = 0
    while pos < len(bases):
        match = SYLLABLE_PATTERN.match(bases, pos)
        if match is None:
            char = bases[pos]
            if not char.isdigit():
                pieces.append((char, None, False))
            pos += 1
            continue

        letters_end = match.end(3) if match.group(3) else match.end(2)
        letters = bases[match.start():letters_end]
        marked = [t for t in tones[match.start():letters_end] if t is not None]
        digits = match.group(4)

        if marked:
            # an accented syllable ignores any trailing digits
            tone: int | None = marked[0]
        elif digits:
            tone = int(digits[0])
        else:
            tone = None
        pieces.append((letters, tone, True))
        pos = match.end()
    return pieces


def _mark_position(letters: str) -> int:
    """Index of the vowel that carries the tone mark."""
    for vowel in ("a", "o", "e"):
        if vowel in letters:
            return letters.index(vowel)
    if "iu" in letters:
        return letters.index("iu") + 1
    if "ui" in letters:
        return letters.index("ui") + 1
    for vowel in ("i", "u", "v"):
        if vowel in letters:
            return letters.index(vowel)
    return -1


def _apply_mark(letters: str, tone: int | None) -> str:
    if tone is None or tone == NEUTRAL_TONE:
        return letters.replace("v", "ü")
    idx = _mark_position(letters)
    if idx < 0:
        return letters.replace("v", "ü")
    marked = letters[:idx] + TONED_VOWELS[letters[idx]][tone - 1] + letters[idx + 1 :]
    return marked.replace("v", "ü")


# =============================================================================
# Conversion
# =============================================================================


def convert_tone_numbers_to_marks(text: str) -> str:
    """
    Convert tone-number pinyin to tone-mark pinyin for display.

    "ni3 hao3" -> "nǐ hǎo", "lv4" -> "lǜ", "ma5" -> "ma". A syllable that
    already carries a mark keeps it and ignores trailing digits; a
    syllable with no digit stays unmarked.
    """
    if not text:
        return ""
    words = []
    for chunk in SYLLABLE_BOUNDARIES.split(text.strip().lower()):
        if not chunk:
            continue
        words.append(
            "".join(
                _apply_mark(letters, tone) if is_syllable else letters
                for letters, tone, is_syllable in _segment(chunk)
            )
        )
    return " ".join(words)


def convert_tone_marks_to_numbers(text: str) -> str:
    """
    Convert tone-mark pinyin to tone-number pinyin.

    "xué xí" -> "xue2 xi2", "māma" -> "ma1ma5", "nǚ" -> "nv3". Existing
    digits are kept, so numbered input passes through unchanged except
    that digit-less syllables gain a "5".
    """
    if not text:
        return ""
    words = []
    for chunk in SYLLABLE_BOUNDARIES.split(text.strip().lower()):
        if not chunk:
            continue
        parts = []
        for letters, tone, is_syllable in _segment(chunk):
            if is_syllable:
                parts.append(f"{letters}{tone if tone is not None else NEUTRAL_TONE}")
            else:
                parts.append(letters)
        words.append("".join(parts))
    return " ".join(words)


def normalize_pinyin(text: str) -> str:
    """Canonical comparison form: lower-case tone numbers, no spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", "", convert_tone_marks_to_numbers(text.strip().lower()))


def remove_tones(text: str) -> str:
    """Syllables only: "xué xí" -> "xuexi"."""
    return re.sub(r"[1-5]", "", normalize_pinyin(text))


def has_tone_information(text: str) -> bool:
    """True if the text carries any tone mark or tone digit."""
    return any(char in MARK_TO_TONE or char in "12345" for char in text.lower())


def split_readings(reference: str) -> list[str]:
    """Split a reference into its alternative readings (";" or "/")."""
    if not reference:
        return []
    return [part.strip() for part in re.split(r"[;/]", reference) if part.strip()]


# =============================================================================
# Matching
# =============================================================================


def verify_pinyin(answer: str, reference: str, accept_toneless: bool = True) -> bool:
    """
    Check a pinyin answer against a reference with alternative readings.

    Args:
        answer: What the user typed
        reference: Correct pinyin, alternatives separated by ";" or "/"
        accept_toneless: Compare syllables only when the answer carries
            no tone information at all

    Returns:
        True if the answer matches any reading
    """
    if not answer or not answer.strip():
        return False
    readings = split_readings(reference)
    if not readings:
        return False

    user = normalize_pinyin(answer)
    if any(user == normalize_pinyin(reading) for reading in readings):
        return True

    if accept_toneless and not has_tone_information(answer):
        syllables = remove_tones(answer)
        matched = any(syllables == remove_tones(reading) for reading in readings)
        if matched:
            logger.debug(f"Toneless pinyin accepted: {answer!r} ~ {reference!r}")
        return matched
    return False


def has_correct_syllables_but_wrong_tones(
    answer: str, reference: str, accept_toneless: bool = True
) -> bool:
    """True when the syllables match some reading but the tones do not."""
    if not answer or not answer.strip():
        return False
    readings = split_readings(reference)
    syllables = remove_tones(answer)
    if not any(syllables == remove_tones(reading) for reading in readings):
        return False
    return not verify_pinyin(answer, reference, accept_toneless=accept_toneless)
