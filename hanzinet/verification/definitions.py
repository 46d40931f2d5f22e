"""
Keyword-based definition matching.

Dictionary glosses look like "to study; to learn" or "(particle) used
after a verb". The gloss is broken into keyword phrases and the answer
matches if it contains, or is contained in, any of them.
"""

from __future__ import annotations

import re

STOP_WORDS = frozenset({"a", "an", "the", "to", "of", "in", "on", "at", "for", "with", "by"})

PART_SEPARATORS = re.compile(r"[;,]|\s+or\s+")
PARENTHETICAL = re.compile(r"\([^)]*\)")
BRACKETED = re.compile(r"\[[^\]]*\]")


def _significant_words(phrase: str) -> list[str]:
    return [word for word in phrase.split() if word and word not in STOP_WORDS]


def extract_keywords(definition: str) -> list[str]:
    """
    Extract keyword phrases from a gloss.

    Each ";"/","/"or" separated part contributes the part itself (with
    parenthetical asides removed) and each non-stop word in it. A part
    that is only a parenthetical contributes its inner text instead,
    minus any bracketed pinyin.

    Returns:
        Keywords in first-seen order, without duplicates
    """
    if not definition:
        return []

    keywords: list[str] = []
    for raw_part in PART_SEPARATORS.split(definition.lower()):
        part = raw_part.strip()
        if not part:
            continue

        cleaned = PARENTHETICAL.sub("", part).strip()
        if not cleaned:
            inner = re.search(r"\(([^)]*)\)", part)
            if inner is None:
                continue
            cleaned = BRACKETED.sub("", inner.group(1)).strip()
            if not cleaned:
                continue

        keywords.append(cleaned)
        keywords.extend(_significant_words(cleaned))

    return list(dict.fromkeys(keywords))


def matching_keyword(answer: str, definition: str) -> str | None:
    """Return the first keyword matched by the answer, if any."""
    if not answer or not definition:
        return None
    user = answer.lower().strip()
    if not user:
        return None
    for keyword in extract_keywords(definition.strip()):
        if keyword in user or user in keyword:
            return keyword
    return None


def verify_definition(answer: str, definition: str) -> bool:
    """
    Check a free-text meaning answer.

    Args:
        answer: What the user typed
        definition: Reference gloss

    Returns:
        True if the answer and some keyword contain one another
    """
    return matching_keyword(answer, definition) is not None
