"""
Learning item records.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hanzinet.scheduling.character_track import ProgressRecord

UNRANKED = 999_999
WORD_RANK_WEIGHT = 0.01


@dataclass
class LearningItem:
    """A character or word from the dictionary."""

    id: int
    character: str
    simplified: str
    traditional: str | None
    pinyin: str
    definition: str
    frequency_rank: int = UNRANKED
    is_word: bool = False
    component_ids: list[int] = field(default_factory=list)
    introduction_score: float = float(UNRANKED)


@dataclass
class StudyItem:
    """A learning item together with its progress."""

    item: LearningItem
    progress: ProgressRecord

    @property
    def id(self) -> int:
        return self.item.id


def introduction_score(
    frequency_rank: int, is_word: bool = False, component_ranks: list[int] | None = None
) -> float:
    """
    Ordering key for introducing items (lower comes first).

    A single character scores its frequency rank. A word scores its
    rarest component character plus a small weight on its own word rank,
    so words follow the characters they are built from.
    """
    if not is_word or not component_ranks:
        return float(frequency_rank)
    return float(max(component_ranks)) + frequency_rank * WORD_RANK_WEIGHT
