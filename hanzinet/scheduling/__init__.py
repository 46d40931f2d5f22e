"""
Spaced repetition scheduling.

Components:
- SM2Scheduler: whole-day SM-2 for network study arrows
- CharacterScheduler: fractional-day ladder for characters, with milestones
- due_items / retention: selection helpers shared by both tracks
- UnlockGate: pacing for introducing new items
"""

from .character_track import (
    CharacterScheduler,
    CharacterTrackConfig,
    CharacterUpdate,
    ProgressRecord,
)
from .selection import due_items, retention
from .sm2 import SM2Config, SM2Scheduler, StudyProgress
from .unlock import UnlockConfig, UnlockDecision, UnlockGate

__all__ = [
    # Arrow track
    "SM2Config",
    "SM2Scheduler",
    "StudyProgress",
    # Character track
    "CharacterScheduler",
    "CharacterTrackConfig",
    "CharacterUpdate",
    "ProgressRecord",
    # Selection
    "due_items",
    "retention",
    # Pacing
    "UnlockConfig",
    "UnlockDecision",
    "UnlockGate",
]
