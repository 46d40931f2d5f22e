"""
SM-2 scheduler for the arrow track.

Network study mode schedules each arrow of a flashcard set on its own.
Intervals are whole days:
- first correct answer: 1 day
- second correct answer: 6 days
- afterwards: previous interval x ease factor, rounded

A wrong answer resets the interval to 1 day and lowers the ease factor
by 0.2. The ease factor never drops below 1.3.

Difficulty uses the SM-2 quality scale (0-5, default 3).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for the arrow-track SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days after the first correct answer
    second_interval: int = 6  # Days after the second correct answer
    failure_penalty: float = 0.2
    default_difficulty: int = 3


# =============================================================================
# Progress
# =============================================================================


@dataclass
class StudyProgress:
    """Per-arrow study progress."""

    arrow_id: str
    times_studied: int = 0
    times_correct: int = 0
    last_studied: datetime | None = None
    next_review: datetime | None = None
    ease_factor: float = 2.5
    interval: int = 1  # Days

    @property
    def record_id(self) -> str:
        return self.arrow_id

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in progress files."""
        return {
            "arrowId": self.arrow_id,
            "timesStudied": self.times_studied,
            "timesCorrect": self.times_correct,
            "lastStudied": self.last_studied.isoformat() if self.last_studied else None,
            "nextReview": self.next_review.isoformat() if self.next_review else None,
            "easeFactor": self.ease_factor,
            "interval": self.interval,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudyProgress:
        """Create from a progress-file entry; raises on malformed data."""
        last = data.get("lastStudied")
        upcoming = data.get("nextReview")
        return cls(
            arrow_id=str(data["arrowId"]),
            times_studied=int(data.get("timesStudied", 0)),
            times_correct=int(data.get("timesCorrect", 0)),
            last_studied=datetime.fromisoformat(last) if last else None,
            next_review=datetime.fromisoformat(upcoming) if upcoming else None,
            ease_factor=float(data.get("easeFactor", 2.5)),
            interval=int(data.get("interval", 1)),
        )


# =============================================================================
# Scheduler
# =============================================================================


class SM2Scheduler:
    """
    Pure SM-2 transitions for arrow progress.

    Every method returns a new StudyProgress; inputs are never mutated.
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def initialize_progress(self, arrow_id: str, now: datetime | None = None) -> StudyProgress:
        """Fresh progress for an arrow that has never been studied; due immediately."""
        now = now or datetime.now()
        return StudyProgress(
            arrow_id=arrow_id,
            ease_factor=self.config.initial_easiness,
            interval=self.config.first_interval,
            next_review=now,
        )

    def compute_next_state(
        self,
        progress: StudyProgress,
        was_correct: bool,
        difficulty: int | None = None,
        now: datetime | None = None,
    ) -> StudyProgress:
        """
        Calculate the next state after one answer.

        Args:
            progress: Current progress for the arrow
            was_correct: Whether the answer was correct
            difficulty: SM-2 quality 0-5 (only used for correct answers)
            now: Review time (defaults to now)

        Returns:
            Updated StudyProgress
        """
        now = now or datetime.now()
        quality = self.config.default_difficulty if difficulty is None else difficulty
        quality = max(0, min(5, quality))

        if was_correct:
            if progress.times_studied == 0:
                interval = self.config.first_interval
            elif progress.times_studied == 1:
                interval = self.config.second_interval
            else:
                interval = round(progress.interval * progress.ease_factor)
            # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
            delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
            ease = progress.ease_factor + delta
        else:
            interval = self.config.first_interval
            ease = progress.ease_factor - self.config.failure_penalty

        ease = max(self.config.minimum_easiness, ease)

        logger.debug(
            f"Arrow {progress.arrow_id}: {'correct' if was_correct else 'incorrect'} "
            f"-> interval {interval}d, ease {ease:.2f}"
        )

        return replace(
            progress,
            times_studied=progress.times_studied + 1,
            times_correct=progress.times_correct + (1 if was_correct else 0),
            last_studied=now,
            next_review=now + timedelta(days=interval),
            ease_factor=ease,
            interval=interval,
        )
