"""
Character-track spaced repetition.

Characters climb a fixed ladder of fractional-day intervals before
normal ease-factor growth takes over:

    1 hour -> 12 hours -> 1 day -> 3 days -> 7 days -> interval x ease

A wrong answer falls back to the previous interval (never below one
hour) and lowers the ease factor. The first time an interval reaches a
week the item "reaches its milestone", which lets a new item be
unlocked.

The first review after introduction is the initial study. Completing it
graduates the item onto the introductory interval rather than the next
rung.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from loguru import logger

from hanzinet.errors import NotIntroducedError

# =============================================================================
# Constants
# =============================================================================

ONE_HOUR_DAYS = 1 / 24
INTRODUCTORY_INTERVAL_DAYS = ONE_HOUR_DAYS
INTERVAL_LADDER: tuple[float, ...] = (ONE_HOUR_DAYS, 0.5, 1.0, 3.0, 7.0)
MILESTONE_INTERVAL_DAYS = 7.0
DEFAULT_EASE_FACTOR = 2.5
MAX_EASE_FACTOR = 2.25
MIN_EASE_FACTOR = 1.3
EASE_PENALTY = 0.2

# Interval comparisons tolerate float noise from storage round-trips
_EPSILON = 1e-6


@dataclass
class CharacterTrackConfig:
    """Configuration for the character track."""

    introductory_interval_days: float = INTRODUCTORY_INTERVAL_DAYS
    interval_ladder: tuple[float, ...] = INTERVAL_LADDER
    milestone_interval_days: float = MILESTONE_INTERVAL_DAYS
    default_ease_factor: float = DEFAULT_EASE_FACTOR
    max_ease_factor: float = MAX_EASE_FACTOR
    min_ease_factor: float = MIN_EASE_FACTOR
    ease_penalty: float = EASE_PENALTY


# =============================================================================
# Records
# =============================================================================


@dataclass
class ProgressRecord:
    """SRS progress for one learning item."""

    item_id: int
    introduced: bool = False
    introduced_at: datetime | None = None
    times_reviewed: int = 0
    times_correct: int = 0
    times_incorrect: int = 0
    current_interval_days: float = INTRODUCTORY_INTERVAL_DAYS
    previous_interval_days: float = INTRODUCTORY_INTERVAL_DAYS
    ease_factor: float = DEFAULT_EASE_FACTOR
    has_reached_milestone: bool = False
    last_reviewed: datetime | None = None
    next_review: datetime | None = None

    @property
    def record_id(self) -> int:
        return self.item_id

    @property
    def times_studied(self) -> int:
        return self.times_reviewed

    @property
    def initial_study_complete(self) -> bool:
        return self.times_reviewed > 0


@dataclass
class CharacterUpdate:
    """Outcome of one answer on the character track."""

    was_correct: bool
    new_interval_days: float
    new_ease_factor: float
    reached_milestone: bool
    next_review: datetime
    reviewed_at: datetime = field(default_factory=datetime.now)


# =============================================================================
# Scheduler
# =============================================================================


class CharacterScheduler:
    """Pure transitions for character progress records."""

    def __init__(self, config: CharacterTrackConfig | None = None):
        self.config = config or CharacterTrackConfig()

    def new_record(self, item_id: int, now: datetime | None = None) -> ProgressRecord:
        """Progress for a freshly unlocked item: not introduced, due now."""
        now = now or datetime.now()
        return ProgressRecord(
            item_id=item_id,
            current_interval_days=self.config.introductory_interval_days,
            previous_interval_days=self.config.introductory_interval_days,
            ease_factor=self.config.default_ease_factor,
            next_review=now,
        )

    def next_correct_interval(self, current: float, ease: float) -> float:
        """Next ladder rung above current, or current x ease past the ladder."""
        for rung in self.config.interval_ladder:
            if rung > current + _EPSILON:
                return rung
        return current * ease

    def compute_next_state(
        self,
        record: ProgressRecord,
        was_correct: bool,
        now: datetime | None = None,
    ) -> CharacterUpdate:
        """
        Calculate the outcome of one answer.

        Args:
            record: Current progress (must be introduced)
            was_correct: Whether the item was answered correctly
            now: Review time (defaults to now)

        Returns:
            CharacterUpdate with the new interval and ease factor

        Raises:
            NotIntroducedError: If the item was never introduced
        """
        if record is None or not record.introduced:
            raise NotIntroducedError(getattr(record, "item_id", "unknown"))
        now = now or datetime.now()
        cfg = self.config

        if was_correct:
            ease = min(record.ease_factor, cfg.max_ease_factor)
            if not record.initial_study_complete:
                interval = cfg.introductory_interval_days
            else:
                interval = self.next_correct_interval(record.current_interval_days, ease)
        else:
            ease = max(record.ease_factor - cfg.ease_penalty, cfg.min_ease_factor)
            interval = max(record.previous_interval_days, cfg.introductory_interval_days)

        reached = (
            not record.has_reached_milestone
            and interval + _EPSILON >= cfg.milestone_interval_days
        )
        if reached:
            logger.info(f"Item {record.item_id} reached its milestone ({interval:.2f} days)")

        return CharacterUpdate(
            was_correct=was_correct,
            new_interval_days=interval,
            new_ease_factor=ease,
            reached_milestone=reached,
            next_review=now + timedelta(days=interval),
            reviewed_at=now,
        )

    def apply(self, record: ProgressRecord, update: CharacterUpdate) -> ProgressRecord:
        """Fold an update into a new ProgressRecord."""
        return replace(
            record,
            previous_interval_days=record.current_interval_days,
            current_interval_days=update.new_interval_days,
            ease_factor=update.new_ease_factor,
            times_reviewed=record.times_reviewed + 1,
            times_correct=record.times_correct + (1 if update.was_correct else 0),
            times_incorrect=record.times_incorrect + (0 if update.was_correct else 1),
            has_reached_milestone=record.has_reached_milestone or update.reached_milestone,
            last_reviewed=update.reviewed_at,
            next_review=update.next_review,
        )

    def review(
        self, record: ProgressRecord, was_correct: bool, now: datetime | None = None
    ) -> tuple[ProgressRecord, bool]:
        """compute_next_state + apply. Returns (new record, reached_milestone)."""
        update = self.compute_next_state(record, was_correct, now)
        return self.apply(record, update), update.reached_milestone
