"""
Drip-feed pacing for new items.

Items move through three stages: locked, ready to learn (unlocked but
not yet introduced), and introduced. The gate decides how many locked
items may become ready to learn right now:

- nothing unlocks while an introduced item has not finished initial study
- the ready-to-learn queue is capped
- unlocks happen in batches, at most once per unlock interval
- each item that reaches its milestone unlocks a fixed number more
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

BLOCKED_INCOMPLETE = "incomplete"
BLOCKED_QUEUE_FULL = "queue_full"
BLOCKED_WAITING = "waiting"


@dataclass
class UnlockConfig:
    """Pacing configuration."""

    unlock_interval_hours: float = 24.0
    items_per_unlock: int = 5
    max_ready_to_learn: int = 10
    unlocks_per_milestone: int = 1
    initial_ready_count: int = 30  # Ready to learn on first run


@dataclass
class UnlockDecision:
    """What the gate allows right now."""

    unlock_count: int
    ready_to_learn_count: int  # After the unlock
    hours_until_next_unlock: int | None = None
    blocked_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "unlocked_count": self.unlock_count,
            "ready_to_learn_count": self.ready_to_learn_count,
            "hours_until_next_unlock": self.hours_until_next_unlock,
        }


class UnlockGate:
    """Decides how many new items to unlock."""

    def __init__(self, config: UnlockConfig | None = None):
        self.config = config or UnlockConfig()

    def first_run(self, available: int) -> UnlockDecision:
        """Initial batch for a learner with no progress at all."""
        count = max(0, min(self.config.initial_ready_count, available))
        return UnlockDecision(unlock_count=count, ready_to_learn_count=count)

    def evaluate(
        self,
        now: datetime,
        last_unlock_at: datetime | None,
        pending_count: int,
        incomplete_count: int,
    ) -> UnlockDecision:
        """
        Decide the next unlock.

        Args:
            now: Current time
            last_unlock_at: When items were last unlocked (None if never)
            pending_count: Items ready to learn but not yet introduced
            incomplete_count: Introduced items still in initial study

        Returns:
            UnlockDecision
        """
        cfg = self.config
        if incomplete_count > 0:
            return UnlockDecision(0, pending_count, None, BLOCKED_INCOMPLETE)

        capacity = cfg.max_ready_to_learn - pending_count
        if capacity <= 0:
            return UnlockDecision(0, pending_count, None, BLOCKED_QUEUE_FULL)

        interval = timedelta(hours=cfg.unlock_interval_hours)
        if last_unlock_at is not None and now - last_unlock_at < interval:
            remaining = (last_unlock_at + interval - now).total_seconds() / 3600
            return UnlockDecision(0, pending_count, max(1, math.ceil(remaining)), BLOCKED_WAITING)

        count = min(cfg.items_per_unlock, capacity)
        return UnlockDecision(count, pending_count + count)

    def milestone_unlocks(self, reached_milestone: bool) -> int:
        """Extra unlocks earned by a review that reached its milestone."""
        return self.config.unlocks_per_milestone if reached_milestone else 0
