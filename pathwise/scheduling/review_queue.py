"""
Daily review queue construction.

Partitions a learner's cards into overdue / today / learning buckets,
classifies single cards for badges, and recommends a daily load.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

from loguru import logger

from pathwise.exceptions import InvalidInputError
from pathwise.models import CardState
from pathwise.utils import round_half_up


class ReviewPriority(str, Enum):
    """Scheduling badge for a single card."""

    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    FUTURE = "future"


@dataclass
class DailyLoadConfig:
    """Fixed daily-load policy."""

    max_new_cards: int = 20
    max_review_cards: int = 30
    new_card_minutes: float = 1.5
    review_card_minutes: float = 0.5
    default_review_percentage: float = 0.3  # Share of the deck assumed mature


@dataclass
class ReviewQueue:
    """Cards due for a learner on a given day."""

    overdue: list[CardState] = field(default_factory=list)
    today: list[CardState] = field(default_factory=list)
    learning: list[CardState] = field(default_factory=list)

    @property
    def total_due(self) -> int:
        return len(self.overdue) + len(self.today) + len(self.learning)

    def item_ids(self) -> list[str]:
        """Item ids in presentation order: overdue, today, learning."""
        return [c.item_id for c in (*self.overdue, *self.today, *self.learning)]


@dataclass(frozen=True)
class DailyTargets:
    new_cards: int
    review_cards: int
    total_daily: int
    recommended_minutes: float


class ReviewQueueBuilder:
    """
    Builds the daily review queue from a snapshot of card states.

    Partition rule, first match wins:
    1. repetition == 0 -> learning
    2. next review before today -> overdue
    3. next review today -> today
    4. otherwise not queued

    Overdue and today are sorted hardest first (lowest ease); learning cards
    closest to graduating come first. Sorting is stable, so equal keys keep
    snapshot order.
    """

    def __init__(self, config: DailyLoadConfig | None = None):
        self.config = config or DailyLoadConfig()

    def build(self, states: Iterable[CardState], today: date | None = None) -> ReviewQueue:
        today = today or date.today()
        queue = ReviewQueue()

        for state in states:
            if state.repetition == 0:
                queue.learning.append(state)
            elif state.next_review_date is None or state.next_review_date == today:
                queue.today.append(state)
            elif state.next_review_date < today:
                queue.overdue.append(state)

        queue.overdue.sort(key=lambda c: c.ease_factor)
        queue.today.sort(key=lambda c: c.ease_factor)
        queue.learning.sort(key=lambda c: c.repetition, reverse=True)

        logger.debug(
            f"Review queue for {today}: {len(queue.overdue)} overdue, "
            f"{len(queue.today)} today, {len(queue.learning)} learning"
        )
        return queue

    @staticmethod
    def priority(state: CardState, today: date | None = None) -> ReviewPriority:
        """Classify a card relative to today and tomorrow."""
        today = today or date.today()
        next_review = state.next_review_date
        if next_review is None or next_review == today:
            return ReviewPriority.TODAY
        if next_review < today:
            return ReviewPriority.OVERDUE
        if next_review == today + timedelta(days=1):
            return ReviewPriority.TOMORROW
        return ReviewPriority.FUTURE

    def daily_targets(
        self,
        card_count: int,
        review_percentage: float | None = None,
    ) -> DailyTargets:
        """
        Recommend today's new/review split for a deck.

        A fixed heuristic, independent of the actual queue.
        """
        if review_percentage is None:
            review_percentage = self.config.default_review_percentage
        if card_count < 0:
            raise InvalidInputError(f"card_count must be >= 0, got {card_count}")
        if not 0 <= review_percentage <= 1:
            raise InvalidInputError(
                f"review_percentage must be within [0, 1], got {review_percentage}"
            )

        mature = round_half_up(card_count * review_percentage)
        new_cards = min(self.config.max_new_cards, card_count - mature)
        review_cards = min(self.config.max_review_cards, mature)

        return DailyTargets(
            new_cards=new_cards,
            review_cards=review_cards,
            total_daily=new_cards + review_cards,
            recommended_minutes=new_cards * self.config.new_card_minutes
            + review_cards * self.config.review_card_minutes,
        )

    @staticmethod
    def activity_heatmap(
        states: Iterable[CardState],
        today: date | None = None,
        days: int = 30,
    ) -> dict[date, int]:
        """Count reviews per day over the trailing window (today included)."""
        today = today or date.today()
        heatmap = {today - timedelta(days=i): 0 for i in range(days)}
        for state in states:
            for review in state.review_history:
                day = review.date.date()
                if day in heatmap:
                    heatmap[day] += 1
        return heatmap


def heatmap_intensity(count: int) -> int:
    """Bucket a daily review count into intensity levels 0-4."""
    if count == 0:
        return 0
    if count < 5:
        return 1
    if count < 10:
        return 2
    if count < 20:
        return 3
    return 4
