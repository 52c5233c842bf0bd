"""
SM-2 Spaced Repetition Scheduler.

Implements:
- SM-2 ease factor and interval calculation
- Lazy card initialization on first exposure
- Batch calculation over a snapshot of cards
- Per-card review statistics

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from statistics import fmean

from loguru import logger

from pathwise.exceptions import InvalidInputError, InvalidQualityError
from pathwise.models import CardState, ReviewEntry
from pathwise.utils import round_half_up

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_ease: float = 2.5
    minimum_ease: float = 1.3
    first_interval: int = 1  # Days after the first successful review
    second_interval: int = 3  # Days after the second successful review
    ease_precision: int = 2  # Decimal places kept on the stored ease factor


@dataclass(frozen=True)
class SM2Result:
    """Output of a single SM-2 calculation."""

    ease_factor: float
    interval: int
    repetition: int
    next_review_date: date
    quality: int


@dataclass(frozen=True)
class CardStatistics:
    """Summary of a card's review history."""

    success_count: int
    failure_count: int
    total_reviews: int
    success_rate: float | None  # Percentage, None before the first review
    avg_response_time_ms: int
    ease_factor: float
    next_review_date: date | None
    days_until_review: int


def validate_quality(quality: object) -> int:
    """Return quality unchanged if it is an int rating in [0, 5]."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidQualityError(quality)
    return quality


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each card has:
    - Ease Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetition: Consecutive correct recalls since the last lapse

    All methods return new state; persistence is the caller's job.
    """

    def __init__(self, config: SM2Config | None = None):
        self.config = config or SM2Config()

    def initialize(
        self,
        item_id: str,
        learner_id: str = "",
        now: datetime | None = None,
    ) -> CardState:
        """
        Create the default state for a card on first exposure.

        The first review is scheduled for tomorrow.
        """
        now = now or datetime.now()
        return CardState(
            learner_id=learner_id,
            item_id=item_id,
            ease_factor=self.config.initial_ease,
            interval=self.config.first_interval,
            repetition=0,
            next_review_date=now.date() + timedelta(days=self.config.first_interval),
            last_review_date=now,
            review_history=[],
        )

    def next_ease_factor(self, ease_factor: float, quality: int) -> float:
        """
        EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at the minimum.

        Not rounded; callers round only the stored value.
        """
        miss = MAX_QUALITY - quality
        delta = 0.1 - miss * (0.08 + miss * 0.02)
        return max(self.config.minimum_ease, ease_factor + delta)

    def calculate(
        self,
        state: CardState,
        quality: int,
        today: date | None = None,
    ) -> SM2Result:
        """
        Calculate the next SM-2 parameters for a graded review.

        Args:
            state: Current card state
            quality: Grade 0-5
            today: Reference day (defaults to the system date)

        Returns:
            SM2Result with new ease, interval, repetition and review date

        Raises:
            InvalidQualityError: If quality is outside 0-5
        """
        quality = validate_quality(quality)
        today = today or date.today()

        new_ef = self.next_ease_factor(state.ease_factor, quality)

        if quality < PASSING_QUALITY:
            # Forgotten - back to the first step
            new_repetition = 1
            new_interval = self.config.first_interval
        else:
            new_repetition = state.repetition + 1
            if new_repetition == 1:
                new_interval = self.config.first_interval
            elif new_repetition == 2:
                new_interval = self.config.second_interval
            else:
                new_interval = round_half_up(state.interval * new_ef)

        return SM2Result(
            ease_factor=round(new_ef, self.config.ease_precision),
            interval=new_interval,
            repetition=new_repetition,
            next_review_date=today + timedelta(days=new_interval),
            quality=quality,
        )

    def review(
        self,
        state: CardState,
        quality: int,
        response_time_ms: int = 0,
        now: datetime | None = None,
    ) -> CardState:
        """
        Apply a review to a card and return the updated state.

        The input state is not modified. The review is appended to the history.
        """
        now = now or datetime.now()
        result = self.calculate(state, quality, today=now.date())

        updated = replace(
            state,
            ease_factor=result.ease_factor,
            interval=result.interval,
            repetition=result.repetition,
            next_review_date=result.next_review_date,
            last_review_date=now,
            review_history=[
                *state.review_history,
                ReviewEntry(quality=result.quality, response_time_ms=response_time_ms, date=now),
            ],
        )

        logger.debug(
            f"SM-2 review {state.learner_id}/{state.item_id}: q={quality} "
            f"EF {state.ease_factor:.2f}->{updated.ease_factor:.2f} "
            f"interval={updated.interval}d rep={updated.repetition}"
        )
        return updated

    def calculate_batch(
        self,
        states: list[CardState],
        qualities: list[int],
        today: date | None = None,
    ) -> list[SM2Result]:
        """Calculate reviews for several cards, pairing states with qualities by position."""
        if len(states) != len(qualities):
            raise InvalidInputError(
                f"Batch size mismatch: {len(states)} cards, {len(qualities)} qualities"
            )
        today = today or date.today()
        return [self.calculate(s, q, today=today) for s, q in zip(states, qualities)]

    @staticmethod
    def card_statistics(state: CardState, today: date | None = None) -> CardStatistics:
        """Summarise a card's review history."""
        today = today or date.today()
        history = state.review_history
        successes = sum(1 for r in history if r.quality >= PASSING_QUALITY)
        total = len(history)

        days_until = 0
        if state.next_review_date is not None:
            days_until = (state.next_review_date - today).days

        return CardStatistics(
            success_count=successes,
            failure_count=total - successes,
            total_reviews=total,
            success_rate=round(successes / total * 100, 1) if total else None,
            avg_response_time_ms=round_half_up(fmean(r.response_time_ms for r in history))
            if history
            else 0,
            ease_factor=state.ease_factor,
            next_review_date=state.next_review_date,
            days_until_review=days_until,
        )

    @staticmethod
    def grade_from_response(
        is_correct: bool,
        response_ms: int,
        expected_ms: int = 10000,
    ) -> int:
        """
        Grade an answer that was scored automatically rather than self-rated.

        Speed adds up to two points on top of the base grade: 3 for a correct
        answer, 0 for a wrong one. Answering within half the expected time
        earns both points, within the expected time one.
        """
        if expected_ms <= 0:
            raise InvalidInputError(f"expected_ms must be positive, got {expected_ms}")
        if response_ms < 0:
            raise InvalidInputError(f"response_ms must be >= 0, got {response_ms}")

        speed_bonus = sum(response_ms < limit for limit in (expected_ms / 2, expected_ms))
        base = PASSING_QUALITY if is_correct else 0
        return base + speed_bonus
