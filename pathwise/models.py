"""
Domain models for the learning engine.

Plain dataclasses shared by every component:
- CardState / ReviewEntry: per-learner SM-2 review state
- PerformanceRecord / ScorePoint: attempt history feeding analytics
- LearnerAnalytics: the aggregate derived from a learner's attempts
- LearningPath / Milestone / CompletionLogEntry: personalised curricula
- Question: the shape returned by the question bank
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from statistics import fmean

# =============================================================================
# Spaced Repetition State
# =============================================================================


@dataclass(frozen=True)
class ReviewEntry:
    """A single review event in a card's history."""

    quality: int  # 0-5 SM-2 scale
    response_time_ms: int
    date: datetime


@dataclass
class CardState:
    """SM-2 state for one learner and one item."""

    learner_id: str
    item_id: str
    ease_factor: float = 2.5  # EF, never below 1.3
    interval: int = 1  # Days until next review
    repetition: int = 0  # Consecutive successful reviews since the last failure
    next_review_date: date | None = None
    last_review_date: datetime | None = None
    review_history: list[ReviewEntry] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        return (self.learner_id, self.item_id)

    @property
    def is_learning(self) -> bool:
        """Card has been introduced but never successfully reviewed."""
        return self.repetition == 0

    def days_overdue(self, today: date | None = None) -> int:
        """Days past the scheduled review date."""
        if self.next_review_date is None:
            return 0
        delta = (today or date.today()) - self.next_review_date
        return max(0, delta.days)


# =============================================================================
# Performance History
# =============================================================================


@dataclass
class PerformanceRecord:
    """One completed question or test attempt."""

    topic: str
    score: float
    date: datetime
    bloom_level: str | None = None
    correct_percentage: float | None = None
    difficulty: int | None = None
    time_spent_sec: int = 0

    @property
    def accuracy(self) -> float:
        """Accuracy used for topic grouping (correct % when recorded)."""
        if self.correct_percentage is not None:
            return self.correct_percentage
        return self.score

    def to_score_point(self) -> ScorePoint:
        return ScorePoint(
            date=self.date,
            score=self.accuracy,
            study_time_minutes=self.time_spent_sec / 60,
        )


@dataclass(frozen=True)
class ScorePoint:
    """A dated score, the input of the regression helpers."""

    date: datetime
    score: float
    study_time_minutes: float = 0.0


@dataclass
class LearnerAnalytics:
    """Aggregate view of a learner's activity."""

    learner_id: str
    created_at: datetime
    questions_answered: int = 0
    average_score: float = 0.0
    recent_accuracy: float = 0.0
    current_score: float = 0.0
    total_study_time: float = 0.0  # minutes
    test_history: list[float] = field(default_factory=list)
    study_streak: int = 0
    last_study_at: datetime | None = None

    @classmethod
    def from_records(
        cls,
        learner_id: str,
        records: list[PerformanceRecord],
        now: datetime | None = None,
        recent_window: int = 10,
    ) -> LearnerAnalytics:
        """Build the aggregate from an attempt log (oldest first after sorting)."""
        now = now or datetime.now()
        if not records:
            return cls(learner_id=learner_id, created_at=now)

        ordered = sorted(records, key=lambda r: r.date)
        scores = [r.accuracy for r in ordered]

        return cls(
            learner_id=learner_id,
            created_at=ordered[0].date,
            questions_answered=len(ordered),
            average_score=fmean(scores),
            recent_accuracy=fmean(scores[-recent_window:]),
            current_score=scores[-1],
            total_study_time=sum(r.time_spent_sec for r in ordered) / 60,
            test_history=scores,
            study_streak=_study_streak(ordered),
            last_study_at=ordered[-1].date,
        )


def _study_streak(ordered: list[PerformanceRecord]) -> int:
    """Consecutive study days ending on the most recent attempt."""
    days = {r.date.date() for r in ordered}
    cursor = ordered[-1].date.date()
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


# =============================================================================
# Learning Paths
# =============================================================================


class PathStatus(str, Enum):
    """Lifecycle of a learning path."""

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ABANDONED = "abandoned"


class PathType(str, Enum):
    ADAPTIVE = "adaptive"
    CUSTOM = "custom"
    PRESET = "preset"


@dataclass
class Milestone:
    """A named checkpoint with a target accuracy and question quota."""

    name: str
    description: str
    target_accuracy: float
    estimated_days: int
    questions_quota: int
    completed_at: datetime | None = None


@dataclass(frozen=True)
class CompletionLogEntry:
    item_id: str
    quality: int
    time_spent: float
    timestamp: datetime


@dataclass
class LearningPath:
    """A personalised curriculum for one learner."""

    learner_id: str
    name: str
    path_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    description: str = ""
    path_type: PathType = PathType.ADAPTIVE
    subjects: list[str] = field(default_factory=list)  # Weakest first
    difficulty: int = 5  # 1-10
    milestones: list[Milestone] = field(default_factory=list)
    estimated_duration_weeks: int = 4
    success_probability: int = 0  # 0-100
    recommendations: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    questions_completed: int = 0
    total_time_spent: float = 0.0
    completion_log: list[CompletionLogEntry] = field(default_factory=list)
    status: PathStatus = PathStatus.ACTIVE
    start_date: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def questions_remaining(self) -> int:
        return max(0, self.total_questions - self.questions_completed)


# =============================================================================
# Question Bank
# =============================================================================


@dataclass(frozen=True)
class Question:
    """Question metadata as returned by the question bank."""

    item_id: str
    subject: str
    difficulty: int
