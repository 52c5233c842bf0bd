"""
Learning Path Progress Tracker.

Applies completion events to a path and reports progress:
- Completion counters, time spent and the completion log
- Milestone crossings (mapped proportionally from percent complete)
- Automatic completion when percent complete reaches 100
- Explicit status transitions (complete, pause, resume, abandon)

Percent complete is round(completed / total * 100), so a path can complete
one question early once the remainder rounds up to 100 (e.g. 199/200).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from loguru import logger

from pathwise.exceptions import InvalidInputError, InvalidTransitionError
from pathwise.models import CompletionLogEntry, LearningPath, Milestone, PathStatus
from pathwise.scheduling.sm2 import validate_quality
from pathwise.utils import round_half_up

# Allowed status transitions; completed and abandoned are terminal
TRANSITIONS: dict[PathStatus, frozenset[PathStatus]] = {
    PathStatus.ACTIVE: frozenset({PathStatus.COMPLETED, PathStatus.PAUSED, PathStatus.ABANDONED}),
    PathStatus.PAUSED: frozenset({PathStatus.ACTIVE, PathStatus.COMPLETED, PathStatus.ABANDONED}),
    PathStatus.COMPLETED: frozenset(),
    PathStatus.ABANDONED: frozenset(),
}


@dataclass
class ProgressConfig:
    questions_per_day: int = 15


@dataclass(frozen=True)
class PathProgress:
    percent_complete: int
    current_milestone: str
    next_milestone: str
    questions_completed: int
    questions_remaining: int
    estimated_completion: date


@dataclass(frozen=True)
class CompletionOutcome:
    """Result of logging a completion; replaces event-emitter notifications."""

    path: LearningPath
    milestone_reached: str | None = None
    path_completed: bool = False


class ProgressTracker:
    """Tracks completion state for learning paths. Returns new path objects."""

    def __init__(self, config: ProgressConfig | None = None):
        self.config = config or ProgressConfig()

    @staticmethod
    def percent_complete(path: LearningPath) -> int:
        if path.total_questions == 0:
            return 0
        return round_half_up(path.questions_completed / path.total_questions * 100)

    @staticmethod
    def milestone_index(path: LearningPath, percent: int) -> int:
        """Map percent complete onto the milestone list (floor, capped at the last)."""
        count = len(path.milestones)
        if count == 0:
            return 0
        return min(math.floor(percent / 100 * count), count - 1)

    def get_progress(self, path: LearningPath, today: date | None = None) -> PathProgress:
        today = today or date.today()
        percent = self.percent_complete(path)

        if path.milestones:
            idx = self.milestone_index(path, percent)
            next_idx = min(idx + 1, len(path.milestones) - 1)
            current_name = path.milestones[idx].name
            next_name = path.milestones[next_idx].name
        else:
            current_name, next_name = "Starting", "Complete"

        remaining = path.questions_remaining
        days_left = max(0, math.ceil(remaining / self.config.questions_per_day))

        return PathProgress(
            percent_complete=percent,
            current_milestone=current_name,
            next_milestone=next_name,
            questions_completed=path.questions_completed,
            questions_remaining=remaining,
            estimated_completion=today + timedelta(days=days_left),
        )

    def log_completion(
        self,
        path: LearningPath,
        item_id: str,
        quality: int,
        time_spent: float,
        now: datetime | None = None,
    ) -> CompletionOutcome:
        """
        Record an answered question on an active path.

        Raises:
            InvalidQualityError: If quality is outside 0-5
            InvalidInputError: If time_spent is negative, the path is not active
                or it has no questions left
        """
        quality = validate_quality(quality)
        if time_spent < 0:
            raise InvalidInputError(f"time_spent must be >= 0, got {time_spent}")
        if path.status != PathStatus.ACTIVE:
            raise InvalidInputError(
                f"Learning path {path.path_id} is {path.status.value}; completions need an active path"
            )
        if path.questions_remaining == 0:
            raise InvalidInputError(
                f"Learning path {path.path_id} has no questions left to complete"
            )

        now = now or datetime.now()
        before = self.milestone_index(path, self.percent_complete(path))

        updated = replace(
            path,
            questions_completed=path.questions_completed + 1,
            total_time_spent=path.total_time_spent + time_spent,
            completion_log=[
                *path.completion_log,
                CompletionLogEntry(
                    item_id=item_id, quality=quality, time_spent=time_spent, timestamp=now
                ),
            ],
            milestones=[replace(m) for m in path.milestones],
        )

        percent = self.percent_complete(updated)
        after = self.milestone_index(updated, percent)
        milestone_reached = None
        if after > before:
            self._stamp_milestones(updated.milestones[before:after], now)
            milestone_reached = updated.milestones[after - 1].name
            logger.info(f"Path {path.path_id}: milestone '{milestone_reached}' reached")

        if percent >= 100:
            updated = self._complete(updated, now)
            return CompletionOutcome(updated, milestone_reached, path_completed=True)

        return CompletionOutcome(updated, milestone_reached)

    def complete_path(self, path: LearningPath, now: datetime | None = None) -> LearningPath:
        """Explicitly finish a path regardless of its percent complete."""
        self._check_transition(path, PathStatus.COMPLETED)
        copied = replace(path, milestones=[replace(m) for m in path.milestones])
        return self._complete(copied, now or datetime.now())

    def pause_path(self, path: LearningPath) -> LearningPath:
        return self._transition(path, PathStatus.PAUSED)

    def resume_path(self, path: LearningPath) -> LearningPath:
        return self._transition(path, PathStatus.ACTIVE)

    def abandon_path(self, path: LearningPath) -> LearningPath:
        return self._transition(path, PathStatus.ABANDONED)

    def _transition(self, path: LearningPath, target: PathStatus) -> LearningPath:
        self._check_transition(path, target)
        logger.info(f"Path {path.path_id}: {path.status.value} -> {target.value}")
        return replace(path, status=target)

    @staticmethod
    def _check_transition(path: LearningPath, target: PathStatus) -> None:
        if target not in TRANSITIONS[path.status]:
            raise InvalidTransitionError(path.path_id, path.status.value, target.value)

    def _complete(self, path: LearningPath, now: datetime) -> LearningPath:
        self._stamp_milestones(path.milestones, now)
        logger.info(f"Learning path completed: {path.path_id}")
        return replace(path, status=PathStatus.COMPLETED, completed_at=now)

    @staticmethod
    def _stamp_milestones(milestones: list[Milestone], now: datetime) -> None:
        for milestone in milestones:
            if milestone.completed_at is None:
                milestone.completed_at = now
