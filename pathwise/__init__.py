"""
Pathwise: adaptive learning engine.

Decides, per learner and per card or topic, when to re-test and what to
present next.

Components:
- SM2Scheduler: SM-2 spaced repetition
- ReviewQueueBuilder: Daily review queue and load targets
- PerformanceAnalyzer: Strengths, weaknesses and engagement
- DifficultyAdapter: Accuracy-driven difficulty
- PredictionModel: Score forecasting heuristics
- PathGenerator / ProgressTracker: Multi-milestone learning paths
- LearningEngine: Facade over repositories, components and events
"""

from .analytics import DifficultyAdapter, PerformanceAnalyzer, PredictionModel
from .engine import LearningEngine, ReviewOutcome
from .exceptions import (
    InvalidInputError,
    InvalidQualityError,
    InvalidTransitionError,
    NotFoundError,
    PathNotFoundError,
    PathwiseError,
)
from .models import CardState, LearnerAnalytics, LearningPath, PerformanceRecord
from .paths import PathGenerator, ProgressTracker
from .scheduling import ReviewQueueBuilder, SM2Scheduler

__version__ = "1.0.0"

__all__ = [
    # Facade
    "LearningEngine",
    "ReviewOutcome",
    # Components
    "SM2Scheduler",
    "ReviewQueueBuilder",
    "PerformanceAnalyzer",
    "DifficultyAdapter",
    "PredictionModel",
    "PathGenerator",
    "ProgressTracker",
    # Models
    "CardState",
    "PerformanceRecord",
    "LearnerAnalytics",
    "LearningPath",
    # Errors
    "PathwiseError",
    "InvalidInputError",
    "InvalidQualityError",
    "InvalidTransitionError",
    "NotFoundError",
    "PathNotFoundError",
]
