"""SQLAlchemy persistence adapter for the learning engine repositories."""

from pathwise.db.database import Database
from pathwise.db.models import Base
from pathwise.db.repositories import (
    SqlAppliedAttemptRepository,
    SqlCardStateRepository,
    SqlLearningPathRepository,
    SqlPerformanceRepository,
    SqlQuestionBank,
)

__all__ = [
    "Base",
    "Database",
    "SqlAppliedAttemptRepository",
    "SqlCardStateRepository",
    "SqlLearningPathRepository",
    "SqlPerformanceRepository",
    "SqlQuestionBank",
]
