"""
Spaced repetition scheduling.

Components:
- SM2Scheduler: SM-2 ease/interval calculation
- ReviewQueueBuilder: Daily overdue/today/learning queue and load targets
"""

from pathwise.scheduling.review_queue import (
    DailyLoadConfig,
    DailyTargets,
    ReviewPriority,
    ReviewQueue,
    ReviewQueueBuilder,
    heatmap_intensity,
)
from pathwise.scheduling.sm2 import (
    CardStatistics,
    SM2Config,
    SM2Result,
    SM2Scheduler,
    validate_quality,
)

__all__ = [
    # SM-2
    "SM2Scheduler",
    "SM2Config",
    "SM2Result",
    "CardStatistics",
    "validate_quality",
    # Queue
    "ReviewQueueBuilder",
    "ReviewQueue",
    "ReviewPriority",
    "DailyLoadConfig",
    "DailyTargets",
    "heatmap_intensity",
]
