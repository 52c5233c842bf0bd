"""
Learning paths.

Components:
- PathGenerator: Builds personalised multi-milestone paths
- ProgressTracker: Applies completions and status transitions
"""

from pathwise.paths.generator import (
    MILESTONE_TEMPLATE,
    MilestoneStage,
    PathConfig,
    PathGenerator,
    PathOutlook,
)
from pathwise.paths.progress import (
    CompletionOutcome,
    PathProgress,
    ProgressConfig,
    ProgressTracker,
)

__all__ = [
    "PathGenerator",
    "PathConfig",
    "PathOutlook",
    "MilestoneStage",
    "MILESTONE_TEMPLATE",
    "ProgressTracker",
    "ProgressConfig",
    "PathProgress",
    "CompletionOutcome",
]
