"""
Learner analytics.

Components:
- PerformanceAnalyzer: Strengths, weaknesses, engagement and interventions
- DifficultyAdapter: Accuracy-driven difficulty levels
- PredictionModel: Score forecasting heuristics
"""

from pathwise.analytics.difficulty import DifficultyAdapter, DifficultyConfig
from pathwise.analytics.performance import (
    AnalyzerConfig,
    InterventionNeed,
    InterventionType,
    PerformanceAnalyzer,
    PerformancePatterns,
    PerformanceTrend,
    StrengthsWeaknesses,
    TopicSummary,
)
from pathwise.analytics.prediction import (
    ExamPrediction,
    PredictionConfig,
    PredictionModel,
    PredictionSnapshot,
    ScoreCeiling,
    ScorePrediction,
    ScoreProjection,
    StudyFrequency,
    StudyTimeROI,
    TimeToTarget,
)

__all__ = [
    # Components
    "PerformanceAnalyzer",
    "DifficultyAdapter",
    "PredictionModel",
    # Configuration
    "AnalyzerConfig",
    "DifficultyConfig",
    "PredictionConfig",
    # Results
    "StrengthsWeaknesses",
    "PerformancePatterns",
    "TopicSummary",
    "InterventionNeed",
    "ExamPrediction",
    "PredictionSnapshot",
    "ScoreCeiling",
    "ScorePrediction",
    "ScoreProjection",
    "StudyFrequency",
    "StudyTimeROI",
    "TimeToTarget",
    # Enums
    "PerformanceTrend",
    "InterventionType",
]
