"""
Performance Analyzer.

Aggregates a learner's attempt history into:
- Strengths and weaknesses per topic
- Learning rate, engagement and improvement trend
- Intervention needs for struggling topics
- Decline and inactivity alerts

Thresholds:
- Strength: mean accuracy > 70% over more than 5 attempts
- Weakness: mean accuracy < 60% over more than 5 attempts
- Engagement: 10 questions/day = 100%
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from statistics import fmean

from loguru import logger

from pathwise.models import LearnerAnalytics, PerformanceRecord

SECONDS_PER_DAY = 24 * 60 * 60


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class InterventionType(str, Enum):
    """Kind of help recommended for a struggling topic."""

    SIMPLIFY = "simplify"  # Fundamentals needed
    TUTORING = "tutoring"  # Expert help
    REVIEW = "review"  # Declining performance
    PRACTICE = "practice"  # More repetitions


RESOURCE_TEMPLATES: dict[InterventionType, tuple[str, ...]] = {
    InterventionType.SIMPLIFY: (
        "Video: {topic} Fundamentals",
        "Worksheet: Basic {topic} Concepts",
        "Interactive Tool: {topic} Practice",
    ),
    InterventionType.TUTORING: (
        "1-on-1 Tutoring: {topic}",
        "Study Group: {topic}",
        "Office Hours: {topic} Q&A",
    ),
    InterventionType.REVIEW: (
        "Summary: {topic} Key Points",
        "Practice Problems: {topic}",
        "Cheat Sheet: {topic}",
    ),
    InterventionType.PRACTICE: (
        "Problem Set: {topic}",
        "Mock Test: {topic}",
        "Timed Quiz: {topic}",
    ),
}


@dataclass
class AnalyzerConfig:
    """Thresholds for strength/weakness and engagement analysis."""

    strength_threshold: float = 70.0
    weakness_threshold: float = 60.0
    min_attempts: int = 5  # Topics need strictly more attempts than this
    max_topics: int = 3
    engagement_baseline: float = 10.0  # Questions/day counted as full engagement
    trend_window: int = 5
    trend_margin: float = 5.0
    struggle_threshold: float = 70.0
    declining_struggle_threshold: float = 75.0
    decline_alert_margin: float = 10.0
    inactivity_alert_days: int = 7


@dataclass(frozen=True)
class TopicSummary:
    topic: str
    mean_accuracy: float
    attempt_count: int
    trend: float = 0.0


@dataclass
class StrengthsWeaknesses:
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)  # Weakest first


@dataclass(frozen=True)
class PerformancePatterns:
    learning_rate: float  # Questions per day
    engagement_level: float  # 0-100
    improvement_trend: float  # Percent change of recent vs overall accuracy


@dataclass(frozen=True)
class InterventionNeed:
    topic: str
    struggle_probability: float  # 0-1
    intervention_type: InterventionType
    suggested_resources: list[str]


def window_trend(scores: list[float], window: int = 5) -> float:
    """
    Mean of the last window minus mean of the window before it.

    Zero when there is no earlier window to compare against.
    """
    if len(scores) < 2:
        return 0.0
    recent = scores[-window:]
    previous = scores[-2 * window : -window]
    if not previous:
        return 0.0
    return fmean(recent) - fmean(previous)


class PerformanceAnalyzer:
    """
    Derives strengths, weaknesses and engagement from attempt history.

    Stateless; every method works on the records it is given.
    """

    def __init__(self, config: AnalyzerConfig | None = None):
        self.config = config or AnalyzerConfig()

    def topic_summaries(self, records: list[PerformanceRecord]) -> list[TopicSummary]:
        """Per-topic accuracy, sorted by mean accuracy descending (ties by topic)."""
        by_topic: dict[str, list[float]] = defaultdict(list)
        for record in sorted(records, key=lambda r: r.date):
            by_topic[record.topic].append(record.accuracy)

        summaries = [
            TopicSummary(
                topic=topic,
                mean_accuracy=fmean(scores),
                attempt_count=len(scores),
                trend=window_trend(scores, self.config.trend_window),
            )
            for topic, scores in by_topic.items()
        ]
        summaries.sort(key=lambda s: (-s.mean_accuracy, s.topic))
        return summaries

    def identify_strengths_weaknesses(
        self, records: list[PerformanceRecord]
    ) -> StrengthsWeaknesses:
        """
        Split well-sampled topics into strengths and weaknesses.

        Topics with too few attempts are left out of both lists, so an empty
        result is normal for new learners.
        """
        cfg = self.config
        sampled = [s for s in self.topic_summaries(records) if s.attempt_count > cfg.min_attempts]

        strengths = [s.topic for s in sampled if s.mean_accuracy > cfg.strength_threshold]
        weak = [s for s in sampled if s.mean_accuracy < cfg.weakness_threshold]
        weak.sort(key=lambda s: (s.mean_accuracy, s.topic))

        return StrengthsWeaknesses(
            strengths=strengths[: cfg.max_topics],
            weaknesses=[s.topic for s in weak[: cfg.max_topics]],
        )

    def analyze_performance_patterns(
        self,
        analytics: LearnerAnalytics,
        now: datetime | None = None,
    ) -> PerformancePatterns:
        """Learning rate, engagement and improvement trend for a learner."""
        now = now or datetime.now()
        elapsed = (now - analytics.created_at).total_seconds() / SECONDS_PER_DAY
        days_since_start = max(math.ceil(elapsed), 1)

        learning_rate = analytics.questions_answered / days_since_start
        engagement = min(100.0, learning_rate / self.config.engagement_baseline * 100)

        overall = analytics.average_score
        if overall:
            improvement = (analytics.recent_accuracy - overall) / overall * 100
        else:
            improvement = 0.0

        return PerformancePatterns(
            learning_rate=learning_rate,
            engagement_level=engagement,
            improvement_trend=improvement,
        )

    def performance_trend(self, scores: list[float]) -> PerformanceTrend:
        """Compare the last window of scores with the one before it."""
        window = self.config.trend_window
        if len(scores) <= window:
            return PerformanceTrend.STABLE

        delta = window_trend(scores, window)
        if delta > self.config.trend_margin:
            return PerformanceTrend.IMPROVING
        if delta < -self.config.trend_margin:
            return PerformanceTrend.DECLINING
        return PerformanceTrend.STABLE

    def intervention_needs(self, records: list[PerformanceRecord]) -> list[InterventionNeed]:
        """Struggling topics with a recommended intervention, most at-risk first."""
        cfg = self.config
        needs = []
        for summary in self.topic_summaries(records):
            mean, trend = summary.mean_accuracy, summary.trend
            if mean < cfg.struggle_threshold or (
                trend < 0 and mean < cfg.declining_struggle_threshold
            ):
                kind = self._intervention_type(mean, trend)
                needs.append(
                    InterventionNeed(
                        topic=summary.topic,
                        struggle_probability=max(0.0, min(1.0, 1 - mean / 100)),
                        intervention_type=kind,
                        suggested_resources=[
                            t.format(topic=summary.topic) for t in RESOURCE_TEMPLATES[kind]
                        ],
                    )
                )

        needs.sort(key=lambda n: n.struggle_probability, reverse=True)
        return needs

    @staticmethod
    def _intervention_type(mean: float, trend: float) -> InterventionType:
        if mean < 40:
            return InterventionType.SIMPLIFY
        if mean < 60:
            return InterventionType.TUTORING
        if trend < -5:
            return InterventionType.REVIEW
        return InterventionType.PRACTICE

    def performance_alerts(
        self,
        records: list[PerformanceRecord],
        now: datetime | None = None,
    ) -> list[str]:
        """Decline and inactivity warnings for the learner's dashboard."""
        if not records:
            return []

        now = now or datetime.now()
        ordered = sorted(records, key=lambda r: r.date)
        scores = [r.accuracy for r in ordered]
        window = self.config.trend_window
        alerts = []

        recent, previous = scores[-window:], scores[-2 * window : -window]
        if recent and previous and fmean(recent) < fmean(previous) - self.config.decline_alert_margin:
            alerts.append(
                "Your performance has declined recently. Consider reviewing the material."
            )

        idle_days = (now - ordered[-1].date).days
        if idle_days > self.config.inactivity_alert_days:
            alerts.append("You have not practiced in over a week. Resume your studies!")

        if alerts:
            logger.info(f"Performance alerts raised: {len(alerts)}")
        return alerts
