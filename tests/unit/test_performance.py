"""Unit tests for PerformanceAnalyzer."""

from datetime import timedelta

import pytest

from pathwise.analytics.performance import (
    AnalyzerConfig,
    InterventionType,
    PerformanceAnalyzer,
    PerformanceTrend,
    window_trend,
)
from pathwise.models import LearnerAnalytics


@pytest.fixture
def analyzer():
    return PerformanceAnalyzer()


@pytest.fixture
def mixed_history(make_records):
    return (
        make_records("networking", [90] * 6)
        + make_records("security", [40] * 6)
        + make_records("fundamentals", [55] * 6)
        + make_records("routing", [20] * 3)
        + make_records("switching", [65] * 6)
    )


class TestStrengthsWeaknesses:
    def test_classifies_sampled_topics(self, analyzer, mixed_history):
        result = analyzer.identify_strengths_weaknesses(mixed_history)

        assert result.strengths == ["networking"]
        assert result.weaknesses == ["security", "fundamentals"]

    def test_lists_are_disjoint(self, analyzer, mixed_history):
        result = analyzer.identify_strengths_weaknesses(mixed_history)

        assert not set(result.strengths) & set(result.weaknesses)

    def test_needs_more_than_min_attempts(self, analyzer, make_records):
        result = analyzer.identify_strengths_weaknesses(make_records("security", [10] * 5))

        assert result.weaknesses == []

    def test_middle_band_is_neither(self, analyzer, mixed_history):
        result = analyzer.identify_strengths_weaknesses(mixed_history)

        assert "switching" not in result.strengths + result.weaknesses

    def test_empty_history(self, analyzer):
        result = analyzer.identify_strengths_weaknesses([])

        assert result.strengths == []
        assert result.weaknesses == []

    def test_capped_at_max_topics(self, make_records):
        analyzer = PerformanceAnalyzer(AnalyzerConfig(max_topics=2))
        history = [r for t in ("a", "b", "c", "d") for r in make_records(t, [30] * 6)]

        assert len(analyzer.identify_strengths_weaknesses(history).weaknesses) == 2

    def test_uses_correct_percentage_when_present(self, analyzer, make_records):
        history = make_records("security", [95] * 6)
        for record in history:
            record.correct_percentage = 30

        assert analyzer.identify_strengths_weaknesses(history).weaknesses == ["security"]


class TestPerformancePatterns:
    def test_rate_and_engagement(self, analyzer, now):
        analytics = LearnerAnalytics(
            learner_id="alice",
            created_at=now - timedelta(days=10),
            questions_answered=50,
            average_score=64,
            recent_accuracy=80,
        )
        patterns = analyzer.analyze_performance_patterns(analytics, now=now)

        assert patterns.learning_rate == pytest.approx(5.0)
        assert patterns.engagement_level == pytest.approx(50.0)
        assert patterns.improvement_trend == pytest.approx(25.0)

    def test_engagement_capped(self, analyzer, now):
        analytics = LearnerAnalytics(learner_id="alice", created_at=now, questions_answered=500)
        patterns = analyzer.analyze_performance_patterns(analytics, now=now)

        # Same-day learners count as one day
        assert patterns.learning_rate == pytest.approx(500.0)
        assert patterns.engagement_level == 100.0

    def test_no_history(self, analyzer, now):
        patterns = analyzer.analyze_performance_patterns(
            LearnerAnalytics(learner_id="alice", created_at=now), now=now
        )

        assert patterns.learning_rate == 0
        assert patterns.engagement_level == 0
        assert patterns.improvement_trend == 0


class TestTrend:
    def test_improving(self, analyzer):
        assert analyzer.performance_trend([50] * 5 + [70] * 5) == PerformanceTrend.IMPROVING

    def test_declining(self, analyzer):
        assert analyzer.performance_trend([70] * 5 + [50] * 5) == PerformanceTrend.DECLINING

    def test_short_history_is_stable(self, analyzer):
        assert analyzer.performance_trend([10, 90, 10, 90, 10]) == PerformanceTrend.STABLE

    def test_window_trend(self):
        assert window_trend([60, 60, 80, 80], window=2) == pytest.approx(20.0)
        assert window_trend([60, 80], window=5) == 0.0


class TestInterventions:
    def test_types_and_order(self, analyzer, make_records):
        history = (
            make_records("algebra", [30] * 6)
            + make_records("geometry", [50] * 6)
            + make_records("calculus", [75] * 5 + [60] * 5)
            + make_records("statistics", [95] * 6)
        )
        needs = analyzer.intervention_needs(history)

        assert [n.topic for n in needs] == ["algebra", "geometry", "calculus"]
        assert [n.intervention_type for n in needs] == [
            InterventionType.SIMPLIFY,
            InterventionType.TUTORING,
            InterventionType.REVIEW,
        ]
        assert needs[0].struggle_probability == pytest.approx(0.7)
        assert needs[0].suggested_resources[0] == "Video: algebra Fundamentals"

    def test_none_for_strong_learner(self, analyzer, make_records):
        assert analyzer.intervention_needs(make_records("statistics", [95] * 6)) == []


class TestAlerts:
    def test_decline_and_inactivity(self, analyzer, make_records, now):
        history = make_records("algebra", [80] * 5 + [60] * 5, start=now - timedelta(days=9))
        alerts = analyzer.performance_alerts(history, now=now)

        assert len(alerts) == 2
        assert "declined" in alerts[0]
        assert "over a week" in alerts[1]

    def test_decline_tracks_correct_percentage(self, analyzer, make_records, now):
        history = make_records("algebra", [80] * 10, start=now - timedelta(hours=12))
        for record, correct in zip(history, [80] * 5 + [60] * 5):
            record.correct_percentage = correct

        alerts = analyzer.performance_alerts(history, now=now)

        assert len(alerts) == 1
        assert "declined" in alerts[0]

    def test_quiet_when_steady(self, analyzer, make_records, now):
        history = make_records("algebra", [80] * 10, start=now - timedelta(hours=12))

        assert analyzer.performance_alerts(history, now=now) == []

    def test_empty(self, analyzer, now):
        assert analyzer.performance_alerts([], now=now) == []
