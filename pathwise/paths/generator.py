"""
Learning Path Generator.

Combines performance analysis, difficulty calibration and a simple
outcome model into a personalised path:
1. Strengths/weaknesses, optimal difficulty and engagement patterns
2. Four-stage milestone ladder (Foundation -> Excellence)
3. Question pool from weak subjects at medium difficulty
4. Rule-based recommendations
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from pathwise.analytics.difficulty import DifficultyAdapter
from pathwise.analytics.performance import (
    PerformanceAnalyzer,
    PerformancePatterns,
    StrengthsWeaknesses,
)
from pathwise.models import (
    LearnerAnalytics,
    LearningPath,
    Milestone,
    PathStatus,
    PathType,
    PerformanceRecord,
)
from pathwise.repositories import QuestionBank


@dataclass(frozen=True)
class MilestoneStage:
    """Template for one stage of the ladder. `{subject}` is filled per learner."""

    name: str
    description: str
    target_accuracy: float
    estimated_days: int
    questions_quota: int


MILESTONE_TEMPLATE: tuple[MilestoneStage, ...] = (
    MilestoneStage("Foundation Building", "Master {subject}", 65, 7, 50),
    MilestoneStage("Skill Development", "Achieve 75% accuracy on all topics", 75, 14, 100),
    MilestoneStage("Mastery Phase", "Reach 85%+ accuracy consistently", 85, 21, 150),
    MilestoneStage("Excellence", "Score 90%+ on full-length exams", 90, 30, 200),
)


@dataclass
class PathConfig:
    question_pool_size: int = 50
    min_question_difficulty: int = 5
    max_question_difficulty: int = 8
    max_subjects: int = 3
    default_subjects: list[str] = field(default_factory=lambda: ["fundamentals"])
    questions_to_mastery: int = 200
    default_learning_rate: float = 0.1  # Questions/day assumed for brand-new learners
    milestones: tuple[MilestoneStage, ...] = MILESTONE_TEMPLATE


@dataclass(frozen=True)
class PathOutlook:
    """Outcome estimate attached to a new path."""

    estimated_weeks: int
    success_probability: int  # 0-100
    recommendations: list[str]


class PathGenerator:
    """
    Generate personalised learning paths.

    The question bank is the only collaborator; everything else is computed
    from the analytics snapshot passed in.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        analyzer: PerformanceAnalyzer | None = None,
        difficulty: DifficultyAdapter | None = None,
        config: PathConfig | None = None,
    ):
        self.question_bank = question_bank
        self.analyzer = analyzer or PerformanceAnalyzer()
        self.difficulty = difficulty or DifficultyAdapter()
        self.config = config or PathConfig()

    def generate_path(
        self,
        analytics: LearnerAnalytics,
        records: list[PerformanceRecord],
        now: datetime | None = None,
    ) -> LearningPath:
        """
        Build a new active path for the learner.

        Learners without enough history still get a path, focused on the
        configured default subjects.
        """
        now = now or datetime.now()
        sw = self.analyzer.identify_strengths_weaknesses(records)
        patterns = self.analyzer.analyze_performance_patterns(analytics, now=now)
        outlook = self.predict_outlook(analytics, patterns, sw)

        subjects = sw.weaknesses[: self.config.max_subjects] or list(self.config.default_subjects)

        path = LearningPath(
            learner_id=analytics.learner_id,
            name=f"Personalized Path - {now.date().isoformat()}",
            description=f"Adaptive learning path targeting {', '.join(subjects)}",
            path_type=PathType.ADAPTIVE,
            subjects=subjects,
            difficulty=self.difficulty.calculate_optimal_difficulty(analytics.average_score),
            milestones=self.build_milestones(sw.weaknesses),
            estimated_duration_weeks=outlook.estimated_weeks,
            success_probability=outlook.success_probability,
            recommendations=outlook.recommendations,
            questions=self.select_questions(subjects),
            status=PathStatus.ACTIVE,
            start_date=now,
        )

        logger.info(
            f"Learning path {path.path_id} created for {analytics.learner_id}: "
            f"subjects={subjects} difficulty={path.difficulty} questions={path.total_questions}"
        )
        return path

    def build_milestones(self, weaknesses: list[str]) -> list[Milestone]:
        """Instantiate the fixed ladder, naming the weakest subject."""
        subject = weaknesses[0] if weaknesses else "fundamentals"
        return [
            Milestone(
                name=stage.name,
                description=stage.description.format(subject=subject),
                target_accuracy=stage.target_accuracy,
                estimated_days=stage.estimated_days,
                questions_quota=stage.questions_quota,
            )
            for stage in self.config.milestones
        ]

    def select_questions(self, subjects: list[str]) -> list[str]:
        """Medium-difficulty questions from the given subjects."""
        cfg = self.config
        questions = self.question_bank.find_questions(
            subjects,
            cfg.min_question_difficulty,
            cfg.max_question_difficulty,
            cfg.question_pool_size,
        )
        return [q.item_id for q in questions[: cfg.question_pool_size]]

    def predict_outlook(
        self,
        analytics: LearnerAnalytics,
        patterns: PerformancePatterns,
        sw: StrengthsWeaknesses,
    ) -> PathOutlook:
        """Weeks to mastery, success probability and path recommendations."""
        learning_rate = patterns.learning_rate or self.config.default_learning_rate
        days_to_goal = self.config.questions_to_mastery / max(learning_rate, 1)

        engagement_factor = patterns.engagement_level / 100
        consistency_factor = min(analytics.questions_answered / 100, 1)
        probability = round((engagement_factor * 0.6 + consistency_factor * 0.4) * 100)

        recommendations = []
        if patterns.engagement_level < 50:
            recommendations.append("Increase daily study time for better results")
        if learning_rate < 1:
            recommendations.append("Try studying 10+ questions per day for optimal learning")
        if sw.weaknesses:
            recommendations.append(f"Focus on {sw.weaknesses[0]} - this is your weakest area")
        if analytics.current_score < analytics.average_score * 0.9:
            recommendations.append("Take a break and review recently covered topics")
        if sw.strengths:
            recommendations.append(f"You excel in {sw.strengths[0]} - consider teaching others")

        return PathOutlook(
            estimated_weeks=math.ceil(days_to_goal / 7),
            success_probability=int(probability),
            recommendations=recommendations,
        )

    def recommendations(
        self,
        analytics: LearnerAnalytics,
        records: list[PerformanceRecord],
        now: datetime | None = None,
    ) -> list[str]:
        """Study tips for the learner's dashboard, in a fixed rule order."""
        now = now or datetime.now()
        tips = []

        if 6 <= now.hour <= 9:
            tips.append("Morning is prime study time! Start with tough topics")
        elif 20 <= now.hour <= 23:
            tips.append("Evening slots work best for review and consolidation")

        if analytics.study_streak > 7:
            tips.append(f"Amazing {analytics.study_streak} day streak! Keep it going")

        weaknesses = self.analyzer.identify_strengths_weaknesses(records).weaknesses
        if weaknesses:
            tips.append(f"Focus on {weaknesses[0]} to boost overall score")

        if analytics.average_score > 80:
            tips.append("Try premium questions for advanced preparation")

        last_study = analytics.last_study_at or now
        if math.ceil((now - last_study).total_seconds() / 86400) > 2:
            tips.append("You haven't studied in a few days - consistency matters!")

        return tips
