"""
Prediction Model.

Lightweight heuristics over a learner's score history:
- Next-score prediction from the recent window and its trend
- Score ceiling from the best observed results
- Linear-regression projections and time-to-target estimates
- Study-time return on investment
- Recommended exam frequency

Every method fails soft: with fewer than two data points it returns a
zeroed result flagged ``sufficient_data=False`` instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from statistics import fmean, pstdev

from loguru import logger

from pathwise.exceptions import InvalidInputError
from pathwise.models import ScorePoint
from pathwise.utils import clamp, round_half_up

MIN_POINTS = 2
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class PredictionConfig:
    """Tunable constants of the heuristic models."""

    window: int = 10  # Recent scores considered by next-score prediction
    trend_multiplier: float = 5.0  # Exams of trend extrapolated forward
    min_confidence: float = 30.0
    max_confidence: float = 95.0
    default_target: float = 85.0
    horizon_days: int = 365  # Targets further out are reported unachievable
    min_improvement_rate: float = 0.5  # Points per exam used when estimating readiness
    min_frequency_points: int = 7
    projection_days: int = 30


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ScorePrediction:
    predicted_score: int
    confidence: int
    sufficient_data: bool = True
    trend: float = 0.0  # Points per exam over the window


@dataclass(frozen=True)
class ScoreCeiling:
    ceiling: float
    confidence: int  # 0-100
    sufficient_data: bool = True


@dataclass(frozen=True)
class TimeToTarget:
    days_to_target: int  # -1 when the target cannot be reached
    target_date: date | None
    confidence: str  # "high" | "medium" | "low" | "very low"
    is_achievable: bool
    sufficient_data: bool = True


@dataclass(frozen=True)
class StudyTimeROI:
    score_per_hour: float
    roi: float  # Percent improvement over the initial score
    recommendation: str
    sufficient_data: bool = True


@dataclass(frozen=True)
class StudyFrequency:
    recommended_exams_per_week: int  # 1-5
    explanation: str


@dataclass(frozen=True)
class ScoreProjection:
    predicted_score: float
    low: float
    high: float
    timeframe_days: int
    recommendation: str
    sufficient_data: bool = True


@dataclass(frozen=True)
class ExamPrediction:
    """Payload of the learner predictions endpoint."""

    predicted_score: int
    confidence: int
    days_to_target: int | None
    time_to_target: str
    key_areas: list[str] = field(default_factory=list)
    sufficient_data: bool = True


@dataclass(frozen=True)
class PredictionSnapshot:
    """Every prediction for one learner, computed on demand and never stored."""

    exam: ExamPrediction
    ceiling: ScoreCeiling
    time_to_target: TimeToTarget
    projection: ScoreProjection
    roi: StudyTimeROI
    frequency: StudyFrequency


# =============================================================================
# Linear Trend
# =============================================================================


@dataclass(frozen=True)
class LinearTrend:
    """Least-squares fit of score against days since the first point."""

    slope: float
    intercept: float
    xs: list[float]
    ys: list[float]
    last_date: datetime

    def at(self, x: float) -> float:
        return self.intercept + self.slope * x

    @property
    def std_error(self) -> float:
        residuals = [y - self.at(x) for x, y in zip(self.xs, self.ys)]
        return math.sqrt(sum(r * r for r in residuals) / max(1, len(self.xs) - 2))


def fit_trend(points: Sequence[ScorePoint]) -> LinearTrend:
    """Fit score = intercept + slope * days. Requires at least two points."""
    if len(points) < MIN_POINTS:
        raise InvalidInputError("At least two points are required to fit a trend")

    ordered = sorted(points, key=lambda p: p.date)
    start = ordered[0].date
    xs = [(p.date - start).total_seconds() / SECONDS_PER_DAY for p in ordered]
    ys = [p.score for p in ordered]

    x_mean, y_mean = fmean(xs), fmean(ys)
    numerator = sum((x - x_mean) * (y - y_mean) for x, y in zip(xs, ys))
    denominator = sum((x - x_mean) ** 2 for x in xs)

    slope = numerator / denominator if denominator > 0 else 0.0
    return LinearTrend(
        slope=slope,
        intercept=y_mean - slope * x_mean,
        xs=xs,
        ys=ys,
        last_date=ordered[-1].date,
    )


# =============================================================================
# Prediction Model
# =============================================================================


class PredictionModel:
    """Heuristic score forecasting over a learner's history."""

    def __init__(self, config: PredictionConfig | None = None):
        self.config = config or PredictionConfig()

    def predict_next_score(self, scores: Sequence[float]) -> ScorePrediction:
        """
        Predict the next score from the recent window.

        predicted = avg(window) + trend * 5, where trend is the first-to-last
        change divided by the window length. Confidence falls with spread.
        """
        cfg = self.config
        if len(scores) < MIN_POINTS:
            return ScorePrediction(predicted_score=0, confidence=0, sufficient_data=False)

        window = list(scores[-cfg.window :])
        average = fmean(window)
        trend = (window[-1] - window[0]) / len(window)

        predicted = clamp(round_half_up(average + trend * cfg.trend_multiplier), 0, 100)
        confidence = clamp(100 - pstdev(window), cfg.min_confidence, cfg.max_confidence)

        return ScorePrediction(
            predicted_score=int(predicted),
            confidence=round_half_up(confidence),
            trend=trend,
        )

    def score_ceiling(self, scores: Sequence[float]) -> ScoreCeiling:
        """Achievable maximum: mean of the top decile (at least 3 scores) plus 5."""
        if len(scores) < MIN_POINTS:
            return ScoreCeiling(ceiling=100.0, confidence=0, sufficient_data=False)

        ranked = sorted(scores, reverse=True)
        top = ranked[: max(3, math.ceil(len(ranked) * 0.1))]
        ceiling = min(100.0, fmean(top) + 5)

        return ScoreCeiling(
            ceiling=round(ceiling, 2),
            confidence=round_half_up(min(1.0, len(top) / 5) * 100),
        )

    def time_to_target(
        self,
        points: Sequence[ScorePoint],
        target: float | None = None,
    ) -> TimeToTarget:
        """
        Extrapolate the regression line to the target score.

        Flat or declining trends never reach a higher target. Targets beyond
        100 or past the horizon are reported as unachievable.
        """
        cfg = self.config
        target = cfg.default_target if target is None else target
        if target < 0:
            raise InvalidInputError(f"Target score must be >= 0, got {target}")
        if len(points) < MIN_POINTS:
            return TimeToTarget(
                days_to_target=-1,
                target_date=None,
                confidence="very low",
                is_achievable=False,
                sufficient_data=False,
            )

        trend = fit_trend(points)
        current = trend.ys[-1]

        if target <= current:
            days, achievable = 0, True
        elif trend.slope <= 0:
            days, achievable = -1, False
        else:
            days = max(0, math.ceil((target - trend.intercept) / trend.slope - trend.xs[-1]))
            achievable = target <= 100 and days <= cfg.horizon_days

        std_error = trend.std_error
        if std_error < 5 and 0 < days < cfg.horizon_days:
            confidence = "high"
        elif std_error < 10 or 0 < days < 180:
            confidence = "medium"
        else:
            confidence = "low"

        target_date = trend.last_date.date() + timedelta(days=days) if days >= 0 else None
        return TimeToTarget(
            days_to_target=days,
            target_date=target_date,
            confidence=confidence,
            is_achievable=achievable,
        )

    def study_time_roi(self, points: Sequence[ScorePoint]) -> StudyTimeROI:
        """Score gained per hour studied between the first and last result."""
        if len(points) < MIN_POINTS:
            return StudyTimeROI(0.0, 0.0, "Start studying to measure ROI", sufficient_data=False)

        ordered = sorted(points, key=lambda p: p.date)
        hours = sum(p.study_time_minutes for p in ordered) / 60
        if hours == 0:
            return StudyTimeROI(0.0, 0.0, "Track study time to measure ROI", sufficient_data=False)

        improvement = ordered[-1].score - ordered[0].score
        score_per_hour = improvement / hours
        initial = ordered[0].score or 50
        roi = improvement / initial * 100

        if score_per_hour > 2:
            recommendation = "Excellent ROI - Continue your current study strategy"
        elif score_per_hour > 1:
            recommendation = "Good ROI - Your study time is paying off"
        elif score_per_hour > 0:
            recommendation = "Moderate ROI - Consider optimizing your study methods"
        else:
            recommendation = "Low ROI - Try different study approaches"

        return StudyTimeROI(
            score_per_hour=round(score_per_hour, 2),
            roi=round(roi, 2),
            recommendation=recommendation,
        )

    def optimal_study_frequency(self, points: Sequence[ScorePoint]) -> StudyFrequency:
        """Recommend exams per week (1-5) from observed pace and improvement."""
        if len(points) < self.config.min_frequency_points:
            return StudyFrequency(3, "Complete more exams to analyze optimal frequency")

        ordered = sorted(points, key=lambda p: p.date)
        span_days = (ordered[-1].date - ordered[0].date).total_seconds() / SECONDS_PER_DAY
        exams_per_week = len(ordered) / max(span_days, 1) * 7

        scores = [p.score for p in ordered]
        improvement = fmean(scores[-10:]) - fmean(scores[:10])

        recommended = 3
        explanation = "Maintain a balanced study schedule of 3 exams per week"
        if improvement < 2:
            if exams_per_week < 3:
                recommended = 4
                explanation = "Increase to 4 exams per week for better progress"
            else:
                recommended = 2
                explanation = "Reduce to 2 exams per week and focus on quality study"
        elif improvement > 5:
            recommended = min(5, math.ceil(exams_per_week + 1))
            explanation = f"Great progress! You can handle {recommended} exams per week"

        return StudyFrequency(int(clamp(recommended, 1, 5)), explanation)

    def project_score(
        self,
        points: Sequence[ScorePoint],
        days: int | None = None,
    ) -> ScoreProjection:
        """Regression forecast `days` after the last result with a 95% interval."""
        days = self.config.projection_days if days is None else days
        if len(points) < MIN_POINTS:
            return ScoreProjection(
                predicted_score=0.0,
                low=0.0,
                high=0.0,
                timeframe_days=days,
                recommendation="Complete more exams to generate accurate predictions",
                sufficient_data=False,
            )

        trend = fit_trend(points)
        predicted = clamp(trend.at(trend.xs[-1] + days), 0, 100)
        margin = 1.96 * trend.std_error

        improvement = predicted - trend.ys[-1]
        if improvement > 5:
            recommendation = "Keep up your current study routine for continued improvement"
        elif improvement > 0:
            recommendation = (
                "You're on the right track, but consider increasing study time for faster progress"
            )
        elif improvement > -5:
            recommendation = "Your progress has plateaued; try new study strategies"
        else:
            recommendation = "Consider a significant change in your study approach"

        return ScoreProjection(
            predicted_score=round(predicted, 2),
            low=round(max(0.0, predicted - margin), 2),
            high=round(min(100.0, predicted + margin), 2),
            timeframe_days=days,
            recommendation=recommendation,
        )

    def score_projection(
        self,
        points: Sequence[ScorePoint],
        days: int = 30,
        step: int = 3,
    ) -> list[tuple[int, float]]:
        """(day offset, projected score) every `step` days up to `days`."""
        if len(points) < MIN_POINTS:
            return []
        if step <= 0:
            raise InvalidInputError(f"Projection step must be positive, got {step}")

        trend = fit_trend(points)
        last_x = trend.xs[-1]
        return [
            (offset, round(clamp(trend.at(last_x + offset), 0, 100), 2))
            for offset in range(step, days + 1, step)
        ]

    def predict_exam_performance(
        self,
        scores: Sequence[float],
        key_areas: Sequence[str] = (),
        target: float | None = None,
    ) -> ExamPrediction:
        """Predicted score, confidence and days until the target is reached."""
        target = self.config.default_target if target is None else target
        prediction = self.predict_next_score(scores)
        if not prediction.sufficient_data:
            return ExamPrediction(
                predicted_score=0,
                confidence=0,
                days_to_target=None,
                time_to_target="Insufficient data",
                key_areas=list(key_areas),
                sufficient_data=False,
            )

        needed = max(0.0, target - prediction.predicted_score)
        rate = prediction.trend if prediction.trend > 0 else 1.0
        days = math.ceil(needed / max(rate, self.config.min_improvement_rate))

        return ExamPrediction(
            predicted_score=prediction.predicted_score,
            confidence=prediction.confidence,
            days_to_target=days,
            time_to_target=f"{days} days" if days > 0 else "Ready now!",
            key_areas=list(key_areas),
        )

    def snapshot(
        self,
        points: Sequence[ScorePoint],
        key_areas: Sequence[str] = (),
        target: float | None = None,
    ) -> PredictionSnapshot:
        """Compute every prediction for a history in one pass."""
        ordered = sorted(points, key=lambda p: p.date)
        scores = [p.score for p in ordered]

        snapshot = PredictionSnapshot(
            exam=self.predict_exam_performance(scores, key_areas, target),
            ceiling=self.score_ceiling(scores),
            time_to_target=self.time_to_target(ordered, target),
            projection=self.project_score(ordered),
            roi=self.study_time_roi(ordered),
            frequency=self.optimal_study_frequency(ordered),
        )
        logger.debug(
            f"Prediction snapshot over {len(scores)} points: "
            f"next={snapshot.exam.predicted_score} ceiling={snapshot.ceiling.ceiling}"
        )
        return snapshot
