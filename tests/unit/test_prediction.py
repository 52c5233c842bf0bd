"""
Unit tests for PredictionModel.

Histories are small and evenly spaced so the regression results can be
checked by hand.
"""

from datetime import datetime, timedelta

import pytest

from pathwise.analytics.prediction import PredictionModel, fit_trend
from pathwise.exceptions import InvalidInputError
from pathwise.models import ScorePoint

START = datetime(2024, 1, 1, 9, 0, 0)


def points(scores, every_days=1, minutes=0.0):
    return [
        ScorePoint(date=START + timedelta(days=i * every_days), score=s, study_time_minutes=minutes)
        for i, s in enumerate(scores)
    ]


@pytest.fixture
def model():
    return PredictionModel()


class TestNextScore:
    def test_positive_trend_is_extrapolated(self, model):
        prediction = model.predict_next_score([50, 60, 70, 80])

        assert 80 < prediction.predicted_score <= 100
        assert prediction.predicted_score == 100
        assert 30 <= prediction.confidence <= 95
        assert prediction.confidence == 89

    def test_flat_history(self, model):
        prediction = model.predict_next_score([80, 80])

        assert prediction.predicted_score == 80
        assert prediction.confidence == 95

    def test_noisy_history_lowers_confidence(self, model):
        prediction = model.predict_next_score([0, 100, 0, 100])

        assert prediction.confidence == 50

    def test_only_recent_window_counts(self, model):
        prediction = model.predict_next_score([0] * 5 + [70] * 10)

        assert prediction.predicted_score == 70

    @pytest.mark.parametrize("scores", [[], [75]])
    def test_insufficient_data(self, model, scores):
        prediction = model.predict_next_score(scores)

        assert prediction.sufficient_data is False
        assert prediction.predicted_score == 0
        assert prediction.confidence == 0


class TestCeiling:
    def test_top_scores_plus_margin(self, model):
        ceiling = model.score_ceiling([50, 60, 70, 80])

        assert ceiling.ceiling == pytest.approx(75.0)
        assert ceiling.confidence == 60

    def test_capped_at_100(self, model):
        assert model.score_ceiling([97, 98, 99]).ceiling == 100.0

    def test_insufficient_data(self, model):
        ceiling = model.score_ceiling([60])

        assert ceiling.sufficient_data is False
        assert ceiling.ceiling == 100.0
        assert ceiling.confidence == 0


class TestTimeToTarget:
    def test_rising_trend(self, model):
        result = model.time_to_target(points([50, 60, 70]), target=85)

        assert result.days_to_target == 2
        assert result.is_achievable is True
        assert result.target_date == (START + timedelta(days=4)).date()
        assert result.confidence == "high"

    def test_already_reached(self, model):
        result = model.time_to_target(points([50, 60, 70]), target=60)

        assert result.days_to_target == 0
        assert result.is_achievable is True

    def test_declining_trend_never_reaches(self, model):
        result = model.time_to_target(points([80, 70, 60]), target=85)

        assert result.days_to_target == -1
        assert result.is_achievable is False
        assert result.target_date is None

    def test_target_above_100_unachievable(self, model):
        assert model.time_to_target(points([50, 60, 70]), target=150).is_achievable is False

    def test_beyond_horizon_unachievable(self, model):
        result = model.time_to_target(points([50, 51], every_days=10), target=90)

        assert result.days_to_target > 365
        assert result.is_achievable is False

    def test_insufficient_data(self, model):
        result = model.time_to_target(points([50]))

        assert result.sufficient_data is False
        assert result.days_to_target == -1

    def test_negative_target(self, model):
        with pytest.raises(InvalidInputError):
            model.time_to_target(points([50, 60]), target=-5)


class TestStudyTimeROI:
    def test_points_per_hour(self, model):
        roi = model.study_time_roi(points([50, 60], minutes=60))

        assert roi.score_per_hour == pytest.approx(5.0)
        assert roi.roi == pytest.approx(20.0)
        assert roi.recommendation.startswith("Excellent ROI")

    def test_negative_roi(self, model):
        roi = model.study_time_roi(points([60, 50], minutes=60))

        assert roi.score_per_hour < 0
        assert roi.recommendation.startswith("Low ROI")

    def test_untracked_time(self, model):
        assert model.study_time_roi(points([50, 60])).sufficient_data is False


class TestStudyFrequency:
    def test_default_with_few_points(self, model):
        assert model.optimal_study_frequency(points([70] * 6)).recommended_exams_per_week == 3

    def test_stalled_and_busy_reduces(self, model):
        freq = model.optimal_study_frequency(points([70] * 7))

        assert freq.recommended_exams_per_week == 2

    def test_stalled_and_sparse_increases(self, model):
        freq = model.optimal_study_frequency(points([70] * 7, every_days=7))

        assert freq.recommended_exams_per_week == 4

    def test_improving_adds_one(self, model):
        freq = model.optimal_study_frequency(points(list(range(40, 80, 2)), every_days=3))

        assert freq.recommended_exams_per_week == 4
        assert "Great progress" in freq.explanation


class TestProjection:
    def test_linear_projection(self, model):
        projection = model.project_score(points([50, 55, 60], every_days=10), days=30)

        assert projection.predicted_score == pytest.approx(75.0)
        assert projection.low == pytest.approx(75.0)
        assert projection.high == pytest.approx(75.0)
        assert projection.recommendation.startswith("Keep up")

    def test_clamped(self, model):
        assert model.project_score(points([50, 60, 70]), days=30).predicted_score == 100.0

    def test_series(self, model):
        series = model.score_projection(points([50, 55, 60], every_days=10), days=9, step=3)

        assert series == [(3, 61.5), (6, 63.0), (9, 64.5)]

    def test_series_needs_positive_step(self, model):
        with pytest.raises(InvalidInputError):
            model.score_projection(points([50, 60]), step=0)

    def test_insufficient_data(self, model):
        assert model.project_score(points([50])).sufficient_data is False
        assert model.score_projection(points([50])) == []


class TestExamPrediction:
    def test_ready_now(self, model):
        exam = model.predict_exam_performance([50, 60, 70, 80], key_areas=["security"])

        assert exam.predicted_score == 100
        assert exam.days_to_target == 0
        assert exam.time_to_target == "Ready now!"
        assert exam.key_areas == ["security"]

    def test_days_from_trend(self, model):
        exam = model.predict_exam_performance([60, 62], target=85)

        # avg 61 + trend 1 * 5 = 66, 19 points at 1 point per exam
        assert exam.predicted_score == 66
        assert exam.days_to_target == 19
        assert exam.time_to_target == "19 days"

    def test_declining_uses_unit_rate(self, model):
        exam = model.predict_exam_performance([70, 60], target=85)

        assert exam.predicted_score == 40
        assert exam.days_to_target == 45

    def test_insufficient_data(self, model):
        exam = model.predict_exam_performance([90])

        assert exam.sufficient_data is False
        assert exam.days_to_target is None
        assert exam.time_to_target == "Insufficient data"


class TestSnapshot:
    def test_combines_predictions(self, model):
        history = points([50, 60, 70, 80], minutes=30)
        snapshot = model.snapshot(history, key_areas=["security"], target=90)

        assert snapshot.exam.predicted_score == 100
        assert snapshot.ceiling.ceiling == pytest.approx(75.0)
        assert snapshot.time_to_target.days_to_target == 1
        assert snapshot.roi.sufficient_data is True
        assert snapshot.frequency.recommended_exams_per_week == 3


def test_fit_trend_requires_two_points():
    with pytest.raises(InvalidInputError):
        fit_trend(points([50]))
