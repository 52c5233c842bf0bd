"""
Unit tests for learning path generation and progress tracking.

Generation runs against an in-memory question bank; progress tests build
paths directly so percentages land on milestone boundaries.
"""

from datetime import datetime, timedelta

import pytest

from pathwise.exceptions import InvalidInputError, InvalidQualityError, InvalidTransitionError
from pathwise.models import LearnerAnalytics, LearningPath, PathStatus
from pathwise.paths.generator import PathConfig, PathGenerator
from pathwise.paths.progress import ProgressTracker
from pathwise.repositories import InMemoryQuestionBank


@pytest.fixture
def generator(question_bank):
    return PathGenerator(question_bank)


@pytest.fixture
def tracker():
    return ProgressTracker()


@pytest.fixture
def ladder(generator):
    return generator.build_milestones([])


def make_path(ladder, total=200, completed=0, status=PathStatus.ACTIVE):
    return LearningPath(
        learner_id="alice",
        name="Test Path",
        questions=[f"q{i}" for i in range(total)],
        questions_completed=completed,
        milestones=ladder,
        status=status,
    )


class TestGeneratePath:
    def test_new_learner_gets_fallback_path(self, generator, now):
        analytics = LearnerAnalytics.from_records("alice", [], now=now)
        path = generator.generate_path(analytics, [], now=now)

        assert path.learner_id == "alice"
        assert path.status == PathStatus.ACTIVE
        assert path.subjects == ["fundamentals"]
        assert path.name == "Personalized Path - 2024-03-15"
        assert path.difficulty == 5
        assert path.total_questions == 12
        assert all(q.startswith("fundamentals-") for q in path.questions)
        assert path.milestones[0].description == "Master fundamentals"
        assert path.estimated_duration_weeks == 29
        assert path.success_probability == 0
        assert path.recommendations == [
            "Increase daily study time for better results",
            "Try studying 10+ questions per day for optimal learning",
        ]

    def test_targets_weak_subjects(self, generator, make_records, now):
        records = make_records("security", [40] * 6, start=now - timedelta(days=2)) + make_records(
            "networking", [90] * 6, start=now - timedelta(days=1)
        )
        analytics = LearnerAnalytics.from_records("alice", records, now=now)
        path = generator.generate_path(analytics, records, now=now)

        assert path.subjects == ["security"]
        assert all(q.startswith("security-") for q in path.questions)
        assert path.milestones[0].description == "Master security"
        assert "Focus on security - this is your weakest area" in path.recommendations
        assert "You excel in networking - consider teaching others" in path.recommendations
        assert path.difficulty == 6  # average 65

    def test_questions_are_medium_difficulty(self, generator, now):
        analytics = LearnerAnalytics.from_records("alice", [], now=now)
        path = generator.generate_path(analytics, [], now=now)

        levels = {int(q.split("-")[1]) for q in path.questions}
        assert levels == {5, 6, 7, 8}

    def test_pool_size(self, question_bank, now):
        generator = PathGenerator(question_bank, config=PathConfig(question_pool_size=5))
        path = generator.generate_path(LearnerAnalytics.from_records("a", [], now=now), [], now=now)

        assert path.total_questions == 5

    def test_milestone_ladder(self, ladder):
        assert [m.name for m in ladder] == [
            "Foundation Building",
            "Skill Development",
            "Mastery Phase",
            "Excellence",
        ]
        assert [m.target_accuracy for m in ladder] == [65, 75, 85, 90]
        assert [m.questions_quota for m in ladder] == [50, 100, 150, 200]
        assert all(m.completed_at is None for m in ladder)

    def test_outlook_for_engaged_learner(self, generator, make_records, now):
        records = make_records("networking", [80] * 120, start=now - timedelta(hours=120))
        analytics = LearnerAnalytics.from_records("alice", records, now=now)
        path = generator.generate_path(analytics, records, now=now)

        # 120 questions over 5 days: 24/day, full engagement
        assert path.success_probability == 100
        assert path.estimated_duration_weeks == 2


class TestRecommendations:
    def test_morning_and_weakness(self, generator, make_records, now):
        morning = now.replace(hour=7)
        records = make_records("security", [40] * 6, start=morning - timedelta(hours=6))
        analytics = LearnerAnalytics.from_records("alice", records, now=morning)

        tips = generator.recommendations(analytics, records, morning)

        assert tips == [
            "Morning is prime study time! Start with tough topics",
            "Focus on security to boost overall score",
        ]

    def test_streak_high_average_and_inactivity(self, generator, make_records, now):
        start = now - timedelta(days=12)
        records = make_records("networking", [90] * 9, start=start, step_hours=24)
        analytics = LearnerAnalytics.from_records("alice", records, now=now)

        tips = generator.recommendations(analytics, records, now)

        assert analytics.study_streak == 9
        assert tips == [
            "Amazing 9 day streak! Keep it going",
            "Try premium questions for advanced preparation",
            "You haven't studied in a few days - consistency matters!",
        ]

    def test_evening(self, generator, now):
        evening = now.replace(hour=21)
        analytics = LearnerAnalytics.from_records("alice", [], now=evening)

        assert generator.recommendations(analytics, [], evening) == [
            "Evening slots work best for review and consolidation"
        ]


class TestProgress:
    def test_percent_and_milestones(self, tracker, ladder, now):
        progress = tracker.get_progress(make_path(ladder, completed=100), now.date())

        assert progress.percent_complete == 50
        assert progress.current_milestone == "Mastery Phase"
        assert progress.next_milestone == "Excellence"
        assert progress.questions_remaining == 100
        assert progress.estimated_completion == now.date() + timedelta(days=7)

    def test_last_milestone_caps(self, tracker, ladder, now):
        progress = tracker.get_progress(make_path(ladder, completed=200), now.date())

        assert progress.percent_complete == 100
        assert progress.current_milestone == "Excellence"
        assert progress.next_milestone == "Excellence"
        assert progress.estimated_completion == now.date()

    def test_no_milestones(self, tracker, now):
        progress = tracker.get_progress(make_path([], total=10, completed=3), now.date())

        assert progress.current_milestone == "Starting"
        assert progress.next_milestone == "Complete"

    def test_empty_question_list(self, tracker, ladder):
        assert tracker.percent_complete(make_path(ladder, total=0)) == 0


class TestLogCompletion:
    def test_updates_counters(self, tracker, ladder, now):
        outcome = tracker.log_completion(make_path(ladder), "q0", 4, 30.0, now=now)

        assert outcome.path.questions_completed == 1
        assert outcome.path.total_time_spent == pytest.approx(30.0)
        assert outcome.path.completion_log[-1].item_id == "q0"
        assert outcome.milestone_reached is None
        assert outcome.path_completed is False

    def test_milestone_crossed_at_boundary(self, tracker, ladder, now):
        # 48/200 = 24%, 49/200 rounds to 25%
        outcome = tracker.log_completion(make_path(ladder, completed=48), "q48", 5, 10, now=now)

        assert outcome.milestone_reached == "Foundation Building"
        assert outcome.path.milestones[0].completed_at == now
        assert outcome.path.milestones[1].completed_at is None

    def test_auto_completes_when_rounding_reaches_100(self, tracker, ladder, now):
        outcome = tracker.log_completion(make_path(ladder, completed=198), "q198", 5, 10, now=now)

        assert outcome.path.questions_completed == 199
        assert outcome.path_completed is True
        assert outcome.path.status == PathStatus.COMPLETED
        assert outcome.path.completed_at == now
        assert all(m.completed_at == now for m in outcome.path.milestones)

    def test_input_path_untouched(self, tracker, ladder, now):
        path = make_path(ladder, completed=48)
        tracker.log_completion(path, "q48", 5, 10, now=now)

        assert path.questions_completed == 48
        assert path.milestones[0].completed_at is None
        assert path.completion_log == []

    def test_requires_active_path(self, tracker, ladder, now):
        with pytest.raises(InvalidInputError):
            tracker.log_completion(make_path(ladder, status=PathStatus.PAUSED), "q0", 4, 1, now=now)

    def test_rejects_bad_quality(self, tracker, ladder, now):
        with pytest.raises(InvalidQualityError):
            tracker.log_completion(make_path(ladder), "q0", 7, 1, now=now)

    def test_rejects_negative_time(self, tracker, ladder, now):
        with pytest.raises(InvalidInputError):
            tracker.log_completion(make_path(ladder), "q0", 4, -1, now=now)


class TestTransitions:
    def test_pause_resume(self, tracker, ladder):
        paused = tracker.pause_path(make_path(ladder))
        assert paused.status == PathStatus.PAUSED

        resumed = tracker.resume_path(paused)
        assert resumed.status == PathStatus.ACTIVE

    def test_complete_from_paused(self, tracker, ladder, now):
        completed = tracker.complete_path(make_path(ladder, status=PathStatus.PAUSED), now)

        assert completed.status == PathStatus.COMPLETED
        assert completed.completed_at == now

    def test_abandon(self, tracker, ladder):
        assert tracker.abandon_path(make_path(ladder)).status == PathStatus.ABANDONED

    @pytest.mark.parametrize("terminal", [PathStatus.COMPLETED, PathStatus.ABANDONED])
    def test_terminal_states(self, tracker, ladder, terminal):
        path = make_path(ladder, status=terminal)

        with pytest.raises(InvalidTransitionError):
            tracker.resume_path(path)
        with pytest.raises(InvalidTransitionError):
            tracker.pause_path(path)
        with pytest.raises(InvalidTransitionError):
            tracker.complete_path(path, datetime(2024, 3, 15))

    def test_resume_active_is_rejected(self, tracker, ladder):
        with pytest.raises(InvalidTransitionError):
            tracker.resume_path(make_path(ladder))


class TestEmptyPath:
    def test_empty_bank_gives_empty_path(self, now):
        generator = PathGenerator(InMemoryQuestionBank())
        path = generator.generate_path(LearnerAnalytics.from_records("bob", [], now=now), [], now=now)

        assert path.total_questions == 0
        assert path.subjects == ["fundamentals"]

    def test_completions_rejected(self, tracker, ladder, now):
        with pytest.raises(InvalidInputError):
            tracker.log_completion(make_path(ladder, total=0), "q0", 4, 10, now=now)

    def test_remaining_never_negative(self, tracker, ladder, now):
        progress = tracker.get_progress(make_path(ladder, total=0, completed=1), now.date())

        assert progress.percent_complete == 0
        assert progress.questions_remaining == 0
        assert progress.estimated_completion == now.date()
