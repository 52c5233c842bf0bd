"""
Unit tests for LearningEngine.

The engine runs over in-memory repositories with a fixed clock, so the
SM-2 dates and published events are deterministic.
"""

from datetime import date, timedelta

import pytest

from pathwise.events import ReviewSubmission
from pathwise.exceptions import InvalidInputError, InvalidTransitionError, PathNotFoundError
from pathwise.models import PathStatus, Question


def review(quality=5, attempt_id=None, item_id="card-1"):
    return {
        "learner_id": "alice",
        "item_id": item_id,
        "quality": quality,
        "response_time_ms": 1200,
        "attempt_id": attempt_id,
    }


class TestSubmitReview:
    def test_first_review_initializes_card(self, engine, now):
        outcome = engine.submit_review(review(quality=5))

        assert outcome.applied is True
        assert outcome.state.ease_factor == pytest.approx(2.6)
        assert outcome.state.interval == 1
        assert outcome.state.repetition == 1
        assert outcome.state.next_review_date == now.date() + timedelta(days=1)
        assert engine.cards.get("alice", "card-1") == outcome.state

    def test_accepts_validated_model(self, engine):
        outcome = engine.submit_review(ReviewSubmission(**review(quality=3)))

        assert outcome.state.repetition == 1

    def test_replayed_attempt_is_not_applied(self, engine, publisher):
        engine.submit_review(review(attempt_id="a-1"))
        replay = engine.submit_review(review(attempt_id="a-1"))

        assert replay.applied is False
        assert len(replay.state.review_history) == 1
        assert publisher.names() == ["review.applied"]

    def test_reviews_without_attempt_id_always_apply(self, engine):
        engine.submit_review(review())
        outcome = engine.submit_review(review())

        assert outcome.state.repetition == 2
        assert outcome.state.interval == 3

    def test_publishes_review_applied(self, engine, publisher, now):
        engine.submit_review(review(quality=4))

        event = publisher.events[0]
        assert event.name == "review.applied"
        assert event.learner_id == "alice"
        assert event.occurred_at == now
        assert event.payload["item_id"] == "card-1"
        assert event.payload["next_review_date"] == "2024-03-16"

    @pytest.mark.parametrize("quality", [6, -1, "3", 2.5])
    def test_invalid_quality_rejected(self, engine, publisher, quality):
        with pytest.raises(InvalidInputError):
            engine.submit_review(review(quality=quality))

        assert engine.cards.get("alice", "card-1") is None
        assert publisher.events == []

    def test_missing_learner_rejected(self, engine):
        with pytest.raises(InvalidInputError):
            engine.submit_review({"item_id": "card-1", "quality": 4})


class TestSubmitAnswer:
    def test_fast_correct_answer_grades_five(self, engine):
        outcome = engine.submit_answer("alice", "card-1", True, 2000)

        assert outcome.state.review_history[-1].quality == 5
        assert outcome.state.ease_factor == pytest.approx(2.6)

    def test_slow_wrong_answer_fails_card(self, engine):
        engine.submit_answer("alice", "card-1", True, 2000)
        outcome = engine.submit_answer("alice", "card-1", False, 15000)

        assert outcome.state.review_history[-1].quality == 0
        assert outcome.state.repetition == 1
        assert outcome.state.interval == 1

    def test_replayed_answer(self, engine):
        engine.submit_answer("alice", "card-1", True, 2000, attempt_id="a-1")

        assert engine.submit_answer("alice", "card-1", True, 2000, attempt_id="a-1").applied is False

    def test_negative_response_time(self, engine):
        with pytest.raises(InvalidInputError):
            engine.submit_answer("alice", "card-1", True, -5)


class TestCards:
    def test_introduced_card_is_learning(self, engine, now):
        engine.introduce_card("alice", "card-1")
        queue = engine.review_queue("alice")

        assert queue.item_ids() == ["card-1"]
        assert queue.learning[0].next_review_date == now.date() + timedelta(days=1)

    def test_introduce_is_idempotent(self, engine):
        first = engine.introduce_card("alice", "card-1")
        engine.submit_review(review())

        again = engine.introduce_card("alice", "card-1")
        assert again.repetition == 1
        assert first.repetition == 0

    def test_reviewed_card_due_tomorrow(self, engine, now):
        engine.submit_review(review())

        assert engine.review_queue("alice").total_due == 0
        tomorrow = engine.review_queue("alice", today=now.date() + timedelta(days=1))
        assert tomorrow.item_ids() == ["card-1"]

    def test_daily_targets_use_deck_size(self, engine):
        for n in range(10):
            engine.introduce_card("alice", f"card-{n}")

        targets = engine.daily_targets("alice")

        assert targets.new_cards == 7
        assert targets.review_cards == 3

    def test_statistics_for_unknown_card(self, engine):
        stats = engine.card_statistics("alice", "never-seen")

        assert stats.total_reviews == 0
        assert engine.cards.get("alice", "never-seen") is None


class TestAttempts:
    def attempt(self, engine, topic, score):
        return engine.record_attempt({"learner_id": "alice", "topic": topic, "score": score})

    def test_record_uses_clock(self, engine, publisher, now):
        record = self.attempt(engine, "security", 70)

        assert record.date == now
        assert publisher.names() == ["attempt.recorded"]
        assert engine.learner_analytics("alice").questions_answered == 1

    def test_invalid_score(self, engine):
        with pytest.raises(InvalidInputError):
            self.attempt(engine, "security", 120)

    def test_predictions(self, engine):
        for score in (50, 60, 70, 80):
            self.attempt(engine, "security", score)

        prediction = engine.predictions("alice")

        assert prediction.sufficient_data is True
        assert prediction.predicted_score == 100
        assert prediction.time_to_target == "Ready now!"

    def test_predictions_without_history(self, engine):
        assert engine.predictions("bob").sufficient_data is False

    def test_weak_topic_feeds_key_areas(self, engine):
        for _ in range(6):
            self.attempt(engine, "security", 40)

        assert engine.strengths_weaknesses("alice").weaknesses == ["security"]
        assert engine.predictions("alice").key_areas == ["security"]
        assert engine.intervention_needs("alice")[0].topic == "security"
        assert "Focus on security to boost overall score" in engine.recommendations("alice")

    def test_offset_timestamps_mix_with_clock_times(self, engine):
        engine.record_attempt(
            {
                "learner_id": "alice",
                "topic": "security",
                "score": 50,
                "completed_at": "2024-03-10T09:00:00Z",
            }
        )
        self.attempt(engine, "security", 60)

        analytics = engine.learner_analytics("alice")

        assert analytics.questions_answered == 2
        assert analytics.last_study_at.tzinfo is None
        assert engine.predictions("alice").sufficient_data is True
        assert isinstance(engine.recommendations("alice"), list)
        assert engine.generate_path("alice").learner_id == "alice"

    def test_snapshot_without_history(self, engine):
        snapshot = engine.prediction_snapshot("bob")

        assert snapshot.exam.sufficient_data is False
        assert snapshot.time_to_target.days_to_target == -1


class TestPaths:
    def complete(self, engine, path, n):
        return engine.log_path_completion(
            {"path_id": path.path_id, "item_id": path.questions[n], "quality": 4, "time_spent": 30}
        )

    def test_generate_saves_and_publishes(self, engine, publisher):
        path = engine.generate_path("alice")

        assert engine.get_path(path.path_id).questions == path.questions
        assert [p.path_id for p in engine.list_paths("alice")] == [path.path_id]
        assert path.subjects == ["fundamentals"]
        assert publisher.names() == ["path.generated"]

    def test_full_walkthrough(self, engine, publisher):
        path = engine.generate_path("alice")
        assert path.total_questions == 12

        outcomes = [self.complete(engine, path, n) for n in range(12)]

        reached = [o.milestone_reached for o in outcomes if o.milestone_reached]
        assert reached == ["Foundation Building", "Skill Development", "Mastery Phase"]
        assert outcomes[-1].path_completed is True

        stored = engine.get_path(path.path_id)
        assert stored.status == PathStatus.COMPLETED
        assert stored.questions_completed == 12
        assert stored.total_time_spent == pytest.approx(360)
        assert publisher.names().count("path.milestone_reached") == 3
        assert publisher.names()[-1] == "path.completed"

    def test_completed_path_rejects_completions(self, engine):
        path = engine.generate_path("alice")
        engine.complete_path(path.path_id)

        with pytest.raises(InvalidInputError):
            self.complete(engine, path, 0)

    def test_progress(self, engine, now):
        path = engine.generate_path("alice")
        for n in range(6):
            self.complete(engine, path, n)

        progress = engine.path_progress(path.path_id)

        assert progress.percent_complete == 50
        assert progress.current_milestone == "Mastery Phase"
        assert progress.estimated_completion == now.date() + timedelta(days=1)

    def test_status_changes(self, engine, publisher):
        path = engine.generate_path("alice")

        assert engine.pause_path(path.path_id).status == PathStatus.PAUSED
        assert engine.resume_path(path.path_id).status == PathStatus.ACTIVE
        assert engine.abandon_path(path.path_id).status == PathStatus.ABANDONED
        assert publisher.names()[1:] == ["path.paused", "path.resumed", "path.abandoned"]

        with pytest.raises(InvalidTransitionError):
            engine.resume_path(path.path_id)

    def test_unknown_path(self, engine):
        with pytest.raises(PathNotFoundError):
            engine.path_progress("missing")
        with pytest.raises(PathNotFoundError):
            engine.log_path_completion({"path_id": "missing", "item_id": "q", "quality": 3})

    def test_adjust_difficulty(self, engine, publisher):
        path = engine.generate_path("alice")

        harder = engine.adjust_path_difficulty(path.path_id, accuracy=95, sample_count=20)
        assert harder.difficulty == 6
        assert engine.get_path(path.path_id).difficulty == 6

        same = engine.adjust_path_difficulty(path.path_id, accuracy=75, sample_count=20)
        assert same.difficulty == 6
        assert publisher.names().count("path.difficulty_adjusted") == 1

    def test_imported_questions_feed_new_paths(self, engine):
        count = engine.import_questions(
            [Question(item_id=f"crypto-{n}", subject="crypto", difficulty=6) for n in range(4)]
        )
        engine.generator.config.default_subjects = ["crypto"]

        assert count == 4
        assert engine.generate_path("alice").questions == [f"crypto-{n}" for n in range(4)]


def test_today_defaults_to_clock(engine, now):
    engine.submit_review(review())

    assert engine.card_statistics("alice", "card-1").days_until_review == 1
    assert engine.review_queue("alice", today=date(2024, 3, 20)).overdue[0].item_id == "card-1"
