"""
Learning Engine.

High-level operations used by the CLI and embedding services:
- Submit flashcard reviews (SM-2) and build the daily review queue
- Record attempts and derive analytics, recommendations and predictions
- Generate learning paths and track their progress

Components are pure; this class loads snapshots from the repositories,
applies a component, saves the result and publishes an event.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from pathwise.analytics.difficulty import DifficultyAdapter, DifficultyConfig
from pathwise.analytics.performance import (
    AnalyzerConfig,
    InterventionNeed,
    PerformanceAnalyzer,
    StrengthsWeaknesses,
)
from pathwise.analytics.prediction import (
    ExamPrediction,
    PredictionConfig,
    PredictionModel,
    PredictionSnapshot,
)
from pathwise.events import (
    AttemptCompletion,
    EngineEvent,
    EventPublisher,
    LoggingEventPublisher,
    PathCompletionEvent,
    ReviewSubmission,
    WebhookEventPublisher,
)
from pathwise.exceptions import InvalidInputError, PathNotFoundError
from pathwise.models import (
    CardState,
    LearnerAnalytics,
    LearningPath,
    PerformanceRecord,
    Question,
)
from pathwise.paths.generator import PathConfig, PathGenerator
from pathwise.paths.progress import CompletionOutcome, PathProgress, ProgressConfig, ProgressTracker
from pathwise.repositories import (
    AppliedAttemptRepository,
    CardStateRepository,
    LearningPathRepository,
    PerformanceRepository,
    QuestionBank,
)
from pathwise.scheduling.review_queue import (
    DailyLoadConfig,
    DailyTargets,
    ReviewQueue,
    ReviewQueueBuilder,
)
from pathwise.scheduling.sm2 import CardStatistics, SM2Config, SM2Scheduler

if TYPE_CHECKING:
    from config import Settings

EventT = TypeVar("EventT", bound=BaseModel)


@dataclass(frozen=True)
class ReviewOutcome:
    """Card state after a review. `applied` is False for a replayed attempt id."""

    state: CardState
    applied: bool = True


class LearningEngine:
    """Facade wiring repositories, components and the event publisher."""

    def __init__(
        self,
        cards: CardStateRepository,
        performance: PerformanceRepository,
        paths: LearningPathRepository,
        attempts: AppliedAttemptRepository,
        question_bank: QuestionBank,
        publisher: EventPublisher | None = None,
        scheduler: SM2Scheduler | None = None,
        queue_builder: ReviewQueueBuilder | None = None,
        analyzer: PerformanceAnalyzer | None = None,
        difficulty: DifficultyAdapter | None = None,
        predictor: PredictionModel | None = None,
        path_config: PathConfig | None = None,
        tracker: ProgressTracker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cards = cards
        self.performance = performance
        self.paths = paths
        self.attempts = attempts
        self.publisher = publisher or LoggingEventPublisher()
        self.scheduler = scheduler or SM2Scheduler()
        self.queue_builder = queue_builder or ReviewQueueBuilder()
        self.analyzer = analyzer or PerformanceAnalyzer()
        self.difficulty = difficulty or DifficultyAdapter()
        self.predictor = predictor or PredictionModel()
        self.question_bank = question_bank
        self.generator = PathGenerator(
            question_bank,
            analyzer=self.analyzer,
            difficulty=self.difficulty,
            config=path_config,
        )
        self.tracker = tracker or ProgressTracker()
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        publisher: EventPublisher | None = None,
    ) -> LearningEngine:
        """Build an engine backed by the configured database."""
        from pathwise.db import (
            Database,
            SqlAppliedAttemptRepository,
            SqlCardStateRepository,
            SqlLearningPathRepository,
            SqlPerformanceRepository,
            SqlQuestionBank,
        )

        db = Database(settings.database_url, echo=settings.database_echo)
        db.init_db()

        if publisher is None and settings.has_webhook_configured():
            publisher = WebhookEventPublisher(
                settings.event_webhook_url, timeout=settings.event_webhook_timeout
            )

        return cls(
            cards=SqlCardStateRepository(db),
            performance=SqlPerformanceRepository(db),
            paths=SqlLearningPathRepository(db),
            attempts=SqlAppliedAttemptRepository(db),
            question_bank=SqlQuestionBank(db),
            publisher=publisher,
            scheduler=SM2Scheduler(
                SM2Config(
                    initial_ease=settings.sm2_initial_ease,
                    minimum_ease=settings.sm2_minimum_ease,
                    first_interval=settings.sm2_first_interval,
                    second_interval=settings.sm2_second_interval,
                )
            ),
            queue_builder=ReviewQueueBuilder(
                DailyLoadConfig(
                    max_new_cards=settings.daily_max_new_cards,
                    max_review_cards=settings.daily_max_review_cards,
                    default_review_percentage=settings.daily_review_percentage,
                )
            ),
            analyzer=PerformanceAnalyzer(
                AnalyzerConfig(
                    strength_threshold=settings.analysis_strength_threshold,
                    weakness_threshold=settings.analysis_weakness_threshold,
                    min_attempts=settings.analysis_min_attempts,
                    max_topics=settings.analysis_max_topics,
                )
            ),
            difficulty=DifficultyAdapter(
                DifficultyConfig(
                    target_accuracy=settings.difficulty_target_accuracy,
                    tolerance=settings.difficulty_tolerance,
                    min_samples=settings.difficulty_min_samples,
                )
            ),
            predictor=PredictionModel(
                PredictionConfig(
                    window=settings.prediction_window,
                    default_target=settings.prediction_default_target,
                    horizon_days=settings.prediction_horizon_days,
                )
            ),
            path_config=PathConfig(
                question_pool_size=settings.path_question_pool_size,
                default_subjects=settings.get_default_subjects(),
            ),
            tracker=ProgressTracker(
                ProgressConfig(questions_per_day=settings.path_questions_per_day)
            ),
        )

    # =========================================================================
    # Flashcards
    # =========================================================================

    def submit_review(self, event: ReviewSubmission | dict[str, Any]) -> ReviewOutcome:
        """
        Apply a graded review to the learner's card.

        Unknown cards are initialized first. A review carrying an attempt id
        that was already applied returns the stored state unchanged.

        Raises:
            InvalidInputError: If the submission is malformed
        """
        review = self._coerce(ReviewSubmission, event)
        now = self.clock()

        if review.attempt_id and self.attempts.contains(review.learner_id, review.attempt_id):
            logger.info(
                f"Attempt {review.attempt_id} already applied for "
                f"{review.learner_id}/{review.item_id}; skipping"
            )
            state = self.cards.get(review.learner_id, review.item_id)
            if state is None:
                state = self.scheduler.initialize(review.item_id, review.learner_id, now)
            return ReviewOutcome(state, applied=False)

        state = self.cards.get(review.learner_id, review.item_id)
        if state is None:
            state = self.scheduler.initialize(review.item_id, review.learner_id, now)

        updated = self.scheduler.review(state, review.quality, review.response_time_ms, now)
        self.cards.save(updated)
        if review.attempt_id:
            self.attempts.add(review.learner_id, review.attempt_id, review.item_id)

        self._publish(
            "review.applied",
            review.learner_id,
            item_id=review.item_id,
            quality=review.quality,
            ease_factor=updated.ease_factor,
            interval=updated.interval,
            repetition=updated.repetition,
            next_review_date=updated.next_review_date.isoformat()
            if updated.next_review_date
            else None,
        )
        return ReviewOutcome(updated)

    def submit_answer(
        self,
        learner_id: str,
        item_id: str,
        is_correct: bool,
        response_time_ms: int,
        attempt_id: str | None = None,
    ) -> ReviewOutcome:
        """Review a card from an automatically scored answer instead of a self-rating."""
        quality = self.scheduler.grade_from_response(is_correct, response_time_ms)
        return self.submit_review(
            {
                "learner_id": learner_id,
                "item_id": item_id,
                "quality": quality,
                "response_time_ms": response_time_ms,
                "attempt_id": attempt_id,
            }
        )

    def introduce_card(self, learner_id: str, item_id: str) -> CardState:
        """Return the learner's card, creating and saving the default state on first exposure."""
        state = self.cards.get(learner_id, item_id)
        if state is None:
            state = self.scheduler.initialize(item_id, learner_id, self.clock())
            self.cards.save(state)
            logger.info(f"Card {item_id} introduced for {learner_id}")
        return state

    def review_queue(self, learner_id: str, today: date | None = None) -> ReviewQueue:
        today = today or self.clock().date()
        return self.queue_builder.build(self.cards.list_for_learner(learner_id), today)

    def daily_targets(
        self,
        learner_id: str,
        review_percentage: float | None = None,
    ) -> DailyTargets:
        card_count = len(self.cards.list_for_learner(learner_id))
        return self.queue_builder.daily_targets(card_count, review_percentage)

    def card_statistics(self, learner_id: str, item_id: str) -> CardStatistics:
        now = self.clock()
        state = self.cards.get(learner_id, item_id)
        if state is None:
            state = self.scheduler.initialize(item_id, learner_id, now)
        return self.scheduler.card_statistics(state, now.date())

    # =========================================================================
    # Attempts and analytics
    # =========================================================================

    def record_attempt(self, event: AttemptCompletion | dict[str, Any]) -> PerformanceRecord:
        """
        Append a finished attempt to the learner's performance log.

        Raises:
            InvalidInputError: If the attempt is malformed
        """
        attempt = self._coerce(AttemptCompletion, event)
        record = PerformanceRecord(
            topic=attempt.topic,
            score=attempt.score,
            date=attempt.completed_at or self.clock(),
            bloom_level=attempt.bloom_level,
            correct_percentage=attempt.correct_percentage,
            difficulty=attempt.difficulty,
            time_spent_sec=attempt.time_spent_sec,
        )
        self.performance.append(attempt.learner_id, record)
        self._publish(
            "attempt.recorded",
            attempt.learner_id,
            topic=record.topic,
            score=record.score,
            accuracy=record.accuracy,
        )
        return record

    def learner_analytics(self, learner_id: str) -> LearnerAnalytics:
        records = self.performance.list_for_learner(learner_id)
        return LearnerAnalytics.from_records(learner_id, records, now=self.clock())

    def recommendations(self, learner_id: str) -> list[str]:
        now = self.clock()
        records = self.performance.list_for_learner(learner_id)
        analytics = LearnerAnalytics.from_records(learner_id, records, now=now)
        return self.generator.recommendations(analytics, records, now)

    def strengths_weaknesses(self, learner_id: str) -> StrengthsWeaknesses:
        return self.analyzer.identify_strengths_weaknesses(
            self.performance.list_for_learner(learner_id)
        )

    def intervention_needs(self, learner_id: str) -> list[InterventionNeed]:
        return self.analyzer.intervention_needs(self.performance.list_for_learner(learner_id))

    def performance_alerts(self, learner_id: str) -> list[str]:
        return self.analyzer.performance_alerts(
            self.performance.list_for_learner(learner_id), self.clock()
        )

    def predictions(self, learner_id: str, target_score: float | None = None) -> ExamPrediction:
        """Predicted exam score, confidence and days to the target score."""
        records = self.performance.list_for_learner(learner_id)
        analytics = LearnerAnalytics.from_records(learner_id, records, now=self.clock())
        key_areas = self.analyzer.identify_strengths_weaknesses(records).weaknesses
        return self.predictor.predict_exam_performance(
            analytics.test_history, key_areas, target_score
        )

    def prediction_snapshot(
        self,
        learner_id: str,
        target_score: float | None = None,
    ) -> PredictionSnapshot:
        records = self.performance.list_for_learner(learner_id)
        key_areas = self.analyzer.identify_strengths_weaknesses(records).weaknesses
        points = [r.to_score_point() for r in records]
        return self.predictor.snapshot(points, key_areas, target_score)

    # =========================================================================
    # Learning paths
    # =========================================================================

    def generate_path(self, learner_id: str) -> LearningPath:
        now = self.clock()
        records = self.performance.list_for_learner(learner_id)
        analytics = LearnerAnalytics.from_records(learner_id, records, now=now)

        path = self.generator.generate_path(analytics, records, now)
        self.paths.save(path)
        self._publish(
            "path.generated",
            learner_id,
            path_id=path.path_id,
            subjects=path.subjects,
            difficulty=path.difficulty,
            questions=path.total_questions,
        )
        return path

    def get_path(self, path_id: str) -> LearningPath:
        return self._require_path(path_id)

    def list_paths(self, learner_id: str) -> list[LearningPath]:
        return self.paths.list_for_learner(learner_id)

    def path_progress(self, path_id: str, today: date | None = None) -> PathProgress:
        path = self._require_path(path_id)
        return self.tracker.get_progress(path, today or self.clock().date())

    def log_path_completion(
        self,
        event: PathCompletionEvent | dict[str, Any],
    ) -> CompletionOutcome:
        """
        Record an answered question on a path.

        Raises:
            InvalidInputError: If the event is malformed or the path is not active
            PathNotFoundError: If the path does not exist
        """
        completion = self._coerce(PathCompletionEvent, event)
        path = self._require_path(completion.path_id)

        outcome = self.tracker.log_completion(
            path,
            completion.item_id,
            completion.quality,
            completion.time_spent,
            now=self.clock(),
        )
        self.paths.save(outcome.path)

        if outcome.milestone_reached:
            self._publish(
                "path.milestone_reached",
                path.learner_id,
                path_id=path.path_id,
                milestone=outcome.milestone_reached,
            )
        if outcome.path_completed:
            self._publish("path.completed", path.learner_id, path_id=path.path_id)
        return outcome

    def complete_path(self, path_id: str) -> LearningPath:
        path = self._require_path(path_id)
        updated = self.tracker.complete_path(path, self.clock())
        self.paths.save(updated)
        self._publish("path.completed", path.learner_id, path_id=path_id)
        return updated

    def pause_path(self, path_id: str) -> LearningPath:
        return self._change_status(path_id, self.tracker.pause_path, "path.paused")

    def resume_path(self, path_id: str) -> LearningPath:
        return self._change_status(path_id, self.tracker.resume_path, "path.resumed")

    def abandon_path(self, path_id: str) -> LearningPath:
        return self._change_status(path_id, self.tracker.abandon_path, "path.abandoned")

    def adjust_path_difficulty(
        self,
        path_id: str,
        accuracy: float,
        sample_count: int,
    ) -> LearningPath:
        """Step the path difficulty toward the target accuracy band."""
        path = self._require_path(path_id)
        adjusted = self.difficulty.adjust_difficulty(path.difficulty, accuracy, sample_count)
        if adjusted == path.difficulty:
            return path

        updated = replace(path, difficulty=adjusted)
        self.paths.save(updated)
        self._publish(
            "path.difficulty_adjusted",
            path.learner_id,
            path_id=path_id,
            previous=path.difficulty,
            difficulty=adjusted,
        )
        return updated

    def import_questions(self, questions: list[Question]) -> int:
        """Add question metadata to the bank used for new paths."""
        count = self.question_bank.add_many(questions)
        logger.info(f"Imported {count} questions")
        return count

    # =========================================================================
    # Helpers
    # =========================================================================

    def _change_status(
        self,
        path_id: str,
        transition: Callable[[LearningPath], LearningPath],
        event_name: str,
    ) -> LearningPath:
        path = self._require_path(path_id)
        updated = transition(path)
        self.paths.save(updated)
        self._publish(event_name, path.learner_id, path_id=path_id)
        return updated

    def _require_path(self, path_id: str) -> LearningPath:
        path = self.paths.get(path_id)
        if path is None:
            raise PathNotFoundError(path_id)
        return path

    @staticmethod
    def _coerce(model: type[EventT], event: EventT | dict[str, Any]) -> EventT:
        if isinstance(event, model):
            return event
        try:
            return model.model_validate(event)
        except ValidationError as e:
            logger.warning(f"Rejected {model.__name__}: {e.error_count()} validation error(s)")
            raise InvalidInputError(f"Invalid {model.__name__}: {e}") from e

    def _publish(self, name: str, learner_id: str, **payload: Any) -> None:
        self.publisher.publish(
            EngineEvent(name=name, learner_id=learner_id, payload=payload, occurred_at=self.clock())
        )
