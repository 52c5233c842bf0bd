"""
SQLAlchemy-backed repositories.

Each save runs in its own transaction (Database.session_scope). Review and
completion histories are append-only: saving a card inserts only the
history entries the table does not have yet.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import func, select

from pathwise.db.database import Database
from pathwise.db.models import (
    AppliedAttemptRow,
    CardStateRow,
    LearningPathRow,
    PerformanceRecordRow,
    QuestionRow,
    ReviewLogRow,
)
from pathwise.models import (
    CardState,
    CompletionLogEntry,
    LearningPath,
    Milestone,
    PathStatus,
    PathType,
    PerformanceRecord,
    Question,
    ReviewEntry,
)


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _card_from_row(row: CardStateRow, logs: list[ReviewLogRow]) -> CardState:
    return CardState(
        learner_id=row.learner_id,
        item_id=row.item_id,
        ease_factor=row.ease_factor,
        interval=row.interval,
        repetition=row.repetition,
        next_review_date=row.next_review_date,
        last_review_date=row.last_review_date,
        review_history=[
            ReviewEntry(quality=log.quality, response_time_ms=log.response_time_ms, date=log.reviewed_at)
            for log in logs
        ],
    )


class SqlCardStateRepository:
    def __init__(self, db: Database):
        self.db = db

    def get(self, learner_id: str, item_id: str) -> CardState | None:
        with self.db.session_scope() as session:
            row = session.get(CardStateRow, (learner_id, item_id))
            if row is None:
                return None
            logs = session.scalars(
                select(ReviewLogRow)
                .where(ReviewLogRow.learner_id == learner_id, ReviewLogRow.item_id == item_id)
                .order_by(ReviewLogRow.id)
            ).all()
            return _card_from_row(row, list(logs))

    def save(self, state: CardState) -> None:
        with self.db.session_scope() as session:
            session.merge(
                CardStateRow(
                    learner_id=state.learner_id,
                    item_id=state.item_id,
                    ease_factor=state.ease_factor,
                    interval=state.interval,
                    repetition=state.repetition,
                    next_review_date=state.next_review_date,
                    last_review_date=state.last_review_date,
                )
            )
            stored = session.scalar(
                select(func.count())
                .select_from(ReviewLogRow)
                .where(
                    ReviewLogRow.learner_id == state.learner_id,
                    ReviewLogRow.item_id == state.item_id,
                )
            )
            for entry in state.review_history[stored or 0 :]:
                session.add(
                    ReviewLogRow(
                        learner_id=state.learner_id,
                        item_id=state.item_id,
                        quality=entry.quality,
                        response_time_ms=entry.response_time_ms,
                        reviewed_at=entry.date,
                    )
                )

    def list_for_learner(self, learner_id: str) -> list[CardState]:
        with self.db.session_scope() as session:
            rows = session.scalars(
                select(CardStateRow)
                .where(CardStateRow.learner_id == learner_id)
                .order_by(CardStateRow.item_id)
            ).all()
            logs_by_item: dict[str, list[ReviewLogRow]] = defaultdict(list)
            for log in session.scalars(
                select(ReviewLogRow)
                .where(ReviewLogRow.learner_id == learner_id)
                .order_by(ReviewLogRow.id)
            ):
                logs_by_item[log.item_id].append(log)
            return [_card_from_row(row, logs_by_item[row.item_id]) for row in rows]


class SqlPerformanceRepository:
    def __init__(self, db: Database):
        self.db = db

    def append(self, learner_id: str, record: PerformanceRecord) -> None:
        with self.db.session_scope() as session:
            session.add(
                PerformanceRecordRow(
                    learner_id=learner_id,
                    topic=record.topic,
                    bloom_level=record.bloom_level,
                    score=record.score,
                    correct_percentage=record.correct_percentage,
                    difficulty=record.difficulty,
                    time_spent_sec=record.time_spent_sec,
                    recorded_at=record.date,
                )
            )

    def list_for_learner(self, learner_id: str) -> list[PerformanceRecord]:
        with self.db.session_scope() as session:
            rows = session.scalars(
                select(PerformanceRecordRow)
                .where(PerformanceRecordRow.learner_id == learner_id)
                .order_by(PerformanceRecordRow.recorded_at, PerformanceRecordRow.id)
            ).all()
            return [
                PerformanceRecord(
                    topic=row.topic,
                    score=row.score,
                    date=row.recorded_at,
                    bloom_level=row.bloom_level,
                    correct_percentage=row.correct_percentage,
                    difficulty=row.difficulty,
                    time_spent_sec=row.time_spent_sec,
                )
                for row in rows
            ]


class SqlLearningPathRepository:
    def __init__(self, db: Database):
        self.db = db

    def get(self, path_id: str) -> LearningPath | None:
        with self.db.session_scope() as session:
            row = session.get(LearningPathRow, path_id)
            return self._to_path(row) if row is not None else None

    def save(self, path: LearningPath) -> None:
        with self.db.session_scope() as session:
            session.merge(self._to_row(path))

    def list_for_learner(self, learner_id: str) -> list[LearningPath]:
        with self.db.session_scope() as session:
            rows = session.scalars(
                select(LearningPathRow)
                .where(LearningPathRow.learner_id == learner_id)
                .order_by(LearningPathRow.start_date)
            ).all()
            return [self._to_path(row) for row in rows]

    @staticmethod
    def _to_row(path: LearningPath) -> LearningPathRow:
        milestones: list[dict[str, Any]] = [
            {
                "name": m.name,
                "description": m.description,
                "target_accuracy": m.target_accuracy,
                "estimated_days": m.estimated_days,
                "questions_quota": m.questions_quota,
                "completed_at": m.completed_at.isoformat() if m.completed_at else None,
            }
            for m in path.milestones
        ]
        log: list[dict[str, Any]] = [
            {
                "item_id": e.item_id,
                "quality": e.quality,
                "time_spent": e.time_spent,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in path.completion_log
        ]
        return LearningPathRow(
            path_id=path.path_id,
            learner_id=path.learner_id,
            name=path.name,
            description=path.description,
            path_type=path.path_type.value,
            subjects=list(path.subjects),
            difficulty=path.difficulty,
            milestones=milestones,
            estimated_duration_weeks=path.estimated_duration_weeks,
            success_probability=path.success_probability,
            recommendations=list(path.recommendations),
            questions=list(path.questions),
            questions_completed=path.questions_completed,
            total_time_spent=path.total_time_spent,
            completion_log=log,
            status=path.status.value,
            start_date=path.start_date,
            completed_at=path.completed_at,
        )

    @staticmethod
    def _to_path(row: LearningPathRow) -> LearningPath:
        return LearningPath(
            learner_id=row.learner_id,
            name=row.name,
            path_id=row.path_id,
            description=row.description or "",
            path_type=PathType(row.path_type),
            subjects=list(row.subjects or []),
            difficulty=row.difficulty,
            milestones=[
                Milestone(
                    name=m["name"],
                    description=m["description"],
                    target_accuracy=m["target_accuracy"],
                    estimated_days=m["estimated_days"],
                    questions_quota=m["questions_quota"],
                    completed_at=_parse_dt(m.get("completed_at")),
                )
                for m in row.milestones or []
            ],
            estimated_duration_weeks=row.estimated_duration_weeks,
            success_probability=row.success_probability,
            recommendations=list(row.recommendations or []),
            questions=list(row.questions or []),
            questions_completed=row.questions_completed,
            total_time_spent=row.total_time_spent,
            completion_log=[
                CompletionLogEntry(
                    item_id=e["item_id"],
                    quality=e["quality"],
                    time_spent=e["time_spent"],
                    timestamp=datetime.fromisoformat(e["timestamp"]),
                )
                for e in row.completion_log or []
            ],
            status=PathStatus(row.status),
            start_date=row.start_date,
            completed_at=row.completed_at,
        )


class SqlAppliedAttemptRepository:
    def __init__(self, db: Database):
        self.db = db

    def contains(self, learner_id: str, attempt_id: str) -> bool:
        with self.db.session_scope() as session:
            return session.get(AppliedAttemptRow, (learner_id, attempt_id)) is not None

    def add(self, learner_id: str, attempt_id: str, item_id: str) -> None:
        with self.db.session_scope() as session:
            session.merge(
                AppliedAttemptRow(
                    learner_id=learner_id,
                    attempt_id=attempt_id,
                    item_id=item_id,
                    applied_at=datetime.now(),
                )
            )


class SqlQuestionBank:
    def __init__(self, db: Database):
        self.db = db

    def add_many(self, questions: Iterable[Question]) -> int:
        questions = list(questions)
        with self.db.session_scope() as session:
            for q in questions:
                session.merge(QuestionRow(item_id=q.item_id, subject=q.subject, difficulty=q.difficulty))
        return len(questions)

    def find_questions(
        self,
        subjects: list[str],
        min_difficulty: int,
        max_difficulty: int,
        limit: int,
    ) -> list[Question]:
        if not subjects or limit <= 0:
            return []
        with self.db.session_scope() as session:
            rows = session.scalars(
                select(QuestionRow)
                .where(
                    QuestionRow.subject.in_(subjects),
                    QuestionRow.difficulty >= min_difficulty,
                    QuestionRow.difficulty <= max_difficulty,
                )
                .order_by(QuestionRow.item_id)
                .limit(limit)
            ).all()
            return [Question(item_id=r.item_id, subject=r.subject, difficulty=r.difficulty) for r in rows]
