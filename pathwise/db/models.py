"""
SQLAlchemy models for the learning engine.

Tables:
- card_states / review_log: SM-2 state per (learner, item) and its append-only history
- performance_records: attempt log per learner
- learning_paths: personalised paths (milestones, questions and log stored as JSON)
- applied_attempts: review idempotency ledger
- questions: question bank metadata
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CardStateRow(Base):
    __tablename__ = "card_states"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=1)
    repetition: Mapped[int] = mapped_column(Integer, default=0)
    next_review_date: Mapped[date | None] = mapped_column(Date, index=True)
    last_review_date: Mapped[datetime | None] = mapped_column(DateTime)


class ReviewLogRow(Base):
    """One SM-2 review. Ordered by id within (learner, item)."""

    __tablename__ = "review_log"
    __table_args__ = (Index("idx_review_log_card", "learner_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    item_id: Mapped[str] = mapped_column(String(128), nullable=False)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class PerformanceRecordRow(Base):
    __tablename__ = "performance_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    bloom_level: Mapped[str | None] = mapped_column(String(32))
    score: Mapped[float] = mapped_column(Float, nullable=False)
    correct_percentage: Mapped[float | None] = mapped_column(Float)
    difficulty: Mapped[int | None] = mapped_column(Integer)
    time_spent_sec: Mapped[int] = mapped_column(Integer, default=0)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class LearningPathRow(Base):
    __tablename__ = "learning_paths"
    __table_args__ = (Index("idx_learning_paths_learner_status", "learner_id", "status"),)

    path_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    path_type: Mapped[str] = mapped_column(String(16), default="adaptive")
    subjects: Mapped[list[str]] = mapped_column(JSON, default=list)
    difficulty: Mapped[int] = mapped_column(Integer, default=5)
    milestones: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    estimated_duration_weeks: Mapped[int] = mapped_column(Integer, default=4)
    success_probability: Mapped[int] = mapped_column(Integer, default=0)
    recommendations: Mapped[list[str]] = mapped_column(JSON, default=list)
    questions: Mapped[list[str]] = mapped_column(JSON, default=list)
    questions_completed: Mapped[int] = mapped_column(Integer, default=0)
    total_time_spent: Mapped[float] = mapped_column(Float, default=0.0)
    completion_log: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(16), default="active")
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)


class AppliedAttemptRow(Base):
    __tablename__ = "applied_attempts"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    attempt_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class QuestionRow(Base):
    __tablename__ = "questions"

    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False)
