"""
Configuration settings for the pathwise learning engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every heuristic constant of the engine components can be tuned here; the
defaults match the component config dataclasses.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///pathwise.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )
    log_rotation: str = Field(
        default="10 MB",
        description="Rotation threshold for the log file sink",
    )

    # ========================================
    # Events
    # ========================================
    event_webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving engine events (None logs them instead)",
    )
    event_webhook_timeout: float = Field(
        default=10.0,
        description="Webhook request timeout in seconds",
    )

    # ========================================
    # SM-2 Scheduling
    # ========================================
    sm2_initial_ease: float = Field(
        default=2.5,
        description="Ease factor of a newly introduced card",
    )
    sm2_minimum_ease: float = Field(
        default=1.3,
        description="Floor for the ease factor",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Days after the first successful review (and after a lapse)",
    )
    sm2_second_interval: int = Field(
        default=3,
        description="Days after the second successful review",
    )

    # ========================================
    # Daily Load
    # ========================================
    daily_max_new_cards: int = Field(
        default=20,
        description="Cap on new cards per day",
    )
    daily_max_review_cards: int = Field(
        default=30,
        description="Cap on review cards per day",
    )
    daily_review_percentage: float = Field(
        default=0.3,
        description="Share of the deck assumed due for review (0-1)",
    )

    # ========================================
    # Performance Analysis
    # ========================================
    analysis_strength_threshold: float = Field(
        default=70.0,
        description="Topic mean accuracy above which a topic is a strength",
    )
    analysis_weakness_threshold: float = Field(
        default=60.0,
        description="Topic mean accuracy below which a topic is a weakness",
    )
    analysis_min_attempts: int = Field(
        default=5,
        description="Topics need more attempts than this to be classified",
    )
    analysis_max_topics: int = Field(
        default=3,
        description="Maximum strengths/weaknesses reported",
    )

    # ========================================
    # Difficulty
    # ========================================
    difficulty_target_accuracy: float = Field(
        default=72.5,
        description="Centre of the target accuracy band",
    )
    difficulty_tolerance: float = Field(
        default=10.0,
        description="Half-width of the target accuracy band",
    )
    difficulty_min_samples: int = Field(
        default=10,
        description="Difficulty adjusts only with more samples than this",
    )

    # ========================================
    # Prediction
    # ========================================
    prediction_window: int = Field(
        default=10,
        description="Recent scores used for next-score prediction",
    )
    prediction_default_target: float = Field(
        default=85.0,
        description="Target score when none is requested",
    )
    prediction_horizon_days: int = Field(
        default=365,
        description="Targets further out than this are reported unachievable",
    )

    # ========================================
    # Learning Paths
    # ========================================
    path_question_pool_size: int = Field(
        default=50,
        description="Questions selected for a new path",
    )
    path_questions_per_day: int = Field(
        default=15,
        description="Pace assumed when estimating path completion",
    )
    path_default_subjects: str = Field(
        default="fundamentals",
        description="Comma-separated subjects used when a learner has no weaknesses",
    )

    def get_default_subjects(self) -> list[str]:
        """Parse the comma-separated default subjects."""
        return [s.strip() for s in self.path_default_subjects.split(",") if s.strip()]

    def has_webhook_configured(self) -> bool:
        """Check if event delivery to a webhook is configured."""
        return bool(self.event_webhook_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
