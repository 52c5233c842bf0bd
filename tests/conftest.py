"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pathwise.engine import LearningEngine  # noqa: E402
from pathwise.events import InMemoryEventPublisher  # noqa: E402
from pathwise.models import PerformanceRecord, Question  # noqa: E402
from pathwise.repositories import (  # noqa: E402
    InMemoryAppliedAttemptRepository,
    InMemoryCardStateRepository,
    InMemoryLearningPathRepository,
    InMemoryPerformanceRepository,
    InMemoryQuestionBank,
)

NOW = datetime(2024, 3, 15, 12, 0, 0)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed reference time (a Friday at noon)."""
    return NOW


def _records(topic: str, scores: list[float], start: datetime = NOW, step_hours: int = 1):
    return [
        PerformanceRecord(topic=topic, score=score, date=start + timedelta(hours=i * step_hours))
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def make_records():
    """Factory for attempts on one topic, oldest first, one every `step_hours`."""
    return _records


@pytest.fixture
def question_bank():
    """Questions on three subjects across the difficulty range."""
    questions = [
        Question(item_id=f"{subject}-{level}-{n}", subject=subject, difficulty=level)
        for subject in ("networking", "security", "fundamentals")
        for level in range(1, 11)
        for n in range(3)
    ]
    return InMemoryQuestionBank(questions)


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def engine(question_bank, publisher):
    """Engine over in-memory repositories with a fixed clock."""
    return LearningEngine(
        cards=InMemoryCardStateRepository(),
        performance=InMemoryPerformanceRepository(),
        paths=InMemoryLearningPathRepository(),
        attempts=InMemoryAppliedAttemptRepository(),
        question_bank=question_bank,
        publisher=publisher,
        clock=lambda: NOW,
    )
