"""
Repository interfaces and in-memory implementations.

The engine never owns storage. Components receive these keyed stores:
- CardStateRepository: (learner_id, item_id) -> CardState
- PerformanceRepository: learner_id -> append-only PerformanceRecord log
- LearningPathRepository: path_id -> LearningPath (owned by one learner)
- AppliedAttemptRepository: (learner_id, attempt_id) review idempotency ledger
- QuestionBank: question lookup by subject and difficulty

SQLAlchemy-backed implementations live in pathwise.db.repositories.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import Iterable
from typing import Protocol

from pathwise.models import CardState, LearningPath, PerformanceRecord, Question


class CardStateRepository(Protocol):
    def get(self, learner_id: str, item_id: str) -> CardState | None: ...

    def save(self, state: CardState) -> None: ...

    def list_for_learner(self, learner_id: str) -> list[CardState]: ...


class PerformanceRepository(Protocol):
    def append(self, learner_id: str, record: PerformanceRecord) -> None: ...

    def list_for_learner(self, learner_id: str) -> list[PerformanceRecord]: ...


class LearningPathRepository(Protocol):
    def get(self, path_id: str) -> LearningPath | None: ...

    def save(self, path: LearningPath) -> None: ...

    def list_for_learner(self, learner_id: str) -> list[LearningPath]: ...


class AppliedAttemptRepository(Protocol):
    def contains(self, learner_id: str, attempt_id: str) -> bool: ...

    def add(self, learner_id: str, attempt_id: str, item_id: str) -> None: ...


class QuestionBank(Protocol):
    def add_many(self, questions: Iterable[Question]) -> int: ...

    def find_questions(
        self,
        subjects: list[str],
        min_difficulty: int,
        max_difficulty: int,
        limit: int,
    ) -> list[Question]: ...


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryCardStateRepository:
    """Dict-backed card store. Returns copies so callers cannot mutate storage."""

    def __init__(self) -> None:
        self._states: dict[tuple[str, str], CardState] = {}

    def get(self, learner_id: str, item_id: str) -> CardState | None:
        state = self._states.get((learner_id, item_id))
        return copy.deepcopy(state) if state is not None else None

    def save(self, state: CardState) -> None:
        self._states[state.key] = copy.deepcopy(state)

    def list_for_learner(self, learner_id: str) -> list[CardState]:
        return [copy.deepcopy(s) for (lid, _), s in self._states.items() if lid == learner_id]


class InMemoryPerformanceRepository:
    def __init__(self) -> None:
        self._records: dict[str, list[PerformanceRecord]] = defaultdict(list)

    def append(self, learner_id: str, record: PerformanceRecord) -> None:
        self._records[learner_id].append(copy.deepcopy(record))

    def list_for_learner(self, learner_id: str) -> list[PerformanceRecord]:
        return [copy.deepcopy(r) for r in self._records.get(learner_id, [])]


class InMemoryLearningPathRepository:
    def __init__(self) -> None:
        self._paths: dict[str, LearningPath] = {}

    def get(self, path_id: str) -> LearningPath | None:
        path = self._paths.get(path_id)
        return copy.deepcopy(path) if path is not None else None

    def save(self, path: LearningPath) -> None:
        self._paths[path.path_id] = copy.deepcopy(path)

    def list_for_learner(self, learner_id: str) -> list[LearningPath]:
        return [copy.deepcopy(p) for p in self._paths.values() if p.learner_id == learner_id]


class InMemoryAppliedAttemptRepository:
    def __init__(self) -> None:
        self._applied: dict[tuple[str, str], str] = {}

    def contains(self, learner_id: str, attempt_id: str) -> bool:
        return (learner_id, attempt_id) in self._applied

    def add(self, learner_id: str, attempt_id: str, item_id: str) -> None:
        self._applied[(learner_id, attempt_id)] = item_id


class InMemoryQuestionBank:
    """Question bank over a fixed list, in insertion order."""

    def __init__(self, questions: Iterable[Question] = ()):
        self._questions = list(questions)

    def add_many(self, questions: Iterable[Question]) -> int:
        added = list(questions)
        self._questions.extend(added)
        return len(added)

    def find_questions(
        self,
        subjects: list[str],
        min_difficulty: int,
        max_difficulty: int,
        limit: int,
    ) -> list[Question]:
        wanted = set(subjects)
        matches = [
            q
            for q in self._questions
            if q.subject in wanted and min_difficulty <= q.difficulty <= max_difficulty
        ]
        return matches[:limit]
