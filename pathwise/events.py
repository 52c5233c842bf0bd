"""
Inbound event schemas and outbound event publishing.

Inbound events are validated with Pydantic before they reach the engine.
Outbound events (review applied, milestone reached, path completed, ...)
are handed to an EventPublisher instead of in-process listeners:
- LoggingEventPublisher: writes events to the log (default)
- WebhookEventPublisher: POSTs events to a messaging collaborator via httpx
- InMemoryEventPublisher: keeps events in a list (tests, embedding)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Inbound events
# =============================================================================


class ReviewSubmission(BaseModel):
    """A graded flashcard review."""

    learner_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    quality: int = Field(ge=0, le=5, strict=True)
    response_time_ms: int = Field(default=0, ge=0)
    attempt_id: str | None = Field(
        default=None,
        description="Idempotency token; a repeated attempt id is not re-applied",
    )


class AttemptCompletion(BaseModel):
    """A finished question or test attempt."""

    learner_id: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    score: float = Field(ge=0, le=100)
    correct_percentage: float | None = Field(default=None, ge=0, le=100)
    bloom_level: str | None = None
    difficulty: int | None = Field(default=None, ge=1, le=10)
    time_spent_sec: int = Field(default=0, ge=0)
    completed_at: datetime | None = None

    @field_validator("completed_at")
    @classmethod
    def naive_local_time(cls, value: datetime | None) -> datetime | None:
        """Store timestamps as naive local time, like the engine clock."""
        if value is not None and value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value


class PathCompletionEvent(BaseModel):
    """A question answered inside a learning path."""

    path_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    quality: int = Field(ge=0, le=5, strict=True)
    time_spent: float = Field(default=0, ge=0)


class QuestionRecord(BaseModel):
    """Question metadata imported into the question bank."""

    item_id: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    difficulty: int = Field(ge=1, le=10)


# =============================================================================
# Outbound events
# =============================================================================


class EngineEvent(BaseModel):
    """Notification published after a state change."""

    name: str
    learner_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=datetime.now)


class EventPublisher(Protocol):
    def publish(self, event: EngineEvent) -> None: ...


class LoggingEventPublisher:
    """Publishes events to the application log."""

    def publish(self, event: EngineEvent) -> None:
        logger.info(f"Event {event.name} for {event.learner_id}: {event.payload}")


class InMemoryEventPublisher:
    """Collects published events in order."""

    def __init__(self) -> None:
        self.events: list[EngineEvent] = []

    def publish(self, event: EngineEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]


class WebhookEventPublisher:
    """
    POSTs events as JSON to a webhook.

    Delivery failures are logged and counted, never raised: the state change
    that produced the event has already been persisted.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.url = url
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self.failed_deliveries = 0

    def publish(self, event: EngineEvent) -> None:
        try:
            response = self._client.post(self.url, content=event.model_dump_json())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.failed_deliveries += 1
            logger.error(f"Webhook rejected {event.name}: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            self.failed_deliveries += 1
            logger.error(f"Webhook delivery failed for {event.name}: {e}")

    def close(self) -> None:
        self._client.close()
