"""In-process domain events for quiz lifecycle changes.

``QuizPublisher`` records one event per committed create, reconcile or delete.
Events are logged and kept in a bounded buffer so callers in the same process
(tests, diagnostics) can observe what was published.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)

QUIZ_CREATED = "quiz.created"
QUIZ_RECONCILED = "quiz.reconciled"
QUIZ_DELETED = "quiz.deleted"
BUFFER_LIMIT = 1000


@dataclass(frozen=True)
class DomainEvent:
    type: str
    quiz_id: int
    occurred_at: str


_buffer: Deque[DomainEvent] = deque(maxlen=BUFFER_LIMIT)


def publish(event_type: str, quiz_id: int) -> DomainEvent:
    event = DomainEvent(
        type=event_type,
        quiz_id=int(quiz_id),
        occurred_at=datetime.now(timezone.utc).isoformat(),
    )
    _buffer.append(event)
    logger.info("events.published type=%s quiz_id=%s", event.type, event.quiz_id)
    return event


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered events oldest first, as dicts; by default the buffer is emptied."""
    events = [asdict(e) for e in _buffer]
    if clear:
        _buffer.clear()
    return events


__all__ = [
    "QUIZ_CREATED",
    "QUIZ_RECONCILED",
    "QUIZ_DELETED",
    "DomainEvent",
    "publish",
    "get_buffered_events",
]
