"""Best-effort downstream publication of committed quiz trees.

Runs strictly after commit. A publication failure is logged and never reaches
the caller: the committed reconciliation stands regardless.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from quiz_funnel.config import PublishingConfig, load_config
from quiz_funnel.logic import events
from quiz_funnel.models.quiz_tree import QuizTree

logger = logging.getLogger(__name__)


class QuizPublisher:
    """Emit a domain event and, when configured, POST the tree to a webhook."""

    def __init__(self, config: Optional[PublishingConfig] = None) -> None:
        self.config = config or PublishingConfig()

    def _post(self, body: Dict[str, Any]) -> None:
        with httpx.Client(timeout=self.config.timeout_seconds) as client:
            response = client.post(str(self.config.webhook_url), json=body)
            response.raise_for_status()

    def publish(self, event_type: str, quiz_id: int, tree: Optional[QuizTree] = None) -> bool:
        """Publish ``event_type`` for ``quiz_id``; return False on failure."""
        body: Dict[str, Any] = {"event": event_type, "quiz_id": int(quiz_id)}
        if tree is not None:
            body["quiz"] = tree.model_dump()
        try:
            events.publish(event_type, quiz_id)
            if not self.config.webhook_url:
                logger.info("publisher.skipped event=%s quiz_id=%s reason=no_webhook", event_type, quiz_id)
                return True
            self._post(body)
            logger.info("publisher.sent event=%s quiz_id=%s", event_type, quiz_id)
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                "publisher.failed event=%s quiz_id=%s status=%s",
                event_type,
                quiz_id,
                e.response.status_code,
                exc_info=True,
            )
        except Exception:
            logger.error("publisher.failed event=%s quiz_id=%s", event_type, quiz_id, exc_info=True)
        return False


def default_publisher() -> QuizPublisher:
    return QuizPublisher(load_config().publishing)


__all__ = ["QuizPublisher", "default_publisher"]
