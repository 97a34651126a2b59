# app/services/external/notification_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from app.core.config import NOTIFY_WEBHOOK_URL, EXTERNAL_TIMEOUT_SECONDS
from app.core.exceptions import DegradedError

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def dispatch(self, event: str, payload: dict[str, Any]) -> None:
        ...


class WebhookNotifier:
    """Posts JSON events to a webhook. A blank URL disables dispatch."""

    def __init__(self, url: str = NOTIFY_WEBHOOK_URL, timeout: float = EXTERNAL_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    async def dispatch(self, event: str, payload: dict[str, Any]) -> None:
        if not self.url:
            logger.debug("Notification skipped (no webhook configured)", extra={"event": event})
            return

        body = {
            "event": event,
            "sent_at": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DegradedError("notification", f"{event}: {e}") from e


default_notifier = WebhookNotifier()


async def notify_safely(
    notifier: NotificationDispatcher | None,
    event: str,
    payload: dict[str, Any],
) -> list[str]:
    """Fire-and-forget dispatch; returns warnings instead of raising."""
    notifier = notifier or default_notifier
    try:
        await notifier.dispatch(event, payload)
    except DegradedError as e:
        logger.warning("Notification failed", extra={"event": event, "error": e.message})
        return [str(e)]
    return []
