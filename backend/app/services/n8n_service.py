"""
n8n workflow notifications.
Fire-and-forget: scheduled as a background task after the response is built,
failures are logged and never reach the caller.
"""
import logging
from typing import Any, Dict

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


async def notify_auto_comments_activated(payload: Dict[str, Any]) -> bool:
    """
    POST an activation event to the n8n auto-comments webhook.

    Returns:
        True if n8n accepted the event, False if skipped or failed
    """
    url = settings.n8n_auto_comments_webhook_url
    if not url:
        return False

    body = {"event": "auto_comments_activated", **payload}
    try:
        async with httpx.AsyncClient(timeout=settings.n8n_webhook_timeout) as client:
            response = await client.post(
                url,
                json=body,
                headers={"X-N8N-Secret": settings.n8n_shared_secret or ""},
            )
            response.raise_for_status()
        return True
    except httpx.HTTPError as e:
        logger.warning(
            f"n8n auto-comments webhook failed: {e}",
            extra={"event": "n8n_webhook_failed", "content_id": payload.get("content_id")},
        )
        return False
