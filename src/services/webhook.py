"""
Vacancy Webhook.

Forwards a completed vacancy to an external system. Delivery is
best-effort: failures are logged and reported as ``False``, never
raised to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from src.config import Settings, get_settings
from src.logging_config import get_logger

logger = get_logger(__name__)


class WebhookSink:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.settings.webhook_enabled

    async def post(
        self,
        record: dict[str, Any],
        document: str,
        session_id: Optional[str] = None,
    ) -> bool | None:
        """
        POST the vacancy and its generated description.

        Returns:
            None if no webhook is configured, otherwise whether the
            receiver accepted it (2xx).
        """
        if not self.enabled:
            return None

        payload = {
            "sessionId": session_id,
            "vacancy": record,
            "description": document,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.webhook_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.settings.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("webhook_delivery_failed", url=self.settings.webhook_url, error=str(e))
            return False

        logger.info("webhook_delivered", status=response.status_code)
        return True
