"""Outbound webhook delivery."""

from __future__ import annotations

from collections.abc import Mapping

import httpx
import structlog
from pydantic import JsonValue
from structlog.typing import FilteringBoundLogger

from workflow_webhooks.domain.models import DeliveryResult

DEFAULT_USER_AGENT = "Workflow-Webhook/1.0"


class WebhookDispatcher:
    """Sends a single JSON POST and reports the outcome as a DeliveryResult.

    Each call is one attempt: there is no retry and no exception escapes
    ``send``. ``transport`` lets callers (and tests) swap the httpx transport.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        log: FilteringBoundLogger | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._log = log or structlog.get_logger(__name__)

    @property
    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "User-Agent": self.user_agent}

    async def send(
        self,
        webhook_url: str,
        payload: Mapping[str, JsonValue],
        workflow_step_id: int,
    ) -> DeliveryResult:
        log = self._log.bind(webhook_url=webhook_url, workflow_step_id=workflow_step_id)
        log.debug("webhook_sending")

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout_seconds,
                follow_redirects=True,
            ) as client:
                response = await client.post(
                    webhook_url, json=dict(payload), headers=self.headers
                )
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log.error("webhook_error", error=message)
            return DeliveryResult(ok=False, status=0, message=message)

        if not response.is_success:
            log.error("webhook_failed", status=response.status_code)
            return DeliveryResult(ok=False, status=response.status_code)

        log.debug("webhook_sent", status=response.status_code)
        return DeliveryResult(ok=True, status=response.status_code)
