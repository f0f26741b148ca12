"""Decide whether a webhook notification goes out now or later.

Outcomes, evaluated in order:

1. no webhook URL        -> warn and stop
2. immediate trigger     -> dispatch now, offset ignored
3. BEFORE/AFTER_EVENT    -> compute start - offset / end + offset
4. no target, or past    -> dispatch now
5. future target         -> persist a deferred reminder
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

import structlog
from dateutil.relativedelta import relativedelta
from structlog.typing import FilteringBoundLogger

from workflow_webhooks.domain.models import (
    IMMEDIATE_TRIGGER_EVENTS,
    DeferredReminderRecord,
    DeliveryResult,
    NotificationRequest,
    TimeOffset,
    TimeUnit,
    TriggerEvent,
    WorkflowMethod,
)
from workflow_webhooks.services.dispatcher import WebhookDispatcher
from workflow_webhooks.services.payloads import Payload, build_payload
from workflow_webhooks.services.templates import TemplateRenderer, TokenTemplateRenderer

Clock = Callable[[], datetime]

_RELATIVEDELTA_KEYS = {
    TimeUnit.DAY: "days",
    TimeUnit.HOUR: "hours",
    TimeUnit.MINUTE: "minutes",
}


class ReminderStore(Protocol):
    def create_reminder(self, record: DeferredReminderRecord) -> None:
        """Persist *record*; raise ReminderPersistenceError on failure."""
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def offset_delta(time_span: TimeOffset) -> relativedelta | None:
    """The offset as a relativedelta, or None when incomplete or unrecognised."""
    unit = time_span.unit
    if not time_span.time or unit is None:
        return None
    return relativedelta(**{_RELATIVEDELTA_KEYS[unit]: time_span.time})


def compute_scheduled_date(
    trigger_event: TriggerEvent,
    time_span: TimeOffset,
    start_time: datetime | None,
    end_time: datetime | None,
) -> datetime | None:
    delta = offset_delta(time_span)
    if delta is None:
        return None
    if trigger_event == TriggerEvent.BEFORE_EVENT and start_time is not None:
        return start_time - delta
    if trigger_event == TriggerEvent.AFTER_EVENT and end_time is not None:
        return end_time + delta
    return None


class DeliveryScheduler:
    """Routes notification requests to immediate dispatch or a deferred reminder."""

    def __init__(
        self,
        *,
        dispatcher: WebhookDispatcher,
        store: ReminderStore,
        renderer: TemplateRenderer | None = None,
        clock: Clock = _utcnow,
        log: FilteringBoundLogger | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.renderer = renderer or TokenTemplateRenderer()
        self.clock = clock
        self._log = log or structlog.get_logger(__name__)

    async def schedule_delivery(self, request: NotificationRequest) -> None:
        log = self._log.bind(
            workflow_step_id=request.workflow_step_id,
            trigger_event=request.trigger_event.value,
        )

        if not request.webhook_url.strip():
            log.warning("webhook_url_missing")
            return

        payload = build_payload(request, self.renderer)

        if request.trigger_event in IMMEDIATE_TRIGGER_EVENTS:
            await self._dispatch(request, payload)
            return

        scheduled_date = compute_scheduled_date(
            request.trigger_event,
            request.time_span,
            request.event.start_time,
            request.event.end_time,
        )

        # Sample and compare with no await in between.
        now = self.clock()
        if scheduled_date is None or scheduled_date <= now:
            await self._dispatch(request, payload)
            return

        record = DeferredReminderRecord(
            booking_uid=request.event.uid or "",
            workflow_step_id=request.workflow_step_id,
            method=WorkflowMethod.WEBHOOK,
            scheduled_date=scheduled_date,
            scheduled=True,
            seat_reference_uid=request.seat_reference_uid,
            user_id=request.user_id,
            team_id=request.team_id,
        )
        self.store.create_reminder(record)
        log.debug(
            "webhook_reminder_scheduled",
            reminder_id=record.id,
            scheduled_date=scheduled_date.isoformat(),
        )

    async def _dispatch(
        self, request: NotificationRequest, payload: Payload
    ) -> DeliveryResult:
        return await self.dispatcher.send(
            request.webhook_url, payload, request.workflow_step_id
        )
