"""Deliver deferred webhook reminders whose scheduled date has been reached."""

from __future__ import annotations

from datetime import datetime

import structlog
from structlog.typing import FilteringBoundLogger

from workflow_webhooks.domain.models import NotificationRequest, TickResult
from workflow_webhooks.repos.memory import (
    BookingRepository,
    ReminderRepository,
    WorkflowStepRepository,
)
from workflow_webhooks.services.dispatcher import WebhookDispatcher
from workflow_webhooks.services.payloads import build_payload
from workflow_webhooks.services.templates import TemplateRenderer


async def deliver_due_reminders(
    now: datetime,
    *,
    reminder_repo: ReminderRepository,
    booking_repo: BookingRepository,
    step_repo: WorkflowStepRepository,
    dispatcher: WebhookDispatcher,
    renderer: TemplateRenderer,
    log: FilteringBoundLogger | None = None,
) -> list[TickResult]:
    """Send every due reminder once, rebuilding its payload from current data.

    Reminders are marked sent whatever the delivery outcome. Reminders whose
    booking or step no longer exists, or whose step has no webhook URL, are
    marked sent and skipped.
    """
    log = log or structlog.get_logger(__name__)
    results: list[TickResult] = []

    for reminder in reminder_repo.list_due(now):
        booking = booking_repo.get(reminder.booking_uid)
        step = step_repo.get(reminder.workflow_step_id)
        if booking is None or step is None or not step.webhook_url.strip():
            log.warning(
                "webhook_reminder_orphaned",
                reminder_id=reminder.id,
                booking_uid=reminder.booking_uid,
                workflow_step_id=reminder.workflow_step_id,
            )
            reminder_repo.mark_sent(reminder.id, now)
            continue

        request = NotificationRequest(
            event=booking,
            trigger_event=step.trigger_event,
            time_span=step.time_span,
            webhook_url=step.webhook_url,
            message=step.message,
            workflow_step_id=step.id,
            seat_reference_uid=reminder.seat_reference_uid,
            user_id=reminder.user_id,
            team_id=reminder.team_id,
        )
        payload = build_payload(request, renderer)
        result = await dispatcher.send(step.webhook_url, payload, step.id)
        reminder_repo.mark_sent(reminder.id, now)
        results.append(
            TickResult(reminder_id=reminder.id, ok=result.ok, status=result.status)
        )

    return results
