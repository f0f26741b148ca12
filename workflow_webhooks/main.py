"""FastAPI application: entry point for the workflow webhook service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, HTTPException

from workflow_webhooks.domain.errors import ReminderPersistenceError
from workflow_webhooks.domain.models import (
    DeferredReminderRecord,
    NotificationRequest,
    ScheduleAccepted,
    TickResponse,
    WorkflowStep,
)
from workflow_webhooks.logging_config import configure_logging
from workflow_webhooks.repos.memory import (
    BookingRepository,
    ReminderRepository,
    WorkflowStepRepository,
)
from workflow_webhooks.services.dispatcher import WebhookDispatcher
from workflow_webhooks.services.redelivery import deliver_due_reminders
from workflow_webhooks.services.scheduler import DeliveryScheduler
from workflow_webhooks.services.templates import TokenTemplateRenderer
from workflow_webhooks.settings import get_settings

settings = get_settings()
log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings)
    log.info("service_started", app_name=settings.app_name)
    yield


app = FastAPI(title="Workflow Webhook Service", lifespan=lifespan)

# ── Singletons (created at import time for simplicity) ────────────────
booking_repo = BookingRepository()
step_repo = WorkflowStepRepository()
reminder_repo = ReminderRepository()
renderer = TokenTemplateRenderer()
dispatcher = WebhookDispatcher(
    user_agent=settings.webhook_user_agent,
    timeout_seconds=settings.webhook_request_timeout_seconds,
)
scheduler = DeliveryScheduler(
    dispatcher=dispatcher,
    store=reminder_repo,
    renderer=renderer,
)


# ── Routes ────────────────────────────────────────────────────────────


@app.post(
    "/workflows/webhooks/schedule", status_code=202, response_model=ScheduleAccepted
)
async def schedule_webhook(body: NotificationRequest) -> ScheduleAccepted:
    """Send the step's webhook now, or store a reminder for later delivery.

    Requests without a webhook URL leave the stored booking and step untouched.
    """
    if body.webhook_url.strip():
        booking_repo.add(body.event)
        step_repo.add(
            WorkflowStep(
                id=body.workflow_step_id,
                trigger_event=body.trigger_event,
                webhook_url=body.webhook_url,
                message=body.message,
                time_span=body.time_span,
            )
        )
    try:
        await scheduler.schedule_delivery(body)
    except ReminderPersistenceError as exc:
        log.error(
            "webhook_reminder_not_persisted",
            booking_uid=exc.booking_uid,
            workflow_step_id=exc.workflow_step_id,
            reason=exc.reason,
        )
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ScheduleAccepted()


@app.get("/bookings/{uid}/reminders", response_model=list[DeferredReminderRecord])
def list_booking_reminders(uid: str) -> list[DeferredReminderRecord]:
    """Return the deferred webhook reminders stored for a booking."""
    return reminder_repo.list_for_booking(uid)


@app.post("/tick", response_model=TickResponse)
async def tick(now: datetime | None = None) -> TickResponse:
    """Deliver every webhook reminder due at *now*.

    Pass *now* as a query param to control the simulated clock.
    Defaults to ``datetime.now(timezone.utc)`` when omitted.
    """
    current_time = now or datetime.now(timezone.utc)
    if current_time.tzinfo is None:
        current_time = current_time.replace(tzinfo=timezone.utc)

    results = await deliver_due_reminders(
        current_time,
        reminder_repo=reminder_repo,
        booking_repo=booking_repo,
        step_repo=step_repo,
        dispatcher=dispatcher,
        renderer=renderer,
    )
    return TickResponse(time=current_time, reminders_sent=results)
