"""In-memory repositories for bookings, workflow steps and webhook reminders."""

from __future__ import annotations

from datetime import datetime

from workflow_webhooks.domain.errors import ReminderPersistenceError
from workflow_webhooks.domain.models import (
    DeferredReminderRecord,
    EventSnapshot,
    WorkflowMethod,
    WorkflowStep,
)


class BookingRepository:
    """Dict-backed store for EventSnapshot instances, keyed by booking uid."""

    def __init__(self) -> None:
        self._store: dict[str, EventSnapshot] = {}

    def add(self, snapshot: EventSnapshot) -> None:
        if snapshot.uid:
            self._store[snapshot.uid] = snapshot

    def get(self, uid: str) -> EventSnapshot | None:
        return self._store.get(uid)


class WorkflowStepRepository:
    """Dict-backed store for WorkflowStep instances, keyed by step id."""

    def __init__(self) -> None:
        self._store: dict[int, WorkflowStep] = {}

    def add(self, step: WorkflowStep) -> None:
        self._store[step.id] = step

    def get(self, step_id: int) -> WorkflowStep | None:
        return self._store.get(step_id)


class ReminderRepository:
    """List-backed store for DeferredReminderRecord instances."""

    def __init__(self) -> None:
        self._items: list[DeferredReminderRecord] = []

    def create_reminder(self, record: DeferredReminderRecord) -> None:
        if not record.booking_uid:
            raise ReminderPersistenceError(
                record.booking_uid, record.workflow_step_id, "booking uid is required"
            )
        if self.get(record.id) is not None:
            raise ReminderPersistenceError(
                record.booking_uid, record.workflow_step_id, "duplicate reminder id"
            )
        self._items.append(record)

    def get(self, reminder_id: str) -> DeferredReminderRecord | None:
        for item in self._items:
            if item.id == reminder_id:
                return item
        return None

    def list_due(self, now: datetime) -> list[DeferredReminderRecord]:
        return [
            i
            for i in self._items
            if i.method == WorkflowMethod.WEBHOOK
            and i.scheduled
            and not i.was_sent
            and i.scheduled_date <= now
        ]

    def mark_sent(self, reminder_id: str, sent_at: datetime) -> None:
        item = self.get(reminder_id)
        if item is not None:
            item.was_sent = True
            item.sent_at = sent_at

    def list_for_booking(self, booking_uid: str) -> list[DeferredReminderRecord]:
        return sorted(
            [i for i in self._items if i.booking_uid == booking_uid],
            key=lambda i: i.scheduled_date,
        )
