"""Domain models for workflow webhook notifications."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    field_validator,
)
from pydantic.alias_generators import to_camel


class TriggerEvent(StrEnum):
    NEW_EVENT = "NEW_EVENT"
    EVENT_CANCELLED = "EVENT_CANCELLED"
    RESCHEDULE_EVENT = "RESCHEDULE_EVENT"
    BOOKING_REQUESTED = "BOOKING_REQUESTED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    BOOKING_PAYMENT_INITIATED = "BOOKING_PAYMENT_INITIATED"
    BOOKING_PAID = "BOOKING_PAID"
    BOOKING_NO_SHOW_UPDATED = "BOOKING_NO_SHOW_UPDATED"
    BEFORE_EVENT = "BEFORE_EVENT"
    AFTER_EVENT = "AFTER_EVENT"


IMMEDIATE_TRIGGER_EVENTS: frozenset[TriggerEvent] = frozenset(
    {
        TriggerEvent.NEW_EVENT,
        TriggerEvent.EVENT_CANCELLED,
        TriggerEvent.RESCHEDULE_EVENT,
        TriggerEvent.BOOKING_REQUESTED,
        TriggerEvent.BOOKING_REJECTED,
        TriggerEvent.BOOKING_PAYMENT_INITIATED,
        TriggerEvent.BOOKING_PAID,
        TriggerEvent.BOOKING_NO_SHOW_UPDATED,
    }
)

TIME_RELATIVE_TRIGGER_EVENTS: frozenset[TriggerEvent] = frozenset(
    {TriggerEvent.BEFORE_EVENT, TriggerEvent.AFTER_EVENT}
)


class TimeUnit(StrEnum):
    DAY = "day"
    HOUR = "hour"
    MINUTE = "minute"


class WorkflowMethod(StrEnum):
    WEBHOOK = "WEBHOOK"


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Event snapshot
# ---------------------------------------------------------------------------


class Attendee(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    time_zone: str | None = None
    locale: str | None = None


class Organizer(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    time_zone: str | None = None


class EventSnapshot(BaseModel):
    """Read-only view of a booking at the moment a notification is evaluated."""

    model_config = ConfigDict(frozen=True)

    uid: str | None = None
    booking_id: int | None = None
    title: str | None = None
    event_type_slug: str | None = None
    start_time: AwareDatetime | None = None
    end_time: AwareDatetime | None = None
    organizer: Organizer | None = None
    attendees: list[Attendee] | None = None
    location: str | None = None
    additional_notes: str | None = None
    responses: dict[str, JsonValue] | None = None
    metadata: dict[str, JsonValue] | None = None
    video_call_url: str | None = None

    @property
    def meeting_url(self) -> str | None:
        """Metadata-provided video URL wins over the embedded video-call URL."""
        from_metadata = (self.metadata or {}).get("videoCallUrl")
        if isinstance(from_metadata, str) and from_metadata:
            return from_metadata
        return self.video_call_url or None


# ---------------------------------------------------------------------------
# Scheduling request
# ---------------------------------------------------------------------------


class TimeOffset(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: int | None = None
    time_unit: str | None = None

    @field_validator("time_unit")
    @classmethod
    def _normalise_unit(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().lower() or None

    @property
    def unit(self) -> TimeUnit | None:
        """The recognised unit, or ``None`` when absent or unknown."""
        if self.time_unit is None:
            return None
        try:
            return TimeUnit(self.time_unit)
        except ValueError:
            return None


class NotificationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: EventSnapshot
    trigger_event: TriggerEvent
    time_span: TimeOffset = Field(default_factory=TimeOffset)
    webhook_url: str = ""
    message: str | None = None
    workflow_step_id: int
    seat_reference_uid: str | None = None
    user_id: int | None = None
    team_id: int | None = None


# ---------------------------------------------------------------------------
# Delivery payloads
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class PayloadPerson(_WireModel):
    name: str = ""
    email: str = ""
    time_zone: str = ""


class BookingPayload(_WireModel):
    booking_id: int | None = None
    uid: str = ""
    title: str = ""
    type: str = ""
    start_time: str = ""
    end_time: str = ""
    organizer: PayloadPerson = Field(default_factory=PayloadPerson)
    attendees: list[PayloadPerson] = Field(default_factory=list)
    location: str | None = None
    additional_notes: str | None = None
    responses: dict[str, JsonValue] | None = None
    meeting_url: str | None = None


class DefaultPayload(_WireModel):
    """Fixed-shape body mirroring a booking-created notification."""

    trigger_event: TriggerEvent
    created_at: str
    payload: BookingPayload

    def to_wire(self) -> dict[str, JsonValue]:
        """Serialise with camelCase keys, omitting the optional absent keys.

        ``responses`` is dumped separately so that ``None`` values inside the
        user's answers survive.
        """
        data = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"payload": {"responses"}},
        )
        if self.payload.responses is not None:
            data["payload"]["responses"] = self.payload.model_dump(
                mode="json", include={"responses"}
            )["responses"]
        return data


# ---------------------------------------------------------------------------
# Persistence and results
# ---------------------------------------------------------------------------


class DeferredReminderRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    booking_uid: str
    workflow_step_id: int
    method: WorkflowMethod = WorkflowMethod.WEBHOOK
    scheduled_date: AwareDatetime
    scheduled: bool = True
    seat_reference_uid: str | None = None
    user_id: int | None = None
    team_id: int | None = None
    was_sent: bool = False
    sent_at: datetime | None = None


class DeliveryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    status: int
    message: str | None = None


class WorkflowStep(BaseModel):
    """Stored webhook step configuration, used to rebuild deferred payloads."""

    id: int
    trigger_event: TriggerEvent
    webhook_url: str
    message: str | None = None
    time_span: TimeOffset = Field(default_factory=TimeOffset)


class ScheduleAccepted(BaseModel):
    status: str = "accepted"


class TickResult(BaseModel):
    reminder_id: str
    ok: bool
    status: int


class TickResponse(BaseModel):
    time: datetime
    reminders_sent: list[TickResult] = Field(default_factory=list)
