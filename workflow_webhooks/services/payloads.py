"""Builders for webhook delivery bodies.

Two shapes are produced:

* the default payload, a fixed schema mirroring a booking-created
  notification, so consumers need a single parser whatever the trigger;
* a custom payload, rendered from the step's user-authored template.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import JsonValue

from workflow_webhooks.domain.models import (
    BookingPayload,
    DefaultPayload,
    EventSnapshot,
    NotificationRequest,
    PayloadPerson,
    TriggerEvent,
)
from workflow_webhooks.services.templates import TemplateRenderer, TemplateVariables

DEFAULT_LOCALE = "en"
DEFAULT_TIME_ZONE = "UTC"

Payload = dict[str, JsonValue]


def to_iso(value: datetime | None) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if value is None:
        return ""
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIME_ZONE)


# ---------------------------------------------------------------------------
# Default payload
# ---------------------------------------------------------------------------


def build_default_payload(
    event: EventSnapshot,
    trigger_event: TriggerEvent,
    created_at: datetime | None = None,
) -> DefaultPayload:
    organizer = event.organizer
    return DefaultPayload(
        trigger_event=trigger_event,
        created_at=to_iso(created_at or datetime.now(timezone.utc)),
        payload=BookingPayload(
            booking_id=event.booking_id,
            uid=event.uid or "",
            title=event.title or "",
            type=event.event_type_slug or event.title or "",
            start_time=to_iso(event.start_time),
            end_time=to_iso(event.end_time),
            organizer=PayloadPerson(
                name=(organizer.name if organizer else None) or "",
                email=(organizer.email if organizer else None) or "",
                time_zone=(organizer.time_zone if organizer else None) or "",
            ),
            attendees=[
                PayloadPerson(
                    name=a.name or "",
                    email=a.email or "",
                    time_zone=a.time_zone or "",
                )
                for a in event.attendees or []
            ],
            location=event.location,
            additional_notes=event.additional_notes,
            responses=event.responses,
            meeting_url=event.meeting_url,
        ),
    )


# ---------------------------------------------------------------------------
# Custom payload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedMap:
    data: Payload


@dataclass(frozen=True)
class RawText:
    text: str


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


def parse_rendered(text: str) -> ParsedMap | RawText:
    """Parse rendered template output; only a JSON object counts as parsed.

    NaN and Infinity literals are rejected, as they cannot be re-serialised.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return RawText(text)
    if not isinstance(data, dict):
        return RawText(text)
    return ParsedMap(data)


def build_template_variables(event: EventSnapshot) -> TemplateVariables:
    """Variables for template substitution.

    Attendee variables come from the first attendee only. Event times are
    converted into the organizer's timezone, UTC when it is unset.
    """
    attendee = (event.attendees or [None])[0]
    organizer = event.organizer
    time_zone = (organizer.time_zone if organizer else None) or DEFAULT_TIME_ZONE
    zone = _zone(time_zone)
    return TemplateVariables(
        event_name=event.title,
        organizer_name=organizer.name if organizer else None,
        attendee_name=attendee.name if attendee else None,
        attendee_email=attendee.email if attendee else None,
        attendee_timezone=attendee.time_zone if attendee else None,
        event_date=event.start_time.astimezone(zone) if event.start_time else None,
        event_end_time=event.end_time.astimezone(zone) if event.end_time else None,
        time_zone=time_zone,
        location=event.location,
        additional_notes=event.additional_notes,
        meeting_url=event.meeting_url,
    )


def build_custom_payload(
    template: str,
    event: EventSnapshot,
    trigger_event: TriggerEvent,
    renderer: TemplateRenderer,
) -> Payload:
    attendee = (event.attendees or [None])[0]
    locale = (attendee.locale if attendee else None) or DEFAULT_LOCALE
    text = renderer.render(template, build_template_variables(event), locale)

    parsed = parse_rendered(text)
    if isinstance(parsed, ParsedMap):
        return parsed.data
    return {"message": parsed.text, "triggerEvent": trigger_event.value}


def build_payload(request: NotificationRequest, renderer: TemplateRenderer) -> Payload:
    """Wire-ready body for a request: custom when a template is set."""
    if request.message:
        return build_custom_payload(
            request.message, request.event, request.trigger_event, renderer
        )
    return build_default_payload(request.event, request.trigger_event).to_wire()
