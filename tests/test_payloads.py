"""Tests for default and template-driven webhook payloads."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from workflow_webhooks.domain.models import (
    Attendee,
    EventSnapshot,
    NotificationRequest,
    Organizer,
    TriggerEvent,
)
from workflow_webhooks.services.payloads import (
    ParsedMap,
    RawText,
    build_custom_payload,
    build_default_payload,
    build_payload,
    build_template_variables,
    parse_rendered,
)
from workflow_webhooks.services.templates import TokenTemplateRenderer

_START = datetime(2026, 6, 2, 15, 0, tzinfo=timezone.utc)


def _make_snapshot(**overrides) -> EventSnapshot:
    defaults = dict(
        uid="bk_123",
        booking_id=42,
        title="Intro call",
        event_type_slug="intro-call",
        start_time=_START,
        end_time=_START + timedelta(minutes=30),
        organizer=Organizer(
            name="Olive Organizer",
            email="olive@example.com",
            time_zone="America/New_York",
        ),
        attendees=[
            Attendee(
                name="Ada Lovelace",
                email="ada@example.com",
                time_zone="Europe/London",
                locale="en",
            ),
            Attendee(name="Grace Hopper", email="grace@example.com"),
        ],
    )
    defaults.update(overrides)
    return EventSnapshot(**defaults)


class RecordingRenderer:
    """Renderer that returns canned text and remembers its inputs."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[tuple] = []

    def render(self, template, variables, locale):
        self.calls.append((template, variables, locale))
        return self.text


# ---------------------------------------------------------------------------
# Default payload
# ---------------------------------------------------------------------------


def test_default_payload_shape():
    created = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
    wire = build_default_payload(
        _make_snapshot(), TriggerEvent.BEFORE_EVENT, created_at=created
    ).to_wire()

    assert wire["triggerEvent"] == "BEFORE_EVENT"
    assert wire["createdAt"] == "2026-06-01T12:00:00.000Z"
    body = wire["payload"]
    assert body["bookingId"] == 42
    assert body["uid"] == "bk_123"
    assert body["title"] == "Intro call"
    assert body["type"] == "intro-call"
    assert body["startTime"] == "2026-06-02T15:00:00.000Z"
    assert body["endTime"] == "2026-06-02T15:30:00.000Z"
    assert body["organizer"] == {
        "name": "Olive Organizer",
        "email": "olive@example.com",
        "timeZone": "America/New_York",
    }
    assert body["attendees"][1] == {
        "name": "Grace Hopper",
        "email": "grace@example.com",
        "timeZone": "",
    }


def test_default_payload_omits_absent_optional_fields():
    wire = build_default_payload(_make_snapshot(), TriggerEvent.NEW_EVENT).to_wire()
    body = wire["payload"]

    for key in ("location", "additionalNotes", "responses", "meetingUrl"):
        assert key not in body


def test_default_payload_empty_attendees_stay_a_list():
    wire = build_default_payload(
        _make_snapshot(attendees=[]), TriggerEvent.NEW_EVENT
    ).to_wire()
    assert wire["payload"]["attendees"] == []

    wire = build_default_payload(
        _make_snapshot(attendees=None), TriggerEvent.NEW_EVENT
    ).to_wire()
    assert wire["payload"]["attendees"] == []


def test_default_payload_missing_strings_become_empty():
    wire = build_default_payload(EventSnapshot(), TriggerEvent.NEW_EVENT).to_wire()
    body = wire["payload"]

    assert body["uid"] == ""
    assert body["title"] == ""
    assert body["type"] == ""
    assert body["startTime"] == ""
    assert body["organizer"] == {"name": "", "email": "", "timeZone": ""}
    assert "bookingId" not in body


def test_default_payload_type_falls_back_to_title():
    wire = build_default_payload(
        _make_snapshot(event_type_slug=None), TriggerEvent.NEW_EVENT
    ).to_wire()
    assert wire["payload"]["type"] == "Intro call"


def test_default_payload_keeps_optional_fields_when_present():
    snapshot = _make_snapshot(
        location="Room 4",
        additional_notes="Bring slides",
        responses={"company": "Acme", "phone": None},
    )
    body = build_default_payload(snapshot, TriggerEvent.NEW_EVENT).to_wire()["payload"]

    assert body["location"] == "Room 4"
    assert body["additionalNotes"] == "Bring slides"
    assert body["responses"] == {"company": "Acme", "phone": None}


def test_meeting_url_prefers_metadata():
    snapshot = _make_snapshot(
        metadata={"videoCallUrl": "https://meet.example.com/meta"},
        video_call_url="https://video.example.com/embedded",
    )
    body = build_default_payload(snapshot, TriggerEvent.NEW_EVENT).to_wire()["payload"]
    assert body["meetingUrl"] == "https://meet.example.com/meta"


def test_meeting_url_falls_back_to_video_call_data():
    snapshot = _make_snapshot(video_call_url="https://video.example.com/embedded")
    body = build_default_payload(snapshot, TriggerEvent.NEW_EVENT).to_wire()["payload"]
    assert body["meetingUrl"] == "https://video.example.com/embedded"


def test_snapshot_rejects_naive_datetimes():
    with pytest.raises(ValueError):
        EventSnapshot(start_time=datetime(2026, 6, 2, 15, 0))


# ---------------------------------------------------------------------------
# Custom payload
# ---------------------------------------------------------------------------


def test_parse_rendered_object():
    assert parse_rendered('{"a": 1}') == ParsedMap({"a": 1})


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        "42",
        '"text"',
        '{"a": NaN}',
        '{"a": Infinity}',
        '{"a": [-Infinity]}',
    ],
)
def test_parse_rendered_non_object_is_raw_text(text):
    assert parse_rendered(text) == RawText(text)


def test_custom_payload_parsed_from_template():
    template = '{"who": "{ATTENDEE_NAME}", "what": "{EVENT_NAME}"}'
    payload = build_custom_payload(
        template, _make_snapshot(), TriggerEvent.NEW_EVENT, TokenTemplateRenderer()
    )
    assert payload == {"who": "Ada Lovelace", "what": "Intro call"}


def test_custom_payload_degrades_to_message_wrapper():
    renderer = RecordingRenderer("Hello {not json")
    payload = build_custom_payload(
        "anything", _make_snapshot(), TriggerEvent.AFTER_EVENT, renderer
    )
    assert payload == {"message": "Hello {not json", "triggerEvent": "AFTER_EVENT"}


def test_custom_payload_with_nan_degrades_to_message_wrapper():
    payload = build_custom_payload(
        '{"score": NaN}',
        _make_snapshot(),
        TriggerEvent.NEW_EVENT,
        TokenTemplateRenderer(),
    )
    assert payload == {"message": '{"score": NaN}', "triggerEvent": "NEW_EVENT"}


def test_custom_payload_uses_first_attendee_locale():
    renderer = RecordingRenderer("{}")
    snapshot = _make_snapshot(
        attendees=[Attendee(name="Ines", locale="pt-BR"), Attendee(locale="de")]
    )
    build_custom_payload("{}", snapshot, TriggerEvent.NEW_EVENT, renderer)

    _, variables, locale = renderer.calls[0]
    assert locale == "pt-BR"
    assert variables.attendee_name == "Ines"


def test_custom_payload_locale_defaults_to_english():
    renderer = RecordingRenderer("{}")
    build_custom_payload(
        "{}", _make_snapshot(attendees=[]), TriggerEvent.NEW_EVENT, renderer
    )
    assert renderer.calls[0][2] == "en"


def test_template_variables_use_organizer_timezone():
    variables = build_template_variables(_make_snapshot())

    assert variables.time_zone == "America/New_York"
    assert variables.event_date.hour == 11
    assert variables.event_end_time.minute == 30
    assert variables.attendee_email == "ada@example.com"
    assert variables.attendee_timezone == "Europe/London"


def test_template_variables_default_to_utc_without_organizer_timezone():
    snapshot = _make_snapshot(organizer=Organizer(name="Olive"))
    variables = build_template_variables(snapshot)

    assert variables.time_zone == "UTC"
    assert variables.event_date.utcoffset() == timedelta(0)
    assert variables.event_date.hour == 15

    payload = build_custom_payload(
        '{"date": "{EVENT_DATE}", "time": "{EVENT_TIME}", "tz": "{TIMEZONE}"}',
        snapshot,
        TriggerEvent.BEFORE_EVENT,
        TokenTemplateRenderer(),
    )
    assert payload == {"date": "Tuesday, June 2, 2026", "time": "3:00PM", "tz": "UTC"}


def test_template_variables_unknown_timezone_falls_back_to_utc():
    snapshot = _make_snapshot(organizer=Organizer(time_zone="Mars/Olympus_Mons"))
    variables = build_template_variables(snapshot)
    assert variables.event_date.utcoffset() == timedelta(0)


def test_build_payload_selects_shape_by_template():
    snapshot = _make_snapshot()
    default = build_payload(
        NotificationRequest(
            event=snapshot,
            trigger_event=TriggerEvent.NEW_EVENT,
            webhook_url="https://hooks.example.com",
            workflow_step_id=1,
        ),
        TokenTemplateRenderer(),
    )
    custom = build_payload(
        NotificationRequest(
            event=snapshot,
            trigger_event=TriggerEvent.NEW_EVENT,
            webhook_url="https://hooks.example.com",
            message='{"uid": "bk"}',
            workflow_step_id=1,
        ),
        TokenTemplateRenderer(),
    )

    assert default["triggerEvent"] == "NEW_EVENT"
    assert default["payload"]["uid"] == "bk_123"
    assert custom == {"uid": "bk"}
