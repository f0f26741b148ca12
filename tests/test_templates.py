"""Tests for {TOKEN} template rendering."""

from __future__ import annotations

from datetime import datetime, timezone

from workflow_webhooks.services.templates import (
    TemplateVariables,
    TokenTemplateRenderer,
    format_date,
    format_time,
)

_WHEN = datetime(2026, 6, 2, 9, 5, tzinfo=timezone.utc)


def _render(template: str, locale: str = "en", **variables) -> str:
    return TokenTemplateRenderer().render(
        template, TemplateVariables(**variables), locale
    )


def test_replaces_known_tokens_case_insensitively():
    text = _render(
        "{event_name} with {ORGANIZER} for {Attendee_Name}",
        event_name="Intro call",
        organizer_name="Olive",
        attendee_name="Ada Lovelace",
    )
    assert text == "Intro call with Olive for Ada Lovelace"


def test_absent_values_render_empty():
    assert _render("[{LOCATION}][{MEETING_URL}]") == "[][]"


def test_unknown_tokens_are_left_alone():
    assert _render("{NOPE} {EVENT_NAME}", event_name="x") == "{NOPE} x"


def test_first_and_last_name():
    text = _render(
        "{ATTENDEE_FIRST_NAME}|{ATTENDEE_LAST_NAME}", attendee_name="Ada King Lovelace"
    )
    assert text == "Ada|King Lovelace"


def test_json_template_braces_survive():
    text = _render('{"title": "{EVENT_NAME}", "nested": {"n": 1}}', event_name="Demo")
    assert text == '{"title": "Demo", "nested": {"n": 1}}'


def test_english_date_and_time_formats():
    assert format_date(_WHEN, "en") == "Tuesday, June 2, 2026"
    assert format_date(_WHEN, "en-GB") == "Tuesday, June 2, 2026"
    assert format_time(_WHEN, "en") == "9:05AM"


def test_other_locales_use_iso_formats():
    assert format_date(_WHEN, "de") == "2026-06-02"
    assert format_time(_WHEN, "fr") == "09:05"


def test_date_tokens():
    text = _render(
        "{EVENT_DATE} {EVENT_TIME}-{EVENT_END_TIME} {TIMEZONE}",
        event_date=_WHEN,
        event_end_time=_WHEN.replace(hour=10),
        time_zone="UTC",
    )
    assert text == "Tuesday, June 2, 2026 9:05AM-10:05AM UTC"
