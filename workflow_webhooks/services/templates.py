"""Variable substitution for user-authored webhook templates.

Templates reference variables as ``{TOKEN}`` (case-insensitive), e.g.::

    {"text": "{ATTENDEE_NAME} booked {EVENT_NAME} on {EVENT_DATE}"}

Unknown tokens are left untouched and absent values render as an empty
string, so rendering never fails on a malformed template.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, ConfigDict

_TOKEN_RE = re.compile(r"\{([A-Za-z_]+)\}")


class TemplateVariables(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_name: str | None = None
    organizer_name: str | None = None
    attendee_name: str | None = None
    attendee_email: str | None = None
    attendee_timezone: str | None = None
    event_date: datetime | None = None
    event_end_time: datetime | None = None
    time_zone: str | None = None
    location: str | None = None
    additional_notes: str | None = None
    meeting_url: str | None = None


class TemplateRenderer(Protocol):
    def render(self, template: str, variables: TemplateVariables, locale: str) -> str: ...


def _is_english(locale: str) -> bool:
    return locale.lower().startswith("en")


def format_date(value: datetime | None, locale: str) -> str:
    if value is None:
        return ""
    if _is_english(locale):
        return f"{value:%A}, {value:%B} {value.day}, {value.year}"
    return value.date().isoformat()


def format_time(value: datetime | None, locale: str) -> str:
    if value is None:
        return ""
    if _is_english(locale):
        return value.strftime("%I:%M%p").lstrip("0")
    return value.strftime("%H:%M")


def _split_name(name: str | None) -> tuple[str, str]:
    parts = (name or "").split(" ", 1)
    first = parts[0]
    last = parts[1] if len(parts) > 1 else ""
    return first, last


def _token_values(variables: TemplateVariables, locale: str) -> dict[str, str]:
    first_name, last_name = _split_name(variables.attendee_name)
    return {
        "EVENT_NAME": variables.event_name or "",
        "ORGANIZER": variables.organizer_name or "",
        "ORGANIZER_NAME": variables.organizer_name or "",
        "ATTENDEE": variables.attendee_name or "",
        "ATTENDEE_NAME": variables.attendee_name or "",
        "ATTENDEE_FIRST_NAME": first_name,
        "ATTENDEE_LAST_NAME": last_name,
        "ATTENDEE_EMAIL": variables.attendee_email or "",
        "ATTENDEE_TIMEZONE": variables.attendee_timezone or "",
        "EVENT_DATE": format_date(variables.event_date, locale),
        "EVENT_TIME": format_time(variables.event_date, locale),
        "START_TIME": format_time(variables.event_date, locale),
        "EVENT_END_TIME": format_time(variables.event_end_time, locale),
        "TIMEZONE": variables.time_zone or "",
        "LOCATION": variables.location or "",
        "ADDITIONAL_NOTES": variables.additional_notes or "",
        "MEETING_URL": variables.meeting_url or "",
    }


class TokenTemplateRenderer:
    """Default renderer: plain ``{TOKEN}`` replacement."""

    def render(self, template: str, variables: TemplateVariables, locale: str) -> str:
        values = _token_values(variables, locale)

        def _replace(match: re.Match[str]) -> str:
            return values.get(match.group(1).upper(), match.group(0))

        return _TOKEN_RE.sub(_replace, template)
