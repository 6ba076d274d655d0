from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import MalformedInputError

TIME_FORMAT = "%Y-%m-%dT%H:%M"
INVALID_FORMAT_MESSAGE = "Invalid time format. Please use the correct format (YYYY-MM-DDTHH:MM)."

# strptime alone accepts single-digit fields, so the shape is checked first.
_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")

COMMANDS = ("set", "reschedule", "stop", "list", "completed", "count", "check", "help")


@dataclass
class AlarmCommand:
    action: str
    fire_at: Optional[datetime] = None
    label: Optional[str] = None
    error: Optional[str] = None
    raw_text: str = ""


def parse_alarm_time(text: str) -> datetime:
    """Parse a ``YYYY-MM-DDTHH:MM`` value or raise MalformedInputError."""

    cleaned = (text or "").strip()
    if not _TIME_RE.match(cleaned):
        raise MalformedInputError(INVALID_FORMAT_MESSAGE)
    try:
        return datetime.strptime(cleaned, TIME_FORMAT)
    except ValueError as exc:
        raise MalformedInputError(INVALID_FORMAT_MESSAGE) from exc


def format_alarm_time(dt: datetime) -> str:
    return dt.strftime(TIME_FORMAT)


def parse_command(text: str) -> AlarmCommand:
    """Parse a console command such as ``set 2099-01-01T07:00 wake up``."""

    cleaned = text.strip()
    if not cleaned:
        return AlarmCommand(action="unknown", error="Empty command.", raw_text=cleaned)

    verb, _, rest = cleaned.partition(" ")
    verb = verb.lower()
    rest = rest.strip()

    if verb not in COMMANDS:
        return AlarmCommand(
            action="unknown",
            error=f"Unknown command {verb!r}. Try: {', '.join(COMMANDS)}.",
            raw_text=cleaned,
        )

    if verb in ("set", "reschedule"):
        time_part, _, label = rest.partition(" ")
        try:
            fire_at = parse_alarm_time(time_part)
        except MalformedInputError as exc:
            return AlarmCommand(action="unknown", error=str(exc), raw_text=cleaned)
        label = label.strip()
        if verb == "reschedule" and not label:
            return AlarmCommand(action="unknown", error="Which alarm should be rescheduled?", raw_text=cleaned)
        return AlarmCommand(action=verb, fire_at=fire_at, label=label or None, raw_text=cleaned)

    if verb == "stop":
        if not rest:
            return AlarmCommand(action="unknown", error="Which alarm should be stopped?", raw_text=cleaned)
        return AlarmCommand(action="stop", label=rest, raw_text=cleaned)

    return AlarmCommand(action=verb, raw_text=cleaned)
