from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import InvalidScheduleError
from .manager import AlarmManager
from .models import Alarm
from .parser import COMMANDS, parse_command

logger = logging.getLogger(__name__)


@dataclass
class IntentResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None


class IntentRouter:
    """Maps console commands onto the alarm manager and renders short replies."""

    def __init__(self, alarm_manager: AlarmManager, default_label: str = "Alarm"):
        self.alarm_manager = alarm_manager
        self.default_label = default_label

    def handle_text(self, text: str) -> IntentResult:
        parsed = parse_command(text)
        logger.debug("Parsed command: %s", parsed)

        if parsed.action == "unknown":
            return IntentResult(handled=False, response_text=parsed.error, action="unknown")

        if parsed.action == "help":
            return IntentResult(handled=True, response_text="Commands: " + ", ".join(COMMANDS), action="help")

        if parsed.action == "set":
            try:
                alarm = self.alarm_manager.set_alarm(parsed.fire_at, parsed.label or self.default_label)
            except InvalidScheduleError as exc:
                return IntentResult(handled=True, response_text=str(exc), action="set")
            resp = f"Alarm set for {format_alarm_line(alarm)} (id {alarm.id})."
            return IntentResult(handled=True, response_text=resp, action="set")

        if parsed.action == "reschedule":
            alarm = self.alarm_manager.reschedule(parsed.label, parsed.fire_at)
            if alarm is None:
                return IntentResult(handled=True, response_text="Alarm not found.", action="reschedule")
            resp = f"Rescheduled: {format_alarm_line(alarm)}."
            return IntentResult(handled=True, response_text=resp, action="reschedule")

        if parsed.action == "stop":
            if self.alarm_manager.stop_alarm(parsed.label):
                resp = f"Stopped alarm {parsed.label}."
            else:
                resp = "Alarm not found."
            return IntentResult(handled=True, response_text=resp, action="stop")

        if parsed.action == "list":
            alarms = self.alarm_manager.get_alarms_for_display()
            resp = _render_list(alarms, empty="No alarms yet.")
            return IntentResult(handled=True, response_text=resp, action="list")

        if parsed.action == "completed":
            alarms = self.alarm_manager.get_completed_alarms()
            resp = _render_list(alarms, empty="No completed alarms.")
            return IntentResult(handled=True, response_text=resp, action="completed")

        if parsed.action == "count":
            count = self.alarm_manager.count_todays_alarms()
            return IntentResult(handled=True, response_text=f"Alarms set for today: {count}", action="count")

        if parsed.action == "check":
            label = self.alarm_manager.first_overdue_unfired()
            resp = f"ALARM! {label}" if label else "Nothing is ringing."
            return IntentResult(handled=True, response_text=resp, action="check")

        return IntentResult(handled=False, action=parsed.action)


def format_alarm_line(alarm: Alarm) -> str:
    return f"{_format_when(alarm.fire_at)} — {alarm.label} [{alarm.status.value}]"


def _format_when(dt: datetime) -> str:
    return dt.strftime("%H:%M %d.%m.%Y")


def _render_list(alarms, empty: str) -> str:
    if not alarms:
        return empty
    return "\n".join(f"{idx}) {format_alarm_line(alarm)}" for idx, alarm in enumerate(alarms, start=1))
