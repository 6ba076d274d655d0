"""In-process alarm registry and scheduler."""

from .errors import AlarmError, InvalidScheduleError, MalformedInputError, NotFoundError
from .manager import AlarmManager
from .models import Alarm, AlarmStatus
from .parser import AlarmCommand, parse_alarm_time, parse_command
