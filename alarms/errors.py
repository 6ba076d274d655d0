from __future__ import annotations


class AlarmError(Exception):
    """Base class for alarm errors."""


class InvalidScheduleError(AlarmError, ValueError):
    """Requested fire time is not in the future."""


class NotFoundError(AlarmError, LookupError):
    """No alarm matches the given id or label."""


class MalformedInputError(AlarmError, ValueError):
    """Time text does not match the accepted format."""
