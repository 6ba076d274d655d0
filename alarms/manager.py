from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import replace
from datetime import datetime
from threading import Condition, Event, Lock, Thread
from typing import Callable, Dict, List, Optional

from .errors import InvalidScheduleError
from .models import Alarm, AlarmStatus, TimerHandle

logger = logging.getLogger(__name__)

PAST_TIME_MESSAGE = "The alarm time is in the past! Please set a future time."


class AlarmManager:
    """Registry of alarms plus the scheduler thread that fires them.

    Records keep insertion order and are never removed. Every read or write of
    the record list, the active timer map and the deadline queue happens under
    one lock, and the scheduler thread only fires a record whose active handle
    is still the one that elapsed. Alarms are addressed by label, resolving to
    the first record carrying it; a generated id is matched only when no label
    equals the key.
    """

    def __init__(
        self,
        check_interval: float = 0.5,
        on_alarm_fired: Optional[Callable[[Alarm], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.check_interval = max(0.05, check_interval)
        self.on_alarm_fired = on_alarm_fired
        self.clock = clock or datetime.now

        self._alarms: List[Alarm] = []
        self._timers: Dict[str, TimerHandle] = {}
        self._queue: List[TimerHandle] = []
        self._cancelled = 0
        self._seq = itertools.count()
        self._lock = Lock()
        self._wakeup = Condition(self._lock)
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-scheduler", daemon=True)
        self._thread.start()
        logger.info("Alarm scheduler started (check_interval=%.2fs)", self.check_interval)

    def shutdown(self) -> None:
        self._stop_event.set()
        with self._wakeup:
            self._wakeup.notify_all()
        if self._thread:
            self._thread.join(timeout=2)
            logger.info("Alarm scheduler stopped")
        self._thread = None

    def __enter__(self) -> "AlarmManager":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_alarm(self, fire_at: datetime, label: str) -> Alarm:
        fire_at = _to_local(fire_at)
        now = self.clock()
        if fire_at <= now:
            logger.warning("Rejected alarm %r: %s is not in the future", label, fire_at.isoformat())
            raise InvalidScheduleError(PAST_TIME_MESSAGE)
        alarm = Alarm.new(fire_at, label, created_at=now)
        with self._lock:
            self._alarms.append(alarm)
            self._arm(alarm)
        logger.info("Alarm set for %s (label=%s, id=%s)", _rfc1123(fire_at), label, alarm.id)
        return alarm

    def reschedule(self, key: str, new_time: datetime) -> Optional[Alarm]:
        """Move an alarm to ``new_time`` and reopen it as pending.

        The record is updated in place. A time that is no longer in the future
        still updates the record, but no timer is armed for it, so it shows up
        in ``first_overdue_unfired`` instead of firing.
        """
        new_time = _to_local(new_time)
        now = self.clock()
        armed = False
        with self._lock:
            idx = self._find_index(key)
            if idx is None:
                updated = None
            else:
                current = self._alarms[idx]
                self._cancel(current.id)
                updated = replace(current, fire_at=new_time, status=AlarmStatus.PENDING, fired_at=None)
                self._alarms[idx] = updated
                if new_time > now:
                    self._arm(updated)
                    armed = True
        if updated is None:
            logger.info("Reschedule skipped, no alarm matches %r", key)
        elif armed:
            logger.info("Alarm %s (label=%s) rescheduled for %s", updated.id, updated.label, _rfc1123(new_time))
        else:
            logger.warning(
                "Alarm %s (label=%s) moved to %s, not re-armed: %s",
                updated.id,
                updated.label,
                new_time.isoformat(),
                PAST_TIME_MESSAGE,
            )
        return updated

    def reschedule_alarm(self, key: str, new_time: datetime) -> bool:
        return self.reschedule(key, new_time) is not None

    def stop(self, key: str) -> Optional[Alarm]:
        with self._lock:
            idx = self._find_index(key)
            if idx is None:
                alarm = None
            else:
                alarm = self._alarms[idx]
                self._cancel(alarm.id)
                if alarm.status is AlarmStatus.PENDING:
                    alarm = alarm.with_status(AlarmStatus.CANCELLED)
                    self._alarms[idx] = alarm
        if alarm is None:
            logger.info("Stop skipped, no alarm matches %r", key)
        else:
            logger.info("Alarm %s (label=%s) stopped, status=%s", alarm.id, alarm.label, alarm.status.value)
        return alarm

    def stop_alarm(self, key: str) -> bool:
        return self.stop(key) is not None

    def fire(self, key: str) -> Optional[Alarm]:
        """Fire an armed alarm now. Returns None if it has no active timer."""
        fired = None
        with self._lock:
            idx = self._find_index(key)
            if idx is not None:
                alarm_id = self._alarms[idx].id
                if self._cancel(alarm_id):
                    fired = self._mark_fired(alarm_id, self.clock())
        if fired:
            self._notify(fired)
        return fired

    def fire_due(self, now: Optional[datetime] = None) -> List[Alarm]:
        now = now or self.clock()
        fired: List[Alarm] = []
        with self._lock:
            while self._queue and self._queue[0].deadline <= now:
                handle = heapq.heappop(self._queue)
                if handle.cancelled:
                    self._cancelled -= 1
                    continue
                # A live handle is always the alarm's entry in _timers.
                del self._timers[handle.alarm_id]
                handle.cancel()
                alarm = self._mark_fired(handle.alarm_id, now)
                if alarm:
                    fired.append(alarm)
        for alarm in fired:
            self._notify(alarm)
        return fired

    def count_todays_alarms(self) -> int:
        today = self.clock().date()
        with self._lock:
            return sum(1 for a in self._alarms if a.fire_at.date() == today)

    def get_alarm(self, key: str) -> Optional[Alarm]:
        with self._lock:
            idx = self._find_index(key)
            return self._alarms[idx] if idx is not None else None

    def get_completed_alarms(self) -> List[Alarm]:
        with self._lock:
            return [a for a in self._alarms if a.is_terminal]

    def get_alarms_for_display(self) -> List[Alarm]:
        with self._lock:
            return list(self._alarms)

    def first_overdue_unfired(self) -> Optional[str]:
        now = self.clock()
        with self._lock:
            for alarm in self._alarms:
                if alarm.status is AlarmStatus.PENDING and alarm.fire_at < now:
                    return alarm.label
        return None

    def active_timer_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def has_active_timer(self, key: str) -> bool:
        with self._lock:
            idx = self._find_index(key)
            return idx is not None and self._alarms[idx].id in self._timers

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.fire_due()
            with self._wakeup:
                if self._stop_event.is_set():
                    break
                timeout = self.check_interval
                if self._queue:
                    until_next = (self._queue[0].deadline - self.clock()).total_seconds()
                    timeout = max(0.0, min(timeout, until_next))
                self._wakeup.wait(timeout)

    # Helpers below expect self._lock to be held.

    def _arm(self, alarm: Alarm) -> None:
        handle = TimerHandle(deadline=alarm.fire_at, seq=next(self._seq), alarm_id=alarm.id)
        self._timers[alarm.id] = handle
        heapq.heappush(self._queue, handle)
        if self._queue[0] is handle:
            self._wakeup.notify()

    def _cancel(self, alarm_id: str) -> bool:
        handle = self._timers.pop(alarm_id, None)
        if handle is None:
            return False
        handle.cancel()
        self._cancelled += 1
        if self._cancelled * 2 > len(self._queue):
            self._queue = [h for h in self._queue if not h.cancelled]
            heapq.heapify(self._queue)
            self._cancelled = 0
        return True

    def _mark_fired(self, alarm_id: str, now: datetime) -> Optional[Alarm]:
        idx = self._index_by_id(alarm_id)
        if idx is None or self._alarms[idx].is_terminal:
            return None
        fired = self._alarms[idx].with_status(AlarmStatus.FIRED, fired_at=now)
        self._alarms[idx] = fired
        return fired

    def _find_index(self, key: str) -> Optional[int]:
        for idx, alarm in enumerate(self._alarms):
            if alarm.label == key:
                return idx
        return self._index_by_id(key)

    def _index_by_id(self, alarm_id: str) -> Optional[int]:
        for idx, alarm in enumerate(self._alarms):
            if alarm.id == alarm_id:
                return idx
        return None

    def _notify(self, alarm: Alarm) -> None:
        logger.info("ALARM! %s (id=%s)", alarm.label, alarm.id)
        if self.on_alarm_fired:
            try:
                self.on_alarm_fired(alarm)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_alarm_fired callback failed", exc_info=True)


def _to_local(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def _rfc1123(dt: datetime) -> str:
    return dt.strftime("%a, %d %b %Y %H:%M:%S")
