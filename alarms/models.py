from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class AlarmStatus(Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Alarm:
    id: str
    fire_at: datetime
    label: str
    created_at: datetime
    status: AlarmStatus = AlarmStatus.PENDING
    fired_at: Optional[datetime] = None

    @classmethod
    def new(cls, fire_at: datetime, label: str, created_at: datetime) -> "Alarm":
        return cls(
            id=f"al_{uuid.uuid4().hex[:8]}",
            fire_at=fire_at,
            label=label,
            created_at=created_at,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status is not AlarmStatus.PENDING

    @property
    def completed(self) -> bool:
        # Stopped and fired alarms both count as completed.
        return self.is_terminal

    def with_status(self, status: AlarmStatus, fired_at: Optional[datetime] = None) -> "Alarm":
        return replace(self, status=status, fired_at=fired_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fire_at": self.fire_at.isoformat(timespec="minutes"),
            "label": self.label,
            "status": self.status.value,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "fired_at": self.fired_at.isoformat() if self.fired_at else None,
        }


@dataclass(order=True)
class TimerHandle:
    """Queue entry for one armed alarm, ordered by deadline then arming order."""

    deadline: datetime
    seq: int
    alarm_id: str = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True
