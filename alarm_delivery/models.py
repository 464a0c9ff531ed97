from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

DEFAULT_TASK_TITLE = "Task Reminder"


class OutcomeKind(str, Enum):
    COMPLETED = "completed"
    DISMISSED = "dismissed"


class SessionState(Enum):
    IDLE = "idle"
    NOTIFYING = "notifying"
    WAITING_FOR_SURFACE = "waiting_for_surface"
    SURFACE_CONFIRMED = "surface_confirmed"
    FALLBACK_ACTIVE = "fallback_active"
    STOPPED = "stopped"


@dataclass
class AlarmRequest:
    task_id: str
    task_title: str
    notification_id: int
    trigger_time_millis: int = 0
    permanent: bool = False

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "task_title": self.task_title,
            "notification_id": self.notification_id,
            "trigger_time_millis": self.trigger_time_millis,
            "permanent": self.permanent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlarmRequest":
        """Accepts both the stored snake_case form and the host's camelCase arguments."""

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        try:
            notification_id = int(pick("notification_id", "notificationId", default=0))
            trigger_time_millis = int(pick("trigger_time_millis", "triggerTimeMillis", default=0))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Alarm payload has non-integer id or trigger time: {exc}") from exc
        return cls(
            task_id=str(pick("task_id", "taskId", default="")),
            task_title=str(pick("task_title", "taskTitle", default="") or DEFAULT_TASK_TITLE),
            notification_id=notification_id,
            trigger_time_millis=trigger_time_millis,
            permanent=bool(pick("permanent", "isPermanent", default=False)),
        )


@dataclass
class PendingOutcome:
    task_id: str
    kind: OutcomeKind


@dataclass
class AlertSession:
    """The alarm currently ringing. Lives in memory only."""

    request: AlarmRequest
    token: int
    state: SessionState = SessionState.IDLE
    partial_wake_lock: Optional[Any] = None
    wake_locks: List[Any] = field(default_factory=list)
    overlay_shown: bool = False
    deadline_handled: bool = False
    timer: Optional[Any] = None
