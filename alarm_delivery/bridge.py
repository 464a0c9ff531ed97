from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .models import AlarmRequest
from .service import AlarmService

logger = logging.getLogger(__name__)


@dataclass
class MethodResult:
    handled: bool
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.handled and self.error is None


class MethodBridge:
    """Named-method channel between the host UI and the alarm service."""

    def __init__(self, service: AlarmService):
        self.service = service
        self._methods: Dict[str, Callable[[dict], Any]] = {
            "scheduleFullScreenAlarm": self._schedule,
            "cancelFullScreenAlarm": self._cancel,
            "stopActiveAlarm": lambda _args: self.service.stop_active_alarm(),
            "getPendingCompletions": lambda _args: self.service.get_pending_completions(),
            "getPendingDismissals": lambda _args: self.service.get_pending_dismissals(),
            "checkSystemAlertWindowPermission": lambda _args: self.service.check_overlay_permission(),
            "checkFullScreenIntentPermission": lambda _args: self.service.check_full_screen_permission(),
        }

    def handle(self, method: str, arguments: Optional[dict] = None) -> MethodResult:
        handler = self._methods.get(method)
        if handler is None:
            logger.warning("Unknown bridge method %s", method)
            return MethodResult(handled=False, error="not_implemented")
        try:
            value = handler(arguments or {})
        except ValueError as exc:
            logger.warning("Bad arguments for %s: %s", method, exc)
            return MethodResult(handled=True, error=str(exc))
        except Exception as exc:
            logger.error("Bridge method %s failed", method, exc_info=True)
            return MethodResult(handled=True, error=str(exc))
        return MethodResult(handled=True, value=value)

    def _schedule(self, args: dict) -> bool:
        request = AlarmRequest.from_dict(args)
        self.service.schedule_full_screen_alarm(request)
        return True

    def _cancel(self, args: dict) -> bool:
        try:
            notification_id = int(args.get("notificationId", 0))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"notificationId must be an integer: {exc}") from exc
        self.service.cancel_full_screen_alarm(notification_id)
        return True
