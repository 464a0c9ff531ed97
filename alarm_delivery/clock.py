from __future__ import annotations

import logging
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Callable, List, Optional

from time_utils import format_delta, now_millis

from .models import AlarmRequest
from .storage import load_requests, save_requests

logger = logging.getLogger(__name__)


class AlarmClock:
    """Fires scheduled alarm requests when their trigger time arrives.

    Stands in for the platform alarm clock: requests survive restarts in a
    JSON file, and a request whose time passed while the process was down
    fires on the first tick after start.
    """

    def __init__(
        self,
        storage_path: Path,
        on_fire: Callable[[AlarmRequest], None],
        check_interval: float = 0.8,
        clock: Callable[[], int] = now_millis,
    ):
        self.storage_path = Path(storage_path)
        self.on_fire = on_fire
        self.check_interval = max(0.2, check_interval)
        self.clock = clock

        self._requests: List[AlarmRequest] = sorted(load_requests(self.storage_path), key=lambda r: r.trigger_time_millis)
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        logger.info("Loaded %s scheduled alarms from %s", len(self.pending()), self.storage_path)
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-clock", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    def schedule(self, request: AlarmRequest) -> AlarmRequest:
        with self._lock:
            self._requests = [r for r in self._requests if r.notification_id != request.notification_id]
            self._requests.append(request)
            self._requests.sort(key=lambda r: r.trigger_time_millis)
            save_requests(self.storage_path, self._requests)
        logger.info(
            "Alarm %s scheduled for '%s' at %s (%s)",
            request.notification_id,
            request.task_title,
            request.trigger_time_millis,
            format_delta(request.trigger_time_millis, self.clock()),
        )
        return request

    def cancel(self, notification_id: int) -> Optional[AlarmRequest]:
        with self._lock:
            removed = next((r for r in self._requests if r.notification_id == notification_id), None)
            if removed is None:
                return None
            self._requests = [r for r in self._requests if r.notification_id != notification_id]
            save_requests(self.storage_path, self._requests)
        logger.info("Alarm %s cancelled", notification_id)
        return removed

    def pending(self) -> List[AlarmRequest]:
        with self._lock:
            return list(self._requests)

    def tick(self) -> List[AlarmRequest]:
        """Fire everything that is due; returns the fired requests."""
        fired: List[AlarmRequest] = []
        while True:
            due = self._pop_due()
            if due is None:
                return fired
            self._fire(due)
            fired.append(due)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(self.check_interval)

    def _pop_due(self) -> Optional[AlarmRequest]:
        now = self.clock()
        with self._lock:
            if not self._requests:
                return None
            next_request = self._requests[0]
            if next_request.trigger_time_millis <= now:
                self._requests = self._requests[1:]
                save_requests(self.storage_path, self._requests)
                return next_request
        return None

    def _fire(self, request: AlarmRequest) -> None:
        logger.info("Alarm %s triggered (task=%s)", request.notification_id, request.task_title)
        try:
            self.on_fire(request)
        except Exception:
            logger.error("Alarm start signal failed", exc_info=True)
