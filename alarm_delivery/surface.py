from __future__ import annotations

import logging
from threading import Lock
from typing import TYPE_CHECKING, Optional

from time_utils import format_clock

from .models import AlarmRequest
from .ports import DisplayController, WakeLock, WakeLockProvider

if TYPE_CHECKING:  # pragma: no cover
    from .sequencer import AlarmSequencer

logger = logging.getLogger(__name__)

SURFACE_WAKE_LOCK_TAG = "AlarmSurfaceWake"


class SurfaceRegistry:
    """Tracks whether the full-screen alarm surface is on screen.

    Registration goes through the sequencer, which only accepts a surface for
    the alarm that is ringing. The deadline reads the registered notification
    id, and teardown asks the registered surface to close.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._surface: Optional["AlarmSurface"] = None
        self._notification_id: Optional[int] = None

    @property
    def is_visible(self) -> bool:
        with self._lock:
            return self._surface is not None

    @property
    def notification_id(self) -> Optional[int]:
        with self._lock:
            return self._notification_id

    def register_shown(self, surface: "AlarmSurface", notification_id: int) -> None:
        with self._lock:
            self._surface = surface
            self._notification_id = notification_id
        logger.debug("Surface registered for notification %s", notification_id)

    def register_hidden(self, surface: "AlarmSurface") -> None:
        with self._lock:
            if self._surface is not surface:
                return
            self._surface = None
            self._notification_id = None
        logger.debug("Surface unregistered")

    def close_active(self) -> bool:
        with self._lock:
            surface = self._surface
        if surface is None:
            return False
        surface.close()
        return True


class AlarmSurface:
    """Full-screen alarm presentation shown above the lock screen."""

    def __init__(
        self,
        sequencer: "AlarmSequencer",
        wake_locks: Optional[WakeLockProvider] = None,
        display: Optional[DisplayController] = None,
        wake_lock_timeout: float = 60.0,
    ):
        self.sequencer = sequencer
        self.wake_locks = wake_locks
        self.display = display
        self.wake_lock_timeout = wake_lock_timeout
        self.request: Optional[AlarmRequest] = None
        self.clock_text = ""
        self._wake_lock: Optional[WakeLock] = None

    @property
    def visible(self) -> bool:
        return self.request is not None

    @property
    def title(self) -> str:
        return self.request.task_title if self.request else ""

    def show(self, request: AlarmRequest) -> bool:
        """Returns False when ``request`` is no longer ringing; nothing is shown then."""
        if self.visible:
            return self.update(request)
        # Set before registering so a teardown racing this launch can close it.
        self.request = request
        if not self.sequencer.surface_shown(self, request):
            self.request = None
            return False
        self.clock_text = format_clock()
        logger.info("Alarm surface showing %s  %s", self.clock_text, request.task_title)
        self._acquire_wake_lock()
        if not self.visible:
            self._release_wake_lock()
            return False
        self._request_keyguard_dismiss()
        return True

    def update(self, request: AlarmRequest) -> bool:
        """Re-launch while already visible: retarget to the newer alarm."""
        if not self.sequencer.surface_shown(self, request):
            self.close()
            return False
        self.request = request
        self.clock_text = format_clock()
        logger.info("Alarm surface updated for %s", request.task_title)
        return True

    def press_dismiss(self) -> None:
        if self.request is None:
            return
        logger.info("Dismiss pressed (surface)")
        self.sequencer.dismiss(self.request.notification_id)
        self.close()

    def press_complete(self) -> None:
        if self.request is None:
            return
        logger.info("Mark as complete pressed (surface) for task %s", self.request.task_id)
        self.sequencer.complete(self.request.notification_id)
        self.close()

    def press_back(self) -> bool:
        # Back must not silence the alarm; only dismiss or complete may.
        logger.debug("Back navigation blocked on alarm surface")
        return False

    def close(self) -> None:
        if not self.visible:
            return
        self.request = None
        self._release_wake_lock()
        self.sequencer.surface_hidden(self)
        logger.info("Alarm surface closed")

    def _acquire_wake_lock(self) -> None:
        if not self.wake_locks:
            return
        try:
            self._wake_lock = self.wake_locks.acquire_full(SURFACE_WAKE_LOCK_TAG, self.wake_lock_timeout)
        except Exception:
            logger.error("Surface wake lock failed", exc_info=True)

    def _release_wake_lock(self) -> None:
        lock, self._wake_lock = self._wake_lock, None
        if lock is None:
            return
        try:
            if lock.held:
                lock.release()
        except Exception:
            logger.error("Surface wake lock release failed", exc_info=True)

    def _request_keyguard_dismiss(self) -> None:
        if not self.display:
            return
        try:
            if self.display.dismiss_keyguard():
                logger.debug("Keyguard dismissed for surface")
            else:
                logger.info("Keyguard not dismissed; surface stays above the lock screen")
        except Exception:
            logger.error("Keyguard dismiss request failed", exc_info=True)
