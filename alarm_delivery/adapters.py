"""Desktop stand-ins for the platform ports.

They log what a phone would do and follow the same timing rules
(bounded wake locks, looping vibration).
"""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread, Timer
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .models import AlarmRequest
from .ports import (
    ACTION_COMPLETE,
    ACTION_DISMISS,
    DisplayController,
    Notifier,
    OverlayWindow,
    Vibrator,
    WakeLock,
    WakeLockProvider,
)

logger = logging.getLogger(__name__)


class ConsoleDisplay(DisplayController):
    def __init__(self, interactive: bool = False, locked: bool = True, secure: bool = False):
        self._lock = Lock()
        self.interactive = interactive
        self.locked = locked
        self.secure = secure

    def is_interactive(self) -> bool:
        with self._lock:
            return self.interactive

    def is_locked(self) -> bool:
        with self._lock:
            return self.locked

    def dismiss_keyguard(self) -> bool:
        with self._lock:
            if not self.locked:
                return True
            if self.secure:
                logger.info("Keyguard is secure, cannot dismiss")
                return False
            self.locked = False
        logger.info("Keyguard dismissed")
        return True

    def turn_screen_on(self) -> None:
        with self._lock:
            was_on, self.interactive = self.interactive, True
        if not was_on:
            logger.info("Screen turned on")


class TimedWakeLock(WakeLock):
    """Wake lock that lets go by itself once its timeout expires."""

    def __init__(self, tag: str, timeout: float, full: bool):
        if timeout is None or timeout <= 0:
            raise ValueError("Wake locks require a positive timeout")
        self.tag = tag
        self.timeout = timeout
        self.full = full
        self._held = True
        self._lock = Lock()
        self._timer = Timer(timeout, self._expire)
        self._timer.daemon = True
        self._timer.start()

    @property
    def held(self) -> bool:
        with self._lock:
            return self._held

    def release(self) -> None:
        self._timer.cancel()
        with self._lock:
            if not self._held:
                return
            self._held = False
        logger.debug("Wake lock %s released", self.tag)

    def _expire(self) -> None:
        with self._lock:
            if not self._held:
                return
            self._held = False
        logger.warning("Wake lock %s expired after %.0fs", self.tag, self.timeout)


class TimedWakeLockProvider(WakeLockProvider):
    def __init__(self, display: Optional[ConsoleDisplay] = None):
        self.display = display
        self.acquired: List[TimedWakeLock] = []

    def acquire_partial(self, tag: str, timeout: float) -> TimedWakeLock:
        lock = TimedWakeLock(tag, timeout, full=False)
        self.acquired.append(lock)
        logger.info("Partial wake lock %s acquired (CPU only, %.0fs max)", tag, timeout)
        return lock

    def acquire_full(self, tag: str, timeout: float) -> TimedWakeLock:
        lock = TimedWakeLock(tag, timeout, full=True)
        self.acquired.append(lock)
        if self.display:
            self.display.turn_screen_on()
        logger.info("Full wake lock %s acquired (screen on, %.0fs max)", tag, timeout)
        return lock

    def held(self) -> List[TimedWakeLock]:
        return [lock for lock in self.acquired if lock.held]


class LoggingNotifier(Notifier):
    """Keeps posted alarm notifications in memory.

    When ``launch_full_screen`` is set and the display is off or locked, the
    full-screen request is honoured by calling ``launcher`` on a separate
    thread, the way the platform starts the alarm surface on its own.
    """

    def __init__(
        self,
        display: Optional[DisplayController] = None,
        launcher: Optional[Callable[[AlarmRequest], None]] = None,
        launch_full_screen: bool = True,
    ):
        self.display = display
        self.launcher = launcher
        self.launch_full_screen = launch_full_screen
        self.posted: Dict[int, Tuple[AlarmRequest, Tuple[str, ...]]] = {}

    def can_use_full_screen(self) -> bool:
        return self.launch_full_screen

    def post_alarm(self, request: AlarmRequest, actions: Sequence[str], full_screen: bool = True) -> None:
        self.posted[request.notification_id] = (request, tuple(actions))
        logger.info(
            "Notification %s posted: '%s' actions=%s full_screen=%s",
            request.notification_id,
            request.task_title,
            ",".join(actions),
            full_screen,
        )
        if full_screen and self.launcher and self._should_launch():
            Thread(target=self._launch, args=(request,), name="alarm-surface-launch", daemon=True).start()

    def cancel(self, notification_id: int) -> None:
        if self.posted.pop(notification_id, None) is not None:
            logger.info("Notification %s cancelled", notification_id)

    def _should_launch(self) -> bool:
        if not self.launch_full_screen:
            logger.info("Full-screen permission missing, posting heads-up only")
            return False
        if self.display is None:
            return True
        return not self.display.is_interactive() or self.display.is_locked()

    def _launch(self, request: AlarmRequest) -> None:
        try:
            self.launcher(request)
        except Exception:
            logger.error("Full-screen launch failed", exc_info=True)


class PatternVibrator(Vibrator):
    def __init__(self) -> None:
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self.pattern_ms: List[int] = []

    @property
    def active(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def vibrate(self, pattern_ms: Sequence[int], repeat: bool = True) -> None:
        if not pattern_ms or sum(pattern_ms) <= 0:
            raise ValueError("Vibration pattern must have a positive total duration")
        self.cancel()
        self.pattern_ms = list(pattern_ms)
        self._stop_event = Event()
        self._thread = Thread(
            target=self._loop,
            args=(self.pattern_ms, repeat, self._stop_event),
            name="alarm-vibration",
            daemon=True,
        )
        self._thread.start()
        logger.info("Vibration started (%s)", self.pattern_ms)

    def cancel(self) -> None:
        self._stop_event.set()
        self._thread = None

    def _loop(self, pattern: List[int], repeat: bool, stop_event: Event) -> None:  # pragma: no cover - timing loop
        while not stop_event.is_set():
            # Even slots are pauses, odd slots are pulses.
            for idx, duration_ms in enumerate(pattern):
                if idx % 2 == 1:
                    logger.debug("Bzz %sms", duration_ms)
                if stop_event.wait(duration_ms / 1000.0):
                    return
            if not repeat:
                return


class ConsoleOverlay(OverlayWindow):
    def __init__(self, permission: bool = True):
        self.permission = permission
        self.title: Optional[str] = None
        self._callbacks: Dict[str, Callable[[], None]] = {}

    @property
    def visible(self) -> bool:
        return self.title is not None

    def can_draw(self) -> bool:
        return self.permission

    def show(self, title: str, on_dismiss: Callable[[], None], on_complete: Callable[[], None]) -> None:
        self.title = title
        self._callbacks = {ACTION_DISMISS: on_dismiss, ACTION_COMPLETE: on_complete}
        logger.warning("=== ALARM === %s  [dismiss] [complete]", title)

    def press(self, action: str) -> bool:
        callback = self._callbacks.get(action)
        if not callback:
            return False
        callback()
        return True

    def remove(self) -> None:
        if self.title is None:
            return
        self.title = None
        self._callbacks = {}
        logger.info("Overlay removed")
