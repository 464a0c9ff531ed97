from __future__ import annotations

import itertools
import logging
from threading import RLock, Timer
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from .models import AlarmRequest, AlertSession, SessionState
from .outcomes import OutcomeStore
from .ports import (
    ACTION_COMPLETE,
    ACTION_DISMISS,
    DisplayController,
    Notifier,
    OverlayWindow,
    SoundLoop,
    Vibrator,
    WakeLock,
    WakeLockProvider,
)
from .surface import SurfaceRegistry

if TYPE_CHECKING:  # pragma: no cover
    from .surface import AlarmSurface

logger = logging.getLogger(__name__)

PARTIAL_WAKE_LOCK_TAG = "AlarmPartial"
FULL_WAKE_LOCK_TAG = "AlarmWake"
DEFAULT_VIBRATION_PATTERN_MS = (0, 1000, 500, 1000, 500, 1000)

CompletionListener = Callable[[str, str], None]


class AlarmSequencer:
    """Drives one ringing alarm from notification to teardown.

    Start order matters: the notification asking for full-screen delivery is
    posted before anything wakes the display, otherwise the platform treats
    the device as in use and downgrades to a heads-up alert. After
    ``grace_period`` seconds the deadline checks whether the full-screen
    surface appeared and, if not, wakes the display and shows the overlay.

    Every platform call is attempted independently; a failure is logged and
    the sequence carries on so the alarm still rings.
    """

    def __init__(
        self,
        notifier: Notifier,
        sound: SoundLoop,
        vibrator: Vibrator,
        wake_locks: WakeLockProvider,
        display: DisplayController,
        overlay: OverlayWindow,
        surfaces: SurfaceRegistry,
        outcomes: OutcomeStore,
        grace_period: float = 3.0,
        partial_wake_lock_timeout: float = 60.0,
        full_wake_lock_timeout: float = 300.0,
        vibration_pattern_ms: Sequence[int] = DEFAULT_VIBRATION_PATTERN_MS,
        overlay_when_unlocked: bool = False,
        timer_factory: Callable[..., Any] = Timer,
    ):
        if grace_period <= 0:
            raise ValueError("grace_period must be positive")
        if partial_wake_lock_timeout <= 0 or full_wake_lock_timeout <= 0:
            raise ValueError("wake lock timeouts must be positive")
        self.notifier = notifier
        self.sound = sound
        self.vibrator = vibrator
        self.wake_locks = wake_locks
        self.display = display
        self.overlay = overlay
        self.surfaces = surfaces
        self.outcomes = outcomes
        self.grace_period = grace_period
        self.partial_wake_lock_timeout = partial_wake_lock_timeout
        self.full_wake_lock_timeout = full_wake_lock_timeout
        self.vibration_pattern_ms = list(vibration_pattern_ms)
        self.overlay_when_unlocked = overlay_when_unlocked
        self._timer_factory = timer_factory

        self._lock = RLock()
        self._session: Optional[AlertSession] = None
        self._state = SessionState.IDLE
        self._tokens = itertools.count(1)
        self._listeners: List[CompletionListener] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def active_request(self) -> Optional[AlarmRequest]:
        with self._lock:
            return self._session.request if self._session else None

    @property
    def overlay_shown(self) -> bool:
        with self._lock:
            return bool(self._session and self._session.overlay_shown)

    @property
    def is_ringing(self) -> bool:
        with self._lock:
            return self._session is not None

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self._listeners.append(listener)

    def start(self, request: AlarmRequest) -> None:
        with self._lock:
            if self._session is not None:
                logger.info(
                    "Alarm %s replaces active alarm %s",
                    request.notification_id,
                    self._session.request.notification_id,
                )
                self._teardown()

            session = AlertSession(request=request, token=next(self._tokens))
            self._session = session
            self._set_state(SessionState.NOTIFYING)
            logger.info(
                "Starting alarm %s (task=%s, title=%s)",
                request.notification_id,
                request.task_id,
                request.task_title,
            )

            self._attempt("post notification", self.notifier.post_alarm, request, (ACTION_DISMISS, ACTION_COMPLETE), True)
            # CPU only: waking the display now would suppress the full-screen presentation.
            lock = self._attempt(
                "acquire partial wake lock",
                self.wake_locks.acquire_partial,
                PARTIAL_WAKE_LOCK_TAG,
                self.partial_wake_lock_timeout,
            )
            session.partial_wake_lock = lock
            self._attempt("start sound", self.sound.start_loop)
            self._attempt("start vibration", self.vibrator.vibrate, self.vibration_pattern_ms, True)

            self._set_state(SessionState.WAITING_FOR_SURFACE)
            self._attempt("arm deadline timer", self._arm_deadline, session)

    def stop(self) -> bool:
        with self._lock:
            logger.info("Stopping alarm")
            return self._teardown()

    def dismiss(self, notification_id: Optional[int] = None) -> bool:
        """Silence the alarm; the task stays pending.

        With ``notification_id`` the dismiss only applies to that alarm.
        """
        with self._lock:
            if not self._is_active(notification_id):
                logger.info("Dismiss for alarm %s ignored, it is not ringing", notification_id)
                return False
            if self._session is not None:
                logger.info("Dismissing alarm for task %s", self._session.request.task_id)
            return self._teardown()

    def complete(self, notification_id: Optional[int] = None) -> bool:
        """Silence the alarm and hand the completion to the host."""
        with self._lock:
            session = self._session
            if session is None:
                logger.info("Mark as complete ignored, no alarm is ringing")
                return False
            if not self._is_active(notification_id):
                logger.info("Mark as complete for alarm %s ignored, it is not ringing", notification_id)
                return False
            request = session.request
            if request.task_id:
                # Durable record first: the live listeners are only an optimisation.
                self._attempt("persist pending completion", self.outcomes.record_completion, request.task_id)
            else:
                logger.warning("Alarm %s has no task id, completion not recorded", request.notification_id)
            self._teardown()

        if request.task_id:
            self._notify_completed(request)
        return True

    def surface_shown(self, surface: "AlarmSurface", request: AlarmRequest) -> bool:
        """Register a full-screen surface for ``request``.

        Refused unless ``request`` is the alarm ringing right now, so a launch
        that arrives after its alarm stopped never stands in for a later one.
        """
        with self._lock:
            if self._session is None or not self._is_active(request.notification_id):
                logger.info("Surface for alarm %s refused, it is not ringing", request.notification_id)
                return False
            self.surfaces.register_shown(surface, request.notification_id)
            return True

    def surface_hidden(self, surface: "AlarmSurface") -> None:
        with self._lock:
            self.surfaces.register_hidden(surface)

    def _arm_deadline(self, session: AlertSession) -> None:
        timer = self._timer_factory(self.grace_period, self._on_deadline, args=(session.token,))
        timer.daemon = True
        session.timer = timer
        timer.start()

    def _on_deadline(self, token: int) -> None:
        with self._lock:
            session = self._session
            if session is None or session.token != token:
                logger.debug("Deadline for finished alarm session %s ignored", token)
                return
            if session.deadline_handled:
                logger.debug("Deadline already handled for session %s", token)
                return
            session.deadline_handled = True

            if self._surface_showing(session):
                logger.info("Full-screen surface is visible, no fallback needed")
                self._set_state(SessionState.SURFACE_CONFIRMED)
                self._release_partial(session)
                return

            # The heads-up alert counts as this alarm's surface.
            if not self.overlay_when_unlocked and self._heads_up_sufficient():
                logger.info("Display on and unlocked, heads-up notification is sufficient; skipping overlay")
                self._set_state(SessionState.SURFACE_CONFIRMED)
                self._release_partial(session)
                return

            logger.warning(
                "Full-screen surface not visible after %.2fs, using fallback",
                self.grace_period,
            )
            self._set_state(SessionState.FALLBACK_ACTIVE)
            lock = self._attempt(
                "acquire full wake lock",
                self.wake_locks.acquire_full,
                FULL_WAKE_LOCK_TAG,
                self.full_wake_lock_timeout,
            )
            if lock is not None:
                session.wake_locks.append(lock)
            self._attempt("dismiss keyguard", self._try_dismiss_keyguard)
            self._show_overlay(session)
            self._release_partial(session)

    def _surface_showing(self, session: AlertSession) -> bool:
        return self.surfaces.notification_id == session.request.notification_id

    def _heads_up_sufficient(self) -> bool:
        interactive = self._attempt("read display state", self.display.is_interactive)
        locked = self._attempt("read keyguard state", self.display.is_locked)
        return interactive is True and locked is False

    def _try_dismiss_keyguard(self) -> None:
        if not self.display.is_locked():
            logger.debug("Keyguard not locked, overlay will be visible")
            return
        if self.display.dismiss_keyguard():
            logger.info("Keyguard dismissed")
        else:
            logger.info("Keyguard is secure and stays up; the full-screen path covers it")

    def _show_overlay(self, session: AlertSession) -> None:
        if self._surface_showing(session):
            logger.info("Full-screen surface already showing, skipping overlay")
            return
        if session.overlay_shown:
            logger.debug("Overlay already showing")
            return
        if not self._attempt("check overlay permission", self.overlay.can_draw):
            logger.error("No overlay permission, cannot show overlay")
            return
        token = session.token
        shown = self._attempt(
            "show overlay",
            self._display_overlay,
            session.request.task_title,
            lambda: self._overlay_action(token, completed=False),
            lambda: self._overlay_action(token, completed=True),
        )
        if shown:
            session.overlay_shown = True
            logger.info("Overlay shown for %s", session.request.task_title)

    def _display_overlay(self, title: str, on_dismiss, on_complete) -> bool:
        self.overlay.show(title, on_dismiss, on_complete)
        return True

    def _overlay_action(self, token: int, completed: bool) -> None:
        with self._lock:
            if self._session is None or self._session.token != token:
                logger.debug("Overlay action for finished session %s ignored", token)
                return
            logger.info("%s pressed (overlay)", "Complete" if completed else "Dismiss")
        if completed:
            self.complete()
        else:
            self.dismiss()

    def _teardown(self) -> bool:
        """Release everything an alarm may hold. Safe to call at any time."""
        session, self._session = self._session, None
        if session is not None and session.timer is not None:
            self._attempt("cancel deadline timer", session.timer.cancel)

        self._attempt("stop sound", self.sound.stop_loop)
        self._attempt("stop vibration", self.vibrator.cancel)
        if session is not None:
            self._release_partial(session)
            for lock in session.wake_locks:
                self._attempt("release wake lock", self._release_lock, lock)
            session.wake_locks.clear()
        self._attempt("remove overlay", self.overlay.remove)
        if session is not None:
            self._attempt("cancel notification", self.notifier.cancel, session.request.notification_id)
        self._attempt("close full-screen surface", self.surfaces.close_active)

        if session is None:
            return False
        session.overlay_shown = False
        self._set_state(SessionState.STOPPED)
        logger.info("Alarm %s stopped", session.request.notification_id)
        return True

    def _release_partial(self, session: AlertSession) -> None:
        lock, session.partial_wake_lock = session.partial_wake_lock, None
        if lock is not None:
            self._attempt("release partial wake lock", self._release_lock, lock)

    @staticmethod
    def _release_lock(lock: WakeLock) -> None:
        if lock.held:
            lock.release()

    def _is_active(self, notification_id: Optional[int]) -> bool:
        if notification_id is None:
            return True
        return self._session is not None and self._session.request.notification_id == notification_id

    def _set_state(self, state: SessionState) -> None:
        if self._state != state:
            logger.debug("Alarm state -> %s", state.value)
        self._state = state

    def _notify_completed(self, request: AlarmRequest) -> None:
        for listener in list(self._listeners):
            try:
                listener(request.task_id, request.task_title)
            except Exception:
                logger.error("Completion listener failed", exc_info=True)

    @staticmethod
    def _attempt(label: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception:
            logger.error("Alarm step '%s' failed", label, exc_info=True)
            return None
