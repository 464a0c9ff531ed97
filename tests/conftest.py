from pathlib import Path
from typing import List

import pytest

from alarm_delivery.models import AlarmRequest
from alarm_delivery.outcomes import OutcomeStore
from alarm_delivery.ports import (
    DisplayController,
    Notifier,
    OverlayWindow,
    SoundLoop,
    Vibrator,
    WakeLock,
    WakeLockProvider,
)
from alarm_delivery.sequencer import AlarmSequencer
from alarm_delivery.surface import AlarmSurface, SurfaceRegistry


class ManualTimer:
    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Fires even when cancelled, like a callback already in flight.
        self.function(*self.args)


class TimerFactory:
    def __init__(self):
        self.timers: List[ManualTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> ManualTimer:
        return self.timers[-1]


class FakeNotifier(Notifier):
    def __init__(self, events):
        self.events = events
        self.posted = {}
        self.fail = False

    def post_alarm(self, request, actions, full_screen=True):
        if self.fail:
            raise RuntimeError("notification manager unavailable")
        self.events.append("notify")
        self.posted[request.notification_id] = (request, tuple(actions), full_screen)

    def cancel(self, notification_id):
        self.events.append("cancel_notification")
        self.posted.pop(notification_id, None)


class FakeSound(SoundLoop):
    def __init__(self, events):
        self.events = events
        self.playing = False

    def start_loop(self):
        self.events.append("sound")
        self.playing = True

    def stop_loop(self):
        self.playing = False


class FakeVibrator(Vibrator):
    def __init__(self, events):
        self.events = events
        self.active = False
        self.pattern = None

    def vibrate(self, pattern_ms, repeat=True):
        self.events.append("vibrate")
        self.active = True
        self.pattern = list(pattern_ms)

    def cancel(self):
        self.active = False


class FakeWakeLock(WakeLock):
    def __init__(self, tag, timeout, full):
        self.tag = tag
        self.timeout = timeout
        self.full = full
        self._held = True

    @property
    def held(self):
        return self._held

    def release(self):
        self._held = False


class FakeWakeLocks(WakeLockProvider):
    def __init__(self, events):
        self.events = events
        self.acquired: List[FakeWakeLock] = []
        self.fail = False

    def acquire_partial(self, tag, timeout):
        return self._acquire(tag, timeout, full=False)

    def acquire_full(self, tag, timeout):
        return self._acquire(tag, timeout, full=True)

    def _acquire(self, tag, timeout, full):
        if self.fail:
            raise RuntimeError("power manager unavailable")
        self.events.append("full_wake" if full else "partial_wake")
        lock = FakeWakeLock(tag, timeout, full)
        self.acquired.append(lock)
        return lock

    def held(self):
        return [lock for lock in self.acquired if lock.held]


class FakeDisplay(DisplayController):
    def __init__(self, interactive=False, locked=True, secure=False):
        self.interactive = interactive
        self.locked = locked
        self.secure = secure
        self.dismiss_requests = 0

    def is_interactive(self):
        return self.interactive

    def is_locked(self):
        return self.locked

    def dismiss_keyguard(self):
        self.dismiss_requests += 1
        if self.secure:
            return False
        self.locked = False
        return True


class FakeOverlay(OverlayWindow):
    def __init__(self, permission=True):
        self.permission = permission
        self.show_calls = 0
        self.title = None
        self.on_dismiss = None
        self.on_complete = None
        self.fail = False

    @property
    def visible(self):
        return self.title is not None

    def can_draw(self):
        return self.permission

    def show(self, title, on_dismiss, on_complete):
        if self.fail:
            raise RuntimeError("window manager refused overlay")
        self.show_calls += 1
        self.title = title
        self.on_dismiss = on_dismiss
        self.on_complete = on_complete

    def remove(self):
        self.title = None


class Rig:
    def __init__(self, tmp_path: Path, **sequencer_kwargs):
        self.events: List[str] = []
        self.notifier = FakeNotifier(self.events)
        self.sound = FakeSound(self.events)
        self.vibrator = FakeVibrator(self.events)
        self.wake_locks = FakeWakeLocks(self.events)
        self.display = FakeDisplay()
        self.overlay = FakeOverlay()
        self.surfaces = SurfaceRegistry()
        self.outcomes = OutcomeStore(tmp_path / "outcomes.json")
        self.timers = TimerFactory()
        self.completed = []
        self.sequencer = AlarmSequencer(
            notifier=self.notifier,
            sound=self.sound,
            vibrator=self.vibrator,
            wake_locks=self.wake_locks,
            display=self.display,
            overlay=self.overlay,
            surfaces=self.surfaces,
            outcomes=self.outcomes,
            grace_period=0.25,
            timer_factory=self.timers,
            **sequencer_kwargs,
        )
        self.sequencer.add_completion_listener(lambda task_id, title: self.completed.append((task_id, title)))
        self.surface = AlarmSurface(self.sequencer, wake_locks=self.wake_locks, display=self.display)


@pytest.fixture
def rig(tmp_path):
    return Rig(tmp_path)


@pytest.fixture
def make_rig(tmp_path):
    def _make(**kwargs):
        return Rig(tmp_path, **kwargs)

    return _make


@pytest.fixture
def pay_bills():
    return AlarmRequest(task_id="t1", task_title="Pay bills", notification_id=42, trigger_time_millis=1_000)
