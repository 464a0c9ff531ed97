"""Platform seams the sequencer drives.

Each port wraps one OS facility. The sequencer treats every call as fallible,
so implementations may raise freely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

from .models import AlarmRequest

ACTION_DISMISS = "dismiss"
ACTION_COMPLETE = "complete"


class Notifier(ABC):
    """Posts the ongoing high-priority alarm notification."""

    @abstractmethod
    def post_alarm(self, request: AlarmRequest, actions: Sequence[str], full_screen: bool = True) -> None:
        """Publish the notification; ``full_screen`` asks the platform for a full-screen presentation."""

    @abstractmethod
    def cancel(self, notification_id: int) -> None:
        """Remove the notification if it is still showing."""

    def can_use_full_screen(self) -> bool:
        return True


class SoundLoop(ABC):
    @abstractmethod
    def start_loop(self) -> None:
        pass

    @abstractmethod
    def stop_loop(self) -> None:
        pass


class Vibrator(ABC):
    @abstractmethod
    def vibrate(self, pattern_ms: Sequence[int], repeat: bool = True) -> None:
        pass

    @abstractmethod
    def cancel(self) -> None:
        pass


class WakeLock(ABC):
    @property
    @abstractmethod
    def held(self) -> bool:
        pass

    @abstractmethod
    def release(self) -> None:
        pass


class WakeLockProvider(ABC):
    @abstractmethod
    def acquire_partial(self, tag: str, timeout: float) -> WakeLock:
        """Keep the CPU running without touching the display."""

    @abstractmethod
    def acquire_full(self, tag: str, timeout: float) -> WakeLock:
        """Turn the display on and keep it on."""


class DisplayController(ABC):
    @abstractmethod
    def is_interactive(self) -> bool:
        pass

    @abstractmethod
    def is_locked(self) -> bool:
        pass

    @abstractmethod
    def dismiss_keyguard(self) -> bool:
        """Request lock-screen dismissal; only non-secure locks can be bypassed."""


class OverlayWindow(ABC):
    """Always-on-top window shown outside normal navigation."""

    @abstractmethod
    def can_draw(self) -> bool:
        pass

    @abstractmethod
    def show(self, title: str, on_dismiss: Callable[[], None], on_complete: Callable[[], None]) -> None:
        pass

    @abstractmethod
    def remove(self) -> None:
        pass
