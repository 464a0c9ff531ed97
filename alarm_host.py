import logging
import signal
import uuid

from config import Config, load_config, setup_logging
from alarm_delivery.adapters import (
    ConsoleDisplay,
    ConsoleOverlay,
    LoggingNotifier,
    PatternVibrator,
    TimedWakeLockProvider,
)
from alarm_delivery.bridge import MethodBridge
from alarm_delivery.clock import AlarmClock
from alarm_delivery.models import AlarmRequest
from alarm_delivery.outcomes import OutcomeStore
from alarm_delivery.ports import ACTION_COMPLETE, ACTION_DISMISS
from alarm_delivery.sequencer import AlarmSequencer
from alarm_delivery.service import AlarmService
from alarm_delivery.sounds import AlarmSoundPlayer
from alarm_delivery.surface import AlarmSurface, SurfaceRegistry
from time_utils import format_clock, millis_to_datetime, now_millis

logger = logging.getLogger("alarm_host")

HELP = (
    "Commands: at <seconds> <title> | cancel <id> | list | dismiss | complete | back | "
    "lock | unlock | pending | quit"
)


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class AlarmHostRuntime:
    def __init__(self, config: Config):
        self.config = config
        self.display = ConsoleDisplay(interactive=False, locked=True)
        self.wake_locks = TimedWakeLockProvider(self.display)
        self.surfaces = SurfaceRegistry()
        self.outcomes = OutcomeStore(config.outcomes_path)
        self.notifier = LoggingNotifier(
            display=self.display,
            launcher=self._launch_surface,
            launch_full_screen=config.full_screen_permission,
        )
        self.overlay = ConsoleOverlay(permission=config.overlay_permission)
        self.sequencer = AlarmSequencer(
            notifier=self.notifier,
            sound=AlarmSoundPlayer(config.alarm_sound_path, sample_rate=config.output_target_rate),
            vibrator=PatternVibrator(),
            wake_locks=self.wake_locks,
            display=self.display,
            overlay=self.overlay,
            surfaces=self.surfaces,
            outcomes=self.outcomes,
            grace_period=config.grace_period,
            partial_wake_lock_timeout=config.partial_wake_lock_timeout_ms / 1000.0,
            full_wake_lock_timeout=config.full_wake_lock_timeout_ms / 1000.0,
            vibration_pattern_ms=config.vibration_pattern_ms,
            overlay_when_unlocked=config.overlay_when_unlocked,
        )
        self.surface = AlarmSurface(
            self.sequencer,
            wake_locks=self.wake_locks,
            display=self.display,
            wake_lock_timeout=config.surface_wake_lock_timeout_ms / 1000.0,
        )
        self.clock = AlarmClock(
            config.alarms_path,
            on_fire=self.sequencer.start,
            check_interval=config.alarm_check_interval_ms / 1000.0,
        )
        self.service = AlarmService(self.sequencer, self.clock, self.outcomes)
        self.bridge = MethodBridge(self.service)
        self.service.add_completion_listener(self._on_task_completed)
        self._next_notification_id = 1

    def start(self) -> None:
        for outcome in self.outcomes.take_all():
            logger.info("Outcome recorded while away: %s %s", outcome.kind.value, outcome.task_id)
        self.clock.start()

    def shutdown(self) -> None:
        self.clock.shutdown()
        self.sequencer.stop()

    def handle_command(self, line: str) -> bool:
        parts = line.strip().split(maxsplit=2)
        if not parts:
            return True
        cmd = parts[0].lower()
        if cmd in ("quit", "exit"):
            return False
        if cmd == "at":
            self._schedule_in(parts[1:])
        elif cmd == "cancel" and len(parts) > 1:
            result = self.bridge.handle("cancelFullScreenAlarm", {"notificationId": parts[1]})
            if result.error:
                print(result.error)
        elif cmd == "list":
            for request in self.clock.pending():
                when = format_clock(millis_to_datetime(request.trigger_time_millis))
                print(f"{request.notification_id}: {request.task_title} @ {when}")
        elif cmd in (ACTION_DISMISS, ACTION_COMPLETE):
            self._press(cmd)
        elif cmd == "back":
            if self.surface.visible and not self.surface.press_back():
                print("Back is blocked while the alarm rings.")
        elif cmd == "lock":
            self.display.locked = True
            self.display.interactive = False
        elif cmd == "unlock":
            self.display.locked = False
            self.display.interactive = True
        elif cmd == "pending":
            print("completions:", self.bridge.handle("getPendingCompletions").value)
            print("dismissals:", self.bridge.handle("getPendingDismissals").value)
        else:
            print(HELP)
        return True

    def _schedule_in(self, args) -> None:
        if not args:
            print(HELP)
            return
        try:
            seconds = float(args[0])
        except ValueError:
            print("Seconds must be a number.")
            return
        title = args[1] if len(args) > 1 else "Task Reminder"
        notification_id = self._next_notification_id
        self._next_notification_id += 1
        result = self.bridge.handle(
            "scheduleFullScreenAlarm",
            {
                "taskId": f"task_{uuid.uuid4().hex[:8]}",
                "taskTitle": title,
                "notificationId": notification_id,
                "triggerTimeMillis": now_millis() + int(seconds * 1000),
            },
        )
        print(f"Alarm {notification_id} scheduled." if result.ok else result.error)

    def _press(self, action: str) -> None:
        if self.surface.visible:
            if action == ACTION_COMPLETE:
                self.surface.press_complete()
            else:
                self.surface.press_dismiss()
        elif self.overlay.visible:
            self.overlay.press(action)
        elif action == ACTION_COMPLETE:
            self.sequencer.complete()
        else:
            self.sequencer.dismiss()

    def _launch_surface(self, request: AlarmRequest) -> None:
        self.surface.show(request)

    def _on_task_completed(self, task_id: str, task_title: str) -> None:
        logger.info("Task completed from alarm: %s (%s)", task_id, task_title)


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting alarm host (grace period %sms)", config.grace_period_ms)

    runtime = AlarmHostRuntime(config)
    runtime.start()
    print(HELP)
    try:
        while runtime.handle_command(input("> ")):
            pass
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
