from __future__ import annotations

import logging
from typing import List, Optional

from .clock import AlarmClock
from .models import AlarmRequest, OutcomeKind
from .outcomes import OutcomeStore
from .sequencer import AlarmSequencer, CompletionListener

logger = logging.getLogger(__name__)


class AlarmService:
    """Operations the host application calls."""

    def __init__(self, sequencer: AlarmSequencer, clock: AlarmClock, outcomes: OutcomeStore):
        self.sequencer = sequencer
        self.clock = clock
        self.outcomes = outcomes

    def schedule_alarm(self, request: AlarmRequest) -> AlarmRequest:
        if request.trigger_time_millis <= 0:
            raise ValueError("trigger_time_millis is required to schedule an alarm")
        return self.clock.schedule(request)

    def schedule_full_screen_alarm(self, request: AlarmRequest) -> AlarmRequest:
        return self.schedule_alarm(request)

    def cancel_alarm(self, notification_id: int) -> Optional[AlarmRequest]:
        removed = self.clock.cancel(notification_id)
        active = self.sequencer.active_request
        if active is not None and active.notification_id == notification_id:
            logger.info("Cancelled alarm %s is ringing, stopping it", notification_id)
            self.sequencer.stop()
        return removed

    def cancel_full_screen_alarm(self, notification_id: int) -> Optional[AlarmRequest]:
        return self.cancel_alarm(notification_id)

    def stop_active_alarm(self) -> bool:
        return self.sequencer.stop()

    def get_pending_completions(self) -> List[str]:
        return self.outcomes.take(OutcomeKind.COMPLETED)

    def get_pending_dismissals(self) -> List[str]:
        return self.outcomes.take(OutcomeKind.DISMISSED)

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self.sequencer.add_completion_listener(listener)

    def check_overlay_permission(self) -> bool:
        try:
            return bool(self.sequencer.overlay.can_draw())
        except Exception:
            logger.error("Overlay permission check failed", exc_info=True)
            return False

    def check_full_screen_permission(self) -> bool:
        try:
            return bool(self.sequencer.notifier.can_use_full_screen())
        except Exception:
            logger.error("Full-screen permission check failed", exc_info=True)
            return False
