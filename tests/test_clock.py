from alarm_delivery.clock import AlarmClock
from alarm_delivery.models import AlarmRequest


class FakeNow:
    def __init__(self, millis: int):
        self.millis = millis

    def __call__(self) -> int:
        return self.millis


def _request(notification_id: int, at: int, title: str = "Pay bills") -> AlarmRequest:
    return AlarmRequest(
        task_id=f"t{notification_id}",
        task_title=title,
        notification_id=notification_id,
        trigger_time_millis=at,
    )


def test_tick_fires_only_due_alarms_in_order(tmp_path):
    fired = []
    now = FakeNow(1_000)
    clock = AlarmClock(tmp_path / "alarms.json", on_fire=fired.append, clock=now)
    clock.schedule(_request(2, 3_000))
    clock.schedule(_request(1, 2_000))

    assert clock.tick() == []
    now.millis = 2_500
    assert [r.notification_id for r in clock.tick()] == [1]
    now.millis = 10_000
    clock.tick()

    assert [r.notification_id for r in fired] == [1, 2]
    assert clock.pending() == []


def test_schedule_replaces_same_notification_id(tmp_path):
    clock = AlarmClock(tmp_path / "alarms.json", on_fire=lambda r: None, clock=FakeNow(0))
    clock.schedule(_request(5, 1_000, "Old"))
    clock.schedule(_request(5, 2_000, "New"))

    pending = clock.pending()
    assert len(pending) == 1
    assert pending[0].task_title == "New"


def test_cancel_removes_scheduled_alarm(tmp_path):
    clock = AlarmClock(tmp_path / "alarms.json", on_fire=lambda r: None, clock=FakeNow(0))
    clock.schedule(_request(5, 1_000))

    assert clock.cancel(5).notification_id == 5
    assert clock.cancel(5) is None
    assert clock.pending() == []


def test_schedule_survives_restart_and_overdue_fires(tmp_path):
    path = tmp_path / "alarms.json"
    AlarmClock(path, on_fire=lambda r: None, clock=FakeNow(0)).schedule(_request(7, 1_000))

    fired = []
    clock = AlarmClock(path, on_fire=fired.append, clock=FakeNow(50_000))
    assert [r.notification_id for r in clock.pending()] == [7]
    clock.tick()

    assert [r.notification_id for r in fired] == [7]
    assert AlarmClock(path, on_fire=lambda r: None).pending() == []


def test_failing_start_signal_keeps_clock_running(tmp_path):
    def explode(request):
        raise RuntimeError("sequencer crashed")

    clock = AlarmClock(tmp_path / "alarms.json", on_fire=explode, clock=FakeNow(10_000))
    clock.schedule(_request(1, 1_000))
    clock.schedule(_request(2, 2_000))

    assert len(clock.tick()) == 2
