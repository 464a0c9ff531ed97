from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional


def now_millis() -> int:
    return int(time.time() * 1000)


def millis_to_datetime(millis: int, tzinfo=None) -> datetime:
    dt = datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
    if tzinfo:
        return dt.astimezone(tzinfo)
    return dt.astimezone()


def format_clock(dt: Optional[datetime] = None) -> str:
    """HH:MM as shown on the alarm surfaces."""
    dt = dt or datetime.now().astimezone()
    return dt.strftime("%H:%M")


def format_delta(trigger_time_millis: int, now: Optional[int] = None) -> str:
    now = now if now is not None else now_millis()
    delta_s = (trigger_time_millis - now) // 1000
    sign = "-" if delta_s < 0 else "+"
    minutes, seconds = divmod(abs(delta_s), 60)
    return f"{sign}{minutes}m{seconds:02d}s"
