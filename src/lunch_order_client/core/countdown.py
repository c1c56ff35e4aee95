from __future__ import annotations
from datetime import datetime, timedelta

from lunch_order_client.models.picks import Countdown

_CLOSED = Countdown(open=False, minutes_left=0, seconds_left=0, remaining_ms=0)


def countdown(deadline_at: datetime | None, now: datetime) -> Countdown:
    """
    Статус дедлайна группы. Чистая функция: вызывающий сам пересчитывает её
    раз в секунду. deadline_at=None считается уже истёкшим.
    """
    if deadline_at is None:
        return _CLOSED
    if deadline_at <= now:
        return _CLOSED
    left_ms = (deadline_at - now) // timedelta(milliseconds=1)
    return Countdown(
        open=True,
        minutes_left=left_ms // 60_000,
        seconds_left=(left_ms % 60_000) // 1000,
        remaining_ms=left_ms,
    )


def format_countdown(cd: Countdown) -> str:
    if not cd.open:
        return "Deadline passed"
    return f"{cd.minutes_left}:{cd.seconds_left:02d} left"
