from datetime import timedelta

from lunch_order_client.core import countdown, format_countdown
from conftest import T0


def test_open_one_minute_left():
    cd = countdown(T0 + timedelta(milliseconds=60_000), T0)
    assert cd.open is True
    assert (cd.minutes_left, cd.seconds_left) == (1, 0)
    assert cd.remaining_ms == 60_000


def test_closed_just_after_deadline():
    cd = countdown(T0 - timedelta(milliseconds=1), T0)
    assert cd.open is False
    assert (cd.minutes_left, cd.seconds_left) == (0, 0)


def test_open_with_less_than_a_millisecond_left():
    cd = countdown(T0 + timedelta(microseconds=500), T0)
    assert cd.open is True
    assert cd.remaining_ms == 0
    assert format_countdown(cd) == "0:00 left"


def test_deadline_equal_to_now_is_closed():
    assert countdown(T0, T0).open is False


def test_missing_deadline_is_expired():
    cd = countdown(None, T0)
    assert cd.open is False
    assert cd.minutes_left == 0 and cd.seconds_left == 0


def test_remaining_is_floored():
    cd = countdown(T0 + timedelta(minutes=2, seconds=5, milliseconds=999), T0)
    assert (cd.minutes_left, cd.seconds_left) == (2, 5)


def test_format():
    assert format_countdown(countdown(T0 + timedelta(minutes=3, seconds=7), T0)) == "3:07 left"
    assert format_countdown(countdown(T0, T0)) == "Deadline passed"
