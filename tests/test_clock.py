"""Tests for the clock and its simulated time."""

from datetime import date, datetime, timedelta, timezone

from sunsigns_fetcher.utils.clock import Clock, to_local_naive


def test_real_time_by_default():
    clock = Clock()

    assert not clock.is_simulated
    assert abs((datetime.now() - clock.now()).total_seconds()) < 60


def test_date_means_midnight():
    clock = Clock(date(2025, 3, 11))

    assert clock.now() == datetime(2025, 3, 11)


def test_aware_time_converted_to_local():
    moment = datetime(2025, 3, 10, 9, 30, tzinfo=timezone(timedelta(hours=2)))
    clock = Clock(moment)

    assert clock.now().tzinfo is None
    assert clock.now() == moment.astimezone().replace(tzinfo=None)


def test_naive_time_untouched():
    assert to_local_naive(datetime(2025, 3, 10, 9, 30)) == datetime(2025, 3, 10, 9, 30)
