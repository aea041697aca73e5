# tests/test_dates.py
from datetime import datetime, timezone

from dates import SCHOOL_TZ, get_today_key, get_week


def test_day_key_uses_school_clock_in_winter():
    # 03:00 UTC is 22:00 the previous evening in Detroit (EST)
    assert get_today_key(datetime(2024, 1, 2, 3, 0, tzinfo=timezone.utc)) == "2024-01-01"


def test_day_key_uses_school_clock_in_summer():
    # EDT is UTC-4
    assert get_today_key(datetime(2024, 7, 1, 3, 30, tzinfo=timezone.utc)) == "2024-06-30"
    assert get_today_key(datetime(2024, 7, 1, 4, 30, tzinfo=timezone.utc)) == "2024-07-01"


def test_naive_datetimes_are_utc():
    assert get_today_key(datetime(2024, 1, 2, 3, 0)) == "2024-01-01"


def test_today_key_shape():
    key = get_today_key()
    assert len(key) == 10 and key[4] == "-" and key[7] == "-"


def test_week_runs_sunday_to_saturday():
    week = get_week(datetime(2024, 1, 10, 12, 0, tzinfo=SCHOOL_TZ))
    assert week["start_iso"].startswith("2024-01-07T00:00:00")
    assert week["end_iso"].startswith("2024-01-13T23:59:59.999")
    assert week["key"] == "2024-W01"


def test_week_of_a_sunday_starts_that_day():
    week = get_week(datetime(2024, 3, 17, 9, 0, tzinfo=SCHOOL_TZ))
    assert week["start_iso"].startswith("2024-03-17")
    assert week["key"] == "2024-W03"
