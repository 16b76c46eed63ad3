from datetime import datetime

import pytest

from timetracker.core.timeutils import (
    date_string,
    format_elapsed,
    is_workday,
    parse_minutes,
    time_string,
)


@pytest.mark.parametrize(
    "clock_in, reference, expected",
    [
        ("08:00:00", "17:30:00", "9h 30m"),
        ("08:15", "08:15", "0h 0m"),
        ("07:59:59", "08:01:00", "0h 2m"),
        ("09:00:00", "08:00:00", "0h 0m"),
        ("not-a-time", "17:00:00", "0h 0m"),
        (None, "17:00:00", "0h 0m"),
        ("08:00:00", "25:00:00", "0h 0m"),
    ],
)
def test_format_elapsed(clock_in, reference, expected):
    assert format_elapsed(clock_in, reference) == expected


def test_parse_minutes_accepts_both_formats():
    assert parse_minutes("08:30") == 510
    assert parse_minutes("08:30:59") == 510


@pytest.mark.parametrize("value", ["", "8", "08:60", "ab:cd", "08:00:00:00"])
def test_parse_minutes_rejects_malformed_values(value):
    with pytest.raises(ValueError):
        parse_minutes(value)


def test_date_and_time_strings():
    moment = datetime(2025, 3, 10, 7, 5, 9)
    assert date_string(moment) == "2025-03-10"
    assert time_string(moment) == "07:05:09"


def test_is_workday_uses_configured_days():
    monday = datetime(2025, 3, 10)
    saturday = datetime(2025, 3, 15)
    assert is_workday(monday) is True
    assert is_workday(saturday) is False
    assert is_workday(saturday, workdays=[5]) is True
