"""Tests for date and time helpers."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from custom_components.sun_position.datetime_helpers import (
    day_key,
    format_date,
    is_false,
    is_true,
    normalize_date,
    offset_delta,
    parse_date_from_format,
    parse_time_of_text,
    parse_weekdays,
    special_day_of_month,
    weekday_delta,
)
from custom_components.sun_position.errors import FormatError, NoValidWeekdayError

from .conftest import NOW

BERLIN = ZoneInfo("Europe/Berlin")


def test_parse_weekdays():
    assert parse_weekdays(None) is None
    assert parse_weekdays("*") is None
    assert parse_weekdays("") == frozenset()
    assert parse_weekdays("0,2;4") == frozenset({0, 2, 4})
    assert parse_weekdays(["Monday", "sun"]) == frozenset({0, 6})
    assert parse_weekdays(3) == frozenset({3})
    with pytest.raises(ValueError):
        parse_weekdays("7")
    with pytest.raises(ValueError):
        parse_weekdays("someday")


def test_weekday_delta():
    assert weekday_delta(frozenset({2}), 2) == 0
    assert weekday_delta(frozenset({4}), 2) == 2
    assert weekday_delta(frozenset({0}), 6) == 1
    assert weekday_delta(frozenset(), 2) == -1


@pytest.mark.parametrize(
    ("rule", "expected"),
    [
        ("1", date(2024, 6, 1)),
        ("31", date(2024, 6, 30)),
        ("first", date(2024, 6, 1)),
        ("last", date(2024, 6, 30)),
        ("first_weekday", date(2024, 6, 3)),
        ("last_weekday", date(2024, 6, 28)),
        ("first_monday", date(2024, 6, 3)),
        ("last_friday", date(2024, 6, 28)),
        ("second_monday", None),
    ],
)
def test_special_day_of_month(rule, expected):
    assert special_day_of_month(2024, 6, rule) == expected


def test_leap_february():
    assert special_day_of_month(2024, 2, "last") == date(2024, 2, 29)
    assert special_day_of_month(2023, 2, 30) == date(2023, 2, 28)


def test_offset_delta():
    assert offset_delta(90, 60) == timedelta(minutes=90)
    assert offset_delta(-1.5, 3600) == timedelta(hours=-1.5)
    assert offset_delta(0, 60) == timedelta(0)
    assert offset_delta(float("nan"), 60) == timedelta(0)


def test_normalize_date():
    """Offsets apply first, then next occurrence, then the weekday filter."""
    morning = datetime(2024, 6, 12, 8, tzinfo=UTC)
    assert normalize_date(morning, timedelta(hours=1), NOW, UTC) == datetime(
        2024, 6, 12, 9, tzinfo=UTC
    )
    assert normalize_date(morning, timedelta(0), NOW, UTC, 1) == datetime(
        2024, 6, 13, 8, tzinfo=UTC
    )
    assert normalize_date(
        morning, timedelta(0), NOW, UTC, None, frozenset({5})
    ) == datetime(2024, 6, 15, 8, tzinfo=UTC)
    with pytest.raises(NoValidWeekdayError):
        normalize_date(morning, timedelta(0), NOW, UTC, None, frozenset())


def test_parse_time_of_text():
    assert parse_time_of_text("6:30 pm", NOW, UTC) == datetime(
        2024, 6, 12, 18, 30, tzinfo=UTC
    )
    assert parse_time_of_text("12 am", NOW, UTC) == datetime(2024, 6, 12, tzinfo=UTC)
    assert parse_time_of_text("25:00", NOW, UTC) is None
    assert parse_time_of_text("2024-07-01", NOW, UTC) == datetime(
        2024, 7, 1, tzinfo=UTC
    )


def test_time_of_text_uses_local_day():
    """Bare times land on the local day of the reference instant."""
    late = datetime(2024, 6, 12, 23, 30, tzinfo=UTC)  # already the 13th in Berlin
    parsed = parse_time_of_text("07:00", late, BERLIN)
    assert parsed == datetime(2024, 6, 13, 7, tzinfo=BERLIN)


def test_parse_date_from_format():
    assert parse_date_from_format("1718172000000", None, NOW, UTC) == datetime(
        2024, 6, 12, 6, tzinfo=UTC
    )
    assert parse_date_from_format("12/06/2024", "%d/%m/%Y", NOW, UTC) == datetime(
        2024, 6, 12, tzinfo=UTC
    )
    with pytest.raises(FormatError):
        parse_date_from_format("12/06/2024", "%Y-%m-%d", NOW, UTC)
    with pytest.raises(FormatError):
        parse_date_from_format(True, None, NOW, UTC)


def test_format_date_local():
    assert format_date(NOW, "iso", BERLIN) == "2024-06-12T14:00:00+02:00"
    assert format_date(NOW, "utc", BERLIN) == "2024-06-12T12:00:00+00:00"
    assert format_date(NOW, "date", BERLIN) == "2024-06-12"
    assert format_date(NOW, "local", BERLIN) == "2024-06-12 14:00:00"


def test_truth_expressions():
    for value in ("on", "Yes", " true ", 1, 2.5, True, "3"):
        assert is_true(value)
    for value in ("off", "NO", "0", 0, -1, False):
        assert is_false(value)
    for value in (None, "maybe"):
        assert not is_true(value)
        assert not is_false(value)


def test_day_key_defaults_to_utc():
    local_evening = datetime(2024, 6, 13, 0, 30, tzinfo=BERLIN)
    assert day_key(local_evening) == day_key(datetime(2024, 6, 12, tzinfo=UTC))


def test_day_key_in_zone():
    local_evening = datetime(2024, 6, 13, 0, 30, tzinfo=BERLIN)
    assert day_key(local_evening, BERLIN) == day_key(datetime(2024, 6, 13, tzinfo=UTC))
