"""Tests for the day-keyed event cache."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from custom_components.sun_position.cache import AstroDayCache
from custom_components.sun_position.datetime_helpers import day_key


def _counting_loader(calls):
    def load(when):
        calls.append(when)
        return {"event": when, "missing": None}

    return load


def test_same_day_does_not_recompute():
    """A second read on the same UTC day reuses the stored tables."""
    calls = []
    cache = AstroDayCache("sun", _counting_loader(calls))
    first = datetime(2024, 6, 12, 1, 0, tzinfo=UTC)

    today, tomorrow = cache.ensure_fresh(first)
    assert len(calls) == 2
    assert today["event"] == first
    assert tomorrow["event"] == first + timedelta(days=1)

    cache.ensure_fresh(first + timedelta(hours=20))
    assert len(calls) == 2


def test_day_boundary_recomputes_once():
    """Crossing UTC midnight triggers exactly one refresh."""
    calls = []
    cache = AstroDayCache("sun", _counting_loader(calls))
    cache.ensure_fresh(datetime(2024, 6, 12, 23, 59, tzinfo=UTC))
    cache.ensure_fresh(datetime(2024, 6, 13, 0, 1, tzinfo=UTC))
    cache.ensure_fresh(datetime(2024, 6, 13, 12, 0, tzinfo=UTC))
    assert len(calls) == 4
    assert cache.day_key == day_key(datetime(2024, 6, 13, tzinfo=UTC))


def test_defaults_fill_missing_keys():
    """Defaults replace absent or None values."""
    cache = AstroDayCache(
        "moon",
        _counting_loader([]),
        defaults={"always_up": False, "missing": False},
    )
    today, _ = cache.ensure_fresh(datetime(2024, 6, 12, tzinfo=UTC))
    assert today["always_up"] is False
    assert today["missing"] is False


def test_events_for_bypasses_cache():
    """events_for computes directly and leaves the stored day alone."""
    calls = []
    cache = AstroDayCache("sun", _counting_loader(calls))
    now = datetime(2024, 6, 12, tzinfo=UTC)
    cache.ensure_fresh(now)
    key = cache.day_key

    cache.events_for(now + timedelta(days=5))
    assert len(calls) == 3
    assert cache.day_key == key


def test_invalidate_forces_refresh():
    """After invalidate the next read reloads both days."""
    calls = []
    cache = AstroDayCache("sun", _counting_loader(calls))
    now = datetime(2024, 6, 12, tzinfo=UTC)
    cache.ensure_fresh(now)
    cache.invalidate()
    cache.ensure_fresh(now)
    assert len(calls) == 4


def test_day_key_orders_across_years():
    """Day keys increase across month and year boundaries."""
    dec31 = day_key(datetime(2023, 12, 31, 12, tzinfo=UTC))
    jan1 = day_key(datetime(2024, 1, 1, 0, tzinfo=UTC))
    jan31 = day_key(datetime(2024, 1, 31, tzinfo=UTC))
    feb1 = day_key(datetime(2024, 2, 1, tzinfo=UTC))
    assert dec31 < jan1 < jan31 < feb1


def test_day_boundary_in_local_zone():
    """With a zone set, the refresh happens at local midnight, not UTC midnight."""
    zone = ZoneInfo("America/New_York")
    calls = []
    cache = AstroDayCache("sun", _counting_loader(calls), time_zone=zone)
    cache.ensure_fresh(datetime(2024, 6, 12, 20, 30, tzinfo=zone))
    # 03:59 UTC on the 13th, still the 12th locally
    cache.ensure_fresh(datetime(2024, 6, 12, 23, 59, tzinfo=zone))
    assert len(calls) == 2

    cache.ensure_fresh(datetime(2024, 6, 13, 0, 1, tzinfo=zone))
    assert len(calls) == 4
    assert cache.day_key == day_key(datetime(2024, 6, 13, tzinfo=UTC))
