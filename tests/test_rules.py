"""Tests for azimuth rules and the sun-in-sky window."""

from datetime import UTC, datetime, timedelta

import pytest

from custom_components.sun_position.models import AzimuthRule, PropertyDescriptor
from custom_components.sun_position.rules import check_limits

from .conftest import NOW

SUNRISE = PropertyDescriptor(kind="pdsTime", value="sunrise")
SUNSET = PropertyDescriptor(kind="pdsTime", value="sunset")


@pytest.mark.parametrize(
    ("value", "low", "high", "expected"),
    [
        (135, 90, 180, True),
        (90, 90, 180, False),
        (10, 300, 60, True),
        (350, 300, 60, True),
        (200, 300, 60, False),
        (100, 90, None, True),
        (100, None, 90, False),
        (80, None, 90, True),
        (100, None, None, False),
    ],
)
def test_check_limits(value, low, high, expected):
    assert check_limits(value, low, high) is expected


def test_rule_changes(config, ephemeris, lookup):
    """pos_changed is set when any rule flips, and on the first evaluation."""
    evaluator = config.sun_position_evaluator(
        rules=[
            AzimuthRule("num", 90, "num", 180),
            AzimuthRule("num", 200, "num", 300),
        ]
    )
    first = evaluator.evaluate(lookup)
    assert first.pos == [True, False]
    assert first.pos_changed is True

    second = evaluator.evaluate(lookup)
    assert second.pos == [True, False]
    assert second.pos_changed is False

    ephemeris.sun_azimuth_deg = 250.0
    third = evaluator.evaluate(lookup)
    assert third.pos == [False, True]
    assert third.pos_changed is True


def test_unresolvable_bound_is_open(config, lookup):
    """A bound that cannot be looked up leaves that side of the range open."""
    evaluator = config.sun_position_evaluator(
        rules=[AzimuthRule("msgPayload", None, "num", 180)]
    )
    assert evaluator.evaluate(lookup).pos == [True]


def test_sun_in_sky_window(config, lookup):
    evaluator = config.sun_position_evaluator(start=SUNRISE, end=SUNSET)
    result = evaluator.evaluate(lookup)
    assert result.start_time == datetime(2024, 6, 12, 6, tzinfo=UTC)
    assert result.end_time == datetime(2024, 6, 12, 18, tzinfo=UTC)
    assert result.sun_in_sky is True
    assert result.errors == []

    evening = evaluator.evaluate(lookup, NOW + timedelta(hours=7))
    assert evening.sun_in_sky is False


def test_window_with_offsets(config, lookup):
    evaluator = config.sun_position_evaluator(
        start=PropertyDescriptor(kind="pdsTime", value="sunrise", offset=-30),
        end=PropertyDescriptor(kind="pdsTime", value="sunset", offset=30),
    )
    result = evaluator.evaluate(lookup, NOW + timedelta(hours=6, minutes=15))
    assert result.end_time == datetime(2024, 6, 12, 18, 30, tzinfo=UTC)
    assert result.sun_in_sky is True


def test_window_error(config, lookup):
    """An unresolvable window bound is reported and leaves sun_in_sky unset."""
    evaluator = config.sun_position_evaluator(
        start=SUNRISE, end=PropertyDescriptor(kind="pdsTime", value="bogus")
    )
    result = evaluator.evaluate(lookup)
    assert result.end_time is None
    assert result.sun_in_sky is None
    assert result.errors == ["No valid time for sun bogus found"]


def test_no_window(config, lookup):
    result = config.sun_position_evaluator().evaluate(lookup)
    assert result.sun_in_sky is None
    assert result.snapshot.azimuth == pytest.approx(135.0)
