"""Tests for flattening evaluation results into entity data."""

from zoneinfo import ZoneInfo

from custom_components.sun_position.const import (
    KEY_END_TIME,
    KEY_MOON_ABOVE_HORIZON,
    KEY_MOON_DISTANCE,
    KEY_MOON_ILLUM,
    KEY_MOON_PHASE,
    KEY_MOONRISE,
    KEY_START_TIME,
    KEY_SUN_AZ,
    KEY_SUN_IN_SKY,
    KEY_SUNRISE,
)
from custom_components.sun_position.coordinator import _window_descriptor, build_data
from custom_components.sun_position.models import SourceKind


def test_build_data(config, lookup):
    evaluator = config.sun_position_evaluator(
        start=_window_descriptor("sunrise", 0), end=_window_descriptor("sunset", 15)
    )
    data = build_data(
        evaluator.evaluate(lookup), config.get_moon_calc(), ZoneInfo("Europe/Rome")
    )
    assert data[KEY_SUN_AZ] == 135.0
    assert data[KEY_SUN_IN_SKY] is True
    assert data[KEY_START_TIME] == "2024-06-12T08:00:00+02:00"
    assert data[KEY_END_TIME] == "2024-06-12T20:15:00+02:00"
    assert data[KEY_SUNRISE] == "2024-06-12T08:00:00+02:00"
    assert data[KEY_MOONRISE] == "2024-06-12T22:00:00+02:00"
    assert data[KEY_MOON_ILLUM] == 98.0
    assert data[KEY_MOON_DISTANCE] == 384400.0
    assert data[KEY_MOON_PHASE] == "full_moon"
    assert data[KEY_MOON_ABOVE_HORIZON] is True


def test_build_data_without_window(config, lookup):
    data = build_data(
        config.sun_position_evaluator().evaluate(lookup),
        config.get_moon_calc(),
        ZoneInfo("UTC"),
    )
    assert data[KEY_START_TIME] is None
    assert data[KEY_SUN_IN_SKY] is None


def test_window_descriptor():
    assert _window_descriptor("", 10) is None
    descriptor = _window_descriptor("dusk", None)
    assert descriptor.kind is SourceKind.SUN_TIME
    assert descriptor.value == "dusk"
    assert descriptor.offset == 0
