"""Tests for sun and moon snapshots."""

from datetime import UTC, datetime
import math

import pytest

from custom_components.sun_position.errors import ConfigurationError
from custom_components.sun_position.models import AngleUnit, Coordinates
from custom_components.sun_position.position import classify_moon_phase
from custom_components.sun_position.position_config import PositionConfig

from .conftest import NOW


@pytest.mark.parametrize(
    ("phase", "name"),
    [
        (0.0, "New Moon"),
        (0.009, "New Moon"),
        (0.01, "Waxing Crescent"),
        (0.249, "Waxing Crescent"),
        (0.25, "First Quarter"),
        (0.259, "First Quarter"),
        (0.26, "Waxing Gibbous"),
        (0.499, "Waxing Gibbous"),
        (0.50, "Full Moon"),
        (0.509, "Full Moon"),
        (0.51, "Waning Gibbous"),
        (0.75, "Waning Gibbous"),
        (0.759, "Last Quarter"),
        (0.76, "Waning Crescent"),
        (0.99, "Waning Crescent"),
    ],
)
def test_moon_phase_names(phase, name):
    assert classify_moon_phase(phase).name == name


def test_moon_phase_angle():
    """The phase angle follows the configured unit."""
    full = classify_moon_phase(0.5)
    assert full.value == 0.5
    assert full.angle == pytest.approx(180.0)
    assert classify_moon_phase(0.5, AngleUnit.RADIANS).angle == pytest.approx(math.pi)


def test_sun_snapshot_degrees(config):
    snapshot = config.get_sun_calc()
    assert snapshot.timestamp == NOW
    assert snapshot.angle_unit is AngleUnit.DEGREES
    assert snapshot.azimuth == pytest.approx(135.0)
    assert snapshot.altitude == pytest.approx(30.0)
    assert snapshot.event_table["sunrise"] == datetime(2024, 6, 12, 6, tzinfo=UTC)


def test_sun_snapshot_radians(ephemeris, clock):
    """Radian configurations report radians but keep both units available."""
    config = PositionConfig(ephemeris, 45.0, 9.0, AngleUnit.RADIANS, clock=clock)
    snapshot = config.get_sun_calc()
    assert snapshot.azimuth == pytest.approx(math.radians(135.0))
    assert snapshot.azimuth_degrees == pytest.approx(135.0)
    assert snapshot.altitude_radians == pytest.approx(math.radians(30.0))


def test_angle_unit_change(config):
    config.set_coordinates(45.0, 9.0, "rad")
    assert config.angle_unit is AngleUnit.RADIANS
    assert config.get_sun_calc().altitude == pytest.approx(math.radians(30.0))


def test_sun_debounce(config, ephemeris, clock):
    """Repeated requests for now within four seconds reuse the snapshot."""
    first = config.get_sun_calc()
    clock.advance(seconds=3)
    assert config.get_sun_calc() is first
    assert ephemeris.sun_position_calls == 1

    clock.advance(seconds=2)
    assert config.get_sun_calc() is not first
    assert ephemeris.sun_position_calls == 2


def test_moon_debounce(config, ephemeris, clock):
    """The moon uses a three second window."""
    first = config.get_moon_calc()
    clock.advance(seconds=2.5)
    assert config.get_moon_calc() is first
    clock.advance(seconds=1)
    config.get_moon_calc()
    assert ephemeris.moon_position_calls == 2


def test_debounce_requires_times(config, ephemeris):
    """A snapshot without event times is not reused when times are wanted."""
    bare = config.get_sun_calc(include_times=False)
    assert bare.event_table is None
    full = config.get_sun_calc()
    assert full.event_table is not None
    assert ephemeris.sun_position_calls == 2


def test_explicit_instant(config, ephemeris):
    """Explicit instants are always computed; strings and epoch ms are accepted."""
    iso = config.get_sun_calc("2024-06-12T15:00:00+00:00")
    assert iso.timestamp == datetime(2024, 6, 12, 15, tzinfo=UTC)
    ms = config.get_sun_calc(1718172000000)
    assert ms.timestamp == datetime(2024, 6, 12, 6, tzinfo=UTC)
    config.get_sun_calc(NOW)
    assert ephemeris.sun_position_calls == 3


def test_per_call_coordinates(config, ephemeris):
    """Override coordinates are validated and bypass the day cache."""
    config.get_sun_calc()
    key = config.sun_cache.day_key
    calls = len(ephemeris.sun_event_calls)

    snapshot = config.get_sun_calc(coordinates=Coordinates(10.0, 20.0))
    assert (snapshot.latitude, snapshot.longitude) == (10.0, 20.0)
    assert len(ephemeris.sun_event_calls) == calls + 1
    assert config.sun_cache.day_key == key

    with pytest.raises(ConfigurationError):
        config.get_sun_calc(coordinates=Coordinates(0.0, 0.0))


def test_moon_snapshot(config):
    snapshot = config.get_moon_calc()
    moon = snapshot.moon
    assert snapshot.azimuth == pytest.approx(120.0)
    assert moon.distance == 384400.0
    assert moon.parallactic_angle == pytest.approx(math.degrees(0.25))
    assert moon.illumination.zenith_angle == pytest.approx(math.degrees(0.75))
    assert moon.illumination.phase.name == "Full Moon"
    assert snapshot.event_table["always_up"] is False


def test_snapshot_as_dict(config):
    data = config.get_moon_calc().as_dict()
    assert data["timestamp"] == NOW.isoformat()
    assert data["angle_unit"] == "deg"
    assert data["times"]["rise"] == "2024-06-12T20:00:00+00:00"
    assert data["illumination"]["fraction"] == 0.98
    assert data["illumination"]["phase"]["code"] == ":full_moon_with_face:"
