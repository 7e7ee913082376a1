"""Shared fixtures: a stub ephemeris, a controllable clock and a configuration."""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta, tzinfo
import math

import pytest

from custom_components.sun_position.lookup import VariablesLookup
from custom_components.sun_position.models import (
    MoonIllumination,
    MoonPosition,
    SunPosition,
)
from custom_components.sun_position.position_config import PositionConfig

# Wednesday, between the stub sunrise (06:00) and sunset (18:00).
NOW = datetime(2024, 6, 12, 12, 0, tzinfo=UTC)


def start_of_day(when: datetime, tz: tzinfo = UTC) -> datetime:
    return datetime.combine(when.astimezone(tz).date(), time.min, tzinfo=tz)


class StubEphemeris:
    """Deterministic ephemeris: events at fixed hours of each day.

    Sun tables follow the local day in ``time_zone``, moon tables the UTC day.
    """

    def __init__(self, time_zone: tzinfo = UTC) -> None:
        self.time_zone = time_zone
        self.sun_event_calls: list[datetime] = []
        self.moon_event_calls: list[datetime] = []
        self.sun_position_calls = 0
        self.moon_position_calls = 0
        self.sun_azimuth_deg = 135.0
        self.sun_altitude_deg = 30.0
        self.moon_phase = 0.5
        self.moon_events_override: dict | None = None

    def sun_events(self, when, latitude, longitude):
        self.sun_event_calls.append(when)
        day = start_of_day(when, self.time_zone)
        return {
            "sunrise": day + timedelta(hours=6),
            "solar_noon": day + timedelta(hours=12),
            "sunset": day + timedelta(hours=18),
        }

    def moon_events(self, when, latitude, longitude, in_utc=True):
        self.moon_event_calls.append(when)
        if self.moon_events_override is not None:
            return dict(self.moon_events_override)
        day = start_of_day(when)
        return {"rise": day + timedelta(hours=20), "set": day + timedelta(hours=8)}

    def sun_position(self, instant, latitude, longitude):
        self.sun_position_calls += 1
        return SunPosition(
            azimuth=math.radians(self.sun_azimuth_deg),
            altitude=math.radians(self.sun_altitude_deg),
        )

    def moon_position(self, instant, latitude, longitude):
        self.moon_position_calls += 1
        return MoonPosition(
            azimuth=math.radians(120.0),
            altitude=math.radians(10.0),
            distance=384400.0,
            parallactic_angle=0.25,
        )

    def moon_illumination(self, instant):
        return MoonIllumination(fraction=0.98, phase=self.moon_phase, angle=1.0)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def ephemeris() -> StubEphemeris:
    return StubEphemeris()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def config(ephemeris, clock) -> PositionConfig:
    return PositionConfig(ephemeris, 45.0, 9.0, time_zone=UTC, clock=clock)


@pytest.fixture
def lookup() -> VariablesLookup:
    return VariablesLookup({"payload": None})
