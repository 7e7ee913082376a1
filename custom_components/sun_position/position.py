"""Sun and moon position snapshots and moon phase classification."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, tzinfo
import logging
import math
from typing import Any

from homeassistant.util import dt as dt_util

from .cache import AstroDayCache, EventTable
from .const import MOON_DEBOUNCE_MS, SUN_DEBOUNCE_MS
from .datetime_helpers import ensure_aware, from_timestamp_ms
from .ephemeris import Ephemeris
from .models import (
    AngleUnit,
    Coordinates,
    MoonData,
    MoonIlluminationData,
    MoonPhase,
    PositionSnapshot,
)

_LOGGER = logging.getLogger(__name__)

MOON_PHASES: tuple[MoonPhase, ...] = (
    MoonPhase("New Moon", "🌚", ":new_moon_with_face:", 1),
    MoonPhase("Waxing Crescent", "🌒", ":waxing_crescent_moon:", 6.3825),
    MoonPhase("First Quarter", "🌓", ":first_quarter_moon:", 1),
    MoonPhase("Waxing Gibbous", "🌔", ":waxing_gibbous_moon:", 6.3825),
    MoonPhase("Full Moon", "🌝", ":full_moon_with_face:", 1),
    MoonPhase("Waning Gibbous", "🌖", ":waning_gibbous_moon:", 6.3825),
    MoonPhase("Last Quarter", "🌗", ":last_quarter_moon:", 1),
    MoonPhase("Waning Crescent", "🌘", ":waning_crescent_moon:", 6.3825),
)


def classify_moon_phase(
    phase: float, angle_unit: AngleUnit = AngleUnit.DEGREES
) -> MoonPhase:
    """Return the catalog entry for a position in the lunar cycle.

    Args:
        phase: Cycle position, 0 = new moon, 0.5 = full moon.
        angle_unit: Unit of the phase angle attached to the result.

    Returns:
        A copy of the catalog entry annotated with ``value`` and ``angle``.
    """
    if phase < 0.01:
        index = 0
    elif phase < 0.25:
        index = 1
    elif phase < 0.26:
        index = 2
    elif phase < 0.50:
        index = 3
    elif phase < 0.51:
        index = 4
    elif phase <= 0.75:
        index = 5
    elif phase < 0.76:
        index = 6
    else:
        index = 7

    angle = phase * 360.0
    if angle_unit is AngleUnit.RADIANS:
        angle = math.radians(angle)
    return replace(MOON_PHASES[index], value=phase, angle=angle)


def _azimuth_degrees(radians: float) -> float:
    return math.degrees(radians) % 360.0


class PositionCalculator:
    """Computes sun and moon snapshots for the configured observer.

    Snapshots requested without a usable instant are computed for "now"; a
    burst of such calls within the debounce window gets the previous result.
    """

    def __init__(
        self,
        ephemeris: Ephemeris,
        coordinates: Callable[[Coordinates | None], Coordinates],
        sun_cache: AstroDayCache,
        moon_cache: AstroDayCache,
        time_zone: tzinfo,
        angle_unit: AngleUnit = AngleUnit.DEGREES,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the calculator.

        Args:
            ephemeris: Source of raw positions.
            coordinates: Returns validated coordinates, given an optional
                per-call override.
            sun_cache: Cached solar event tables.
            moon_cache: Cached lunar event tables.
            time_zone: Zone assumed for naive input datetimes.
            angle_unit: Unit of the reported angles.
            clock: Returns the current instant.
        """
        self._ephemeris = ephemeris
        self._coordinates = coordinates
        self._sun_cache = sun_cache
        self._moon_cache = moon_cache
        self.time_zone = time_zone
        self.angle_unit = angle_unit
        self._clock = clock
        self._last_sun: PositionSnapshot | None = None
        self._last_moon: PositionSnapshot | None = None

    def _coerce_instant(self, instant: Any) -> datetime | None:
        """Return ``instant`` as an aware datetime, or None if unusable."""
        if isinstance(instant, datetime):
            return ensure_aware(instant, self.time_zone)
        if isinstance(instant, str):
            parsed = dt_util.parse_datetime(instant.strip())
            return None if parsed is None else ensure_aware(parsed, self.time_zone)
        if isinstance(instant, int | float) and not isinstance(instant, bool):
            return from_timestamp_ms(instant) if math.isfinite(instant) else None
        return None

    @staticmethod
    def _reusable(
        last: PositionSnapshot | None, now: datetime, window_ms: int, include_times: bool
    ) -> PositionSnapshot | None:
        if last is None or (include_times and last.event_table is None):
            return None
        if abs(now - last.timestamp) < timedelta(milliseconds=window_ms):
            return last
        return None

    def _convert(self, radians: float) -> float:
        if self.angle_unit is AngleUnit.DEGREES:
            return math.degrees(radians)
        return radians

    def _sun_times(self, coords: Coordinates, per_call: bool) -> EventTable:
        now = self._clock()
        if not per_call:
            today, _ = self._sun_cache.ensure_fresh(now)
            return today
        # Tables for per-call coordinates are not cached.
        return self._sun_cache.normalize(
            self._ephemeris.sun_events(now, coords.latitude, coords.longitude)
        )

    def _moon_times(self, coords: Coordinates, per_call: bool) -> EventTable:
        now = self._clock()
        if not per_call:
            today, _ = self._moon_cache.ensure_fresh(now)
            return today
        return self._moon_cache.normalize(
            self._ephemeris.moon_events(now, coords.latitude, coords.longitude, True)
        )

    def sun_snapshot(
        self,
        instant: Any = None,
        include_times: bool = True,
        coordinates: Coordinates | None = None,
    ) -> PositionSnapshot:
        """Compute the sun's position.

        Args:
            instant: datetime, ISO string or epoch milliseconds; anything else
                means now.
            include_times: Attach the current day's solar event table.
            coordinates: Per-call observer overriding the configured one.

        Returns:
            A new snapshot, or the previous one within the debounce window.
        """
        when = self._coerce_instant(instant)
        if when is None:
            when = self._clock()
            if coordinates is None and (
                last := self._reusable(self._last_sun, when, SUN_DEBOUNCE_MS, include_times)
            ):
                _LOGGER.debug("Sun position requested again within debounce window")
                return last

        coords = self._coordinates(coordinates)
        pos = self._ephemeris.sun_position(when, coords.latitude, coords.longitude)
        azimuth_degrees = _azimuth_degrees(pos.azimuth)
        altitude_degrees = math.degrees(pos.altitude)
        degrees = self.angle_unit is AngleUnit.DEGREES

        snapshot = PositionSnapshot(
            timestamp=when,
            latitude=coords.latitude,
            longitude=coords.longitude,
            angle_unit=self.angle_unit,
            azimuth=azimuth_degrees if degrees else pos.azimuth,
            altitude=altitude_degrees if degrees else pos.altitude,
            azimuth_degrees=azimuth_degrees,
            altitude_degrees=altitude_degrees,
            azimuth_radians=pos.azimuth,
            altitude_radians=pos.altitude,
            event_table=(
                self._sun_times(coords, coordinates is not None)
                if include_times
                else None
            ),
        )
        if coordinates is None:
            self._last_sun = snapshot
        return snapshot

    def moon_snapshot(
        self,
        instant: Any = None,
        include_times: bool = True,
        coordinates: Coordinates | None = None,
    ) -> PositionSnapshot:
        """Compute the moon's position, illumination and phase.

        Takes the same arguments as ``sun_snapshot``.
        """
        when = self._coerce_instant(instant)
        if when is None:
            when = self._clock()
            if coordinates is None and (
                last := self._reusable(self._last_moon, when, MOON_DEBOUNCE_MS, include_times)
            ):
                _LOGGER.debug("Moon position requested again within debounce window")
                return last

        coords = self._coordinates(coordinates)
        pos = self._ephemeris.moon_position(when, coords.latitude, coords.longitude)
        illum = self._ephemeris.moon_illumination(when)
        azimuth_degrees = _azimuth_degrees(pos.azimuth)
        altitude_degrees = math.degrees(pos.altitude)
        degrees = self.angle_unit is AngleUnit.DEGREES

        moon = MoonData(
            distance=pos.distance,
            parallactic_angle=self._convert(pos.parallactic_angle),
            illumination=MoonIlluminationData(
                fraction=illum.fraction,
                angle=self._convert(illum.angle),
                zenith_angle=self._convert(illum.angle - pos.parallactic_angle),
                phase=classify_moon_phase(illum.phase, self.angle_unit),
            ),
        )
        snapshot = PositionSnapshot(
            timestamp=when,
            latitude=coords.latitude,
            longitude=coords.longitude,
            angle_unit=self.angle_unit,
            azimuth=azimuth_degrees if degrees else pos.azimuth,
            altitude=altitude_degrees if degrees else pos.altitude,
            azimuth_degrees=azimuth_degrees,
            altitude_degrees=altitude_degrees,
            azimuth_radians=pos.azimuth,
            altitude_radians=pos.altitude,
            event_table=(
                self._moon_times(coords, coordinates is not None)
                if include_times
                else None
            ),
            moon=moon,
        )
        if coordinates is None:
            self._last_moon = snapshot
        return snapshot
