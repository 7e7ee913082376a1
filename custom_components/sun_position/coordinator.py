"""Data coordinator for Sun Position.

Periodically computes sun and moon snapshots and the sun-in-sky window for
the configured observer and exposes them as a flat dict for the entities.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .const import (
    CONF_ANGLE_UNIT,
    CONF_END_EVENT,
    CONF_END_OFFSET,
    CONF_LAT,
    CONF_LON,
    CONF_START_EVENT,
    CONF_START_OFFSET,
    CONF_USE_HA_TZ,
    DEFAULT_END_EVENT,
    DEFAULT_START_EVENT,
    KEY_END_TIME,
    KEY_MOON_ABOVE_HORIZON,
    KEY_MOON_AZ,
    KEY_MOON_DISTANCE,
    KEY_MOON_EL,
    KEY_MOON_ILLUM,
    KEY_MOON_PHASE,
    KEY_MOONRISE,
    KEY_MOONSET,
    KEY_START_TIME,
    KEY_SUN_AZ,
    KEY_SUN_EL,
    KEY_SUN_IN_SKY,
    KEY_SUNRISE,
    KEY_SUNSET,
    MOON_RISE,
    MOON_SET,
)
from .context import HassContextLookup
from .coordinates import detect_time_zone
from .ephemeris import SkyfieldEphemeris
from .errors import SunPositionError
from .models import (
    AngleUnit,
    PositionSnapshot,
    PropertyDescriptor,
    SourceKind,
    SunPositionResult,
)
from .position_config import PositionConfig
from .rules import SunPositionEvaluator
from .utils import async_get_translator, cache_dir, ensure_valid_ephemeris

_RECOVERABLE_TZ_ERRORS: tuple[type[Exception], ...] = (ZoneInfoNotFoundError,)
# Top-level recoverable errors when wrapping update computations into UpdateFailed
_RECOVERABLE_UPDATE_ERRORS: tuple[type[Exception], ...] = (
    SunPositionError,
    OSError,
    ValueError,
    ArithmeticError,
    RuntimeError,
    KeyError,
    TypeError,
)

_LOGGER = logging.getLogger(__name__)


def _tz_for_hass(hass: HomeAssistant) -> ZoneInfo:
    """Return ZoneInfo from Home Assistant configuration with UTC fallback."""
    tzname = hass.config.time_zone
    try:
        return ZoneInfo(tzname) if tzname else ZoneInfo("UTC")
    except _RECOVERABLE_TZ_ERRORS:
        return ZoneInfo("UTC")


def _to_local_iso(value: Any, tz: ZoneInfo) -> str | None:
    """Convert an event time to an ISO 8601 string in ``tz``."""
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(tz).isoformat()


def _phase_key(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


def build_data(
    result: SunPositionResult, moon: PositionSnapshot, tz: ZoneInfo
) -> dict[str, Any]:
    """Flatten an evaluation result and a moon snapshot for the entities."""
    sun = result.snapshot
    sun_times = sun.event_table or {}
    moon_times = moon.event_table or {}
    data: dict[str, Any] = {
        KEY_SUN_AZ: round(sun.azimuth, 6),
        KEY_SUN_EL: round(sun.altitude, 6),
        KEY_START_TIME: _to_local_iso(result.start_time, tz),
        KEY_END_TIME: _to_local_iso(result.end_time, tz),
        KEY_SUN_IN_SKY: result.sun_in_sky,
        KEY_SUNRISE: _to_local_iso(sun_times.get("sunrise"), tz),
        KEY_SUNSET: _to_local_iso(sun_times.get("sunset"), tz),
        KEY_MOON_AZ: round(moon.azimuth, 6),
        KEY_MOON_EL: round(moon.altitude, 6),
        KEY_MOON_ABOVE_HORIZON: moon.altitude_degrees > 0,
        KEY_MOONRISE: _to_local_iso(moon_times.get(MOON_RISE), tz),
        KEY_MOONSET: _to_local_iso(moon_times.get(MOON_SET), tz),
    }
    if moon.moon is not None:
        illum = moon.moon.illumination
        data[KEY_MOON_ILLUM] = round(illum.fraction * 100.0, 3)
        data[KEY_MOON_DISTANCE] = round(moon.moon.distance, 3)
        data[KEY_MOON_PHASE] = _phase_key(illum.phase.name)
    return data


def _window_descriptor(event: str | None, offset: Any) -> PropertyDescriptor | None:
    if not event:
        return None
    return PropertyDescriptor(kind=SourceKind.SUN_TIME, value=event, offset=offset or 0)


class SunPositionCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator computing sun and moon data for HA sensors."""

    def __init__(
        self,
        hass: HomeAssistant,
        lat: float,
        lon: float,
        angle_unit: AngleUnit,
        interval: timedelta,
    ) -> None:
        """Initialize the coordinator with observer and scheduling settings.

        Args:
            hass: Home Assistant instance.
            lat: Observer latitude in degrees.
            lon: Observer longitude in degrees.
            angle_unit: Unit of the reported angles.
            interval: Update interval for the coordinator.
        """
        super().__init__(
            hass,
            logger=logging.getLogger(__name__),
            name="Sun Position",
            update_interval=interval,
        )
        self._lat: float = float(lat)
        self._lon: float = float(lon)
        self._angle_unit = angle_unit
        self._tz: ZoneInfo = ZoneInfo("UTC")
        self._start: PropertyDescriptor | None = None
        self._end: PropertyDescriptor | None = None
        self._hass: HomeAssistant = hass
        self.config: PositionConfig | None = None
        self._evaluator: SunPositionEvaluator | None = None

    @classmethod
    def from_config_entry(
        cls, hass: HomeAssistant, entry: ConfigEntry, interval: timedelta
    ) -> SunPositionCoordinator:
        """Build the coordinator from a ConfigEntry.

        Args:
            hass: Home Assistant instance.
            entry: Config entry containing coordinates and options.
            interval: Update interval for the coordinator.

        Returns:
            A configured coordinator; the ephemeris is loaded on first refresh.
        """
        data = entry.data
        options = entry.options
        c = cls(
            hass=hass,
            lat=float(data.get(CONF_LAT, hass.config.latitude)),
            lon=float(data.get(CONF_LON, hass.config.longitude)),
            angle_unit=AngleUnit(data.get(CONF_ANGLE_UNIT, AngleUnit.DEGREES)),
            interval=interval,
        )
        use_ha_tz = options.get(CONF_USE_HA_TZ, True)
        c._tz = _tz_for_hass(hass) if use_ha_tz else detect_time_zone(c._lat, c._lon)
        c._start = _window_descriptor(
            options.get(CONF_START_EVENT, DEFAULT_START_EVENT),
            options.get(CONF_START_OFFSET, 0),
        )
        c._end = _window_descriptor(
            options.get(CONF_END_EVENT, DEFAULT_END_EVENT),
            options.get(CONF_END_OFFSET, 0),
        )
        return c

    async def async_setup_config(self) -> PositionConfig:
        """Load the ephemeris and build the position configuration.

        Raises:
            UpdateFailed: If no usable ephemeris file can be obtained.
        """
        if self.config is not None:
            return self.config
        if not await ensure_valid_ephemeris(self._hass):
            raise UpdateFailed("Ephemeris file is not available")

        ephemeris = await self._hass.async_add_executor_job(
            SkyfieldEphemeris.load, cache_dir(self._hass), self._tz
        )
        translate = await async_get_translator(self._hass)
        config = PositionConfig(
            ephemeris,
            self._lat,
            self._lon,
            self._angle_unit,
            self._tz,
            translate,
        )
        self._evaluator = config.sun_position_evaluator(start=self._start, end=self._end)
        self.config = config
        return config

    async def _async_update_data(self) -> dict[str, Any]:
        """Compute current sun and moon data for the entities.

        Raises:
            UpdateFailed: If an expected error occurs during calculations.
        """
        try:
            config = await self.async_setup_config()
            evaluator = self._evaluator
            assert evaluator is not None, "Evaluator must be built with the config"
            lookup = HassContextLookup(self._hass)

            def _calc() -> dict[str, Any]:
                """Computation executed in the executor thread."""
                now = dt_util.utcnow()
                result = evaluator.evaluate(lookup, now)
                moon = config.get_moon_calc(now)
                data = build_data(result, moon, self._tz)
                _LOGGER.debug("Computed sun position data: %s", data)
                return data

            return await self._hass.async_add_executor_job(_calc)
        except _RECOVERABLE_UPDATE_ERRORS as err:
            raise UpdateFailed(str(err)) from err
