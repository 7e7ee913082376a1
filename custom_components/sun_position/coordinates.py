"""Coordinate validation and time zone detection."""

from __future__ import annotations

from collections.abc import Mapping
import math
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder
import voluptuous as vol

from .const import CONF_LAT, CONF_LON, ERR_COORDINATES, ERR_LATITUDE, ERR_LONGITUDE
from .errors import ConfigurationError, Translator, default_translate
from .models import Coordinates


def _finite(value: float) -> float:
    if not math.isfinite(value):
        raise vol.Invalid("value is not finite")
    return value


LATITUDE_SCHEMA = vol.All(vol.Coerce(float), _finite, vol.Range(min=-90, max=90))
LONGITUDE_SCHEMA = vol.All(vol.Coerce(float), _finite, vol.Range(min=-180, max=180))

COORDINATES_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_LAT): LATITUDE_SCHEMA,
        vol.Required(CONF_LON): LONGITUDE_SCHEMA,
    },
    extra=vol.ALLOW_EXTRA,
)


class CoordinateValidator:
    """Validates a latitude/longitude pair before astronomical computations."""

    def __init__(self, translate: Translator = default_translate) -> None:
        self._translate = translate

    def validate(self, coords: Coordinates | Mapping[str, Any] | None) -> Coordinates:
        """Validate coordinates and return them as floats.

        Args:
            coords: Coordinates or a mapping with latitude/longitude keys.

        Returns:
            The validated Coordinates.

        Raises:
            ConfigurationError: If latitude or longitude are missing, not
                numeric, out of range, or both exactly zero.
        """
        if isinstance(coords, Coordinates):
            data: Mapping[str, Any] = {
                CONF_LAT: coords.latitude,
                CONF_LON: coords.longitude,
            }
        else:
            data = coords or {}

        try:
            LONGITUDE_SCHEMA(data.get(CONF_LON))
        except vol.Invalid as err:
            raise ConfigurationError(self._translate(ERR_LONGITUDE, {})) from err
        try:
            LATITUDE_SCHEMA(data.get(CONF_LAT))
        except vol.Invalid as err:
            raise ConfigurationError(self._translate(ERR_LATITUDE, {})) from err

        validated = COORDINATES_SCHEMA(dict(data))
        result = Coordinates(validated[CONF_LAT], validated[CONF_LON])
        if result.latitude == 0 and result.longitude == 0:
            raise ConfigurationError(self._translate(ERR_COORDINATES, {}))
        return result


def detect_time_zone(lat: float, lon: float) -> ZoneInfo:
    """Return a best-effort ZoneInfo for given coordinates.

    If timezone cannot be found, UTC is returned.

    Args:
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.

    Returns:
        A ZoneInfo instance representing the local timezone or UTC as fallback.
    """
    tzname = TimezoneFinder().timezone_at(lat=lat, lng=lon)

    try:
        return ZoneInfo(tzname) if tzname else ZoneInfo("UTC")
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")
