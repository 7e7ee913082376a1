"""Sensor entities for Sun Position."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    CONF_ANGLE_UNIT,
    DOMAIN,
    KEY_END_TIME,
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
    KEY_SUNRISE,
    KEY_SUNSET,
    PRECISION_AZ,
    PRECISION_DISTANCE,
    PRECISION_EL,
    PRECISION_ILLUM,
)
from .coordinator import SunPositionCoordinator
from .models import AngleUnit

_LOGGER = logging.getLogger(__name__)

ANGLE = "angle"

SENSORS = [
    # key, translation key, unit, device_class, suggested_display_precision
    (KEY_SUN_AZ, "sensor_sun_azimuth", ANGLE, None, PRECISION_AZ),
    (KEY_SUN_EL, "sensor_sun_altitude", ANGLE, None, PRECISION_EL),
    (KEY_MOON_AZ, "sensor_moon_azimuth", ANGLE, None, PRECISION_AZ),
    (KEY_MOON_EL, "sensor_moon_altitude", ANGLE, None, PRECISION_EL),
    (KEY_MOON_ILLUM, "sensor_moon_illumination", "%", None, PRECISION_ILLUM),
    (KEY_MOON_DISTANCE, "sensor_moon_distance", "km", None, PRECISION_DISTANCE),
    (KEY_MOON_PHASE, "sensor_moon_phase", None, None, None),
    # Time sensors
    (KEY_SUNRISE, "sensor_sunrise", None, SensorDeviceClass.TIMESTAMP, None),
    (KEY_SUNSET, "sensor_sunset", None, SensorDeviceClass.TIMESTAMP, None),
    (KEY_START_TIME, "sensor_start_time", None, SensorDeviceClass.TIMESTAMP, None),
    (KEY_END_TIME, "sensor_end_time", None, SensorDeviceClass.TIMESTAMP, None),
    (KEY_MOONRISE, "sensor_moonrise", None, SensorDeviceClass.TIMESTAMP, None),
    (KEY_MOONSET, "sensor_moonset", None, SensorDeviceClass.TIMESTAMP, None),
]

ICONS = {
    KEY_SUN_AZ: "mdi:angle-obtuse",
    KEY_SUN_EL: "mdi:angle-acute",
    KEY_MOON_AZ: "mdi:angle-obtuse",
    KEY_MOON_EL: "mdi:angle-acute",
    KEY_MOON_ILLUM: "mdi:weather-night",
    KEY_MOON_DISTANCE: "mdi:ruler",
    KEY_SUNRISE: "mdi:weather-sunset-up",
    KEY_SUNSET: "mdi:weather-sunset-down",
    KEY_START_TIME: "mdi:weather-sunset-up",
    KEY_END_TIME: "mdi:weather-sunset-down",
    KEY_MOONRISE: "mdi:chevron-up-circle",
    KEY_MOONSET: "mdi:chevron-down-circle",
}

PHASE_ICONS = {
    "new_moon": "mdi:moon-new",
    "waxing_crescent": "mdi:moon-waxing-crescent",
    "first_quarter": "mdi:moon-first-quarter",
    "waxing_gibbous": "mdi:moon-waxing-gibbous",
    "full_moon": "mdi:moon-full",
    "waning_gibbous": "mdi:moon-waning-gibbous",
    "last_quarter": "mdi:moon-last-quarter",
    "waning_crescent": "mdi:moon-waning-crescent",
}


def _angle_unit_symbol(entry: ConfigEntry) -> str:
    unit = AngleUnit(entry.data.get(CONF_ANGLE_UNIT, AngleUnit.DEGREES))
    return "°" if unit is AngleUnit.DEGREES else "rad"


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up sensor entities from a config entry."""
    coordinator: SunPositionCoordinator = hass.data[DOMAIN][entry.entry_id]
    device_info = DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        manufacturer="Sun Position",
        model="Skyfield DE421",
        name="Sun Position",
    )
    angle_symbol = _angle_unit_symbol(entry)

    entities: list[SunPositionSensor] = []
    for key, name_key, unit, device_class, precision in SENSORS:
        entities.append(
            SunPositionSensor(
                coordinator,
                entry.entry_id,
                key,
                name_key,
                angle_symbol if unit == ANGLE else unit,
                device_class,
                precision,
                device_info,
            )
        )

    async_add_entities(entities, True)


class SunPositionSensor(CoordinatorEntity[SunPositionCoordinator], SensorEntity):
    """Generic sensor bound to a coordinator value."""

    def __init__(
        self,
        coordinator: SunPositionCoordinator,
        entry_id: str,
        key: str,
        name_key: str,
        unit: str | None,
        device_class: SensorDeviceClass | None,
        suggested_display_precision: int | None,
        device_info: DeviceInfo,
    ) -> None:
        super().__init__(coordinator)
        self._key = key
        self._attr_unique_id = f"sun_position_{entry_id}_{key}"
        self._attr_has_entity_name = True
        self._attr_translation_key = name_key
        self._attr_native_unit_of_measurement = unit
        self._attr_device_class = device_class
        self._attr_device_info = device_info
        self._attr_suggested_display_precision = suggested_display_precision
        # Stable, non-localized slug for the initial entity_id
        self._attr_suggested_object_id = key

    @property
    def native_value(self) -> Any:
        data = self.coordinator.data or {}
        value = data.get(self._key)

        # ISO string (local) -> aware UTC datetime for timestamp sensors
        if self.device_class == SensorDeviceClass.TIMESTAMP:
            if value is None:
                return None
            try:
                dt = datetime.fromisoformat(value)
            except (TypeError, ValueError):
                _LOGGER.debug("Sensor %s has no valid timestamp: %r", self._key, value)
                return None
            if dt.tzinfo is None:
                return dt.replace(tzinfo=UTC)
            return dt.astimezone(UTC)

        return value

    @property
    def icon(self) -> str | None:
        if self._key == KEY_MOON_PHASE:
            phase = (self.coordinator.data or {}).get(KEY_MOON_PHASE)
            return PHASE_ICONS.get(phase or "", "mdi:moon-waxing-crescent")
        return ICONS.get(self._key)
