"""Binary sensors for Sun Position"""

from __future__ import annotations

from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, KEY_MOON_ABOVE_HORIZON, KEY_SUN_IN_SKY
from .coordinator import SunPositionCoordinator

# key, translation key, icon when on, icon when off
BINARY_SENSORS = [
    (KEY_SUN_IN_SKY, "binary_sun_in_sky", "mdi:white-balance-sunny", "mdi:weather-night"),
    (
        KEY_MOON_ABOVE_HORIZON,
        "binary_moon_above_horizon",
        "mdi:weather-night",
        "mdi:weather-night-off",
    ),
]


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up binary sensor entities."""
    coordinator: SunPositionCoordinator = hass.data[DOMAIN][entry.entry_id]
    device_info = DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        manufacturer="Sun Position",
        model="Skyfield DE421",
        name="Sun Position",
    )
    async_add_entities(
        [
            SunPositionBinary(coordinator, entry.entry_id, device_info, *description)
            for description in BINARY_SENSORS
        ],
        True,
    )


class SunPositionBinary(CoordinatorEntity[SunPositionCoordinator], BinarySensorEntity):
    """Binary sensor for a boolean coordinator value."""

    def __init__(
        self,
        coordinator: SunPositionCoordinator,
        entry_id: str,
        device_info: DeviceInfo,
        key: str,
        name_key: str,
        icon_on: str,
        icon_off: str,
    ) -> None:
        super().__init__(coordinator)
        self._key = key
        self._icon_on = icon_on
        self._icon_off = icon_off
        self._attr_unique_id = f"sun_position_{entry_id}_{key}"
        self._attr_has_entity_name = True
        self._attr_translation_key = name_key
        self._attr_device_info = device_info
        self._attr_suggested_object_id = key

    @property
    def is_on(self) -> bool | None:
        value = (self.coordinator.data or {}).get(self._key)
        return None if value is None else bool(value)

    @property
    def icon(self) -> str:
        """Return MDI icon based on state."""
        return self._icon_on if self.is_on else self._icon_off
