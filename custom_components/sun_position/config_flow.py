"""Config and Options flow for Sun Position."""

from __future__ import annotations

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult

from .const import (
    CONF_ANGLE_UNIT,
    CONF_END_EVENT,
    CONF_END_OFFSET,
    CONF_LAT,
    CONF_LON,
    CONF_SCAN_INTERVAL,
    CONF_START_EVENT,
    CONF_START_OFFSET,
    CONF_USE_HA_TZ,
    DEFAULT_END_EVENT,
    DEFAULT_SCAN_INTERVAL,
    DEFAULT_START_EVENT,
    DOMAIN,
    SUN_HORIZONS,
    SUN_TRANSITS,
)
from .coordinates import CoordinateValidator
from .errors import ConfigurationError
from .models import AngleUnit

SUN_EVENTS: list[str] = [
    name for rise, set_, _ in SUN_HORIZONS for name in (rise, set_)
] + list(SUN_TRANSITS)


class SunPositionConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Sun Position."""

    VERSION = 1

    async def async_step_user(self, user_input: dict | None = None) -> FlowResult:
        """Handle the initial step for GPS coordinates and angle unit."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                coords = CoordinateValidator().validate(user_input)
            except ConfigurationError:
                errors["base"] = "invalid_coordinates"
            else:
                await self.async_set_unique_id(
                    f"{coords.latitude:.4f}_{coords.longitude:.4f}"
                )
                self._abort_if_unique_id_configured()
                return self.async_create_entry(title="Sun Position", data=user_input)

        hass_lat = self.hass.config.latitude
        hass_lon = self.hass.config.longitude

        schema = vol.Schema(
            {
                vol.Required(CONF_LAT, default=hass_lat): vol.Coerce(float),
                vol.Required(CONF_LON, default=hass_lon): vol.Coerce(float),
                vol.Optional(CONF_ANGLE_UNIT, default=AngleUnit.DEGREES.value): vol.In(
                    [unit.value for unit in AngleUnit]
                ),
            }
        )
        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    async def async_step_import(self, user_input: dict) -> FlowResult:
        """Support YAML import if needed in the future."""
        return await self.async_step_user(user_input)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        """Return the options flow handler."""
        return SunPositionOptionsFlow(config_entry)


class SunPositionOptionsFlow(config_entries.OptionsFlow):
    """Handle options for Sun Position."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self._entry = entry

    async def async_step_init(self, user_input: dict | None = None) -> FlowResult:
        """First step of options flow."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self._entry.options
        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_SCAN_INTERVAL,
                    default=options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
                ): vol.All(vol.Coerce(int), vol.Range(min=30, max=21600)),
                vol.Optional(
                    CONF_USE_HA_TZ,
                    default=options.get(CONF_USE_HA_TZ, True),
                ): bool,
                vol.Optional(
                    CONF_START_EVENT,
                    default=options.get(CONF_START_EVENT, DEFAULT_START_EVENT),
                ): vol.In(SUN_EVENTS),
                vol.Optional(
                    CONF_START_OFFSET,
                    default=options.get(CONF_START_OFFSET, 0),
                ): vol.All(vol.Coerce(float), vol.Range(min=-720, max=720)),
                vol.Optional(
                    CONF_END_EVENT,
                    default=options.get(CONF_END_EVENT, DEFAULT_END_EVENT),
                ): vol.In(SUN_EVENTS),
                vol.Optional(
                    CONF_END_OFFSET,
                    default=options.get(CONF_END_OFFSET, 0),
                ): vol.All(vol.Coerce(float), vol.Range(min=-720, max=720)),
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
