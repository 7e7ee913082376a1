"""Services exposing time resolution and value comparison."""

from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import ServiceValidationError
import homeassistant.helpers.config_validation as cv

from .const import (
    DOMAIN,
    MULTIPLIER_DAYS,
    MULTIPLIER_HOURS,
    MULTIPLIER_MINUTES,
    MULTIPLIER_SECONDS,
    SERVICE_COMPARE,
    SERVICE_RESOLVE_TIME,
)
from .context import HassContextLookup
from .coordinator import SunPositionCoordinator
from .datetime_helpers import format_date
from .errors import SunPositionError
from .models import Operator, PropertyDescriptor, SourceKind
from .position_config import PositionConfig

ATTR_CONFIG_ENTRY_ID = "config_entry_id"
ATTR_VARIABLES = "variables"
ATTR_OPERATOR = "operator"

_MULTIPLIERS = {
    MULTIPLIER_SECONDS,
    MULTIPLIER_MINUTES,
    MULTIPLIER_HOURS,
    MULTIPLIER_DAYS,
}

DESCRIPTOR_SCHEMA = vol.Schema(
    {
        vol.Required("type"): vol.In([kind.value for kind in SourceKind]),
        vol.Optional("value"): vol.Any(str, int, float, bool, dict, list, None),
        vol.Optional("format"): cv.string,
        vol.Optional("offset_type"): vol.In([kind.value for kind in SourceKind]),
        vol.Optional("offset", default=0): vol.Any(str, int, float),
        vol.Optional("multiplier", default=MULTIPLIER_MINUTES): vol.All(
            vol.Coerce(int), vol.In(_MULTIPLIERS)
        ),
        vol.Optional("next"): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional("days"): vol.Any(str, [vol.Any(int, str)]),
    }
)

RESOLVE_TIME_SCHEMA = DESCRIPTOR_SCHEMA.extend(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Optional(ATTR_VARIABLES, default=dict): dict,
    }
)

COMPARE_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Required("a"): DESCRIPTOR_SCHEMA,
        vol.Required(ATTR_OPERATOR): cv.string,
        vol.Optional("b"): DESCRIPTOR_SCHEMA,
        vol.Optional(ATTR_VARIABLES, default=dict): dict,
    }
)


def _get_config(hass: HomeAssistant, entry_id: str | None) -> PositionConfig:
    coordinators: dict[str, SunPositionCoordinator] = hass.data.get(DOMAIN, {})
    if entry_id is not None:
        coordinator = coordinators.get(entry_id)
    else:
        coordinator = next(iter(coordinators.values()), None)
    if coordinator is None or coordinator.config is None:
        raise ServiceValidationError(
            translation_domain=DOMAIN, translation_key="not_loaded"
        )
    return coordinator.config


async def async_resolve_time(call: ServiceCall) -> ServiceResponse:
    """Resolve a time descriptor and return the value with its error."""
    hass = call.hass
    config = _get_config(hass, call.data.get(ATTR_CONFIG_ENTRY_ID))
    lookup = HassContextLookup(hass, call.data[ATTR_VARIABLES])
    descriptor = PropertyDescriptor.from_dict(dict(call.data))

    def _resolve() -> dict[str, Any]:
        resolved = config.get_time_prop(descriptor, lookup)
        response: dict[str, Any] = {
            "value": resolved.value.isoformat(),
            "error": resolved.error,
            "is_fixed": resolved.is_fixed,
        }
        if descriptor.format and not resolved.error:
            response["formatted"] = format_date(
                resolved.value, descriptor.format, config.time_zone
            )
        return response

    try:
        return await hass.async_add_executor_job(_resolve)
    except SunPositionError as err:
        raise ServiceValidationError(str(err)) from err


async def async_compare(call: ServiceCall) -> ServiceResponse:
    """Compare two descriptors with an operator."""
    hass = call.hass
    config = _get_config(hass, call.data.get(ATTR_CONFIG_ENTRY_ID))
    lookup = HassContextLookup(hass, call.data[ATTR_VARIABLES])
    a = PropertyDescriptor.from_dict(call.data["a"])
    b = PropertyDescriptor.from_dict(call.data["b"]) if "b" in call.data else None
    operator: Operator | str = call.data[ATTR_OPERATOR]

    def _compare() -> bool:
        return config.compare_prop_value(a, operator, b, lookup)

    try:
        result = await hass.async_add_executor_job(_compare)
    except SunPositionError as err:
        raise ServiceValidationError(str(err)) from err
    return {"result": result}


def async_register_services(hass: HomeAssistant) -> None:
    """Register the integration's services once."""
    if hass.services.has_service(DOMAIN, SERVICE_RESOLVE_TIME):
        return
    hass.services.async_register(
        DOMAIN,
        SERVICE_RESOLVE_TIME,
        async_resolve_time,
        schema=RESOLVE_TIME_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_COMPARE,
        async_compare,
        schema=COMPARE_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
