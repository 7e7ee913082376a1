"""Constants for Sun Position."""

from __future__ import annotations

# Domain and basic config
DOMAIN = "sun_position"
DEFAULT_SCAN_INTERVAL = 60  # seconds
CONF_SCAN_INTERVAL = "scan_interval"
CONF_LAT = "latitude"
CONF_LON = "longitude"
CONF_ANGLE_UNIT = "angle_unit"
CONF_USE_HA_TZ = "use_ha_timezone"

# Sun window options (start/end of "sun in sky")
CONF_START_EVENT = "start_event"
CONF_START_OFFSET = "start_offset"
CONF_END_EVENT = "end_event"
CONF_END_OFFSET = "end_offset"
DEFAULT_START_EVENT = "sunrise"
DEFAULT_END_EVENT = "sunset"

# Files and external resources
CACHE_DIR_NAME = ".skyfield"
DE421_FILE = "de421.bsp"

# Offset multipliers (seconds per offset unit)
MULTIPLIER_SECONDS = 1
MULTIPLIER_MINUTES = 60
MULTIPLIER_HOURS = 3600
MULTIPLIER_DAYS = 86400
DEFAULT_MULTIPLIER = MULTIPLIER_MINUTES

# Debounce windows for snapshots computed against "now" (milliseconds)
SUN_DEBOUNCE_MS = 4000
MOON_DEBOUNCE_MS = 3000

# Horizon used for moon rise/set (degrees)
MOON_HORIZON_DEG = 0.133

# Sun event names and the altitude (degrees) crossed by each rise/set pair
SUN_HORIZONS: tuple[tuple[str, str, float], ...] = (
    ("sunrise", "sunset", -0.833),
    ("sunrise_end", "sunset_start", -0.3),
    ("dawn", "dusk", -6.0),
    ("nautical_dawn", "nautical_dusk", -12.0),
    ("night_end", "night", -18.0),
    ("golden_hour_end", "golden_hour", 6.0),
    ("blue_hour_dawn_end", "blue_hour_dusk_start", -4.0),
)
SUN_TRANSITS = ("nadir", "solar_noon")

# Moon event table keys
MOON_RISE = "rise"
MOON_SET = "set"
MOON_ALWAYS_UP = "always_up"
MOON_ALWAYS_DOWN = "always_down"

# Expressions accepted by the truthy/falsy comparison operators
TRUE_EXPRESSIONS = frozenset({"true", "yes", "on", "ok", "enable", "enabled", "+", "1"})
FALSE_EXPRESSIONS = frozenset({"false", "no", "off", "nok", "disable", "disabled", "-", "0"})

# Delimiters for containSome / containEvery operands
CONTAIN_DELIMITERS = r"[,;|]"

WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Error keys with their default English text, used when no translation exists
ERR_LATITUDE = "latitude_missing"
ERR_LONGITUDE = "longitude_missing"
ERR_COORDINATES = "coordinates_missing"
ERR_NO_VALID_DAYS = "no_valid_days"
ERR_NO_VALID_WEEKDAY = "no_valid_weekday"
ERR_NO_VALID_TIME = "no_valid_time"
ERR_WRONG_TYPE = "wrong_type"
ERR_CANNOT_GET_TIME = "cannot_get_time"
ERR_NOT_EVALUABLE = "not_evaluable_property"
ERR_NOT_EVALUABLE_ADD = "not_evaluable_property_add"
ERR_NOT_A_NUMBER = "not_a_number"
ERR_UNKNOWN_OPERATOR = "unknown_compare_operator"
ERR_INVALID_DATE = "invalid_date"

DEFAULT_MESSAGES: dict[str, str] = {
    ERR_LATITUDE: "Latitude is missing or invalid",
    ERR_LONGITUDE: "Longitude is missing or invalid",
    ERR_COORDINATES: "Coordinates are not set",
    ERR_NO_VALID_DAYS: "No valid Days given",
    ERR_NO_VALID_WEEKDAY: "No valid day of week found",
    ERR_NO_VALID_TIME: "No valid time for {event} found",
    ERR_WRONG_TYPE: 'wrong type "{kind}"="{value}"',
    ERR_CANNOT_GET_TIME: "Can not get time for {kind}={value}",
    ERR_NOT_EVALUABLE: "Could not evaluate {kind}.{value}",
    ERR_NOT_EVALUABLE_ADD: 'Exception "{err}", on try to evaluate {kind}.{value}',
    ERR_NOT_A_NUMBER: "the value of {kind}.{value} is not a valid Number",
    ERR_UNKNOWN_OPERATOR: 'unknown compare operator "{operator}"',
    ERR_INVALID_DATE: 'could not parse "{value}" as a date',
}

# Data keys exposed by the coordinator
KEY_SUN_AZ = "sun_azimuth"
KEY_SUN_EL = "sun_altitude"
KEY_MOON_AZ = "moon_azimuth"
KEY_MOON_EL = "moon_altitude"
KEY_MOON_ILLUM = "moon_illumination"
KEY_MOON_DISTANCE = "moon_distance"
KEY_MOON_PHASE = "moon_phase"
KEY_START_TIME = "start_time"
KEY_END_TIME = "end_time"
KEY_SUN_IN_SKY = "sun_in_sky"
KEY_MOON_ABOVE_HORIZON = "moon_above_horizon"
KEY_SUNRISE = "sunrise"
KEY_SUNSET = "sunset"
KEY_MOONRISE = "moonrise"
KEY_MOONSET = "moonset"

# Suggested display precision defaults (used in sensor.py)
PRECISION_AZ = 2
PRECISION_EL = 2
PRECISION_ILLUM = 1
PRECISION_DISTANCE = 0

# Services
SERVICE_RESOLVE_TIME = "resolve_time"
SERVICE_COMPARE = "compare"
