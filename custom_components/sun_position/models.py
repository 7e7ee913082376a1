"""Data model definitions shared by the resolvers and the position calculator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from .const import DEFAULT_MULTIPLIER
from .errors import EvaluationError, SunPositionError


class AngleUnit(StrEnum):
    """Unit used for every directional output of a configuration."""

    DEGREES = "deg"
    RADIANS = "rad"


class SourceKind(StrEnum):
    """Closed set of places a property value can come from."""

    NONE = "none"
    NOW = "date"
    DATE_SPECIFIC = "dateSpecific"
    ENTERED = "entered"
    DATE_ENTERED = "dateEntered"
    DAY_OF_MONTH = "dayOfMonth"
    SUN_TIME = "pdsTime"
    MOON_TIME = "pdmTime"
    SUN_CALC = "pdsCalcData"
    MOON_CALC = "pdmCalcData"
    NUM = "num"
    STR = "str"
    JSON = "json"
    MSG_PAYLOAD = "msgPayload"
    MSG_VALUE = "msgValue"
    MSG_TS = "msgTs"
    MSG_LC = "msgLc"
    MSG = "msg"
    STATE = "state"
    ATTRIBUTE = "attribute"
    TEMPLATE = "template"
    ENV = "env"


class Operator(StrEnum):
    """Comparison operators understood by the comparison engine."""

    TRUE = "true"
    FALSE = "false"
    NULL = "null"
    NOT_NULL = "nnull"
    EMPTY = "empty"
    NOT_EMPTY = "nempty"
    TRUE_EXPR = "true_expr"
    FALSE_EXPR = "false_expr"
    NOT_TRUE_EXPR = "ntrue_expr"
    NOT_FALSE_EXPR = "nfalse_expr"
    EQUAL = "equal"
    NOT_EQUAL = "nequal"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    CONTAIN = "contain"
    CONTAIN_SOME = "containSome"
    CONTAIN_EVERY = "containEvery"


@dataclass(frozen=True, slots=True)
class Coordinates:
    """Observer position in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    """Where a value comes from and how it is shifted once resolved.

    ``multiplier`` is the number of seconds one offset unit stands for.
    An unset ``offset_kind`` reads ``offset`` as a literal number.
    ``roll_forward`` is how many occurrences ahead to look when the resolved
    time already lies in the past. ``allowed_weekdays`` is ``None`` or ``"*"``
    for any day, otherwise a string or iterable of weekdays (0 = Monday).
    """

    kind: SourceKind | str
    value: Any = None
    format: str | None = None
    offset_kind: SourceKind | str | None = None
    offset: Any = 0
    multiplier: float = DEFAULT_MULTIPLIER
    roll_forward: int | None = None
    allowed_weekdays: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PropertyDescriptor:
        """Build a descriptor from service or config data."""
        return cls(
            kind=data.get("type", SourceKind.NONE),
            value=data.get("value"),
            format=data.get("format"),
            offset_kind=data.get("offset_type"),
            offset=data.get("offset", 0),
            multiplier=data.get("multiplier", DEFAULT_MULTIPLIER),
            roll_forward=data.get("next"),
            allowed_weekdays=data.get("days"),
        )


@dataclass(slots=True)
class ResolvedTime:
    """A resolved timestamp, never empty, with an optional failure."""

    value: datetime
    failure: SunPositionError | None = None
    is_fixed: bool = True

    @property
    def error(self) -> str | None:
        return None if self.failure is None else str(self.failure)

    def raise_for_error(self) -> datetime:
        """Return the value, or raise the failure recorded during resolution."""
        if self.failure is not None:
            raise self.failure
        return self.value


@dataclass(frozen=True, slots=True)
class SunPosition:
    azimuth: float  # radians, from north
    altitude: float  # radians


@dataclass(frozen=True, slots=True)
class MoonPosition:
    azimuth: float  # radians, from north
    altitude: float  # radians
    distance: float  # km
    parallactic_angle: float  # radians


@dataclass(frozen=True, slots=True)
class MoonIllumination:
    fraction: float  # illuminated fraction of the disc, 0..1
    phase: float  # position in the lunar cycle, 0 = new, 0.5 = full
    angle: float  # midpoint angle of the bright limb, radians


@dataclass(frozen=True, slots=True)
class MoonPhase:
    """One entry of the moon phase catalog, optionally annotated with a reading."""

    name: str
    emoji: str
    code: str
    weight: float
    value: float | None = None
    angle: float | None = None


@dataclass(frozen=True, slots=True)
class MoonIlluminationData:
    fraction: float
    angle: float
    zenith_angle: float
    phase: MoonPhase


@dataclass(frozen=True, slots=True)
class MoonData:
    distance: float
    parallactic_angle: float
    illumination: MoonIlluminationData


@dataclass(frozen=True, slots=True)
class PositionSnapshot:
    """Sun or moon position at one instant, in the configured angle unit."""

    timestamp: datetime
    latitude: float
    longitude: float
    angle_unit: AngleUnit
    azimuth: float
    altitude: float
    azimuth_degrees: float
    altitude_degrees: float
    azimuth_radians: float
    altitude_radians: float
    event_table: Mapping[str, Any] | None = None
    moon: MoonData | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a plain dict, with datetimes as ISO strings."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "angle_unit": str(self.angle_unit),
            "azimuth": self.azimuth,
            "altitude": self.altitude,
            "azimuth_degrees": self.azimuth_degrees,
            "altitude_degrees": self.altitude_degrees,
            "azimuth_radians": self.azimuth_radians,
            "altitude_radians": self.altitude_radians,
        }
        if self.event_table is not None:
            data["times"] = {
                key: value.isoformat() if isinstance(value, datetime) else value
                for key, value in self.event_table.items()
            }
        if self.moon is not None:
            illum = self.moon.illumination
            data["distance"] = self.moon.distance
            data["parallactic_angle"] = self.moon.parallactic_angle
            data["illumination"] = {
                "fraction": illum.fraction,
                "angle": illum.angle,
                "zenith_angle": illum.zenith_angle,
                "phase": {
                    "name": illum.phase.name,
                    "emoji": illum.phase.emoji,
                    "code": illum.phase.code,
                    "weight": illum.phase.weight,
                    "value": illum.phase.value,
                    "angle": illum.phase.angle,
                },
            }
        return data


@dataclass(slots=True)
class AzimuthRule:
    """Azimuth range whose bounds are resolved per evaluation."""

    low_kind: SourceKind | str = SourceKind.NONE
    low: Any = None
    high_kind: SourceKind | str = SourceKind.NONE
    high: Any = None


@dataclass(slots=True)
class SunPositionResult:
    """Outcome of one evaluation of the sun-position rules."""

    snapshot: PositionSnapshot
    pos: list[bool] = field(default_factory=list)
    pos_changed: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None
    sun_in_sky: bool | None = None
    errors: list[str] = field(default_factory=list)


class ContextLookup(Protocol):
    """Resolves message, context and expression references."""

    def evaluate(self, kind: SourceKind | str, value: Any) -> Any:
        """Return the referenced value, or raise EvaluationError."""


def coerce_kind(kind: SourceKind | str | None) -> SourceKind:
    """Return the SourceKind for a raw kind string.

    An empty or missing kind maps to ``SourceKind.NONE``.
    """
    if isinstance(kind, SourceKind):
        return kind
    if not kind:
        return SourceKind.NONE
    try:
        return SourceKind(kind)
    except ValueError as err:
        raise EvaluationError(f'unknown source type "{kind}"') from err
