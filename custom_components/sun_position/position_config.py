"""Per-configuration facade wiring caches, resolvers and the calculator."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, tzinfo
import logging
from typing import Any

from homeassistant.util import dt as dt_util

from .cache import AstroDayCache
from .comparison import ComparisonEngine
from .const import MOON_ALWAYS_DOWN, MOON_ALWAYS_UP
from .coordinates import CoordinateValidator
from .ephemeris import Ephemeris
from .errors import Translator, UnknownOperatorError, default_translate
from .event_time import EventTimeResolver
from .models import (
    AngleUnit,
    AzimuthRule,
    ContextLookup,
    Coordinates,
    Operator,
    PositionSnapshot,
    PropertyDescriptor,
    ResolvedTime,
    SourceKind,
)
from .position import PositionCalculator
from .properties import (
    DatePropertyResolver,
    NumericPropertyResolver,
    OutputPropertyResolver,
    TimePropertyResolver,
    ValueHook,
    ValuePropertyResolver,
)
from .rules import SunPositionEvaluator

_LOGGER = logging.getLogger(__name__)


class PositionConfig:
    """One observer configuration: coordinates, angle unit and time zone.

    Owns the sun and moon day caches and exposes every resolution and
    snapshot entry point. Coordinates are validated again before each
    astronomical computation, so they may be changed at any time with
    ``set_coordinates``.
    """

    def __init__(
        self,
        ephemeris: Ephemeris,
        latitude: float | None = None,
        longitude: float | None = None,
        angle_unit: AngleUnit | str = AngleUnit.DEGREES,
        time_zone: tzinfo = UTC,
        translate: Translator = default_translate,
        clock: Callable[[], datetime] = dt_util.utcnow,
        on_unknown_operator: Callable[[UnknownOperatorError], None] | None = None,
    ) -> None:
        """Initialize the configuration.

        Args:
            ephemeris: Source of event tables and raw positions.
            latitude: Observer latitude in degrees.
            longitude: Observer longitude in degrees.
            angle_unit: Unit of every reported angle.
            time_zone: Zone of the local day and of naive input datetimes.
            translate: Builds user-facing error text from a key and params.
            clock: Returns the current instant.
            on_unknown_operator: Receives unknown comparison operator errors.
        """
        self.ephemeris = ephemeris
        self.latitude = latitude
        self.longitude = longitude
        self.time_zone = time_zone
        self.translate = translate
        self._clock = clock
        self._validator = CoordinateValidator(translate)

        self.sun_cache = AstroDayCache(
            "sun", self._load_sun_events, time_zone=time_zone
        )
        self.moon_cache = AstroDayCache(
            "moon",
            self._load_moon_events,
            defaults={MOON_ALWAYS_UP: False, MOON_ALWAYS_DOWN: False},
        )
        self.sun_times = EventTimeResolver("sun", self.sun_cache, time_zone, translate)
        self.moon_times = EventTimeResolver(
            "moon", self.moon_cache, time_zone, translate
        )
        self.positions = PositionCalculator(
            ephemeris,
            self.coordinates,
            self.sun_cache,
            self.moon_cache,
            time_zone,
            AngleUnit(angle_unit),
            clock,
        )
        self.numbers = NumericPropertyResolver(translate)
        self.times = TimePropertyResolver(
            self.sun_times, self.moon_times, self.numbers, time_zone, translate, clock
        )
        self.dates = DatePropertyResolver(self.times, translate)
        self.outputs = OutputPropertyResolver(self.dates, self.positions, translate)
        self.values = ValuePropertyResolver(
            self.times, self.positions, translate, clock
        )
        self.comparison = ComparisonEngine(
            self.values, translate, on_unknown_operator
        )

    @property
    def angle_unit(self) -> AngleUnit:
        return self.positions.angle_unit

    def set_coordinates(
        self,
        latitude: float,
        longitude: float,
        angle_unit: AngleUnit | str | None = None,
    ) -> Coordinates:
        """Validate and store new coordinates, dropping cached event tables.

        Raises:
            ConfigurationError: If the coordinates are invalid.
        """
        coords = self._validator.validate(Coordinates(latitude, longitude))
        self.latitude, self.longitude = coords.latitude, coords.longitude
        if angle_unit is not None:
            self.positions.angle_unit = AngleUnit(angle_unit)
        self.sun_cache.invalidate()
        self.moon_cache.invalidate()
        _LOGGER.debug(
            "Coordinates set to %.4f/%.4f (%s)",
            coords.latitude,
            coords.longitude,
            self.angle_unit,
        )
        return coords

    def coordinates(self, override: Coordinates | None = None) -> Coordinates:
        """Return validated coordinates, the override or the configured ones.

        Raises:
            ConfigurationError: If the coordinates are missing or invalid.
        """
        if override is not None:
            return self._validator.validate(override)
        return self._validator.validate(
            {"latitude": self.latitude, "longitude": self.longitude}
        )

    def _load_sun_events(self, when: datetime) -> Mapping[str, Any]:
        coords = self.coordinates()
        return self.ephemeris.sun_events(when, coords.latitude, coords.longitude)

    def _load_moon_events(self, when: datetime) -> Mapping[str, Any]:
        coords = self.coordinates()
        return self.ephemeris.moon_events(when, coords.latitude, coords.longitude, True)

    def get_sun_times(self, now: datetime | None = None) -> dict[str, Any]:
        """Return today's solar event table."""
        today, _ = self.sun_cache.ensure_fresh(now or self._clock())
        return dict(today)

    def get_moon_times(self, now: datetime | None = None) -> dict[str, Any]:
        """Return today's lunar event table."""
        today, _ = self.moon_cache.ensure_fresh(now or self._clock())
        return dict(today)

    def get_sun_calc(
        self,
        instant: Any = None,
        include_times: bool = True,
        coordinates: Coordinates | None = None,
    ) -> PositionSnapshot:
        return self.positions.sun_snapshot(instant, include_times, coordinates)

    def get_moon_calc(
        self,
        instant: Any = None,
        include_times: bool = True,
        coordinates: Coordinates | None = None,
    ) -> PositionSnapshot:
        return self.positions.moon_snapshot(instant, include_times, coordinates)

    def get_float_prop(
        self,
        kind: SourceKind | str | None,
        value: Any,
        lookup: ContextLookup,
        default: float | None = None,
    ) -> float | None:
        return self.numbers.resolve(kind, value, lookup, default)

    def get_time_prop(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> ResolvedTime:
        return self.times.resolve(descriptor, lookup, now)

    def get_date_from_prop(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> datetime:
        return self.dates.resolve(descriptor, lookup, now)

    def get_out_data_prop(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> Any:
        return self.outputs.resolve(descriptor, lookup, now)

    def get_prop_value(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
        hook: ValueHook | None = None,
    ) -> Any:
        return self.values.resolve(descriptor, lookup, now, hook)

    def compare_prop_value(
        self,
        a: PropertyDescriptor,
        operator: Operator | str,
        b: PropertyDescriptor | None,
        lookup: ContextLookup,
        now: datetime | None = None,
        hook: ValueHook | None = None,
    ) -> bool:
        return self.comparison.compare(a, operator, b, lookup, now, hook)

    def sun_position_evaluator(
        self,
        rules: Sequence[AzimuthRule] = (),
        start: PropertyDescriptor | None = None,
        end: PropertyDescriptor | None = None,
    ) -> SunPositionEvaluator:
        """Build an evaluator for azimuth rules and a start/end window."""
        return SunPositionEvaluator(
            self.positions, self.times, self.numbers, rules, start, end, self._clock
        )
