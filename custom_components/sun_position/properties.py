"""Resolution of property descriptors to numbers, times, dates and values.

Every resolver dispatches on the descriptor's ``SourceKind``. Time and
value resolution report failures on the result or in the log; date and
output resolution raise ``EvaluationError`` with the underlying cause chained.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, tzinfo
import logging
import math
from typing import Any, assert_never

from homeassistant.util import dt as dt_util

from .const import (
    ERR_CANNOT_GET_TIME,
    ERR_INVALID_DATE,
    ERR_NO_VALID_DAYS,
    ERR_NO_VALID_WEEKDAY,
    ERR_NOT_A_NUMBER,
    ERR_NOT_EVALUABLE,
    ERR_NOT_EVALUABLE_ADD,
    ERR_WRONG_TYPE,
)
from .datetime_helpers import (
    format_date,
    local_midnight,
    normalize_date,
    offset_delta,
    parse_date_from_format,
    parse_time_of_text,
    parse_weekdays,
    special_day_of_month,
)
from .errors import (
    EvaluationError,
    FormatError,
    NoValidWeekdayError,
    Translator,
    default_translate,
)
from .event_time import EventTimeResolver
from .models import (
    ContextLookup,
    PropertyDescriptor,
    ResolvedTime,
    SourceKind,
    coerce_kind,
)
from .position import PositionCalculator

_LOGGER = logging.getLogger(__name__)

# Called with (kind, value, result, operand) after a value was looked up; the
# return value replaces the result.
type ValueHook = Callable[[SourceKind, Any, Any, int], Any]

# Kinds whose value can change between evaluations.
_VOLATILE_KINDS = frozenset(
    {
        SourceKind.NUM,
        SourceKind.STR,
        SourceKind.MSG_PAYLOAD,
        SourceKind.MSG_VALUE,
        SourceKind.MSG_TS,
        SourceKind.MSG_LC,
        SourceKind.MSG,
        SourceKind.STATE,
        SourceKind.ATTRIBUTE,
        SourceKind.TEMPLATE,
        SourceKind.ENV,
    }
)


def _to_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class NumericPropertyResolver:
    """Resolves offsets, azimuth limits and other numeric properties."""

    def __init__(self, translate: Translator = default_translate) -> None:
        self._translate = translate

    def resolve(
        self,
        kind: SourceKind | str | None,
        value: Any,
        lookup: ContextLookup,
        default: float | None = None,
    ) -> float | None:
        """Resolve a numeric property.

        Args:
            kind: Source kind; unset reads ``value`` as a literal number.
            value: Literal or reference, depending on ``kind``.
            lookup: Resolves message and context references.
            default: Returned for kind ``none`` and non-numeric unset kinds.

        Returns:
            The number, or ``default``.

        Raises:
            EvaluationError: If the referenced value is missing or not a
                finite number.
        """
        if not kind:
            number = _to_number(value)
            return default if number is None else number

        source = coerce_kind(kind)
        if source is SourceKind.NONE:
            return default
        if source is SourceKind.NUM:
            data = value
        else:
            data = lookup.evaluate(source, value)

        params = {"kind": source, "value": value}
        if data is None:
            raise EvaluationError(self._translate(ERR_NOT_EVALUABLE, params))
        number = _to_number(data)
        if number is None:
            raise EvaluationError(self._translate(ERR_NOT_A_NUMBER, params))
        return number


class TimePropertyResolver:
    """Resolves a descriptor to a point in time.

    Never raises for resolution failures: the result always carries a value
    (falling back to "now") and the failure, if any. Coordinate errors are
    not resolution failures and propagate.
    """

    def __init__(
        self,
        sun_times: EventTimeResolver,
        moon_times: EventTimeResolver,
        numbers: NumericPropertyResolver,
        time_zone: tzinfo,
        translate: Translator = default_translate,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        self._sun_times = sun_times
        self._moon_times = moon_times
        self._numbers = numbers
        self.time_zone = time_zone
        self._translate = translate
        self._clock = clock

    def offset(
        self, descriptor: PropertyDescriptor, lookup: ContextLookup
    ) -> timedelta:
        """Return the descriptor's offset as a timedelta."""
        amount = self._numbers.resolve(
            descriptor.offset_kind, descriptor.offset, lookup, 0
        )
        multiplier = _to_number(descriptor.multiplier)
        return offset_delta(amount or 0, 1 if multiplier is None else multiplier)

    def resolve(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> ResolvedTime:
        """Resolve ``descriptor`` relative to ``now`` (default: the clock)."""
        now = now or self._clock()
        params = {"kind": descriptor.kind, "value": descriptor.value}

        try:
            weekdays = parse_weekdays(descriptor.allowed_weekdays)
        except ValueError:
            weekdays = frozenset()
        if weekdays is not None and not weekdays:
            return ResolvedTime(
                value=now,
                failure=EvaluationError(self._translate(ERR_NO_VALID_DAYS, {})),
            )

        try:
            kind = coerce_kind(descriptor.kind)
        except EvaluationError as err:
            failure = EvaluationError(self._translate(ERR_WRONG_TYPE, params))
            failure.__cause__ = err
            return ResolvedTime(value=now, failure=failure)

        try:
            result = self._dispatch(kind, descriptor, lookup, now, weekdays)
        except NoValidWeekdayError as err:
            _LOGGER.debug("No allowed weekday for %s: %s", descriptor, err)
            failure = NoValidWeekdayError(self._translate(ERR_NO_VALID_WEEKDAY, {}))
            failure.__cause__ = err
            return ResolvedTime(value=now, failure=failure, is_fixed=True)
        except EvaluationError as err:
            _LOGGER.debug("Could not resolve time for %s: %s", descriptor, err)
            return ResolvedTime(
                value=now, failure=err, is_fixed=kind not in _VOLATILE_KINDS
            )

        if result is None:
            return ResolvedTime(
                value=now,
                failure=EvaluationError(self._translate(ERR_CANNOT_GET_TIME, params)),
            )
        return result

    def _dispatch(
        self,
        kind: SourceKind,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime,
        weekdays: frozenset[int] | None,
    ) -> ResolvedTime | None:
        roll = descriptor.roll_forward
        params = {"kind": kind, "value": descriptor.value}

        match kind:
            case SourceKind.NOW:
                return ResolvedTime(value=now)
            case SourceKind.DATE_SPECIFIC:
                base = now
            case SourceKind.DAY_OF_MONTH:
                local = now.astimezone(self.time_zone)
                day = special_day_of_month(local.year, local.month, descriptor.value)
                if day is None:
                    return None
                base = local_midnight(day, self.time_zone)
            case SourceKind.ENTERED | SourceKind.DATE_ENTERED:
                text = "" if descriptor.value is None else str(descriptor.value)
                parsed = parse_time_of_text(text, now, self.time_zone)
                if parsed is None:
                    raise FormatError(self._translate(ERR_INVALID_DATE, params))
                base = parsed
            case SourceKind.SUN_TIME:
                return self._sun_times.resolve(
                    str(descriptor.value),
                    self.offset(descriptor, lookup),
                    now,
                    roll,
                    weekdays,
                )
            case SourceKind.MOON_TIME:
                return self._moon_times.resolve(
                    str(descriptor.value),
                    self.offset(descriptor, lookup),
                    now,
                    roll,
                    weekdays,
                )
            case SourceKind.NONE | SourceKind.SUN_CALC | SourceKind.MOON_CALC:
                raise EvaluationError(self._translate(ERR_WRONG_TYPE, params))
            case (
                SourceKind.NUM
                | SourceKind.STR
                | SourceKind.JSON
                | SourceKind.MSG_PAYLOAD
                | SourceKind.MSG_VALUE
                | SourceKind.MSG_TS
                | SourceKind.MSG_LC
                | SourceKind.MSG
                | SourceKind.STATE
                | SourceKind.ATTRIBUTE
                | SourceKind.TEMPLATE
                | SourceKind.ENV
            ):
                raw = lookup.evaluate(kind, descriptor.value)
                if raw is None or raw == "":
                    raise EvaluationError(self._translate(ERR_NOT_EVALUABLE, params))
                value = parse_date_from_format(
                    raw, descriptor.format, now, self.time_zone
                )
                return ResolvedTime(
                    value=normalize_date(
                        value,
                        self.offset(descriptor, lookup),
                        now,
                        self.time_zone,
                        roll,
                        weekdays,
                    ),
                    is_fixed=kind is SourceKind.JSON,
                )
            case _:
                assert_never(kind)

        return ResolvedTime(
            value=normalize_date(
                base,
                self.offset(descriptor, lookup),
                now,
                self.time_zone,
                roll,
                weekdays,
            )
        )


class DatePropertyResolver:
    """Resolves a descriptor to a datetime, raising on failure.

    Offsets apply, roll-forward and weekday filters do not.
    """

    def __init__(
        self, times: TimePropertyResolver, translate: Translator = default_translate
    ) -> None:
        self._times = times
        self._translate = translate

    def resolve(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> datetime:
        """Resolve ``descriptor`` to a datetime.

        An unset or ``none`` kind means "now".

        Raises:
            EvaluationError: Wrapping whatever made the resolution fail.
        """
        plain = replace(descriptor, roll_forward=None, allowed_weekdays=None)
        if not descriptor.kind or descriptor.kind == SourceKind.NONE:
            plain = replace(plain, kind=SourceKind.NOW)
        try:
            return self._times.resolve(plain, lookup, now).raise_for_error()
        except EvaluationError as err:
            raise EvaluationError(
                self._translate(
                    ERR_NOT_EVALUABLE_ADD,
                    {"err": err, "kind": descriptor.kind, "value": descriptor.value},
                )
            ) from err


class OutputPropertyResolver:
    """Produces output values: formatted times, snapshots or raw lookups."""

    def __init__(
        self,
        dates: DatePropertyResolver,
        positions: PositionCalculator,
        translate: Translator = default_translate,
    ) -> None:
        self._dates = dates
        self._positions = positions
        self._translate = translate

    def resolve(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
    ) -> Any:
        """Resolve ``descriptor`` to an output value.

        Time kinds are formatted with ``descriptor.format`` (see
        ``format_date``). A literal ``none`` descriptor without a value gives
        the formatted current time shifted by the offset.

        Raises:
            EvaluationError: Wrapping whatever made the resolution fail.
        """
        tz = self._positions.time_zone
        try:
            kind = coerce_kind(descriptor.kind)
            match kind:
                case SourceKind.NONE:
                    if descriptor.value not in (None, ""):
                        return descriptor.value
                    when = self._dates.resolve(
                        replace(descriptor, kind=SourceKind.DATE_SPECIFIC), lookup, now
                    )
                    return format_date(when, descriptor.format, tz)
                case SourceKind.NOW:
                    return format_date(self._dates.resolve(descriptor, lookup, now), None, tz)
                case SourceKind.SUN_CALC:
                    return self._positions.sun_snapshot(
                        lookup.evaluate(SourceKind.MSG_TS, None)
                    )
                case SourceKind.MOON_CALC:
                    return self._positions.moon_snapshot(
                        lookup.evaluate(SourceKind.MSG_TS, None)
                    )
                case (
                    SourceKind.DATE_SPECIFIC
                    | SourceKind.DAY_OF_MONTH
                    | SourceKind.ENTERED
                    | SourceKind.DATE_ENTERED
                    | SourceKind.SUN_TIME
                    | SourceKind.MOON_TIME
                ):
                    when = self._dates.resolve(descriptor, lookup, now)
                    return format_date(when, descriptor.format, tz)
                case (
                    SourceKind.NUM
                    | SourceKind.STR
                    | SourceKind.JSON
                    | SourceKind.MSG_PAYLOAD
                    | SourceKind.MSG_VALUE
                    | SourceKind.MSG_TS
                    | SourceKind.MSG_LC
                    | SourceKind.MSG
                    | SourceKind.STATE
                    | SourceKind.ATTRIBUTE
                    | SourceKind.TEMPLATE
                    | SourceKind.ENV
                ):
                    return lookup.evaluate(kind, descriptor.value)
                case _:
                    assert_never(kind)
        except EvaluationError as err:
            raise EvaluationError(
                self._translate(
                    ERR_NOT_EVALUABLE_ADD,
                    {"err": err, "kind": descriptor.kind, "value": descriptor.value},
                )
            ) from err


class ValuePropertyResolver:
    """Resolves a descriptor to its raw value, for comparisons."""

    def __init__(
        self,
        times: TimePropertyResolver,
        positions: PositionCalculator,
        translate: Translator = default_translate,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        self._times = times
        self._positions = positions
        self._translate = translate
        self._clock = clock

    def resolve(
        self,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime | None = None,
        hook: ValueHook | None = None,
        operand: int = 1,
    ) -> Any:
        """Return the value ``descriptor`` refers to, or None.

        ``dayOfMonth`` gives whether today is the configured day. Lookup
        failures are logged, not raised. ``hook``, when given, receives the
        raw result and returns the value to use instead.
        """
        now = now or self._clock()
        try:
            kind = coerce_kind(descriptor.kind)
        except EvaluationError as err:
            _LOGGER.error("%s", err)
            return None
        if kind is SourceKind.NONE:
            return None

        try:
            result = self._value(kind, descriptor, lookup, now)
        except EvaluationError as err:
            _LOGGER.debug("Lookup of %s.%s failed: %s", kind, descriptor.value, err)
            result = None

        if hook is not None:
            return hook(kind, descriptor.value, result, operand)
        if result is None:
            _LOGGER.error(
                "%s",
                self._translate(
                    ERR_NOT_EVALUABLE, {"kind": kind, "value": descriptor.value}
                ),
            )
        return result

    def _value(
        self,
        kind: SourceKind,
        descriptor: PropertyDescriptor,
        lookup: ContextLookup,
        now: datetime,
    ) -> Any:
        match kind:
            case SourceKind.NONE:
                return None
            case SourceKind.NOW:
                return now
            case SourceKind.DAY_OF_MONTH:
                local = now.astimezone(self._times.time_zone)
                day = special_day_of_month(local.year, local.month, descriptor.value)
                return day is not None and day == local.date()
            case (
                SourceKind.DATE_SPECIFIC
                | SourceKind.ENTERED
                | SourceKind.DATE_ENTERED
                | SourceKind.SUN_TIME
                | SourceKind.MOON_TIME
            ):
                return self._times.resolve(descriptor, lookup, now).raise_for_error()
            case SourceKind.SUN_CALC:
                return self._positions.sun_snapshot(now)
            case SourceKind.MOON_CALC:
                return self._positions.moon_snapshot(now)
            case SourceKind.NUM:
                number = _to_number(descriptor.value)
                if number is None:
                    raise EvaluationError(
                        self._translate(
                            ERR_NOT_A_NUMBER, {"kind": kind, "value": descriptor.value}
                        )
                    )
                return number
            case (
                SourceKind.STR
                | SourceKind.JSON
                | SourceKind.MSG_PAYLOAD
                | SourceKind.MSG_VALUE
                | SourceKind.MSG_TS
                | SourceKind.MSG_LC
                | SourceKind.MSG
                | SourceKind.STATE
                | SourceKind.ATTRIBUTE
                | SourceKind.TEMPLATE
                | SourceKind.ENV
            ):
                return lookup.evaluate(kind, descriptor.value)
            case _:
                assert_never(kind)
