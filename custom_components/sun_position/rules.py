"""Azimuth range rules and the sun-in-sky window."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
import logging

from homeassistant.util import dt as dt_util

from .errors import EvaluationError
from .models import (
    AzimuthRule,
    ContextLookup,
    Coordinates,
    PropertyDescriptor,
    SourceKind,
    SunPositionResult,
)
from .position import PositionCalculator
from .properties import NumericPropertyResolver, TimePropertyResolver

_LOGGER = logging.getLogger(__name__)


def check_limits(value: float, low: float | None, high: float | None) -> bool:
    """Return whether ``value`` lies strictly between ``low`` and ``high``.

    A range with ``low > high`` wraps through zero, so 300..60 covers north.
    A missing bound leaves that side open; no bounds at all never match.
    """
    if low is not None and low >= 0:
        if high is not None and high >= 0:
            if high > low:
                return low < value < high
            return value > low or value < high
        return value > low
    if high is not None:
        return value < high
    return False


class SunPositionEvaluator:
    """Evaluates azimuth rules and an optional start/end window for "now".

    Remembers the in-range flags of the previous evaluation to report which
    rules changed.
    """

    def __init__(
        self,
        positions: PositionCalculator,
        times: TimePropertyResolver,
        numbers: NumericPropertyResolver,
        rules: Sequence[AzimuthRule] = (),
        start: PropertyDescriptor | None = None,
        end: PropertyDescriptor | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        self._positions = positions
        self._times = times
        self._numbers = numbers
        self.rules = list(rules)
        self.start = start
        self.end = end
        self._clock = clock
        self._previous: list[bool] = []

    def _bound(
        self, kind: SourceKind | str, value: object, lookup: ContextLookup
    ) -> float | None:
        if kind == SourceKind.NONE:
            return None
        try:
            return self._numbers.resolve(kind, value, lookup, 0)
        except EvaluationError as err:
            _LOGGER.debug("Ignoring azimuth limit %s.%s: %s", kind, value, err)
            return None

    def _window_time(
        self,
        descriptor: PropertyDescriptor | None,
        lookup: ContextLookup,
        now: datetime,
        errors: list[str],
    ) -> datetime | None:
        if descriptor is None or descriptor.kind == SourceKind.NONE:
            return None
        resolved = self._times.resolve(descriptor, lookup, now)
        if resolved.error:
            _LOGGER.error("%s", resolved.error)
            errors.append(resolved.error)
            return None
        return resolved.value

    def evaluate(
        self,
        lookup: ContextLookup,
        now: datetime | None = None,
        coordinates: Coordinates | None = None,
    ) -> SunPositionResult:
        """Compute the sun snapshot and evaluate every rule against it.

        Args:
            lookup: Resolves references in window times and azimuth limits.
            now: Evaluation instant, defaults to the clock.
            coordinates: Observer overriding the configured one.

        Returns:
            The snapshot with the rule outcomes.
        """
        now = now or self._clock()
        snapshot = self._positions.sun_snapshot(now, True, coordinates)
        result = SunPositionResult(snapshot=snapshot)

        result.start_time = self._window_time(self.start, lookup, now, result.errors)
        result.end_time = self._window_time(self.end, lookup, now, result.errors)
        if result.start_time is not None and result.end_time is not None:
            result.sun_in_sky = result.start_time < now < result.end_time

        for index, rule in enumerate(self.rules):
            low = self._bound(rule.low_kind, rule.low, lookup)
            high = self._bound(rule.high_kind, rule.high, lookup)
            inside = check_limits(snapshot.azimuth, low, high)
            previous = self._previous[index] if index < len(self._previous) else None
            result.pos.append(inside)
            result.pos_changed = result.pos_changed or previous != inside
        self._previous = list(result.pos)
        return result
