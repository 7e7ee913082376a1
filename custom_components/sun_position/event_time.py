"""Resolution of named sun and moon events to concrete times."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
import logging
from typing import Any

from .cache import AstroDayCache
from .const import ERR_NO_VALID_TIME, ERR_NO_VALID_WEEKDAY
from .datetime_helpers import add_days, weekday_delta
from .errors import (
    EvaluationError,
    NoValidWeekdayError,
    SunPositionError,
    Translator,
    default_translate,
)
from .models import ResolvedTime

_LOGGER = logging.getLogger(__name__)


def _with_offset(value: Any, offset: timedelta) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    return value + offset


class EventTimeResolver:
    """Turns an event name of a cached event table into a timestamp.

    One instance exists per body; both share the same algorithm:

    1. take today's event and add the offset,
    2. if it already passed and ``roll_forward`` is set, use tomorrow's event
       (``roll_forward == 1``) or the event ``roll_forward`` days from now,
    3. move to the nearest allowed weekday, recomputing the event for that day.

    The offset is re-applied after every date shift.
    """

    def __init__(
        self,
        body: str,
        cache: AstroDayCache,
        time_zone: tzinfo,
        translate: Translator = default_translate,
    ) -> None:
        self.body = body
        self._cache = cache
        self.time_zone = time_zone
        self._translate = translate

    def resolve(
        self,
        event: str,
        offset: timedelta,
        now: datetime,
        roll_forward: int | None = None,
        weekdays: frozenset[int] | None = None,
    ) -> ResolvedTime:
        """Resolve ``event`` relative to ``now``.

        Args:
            event: Event name in the body's event table, e.g. ``sunrise``.
            offset: Offset added to the event time.
            now: Reference instant.
            roll_forward: Occurrences to look ahead once the event passed.
            weekdays: Allowed weekdays, or None for any day.

        Returns:
            The resolved time; on failure ``now`` with the failure attached.
        """
        today, tomorrow = self._cache.ensure_fresh(now)
        value = _with_offset(today.get(event), offset)

        if roll_forward and roll_forward > 0 and value is not None and value <= now:
            if roll_forward == 1:
                table = tomorrow
            else:
                table = self._cache.events_for(add_days(now, roll_forward))
            value = _with_offset(table.get(event), offset)

        failure: SunPositionError | None = None
        if weekdays is not None and value is not None:
            delta = weekday_delta(weekdays, value.astimezone(self.time_zone).weekday())
            if delta > 0:
                table = self._cache.events_for(add_days(value, delta))
                value = _with_offset(table.get(event), offset)
            elif delta < 0:
                failure = NoValidWeekdayError(
                    self._translate(ERR_NO_VALID_WEEKDAY, {})
                )

        if value is None:
            _LOGGER.debug("No %s time for %s around %s", self.body, event, now)
            if failure is None:
                failure = EvaluationError(
                    self._translate(ERR_NO_VALID_TIME, {"event": f"{self.body} {event}"})
                )
            value = now

        return ResolvedTime(value=value, failure=failure, is_fixed=True)
