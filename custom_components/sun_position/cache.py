"""Day-keyed cache of today's and tomorrow's sun or moon event tables."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime, tzinfo
import logging
import threading
from typing import Any

from .datetime_helpers import add_days, day_key

type EventTable = dict[str, Any]
type EventLoader = Callable[[datetime], Mapping[str, Any]]

_LOGGER = logging.getLogger(__name__)


class AstroDayCache:
    """Holds the event tables of the current and the next day.

    Days are counted in ``time_zone``, which must be the zone the loader
    builds its tables for. The tables are recomputed as a unit whenever the
    day key of the reference instant changes; readers never see a mix of
    two days.
    """

    def __init__(
        self,
        name: str,
        loader: EventLoader,
        defaults: Mapping[str, Any] | None = None,
        time_zone: tzinfo = UTC,
    ) -> None:
        """Initialize an empty cache.

        Args:
            name: Body the tables belong to, used in log output.
            loader: Computes the event table for the day of an instant.
            defaults: Values filled in for keys the loader leaves out.
            time_zone: Zone whose calendar day the loader computes.
        """
        self.name = name
        self._loader = loader
        self._defaults: dict[str, Any] = dict(defaults or {})
        self.time_zone = time_zone
        self._lock = threading.Lock()
        self.day_key: int | None = None
        self.today: EventTable = {}
        self.tomorrow: EventTable = {}

    def ensure_fresh(self, reference: datetime) -> tuple[EventTable, EventTable]:
        """Return (today, tomorrow), refreshing both if the day has turned over."""
        key = day_key(reference, self.time_zone)
        with self._lock:
            if self.day_key != key:
                _LOGGER.debug(
                    "Refreshing %s event tables for day %s (was %s)",
                    self.name,
                    key,
                    self.day_key,
                )
                today = self.events_for(reference)
                tomorrow = self.events_for(add_days(reference, 1))
                self.today, self.tomorrow, self.day_key = today, tomorrow, key
            return self.today, self.tomorrow

    def events_for(self, when: datetime) -> EventTable:
        """Compute the event table for the day of ``when``, bypassing the cache."""
        return self.normalize(self._loader(when))

    def normalize(self, table: Mapping[str, Any]) -> EventTable:
        """Return a copy of ``table`` with missing default keys filled in."""
        result = dict(table)
        for key, default in self._defaults.items():
            if result.get(key) is None:
                result[key] = default
        return result

    def invalidate(self) -> None:
        """Drop the cached tables so the next read recomputes them."""
        with self._lock:
            self.day_key = None
            self.today = {}
            self.tomorrow = {}
