"""Ephemeris collaborator: sun/moon events and positions.

The resolvers only depend on the ``Ephemeris`` protocol. ``SkyfieldEphemeris``
implements it on top of Skyfield and a JPL DE421 kernel.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta, tzinfo
import logging
import math
from pathlib import Path
from typing import Any, Protocol

import numpy as np
from skyfield import almanac
from skyfield.api import Loader, wgs84
from skyfield.timelib import Time

from .const import (
    DE421_FILE,
    MOON_ALWAYS_DOWN,
    MOON_ALWAYS_UP,
    MOON_HORIZON_DEG,
    MOON_RISE,
    MOON_SET,
    SUN_HORIZONS,
    SUN_TRANSITS,
)
from .datetime_helpers import local_midnight
from .models import MoonIllumination, MoonPosition, SunPosition

# Type aliases where the 3rd-party library does not expose stable typing.
type Kernel = Any
type Timescale = Any
type Observer = Any

_LOGGER = logging.getLogger(__name__)

# Sampling step for horizon crossings; must be shorter than the gap between
# a rise and the following set.
_HORIZON_STEP_DAYS = 1.0 / 24.0


class Ephemeris(Protocol):
    """Raw astronomical data for a date or instant and an observer."""

    def sun_events(
        self, when: datetime, latitude: float, longitude: float
    ) -> dict[str, datetime]:
        """Return named solar events for the local day of ``when``."""

    def moon_events(
        self, when: datetime, latitude: float, longitude: float, in_utc: bool = True
    ) -> dict[str, Any]:
        """Return moon rise/set for the day of ``when``.

        Keys are ``rise`` and ``set``; ``always_up`` or ``always_down`` is set
        when neither happens that day.
        """

    def sun_position(
        self, instant: datetime, latitude: float, longitude: float
    ) -> SunPosition:
        """Return the sun's azimuth and altitude in radians."""

    def moon_position(
        self, instant: datetime, latitude: float, longitude: float
    ) -> MoonPosition:
        """Return the moon's azimuth, altitude, distance and parallactic angle."""

    def moon_illumination(self, instant: datetime) -> MoonIllumination:
        """Return the moon's illuminated fraction, cycle phase and limb angle."""


def _utc_datetime(t_obj: Time) -> datetime:
    """Convert a scalar Skyfield Time to an aware UTC datetime."""
    dt_utc = t_obj.utc_datetime()
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=UTC)
    return dt_utc


def _above_horizon(
    observer: Observer, body: Any, horizon_degrees: float
) -> Callable[[Time], Any]:
    """Build a Skyfield discrete function: is ``body`` above the given altitude."""

    def is_above(t: Time) -> Any:
        alt, _, _ = observer.at(t).observe(body).apparent().altaz()
        return alt.degrees > horizon_degrees

    is_above.step_days = _HORIZON_STEP_DAYS  # type: ignore[attr-defined]
    return is_above


class SkyfieldEphemeris:
    """Ephemeris backed by Skyfield."""

    def __init__(self, eph: Kernel, ts: Timescale, time_zone: tzinfo = UTC) -> None:
        """Initialize with a loaded kernel.

        Args:
            eph: Loaded SPICE kernel (must contain earth, sun and moon).
            ts: Skyfield timescale.
            time_zone: Zone defining the local day for solar events.
        """
        self._eph = eph
        self._ts = ts
        self.time_zone = time_zone

    @classmethod
    def load(cls, cache_dir: str | Path, time_zone: tzinfo = UTC) -> SkyfieldEphemeris:
        """Load the DE421 kernel from ``cache_dir``, downloading it if needed.

        This is blocking and must run in an executor.
        """
        Path(cache_dir).mkdir(parents=True, exist_ok=True)
        load = Loader(str(cache_dir))
        eph: Kernel = load(DE421_FILE)
        ts: Timescale = load.timescale()
        return cls(eph, ts, time_zone)

    def _day_bounds(self, when: datetime, in_utc: bool) -> tuple[Time, Time]:
        tz = UTC if in_utc else self.time_zone
        start = local_midnight(when.astimezone(tz).date(), tz)
        end = start + timedelta(days=1)
        return self._ts.from_datetime(start), self._ts.from_datetime(end)

    def _observer(self, latitude: float, longitude: float) -> Observer:
        topos = wgs84.latlon(latitude_degrees=latitude, longitude_degrees=longitude)
        return self._eph["earth"] + topos

    def sun_events(
        self, when: datetime, latitude: float, longitude: float
    ) -> dict[str, datetime]:
        t0, t1 = self._day_bounds(when, in_utc=False)
        observer = self._observer(latitude, longitude)
        sun = self._eph["sun"]

        events: dict[str, datetime] = {}
        for rise_name, set_name, horizon in SUN_HORIZONS:
            times, ups = almanac.find_discrete(
                t0, t1, _above_horizon(observer, sun, horizon)
            )
            for ti, up in zip(times, ups, strict=False):
                events.setdefault(rise_name if up else set_name, _utc_datetime(ti))

        topos = wgs84.latlon(latitude_degrees=latitude, longitude_degrees=longitude)
        times, kinds = almanac.find_discrete(
            t0, t1, almanac.meridian_transits(self._eph, sun, topos)
        )
        for ti, kind in zip(times, kinds, strict=False):
            events.setdefault(SUN_TRANSITS[int(kind)], _utc_datetime(ti))

        _LOGGER.debug(
            "Sun events for %s at %.4f/%.4f: %s", t0.utc_iso(), latitude, longitude, events
        )
        return events

    def moon_events(
        self, when: datetime, latitude: float, longitude: float, in_utc: bool = True
    ) -> dict[str, Any]:
        t0, t1 = self._day_bounds(when, in_utc=in_utc)
        observer = self._observer(latitude, longitude)
        is_above = _above_horizon(observer, self._eph["moon"], MOON_HORIZON_DEG)

        events: dict[str, Any] = {}
        times, ups = almanac.find_discrete(t0, t1, is_above)
        for ti, up in zip(times, ups, strict=False):
            events.setdefault(MOON_RISE if up else MOON_SET, _utc_datetime(ti))

        if not events:
            # Neither rise nor set: the moon stays on one side of the horizon.
            up_all_day = bool(np.all(is_above(self._ts.linspace(t0, t1, 25))))
            events[MOON_ALWAYS_UP if up_all_day else MOON_ALWAYS_DOWN] = True
        return events

    def sun_position(
        self, instant: datetime, latitude: float, longitude: float
    ) -> SunPosition:
        t = self._ts.from_datetime(instant)
        observer = self._observer(latitude, longitude)
        alt, az, _ = observer.at(t).observe(self._eph["sun"]).apparent().altaz()
        return SunPosition(azimuth=float(az.radians), altitude=float(alt.radians))

    def moon_position(
        self, instant: datetime, latitude: float, longitude: float
    ) -> MoonPosition:
        t = self._ts.from_datetime(instant)
        observer = self._observer(latitude, longitude)
        apparent = observer.at(t).observe(self._eph["moon"]).apparent()
        alt, az, distance = apparent.altaz()
        hour_angle, dec, _ = apparent.hadec()

        # Parallactic angle from hour angle, declination and latitude.
        h = float(hour_angle.radians)
        d = float(dec.radians)
        phi = math.radians(latitude)
        parallactic = math.atan2(
            math.sin(h), math.tan(phi) * math.cos(d) - math.sin(d) * math.cos(h)
        )
        return MoonPosition(
            azimuth=float(az.radians),
            altitude=float(alt.radians),
            distance=float(distance.km),
            parallactic_angle=parallactic,
        )

    def moon_illumination(self, instant: datetime) -> MoonIllumination:
        t = self._ts.from_datetime(instant)
        earth = self._eph["earth"].at(t)
        moon_app = earth.observe(self._eph["moon"]).apparent()
        sun_app = earth.observe(self._eph["sun"]).apparent()

        fraction = float(moon_app.fraction_illuminated(self._eph["sun"]))
        phase = float(almanac.moon_phase(self._eph, t).degrees) / 360.0

        # Position angle of the bright limb midpoint.
        m_ra, m_dec, _ = moon_app.radec()
        s_ra, s_dec, _ = sun_app.radec()
        dra = float(s_ra.radians) - float(m_ra.radians)
        sd = float(s_dec.radians)
        md = float(m_dec.radians)
        angle = math.atan2(
            math.cos(sd) * math.sin(dra),
            math.sin(sd) * math.cos(md) - math.cos(sd) * math.sin(md) * math.cos(dra),
        )
        return MoonIllumination(fraction=fraction, phase=phase % 1.0, angle=angle)
