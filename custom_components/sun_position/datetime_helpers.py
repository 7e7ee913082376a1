"""Date and time helpers used by the resolvers.

Offsets, weekday filters, day-of-month rules, text parsing and output
formatting all live here so the resolvers only deal with dispatch.
"""

from __future__ import annotations

from calendar import monthrange
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta, tzinfo
import math
import re
from typing import Any

from homeassistant.util import dt as dt_util

from .const import FALSE_EXPRESSIONS, TRUE_EXPRESSIONS, WEEKDAY_NAMES
from .errors import FormatError, NoValidWeekdayError

_TIME_OF_DAY_RE = re.compile(
    r"^\s*(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2}))?\s*(am|pm)?\s*$", re.IGNORECASE
)
_DIGITS_RE = re.compile(r"^-?\d+(\.\d+)?$")


def add_days(instant: datetime, days: int) -> datetime:
    """Return ``instant`` shifted by whole days."""
    return instant + timedelta(days=days)


def day_key(instant: datetime, tz: tzinfo = UTC) -> int:
    """Return an integer identifying the calendar day of ``instant`` in ``tz``."""
    local = instant.astimezone(tz)
    return local.year * 372 + (local.month - 1) * 31 + local.day


def offset_delta(offset: float, multiplier: float) -> timedelta:
    """Convert an offset in units of ``multiplier`` seconds to a timedelta."""
    if not offset or not math.isfinite(offset):
        return timedelta(0)
    return timedelta(seconds=offset * multiplier)


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def parse_weekdays(value: Any) -> frozenset[int] | None:
    """Parse a weekday filter.

    Returns None for "any day" (``None`` or ``"*"``) and an empty set for an
    empty filter. Weekdays are numbered like ``datetime.weekday()``, names
    such as ``"mon"`` or ``"Friday"`` are accepted too.
    """
    if value is None or value == "*":
        return None
    if isinstance(value, str):
        items: Iterable[Any] = [part for part in re.split(r"[\s,;|]+", value) if part]
    elif isinstance(value, int):
        items = [value]
    else:
        items = value

    days: set[int] = set()
    for item in items:
        if isinstance(item, int):
            day = item
        else:
            text = str(item).strip().lower()
            if text.isdigit():
                day = int(text)
            elif text[:3] in WEEKDAY_NAMES:
                day = WEEKDAY_NAMES.index(text[:3])
            else:
                raise ValueError(f"invalid weekday {item!r}")
        if not 0 <= day <= 6:
            raise ValueError(f"invalid weekday {item!r}")
        days.add(day)
    return frozenset(days)


def weekday_delta(allowed: frozenset[int], weekday: int) -> int:
    """Return days (0..6) from ``weekday`` to the nearest allowed weekday.

    -1 means no weekday within the next week is allowed.
    """
    for delta in range(7):
        if (weekday + delta) % 7 in allowed:
            return delta
    return -1


def special_day_of_month(year: int, month: int, rule: Any) -> date | None:
    """Resolve a day-of-month rule for the given month.

    Supported rules: a day number (clamped to the month length), ``first``,
    ``last``, ``first_weekday``/``last_weekday`` (Monday to Friday) and
    ``first_<day>``/``last_<day>`` such as ``last_friday``.
    """
    last_day = monthrange(year, month)[1]
    text = str(rule).strip().lower()
    if text.isdigit():
        return date(year, month, min(max(int(text), 1), last_day))
    if text == "first":
        return date(year, month, 1)
    if text == "last":
        return date(year, month, last_day)

    which, _, what = text.partition("_")
    if which not in ("first", "last") or not what:
        return None
    if what == "weekday":
        allowed = frozenset(range(5))
    elif what[:3] in WEEKDAY_NAMES:
        allowed = frozenset({WEEKDAY_NAMES.index(what[:3])})
    else:
        return None

    days = range(1, last_day + 1) if which == "first" else range(last_day, 0, -1)
    for day in days:
        candidate = date(year, month, day)
        if candidate.weekday() in allowed:
            return candidate
    return None


def normalize_date(
    value: datetime,
    offset: timedelta,
    now: datetime,
    tz: tzinfo,
    roll_forward: int | None = None,
    weekdays: frozenset[int] | None = None,
) -> datetime:
    """Apply offset, roll-forward and weekday rules to a resolved time.

    Raises:
        NoValidWeekdayError: If no allowed weekday exists.
    """
    result = value + offset
    if roll_forward and roll_forward > 0 and result <= now:
        result = add_days(result, roll_forward)
    if weekdays is not None:
        delta = weekday_delta(weekdays, result.astimezone(tz).weekday())
        if delta < 0:
            raise NoValidWeekdayError("No valid day of week found")
        if delta:
            result = add_days(result, delta)
    return result


def from_timestamp_ms(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=UTC)


def parse_time_of_text(text: str, now: datetime, tz: tzinfo) -> datetime | None:
    """Parse free text holding a time of day, a date or a full date and time.

    A bare time is placed on the local day of ``now``.
    """
    if match := _TIME_OF_DAY_RE.match(text):
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        seconds = int(match.group(3) or 0)
        meridiem = (match.group(4) or "").lower()
        if meridiem == "pm" and hours < 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0
        if hours > 23 or minutes > 59 or seconds > 59:
            return None
        local_now = now.astimezone(tz)
        return local_now.replace(
            hour=hours, minute=minutes, second=seconds, microsecond=0
        )

    if (parsed := dt_util.parse_datetime(text.strip())) is not None:
        return ensure_aware(parsed, tz)
    if (day := dt_util.parse_date(text.strip())) is not None:
        return local_midnight(day, tz)
    return None


def parse_date_of_text(value: Any, now: datetime, tz: tzinfo) -> datetime | None:
    """Turn a looked-up value into a datetime.

    Numbers (and numeric strings) are epoch milliseconds.
    """
    if isinstance(value, datetime):
        return ensure_aware(value, tz)
    if isinstance(value, date):
        return local_midnight(value, tz)
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return from_timestamp_ms(value) if math.isfinite(value) else None
    text = str(value).strip()
    if _DIGITS_RE.match(text):
        return from_timestamp_ms(float(text))
    return parse_time_of_text(text, now, tz)


def parse_date_from_format(
    value: Any, fmt: str | None, now: datetime, tz: tzinfo
) -> datetime:
    """Parse ``value`` using ``fmt`` (a strftime pattern) or best effort.

    Raises:
        FormatError: If the value cannot be read as a date.
    """
    if fmt and "%" in fmt and isinstance(value, str):
        try:
            return ensure_aware(datetime.strptime(value, fmt), tz)
        except ValueError as err:
            raise FormatError(f'could not parse "{value}" as a date') from err
    result = parse_date_of_text(value, now, tz)
    if result is None:
        raise FormatError(f'could not parse "{value}" as a date')
    return result


def format_date(value: datetime, fmt: str | None, tz: tzinfo) -> Any:
    """Format a datetime for output.

    ``None``/``ms`` give epoch milliseconds, ``sec`` epoch seconds, ``iso``
    and ``utc`` ISO 8601 strings in local time and UTC, ``local``, ``time``,
    ``date`` and ``weekday`` readable local strings; anything else is used as
    a strftime pattern.
    """
    local = value.astimezone(tz)
    match fmt:
        case None | "" | "ms" | "0":
            return round(value.timestamp() * 1000)
        case "sec":
            return int(value.timestamp())
        case "iso":
            return local.isoformat()
        case "utc":
            return value.astimezone(UTC).isoformat()
        case "local":
            return local.strftime("%Y-%m-%d %H:%M:%S")
        case "time":
            return local.strftime("%H:%M:%S")
        case "date":
            return local.strftime("%Y-%m-%d")
        case "weekday":
            return local.strftime("%A")
        case _:
            return local.strftime(fmt)


def is_true(value: Any) -> bool:
    """Return True for truthy expressions such as ``"on"``, ``"yes"`` or 1."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value > 0
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in TRUE_EXPRESSIONS:
        return True
    try:
        return float(text) > 0
    except ValueError:
        return False


def is_false(value: Any) -> bool:
    """Return True for falsy expressions such as ``"off"``, ``"no"`` or 0."""
    if isinstance(value, bool):
        return not value
    if isinstance(value, int | float):
        return value <= 0
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in FALSE_EXPRESSIONS:
        return True
    try:
        return float(text) <= 0
    except ValueError:
        return False
