"""Exceptions raised by the Sun Position core."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .const import DEFAULT_MESSAGES


class SunPositionError(Exception):
    """Base class for every error raised by the integration core."""


class ConfigurationError(SunPositionError):
    """Coordinates are missing or invalid."""


class EvaluationError(SunPositionError):
    """A property descriptor could not be resolved to a value."""


class NoValidWeekdayError(EvaluationError):
    """The weekday filter excludes every candidate day."""


class FormatError(EvaluationError):
    """Date text could not be parsed."""


class UnknownOperatorError(SunPositionError):
    """A comparison operator is not part of the supported set."""


type Translator = Callable[[str, Mapping[str, Any]], str]


def default_translate(key: str, params: Mapping[str, Any] | None = None) -> str:
    """Return the English text for an error key, with params filled in."""
    template = DEFAULT_MESSAGES.get(key, key)
    try:
        return template.format(**(params or {}))
    except (KeyError, IndexError):
        return template
