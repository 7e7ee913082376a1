"""Comparison of two resolved property values."""

from __future__ import annotations

from collections.abc import Callable, Sized
from datetime import datetime
import logging
import re
from typing import Any, assert_never

from .const import CONTAIN_DELIMITERS, ERR_UNKNOWN_OPERATOR
from .datetime_helpers import is_false, is_true
from .errors import Translator, UnknownOperatorError, default_translate
from .models import ContextLookup, Operator, PropertyDescriptor, SourceKind
from .properties import ValueHook, ValuePropertyResolver

_LOGGER = logging.getLogger(__name__)

UNARY_OPERATORS = frozenset(
    {
        Operator.TRUE,
        Operator.FALSE,
        Operator.NULL,
        Operator.NOT_NULL,
        Operator.EMPTY,
        Operator.NOT_EMPTY,
        Operator.TRUE_EXPR,
        Operator.FALSE_EXPR,
        Operator.NOT_TRUE_EXPR,
        Operator.NOT_FALSE_EXPR,
    }
)


def _comparable(value: Any) -> Any:
    """Map datetimes to epoch milliseconds so they order against numbers."""
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    return value


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def is_empty(value: Any) -> bool | None:
    """Return whether a string, sequence, bytes or mapping is empty.

    None for values that have no length.
    """
    if isinstance(value, Sized):
        return len(value) == 0
    return None


def loose_equal(a: Any, b: Any) -> bool:
    """Equality that treats numeric strings and numbers alike."""
    a, b = _comparable(a), _comparable(b)
    if a == b:
        return True
    fa, fb = _as_float(a), _as_float(b)
    return fa is not None and fb is not None and fa == fb


def _ordered(a: Any, b: Any, test: Callable[[Any, Any], bool]) -> bool:
    a, b = _comparable(a), _comparable(b)
    try:
        return test(a, b)
    except TypeError:
        pass
    fa, fb = _as_float(a), _as_float(b)
    if fa is None or fb is None:
        return False
    return test(fa, fb)


def _parts(value: Any) -> list[str]:
    return [part for part in re.split(CONTAIN_DELIMITERS, _text(value)) if part]


def compare_values(a: Any, operator: Operator, b: Any = None) -> bool:
    """Apply ``operator`` to two already resolved values."""
    match operator:
        case Operator.TRUE:
            return a is True
        case Operator.FALSE:
            return a is False
        case Operator.NULL:
            return a is None
        case Operator.NOT_NULL:
            return a is not None
        case Operator.EMPTY:
            return is_empty(a) is True
        case Operator.NOT_EMPTY:
            return is_empty(a) is False
        case Operator.TRUE_EXPR:
            return is_true(a)
        case Operator.FALSE_EXPR:
            return is_false(a)
        case Operator.NOT_TRUE_EXPR:
            return not is_true(a)
        case Operator.NOT_FALSE_EXPR:
            return not is_false(a)
        case Operator.EQUAL:
            return loose_equal(a, b)
        case Operator.NOT_EQUAL:
            return not loose_equal(a, b)
        case Operator.LT:
            return _ordered(a, b, lambda x, y: x < y)
        case Operator.LTE:
            return _ordered(a, b, lambda x, y: x <= y)
        case Operator.GT:
            return _ordered(a, b, lambda x, y: x > y)
        case Operator.GTE:
            return _ordered(a, b, lambda x, y: x >= y)
        case Operator.CONTAIN:
            return b is not None and _text(b) in _text(a)
        case Operator.CONTAIN_SOME:
            text = _text(a)
            return any(part in text for part in _parts(b))
        case Operator.CONTAIN_EVERY:
            text = _text(a)
            return b is not None and all(part in text for part in _parts(b))
        case _:
            assert_never(operator)


class ComparisonEngine:
    """Resolves two descriptors and compares them.

    An unknown operator does not abort the comparison: it is logged, passed
    to ``on_unknown_operator`` and the truthy test on the first operand is
    used instead.
    """

    def __init__(
        self,
        values: ValuePropertyResolver,
        translate: Translator = default_translate,
        on_unknown_operator: Callable[[UnknownOperatorError], None] | None = None,
    ) -> None:
        self._values = values
        self._translate = translate
        self._on_unknown_operator = on_unknown_operator

    def compare(
        self,
        a: PropertyDescriptor,
        operator: Operator | str,
        b: PropertyDescriptor | None,
        lookup: ContextLookup,
        now: datetime | None = None,
        hook: ValueHook | None = None,
    ) -> bool:
        """Compare operand ``a`` with operand ``b``.

        Args:
            a: First operand; kind ``none`` makes the comparison False.
            operator: One of ``Operator``.
            b: Second operand, only resolved for binary operators.
            lookup: Resolves message and context references.
            now: Reference instant for time operands.
            hook: Optional transform applied to each resolved operand.

        Returns:
            The comparison result.
        """
        if not a.kind or a.kind == SourceKind.NONE:
            return False

        value_a = self._values.resolve(a, lookup, now, hook, 1)
        try:
            op = Operator(operator)
        except ValueError:
            error = UnknownOperatorError(
                self._translate(ERR_UNKNOWN_OPERATOR, {"operator": operator})
            )
            _LOGGER.error("%s", error)
            if self._on_unknown_operator is not None:
                self._on_unknown_operator(error)
            return is_true(value_a)

        value_b = None
        if op not in UNARY_OPERATORS and b is not None:
            value_b = self._values.resolve(b, lookup, now, hook, 2)
        result = compare_values(value_a, op, value_b)
        _LOGGER.debug("compare %r %s %r -> %s", value_a, op, value_b, result)
        return result
