"""Context lookup for literal values, message fields and environment variables."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
import os
from typing import Any

from .errors import EvaluationError
from .models import SourceKind, coerce_kind

_MESSAGE_FIELDS = {
    SourceKind.MSG_PAYLOAD: "payload",
    SourceKind.MSG_VALUE: "value",
    SourceKind.MSG_TS: "ts",
    SourceKind.MSG_LC: "lc",
}


def get_path(data: Any, path: str) -> Any:
    """Return the value at a dotted ``path`` (``a.b.0``) or None."""
    current = data
    for part in str(path).split("."):
        if not part:
            continue
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, Sequence) and not isinstance(current, str | bytes):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        else:
            current = getattr(current, part, None)
        if current is None:
            return None
    return current


class VariablesLookup:
    """Resolves literals, message fields and environment variables.

    Message fields are read from ``variables``: ``msgPayload`` is
    ``variables["payload"]``, ``msg`` follows a dotted path. Subclasses extend
    ``_evaluate_context`` for host specific references.
    """

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self.variables: Mapping[str, Any] = variables or {}

    def evaluate(self, kind: SourceKind | str, value: Any) -> Any:
        kind = coerce_kind(kind)
        if kind is SourceKind.NUM:
            try:
                return float(value)
            except (TypeError, ValueError) as err:
                raise EvaluationError(f'"{value}" is not a number') from err
        if kind is SourceKind.STR:
            return "" if value is None else str(value)
        if kind is SourceKind.JSON:
            if not isinstance(value, str):
                return value
            try:
                return json.loads(value)
            except json.JSONDecodeError as err:
                raise EvaluationError(f"invalid JSON: {err}") from err
        if kind in _MESSAGE_FIELDS:
            return self.variables.get(_MESSAGE_FIELDS[kind])
        if kind is SourceKind.MSG:
            return get_path(self.variables, value)
        if kind is SourceKind.ENV:
            return os.environ.get(str(value))
        return self._evaluate_context(kind, value)

    def _evaluate_context(self, kind: SourceKind, value: Any) -> Any:
        raise EvaluationError(f"{kind}.{value} can not be evaluated here")
