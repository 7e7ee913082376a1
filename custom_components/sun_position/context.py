"""Context lookup backed by Home Assistant states and templates."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import TemplateError
from homeassistant.helpers.template import Template

from .errors import EvaluationError
from .lookup import VariablesLookup, get_path
from .models import SourceKind


def split_attribute_ref(value: str) -> tuple[str, str]:
    """Split ``domain.object_id.attribute[.path]`` into entity id and path."""
    parts = str(value).strip().split(".", 2)
    if len(parts) < 3 or not all(parts):
        raise EvaluationError(f'"{value}" is not of the form <entity_id>.<attribute>')
    return f"{parts[0]}.{parts[1]}", parts[2]


class HassContextLookup(VariablesLookup):
    """Resolves ``state``, ``attribute`` and ``template`` references.

    Must not be called from the event loop: template rendering blocks until
    the loop has rendered it.
    """

    def __init__(
        self, hass: HomeAssistant, variables: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(variables)
        self.hass = hass

    def _evaluate_context(self, kind: SourceKind, value: Any) -> Any:
        if kind is SourceKind.STATE:
            state = self.hass.states.get(str(value).strip())
            if state is None:
                raise EvaluationError(f"entity {value} not found")
            return state.state
        if kind is SourceKind.ATTRIBUTE:
            entity_id, path = split_attribute_ref(value)
            state = self.hass.states.get(entity_id)
            if state is None:
                raise EvaluationError(f"entity {entity_id} not found")
            return get_path(state.attributes, path)
        if kind is SourceKind.TEMPLATE:
            try:
                return Template(str(value), self.hass).render(
                    variables=dict(self.variables), parse_result=False
                )
            except TemplateError as err:
                raise EvaluationError(f"template error: {err}") from err
        return super()._evaluate_context(kind, value)
