"""Tests for Home Assistant backed context lookups."""

from unittest.mock import MagicMock

import pytest

from custom_components.sun_position import context
from custom_components.sun_position.context import HassContextLookup, split_attribute_ref
from custom_components.sun_position.errors import EvaluationError
from custom_components.sun_position.lookup import get_path


def _hass(states):
    hass = MagicMock()
    hass.states.get.side_effect = states.get
    return hass


def _state(value, attributes=None):
    state = MagicMock()
    state.state = value
    state.attributes = attributes or {}
    return state


def test_state_and_attribute():
    hass = _hass(
        {
            "input_number.offset": _state("15"),
            "weather.home": _state("sunny", {"forecast": [{"temperature": 21}]}),
        }
    )
    lookup = HassContextLookup(hass)
    assert lookup.evaluate("state", "input_number.offset") == "15"
    assert lookup.evaluate("attribute", "weather.home.forecast.0.temperature") == 21
    assert lookup.evaluate("attribute", "weather.home.missing") is None


def test_missing_entity():
    lookup = HassContextLookup(_hass({}))
    with pytest.raises(EvaluationError, match="sensor.nothing"):
        lookup.evaluate("state", "sensor.nothing")
    with pytest.raises(EvaluationError):
        lookup.evaluate("attribute", "sensor.nothing.value")


def test_split_attribute_ref():
    assert split_attribute_ref("sun.sun.elevation") == ("sun.sun", "elevation")
    assert split_attribute_ref("a.b.c.d") == ("a.b", "c.d")
    with pytest.raises(EvaluationError):
        split_attribute_ref("sun.sun")


def test_template_receives_variables(monkeypatch):
    rendered = []

    class FakeTemplate:
        def __init__(self, source, hass):
            self.source = source

        def render(self, variables=None, parse_result=True):
            rendered.append((self.source, variables, parse_result))
            return "42"

    monkeypatch.setattr(context, "Template", FakeTemplate)
    lookup = HassContextLookup(_hass({}), {"payload": 1})
    assert lookup.evaluate("template", "{{ payload + 41 }}") == "42"
    assert rendered == [("{{ payload + 41 }}", {"payload": 1}, False)]


def test_message_and_literal_kinds():
    """Message and literal kinds still resolve from the variables."""
    lookup = HassContextLookup(_hass({}), {"payload": {"a": [1, 2]}, "ts": 5})
    assert lookup.evaluate("msg", "payload.a.1") == 2
    assert lookup.evaluate("msgTs", None) == 5
    assert lookup.evaluate("json", '{"x": true}') == {"x": True}
    assert lookup.evaluate("num", "2.5") == 2.5
    with pytest.raises(EvaluationError):
        lookup.evaluate("num", "two")


def test_env_lookup(monkeypatch):
    monkeypatch.setenv("SUN_POSITION_TEST", "abc")
    assert HassContextLookup(_hass({})).evaluate("env", "SUN_POSITION_TEST") == "abc"


def test_get_path():
    data = {"a": {"b": [{"c": 3}]}}
    assert get_path(data, "a.b.0.c") == 3
    assert get_path(data, "a.b.5") is None
    assert get_path(data, "a.x.y") is None
