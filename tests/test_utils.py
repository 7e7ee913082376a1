"""Tests for the translator and ephemeris file handling."""

import asyncio
from unittest.mock import MagicMock

from custom_components.sun_position.const import CACHE_DIR_NAME, DE421_FILE
from custom_components.sun_position.utils import (
    _validate_ephemeris,
    build_translator,
    cleanup_cache_dir,
)


def test_translator_uses_messages():
    translate = build_translator({"no_valid_time": "Keine Zeit für {event}"})
    assert translate("no_valid_time", {"event": "sun dusk"}) == "Keine Zeit für sun dusk"


def test_translator_falls_back():
    """Missing keys use the English text; bad placeholders leave the template."""
    translate = build_translator({"wrong_type": "Typ {unknown}"})
    assert translate("no_valid_days", {}) == "No valid Days given"
    assert translate("wrong_type", {"kind": "x"}) == "Typ {unknown}"


def test_missing_ephemeris(tmp_path):
    assert _validate_ephemeris(tmp_path) is False


def test_truncated_ephemeris_is_removed(tmp_path):
    kernel = tmp_path / DE421_FILE
    kernel.write_bytes(b"\0" * 1024)
    assert _validate_ephemeris(tmp_path) is False
    assert not kernel.exists()


def test_cleanup_removes_cache_dir(tmp_path):
    """Cleanup drops partial downloads, the kernel and the emptied directory."""
    hass = MagicMock()
    hass.config.path.side_effect = lambda name: str(tmp_path / name)

    async def run_inline(func, *args):
        return func(*args)

    hass.async_add_executor_job = run_inline
    directory = tmp_path / CACHE_DIR_NAME
    directory.mkdir()
    (directory / DE421_FILE).write_bytes(b"kernel")
    (directory / f"{DE421_FILE}.download").write_bytes(b"")

    asyncio.run(cleanup_cache_dir(hass))
    assert (directory / DE421_FILE).exists()
    assert not (directory / f"{DE421_FILE}.download").exists()

    asyncio.run(cleanup_cache_dir(hass, remove_empty_dir=True, remove_ephemeris=True))
    assert not directory.exists()
