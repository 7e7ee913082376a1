"""Utility functions for the Sun Position integration.

Ephemeris lifecycle management and the error message translator. All
filesystem and Skyfield operations run in an executor to avoid blocking the
event loop.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import suppress
import logging
from pathlib import Path
from typing import Any

from skyfield.api import Loader
from skyfield.jpllib import SpiceKernel

from homeassistant.core import HomeAssistant
from homeassistant.helpers.translation import async_get_translations

from .const import CACHE_DIR_NAME, DE421_FILE, DOMAIN
from .errors import Translator, default_translate

_LOGGER = logging.getLogger(__name__)

# de421.bsp is about 17 MB; anything much smaller is a broken download.
_MIN_EPHEMERIS_SIZE = 10 * 1024 * 1024


def cache_dir(hass: HomeAssistant) -> Path:
    """Return the directory holding the Skyfield kernel and timescale files."""
    return Path(hass.config.path(CACHE_DIR_NAME))


async def cleanup_cache_dir(
    hass: HomeAssistant,
    *,
    remove_empty_dir: bool = False,
    remove_ephemeris: bool = False,
) -> None:
    """Clean up Skyfield cache content.

    Args:
        hass: Home Assistant instance.
        remove_empty_dir: If True, remove the cache directory if empty after cleanup.
        remove_ephemeris: If True, also remove the ephemeris file.
    """

    def _blocking_cleanup() -> None:
        directory = cache_dir(hass)
        if not directory.exists():
            return

        with suppress(OSError):
            for temp_file in directory.glob("*.download*"):
                with suppress(OSError):
                    temp_file.unlink()

        if remove_ephemeris:
            with suppress(OSError):
                (directory / DE421_FILE).unlink()

        if remove_empty_dir:
            with suppress(OSError):
                if not any(directory.iterdir()):
                    directory.rmdir()

    await hass.async_add_executor_job(_blocking_cleanup)


def _validate_ephemeris(directory: Path) -> bool:
    """Check the kernel in ``directory``; delete it when it is unusable."""
    ephemeris_path = directory / DE421_FILE
    if not ephemeris_path.exists():
        return False

    try:
        if ephemeris_path.stat().st_size < _MIN_EPHEMERIS_SIZE:
            with suppress(OSError):
                ephemeris_path.unlink()
            return False
    except OSError:
        return False

    try:
        eph = Loader(str(directory))(DE421_FILE)
    except (OSError, AttributeError, RuntimeError, ValueError):
        with suppress(OSError):
            ephemeris_path.unlink()
        return False

    # Earth (399 via 3), Sun (10) and Moon (301) are required.
    if not isinstance(eph, SpiceKernel) or any(
        body not in eph for body in (3, 10, 301)
    ):
        with suppress(OSError):
            ephemeris_path.unlink()
        return False
    return True


async def validate_ephemeris_file(hass: HomeAssistant) -> bool:
    """Return whether a usable ephemeris file is present.

    An invalid file is removed so a later download starts from a clean state.
    """
    return await hass.async_add_executor_job(_validate_ephemeris, cache_dir(hass))


async def ensure_valid_ephemeris(hass: HomeAssistant) -> bool:
    """Ensure a valid ephemeris file exists, downloading only if necessary.

    Idempotent: a valid file short-circuits the download.

    Returns:
        True if a valid ephemeris is available, False otherwise.
    """
    await cleanup_cache_dir(hass)

    if await validate_ephemeris_file(hass):
        return True

    def _blocking_download() -> bool:
        directory = cache_dir(hass)
        directory.mkdir(parents=True, exist_ok=True)
        try:
            Loader(str(directory))(DE421_FILE)
        except (OSError, RuntimeError, ValueError) as err:
            _LOGGER.warning("Downloading %s failed: %s", DE421_FILE, err)
            return False
        return True

    if not await hass.async_add_executor_job(_blocking_download):
        return False

    return await validate_ephemeris_file(hass)


def build_translator(messages: Mapping[str, str]) -> Translator:
    """Return a translator reading ``<key>`` templates from ``messages``.

    Keys without a translation fall back to the built-in English text.
    """

    def translate(key: str, params: Mapping[str, Any] | None = None) -> str:
        template = messages.get(key)
        if template is None:
            return default_translate(key, params)
        try:
            return template.format(**(params or {}))
        except (KeyError, IndexError):
            return template

    return translate


async def async_get_translator(hass: HomeAssistant) -> Translator:
    """Build a translator from the integration's ``exceptions`` translations."""
    translations = await async_get_translations(
        hass, hass.config.language, "exceptions", {DOMAIN}
    )
    prefix = f"component.{DOMAIN}.exceptions."
    messages = {
        key[len(prefix) :].removesuffix(".message"): value
        for key, value in translations.items()
        if key.startswith(prefix) and key.endswith(".message")
    }
    return build_translator(messages)
