"""Quick Train Times integration."""

from __future__ import annotations

from pathlib import Path

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryError

from .api import RailDataClient
from .const import DOMAIN, QUICK_TIMES_FILE, SETTINGS_FILE, STORAGE_DIR
from .coordinator import QuickTrainTimesCoordinator
from .lookup import CodeLookup
from .store import QuickTimeStore, SettingsStore, StoreError

PLATFORMS = [Platform.BUTTON, Platform.SENSOR]


def storage_dir(hass: HomeAssistant) -> Path:
    """Directory holding settings.json and qtt.json."""
    return Path(hass.config.path(STORAGE_DIR))


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Quick Train Times from a config entry.

    Settings are read once here; changing them reloads the entry. The quick
    time store stays live and is re-read by every refresh.
    """
    directory = storage_dir(hass)
    settings_store = SettingsStore(directory / SETTINGS_FILE)
    quick_times = QuickTimeStore(directory / QUICK_TIMES_FILE)

    try:
        settings = await hass.async_add_executor_job(settings_store.load)
        await hass.async_add_executor_job(quick_times.load)
    except StoreError as err:
        raise ConfigEntryError(f"Could not load Quick Train Times files: {err}") from err

    lookup = await hass.async_add_executor_job(CodeLookup.from_bundled)

    client = RailDataClient(settings.key)
    coordinator = QuickTrainTimesCoordinator(
        hass=hass,
        client=client,
        settings=settings,
        quick_times=quick_times,
        lookup=lookup,
    )
    try:
        await coordinator.async_config_entry_first_refresh()
    except Exception:
        await client.close()
        raise

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "client": client,
        "coordinator": coordinator,
        "settings_store": settings_store,
        "quick_times": quick_times,
        "lookup": lookup,
    }

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        data = hass.data[DOMAIN].pop(entry.entry_id)
        await data["client"].close()

    return unload_ok
