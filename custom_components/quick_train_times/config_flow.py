"""Config flow for Quick Train Times integration."""

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.config_entries import ConfigFlowResult
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers import config_validation as cv
from pydantic import ValidationError

from . import storage_dir
from .api import AuthenticationError, CannotConnectError, RailDataClient
from .const import (
    ANY_DESTINATION,
    CONF_DAYS,
    CONF_DESIRED_LEN,
    CONF_DEST,
    CONF_END,
    CONF_FREQ,
    CONF_KEY,
    CONF_ORG,
    CONF_START,
    DAY_NAMES,
    DOMAIN,
    MAX_DESIRED_LEN,
    SETTINGS_FILE,
)
from .lookup import UnknownCodeError, validate_crs
from .store import (
    QuickTime,
    QuickTimeNotFoundError,
    Settings,
    SettingsStore,
    StoreError,
    chosen_days,
    day_names,
    parse_time,
    validate_api_key_format,
    validate_time,
)

_LOGGER = logging.getLogger(__name__)


def _settings_schema(defaults: Settings) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_KEY, default=defaults.key): str,
            vol.Required(CONF_FREQ, default=defaults.freq): vol.All(
                vol.Coerce(float), vol.Range(min=1)
            ),
            vol.Required(CONF_DESIRED_LEN, default=defaults.desired_len): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=MAX_DESIRED_LEN)
            ),
        }
    )


def _quick_time_schema(qt: QuickTime | None) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_START, default=qt.start if qt else "07:00"): str,
            vol.Required(CONF_END, default=qt.end if qt else "09:00"): str,
            vol.Required(CONF_ORG, default=qt.org if qt else ""): str,
            vol.Required(CONF_DEST, default=qt.dest if qt else ANY_DESTINATION): str,
            vol.Optional(CONF_DAYS, default=day_names(qt.days) if qt else []): cv.multi_select(
                DAY_NAMES
            ),
        }
    )


async def _async_check_settings(user_input: dict[str, Any]) -> tuple[Settings | None, dict[str, str]]:
    """Validate submitted settings, including a test call with the key."""
    key = user_input[CONF_KEY].strip()
    try:
        validate_api_key_format(key)
    except ValueError:
        return None, {CONF_KEY: "invalid_key_format"}

    try:
        settings = Settings(
            freq=user_input[CONF_FREQ],
            key=key,
            desired_len=user_input[CONF_DESIRED_LEN],
        )
    except ValidationError:
        return None, {"base": "invalid_settings"}

    errors: dict[str, str] = {}
    client = RailDataClient(key)
    try:
        await client.validate_api_key()
    except AuthenticationError:
        errors["base"] = "invalid_auth"
    except CannotConnectError:
        errors["base"] = "cannot_connect"
    except Exception:
        _LOGGER.exception("Unexpected error validating API key")
        errors["base"] = "unknown"
    finally:
        await client.close()

    if errors:
        return None, errors
    return settings, errors


async def _async_save_settings(hass: HomeAssistant, store: SettingsStore, settings: Settings) -> dict[str, str]:
    try:
        await hass.async_add_executor_job(store.save, settings)
    except StoreError:
        _LOGGER.exception("Could not save settings")
        return {"base": "cannot_save"}
    return {}


class QuickTrainTimesConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Config flow: settings only, quick times managed via options."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        return QuickTrainTimesOptionsFlow(config_entry)

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Initial setup: validate and write settings.json."""
        errors: dict[str, str] = {}

        if user_input is not None:
            settings, errors = await _async_check_settings(user_input)
            if settings is not None:
                store = SettingsStore(storage_dir(self.hass) / SETTINGS_FILE)
                errors = await _async_save_settings(self.hass, store, settings)
                if not errors:
                    return self.async_create_entry(title="Quick Train Times", data={})

        return self.async_show_form(
            step_id="user",
            data_schema=_settings_schema(Settings()),
            errors=errors,
            description_placeholders={
                "info": "Enter your Rail Data Marketplace key. Add quick times after setup."
            },
        )


class QuickTrainTimesOptionsFlow(config_entries.OptionsFlow):
    """Options flow: edit settings and manage quick times."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry
        self._edit_id: int | None = None

    @property
    def _runtime(self) -> dict[str, Any]:
        """Stores, lookup and coordinator of the loaded entry."""
        return self.hass.data[DOMAIN][self._config_entry.entry_id]

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Main menu: edit settings or manage quick times."""
        quick_times = self._runtime["quick_times"].quick_times

        menu_options = ["edit_settings", "add_quick_time"]
        if quick_times:
            menu_options.append("manage_quick_times")

        if quick_times:
            description = f"Quick times ({len(quick_times)}):\n" + "\n".join(
                f"{idx + 1}. {qt.label}" for idx, qt in enumerate(quick_times)
            )
        else:
            description = "No quick times yet. Click 'Add quick time' to begin."

        return self.async_show_menu(
            step_id="init",
            menu_options=menu_options,
            description_placeholders={"description": description},
        )

    async def async_step_edit_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Edit settings; the entry is reloaded to apply them."""
        errors: dict[str, str] = {}
        settings_store: SettingsStore = self._runtime["settings_store"]

        if user_input is not None:
            settings, errors = await _async_check_settings(user_input)
            if settings is not None:
                errors = await _async_save_settings(self.hass, settings_store, settings)
                if not errors:
                    await self.hass.config_entries.async_reload(self._config_entry.entry_id)
                    return self.async_create_entry(title="", data={})

        current_key = settings_store.settings.key
        return self.async_show_form(
            step_id="edit_settings",
            data_schema=_settings_schema(settings_store.settings),
            errors=errors,
            description_placeholders={"current_key": f"{current_key[:8]}...{current_key[-4:]}"},
        )

    async def async_step_add_quick_time(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Add a new quick time."""
        self._edit_id = None
        return await self.async_step_quick_time(user_input)

    def _check_quick_time(self, user_input: dict[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}

        for key in (CONF_START, CONF_END):
            try:
                validate_time(user_input[key].strip())
            except ValueError:
                errors[key] = "invalid_time"

        if not errors and parse_time(user_input[CONF_END].strip()) <= parse_time(
            user_input[CONF_START].strip()
        ):
            errors[CONF_END] = "end_before_start"

        lookup = self._runtime["lookup"]
        for key in (CONF_ORG, CONF_DEST):
            code = user_input[key].strip().upper()
            if key == CONF_DEST and code == ANY_DESTINATION:
                continue
            try:
                validate_crs(code, lookup)
            except UnknownCodeError:
                errors[key] = "unknown_station"
            except ValueError:
                errors[key] = "invalid_crs"

        return errors

    async def async_step_quick_time(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Quick time form, shared by add and edit."""
        errors: dict[str, str] = {}
        store = self._runtime["quick_times"]
        existing = store.get(self._edit_id) if self._edit_id is not None else None

        if user_input is not None:
            errors = self._check_quick_time(user_input)
            if not errors:
                qt = QuickTime(
                    id=self._edit_id if self._edit_id is not None else store.new_id(),
                    start=user_input[CONF_START].strip(),
                    end=user_input[CONF_END].strip(),
                    org=user_input[CONF_ORG].strip().upper(),
                    dest=user_input[CONF_DEST].strip().upper(),
                    days=chosen_days(user_input.get(CONF_DAYS, [])),
                )
                previous = store.snapshot()
                store.upsert(qt)
                try:
                    await self.hass.async_add_executor_job(store.save)
                except StoreError:
                    _LOGGER.exception("Could not save quick times")
                    store.restore(previous)
                    errors["base"] = "cannot_save"
                else:
                    await self._runtime["coordinator"].async_request_refresh()
                    return self.async_create_entry(title="", data={})

        return self.async_show_form(
            step_id="quick_time",
            data_schema=_quick_time_schema(existing),
            errors=errors,
        )

    async def async_step_manage_quick_times(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Select a quick time to manage."""
        quick_times = self._runtime["quick_times"].quick_times

        if not quick_times:
            return await self.async_step_init()

        if user_input is not None:
            self._edit_id = int(user_input["quick_time_id"])
            return await self.async_step_quick_time_action()

        options = {str(qt.id): qt.label for qt in quick_times}
        return self.async_show_form(
            step_id="manage_quick_times",
            data_schema=vol.Schema({vol.Required("quick_time_id"): vol.In(options)}),
        )

    async def async_step_quick_time_action(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Choose to edit or remove the selected quick time."""
        if user_input is not None:
            if user_input["action"] == "edit":
                return await self.async_step_edit_quick_time()
            return await self.async_step_remove_quick_time()

        store = self._runtime["quick_times"]
        if self._edit_id is None or not store.exists(self._edit_id):
            return await self.async_step_init()

        return self.async_show_form(
            step_id="quick_time_action",
            data_schema=vol.Schema(
                {vol.Required("action"): vol.In({"edit": "Edit", "remove": "Remove"})}
            ),
            description_placeholders={"quick_time": store.get(self._edit_id).label},
        )

    async def async_step_edit_quick_time(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Edit an existing quick time."""
        store = self._runtime["quick_times"]
        if self._edit_id is None or not store.exists(self._edit_id):
            return await self.async_step_init()
        return await self.async_step_quick_time(None)

    async def async_step_remove_quick_time(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Remove the selected quick time."""
        store = self._runtime["quick_times"]
        if self._edit_id is None:
            return await self.async_step_init()

        previous = store.snapshot()
        try:
            store.delete(self._edit_id)
        except QuickTimeNotFoundError:
            return await self.async_step_init()

        try:
            await self.hass.async_add_executor_job(store.save)
        except StoreError:
            _LOGGER.exception("Could not save quick times")
            store.restore(previous)
            return self.async_abort(reason="cannot_save")

        await self._runtime["coordinator"].async_request_refresh()
        return self.async_create_entry(title="", data={})
