"""Config flow for the Aquacomputer integration.

This module handles the configuration flow for setting up an Aquacomputer
device, either picked from the attached HID devices or entered by hidraw path
and model.
"""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResult

from .const import (
    CONF_HIDRAW_PATH,
    CONF_LOG_LEVEL,
    CONF_MODEL,
    CONF_UPDATE_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    LOG_LEVELS,
    MAX_UPDATE_INTERVAL,
    MIN_UPDATE_INTERVAL,
)
from .hid_transport import HidDeviceInfo, HidTransport, discover
from .profiles import profile_for, supported_models

_LOGGER = logging.getLogger(__name__)

MANUAL_ENTRY = "manual"

UPDATE_INTERVAL_SCHEMA = vol.All(
    vol.Coerce(int), vol.Range(min=MIN_UPDATE_INTERVAL, max=MAX_UPDATE_INTERVAL)
)


def probe_device(path: str) -> None:
    """Open and close the device once.

    Raises:
        OSError: If the device cannot be opened.
    """
    transport = HidTransport(path)
    transport.open()
    transport.close()


class AquacomputerConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Config flow for Aquacomputer devices.

    This flow guides the user through:
    1. Selecting a discovered device or manual entry
    2. Entering hidraw path and model (manual entry only)
    3. Configuring update interval and log level
    """

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self.connection_data: dict[str, Any] = {}
        self.devices: dict[str, HidDeviceInfo] = {}

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle initial step: pick a discovered device.

        Args:
            user_input: User form input, if any.

        Returns:
            Form result or redirect to the next step.
        """
        if user_input is not None:
            choice = user_input[CONF_HIDRAW_PATH]
            if choice == MANUAL_ENTRY:
                return await self.async_step_manual()
            return await self._async_connect(choice, self.devices[choice].model, "user")

        found = await self.hass.async_add_executor_job(discover)
        _LOGGER.debug("Discovered %d Aquacomputer devices", len(found))
        self.devices = {info.path.decode(errors="replace"): info for info in found}
        if not self.devices:
            return await self.async_step_manual()

        choices = {
            path: f"{profile_for(info.model).name} ({path})"
            for path, info in self.devices.items()
        }
        choices[MANUAL_ENTRY] = "Enter hidraw path manually"
        schema = vol.Schema({vol.Required(CONF_HIDRAW_PATH): vol.In(choices)})
        return self.async_show_form(step_id="user", data_schema=schema)

    async def async_step_manual(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle manual entry of hidraw path and model.

        Args:
            user_input: User form input, if any.

        Returns:
            Form result or redirect to log configuration step.
        """
        if user_input is not None and CONF_MODEL in user_input:
            return await self._async_connect(
                user_input[CONF_HIDRAW_PATH], user_input[CONF_MODEL], "manual"
            )

        schema = vol.Schema(
            {
                vol.Required(CONF_HIDRAW_PATH, default="/dev/hidraw0"): str,
                vol.Required(CONF_MODEL): vol.In(list(supported_models())),
            }
        )
        return self.async_show_form(step_id="manual", data_schema=schema)

    async def _async_connect(self, path: str, model: str, step_id: str) -> FlowResult:
        """Probe the device and continue with the log step."""
        await self.async_set_unique_id(path)
        self._abort_if_unique_id_configured()

        try:
            await self.hass.async_add_executor_job(probe_device, path)
        except OSError as err:
            _LOGGER.error("Opening %s failed: %s", path, err)
            if step_id == "user":
                return self.async_abort(reason="cannot_connect")
            return self.async_show_form(
                step_id=step_id,
                data_schema=vol.Schema(
                    {
                        vol.Required(CONF_HIDRAW_PATH, default=path): str,
                        vol.Required(CONF_MODEL, default=model): vol.In(
                            list(supported_models())
                        ),
                    }
                ),
                errors={"base": "cannot_connect"},
            )

        self.connection_data = {CONF_HIDRAW_PATH: path, CONF_MODEL: model}
        return await self.async_step_log()

    async def async_step_log(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle update interval and log level configuration.

        Args:
            user_input: User form input, if any.

        Returns:
            Form result or created entry.
        """
        if user_input is not None:
            self.connection_data[CONF_UPDATE_INTERVAL] = user_input[CONF_UPDATE_INTERVAL]
            self.connection_data[CONF_LOG_LEVEL] = LOG_LEVELS[user_input[CONF_LOG_LEVEL]]
            data = self.connection_data
            title = f"{profile_for(data[CONF_MODEL]).name} ({data[CONF_HIDRAW_PATH]})"
            return self.async_create_entry(title=title, data=data)

        schema = vol.Schema(
            {
                vol.Required(
                    CONF_UPDATE_INTERVAL, default=DEFAULT_UPDATE_INTERVAL
                ): UPDATE_INTERVAL_SCHEMA,
                vol.Required(CONF_LOG_LEVEL, default="Info"): vol.In(
                    list(LOG_LEVELS.keys())
                ),
            }
        )
        return self.async_show_form(step_id="log", data_schema=schema)

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle reconfiguration initiated from the device UI.

        Args:
            user_input: User form input, if any.

        Returns:
            Form result or abort with reconfigured reason.
        """
        entry_id = self.context.get("entry_id")
        entry = self.hass.config_entries.async_get_entry(entry_id)

        if entry is None:
            return self.async_abort(reason="entry_not_found")

        if user_input is not None:
            level_name = user_input[CONF_LOG_LEVEL]
            logging.getLogger("custom_components.aquacomputer").setLevel(
                getattr(logging, level_name.upper(), logging.INFO)
            )
            self.hass.config_entries.async_update_entry(
                entry, data={**entry.data, **user_input}
            )
            await self.hass.config_entries.async_reload(entry.entry_id)
            return self.async_abort(reason="reconfigured")

        data = entry.data
        schema = vol.Schema(
            {
                vol.Required(
                    CONF_UPDATE_INTERVAL,
                    default=data.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL),
                ): UPDATE_INTERVAL_SCHEMA,
                vol.Required(
                    CONF_LOG_LEVEL, default=data.get(CONF_LOG_LEVEL, "info")
                ): vol.In(list(LOG_LEVELS.values())),
            }
        )
        return self.async_show_form(step_id="reconfigure", data_schema=schema)
