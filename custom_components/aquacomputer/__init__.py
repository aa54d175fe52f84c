"""The Aquacomputer integration.

Home Assistant is only imported when an entry is set up, so the protocol
modules of this package stay importable on their own.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .const import (
    CONF_HIDRAW_PATH,
    CONF_LOG_LEVEL,
    CONF_MODEL,
    CONF_UPDATE_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    FIRST_REPORT_TIMEOUT,
    PLATFORMS,
)

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, config_entry: ConfigEntry) -> bool:
    """Set up an Aquacomputer device from a config entry.

    Args:
        hass: The Home Assistant instance.
        config_entry: The config entry to set up.

    Returns:
        True if setup was successful.

    Raises:
        ConfigEntryNotReady: If the device cannot be opened.
    """
    from homeassistant.exceptions import ConfigEntryNotReady

    from .coordinator import AquacomputerCoordinator
    from .device import AquacomputerDevice
    from .hid_transport import HidTransport
    from .profiles import profile_for

    # Configure logging level
    log_level_str = config_entry.data.get(CONF_LOG_LEVEL, "info")
    _LOGGER.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))
    _LOGGER.info("Log level set to: %s", log_level_str)

    data = config_entry.data
    profile = profile_for(data[CONF_MODEL])
    transport = HidTransport(data[CONF_HIDRAW_PATH])
    try:
        await hass.async_add_executor_job(transport.open)
    except OSError as err:
        raise ConfigEntryNotReady(f"Opening {data[CONF_HIDRAW_PATH]} failed: {err}") from err

    device = AquacomputerDevice(profile, transport)
    if not device.is_legacy:
        transport.start_listening(device.handle_report)
        if not await hass.async_add_executor_job(
            device.wait_for_first_report, FIRST_REPORT_TIMEOUT
        ):
            _LOGGER.warning("No status report from %s yet", profile.name)

    coordinator = AquacomputerCoordinator(
        hass,
        config_entry,
        device,
        update_interval=data.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL),
    )
    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady:
        await hass.async_add_executor_job(transport.close)
        raise
    _LOGGER.info("%s ready on %s", profile.name, data[CONF_HIDRAW_PATH])

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][config_entry.entry_id] = {
        "device": device,
        "coordinator": coordinator,
        "transport": transport,
    }

    # Forward setup to platforms
    await hass.config_entries.async_forward_entry_setups(config_entry, PLATFORMS)

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry and close the device.

    Args:
        hass: The Home Assistant instance.
        entry: The config entry to unload.

    Returns:
        True if unload was successful.
    """
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        stored = hass.data[DOMAIN].pop(entry.entry_id, None)
        if stored is not None:
            await hass.async_add_executor_job(stored["transport"].close)
    return unload_ok
