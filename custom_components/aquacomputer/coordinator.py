"""DataUpdateCoordinator for Aquacomputer devices."""
from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import CONF_HIDRAW_PATH, DEFAULT_UPDATE_INTERVAL, DOMAIN, MANUFACTURER
from .decoder import TelemetrySnapshot
from .device import AquacomputerDevice
from .errors import AquacomputerError

_LOGGER = logging.getLogger(__name__)


class AquacomputerCoordinator(DataUpdateCoordinator[TelemetrySnapshot]):
    """Hands the latest telemetry snapshot of one device to its entities."""

    config_entry: ConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        device: AquacomputerDevice,
        update_interval: int = DEFAULT_UPDATE_INTERVAL,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: The Home Assistant instance.
            entry: The config entry of the device.
            device: The attached device.
            update_interval: Seconds between snapshot reads.
        """
        self.entry = entry
        self.device = device
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}_{entry.entry_id}",
            update_interval=timedelta(seconds=update_interval),
        )

    async def _async_update_data(self) -> TelemetrySnapshot:
        """Return the current snapshot; legacy devices are polled here."""
        try:
            return await self.hass.async_add_executor_job(self.device.snapshot)
        except AquacomputerError as err:
            raise UpdateFailed(f"Error reading {self.device.profile.name}: {err}") from err

    @property
    def unique_id(self) -> str:
        """Serial number of the device, or its path before the first report."""
        snapshot = self.device.last_snapshot
        if snapshot is not None and snapshot.serial_number:
            return snapshot.serial_number
        return self.entry.data[CONF_HIDRAW_PATH]

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info for the device registry."""
        snapshot = self.device.last_snapshot
        firmware = snapshot.firmware_version if snapshot is not None else None
        return DeviceInfo(
            identifiers={(DOMAIN, self.entry.data[CONF_HIDRAW_PATH])},
            name=self.entry.title,
            manufacturer=MANUFACTURER,
            model=self.device.profile.name,
            serial_number=snapshot.serial_number if snapshot is not None else None,
            sw_version=str(firmware) if firmware is not None else None,
        )
