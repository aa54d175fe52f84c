"""Base entities for the Aquacomputer integration."""
from __future__ import annotations

import logging
from typing import Any, Callable

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import AquacomputerCoordinator
from .device import AquacomputerDevice
from .errors import AquacomputerError
from .exposure import Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)

# Control report readers per attribute kind, called with (device, channel)
CONTROL_READERS: dict[AttributeKind, Callable[[AquacomputerDevice, int], Any]] = {
    AttributeKind.PWM: lambda device, channel: device.read_pwm(channel),
    AttributeKind.PWM_MODE: lambda device, channel: device.read_pwm_mode(channel),
    AttributeKind.TEMP_SELECT: lambda device, channel: device.read_temp_select(channel),
    AttributeKind.TEMP_OFFSET: lambda device, channel: device.read_temp_offset(channel),
    AttributeKind.FLOW_PULSES: lambda device, channel: device.read_flow_pulses(),
    AttributeKind.MIN_POWER: lambda device, channel: device.fan_curves.get_min_power(channel),
    AttributeKind.MAX_POWER: lambda device, channel: device.fan_curves.get_max_power(channel),
    AttributeKind.FALLBACK_POWER: lambda device, channel: device.fan_curves.get_fallback_power(channel),
    AttributeKind.HYSTERESIS: lambda device, channel: device.fan_curves.get_hysteresis(channel),
    AttributeKind.START_BOOST: lambda device, channel: device.fan_curves.get_start_boost(channel),
    AttributeKind.HOLD_MIN_POWER: lambda device, channel: device.fan_curves.get_hold_min_power(channel),
    AttributeKind.MIN_RPM: lambda device, channel: device.read_rpm_limits(channel)[0],
    AttributeKind.MAX_RPM: lambda device, channel: device.read_rpm_limits(channel)[1],
}


class AquacomputerEntity(CoordinatorEntity[AquacomputerCoordinator]):
    """Entity bound to one exposed attribute of a device."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: AquacomputerCoordinator, attribute: Attribute) -> None:
        """Initialize the entity.

        Args:
            coordinator: The data update coordinator of the device.
            attribute: The exposed attribute this entity represents.
        """
        super().__init__(coordinator)
        self.attribute = attribute
        self._device = coordinator.device
        self._attr_name = attribute.label
        suffix = attribute.key or str(attribute.channel)
        self._attr_unique_id = (
            f"{coordinator.entry.entry_id}_{attribute.kind.value}_{suffix}"
        )

    @property
    def device_info(self) -> DeviceInfo:
        """Return device information for device registry."""
        return self.coordinator.device_info


class AquacomputerControlEntity(AquacomputerEntity):
    """Entity backed by a field of the control report.

    The control report is not pushed, so these entities poll it on their own
    schedule instead of following the coordinator.
    """

    def __init__(self, coordinator: AquacomputerCoordinator, attribute: Attribute) -> None:
        super().__init__(coordinator, attribute)
        self._value: Any = None

    @property
    def should_poll(self) -> bool:
        return True

    async def async_update(self) -> None:
        """Fetch the current setting from the device."""
        reader = CONTROL_READERS[self.attribute.kind]
        try:
            self._value = await self.hass.async_add_executor_job(
                reader, self._device, self.attribute.channel
            )
        except AquacomputerError as err:
            _LOGGER.debug("Reading %s failed: %s", self.attribute.label, err)
            self._value = None

    async def _async_write(self, writer: Callable[..., None], *args: Any) -> None:
        """Run a device write in the executor and refresh the state."""
        try:
            await self.hass.async_add_executor_job(writer, *args)
        except AquacomputerError as err:
            _LOGGER.error("Writing %s failed: %s", self.attribute.label, err)
            raise HomeAssistantError(f"Writing {self.attribute.label} failed: {err}") from err
        await self.async_update()
        self.async_write_ha_state()
