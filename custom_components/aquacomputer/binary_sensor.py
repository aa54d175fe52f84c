"""Binary sensor platform for Aquacomputer alarm flags."""
from __future__ import annotations

import logging

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import AquacomputerCoordinator
from .entity import AquacomputerEntity
from .exposure import Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)

ALARM_ICONS = {
    "temperature": "mdi:thermometer-alert",
    "fan": "mdi:fan-alert",
    "flow": "mdi:water-alert",
    "pump": "mdi:pump-off",
    "power_supply": "mdi:power-plug-off",
    "fill_level": "mdi:cup-off",
    "leak": "mdi:water-alert",
    "sensor": "mdi:alert-circle",
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up alarm binary sensors from a config entry."""
    coordinator: AquacomputerCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    attributes = await hass.async_add_executor_job(coordinator.device.attributes)
    entities = [
        AquacomputerAlarmSensor(coordinator, attribute)
        for attribute in attributes
        if attribute.kind is AttributeKind.ALARM
    ]
    if entities:
        _LOGGER.debug("Adding %d alarm sensors", len(entities))
    async_add_entities(entities)


class AquacomputerAlarmSensor(AquacomputerEntity, BinarySensorEntity):
    """One flag of the alarm word."""

    _attr_device_class = BinarySensorDeviceClass.PROBLEM

    def __init__(self, coordinator: AquacomputerCoordinator, attribute: Attribute) -> None:
        super().__init__(coordinator, attribute)
        self._attr_name = attribute.label.capitalize()
        self._attr_icon = ALARM_ICONS.get(attribute.key, "mdi:alert")

    @property
    def is_on(self) -> bool | None:
        if self.coordinator.data is None or self.coordinator.data.alarms is None:
            return None
        return getattr(self.coordinator.data.alarms, self.attribute.key)
