"""Aquacomputer Switch Entity Platform"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import AquacomputerCoordinator
from .entity import AquacomputerControlEntity
from .exposure import Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)

SWITCH_ICONS = {
    AttributeKind.START_BOOST: "mdi:rocket-launch",
    AttributeKind.HOLD_MIN_POWER: "mdi:fan-lock",
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up fan flag switches from config entry."""
    coordinator: AquacomputerCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    attributes = await hass.async_add_executor_job(coordinator.device.attributes)
    entities = [
        AquacomputerFlagSwitch(coordinator, attribute)
        for attribute in attributes
        if attribute.kind in SWITCH_ICONS and attribute.writable
    ]
    async_add_entities(entities, update_before_add=True)


class AquacomputerFlagSwitch(AquacomputerControlEntity, SwitchEntity):
    """Start boost or hold minimum power of a fan channel."""

    _attr_entity_category = EntityCategory.CONFIG

    def __init__(self, coordinator: AquacomputerCoordinator, attribute: Attribute) -> None:
        super().__init__(coordinator, attribute)
        self._attr_icon = SWITCH_ICONS[attribute.kind]

    @property
    def is_on(self) -> bool | None:
        return self._value

    async def _async_set(self, enabled: bool) -> None:
        curves = self._device.fan_curves
        writer = (
            curves.set_start_boost
            if self.attribute.kind is AttributeKind.START_BOOST
            else curves.set_hold_min_power
        )
        await self._async_write(writer, self.attribute.channel, enabled)

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_set(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_set(False)
