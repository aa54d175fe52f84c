"""Aquacomputer Select Entity Platform"""
from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import AquacomputerCoordinator
from .device import PWM_MODES
from .entity import AquacomputerControlEntity
from .exposure import Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up control mode and temperature source selects from config entry."""
    coordinator: AquacomputerCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    attributes = await hass.async_add_executor_job(coordinator.device.attributes)
    entities: list[SelectEntity] = []
    for attribute in attributes:
        if attribute.kind is AttributeKind.PWM_MODE:
            entities.append(AquacomputerModeSelect(coordinator, attribute))
        elif attribute.kind is AttributeKind.TEMP_SELECT:
            entities.append(AquacomputerTempSourceSelect(coordinator, attribute))
    async_add_entities(entities, update_before_add=True)


class AquacomputerModeSelect(AquacomputerControlEntity, SelectEntity):
    """Control mode of a fan channel."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_icon = "mdi:tune"
    _attr_options = list(PWM_MODES.values())

    @property
    def current_option(self) -> str | None:
        return PWM_MODES.get(self._value) if self._value is not None else None

    async def async_select_option(self, option: str) -> None:
        mode = next(value for value, name in PWM_MODES.items() if name == option)
        await self._async_write(self._device.write_pwm_mode, self.attribute.channel, mode)


class AquacomputerTempSourceSelect(AquacomputerControlEntity, SelectEntity):
    """Temperature sensor a fan channel follows in curve and PID mode."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_icon = "mdi:thermometer-lines"

    def __init__(self, coordinator: AquacomputerCoordinator, attribute: Attribute) -> None:
        super().__init__(coordinator, attribute)
        profile = coordinator.device.profile
        sources = profile.num_temps + profile.num_virtual_temps
        self._attr_options = list(profile.temp_labels[:sources])

    @property
    def current_option(self) -> str | None:
        if self._value is None or self._value >= len(self._attr_options):
            return None
        return self._attr_options[self._value]

    async def async_select_option(self, option: str) -> None:
        await self._async_write(
            self._device.write_temp_select,
            self.attribute.channel,
            self._attr_options.index(option),
        )
