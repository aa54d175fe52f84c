"""Aquacomputer Number Entity Platform"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable

from homeassistant.components.number import NumberDeviceClass, NumberEntity, NumberMode
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory, UnitOfTemperature
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    DOMAIN,
    FLOW_PULSES_MAX,
    FLOW_PULSES_MIN,
    HYSTERESIS_MAX,
    PWM_MAX,
    TEMP_OFFSET_LIMIT,
)
from .coordinator import AquacomputerCoordinator
from .device import AquacomputerDevice
from .entity import AquacomputerControlEntity
from .exposure import Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)


def _pwm_to_percent(value: int) -> float:
    return round(value * 100 / PWM_MAX)


def _percent_to_pwm(value: float) -> int:
    return round(value * PWM_MAX / 100)


def _milli_to_degrees(value: int) -> float:
    return value / 1000


def _degrees_to_milli(value: float) -> int:
    return round(value * 1000)


@dataclass(frozen=True)
class NumberControl:
    """How one attribute kind maps onto a number entity."""

    min_value: float
    max_value: float
    step: float
    unit: str | None
    write: Callable[[AquacomputerDevice, int, Any], None]
    to_native: Callable[[Any], float] = float
    from_native: Callable[[float], Any] = int
    device_class: NumberDeviceClass | None = None
    icon: str | None = None
    entity_category: EntityCategory | None = EntityCategory.CONFIG


NUMBER_CONTROLS: dict[AttributeKind, NumberControl] = {
    AttributeKind.PWM: NumberControl(
        0, 100, 1, PERCENTAGE,
        write=lambda device, channel, value: device.write_pwm(channel, value),
        to_native=_pwm_to_percent,
        from_native=_percent_to_pwm,
        icon="mdi:fan",
        entity_category=None,
    ),
    AttributeKind.TEMP_OFFSET: NumberControl(
        -TEMP_OFFSET_LIMIT / 1000, TEMP_OFFSET_LIMIT / 1000, 0.1, UnitOfTemperature.CELSIUS,
        write=lambda device, channel, value: device.write_temp_offset(channel, value),
        to_native=_milli_to_degrees,
        from_native=_degrees_to_milli,
        device_class=NumberDeviceClass.TEMPERATURE,
        icon="mdi:thermometer-plus",
    ),
    AttributeKind.FLOW_PULSES: NumberControl(
        FLOW_PULSES_MIN, FLOW_PULSES_MAX, 1, None,
        write=lambda device, channel, value: device.write_flow_pulses(value),
        icon="mdi:pulse",
    ),
    AttributeKind.MIN_POWER: NumberControl(
        0, 100, 1, PERCENTAGE,
        write=lambda device, channel, value: device.set_min_power(channel, value),
        to_native=_pwm_to_percent,
        from_native=_percent_to_pwm,
        icon="mdi:fan-chevron-down",
    ),
    AttributeKind.MAX_POWER: NumberControl(
        0, 100, 1, PERCENTAGE,
        write=lambda device, channel, value: device.set_max_power(channel, value),
        to_native=_pwm_to_percent,
        from_native=_percent_to_pwm,
        icon="mdi:fan-chevron-up",
    ),
    AttributeKind.FALLBACK_POWER: NumberControl(
        0, 100, 1, PERCENTAGE,
        write=lambda device, channel, value: device.fan_curves.set_fallback_power(channel, value),
        to_native=_pwm_to_percent,
        from_native=_percent_to_pwm,
        icon="mdi:fan-alert",
    ),
    AttributeKind.HYSTERESIS: NumberControl(
        0, HYSTERESIS_MAX / 1000, 0.1, UnitOfTemperature.CELSIUS,
        write=lambda device, channel, value: device.fan_curves.set_hysteresis(channel, value),
        to_native=_milli_to_degrees,
        from_native=_degrees_to_milli,
        icon="mdi:arrow-expand-horizontal",
    ),
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Aquacomputer number entities from config entry."""
    coordinator: AquacomputerCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    attributes = await hass.async_add_executor_job(coordinator.device.attributes)
    entities = []
    for attribute in attributes:
        if attribute.writable and attribute.kind in NUMBER_CONTROLS:
            _LOGGER.debug("Creating AquacomputerNumber for %s", attribute.label)
            entities.append(
                AquacomputerNumber(coordinator, attribute, NUMBER_CONTROLS[attribute.kind])
            )
    async_add_entities(entities, update_before_add=True)


class AquacomputerNumber(AquacomputerControlEntity, NumberEntity):
    """Representation of a writable numeric setting."""

    _attr_mode = NumberMode.BOX

    def __init__(
        self,
        coordinator: AquacomputerCoordinator,
        attribute: Attribute,
        control: NumberControl,
    ) -> None:
        super().__init__(coordinator, attribute)
        self._control = control
        self._attr_native_min_value = control.min_value
        self._attr_native_max_value = control.max_value
        self._attr_native_step = control.step
        self._attr_native_unit_of_measurement = control.unit
        self._attr_device_class = control.device_class
        self._attr_entity_category = control.entity_category
        self._attr_icon = control.icon
        if attribute.kind is AttributeKind.PWM:
            self._attr_mode = NumberMode.SLIDER

    @property
    def native_value(self) -> float | None:
        """Return the native value of the number."""
        if self._value is None:
            return None
        return self._control.to_native(self._value)

    async def async_set_native_value(self, value: float) -> None:
        """Set new value for the number."""
        await self._async_write(
            self._control.write,
            self._device,
            self.attribute.channel,
            self._control.from_native(value),
        )
