"""Sensor platform for Aquacomputer devices."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import (
    PERCENTAGE,
    REVOLUTIONS_PER_MINUTE,
    EntityCategory,
    UnitOfElectricCurrent,
    UnitOfElectricPotential,
    UnitOfPower,
    UnitOfPressure,
    UnitOfTemperature,
    UnitOfVolume,
    UnitOfVolumeFlowRate,
)
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, PWM_MAX
from .coordinator import AquacomputerCoordinator
from .decoder import TelemetrySnapshot
from .entity import AquacomputerControlEntity, AquacomputerEntity
from .exposure import SENSOR_KINDS, Attribute, AttributeKind

_LOGGER = logging.getLogger(__name__)


# =============================================================================
# Channel sensors, keyed by attribute kind: (description, scale to native unit)
# =============================================================================
CHANNEL_SENSORS: dict[AttributeKind, tuple[SensorEntityDescription, float]] = {
    AttributeKind.TEMPERATURE: (
        SensorEntityDescription(
            key="temperature",
            device_class=SensorDeviceClass.TEMPERATURE,
            native_unit_of_measurement=UnitOfTemperature.CELSIUS,
            state_class=SensorStateClass.MEASUREMENT,
            suggested_display_precision=2,
            icon="mdi:thermometer",
        ),
        1000,
    ),
    AttributeKind.SPEED: (
        SensorEntityDescription(
            key="speed",
            native_unit_of_measurement=REVOLUTIONS_PER_MINUTE,
            state_class=SensorStateClass.MEASUREMENT,
            icon="mdi:fan",
        ),
        1,
    ),
    AttributeKind.POWER: (
        SensorEntityDescription(
            key="power",
            device_class=SensorDeviceClass.POWER,
            native_unit_of_measurement=UnitOfPower.WATT,
            state_class=SensorStateClass.MEASUREMENT,
            suggested_display_precision=2,
        ),
        1000000,
    ),
    AttributeKind.VOLTAGE: (
        SensorEntityDescription(
            key="voltage",
            device_class=SensorDeviceClass.VOLTAGE,
            native_unit_of_measurement=UnitOfElectricPotential.VOLT,
            state_class=SensorStateClass.MEASUREMENT,
            suggested_display_precision=2,
        ),
        1000,
    ),
    AttributeKind.CURRENT: (
        SensorEntityDescription(
            key="current",
            device_class=SensorDeviceClass.CURRENT,
            native_unit_of_measurement=UnitOfElectricCurrent.MILLIAMPERE,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        1,
    ),
}

# Flow channels report dL/h in the speed group
FLOW_SENSOR = (
    SensorEntityDescription(
        key="flow",
        device_class=SensorDeviceClass.VOLUME_FLOW_RATE,
        native_unit_of_measurement=UnitOfVolumeFlowRate.LITERS_PER_HOUR,
        state_class=SensorStateClass.MEASUREMENT,
        suggested_display_precision=1,
        icon="mdi:water-pump",
    ),
    10,
)

# =============================================================================
# Extra values of specific models, keyed by TelemetrySnapshot.extras key
# =============================================================================
EXTRA_SENSORS: dict[str, tuple[SensorEntityDescription, float]] = {
    "water_quality": (
        SensorEntityDescription(
            key="water_quality",
            native_unit_of_measurement=PERCENTAGE,
            state_class=SensorStateClass.MEASUREMENT,
            icon="mdi:water-check",
        ),
        100,
    ),
    "conductivity": (
        SensorEntityDescription(
            key="conductivity",
            native_unit_of_measurement="µS/cm",
            state_class=SensorStateClass.MEASUREMENT,
            icon="mdi:flash-triangle",
        ),
        10,
    ),
    "pressure": (
        SensorEntityDescription(
            key="pressure",
            device_class=SensorDeviceClass.PRESSURE,
            native_unit_of_measurement=UnitOfPressure.MBAR,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        1,
    ),
    "reservoir_volume": (
        SensorEntityDescription(
            key="reservoir_volume",
            device_class=SensorDeviceClass.VOLUME_STORAGE,
            native_unit_of_measurement=UnitOfVolume.MILLILITERS,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        1,
    ),
    "reservoir_filled": (
        SensorEntityDescription(
            key="reservoir_filled",
            device_class=SensorDeviceClass.VOLUME_STORAGE,
            native_unit_of_measurement=UnitOfVolume.MILLILITERS,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        1,
    ),
    "flow_in": (
        SensorEntityDescription(
            key="flow_in",
            device_class=SensorDeviceClass.VOLUME_FLOW_RATE,
            native_unit_of_measurement=UnitOfVolumeFlowRate.LITERS_PER_HOUR,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        10,
    ),
    "pump_speed_in": (
        SensorEntityDescription(
            key="pump_speed_in",
            native_unit_of_measurement=REVOLUTIONS_PER_MINUTE,
            state_class=SensorStateClass.MEASUREMENT,
            icon="mdi:pump",
        ),
        1,
    ),
}

# Pressure readings of the leak sensor share one description
for _key in ("pressure_min", "pressure_target", "pressure_max"):
    EXTRA_SENSORS[_key] = (
        SensorEntityDescription(
            key=_key,
            device_class=SensorDeviceClass.PRESSURE,
            native_unit_of_measurement=UnitOfPressure.MBAR,
            state_class=SensorStateClass.MEASUREMENT,
        ),
        1,
    )

GENERIC_EXTRA = (
    SensorEntityDescription(key="extra", state_class=SensorStateClass.MEASUREMENT),
    1,
)

# =============================================================================
# Read-only control settings (RPM limits, revision gated power limits)
# =============================================================================
READ_ONLY_CONTROLS: dict[AttributeKind, SensorEntityDescription] = {
    AttributeKind.MIN_RPM: SensorEntityDescription(
        key="min_rpm",
        native_unit_of_measurement=REVOLUTIONS_PER_MINUTE,
        entity_category=EntityCategory.DIAGNOSTIC,
        icon="mdi:fan-chevron-down",
    ),
    AttributeKind.MAX_RPM: SensorEntityDescription(
        key="max_rpm",
        native_unit_of_measurement=REVOLUTIONS_PER_MINUTE,
        entity_category=EntityCategory.DIAGNOSTIC,
        icon="mdi:fan-chevron-up",
    ),
    AttributeKind.MIN_POWER: SensorEntityDescription(
        key="min_power",
        native_unit_of_measurement=PERCENTAGE,
        entity_category=EntityCategory.DIAGNOSTIC,
        suggested_display_precision=0,
    ),
    AttributeKind.MAX_POWER: SensorEntityDescription(
        key="max_power",
        native_unit_of_measurement=PERCENTAGE,
        entity_category=EntityCategory.DIAGNOSTIC,
        suggested_display_precision=0,
    ),
}

# =============================================================================
# Device diagnostics
# =============================================================================
DIAGNOSTIC_SENSORS: tuple[SensorEntityDescription, ...] = (
    SensorEntityDescription(
        key="serial_number",
        name="Serial number",
        entity_category=EntityCategory.DIAGNOSTIC,
        icon="mdi:identifier",
    ),
    SensorEntityDescription(
        key="firmware_version",
        name="Firmware version",
        entity_category=EntityCategory.DIAGNOSTIC,
        icon="mdi:chip",
    ),
    SensorEntityDescription(
        key="power_cycles",
        name="Power cycles",
        entity_category=EntityCategory.DIAGNOSTIC,
        state_class=SensorStateClass.TOTAL_INCREASING,
        icon="mdi:counter",
    ),
    SensorEntityDescription(
        key="hardware_revision",
        name="Hardware revision",
        entity_category=EntityCategory.DIAGNOSTIC,
        icon="mdi:chip",
    ),
)


def _is_flow(attribute: Attribute) -> bool:
    return attribute.kind is AttributeKind.SPEED and "flow" in attribute.label.lower()


def _values(snapshot: TelemetrySnapshot, kind: AttributeKind) -> tuple[int | None, ...]:
    return {
        AttributeKind.TEMPERATURE: snapshot.temperatures,
        AttributeKind.SPEED: snapshot.speeds,
        AttributeKind.POWER: snapshot.powers,
        AttributeKind.VOLTAGE: snapshot.voltages,
        AttributeKind.CURRENT: snapshot.currents,
    }[kind]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Aquacomputer sensors from a config entry."""
    coordinator: AquacomputerCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    attributes = await hass.async_add_executor_job(coordinator.device.attributes)

    entities: list[SensorEntity] = []
    for attribute in attributes:
        if attribute.kind in SENSOR_KINDS:
            description, scale = FLOW_SENSOR if _is_flow(attribute) else CHANNEL_SENSORS[attribute.kind]
            entities.append(AquacomputerChannelSensor(coordinator, attribute, description, scale))
        elif attribute.kind is AttributeKind.EXTRA:
            description, scale = EXTRA_SENSORS.get(attribute.key, GENERIC_EXTRA)
            entities.append(AquacomputerExtraSensor(coordinator, attribute, description, scale))
        elif not attribute.writable and attribute.kind in READ_ONLY_CONTROLS:
            entities.append(
                AquacomputerControlSensor(coordinator, attribute, READ_ONLY_CONTROLS[attribute.kind])
            )

    for description in DIAGNOSTIC_SENSORS:
        if description.key == "hardware_revision" and coordinator.device.profile.writable_revision is None:
            continue
        entities.append(AquacomputerDiagnosticSensor(coordinator, description))

    _LOGGER.debug("Adding %d sensors for %s", len(entities), coordinator.device.profile.name)
    async_add_entities(entities)


class AquacomputerChannelSensor(AquacomputerEntity, SensorEntity):
    """A temperature, speed, power, voltage or current channel."""

    def __init__(
        self,
        coordinator: AquacomputerCoordinator,
        attribute: Attribute,
        description: SensorEntityDescription,
        scale: float,
    ) -> None:
        super().__init__(coordinator, attribute)
        self.entity_description = description
        self._scale = scale

    @property
    def native_value(self) -> float | None:
        if self.coordinator.data is None:
            return None
        values = _values(self.coordinator.data, self.attribute.kind)
        if self.attribute.channel >= len(values):
            return None
        raw = values[self.attribute.channel]
        if raw is None:
            return None
        return raw / self._scale if self._scale != 1 else raw


class AquacomputerExtraSensor(AquacomputerEntity, SensorEntity):
    """A model specific value from TelemetrySnapshot.extras."""

    def __init__(
        self,
        coordinator: AquacomputerCoordinator,
        attribute: Attribute,
        description: SensorEntityDescription,
        scale: float,
    ) -> None:
        super().__init__(coordinator, attribute)
        self.entity_description = description
        self._scale = scale

    @property
    def native_value(self) -> float | None:
        if self.coordinator.data is None:
            return None
        raw = self.coordinator.data.extras.get(self.attribute.key)
        if raw is None:
            return None
        return raw / self._scale if self._scale != 1 else raw


class AquacomputerControlSensor(AquacomputerControlEntity, SensorEntity):
    """A control setting the device does not let us change."""

    def __init__(
        self,
        coordinator: AquacomputerCoordinator,
        attribute: Attribute,
        description: SensorEntityDescription,
    ) -> None:
        super().__init__(coordinator, attribute)
        self.entity_description = description

    @property
    def native_value(self) -> float | None:
        if self._value is None:
            return None
        if self.attribute.kind in (AttributeKind.MIN_POWER, AttributeKind.MAX_POWER):
            return round(self._value * 100 / PWM_MAX)
        return self._value


class AquacomputerDiagnosticSensor(AquacomputerEntity, SensorEntity):
    """Identity and counters of the device."""

    def __init__(
        self,
        coordinator: AquacomputerCoordinator,
        description: SensorEntityDescription,
    ) -> None:
        super().__init__(
            coordinator,
            Attribute(AttributeKind.EXTRA, 0, str(description.name), key=description.key),
        )
        self.entity_description = description

    @property
    def native_value(self) -> Any:
        if self.coordinator.data is None:
            return None
        return getattr(self.coordinator.data, self.entity_description.key)
