"""Aquacomputer device profile registry.

Every supported model ships a module in this package holding a plain
``PROFILE_MAP`` dict. The registry turns those dicts into immutable
:class:`DeviceProfile` objects, validating the layout once on first use.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from ..const import (
    CTRL_REPORT_CHECKSUM_START,
    CTRL_REPORT_CHECKSUM_TRAILER_SIZE,
    CTRL_REPORT_ID,
    NUM_CURVE_POINTS,
    SENSOR_SIZE,
    STATUS_REPORT_ID,
)
from ..errors import ProfileDefinitionError, UnsupportedError
from ..units import FieldWidth
from . import (
    aquaero,
    aquastreamult,
    aquastreamxt,
    d5next,
    farbwerk,
    farbwerk360,
    highflownext,
    leakshield,
    octo,
    poweradjust3,
    quadro,
)

_LOGGER = logging.getLogger(__name__)

# Data-driven model -> table module configuration
MODEL_MAPS = {
    "aquaero": aquaero,
    "aquastreamult": aquastreamult,
    "aquastreamxt": aquastreamxt,
    "d5next": d5next,
    "farbwerk": farbwerk,
    "farbwerk360": farbwerk360,
    "highflownext": highflownext,
    "leakshield": leakshield,
    "octo": octo,
    "poweradjust3": poweradjust3,
    "quadro": quadro,
}


class Capability(str, Enum):
    """Special case strategies a profile opts into."""

    EXTRA_VOLTAGE_RAILS = "extra_voltage_rails"
    REMOTE_TEMPERATURE = "remote_temperature"
    ALARM_WORD = "alarm_word"
    FLOW_QUALITY = "flow_quality"
    LEAK_PRESSURE = "leak_pressure"
    PUMP_RECORD = "pump_record"
    HARDWARE_REVISION = "hardware_revision"
    ZERO_BASED_ENABLE = "zero_based_enable"
    LEGACY_POLLING = "legacy_polling"


# Offsets each strategy reads from DeviceProfile.special
SPECIAL_FIELDS = {
    Capability.ALARM_WORD: ("alarms",),
    Capability.FLOW_QUALITY: ("water_quality", "dissipated_power", "conductivity"),
    Capability.LEAK_PRESSURE: (
        "pressure",
        "pressure_min",
        "pressure_target",
        "pressure_max",
        "pump_speed_in",
        "flow_in",
        "reservoir_filled",
        "reservoir_volume",
    ),
    Capability.PUMP_RECORD: (
        "pump_voltage",
        "pump_speed",
        "pump_current",
        "pump_power",
        "pressure",
    ),
    Capability.HARDWARE_REVISION: ("hardware_revision",),
}


@dataclass(frozen=True)
class FanLayout:
    """Offsets of the sensor sub-fields within a fan record."""

    voltage: int
    current: int
    power: int
    speed: int

    @property
    def extent(self) -> int:
        return max(self.voltage, self.current, self.power, self.speed) + SENSOR_SIZE


@dataclass(frozen=True)
class FanControlLayout:
    """Offsets of the settings within a fan control record.

    Every offset is relative to the record start. ``None`` means the model
    does not define that setting.
    """

    stride: int
    mode: int | None = None
    manual_power: int | None = None
    setpoint_width: FieldWidth = FieldWidth.U16BE
    setpoint_is_rpm: bool = False
    temp_select: int | None = None
    min_power: int | None = None
    max_power: int | None = None
    fallback_power: int | None = None
    flags: int | None = None
    hysteresis: int | None = None
    temp_curve: int | None = None
    power_curve: int | None = None
    min_rpm: int | None = None
    max_rpm: int | None = None

    def fields(self) -> dict[str, tuple[int, int]]:
        """Map of defined setting name -> (relative offset, size)."""
        out = {}
        for name, size in (
            ("mode", 1),
            ("manual_power", self.setpoint_width.size),
            ("temp_select", 2),
            ("min_power", 2),
            ("max_power", 2),
            ("fallback_power", 2),
            ("flags", 1),
            ("hysteresis", 2),
            ("temp_curve", NUM_CURVE_POINTS * 2),
            ("power_curve", NUM_CURVE_POINTS * 2),
            ("min_rpm", 2),
            ("max_rpm", 2),
        ):
            offset = getattr(self, name)
            if offset is not None:
                out[name] = (offset, size)
        return out


@dataclass(frozen=True)
class ChecksumWindow:
    start: int
    length: int
    trailer: int


@dataclass(frozen=True)
class SecondaryReport:
    """Fixed report the vendor software sends after every control write."""

    report_id: int
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class LegacyLayout:
    """Little-endian status layout of the polled models."""

    serial: int | None = None
    firmware: int | None = None
    temp_start: int = 0
    num_temps: int = 0
    pump_speed: int | None = None
    fan_speed: int | None = None
    fan_status: int | None = None
    pump_voltage: int | None = None
    fan_voltage: int | None = None
    pump_current: int | None = None

    @property
    def num_speeds(self) -> int:
        return sum(offset is not None for offset in (self.pump_speed, self.fan_speed))

    @property
    def num_voltages(self) -> int:
        return sum(offset is not None for offset in (self.pump_voltage, self.fan_voltage))

    @property
    def num_currents(self) -> int:
        return int(self.pump_current is not None)


@dataclass(frozen=True)
class DeviceProfile:
    """Immutable description of one device model."""

    model: str
    name: str
    status_report_id: int
    status_report_size: int
    serial_offset: int | None = None
    firmware_offset: int | None = None
    power_cycles_offset: int | None = None
    temp_start: int = 0
    num_temps: int = 0
    virtual_temp_start: int = 0
    num_virtual_temps: int = 0
    calc_virtual_temp_start: int = 0
    num_calc_virtual_temps: int = 0
    remote_temp_offsets: tuple[int, ...] = ()
    flow_offsets: tuple[int, ...] = ()
    fan_offsets: tuple[int, ...] = ()
    fan_layout: FanLayout | None = None
    extra_voltage_offsets: tuple[int, ...] = ()
    special: Mapping[str, int] = field(default_factory=dict)
    alarm_bits: tuple[tuple[int, str], ...] = ()
    writable_revision: int | None = None
    ctrl_report_id: int = CTRL_REPORT_ID
    ctrl_report_size: int = 0
    checksum: ChecksumWindow | None = None
    secondary_report: SecondaryReport | None = None
    ctrl_delay: float = 0.0
    temp_ctrl_offset: int | None = None
    flow_pulses_ctrl_offset: int | None = None
    fan_ctrl_offsets: tuple[int, ...] = ()
    fan_ctrl_layout: FanControlLayout | None = None
    boost_exempt_channels: frozenset[int] = frozenset()
    capabilities: frozenset[Capability] = frozenset()
    legacy: LegacyLayout | None = None
    temp_labels: tuple[str, ...] = ()
    speed_labels: tuple[str, ...] = ()
    power_labels: tuple[str, ...] = ()
    voltage_labels: tuple[str, ...] = ()
    current_labels: tuple[str, ...] = ()
    fan_ctrl_labels: tuple[str, ...] = ()

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def has_control(self) -> bool:
        return self.ctrl_report_size > 0

    @property
    def num_fans(self) -> int:
        return len(self.fan_offsets)

    @property
    def num_pumps(self) -> int:
        return int(self.has(Capability.PUMP_RECORD))

    @property
    def num_temperature_channels(self) -> int:
        if self.legacy is not None:
            return self.legacy.num_temps
        count = self.num_temps + self.num_virtual_temps + self.num_calc_virtual_temps
        if self.has(Capability.REMOTE_TEMPERATURE):
            count += len(self.remote_temp_offsets)
        return count

    @property
    def num_speed_channels(self) -> int:
        if self.legacy is not None:
            return self.legacy.num_speeds
        return self.num_pumps + self.num_fans + len(self.flow_offsets)

    @property
    def num_power_channels(self) -> int:
        if self.legacy is not None:
            return 0
        return self.num_pumps + self.num_fans + int(self.has(Capability.FLOW_QUALITY))

    @property
    def num_voltage_channels(self) -> int:
        if self.legacy is not None:
            return self.legacy.num_voltages
        count = self.num_pumps + self.num_fans
        if self.has(Capability.EXTRA_VOLTAGE_RAILS):
            count += len(self.extra_voltage_offsets)
        return count

    @property
    def num_current_channels(self) -> int:
        if self.legacy is not None:
            return self.legacy.num_currents
        return self.num_pumps + self.num_fans

    @property
    def num_fan_ctrl_channels(self) -> int:
        return len(self.fan_ctrl_offsets)


def _fail(model: str, message: str) -> None:
    raise ProfileDefinitionError(f"{model}: {message}")


def _check_field(model: str, what: str, offset: int | None, size: int, limit: int) -> None:
    if offset is None:
        return
    if offset < 0 or offset + size > limit:
        _fail(model, f"{what} at 0x{offset:X} exceeds report size 0x{limit:X}")


def validate_profile(profile: DeviceProfile) -> DeviceProfile:
    """Check a profile for internal consistency.

    Raises:
        ProfileDefinitionError: If any offset lies outside its report, a count
            is negative, or a label table does not match its channel count.
    """
    model = profile.model
    status_size = profile.status_report_size
    if status_size <= 0:
        _fail(model, "status report size must be positive")

    for what, count in (
        ("num_temps", profile.num_temps),
        ("num_virtual_temps", profile.num_virtual_temps),
        ("num_calc_virtual_temps", profile.num_calc_virtual_temps),
    ):
        if count < 0:
            _fail(model, f"{what} must not be negative")

    if profile.legacy is not None:
        legacy = profile.legacy
        if legacy.num_temps < 0:
            _fail(model, "legacy num_temps must not be negative")
        for what in ("serial", "firmware", "pump_speed", "fan_speed", "pump_voltage",
                     "fan_voltage", "pump_current"):
            _check_field(model, f"legacy {what}", getattr(legacy, what), 2, status_size)
        _check_field(model, "legacy fan_status", legacy.fan_status, 1, status_size)
        _check_field(model, "legacy temperatures", legacy.temp_start,
                     legacy.num_temps * SENSOR_SIZE, status_size)
    else:
        _check_field(model, "serial number", profile.serial_offset, 4, status_size)
        _check_field(model, "firmware version", profile.firmware_offset, 2, status_size)
        _check_field(model, "power cycles", profile.power_cycles_offset, 4, status_size)
        for what, start, count in (
            ("temperatures", profile.temp_start, profile.num_temps),
            ("virtual temperatures", profile.virtual_temp_start, profile.num_virtual_temps),
            ("calculated temperatures", profile.calc_virtual_temp_start,
             profile.num_calc_virtual_temps),
        ):
            if count:
                _check_field(model, what, start, count * SENSOR_SIZE, status_size)
        for offset in (*profile.remote_temp_offsets, *profile.flow_offsets,
                       *profile.extra_voltage_offsets):
            _check_field(model, "sensor", offset, SENSOR_SIZE, status_size)
        if profile.fan_offsets and profile.fan_layout is None:
            _fail(model, "fans defined without a fan layout")
        for offset in profile.fan_offsets:
            _check_field(model, "fan record", offset, profile.fan_layout.extent, status_size)
        for name, offset in profile.special.items():
            _check_field(model, name, offset, SENSOR_SIZE, status_size)
        for capability, names in SPECIAL_FIELDS.items():
            if profile.has(capability):
                missing = [name for name in names if name not in profile.special]
                if missing:
                    _fail(model, f"{capability.value} needs offsets for {', '.join(missing)}")
        if profile.has(Capability.ALARM_WORD):
            _check_field(model, "alarm word", profile.special.get("alarms"), 4, status_size)

    ctrl_size = profile.ctrl_report_size
    if ctrl_size < 0:
        _fail(model, "control report size must not be negative")
    if profile.fan_ctrl_offsets and not ctrl_size:
        _fail(model, "fan control records without a control report")
    if profile.checksum is not None:
        window = profile.checksum
        if window.start < 1 or window.start + window.length > window.trailer:
            _fail(model, "checksum window overlaps its trailer")
        _check_field(model, "checksum trailer", window.trailer,
                     CTRL_REPORT_CHECKSUM_TRAILER_SIZE, ctrl_size)
    if ctrl_size:
        _check_field(model, "temperature offsets", profile.temp_ctrl_offset,
                     profile.num_temps * SENSOR_SIZE, ctrl_size)
        _check_field(model, "flow pulses", profile.flow_pulses_ctrl_offset, 2, ctrl_size)
    if profile.fan_ctrl_offsets:
        layout = profile.fan_ctrl_layout
        if layout is None:
            _fail(model, "fan control records without a layout")
        for name, (relative, size) in layout.fields().items():
            if relative + size > layout.stride:
                _fail(model, f"fan control {name} exceeds record stride 0x{layout.stride:X}")
        for offset in profile.fan_ctrl_offsets:
            _check_field(model, "fan control record", offset, layout.stride, ctrl_size)
    for channel in profile.boost_exempt_channels:
        if not 0 <= channel < profile.num_fan_ctrl_channels:
            _fail(model, f"boost exempt channel {channel} does not exist")

    for what, labels, count in (
        ("temperature", profile.temp_labels, profile.num_temperature_channels),
        ("speed", profile.speed_labels, profile.num_speed_channels),
        ("power", profile.power_labels, profile.num_power_channels),
        ("voltage", profile.voltage_labels, profile.num_voltage_channels),
        ("current", profile.current_labels, profile.num_current_channels),
        ("fan control", profile.fan_ctrl_labels, profile.num_fan_ctrl_channels),
    ):
        if len(labels) != count:
            _fail(model, f"{len(labels)} {what} labels for {count} channels")
    return profile


def _checksum_for(ctrl_size: int) -> ChecksumWindow:
    """Checksum layout shared by every checksummed control report."""
    trailer = ctrl_size - CTRL_REPORT_CHECKSUM_TRAILER_SIZE
    return ChecksumWindow(
        start=CTRL_REPORT_CHECKSUM_START,
        length=trailer - CTRL_REPORT_CHECKSUM_START,
        trailer=trailer,
    )


def build_profile(model: str, table: Mapping[str, Any]) -> DeviceProfile:
    """Build and validate a profile from a ``PROFILE_MAP`` style dict."""
    data = dict(table)
    ctrl_size = data.get("ctrl_report_size", 0)
    if data.pop("checksummed", False):
        data["checksum"] = _checksum_for(ctrl_size)
    secondary = data.pop("secondary_report", None)
    if secondary is not None:
        report_id, payload = secondary
        data["secondary_report"] = SecondaryReport(report_id, bytes(payload))
    ctrl_layout = data.get("fan_ctrl_layout")
    if isinstance(ctrl_layout, Mapping) and isinstance(ctrl_layout.get("setpoint_width"), str):
        data["fan_ctrl_layout"] = {
            **ctrl_layout,
            "setpoint_width": FieldWidth[ctrl_layout["setpoint_width"]],
        }
    for key in ("fan_layout", "fan_ctrl_layout", "legacy"):
        value = data.get(key)
        if isinstance(value, Mapping):
            cls = {"fan_layout": FanLayout, "fan_ctrl_layout": FanControlLayout,
                   "legacy": LegacyLayout}[key]
            data[key] = cls(**value)
    data["special"] = MappingProxyType(dict(data.get("special", {})))
    data["capabilities"] = frozenset(Capability(c) for c in data.get("capabilities", ()))
    data["boost_exempt_channels"] = frozenset(data.get("boost_exempt_channels", ()))
    for key in ("remote_temp_offsets", "flow_offsets", "fan_offsets", "extra_voltage_offsets",
                "fan_ctrl_offsets", "alarm_bits", "temp_labels", "speed_labels",
                "power_labels", "voltage_labels", "current_labels", "fan_ctrl_labels"):
        if key in data:
            data[key] = tuple(data[key])
    data.setdefault("status_report_id", STATUS_REPORT_ID)
    try:
        profile = DeviceProfile(model=model, **data)
    except TypeError as exc:
        raise ProfileDefinitionError(f"{model}: {exc}") from exc
    return validate_profile(profile)


class ProfileRegistry:
    """Catalog of validated device profiles keyed by model identifier."""

    def __init__(self, maps: Mapping[str, Any] | None = None) -> None:
        self._maps = dict(MODEL_MAPS if maps is None else maps)
        self._profiles: dict[str, DeviceProfile] = {}

    def supported_models(self) -> list[str]:
        return sorted(self._maps)

    def profile_for(self, model: str) -> DeviceProfile:
        """Return the profile of model.

        Raises:
            UnsupportedError: If no table exists for model.
        """
        profile = self._profiles.get(model)
        if profile is not None:
            return profile
        module = self._maps.get(model)
        if module is None:
            raise UnsupportedError(f"Unknown Aquacomputer model: {model}")
        _LOGGER.debug("Building profile for %s", model)
        profile = build_profile(model, module.PROFILE_MAP)
        self._profiles[model] = profile
        return profile


_REGISTRY = ProfileRegistry()


def profile_for(model: str) -> DeviceProfile:
    """Look up the shared profile of model."""
    return _REGISTRY.profile_for(model)


def supported_models() -> list[str]:
    return _REGISTRY.supported_models()
