"""Which attributes a model exposes, derived from its profile.

Presence is answered from the profile alone so a channel that does not
exist is never offered for reading or writing.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .decoder import EXTRA_KEYS, AlarmFlags
from .profiles import Capability, DeviceProfile


class AttributeKind(str, Enum):
    TEMPERATURE = "temperature"
    SPEED = "speed"
    POWER = "power"
    VOLTAGE = "voltage"
    CURRENT = "current"
    EXTRA = "extra"
    ALARM = "alarm"
    PWM = "pwm"
    PWM_MODE = "pwm_mode"
    TEMP_SELECT = "temp_select"
    TEMP_OFFSET = "temp_offset"
    FLOW_PULSES = "flow_pulses"
    MIN_POWER = "min_power"
    MAX_POWER = "max_power"
    FALLBACK_POWER = "fallback_power"
    HYSTERESIS = "hysteresis"
    START_BOOST = "start_boost"
    HOLD_MIN_POWER = "hold_min_power"
    FAN_CURVE = "fan_curve"
    MIN_RPM = "min_rpm"
    MAX_RPM = "max_rpm"


SENSOR_KINDS = (
    AttributeKind.TEMPERATURE,
    AttributeKind.SPEED,
    AttributeKind.POWER,
    AttributeKind.VOLTAGE,
    AttributeKind.CURRENT,
)

# Fan control settings -> FanControlLayout field that must be defined
FAN_CTRL_KINDS = {
    AttributeKind.PWM: "manual_power",
    AttributeKind.PWM_MODE: "mode",
    AttributeKind.TEMP_SELECT: "temp_select",
    AttributeKind.MIN_POWER: "min_power",
    AttributeKind.MAX_POWER: "max_power",
    AttributeKind.FALLBACK_POWER: "fallback_power",
    AttributeKind.HYSTERESIS: "hysteresis",
    AttributeKind.START_BOOST: "flags",
    AttributeKind.HOLD_MIN_POWER: "flags",
    AttributeKind.FAN_CURVE: "temp_curve",
    AttributeKind.MIN_RPM: "min_rpm",
    AttributeKind.MAX_RPM: "max_rpm",
}

READ_ONLY_KINDS = frozenset({AttributeKind.MIN_RPM, AttributeKind.MAX_RPM})
REVISION_GATED_KINDS = frozenset({AttributeKind.MIN_POWER, AttributeKind.MAX_POWER})


@dataclass(frozen=True)
class Attribute:
    """One exposed value. ``key`` names extras and alarm flags."""

    kind: AttributeKind
    channel: int
    label: str
    writable: bool = False
    key: str | None = None


def channel_count(profile: DeviceProfile, kind: AttributeKind) -> int:
    """Number of channels of a sensor or fan control kind."""
    if kind is AttributeKind.TEMPERATURE:
        return profile.num_temperature_channels
    if kind is AttributeKind.SPEED:
        return profile.num_speed_channels
    if kind is AttributeKind.POWER:
        return profile.num_power_channels
    if kind is AttributeKind.VOLTAGE:
        return profile.num_voltage_channels
    if kind is AttributeKind.CURRENT:
        return profile.num_current_channels
    if kind is AttributeKind.TEMP_OFFSET:
        return profile.num_temps if profile.temp_ctrl_offset is not None else 0
    if kind is AttributeKind.FLOW_PULSES:
        return int(profile.flow_pulses_ctrl_offset is not None)
    if kind in FAN_CTRL_KINDS:
        layout = profile.fan_ctrl_layout
        if layout is None or getattr(layout, FAN_CTRL_KINDS[kind]) is None:
            return 0
        return profile.num_fan_ctrl_channels
    return 0


def extra_keys(profile: DeviceProfile) -> tuple[str, ...]:
    keys: list[str] = []
    for capability, names in EXTRA_KEYS.items():
        if profile.has(capability):
            keys.extend(name for name in names if name not in keys)
    return tuple(keys)


def is_visible(profile: DeviceProfile, kind: AttributeKind, channel: int) -> bool:
    """Whether the profile defines the attribute at channel."""
    if kind in (AttributeKind.START_BOOST, AttributeKind.HOLD_MIN_POWER):
        if channel in profile.boost_exempt_channels:
            return False
    if kind is AttributeKind.ALARM:
        return profile.has(Capability.ALARM_WORD) and 0 <= channel < len(profile.alarm_bits)
    if kind is AttributeKind.EXTRA:
        return 0 <= channel < len(extra_keys(profile))
    return 0 <= channel < channel_count(profile, kind)


def _sensor_labels(profile: DeviceProfile, kind: AttributeKind) -> tuple[str, ...]:
    return {
        AttributeKind.TEMPERATURE: profile.temp_labels,
        AttributeKind.SPEED: profile.speed_labels,
        AttributeKind.POWER: profile.power_labels,
        AttributeKind.VOLTAGE: profile.voltage_labels,
        AttributeKind.CURRENT: profile.current_labels,
    }[kind]


def attributes(profile: DeviceProfile, revision_writable: bool = True) -> tuple[Attribute, ...]:
    """Enumerate every attribute the model exposes.

    Args:
        profile: Model layout.
        revision_writable: Whether the hardware revision allows writing the
            revision gated settings.
    """
    out: list[Attribute] = []
    for kind in SENSOR_KINDS:
        labels = _sensor_labels(profile, kind)
        out.extend(Attribute(kind, i, labels[i]) for i in range(channel_count(profile, kind)))

    for i, key in enumerate(extra_keys(profile)):
        out.append(Attribute(AttributeKind.EXTRA, i, key.replace("_", " ").capitalize(), key=key))

    if profile.has(Capability.ALARM_WORD):
        for i, (_bit, name) in enumerate(profile.alarm_bits):
            if name in AlarmFlags.names():
                out.append(Attribute(AttributeKind.ALARM, i, f"{name.replace('_', ' ')} alarm",
                                     key=name))

    for i in range(channel_count(profile, AttributeKind.TEMP_OFFSET)):
        out.append(Attribute(AttributeKind.TEMP_OFFSET, i, f"{profile.temp_labels[i]} offset",
                             writable=True))
    if channel_count(profile, AttributeKind.FLOW_PULSES):
        out.append(Attribute(AttributeKind.FLOW_PULSES, 0, "Flow sensor pulses", writable=True))

    for kind in FAN_CTRL_KINDS:
        for channel in range(channel_count(profile, kind)):
            if not is_visible(profile, kind, channel):
                continue
            writable = kind not in READ_ONLY_KINDS
            if kind in REVISION_GATED_KINDS and profile.writable_revision is not None:
                writable = revision_writable
            label = f"{profile.fan_ctrl_labels[channel]} {kind.value.replace('_', ' ')}"
            out.append(Attribute(kind, channel, label, writable=writable))
    return tuple(out)
