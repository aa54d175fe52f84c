"""Telemetry decoder for Aquacomputer push reports.

A push report is decoded into a fresh :class:`TelemetrySnapshot`. Model
specific quirks are handled by a closed table of strategies keyed by
:class:`Capability`; models that do not opt into a capability get no
special processing.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Callable, Mapping

from .errors import TruncatedReportError, WrongReportError
from .profiles import Capability, DeviceProfile
from .profiles.profile_registry import SPECIAL_FIELDS
from .units import FieldWidth, centi_to_milli, decode_temperature, get_bit, read_int

_LOGGER = logging.getLogger(__name__)

# Power fields are centi-watts, except the composite High Flow Next reading
POWER_SCALE = 10000
DISSIPATED_POWER_SCALE = 1000000


@dataclass(frozen=True)
class AlarmFlags:
    """Named alarm states decoded from a 32-bit alarm word."""

    temperature: bool = False
    fan: bool = False
    flow: bool = False
    pump: bool = False
    power_supply: bool = False
    fill_level: bool = False
    leak: bool = False
    sensor: bool = False

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_word(cls, word: int, bits: tuple[tuple[int, str], ...]) -> AlarmFlags:
        return cls(**{name: bool(get_bit(word, pos)) for pos, name in bits})

    def active(self) -> list[str]:
        return [name for name in self.names() if getattr(self, name)]


@dataclass(frozen=True)
class TelemetrySnapshot:
    """One decoded status report, normalized to milli-units.

    Temperatures are milli-degrees with ``None`` for a disconnected sensor,
    speeds are RPM (flow channels dL/h), power is micro-watts, voltage
    milli-volts and current milli-amps.
    """

    temperatures: tuple[int | None, ...] = ()
    speeds: tuple[int, ...] = ()
    powers: tuple[int, ...] = ()
    voltages: tuple[int, ...] = ()
    currents: tuple[int, ...] = ()
    alarms: AlarmFlags | None = None
    extras: Mapping[str, int] = field(default_factory=dict)
    serial_number: str | None = None
    firmware_version: int | None = None
    power_cycles: int | None = None
    hardware_revision: int | None = None
    updated: float = 0.0

    def age(self, now: float) -> float:
        return now - self.updated


@dataclass
class SnapshotBuilder:
    """Mutable accumulator the decoder fills before freezing a snapshot."""

    temperatures: list[int | None] = field(default_factory=list)
    speeds: list[int] = field(default_factory=list)
    powers: list[int] = field(default_factory=list)
    voltages: list[int] = field(default_factory=list)
    currents: list[int] = field(default_factory=list)
    alarms: AlarmFlags | None = None
    extras: dict[str, int] = field(default_factory=dict)
    serial_number: str | None = None
    firmware_version: int | None = None
    power_cycles: int | None = None
    hardware_revision: int | None = None

    def build(self, now: float) -> TelemetrySnapshot:
        return TelemetrySnapshot(
            temperatures=tuple(self.temperatures),
            speeds=tuple(self.speeds),
            powers=tuple(self.powers),
            voltages=tuple(self.voltages),
            currents=tuple(self.currents),
            alarms=self.alarms,
            extras=MappingProxyType(dict(self.extras)),
            serial_number=self.serial_number,
            firmware_version=self.firmware_version,
            power_cycles=self.power_cycles,
            hardware_revision=self.hardware_revision,
            updated=now,
        )


def format_serial(first: int, second: int) -> str:
    return f"{first:05d}-{second:05d}"


def check_report(profile: DeviceProfile, report: bytes) -> None:
    """Validate report id and length against the profile.

    Raises:
        WrongReportError: If the report id does not match.
        TruncatedReportError: If the report is shorter than the layout.
    """
    if not report or report[0] != profile.status_report_id:
        raise WrongReportError(
            f"report id {report[0] if report else None} is not "
            f"0x{profile.status_report_id:02X}"
        )
    if len(report) < profile.status_report_size:
        raise TruncatedReportError(
            f"{profile.model}: got {len(report)} bytes, need {profile.status_report_size}"
        )


def _temperature(report: bytes, offset: int) -> int | None:
    return decode_temperature(read_int(report, offset, FieldWidth.S16BE))


def _u16(report: bytes, offset: int) -> int:
    return read_int(report, offset, FieldWidth.U16BE)


def _decode_voltage_rails(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    for offset in profile.extra_voltage_offsets:
        out.voltages.append(centi_to_milli(_u16(report, offset)))


def _decode_remote_temperature(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    for offset in profile.remote_temp_offsets:
        out.temperatures.append(_temperature(report, offset))


def _decode_alarms(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    word = read_int(report, profile.special["alarms"], FieldWidth.U32BE)
    out.alarms = AlarmFlags.from_word(word, profile.alarm_bits)


def _decode_flow_quality(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    special = profile.special
    out.powers.append(_u16(report, special["dissipated_power"]) * DISSIPATED_POWER_SCALE)
    out.extras["water_quality"] = _u16(report, special["water_quality"])
    out.extras["conductivity"] = _u16(report, special["conductivity"])


def _decode_leak_pressure(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    for name in SPECIAL_FIELDS[Capability.LEAK_PRESSURE]:
        out.extras[name] = _u16(report, profile.special[name])


def _decode_pump_record(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    special = profile.special
    # The pump is channel 0 in every fan group
    out.speeds.insert(0, _u16(report, special["pump_speed"]))
    out.voltages.insert(0, centi_to_milli(_u16(report, special["pump_voltage"])))
    out.currents.insert(0, _u16(report, special["pump_current"]))
    out.powers.insert(0, _u16(report, special["pump_power"]) * POWER_SCALE)
    out.extras["pressure"] = _u16(report, special["pressure"])


def _decode_hardware_revision(profile: DeviceProfile, report: bytes, out: SnapshotBuilder) -> None:
    out.hardware_revision = _u16(report, profile.special["hardware_revision"])


# Keys each strategy adds to TelemetrySnapshot.extras
EXTRA_KEYS: dict[Capability, tuple[str, ...]] = {
    Capability.FLOW_QUALITY: ("water_quality", "conductivity"),
    Capability.LEAK_PRESSURE: SPECIAL_FIELDS[Capability.LEAK_PRESSURE],
    Capability.PUMP_RECORD: ("pressure",),
}

SPECIAL_CASES: dict[Capability, Callable[[DeviceProfile, bytes, SnapshotBuilder], None]] = {
    Capability.PUMP_RECORD: _decode_pump_record,
    Capability.EXTRA_VOLTAGE_RAILS: _decode_voltage_rails,
    Capability.REMOTE_TEMPERATURE: _decode_remote_temperature,
    Capability.ALARM_WORD: _decode_alarms,
    Capability.FLOW_QUALITY: _decode_flow_quality,
    Capability.LEAK_PRESSURE: _decode_leak_pressure,
    Capability.HARDWARE_REVISION: _decode_hardware_revision,
}


def decode(profile: DeviceProfile, report: bytes, now: float | None = None) -> TelemetrySnapshot:
    """Decode a push report into a new snapshot.

    Args:
        profile: Layout of the reporting model.
        report: Raw report, starting with the report id.
        now: Monotonic timestamp to stamp the snapshot with.

    Returns:
        The decoded snapshot.

    Raises:
        WrongReportError: If the report id is not the status report id.
        TruncatedReportError: If the report is too short for the layout.
    """
    check_report(profile, report)
    out = SnapshotBuilder()

    if profile.serial_offset is not None:
        out.serial_number = format_serial(
            _u16(report, profile.serial_offset), _u16(report, profile.serial_offset + 2)
        )
    if profile.firmware_offset is not None:
        out.firmware_version = _u16(report, profile.firmware_offset)
    if profile.power_cycles_offset is not None:
        out.power_cycles = read_int(report, profile.power_cycles_offset, FieldWidth.U32BE)

    for start, count in (
        (profile.temp_start, profile.num_temps),
        (profile.virtual_temp_start, profile.num_virtual_temps),
        (profile.calc_virtual_temp_start, profile.num_calc_virtual_temps),
    ):
        for i in range(count):
            out.temperatures.append(_temperature(report, start + i * 2))

    layout = profile.fan_layout
    for offset in profile.fan_offsets:
        out.speeds.append(_u16(report, offset + layout.speed))
        out.voltages.append(centi_to_milli(_u16(report, offset + layout.voltage)))
        out.currents.append(_u16(report, offset + layout.current))
        out.powers.append(_u16(report, offset + layout.power) * POWER_SCALE)

    for offset in profile.flow_offsets:
        out.speeds.append(_u16(report, offset))

    for capability, strategy in SPECIAL_CASES.items():
        if profile.has(capability):
            strategy(profile, report, out)

    snapshot = out.build(time.monotonic() if now is None else now)
    _LOGGER.debug(
        "Decoded %s report: %d temperatures, %d speeds",
        profile.model,
        len(snapshot.temperatures),
        len(snapshot.speeds),
    )
    return snapshot
