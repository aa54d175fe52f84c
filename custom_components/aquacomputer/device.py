"""Aquacomputer device facade.

This module ties a profile, a transport and the protocol components
together for one attached device. It owns the latest telemetry snapshot and
offers the read and write accessors the Home Assistant entities use.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .const import (
    FIRST_REPORT_TIMEOUT,
    FLOW_PULSES_MAX,
    FLOW_PULSES_MIN,
    PWM_MAX,
    STATUS_VALIDITY,
    TEMP_OFFSET_LIMIT,
)
from .control import ControlSession, Transport
from .decoder import AlarmFlags, TelemetrySnapshot, decode
from .errors import (
    AquacomputerError,
    NoDataError,
    OutOfRangeError,
    StaleDataError,
    TruncatedReportError,
    UnsupportedError,
    WrongReportError,
)
from .exposure import Attribute, AttributeKind, attributes, extra_keys, is_visible
from .fan_curve import FanCurveModel
from .legacy import LegacyPoller
from .profiles import Capability, DeviceProfile
from .units import (
    FieldWidth,
    centi_to_milli,
    milli_to_centi,
    percent_to_pwm,
    pwm_to_percent,
    pwm_to_rpm,
    rpm_to_pwm,
)

_LOGGER = logging.getLogger(__name__)

# hwmon style control modes; 0 ("off") is not supported by the firmware
PWM_MODES = {
    1: "manual",
    2: "pid",
    3: "curve",
    4: "follow",
}


class AquacomputerDevice:
    """One attached Aquacomputer device.

    Push devices feed :meth:`handle_report` from the transport reader thread.
    Legacy devices are polled whenever the snapshot is older than the
    validity window.

    Attributes:
        profile: Layout of the model.
        session: Serialized control report access.
        fan_curves: Fan curve parameters of the fan control channels.
    """

    def __init__(
        self,
        profile: DeviceProfile,
        transport: Transport,
        *,
        validity: float = STATUS_VALIDITY,
        first_report_timeout: float = FIRST_REPORT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.profile = profile
        self.transport = transport
        self.validity = validity
        self.first_report_timeout = first_report_timeout
        self._clock = clock
        self.session = ControlSession(profile, transport, clock=clock, sleep=sleep)
        self.fan_curves = FanCurveModel(profile, self.session)
        self.poller = (
            LegacyPoller(profile, self.session) if profile.has(Capability.LEGACY_POLLING) else None
        )
        self._snapshot: TelemetrySnapshot | None = None
        self._snapshot_lock = threading.Lock()
        self._first_report = threading.Event()

    @property
    def is_legacy(self) -> bool:
        return self.poller is not None

    # ==== Telemetry ====

    def _store(self, snapshot: TelemetrySnapshot) -> None:
        with self._snapshot_lock:
            self._snapshot = snapshot
        self._first_report.set()

    def handle_report(self, report_id: int, data: bytes) -> None:
        """Transport callback for unsolicited reports.

        Decode errors never propagate: the report is dropped and the previous
        snapshot stays in place.
        """
        try:
            snapshot = decode(self.profile, bytes(data), self._clock())
        except WrongReportError:
            return
        except TruncatedReportError as exc:
            _LOGGER.warning("Dropping truncated report 0x%02X: %s", report_id, exc)
            return
        except AquacomputerError as exc:
            _LOGGER.warning("Dropping report 0x%02X: %s", report_id, exc)
            return
        self._store(snapshot)

    def wait_for_first_report(self, timeout: float | None = None) -> bool:
        """Block until the first report was decoded; False on timeout."""
        return self._first_report.wait(timeout)

    @property
    def last_snapshot(self) -> TelemetrySnapshot | None:
        """Latest snapshot regardless of its age."""
        with self._snapshot_lock:
            return self._snapshot

    def snapshot(self) -> TelemetrySnapshot:
        """Return a snapshot younger than the validity window.

        Raises:
            StaleDataError: If a push device has not reported recently.
            NoDataError: If polling a legacy device fails.
        """
        now = self._clock()
        snapshot = self.last_snapshot
        if snapshot is not None and snapshot.age(now) <= self.validity:
            return snapshot
        if self.poller is not None:
            snapshot = self.poller.poll_and_decode(now)
            self._store(snapshot)
            return snapshot
        raise StaleDataError(f"No status report from {self.profile.name} in {self.validity}s")

    def _require(self, kind: AttributeKind, channel: int) -> None:
        if not is_visible(self.profile, kind, channel):
            raise UnsupportedError(f"{self.profile.name} has no {kind.value} channel {channel}")

    def read(self, kind: AttributeKind, channel: int) -> int:
        """Read a sensor channel of the current snapshot.

        Raises:
            UnsupportedError: If the model does not have the channel.
            StaleDataError: If the snapshot is too old.
            NoDataError: If the sensor is disconnected.
        """
        self._require(kind, channel)
        snapshot = self.snapshot()
        values = {
            AttributeKind.TEMPERATURE: snapshot.temperatures,
            AttributeKind.SPEED: snapshot.speeds,
            AttributeKind.POWER: snapshot.powers,
            AttributeKind.VOLTAGE: snapshot.voltages,
            AttributeKind.CURRENT: snapshot.currents,
        }.get(kind)
        if values is None:
            raise UnsupportedError(f"{kind.value} is not a sensor attribute")
        value = values[channel]
        if value is None:
            raise NoDataError(f"{self.profile.temp_labels[channel]} is not connected")
        return value

    def read_extra(self, key: str) -> int:
        if key not in extra_keys(self.profile):
            raise UnsupportedError(f"{self.profile.name} does not report {key}")
        return self.snapshot().extras[key]

    def read_alarms(self) -> AlarmFlags:
        if not self.profile.has(Capability.ALARM_WORD):
            raise UnsupportedError(f"{self.profile.name} has no alarm word")
        alarms = self.snapshot().alarms
        if alarms is None:
            raise NoDataError("no alarm word decoded")
        return alarms

    # ==== Capabilities ====

    def revision_writable(self) -> bool:
        """Whether revision gated settings may be written.

        Models that learn their hardware revision from the first report wait
        for it at most ``first_report_timeout`` seconds and stay read-only if
        it does not arrive.
        """
        required = self.profile.writable_revision
        if required is None:
            return True
        if not self.wait_for_first_report(self.first_report_timeout):
            _LOGGER.warning(
                "No report from %s within %.1fs, keeping fan power read-only",
                self.profile.name,
                self.first_report_timeout,
            )
            return False
        snapshot = self.last_snapshot
        revision = snapshot.hardware_revision if snapshot is not None else None
        return revision is not None and revision >= required

    def attributes(self) -> tuple[Attribute, ...]:
        gated = self.profile.writable_revision is not None
        return attributes(self.profile, self.revision_writable() if gated else True)

    # ==== Fan control ====

    def _ctrl_offset(self, kind: AttributeKind, channel: int, name: str) -> int:
        self._require(kind, channel)
        return self.profile.fan_ctrl_offsets[channel] + getattr(self.profile.fan_ctrl_layout, name)

    def read_pwm(self, channel: int) -> int:
        offset = self._ctrl_offset(AttributeKind.PWM, channel, "manual_power")
        layout = self.profile.fan_ctrl_layout
        raw = self.session.read_field(offset, layout.setpoint_width)
        return rpm_to_pwm(raw) if layout.setpoint_is_rpm else percent_to_pwm(raw)

    def write_pwm(self, channel: int, value: int) -> None:
        offset = self._ctrl_offset(AttributeKind.PWM, channel, "manual_power")
        if not 0 <= value <= PWM_MAX:
            raise OutOfRangeError(f"PWM value {value} outside 0-{PWM_MAX}")
        layout = self.profile.fan_ctrl_layout
        raw = pwm_to_rpm(value) if layout.setpoint_is_rpm else pwm_to_percent(value)
        self.session.write_field(offset, raw, layout.setpoint_width)

    def _zero_based(self) -> bool:
        return self.profile.has(Capability.ZERO_BASED_ENABLE)

    def read_pwm_mode(self, channel: int) -> int:
        """Control mode as seen by hwmon (see ``PWM_MODES``)."""
        offset = self._ctrl_offset(AttributeKind.PWM_MODE, channel, "mode")
        raw = self.session.read_field(offset, FieldWidth.U8)
        return raw + 1 if self._zero_based() else raw

    def write_pwm_mode(self, channel: int, value: int) -> None:
        offset = self._ctrl_offset(AttributeKind.PWM_MODE, channel, "mode")
        if value not in PWM_MODES:
            raise OutOfRangeError(f"control mode {value} not in {sorted(PWM_MODES)}")
        raw = value - 1 if self._zero_based() else value
        self.session.write_field(offset, raw, FieldWidth.U8)

    def read_temp_select(self, channel: int) -> int:
        offset = self._ctrl_offset(AttributeKind.TEMP_SELECT, channel, "temp_select")
        return self.session.read_field(offset, FieldWidth.U16BE)

    def write_temp_select(self, channel: int, sensor: int) -> None:
        offset = self._ctrl_offset(AttributeKind.TEMP_SELECT, channel, "temp_select")
        sources = self.profile.num_temps + self.profile.num_virtual_temps
        if not 0 <= sensor < sources:
            raise OutOfRangeError(f"temperature source {sensor} outside 0-{sources - 1}")
        self.session.write_field(offset, sensor, FieldWidth.U16BE)

    def read_rpm_limits(self, channel: int) -> tuple[int, int]:
        """Configured (minimum, maximum) fan RPM; read-only."""
        min_offset = self._ctrl_offset(AttributeKind.MIN_RPM, channel, "min_rpm")
        max_offset = self._ctrl_offset(AttributeKind.MAX_RPM, channel, "max_rpm")
        image = self.session.fetch_control_image()
        return image.read(min_offset, FieldWidth.U16BE), image.read(max_offset, FieldWidth.U16BE)

    def _require_revision(self, kind: AttributeKind, channel: int) -> None:
        self._require(kind, channel)
        if not self.revision_writable():
            raise UnsupportedError(
                f"{kind.value} is read-only on this {self.profile.name} revision"
            )

    def set_min_power(self, channel: int, value: int) -> None:
        self._require_revision(AttributeKind.MIN_POWER, channel)
        self.fan_curves.set_min_power(channel, value)

    def set_max_power(self, channel: int, value: int) -> None:
        self._require_revision(AttributeKind.MAX_POWER, channel)
        self.fan_curves.set_max_power(channel, value)

    # ==== Calibration ====

    def _temp_offset(self, channel: int) -> int:
        self._require(AttributeKind.TEMP_OFFSET, channel)
        return self.profile.temp_ctrl_offset + channel * 2

    def read_temp_offset(self, channel: int) -> int:
        """Temperature trim of a physical sensor in milli-degrees."""
        raw = self.session.read_field(self._temp_offset(channel), FieldWidth.S16BE)
        return centi_to_milli(raw)

    def write_temp_offset(self, channel: int, value: int) -> None:
        offset = self._temp_offset(channel)
        if not -TEMP_OFFSET_LIMIT <= value <= TEMP_OFFSET_LIMIT:
            raise OutOfRangeError(
                f"temperature offset {value} outside +-{TEMP_OFFSET_LIMIT}"
            )
        self.session.write_field(offset, milli_to_centi(value), FieldWidth.S16BE)

    def read_flow_pulses(self) -> int:
        self._require(AttributeKind.FLOW_PULSES, 0)
        return self.session.read_field(self.profile.flow_pulses_ctrl_offset, FieldWidth.U16BE)

    def write_flow_pulses(self, value: int) -> None:
        self._require(AttributeKind.FLOW_PULSES, 0)
        if not FLOW_PULSES_MIN <= value <= FLOW_PULSES_MAX:
            raise OutOfRangeError(
                f"flow pulses {value} outside {FLOW_PULSES_MIN}-{FLOW_PULSES_MAX}"
            )
        self.session.write_field(
            self.profile.flow_pulses_ctrl_offset, value, FieldWidth.U16BE
        )
