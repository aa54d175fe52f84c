"""Polling adapter for the older Aquacomputer models.

The Aquastream XT and Poweradjust 3 never push their status. It is fetched
with a feature report GET when the cached snapshot went stale, into the same
scratch buffer the control transactions use, and decoded little-endian.
"""
from __future__ import annotations

import logging
import time

from .const import AQUASTREAMXT_FAN_STOPPED
from .control import BufferTag, ControlSession
from .decoder import SnapshotBuilder, TelemetrySnapshot, check_report
from .errors import NoDataError, UnsupportedError
from .profiles import Capability, DeviceProfile
from .units import (
    FieldWidth,
    aquastreamxt_fan_rpm,
    aquastreamxt_pump_rpm,
    centi_to_milli,
    decode_temperature,
    read_int,
)

_LOGGER = logging.getLogger(__name__)


def _le16(data: bytes, offset: int) -> int:
    return read_int(data, offset, FieldWidth.U16LE)


def decode_legacy(profile: DeviceProfile, report: bytes, now: float) -> TelemetrySnapshot:
    """Decode a polled legacy status report.

    Raises:
        WrongReportError: If the report id is not the status report id.
        TruncatedReportError: If the report is too short.
    """
    check_report(profile, report)
    layout = profile.legacy
    out = SnapshotBuilder()

    if layout.serial is not None:
        out.serial_number = f"{_le16(report, layout.serial):05d}"
    if layout.firmware is not None:
        out.firmware_version = _le16(report, layout.firmware)

    for i in range(layout.num_temps):
        raw = read_int(report, layout.temp_start + i * 2, FieldWidth.S16LE)
        out.temperatures.append(decode_temperature(raw))

    if layout.pump_speed is not None:
        out.speeds.append(aquastreamxt_pump_rpm(_le16(report, layout.pump_speed)))
    if layout.fan_speed is not None:
        fan_rpm = aquastreamxt_fan_rpm(_le16(report, layout.fan_speed))
        if layout.fan_status is not None and report[layout.fan_status] == AQUASTREAMXT_FAN_STOPPED:
            fan_rpm = 0
        out.speeds.append(fan_rpm)

    if layout.pump_voltage is not None:
        out.voltages.append(centi_to_milli(_le16(report, layout.pump_voltage)))
    if layout.fan_voltage is not None:
        out.voltages.append(centi_to_milli(_le16(report, layout.fan_voltage)))
    if layout.pump_current is not None:
        out.currents.append(_le16(report, layout.pump_current))

    return out.build(now)


class LegacyPoller:
    """Fetches and decodes the status report of a polled model."""

    def __init__(self, profile: DeviceProfile, session: ControlSession) -> None:
        if not profile.has(Capability.LEGACY_POLLING) or profile.legacy is None:
            raise UnsupportedError(f"{profile.name} pushes its status reports")
        self.profile = profile
        self.session = session

    def poll_and_decode(self, now: float | None = None) -> TelemetrySnapshot:
        """Fetch the status report and decode it.

        Raises:
            NoDataError: If the transport fails.
            DecodeError: If the reply is not a valid status report.
        """
        profile = self.profile
        session = self.session
        with session.lock:
            session.enforce_delay()
            try:
                data = session.transport.get_feature_report(
                    profile.status_report_id, profile.status_report_size
                )
            except OSError as exc:
                raise NoDataError(f"Failed to read status report: {exc}") from exc
            finally:
                session.mark_operation()
            session.buffer.load(BufferTag.STATUS, bytes(data))
            report = bytes(session.buffer.view(BufferTag.STATUS))
        _LOGGER.debug("Polled %d byte status report from %s", len(report), profile.name)
        return decode_legacy(profile, report, time.monotonic() if now is None else now)
