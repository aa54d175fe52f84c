"""Fan curve parameters stored in the control report.

Each fan control record holds a 16 point curve of (temperature, power)
pairs and a handful of scalar limits. Every read and write goes through the
control session so it is serialized against other configuration changes.
"""
from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from .const import CURVE_TEMP_MAX, CURVE_TEMP_MIN, HYSTERESIS_MAX, NUM_CURVE_POINTS, PWM_MAX
from .control import ControlSession, FieldWrite, patch_fields
from .errors import OutOfRangeError, UnsupportedError
from .profiles import DeviceProfile
from .units import (
    FieldWidth,
    centi_to_milli,
    get_bit,
    milli_to_centi,
    percent_to_pwm,
    pwm_to_percent,
    set_bit,
)

_LOGGER = logging.getLogger(__name__)

# Bits of the per-channel flag byte
FLAG_HOLD_MIN_POWER = 0
FLAG_START_BOOST = 1


class FanCurvePoint(NamedTuple):
    """Curve point: temperature in milli-degrees, power as PWM (0-255)."""

    temperature: int
    power: int


def _check_pwm(value: int) -> None:
    if not 0 <= value <= PWM_MAX:
        raise OutOfRangeError(f"PWM value {value} outside 0-{PWM_MAX}")


def _check_curve_temperature(value: int) -> None:
    if not CURVE_TEMP_MIN <= value <= CURVE_TEMP_MAX:
        raise OutOfRangeError(
            f"curve temperature {value} outside {CURVE_TEMP_MIN}-{CURVE_TEMP_MAX}"
        )


class FanCurveModel:
    """Curve points and auxiliary limits of the fan control channels."""

    def __init__(self, profile: DeviceProfile, session: ControlSession) -> None:
        self.profile = profile
        self.session = session

    def _record(self, channel: int) -> int:
        offsets = self.profile.fan_ctrl_offsets
        if not offsets:
            raise UnsupportedError(f"{self.profile.name} has no fan control channels")
        if not 0 <= channel < len(offsets):
            raise OutOfRangeError(f"fan control channel {channel} does not exist")
        return offsets[channel]

    def _offset(self, channel: int, name: str) -> int:
        record = self._record(channel)
        relative = getattr(self.profile.fan_ctrl_layout, name)
        if relative is None:
            raise UnsupportedError(f"{self.profile.name} has no {name} setting")
        return record + relative

    def _point_offsets(self, channel: int, index: int) -> tuple[int, int]:
        if not 0 <= index < NUM_CURVE_POINTS:
            raise OutOfRangeError(f"curve point {index} outside 0-{NUM_CURVE_POINTS - 1}")
        return (
            self._offset(channel, "temp_curve") + index * 2,
            self._offset(channel, "power_curve") + index * 2,
        )

    def _flag_offset(self, channel: int) -> int:
        offset = self._offset(channel, "flags")
        if channel in self.profile.boost_exempt_channels:
            raise UnsupportedError(
                f"{self.profile.fan_ctrl_labels[channel]} has no boost or hold settings"
            )
        return offset

    def get_point(self, channel: int, index: int) -> FanCurvePoint:
        temp_offset, power_offset = self._point_offsets(channel, index)
        image = self.session.fetch_control_image()
        return FanCurvePoint(
            centi_to_milli(image.read(temp_offset, FieldWidth.U16BE)),
            percent_to_pwm(image.read(power_offset, FieldWidth.U16BE)),
        )

    def set_point(
        self,
        channel: int,
        index: int,
        temperature: int | None = None,
        power: int | None = None,
    ) -> None:
        """Change one curve point; omitted halves are left untouched."""
        temp_offset, power_offset = self._point_offsets(channel, index)
        fields = []
        if temperature is not None:
            _check_curve_temperature(temperature)
            fields.append(FieldWrite(temp_offset, milli_to_centi(temperature), FieldWidth.U16BE))
        if power is not None:
            _check_pwm(power)
            fields.append(FieldWrite(power_offset, pwm_to_percent(power), FieldWidth.U16BE))
        if fields:
            self.session.write_fields(fields)

    def get_curve(self, channel: int) -> list[FanCurvePoint]:
        temp_base, power_base = self._point_offsets(channel, 0)
        image = self.session.fetch_control_image()
        return [
            FanCurvePoint(
                centi_to_milli(image.read(temp_base + i * 2, FieldWidth.U16BE)),
                percent_to_pwm(image.read(power_base + i * 2, FieldWidth.U16BE)),
            )
            for i in range(NUM_CURVE_POINTS)
        ]

    def set_curve(self, channel: int, points: Iterable[tuple[int, int]]) -> None:
        """Replace all 16 points of a channel in one transaction."""
        points = [FanCurvePoint(*point) for point in points]
        if len(points) != NUM_CURVE_POINTS:
            raise OutOfRangeError(f"a curve needs {NUM_CURVE_POINTS} points, got {len(points)}")
        temp_base, power_base = self._point_offsets(channel, 0)
        fields = []
        for i, point in enumerate(points):
            _check_curve_temperature(point.temperature)
            _check_pwm(point.power)
            fields.append(
                FieldWrite(temp_base + i * 2, milli_to_centi(point.temperature), FieldWidth.U16BE)
            )
            fields.append(
                FieldWrite(power_base + i * 2, pwm_to_percent(point.power), FieldWidth.U16BE)
            )
        _LOGGER.debug("Setting curve of fan control channel %d", channel)
        self.session.write_fields(fields)

    def _get_power(self, channel: int, name: str) -> int:
        offset = self._offset(channel, name)
        return percent_to_pwm(self.session.read_field(offset, FieldWidth.U16BE))

    def _set_power(self, channel: int, name: str, value: int) -> None:
        offset = self._offset(channel, name)
        _check_pwm(value)
        self.session.write_field(offset, pwm_to_percent(value), FieldWidth.U16BE)

    def get_min_power(self, channel: int) -> int:
        return self._get_power(channel, "min_power")

    def set_min_power(self, channel: int, value: int) -> None:
        self._set_power(channel, "min_power", value)

    def get_max_power(self, channel: int) -> int:
        return self._get_power(channel, "max_power")

    def set_max_power(self, channel: int, value: int) -> None:
        self._set_power(channel, "max_power", value)

    def get_fallback_power(self, channel: int) -> int:
        return self._get_power(channel, "fallback_power")

    def set_fallback_power(self, channel: int, value: int) -> None:
        self._set_power(channel, "fallback_power", value)

    def _get_flag(self, channel: int, bit: int) -> bool:
        offset = self._flag_offset(channel)
        return bool(get_bit(self.session.read_field(offset, FieldWidth.U8), bit))

    def _set_flag(self, channel: int, bit: int, enabled: bool) -> None:
        offset = self._flag_offset(channel)
        # The flag byte is shared, so read and write it under one lock
        with self.session.transaction() as txn:
            image = txn.fetch()
            flags = set_bit(image.read(offset, FieldWidth.U8), bit, int(enabled))
            txn.commit(patch_fields(image, [FieldWrite(offset, flags, FieldWidth.U8)]))

    def get_hold_min_power(self, channel: int) -> bool:
        return self._get_flag(channel, FLAG_HOLD_MIN_POWER)

    def set_hold_min_power(self, channel: int, enabled: bool) -> None:
        self._set_flag(channel, FLAG_HOLD_MIN_POWER, enabled)

    def get_start_boost(self, channel: int) -> bool:
        return self._get_flag(channel, FLAG_START_BOOST)

    def set_start_boost(self, channel: int, enabled: bool) -> None:
        self._set_flag(channel, FLAG_START_BOOST, enabled)

    def get_hysteresis(self, channel: int) -> int:
        offset = self._offset(channel, "hysteresis")
        return centi_to_milli(self.session.read_field(offset, FieldWidth.U16BE))

    def set_hysteresis(self, channel: int, value: int) -> None:
        offset = self._offset(channel, "hysteresis")
        if not 0 <= value <= HYSTERESIS_MAX:
            raise OutOfRangeError(f"hysteresis {value} outside 0-{HYSTERESIS_MAX}")
        self.session.write_field(offset, milli_to_centi(value), FieldWidth.U16BE)
