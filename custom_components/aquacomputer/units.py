"""Unit conversion and bit packing helpers.

Device values use fixed point encodings: temperatures in centi-degrees,
voltages in centi-volts, power in centi-watts and duty cycles in
centi-percent. Everything handed to callers is normalized to milli-units
and hwmon style PWM (0-255).
"""
from __future__ import annotations

from enum import Enum

from .const import (
    AQUASTREAMXT_FAN_CONVERSION_CONST,
    AQUASTREAMXT_PUMP_CONVERSION_CONST,
    AQUASTREAMXT_PUMP_MAX_RPM,
    AQUASTREAMXT_PUMP_MIN_RPM,
    AQUASTREAMXT_RPM_STEP,
    PERCENT_MAX,
    PWM_MAX,
    SENSOR_DISCONNECTED,
)
from .errors import OutOfRangeError


class FieldWidth(Enum):
    """Width, byte order and signedness of a fixed offset field."""

    U8 = (1, "big", False)
    U16BE = (2, "big", False)
    S16BE = (2, "big", True)
    U16LE = (2, "little", False)
    S16LE = (2, "little", True)
    U32BE = (4, "big", False)

    def __init__(self, size: int, byteorder: str, signed: bool) -> None:
        self.size = size
        self.byteorder = byteorder
        self.signed = signed

    @property
    def bounds(self) -> tuple[int, int]:
        """Smallest and largest value the field can hold."""
        bits = self.size * 8
        if self.signed:
            return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        return 0, (1 << bits) - 1


def _div_round_closest(numerator: int, denominator: int) -> int:
    return (numerator + denominator // 2) // denominator


def percent_to_pwm(raw: int) -> int:
    """Convert centi-percent (0-10000) to PWM (0-255)."""
    return _div_round_closest(raw * PWM_MAX, PERCENT_MAX)


def pwm_to_percent(pwm: int) -> int:
    """Convert PWM (0-255) to centi-percent (0-10000)."""
    return _div_round_closest(pwm * PERCENT_MAX, PWM_MAX)


def get_bit(value: int, pos: int) -> int:
    return (value >> pos) & 1


def set_bit(value: int, pos: int, bit: int) -> int:
    """Return value with the bit at pos cleared and then set to bit."""
    return (value & ~(1 << pos)) | ((bit & 1) << pos)


def clear_bit(value: int, pos: int) -> int:
    return value & ~(1 << pos)


def aquastreamxt_pump_rpm(raw: int) -> int:
    """Pump speed from the Aquastream XT period counter."""
    if raw == 0:
        return 0
    return _div_round_closest(AQUASTREAMXT_PUMP_CONVERSION_CONST, raw)


def aquastreamxt_fan_rpm(raw: int) -> int:
    """Fan speed from the Aquastream XT period counter."""
    if raw == 0:
        return 0
    return _div_round_closest(AQUASTREAMXT_FAN_CONVERSION_CONST, raw)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def rpm_to_pwm(rpm: int) -> int:
    """Map a pump speed within the legacy operating range to PWM."""
    rpm = _clamp(rpm, AQUASTREAMXT_PUMP_MIN_RPM, AQUASTREAMXT_PUMP_MAX_RPM)
    span = AQUASTREAMXT_PUMP_MAX_RPM - AQUASTREAMXT_PUMP_MIN_RPM
    return _div_round_closest((rpm - AQUASTREAMXT_PUMP_MIN_RPM) * PWM_MAX, span)


def pwm_to_rpm(pwm: int) -> int:
    """Map PWM to a pump speed, quantized to the pump's 60 RPM steps."""
    pwm = _clamp(pwm, 0, PWM_MAX)
    span = AQUASTREAMXT_PUMP_MAX_RPM - AQUASTREAMXT_PUMP_MIN_RPM
    rpm = AQUASTREAMXT_PUMP_MIN_RPM + _div_round_closest(pwm * span, PWM_MAX)
    rpm = _div_round_closest(rpm, AQUASTREAMXT_RPM_STEP) * AQUASTREAMXT_RPM_STEP
    return _clamp(rpm, AQUASTREAMXT_PUMP_MIN_RPM, AQUASTREAMXT_PUMP_MAX_RPM)


def centi_to_milli(raw: int) -> int:
    return raw * 10


def milli_to_centi(value: int) -> int:
    # int() truncates toward zero for negative offsets as well
    return int(value / 10)


def decode_temperature(raw: int) -> int | None:
    """Scale a raw temperature, returning None for a disconnected sensor."""
    if raw == SENSOR_DISCONNECTED:
        return None
    return centi_to_milli(raw)


def read_int(data: bytes | bytearray | memoryview, offset: int, width: FieldWidth) -> int:
    """Read a fixed width integer at offset.

    Raises:
        IndexError: If the field extends past the end of data.
    """
    end = offset + width.size
    if offset < 0 or end > len(data):
        raise IndexError(f"field at 0x{offset:X} exceeds buffer of {len(data)} bytes")
    return int.from_bytes(bytes(data[offset:end]), width.byteorder, signed=width.signed)


def write_int(data: bytearray | memoryview, offset: int, value: int, width: FieldWidth) -> None:
    """Write a fixed width integer at offset in place."""
    low, high = width.bounds
    if not low <= value <= high:
        raise OutOfRangeError(f"value {value} does not fit {width.name}")
    end = offset + width.size
    if offset < 0 or end > len(data):
        raise OutOfRangeError(f"field at 0x{offset:X} exceeds buffer of {len(data)} bytes")
    data[offset:end] = value.to_bytes(width.size, width.byteorder, signed=width.signed)
