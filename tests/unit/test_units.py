"""
Unit tests for the unit conversion and bit helpers.

Run with: pytest tests/unit/test_units.py -v
"""
import pytest

from custom_components.aquacomputer.errors import OutOfRangeError
from custom_components.aquacomputer.units import (
    FieldWidth,
    aquastreamxt_fan_rpm,
    aquastreamxt_pump_rpm,
    centi_to_milli,
    clear_bit,
    decode_temperature,
    get_bit,
    milli_to_centi,
    percent_to_pwm,
    pwm_to_percent,
    pwm_to_rpm,
    read_int,
    rpm_to_pwm,
    set_bit,
    write_int,
)


# =============================================================================
# PWM conversion
# =============================================================================

class TestPwmConversion:
    """Tests for centi-percent <-> PWM conversion."""

    def test_boundaries(self):
        """Test that both ends of the range map onto each other."""
        assert percent_to_pwm(0) == 0
        assert percent_to_pwm(10000) == 255
        assert pwm_to_percent(0) == 0
        assert pwm_to_percent(255) == 10000

    def test_rounds_half_up(self):
        """Test rounding to the closest value."""
        assert percent_to_pwm(5000) == 128
        assert pwm_to_percent(128) == 5020
        assert pwm_to_percent(1) == 39

    def test_pwm_round_trip(self):
        """Test that every PWM value survives a trip through centi-percent."""
        for pwm in range(256):
            assert percent_to_pwm(pwm_to_percent(pwm)) == pwm

    def test_percent_round_trip_within_half_step(self):
        """Test that centi-percent values come back within half a PWM step."""
        for raw in range(0, 10001, 7):
            assert abs(pwm_to_percent(percent_to_pwm(raw)) - raw) <= 20

    def test_monotonic(self):
        """Test that the conversion never decreases."""
        values = [percent_to_pwm(raw) for raw in range(10001)]
        assert values == sorted(values)


# =============================================================================
# Bit helpers
# =============================================================================

class TestBits:
    """Tests for get_bit, set_bit and clear_bit."""

    @pytest.mark.parametrize("value", [0x00, 0x5A, 0xFF, 0x1234])
    @pytest.mark.parametrize("pos", [0, 1, 7])
    @pytest.mark.parametrize("bit", [0, 1])
    def test_set_then_get(self, value, pos, bit):
        """Test that set_bit changes only the requested bit."""
        result = set_bit(value, pos, bit)
        assert get_bit(result, pos) == bit
        assert result & ~(1 << pos) == value & ~(1 << pos)

    @pytest.mark.parametrize("value", [0x00, 0x01, 0x80, 0xFF, 0xFFFF, 0x12345678])
    @pytest.mark.parametrize("pos", [0, 3, 7, 15, 31])
    def test_set_then_reset_equals_clear(self, value, pos):
        """Test that setting and then resetting a bit is the same as clearing it."""
        assert set_bit(set_bit(value, pos, 1), pos, 0) == clear_bit(value, pos)

    def test_clear_bit(self):
        """Test clearing a set bit."""
        assert clear_bit(0b1011, 1) == 0b1001
        assert clear_bit(0b1001, 1) == 0b1001


# =============================================================================
# Legacy RPM encodings
# =============================================================================

class TestAquastreamXtSpeeds:
    """Tests for the Aquastream XT period counters and RPM setpoint."""

    def test_zero_raw_is_zero_rpm(self):
        """Test that a stopped counter does not divide by zero."""
        assert aquastreamxt_pump_rpm(0) == 0
        assert aquastreamxt_fan_rpm(0) == 0

    def test_period_to_rpm(self):
        """Test the documented conversion constants."""
        assert aquastreamxt_pump_rpm(15000) == 3000
        assert aquastreamxt_fan_rpm(1882) == 3000

    def test_period_to_rpm_rounds_to_nearest(self):
        """Test that fractional speeds round instead of truncating."""
        # 45000000 / 15001 = 2999.8, 5646000 / 1881 = 3001.6
        assert aquastreamxt_pump_rpm(15001) == 3000
        assert aquastreamxt_fan_rpm(1881) == 3002
        # 45000000 / 14999 = 3000.2
        assert aquastreamxt_pump_rpm(14999) == 3000

    def test_rpm_to_pwm_clamps(self):
        """Test that speeds outside the pump range are clamped."""
        assert rpm_to_pwm(3000) == 0
        assert rpm_to_pwm(2000) == 0
        assert rpm_to_pwm(6000) == 255
        assert rpm_to_pwm(7000) == 255
        assert rpm_to_pwm(4500) == 128

    def test_pwm_to_rpm_quantizes(self):
        """Test that setpoints land on 60 RPM steps inside the range."""
        assert pwm_to_rpm(0) == 3000
        assert pwm_to_rpm(255) == 6000
        assert pwm_to_rpm(128) == 4500
        for pwm in range(256):
            rpm = pwm_to_rpm(pwm)
            assert rpm % 60 == 0
            assert 3000 <= rpm <= 6000


# =============================================================================
# Fixed point values
# =============================================================================

class TestFixedPoint:
    """Tests for temperature and milli-unit scaling."""

    def test_decode_temperature(self):
        """Test scaling and the disconnected sentinel."""
        assert decode_temperature(2512) == 25120
        assert decode_temperature(-150) == -1500
        assert decode_temperature(0x7FFF) is None

    def test_centi_milli(self):
        """Test conversion both ways, truncating toward zero."""
        assert centi_to_milli(123) == 1230
        assert milli_to_centi(1234) == 123
        assert milli_to_centi(-1234) == -123


# =============================================================================
# Field access
# =============================================================================

class TestFieldAccess:
    """Tests for read_int and write_int."""

    def test_read_widths(self):
        """Test byte order and signedness."""
        data = bytes([0x01, 0x02, 0xFF, 0xFE])
        assert read_int(data, 0, FieldWidth.U16BE) == 0x0102
        assert read_int(data, 0, FieldWidth.U16LE) == 0x0201
        assert read_int(data, 2, FieldWidth.S16BE) == -2
        assert read_int(data, 2, FieldWidth.U8) == 0xFF
        assert read_int(data, 0, FieldWidth.U32BE) == 0x0102FFFE

    def test_read_past_end(self):
        """Test that a field past the buffer end is rejected."""
        with pytest.raises(IndexError):
            read_int(bytes(3), 2, FieldWidth.U16BE)

    def test_write(self):
        """Test writing signed and little-endian values."""
        data = bytearray(4)
        write_int(data, 0, -150, FieldWidth.S16BE)
        write_int(data, 2, 6000, FieldWidth.U16LE)
        assert bytes(data) == bytes([0xFF, 0x6A, 0x70, 0x17])

    def test_write_out_of_range(self):
        """Test that values that do not fit are rejected."""
        data = bytearray(2)
        with pytest.raises(OutOfRangeError):
            write_int(data, 0, 0x10000, FieldWidth.U16BE)
        with pytest.raises(ValueError):
            write_int(data, 0, -1, FieldWidth.U16BE)
        with pytest.raises(OutOfRangeError):
            write_int(data, 1, 1, FieldWidth.U16BE)
        assert data == bytearray(2)

    def test_bounds(self):
        """Test the value range of each width."""
        assert FieldWidth.U8.bounds == (0, 255)
        assert FieldWidth.S16BE.bounds == (-32768, 32767)
        assert FieldWidth.U32BE.bounds == (0, 0xFFFFFFFF)
