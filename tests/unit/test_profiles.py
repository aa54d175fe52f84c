"""
Unit tests for the device profile registry.

Run with: pytest tests/unit/test_profiles.py -v
"""
import pytest

from custom_components.aquacomputer.const import PRODUCT_MODELS, SECONDARY_CTRL_REPORT
from custom_components.aquacomputer.errors import ProfileDefinitionError, UnsupportedError
from custom_components.aquacomputer.profiles import (
    Capability,
    DeviceProfile,
    ProfileRegistry,
    build_profile,
    profile_for,
    supported_models,
    validate_profile,
)
from custom_components.aquacomputer.profiles.profile_registry import ChecksumWindow
from custom_components.aquacomputer.units import FieldWidth


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:
    """Tests for model lookup."""

    def test_every_product_has_a_profile(self):
        """Test that every known product id resolves to a valid profile."""
        assert sorted(set(PRODUCT_MODELS.values())) == supported_models()
        for model in supported_models():
            profile = profile_for(model)
            assert profile.model == model
            assert profile.name

    def test_unknown_model(self):
        """Test that an unknown model is unsupported."""
        with pytest.raises(UnsupportedError):
            profile_for("aquaduct")

    def test_profiles_are_cached(self):
        """Test that a registry builds each profile once."""
        registry = ProfileRegistry()
        assert registry.profile_for("octo") is registry.profile_for("octo")

    def test_custom_maps(self):
        """Test a registry restricted to one model."""
        from custom_components.aquacomputer.profiles import farbwerk

        registry = ProfileRegistry({"farbwerk": farbwerk})
        assert registry.supported_models() == ["farbwerk"]
        with pytest.raises(UnsupportedError):
            registry.profile_for("octo")


# =============================================================================
# Built profiles
# =============================================================================

class TestBuiltProfiles:
    """Tests for derived values of shipped profiles."""

    def test_d5next_channels(self):
        """Test channel counts of the D5 Next."""
        profile = profile_for("d5next")
        assert profile.num_temperature_channels == 9
        assert profile.num_speed_channels == 2
        assert profile.num_voltage_channels == 4
        assert profile.num_fan_ctrl_channels == 2
        assert profile.has(Capability.ZERO_BASED_ENABLE)
        assert profile.boost_exempt_channels == frozenset({0})

    def test_d5next_checksum_and_secondary(self):
        """Test the derived checksum window and acknowledgement report."""
        profile = profile_for("d5next")
        assert profile.checksum == ChecksumWindow(start=1, length=0x326, trailer=0x327)
        assert profile.secondary_report.report_id == 0x02
        assert profile.secondary_report.payload == SECONDARY_CTRL_REPORT

    def test_aquaero_has_no_checksum(self):
        """Test the Aquaero control report layout."""
        profile = profile_for("aquaero")
        assert profile.checksum is None
        assert profile.ctrl_report_id == 0x0B
        assert profile.secondary_report.payload == bytes([0x06, 0, 0, 0, 0, 0, 0])
        assert profile.ctrl_delay == pytest.approx(0.2)

    def test_aquastreamxt_setpoint(self):
        """Test that the legacy pump setpoint is a little-endian RPM value."""
        profile = profile_for("aquastreamxt")
        assert profile.fan_ctrl_layout.setpoint_width is FieldWidth.U16LE
        assert profile.fan_ctrl_layout.setpoint_is_rpm
        assert profile.num_temperature_channels == 3
        assert profile.num_power_channels == 0

    def test_special_fields_are_read_only(self):
        """Test that special offsets cannot be modified."""
        profile = profile_for("leakshield")
        with pytest.raises(TypeError):
            profile.special["pressure"] = 0

    def test_zero_fan_model(self):
        """Test that the Farbwerk has no fan or control channels."""
        profile = profile_for("farbwerk")
        assert profile.num_fans == 0
        assert profile.num_fan_ctrl_channels == 0
        assert not profile.has_control


# =============================================================================
# Validation
# =============================================================================

def _minimal(**overrides):
    table = {
        "name": "Test",
        "status_report_size": 0x20,
        "temp_start": 0x10,
        "num_temps": 2,
        "temp_labels": ["a", "b"],
    }
    table.update(overrides)
    return table


class TestValidation:
    """Tests that malformed profiles are rejected."""

    def test_minimal_profile(self):
        """Test that a consistent table builds."""
        profile = build_profile("test", _minimal())
        assert profile.num_temperature_channels == 2
        assert profile.status_report_id == 0x01

    def test_offset_outside_report(self):
        """Test a temperature block running past the report end."""
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", _minimal(temp_start=0x1F))

    def test_negative_count(self):
        """Test a negative channel count."""
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", _minimal(num_temps=-1, temp_labels=[]))

    def test_label_mismatch(self):
        """Test a label table that does not match the channel count."""
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", _minimal(temp_labels=["a"]))

    def test_unknown_key(self):
        """Test a misspelt key in the table."""
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", _minimal(num_temperatures=2))

    def test_missing_special_offset(self):
        """Test a capability whose offsets are missing."""
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", _minimal(capabilities=["alarm_word"]))

    def test_fan_control_field_exceeds_stride(self):
        """Test a control setting that spills into the next record."""
        table = _minimal(
            ctrl_report_size=0x40,
            fan_ctrl_offsets=[0x10],
            fan_ctrl_layout={"stride": 0x04, "manual_power": 0x03},
            fan_ctrl_labels=["Fan"],
        )
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", table)

    def test_fan_control_without_report(self):
        """Test control records on a model without a control report."""
        table = _minimal(
            fan_ctrl_offsets=[0x10],
            fan_ctrl_layout={"stride": 0x04, "manual_power": 0x00},
            fan_ctrl_labels=["Fan"],
        )
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", table)

    def test_checksum_overlapping_trailer(self):
        """Test a checksum window that covers its own trailer."""
        profile = DeviceProfile(
            model="test",
            name="Test",
            status_report_id=1,
            status_report_size=0x10,
            ctrl_report_size=0x20,
            checksum=ChecksumWindow(start=1, length=0x1F, trailer=0x1E),
        )
        with pytest.raises(ProfileDefinitionError):
            validate_profile(profile)

    def test_boost_exempt_channel_must_exist(self):
        """Test an exemption for a channel the model does not have."""
        table = _minimal(
            ctrl_report_size=0x40,
            fan_ctrl_offsets=[0x10],
            fan_ctrl_layout={"stride": 0x04, "manual_power": 0x00},
            fan_ctrl_labels=["Fan"],
            boost_exempt_channels=[3],
        )
        with pytest.raises(ProfileDefinitionError):
            build_profile("test", table)

    def test_definition_error_is_assertion(self):
        """Test that profile defects are assertion failures, not device errors."""
        assert issubclass(ProfileDefinitionError, AssertionError)
