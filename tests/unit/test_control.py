"""
Unit tests for control report transactions.

Run with: pytest tests/unit/test_control.py -v
"""
import threading

import pytest

from custom_components.aquacomputer.const import SECONDARY_CTRL_REPORT
from custom_components.aquacomputer.control import (
    BufferTag,
    ControlImage,
    ControlSession,
    FieldWrite,
    ReportBuffer,
    apply_checksum,
    crc16_usb,
    patch_fields,
)
from custom_components.aquacomputer.errors import (
    BufferTagError,
    DeviceIOError,
    NoDataError,
    OutOfRangeError,
    SecondaryReportError,
    UnsupportedError,
)
from custom_components.aquacomputer.profiles import profile_for
from custom_components.aquacomputer.units import FieldWidth
from tests.conftest import FakeTransport, control_report, transport_for


@pytest.fixture
def d5next():
    return profile_for("d5next")


# =============================================================================
# Checksum
# =============================================================================

class TestChecksum:
    """Tests for CRC-16/USB."""

    def test_check_value(self):
        """Test the catalogue check value."""
        assert crc16_usb(b"123456789") == 0xB4C8

    @pytest.mark.parametrize(
        "data,expected",
        [
            (bytes([0x01, 0x02, 0x03, 0x04]), 0xD45E),
            (bytes([0xDE, 0xAD, 0xBE, 0xEF]), 0x3E64),
        ],
    )
    def test_known_windows(self, data, expected):
        """Test short windows against precomputed values."""
        assert crc16_usb(data) == expected

    def test_apply_checksum_stores_big_endian(self):
        """Test that the trailer receives the CRC high byte first."""
        data = bytearray([0x03, 0x01, 0x02, 0x03, 0x04, 0x00, 0x00])
        assert apply_checksum(data, 1, 4, 5) == 0xD45E
        assert data[5:7] == bytearray([0xD4, 0x5E])
        assert data[:5] == bytearray([0x03, 0x01, 0x02, 0x03, 0x04])


# =============================================================================
# Images and buffer
# =============================================================================

class TestControlImage:
    """Tests for ControlImage and patch_fields."""

    def test_patch_is_a_copy(self):
        """Test that patching leaves the original untouched."""
        image = ControlImage(0x03, bytes(8))
        patched = patch_fields(image, [FieldWrite(2, 0x1388, FieldWidth.U16BE),
                                       FieldWrite(5, 7, FieldWidth.U8)])
        assert image.data == bytes(8)
        assert patched.data == bytes([0, 0, 0x13, 0x88, 0, 7, 0, 0])
        assert patched.read(2, FieldWidth.U16BE) == 5000

    def test_read_outside_image(self):
        """Test that reading past the end is a range error."""
        with pytest.raises(OutOfRangeError):
            ControlImage(0x03, bytes(4)).read(3, FieldWidth.U16BE)


class TestReportBuffer:
    """Tests for the tagged scratch buffer."""

    def test_empty_buffer_cannot_be_read(self):
        """Test that a fresh buffer holds nothing."""
        with pytest.raises(BufferTagError):
            ReportBuffer(8).view(BufferTag.CONTROL)

    def test_tag_mismatch(self):
        """Test that status data is never read as control data."""
        buffer = ReportBuffer(8)
        buffer.load(BufferTag.STATUS, b"\x04\x01\x02")
        assert bytes(buffer.view(BufferTag.STATUS)) == b"\x04\x01\x02"
        with pytest.raises(BufferTagError):
            buffer.view(BufferTag.CONTROL)

    def test_invalidate(self):
        """Test that invalidation empties the buffer."""
        buffer = ReportBuffer(4)
        buffer.load(BufferTag.CONTROL, b"\x03\x00")
        buffer.invalidate()
        assert buffer.tag is BufferTag.EMPTY
        with pytest.raises(BufferTagError):
            buffer.view(BufferTag.CONTROL)

    def test_grows_for_larger_payloads(self):
        """Test loading more data than the initial size."""
        buffer = ReportBuffer(2)
        buffer.load(BufferTag.CONTROL, bytes(range(6)))
        assert bytes(buffer.view(BufferTag.CONTROL)) == bytes(range(6))


# =============================================================================
# Transactions
# =============================================================================

class TestD5NextTransaction:
    """Tests for a complete read-modify-write cycle on the D5 Next."""

    def test_end_to_end_fan_setpoint(self, d5next):
        """Test patching 50% onto the fan channel of a zeroed image."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)

        session.write_field(0x42, 5000, FieldWidth.U16BE)

        assert [call[:3] for call in transport.get_calls] == [("get", 0x03, 0x329)]
        primary, secondary = transport.set_calls
        data = primary[2]
        assert primary[1] == 0x03
        assert len(data) == 0x329
        assert data[0] == 0x03
        assert data[0x42:0x44] == b"\x13\x88"
        assert data[0x327:0x329] == b"\x36\x4C"
        assert secondary[1:3] == (0x02, SECONDARY_CTRL_REPORT)

    def test_zeroed_window_checksum(self, d5next):
        """Test the checksum of an untouched image."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)

        session.commit(ControlImage(0x03, bytes(control_report(d5next))))

        data = transport.set_calls[0][2]
        assert data[0x327:0x329] == b"\x45\xC4"

    def test_written_report_is_read_back(self, d5next):
        """Test that a write is visible to the next read."""
        session = ControlSession(d5next, transport_for(d5next))
        session.write_fields([FieldWrite(0x42, 10000, FieldWidth.U16BE),
                              FieldWrite(0x41, 0, FieldWidth.U8)])
        assert session.read_field(0x42, FieldWidth.U16BE) == 10000

    def test_transaction_update(self, d5next):
        """Test fetch, patch and commit through a transaction handle."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)
        with session.transaction() as txn:
            txn.update([FieldWrite(0x97, 2500, FieldWidth.U16BE)])
        assert transport.reports[0x03][0x97:0x99] == b"\x09\xC4"

    def test_out_of_range_value_is_rejected_before_write(self, d5next):
        """Test that no report is written for an invalid value."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)
        with pytest.raises(OutOfRangeError):
            session.write_field(0x42, 70000, FieldWidth.U16BE)
        assert transport.calls == []

    @pytest.mark.parametrize("offset", [0, 0x328, 0x400])
    def test_offset_outside_report_is_rejected_before_io(self, d5next, offset):
        """Test that fields past the report or on its id byte never reach the device."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)
        with pytest.raises(OutOfRangeError):
            session.write_field(offset, 1, FieldWidth.U16BE)
        with pytest.raises(OutOfRangeError):
            session.read_field(offset, FieldWidth.U16BE)
        assert transport.calls == []

    def test_invalid_field_in_batch_blocks_whole_write(self, d5next):
        """Test that one bad field stops every field of the batch."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)
        with pytest.raises(OutOfRangeError):
            session.write_fields([FieldWrite(0x42, 5000, FieldWidth.U16BE),
                                  FieldWrite(0x41, -1, FieldWidth.U8)])
        assert transport.calls == []

    def test_rejection_does_not_delay_next_operation(self, clock):
        """Test that a rejected write leaves the pacing timestamp alone."""
        profile = profile_for("octo")
        session = ControlSession(profile, transport_for(profile), clock=clock, sleep=clock.sleep)
        with pytest.raises(OutOfRangeError):
            session.write_field(0x5B, 70000, FieldWidth.U16BE)
        session.read_field(0x5B, FieldWidth.U16BE)
        assert clock.sleeps == []


class TestTransactionErrors:
    """Tests for transport failures during a transaction."""

    def test_get_failure(self, d5next):
        """Test that a failed GET reports missing data."""
        transport = transport_for(d5next)
        transport.fail_get = True
        with pytest.raises(NoDataError):
            ControlSession(d5next, transport).fetch_control_image()

    def test_short_reply(self, d5next):
        """Test that a truncated control report is rejected."""
        transport = FakeTransport({0x03: bytes(control_report(d5next))[:0x100]})
        with pytest.raises(NoDataError):
            ControlSession(d5next, transport).fetch_control_image()

    def test_wrong_report_id(self, d5next):
        """Test that a reply of another report id is rejected."""
        report = control_report(d5next)
        report[0] = 0x01
        transport = FakeTransport({0x03: bytes(report)})
        with pytest.raises(NoDataError):
            ControlSession(d5next, transport).fetch_control_image()

    def test_primary_write_failure(self, d5next):
        """Test that a failed SET skips the acknowledgement report."""
        transport = transport_for(d5next)
        transport.fail_set = {0x03}
        session = ControlSession(d5next, transport)
        with pytest.raises(DeviceIOError) as excinfo:
            session.write_field(0x42, 5000, FieldWidth.U16BE)
        assert not isinstance(excinfo.value, SecondaryReportError)
        assert [call[1] for call in transport.set_calls] == [0x03]
        assert session.buffer.tag is BufferTag.EMPTY

    def test_secondary_write_failure(self, d5next):
        """Test that a failed acknowledgement keeps the primary write applied."""
        transport = transport_for(d5next)
        transport.fail_set = {0x02}
        session = ControlSession(d5next, transport)
        with pytest.raises(SecondaryReportError) as excinfo:
            session.write_field(0x42, 5000, FieldWidth.U16BE)
        assert excinfo.value.primary_written
        assert isinstance(excinfo.value, DeviceIOError)
        assert [call[1] for call in transport.set_calls] == [0x03, 0x02]
        assert transport.reports[0x03][0x42:0x44] == b"\x13\x88"

    def test_buffer_invalidated_after_commit(self, d5next):
        """Test that the local copy is dropped once the device holds it."""
        session = ControlSession(d5next, transport_for(d5next))
        session.write_field(0x42, 5000, FieldWidth.U16BE)
        assert session.buffer.tag is BufferTag.EMPTY

    def test_model_without_control(self):
        """Test that models without a control report are unsupported."""
        profile = profile_for("farbwerk")
        transport = FakeTransport()
        with pytest.raises(UnsupportedError):
            ControlSession(profile, transport).fetch_control_image()
        assert transport.calls == []


class TestAquaeroTransaction:
    """Tests for the Aquaero control report without checksum."""

    def test_no_checksum_and_own_secondary(self):
        """Test that the image is written verbatim, then the zero report."""
        profile = profile_for("aquaero")
        transport = transport_for(profile)
        session = ControlSession(profile, transport, sleep=lambda seconds: None)
        session.write_field(0x210, 1000, FieldWidth.U16BE)

        primary, secondary = transport.set_calls
        assert primary[1] == 0x0B
        expected = control_report(profile)
        expected[0x210:0x212] = b"\x03\xE8"
        assert primary[2] == bytes(expected)
        assert secondary[1:3] == (0x06, bytes([0x06, 0, 0, 0, 0, 0, 0]))


# =============================================================================
# Locking and pacing
# =============================================================================

class TestSerialization:
    """Tests for the per-device lock and the minimum delay."""

    def test_lock_held_during_transaction(self, d5next):
        """Test that the lock is taken only inside a transaction."""
        session = ControlSession(d5next, transport_for(d5next))
        assert not session.lock.locked()
        with session.transaction():
            assert session.lock.locked()
        assert not session.lock.locked()

    def test_every_transfer_holds_the_lock(self, d5next):
        """Test that fetch, commit and the acknowledgement all run under the lock."""
        transport = transport_for(d5next)
        session = ControlSession(d5next, transport)
        transport.watch_lock = session.lock
        session.fetch_control_image()
        session.write_field(0x42, 5000, FieldWidth.U16BE)
        session.read_field(0x42, FieldWidth.U16BE)
        assert [call[0] for call in transport.calls] == ["get", "get", "set", "set", "get"]
        assert transport.lock_held == [True] * 5

    def test_concurrent_writes_do_not_interleave(self, d5next):
        """Test that two writers never see each other's half finished cycle."""
        transport = transport_for(d5next, get_delay=0.02)
        session = ControlSession(d5next, transport)
        transport.watch_lock = session.lock
        barrier = threading.Barrier(2)

        def writer(offset, value):
            barrier.wait()
            session.write_field(offset, value, FieldWidth.U16BE)

        threads = [
            threading.Thread(target=writer, args=(0x42, 5000)),
            threading.Thread(target=writer, args=(0x97, 2500)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        owners = [call[3] for call in transport.calls]
        assert len(owners) == 6
        # Every GET and SET ran inside the session lock
        assert transport.lock_held == [True] * 6
        assert len(set(owners[:3])) == 1
        assert len(set(owners[3:])) == 1
        assert [call[0] for call in transport.calls] == ["get", "set", "set"] * 2
        # Neither write was lost
        final = transport.reports[0x03]
        assert final[0x42:0x44] == b"\x13\x88"
        assert final[0x97:0x99] == b"\x09\xC4"

    def test_pacing_sleeps_for_remaining_delay(self, clock):
        """Test that consecutive operations are spaced by the model delay."""
        profile = profile_for("octo")
        session = ControlSession(profile, transport_for(profile), clock=clock, sleep=clock.sleep)

        session.write_field(0x5B, 5000, FieldWidth.U16BE)
        assert clock.sleeps == [pytest.approx(0.2)]

        clock.now += 0.05
        session.read_field(0x5B, FieldWidth.U16BE)
        assert clock.sleeps[1] == pytest.approx(0.15)

        clock.now += 1.0
        session.read_field(0x5B, FieldWidth.U16BE)
        assert len(clock.sleeps) == 2

    def test_no_pacing_without_delay(self, d5next, clock):
        """Test that models without a delay never sleep."""
        session = ControlSession(d5next, transport_for(d5next), clock=clock, sleep=clock.sleep)
        session.write_field(0x42, 5000, FieldWidth.U16BE)
        session.read_field(0x42, FieldWidth.U16BE)
        assert clock.sleeps == []
