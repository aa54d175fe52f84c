"""Control report transactions.

Settings live in a large control report that can only be replaced as a
whole. Every change therefore fetches the complete report, patches the
requested fields, recomputes the CRC-16/USB checksum and writes the report
back, followed by the acknowledgement report the vendor software always
sends. One lock per device serializes these read-modify-write cycles.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, NamedTuple, Protocol

from crcmod.predefined import mkPredefinedCrcFun

from .errors import (
    BufferTagError,
    DeviceIOError,
    NoDataError,
    OutOfRangeError,
    SecondaryReportError,
    UnsupportedError,
)
from .profiles import DeviceProfile
from .units import FieldWidth, read_int, write_int

_LOGGER = logging.getLogger(__name__)

crc16_usb = mkPredefinedCrcFun("crc-16-usb")


class Transport(Protocol):
    """Raw report I/O the protocol layer relies on."""

    def get_feature_report(self, report_id: int, size: int) -> bytes: ...

    def set_feature_report(self, report_id: int, data: bytes) -> None: ...


class FieldWrite(NamedTuple):
    offset: int
    value: int
    width: FieldWidth


@dataclass(frozen=True)
class ControlImage:
    """Byte exact copy of a control report, starting with its report id."""

    report_id: int
    data: bytes

    def read(self, offset: int, width: FieldWidth) -> int:
        try:
            return read_int(self.data, offset, width)
        except IndexError as exc:
            raise OutOfRangeError(str(exc)) from exc


def patch_fields(image: ControlImage, fields: Iterable[FieldWrite]) -> ControlImage:
    """Return a copy of image with fields written in order."""
    data = bytearray(image.data)
    for item in fields:
        write_int(data, item.offset, item.value, item.width)
    return ControlImage(image.report_id, bytes(data))


def apply_checksum(data: bytearray | memoryview, start: int, length: int, trailer: int) -> int:
    """Store the CRC-16/USB of data[start:start + length] big-endian at trailer."""
    checksum = crc16_usb(bytes(data[start:start + length]))
    write_int(data, trailer, checksum, FieldWidth.U16BE)
    return checksum


class BufferTag(str, Enum):
    EMPTY = "empty"
    STATUS = "status"
    CONTROL = "control"


class ReportBuffer:
    """Scratch buffer shared by legacy status reads and control transactions.

    The tag records which report the buffer currently holds so a stale
    status read is never mistaken for control data.
    """

    def __init__(self, size: int = 0) -> None:
        self._data = bytearray(size)
        self._length = 0
        self.tag = BufferTag.EMPTY

    def load(self, tag: BufferTag, payload: bytes) -> None:
        if len(payload) > len(self._data):
            self._data = bytearray(len(payload))
        self._data[: len(payload)] = payload
        self._length = len(payload)
        self.tag = tag

    def view(self, tag: BufferTag) -> memoryview:
        """Return the live contents, which must currently be tagged tag."""
        if self.tag is not tag:
            raise BufferTagError(f"buffer holds {self.tag.value} data, not {tag.value}")
        return memoryview(self._data)[: self._length]

    def invalidate(self) -> None:
        self._length = 0
        self.tag = BufferTag.EMPTY


class ControlSession:
    """Serialized access to the control report of one device.

    Args:
        profile: Model layout providing report ids, sizes and the checksum.
        transport: Feature report I/O.
        clock: Monotonic time source, replaceable in tests.
        sleep: Blocking sleep, replaceable in tests.
    """

    def __init__(
        self,
        profile: DeviceProfile,
        transport: Transport,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.profile = profile
        self.transport = transport
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_op: float | None = None
        self.buffer = ReportBuffer(profile.ctrl_report_size)

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def enforce_delay(self) -> None:
        """Sleep until the model's minimum gap since the last operation has passed."""
        delay = self.profile.ctrl_delay
        if not delay or self._last_op is None:
            return
        remaining = delay - (self._clock() - self._last_op)
        if remaining > 0:
            _LOGGER.debug("Pacing control access for %.3fs", remaining)
            self._sleep(remaining)

    def mark_operation(self) -> None:
        self._last_op = self._clock()

    def _require_control(self) -> None:
        if not self.profile.has_control:
            raise UnsupportedError(f"{self.profile.name} has no control report")

    def _fetch(self) -> ControlImage:
        profile = self.profile
        self.enforce_delay()
        try:
            data = self.transport.get_feature_report(
                profile.ctrl_report_id, profile.ctrl_report_size
            )
        except OSError as exc:
            raise NoDataError(f"Failed to read control report: {exc}") from exc
        finally:
            self.mark_operation()
        data = bytes(data)
        if len(data) < profile.ctrl_report_size or data[0] != profile.ctrl_report_id:
            raise NoDataError(
                f"Unexpected control report ({len(data)} bytes, "
                f"id {data[0] if data else None})"
            )
        self.buffer.load(BufferTag.CONTROL, data[: profile.ctrl_report_size])
        return ControlImage(profile.ctrl_report_id, bytes(self.buffer.view(BufferTag.CONTROL)))

    def _commit(self, image: ControlImage) -> None:
        profile = self.profile
        if len(image.data) != profile.ctrl_report_size:
            raise OutOfRangeError(
                f"control image has {len(image.data)} bytes, expected {profile.ctrl_report_size}"
            )
        self.buffer.load(BufferTag.CONTROL, image.data)
        data = self.buffer.view(BufferTag.CONTROL)
        if profile.checksum is not None:
            window = profile.checksum
            checksum = apply_checksum(data, window.start, window.length, window.trailer)
            _LOGGER.debug("Control report checksum 0x%04X", checksum)

        self.enforce_delay()
        try:
            self.transport.set_feature_report(profile.ctrl_report_id, bytes(data))
        except OSError as exc:
            raise DeviceIOError(f"Failed to write control report: {exc}") from exc
        finally:
            self.mark_operation()
            # The device now holds the data, the local copy is not authoritative
            self.buffer.invalidate()

        secondary = profile.secondary_report
        if secondary is None:
            return
        try:
            self.transport.set_feature_report(secondary.report_id, secondary.payload)
        except OSError as exc:
            raise SecondaryReportError(
                f"Control report written but acknowledgement failed: {exc}"
            ) from exc
        finally:
            self.mark_operation()

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Hold the control lock across several fetch and commit calls."""
        self._require_control()
        with self._lock:
            yield Transaction(self)

    def fetch_control_image(self) -> ControlImage:
        """Fetch a fresh copy of the control report.

        Raises:
            NoDataError: If the transport fails or returns a short report.
        """
        with self.transaction() as txn:
            return txn.fetch()

    def commit(self, image: ControlImage) -> None:
        """Checksum and write image, then send the acknowledgement report.

        Raises:
            DeviceIOError: If writing the control report fails.
            SecondaryReportError: If only the acknowledgement report fails.
        """
        with self.transaction() as txn:
            txn.commit(image)

    def check_field(self, offset: int, width: FieldWidth, value: int | None = None) -> None:
        """Validate a field against the control report without any I/O.

        Raises:
            UnsupportedError: If the model has no control report.
            OutOfRangeError: If value does not fit width or the field lies
                outside the control report.
        """
        self._require_control()
        if value is not None:
            low, high = width.bounds
            if not low <= value <= high:
                raise OutOfRangeError(f"value {value} does not fit {width.name}")
        size = self.profile.ctrl_report_size
        if offset < 1 or offset + width.size > size:
            raise OutOfRangeError(f"field at 0x{offset:X} outside control report of {size} bytes")

    def read_field(self, offset: int, width: FieldWidth) -> int:
        self.check_field(offset, width)
        with self.transaction() as txn:
            return txn.fetch().read(offset, width)

    def write_field(self, offset: int, value: int, width: FieldWidth) -> None:
        self.write_fields([FieldWrite(offset, value, width)])

    def write_fields(self, fields: Iterable[FieldWrite]) -> None:
        """Patch several fields in a single fetch-patch-commit cycle."""
        fields = list(fields)
        for item in fields:
            self.check_field(item.offset, item.width, item.value)
        with self.transaction() as txn:
            image = patch_fields(txn.fetch(), fields)
            _LOGGER.debug(
                "Writing %s", ", ".join(f"0x{f.offset:X}={f.value}" for f in fields)
            )
            txn.commit(image)


class Transaction:
    """Handle to a locked control session, valid inside ``transaction()``."""

    def __init__(self, session: ControlSession) -> None:
        self._session = session

    def fetch(self) -> ControlImage:
        return self._session._fetch()

    def commit(self, image: ControlImage) -> None:
        self._session._commit(image)

    def update(self, fields: Iterable[FieldWrite]) -> None:
        self.commit(patch_fields(self.fetch(), fields))
