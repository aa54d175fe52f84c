"""HID transport for Aquacomputer devices.

Wraps a hidapi device handle: feature report GET/SET for the control and
legacy status reports, and a reader thread that hands every unsolicited
input report to a callback.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import hid

from .const import AQUACOMPUTER_VENDOR_ID, PRODUCT_MODELS, READ_TIMEOUT_MS

_LOGGER = logging.getLogger(__name__)

# Largest input report any supported model sends
MAX_INPUT_REPORT_SIZE = 0x200

ReportCallback = Callable[[int, bytes], None]


@dataclass(frozen=True)
class HidDeviceInfo:
    """A discovered Aquacomputer HID interface."""

    path: bytes
    product_id: int
    model: str
    serial_number: str | None = None
    product_string: str | None = None


def discover() -> list[HidDeviceInfo]:
    """List attached Aquacomputer devices of a supported model."""
    found = []
    for info in hid.enumerate(AQUACOMPUTER_VENDOR_ID, 0):
        model = PRODUCT_MODELS.get(info.get("product_id"))
        if model is None:
            _LOGGER.debug("Skipping unsupported product 0x%04X", info.get("product_id", 0))
            continue
        found.append(
            HidDeviceInfo(
                path=info["path"],
                product_id=info["product_id"],
                model=model,
                serial_number=info.get("serial_number") or None,
                product_string=info.get("product_string") or None,
            )
        )
    return found


class HidTransport:
    """Feature report I/O and input report listener on one hidraw device."""

    def __init__(self, path: bytes | str, read_timeout_ms: int = READ_TIMEOUT_MS) -> None:
        self.path = path.encode() if isinstance(path, str) else path
        self.read_timeout_ms = read_timeout_ms
        self._device = None
        self._reader: threading.Thread | None = None
        self._stop = threading.Event()

    def open(self) -> None:
        """Open the device.

        Raises:
            OSError: If the device cannot be opened.
        """
        if self._device is not None:
            return
        device = hid.device()
        device.open_path(self.path)
        self._device = device
        _LOGGER.debug("Opened HID device %s", self.path)

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def _handle(self):
        if self._device is None:
            raise OSError(f"HID device {self.path!r} is not open")
        return self._device

    def get_feature_report(self, report_id: int, size: int) -> bytes:
        data = self._handle().get_feature_report(report_id, size)
        if not data:
            raise OSError(f"Empty feature report 0x{report_id:02X}")
        return bytes(data)

    def set_feature_report(self, report_id: int, data: bytes) -> None:
        if not data or data[0] != report_id:
            data = bytes([report_id]) + bytes(data)
        written = self._handle().send_feature_report(list(data))
        if written < 0:
            raise OSError(f"Writing feature report 0x{report_id:02X} failed")

    def start_listening(self, on_report: ReportCallback) -> None:
        """Deliver every input report to on_report from a reader thread."""
        self._handle()
        if self._reader is not None and self._reader.is_alive():
            return
        self._stop.clear()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(on_report,),
            name=f"aquacomputer-reader-{self.path.decode(errors='replace')}",
            daemon=True,
        )
        self._reader.start()

    def _read_loop(self, on_report: ReportCallback) -> None:
        while not self._stop.is_set():
            try:
                data = self._handle().read(MAX_INPUT_REPORT_SIZE, self.read_timeout_ms)
            except (OSError, ValueError) as exc:
                if not self._stop.is_set():
                    _LOGGER.warning("Reading from %s failed: %s", self.path, exc)
                break
            if not data:
                continue
            report = bytes(data)
            try:
                on_report(report[0], report)
            except Exception:
                _LOGGER.exception("Report handler failed")

    def stop_listening(self) -> None:
        self._stop.set()
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=self.read_timeout_ms / 1000 * 2)
        self._reader = None

    def close(self) -> None:
        self.stop_listening()
        if self._device is not None:
            self._device.close()
            self._device = None
            _LOGGER.debug("Closed HID device %s", self.path)
