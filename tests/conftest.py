"""
Pytest configuration and shared fakes for the Aquacomputer tests.
"""
import os
import threading

import pytest

from custom_components.aquacomputer.profiles import DeviceProfile
from custom_components.aquacomputer.units import FieldWidth, write_int


def pytest_addoption(parser):
    """Add command line options for live tests."""
    parser.addoption(
        "--hidraw",
        action="store",
        default=None,
        help="hidraw path of an attached Aquacomputer device (e.g. /dev/hidraw3)"
    )
    parser.addoption(
        "--model",
        action="store",
        default=None,
        help="Model of the attached device (e.g. d5next)"
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: marks tests as requiring an attached device"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --hidraw and --model point at a device."""
    path = config.getoption("--hidraw")
    model = config.getoption("--model")
    if path and model and os.path.exists(path):
        return
    reason = "no device given (use --hidraw and --model)"
    if path and not os.path.exists(path):
        reason = f"hidraw device {path} not found"
    skip_live = pytest.mark.skip(reason=reason)
    for item in items:
        if "live" in [marker.name for marker in item.iter_markers()]:
            item.add_marker(skip_live)


# =============================================================================
# Fakes
# =============================================================================

class FakeTransport:
    """
    In-memory feature report endpoint.

    GET returns the stored reply for a report id. A SET of a report that has
    a stored reply of the same size replaces it, like the device does for its
    control report. Every call is recorded in ``calls`` in order.

    When ``watch_lock`` is set, whether that lock was held during each call
    is recorded in ``lock_held``.
    """

    def __init__(self, reports=None, get_delay=0.0):
        self.reports = {report_id: bytes(data) for report_id, data in (reports or {}).items()}
        self.calls = []
        self.fail_get = False
        self.fail_set = set()
        self.get_delay = get_delay
        self.watch_lock = None
        self.lock_held = []
        self._lock = threading.Lock()

    def _record(self, call):
        with self._lock:
            self.calls.append(call)
            if self.watch_lock is not None:
                self.lock_held.append(self.watch_lock.locked())

    @property
    def get_calls(self):
        return [call for call in self.calls if call[0] == "get"]

    @property
    def set_calls(self):
        return [call for call in self.calls if call[0] == "set"]

    def get_feature_report(self, report_id, size):
        self._record(("get", report_id, size, threading.get_ident()))
        if self.get_delay:
            threading.Event().wait(self.get_delay)
        if self.fail_get:
            raise OSError("GET failed")
        data = self.reports.get(report_id)
        if data is None:
            raise OSError(f"no report 0x{report_id:02X}")
        return data[:size]

    def set_feature_report(self, report_id, data):
        data = bytes(data)
        self._record(("set", report_id, data, threading.get_ident()))
        if report_id in self.fail_set:
            raise OSError(f"SET 0x{report_id:02X} failed")
        stored = self.reports.get(report_id)
        if stored is not None and len(stored) == len(data):
            self.reports[report_id] = data


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


# =============================================================================
# Report builders
# =============================================================================

def put(buf, offset, value, width=FieldWidth.U16BE):
    """Write value into buf at offset and return buf."""
    write_int(buf, offset, value, width)
    return buf


def status_report(profile: DeviceProfile) -> bytearray:
    """Zeroed status report of the right id and size."""
    buf = bytearray(profile.status_report_size)
    buf[0] = profile.status_report_id
    return buf


def control_report(profile: DeviceProfile) -> bytearray:
    """Zeroed control report of the right id and size."""
    buf = bytearray(profile.ctrl_report_size)
    buf[0] = profile.ctrl_report_id
    return buf


def transport_for(profile: DeviceProfile, **kwargs) -> FakeTransport:
    """FakeTransport answering the control report of profile."""
    reports = {}
    if profile.has_control:
        reports[profile.ctrl_report_id] = control_report(profile)
    return FakeTransport(reports, **kwargs)


@pytest.fixture
def clock():
    """Fake monotonic clock starting at 0."""
    return FakeClock()
