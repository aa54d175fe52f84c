"""Exceptions raised by the Aquacomputer protocol layer."""
from __future__ import annotations


class AquacomputerError(Exception):
    """Base class for all protocol and transaction errors."""


class DecodeError(AquacomputerError):
    """A telemetry report could not be decoded."""


class WrongReportError(DecodeError):
    """The report carries a different report id than the one expected.

    Several report ids share the same interrupt endpoint, so this is not a
    device fault and callers drop the report without logging.
    """


class TruncatedReportError(DecodeError):
    """The report is shorter than the layout of the model requires."""


class NoDataError(AquacomputerError):
    """No data is available: a feature report GET failed or a sensor is absent."""


class DeviceIOError(AquacomputerError):
    """A feature report SET failed."""


class SecondaryReportError(DeviceIOError):
    """The control report was written but the acknowledgement report failed.

    The device has no inverse operation, so the primary write stays applied.
    """

    primary_written = True


class StaleDataError(AquacomputerError):
    """The last telemetry snapshot is older than the validity window."""


class UnsupportedError(AquacomputerError):
    """The operation is not defined for this model or channel."""


class BufferTagError(AquacomputerError):
    """The scratch buffer holds a different report than the caller expects."""


class OutOfRangeError(AquacomputerError, ValueError):
    """A caller supplied value lies outside its documented bounds."""


class ProfileDefinitionError(AssertionError):
    """A device profile table is malformed."""
