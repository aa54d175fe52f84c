"""Constants for the Aquacomputer integration."""
from __future__ import annotations

from typing import Final

# Domain
DOMAIN: Final = "aquacomputer"
MANUFACTURER: Final = "Aquacomputer"

# USB identification
AQUACOMPUTER_VENDOR_ID: Final = 0x0C70

# Product id -> model identifier used by the profile registry
PRODUCT_MODELS: Final = {
    0xF001: "aquaero",
    0xF00A: "farbwerk",
    0xF00B: "aquastreamult",
    0xF00D: "quadro",
    0xF00E: "d5next",
    0xF010: "farbwerk360",
    0xF011: "octo",
    0xF012: "highflownext",
    0xF014: "leakshield",
    0xF0B6: "aquastreamxt",
    0xF0BD: "poweradjust3",
}

# Report identifiers
STATUS_REPORT_ID: Final = 0x01
CTRL_REPORT_ID: Final = 0x03
SECONDARY_CTRL_REPORT_ID: Final = 0x02
SECONDARY_CTRL_REPORT: Final = bytes(
    (0x02, 0x00, 0x00, 0x00, 0x02, 0x00, 0x00, 0x00, 0x00, 0x34, 0xC6)
)

# Checksum window common to all checksummed control reports
CTRL_REPORT_CHECKSUM_START: Final = 0x01
CTRL_REPORT_CHECKSUM_TRAILER_SIZE: Final = 2

# Timing (seconds)
CTRL_REPORT_DELAY: Final = 0.2
STATUS_VALIDITY: Final = 2.0
FIRST_REPORT_TIMEOUT: Final = 2.0
READ_TIMEOUT_MS: Final = 1000

# Sensor encoding
SENSOR_DISCONNECTED: Final = 0x7FFF
SENSOR_SIZE: Final = 0x02
NUM_CURVE_POINTS: Final = 16

# Bounds for caller supplied values
PWM_MAX: Final = 255
PERCENT_MAX: Final = 10000
TEMP_OFFSET_LIMIT: Final = 15000  # milli-degrees
HYSTERESIS_MAX: Final = 15000  # milli-degrees
CURVE_TEMP_MIN: Final = 0
CURVE_TEMP_MAX: Final = 100000  # milli-degrees
FLOW_PULSES_MIN: Final = 10
FLOW_PULSES_MAX: Final = 10000

# Legacy Aquastream XT encodings
AQUASTREAMXT_PUMP_CONVERSION_CONST: Final = 45000000
AQUASTREAMXT_FAN_CONVERSION_CONST: Final = 5646000
AQUASTREAMXT_FAN_STOPPED: Final = 0x4
AQUASTREAMXT_PUMP_MIN_RPM: Final = 3000
AQUASTREAMXT_PUMP_MAX_RPM: Final = 6000
AQUASTREAMXT_RPM_STEP: Final = 60

# Configuration
CONF_HIDRAW_PATH: Final = "hidraw_path"
CONF_MODEL: Final = "model"
CONF_UPDATE_INTERVAL: Final = "update_interval"
CONF_LOG_LEVEL: Final = "log_level"

# Update intervals
DEFAULT_UPDATE_INTERVAL: Final = 1  # seconds
MIN_UPDATE_INTERVAL: Final = 1  # seconds
MAX_UPDATE_INTERVAL: Final = 60  # seconds

# Platforms
PLATFORMS: Final = ["sensor", "binary_sensor", "number", "switch", "select"]

# Log levels for config
LOG_LEVELS: Final = {
    "Error": "error",
    "Warning": "warning",
    "Info": "info",
    "Debug": "debug",
}
