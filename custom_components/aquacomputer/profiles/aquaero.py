"""Profile of the Aquacomputer Aquaero 5/6.

The Aquaero sends its control report under a different id, has no checksum
and expects a short secondary report of zeroes after each write. Whether the
fan power limits are writable depends on the hardware revision reported in
the first status report.
"""

_FAN_CTRL_STRIDE = 0x14

# bit index -> AlarmFlags field
ALARM_BITS = [
    (0, "temperature"),
    (1, "fan"),
    (2, "flow"),
    (3, "pump"),
    (4, "power_supply"),
    (5, "fill_level"),
    (6, "leak"),
    (7, "sensor"),
]

PROFILE_MAP = {
    "name": "Aquaero",
    "status_report_size": 0x195,
    "serial_offset": 0x07,
    "firmware_offset": 0x0B,
    "temp_start": 0x65,
    "num_temps": 8,
    "virtual_temp_start": 0x85,
    "num_virtual_temps": 8,
    "calc_virtual_temp_start": 0x95,
    "num_calc_virtual_temps": 4,
    "flow_offsets": [0xF9, 0xFB],
    "fan_offsets": [0x167, 0x173, 0x17F, 0x18B],
    "fan_layout": {"speed": 0x00, "voltage": 0x04, "current": 0x06, "power": 0x08},
    "special": {
        "hardware_revision": 0x05,
        "alarms": 0x5D,
    },
    "alarm_bits": ALARM_BITS,
    "capabilities": ["alarm_word", "hardware_revision"],
    # Fan power limits are only writable from the Aquaero 6 on
    "writable_revision": 6,
    "ctrl_report_id": 0x0B,
    "ctrl_report_size": 0xA93,
    "secondary_report": (0x06, [0x06, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    "ctrl_delay": 0.2,
    "temp_ctrl_offset": 0xDB,
    "fan_ctrl_offsets": [0x20C, 0x220, 0x234, 0x248],
    "fan_ctrl_layout": {
        "stride": _FAN_CTRL_STRIDE,
        "min_rpm": 0x00,
        "max_rpm": 0x02,
        "min_power": 0x04,
        "max_power": 0x06,
    },
    "temp_labels": [f"Sensor {i}" for i in range(1, 9)]
    + [f"Virtual sensor {i}" for i in range(1, 9)]
    + [f"Calc. virtual sensor {i}" for i in range(1, 5)],
    "speed_labels": [f"Fan {i}" for i in range(1, 5)] + ["Flow sensor 1", "Flow sensor 2"],
    "power_labels": [f"Fan {i} power" for i in range(1, 5)],
    "voltage_labels": [f"Fan {i} voltage" for i in range(1, 5)],
    "current_labels": [f"Fan {i} current" for i in range(1, 5)],
    "fan_ctrl_labels": [f"Fan {i}" for i in range(1, 5)],
}
