"""Profile of the Aquacomputer Quadro fan controller."""

_FAN_CTRL_STRIDE = 0x55

PROFILE_MAP = {
    "name": "Quadro",
    "status_report_size": 0xDC,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 0x34,
    "num_temps": 4,
    "virtual_temp_start": 0x3C,
    "num_virtual_temps": 16,
    "flow_offsets": [0x6E],
    "fan_offsets": [0x70, 0x7D, 0x8A, 0x97],
    "fan_layout": {"voltage": 0x02, "current": 0x04, "power": 0x06, "speed": 0x08},
    "capabilities": ["zero_based_enable"],
    "ctrl_report_size": 0x3C1,
    "checksummed": True,
    "secondary_report": (0x02, [0x02, 0x00, 0x00, 0x00, 0x02, 0x00, 0x00, 0x00, 0x00, 0x34, 0xC6]),
    "ctrl_delay": 0.2,
    "temp_ctrl_offset": 0x0A,
    "flow_pulses_ctrl_offset": 0x06,
    "fan_ctrl_offsets": [0x36 + i * _FAN_CTRL_STRIDE for i in range(4)],
    "fan_ctrl_layout": {
        "stride": _FAN_CTRL_STRIDE,
        "mode": 0x00,
        "manual_power": 0x01,
        "temp_select": 0x03,
        "min_power": 0x0B,
        "max_power": 0x0D,
        "fallback_power": 0x0F,
        "flags": 0x11,
        "hysteresis": 0x13,
        "temp_curve": 0x15,
        "power_curve": 0x35,
    },
    "temp_labels": [f"Sensor {i}" for i in range(1, 5)]
    + [f"Virtual sensor {i}" for i in range(1, 17)],
    "speed_labels": [f"Fan {i} speed" for i in range(1, 5)] + ["Flow speed [dL/h]"],
    "power_labels": [f"Fan {i} power" for i in range(1, 5)],
    "voltage_labels": [f"Fan {i} voltage" for i in range(1, 5)],
    "current_labels": [f"Fan {i} current" for i in range(1, 5)],
    "fan_ctrl_labels": [f"Fan {i}" for i in range(1, 5)],
}
