"""Profile of the Aquacomputer D5 Next pump.

The pump pushes a status report every second. Channel 0 of every fan group is
the pump itself, channel 1 the optionally connected fan.
"""

_FAN_CTRL_STRIDE = 0x55

PROFILE_MAP = {
    "name": "D5 Next",
    "status_report_size": 0x9E,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 0x57,
    "num_temps": 1,
    "virtual_temp_start": 0x3F,
    "num_virtual_temps": 8,
    "fan_offsets": [0x6C, 0x5F],
    "fan_layout": {"voltage": 0x02, "current": 0x04, "power": 0x06, "speed": 0x08},
    # +5V first, then +12V
    "extra_voltage_offsets": [0x39, 0x37],
    "capabilities": ["extra_voltage_rails", "zero_based_enable"],
    "ctrl_report_size": 0x329,
    "checksummed": True,
    "secondary_report": (0x02, [0x02, 0x00, 0x00, 0x00, 0x02, 0x00, 0x00, 0x00, 0x00, 0x34, 0xC6]),
    "temp_ctrl_offset": 0x2D,
    "fan_ctrl_offsets": [0x96, 0x41],
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
    # The pump record has no start boost or hold minimum power flags
    "boost_exempt_channels": [0],
    "temp_labels": ["Coolant temp"] + [f"Virtual sensor {i}" for i in range(1, 9)],
    "speed_labels": ["Pump speed", "Fan speed"],
    "power_labels": ["Pump power", "Fan power"],
    "voltage_labels": ["Pump voltage", "Fan voltage", "+5V voltage", "+12V voltage"],
    "current_labels": ["Pump current", "Fan current"],
    "fan_ctrl_labels": ["Pump", "Fan"],
}
