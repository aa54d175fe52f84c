"""Profile of the Aquacomputer Aquastream Ultimate pump.

The pump sensors do not follow the fan record layout and are decoded from
their own record, ahead of the fan.
"""

PROFILE_MAP = {
    "name": "Aquastream Ultimate",
    "status_report_size": 0x59,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 0x2D,
    "num_temps": 1,
    "flow_offsets": [0x37],
    "fan_offsets": [0x41],
    "fan_layout": {"current": 0x00, "voltage": 0x02, "power": 0x04, "speed": 0x06},
    "special": {
        "pump_voltage": 0x3D,
        "pump_speed": 0x51,
        "pump_current": 0x53,
        "pump_power": 0x55,
        "pressure": 0x57,
    },
    "capabilities": ["pump_record"],
    "temp_labels": ["Coolant temp"],
    "speed_labels": ["Pump speed", "Fan speed", "Flow speed [dL/h]"],
    "power_labels": ["Pump power", "Fan power"],
    "voltage_labels": ["Pump voltage", "Fan voltage"],
    "current_labels": ["Pump current", "Fan current"],
}
