"""Profile of the Aquacomputer Aquastream XT pump.

The pump never pushes reports; its status is fetched on demand and is laid
out little-endian. The pump speed setpoint is stored in RPM.
"""

PROFILE_MAP = {
    "name": "Aquastream XT",
    "status_report_id": 0x04,
    "status_report_size": 0x42,
    "capabilities": ["legacy_polling"],
    "legacy": {
        "serial": 0x3A,
        "firmware": 0x32,
        "temp_start": 0x0D,
        "num_temps": 3,
        "pump_speed": 0x13,
        "fan_speed": 0x1B,
        "fan_status": 0x1D,
        "pump_voltage": 0x09,
        "fan_voltage": 0x07,
        "pump_current": 0x0B,
    },
    "ctrl_report_id": 0x06,
    "ctrl_report_size": 0x4B,
    "fan_ctrl_offsets": [0x08],
    "fan_ctrl_layout": {
        "stride": 0x02,
        "manual_power": 0x00,
        "setpoint_width": "U16LE",
        "setpoint_is_rpm": True,
    },
    "temp_labels": ["Fan IC temp", "External sensor", "Coolant temp"],
    "speed_labels": ["Pump speed", "Fan speed"],
    "voltage_labels": ["Pump voltage", "Fan voltage"],
    "current_labels": ["Pump current"],
    "fan_ctrl_labels": ["Pump"],
}
