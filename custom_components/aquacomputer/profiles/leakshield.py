"""Profile of the Aquacomputer Leakshield pressure monitor.

The second temperature sits after the pressure readings instead of next to
the first one.
"""

PROFILE_MAP = {
    "name": "Leakshield",
    "status_report_size": 0x13B,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 265,
    "num_temps": 1,
    "remote_temp_offsets": [287],
    "special": {
        "pressure": 285,
        "pressure_min": 291,
        "pressure_target": 293,
        "pressure_max": 295,
        "pump_speed_in": 101,
        "flow_in": 111,
        "reservoir_filled": 311,
        "reservoir_volume": 313,
    },
    "capabilities": ["remote_temperature", "leak_pressure"],
    "temp_labels": ["Temperature 1", "Temperature 2"],
}
