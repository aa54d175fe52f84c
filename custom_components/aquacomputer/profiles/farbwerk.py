"""Profile of the Aquacomputer Farbwerk RGB controller."""

PROFILE_MAP = {
    "name": "Farbwerk",
    "status_report_size": 0x37,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 0x2F,
    "num_temps": 4,
    "temp_labels": [f"Sensor {i}" for i in range(1, 5)],
}
