"""Profile of the Aquacomputer Farbwerk 360 RGB controller."""

PROFILE_MAP = {
    "name": "Farbwerk 360",
    "status_report_size": 0xB6,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 0x32,
    "num_temps": 4,
    "virtual_temp_start": 0x3A,
    "num_virtual_temps": 16,
    "ctrl_report_size": 0x682,
    "checksummed": True,
    "secondary_report": (0x02, [0x02, 0x00, 0x00, 0x00, 0x02, 0x00, 0x00, 0x00, 0x00, 0x34, 0xC6]),
    "temp_ctrl_offset": 0x08,
    "temp_labels": [f"Sensor {i}" for i in range(1, 5)]
    + [f"Virtual sensor {i}" for i in range(1, 17)],
}
