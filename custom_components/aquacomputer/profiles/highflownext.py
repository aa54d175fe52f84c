"""Profile of the Aquacomputer High Flow Next flow sensor."""

PROFILE_MAP = {
    "name": "High Flow Next",
    "status_report_size": 0x65,
    "serial_offset": 0x03,
    "firmware_offset": 0x0D,
    "power_cycles_offset": 0x18,
    "temp_start": 85,
    "num_temps": 2,
    "flow_offsets": [81],
    # +5V, then +5V USB
    "extra_voltage_offsets": [97, 99],
    "special": {
        "water_quality": 89,
        "dissipated_power": 91,
        "conductivity": 95,
    },
    "capabilities": ["flow_quality", "extra_voltage_rails"],
    "temp_labels": ["Coolant temp", "External sensor"],
    "speed_labels": ["Flow [dL/h]"],
    "power_labels": ["Dissipated power"],
    "voltage_labels": ["+5V voltage", "+5V USB voltage"],
}
