"""Profile of the Aquacomputer Poweradjust 3 fan controller."""

PROFILE_MAP = {
    "name": "Poweradjust 3",
    "status_report_id": 0x03,
    "status_report_size": 0x32,
    "capabilities": ["legacy_polling"],
    "legacy": {
        "temp_start": 0x03,
        "num_temps": 1,
    },
    "temp_labels": ["External sensor"],
}
