#!/usr/bin/env python3
"""
Dump the status and control reports of an Aquacomputer device to a JSON file.

This script reads one status report and, where the model has one, the control
report, and saves them with the decoded telemetry for testing and development
purposes.

Usage:
    python scripts/dump_reports.py [--path /dev/hidraw3] [--model d5next] [--output reports.json]

Without --path the first discovered device is used. The output file can be
used in unit tests to verify decoders with real device data.
"""
import argparse
import json
import sys
import threading
from datetime import datetime
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from custom_components.aquacomputer.decoder import decode
from custom_components.aquacomputer.errors import AquacomputerError
from custom_components.aquacomputer.hid_transport import HidTransport, discover
from custom_components.aquacomputer.legacy import decode_legacy
from custom_components.aquacomputer.profiles import Capability, profile_for


def read_status(transport: HidTransport, profile, timeout: float) -> bytes:
    """Read one status report, polled or pushed depending on the model."""
    if profile.has(Capability.LEGACY_POLLING):
        return transport.get_feature_report(profile.status_report_id, profile.status_report_size)

    received: dict[str, bytes] = {}
    done = threading.Event()

    def on_report(report_id: int, data: bytes) -> None:
        if report_id == profile.status_report_id and not done.is_set():
            received["status"] = data
            done.set()

    transport.start_listening(on_report)
    try:
        if not done.wait(timeout):
            raise OSError(f"No status report within {timeout}s")
    finally:
        transport.stop_listening()
    return received["status"]


def dump_reports(path: str, model: str, timeout: float = 2.0) -> dict:
    """
    Read the reports of one device.

    Returns a dict with:
    - metadata: timestamp, path, model
    - raw: hex data of the status and control reports
    - parsed: decoded telemetry
    """
    profile = profile_for(model)
    result = {
        "metadata": {
            "timestamp": datetime.now().isoformat(),
            "path": path,
            "model": model,
            "name": profile.name,
        },
        "raw": {},
        "parsed": {},
    }

    transport = HidTransport(path)
    try:
        print(f"Opening {path} ({profile.name})...")
        transport.open()
        print("Opened!\n")

        print("Reading status report...")
        status = read_status(transport, profile, timeout)
        result["raw"]["status"] = status.hex()
        try:
            if profile.has(Capability.LEGACY_POLLING):
                snapshot = decode_legacy(profile, status, 0.0)
            else:
                snapshot = decode(profile, status, 0.0)
        except AquacomputerError as e:
            print(f"  OK (raw) - decode error: {e}")
            result["parsed"]["status"] = {"error": str(e)}
        else:
            result["parsed"]["status"] = {
                "serial_number": snapshot.serial_number,
                "firmware_version": snapshot.firmware_version,
                "power_cycles": snapshot.power_cycles,
                "temperatures": list(snapshot.temperatures),
                "speeds": list(snapshot.speeds),
                "powers": list(snapshot.powers),
                "voltages": list(snapshot.voltages),
                "currents": list(snapshot.currents),
                "extras": dict(snapshot.extras),
            }
            print(f"  OK - {len(status)} bytes, serial {snapshot.serial_number}")

        if profile.has_control:
            print("Reading control report...")
            control = transport.get_feature_report(profile.ctrl_report_id, profile.ctrl_report_size)
            result["raw"]["control"] = control.hex()
            print(f"  OK - {len(control)} bytes")

        print("\nDone!")

    finally:
        transport.close()

    return result


def main():
    parser = argparse.ArgumentParser(
        description="Dump Aquacomputer status and control reports to JSON file"
    )
    parser.add_argument(
        "--path", "-p",
        default=None,
        help="hidraw path (default: first discovered device)"
    )
    parser.add_argument(
        "--model", "-m",
        default=None,
        help="Model name, required together with --path"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=2.0,
        help="Seconds to wait for a status report (default: 2.0)"
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output JSON file (default: tests/fixtures/reports_<model>_<timestamp>.json)"
    )

    args = parser.parse_args()

    if args.path is None:
        found = discover()
        if not found:
            print("No Aquacomputer device found")
            sys.exit(1)
        path, model = found[0].path.decode(), found[0].model
    elif args.model is None:
        parser.error("--model is required together with --path")
    else:
        path, model = args.path, args.model

    # Generate output filename if not specified
    if args.output is None:
        fixtures_dir = Path(__file__).parent.parent / "tests" / "fixtures"
        fixtures_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = fixtures_dir / f"reports_{model}_{timestamp}.json"
    else:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)

    # Dump reports
    try:
        data = dump_reports(path, model, args.timeout)
    except (OSError, AquacomputerError) as e:
        print(f"\nError: {e}")
        sys.exit(1)

    # Save to file
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    print(f"\nSaved to: {output_path}")


if __name__ == "__main__":
    main()
