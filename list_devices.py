#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Lists Xiaomi Mi Home devices from a terminal, outside Home Assistant.
Handy to check credentials or see which BLE devices are in range.
"""

import argparse, asyncio, json, sys
from typing import Any, Optional

from bleak import BleakScanner
from bleak.exc import BleakError
from micloud import MiCloud
from micloud.micloudexception import MiCloudException

from custom_components.xmihome.const import (
    BLE_SERVICE_UUIDS, DEFAULT_COUNTRY, DEFAULT_DISCOVERY_TIMEOUT, SERVER_COUNTRY_CODES,
)
from custom_components.xmihome.devices import cloud_device_record
from custom_components.xmihome.mibeacon import device_from_advertisement, is_xiaomi_advertisement

HEADERS = ["Name", "Model", "ID / IP / MAC", "Token", "Online"]


def cloud_devices(username: str, password: str, country: str) -> list[dict[str, Any]]:
    cloud = MiCloud(username, password)
    if not cloud.login():
        raise MiCloudException("Login to Xiaomi cloud failed.")
    return [cloud_device_record(d) for d in cloud.get_devices(country) or []]


async def bluetooth_devices(timeout: float) -> list[dict[str, Any]]:
    found = await BleakScanner.discover(timeout=timeout, return_adv=True, service_uuids=BLE_SERVICE_UUIDS)
    return [
        device_from_advertisement(dev.address, adv.local_name or dev.name, adv.service_data, adv.rssi)
        for dev, adv in found.values()
        if is_xiaomi_advertisement(adv.service_uuids, adv.service_data)
    ]


def format_table(devices: list[dict[str, Any]]) -> str:
    if not devices:
        return "No devices found."

    def cell(v: Optional[Any]) -> str:
        return "" if v is None else str(v)

    rows = [[
        cell(d.get("name")),
        cell(d.get("model")),
        " / ".join(cell(d.get(k)) for k in ("id", "address", "mac") if d.get(k)),
        cell(d.get("token")),
        "yes" if d.get("isOnline") else "no",
    ] for d in devices]
    widths = [max(len(r[i]) for r in rows + [HEADERS]) for i in range(len(HEADERS))]
    lines = ["  ".join(h.ljust(w) for h, w in zip(HEADERS, widths))]
    lines.append("  ".join("-" * w for w in widths))
    lines += ["  ".join(c.ljust(w) for c, w in zip(r, widths)) for r in rows]
    return "\n".join(lines)


async def main():
    ap = argparse.ArgumentParser(description="Xiaomi Mi Home device list")
    ap.add_argument("--type", choices=["cloud", "bluetooth"], default="cloud")
    ap.add_argument("--username")
    ap.add_argument("--password")
    ap.add_argument("--country", choices=SERVER_COUNTRY_CODES, default=DEFAULT_COUNTRY)
    ap.add_argument("--timeout", type=float, default=DEFAULT_DISCOVERY_TIMEOUT / 1000,
                    help="BLE scan duration (s)")
    ap.add_argument("--json", action="store_true", help="Print raw JSON")
    args = ap.parse_args()

    try:
        if args.type == "cloud":
            if not (args.username and args.password):
                raise SystemExit("--username and --password are required for --type cloud.")
            devices = cloud_devices(args.username, args.password, args.country)
        else:
            devices = await bluetooth_devices(args.timeout)
    except (MiCloudException, BleakError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    print(json.dumps(devices, indent=2) if args.json else format_table(devices))

if __name__ == "__main__":
    asyncio.run(main())
