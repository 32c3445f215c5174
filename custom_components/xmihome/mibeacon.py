# BLE advertisement helpers for Xiaomi devices (MiBeacon / scales)

import logging
from typing import Any, Mapping, Optional

from .const import BLE_SERVICE_UUIDS

MIBEACON_UUID = BLE_SERVICE_UUIDS[0]

_LOGGER = logging.getLogger(__name__)


def parse_product_id(p: bytes) -> Optional[int]:
    """
    Parses a MiBeacon service data frame (UUID 0xFE95):
    - Frame control: uint16 LE at p[0:2]
    - Product id: uint16 LE at p[2:4]
    - Frame counter: p[4]
    Returns None for frames too short to be MiBeacon.
    """
    if len(p) < 5:
        return None
    return int.from_bytes(p[2:4], "little")


def is_xiaomi_advertisement(
    service_uuids: list[str], service_data: Mapping[str, bytes]
) -> bool:
    uuids = {u.lower() for u in service_uuids} | {u.lower() for u in service_data}
    return any(u in uuids for u in BLE_SERVICE_UUIDS)


def device_from_advertisement(
    address: str,
    name: Optional[str],
    service_data: Mapping[str, bytes],
    rssi: Optional[int] = None,
) -> dict[str, Any]:
    """Build a device record from one advertisement."""
    product_id = None
    frame = service_data.get(MIBEACON_UUID)
    if frame is not None:
        product_id = parse_product_id(bytes(frame))
        _LOGGER.debug(
            "[xmihome] MiBeacon %s (len=%d): %s",
            address,
            len(frame),
            bytes(frame).hex(),
        )
    return {
        "name": name or None,
        "mac": address.upper(),
        "model": None,
        "product_id": product_id,
        "rssi": rssi,
        "isOnline": True,
    }
