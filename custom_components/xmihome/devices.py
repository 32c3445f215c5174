"""Device records shared by the session and the terminal listing."""

from typing import Any, Mapping


def cloud_device_record(dev: Mapping[str, Any]) -> dict[str, Any]:
    """Normalise one entry of micloud's ``get_devices`` answer."""
    return {
        "id": dev.get("did"),
        "name": dev.get("name"),
        "model": dev.get("model"),
        "token": dev.get("token"),
        "address": dev.get("localip"),
        "mac": dev.get("mac"),
        "isOnline": dev.get("isOnline", False),
    }
