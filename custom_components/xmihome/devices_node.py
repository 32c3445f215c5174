"""Device-listing node: one trigger in, one device list (or error) out.

The node knows nothing about Home Assistant. The host injects:
- ``resolve``: looks up a session by config id (the host registry),
- ``status``: write-only sink for progress/result indicators,
- ``send``: downstream emission of the message envelope.

Each trigger gets its own ``done`` callback, called exactly once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from .errors import XiaomiError

_LOGGER = logging.getLogger(__name__)

NOT_INITIALIZED = "Client is not initialized. Check configuration."
FALLBACK_ERROR = "Failed to get devices"
UNKNOWN_CODE = "unknown"


class DeviceSource(Protocol):
    async def async_get_devices(
        self, force_refresh: bool = False, timeout: Optional[int] = None
    ) -> Optional[list[dict[str, Any]]]: ...


@dataclass(frozen=True)
class NodeStatus:
    fill: str
    shape: str
    text: str


STATUS_REFRESHING = NodeStatus("blue", "dot", "Refreshing...")
STATUS_EMPTY = NodeStatus("yellow", "ring", "No devices")
STATUS_ERROR = NodeStatus("red", "ring", "Error")


def status_devices(count: int) -> NodeStatus:
    return NodeStatus("green", "dot", f"Devices: {count}")


@dataclass(frozen=True)
class DevicesNodeConfig:
    settings: Optional[str]
    timeout: Optional[int] = None  # ms, None = session default


class DevicesNode:
    """Refreshes the device list of a session on every input."""

    def __init__(
        self,
        config: DevicesNodeConfig,
        resolve: Callable[[str], Optional[DeviceSource]],
        status: Callable[[NodeStatus], None],
        send: Callable[[dict[str, Any]], None],
    ) -> None:
        self.config = config
        self._set_status = status
        self._send = send
        self.status: Optional[NodeStatus] = None

        # Back-reference only: the session belongs to its config entry
        self.session: Optional[DeviceSource] = (
            resolve(config.settings) if config.settings else None
        )
        if self.session is None:
            _LOGGER.warning("Config node not found or configured: %s", config.settings)

    def _publish(self, status: NodeStatus) -> None:
        self.status = status
        self._set_status(status)

    async def async_input(
        self, msg: dict[str, Any], done: Callable[[Optional[BaseException]], None]
    ) -> None:
        """Handle one trigger. Never raises: failures go to ``done``."""
        self._publish(STATUS_REFRESHING)
        try:
            if self.session is None:
                raise XiaomiError(NOT_INITIALIZED)
            devices = await self.session.async_get_devices(True, self.config.timeout)
        except Exception as err:
            msg["error"] = err
            msg["code"] = getattr(err, "code", None) or UNKNOWN_CODE
            msg["payload"] = str(err) or FALLBACK_ERROR
            _LOGGER.error("Failed to get devices: %s", msg["payload"])
            self._publish(STATUS_ERROR)
            done(err)
            return

        msg["payload"] = devices
        if devices:
            self._publish(status_devices(len(devices)))
        else:
            self._publish(STATUS_EMPTY)
        self._send(msg)
        done(None)
