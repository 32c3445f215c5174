from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from micloud import MiCloud
from micloud.micloudexception import MiCloudAccessDenied, MiCloudException

from homeassistant.components import bluetooth
from homeassistant.core import HomeAssistant

from .const import (
    CACHE_TTL,
    CONNECTION_AUTO,
    CONNECTION_BLUETOOTH,
    CONNECTION_CLOUD,
    DEFAULT_COUNTRY,
)
from .devices import cloud_device_record
from .errors import XiaomiError
from .mibeacon import device_from_advertisement, is_xiaomi_advertisement

_LOGGER = logging.getLogger(__name__)


class XiaomiSession:
    """Owns the connection to the Mi Home backend for one config entry.

    Device lists are cached for CACHE_TTL seconds and concurrent refreshes
    share a single in-flight request. Runs on HA's event loop; the blocking
    micloud calls go through the executor.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        country: str = DEFAULT_COUNTRY,
        connection_type: str = CONNECTION_AUTO,
    ) -> None:
        self.hass = hass
        self.entry_id = entry_id
        self.username = username or None
        self.password = password or None
        self.country = country
        self.connection_type = connection_type

        self._cloud: Optional[MiCloud] = None
        self._refresh_task: Optional[asyncio.Task] = None

        # Device cache
        self.devices: list[dict[str, Any]] = []
        self.timestamp: float = 0.0
        self.error: Optional[str] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def strategy(self) -> str:
        if self.connection_type == CONNECTION_AUTO:
            return CONNECTION_CLOUD if self.has_credentials else CONNECTION_BLUETOOTH
        return self.connection_type

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    # ---------------- Lifecycle ----------------
    async def async_stop(self) -> None:
        """Cancel a running refresh and forget the cloud login."""
        if self.refreshing:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except (asyncio.CancelledError, Exception):
                pass
        self._refresh_task = None
        self._cloud = None
        _LOGGER.debug("[xmihome] session %s stopped", self.entry_id)

    # ---------------- Public operations ----------------
    async def async_get_devices(
        self, force_refresh: bool = False, timeout: Optional[int] = None
    ) -> list[dict[str, Any]]:
        """Return the device list, refreshing it when stale or forced.

        ``timeout`` is in milliseconds.
        """
        if self.refreshing:
            _LOGGER.debug("[xmihome] device refresh already in progress -> join it")
            return await self._async_join(self._refresh_task)

        age = time.monotonic() - self.timestamp
        if not force_refresh and self.devices and age < CACHE_TTL:
            _LOGGER.debug("[xmihome] using cached device list (%.0fs old)", age)
            return self.devices

        _LOGGER.debug("[xmihome] refreshing device list (force=%s)", force_refresh)
        self.error = None
        self._refresh_task = self.hass.async_create_task(self._async_refresh(timeout))
        return await self._async_join(self._refresh_task)

    async def _async_join(self, task: asyncio.Task) -> list[dict[str, Any]]:
        """Wait for a shared refresh without letting callers cancel it.

        A refresh cancelled by ``async_stop`` is reported as a failure so that
        every waiter gets an answer. Cancellation of the caller itself still
        propagates.
        """
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise XiaomiError(
                    "Session stopped before the device list was fetched",
                    code="ESTOPPED",
                ) from None
            raise

    async def _async_refresh(self, timeout: Optional[int]) -> list[dict[str, Any]]:
        try:
            strategy = self.strategy
            if strategy == CONNECTION_CLOUD:
                devices = await self._async_cloud_devices(timeout)
            elif strategy == CONNECTION_BLUETOOTH:
                devices = await self._async_bluetooth_devices()
            else:
                raise XiaomiError(
                    f'Invalid connection type: "{strategy}". '
                    f"Allowed: 'auto', 'cloud' or 'bluetooth'.",
                    code="EINVAL",
                )
        except Exception as err:
            self.error = str(err) or "Unknown error"
            _LOGGER.error("Failed to refresh device list: %s", self.error)
            raise
        self.devices = devices or []
        self.timestamp = time.monotonic()
        _LOGGER.info("Device list refreshed. Found %d devices", len(self.devices))
        return self.devices

    # ---------------- Cloud ----------------
    async def _async_cloud_devices(self, timeout: Optional[int]) -> list[dict[str, Any]]:
        if not self.has_credentials:
            raise XiaomiError(
                "Cannot fetch from cloud: credentials are required but missing.",
                code="ENOCREDS",
            )
        try:
            async with asyncio.timeout(timeout / 1000 if timeout else None):
                return await self.hass.async_add_executor_job(self._fetch_cloud_devices)
        except TimeoutError as err:
            raise XiaomiError(
                f"Cloud request timed out after {timeout} ms", code="ETIMEOUT"
            ) from err

    def _fetch_cloud_devices(self) -> list[dict[str, Any]]:
        """Blocking: login (once) and fetch the account's device list."""
        try:
            if self._cloud is None:
                cloud = MiCloud(self.username, self.password)
                if not cloud.login():
                    raise XiaomiError("Login to Xiaomi cloud failed", code="EAUTH")
                self._cloud = cloud
                _LOGGER.debug("[xmihome] logged in to Xiaomi cloud as %s", self.username)
            raw = self._cloud.get_devices(self.country) or []
        except MiCloudAccessDenied as err:
            self._cloud = None
            raise XiaomiError(str(err) or "Access denied", code="EAUTH") from err
        except MiCloudException as err:
            raise XiaomiError(str(err) or "Xiaomi cloud error", code="ECLOUD") from err

        _LOGGER.debug("[xmihome] %d raw devices in the cloud", len(raw))
        return [cloud_device_record(dev) for dev in raw]

    # ---------------- Bluetooth ----------------
    async def _async_bluetooth_devices(self) -> list[dict[str, Any]]:
        """List Xiaomi adverts already collected by HA's Bluetooth scanners."""
        if not bluetooth.async_scanner_count(self.hass, connectable=False):
            raise XiaomiError(
                "No Bluetooth adapters or proxies are available", code="EBLE"
            )

        devices = []
        for info in bluetooth.async_discovered_service_info(self.hass, connectable=False):
            if not is_xiaomi_advertisement(info.service_uuids, info.service_data):
                continue
            devices.append(
                device_from_advertisement(
                    info.address, info.name, info.service_data, info.rssi
                )
            )
        _LOGGER.debug("[xmihome] %d Xiaomi adverts in the Bluetooth cache", len(devices))
        return devices
