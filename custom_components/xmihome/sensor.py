from __future__ import annotations

import logging
from typing import Optional

from homeassistant.core import HomeAssistant, callback
from homeassistant.config_entries import ConfigEntry
from homeassistant.components.sensor import SensorEntity
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.dispatcher import async_dispatcher_connect

from .const import DOMAIN, DATA_NODE, SIGNAL_STATUS_FMT
from .devices_node import DevicesNode, NodeStatus

_LOGGER = logging.getLogger(__name__)


def service_device_info(entry: ConfigEntry) -> DeviceInfo:
    """One service device per config entry, shared by all its entities."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=entry.title or "Mi Home",
        manufacturer="Xiaomi",
        model="Mi Home",
        entry_type=DeviceEntryType.SERVICE,
    )


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities):
    node = hass.data[DOMAIN][entry.entry_id][DATA_NODE]
    async_add_entities([DevicesStatusSensor(entry, node)], update_before_add=False)


class DevicesStatusSensor(SensorEntity):
    """Status of the device-listing node.

    Shows the label of the last status the node published
    ("Refreshing...", "Devices: N", "No devices", "Error").
    """

    _attr_icon = "mdi:format-list-bulleted"
    _attr_should_poll = False

    def __init__(self, entry: ConfigEntry, node: DevicesNode) -> None:
        self.node = node

        self._attr_has_entity_name = True
        self._attr_translation_key = "device_list"
        self._attr_unique_id = f"{DOMAIN}_{entry.entry_id}_device_list"
        self._attr_device_info = service_device_info(entry)

        self._status: Optional[NodeStatus] = node.status
        self._signal = SIGNAL_STATUS_FMT.format(entry_id=entry.entry_id)

    async def async_added_to_hass(self) -> None:
        self.async_on_remove(
            async_dispatcher_connect(self.hass, self._signal, self._on_status)
        )

    @callback
    def _on_status(self, status: NodeStatus) -> None:
        self._status = status
        self.async_write_ha_state()

    @property
    def native_value(self) -> Optional[str]:
        return self._status.text if self._status else None

    @property
    def extra_state_attributes(self) -> dict:
        if not self._status:
            return {}
        return {"fill": self._status.fill, "shape": self._status.shape}
