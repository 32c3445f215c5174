from __future__ import annotations

import logging
from typing import Optional

from homeassistant.core import HomeAssistant
from homeassistant.config_entries import ConfigEntry
from homeassistant.components.button import ButtonEntity

from . import new_message
from .const import DOMAIN, DATA_NODE
from .devices_node import DevicesNode
from .sensor import service_device_info

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities):
    node = hass.data[DOMAIN][entry.entry_id][DATA_NODE]
    async_add_entities([RefreshDevicesButton(entry, node)], update_before_add=False)


class RefreshDevicesButton(ButtonEntity):
    """Triggers a forced device list refresh."""

    _attr_icon = "mdi:refresh"
    _attr_should_poll = False

    def __init__(self, entry: ConfigEntry, node: DevicesNode) -> None:
        self.node = node

        self._attr_has_entity_name = True
        self._attr_translation_key = "refresh_devices"
        self._attr_unique_id = f"{DOMAIN}_{entry.entry_id}_refresh"
        self._attr_device_info = service_device_info(entry)

    async def async_press(self) -> None:
        await self.node.async_input(new_message(), self._on_done)

    def _on_done(self, err: Optional[BaseException] = None) -> None:
        # Failure details are already on the status sensor and in the node log
        if err is not None:
            _LOGGER.debug("[xmihome] refresh button: %s", err)
