from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import uuid4

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
import homeassistant.helpers.config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .const import (
    ATTR_CONFIG_ENTRY_ID,
    CONF_CONNECTION_TYPE,
    CONF_COUNTRY,
    CONF_PASSWORD,
    CONF_TIMEOUT,
    CONF_USERNAME,
    CONNECTION_AUTO,
    DATA_NODE,
    DATA_SESSION,
    DEFAULT_COUNTRY,
    DOMAIN,
    EVENT_DEVICES,
    SERVICE_GET_DEVICES,
    SIGNAL_STATUS_FMT,
)
from .devices_node import DevicesNode, DevicesNodeConfig, NodeStatus
from .session import XiaomiSession

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BUTTON]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

GET_DEVICES_SCHEMA = vol.Schema({vol.Required(ATTR_CONFIG_ENTRY_ID): cv.string})


def new_message() -> dict[str, Any]:
    return {"_msgid": uuid4().hex, "payload": None}


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Register the domain service (once, not per entry)."""

    async def _get_devices(call: ServiceCall) -> ServiceResponse:
        entry_id = call.data[ATTR_CONFIG_ENTRY_ID]
        data = hass.data.get(DOMAIN, {}).get(entry_id)
        if not data:
            raise ServiceValidationError(f"Config entry {entry_id} is not loaded")

        node: DevicesNode = data[DATA_NODE]
        msg = new_message()
        result: dict[str, Optional[BaseException]] = {}

        def _done(err: Optional[BaseException] = None) -> None:
            result["error"] = err

        await node.async_input(msg, _done)
        if result.get("error") is not None:
            raise HomeAssistantError(msg["payload"]) from result["error"]
        if call.return_response:
            return {"devices": msg["payload"] or []}
        return None

    hass.services.async_register(
        DOMAIN,
        SERVICE_GET_DEVICES,
        _get_devices,
        schema=GET_DEVICES_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    session = XiaomiSession(
        hass,
        entry.entry_id,
        username=entry.data.get(CONF_USERNAME),
        password=entry.data.get(CONF_PASSWORD),
        country=entry.data.get(CONF_COUNTRY) or DEFAULT_COUNTRY,
        connection_type=entry.data.get(CONF_CONNECTION_TYPE) or CONNECTION_AUTO,
    )
    domain_data = hass.data.setdefault(DOMAIN, {})
    domain_data[entry.entry_id] = {DATA_SESSION: session}

    def _resolve(ref: str) -> Optional[XiaomiSession]:
        return domain_data.get(ref, {}).get(DATA_SESSION)

    signal = SIGNAL_STATUS_FMT.format(entry_id=entry.entry_id)

    def _status(status: NodeStatus) -> None:
        async_dispatcher_send(hass, signal, status)

    def _send(msg: dict[str, Any]) -> None:
        hass.bus.async_fire(
            EVENT_DEVICES,
            {
                "entry_id": entry.entry_id,
                "_msgid": msg.get("_msgid"),
                "payload": msg.get("payload"),
            },
        )

    config = DevicesNodeConfig(
        settings=entry.entry_id, timeout=entry.options.get(CONF_TIMEOUT)
    )
    domain_data[entry.entry_id][DATA_NODE] = DevicesNode(config, _resolve, _status, _send)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    # Node config is fixed at construction: rebuild on option changes
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if data:
            session: XiaomiSession = data.get(DATA_SESSION)
            if session:
                await session.async_stop()
    return unloaded
