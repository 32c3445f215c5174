"""
Integration tests: setup, status sensor, refresh button and service.
"""

import pytest
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_capture_events,
)

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import entity_registry as er

from custom_components.xmihome.const import (
    CONF_TIMEOUT,
    DATA_NODE,
    DOMAIN,
    EVENT_DEVICES,
    SERVICE_GET_DEVICES,
)

from .const import CLOUD_ENTRY_DATA


async def setup_entry(hass: HomeAssistant, options=None) -> MockConfigEntry:
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="user@example.com",
        unique_id="user@example.com",
        data=CLOUD_ENTRY_DATA,
        options=options or {},
    )
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry


def entity_id(hass: HomeAssistant, platform: str, unique_id: str) -> str:
    found = er.async_get(hass).async_get_entity_id(platform, DOMAIN, unique_id)
    assert found is not None
    return found


def status_sensor(hass: HomeAssistant, entry: MockConfigEntry) -> str:
    return entity_id(hass, "sensor", f"{DOMAIN}_{entry.entry_id}_device_list")


async def test_setup_and_unload(hass, mock_micloud):
    entry = await setup_entry(hass)

    assert entry.state is ConfigEntryState.LOADED
    assert hass.services.has_service(DOMAIN, SERVICE_GET_DEVICES)
    node = hass.data[DOMAIN][entry.entry_id][DATA_NODE]
    assert node.session is not None
    assert node.config.settings == entry.entry_id
    assert node.config.timeout is None

    # Nothing fetched until triggered
    mock_micloud.assert_not_called()
    assert hass.states.get(status_sensor(hass, entry)).state == "unknown"

    assert await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()
    assert entry.state is ConfigEntryState.NOT_LOADED
    assert entry.entry_id not in hass.data[DOMAIN]


async def test_timeout_option_reaches_node(hass, mock_micloud):
    entry = await setup_entry(hass, options={CONF_TIMEOUT: 5000})

    assert hass.data[DOMAIN][entry.entry_id][DATA_NODE].config.timeout == 5000


async def test_refresh_button(hass, mock_micloud):
    entry = await setup_entry(hass)
    events = async_capture_events(hass, EVENT_DEVICES)
    button = entity_id(hass, "button", f"{DOMAIN}_{entry.entry_id}_refresh")

    await hass.services.async_call(
        "button", "press", {"entity_id": button}, blocking=True
    )
    await hass.async_block_till_done()

    state = hass.states.get(status_sensor(hass, entry))
    assert state.state == "Devices: 2"
    assert state.attributes["fill"] == "green"
    assert state.attributes["shape"] == "dot"

    assert len(events) == 1
    assert events[0].data["entry_id"] == entry.entry_id
    assert [d["id"] for d in events[0].data["payload"]] == ["123456", "blt.3.abc"]


async def test_refresh_button_failure(hass, mock_micloud):
    mock_micloud.return_value.login.return_value = False
    entry = await setup_entry(hass)
    events = async_capture_events(hass, EVENT_DEVICES)
    button = entity_id(hass, "button", f"{DOMAIN}_{entry.entry_id}_refresh")

    await hass.services.async_call(
        "button", "press", {"entity_id": button}, blocking=True
    )
    await hass.async_block_till_done()

    state = hass.states.get(status_sensor(hass, entry))
    assert state.state == "Error"
    assert state.attributes["fill"] == "red"
    assert events == []


async def test_service_returns_devices(hass, mock_micloud):
    entry = await setup_entry(hass)
    events = async_capture_events(hass, EVENT_DEVICES)

    response = await hass.services.async_call(
        DOMAIN,
        SERVICE_GET_DEVICES,
        {"config_entry_id": entry.entry_id},
        blocking=True,
        return_response=True,
    )
    await hass.async_block_till_done()

    assert [d["name"] for d in response["devices"]] == ["Kettle", "Thermometer"]
    assert len(events) == 1
    assert hass.states.get(status_sensor(hass, entry)).state == "Devices: 2"


async def test_service_always_refreshes(hass, mock_micloud):
    entry = await setup_entry(hass)

    for _ in range(2):
        await hass.services.async_call(
            DOMAIN, SERVICE_GET_DEVICES, {"config_entry_id": entry.entry_id}, blocking=True
        )

    assert mock_micloud.return_value.get_devices.call_count == 2


async def test_service_empty_list(hass, mock_micloud):
    mock_micloud.return_value.get_devices.return_value = []
    entry = await setup_entry(hass)
    events = async_capture_events(hass, EVENT_DEVICES)

    response = await hass.services.async_call(
        DOMAIN,
        SERVICE_GET_DEVICES,
        {"config_entry_id": entry.entry_id},
        blocking=True,
        return_response=True,
    )
    await hass.async_block_till_done()

    assert response == {"devices": []}
    assert len(events) == 1
    assert events[0].data["payload"] == []
    state = hass.states.get(status_sensor(hass, entry))
    assert state.state == "No devices"
    assert state.attributes["fill"] == "yellow"


async def test_service_failure(hass, mock_micloud):
    mock_micloud.return_value.login.return_value = False
    entry = await setup_entry(hass)
    events = async_capture_events(hass, EVENT_DEVICES)

    with pytest.raises(HomeAssistantError, match="Login to Xiaomi cloud failed"):
        await hass.services.async_call(
            DOMAIN, SERVICE_GET_DEVICES, {"config_entry_id": entry.entry_id}, blocking=True
        )
    await hass.async_block_till_done()

    assert events == []
    assert hass.states.get(status_sensor(hass, entry)).state == "Error"


async def test_service_unknown_entry(hass, mock_micloud):
    await setup_entry(hass)

    with pytest.raises(ServiceValidationError):
        await hass.services.async_call(
            DOMAIN, SERVICE_GET_DEVICES, {"config_entry_id": "missing"}, blocking=True
        )
