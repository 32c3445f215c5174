from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from micloud import MiCloud
from micloud.micloudexception import MiCloudAccessDenied, MiCloudException

from homeassistant import config_entries
from homeassistant.core import HomeAssistant, callback
from homeassistant.data_entry_flow import FlowResult

from .const import (
    CONF_CONNECTION_TYPE,
    CONF_COUNTRY,
    CONF_PASSWORD,
    CONF_TIMEOUT,
    CONF_USERNAME,
    CONNECTION_AUTO,
    CONNECTION_BLUETOOTH,
    CONNECTION_TYPES,
    DEFAULT_COUNTRY,
    DOMAIN,
    SERVER_COUNTRY_CODES,
)

_LOGGER = logging.getLogger(__name__)


class InvalidAuth(Exception):
    """Cloud rejected the credentials."""


class CannotConnect(Exception):
    """Cloud could not be reached."""


def _cloud_login(username: str, password: str) -> None:
    """Blocking: raise InvalidAuth/CannotConnect when login fails."""
    try:
        if not MiCloud(username, password).login():
            raise InvalidAuth
    except MiCloudAccessDenied as err:
        raise InvalidAuth from err
    except MiCloudException as err:
        raise CannotConnect from err


async def _validate_login(hass: HomeAssistant, username: str, password: str) -> None:
    await hass.async_add_executor_job(_cloud_login, username, password)


class XiaomiMiHomeConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        errors: dict[str, str] = {}

        if user_input is not None:
            username = (user_input.get(CONF_USERNAME) or "").strip()
            password = user_input.get(CONF_PASSWORD) or ""
            connection_type = user_input.get(CONF_CONNECTION_TYPE, CONNECTION_AUTO)

            # Both or neither
            if bool(username) != bool(password):
                errors["base"] = "incomplete_credentials"
            else:
                await self.async_set_unique_id(username.lower() or CONNECTION_BLUETOOTH)
                self._abort_if_unique_id_configured()

                if username and connection_type != CONNECTION_BLUETOOTH:
                    try:
                        await _validate_login(self.hass, username, password)
                    except InvalidAuth:
                        errors["base"] = "invalid_auth"
                    except CannotConnect:
                        errors["base"] = "cannot_connect"

            if not errors:
                return self.async_create_entry(
                    title=username or "Mi Home (Bluetooth)",
                    data={
                        CONF_USERNAME: username,
                        CONF_PASSWORD: password,
                        CONF_COUNTRY: user_input.get(CONF_COUNTRY, DEFAULT_COUNTRY),
                        CONF_CONNECTION_TYPE: connection_type,
                    },
                )

        defaults = user_input or {}
        schema = vol.Schema({
            vol.Optional(CONF_USERNAME, default=defaults.get(CONF_USERNAME, "")): str,
            vol.Optional(CONF_PASSWORD, default=""): str,
            vol.Required(CONF_COUNTRY, default=defaults.get(CONF_COUNTRY, DEFAULT_COUNTRY)): vol.In(SERVER_COUNTRY_CODES),
            vol.Required(CONF_CONNECTION_TYPE, default=defaults.get(CONF_CONNECTION_TYPE, CONNECTION_AUTO)): vol.In(CONNECTION_TYPES),
        })
        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        return OptionsFlow(config_entry)


class OptionsFlow(config_entries.OptionsFlow):
    """Cloud request timeout for the devices node."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(self, user_input: dict | None = None) -> FlowResult:
        if user_input is not None:
            # Empty field means "session default"
            timeout = user_input.get(CONF_TIMEOUT)
            return self.async_create_entry(
                title="", data={CONF_TIMEOUT: int(timeout) if timeout else None}
            )

        current = self.entry.options.get(CONF_TIMEOUT)
        schema = vol.Schema({
            vol.Optional(
                CONF_TIMEOUT,
                description={"suggested_value": current},
            ): vol.All(vol.Coerce(int), vol.Range(min=1000, max=120_000)),
        })
        return self.async_show_form(step_id="init", data_schema=schema)
