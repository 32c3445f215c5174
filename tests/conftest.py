"""Shared pytest fixtures."""

from unittest.mock import patch

import pytest

from .const import RAW_CLOUD_DEVICES


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    yield


@pytest.fixture(autouse=True)
def mock_bluetooth(enable_bluetooth):
    """Bluetooth set up on mocked adapters; the integration depends on it."""


@pytest.fixture
def mock_micloud():
    """MiCloud used by the session, logging in and returning two devices."""
    with patch("custom_components.xmihome.session.MiCloud") as mock_cls:
        cloud = mock_cls.return_value
        cloud.login.return_value = True
        cloud.get_devices.return_value = RAW_CLOUD_DEVICES
        yield mock_cls
