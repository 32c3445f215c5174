"""Constants shared by the tests."""

from custom_components.xmihome.const import (
    CONF_CONNECTION_TYPE,
    CONF_COUNTRY,
    CONF_PASSWORD,
    CONF_USERNAME,
)

RAW_CLOUD_DEVICES = [
    {
        "did": "123456",
        "name": "Kettle",
        "model": "yunmi.kettle.v2",
        "token": "0123456789abcdef0123456789abcdef",
        "localip": "192.168.1.20",
        "mac": "AA:BB:CC:DD:EE:01",
        "isOnline": True,
    },
    {
        "did": "blt.3.abc",
        "name": "Thermometer",
        "model": "miaomiaoce.sensor_ht.t8",
        "token": "",
        "localip": "",
        "mac": "AA:BB:CC:DD:EE:02",
        "isOnline": False,
    },
]

CLOUD_ENTRY_DATA = {
    CONF_USERNAME: "user@example.com",
    CONF_PASSWORD: "secret",
    CONF_COUNTRY: "de",
    CONF_CONNECTION_TYPE: "auto",
}

BLUETOOTH_ENTRY_DATA = {
    CONF_USERNAME: "",
    CONF_PASSWORD: "",
    CONF_COUNTRY: "cn",
    CONF_CONNECTION_TYPE: "bluetooth",
}
