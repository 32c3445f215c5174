DOMAIN = "xmihome"

# Config entry keys
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_COUNTRY = "country"
CONF_CONNECTION_TYPE = "connection_type"
CONF_TIMEOUT = "timeout"

# Connection types
CONNECTION_AUTO = "auto"
CONNECTION_CLOUD = "cloud"
CONNECTION_BLUETOOTH = "bluetooth"
CONNECTION_TYPES = [CONNECTION_AUTO, CONNECTION_CLOUD, CONNECTION_BLUETOOTH]

# Xiaomi cloud server regions
SERVER_COUNTRY_CODES = ["cn", "de", "i2", "ru", "sg", "us"]
DEFAULT_COUNTRY = "cn"

# Advertised by MiBeacon devices and Xiaomi scales
BLE_SERVICE_UUIDS = [
    "0000fe95-0000-1000-8000-00805f9b34fb",
    "0000181b-0000-1000-8000-00805f9b34fb",
]

# Seconds a device list stays fresh
CACHE_TTL = 300
# Milliseconds of BLE scanning in list_devices.py when --timeout is not given
DEFAULT_DISCOVERY_TIMEOUT = 10_000

# Shared data keys
DATA_SESSION = "session"
DATA_NODE = "node"

# Dispatcher signal (per config entry), payload: NodeStatus
SIGNAL_STATUS_FMT = "xmihome_{entry_id}_status"

# Fired with every device list emitted by a devices node
EVENT_DEVICES = "xmihome_devices"

SERVICE_GET_DEVICES = "get_devices"
ATTR_CONFIG_ENTRY_ID = "config_entry_id"
