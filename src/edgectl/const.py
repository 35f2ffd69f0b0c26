from importlib.metadata import PackageNotFoundError, version

CLI_NAME = "edgectl"

try:
    VERSION = version(CLI_NAME)
except PackageNotFoundError:
    VERSION = "0.0.0-dev"

AUTH_URL = "https://api.azionapi.net"
API_URL = "https://api.azionapi.net"
STORAGE_URL = "https://storage-api.azion.com"

ACCEPT_HEADER = "application/json; version=3"
USER_AGENT = f"Edge_CLI/{VERSION}"

SETTINGS_FILENAME = "settings.toml"
METRICS_FILENAME = "metrics.json"
CONFIG_FILENAME = "config.yml"

SEGMENT_WRITE_KEY = "Irg63QfdvWpoANAVeCBEwfxXBKvoSSzt"

ENV_PREFIX = "EDGECTL_"
