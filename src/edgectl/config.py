import copy
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import requests
import yaml
from rich.console import Console

from .const import (
    ACCEPT_HEADER,
    API_URL,
    AUTH_URL,
    CLI_NAME,
    CONFIG_FILENAME,
    ENV_PREFIX,
    STORAGE_URL,
    USER_AGENT,
)
from .errors import ConfigDirError

DEFAULT_CONFIG: Dict[str, Any] = {
    "auth_url": AUTH_URL,
    "api_url": API_URL,
    "storage_url": STORAGE_URL,
    "http": {
        "timeout": 10.0,
    },
    "metrics": {
        "enabled": True,
    },
}


def get_config_dir() -> Path:
    """
    Returns the OS-appropriate directory for persisted CLI state.

    EDGECTL_CONFIG_DIR wins over everything else, which is also how the
    tests keep settings and metrics out of the real home directory.
    """
    override = os.environ.get(f"{ENV_PREFIX}CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    try:
        home = Path.home()
    except RuntimeError as e:
        raise ConfigDirError(f"could not determine home directory: {e}") from e

    if sys.platform.startswith("win"):
        return Path(os.environ.get("APPDATA", str(home))) / CLI_NAME
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / CLI_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / CLI_NAME
    return home / ".config" / CLI_NAME


class Configuration:
    def __init__(self, config_data: Dict[str, Any]):
        self._config = config_data
        self._config.setdefault("http", {})
        self._config.setdefault("metrics", {})

    def _get(self, key: str, default: str) -> str:
        return os.environ.get(f"{ENV_PREFIX}{key.upper()}") or self._config.get(key, default)

    @property
    def auth_url(self) -> str:
        return self._get("auth_url", AUTH_URL).rstrip("/")

    @property
    def api_url(self) -> str:
        return self._get("api_url", API_URL).rstrip("/")

    @property
    def storage_url(self) -> str:
        return self._get("storage_url", STORAGE_URL).rstrip("/")

    @property
    def token(self) -> str:
        return os.environ.get(f"{ENV_PREFIX}TOKEN", "")

    @property
    def http_timeout(self) -> float:
        return float(self._config["http"].get("timeout", 10.0))

    @property
    def metrics_enabled(self) -> bool:
        return bool(self._config["metrics"].get("enabled", True))


def get_default_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def create_default_config(path: Path):
    """Creates a default configuration file at the specified path."""
    console = Console()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(DEFAULT_CONFIG, f, default_flow_style=False)
        console.print(f"[green]✅ Default configuration created at {path}[/green]")
    except OSError as e:
        console.print(f"[red]Error creating default configuration: {e}[/red]")


def deep_merge(source, destination):
    for key, value in source.items():
        if isinstance(value, dict):
            node = destination.setdefault(key, {})
            deep_merge(value, node)
        else:
            destination[key] = value
    return destination


def load_config(config_path: Optional[Path]) -> Configuration:
    config_data = copy.deepcopy(DEFAULT_CONFIG)
    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f)
        if user_config:
            config_data = deep_merge(user_config, config_data)
    return Configuration(config_data)


def build_http_client() -> requests.Session:
    """Creates the session shared by every remote call of one invocation."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": ACCEPT_HEADER,
        }
    )
    return session
