"""
Bearer token handling: exchange credentials for a token, validate it against
the identity service and persist it in the settings file.
"""
import base64
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

import requests
import tomli_w

from .config import Configuration, get_config_dir
from .const import ACCEPT_HEADER, AUTH_URL, SETTINGS_FILENAME
from .errors import ConfigDirError, SettingsError

logger = logging.getLogger(__name__)


class HTTPClient(Protocol):
    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        ...


@dataclass
class Settings:
    token: str = ""
    uuid: str = ""
    client_id: str = ""
    email: str = ""

    _KEYS = {"token": "Token", "uuid": "UUID", "client_id": "ClientId", "email": "Email"}

    def dumps(self) -> bytes:
        data = {"Token": self.token, "UUID": self.uuid}
        if self.client_id:
            data["ClientId"] = self.client_id
        if self.email:
            data["Email"] = self.email
        return tomli_w.dumps(data).encode("utf-8")

    @classmethod
    def loads(cls, raw: bytes) -> "Settings":
        """Decodes settings, raising ValueError on malformed TOML or non-string fields."""
        data = tomllib.loads(raw.decode("utf-8"))
        values = {}
        for attr, key in cls._KEYS.items():
            value = data.get(key, "")
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {type(value).__name__}")
            values[attr] = value
        return cls(**values)


@dataclass
class TokenResponse:
    token: str
    created_at: str
    expires_at: str


def settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def encode_basic_auth(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")


class Token:
    def __init__(
        self,
        client: HTTPClient,
        configuration: Optional[Configuration] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.endpoint = configuration.auth_url if configuration else AUTH_URL
        self.timeout = timeout if timeout is not None else (
            configuration.http_timeout if configuration else None
        )
        self.file_path = settings_path()
        self.valid = False

    def _send(self, method: str, path: str, headers: dict[str, str]) -> requests.Response:
        request = requests.Request(method, f"{self.endpoint}{path}", headers=headers)
        return self.client.send(request.prepare(), timeout=self.timeout)

    def validate(self, token: str) -> bool:
        """
        Probes the "who am I" endpoint with the given token.

        Returns True only for HTTP 200. Any other status means the token is
        not authorized and yields False. Transport failures propagate.
        """
        logger.debug("Validating token against %s", self.endpoint)
        response = self._send(
            "GET",
            "/user/me",
            {"Accept": ACCEPT_HEADER, "Authorization": f"token {token}"},
        )
        if response.status_code != 200:
            logger.debug("Token validation returned status %s", response.status_code)
            return False

        self.valid = True
        return True

    def create(self, basic_auth_b64: str) -> TokenResponse:
        """Exchanges base64-encoded basic credentials for a new bearer token."""
        logger.debug("Creating token at %s", self.endpoint)
        response = self._send(
            "POST",
            "/tokens",
            {
                "Accept": ACCEPT_HEADER,
                "Content-Type": "application/json",
                "Authorization": f"Basic {basic_auth_b64}",
            },
        )
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"expected a JSON object, got {type(body).__name__}")

        fields = {}
        for key in ("token", "created_at", "expires_at"):
            value = body.get(key, "")
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {type(value).__name__}")
            fields[key] = value
        return TokenResponse(**fields)

    def save(self, data: bytes) -> Path:
        """Overwrites the settings file with data and returns its absolute path."""
        logger.debug("Saving settings to %s", self.file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        # 0o777 is only applied on creation and is masked by the umask.
        fd = os.open(self.file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o777)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        return self.file_path.resolve()


def read_settings() -> Settings:
    try:
        path = settings_path()
    except ConfigDirError as e:
        raise SettingsError(f"failed to get token dir: {e}") from e

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise SettingsError(f"failed to read settings file {path}: {e}") from e

    try:
        return Settings.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise SettingsError(f"failed to parse settings file {path}: {e}") from e


def read_from_disk() -> str:
    """Returns the token stored in the settings file."""
    return read_settings().token


def load_token_or_default() -> str:
    """Like read_from_disk, but a missing or unreadable file just means no token yet."""
    try:
        return read_from_disk()
    except SettingsError as e:
        logger.debug("No stored token: %s", e)
        return ""
