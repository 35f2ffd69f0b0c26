import base64
import os
import stat
from pathlib import Path

import pytest
import requests

from edgectl import token as token_module
from edgectl.config import load_config
from edgectl.errors import ConfigDirError, SettingsError
from edgectl.token import (
    Settings,
    Token,
    encode_basic_auth,
    load_token_or_default,
    read_from_disk,
    read_settings,
)
from tests.conftest import FakeHTTPClient, make_response


def test_validate_accepts_only_200() -> None:
    client = FakeHTTPClient(make_response(200))
    tok = Token(client)

    assert tok.validate("abc123") is True
    assert tok.valid is True

    request = client.requests[0]
    assert request.method == "GET"
    assert request.url.endswith("/user/me")
    assert request.headers["Authorization"] == "token abc123"
    assert request.headers["Accept"] == "application/json; version=3"


@pytest.mark.parametrize("status", [201, 204, 301, 401, 403, 404, 500, 503, 599])
def test_validate_non_200_is_not_authorized(status: int) -> None:
    tok = Token(FakeHTTPClient(make_response(status)))

    assert tok.validate("abc123") is False
    assert tok.valid is False


def test_validate_propagates_transport_errors() -> None:
    tok = Token(FakeHTTPClient(requests.ConnectionError("connection refused")))

    with pytest.raises(requests.ConnectionError):
        tok.validate("abc123")
    assert tok.valid is False


def test_validate_uses_configured_endpoint_and_timeout(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yml"
    config_path.write_text("auth_url: https://auth.example.com/\nhttp:\n  timeout: 3\n")
    client = FakeHTTPClient(make_response(200))
    tok = Token(client, load_config(config_path))

    tok.validate("abc123")

    assert client.requests[0].url == "https://auth.example.com/user/me"
    assert client.kwargs[0]["timeout"] == 3.0


def test_create_decodes_token_response() -> None:
    body = {
        "token": "new-token",
        "created_at": "2024-01-01T00:00:00Z",
        "expires_at": "2024-01-02T00:00:00Z",
    }
    client = FakeHTTPClient(make_response(201, body))
    tok = Token(client)

    response = tok.create("dXNlcjpwYXNz")

    assert response.token == "new-token"
    assert response.created_at == "2024-01-01T00:00:00Z"
    assert response.expires_at == "2024-01-02T00:00:00Z"
    request = client.requests[0]
    assert request.method == "POST"
    assert request.url.endswith("/tokens")
    assert request.headers["Authorization"] == "Basic dXNlcjpwYXNz"
    assert request.headers["Content-Type"] == "application/json"


def test_create_propagates_decode_errors() -> None:
    tok = Token(FakeHTTPClient(make_response(200, raw=b"<html>not json</html>")))

    with pytest.raises(ValueError):
        tok.create("dXNlcjpwYXNz")


@pytest.mark.parametrize("raw", [b"[]", b"null", b"\"token\"", b"42"])
def test_create_rejects_non_object_body(raw: bytes) -> None:
    tok = Token(FakeHTTPClient(make_response(201, raw=raw)))

    with pytest.raises(ValueError, match="expected a JSON object"):
        tok.create("dXNlcjpwYXNz")


@pytest.mark.parametrize(
    "body",
    [{"token": 123}, {"token": "t", "created_at": None}, {"token": "t", "expires_at": ["soon"]}],
)
def test_create_rejects_non_string_fields(body: dict) -> None:
    tok = Token(FakeHTTPClient(make_response(201, body)))

    with pytest.raises(ValueError, match="must be a string"):
        tok.create("dXNlcjpwYXNz")


def test_create_propagates_transport_errors() -> None:
    client = FakeHTTPClient(requests.Timeout("timed out"))
    tok = Token(client)

    with pytest.raises(requests.Timeout):
        tok.create("dXNlcjpwYXNz")
    assert len(client.requests) == 1


def test_save_then_read_from_disk_round_trips(config_dir: Path) -> None:
    tok = Token(FakeHTTPClient())

    path = tok.save(Settings(token="abc123", uuid="u1").dumps())

    assert path == (config_dir / "settings.toml").resolve()
    assert path.is_absolute()
    assert read_from_disk() == "abc123"
    assert read_settings().uuid == "u1"


def test_save_creates_directory_and_overwrites(config_dir: Path) -> None:
    tok = Token(FakeHTTPClient())
    assert not config_dir.exists()

    tok.save(Settings(token="first", uuid="u1").dumps())
    tok.save(Settings(token="second", uuid="u1").dumps())

    assert config_dir.is_dir()
    assert read_from_disk() == "second"


@pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
def test_save_requests_permissive_mode_subject_to_umask(config_dir: Path) -> None:
    old_umask = os.umask(0o022)
    try:
        path = Token(FakeHTTPClient()).save(b'Token = "abc"\n')
    finally:
        os.umask(old_umask)

    assert stat.S_IMODE(path.stat().st_mode) == 0o755


def test_read_from_disk_missing_file_raises() -> None:
    with pytest.raises(SettingsError) as excinfo:
        read_from_disk()
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


def test_read_from_disk_rejects_malformed_toml(config_dir: Path) -> None:
    config_dir.mkdir(parents=True)
    (config_dir / "settings.toml").write_text("Token = \n[[[")

    with pytest.raises(SettingsError, match="failed to parse"):
        read_from_disk()


def test_read_from_disk_rejects_non_string_token(config_dir: Path) -> None:
    config_dir.mkdir(parents=True)
    (config_dir / "settings.toml").write_text("Token = 42\n")

    with pytest.raises(SettingsError):
        read_from_disk()


def test_read_from_disk_wraps_config_dir_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_dir() -> Path:
        raise ConfigDirError("no home")

    monkeypatch.setattr(token_module, "get_config_dir", broken_dir)

    with pytest.raises(SettingsError, match="failed to get token dir"):
        read_from_disk()


def test_load_token_or_default_tolerates_missing_file() -> None:
    assert load_token_or_default() == ""


def test_settings_ignores_unknown_keys_and_keeps_identity() -> None:
    raw = b'Token = "t"\nUUID = "u"\nClientId = "c"\nEmail = "a@b.c"\nExtra = 1\n'

    settings = Settings.loads(raw)

    assert settings == Settings(token="t", uuid="u", client_id="c", email="a@b.c")
    assert Settings.loads(settings.dumps()) == settings


def test_settings_dumps_omits_empty_identity() -> None:
    text = Settings(token="t", uuid="u").dumps().decode("utf-8")

    assert 'Token = "t"' in text
    assert 'UUID = "u"' in text
    assert "ClientId" not in text
    assert "Email" not in text


def test_encode_basic_auth() -> None:
    encoded = encode_basic_auth("user@example.com", "s3cret")

    assert base64.b64decode(encoded).decode("utf-8") == "user@example.com:s3cret"
