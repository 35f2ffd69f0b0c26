import logging
import sys
import uuid

import requests
from rich.console import Console

from ...config import Configuration, build_http_client
from ...errors import SettingsError
from ...token import Settings, Token, encode_basic_auth, read_settings

logger = logging.getLogger(__name__)


def login_with_password(configuration: Configuration, username: str, password: str) -> None:
    """Exchanges username/password for a token and stores it in the settings file."""
    console = Console()
    token = Token(build_http_client(), configuration)

    try:
        response = token.create(encode_basic_auth(username, password))
        if not response.token or not token.validate(response.token):
            console.print("[red]❌ Error: Invalid username or password.[/red]")
            sys.exit(1)
    except ValueError as e:
        # requests.JSONDecodeError is also a RequestException, so this goes first.
        console.print(f"[red]❌ Error: Unexpected response from {token.endpoint}: {e}[/red]")
        sys.exit(1)
    except requests.RequestException as e:
        console.print(f"[red]❌ Error: Could not reach {token.endpoint}: {e}[/red]")
        sys.exit(1)

    try:
        settings = read_settings()
    except SettingsError as e:
        logger.debug("Starting from empty settings: %s", e)
        settings = Settings()

    settings.token = response.token
    if not settings.uuid:
        settings.uuid = str(uuid.uuid4())

    try:
        path = token.save(settings.dumps())
    except OSError as e:
        console.print(f"[red]❌ Error: Could not save token: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✅ Logged in. Token saved to {path}[/green]")
    if response.expires_at:
        console.print(f"[dim]Token expires at {response.expires_at}[/dim]")
