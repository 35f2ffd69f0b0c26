import sys

import requests
from rich.console import Console

from ...config import Configuration, build_http_client
from ...token import Token


def check_token(configuration: Configuration, token_value: str) -> None:
    """Checks whether the current token is accepted by the identity service."""
    console = Console()

    if not token_value:
        console.print("[yellow]Not logged in. Run 'edgectl login' first.[/yellow]")
        sys.exit(1)

    token = Token(build_http_client(), configuration)
    try:
        authorized = token.validate(token_value)
    except requests.RequestException as e:
        console.print(f"[red]❌ Error: Could not reach {token.endpoint}: {e}[/red]")
        sys.exit(1)

    if authorized:
        console.print("[green]✅ Token is valid.[/green]")
    else:
        console.print("[red]❌ Token is invalid or expired. Run 'edgectl login' again.[/red]")
        sys.exit(1)
