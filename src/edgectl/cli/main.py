import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import handlers
from .. import metric
from ..config import create_default_config, get_default_config_path, load_config
from ..const import CLI_NAME, VERSION
from ..errors import ConfigDirError, SettingsError
from ..token import load_token_or_default, read_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _track_command(ctx: click.Context) -> None:
    if ctx.invoked_subcommand:
        ctx.obj.setdefault("COMMAND", []).append(ctx.invoked_subcommand)


@click.group()
@click.version_option(version=VERSION, prog_name=CLI_NAME)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the edgectl config file.",
)
@click.option(
    "-t",
    "--token",
    "token_value",
    type=str,
    default=None,
    help="Authentication token to use instead of the stored one.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, config_path: Optional[Path], token_value: Optional[str], debug: bool) -> None:
    """A CLI to manage edge platform resources."""
    ctx.ensure_object(dict)
    configure_logging(debug)
    _track_command(ctx)

    if config_path is None:
        try:
            config_path = get_default_config_path()
        except ConfigDirError as e:
            raise click.ClickException(str(e))

    configuration = load_config(config_path)
    ctx.obj["CONFIG"] = configuration
    ctx.obj["CONFIG_PATH"] = config_path
    # Startup must work before the first login, so a missing settings file is fine here.
    ctx.obj["TOKEN"] = token_value or configuration.token or load_token_or_default()


@main.command(help="Log in and store an authentication token.")
@click.option("--username", type=str, prompt=True, help="Account username.")
@click.option(
    "--password", type=str, prompt=True, hide_input=True, help="Account password."
)
@click.pass_context
def login(ctx, username: str, password: str) -> None:
    """Log in and store an authentication token."""
    handlers.login_with_password(ctx.obj["CONFIG"], username=username, password=password)


@main.command(help="Check that the current token is valid.")
@click.pass_context
def whoami(ctx) -> None:
    """Check that the current token is valid."""
    handlers.check_token(ctx.obj["CONFIG"], ctx.obj["TOKEN"])


@main.group()
@click.pass_context
def metrics(ctx) -> None:
    """Manage local usage metrics."""
    _track_command(ctx)


@metrics.command(name="send")
def metrics_send() -> None:
    """Send pending usage metrics now."""
    handlers.send_metrics()


@main.group()
@click.pass_context
def config(ctx) -> None:
    """Manage edgectl configuration."""
    _track_command(ctx)


@config.command(name="init")
@click.pass_context
def config_init(ctx) -> None:
    """Write a default configuration file."""
    path = ctx.obj["CONFIG_PATH"]
    if path.exists():
        Console().print(f"Configuration file already exists at [cyan]{path}[/cyan].")
        return
    create_default_config(path)


def _exit_code(code: Any) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _flush_metrics(obj: Dict[str, Any], event: str, success: bool, elapsed: float) -> None:
    configuration = obj.get("CONFIG")
    if configuration is None or not configuration.metrics_enabled:
        return

    metric.record(event, success=success, execution_time=elapsed, version=VERSION)
    try:
        settings = read_settings()
    except SettingsError as e:
        logger.debug("Not sending metrics before login: %s", e)
        return
    metric.send(settings)


def run(argv: Optional[List[str]] = None) -> int:
    """Runs the CLI, then records and flushes usage metrics for the invoked command."""
    obj: Dict[str, Any] = {}
    start = time.monotonic()

    try:
        exit_code = _exit_code(
            main.main(args=argv, prog_name=CLI_NAME, standalone_mode=False, obj=obj)
        )
    except click.ClickException as e:
        e.show()
        exit_code = e.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        exit_code = 1
    except SystemExit as e:
        exit_code = _exit_code(e.code)

    event = "_".join(obj.get("COMMAND", []))
    if event:
        _flush_metrics(obj, event, exit_code == 0, time.monotonic() - start)

    return exit_code


def entrypoint() -> None:
    sys.exit(run())


if __name__ == "__main__":
    entrypoint()
