import logging

from rich.console import Console

from ... import metric
from ...errors import SettingsError
from ...token import Settings, read_settings

logger = logging.getLogger(__name__)


def send_metrics() -> None:
    """Flushes the local metrics file to the analytics sink."""
    console = Console()

    try:
        settings = read_settings()
    except SettingsError as e:
        logger.debug("Sending metrics without stored settings: %s", e)
        settings = Settings()

    pending = len(metric.read_local_metrics())
    metric.send(settings)
    console.print(f"Sent {pending} pending metric record(s).")
