"""
Local usage metrics.

Every command invocation bumps a counter in metrics.json under the config
directory. send() forwards the accumulated records to the analytics sink and
truncates the file. Nothing in here is allowed to fail a user command: every
error is logged at debug level and the metrics are dropped.
"""
import json
import logging
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from segment.analytics import Client

from .config import get_config_dir
from .const import METRICS_FILENAME, SEGMENT_WRITE_KEY
from .errors import AnalyticsError, ConfigDirError
from .token import Settings

logger = logging.getLogger(__name__)


@dataclass
class MetricRecord:
    version_cli: str = ""
    total_success: int = 0
    total_failed: int = 0
    shell: str = ""
    execution_time: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricRecord":
        return cls(
            version_cli=str(data.get("VersionCLI", "")),
            total_success=int(data.get("TotalSuccess", 0)),
            total_failed=int(data.get("TotalFailed", 0)),
            shell=str(data.get("Shell", "")),
            execution_time=float(data.get("ExecutionTime", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "VersionCLI": self.version_cli,
            "TotalSuccess": self.total_success,
            "TotalFailed": self.total_failed,
            "Shell": self.shell,
            "ExecutionTime": self.execution_time,
        }


@dataclass
class TrackEvent:
    event: str
    user_id: str = ""
    anonymous_id: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)


class AnalyticsClient(Protocol):
    def enqueue(self, event: TrackEvent) -> None:
        ...

    def close(self) -> None:
        ...


class SegmentAnalyticsClient:
    """Adapts the Segment client to the enqueue/close interface used by send()."""

    def __init__(self, write_key: str = SEGMENT_WRITE_KEY, client: Optional[Client] = None) -> None:
        self._client = client or Client(write_key)

    def enqueue(self, event: TrackEvent) -> None:
        try:
            success, _ = self._client.track(
                user_id=event.user_id or None,
                anonymous_id=event.anonymous_id or None,
                event=event.event,
                properties=event.properties,
            )
        except AssertionError as e:
            # segment validates its arguments with assertions
            raise AnalyticsError(f"invalid event {event.event!r}: {e}") from e
        if not success:
            raise AnalyticsError(f"analytics queue is full, dropped {event.event!r}")

    def close(self) -> None:
        self._client.shutdown()


def location() -> Optional[Path]:
    try:
        return get_config_dir() / METRICS_FILENAME
    except ConfigDirError as e:
        logger.debug("Failed to get path of %s: %s", METRICS_FILENAME, e)
        return None


def _decode(raw: str) -> Dict[str, MetricRecord]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return {str(event): MetricRecord.from_dict(entry) for event, entry in data.items()}


def read_local_metrics() -> Dict[str, MetricRecord]:
    """
    Reads the local metrics file, creating it when absent.

    Anything that cannot be decoded is treated as no metrics at all.
    """
    path = location()
    if path is None:
        return {}

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a+") as f:
            f.seek(0)
            raw = f.read()
    except OSError as e:
        logger.debug("Failed to open metrics file %s: %s", path, e)
        return {}

    if not raw.strip():
        return {}

    try:
        return _decode(raw)
    except (ValueError, TypeError, AttributeError) as e:
        logger.debug("Discarding unreadable metrics file %s: %s", path, e)
        return {}


def record(
    event: str,
    success: bool,
    execution_time: float,
    version: str,
    shell: Optional[str] = None,
) -> None:
    """Adds one command execution to the counters of event."""
    path = location()
    if path is None:
        return

    metrics = read_local_metrics()
    entry = metrics.setdefault(event, MetricRecord())
    if success:
        entry.total_success += 1
    else:
        entry.total_failed += 1
    entry.execution_time += execution_time
    entry.version_cli = version
    entry.shell = shell if shell is not None else current_shell()

    try:
        path.write_text(json.dumps({name: m.to_dict() for name, m in metrics.items()}))
    except OSError as e:
        logger.debug("Failed to write metrics file %s: %s", path, e)


def current_shell() -> str:
    return os.path.basename(os.environ.get("SHELL", "")) or "unknown"


def _properties(settings: Settings, entry: MetricRecord) -> Dict[str, Any]:
    return {
        "email": settings.email,
        "version cli": entry.version_cli,
        "version vulcan": entry.version_cli,
        "total successful": entry.total_success,
        "total failed": entry.total_failed,
        "total": entry.total_success + entry.total_failed,
        "shell": entry.shell,
        "execution time": entry.execution_time,
        "operational system": platform.system().lower(),
        "architecture": platform.machine(),
    }


def send(settings: Settings, client: Optional[AnalyticsClient] = None) -> None:
    """
    Forwards every local metric record to the analytics sink, then truncates
    the metrics file.

    The first enqueue failure stops the loop. Records not sent by then are
    lost together with the rest of the file.
    """
    metrics = read_local_metrics()
    client = client or SegmentAnalyticsClient()
    try:
        for event, entry in metrics.items():
            try:
                client.enqueue(
                    TrackEvent(
                        event=event,
                        user_id=settings.client_id,
                        anonymous_id=settings.uuid,
                        properties=_properties(settings, entry),
                    )
                )
            except AnalyticsError as e:
                logger.debug("Failed to send metrics: %s", e)
                break
    finally:
        try:
            client.close()
        except Exception as e:  # noqa: BLE001
            logger.debug("Failed to close analytics client: %s", e)
        clean()


def clean() -> None:
    """Truncates the metrics file to zero bytes."""
    path = location()
    if path is None:
        return
    try:
        path.write_bytes(b"")
    except OSError as e:
        logger.debug("Failed to clean metrics file %s: %s", path, e)
