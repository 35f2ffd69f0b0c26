"""
This file contains shared fixtures for all tests.
"""

import json
from pathlib import Path
from typing import Any, List, Optional

import pytest
import requests

from edgectl.errors import AnalyticsError


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Points every settings/metrics/config lookup at a per-test directory."""
    directory = tmp_path / "edgectl"
    monkeypatch.setenv("EDGECTL_CONFIG_DIR", str(directory))
    for var in ["EDGECTL_TOKEN", "EDGECTL_AUTH_URL", "EDGECTL_API_URL", "EDGECTL_STORAGE_URL"]:
        monkeypatch.delenv(var, raising=False)
    return directory


def make_response(status_code: int, body: Any = None, raw: Optional[bytes] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    return response


class FakeHTTPClient:
    """Stands in for requests.Session.send, replaying queued responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: List[requests.PreparedRequest] = []
        self.kwargs: List[dict] = []

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        self.requests.append(request)
        self.kwargs.append(kwargs)
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class RecordingAnalytics:
    def __init__(self, fail_on: Optional[int] = None) -> None:
        self.events: list = []
        self.attempts = 0
        self.closed = False
        self.fail_on = fail_on

    def enqueue(self, event) -> None:
        self.attempts += 1
        if self.fail_on is not None and self.attempts == self.fail_on:
            raise AnalyticsError("enqueue failed")
        self.events.append(event)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def analytics() -> RecordingAnalytics:
    return RecordingAnalytics()
