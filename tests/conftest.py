"""
Pytest configuration and shared fixtures for the admin client tests.
"""

import json
import sys
from collections import deque
from pathlib import Path
from typing import Any, Optional

import pytest
import requests
from requests.adapters import BaseAdapter

# Add repo root to path for `import src.*`
sys.path.insert(0, str(Path(__file__).parent.parent))

BASE_URL = "http://api.test"


class FakeAdapter(BaseAdapter):
    """
    Transport adapter returning queued canned responses.

    Mounted on a real requests.Session, so response hooks run exactly as
    they do against a live server.
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: deque = deque()
        self.requests: list[requests.PreparedRequest] = []

    def add(self, status: int = 200, body: Any = None, *, headers: Optional[dict[str, str]] = None) -> None:
        self._queue.append((status, body, headers or {}))

    def add_error(self, exc: Exception) -> None:
        self._queue.append(exc)

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self._queue.popleft()
        if isinstance(item, Exception):
            raise item
        status, body, headers = item

        response = requests.Response()
        response.status_code = status
        response.reason = "OK" if status < 400 else "Error"
        response._content = b"" if body is None else json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
        response.headers.update(headers)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass

    @property
    def last_request(self) -> requests.PreparedRequest:
        return self.requests[-1]


@pytest.fixture
def ephemeral():
    from src.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def durable():
    from src.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def session_store(ephemeral, durable):
    from src.session import SessionStore

    return SessionStore(ephemeral, durable)


@pytest.fixture
def navigator():
    from src.navigation import MemoryNavigator

    return MemoryNavigator()


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def http_session(adapter) -> requests.Session:
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


@pytest.fixture
def classifier(session_store, navigator):
    from src.faults import FaultClassifier

    return FaultClassifier(session_store, navigator)


@pytest.fixture
def api_client(http_session, classifier):
    from src.transport import ApiClient

    client = ApiClient(BASE_URL, classifier, session=http_session)
    yield client
    client.close()


@pytest.fixture
def logged_in(session_store):
    """SessionStore holding an admin credential in the ephemeral tier."""
    session_store.set_credential("tok-admin", False, "admin")
    return session_store

