from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from fastapi.testclient import TestClient

from ksefproxy.server.core import KSeFProxyServer
from ksefproxy.server.simulator import KSeFSimulator

MODE_ENV_VARS = (
    "USE_MOCK_KSEF",
    "USE_REAL_KSEF",
    "KSEF_ENVIRONMENT",
    "BACKEND_URL",
    "KSEF_API_URL",
    "KSEF_PROXY_HOST",
    "KSEF_PROXY_PORT",
    "KSEF_PROXY_LOG_LEVEL",
)


class FakeClock:
    """Manually advanced clock for simulator tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MockResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.status_code = status_code
        self._payload = payload
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode()
        self.content = content
        self.text = content.decode("utf-8", errors="replace")
        self.headers = headers or {}

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeHttpSession:
    """Records outgoing requests and replays queued responses by path suffix."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: dict[str, Any] = {}

    def respond(self, path_suffix: str, response: Any) -> None:
        self.responses[path_suffix] = response

    def request(self, method: str, url: str, **kwargs: Any) -> MockResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for suffix in sorted(self.responses, key=len, reverse=True):
            if url.endswith(suffix):
                response = self.responses[suffix]
                if isinstance(response, Exception):
                    raise response
                return response
        return MockResponse(404, {"error": "not configured"})


@pytest.fixture(autouse=True)
def clean_mode_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in MODE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def simulator(clock: FakeClock) -> KSeFSimulator:
    return KSeFSimulator(clock=clock, init_signed_delay=0)


@pytest.fixture
def http() -> FakeHttpSession:
    return FakeHttpSession()


@pytest.fixture(scope="session")
def rsa_private_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def server(simulator: KSeFSimulator, http: FakeHttpSession) -> KSeFProxyServer:
    return KSeFProxyServer(simulator=simulator, http=http)


@pytest.fixture
def client(server: KSeFProxyServer) -> TestClient:
    return TestClient(server.app)
