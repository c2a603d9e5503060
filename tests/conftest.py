"""
Global test fixtures for boss.

Wire-level tests run the real BrokerClient against ``httpx.MockTransport``
with a recording sleep and a fake monotonic clock, so retries and polling
never actually wait.
"""

import json
import logging
from typing import Any, Callable, Optional

import httpx
import pytest

from boss.client import BrokerClient, ClientConfig
from boss.config import clear_settings_cache

BROKER_URL = "http://broker.test"

CATALOG = {
    "services": [
        {
            "id": "redis-svc",
            "name": "redis",
            "description": "Redis key/value store",
            "tags": ["redis", "cache"],
            "plans": [
                {"id": "redis-small", "name": "small"},
                {"id": "redis-large", "name": "large"},
            ],
        },
        {
            "id": "pg-svc",
            "name": "postgresql",
            "tags": None,
            "plans": [{"id": "pg-standalone", "name": "standalone"}],
        },
    ]
}

STATUS = {
    "instances": {
        "foo-bar": {
            "service_id": "redis-svc",
            "plan_id": "redis-small",
            "created_at": "2024-03-01T10:00:00Z",
        },
        "baz-old": {
            "service_id": "pg-svc",
            "plan_id": "pg-standalone",
            "created_at": "2023-01-01T10:00:00Z",
        },
        "qux-orphan": {
            "service_id": "gone-svc",
            "plan_id": "gone-plan",
            "created_at": "0001-01-01T00:00:00Z",
        },
    },
    "log": "broker started\nall good\n",
}


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


class FakeClock:
    """Monotonic clock that only advances when sleep is called."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class Recorder:
    """Request handler that records every request and answers via a callback."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(fake_clock):
    """Factory building an opened BrokerClient over a mock transport."""
    clients: list[BrokerClient] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        **overrides: Any,
    ) -> tuple[BrokerClient, Recorder]:
        recorder = Recorder(handler)
        config = ClientConfig(
            url=overrides.pop("url", BROKER_URL),
            username=overrides.pop("username", "admin"),
            password=overrides.pop("password", "secret"),
            **overrides,
        )
        client = BrokerClient(
            config,
            transport=httpx.MockTransport(recorder),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        ).open()
        clients.append(client)
        return client, recorder

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def broker_routes() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    """Build a handler serving the standard catalog and status documents."""

    def _routes(
        extra: Optional[dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]]] = None,
        catalog: Optional[dict] = None,
        status: Optional[dict] = None,
    ) -> Callable[[httpx.Request], httpx.Response]:
        routes = {
            ("GET", "/v2/catalog"): lambda r: json_response(200, CATALOG if catalog is None else catalog),
            ("GET", "/b/status"): lambda r: json_response(200, STATUS if status is None else status),
        }
        routes.update(extra or {})

        def handler(request: httpx.Request) -> httpx.Response:
            route = routes.get((request.method, request.url.path))
            if route is None:
                return json_response(404, {"error": "NotFound", "description": request.url.path})
            return route(request)

        return handler

    return _routes


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep BLACKSMITH_* variables from the developer's shell out of tests."""
    for name in (
        "BLACKSMITH_URL",
        "BLACKSMITH_USERNAME",
        "BLACKSMITH_PASSWORD",
        "BLACKSMITH_SKIP_VERIFY",
        "BLACKSMITH_TIMEOUT",
        "BLACKSMITH_MAX_RETRIES",
        "BLACKSMITH_BROKER_API_VERSION",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def boss_caplog(caplog):
    """caplog that also sees records from the non-propagating ``boss`` logger."""
    boss_logger = logging.getLogger("boss")
    boss_logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="boss")
    yield caplog
    boss_logger.removeHandler(caplog.handler)
