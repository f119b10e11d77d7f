import json

import httpx
import pytest

from clients.github.client import GitHubClient
from core.rate_limiter import RateLimiter


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool and prompt registration."""

    def __init__(self) -> None:
        self.tools = {}
        self.prompts = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator

    def prompt(self, *, name: str, description: str = ""):
        def _decorator(fn):
            self.prompts[name] = fn
            return fn
        return _decorator


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


class FakeGitHub:
    """
    Routes GitHubClient traffic to an httpx.MockTransport.

    routes keys:
        (METHOD, PATH) -> httpx.Response | (status_code, json) | callable(request) -> httpx.Response

    Every request is recorded in ``calls`` as (METHOD, PATH, json_body_or_None).
    """

    def __init__(self, routes: dict) -> None:
        self.routes = dict(routes)
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        key = (request.method.upper(), request.url.path)
        self.calls.append((key[0], key[1], body))

        if key not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})

        val = self.routes[key]
        if isinstance(val, httpx.Response):
            return val
        if callable(val):
            return val(request)
        status_code, js = val
        return httpx.Response(status_code, json=js)

    def paths(self, method: str | None = None):
        return [p for (m, p, _) in self.calls if method is None or m == method]


@pytest.fixture
def fake_github(monkeypatch):
    """Factory: fake_github(routes, max_requests=60) -> (GitHubClient, FakeGitHub)."""

    def _make(routes: dict, *, max_requests: int = 60):
        fake = FakeGitHub(routes)
        client = GitHubClient(
            rate_limiter=RateLimiter(max_requests=max_requests, window_seconds=60.0),
            timeout=5.0,
            verify=False,
        )
        transport = httpx.MockTransport(fake.handler)

        def _create_client(token: str):
            return httpx.AsyncClient(
                base_url=client.BASE_URL,
                headers=client._build_headers(token),
                transport=transport,
            )

        monkeypatch.setattr(client, "_create_client", _create_client)
        return client, fake

    return _make


TOKEN = "ghp_" + "t" * 36


@pytest.fixture
def token():
    return TOKEN
