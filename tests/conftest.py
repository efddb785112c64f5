"""Shared fixtures: an in-memory CloudFlare API served through httpx.MockTransport."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from cloudflare_backup.client import CloudFlareClient
from cloudflare_backup.config import ApiConfig

API_PREFIX = "/client/v4/"


def ok(result: Any, *, count: int | None = None, total_count: int | None = None) -> dict[str, Any]:
    """Build a successful envelope, with result_info for list payloads."""
    body: dict[str, Any] = {"success": True, "errors": [], "messages": [], "result": result}
    if isinstance(result, list):
        n = len(result)
        body["result_info"] = {
            "page": 1,
            "per_page": 50,
            "count": n if count is None else count,
            "total_count": n if total_count is None else total_count,
            "total_pages": 1,
        }
    return body


def failed(*messages: str) -> dict[str, Any]:
    """Build an unsuccessful envelope."""
    return {
        "success": False,
        "errors": [{"code": 1000, "message": m} for m in messages],
        "messages": [],
        "result": None,
    }


class FakeCloudFlare:
    """
    Routes requests by resource path to canned responses.

    A route value is either a JSON-serialisable body (served with 200), a
    ``(status, body)`` tuple, or an exception instance to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        if path not in self.routes:
            return httpx.Response(404, json=failed(f"no route for {path}"))
        route = self.routes[path]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            status, body = route
            if isinstance(body, (bytes, str)):
                return httpx.Response(status, content=body)
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=route)

    @property
    def paths(self) -> list[str]:
        return [r.url.path.removeprefix(API_PREFIX) for r in self.requests]


@pytest.fixture
def api_config() -> ApiConfig:
    return ApiConfig(token="test-token-123456")


@pytest.fixture
def fake_api() -> FakeCloudFlare:
    return FakeCloudFlare()


@pytest.fixture
def client(api_config: ApiConfig, fake_api: FakeCloudFlare):
    with CloudFlareClient(api_config, transport=httpx.MockTransport(fake_api)) as c:
        yield c


ZONE_1 = {
    "id": "z1",
    "name": "example.com",
    "created_on": "2020-01-01",
    "activated_on": "2020-01-02",
    "modified_on": "2020-01-03",
}
ZONE_2 = {
    "id": "z2",
    "name": "example.org",
    "created_on": "2021-05-01T10:00:00Z",
    "activated_on": "2021-05-02T10:00:00Z",
    "modified_on": "2021-05-03T10:00:00Z",
}

RECORD_A = {
    "id": "r1",
    "type": "A",
    "name": "example.com",
    "content": "1.2.3.4",
    "ttl": 300,
    "proxiable": True,
    "proxied": True,
    "locked": False,
}
RECORD_MX = {
    "id": "r2",
    "type": "MX",
    "name": "example.com",
    "content": "mail.example.com",
    "ttl": 1,
    "proxiable": False,
    "proxied": False,
    "locked": False,
}
