"""Tests for the /api/token routes."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from roomtoken.core.config import ExchangeConfig
from roomtoken.main import app
from roomtoken.services.exchange import TokenExchangeClient, get_exchange_client

CONFIG = ExchangeConfig(
    host_room_code="ABC123",
    guest_room_code="",
    management_token="mgmt-secret",
    api_bases=("https://bad.example", "https://good.example"),
    timeout_seconds=1.0,
)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def use_upstream(http: httpx.AsyncClient) -> None:
    exchange = TokenExchangeClient(CONFIG, http_client=http)
    app.dependency_overrides[get_exchange_client] = lambda: exchange


def fallback_upstream(request: httpx.Request) -> httpx.Response:
    if request.url.host == "bad.example":
        return httpx.Response(500, json={"error": "boom"})
    return httpx.Response(200, json={"token": f"tok_{json.loads(request.content)['user_id']}"})


@pytest.mark.asyncio
async def test_get_token_for_host() -> None:
    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(transport=httpx.MockTransport(fallback_upstream)) as upstream:
        use_upstream(upstream)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/token", params={"role": "host", "user": "alice"})

    assert response.status_code == 200
    assert response.json() == {"token": "tok_alice"}


@pytest.mark.asyncio
async def test_post_token_uses_json_body() -> None:
    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(transport=httpx.MockTransport(fallback_upstream)) as upstream:
        use_upstream(upstream)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/token", json={"role": "host"})

    assert response.status_code == 200
    assert response.json() == {"token": "tok_teacher"}


@pytest.mark.asyncio
async def test_post_token_without_body_reads_query_params() -> None:
    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(transport=httpx.MockTransport(fallback_upstream)) as upstream:
        use_upstream(upstream)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/token", params={"role": "host", "user": "bob"})

    assert response.status_code == 200
    assert response.json() == {"token": "tok_bob"}


@pytest.mark.asyncio
async def test_failed_exchange_does_not_echo_room_code() -> None:
    config = ExchangeConfig(
        host_room_code="SECRET-HOST-CODE",
        management_token="mgmt-secret",
        api_bases=("https://bad.example",),
        timeout_seconds=1.0,
    )
    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    ) as upstream:
        exchange = TokenExchangeClient(config, http_client=upstream)
        app.dependency_overrides[get_exchange_client] = lambda: exchange
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/token", params={"role": "host"})

    assert response.status_code == 502
    assert "SECRET-HOST-CODE" not in response.text
    assert "mgmt-secret" not in response.text


@pytest.mark.asyncio
async def test_post_token_defaults_to_guest_without_code() -> None:
    calls: list[httpx.Request] = []

    def upstream_handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"token": "unused"})

    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream_handler)) as upstream:
        use_upstream(upstream)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/token")

    assert response.status_code == 400
    assert response.json() == {"error": "missing room code for role", "detail": {"role": "guest"}}
    assert calls == []


@pytest.mark.asyncio
async def test_upstream_failure_is_bad_gateway() -> None:
    transport = ASGITransport(app=app)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
    ) as upstream:
        use_upstream(upstream)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/token", params={"role": "host"})

    body = response.json()
    assert response.status_code == 502
    assert body["error"] == "all upstream bases failed"
    assert [attempt["status"] for attempt in body["detail"]["attempts"]] == [503, 503]


@pytest.mark.asyncio
async def test_unknown_role_is_rejected() -> None:
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/token", params={"role": "admin"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500() -> None:
    broken = AsyncMock()
    broken.exchange.side_effect = RuntimeError("secret detail")
    app.dependency_overrides[get_exchange_client] = lambda: broken

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/token", params={"role": "host"})

    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}
