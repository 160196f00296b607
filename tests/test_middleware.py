"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from fithero.config import get_settings
from fithero.middleware.logging import app_context, tag_alerts
from fithero.middleware.rate_limit import RateLimitMiddleware
from fithero.middleware.request_id import request_id_from


def _fake_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 32  # uuid4 hex


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
    assert response.headers["x-request-id"] != "bad id with spaces"
    assert len(response.headers["x-request-id"]) == 32


def test_request_id_from_caps_length() -> None:
    assert request_id_from("a" * 64) == "a" * 64
    assert request_id_from("a" * 65) != "a" * 65
    assert len(request_id_from(None)) == 32


@pytest.mark.asyncio
async def test_no_rate_limit_without_redis(client: AsyncClient) -> None:
    """Without a Redis pool requests pass through unlimited and unannotated."""
    response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("fithero.middleware.rate_limit.get_redis", lambda: _fake_redis(3))
    response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "97"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, monkeypatch) -> None:
    """The 101st request in a window returns 429 with Retry-After."""
    monkeypatch.setattr("fithero.middleware.rate_limit.get_redis", lambda: _fake_redis(101))
    response = await client.get("/api/v1/levels")
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("fithero.middleware.rate_limit.get_redis", lambda: _fake_redis(10_000))
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for a configured origin."""
    response = await client.options(
        "/api/v1/levels",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_domain_error_shape(client: AsyncClient) -> None:
    """Domain errors carry a stable code and kind next to the detail."""
    response = await client.get("/api/v1/users/424242")
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found", "code": "user_not_found", "kind": "not_found"}


@pytest.mark.asyncio
async def test_validation_error_returns_json(client: AsyncClient) -> None:
    response = await client.get("/api/v1/users/not-a-number")
    assert response.status_code == 422
    assert response.json()["detail"] == "Validation error"


@pytest.mark.asyncio
async def test_cors_preflight_allows_admin_key_without_credentials(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/admin/users",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Admin-Key",
        },
    )
    assert response.status_code == 200
    assert "x-admin-key" in response.headers["access-control-allow-headers"].lower()
    assert "access-control-allow-credentials" not in response.headers


def test_rate_limit_disabled_by_zero_budget(monkeypatch) -> None:
    from fithero.main import create_app

    monkeypatch.setenv("FITHERO_RATE_LIMIT_REQUESTS", "0")
    get_settings.cache_clear()

    app = create_app()

    assert RateLimitMiddleware not in [m.cls for m in app.user_middleware]


class TestLogProcessors:
    def test_alert_events_are_tagged(self) -> None:
        event = tag_alerts(None, "critical", {"event": "ledger_compensation_failed"})
        assert event["alert"] is True

    def test_other_events_are_not_tagged(self) -> None:
        assert "alert" not in tag_alerts(None, "info", {"event": "points_credited"})

    def test_app_context(self, app_settings) -> None:
        event = app_context(app_settings)(None, "info", {"event": "level_up"})
        assert event["app_version"] == app_settings.app_version
        assert event["environment"] == app_settings.environment
