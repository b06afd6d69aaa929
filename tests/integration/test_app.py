"""
API tests for app-wide behaviour: health, error envelopes and throttling.
"""

from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

from civicpoll.services import reference as reference_service


@pytest.mark.asyncio
async def test_root(async_client):
    response = await async_client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["name"] == "Civic Polls API"


@pytest.mark.asyncio
async def test_health(async_client, conn):
    conn.fetchval.return_value = 1

    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["data"]["checks"]["database"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_database_down(async_client, conn):
    conn.fetchval.side_effect = OSError("connection refused")

    response = await async_client.get("/health")

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["data"]["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(async_client):
    response = await async_client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found", "details": None}


@pytest.mark.asyncio
async def test_unique_violation_maps_to_conflict(async_client):
    with patch.object(
        reference_service,
        "list_counties",
        AsyncMock(side_effect=asyncpg.UniqueViolationError("duplicate key")),
    ):
        response = await async_client.get("/api/reference/counties")

    assert response.status_code == 409
    assert response.json()["error"] == "Resource already exists"


@pytest.mark.asyncio
async def test_foreign_key_violation_maps_to_bad_request(async_client, conn, admin_headers):
    conn.fetchrow.side_effect = asyncpg.ForeignKeyViolationError("party_id not present")

    response = await async_client.post(
        "/api/candidates", headers=admin_headers, json={"name": "Brian Kiprotich", "position_id": 99}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid reference to related resource"


@pytest.mark.asyncio
async def test_unexpected_error_is_generic(async_client):
    with patch.object(
        reference_service, "list_counties", AsyncMock(side_effect=RuntimeError("secret detail"))
    ):
        response = await async_client.get("/api/reference/counties")

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"
    assert "secret detail" not in response.text


@pytest.mark.asyncio
async def test_api_rate_limit(async_client):
    with patch("civicpoll.api.deps.api_rate_limiter") as limiter:
        limiter.hit.return_value = (True, 30)
        response = await async_client.get("/api/reference/counties")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert response.json()["error"] == "Too many requests from this IP, please try again later."
