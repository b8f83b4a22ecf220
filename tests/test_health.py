"""Tests for GET /api/health."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["database"] == "ok"
    assert data["ai_gateway"] == "configured"
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_degraded_without_api_key(client: AsyncClient, ai_client):
    ai_client.api_key = ""
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["ai_gateway"] == "missing_api_key"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Content Orchestrator API"
    assert "X-Process-Time" in resp.headers
