"""Tests for the data source registry."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS

SOURCE_PAYLOAD = {
    "source_system": "Veeva Vault",
    "source_type": "crm",
    "api_endpoint": "https://vault.example.com/api",
    "sync_frequency": "daily",
}


async def _create_source(client: AsyncClient, **overrides) -> dict:
    resp = await client.post("/api/data-sources", json={**SOURCE_PAYLOAD, **overrides}, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _sync(client: AsyncClient, source_id: int, success: bool) -> dict:
    resp = await client.post(
        f"/api/data-sources/{source_id}/sync-result",
        json={"success": success, "message": None if success else "timeout"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_registry_requires_user_header(client: AsyncClient):
    resp = await client.get("/api/data-sources")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_and_list_sources(client: AsyncClient):
    source = await _create_source(client)
    assert source["is_active"] is True
    assert source["consecutive_failures"] == 0

    await _create_source(client, source_system="Adobe Analytics", source_type="analytics", is_active=False)

    resp = await client.get("/api/data-sources", headers=AUTH_HEADERS)
    assert [s["source_system"] for s in resp.json()] == ["Adobe Analytics", "Veeva Vault"]

    resp = await client.get("/api/data-sources", params={"is_active": True}, headers=AUTH_HEADERS)
    assert [s["id"] for s in resp.json()] == [source["id"]]


@pytest.mark.asyncio
async def test_three_failures_deactivate_source(client: AsyncClient):
    source = await _create_source(client)

    await _sync(client, source["id"], False)
    second = await _sync(client, source["id"], False)
    assert second["is_active"] is True
    assert second["consecutive_failures"] == 2

    third = await _sync(client, source["id"], False)
    assert third["is_active"] is False
    assert third["consecutive_failures"] == 3
    assert third["last_failed_sync"] is not None

    # Re-activating clears the failure streak
    resp = await client.patch(
        f"/api/data-sources/{source['id']}", json={"is_active": True}, headers=AUTH_HEADERS
    )
    assert resp.json()["is_active"] is True
    assert resp.json()["consecutive_failures"] == 0


@pytest.mark.asyncio
async def test_success_resets_failures(client: AsyncClient):
    source = await _create_source(client)
    await _sync(client, source["id"], False)

    result = await _sync(client, source["id"], True)
    assert result["consecutive_failures"] == 0
    assert result["last_successful_sync"] is not None


@pytest.mark.asyncio
async def test_update_and_delete_source(client: AsyncClient):
    source = await _create_source(client)
    url = f"/api/data-sources/{source['id']}"

    resp = await client.patch(url, json={"sync_frequency": "hourly"}, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["sync_frequency"] == "hourly"

    resp = await client.delete(url, headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(url, headers=AUTH_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["detail"] == f"Data source {source['id']} not found."
