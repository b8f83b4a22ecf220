"""Tests for brand CRUD and isolation."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2, BRAND_PAYLOAD, create_brand


@pytest.mark.asyncio
async def test_create_brand(client: AsyncClient):
    resp = await client.post("/api/brands", json=BRAND_PAYLOAD, headers=AUTH_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["brand_name"] == "Cardiolex"
    assert data["therapeutic_area"] == "Cardiology"
    assert data["primary_color"] == "#1F3A93"
    assert data["guidelines"]["forbidden_terms"] == ["miracle"]
    assert data["document_count"] == 0
    assert data["claim_count"] == 0
    assert isinstance(data["id"], int)


@pytest.mark.asyncio
async def test_create_brand_validates_required_fields(client: AsyncClient):
    resp = await client.post("/api/brands", json={"brand_name": "Only Name"}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_brands_returns_only_own_brands(client: AsyncClient):
    await create_brand(client, brand_name="Brand A")
    await create_brand(client, brand_name="Brand B")
    await create_brand(client, headers=AUTH_HEADERS_USER2, brand_name="Brand C")

    resp = await client.get("/api/brands", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    names = {b["brand_name"] for b in resp.json()}
    assert names == {"Brand A", "Brand B"}

    resp2 = await client.get("/api/brands", headers=AUTH_HEADERS_USER2)
    assert {b["brand_name"] for b in resp2.json()} == {"Brand C"}


@pytest.mark.asyncio
async def test_brand_counts_reflect_library(client: AsyncClient):
    brand_id = await create_brand(client)
    await client.post(
        f"/api/brands/{brand_id}/claims",
        json={"claim_text": "Reduced hospitalization by 30%"},
        headers=AUTH_HEADERS,
    )
    await client.post(
        f"/api/brands/{brand_id}/themes",
        json={"name": "Evidence", "key_message": "Backed by data"},
        headers=AUTH_HEADERS,
    )

    resp = await client.get("/api/brands", headers=AUTH_HEADERS)
    brand = resp.json()[0]
    assert brand["claim_count"] == 1
    assert brand["theme_count"] == 1
    assert brand["document_count"] == 0

    detail = await client.get(f"/api/brands/{brand_id}", headers=AUTH_HEADERS)
    assert detail.json()["claim_count"] == 1


@pytest.mark.asyncio
async def test_update_brand_partial(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.patch(
        f"/api/brands/{brand_id}",
        json={"accent_color": "#FF0000"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["accent_color"] == "#FF0000"
    assert data["brand_name"] == "Cardiolex"


@pytest.mark.asyncio
async def test_delete_brand_cascades(client: AsyncClient):
    brand_id = await create_brand(client)
    await client.post(
        f"/api/brands/{brand_id}/claims",
        json={"claim_text": "Well tolerated in clinical trials"},
        headers=AUTH_HEADERS,
    )

    del_resp = await client.delete(f"/api/brands/{brand_id}", headers=AUTH_HEADERS)
    assert del_resp.status_code == 204

    get_resp = await client.get(f"/api/brands/{brand_id}", headers=AUTH_HEADERS)
    assert get_resp.status_code == 404
