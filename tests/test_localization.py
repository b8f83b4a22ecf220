"""Tests for localization projects and the stand-alone analyzer endpoints."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2, create_brand

CLAIM_CONTENT = "Cardiolex is clinically proven. Warning: may cause dizziness."

PROJECT_PAYLOAD = {
    "project_name": "Cardiolex LATAM launch",
    "source_content_type": "email",
    "source_content": CLAIM_CONTENT,
    "target_markets": ["US", "Brazil"],
    "target_languages": ["en", "pt"],
}


async def _create_project(client: AsyncClient, brand_id: int, **overrides) -> dict:
    resp = await client.post(
        f"/api/brands/{brand_id}/localization/projects",
        json={**PROJECT_PAYLOAD, **overrides},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_project_runs_analysis(client: AsyncClient):
    brand_id = await create_brand(client)
    project = await _create_project(client, brand_id)

    assert project["status"] == "draft"
    assert project["priority_level"] == "medium"
    assert project["complexity"]["overall_complexity_score"] == 0
    assert len(project["regulatory_assessment"]["assessments"]) == 4
    assert project["regulatory_assessment"]["summary"]["total_estimated_cost"] == 130000
    assert project["estimated_timeline"] == 45
    assert project["total_budget"] == 130000.0


@pytest.mark.asyncio
async def test_list_and_filter_projects(client: AsyncClient):
    brand_id = await create_brand(client)
    first = await _create_project(client, brand_id)
    await _create_project(client, brand_id, project_name="EU refresh")

    resp = await client.patch(
        f"/api/brands/{brand_id}/localization/projects/{first['id']}",
        json={"status": "in_progress"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    # Status-only updates keep the stored analysis
    assert resp.json()["total_budget"] == 130000.0

    resp = await client.get(f"/api/brands/{brand_id}/localization/projects", headers=AUTH_HEADERS)
    assert len(resp.json()) == 2

    resp = await client.get(
        f"/api/brands/{brand_id}/localization/projects",
        params={"status": "in_progress"},
        headers=AUTH_HEADERS,
    )
    assert [p["id"] for p in resp.json()] == [first["id"]]


@pytest.mark.asyncio
async def test_scope_update_reruns_analysis(client: AsyncClient):
    brand_id = await create_brand(client)
    project = await _create_project(client, brand_id)

    resp = await client.patch(
        f"/api/brands/{brand_id}/localization/projects/{project['id']}",
        json={"target_markets": ["US"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["target_markets"] == ["US"]
    assert len(data["regulatory_assessment"]["assessments"]) == 2
    assert data["total_budget"] == 80000.0


@pytest.mark.asyncio
async def test_update_rejects_empty_scope(client: AsyncClient):
    brand_id = await create_brand(client)
    project = await _create_project(client, brand_id)

    resp = await client.patch(
        f"/api/brands/{brand_id}/localization/projects/{project['id']}",
        json={"target_languages": []},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422
    assert resp.json()["detail"] == "target_languages cannot be empty."


@pytest.mark.asyncio
async def test_create_requires_markets(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/localization/projects",
        json={**PROJECT_PAYLOAD, "target_markets": []},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_analyze_and_delete_project(client: AsyncClient):
    brand_id = await create_brand(client)
    project = await _create_project(client, brand_id)
    url = f"/api/brands/{brand_id}/localization/projects/{project['id']}"

    resp = await client.post(f"{url}/analyze", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["estimated_timeline"] == 45

    resp = await client.delete(url, headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(url, headers=AUTH_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["detail"] == f"Project {project['id']} not found."


@pytest.mark.asyncio
async def test_projects_scoped_to_brand_owner(client: AsyncClient):
    brand_id = await create_brand(client)
    project = await _create_project(client, brand_id)

    resp = await client.get(
        f"/api/brands/{brand_id}/localization/projects/{project['id']}",
        headers=AUTH_HEADERS_USER2,
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Stand-alone analyzers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_complexity_endpoint(client: AsyncClient):
    resp = await client.post(
        "/api/localization/complexity",
        json={
            "content": "Celebrate the holiday with a glass of alcohol.",
            "target_markets": ["China", "Japan", "India"],
            "target_languages": ["zh", "ja", "hi", "en", "ta", "te"],
            "asset_type": "interactive-video",
            "channels": ["digital", "print", "mobile"],
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["overall_complexity_score"] == 30
    assert data["timeline_impact_days"] == 6
    assert data["complexity_breakdown"]["primary_drivers"] == ["Technical format complexity"]


@pytest.mark.asyncio
async def test_regulatory_risk_post(client: AsyncClient):
    resp = await client.post(
        "/api/localization/regulatory-risk",
        json={"content": CLAIM_CONTENT, "target_markets": ["US", "Brazil"], "target_languages": ["en"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["assessments"]) == 2
    assert data["summary"]["total_estimated_cost"] == 65000
    assert data["assessments"][0]["therapeutic_area"] == "general"


@pytest.mark.asyncio
async def test_regulatory_risk_get_with_repeated_params(client: AsyncClient):
    resp = await client.get(
        "/api/localization/regulatory-risk",
        params={"content": CLAIM_CONTENT, "target_markets": ["US", "EU"], "target_languages": ["en"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert [a["target_market"] for a in resp.json()["assessments"]] == ["US", "EU"]


@pytest.mark.asyncio
async def test_regulatory_risk_requires_scope(client: AsyncClient):
    resp = await client.post(
        "/api/localization/regulatory-risk",
        json={"content": CLAIM_CONTENT, "target_markets": [], "target_languages": ["en"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422

    resp = await client.get(
        "/api/localization/regulatory-risk",
        params={"content": CLAIM_CONTENT, "target_languages": ["en"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_analyzers_require_user_header(client: AsyncClient):
    resp = await client.post("/api/localization/complexity", json={"content": "text"})
    assert resp.status_code == 422
