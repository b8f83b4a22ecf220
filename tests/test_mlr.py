"""API tests for MLR readiness, PI validation and stored results."""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import BrandDocument, DocumentCategory, ParsingStatus
from app.services.ai_gateway import AIGatewayError
from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2, create_brand

RISKY_CONTENT = "Cardiolex is superior to enalapril and guaranteed to work."


async def _pi_document(db: AsyncSession, brand_id: int, parsing_status=ParsingStatus.COMPLETED) -> int:
    doc = BrandDocument(
        brand_id=brand_id,
        document_title="Cardiolex PI",
        document_category=DocumentCategory.PRESCRIBING_INFORMATION,
        document_type="pdf",
        drug_name="Cardiolex",
        original_filename="cardiolex_pi.pdf",
        file_path="/nonexistent/cardiolex_pi.pdf",
        version="2024-03",
        parsed_data={"indications": "Chronic heart failure in adults"},
        parsing_status=parsing_status,
    )
    db.add(doc)
    await db.flush()
    return doc.id


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_readiness_scores_and_caches(client: AsyncClient):
    body = {"content": RISKY_CONTENT, "content_asset_id": "email-42"}

    first = await client.post("/api/mlr/readiness", json=body, headers=AUTH_HEADERS)
    assert first.status_code == 200
    data = first.json()
    assert data["mlr_readiness_score"] == 40
    assert data["submission_status"] == "not_ready"
    assert data["cached"] is False

    second = await client.post("/api/mlr/readiness", json=body, headers=AUTH_HEADERS)
    assert second.json()["cached"] is True

    results = await client.get("/api/mlr/results", params={"content_asset_id": "email-42"}, headers=AUTH_HEADERS)
    rows = results.json()
    assert len(rows) == 1
    assert rows[0]["critical_issues_count"] == 2
    assert rows[0]["results"]["submission_status"] == "not_ready"


@pytest.mark.asyncio
async def test_readiness_cache_does_not_cross_brands(client: AsyncClient):
    content = "Cardiolex is indicated for heart failure and is superior to enalapril."
    brand_a = await create_brand(client, fda_indication="SECRET-A treatment of heart failure")
    brand_b = await create_brand(client, headers=AUTH_HEADERS_USER2, brand_name="Neurovia")

    a = await client.post(
        "/api/mlr/readiness",
        json={"content": content, "brand_id": brand_a, "region": "US", "asset_type": "Email"},
        headers=AUTH_HEADERS,
    )
    assert a.status_code == 200
    assert a.json()["cached"] is False
    assert "SECRET-A" in a.text

    for region, asset_type in (("US", "Email"), ("EU", "Banner")):
        b = await client.post(
            "/api/mlr/readiness",
            json={"content": content, "brand_id": brand_b, "region": region, "asset_type": asset_type},
            headers=AUTH_HEADERS_USER2,
        )
        assert b.status_code == 200
        assert b.json()["cached"] is False
        assert "SECRET-A" not in b.text

    eu = await client.post(
        "/api/mlr/readiness",
        json={"content": content, "brand_id": brand_a, "region": "EU", "asset_type": "Email"},
        headers=AUTH_HEADERS,
    )
    assert eu.json()["cached"] is False

    repeat = await client.post(
        "/api/mlr/readiness",
        json={"content": content, "brand_id": brand_a, "region": "US", "asset_type": "Email"},
        headers=AUTH_HEADERS,
    )
    assert repeat.json()["cached"] is True


@pytest.mark.asyncio
async def test_readiness_rejects_empty_content(client: AsyncClient):
    resp = await client.post("/api/mlr/readiness", json={"content": ""}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_readiness_for_foreign_brand(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        "/api/mlr/readiness",
        json={"content": RISKY_CONTENT, "brand_id": brand_id},
        headers=AUTH_HEADERS_USER2,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_results_hide_other_users_brands(client: AsyncClient):
    brand_id = await create_brand(client)
    await client.post(
        "/api/mlr/readiness",
        json={"content": RISKY_CONTENT, "brand_id": brand_id},
        headers=AUTH_HEADERS,
    )

    own = await client.get("/api/mlr/results", headers=AUTH_HEADERS)
    assert [r["brand_id"] for r in own.json()] == [brand_id]

    other = await client.get("/api/mlr/results", headers=AUTH_HEADERS_USER2)
    assert other.json() == []


# ---------------------------------------------------------------------------
# PI validation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_validate_without_linked_pi(client: AsyncClient, ai_client):
    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization."},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["overall_compliance"] == "warning"
    assert data["compliance_score"] == 50
    assert data["issues"][0]["type"] == "missing_context"
    assert ai_client.requests == []


@pytest.mark.asyncio
async def test_validate_with_unparsed_pi(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    doc_id = await _pi_document(db_session, brand_id, parsing_status=ParsingStatus.PROCESSING)

    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization.", "linked_pi_ids": [doc_id]},
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["compliance_score"] == 30
    assert data["summary"] == "PI documents are not ready for validation"


@pytest.mark.asyncio
async def test_validate_ignores_other_users_pi(client: AsyncClient, db_session: AsyncSession, ai_client):
    brand_id = await create_brand(client)
    doc_id = await _pi_document(db_session, brand_id)

    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization.", "linked_pi_ids": [doc_id]},
        headers=AUTH_HEADERS_USER2,
    )
    assert resp.json()["compliance_score"] == 30
    assert ai_client.requests == []


@pytest.mark.asyncio
async def test_validate_normalizes_model_reply(client: AsyncClient, db_session: AsyncSession, ai_client):
    brand_id = await create_brand(client)
    doc_id = await _pi_document(db_session, brand_id)

    ai_client.queue(
        {
            "overallCompliance": "Violation",
            "issues": [
                {"type": "data_mismatch", "severity": "critical", "claim": "reduces hospitalization"},
                "not an issue object",
            ],
            "validatedClaims": [],
            "complianceScore": 140,
            "summary": "Efficacy figure does not match the PI.",
        }
    )
    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization.", "linked_pi_ids": [doc_id], "asset_id": "email-7"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["overall_compliance"] == "violation"
    assert data["compliance_score"] == 100
    assert len(data["issues"]) == 1
    assert "Chronic heart failure in adults" in ai_client.requests[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_validate_unparseable_reply(client: AsyncClient, db_session: AsyncSession, ai_client):
    brand_id = await create_brand(client)
    doc_id = await _pi_document(db_session, brand_id)

    ai_client.queue("I could not complete the review.")
    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization.", "linked_pi_ids": [doc_id]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to parse validation results"


@pytest.mark.asyncio
async def test_validate_gateway_credit_error(client: AsyncClient, db_session: AsyncSession, ai_client):
    brand_id = await create_brand(client)
    doc_id = await _pi_document(db_session, brand_id)

    ai_client.queue(AIGatewayError(402, "payment required"))
    resp = await client.post(
        "/api/mlr/validate-against-pi",
        json={"content": "Cardiolex reduces hospitalization.", "linked_pi_ids": [doc_id]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 402
