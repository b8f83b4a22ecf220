"""Tests for brand document upload, AI structuring, list and delete."""
import pytest
from httpx import AsyncClient

from app.services.ai_gateway import AIGatewayError
from tests.conftest import AUTH_HEADERS, create_brand


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CLINICAL_TEXT = (
    "Cardiolex prescribing summary. In the PARADIGM trial of 8,442 patients, "
    "Cardiolex reduced cardiovascular death or heart failure hospitalization by 20% "
    "versus enalapril (p<0.001). The most common adverse reactions were hypotension, "
    "hyperkalemia and renal impairment. Indicated for chronic heart failure in adults."
).encode()

STRUCTURED_REPLY = {
    "indications": "Indicated for chronic heart failure (NYHA class II-IV) in adults.",
    "efficacy_data": [
        "Reduced CV death or HF hospitalization by 20% vs enalapril",
        "Reduced all-cause mortality by 16%",
    ],
    "safety_profile": "",
    "clinical_trials": [],
}


async def _upload(client: AsyncClient, brand_id: int, category: str = "clinical", content: bytes = CLINICAL_TEXT):
    return await client.post(
        f"/api/brands/{brand_id}/documents/upload",
        headers=AUTH_HEADERS,
        data={"document_category": category, "drug_name": "Cardiolex"},
        files={"file": ("cardiolex_pi.txt", content, "text/plain")},
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upload_unsupported_type(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/documents/upload",
        headers=AUTH_HEADERS,
        files={"file": ("logo.png", b"\x89PNG", "image/png")},
    )
    assert resp.status_code == 400
    assert "Unsupported file type" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_upload_empty_text_file(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await _upload(client, brand_id, content=b"   \n  ")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_upload_text_document(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await _upload(client, brand_id)
    assert resp.status_code == 201
    data = resp.json()
    assert data["parsing_status"] == "pending"
    assert data["document_category"] == "clinical"
    assert data["document_type"] == "txt"
    assert data["word_count"] > 20

    listing = await client.get(f"/api/brands/{brand_id}/documents", headers=AUTH_HEADERS)
    assert listing.status_code == 200
    docs = listing.json()
    assert len(docs) == 1
    assert docs[0]["original_filename"] == "cardiolex_pi.txt"
    assert docs[0]["drug_name"] == "Cardiolex"


@pytest.mark.asyncio
async def test_list_documents_filters_by_category(client: AsyncClient):
    brand_id = await create_brand(client)
    await _upload(client, brand_id, category="clinical")
    await _upload(client, brand_id, category="marketing")

    resp = await client.get(
        f"/api/brands/{brand_id}/documents",
        params={"category": "marketing"},
        headers=AUTH_HEADERS,
    )
    assert [d["document_category"] for d in resp.json()] == ["marketing"]


@pytest.mark.asyncio
async def test_process_clinical_document_creates_claims(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    doc_id = (await _upload(client, brand_id)).json()["id"]

    ai_client.queue(STRUCTURED_REPLY)
    resp = await client.post(f"/api/brands/{brand_id}/documents/{doc_id}/process", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["parsing_status"] == "completed"
    assert data["claims_created"] == 3
    assert data["message"] == "Brand document parsed successfully"

    detail = await client.get(f"/api/brands/{brand_id}/documents/{doc_id}", headers=AUTH_HEADERS)
    body = detail.json()
    assert body["parsing_progress"] == 100
    assert body["parsed_data"]["indications"].startswith("Indicated for chronic heart failure")

    claims = (await client.get(f"/api/brands/{brand_id}/claims", headers=AUTH_HEADERS)).json()
    assert [c["claim_id_display"] for c in claims] == ["CML-0001", "CML-0002", "CML-0003"]
    assert {c["review_status"] for c in claims} == {"pending"}
    assert {c["source_document_id"] for c in claims} == {doc_id}


@pytest.mark.asyncio
async def test_process_failure_marks_document_failed(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    doc_id = (await _upload(client, brand_id)).json()["id"]

    # Empty queue -> empty reply
    resp = await client.post(f"/api/brands/{brand_id}/documents/{doc_id}/process", headers=AUTH_HEADERS)
    assert resp.status_code == 500
    data = resp.json()
    assert data["success"] is False
    assert data["parsing_status"] == "failed"
    assert data["error"] == "No content returned from AI"

    detail = await client.get(f"/api/brands/{brand_id}/documents/{doc_id}", headers=AUTH_HEADERS)
    assert detail.json()["parsing_status"] == "failed"
    assert detail.json()["error_message"] == "No content returned from AI"


@pytest.mark.asyncio
async def test_process_rate_limited_gateway(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    doc_id = (await _upload(client, brand_id)).json()["id"]

    ai_client.queue(AIGatewayError(429, "Too many requests"))
    resp = await client.post(f"/api/brands/{brand_id}/documents/{doc_id}/process", headers=AUTH_HEADERS)
    assert resp.status_code == 500
    assert resp.json()["error"] == "Rate limit exceeded. Please try again in a few moments."


@pytest.mark.asyncio
async def test_reprocess_document(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    doc_id = (await _upload(client, brand_id, category="marketing")).json()["id"]

    ai_client.queue({"key_messages": ["Fewer hospital stays"], "positioning": "First-line ARNI"})
    resp = await client.post(f"/api/brands/{brand_id}/documents/{doc_id}/reprocess", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["parsing_status"] == "completed"
    assert resp.json()["claims_created"] == 0


@pytest.mark.asyncio
async def test_delete_document_keeps_claims(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    doc_id = (await _upload(client, brand_id)).json()["id"]
    ai_client.queue(STRUCTURED_REPLY)
    await client.post(f"/api/brands/{brand_id}/documents/{doc_id}/process", headers=AUTH_HEADERS)

    resp = await client.delete(f"/api/brands/{brand_id}/documents/{doc_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    assert (await client.get(f"/api/brands/{brand_id}/documents/{doc_id}", headers=AUTH_HEADERS)).status_code == 404
    claims = (await client.get(f"/api/brands/{brand_id}/claims", headers=AUTH_HEADERS)).json()
    assert len(claims) == 3
    assert all(c["source_document_id"] is None for c in claims)


@pytest.mark.asyncio
async def test_delete_nonexistent_document(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.delete(f"/api/brands/{brand_id}/documents/999999", headers=AUTH_HEADERS)
    assert resp.status_code == 404
