"""Tests for the content workshop: drafts, briefs, visuals and TM-leveraged translation."""
import pytest
from httpx import AsyncClient

from app.services.content_workshop import (
    HCP_DISCLAIMER,
    PATIENT_DISCLAIMER,
    build_word_breakdown,
    create_fallback_content,
    extract_translation,
    get_audience_sophistication,
)
from tests.conftest import AUTH_HEADERS, create_brand

TRANSLATION_REPLY = (
    "**1. Translated Text:**\n"
    "Prenez un comprimé par jour.\n"
    "\n---\n\n"
    "**2. Word-level Breakdown:**\n"
    "- Prenez: exact\n\n"
    "**3. Quality Scores:**\nMedical accuracy 95%\n"
)


async def _approved_claim(client: AsyncClient, brand_id: int, text: str = "Reduced HF hospitalization by 21%") -> dict:
    claim = (
        await client.post(
            f"/api/brands/{brand_id}/claims",
            json={"claim_text": text, "claim_type": "efficacy", "confidence_score": 0.9},
            headers=AUTH_HEADERS,
        )
    ).json()
    resp = await client.patch(
        f"/api/brands/{brand_id}/claims/{claim['id']}", json={"review_status": "approved"}, headers=AUTH_HEADERS
    )
    return resp.json()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def test_audience_sophistication():
    assert get_audience_sophistication("Physician-Specialist") == "expert"
    assert get_audience_sophistication("Caregiver-Family") == "patient-friendly"
    assert get_audience_sophistication("Unknown") == "standard"


def test_fallback_content_by_audience():
    hcp = create_fallback_content("standard", "A" * 60, "heart failure", ["Fewer admissions"], None)
    assert hcp["subject"] == "A" * 47 + "..."
    assert hcp["body"].startswith("Dear Healthcare Professional,")
    assert "• Fewer admissions" in hcp["body"]
    assert hcp["disclaimer"] == HCP_DISCLAIMER
    assert hcp["cta"] == "Learn More"

    patient = create_fallback_content("patient-friendly", None, None, [], "Talk to your doctor")
    assert patient["body"].startswith("Dear Patient,")
    assert patient["disclaimer"] == PATIENT_DISCLAIMER
    assert patient["cta"] == "Talk to your doctor"


def test_extract_translation_formats():
    assert extract_translation(TRANSLATION_REPLY) == "Prenez un comprimé par jour."
    assert extract_translation("**FR:** Bonjour tout le monde\n\nNotes") == "Bonjour tout le monde"
    assert extract_translation("short\nThis line is long enough to count as text") == (
        "This line is long enough to count as text"
    )


def test_word_breakdown_tags_by_match_strength():
    matches = [
        {"id": 1, "source_text": "take one tablet", "match_percentage": 100},
        {"id": 2, "source_text": "daily dose", "match_percentage": 80},
    ]
    breakdown, flags = build_word_breakdown("Take daily water", "Prenez quotidien eau", matches)
    assert [w["type"] for w in breakdown] == ["exact", "fuzzy", "new"]
    assert breakdown[0]["tm_entry_id"] == 1
    assert flags == ['Fuzzy match for "quotidien" requires review']


# ---------------------------------------------------------------------------
# Initial content
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_initial_content_citations(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    await _approved_claim(client, brand_id)

    ai_client.queue(
        {
            "subject": "A subject line that is much longer than fifty characters in total",
            "headline": "Keep patients out of hospital",
            "body": "Dear Doctor, Cardiolex reduced HF hospitalization [CLAIM:CML-0001] in adults with chronic HF.",
            "cta": "See the data",
            "citationsUsed": ["CML-0001", "CML-9999"],
        }
    )
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/initial-content",
        json={"asset_type": "email", "target_audience": "Physician-PrimaryCare"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["fallback_used"] is False
    assert data["sophistication_level"] == "standard"
    assert data["citations_used"] == ["CML-0001"]
    assert [c["claim_id_display"] for c in data["used_claims"]] == ["CML-0001"]
    assert len(data["content"]["subject"]) == 50
    assert data["content"]["disclaimer"] == HCP_DISCLAIMER

    user_prompt = ai_client.requests[0]["messages"][1]["content"]
    assert "[CLAIM:CML-0001]" in user_prompt


@pytest.mark.asyncio
async def test_initial_content_uses_theme(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    theme = (
        await client.post(
            f"/api/brands/{brand_id}/themes",
            json={"name": "Steady Hearts", "key_message": "Stay out of hospital", "call_to_action": "Ask today"},
            headers=AUTH_HEADERS,
        )
    ).json()

    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/initial-content",
        json={"theme_id": theme["id"]},
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["fallback_used"] is True
    assert data["content"]["headline"] == "Stay out of hospital"
    assert data["content"]["cta"] == "Ask today"
    assert "Core Message: Stay out of hospital" in ai_client.requests[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_initial_content_patient_audience(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    await _approved_claim(client, brand_id)
    ai_client.queue(
        {
            "subject": "Living well",
            "body": "Our trial showed great efficacy for people like you [CLAIM:CML-0001]. Talk to your doctor.",
            "citationsUsed": ["CML-0001"],
        }
    )

    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/initial-content",
        json={"target_audience": "Patient"},
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["sophistication_level"] == "patient-friendly"
    assert data["citations_used"] == []
    assert data["used_claims"] == []
    assert set(data["forbidden_terms_found"]) == {"trial", "efficacy"}
    assert data["content"]["disclaimer"] == PATIENT_DISCLAIMER
    assert "CLINICAL CLAIMS FOR CITATION" not in ai_client.requests[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_initial_content_unknown_theme(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/initial-content", json={"theme_id": 9999}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Brief / visual
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_enhance_brief(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    ai_client.queue({"objective": "Grow HCP awareness", "keyMessages": "Fewer admissions", "tone": "clinical"})

    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/enhance-brief",
        json={"brief": "Launch email for cardiologists", "channels": ["email"]},
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["objective"] == "Grow HCP awareness"
    assert data["key_messages"] == ["Fewer admissions"]
    assert data["channel_recommendations"] == ["email"]
    assert data["summary"] == "Launch email for cardiologists"


@pytest.mark.asyncio
async def test_enhance_brief_defaults_on_empty_reply(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/enhance-brief",
        json={"brief": "Patient leaflet refresh"},
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["objective"] == "Patient leaflet refresh"
    assert data["tone"] == "professional"
    assert data["key_messages"] == []


@pytest.mark.asyncio
async def test_visual_generation(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/visual",
        json={"prompt": "Calm cardiology clinic, morning light", "frame_number": 2},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json() == {"image_url": ai_client.image_url, "frame_number": 2}
    assert ai_client.requests[0]["modalities"] == ["image", "text"]


@pytest.mark.asyncio
async def test_visual_requires_prompt(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(f"/api/brands/{brand_id}/workshop/visual", json={"prompt": "  "}, headers=AUTH_HEADERS)
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Prompt is required"


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_translate_with_tm_leverage(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    await client.post(
        f"/api/brands/{brand_id}/translation-memory",
        json={
            "source_text": "Take one tablet daily.",
            "target_text": "Prenez un comprimé par jour.",
            "source_language": "en",
            "target_language": "fr",
        },
        headers=AUTH_HEADERS,
    )

    ai_client.queue(TRANSLATION_REPLY)
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/translate",
        json={
            "source_text": "Take one tablet daily.",
            "source_language": "en",
            "target_language": "fr",
            "save_to_tm": True,
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["translated_text"] == "Prenez un comprimé par jour."
    assert [w["type"] for w in data["word_level_breakdown"]] == ["exact", "exact", "exact", "exact", "new"]
    assert data["tm_stats"] == {
        "exact_words": 4,
        "fuzzy_words": 0,
        "new_words": 1,
        "total_words": 5,
        "leverage_percentage": 80.0,
    }
    assert data["review_flags"] == []
    assert data["tm_entry_id"] is not None

    system_prompt = ai_client.requests[0]["messages"][0]["content"]
    assert "Focus on Cardiology terminology." in system_prompt
    assert "Available TM matches" in system_prompt

    entries = await client.get(f"/api/brands/{brand_id}/translation-memory", headers=AUTH_HEADERS)
    assert len(entries.json()) == 2


@pytest.mark.asyncio
async def test_translate_without_tm(client: AsyncClient, ai_client):
    brand_id = await create_brand(client)
    ai_client.queue(TRANSLATION_REPLY)
    resp = await client.post(
        f"/api/brands/{brand_id}/workshop/translate",
        json={
            "source_text": "Take one tablet daily.",
            "source_language": "en",
            "target_language": "fr",
            "use_tm_leverage": False,
        },
        headers=AUTH_HEADERS,
    )
    data = resp.json()
    assert data["tm_stats"]["leverage_percentage"] == 0.0
    assert data["tm_entry_id"] is None
    assert "Available TM matches" not in ai_client.requests[0]["messages"][0]["content"]
