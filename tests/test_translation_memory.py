"""Tests for translation memory matching (service) and its endpoints."""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.translation_memory import (
    CANDIDATE_LIMIT,
    TMSearchOptions,
    TranslationMemoryService,
    calculate_quality_score,
)
from tests.conftest import AUTH_HEADERS, create_brand

DAILY_EN = "Take one tablet daily."
DAILY_FR = "Prenez un comprimé par jour."
TWICE_EN = "Take one tablet twice daily."
TWICE_FR = "Prenez un comprimé deux fois par jour."
STORE_EN = "Store below 25 degrees."
STORE_FR = "Conserver en dessous de 25 degrés."

NO_SEMANTIC = TMSearchOptions(include_semantic=False)


async def _seed(db: AsyncSession, brand_id: int):
    tm = TranslationMemoryService()
    daily = await tm.add_to_tm(db, brand_id, DAILY_EN, DAILY_FR, "en", "fr", domain_context="dosing")
    twice = await tm.add_to_tm(db, brand_id, TWICE_EN, TWICE_FR, "en", "fr")
    store = await tm.add_to_tm(db, brand_id, STORE_EN, STORE_FR, "en", "fr", domain_context="storage")
    return daily, twice, store


# ---------------------------------------------------------------------------
# Quality heuristic
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "source, target, expected",
    [
        ("abcdefghij", "abcdefghij.", 0.9),
        ("abcdefghij", "abcdefghij", 0.8),
        ("abcdefghij", "abc", 0.6),
        ("abcdefghij", "abcdefghijabcdefghij!", 0.7),
    ],
)
def test_quality_score(source, target, expected):
    assert calculate_quality_score(source, target) == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_to_tm_defaults(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    _, twice, _ = await _seed(db_session, brand_id)
    assert twice.domain_context == "general"
    assert twice.confidence_level == 0.85
    assert twice.usage_count == 0
    assert twice.quality_score == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_search_exact_and_fuzzy(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    daily, twice, _ = await _seed(db_session, brand_id)

    found = await TranslationMemoryService().search(db_session, brand_id, DAILY_EN, "en", "fr", NO_SEMANTIC)

    assert [(m["id"], m["match_type"], m["match_percentage"]) for m in found["matches"]] == [
        (daily.id, "exact", 100),
        (twice.id, "fuzzy", 79),
    ]
    stats = found["search_stats"]
    assert stats["total_matches"] == 2
    assert stats["exact_matches"] == 1
    assert stats["fuzzy_matches"] == 1
    assert stats["average_confidence"] == 0.85
    assert stats["suggested_leverage"] == 85

    recs = found["recommendations"]
    assert recs["best_match"]["id"] == daily.id
    assert recs["improvement_suggestions"] == ["No contextual matches found. Verify domain relevance."]


@pytest.mark.asyncio
async def test_search_only_matches_language_pair_and_brand(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    other_brand = await create_brand(client, brand_name="Neurovia")
    await _seed(db_session, brand_id)

    tm = TranslationMemoryService()
    assert (await tm.search(db_session, brand_id, DAILY_EN, "en", "de"))["matches"] == []
    assert (await tm.search(db_session, other_brand, DAILY_EN, "en", "fr"))["matches"] == []


@pytest.mark.asyncio
async def test_search_finds_exact_entry_beyond_candidate_limit(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    tm = TranslationMemoryService()
    for i in range(CANDIDATE_LIMIT):
        await tm.add_to_tm(db_session, brand_id, f"Filler sentence number {i}.", f"Phrase numéro {i}.", "en", "fr")
    daily = await tm.add_to_tm(db_session, brand_id, DAILY_EN, DAILY_FR, "en", "fr")

    found = await tm.search(db_session, brand_id, DAILY_EN, "en", "fr", NO_SEMANTIC)

    assert found["search_stats"]["exact_matches"] == 1
    assert found["matches"][0]["id"] == daily.id
    assert found["matches"][0]["match_type"] == "exact"


@pytest.mark.asyncio
async def test_search_semantic_keywords(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    _, _, store = await _seed(db_session, brand_id)

    found = await TranslationMemoryService().search(
        db_session,
        brand_id,
        "Store the tablets below 25 degrees",
        "en",
        "fr",
        TMSearchOptions(include_fuzzy=False),
    )
    assert [(m["id"], m["match_type"], m["match_percentage"]) for m in found["matches"]] == [
        (store.id, "semantic", 50)
    ]
    assert "Best match is below 90%. Review translation carefully for accuracy." in (
        found["recommendations"]["improvement_suggestions"]
    )


@pytest.mark.asyncio
async def test_search_filters(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    daily, _, _ = await _seed(db_session, brand_id)
    tm = TranslationMemoryService()

    by_domain = await tm.search(
        db_session, brand_id, DAILY_EN, "en", "fr", TMSearchOptions(include_semantic=False, domain_filter="dosing")
    )
    assert [m["id"] for m in by_domain["matches"]] == [daily.id]

    strict = await tm.search(db_session, brand_id, DAILY_EN, "en", "fr", TMSearchOptions(quality_threshold=0.95))
    assert strict["matches"] == []
    assert strict["recommendations"]["improvement_suggestions"] == [
        "No matches found. Consider adding this as a new TM entry after translation."
    ]


@pytest.mark.asyncio
async def test_best_matches_per_segment(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    daily, _, _ = await _seed(db_session, brand_id)

    results = await TranslationMemoryService().get_best_matches(
        db_session, brand_id, [DAILY_EN, "Unrelated sentence here."], "en", "fr"
    )
    assert results[DAILY_EN][0]["id"] == daily.id
    assert len(results[DAILY_EN]) <= 3
    assert all(m["match_percentage"] >= 80 for m in results[DAILY_EN])
    assert results["Unrelated sentence here."] == []


@pytest.mark.asyncio
async def test_update_usage(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    daily, _, _ = await _seed(db_session, brand_id)
    tm = TranslationMemoryService()

    entry = await tm.update_usage(db_session, brand_id, daily.id)
    assert entry.usage_count == 1
    assert entry.last_used is not None
    assert await tm.update_usage(db_session, brand_id, 999999) is None


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tm_api_lifecycle(client: AsyncClient):
    brand_id = await create_brand(client)
    base = f"/api/brands/{brand_id}/translation-memory"

    resp = await client.post(
        base,
        json={
            "source_text": DAILY_EN,
            "target_text": DAILY_FR,
            "source_language": "en",
            "target_language": "fr",
            "market": "FR",
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201
    entry = resp.json()
    assert entry["domain_context"] == "general"

    used = await client.post(f"{base}/{entry['id']}/use", headers=AUTH_HEADERS)
    assert used.json()["usage_count"] == 1

    listed = await client.get(base, params={"target_language": "fr"}, headers=AUTH_HEADERS)
    assert [e["id"] for e in listed.json()] == [entry["id"]]

    found = await client.post(
        f"{base}/search",
        json={"source_text": DAILY_EN, "source_language": "en", "target_language": "fr"},
        headers=AUTH_HEADERS,
    )
    assert found.status_code == 200
    assert found.json()["matches"][0]["match_type"] == "exact"

    best = await client.post(
        f"{base}/best-matches",
        json={"source_texts": [DAILY_EN], "source_language": "en", "target_language": "fr"},
        headers=AUTH_HEADERS,
    )
    assert best.json()[DAILY_EN][0]["id"] == entry["id"]

    assert (await client.delete(f"{base}/{entry['id']}", headers=AUTH_HEADERS)).status_code == 204
    missing = await client.post(f"{base}/{entry['id']}/use", headers=AUTH_HEADERS)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_tm_search_validates_options(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(
        f"/api/brands/{brand_id}/translation-memory/search",
        json={"source_text": DAILY_EN, "source_language": "en", "target_language": "fr", "min_match_percentage": 150},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422
