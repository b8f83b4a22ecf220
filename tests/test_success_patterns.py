"""Tests for success pattern detection and the pattern endpoints."""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import PerformanceAttribution
from app.services.success_patterns import SuccessPatternService, calculate_confidence
from tests.conftest import AUTH_HEADERS, create_brand

OLD_DATE = "2020-01-06"

INGEST_PAYLOAD = {
    "elements": [
        {"element_type": "tone", "element_value": "Empathetic", "avg_performance_score": 80, "usage_count": 50},
        {"element_type": "cta_type", "element_value": "Learn More", "avg_performance_score": 70, "usage_count": 50},
        {"element_type": "complexity", "element_value": "Simple", "avg_performance_score": 60, "usage_count": 20},
        # Below the minimum score, never combined
        {"element_type": "tone", "element_value": "Urgent", "avg_performance_score": 10, "usage_count": 40},
    ],
    "attributions": (
        [{"audience_segment": "HCP", "engagement_rate": 0.3, "measurement_date": OLD_DATE}] * 5
        + [{"audience_segment": "Patient", "engagement_rate": 0.1, "measurement_date": OLD_DATE}] * 5
    ),
}


async def _ingest(client: AsyncClient, brand_id: int) -> None:
    resp = await client.post(f"/api/brands/{brand_id}/performance", json=INGEST_PAYLOAD, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    assert resp.json() == {"elements_stored": 4, "attributions_stored": 10}


@pytest.mark.parametrize(
    "sample, lift, expected",
    [(0, 0, 0), (50, 30, 100), (25, 15, 50), (100, -60, 100), (4, 25, 46)],
)
def test_calculate_confidence(sample, lift, expected):
    assert calculate_confidence(sample, lift) == expected


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_detect_patterns(client: AsyncClient):
    brand_id = await create_brand(client)
    await _ingest(client, brand_id)

    resp = await client.post(f"/api/brands/{brand_id}/patterns/detect", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["detected"] == 3
    assert data["element_combination"] == 2
    assert data["audience_match"] == 1
    # Attribution rows are outside the 90-day window
    assert data["temporal"] == 0

    patterns = {p["pattern_name"]: p for p in data["patterns"]}
    combo = patterns["Empathetic Tone + Learn More CTA"]
    assert combo["avg_performance_lift"] == 25.0
    assert combo["sample_size"] == 50
    assert combo["confidence_score"] == 92
    assert combo["validation_status"] == "validated"
    assert combo["applicable_channels"] == ["email", "web"]

    simple = patterns["Simple Complexity + Empathetic Tone"]
    assert simple["avg_performance_lift"] == 20.0
    assert simple["confidence_score"] == 53
    assert simple["validation_status"] == "discovered"

    audience = patterns["High Engagement: HCP"]
    assert audience["pattern_type"] == "audience_match"
    assert audience["avg_performance_lift"] == pytest.approx(50.0)
    assert audience["confidence_score"] == 55
    assert audience["applicable_audiences"] == ["HCP"]


@pytest.mark.asyncio
async def test_redetection_upserts_by_name(client: AsyncClient):
    brand_id = await create_brand(client)
    await _ingest(client, brand_id)

    await client.post(f"/api/brands/{brand_id}/patterns/detect", headers=AUTH_HEADERS)
    await client.post(f"/api/brands/{brand_id}/patterns/detect", headers=AUTH_HEADERS)

    resp = await client.get(f"/api/brands/{brand_id}/patterns", headers=AUTH_HEADERS)
    assert [p["pattern_name"] for p in resp.json()] == [
        "High Engagement: HCP",
        "Empathetic Tone + Learn More CTA",
        "Simple Complexity + Empathetic Tone",
    ]


@pytest.mark.asyncio
async def test_usable_only_and_retirement(client: AsyncClient):
    brand_id = await create_brand(client)
    await _ingest(client, brand_id)
    await client.post(f"/api/brands/{brand_id}/patterns/detect", headers=AUTH_HEADERS)

    resp = await client.get(
        f"/api/brands/{brand_id}/patterns", params={"usable_only": True}, headers=AUTH_HEADERS
    )
    usable = resp.json()
    assert [p["pattern_name"] for p in usable] == ["Empathetic Tone + Learn More CTA"]

    pattern_id = usable[0]["id"]
    resp = await client.post(
        f"/api/brands/{brand_id}/patterns/{pattern_id}/retire",
        json={"reason": "Campaign ended"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["validation_status"] == "retired"
    assert resp.json()["retired_at"] is not None

    # Re-detection refreshes numbers but keeps the pattern retired
    resp = await client.post(f"/api/brands/{brand_id}/patterns/detect", headers=AUTH_HEADERS)
    statuses = {p["pattern_name"]: p["validation_status"] for p in resp.json()["patterns"]}
    assert statuses["Empathetic Tone + Learn More CTA"] == "retired"

    resp = await client.get(
        f"/api/brands/{brand_id}/patterns", params={"usable_only": True}, headers=AUTH_HEADERS
    )
    assert resp.json() == []


@pytest.mark.asyncio
async def test_retire_unknown_pattern(client: AsyncClient):
    brand_id = await create_brand(client)
    resp = await client.post(f"/api/brands/{brand_id}/patterns/999/retire", json={}, headers=AUTH_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Pattern 999 not found."


@pytest.mark.asyncio
async def test_temporal_patterns(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    monday = date(2026, 2, 2)
    assert monday.weekday() == 0

    rows = (
        [(monday + timedelta(weeks=w), 0.6) for w in range(3)]
        + [(monday + timedelta(days=1, weeks=w), 0.2) for w in range(3)]
        + [(monday + timedelta(days=2, weeks=w), 0.4) for w in range(4)]
    )
    db_session.add_all(
        PerformanceAttribution(brand_id=brand_id, measurement_date=day, engagement_rate=rate)
        for day, rate in rows
    )
    await db_session.flush()

    patterns = await SuccessPatternService().detect_temporal(db_session, brand_id, today=date(2026, 3, 1))

    assert [p.pattern_name for p in patterns] == ["Monday Peak Performance", "Tuesday Low Performance"]
    peak, low = patterns
    assert peak.pattern_rules["day_of_week"] == 1
    assert peak.avg_performance_lift == pytest.approx(50.0)
    assert peak.confidence_score == 53
    assert low.avg_performance_lift == pytest.approx(-50.0)
    assert "lower engagement" in low.pattern_description


@pytest.mark.asyncio
async def test_temporal_needs_enough_samples(client: AsyncClient, db_session: AsyncSession):
    brand_id = await create_brand(client)
    db_session.add_all(
        PerformanceAttribution(brand_id=brand_id, measurement_date=date(2026, 2, 2), engagement_rate=0.5)
        for _ in range(9)
    )
    await db_session.flush()

    assert await SuccessPatternService().detect_temporal(db_session, brand_id, today=date(2026, 3, 1)) == []
