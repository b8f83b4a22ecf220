"""Unit tests for MLR readiness scoring and the content-hash cache."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import MLRAnalysisResult
from app.services.claims_validation import ValidationContext
from app.services.mlr_readiness import MLRReadinessService

CLEAN_CONTENT = (
    "Cardiolex helps adults living with chronic heart failure. "
    "Please see full Prescribing Information."
)
RISKY_CONTENT = "Cardiolex is superior to enalapril and guaranteed to work."
CITED_CONTENT = (
    "Cardiolex is superior to enalapril [1]. Side effects include dizziness. "
    "Important Safety Information: do not use in pregnancy. "
    "Please see full Prescribing Information."
)


def _report(content: str, **context) -> dict:
    return MLRReadinessService().build_report(content, ValidationContext(**context))


# ---------------------------------------------------------------------------
# build_report
# ---------------------------------------------------------------------------

def test_clean_content_is_ready():
    report = _report(CLEAN_CONTENT)
    assert report["mlr_readiness_score"] == 100
    assert report["submission_status"] == "ready"
    assert report["summary"]["total_issues"] == 0
    assert report["top_priorities"] == []
    assert all(c["status"] == "passed" for c in report["regulatory_analysis"]["checks"])


def test_risky_content_is_not_ready():
    report = _report(RISKY_CONTENT)

    assert report["summary"] == {
        "total_issues": 6,
        "critical_issues": 2,
        "high_issues": 1,
        "medium_issues": 0,
        "low_issues": 0,
        "blockers": 3,
    }
    assert report["mlr_readiness_score"] == 40
    assert report["submission_status"] == "not_ready"

    gaps = report["references_analysis"]["gaps"]
    assert [(g["text"], g["severity"]) for g in gaps] == [("superior", "critical")]

    statuses = {c["id"]: c["status"] for c in report["regulatory_analysis"]["checks"]}
    assert statuses == {
        "fair_balance": "failed",
        "isi": "failed",
        "pi_reference": "failed",
        "indication": "passed",
        "absolute_language": "failed",
    }
    assert [p["type"] for p in report["top_priorities"]] == ["claim", "regulatory", "regulatory"]


def test_cited_balanced_content_needs_minor_revisions():
    report = _report(CITED_CONTENT)
    refs = report["references_analysis"]
    assert refs["citations_found"] == 1
    assert refs["gaps"] == []
    assert refs["summary"]["cited_claims"] == 1
    assert report["mlr_readiness_score"] == 90
    assert report["submission_status"] == "needs_minor_revisions"


def test_brand_forbidden_term_is_critical():
    report = _report("The best therapy for your patients.", forbidden_terms=["best"])
    (claim,) = report["claims_analysis"]["claims"]
    assert claim["severity"] == "critical"
    assert claim["rule_severity"] == "error"
    assert report["submission_status"] == "not_ready"


def test_indication_must_match_label():
    context = {"fda_indication": "treatment of chronic heart failure in adults", "asset_type": "Banner"}
    off_label = _report("Indicated for hypertension.", **context)
    checks = {c["id"]: c for c in off_label["regulatory_analysis"]["checks"]}
    assert checks["indication"]["status"] == "failed"

    on_label = _report("Indicated for the treatment of chronic heart failure in adults.", **context)
    checks = {c["id"]: c for c in on_label["regulatory_analysis"]["checks"]}
    assert checks["indication"]["status"] == "passed"


@pytest.mark.parametrize(
    "score, critical, high, medium, expected",
    [
        (100, 1, 0, 0, "not_ready"),
        (90, 0, 4, 0, "needs_major_revisions"),
        (55, 0, 0, 0, "needs_major_revisions"),
        (90, 0, 1, 0, "needs_minor_revisions"),
        (75, 0, 0, 0, "needs_minor_revisions"),
        (85, 0, 0, 6, "needs_minor_revisions"),
        (85, 0, 0, 3, "ready"),
    ],
)
def test_submission_status(score, critical, high, medium, expected):
    assert MLRReadinessService.submission_status(score, critical, high, medium) == expected


# ---------------------------------------------------------------------------
# analyze (cached)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_analyze_caches_by_content_hash(db_session: AsyncSession):
    service = MLRReadinessService()

    first = await service.analyze(db_session, RISKY_CONTENT, ValidationContext(), content_asset_id="asset-1")
    second = await service.analyze(db_session, RISKY_CONTENT, ValidationContext(), content_asset_id="asset-1")

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["mlr_readiness_score"] == first["mlr_readiness_score"]

    count = await db_session.execute(select(func.count()).select_from(MLRAnalysisResult))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_analyze_ignores_expired_cache(db_session: AsyncSession):
    service = MLRReadinessService()
    await service.analyze(db_session, CLEAN_CONTENT, ValidationContext())

    row = (await db_session.execute(select(MLRAnalysisResult))).scalar_one()
    row.created_at = datetime.now(timezone.utc) - timedelta(hours=1)
    await db_session.flush()

    again = await service.analyze(db_session, CLEAN_CONTENT, ValidationContext())
    assert again["cached"] is False

    count = await db_session.execute(select(func.count()).select_from(MLRAnalysisResult))
    assert count.scalar_one() == 2


@pytest.mark.asyncio
async def test_analyze_cache_is_scoped_to_brand_and_context(db_session: AsyncSession):
    service = MLRReadinessService()
    us_email = ValidationContext(region="US", asset_type="Email")

    first = await service.analyze(db_session, RISKY_CONTENT, us_email, brand_id=None)
    eu_banner = await service.analyze(db_session, RISKY_CONTENT, ValidationContext(region="EU", asset_type="Banner"))
    other_terms = await service.analyze(
        db_session, RISKY_CONTENT, ValidationContext(forbidden_terms=["guaranteed"])
    )
    repeat = await service.analyze(db_session, RISKY_CONTENT, ValidationContext(region="US", asset_type="Email"))

    assert first["cached"] is False
    assert eu_banner["cached"] is False
    assert other_terms["cached"] is False
    assert repeat["cached"] is True

    count = await db_session.execute(select(func.count()).select_from(MLRAnalysisResult))
    assert count.scalar_one() == 3


def test_cache_key_depends_on_brand_and_context():
    ctx = ValidationContext()
    key = MLRReadinessService.cache_key(RISKY_CONTENT, ctx)

    assert key == MLRReadinessService.cache_key(RISKY_CONTENT, ValidationContext())
    assert key != MLRReadinessService.cache_key(RISKY_CONTENT, ctx, brand_id=1)
    assert key != MLRReadinessService.cache_key(RISKY_CONTENT, ValidationContext(fda_indication="heart failure"))
    assert key != MLRReadinessService.cache_key(CLEAN_CONTENT, ctx)
