"""
Brand dashboard: GET /api/brands/{brand_id}/dashboard aggregates library counts.
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import (
    Brand,
    BrandDocument,
    Claim,
    ContentModule,
    LocalizationProject,
    MLRAnalysisResult,
    SuccessPattern,
    Theme,
    TranslationMemoryEntry,
    ValidationStatus,
)
from app.models.schemas import BrandDashboardResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _grouped(db: AsyncSession, column, brand_column, brand_id: int) -> Dict[str, int]:
    result = await db.execute(
        select(column, func.count().label("cnt")).where(brand_column == brand_id).group_by(column)
    )
    return {getattr(key, "value", key): cnt for key, cnt in result.all()}


async def _count(db: AsyncSession, *criteria) -> int:
    result = await db.execute(select(func.count()).where(*criteria))
    return result.scalar_one()


@router.get("", response_model=BrandDashboardResponse)
async def brand_dashboard(
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> BrandDashboardResponse:
    latest = await db.execute(
        select(MLRAnalysisResult.mlr_readiness_score)
        .where(MLRAnalysisResult.brand_id == brand.id)
        .order_by(MLRAnalysisResult.created_at.desc(), MLRAnalysisResult.id.desc())
        .limit(1)
    )

    return BrandDashboardResponse(
        brand_id=brand.id,
        brand_name=brand.brand_name,
        documents_by_status=await _grouped(db, BrandDocument.parsing_status, BrandDocument.brand_id, brand.id),
        documents_by_category=await _grouped(db, BrandDocument.document_category, BrandDocument.brand_id, brand.id),
        claims_by_review_status=await _grouped(db, Claim.review_status, Claim.brand_id, brand.id),
        modules_total=await _count(db, ContentModule.brand_id == brand.id),
        modules_approved=await _count(
            db, ContentModule.brand_id == brand.id, ContentModule.mlr_approved.is_(True)
        ),
        themes_total=await _count(db, Theme.brand_id == brand.id),
        active_patterns=await _count(
            db,
            SuccessPattern.brand_id == brand.id,
            SuccessPattern.validation_status != ValidationStatus.RETIRED,
        ),
        tm_entries=await _count(db, TranslationMemoryEntry.brand_id == brand.id),
        projects_by_status=await _grouped(db, LocalizationProject.status, LocalizationProject.brand_id, brand.id),
        latest_mlr_score=latest.scalar_one_or_none(),
    )
