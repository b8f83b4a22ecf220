"""
Success pattern endpoints (mounted under /api/brands/{brand_id}).

POST /performance                   — ingest element performance + attribution rows
POST /patterns/detect               — run detection and upsert the results
GET  /patterns                      — list patterns (usable_only → validated/discovered, conf >= 60)
POST /patterns/{pattern_id}/retire  — retire a pattern
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import (
    Brand,
    ContentElementPerformance,
    PerformanceAttribution,
    SuccessPattern,
)
from app.models.schemas import (
    PatternDetectionResponse,
    PatternRetireRequest,
    PerformanceIngestRequest,
    PerformanceIngestResponse,
    SuccessPatternResponse,
)
from app.services.success_patterns import SuccessPatternService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/performance", response_model=PerformanceIngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_performance(
    body: PerformanceIngestRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> PerformanceIngestResponse:
    """Store performance rows produced by an external analytics sync."""
    db.add_all(ContentElementPerformance(brand_id=brand.id, **e.model_dump()) for e in body.elements)
    db.add_all(PerformanceAttribution(brand_id=brand.id, **a.model_dump()) for a in body.attributions)
    await db.flush()

    logger.info(
        "Ingested %d element rows and %d attribution rows for brand=%d",
        len(body.elements), len(body.attributions), brand.id,
    )
    return PerformanceIngestResponse(
        elements_stored=len(body.elements),
        attributions_stored=len(body.attributions),
    )


@router.post("/patterns/detect", response_model=PatternDetectionResponse)
async def detect_patterns(
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> PatternDetectionResponse:
    result = await SuccessPatternService().run_detection(db, brand.id)
    return PatternDetectionResponse(
        detected=result["detected"],
        element_combination=result["element_combination"],
        audience_match=result["audience_match"],
        temporal=result["temporal"],
        patterns=[SuccessPatternResponse.model_validate(p) for p in result["patterns"]],
    )


@router.get("/patterns", response_model=List[SuccessPatternResponse])
async def list_patterns(
    usable_only: bool = False,
    limit: int = 20,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[SuccessPatternResponse]:
    if usable_only:
        patterns = await SuccessPatternService().get_validated_patterns(db, brand.id, limit=limit)
    else:
        result = await db.execute(
            select(SuccessPattern)
            .where(SuccessPattern.brand_id == brand.id)
            .order_by(SuccessPattern.avg_performance_lift.desc(), SuccessPattern.id)
            .limit(limit)
        )
        patterns = result.scalars().all()
    return [SuccessPatternResponse.model_validate(p) for p in patterns]


@router.post("/patterns/{pattern_id}/retire", response_model=SuccessPatternResponse)
async def retire_pattern(
    pattern_id: int,
    body: PatternRetireRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> SuccessPatternResponse:
    result = await db.execute(
        select(SuccessPattern).where(SuccessPattern.id == pattern_id, SuccessPattern.brand_id == brand.id)
    )
    pattern = result.scalar_one_or_none()
    if pattern is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Pattern {pattern_id} not found.")

    pattern = await SuccessPatternService().retire_pattern(db, pattern, body.reason)
    return SuccessPatternResponse.model_validate(pattern)
