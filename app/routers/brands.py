"""
Brand management endpoints.

Route summary
-------------
POST   /api/brands              — create brand
GET    /api/brands              — list the user's brands with library counts
GET    /api/brands/{brand_id}   — brand detail
PATCH  /api/brands/{brand_id}   — partial update
DELETE /api/brands/{brand_id}   — delete brand (cascades, removes uploaded files)
"""
import logging
import os
from typing import Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand, get_current_user_id, get_or_create_user
from app.models.database_models import Brand, BrandDocument, Claim, Theme, User
from app.models.schemas import BrandCreateRequest, BrandResponse, BrandUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _safe_remove(path: str) -> None:
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except Exception as exc:
        logger.warning("Could not remove file %r: %s", path, exc)


async def _counts(db: AsyncSession, model, brand_ids: List[int]) -> Dict[int, int]:
    if not brand_ids:
        return {}
    result = await db.execute(
        select(model.brand_id, func.count(model.id).label("cnt"))
        .where(model.brand_id.in_(brand_ids))
        .group_by(model.brand_id)
    )
    return {row.brand_id: row.cnt for row in result}


def _to_response(brand: Brand, documents: int = 0, claims: int = 0, themes: int = 0) -> BrandResponse:
    response = BrandResponse.model_validate(brand)
    response.document_count = documents
    response.claim_count = claims
    response.theme_count = themes
    return response


# ═══════════════════════════════════════════════════════════════════════════════
# BRAND CRUD
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("", response_model=BrandResponse, status_code=status.HTTP_201_CREATED)
async def create_brand(
    body: BrandCreateRequest,
    user: User = Depends(get_or_create_user),
    db: AsyncSession = Depends(get_db),
) -> BrandResponse:
    """Create a brand owned by the authenticated user."""
    brand = Brand(user_id=user.id, **body.model_dump(exclude_none=True))
    db.add(brand)
    await db.flush()

    logger.info("Created brand id=%d name=%r for user=%s", brand.id, brand.brand_name, user.id)
    return _to_response(brand)


@router.get("", response_model=List[BrandResponse])
async def list_brands(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[BrandResponse]:
    """List the user's brands, most recently updated first."""
    result = await db.execute(
        select(Brand).where(Brand.user_id == user_id).order_by(Brand.updated_at.desc(), Brand.id.desc())
    )
    brands = result.scalars().all()

    # Batch-fetch library counts
    ids = [b.id for b in brands]
    doc_counts = await _counts(db, BrandDocument, ids)
    claim_counts = await _counts(db, Claim, ids)
    theme_counts = await _counts(db, Theme, ids)

    return [
        _to_response(b, doc_counts.get(b.id, 0), claim_counts.get(b.id, 0), theme_counts.get(b.id, 0))
        for b in brands
    ]


@router.get("/{brand_id}", response_model=BrandResponse)
async def get_brand(
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> BrandResponse:
    doc_counts = await _counts(db, BrandDocument, [brand.id])
    claim_counts = await _counts(db, Claim, [brand.id])
    theme_counts = await _counts(db, Theme, [brand.id])
    return _to_response(
        brand,
        doc_counts.get(brand.id, 0),
        claim_counts.get(brand.id, 0),
        theme_counts.get(brand.id, 0),
    )


@router.patch("/{brand_id}", response_model=BrandResponse)
async def update_brand(
    body: BrandUpdateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> BrandResponse:
    """Update only the fields present in the request body."""
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(brand, field, value)
    await db.flush()
    await db.refresh(brand)

    logger.info("Updated brand id=%d", brand.id)
    return await get_brand(brand=brand, db=db)


@router.delete("/{brand_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_brand(
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a brand and all its data (documents, claims, themes, TM, projects)."""
    doc_result = await db.execute(
        select(BrandDocument.file_path).where(BrandDocument.brand_id == brand.id)
    )
    for (file_path,) in doc_result.all():
        _safe_remove(file_path)

    await db.delete(brand)
    await db.flush()
    logger.info("Deleted brand id=%d name=%r", brand.id, brand.brand_name)
