"""
Translation memory endpoints (mounted under /api/brands/{brand_id}/translation-memory).

GET    /                     — list entries (filter by language pair)
POST   /                     — add a segment pair
POST   /search               — exact / fuzzy / semantic lookup
POST   /best-matches         — top 3 matches >= 80% per segment
POST   /{entry_id}/use       — record that an entry was reused
DELETE /{entry_id}           — remove an entry
"""
import dataclasses
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import Brand, TranslationMemoryEntry
from app.models.schemas import (
    TMBestMatchesRequest,
    TMEntryCreateRequest,
    TMEntryResponse,
    TMSearchRequest,
)
from app.services.translation_memory import TMSearchOptions, TranslationMemoryService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[TMEntryResponse])
async def list_entries(
    source_language: Optional[str] = None,
    target_language: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[TMEntryResponse]:
    query = select(TranslationMemoryEntry).where(TranslationMemoryEntry.brand_id == brand.id)
    if source_language:
        query = query.where(TranslationMemoryEntry.source_language == source_language)
    if target_language:
        query = query.where(TranslationMemoryEntry.target_language == target_language)

    result = await db.execute(
        query.order_by(TranslationMemoryEntry.usage_count.desc(), TranslationMemoryEntry.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return [TMEntryResponse.model_validate(e) for e in result.scalars().all()]


@router.post("", response_model=TMEntryResponse, status_code=status.HTTP_201_CREATED)
async def add_entry(
    body: TMEntryCreateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> TMEntryResponse:
    entry = await TranslationMemoryService().add_to_tm(
        db,
        brand.id,
        body.source_text,
        body.target_text,
        body.source_language,
        body.target_language,
        domain_context=body.domain_context,
        market=body.market,
        project_id=body.project_id,
    )
    return TMEntryResponse.model_validate(entry)


@router.post("/search")
async def search_memory(
    body: TMSearchRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Search the brand's memory; omitted options fall back to the configured TM defaults."""
    overrides = {
        field: value
        for field, value in body.model_dump(
            include={f.name for f in dataclasses.fields(TMSearchOptions)}
        ).items()
        if value is not None
    }
    return await TranslationMemoryService().search(
        db,
        brand.id,
        body.source_text,
        body.source_language,
        body.target_language,
        TMSearchOptions(**overrides),
    )


@router.post("/best-matches")
async def best_matches(
    body: TMBestMatchesRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, List[Dict[str, Any]]]:
    return await TranslationMemoryService().get_best_matches(
        db, brand.id, body.source_texts, body.source_language, body.target_language
    )


@router.post("/{entry_id}/use", response_model=TMEntryResponse)
async def record_usage(
    entry_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> TMEntryResponse:
    entry = await TranslationMemoryService().update_usage(db, brand.id, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"TM entry {entry_id} not found.")
    return TMEntryResponse.model_validate(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_entry(
    entry_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    result = await db.execute(
        select(TranslationMemoryEntry).where(
            TranslationMemoryEntry.id == entry_id,
            TranslationMemoryEntry.brand_id == brand.id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"TM entry {entry_id} not found.")
    await db.delete(entry)
    await db.flush()
