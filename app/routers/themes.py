"""
Theme library endpoints (mounted under /api/brands/{brand_id}/themes).

POST   /generate       — AI-generate 3-4 theme options from a story context
GET    /               — list saved themes
POST   /               — save a theme
GET    /{theme_id}     — theme detail
PATCH  /{theme_id}     — update (bumps version)
DELETE /{theme_id}     — delete
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.ai import ai_error_to_http, get_ai_client
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import Brand, Theme
from app.models.schemas import (
    ThemeCreateRequest,
    ThemeGenerateRequest,
    ThemeGenerateResponse,
    ThemeResponse,
    ThemeUpdateRequest,
)
from app.services.ai_gateway import AIGatewayClient, AIGatewayError
from app.services.content_workshop import ContentWorkshopService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=ThemeGenerateResponse)
async def generate_themes(
    body: ThemeGenerateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
) -> ThemeGenerateResponse:
    """
    Generate themes grounded in the brand's top claims and validated patterns.

    With ``save=true`` the generated themes are also stored in the library.
    """
    service = ContentWorkshopService(ai_client)
    try:
        themes, fallback_used = await service.generate_themes(db, brand, body.story.model_dump())
    except AIGatewayError as exc:
        logger.error("Theme generation failed for brand=%d: %s", brand.id, exc.message)
        raise ai_error_to_http(exc)

    saved_ids: List[int] = []
    if body.save:
        rows = await service.save_themes(db, brand.id, themes)
        saved_ids = [row.id for row in rows]
        logger.info("Saved %d generated themes for brand=%d", len(saved_ids), brand.id)

    return ThemeGenerateResponse(themes=themes, fallback_used=fallback_used, saved_theme_ids=saved_ids)


@router.get("", response_model=List[ThemeResponse])
async def list_themes(
    theme_status: Optional[str] = None,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[ThemeResponse]:
    query = select(Theme).where(Theme.brand_id == brand.id)
    if theme_status:
        query = query.where(Theme.status == theme_status)
    result = await db.execute(query.order_by(Theme.updated_at.desc(), Theme.id.desc()))
    return [ThemeResponse.model_validate(t) for t in result.scalars().all()]


@router.post("", response_model=ThemeResponse, status_code=status.HTTP_201_CREATED)
async def create_theme(
    body: ThemeCreateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ThemeResponse:
    theme = Theme(brand_id=brand.id, **body.model_dump())
    db.add(theme)
    await db.flush()
    logger.info("Created theme id=%d name=%r for brand=%d", theme.id, theme.name, brand.id)
    return ThemeResponse.model_validate(theme)


@router.get("/{theme_id}", response_model=ThemeResponse)
async def get_theme(
    theme_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ThemeResponse:
    return ThemeResponse.model_validate(await get_brand_theme(db, brand, theme_id))


@router.patch("/{theme_id}", response_model=ThemeResponse)
async def update_theme(
    theme_id: int,
    body: ThemeUpdateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ThemeResponse:
    theme = await get_brand_theme(db, brand, theme_id)
    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(theme, field, value)
    if updates:
        theme.version = (theme.version or 1) + 1
    await db.flush()
    await db.refresh(theme)
    return ThemeResponse.model_validate(theme)


@router.delete("/{theme_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_theme(
    theme_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    theme = await get_brand_theme(db, brand, theme_id)
    await db.delete(theme)
    await db.flush()
    logger.info("Deleted theme id=%d for brand=%d", theme_id, brand.id)


async def get_brand_theme(db: AsyncSession, brand: Brand, theme_id: int) -> Theme:
    result = await db.execute(select(Theme).where(Theme.id == theme_id, Theme.brand_id == brand.id))
    theme = result.scalar_one_or_none()
    if theme is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Theme {theme_id} not found.")
    return theme
