"""
Content workshop endpoints (mounted under /api/brands/{brand_id}/workshop).

POST /initial-content   — audience-aware first draft with claim citations
POST /enhance-brief     — structure a free-text creative brief
POST /visual            — generate a marketing visual
POST /translate         — AI translation leveraging the brand translation memory
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.ai import ai_error_to_http, get_ai_client
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import Brand
from app.models.schemas import (
    BriefEnhanceRequest,
    ClaimResponse,
    EnhancedBrief,
    InitialContentRequest,
    InitialContentResponse,
    MarketingVisualRequest,
    MarketingVisualResponse,
    TranslationRequest,
    TranslationResponse,
)
from app.routers.themes import get_brand_theme
from app.services.ai_gateway import AIGatewayClient, AIGatewayError
from app.services.content_workshop import ContentWorkshopService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/initial-content", response_model=InitialContentResponse)
async def generate_initial_content(
    body: InitialContentRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
) -> InitialContentResponse:
    """Draft content for one asset; ``theme_id`` supplies the core message and CTA when omitted."""
    theme = await get_brand_theme(db, brand, body.theme_id) if body.theme_id is not None else None

    try:
        result = await ContentWorkshopService(ai_client).generate_initial_content(
            db,
            brand,
            asset_type=body.asset_type,
            target_audience=body.target_audience,
            objective=body.objective,
            theme=theme,
            core_message=body.core_message,
            key_benefits=body.key_benefits,
            call_to_action=body.call_to_action,
            indication=body.indication,
        )
    except AIGatewayError as exc:
        logger.error("Initial content generation failed for brand=%d: %s", brand.id, exc.message)
        raise ai_error_to_http(exc)

    return InitialContentResponse(
        content=result["content"],
        sophistication_level=result["sophistication_level"],
        citations_used=result["citations_used"],
        used_claims=[ClaimResponse.model_validate(c) for c in result["used_claims"]],
        forbidden_terms_found=result["forbidden_terms_found"],
        fallback_used=result["fallback_used"],
    )


@router.post("/enhance-brief", response_model=EnhancedBrief)
async def enhance_brief(
    body: BriefEnhanceRequest,
    brand: Brand = Depends(get_authorized_brand),
    ai_client: AIGatewayClient = Depends(get_ai_client),
) -> EnhancedBrief:
    try:
        enhanced = await ContentWorkshopService(ai_client).enhance_brief(
            brand,
            body.brief,
            asset_type=body.asset_type,
            target_audience=body.target_audience,
            channels=body.channels,
        )
    except AIGatewayError as exc:
        raise ai_error_to_http(exc)
    return EnhancedBrief(**enhanced)


@router.post("/visual", response_model=MarketingVisualResponse)
async def generate_marketing_visual(
    body: MarketingVisualRequest,
    brand: Brand = Depends(get_authorized_brand),
    ai_client: AIGatewayClient = Depends(get_ai_client),
) -> MarketingVisualResponse:
    try:
        result = await ContentWorkshopService(ai_client).generate_marketing_visual(
            body.prompt, body.frame_number
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except AIGatewayError as exc:
        logger.error("Visual generation failed for brand=%d: %s", brand.id, exc.message)
        raise ai_error_to_http(exc)
    return MarketingVisualResponse(**result)


@router.post("/translate", response_model=TranslationResponse)
async def translate(
    body: TranslationRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
) -> TranslationResponse:
    """Translate with TM context; ``save_to_tm`` stores the result as a new TM entry."""
    try:
        result = await ContentWorkshopService(ai_client).translate_with_tm(
            db,
            brand.id,
            body.source_text,
            body.source_language,
            body.target_language,
            therapeutic_area=body.therapeutic_area or brand.therapeutic_area,
            use_tm_leverage=body.use_tm_leverage,
            save_to_tm=body.save_to_tm,
            project_id=body.project_id,
        )
    except AIGatewayError as exc:
        logger.error("Translation failed for brand=%d: %s", brand.id, exc.message)
        raise ai_error_to_http(exc)
    return TranslationResponse(**result)
