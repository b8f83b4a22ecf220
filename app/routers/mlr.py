"""
MLR (Medical/Legal/Regulatory) pre-review endpoints.

POST /api/mlr/readiness             — local readiness analysis, cached by content hash
POST /api/mlr/validate-against-pi   — AI check of content against linked PI documents
GET  /api/mlr/results               — stored readiness analyses
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.ai import ai_error_to_http, get_ai_client
from app.dependencies.auth import get_authorized_brand, get_current_user_id
from app.models.database_models import (
    Brand,
    BrandDocument,
    MLRAnalysisResult,
    ParsingStatus,
)
from app.models.schemas import MLRAnalysisResultResponse, MLRReadinessRequest, PIValidationRequest
from app.services.ai_gateway import AIGatewayClient, AIGatewayError
from app.services.claims_validation import ValidationContext
from app.services.mlr_readiness import ERROR_RESULT_SUMMARY, MLRReadinessService
from app.services.pi_validation import PIValidationService

logger = logging.getLogger(__name__)

router = APIRouter()


async def build_validation_context(
    db: AsyncSession,
    user_id: str,
    brand_id: Optional[int],
    asset_type: str,
    region: str,
) -> ValidationContext:
    """Context for *brand_id* when given (ownership enforced), else a brand-less one."""
    if brand_id is None:
        return ValidationContext(asset_type=asset_type, region=region)
    brand = await get_authorized_brand(brand_id=brand_id, user_id=user_id, db=db)
    return ValidationContext.for_brand(brand, asset_type=asset_type, region=region)


@router.post("/readiness")
async def mlr_readiness(
    body: MLRReadinessRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Score content for MLR submission readiness.

    Runs claims, references and regulatory analyses locally; identical content
    within the cache TTL returns the stored report with ``cached: true``.
    """
    context = await build_validation_context(db, user_id, body.brand_id, body.asset_type, body.region)
    try:
        return await MLRReadinessService().analyze(
            db,
            body.content,
            context,
            content_asset_id=body.content_asset_id,
            brand_id=body.brand_id,
        )
    except Exception as exc:
        logger.exception("MLR readiness analysis failed asset=%s", body.content_asset_id)
        await db.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": str(exc),
                "mlr_readiness_score": 0,
                "submission_status": "error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "summary": dict(ERROR_RESULT_SUMMARY),
            },
        )


@router.post("/validate-against-pi")
async def validate_against_pi(
    body: PIValidationRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
):
    """
    Validate content against the user's completed PI documents.

    Unknown or foreign document IDs are ignored; if none of the linked
    documents has finished parsing a warning result is returned.
    """
    pi_documents: List[BrandDocument] = []
    if body.linked_pi_ids:
        query = (
            select(BrandDocument)
            .join(Brand, Brand.id == BrandDocument.brand_id)
            .where(
                BrandDocument.id.in_(body.linked_pi_ids),
                Brand.user_id == user_id,
                BrandDocument.parsing_status == ParsingStatus.COMPLETED,
            )
        )
        if body.brand_id is not None:
            query = query.where(BrandDocument.brand_id == body.brand_id)
        result = await db.execute(query.order_by(BrandDocument.id))
        pi_documents = list(result.scalars().all())

    try:
        return await PIValidationService(ai_client).validate(
            db, body.content, body.linked_pi_ids, pi_documents, asset_id=body.asset_id
        )
    except AIGatewayError as exc:
        logger.error("PI validation gateway error: %s", exc.message)
        raise ai_error_to_http(exc)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )


@router.get("/results", response_model=List[MLRAnalysisResultResponse])
async def list_results(
    content_asset_id: Optional[str] = None,
    limit: int = 50,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MLRAnalysisResultResponse]:
    """
    Stored analyses, newest first. Brand-scoped rows are limited to the
    caller's brands; rows without a brand are visible by asset ID.
    """
    owned = select(Brand.id).where(Brand.user_id == user_id)
    query = select(MLRAnalysisResult).where(
        (MLRAnalysisResult.brand_id.is_(None)) | (MLRAnalysisResult.brand_id.in_(owned))
    )
    if content_asset_id:
        query = query.where(MLRAnalysisResult.content_asset_id == content_asset_id)

    result = await db.execute(
        query.order_by(MLRAnalysisResult.created_at.desc(), MLRAnalysisResult.id.desc()).limit(limit)
    )
    return [MLRAnalysisResultResponse.model_validate(r) for r in result.scalars().all()]
