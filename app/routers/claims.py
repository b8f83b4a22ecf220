"""
Claim library, content modules and claim validation.

Mounted under /api/brands/{brand_id}:

GET    /claims                 — list claims (filter by claim_type / review_status)
POST   /claims                 — add a claim (display ID allocated)
PATCH  /claims/{claim_id}      — update text / review status
DELETE /claims/{claim_id}      — remove a claim
POST   /claims/validate        — detect promotional claims in content (full | realtime)
GET    /modules                — list content modules
POST   /modules                — create a module
PATCH  /modules/{module_id}    — update (mlr_approved stamps mlr_approved_at)
DELETE /modules/{module_id}    — remove a module
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import Brand, BrandDocument, Claim, ContentModule, ReviewStatus
from app.models.schemas import (
    ClaimCreateRequest,
    ClaimResponse,
    ClaimUpdateRequest,
    ClaimValidationRequest,
    ClaimValidationResponse,
    ContentModuleCreateRequest,
    ContentModuleResponse,
    ContentModuleUpdateRequest,
)
from app.services.brand_documents import allocate_claim_ids
from app.services.claims_validation import ClaimsValidationService, ValidationContext

logger = logging.getLogger(__name__)

router = APIRouter()


# ═══════════════════════════════════════════════════════════════════════════════
# CLAIMS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/claims", response_model=List[ClaimResponse])
async def list_claims(
    claim_type: Optional[str] = None,
    review_status: Optional[ReviewStatus] = None,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[ClaimResponse]:
    query = select(Claim).where(Claim.brand_id == brand.id)
    if claim_type:
        query = query.where(Claim.claim_type == claim_type)
    if review_status is not None:
        query = query.where(Claim.review_status == review_status)

    result = await db.execute(query.order_by(Claim.claim_id_display))
    return [ClaimResponse.model_validate(c) for c in result.scalars().all()]


@router.post("/claims", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def create_claim(
    body: ClaimCreateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ClaimResponse:
    """Add a claim to the library. New claims start in ``pending`` review."""
    if body.source_document_id is not None:
        doc_result = await db.execute(
            select(BrandDocument.id).where(
                BrandDocument.id == body.source_document_id,
                BrandDocument.brand_id == brand.id,
            )
        )
        if doc_result.scalar_one_or_none() is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Document {body.source_document_id} not found.",
            )

    (display_id,) = await allocate_claim_ids(db, brand.id, 1)
    claim = Claim(
        brand_id=brand.id,
        claim_id_display=display_id,
        review_status=ReviewStatus.PENDING,
        **body.model_dump(),
    )
    db.add(claim)
    await db.flush()

    logger.info("Created claim %s for brand=%d", display_id, brand.id)
    return ClaimResponse.model_validate(claim)


@router.patch("/claims/{claim_id}", response_model=ClaimResponse)
async def update_claim(
    claim_id: int,
    body: ClaimUpdateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ClaimResponse:
    claim = await _get_claim(db, brand, claim_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(claim, field, value)
    await db.flush()
    await db.refresh(claim)
    return ClaimResponse.model_validate(claim)


@router.delete("/claims/{claim_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_claim(
    claim_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    claim = await _get_claim(db, brand, claim_id)
    await db.delete(claim)
    await db.flush()
    logger.info("Deleted claim %s for brand=%d", claim.claim_id_display, brand.id)


@router.post("/claims/validate", response_model=ClaimValidationResponse)
async def validate_claims(
    body: ClaimValidationRequest,
    brand: Brand = Depends(get_authorized_brand),
) -> ClaimValidationResponse:
    """
    Scan content for promotional claims using the brand's guideline terms.

    ``realtime`` mode adds the editor summary and highlight ranges.
    """
    context = ValidationContext.for_brand(
        brand,
        asset_type=body.asset_type,
        region=body.region,
        target_audience=body.target_audience,
    )
    service = ClaimsValidationService()

    if body.mode == "realtime":
        result = service.realtime_validation(body.content, context)
        return ClaimValidationResponse(
            claims=[c.to_dict() for c in result["claims"]],
            summary=result["summary"],
            highlights=result["highlights"],
        )

    claims = service.validate_claims(body.content, context)
    return ClaimValidationResponse(claims=[c.to_dict() for c in claims])


# ═══════════════════════════════════════════════════════════════════════════════
# CONTENT MODULES
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/modules", response_model=List[ContentModuleResponse])
async def list_modules(
    module_type: Optional[str] = None,
    mlr_approved: Optional[bool] = None,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[ContentModuleResponse]:
    query = select(ContentModule).where(ContentModule.brand_id == brand.id)
    if module_type:
        query = query.where(ContentModule.module_type == module_type)
    if mlr_approved is not None:
        query = query.where(ContentModule.mlr_approved == mlr_approved)

    result = await db.execute(query.order_by(ContentModule.usage_score.desc(), ContentModule.id))
    return [ContentModuleResponse.model_validate(m) for m in result.scalars().all()]


@router.post("/modules", response_model=ContentModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    body: ContentModuleCreateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ContentModuleResponse:
    module = ContentModule(brand_id=brand.id, **body.model_dump())
    db.add(module)
    await db.flush()

    logger.info("Created content module id=%d type=%s for brand=%d", module.id, module.module_type, brand.id)
    return ContentModuleResponse.model_validate(module)


@router.patch("/modules/{module_id}", response_model=ContentModuleResponse)
async def update_module(
    module_id: int,
    body: ContentModuleUpdateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> ContentModuleResponse:
    module = await _get_module(db, brand, module_id)
    updates = body.model_dump(exclude_unset=True)

    if "mlr_approved" in updates:
        approved = bool(updates["mlr_approved"])
        if approved and not module.mlr_approved:
            module.mlr_approved_at = datetime.now(timezone.utc)
        elif not approved:
            module.mlr_approved_at = None

    for field, value in updates.items():
        setattr(module, field, value)
    await db.flush()
    await db.refresh(module)
    return ContentModuleResponse.model_validate(module)


@router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_module(
    module_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    module = await _get_module(db, brand, module_id)
    await db.delete(module)
    await db.flush()


# ─── Helpers ──────────────────────────────────────────────────────────────────

async def _get_claim(db: AsyncSession, brand: Brand, claim_id: int) -> Claim:
    result = await db.execute(select(Claim).where(Claim.id == claim_id, Claim.brand_id == brand.id))
    claim = result.scalar_one_or_none()
    if claim is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Claim {claim_id} not found.")
    return claim


async def _get_module(db: AsyncSession, brand: Brand, module_id: int) -> ContentModule:
    result = await db.execute(
        select(ContentModule).where(ContentModule.id == module_id, ContentModule.brand_id == brand.id)
    )
    module = result.scalar_one_or_none()
    if module is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Module {module_id} not found.")
    return module
