"""
Localization (glocalization) endpoints.

Brand-scoped projects, mounted under /api/brands/{brand_id}/localization/projects:
    POST   /                     — create project; runs complexity + regulatory analysis
    GET    /                     — list projects (filter by status)
    GET    /{project_id}         — project detail
    PATCH  /{project_id}         — update; scope changes re-run the analysis
    POST   /{project_id}/analyze — re-run the analysis
    DELETE /{project_id}         — delete

Stand-alone analyzers, mounted under /api/localization:
    POST /complexity
    GET  /regulatory-risk
    POST /regulatory-risk
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand, get_current_user_id
from app.models.database_models import Brand, LocalizationProject, ProjectStatus
from app.models.schemas import (
    ComplexityRequest,
    LocalizationProjectCreateRequest,
    LocalizationProjectResponse,
    LocalizationProjectUpdateRequest,
    RegulatoryRiskRequest,
)
from app.services.complexity_scorer import ComplexityScorer
from app.services.regulatory_risk import RegulatoryRiskAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter()
analysis_router = APIRouter()

# Fields whose change invalidates the stored analysis
_SCOPE_FIELDS = {"source_content", "target_markets", "target_languages"}


def analyze_project(project: LocalizationProject, therapeutic_area: Optional[str] = None) -> None:
    """Score complexity and regulatory risk for *project* and store the derived plan numbers."""
    complexity = ComplexityScorer().score(
        project.source_content or "",
        target_markets=list(project.target_markets or []),
        asset_type=project.source_content_type,
        channels=list(project.channels or []),
        language_count=len(project.target_languages or []),
    ).to_dict()
    regulatory = RegulatoryRiskAnalyzer().analyze(
        project.source_content or "",
        list(project.target_markets or []),
        list(project.target_languages or []),
        asset_type=project.source_content_type,
        therapeutic_area=therapeutic_area,
    )

    project.complexity = complexity
    project.regulatory_assessment = regulatory
    project.estimated_timeline = (
        complexity["timeline_impact_days"] + regulatory["summary"]["max_timeline_impact_days"]
    )
    project.total_budget = float(regulatory["summary"]["total_estimated_cost"])

    logger.info(
        "Analyzed project %r: complexity=%d risk=%s timeline=%dd budget=%.0f",
        project.project_name,
        complexity["overall_complexity_score"],
        regulatory["summary"]["overall_risk_level"],
        project.estimated_timeline,
        project.total_budget,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("", response_model=LocalizationProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: LocalizationProjectCreateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> LocalizationProjectResponse:
    project = LocalizationProject(
        brand_id=brand.id,
        status=ProjectStatus.DRAFT,
        **body.model_dump(),
    )
    analyze_project(project, brand.therapeutic_area)
    db.add(project)
    await db.flush()

    logger.info("Created localization project id=%d for brand=%d", project.id, brand.id)
    return LocalizationProjectResponse.model_validate(project)


@router.get("", response_model=List[LocalizationProjectResponse])
async def list_projects(
    project_status: Optional[ProjectStatus] = Query(None, alias="status"),
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[LocalizationProjectResponse]:
    query = select(LocalizationProject).where(LocalizationProject.brand_id == brand.id)
    if project_status is not None:
        query = query.where(LocalizationProject.status == project_status)
    result = await db.execute(query.order_by(LocalizationProject.updated_at.desc(), LocalizationProject.id.desc()))
    return [LocalizationProjectResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{project_id}", response_model=LocalizationProjectResponse)
async def get_project(
    project_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> LocalizationProjectResponse:
    return LocalizationProjectResponse.model_validate(await get_brand_project(db, brand, project_id))


@router.patch("/{project_id}", response_model=LocalizationProjectResponse)
async def update_project(
    project_id: int,
    body: LocalizationProjectUpdateRequest,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> LocalizationProjectResponse:
    project = await get_brand_project(db, brand, project_id)
    updates = body.model_dump(exclude_unset=True)
    for field in ("target_markets", "target_languages"):
        if field in updates and not updates[field]:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field} cannot be empty.",
            )

    for field, value in updates.items():
        setattr(project, field, value)
    if _SCOPE_FIELDS & updates.keys():
        analyze_project(project, brand.therapeutic_area)

    await db.flush()
    await db.refresh(project)
    return LocalizationProjectResponse.model_validate(project)


@router.post("/{project_id}/analyze", response_model=LocalizationProjectResponse)
async def reanalyze_project(
    project_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> LocalizationProjectResponse:
    project = await get_brand_project(db, brand, project_id)
    analyze_project(project, brand.therapeutic_area)
    await db.flush()
    await db.refresh(project)
    return LocalizationProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_project(
    project_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    project = await get_brand_project(db, brand, project_id)
    await db.delete(project)
    await db.flush()
    logger.info("Deleted localization project id=%d for brand=%d", project_id, brand.id)


async def get_brand_project(db: AsyncSession, brand: Brand, project_id: int) -> LocalizationProject:
    result = await db.execute(
        select(LocalizationProject).where(
            LocalizationProject.id == project_id,
            LocalizationProject.brand_id == brand.id,
        )
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Project {project_id} not found.")
    return project


# ═══════════════════════════════════════════════════════════════════════════════
# STAND-ALONE ANALYZERS
# ═══════════════════════════════════════════════════════════════════════════════

@analysis_router.post("/complexity")
async def score_complexity(
    body: ComplexityRequest,
    user_id: str = Depends(get_current_user_id),
) -> Dict[str, Any]:
    result = ComplexityScorer().score(
        body.content,
        target_markets=body.target_markets,
        asset_type=body.asset_type,
        channels=body.channels,
        language_count=len(body.target_languages) if body.target_languages else None,
    )
    return result.to_dict()


def _regulatory_risk(
    content: Any,
    target_markets: List[str],
    target_languages: List[str],
    asset_type: str,
    therapeutic_area: str,
) -> Dict[str, Any]:
    try:
        return RegulatoryRiskAnalyzer().analyze(
            content, target_markets, target_languages, asset_type=asset_type, therapeutic_area=therapeutic_area
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@analysis_router.post("/regulatory-risk")
async def regulatory_risk(
    body: RegulatoryRiskRequest,
    user_id: str = Depends(get_current_user_id),
) -> Dict[str, Any]:
    return _regulatory_risk(
        body.content, body.target_markets, body.target_languages, body.asset_type, body.therapeutic_area
    )


@analysis_router.get("/regulatory-risk")
async def regulatory_risk_query(
    content: str = Query(..., min_length=1),
    target_markets: List[str] = Query(...),
    target_languages: List[str] = Query(...),
    asset_type: str = "email",
    therapeutic_area: str = "general",
    user_id: str = Depends(get_current_user_id),
) -> Dict[str, Any]:
    """Same as the POST form; markets and languages are repeated query params."""
    return _regulatory_risk(content, target_markets, target_languages, asset_type, therapeutic_area)
