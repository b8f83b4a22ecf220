"""
File exports (mounted under /api).

POST /exports/roi.xlsx                                   — ROI workbook
POST /exports/roi.pptx                                   — ROI deck
POST /exports/mlr-report.docx                            — MLR readiness report
POST /exports/project-plan.xlsx                          — localization project plan
GET  /brands/{brand_id}/exports/themes.pptx              — theme deck
GET  /brands/{brand_id}/documents/{document_id}/export.docx — structured brand document

Every response is streamed as an attachment.
"""
import io
import logging
import re

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_brand, get_current_user_id
from app.models.database_models import Brand, Theme
from app.models.schemas import MLRReadinessRequest, ProjectPlanExportRequest, ROICalculateRequest
from app.routers.documents import get_brand_document
from app.routers.localization import get_brand_project
from app.routers.mlr import build_validation_context
from app.services import exports, roi_calculator
from app.services.mlr_readiness import MLRReadinessService

logger = logging.getLogger(__name__)

router = APIRouter()


def _attachment(content: bytes, filename: str, media_type: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", value).strip("_").lower() or "export"


def _roi_result(body: ROICalculateRequest):
    try:
        return roi_calculator.calculate_roi(body.inputs, body.scenario)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.post("/exports/roi.xlsx")
async def export_roi_workbook(body: ROICalculateRequest) -> StreamingResponse:
    result = _roi_result(body)
    content = exports.build_roi_workbook(result)
    return _attachment(content, f"roi_{body.scenario}.xlsx", exports.XLSX_MEDIA_TYPE)


@router.post("/exports/roi.pptx")
async def export_roi_presentation(body: ROICalculateRequest) -> StreamingResponse:
    result = _roi_result(body)
    content = exports.build_roi_presentation(result)
    return _attachment(content, f"roi_{body.scenario}.pptx", exports.PPTX_MEDIA_TYPE)


@router.post("/exports/mlr-report.docx")
async def export_mlr_report(
    body: MLRReadinessRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    """Render a fresh readiness report; nothing is stored."""
    context = await build_validation_context(db, user_id, body.brand_id, body.asset_type, body.region)
    report = MLRReadinessService().build_report(body.content, context)
    content = exports.build_mlr_report_document(report, asset_type=body.asset_type, region=body.region)
    filename = f"mlr_report_{_slug(body.content_asset_id)}.docx" if body.content_asset_id else "mlr_report.docx"
    return _attachment(content, filename, exports.DOCX_MEDIA_TYPE)


@router.post("/exports/project-plan.xlsx")
async def export_project_plan(
    body: ProjectPlanExportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    brand = await get_authorized_brand(brand_id=body.brand_id, user_id=user_id, db=db)
    project = await get_brand_project(db, brand, body.project_id)
    content = exports.build_project_plan_workbook(project, start_date=body.start_date)
    return _attachment(content, f"{_slug(project.project_name)}_plan.xlsx", exports.XLSX_MEDIA_TYPE)


@router.get("/brands/{brand_id}/exports/themes.pptx")
async def export_themes(
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    result = await db.execute(
        select(Theme).where(Theme.brand_id == brand.id).order_by(Theme.confidence_score.desc(), Theme.id)
    )
    themes = list(result.scalars().all())
    if not themes:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Brand {brand.id} has no saved themes.",
        )
    content = exports.build_themes_presentation(brand, themes)
    return _attachment(content, f"{_slug(brand.brand_name)}_themes.pptx", exports.PPTX_MEDIA_TYPE)


@router.get("/brands/{brand_id}/documents/{document_id}/export.docx")
async def export_brand_document(
    document_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    document = await get_brand_document(db, brand, document_id)
    content = exports.build_brand_document_export(brand, document)
    logger.info("Exported brand document id=%d (%d bytes)", document.id, len(content))
    return _attachment(content, f"{_slug(document.document_title)}.docx", exports.DOCX_MEDIA_TYPE)
