"""
Brand document library endpoints.

POST   /upload              — store and parse a PDF, DOCX or TXT; status starts as pending.
GET    /                    — list a brand's documents (filter by category/status).
GET    /{id}                — document detail, including structured sections.
POST   /{id}/process        — AI-structure the extracted text by category.
POST   /{id}/reprocess      — re-read the stored file, then process again.
DELETE /{id}                — delete the document and its file.
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

import aiofiles
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies.ai import get_ai_client
from app.dependencies.auth import get_authorized_brand
from app.models.database_models import Brand, BrandDocument, Claim, DocumentCategory, ParsingStatus
from app.models.schemas import (
    BrandDocumentResponse,
    BrandDocumentUploadResponse,
    DocumentProcessResponse,
)
from app.services.ai_gateway import AIGatewayClient
from app.services.brand_documents import BrandDocumentService, ProcessResult
from app.services.document_parser import DocumentParser

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=BrandDocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    file: UploadFile = File(...),
    document_category: DocumentCategory = Form(DocumentCategory.OTHER),
    document_title: Optional[str] = Form(None),
    drug_name: Optional[str] = Form(None),
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> BrandDocumentUploadResponse:
    """
    Upload a brand document and extract its text.

    - Max file size: 50 MB (configurable via MAX_FILE_SIZE)
    - File is stored with a UUID filename to avoid collisions
    - AI structuring is **not** run here; call POST /{id}/process next
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in settings.SUPPORTED_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unsupported file type '{file_ext}'. "
                f"Accepted: {', '.join(settings.SUPPORTED_FILE_TYPES)}"
            ),
        )

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{file_ext}"
    file_path = os.path.join(settings.UPLOAD_DIR, stored_name)
    file_size = 0

    try:
        # Stream to disk while enforcing the size limit
        async with aiofiles.open(file_path, "wb") as out:
            while True:
                chunk = await file.read(1024 * 1024)   # 1 MB slices
                if not chunk:
                    break
                file_size += len(chunk)
                if file_size > settings.MAX_FILE_SIZE:
                    await out.close()
                    _safe_remove(file_path)
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=(
                            f"File exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)} MB "
                            "size limit."
                        ),
                    )
                await out.write(chunk)

        logger.info("Saved %r → %s (%s bytes)", file.filename, file_path, f"{file_size:,}")

        parser = DocumentParser()
        try:
            parsed_doc = await parser.parse_document(file_path, file_ext)
        except RuntimeError as exc:
            _safe_remove(file_path)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            )

        if not parsed_doc.full_text.strip():
            _safe_remove(file_path)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Document contains no extractable text.",
            )

        document = BrandDocument(
            brand_id=brand.id,
            document_title=document_title or parsed_doc.metadata.get("title") or Path(file.filename).stem,
            document_category=document_category,
            document_type=file_ext.lstrip("."),
            drug_name=drug_name,
            original_filename=file.filename,
            file_path=file_path,
            file_size_bytes=file_size,
            page_count=parsed_doc.page_count,
            content_text=parsed_doc.full_text,
            extraction_metadata={"parser": parsed_doc.metadata},
            parsing_status=ParsingStatus.PENDING,
            parsing_progress=0,
        )
        db.add(document)
        await db.flush()

        word_count = int(parsed_doc.metadata.get("word_count") or len(parsed_doc.full_text.split()))
        logger.info(
            "Brand document %r stored as id=%d for brand=%d (%d words)",
            file.filename, document.id, brand.id, word_count,
        )

        return BrandDocumentUploadResponse(
            id=document.id,
            document_title=document.document_title,
            document_category=document.document_category,
            document_type=document.document_type,
            parsing_status=document.parsing_status,
            page_count=document.page_count,
            word_count=word_count,
            message="Document uploaded and text extracted. Call /process to structure it.",
        )

    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Unexpected error processing %r", file.filename)
        _safe_remove(file_path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error processing document: {exc}",
        )


# ---------------------------------------------------------------------------
# List / get
# ---------------------------------------------------------------------------

@router.get("", response_model=List[BrandDocumentResponse])
async def list_documents(
    category: Optional[DocumentCategory] = None,
    parsing_status: Optional[ParsingStatus] = None,
    skip: int = 0,
    limit: int = 100,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> List[BrandDocumentResponse]:
    """List the brand's documents, newest first."""
    query = select(BrandDocument).where(BrandDocument.brand_id == brand.id)
    if category is not None:
        query = query.where(BrandDocument.document_category == category)
    if parsing_status is not None:
        query = query.where(BrandDocument.parsing_status == parsing_status)

    result = await db.execute(
        query.order_by(BrandDocument.created_at.desc(), BrandDocument.id.desc()).offset(skip).limit(limit)
    )
    return [BrandDocumentResponse.model_validate(d) for d in result.scalars().all()]


@router.get("/{document_id}", response_model=BrandDocumentResponse)
async def get_document(
    document_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> BrandDocumentResponse:
    document = await get_brand_document(db, brand, document_id)
    return BrandDocumentResponse.model_validate(document)


# ---------------------------------------------------------------------------
# AI structuring
# ---------------------------------------------------------------------------

@router.post("/{document_id}/process", response_model=DocumentProcessResponse)
async def process_document(
    document_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
):
    """
    Structure the document's text with the category-specific prompt.

    On failure the document is left in ``failed`` with ``error_message`` set
    and a 500 JSON body describes the error.
    """
    document = await get_brand_document(db, brand, document_id)
    result = await BrandDocumentService(ai_client).process(db, document)
    return _process_response(result)


@router.post("/{document_id}/reprocess", response_model=DocumentProcessResponse)
async def reprocess_document(
    document_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client),
):
    """Re-extract text from the stored file and run structuring again."""
    document = await get_brand_document(db, brand, document_id)
    result = await BrandDocumentService(ai_client).reprocess(db, document)
    return _process_response(result)


def _process_response(result: ProcessResult):
    body = DocumentProcessResponse(
        success=result.success,
        message=result.message,
        document_id=result.document_id,
        parsing_status=result.parsing_status,
        sections_extracted=result.sections_extracted,
        total_content_length=result.total_content_length,
        processing_time_seconds=result.processing_time_seconds,
        claims_created=result.claims_created,
        error=result.error,
    )
    if result.success:
        return body
    # The failed status must still be committed, so no exception is raised here
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json"),
    )


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_document(
    document_id: int,
    brand: Brand = Depends(get_authorized_brand),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a document and its file from disk. Claims sourced from it keep a null source."""
    document = await get_brand_document(db, brand, document_id)
    _safe_remove(document.file_path)

    await db.execute(
        update(Claim).where(Claim.source_document_id == document.id).values(source_document_id=None)
    )
    await db.delete(document)
    await db.flush()

    logger.info("Deleted brand document id=%d (%r)", document_id, document.document_title)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def get_brand_document(db: AsyncSession, brand: Brand, document_id: int) -> BrandDocument:
    result = await db.execute(
        select(BrandDocument).where(
            BrandDocument.id == document_id,
            BrandDocument.brand_id == brand.id,
        )
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found.",
        )
    return document


def _safe_remove(path: str) -> None:
    """Delete a file silently, logging warnings but never raising."""
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except Exception as exc:
        logger.warning("Could not remove file %r: %s", path, exc)
