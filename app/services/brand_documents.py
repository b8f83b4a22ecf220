"""
AI structuring of uploaded brand documents.

A document is uploaded and text-extracted first (status ``pending``), then
processed here: the extracted text is sent to the AI gateway with a
category-specific prompt and the returned sections are stored in
``parsed_data``. Clinical documents also seed the brand claim library.

Public API
----------
BrandDocumentService.process(db, doc)    -> ProcessResult
BrandDocumentService.reprocess(db, doc)  -> ProcessResult
allocate_claim_ids(db, brand_id, count)  -> List[str]
"""
from __future__ import annotations

import dataclasses
import logging
import os
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import (
    BrandDocument,
    Claim,
    DocumentCategory,
    ParsingStatus,
    ReviewStatus,
)
from app.services.ai_gateway import AIGatewayClient, AIGatewayError, parse_json_robust
from app.services.document_parser import DocumentParser

logger = logging.getLogger(__name__)

MIN_EXTRACTED_CHARS = 100
MIN_CLAIM_CHARS = 10
TRUNCATION_MARKER = "\n\n[Document truncated due to length]"

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_BASE_PROMPT = """\
You are a pharmaceutical document parser.
Extract ALL text content from this complete document."""

_CLINICAL_SECTIONS = """

Extract these sections with COMPLETE content and use THESE EXACT JSON keys:
- "indications": Indications and Usage section
- "mechanism_of_action": Mechanism of Action
- "clinical_pharmacology": Clinical Pharmacology
- "clinical_trials": Clinical Studies/Trials (Include ALL study names, endpoints, sample sizes, results, p-values)
- "efficacy_data": Efficacy outcomes and endpoints from trials
- "safety_profile": Overall safety summary
- "adverse_events": Adverse Reactions/Events
- "dosing": Dosage and Administration
- "administration": Route and method of administration
- "contraindications": Contraindications
- "warnings": Warnings and Precautions
- "drug_interactions": Drug Interactions
- "patient_selection": Use in Specific Populations
- "references": References (Extract EVERY citation with authors, journals, years)

CRITICAL: Use these EXACT key names in your JSON response.
Map the document sections to these standardized keys. Extract EVERYTHING - this is the complete document."""

_MARKETING_SECTIONS = """

Extract these marketing elements:
- "key_messages": Main marketing messages and value propositions
- "value_propositions": Product benefits and differentiators
- "target_audiences": Intended audience segments
- "campaign_themes": Thematic elements and creative concepts
- "calls_to_action": CTAs and next steps
- "brand_positioning": How the product is positioned
- "competitive_advantages": Points of differentiation
- "messaging_framework": Core messaging strategy

Extract all content and structure as JSON."""

_COMPETITIVE_SECTIONS = """

Extract competitive intelligence:
- "competitor_products": Competing products and brands
- "market_positioning": Market position analysis
- "pricing_information": Pricing data and strategies
- "strengths": Competitor strengths
- "weaknesses": Competitor weaknesses
- "differentiation_points": Key differentiators
- "market_share": Market share data
- "strategic_insights": Strategic analysis

Extract all information and return as JSON."""

_REGULATORY_SECTIONS = """

Extract regulatory information:
- "regulatory_status": Approval status and classification
- "approval_dates": Key regulatory dates
- "indications": Approved indications
- "restrictions": Regulatory restrictions
- "required_disclaimers": Mandatory disclaimer text
- "submission_details": Submission information
- "compliance_requirements": Compliance obligations

Extract all regulatory data and return as JSON."""

_BRAND_GUIDELINES_SECTIONS = """

Extract brand guidelines:
- "brand_voice": Brand voice and tone guidelines
- "visual_identity": Visual design standards
- "messaging_guidelines": Messaging rules and frameworks
- "logo_usage": Logo usage rules
- "color_palette": Brand colors
- "typography": Font guidelines
- "imagery_style": Image style guidelines

Extract all brand standards and return as JSON."""

_DEFAULT_SECTIONS = """

Extract all relevant content, key sections, and important statements.
Organize into logical sections and return as JSON."""

CATEGORY_SECTIONS: Dict[DocumentCategory, str] = {
    DocumentCategory.CLINICAL: _CLINICAL_SECTIONS,
    DocumentCategory.SAFETY_INFORMATION: _CLINICAL_SECTIONS,
    DocumentCategory.PRESCRIBING_INFORMATION: _CLINICAL_SECTIONS,
    DocumentCategory.MARKETING: _MARKETING_SECTIONS,
    DocumentCategory.COMPETITIVE_INTELLIGENCE: _COMPETITIVE_SECTIONS,
    DocumentCategory.REGULATORY: _REGULATORY_SECTIONS,
    DocumentCategory.BRAND_GUIDELINES: _BRAND_GUIDELINES_SECTIONS,
}

# Categories whose structured sections seed the claim library
CLAIM_SOURCE_CATEGORIES = frozenset({
    DocumentCategory.CLINICAL,
    DocumentCategory.SAFETY_INFORMATION,
    DocumentCategory.PRESCRIBING_INFORMATION,
})

# parsed_data key -> claim_type
CLAIM_SECTIONS: Dict[str, str] = {
    "efficacy_data": "efficacy",
    "clinical_trials": "clinical",
    "indications": "indication",
    "safety_profile": "safety",
}


def get_parsing_prompt(category: DocumentCategory) -> str:
    """Full structuring prompt for a document category."""
    return _BASE_PROMPT + CATEGORY_SECTIONS.get(category, _DEFAULT_SECTIONS)


def prepare_text(text: str, max_chars: Optional[int] = None) -> str:
    """Cut *text* to the structuring limit, marking the cut."""
    limit = max_chars or settings.MAX_STRUCTURING_CHARS
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def _ai_failure_message(exc: AIGatewayError) -> str:
    if exc.status_code == 429:
        return "Rate limit exceeded. Please try again in a few moments."
    if exc.status_code == 402:
        return "AI credits exhausted. Please add credits to your AI workspace."
    if exc.status_code == 503:
        return exc.message
    return f"AI structuring failed: {exc.message}"


def _claim_texts(value: Any) -> List[str]:
    """Flatten a parsed section into candidate claim sentences."""
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, str):
                items.append(item)
            elif isinstance(item, dict):
                items.append("; ".join(str(v) for v in item.values() if v not in (None, "", [])))
    else:
        items = []
    return [t.strip() for t in items if t and len(t.strip()) >= MIN_CLAIM_CHARS]


async def allocate_claim_ids(db: AsyncSession, brand_id: int, count: int = 1) -> List[str]:
    """Next *count* sequential ``CML-NNNN`` display IDs for a brand."""
    result = await db.execute(select(Claim.claim_id_display).where(Claim.brand_id == brand_id))
    highest = 0
    for display_id in result.scalars().all():
        m = re.match(r"CML-(\d+)$", display_id or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return [f"CML-{n:04d}" for n in range(highest + 1, highest + 1 + count)]


@dataclasses.dataclass
class ProcessResult:
    """Outcome of structuring one document."""

    success: bool
    document_id: int
    parsing_status: ParsingStatus
    sections_extracted: int = 0
    total_content_length: int = 0
    processing_time_seconds: int = 0
    claims_created: int = 0
    error: Optional[str] = None

    @property
    def message(self) -> str:
        return "Brand document parsed successfully" if self.success else "Brand document parsing failed"


class DocumentProcessingError(Exception):
    """A processing step failed; the message is stored on the document."""


class BrandDocumentService:
    """Structures brand documents with the AI gateway."""

    def __init__(self, ai_client: AIGatewayClient, parser: Optional[DocumentParser] = None) -> None:
        self.ai = ai_client
        self.parser = parser or DocumentParser()

    async def _set_progress(self, db: AsyncSession, doc: BrandDocument, percentage: int, stage: str) -> None:
        doc.parsing_progress = percentage
        await db.flush()
        logger.info("Document id=%d progress: %s - %d%%", doc.id, stage, percentage)

    async def process(self, db: AsyncSession, doc: BrandDocument) -> ProcessResult:
        """
        Run AI structuring on *doc*. Never raises for processing failures:
        the document is marked ``failed`` and the error is returned.
        """
        started = time.monotonic()
        doc.parsing_status = ParsingStatus.PROCESSING
        doc.error_message = None
        await self._set_progress(db, doc, 5, "Initializing")

        try:
            if os.path.exists(doc.file_path):
                doc.file_size_bytes = os.path.getsize(doc.file_path)

            text = doc.content_text or ""
            if len(text) < MIN_EXTRACTED_CHARS:
                raise DocumentProcessingError(
                    "Insufficient text extracted. Document may be image-based or corrupted."
                )

            await self._set_progress(db, doc, 80, "AI is structuring content")
            parsed = await self._structure(doc.document_category, text)

            total_length = sum(len(v) for v in parsed.values() if isinstance(v, str))
            elapsed = int(time.monotonic() - started)
            doc.parsed_data = parsed
            doc.extraction_metadata = {
                "sections_extracted": len(parsed),
                "total_content_length": total_length,
                "processing_time_seconds": elapsed,
                "extraction_date": datetime.now(timezone.utc).isoformat(),
                "truncated": len(text) > settings.MAX_STRUCTURING_CHARS,
            }
            await self._set_progress(db, doc, 90, "Saving results")

            claims_created = 0
            if doc.document_category in CLAIM_SOURCE_CATEGORIES:
                claims_created = await self.extract_claims(db, doc)

            doc.parsing_status = ParsingStatus.COMPLETED
            await self._set_progress(db, doc, 100, "Complete")

            logger.info(
                "Parsed brand document id=%d sections=%d claims=%d in %ds",
                doc.id, len(parsed), claims_created, elapsed,
            )
            return ProcessResult(
                success=True,
                document_id=doc.id,
                parsing_status=doc.parsing_status,
                sections_extracted=sum(1 for v in parsed.values() if v),
                total_content_length=total_length,
                processing_time_seconds=int(time.monotonic() - started),
                claims_created=claims_created,
            )

        except (DocumentProcessingError, AIGatewayError) as exc:
            message = _ai_failure_message(exc) if isinstance(exc, AIGatewayError) else str(exc)
            return await self._fail(db, doc, message)
        except Exception as exc:
            logger.exception("Unexpected error processing document id=%d", doc.id)
            return await self._fail(db, doc, str(exc) or exc.__class__.__name__)

    async def reprocess(self, db: AsyncSession, doc: BrandDocument) -> ProcessResult:
        """Re-extract text from the stored file, then process again."""
        doc.parsing_status = ParsingStatus.PENDING
        doc.error_message = None
        doc.parsing_progress = 0
        try:
            parsed_doc = await self.parser.parse_document(doc.file_path, doc.document_type)
        except (ValueError, RuntimeError) as exc:
            return await self._fail(db, doc, f"Cannot re-read document: {exc}")

        doc.content_text = parsed_doc.full_text
        doc.page_count = parsed_doc.page_count
        await db.flush()
        return await self.process(db, doc)

    async def _fail(self, db: AsyncSession, doc: BrandDocument, message: str) -> ProcessResult:
        logger.error("Parsing failed for document id=%d: %s", doc.id, message)
        doc.parsing_status = ParsingStatus.FAILED
        doc.error_message = message
        await db.flush()
        return ProcessResult(
            success=False,
            document_id=doc.id,
            parsing_status=doc.parsing_status,
            error=message,
        )

    async def _structure(self, category: DocumentCategory, text: str) -> Dict[str, Any]:
        prompt = get_parsing_prompt(category)
        content = await self.ai.chat_completion(
            [
                {
                    "role": "user",
                    "content": prompt
                    + "\n\nExtract and structure the following pharmaceutical document text:\n\n"
                    + prepare_text(text),
                }
            ],
            response_format={"type": "json_object"},
        )
        if not content:
            raise DocumentProcessingError("No content returned from AI")

        ok, parsed = parse_json_robust(content)
        if not ok or not isinstance(parsed, dict) or not parsed:
            raise DocumentProcessingError("No valid content extracted from document")
        return parsed

    async def extract_claims(self, db: AsyncSession, doc: BrandDocument) -> int:
        """
        Store each entry of the claim-bearing sections as a pending claim.

        Pending claims from an earlier run of the same document are replaced;
        reviewed claims are kept.
        """
        await db.execute(
            delete(Claim).where(
                Claim.source_document_id == doc.id,
                Claim.review_status == ReviewStatus.PENDING,
            )
        )

        candidates = []
        for section, claim_type in CLAIM_SECTIONS.items():
            for text in _claim_texts((doc.parsed_data or {}).get(section)):
                candidates.append((section, claim_type, text))
        if not candidates:
            return 0

        display_ids = await allocate_claim_ids(db, doc.brand_id, len(candidates))
        for display_id, (section, claim_type, text) in zip(display_ids, candidates):
            db.add(
                Claim(
                    brand_id=doc.brand_id,
                    source_document_id=doc.id,
                    claim_id_display=display_id,
                    claim_text=text,
                    claim_type=claim_type,
                    source_section=section,
                    review_status=ReviewStatus.PENDING,
                    confidence_score=0.7,
                )
            )
        await db.flush()
        return len(candidates)
