"""
Pre-MLR readiness analysis.

Runs three local analyses over a piece of promotional content (claims,
references, regulatory checklist), folds them into a 0-100 readiness score
and a submission status, and caches the result per content, brand and context.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import MLRAnalysisResult
from app.services.claims_validation import ClaimsValidationService, DetectedClaim, ValidationContext
from app.utils.helpers import generate_hash

logger = logging.getLogger(__name__)

ANALYSIS_TYPE = "readiness"

# Claim types that must carry a citation
EVIDENCE_CLAIM_TYPES = frozenset({"clinical", "comparative", "statistical", "safety"})
# Uncited claims of these types block submission outright
CRITICAL_EVIDENCE_TYPES = frozenset({"comparative", "statistical"})
CITATION_LOOKAHEAD = 150

_CITATION_RE = re.compile(
    r"\[(?:\d+(?:\s*[,\-–]\s*\d+)*|REF:[^\]]+|CLAIM:[^\]]+)\]|[¹²³⁴⁵⁶⁷⁸⁹⁰]+",
    re.IGNORECASE,
)
_SAFETY_LANGUAGE_RE = re.compile(
    r"side effects?|adverse (?:events?|reactions?)|risks?\b|warnings?|contraindicat|precautions?",
    re.IGNORECASE,
)
_ISI_RE = re.compile(r"important safety information|\bISI\b", re.IGNORECASE)
_PI_REFERENCE_RE = re.compile(r"prescribing information|\bfull PI\b|package insert", re.IGNORECASE)
_ABSOLUTE_RE = re.compile(
    r"(?<!\w)(?:guarantee[sd]?|cures?|100% effective|completely safe|no side effects|risk-free|always works)(?!\w)",
    re.IGNORECASE,
)

ERROR_RESULT_SUMMARY = {
    "total_issues": 0,
    "critical_issues": 0,
    "high_issues": 0,
    "medium_issues": 0,
    "low_issues": 0,
    "blockers": 0,
}


def _mlr_severity(claim: DetectedClaim) -> str:
    if claim.brand_compliance == "violation":
        return "critical"
    return {"error": "high", "warning": "medium"}.get(claim.severity, "low")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class MLRReadinessService:
    """Scores content for MLR submission readiness."""

    def __init__(self, claims_service: Optional[ClaimsValidationService] = None) -> None:
        self.claims_service = claims_service or ClaimsValidationService()

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    def analyze_claims(self, claims: List[DetectedClaim]) -> Dict[str, Any]:
        items = [
            {
                "id": c.id,
                "text": c.text,
                "type": c.type,
                "category": c.category,
                "severity": _mlr_severity(c),
                "rule_severity": c.severity,
                "reason": c.reason,
                "suggestion": c.suggestion,
                "required_evidence": c.required_evidence,
                "start": c.start,
                "end": c.end,
            }
            for c in claims
        ]
        counts = {level: sum(1 for i in items if i["severity"] == level) for level in ("critical", "high", "medium", "low")}
        return {"claims": items, "summary": {"total": len(items), **counts}}

    def analyze_references(self, content: str, claims: List[DetectedClaim]) -> Dict[str, Any]:
        citations = _CITATION_RE.findall(content)
        gaps: List[Dict[str, Any]] = []
        needing = [c for c in claims if c.type in EVIDENCE_CLAIM_TYPES]

        for claim in needing:
            window = content[claim.start : claim.end + CITATION_LOOKAHEAD]
            if _CITATION_RE.search(window):
                continue
            gaps.append(
                {
                    "claim_id": claim.id,
                    "text": claim.text,
                    "type": claim.type,
                    "severity": "critical" if claim.type in CRITICAL_EVIDENCE_TYPES else "medium",
                    "required_evidence": claim.required_evidence,
                    "recommendation": f"Add a reference supporting this {claim.category.lower()} claim",
                }
            )

        return {
            "citations_found": len(citations),
            "gaps": gaps,
            "summary": {
                "claims_requiring_citation": len(needing),
                "cited_claims": len(needing) - len(gaps),
                "missing_citations": len(gaps),
                "critical_gaps": sum(1 for g in gaps if g["severity"] == "critical"),
            },
        }

    def analyze_regulatory(
        self, content: str, claims: List[DetectedClaim], context: ValidationContext
    ) -> Dict[str, Any]:
        promotional = bool(claims)
        has_safety_language = bool(_SAFETY_LANGUAGE_RE.search(content))
        checks: List[Dict[str, Any]] = []

        def check(check_id, requirement, ok, severity, details, recommendation, warn=False):
            status = "passed" if ok else ("warning" if warn else "failed")
            checks.append(
                {
                    "id": check_id,
                    "requirement": requirement,
                    "status": status,
                    "severity": "low" if ok else severity,
                    "details": details,
                    "recommendation": None if ok else recommendation,
                }
            )

        efficacy_claims = [c for c in claims if c.type in ("clinical", "comparative", "statistical")]
        check(
            "fair_balance",
            "Fair balance between benefit and risk information",
            not efficacy_claims or has_safety_language,
            "high",
            f"{len(efficacy_claims)} benefit claim(s); safety language {'present' if has_safety_language else 'absent'}",
            "Present risk information with prominence comparable to the efficacy claims",
        )
        check(
            "isi",
            "Important Safety Information included",
            not promotional or bool(_ISI_RE.search(content)),
            "high",
            "Promotional content must carry the Important Safety Information",
            "Add the approved Important Safety Information block",
        )
        check(
            "pi_reference",
            "Reference to full Prescribing Information",
            bool(_PI_REFERENCE_RE.search(content)),
            "medium",
            "No pointer to the full Prescribing Information was found",
            'Add "Please see full Prescribing Information" with a link or location',
            warn=not promotional,
        )

        indication_claims = [c for c in claims if c.type == "indication"]
        indication_ok = True
        if indication_claims and context.fda_indication:
            indication_ok = context.fda_indication.lower() in content.lower()
        check(
            "indication",
            "Indication statement matches approved labeling",
            indication_ok,
            "high",
            f"{len(indication_claims)} indication reference(s)",
            "Quote the FDA-approved indication verbatim",
        )

        absolute_terms = sorted({m.group(0).lower() for m in _ABSOLUTE_RE.finditer(content)})
        check(
            "absolute_language",
            "No absolute or guarantee language",
            not absolute_terms,
            "critical",
            f"Absolute terms found: {', '.join(absolute_terms)}" if absolute_terms else "None found",
            "Remove absolute claims such as guarantees or cures",
        )

        return {
            "checks": checks,
            "summary": {
                "total_checks": len(checks),
                "passed": sum(1 for c in checks if c["status"] == "passed"),
                "failed": sum(1 for c in checks if c["status"] == "failed"),
                "warnings": sum(1 for c in checks if c["status"] == "warning"),
                "critical_issues": sum(
                    1 for c in checks if c["status"] == "failed" and c["severity"] == "critical"
                ),
            },
        }

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def submission_status(score: int, critical: int, high: int, medium: int) -> str:
        if critical > 0:
            return "not_ready"
        if high > 3 or score < 60:
            return "needs_major_revisions"
        if high > 0 or medium > 5 or score < 80:
            return "needs_minor_revisions"
        return "ready"

    def build_report(self, content: str, context: ValidationContext) -> Dict[str, Any]:
        """Run all three analyses and combine them. Pure; touches no storage."""
        claims = self.claims_service.validate_claims(content, context)
        claims_analysis = self.analyze_claims(claims)
        references_analysis = self.analyze_references(content, claims)
        regulatory_analysis = self.analyze_regulatory(content, claims, context)

        cs = claims_analysis["summary"]
        critical, high, medium, low = cs["critical"], cs["high"], cs["medium"], cs["low"]
        total = cs["total"]

        rs = references_analysis["summary"]
        total += rs["missing_citations"]
        critical += rs["critical_gaps"]

        gs = regulatory_analysis["summary"]
        total += gs["failed"] + gs["warnings"]
        critical += gs["critical_issues"]

        score = 100 - critical * 25 - high * 10 - medium * 5 - low * 2
        score = max(0, min(100, score))

        priorities = [
            {
                "type": "claim",
                "severity": c["severity"],
                "issue": c["text"],
                "recommendation": c["suggestion"],
            }
            for c in claims_analysis["claims"]
            if c["severity"] in ("critical", "high")
        ][:3]
        priorities += [
            {
                "type": "regulatory",
                "severity": c["severity"],
                "issue": c["requirement"],
                "recommendation": c["recommendation"],
            }
            for c in regulatory_analysis["checks"]
            if c["status"] == "failed"
        ][:2]

        return {
            "mlr_readiness_score": score,
            "submission_status": self.submission_status(score, critical, high, medium),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "total_issues": total,
                "critical_issues": critical,
                "high_issues": high,
                "medium_issues": medium,
                "low_issues": low,
                "blockers": critical + high,
            },
            "claims_analysis": claims_analysis,
            "references_analysis": references_analysis,
            "regulatory_analysis": regulatory_analysis,
            "top_priorities": priorities[:5],
        }

    # ------------------------------------------------------------------
    # Cached entry point
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(content: str, context: ValidationContext, brand_id: Optional[int] = None) -> str:
        """SHA-256 over the content, the brand and every context field the report depends on."""
        scope = json.dumps({"brand_id": brand_id, **dataclasses.asdict(context)}, sort_keys=True)
        return generate_hash(f"{scope}\n{content}")

    async def analyze(
        self,
        db: AsyncSession,
        content: str,
        context: ValidationContext,
        content_asset_id: Optional[str] = None,
        brand_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Return a readiness report for *content*, reusing a stored one for the same
        content, brand and context if it is younger than MLR_CACHE_TTL_SECONDS.
        """
        content_hash = self.cache_key(content, context, brand_id)
        brand_clause = (
            MLRAnalysisResult.brand_id.is_(None) if brand_id is None else MLRAnalysisResult.brand_id == brand_id
        )

        result = await db.execute(
            select(MLRAnalysisResult)
            .where(
                MLRAnalysisResult.content_hash == content_hash,
                MLRAnalysisResult.analysis_type == ANALYSIS_TYPE,
                brand_clause,
            )
            .order_by(MLRAnalysisResult.created_at.desc(), MLRAnalysisResult.id.desc())
            .limit(1)
        )
        cached = result.scalar_one_or_none()
        if cached is not None:
            age = datetime.now(timezone.utc) - _as_utc(cached.created_at)
            if age < timedelta(seconds=settings.MLR_CACHE_TTL_SECONDS):
                logger.info("MLR readiness cache hit hash=%s age=%.0fs", content_hash[:12], age.total_seconds())
                return {**cached.results, "cached": True}

        report = self.build_report(content, context)
        summary = report["summary"]
        db.add(
            MLRAnalysisResult(
                content_asset_id=content_asset_id,
                brand_id=brand_id,
                content_hash=content_hash,
                analysis_type=ANALYSIS_TYPE,
                results=report,
                mlr_readiness_score=report["mlr_readiness_score"],
                critical_issues_count=summary["critical_issues"],
                warnings_count=summary["high_issues"] + summary["medium_issues"],
            )
        )
        await db.flush()
        logger.info(
            "MLR readiness score=%d status=%s asset=%s",
            report["mlr_readiness_score"], report["submission_status"], content_asset_id,
        )
        return {**report, "cached": False}
