"""
Validation of promotional content against parsed Prescribing Information (PI).
"""
from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import BrandDocument, ContentValidationResult
from app.services.ai_gateway import AIGatewayClient, clamp

logger = logging.getLogger(__name__)

VALIDATION_TYPE = "pi_compliance"

_SYSTEM_PROMPT = "You are a pharmaceutical compliance validation expert. Always respond with valid JSON only."

_VALIDATION_PROMPT = """\
You are a pharmaceutical regulatory compliance expert. Your task is to validate marketing content against Prescribing Information (PI) documents.

CONTENT TO VALIDATE:
{content}

PRESCRIBING INFORMATION DATA:
{pi_context}

VALIDATION REQUIREMENTS:
1. Check all clinical claims against PI data
2. Verify efficacy data matches PI exactly
3. Ensure safety information is complete and accurate
4. Validate that indications are correctly stated
5. Check for any contraindications or warnings mentioned
6. Verify dosage information if present
7. Ensure no off-label claims or unapproved uses

For each issue found, provide:
- type: claim_unsupported | data_mismatch | missing_context | inaccurate_claim | contraindication
- severity: critical | high | medium | low
- location: where in content the issue appears
- claim: the specific claim being made
- issue: what's wrong with it
- pi_reference: relevant section from PI (if applicable)
- suggestion: how to fix it

Also identify claims that ARE properly supported by the PI.

Return your analysis in this JSON format (no markdown, just raw JSON):
{{
  "overall_compliance": "compliant" | "warning" | "violation",
  "issues": [...],
  "validated_claims": [...],
  "compliance_score": 0-100,
  "summary": "brief overall assessment"
}}\
"""

VALID_COMPLIANCE = frozenset({"compliant", "warning", "violation"})


def _missing_context_result(severity: str, claim: str, issue: str, suggestion: str, score: int, summary: str):
    return {
        "overall_compliance": "warning",
        "issues": [
            {
                "type": "missing_context",
                "severity": severity,
                "location": "general",
                "claim": claim,
                "issue": issue,
                "suggestion": suggestion,
            }
        ],
        "validated_claims": [],
        "compliance_score": score,
        "summary": summary,
    }


NO_PI_LINKED_RESULT = _missing_context_result(
    "medium",
    "No PI documents linked",
    "Cannot validate claims without linked Prescribing Information",
    "Link relevant PI documents to enable automated validation",
    50,
    "No PI documents linked for validation",
)

PI_NOT_READY_RESULT = _missing_context_result(
    "high",
    "Linked PI documents not available",
    "PI documents are still being parsed or failed to parse",
    "Wait for PI parsing to complete or re-upload documents",
    30,
    "PI documents are not ready for validation",
)


def _normalize_result(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Accept snake_case or camelCase keys and coerce the shape."""
    compliance = str(raw.get("overall_compliance", raw.get("overallCompliance", "warning"))).lower()
    if compliance not in VALID_COMPLIANCE:
        compliance = "warning"
    issues = raw.get("issues") or []
    validated = raw.get("validated_claims", raw.get("validatedClaims")) or []
    score = raw.get("compliance_score", raw.get("complianceScore", 0))
    return {
        "overall_compliance": compliance,
        "issues": [i for i in issues if isinstance(i, dict)],
        "validated_claims": validated if isinstance(validated, list) else [],
        "compliance_score": round(clamp(score, 0, 100)),
        "summary": str(raw.get("summary", "")),
    }


class PIValidationService:
    """Asks the AI gateway to check content against completed PI documents."""

    VALIDATION_PROMPT = _VALIDATION_PROMPT

    def __init__(self, ai_client: AIGatewayClient) -> None:
        self.ai = ai_client

    async def validate(
        self,
        db: AsyncSession,
        content: str,
        linked_pi_ids: List[int],
        pi_documents: List[BrandDocument],
        asset_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate *content*. *pi_documents* are the linked documents whose parsing completed.

        Raises:
            ValueError: the model reply could not be parsed as a validation result.
            AIGatewayError: the gateway call failed.
        """
        if not linked_pi_ids:
            return copy.deepcopy(NO_PI_LINKED_RESULT)
        if not pi_documents:
            return copy.deepcopy(PI_NOT_READY_RESULT)

        logger.info("Validating content against %d PI documents asset=%s", len(pi_documents), asset_id)
        pi_context = [
            {"drug_name": d.drug_name, "version": d.version, "data": d.parsed_data}
            for d in pi_documents
        ]
        prompt = self.VALIDATION_PROMPT.format(
            content=content,
            pi_context=json.dumps(pi_context, indent=2, default=str),
        )

        ok, raw = await self.ai.chat_json(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
        )
        if not ok or not isinstance(raw, dict):
            raise ValueError("Failed to parse validation results")

        result = _normalize_result(raw)

        db.add(
            ContentValidationResult(
                asset_id=asset_id,
                validation_type=VALIDATION_TYPE,
                validation_data={
                    "pi_documents": [
                        {"id": d.id, "drug_name": d.drug_name, "version": d.version} for d in pi_documents
                    ],
                    "result": result,
                    "content_snapshot": content[:500],
                    "validated_at": datetime.now(timezone.utc).isoformat(),
                },
                overall_status=result["overall_compliance"],
                compliance_score=result["compliance_score"],
                issues_count=len(result["issues"]),
            )
        )
        await db.flush()

        logger.info(
            "PI validation complete: compliance=%s score=%s issues=%d",
            result["overall_compliance"], result["compliance_score"], len(result["issues"]),
        )
        return result
