"""
Promotional claim detection for pharmaceutical content.

Scans copy for clinical, comparative, safety, statistical, indication and
superlative language, attaches the evidence each claim needs and a rewrite
suggestion, and ranks the findings by regulatory risk.

Public API
----------
ClaimsValidationService.validate_claims(content, context)    -> List[DetectedClaim]
ClaimsValidationService.realtime_validation(content, context) -> Dict
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Dict, List, Optional, Pattern

logger = logging.getLogger(__name__)

DEFAULT_FDA_INDICATION = "[Insert FDA-approved indication from prescribing information]"

SEVERITY_RANK = {"error": 3, "warning": 2, "info": 1}
COMPLIANCE_RANK = {"violation": 3, "warning": 2, "compliant": 1}


@dataclasses.dataclass(frozen=True)
class ClaimPattern:
    pattern: Pattern[str]
    type: str
    severity: str  # error, warning, info
    reason: str
    required_evidence: List[str]
    category: str


def _words(alternation: str) -> Pattern[str]:
    # Whole words / phrases only, so "best" does not fire inside "bestow"
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


CLAIM_PATTERNS: List[ClaimPattern] = [
    ClaimPattern(
        pattern=_words(
            r"clinically proven|proven efficacy|demonstrated efficacy|studies show"
            r"|clinical studies demonstrate|clinical evidence shows"
        ),
        type="clinical",
        severity="warning",
        reason="Clinical efficacy claims require Level 1 evidence with peer-reviewed citations",
        required_evidence=["RCT", "Meta-analysis", "Systematic review"],
        category="Efficacy",
    ),
    ClaimPattern(
        pattern=_words(
            r"superior|better|outperforms|more effective than|significantly better|greater efficacy than"
        ),
        type="comparative",
        severity="error",
        reason="Comparative claims require head-to-head clinical data and regulatory approval for comparative language",
        required_evidence=["Head-to-head trials", "Network meta-analysis", "Regulatory approval"],
        category="Comparative",
    ),
    ClaimPattern(
        pattern=_words(
            r"well-tolerated|minimal side effects|safe and effective|no significant adverse"
            r"|excellent safety profile|favorable tolerability"
        ),
        type="safety",
        severity="warning",
        reason="Safety claims must be balanced with complete safety information and fair balance",
        required_evidence=["Safety data", "Adverse event profile", "Fair balance statement"],
        category="Safety",
    ),
    ClaimPattern(
        pattern=re.compile(
            r"\d+%\s*(?:improvement|reduction|increase|decrease|response rate)"
            r"|statistically significant|significant improvement|substantial benefit",
            re.IGNORECASE,
        ),
        type="statistical",
        severity="warning",
        reason="Statistical claims require specific study references, confidence intervals, and p-values",
        required_evidence=["Primary endpoint data", "Statistical analysis", "Study reference"],
        category="Statistics",
    ),
    ClaimPattern(
        pattern=_words(r"first-line|second-line|indicated for|approved for|treatment of choice"),
        type="indication",
        severity="error",
        reason="Indication claims must match FDA-approved labeling exactly",
        required_evidence=["FDA-approved labeling", "Prescribing information"],
        category="Indication",
    ),
    ClaimPattern(
        pattern=re.compile(
            r"(?<!\w)(?:best|only|most effective|leading|first and only|unique|revolutionary)(?!\w)|#1",
            re.IGNORECASE,
        ),
        type="comparative",
        severity="error",
        reason="Superlative claims require substantiation or should be avoided in promotional materials",
        required_evidence=["Market data", "Regulatory approval", "Comparative studies"],
        category="Superlative",
    ),
]

_SUGGESTIONS: Dict[str, str] = {
    "clinical": 'Replace with: "In clinical studies, [product] demonstrated [specific outcome] [reference required]"',
    "comparative": 'Consider: "In Study X, [product] showed [specific results vs comparator] (p=X.XX) [reference]"',
    "safety": (
        'Add fair balance: "The most common adverse reactions (≥X%) include... '
        '[see full prescribing information]"'
    ),
    "statistical": (
        'Specify: "In a study of N patients, [product] achieved X% [endpoint] vs Y% placebo '
        '(95% CI: X-Y, p<0.05) [ref]"'
    ),
    "efficacy": (
        'Provide context: "Based on [study type] in [population], [product] showed '
        '[specific outcome] [reference]"'
    ),
}


@dataclasses.dataclass
class ValidationContext:
    """Where the content will be used and which brand rules apply."""

    asset_type: str = "Email"
    region: str = "US"
    target_audience: str = "HCP"
    fda_indication: Optional[str] = None
    forbidden_terms: List[str] = dataclasses.field(default_factory=list)
    caution_terms: List[str] = dataclasses.field(default_factory=list)

    @classmethod
    def for_brand(cls, brand, **kwargs) -> "ValidationContext":
        """Build a context carrying the brand's FDA indication and guideline terms."""
        guidelines = (brand.guidelines or {}) if brand is not None else {}
        return cls(
            fda_indication=brand.fda_indication if brand is not None else None,
            forbidden_terms=list(guidelines.get("forbidden_terms") or []),
            caution_terms=list(guidelines.get("caution_terms") or []),
            **kwargs,
        )


@dataclasses.dataclass
class DetectedClaim:
    id: str
    text: str
    type: str
    severity: str
    reason: str
    suggestion: str
    start: int
    end: int
    context: str
    required_evidence: List[str]
    category: str
    confidence: float
    brand_compliance: str
    is_overridden: bool = False
    override_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class ClaimsValidationService:
    """Regex-driven claim detector with brand-aware suggestions."""

    CONTEXT_WINDOW = 50

    def __init__(self, patterns: Optional[List[ClaimPattern]] = None) -> None:
        self.patterns = patterns if patterns is not None else CLAIM_PATTERNS

    def validate_claims(self, content: str, context: ValidationContext) -> List[DetectedClaim]:
        """Detect every claim in *content*, ranked highest risk first."""
        if not content or not content.strip():
            return []

        detected: List[DetectedClaim] = []
        for pattern in self.patterns:
            for match in pattern.pattern.finditer(content):
                text = match.group(0)
                start, end = match.start(), match.end()
                ctx_start = max(0, start - self.CONTEXT_WINDOW)
                ctx_end = min(len(content), end + self.CONTEXT_WINDOW)

                detected.append(
                    DetectedClaim(
                        id=f"claim_{len(detected) + 1}_{start}",
                        text=text,
                        type=pattern.type,
                        severity=pattern.severity,
                        reason=pattern.reason,
                        suggestion=self.generate_suggestion(pattern, context),
                        start=start,
                        end=end,
                        context=content[ctx_start:ctx_end],
                        required_evidence=list(pattern.required_evidence),
                        category=pattern.category,
                        confidence=self.calculate_confidence(text, pattern),
                        brand_compliance=self.check_brand_compliance(text, pattern, context),
                    )
                )

        logger.debug("validate_claims: %d claims detected", len(detected))
        return self.rank_claims_by_risk(detected)

    def realtime_validation(self, content: str, context: ValidationContext) -> Dict[str, Any]:
        """Claims plus an editor summary and highlight ranges."""
        claims = self.validate_claims(content, context)
        summary = {
            "valid": sum(1 for c in claims if c.is_overridden or c.severity == "info"),
            "warnings": sum(1 for c in claims if not c.is_overridden and c.severity == "warning"),
            "failures": sum(1 for c in claims if not c.is_overridden and c.severity == "error"),
        }
        highlights = [
            {
                "id": c.id,
                "start": c.start,
                "end": c.end,
                "type": "claim",
                "severity": c.severity,
                "message": c.reason,
            }
            for c in claims
        ]
        return {"claims": claims, "summary": summary, "highlights": highlights}

    @staticmethod
    def generate_suggestion(pattern: ClaimPattern, context: ValidationContext) -> str:
        if pattern.type == "indication":
            base = f'Use FDA-approved language: "{context.fda_indication or DEFAULT_FDA_INDICATION}"'
        else:
            base = _SUGGESTIONS.get(pattern.type, "Review claim for substantiation and compliance")

        if context.asset_type.lower() == "email" and pattern.severity == "error":
            return (
                f"{base}\n\nNOTE: Email communications have strict claim requirements. "
                "Consider removing or significantly modifying this claim."
            )
        if context.region != "US" and pattern.type == "indication":
            return f"{base}\n\nIMPORTANT: Verify indication wording matches local regulatory approval for {context.region}"
        return base

    @staticmethod
    def calculate_confidence(claim_text: str, pattern: ClaimPattern) -> float:
        confidence = 0.7
        if pattern.severity == "error":
            confidence += 0.2
        lowered = claim_text.lower()
        if "superior" in lowered or "better" in lowered:
            confidence += 0.1
        if len(claim_text) < 5:
            confidence -= 0.2
        return round(min(1.0, max(0.3, confidence)), 2)

    @staticmethod
    def check_brand_compliance(claim_text: str, pattern: ClaimPattern, context: ValidationContext) -> str:
        lowered = claim_text.lower()
        if any(term.lower() in lowered for term in context.forbidden_terms):
            return "violation"
        if any(term.lower() in lowered for term in context.caution_terms):
            return "warning"
        if pattern.severity == "error":
            return "warning"
        return "compliant"

    @staticmethod
    def rank_claims_by_risk(claims: List[DetectedClaim]) -> List[DetectedClaim]:
        return sorted(
            claims,
            key=lambda c: (
                -SEVERITY_RANK.get(c.severity, 0),
                -COMPLIANCE_RANK.get(c.brand_compliance, 0),
                -c.confidence,
            ),
        )
