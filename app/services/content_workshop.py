"""
AI content workshop: first-draft generation, brief enhancement, theme
ideation, marketing visuals and TM-leveraged translation.

Public API
----------
ContentWorkshopService.generate_initial_content(db, brand, ...) -> dict
ContentWorkshopService.enhance_brief(brand, brief, ...)         -> dict
ContentWorkshopService.generate_themes(db, brand, story)        -> (themes, fallback_used)
ContentWorkshopService.generate_marketing_visual(prompt, ...)   -> dict
ContentWorkshopService.translate_with_tm(db, brand_id, ...)     -> dict
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import Brand, Claim, ContentModule, ReviewStatus, Theme
from app.services.ai_gateway import AIGatewayClient, parse_json_robust
from app.services.success_patterns import SuccessPatternService
from app.services.translation_memory import TMSearchOptions, TranslationMemoryService
from app.utils.helpers import count_units, truncate_text

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Audience sophistication
# ═══════════════════════════════════════════════════════════════════════════════

AUDIENCE_SOPHISTICATION_MAP: Dict[str, str] = {
    "Physician-Specialist": "expert",
    "Physician-PrimaryCare": "standard",
    "Nurse-NP-PA": "standard",
    "Nurse-RN": "simplified",
    "Pharmacist": "simplified",
    "Patient": "patient-friendly",
    "Caregiver-Professional": "simplified",
    "Caregiver-Family": "patient-friendly",
}

PATIENT_FRIENDLY = "patient-friendly"

# Claim types that serve each campaign objective
OBJECTIVE_CLAIM_TYPES: Dict[str, List[str]] = {
    "clinical-education": ["efficacy", "mechanism", "dosing"],
    "evidence-building": ["efficacy", "comparative"],
    "practice-support": ["dosing", "safety"],
    "awareness": ["indication", "mechanism"],
    "patient-education": ["indication", "safety", "dosing"],
}
DEFAULT_CLAIM_TYPES = ["efficacy", "mechanism"]

PATIENT_FORBIDDEN_TERMS = ["p-value", "CI:", "hazard ratio", "trial", "efficacy", "endpoint"]

SOCIAL_ASSET = "social-media-post"
WEBSITE_ASSET = "website-landing-page"

PATIENT_DISCLAIMER = (
    "This information is for educational purposes only and is not intended to replace "
    "advice from your healthcare provider."
)
HCP_DISCLAIMER = (
    "This email contains promotional information about prescription medications. "
    "Please see full Prescribing Information."
)

_CLAIM_MARKER_RE = re.compile(r"\[CLAIM:(CML-[A-Za-z0-9]+)\]")


def get_audience_sophistication(audience: str) -> str:
    return AUDIENCE_SOPHISTICATION_MAP.get(audience, "standard")


_AUDIENCE_INSTRUCTIONS: Dict[str, str] = {
    "expert": """
TARGET AUDIENCE: Senior specialists with deep clinical expertise

MUST INCLUDE:
 - Detailed trial methodology and study design
 - P-values, confidence intervals, hazard ratios
 - Subgroup analyses and biomarker data
 - Statistical significance and clinical relevance
 - Comparative efficacy data
CLINICAL DEPTH: Maximum depth with rigorous statistical analysis
TONE: Peer-to-peer, evidence-dense, assumes advanced knowledge
TERMINOLOGY: Full medical terminology, no simplification

FORBIDDEN:
 - Oversimplification of complex data
 - Patient-facing language
 - Vague benefit statements without data
""",
    "standard": """
TARGET AUDIENCE: Primary care physicians, NP/PAs with general clinical knowledge

MUST INCLUDE:
 - Key efficacy outcomes and primary endpoints
 - Clear clinical significance (not just statistical)
 - Practical safety and tolerability data
 - Straightforward patient selection criteria
CLINICAL DEPTH: Moderate depth focusing on actionable clinical data
TONE: Professional but accessible, practical application focus
TERMINOLOGY: Standard medical terms with clarity

FORBIDDEN:
 - Overly complex trial methodology
 - Subspecialty-only statistical analysis
 - Patient-facing oversimplification
""",
    "simplified": """
TARGET AUDIENCE: Support HCPs (RNs, Pharmacists) focused on implementation

MUST INCLUDE:
 - Clear dosing and administration protocols
 - Practical patient counseling points
 - Monitoring requirements and schedules
 - Common side effects and management
CLINICAL DEPTH: Implementation-focused, minimal statistical detail
TONE: Instructional, practical, supportive
TERMINOLOGY: Clear medical terms with practical context

FORBIDDEN:
 - Complex trial methodology
 - Detailed statistical analysis
 - Research-focused content
""",
    PATIENT_FRIENDLY: """
TARGET AUDIENCE: Patients and family caregivers with NO medical background

MUST INCLUDE ONLY:
 - Benefits and how treatment may help
 - Lifestyle improvements and quality of life
 - Support resources and guidance
 - Clear, empowering language
CLINICAL DEPTH: Empowering, accessible, benefit-oriented ONLY
TONE: Compassionate, clear, supportive
TERMINOLOGY: Plain language, avoid ALL medical jargon

ABSOLUTELY FORBIDDEN:
 - NO clinical trial statistics or data
 - NO p-values, confidence intervals, hazard ratios
 - NO mechanism of action details
 - NO "efficacy", "endpoint", "trial" language
""",
}


def build_audience_system_prompt(sophistication: str, target_audience: str) -> str:
    return (
        f"You are a pharmaceutical content generation expert creating content for "
        f"{target_audience} audience.\n"
        f"{_AUDIENCE_INSTRUCTIONS.get(sophistication, _AUDIENCE_INSTRUCTIONS['standard'])}\n"
        "Generate content that is DISTINCTLY APPROPRIATE for this audience level. Content for "
        "different audiences MUST differ in depth, terminology and focus."
    )


_OUTPUT_FORMATS: Dict[str, str] = {
    WEBSITE_ASSET: """\
Return a JSON object:
{
  "heroHeadline": "Concise headline focused on the primary benefit (max 80 chars)",
  "heroSubheadline": "Supporting value proposition, different from heroHeadline (max 150 chars)",
  "heroCta": "Primary call to action button text",
  "diseaseOverview": "Educational content about the condition",
  "treatmentApproach": "How the treatment works",
  "clinicalEvidence": "Key clinical data WITH [CLAIM:CML-XXXX] markers for HCP audiences",
  "safetyInformation": "Important safety information",
  "pageTitle": "SEO page title (max 60 chars)",
  "metaDescription": "SEO meta description (max 160 chars)",
  "body": "Optional supporting paragraphs",
  "cta": "Secondary CTA text",
  "disclaimer": "Legal disclaimer and fair balance statement",
  "citationsUsed": ["CML-0001"]
}""",
    SOCIAL_ASSET: """\
Return a JSON object:
{
  "headline": "Post hook (max 100 chars)",
  "bodyText": "Main post content",
  "hashtags": "#relevant #hashtags",
  "platform": "linkedin",
  "cta": "Call to action text",
  "imageSpecs": "Recommended image: type, dimensions, style",
  "disclaimer": "Educational content disclaimer",
  "citationsUsed": []
}""",
}

_EMAIL_FORMAT = """\
Return a JSON object:
{
  "subject": "Email subject line (max 50 chars)",
  "preheader": "Email preheader (max 100 chars)",
  "headline": "Main headline",
  "body": "Full body content WITH [CLAIM:CML-XXXX] markers embedded",
  "cta": "Call to action text",
  "keyMessage": "Core message summary",
  "disclaimer": "Required disclaimer text",
  "citationsUsed": ["CML-0001"]
}"""

_CITATION_RULES = """\
CITATION RULES:
1. Use EXACTLY the format [CLAIM:CML-XXXX]
2. Place the marker IMMEDIATELY after the statement it supports
3. One claim ID per marker, never comma-separated
4. Use each claim ID at most once"""


# ═══════════════════════════════════════════════════════════════════════════════
# Fallback and structure repair
# ═══════════════════════════════════════════════════════════════════════════════

def create_fallback_content(
    sophistication: str,
    core_message: Optional[str],
    therapeutic_focus: Optional[str],
    key_benefits: List[str],
    call_to_action: Optional[str],
) -> Dict[str, Any]:
    """Template email used when the model reply cannot be parsed."""
    core_message = core_message or "Important treatment information"
    therapeutic_focus = therapeutic_focus or "your condition"
    is_patient = sophistication == PATIENT_FRIENDLY

    if is_patient:
        greeting = "Dear Patient,"
        intro = (
            f"We understand that managing {therapeutic_focus} can be challenging. "
            "We are here to provide you with helpful information and resources."
        )
        closing = (
            "\n\nWe are committed to supporting you on your treatment journey. "
            "If you have questions, please speak with your healthcare provider."
        )
    else:
        greeting = "Dear Healthcare Professional,"
        intro = f"Understanding the latest advances in {therapeutic_focus} is essential for optimizing patient outcomes."
        closing = "\n\nWe look forward to supporting your clinical practice with evidence-based solutions."

    benefits = ""
    if key_benefits:
        benefits = "\n\nKey Benefits:\n" + "\n".join(f"• {b}" for b in key_benefits[:3])

    return {
        "subject": core_message if len(core_message) <= 50 else core_message[:47] + "...",
        "preheader": key_benefits[0] if key_benefits else "Important treatment information",
        "headline": core_message,
        "body": f"{greeting}\n\n{intro}{benefits}{closing}",
        "keyMessage": core_message,
        "cta": call_to_action or "Learn More",
        "disclaimer": PATIENT_DISCLAIMER if is_patient else HCP_DISCLAIMER,
    }


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def ensure_content_structure(
    content: Dict[str, Any],
    sophistication: str,
    core_message: Optional[str],
    therapeutic_focus: Optional[str],
    key_benefits: List[str],
    call_to_action: Optional[str],
) -> Dict[str, Any]:
    """Fill missing fields and enforce subject/preheader length limits."""
    if _blank(content.get("subject")):
        content["subject"] = core_message or f"Important {therapeutic_focus or 'Treatment'} Information"
    if len(content["subject"]) > 50:
        content["subject"] = content["subject"][:47] + "..."

    if _blank(content.get("headline")):
        content["headline"] = core_message or f"Advancing {therapeutic_focus or 'Treatment'} Care"

    body = content.get("body")
    if _blank(body) or len(body) < 50:
        content["body"] = create_fallback_content(
            sophistication, core_message, therapeutic_focus, key_benefits, call_to_action
        )["body"]

    if _blank(content.get("keyMessage")):
        content["keyMessage"] = core_message or content["headline"]
    if _blank(content.get("cta")):
        content["cta"] = call_to_action or "Learn More"
    if _blank(content.get("disclaimer")):
        content["disclaimer"] = PATIENT_DISCLAIMER if sophistication == PATIENT_FRIENDLY else HCP_DISCLAIMER

    if _blank(content.get("preheader")):
        content["preheader"] = key_benefits[0] if key_benefits else "Evidence-based clinical insights"
    if len(content["preheader"]) > 100:
        content["preheader"] = content["preheader"][:97] + "..."
    return content


def find_forbidden_terms(content: Dict[str, Any]) -> List[str]:
    text = json.dumps(content, ensure_ascii=False).lower()
    return [term for term in PATIENT_FORBIDDEN_TERMS if term.lower() in text]


# ═══════════════════════════════════════════════════════════════════════════════
# Themes
# ═══════════════════════════════════════════════════════════════════════════════

_THEME_PROMPT = """\
You are a pharma content strategist creating content themes for {brand_name} ({therapeutic_area}).

Generate 3-4 distinct theme options based on:

STORY CONTEXT:
- Occasion: {occasion}
- Audience: {audience}
- Activities: {activities}
- Region: {region}
- Goals: {goal}

TOP CLINICAL CLAIMS:
{claims}

SUCCESS PATTERNS:
{patterns}

For each theme provide a name (2-4 words), a one-sentence data-backed key message,
a tone (professional/conversational/clinical/empowering), a CTA, a performance
prediction (engagement % and confidence %), the asset types it suits, the
supporting claim IDs from the list above and a rationale.

Return ONLY a JSON array:
[
  {{
    "name": "Resistance Champion",
    "key_message": "...",
    "tone": "clinical",
    "cta": "Review the data",
    "performance_prediction": {{"engagement_rate": 32, "confidence": 87, "basis": "..."}},
    "best_for_assets": ["podium", "detail_aid"],
    "supporting_claims": ["CML-0001"],
    "rationale": "..."
  }}
]"""

DEFAULT_PREDICTION = {"engagement_rate": 25, "confidence": 75, "basis": "Based on similar campaigns"}


def _pick(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, "", []):
            return value
    return default


def _normalize_prediction(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        return dict(DEFAULT_PREDICTION)
    return {
        "engagement_rate": _pick(raw, "engagement_rate", "engagementRate", default=25),
        "confidence": _pick(raw, "confidence", default=75),
        "basis": _pick(raw, "basis", default="Based on similar campaigns"),
    }


def _normalize_theme(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    name = _pick(raw, "name")
    key_message = _pick(raw, "key_message", "keyMessage")
    if not name or not key_message:
        return None
    return {
        "name": str(name),
        "key_message": str(key_message),
        "tone": _pick(raw, "tone", default="professional"),
        "cta": _pick(raw, "cta", default="Learn more"),
        "performance_prediction": _normalize_prediction(
            _pick(raw, "performance_prediction", "performancePrediction")
        ),
        "best_for_assets": list(_pick(raw, "best_for_assets", "bestForAssets", default=[])),
        "supporting_claims": [str(c) for c in _pick(raw, "supporting_claims", "supportingClaims", default=[])],
        "rationale": _pick(raw, "rationale", default="Theme aligns with audience preferences"),
    }


def fallback_themes(brand: Brand, story: Dict[str, Any], claims: List[Claim], patterns: list) -> List[Dict[str, Any]]:
    audience = story.get("audience_type") or "HCP"
    occasion = story.get("occasion_type") or "conference"
    ids = [c.claim_id_display for c in claims]

    themes = [
        {
            "name": "Clinical Evidence Leader",
            "key_message": f"{brand.brand_name} delivers proven efficacy backed by robust clinical data",
            "tone": "clinical",
            "cta": "Review the evidence",
            "performance_prediction": {
                "engagement_rate": 28,
                "confidence": 82,
                "basis": "Evidence-focused content for HCP audiences",
            },
            "best_for_assets": ["podium", "detail_aid", "clinical_briefing"],
            "supporting_claims": ids[0:3],
            "rationale": f"{audience} audiences respond well to data-driven messaging at {occasion} events",
        },
        {
            "name": "Simplified Care Solution",
            "key_message": f"A straightforward treatment experience in {brand.therapeutic_area}",
            "tone": "professional",
            "cta": "Discover simplicity",
            "performance_prediction": {
                "engagement_rate": 32,
                "confidence": 78,
                "basis": "Simplicity messaging shows consistent engagement",
            },
            "best_for_assets": ["email", "leave_behind", "brochure"],
            "supporting_claims": ids[1:4],
            "rationale": "Convenience and simplicity resonate across audience types",
        },
    ]
    if patterns:
        themes.append(
            {
                "name": "Long-Term Durability",
                "key_message": "Sustained results that build confidence over the long term",
                "tone": "clinical",
                "cta": "See long-term data",
                "performance_prediction": {
                    "engagement_rate": 26,
                    "confidence": 85,
                    "basis": f"Pattern: {patterns[0].pattern_name}",
                },
                "best_for_assets": ["presentation", "detail_aid", "scientific_poster"],
                "supporting_claims": ids[2:5],
                "rationale": "Long-term data builds confidence in treatment durability",
            }
        )
    return themes


# ═══════════════════════════════════════════════════════════════════════════════
# Translation
# ═══════════════════════════════════════════════════════════════════════════════

AI_SCORES = {
    "medical": 0.92,
    "brand": 0.88,
    "cultural": 0.90,
    "reasoning": [
        "Medical terminology is accurate and consistent",
        "Brand voice maintained across translation",
        "Culturally appropriate for target market",
    ],
}

TM_MIN_LEVERAGE_MATCH = 70
TM_EXACT_THRESHOLD = 95

_TRANSLATION_PATTERNS = [
    re.compile(r"\*\*1\.\s*Translated Text:\*\*\s*([\s\S]+?)(?=\n\s*\*\*2\.|\n\s*---|\n\s*\*\*\d+)"),
    re.compile(r"Translated Text:\*\*\s*([\s\S]+?)(?=\n\s*---)"),
    re.compile(r"\*\*[A-Z]{2,}:\*\*\s*([\s\S]+?)(?=\n\n|\Z)"),
    re.compile(r"##\s*[A-Za-z][A-Za-z ]*\s+Translation[:\s]*\n\n?([\s\S]+?)(?=\n\n|\Z)"),
]


def extract_translation(reply: str) -> str:
    """Pull the clean translated text out of the model's sectioned reply."""
    for pattern in _TRANSLATION_PATTERNS:
        match = pattern.search(reply)
        if match and match.group(1).strip():
            return match.group(1).strip()

    lines = reply.split("\n")
    for idx, line in enumerate(lines):
        if "translation" in line.lower() and not line.startswith("#"):
            for candidate in lines[idx + 1 :]:
                candidate = candidate.strip()
                if candidate and not candidate.startswith("#") and "##" not in candidate and not candidate.startswith("**"):
                    return candidate
            break

    substantial = [l for l in lines if len(l.strip()) > 20]
    return substantial[0].strip() if substantial else reply


def _translation_system_prompt(therapeutic_area: Optional[str], tm_matches: List[Dict[str, Any]]) -> str:
    prompt = "You are a medical translation expert specializing in pharmaceutical and healthcare content."
    if therapeutic_area:
        prompt += f" Focus on {therapeutic_area} terminology."
    prompt += """

CRITICAL FORMAT - You MUST follow this exact structure in your response:

**1. Translated Text:**
[ONLY the clean translated text here - no explanations, no notes, no asterisks]

---

**2. Word-level Breakdown:**
[Your word-by-word analysis here]

**3. Quality Scores:**
[Your quality scores here]

**4. Regulatory Risks:**
[Your regulatory risk assessment here]"""

    if tm_matches:
        prompt += """

Translation Memory Context:
- For EXACT matches (>=95%): Use the TM translation exactly as is
- For FUZZY matches (70-94%): Adapt carefully and flag for human review
- For NEW content: Translate maintaining medical accuracy and brand consistency

Available TM matches:"""
        for idx, tm in enumerate(tm_matches, 1):
            prompt += (
                f'\n{idx}. Source: "{tm["source_text"]}" -> Target: "{tm["target_text"]}" '
                f'({tm["match_percentage"]}% match, {tm["match_type"]})'
            )
        prompt += "\n\nIn section 2, explain which parts came from TM (exact/fuzzy/new)."
    return prompt


def build_word_breakdown(
    source_text: str, translated_text: str, tm_matches: List[Dict[str, Any]]
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Tag each target word as exact, fuzzy or new by position against the TM matches."""
    source_words = source_text.split()
    breakdown: List[Dict[str, Any]] = []
    flags: List[str] = []

    for idx, word in enumerate(translated_text.split()):
        token = source_words[idx].lower() if idx < len(source_words) else ""
        best = None
        if token:
            best = next((tm for tm in tm_matches if token in tm["source_text"].lower()), None)

        if best is not None and best["match_percentage"] >= TM_EXACT_THRESHOLD:
            kind = "exact"
        elif best is not None and best["match_percentage"] >= TM_MIN_LEVERAGE_MATCH:
            kind = "fuzzy"
            flags.append(f'Fuzzy match for "{word}" requires review')
        else:
            breakdown.append({"word": word, "type": "new"})
            continue

        breakdown.append(
            {
                "word": word,
                "type": kind,
                "tm_entry_id": best["id"],
                "match_score": best["match_percentage"],
                "tm_source_text": best["source_text"],
            }
        )
    return breakdown, flags


def tm_stats(breakdown: List[Dict[str, Any]], translated_text: str, target_language: str) -> Dict[str, Any]:
    exact = sum(1 for w in breakdown if w["type"] == "exact")
    fuzzy = sum(1 for w in breakdown if w["type"] == "fuzzy")
    new = sum(1 for w in breakdown if w["type"] == "new")
    total = count_units(translated_text, target_language)
    leverage = (exact + fuzzy * 0.5) / total * 100 if total > 0 else 0.0
    return {
        "exact_words": exact,
        "fuzzy_words": fuzzy,
        "new_words": new,
        "total_words": total,
        "leverage_percentage": round(leverage, 2),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════

class ContentWorkshopService:
    """AI-backed content operations for a single brand."""

    def __init__(
        self,
        ai_client: AIGatewayClient,
        tm_service: Optional[TranslationMemoryService] = None,
        pattern_service: Optional[SuccessPatternService] = None,
    ) -> None:
        self.ai = ai_client
        self.tm = tm_service or TranslationMemoryService()
        self.patterns = pattern_service or SuccessPatternService()

    # ------------------------------------------------------------------
    # Initial content
    # ------------------------------------------------------------------

    async def _citable_claims(
        self, db: AsyncSession, brand_id: int, objective: str, sophistication: str
    ) -> List[Claim]:
        if sophistication == PATIENT_FRIENDLY:
            return []
        limit = 25 if sophistication == "expert" else 20
        base = (
            select(Claim)
            .where(Claim.brand_id == brand_id, Claim.review_status == ReviewStatus.APPROVED)
            .order_by(Claim.confidence_score.desc(), Claim.id)
        )
        claim_types = OBJECTIVE_CLAIM_TYPES.get(objective, DEFAULT_CLAIM_TYPES)
        result = await db.execute(base.where(Claim.claim_type.in_(claim_types)).limit(limit))
        claims = list(result.scalars().all())
        if not claims:
            logger.info("No %s claims for objective=%s, using all approved brand claims", claim_types, objective)
            result = await db.execute(base.limit(15))
            claims = list(result.scalars().all())
        return claims

    async def _approved_modules(self, db: AsyncSession, brand_id: int) -> List[ContentModule]:
        result = await db.execute(
            select(ContentModule)
            .where(ContentModule.brand_id == brand_id, ContentModule.mlr_approved.is_(True))
            .order_by(ContentModule.usage_score.desc())
            .limit(6)
        )
        return list(result.scalars().all())

    @staticmethod
    def _evidence_context(sophistication: str, claims: List[Claim], modules: List[ContentModule]) -> str:
        if sophistication == PATIENT_FRIENDLY:
            return (
                "CRITICAL INSTRUCTION: Do NOT include ANY clinical trial data, statistics, or medical "
                "terminology. Focus ONLY on benefits, lifestyle improvements, and support resources."
            )
        claim_lines = "\n".join(
            f'- [CLAIM:{c.claim_id_display}]: "{truncate_text(c.claim_text, 150)}" '
            f"({c.claim_type}, confidence: {c.confidence_score})"
            for c in claims[:8]
        ) or "No claims available"
        module_lines = "\n".join(
            f'- [{m.module_type}]: "{truncate_text(m.module_text, 120)}"' for m in modules
        ) or "No MLR-approved modules available"
        return (
            f"CLINICAL CLAIMS FOR CITATION ({len(claims)}):\n{claim_lines}\n\n"
            f"MLR-APPROVED CONTENT MODULES ({len(modules)}):\n{module_lines}\n\n"
            f"Use evidence appropriate for a {sophistication} audience. "
            "You may incorporate MLR-approved module text verbatim.\n\n"
            f"{_CITATION_RULES}"
        )

    async def generate_initial_content(
        self,
        db: AsyncSession,
        brand: Brand,
        asset_type: str = "email",
        target_audience: str = "Physician-PrimaryCare",
        objective: str = "clinical-education",
        theme: Optional[Theme] = None,
        core_message: Optional[str] = None,
        key_benefits: Optional[List[str]] = None,
        call_to_action: Optional[str] = None,
        indication: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Draft audience-appropriate content for one asset.

        Returns ``{content, sophistication_level, citations_used, used_claims,
        forbidden_terms_found, fallback_used}``; ``used_claims`` holds ORM rows.

        Raises:
            AIGatewayError: the gateway call failed.
        """
        sophistication = get_audience_sophistication(target_audience)
        key_benefits = list(key_benefits or [])
        core_message = core_message or (theme.key_message if theme else None)
        call_to_action = call_to_action or (theme.call_to_action if theme else None)
        focus = indication or brand.indication or brand.therapeutic_area

        claims = await self._citable_claims(db, brand.id, objective, sophistication)
        modules = await self._approved_modules(db, brand.id) if sophistication != PATIENT_FRIENDLY else []
        logger.info(
            "Generating %s content brand=%d audience=%s (%s) claims=%d modules=%d",
            asset_type, brand.id, target_audience, sophistication, len(claims), len(modules),
        )

        user_prompt = (
            f"Generate pharmaceutical marketing content for a {asset_type} asset.\n\n"
            "STRATEGIC CONTEXT:\n"
            f"- Objective: {objective}\n"
            f"- Target Audience: {target_audience} ({sophistication} level)\n"
            f"- Indication: {focus or 'Not specified'}\n"
            f"- Brand: {brand.brand_name}\n\n"
            "THEME GUIDANCE:\n"
            f"- Core Message: {core_message or 'Not specified'}\n"
            f"- Key Benefits: {', '.join(key_benefits) or 'Not specified'}\n"
            f"- Call to Action: {call_to_action or 'Learn more'}\n\n"
            f"{self._evidence_context(sophistication, claims, modules)}\n\n"
            f"{_OUTPUT_FORMATS.get(asset_type, _EMAIL_FORMAT)}"
        )

        reply = await self.ai.chat_completion(
            [
                {"role": "system", "content": build_audience_system_prompt(sophistication, target_audience)},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.7,
            max_tokens=2000,
        )

        ok, parsed = parse_json_robust(reply) if reply else (False, None)
        fallback_used = not ok or not isinstance(parsed, dict)
        if fallback_used:
            logger.warning("Initial content reply was not a JSON object, using fallback content")
            content = create_fallback_content(sophistication, core_message, focus, key_benefits, call_to_action)
            reported: List[str] = []
        else:
            content = parsed
            reported = [str(c) for c in content.get("citationsUsed") or [] if c]

        content = ensure_content_structure(content, sophistication, core_message, focus, key_benefits, call_to_action)

        if asset_type == SOCIAL_ASSET:
            if not content.get("bodyText") and content.get("body"):
                content["bodyText"] = content["body"]
            if not content.get("hashtags"):
                tag = re.sub(r"\s+", "", focus or "Health")
                content["hashtags"] = f"#{tag} #HealthcareInnovation"
            if not content.get("platform"):
                content["platform"] = "LinkedIn"
            if not content.get("imageSpecs"):
                content["imageSpecs"] = "Recommended: 1200x627px professional healthcare image"

        forbidden: List[str] = []
        if sophistication == PATIENT_FRIENDLY:
            reported = []
            forbidden = find_forbidden_terms(content)
            if forbidden:
                logger.warning("Patient content contains clinical terms: %s", forbidden)

        by_display = {c.claim_id_display: c for c in claims}
        citations = [cid for cid in dict.fromkeys(reported) if cid in by_display]
        if not citations and isinstance(content.get("body"), str):
            markers = _CLAIM_MARKER_RE.findall(content["body"])
            citations = [cid for cid in dict.fromkeys(markers) if cid in by_display]
        content["citationsUsed"] = citations

        return {
            "content": content,
            "sophistication_level": sophistication,
            "citations_used": citations,
            "used_claims": [by_display[cid] for cid in citations],
            "forbidden_terms_found": forbidden,
            "fallback_used": fallback_used,
        }

    # ------------------------------------------------------------------
    # Brief enhancement
    # ------------------------------------------------------------------

    async def enhance_brief(
        self,
        brand: Brand,
        brief: str,
        asset_type: Optional[str] = None,
        target_audience: Optional[str] = None,
        channels: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Turn a free-text creative brief into a structured one; missing fields get defaults."""
        prompt = (
            f"You are an expert pharmaceutical content strategist for {brand.brand_name} "
            f"({brand.therapeutic_area}).\n\n"
            f"Asset type: {asset_type or 'Not specified'}\n"
            f"Target audience: {target_audience or 'Not specified'}\n"
            f"Channels: {', '.join(channels or []) or 'Not specified'}\n\n"
            f"CREATIVE BRIEF:\n{brief}\n\n"
            "Return ONLY a JSON object with these keys:\n"
            '{"objective": "...", "key_messages": [], "audience_insights": [], "proof_points": [], '
            '"tone": "...", "mandatories": [], "channel_recommendations": [], "summary": "..."}\n'
            "Mandatories must include fair balance and any required safety statements."
        )
        ok, raw = await self.ai.chat_json(
            [
                {"role": "system", "content": "You are a pharmaceutical brief strategist. Respond with valid JSON only."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.5,
        )
        if not ok or not isinstance(raw, dict):
            logger.warning("Brief enhancement reply could not be parsed, returning defaults")
            raw = {}

        def _list(*keys: str) -> List[str]:
            value = _pick(raw, *keys, default=[])
            if isinstance(value, str):
                return [value]
            return [str(v) for v in value] if isinstance(value, list) else []

        return {
            "objective": str(_pick(raw, "objective", default=truncate_text(brief.strip(), 200))),
            "key_messages": _list("key_messages", "keyMessages"),
            "audience_insights": _list("audience_insights", "audienceInsights"),
            "proof_points": _list("proof_points", "proofPoints"),
            "tone": str(_pick(raw, "tone", default="professional")),
            "mandatories": _list("mandatories"),
            "channel_recommendations": _list("channel_recommendations", "channelRecommendations") or list(channels or []),
            "summary": str(_pick(raw, "summary", default=truncate_text(brief.strip(), 300))),
        }

    # ------------------------------------------------------------------
    # Themes
    # ------------------------------------------------------------------

    async def generate_themes(
        self, db: AsyncSession, brand: Brand, story: Dict[str, Any]
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """
        Propose 3-4 themes for *story*. Returns ``(themes, fallback_used)``.

        Raises:
            AIGatewayError: the gateway call failed.
        """
        result = await db.execute(
            select(Claim)
            .where(Claim.brand_id == brand.id, Claim.review_status != ReviewStatus.REJECTED)
            .order_by(Claim.confidence_score.desc(), Claim.id)
            .limit(5)
        )
        claims = list(result.scalars().all())
        patterns = await self.patterns.get_validated_patterns(db, brand.id, limit=3)

        prompt = _THEME_PROMPT.format(
            brand_name=brand.brand_name,
            therapeutic_area=brand.therapeutic_area,
            occasion=f"{story.get('occasion_type') or ''} {story.get('occasion_name') or ''}".strip() or "Not specified",
            audience=f"{story.get('audience_type') or 'HCP'} - {', '.join(story.get('audience_segments') or [])}",
            activities=", ".join(story.get("activities") or []) or "Not specified",
            region=story.get("region") or "Not specified",
            goal=story.get("primary_goal") or "Not specified",
            claims="\n".join(
                f"- {c.claim_id_display} ({c.claim_type}): {truncate_text(c.claim_text, 150)}" for c in claims
            ) or "None",
            patterns="\n".join(
                f"- {p.pattern_name}: {p.pattern_description} (+{p.avg_performance_lift}% lift)" for p in patterns
            ) or "None",
        )

        reply = await self.ai.chat_completion(
            [
                {"role": "system", "content": prompt},
                {"role": "user", "content": "Generate themes for this story context"},
            ],
            model=settings.AI_REASONING_MODEL,
            temperature=0.7,
        )

        ok, parsed = parse_json_robust(reply) if reply else (False, None)
        if ok and isinstance(parsed, dict):
            parsed = parsed.get("themes")
        themes = []
        if ok and isinstance(parsed, list):
            themes = [t for t in (_normalize_theme(r) for r in parsed if isinstance(r, dict)) if t]

        if not themes:
            logger.warning("Theme reply unusable for brand=%d, using fallback themes", brand.id)
            return fallback_themes(brand, story, claims, patterns), True
        logger.info("Generated %d themes for brand=%d", len(themes), brand.id)
        return themes, False

    async def save_themes(self, db: AsyncSession, brand_id: int, themes: List[Dict[str, Any]]) -> List[Theme]:
        rows = [
            Theme(
                brand_id=brand_id,
                name=t["name"],
                key_message=t["key_message"],
                call_to_action=t["cta"],
                tone=t["tone"],
                category="campaign",
                performance_prediction=t["performance_prediction"],
                rationale=t["rationale"],
                best_for_assets=t["best_for_assets"],
                supporting_claims=t["supporting_claims"],
                confidence_score=float(t["performance_prediction"].get("confidence") or 0),
            )
            for t in themes
        ]
        db.add_all(rows)
        await db.flush()
        return rows

    # ------------------------------------------------------------------
    # Visuals
    # ------------------------------------------------------------------

    async def generate_marketing_visual(self, prompt: str, frame_number: Optional[int] = None) -> Dict[str, Any]:
        """
        Raises:
            ValueError: *prompt* is empty.
            AIGatewayError: the gateway call failed or returned no image.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required")
        logger.info("Generating marketing visual frame=%s", frame_number)
        image_url = await self.ai.generate_image(prompt.strip())
        return {"image_url": image_url, "frame_number": frame_number}

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    async def translate_with_tm(
        self,
        db: AsyncSession,
        brand_id: int,
        source_text: str,
        source_language: str,
        target_language: str,
        therapeutic_area: Optional[str] = None,
        use_tm_leverage: bool = True,
        save_to_tm: bool = False,
        project_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Translate *source_text* with the brand's translation memory as context.

        Raises:
            AIGatewayError: the gateway call failed.
        """
        tm_matches: List[Dict[str, Any]] = []
        if use_tm_leverage:
            found = await self.tm.search(
                db,
                brand_id,
                source_text,
                source_language,
                target_language,
                TMSearchOptions(min_match_percentage=TM_MIN_LEVERAGE_MATCH, max_results=10),
            )
            tm_matches = [m for m in found["matches"] if m["match_percentage"] >= TM_MIN_LEVERAGE_MATCH]

        reply = await self.ai.chat_completion(
            [
                {"role": "system", "content": _translation_system_prompt(therapeutic_area, tm_matches)},
                {
                    "role": "user",
                    "content": (
                        f'Translate this text from {source_language} to {target_language}:\n\n"{source_text}"\n\n'
                        "Provide:\n1. The translated text\n"
                        "2. Word-level breakdown indicating exact TM matches, fuzzy matches, or new translation\n"
                        "3. Quality scores (medical accuracy, brand consistency, cultural fit)\n"
                        "4. Any regulatory risks identified"
                    ),
                },
            ],
        )

        translated = extract_translation(reply) if reply else ""
        breakdown, flags = build_word_breakdown(source_text, translated, tm_matches)
        stats = tm_stats(breakdown, translated, target_language)

        tm_entry_id = None
        if save_to_tm and translated:
            entry = await self.tm.add_to_tm(
                db,
                brand_id,
                source_text,
                translated,
                source_language,
                target_language,
                domain_context=therapeutic_area,
                project_id=project_id,
                context_metadata={"leverage_percentage": stats["leverage_percentage"], "source": "ai_translation"},
            )
            tm_entry_id = entry.id

        logger.info(
            "Translated %s->%s brand=%d tm_matches=%d leverage=%.1f%%",
            source_language, target_language, brand_id, len(tm_matches), stats["leverage_percentage"],
        )
        return {
            "translated_text": translated,
            "full_analysis": reply,
            "word_level_breakdown": breakdown,
            "ai_scores": dict(AI_SCORES, reasoning=list(AI_SCORES["reasoning"])),
            "review_flags": flags,
            "tm_stats": stats,
            "tm_entry_id": tm_entry_id,
        }
