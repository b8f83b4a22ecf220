"""
Regulatory risk assessment for localizing content into target markets.

Every market x language pair gets its framework, compliance requirements,
gaps, a risk score and level, mitigation strategies, required approvals,
timeline and cost implications, and market-specific risks.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from app.services.complexity_scorer import extract_text

logger = logging.getLogger(__name__)

REGULATORY_FRAMEWORKS = {
    "US": "FDA",
    "EU": "EMA",
    "UK": "MHRA",
    "CANADA": "Health Canada",
    "JAPAN": "PMDA",
    "AUSTRALIA": "TGA",
    "CHINA": "NMPA",
    "INDIA": "CDSCO",
    "BRAZIL": "ANVISA",
    "MEXICO": "COFEPRIS",
}
DEFAULT_FRAMEWORK = "Local Authority"

GAP_SEVERITY_POINTS = {"critical": 25, "high": 15, "medium": 8, "low": 3}
MANDATORY_REQUIREMENT_POINTS = 5

# Medical claims gap remediation
GAP_REMEDIATION_DAYS = 30
GAP_REMEDIATION_COST = 15000

CLAIMS_APPROVAL_DAYS = 45
CLAIMS_APPROVAL_COST = 20000
CLAIMS_APPROVAL_PROBABILITY = 90

REVIEW_COSTS = {"critical": 10000, "high": 5000}
LEGAL_COSTS = {"critical": 15000, "high": 8000}
DEFAULT_REVIEW_COST = 2000
DEFAULT_LEGAL_COST = 3000

COST_RANGE_LOW = 0.8
COST_RANGE_HIGH = 1.3

RISK_LEVEL_ORDER = ["low", "medium", "high", "critical"]

_SENTENCE_END = r"(?=\.|\Z)"

_CONTENT_PATTERNS: Dict[str, List[re.Pattern]] = {
    "medical_claims": [
        re.compile(
            r"\b(?:treat|cure|prevent|diagnose|reduce|improve|eliminate|relief)\b.*?"
            r"\b(?:condition|disease|symptom|pain|infection)\b",
            re.IGNORECASE,
        ),
        re.compile(r"\b(?:effective|efficacious|proven|clinically tested|FDA approved)\b", re.IGNORECASE),
        re.compile(r"\b(?:helps|aids in|supports|promotes)\b.*?\b(?:healing|recovery|treatment)\b", re.IGNORECASE),
    ],
    "therapeutic_indications": [
        re.compile(r"\b(?:indicated for|approved for|prescribed for|used to treat)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:therapy|treatment|medication) for\b.*?" + _SENTENCE_END, re.IGNORECASE),
    ],
    "safety_information": [
        re.compile(r"\b(?:warning|caution|safety|risk|hazard|adverse)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:do not|avoid|contraindicated|not recommended)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:side effect|adverse reaction|safety profile)\b.*?" + _SENTENCE_END, re.IGNORECASE),
    ],
    "contraindications": [
        re.compile(r"\b(?:contraindicated|not recommended|should not|do not use)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:avoid|caution).*?\b(?:patients|individuals|people)\b.*?" + _SENTENCE_END, re.IGNORECASE),
    ],
    "side_effects": [
        re.compile(r"\b(?:side effect|adverse effect|adverse reaction|unwanted effect)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:may cause|can cause|might cause|common effects include)\b.*?" + _SENTENCE_END, re.IGNORECASE),
    ],
    "dosage_information": [
        re.compile(r"\b\d+\s*(?:mg|ml|g|mcg|units?)\b", re.IGNORECASE),
        re.compile(r"\b(?:dose|dosage|dosing|administration)\b.*?" + _SENTENCE_END, re.IGNORECASE),
        re.compile(r"\b(?:once|twice|three times?)\s+(?:daily|per day|a day)\b", re.IGNORECASE),
    ],
}


def analyze_content(text: str) -> Dict[str, List[str]]:
    """Regulatory elements found in *text*, de-duplicated in order of discovery."""
    analysis: Dict[str, List[str]] = {}
    for key, patterns in _CONTENT_PATTERNS.items():
        found: List[str] = []
        for pattern in patterns:
            found.extend(m.group(0).strip() for m in pattern.finditer(text))
        analysis[key] = list(dict.fromkeys(found))
    return analysis


def _requirement(req_id, category, requirement, severity, description, source, markets):
    return {
        "id": req_id,
        "category": category,
        "requirement": requirement,
        "severity": severity,
        "description": description,
        "source": source,
        "applicable_markets": markets,
    }


def compliance_requirements(market: str, analysis: Dict[str, List[str]]) -> List[Dict[str, Any]]:
    has_claims = bool(analysis["medical_claims"])
    key = market.upper()
    reqs: List[Dict[str, Any]] = []

    if key == "US":
        if has_claims:
            reqs.append(_requirement(
                "us-fda-claims", "medical", "FDA Medical Claims Validation", "mandatory",
                "All medical claims must be substantiated with FDA-approved evidence",
                "FDA Regulations 21 CFR Part 202", ["US"],
            ))
        if analysis["safety_information"]:
            reqs.append(_requirement(
                "us-safety-disclosure", "pharmaceutical", "Safety Information Disclosure", "mandatory",
                "All safety information must be prominently displayed and balanced",
                "FDA Guidance on Risk Communication", ["US"],
            ))
    elif key == "EU":
        if has_claims:
            reqs.append(_requirement(
                "eu-ema-claims", "medical", "EMA Medical Claims Validation", "mandatory",
                "Medical claims must comply with EMA guidelines and national regulations",
                "EMA Guidelines on Pharmaceutical Advertising", ["EU"],
            ))
        reqs.append(_requirement(
            "eu-gdpr-compliance", "data_privacy", "GDPR Data Privacy Compliance", "mandatory",
            "Any data collection or processing must comply with GDPR",
            "GDPR Regulation (EU) 2016/679", ["EU"],
        ))
    elif key == "JAPAN":
        if has_claims:
            reqs.append(_requirement(
                "japan-pmda-claims", "medical", "PMDA Medical Claims Validation", "mandatory",
                "Medical claims must be approved by PMDA and comply with Japanese pharmaceutical law",
                "Japanese Pharmaceutical and Medical Device Act", ["Japan"],
            ))
    elif has_claims:
        reqs.append(_requirement(
            "generic-medical-claims", "medical", "Local Medical Claims Review", "recommended",
            "Medical claims should be reviewed by local regulatory expert",
            "Local Health Authority Guidelines", ["Generic"],
        ))
    return reqs


def compliance_gaps(requirements: List[Dict[str, Any]], analysis: Dict[str, List[str]]) -> List[Dict[str, Any]]:
    """Mandatory medical requirements are unmet while the content carries unvalidated claims."""
    gaps = []
    for req in requirements:
        if req["severity"] != "mandatory":
            continue
        if req["category"] == "medical" and analysis["medical_claims"]:
            gaps.append(
                {
                    "gap_id": f"gap-{req['id']}",
                    "requirement": req["requirement"],
                    "current_state": "Medical claims present but not validated",
                    "required_state": "All medical claims must be regulatory-approved",
                    "gap_severity": "high",
                    "remediation_effort": "high",
                    "time_to_remediate": GAP_REMEDIATION_DAYS,
                    "cost_to_remediate": GAP_REMEDIATION_COST,
                }
            )
    return gaps


def risk_score(gaps: List[Dict[str, Any]], requirements: List[Dict[str, Any]]):
    score = sum(GAP_SEVERITY_POINTS.get(g["gap_severity"], 0) for g in gaps)
    score += MANDATORY_REQUIREMENT_POINTS * sum(1 for r in requirements if r["severity"] == "mandatory")
    if score >= 80:
        level = "critical"
    elif score >= 50:
        level = "high"
    elif score >= 25:
        level = "medium"
    else:
        level = "low"
    return min(100, score), level


def _mitigation_text(requirement: str) -> str:
    if "Medical Claims" in requirement:
        return "Engage regulatory consultant for claims validation and documentation"
    if "Safety" in requirement:
        return "Develop comprehensive safety information disclosure strategy"
    return "Conduct regulatory review and implement necessary changes"


_EFFECTIVENESS = {"low": 95, "medium": 85, "high": 75}


def mitigation_strategies(gaps: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "strategy_id": f"strategy-{gap['gap_id']}",
            "risk_category": gap["requirement"],
            "strategy": _mitigation_text(gap["requirement"]),
            "implementation": (
                f"1. Identify regulatory expert for {gap['requirement']}\n"
                "2. Review and validate content\n"
                "3. Implement necessary changes\n"
                "4. Obtain regulatory approval if required"
            ),
            "effectiveness": _EFFECTIVENESS.get(gap["remediation_effort"], 70),
            "cost": gap["cost_to_remediate"],
            "timeframe": gap["time_to_remediate"],
            "responsible": "Regulatory Affairs Team",
        }
        for gap in gaps
    ]


def required_approvals(analysis: Dict[str, List[str]], framework: str) -> List[Dict[str, Any]]:
    if not analysis["medical_claims"]:
        return []
    return [
        {
            "approval_id": "medical-claims-approval",
            "approval_type": "regulatory",
            "authority": framework,
            "description": "Medical claims validation and approval",
            "timeline_impact": CLAIMS_APPROVAL_DAYS,
            "cost": CLAIMS_APPROVAL_COST,
            "probability": CLAIMS_APPROVAL_PROBABILITY,
            "dependencies": ["Content finalization", "Documentation preparation"],
        }
    ]


def cost_implications(gaps, approvals, level: str) -> Dict[str, Any]:
    gap_costs = sum(g["cost_to_remediate"] for g in gaps)
    filing = sum(a["cost"] for a in approvals)
    review = REVIEW_COSTS.get(level, DEFAULT_REVIEW_COST)
    legal = LEGAL_COSTS.get(level, DEFAULT_LEGAL_COST)
    total = gap_costs + filing + review + legal
    return {
        "additional_review_costs": review,
        "legal_consultation_costs": legal,
        "regulatory_filing_costs": filing,
        "delay_penalty_costs": 0,
        "total_estimated_cost": total,
        "cost_range_min": round(total * COST_RANGE_LOW),
        "cost_range_max": round(total * COST_RANGE_HIGH),
    }


def market_specific_risks(market: str, analysis: Dict[str, List[str]]) -> Dict[str, List[str]]:
    cultural = []
    if "middle east" in market.lower() and any("alcohol" in c.lower() for c in analysis["medical_claims"]):
        cultural.append("Alcohol-related content may be culturally inappropriate")
    language = ["Medical terminology requires certified translation"] if analysis["medical_claims"] else []
    return {
        "cultural_risks": cultural,
        "language_risks": language,
        "local_regulation_risks": [
            f"Local {market} regulations may have additional requirements not covered by framework analysis"
        ],
        "competitor_risks": [f"Competitor regulatory strategies in {market} may affect approval timelines"],
    }


class RegulatoryRiskAnalyzer:
    """Assesses regulatory exposure for each market and language a piece of content targets."""

    def assess_pair(
        self,
        text: str,
        market: str,
        language: str,
        therapeutic_area: Optional[str] = None,
        analysis: Optional[Dict[str, List[str]]] = None,
    ) -> Dict[str, Any]:
        analysis = analysis if analysis is not None else analyze_content(text)
        framework = REGULATORY_FRAMEWORKS.get(market.upper(), DEFAULT_FRAMEWORK)
        requirements = compliance_requirements(market, analysis)
        gaps = compliance_gaps(requirements, analysis)
        score, level = risk_score(gaps, requirements)
        approvals = required_approvals(analysis, framework)
        timeline = max(
            sum(g["time_to_remediate"] for g in gaps),
            sum(a["timeline_impact"] for a in approvals),
        )
        return {
            "target_market": market,
            "target_language": language,
            "therapeutic_area": therapeutic_area,
            "regulatory_framework": framework,
            "compliance_requirements": requirements,
            "risk_level": level,
            "risk_score": score,
            "compliance_gaps": gaps,
            "mitigation_strategies": mitigation_strategies(gaps),
            "required_approvals": approvals,
            "regulatory_timeline_impact": timeline,
            "cost_implications": cost_implications(gaps, approvals, level),
            "assessment_details": {
                "content_analysis": analysis,
                "market_specific_risks": market_specific_risks(market, analysis),
            },
        }

    def analyze(
        self,
        content: Any,
        target_markets: List[str],
        target_languages: List[str],
        asset_type: str = "email",
        therapeutic_area: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Assess every market x language pair.

        Raises:
            ValueError: no markets or no languages were given.
        """
        if not target_markets or not target_languages:
            raise ValueError("At least one target market and one target language are required")

        text = extract_text(content)
        analysis = analyze_content(text)
        assessments = [
            self.assess_pair(text, market, language, therapeutic_area, analysis)
            for market in target_markets
            for language in target_languages
        ]
        logger.info(
            "Regulatory risk: %d assessments for asset_type=%s (%d claims found)",
            len(assessments), asset_type, len(analysis["medical_claims"]),
        )
        return {"assessments": assessments, "summary": self.summarize(assessments)}

    @staticmethod
    def summarize(assessments: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not assessments:
            return {
                "overall_risk_level": "low",
                "max_risk_score": 0,
                "high_risk_markets": [],
                "total_estimated_cost": 0,
                "max_timeline_impact_days": 0,
            }
        worst = max(assessments, key=lambda a: RISK_LEVEL_ORDER.index(a["risk_level"]))
        return {
            "overall_risk_level": worst["risk_level"],
            "max_risk_score": max(a["risk_score"] for a in assessments),
            "high_risk_markets": sorted(
                {a["target_market"] for a in assessments if a["risk_level"] in ("high", "critical")}
            ),
            "total_estimated_cost": sum(a["cost_implications"]["total_estimated_cost"] for a in assessments),
            "max_timeline_impact_days": max(a["regulatory_timeline_impact"] for a in assessments),
        }
