"""
Localization complexity scoring.

Scores source content on four dimensions (text, cultural, technical, visual),
combines them into a weighted overall score and derives effort, timeline and
relative cost impact for a localization project.
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

WEIGHTS = {"text": 0.3, "cultural": 0.25, "technical": 0.25, "visual": 0.2}

# Sub-score bands used by the breakdown
PRIMARY_DRIVER_THRESHOLD = 50
SECONDARY_FACTOR_THRESHOLD = 25

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_ACRONYM_RE = re.compile(r"\b[A-Z]{2,}\b")
_TECHNICAL_RE = re.compile(r"\b\w*ology\b|\b\w*metric\b|\b\w*analysis\b", re.IGNORECASE)
_MEDICAL_RE = re.compile(
    r"\b(?:treatment|therapy|clinical|trial|study|efficacy|safety|dose|dosage|indication"
    r"|contraindication|adverse|side.effect|pharmaceutical|drug|medication|prescription"
    r"|FDA|approval|regulatory)\b",
    re.IGNORECASE,
)
_LEGAL_RE = re.compile(
    r"\b(?:compliance|regulation|regulatory|disclaimer|warning|contraindication|liability"
    r"|terms|conditions|agreement|consent|authorization)\b",
    re.IGNORECASE,
)

_CULTURAL_REFERENCES = [
    ("Holiday references", re.compile(r"holiday|christmas|easter|thanksgiving", re.IGNORECASE)),
    ("Sport references", re.compile(r"baseball|football|soccer|cricket", re.IGNORECASE)),
    ("Currency references", re.compile(r"dollar|cent|pound|euro|yen", re.IGNORECASE)),
]
_SENSITIVE_CONTENT = [
    ("Substance references", re.compile(r"alcohol|drinking|tobacco|smoking", re.IGNORECASE)),
    ("Religious content", re.compile(r"religion|religious|god|allah|buddha", re.IGNORECASE)),
    ("Political content", re.compile(r"political|politics|government", re.IGNORECASE)),
]
_MARKET_NOTES = {
    "china": "China: Complex regulatory environment, cultural sensitivities",
    "japan": "Japan: High cultural adaptation requirements",
    "middle east": "Middle East: Religious and cultural considerations",
    "india": "India: Multiple languages and cultural diversity",
}

_MITIGATIONS = {
    "text": "Create glossary and style guide",
    "cultural": "Engage local cultural consultants",
    "technical": "Develop technical specification templates",
    "visual": "Modularize visual templates",
}
_DIMENSION_LABELS = {
    "text": "Text complexity",
    "cultural": "Cultural adaptation needs",
    "technical": "Technical format complexity",
    "visual": "Visual and layout complexity",
}


def _get(content: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in content:
            return content[key]
    return None


def extract_text(content: Any) -> str:
    """Flatten plain text or a ``primary_content`` mapping into one string."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if not isinstance(content, dict):
        return str(content)

    primary = _get(content, "primary_content", "primaryContent")
    if not isinstance(primary, dict):
        return str(_get(content, "text", "body") or "")
    parts: List[str] = []
    for value in primary.values():
        if isinstance(value, str):
            parts.append(value)
        elif isinstance(value, dict) and (value.get("text") or value.get("content")):
            parts.append(str(value.get("text") or value.get("content")))
    return " ".join(parts).strip()


def readability_score(text: str) -> float:
    """Simplified readability: 100 minus twice the average sentence length (lower is harder)."""
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    words = text.split()
    avg = len(words) / len(sentences) if sentences else 0
    return max(0.0, 100 - avg * 2)


def effort_multiplier(overall: int) -> float:
    if overall > 80:
        return 2.5
    if overall > 60:
        return 2.0
    if overall > 40:
        return 1.5
    if overall > 20:
        return 1.2
    return 1.0


def timeline_impact_days(overall: int, language_count: int) -> int:
    return round(round(overall / 10) * max(1, language_count / 3))


def cost_impact(overall: int) -> int:
    """Relative cost index, up to 80 for the most complex content."""
    return round(overall * 0.8)


@dataclasses.dataclass
class ComplexityScore:
    text_complexity_score: int
    cultural_complexity_score: int
    technical_complexity_score: int
    visual_complexity_score: int
    overall_complexity_score: int
    complexity_factors: Dict[str, List[str]]
    effort_multiplier: float
    timeline_impact_days: int
    cost_impact_percentage: int
    complexity_breakdown: Dict[str, List[str]]
    text_metrics: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class ComplexityScorer:
    """Deterministic localization complexity scoring."""

    def score(
        self,
        content: Any,
        target_markets: Optional[List[str]] = None,
        asset_type: str = "email",
        channels: Optional[List[str]] = None,
        language_count: Optional[int] = None,
    ) -> ComplexityScore:
        """
        Score *content* for localization into *target_markets*.

        *content* is plain text or a mapping with ``primary_content``,
        ``visual_elements`` and ``channel_specifications``. *language_count*
        defaults to the number of markets.
        """
        markets = list(target_markets or [])
        content_map = content if isinstance(content, dict) else {}
        text = extract_text(content)
        asset = (asset_type or "standard").lower()

        text_score, text_factors, text_metrics = self._text(text)
        cultural_score, cultural_factors = self._cultural(text, markets, content_map)
        technical_score, technical_factors = self._technical(asset, content_map, channels or [])
        visual_score, visual_factors = self._visual(asset, content_map)

        overall = round(
            text_score * WEIGHTS["text"]
            + cultural_score * WEIGHTS["cultural"]
            + technical_score * WEIGHTS["technical"]
            + visual_score * WEIGHTS["visual"]
        )
        languages = language_count if language_count is not None else len(markets)
        sub_scores = {
            "text": text_score,
            "cultural": cultural_score,
            "technical": technical_score,
            "visual": visual_score,
        }

        result = ComplexityScore(
            text_complexity_score=text_score,
            cultural_complexity_score=cultural_score,
            technical_complexity_score=technical_score,
            visual_complexity_score=visual_score,
            overall_complexity_score=overall,
            complexity_factors={
                "text_factors": text_factors,
                "cultural_factors": cultural_factors,
                "technical_factors": technical_factors,
                "visual_factors": visual_factors,
            },
            effort_multiplier=effort_multiplier(overall),
            timeline_impact_days=timeline_impact_days(overall, languages),
            cost_impact_percentage=cost_impact(overall),
            complexity_breakdown=self._breakdown(sub_scores),
            text_metrics=text_metrics,
        )
        logger.debug("Complexity overall=%d sub=%s", overall, sub_scores)
        return result

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    @staticmethod
    def _text(text: str):
        sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
        words = text.split()
        avg_sentence = len(words) / len(sentences) if sentences else 0.0
        technical = len(_ACRONYM_RE.findall(text)) + len(_TECHNICAL_RE.findall(text))
        medical = len(_MEDICAL_RE.findall(text))
        legal = len(_LEGAL_RE.findall(text))
        readability = readability_score(text)

        factors: List[str] = []
        if avg_sentence > 25:
            factors.append("Very long sentences (>25 words average)")
        elif avg_sentence > 18:
            factors.append("Long sentences (>18 words average)")
        if technical > 15:
            factors.append("High density of technical terms")
        elif technical > 8:
            factors.append("Moderate technical terminology")
        if medical > 10:
            factors.append("Heavy medical/pharmaceutical terminology")
        elif medical > 5:
            factors.append("Medical terminology present")
        if legal > 5:
            factors.append("Legal language complexity")
        if text and readability < 30:
            factors.append("Very difficult readability level")
        elif text and readability < 50:
            factors.append("Difficult readability level")

        score = 0
        if avg_sentence > 25:
            score += 30
        elif avg_sentence > 18:
            score += 20
        elif avg_sentence > 12:
            score += 10

        if technical > 15:
            score += 25
        elif technical > 8:
            score += 15
        elif technical > 3:
            score += 8

        if medical > 10:
            score += 20
        elif medical > 5:
            score += 12
        elif medical > 2:
            score += 6

        if text:
            if readability < 30:
                score += 20
            elif readability < 50:
                score += 12
            elif readability < 70:
                score += 5

        metrics = {
            "word_count": len(words),
            "avg_sentence_length": round(avg_sentence, 1),
            "technical_terms": technical,
            "medical_terms": medical,
            "legal_terms": legal,
            "readability_score": round(readability, 1),
        }
        return min(100, score), factors, metrics

    @staticmethod
    def _cultural(text: str, markets: List[str], content: Dict[str, Any]):
        references = [label for label, rx in _CULTURAL_REFERENCES if rx.search(text)]
        sensitive = [label for label, rx in _SENSITIVE_CONTENT if rx.search(text)]

        market_notes: List[str] = []
        for market in markets:
            note = _MARKET_NOTES.get(market.lower())
            if note:
                market_notes.append(note)
            elif len(markets) > 5 and "Multiple market complexity" not in market_notes:
                market_notes.append("Multiple market complexity")

        factors: List[str] = []
        if references:
            factors.append(f"Cultural references requiring adaptation: {', '.join(references)}")
        factors.extend(market_notes)

        visual = _get(content, "visual_elements", "visualElements") or {}
        colors = [str(c).lower() for c in (visual.get("colors") or [])] if isinstance(visual, dict) else []
        if "red" in colors:
            factors.append("Red color may have negative connotations in some cultures")
        if "white" in colors:
            factors.append("White color symbolism varies across cultures")

        if sensitive:
            factors.append(f"Culturally sensitive content: {', '.join(sensitive)}")

        score = len(references) * 10 + len(sensitive) * 15 + len(market_notes) * 5
        return min(100, score), factors

    @staticmethod
    def _technical(asset: str, content: Dict[str, Any], channels: List[str]):
        factors: List[str] = []
        score = 0
        if "interactive" in asset:
            factors.append("Interactive content requires specialized handling")
            score += 30
        if "video" in asset:
            factors.append("Video content requires dubbing/subtitling")
            score += 25
        if "animation" in asset:
            factors.append("Animated content requires frame-by-frame adaptation")
            score += 35

        specs = _get(content, "channel_specifications", "channelSpecifications")
        if not isinstance(specs, dict):
            specs = {c.lower(): True for c in channels}

        formats: List[str] = []
        if specs.get("digital"):
            formats.append("Digital format optimization required")
        if specs.get("print"):
            formats.append("Print format adaptation needed")
        if specs.get("mobile"):
            formats.append("Mobile-specific formatting required")

        channel_notes: List[str] = []
        if len(specs) > 5:
            channel_notes.append("Multiple channel optimization required")
        social = specs.get("social")
        social_variants = len(social) if isinstance(social, (list, tuple)) else sum(1 for k in specs if k.startswith("social"))
        if social_variants > 3:
            channel_notes.append("Multiple social media platform variants")

        factors.extend(formats)
        factors.extend(channel_notes)
        score += len(formats) * 8 + len(channel_notes) * 6
        return min(100, score), factors

    @staticmethod
    def _visual(asset: str, content: Dict[str, Any]):
        factors: List[str] = []
        visual = _get(content, "visual_elements", "visualElements") or {}
        images = visual.get("images") if isinstance(visual, dict) else None
        if isinstance(images, list):
            if len(images) > 10:
                factors.append("High number of images requiring text extraction")
            elif len(images) > 5:
                factors.append("Multiple images with embedded text")

        primary = _get(content, "primary_content", "primaryContent")
        if (isinstance(primary, dict) and primary.get("infographics")) or "infographic" in asset:
            factors.append("Complex infographic requiring redesign")

        layout: List[str] = []
        if isinstance(primary, dict) and len(primary) > 10:
            layout.append("Complex multi-element layout")
        if "brochure" in asset or "flyer" in asset:
            layout.append("Print layout requires text expansion consideration")
        factors.extend(layout)

        return min(100, len(layout) * 12), factors

    @staticmethod
    def _breakdown(sub_scores: Dict[str, int]) -> Dict[str, List[str]]:
        primary = [d for d, s in sub_scores.items() if s > PRIMARY_DRIVER_THRESHOLD]
        secondary = [
            d for d, s in sub_scores.items()
            if SECONDARY_FACTOR_THRESHOLD <= s <= PRIMARY_DRIVER_THRESHOLD
        ]
        return {
            "primary_drivers": [_DIMENSION_LABELS[d] for d in primary],
            "secondary_factors": [_DIMENSION_LABELS[d] for d in secondary],
            "mitigation_strategies": [_MITIGATIONS[d] for d in primary + secondary],
        }
