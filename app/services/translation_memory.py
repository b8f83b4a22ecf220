"""
Translation memory engine: exact, fuzzy and keyword-based segment matching.

Public API
----------
TranslationMemoryService.search(db, brand_id, source_text, source_lang, target_lang, options) -> dict
TranslationMemoryService.add_to_tm(db, brand_id, ...)                                      -> TranslationMemoryEntry
TranslationMemoryService.update_usage(db, brand_id, entry_id)                             -> TranslationMemoryEntry
TranslationMemoryService.get_best_matches(db, brand_id, texts, source_lang, target_lang)  -> Dict[str, List[dict]]
"""
from __future__ import annotations

import dataclasses
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import TranslationMemoryEntry
from app.utils.helpers import extract_keywords, keyword_overlap, levenshtein_distance, match_percentage

logger = logging.getLogger(__name__)

# Rows scanned per fuzzy / semantic pass
CANDIDATE_LIMIT = 100


@dataclasses.dataclass
class TMSearchOptions:
    min_match_percentage: int = settings.TM_MIN_MATCH
    max_results: int = settings.TM_MAX_RESULTS
    include_fuzzy: bool = True
    include_semantic: bool = True
    domain_filter: Optional[str] = None
    quality_threshold: float = settings.TM_QUALITY_THRESHOLD


@dataclasses.dataclass
class TMMatch:
    """One translation memory entry scored against a source segment."""

    id: int
    source_text: str
    target_text: str
    source_language: str
    target_language: str
    match_percentage: int
    leverage_percentage: float
    confidence_score: float
    quality_score: float
    context_similarity: float
    domain_category: str
    usage_count: int
    match_type: str  # exact, fuzzy, semantic
    edit_distance: int
    last_used: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _to_match(entry: TranslationMemoryEntry, pct: int, match_type: str, edit_distance: int) -> TMMatch:
    confidence = entry.confidence_level or 0.0
    return TMMatch(
        id=entry.id,
        source_text=entry.source_text,
        target_text=entry.target_text,
        source_language=entry.source_language,
        target_language=entry.target_language,
        match_percentage=pct,
        leverage_percentage=confidence * 100 or pct,
        confidence_score=confidence,
        quality_score=entry.quality_score or 0.0,
        context_similarity=0.8 if entry.cultural_adaptations else 0.5,
        domain_category=entry.domain_context or "general",
        usage_count=entry.usage_count or 0,
        match_type=match_type,
        edit_distance=edit_distance,
        last_used=entry.last_used,
    )


def calculate_quality_score(source_text: str, target_text: str) -> float:
    """Heuristic quality of a new segment pair from length ratio and final punctuation."""
    ratio = len(target_text) / len(source_text) if source_text else 0.0
    score = 0.8
    if ratio < 0.7 or ratio > 1.5:
        score -= 0.2
    if re.search(r"[.!?]$", target_text):
        score += 0.1
    return round(max(0.0, min(1.0, score)), 2)


class TranslationMemoryService:
    """Brand-scoped translation memory lookups and maintenance."""

    @staticmethod
    def _pair_filter(brand_id: int, source_lang: str, target_lang: str) -> tuple:
        return (
            TranslationMemoryEntry.brand_id == brand_id,
            TranslationMemoryEntry.source_language == source_lang,
            TranslationMemoryEntry.target_language == target_lang,
        )

    async def _exact_entries(
        self, db: AsyncSession, brand_id: int, source_text: str, source_lang: str, target_lang: str
    ) -> List[TranslationMemoryEntry]:
        result = await db.execute(
            select(TranslationMemoryEntry)
            .where(
                *self._pair_filter(brand_id, source_lang, target_lang),
                TranslationMemoryEntry.source_text == source_text,
            )
            .order_by(TranslationMemoryEntry.id)
            .limit(5)
        )
        return list(result.scalars().all())

    async def _candidates(
        self, db: AsyncSession, brand_id: int, source_lang: str, target_lang: str
    ) -> List[TranslationMemoryEntry]:
        """Fuzzy and semantic scan set, capped at CANDIDATE_LIMIT rows."""
        result = await db.execute(
            select(TranslationMemoryEntry)
            .where(*self._pair_filter(brand_id, source_lang, target_lang))
            .order_by(TranslationMemoryEntry.id)
            .limit(CANDIDATE_LIMIT)
        )
        return list(result.scalars().all())

    async def search(
        self,
        db: AsyncSession,
        brand_id: int,
        source_text: str,
        source_lang: str,
        target_lang: str,
        options: Optional[TMSearchOptions] = None,
    ) -> Dict[str, Any]:
        """
        Search the brand's memory for *source_text*.

        Returns ``{"matches", "search_stats", "recommendations"}``.
        """
        opts = options or TMSearchOptions()
        candidates = await self._candidates(db, brand_id, source_lang, target_lang)

        exact_entries = await self._exact_entries(db, brand_id, source_text, source_lang, target_lang)
        exact = [_to_match(e, 100, "exact", 0) for e in exact_entries]

        fuzzy: List[TMMatch] = []
        semantic: List[TMMatch] = []
        keywords = extract_keywords(source_text) if opts.include_semantic else []

        for entry in candidates:
            if entry.source_text == source_text:
                continue
            distance = levenshtein_distance(source_text, entry.source_text)
            if opts.include_fuzzy:
                pct = match_percentage(source_text, entry.source_text)
                if pct >= opts.min_match_percentage:
                    fuzzy.append(_to_match(entry, pct, "fuzzy", distance))
            if opts.include_semantic:
                overlap = keyword_overlap(keywords, entry.source_text)
                if overlap >= 0.5:
                    semantic.append(_to_match(entry, round(overlap * 100), "semantic", distance))

        fuzzy = sorted(fuzzy, key=lambda m: -m.match_percentage)[:10]
        semantic = sorted(semantic, key=lambda m: -m.match_percentage)[:5]

        # An entry found by several passes keeps its highest-scoring match
        best_by_id: Dict[int, TMMatch] = {}
        for match in exact + fuzzy + semantic:
            kept = best_by_id.get(match.id)
            if kept is None or match.match_percentage > kept.match_percentage:
                best_by_id[match.id] = match

        ranked = sorted(
            best_by_id.values(),
            key=lambda m: (-m.match_percentage, -m.quality_score, -m.usage_count, -m.confidence_score),
        )
        filtered = [
            m for m in ranked
            if m.quality_score >= opts.quality_threshold
            and (not opts.domain_filter or m.domain_category == opts.domain_filter)
        ]
        final = filtered[: opts.max_results]

        return {
            "matches": [m.to_dict() for m in final],
            "search_stats": self._search_stats(final),
            "recommendations": self._recommendations(final),
        }

    @staticmethod
    def _search_stats(matches: List[TMMatch]) -> Dict[str, Any]:
        avg_conf = sum(m.confidence_score for m in matches) / len(matches) if matches else 0.0
        return {
            "total_matches": len(matches),
            "exact_matches": sum(1 for m in matches if m.match_type == "exact"),
            "fuzzy_matches": sum(1 for m in matches if m.match_type == "fuzzy"),
            "semantic_matches": sum(1 for m in matches if m.match_type == "semantic"),
            "average_confidence": round(avg_conf, 2),
            "suggested_leverage": round(max((m.leverage_percentage for m in matches), default=0)),
        }

    @staticmethod
    def _recommendations(matches: List[TMMatch]) -> Dict[str, Any]:
        best = matches[0] if matches else None
        quality = [m for m in matches if m.quality_score >= 0.8]
        contextual = [m for m in matches if m.context_similarity >= 0.7]

        suggestions: List[str] = []
        if not matches:
            suggestions.append("No matches found. Consider adding this as a new TM entry after translation.")
        elif best.match_percentage < 90:
            suggestions.append("Best match is below 90%. Review translation carefully for accuracy.")
        if len(quality) < len(matches) / 2:
            suggestions.append("Many matches have low quality scores. Consider TM cleanup.")
        if matches and not contextual:
            suggestions.append("No contextual matches found. Verify domain relevance.")

        return {
            "best_match": best.to_dict() if best else None,
            "quality_matches": [m.to_dict() for m in quality],
            "contextual_matches": [m.to_dict() for m in contextual],
            "improvement_suggestions": suggestions,
        }

    async def add_to_tm(
        self,
        db: AsyncSession,
        brand_id: int,
        source_text: str,
        target_text: str,
        source_lang: str,
        target_lang: str,
        domain_context: Optional[str] = None,
        market: Optional[str] = None,
        project_id: Optional[int] = None,
        context_metadata: Optional[Dict[str, Any]] = None,
    ) -> TranslationMemoryEntry:
        """Store a new segment pair with a heuristic quality score."""
        entry = TranslationMemoryEntry(
            brand_id=brand_id,
            project_id=project_id,
            source_text=source_text,
            target_text=target_text,
            source_language=source_lang,
            target_language=target_lang,
            domain_context=domain_context or "general",
            market=market,
            cultural_adaptations=context_metadata or None,
            match_type="exact",
            quality_score=calculate_quality_score(source_text, target_text),
            confidence_level=0.85,
            usage_count=0,
        )
        db.add(entry)
        await db.flush()
        logger.info(
            "Added TM entry id=%d brand=%d %s->%s quality=%.2f",
            entry.id, brand_id, source_lang, target_lang, entry.quality_score,
        )
        return entry

    async def update_usage(
        self, db: AsyncSession, brand_id: int, entry_id: int
    ) -> Optional[TranslationMemoryEntry]:
        """Increment usage_count and stamp last_used; returns None if the entry is unknown."""
        result = await db.execute(
            select(TranslationMemoryEntry).where(
                TranslationMemoryEntry.id == entry_id,
                TranslationMemoryEntry.brand_id == brand_id,
            )
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            return None
        entry.usage_count = (entry.usage_count or 0) + 1
        entry.last_used = datetime.now(timezone.utc)
        await db.flush()
        return entry

    async def get_best_matches(
        self,
        db: AsyncSession,
        brand_id: int,
        source_texts: List[str],
        source_lang: str,
        target_lang: str,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Top 3 matches at 80% or better for each segment."""
        options = TMSearchOptions(min_match_percentage=80, max_results=3)
        results: Dict[str, List[Dict[str, Any]]] = {}
        for text in source_texts:
            found = await self.search(db, brand_id, text, source_lang, target_lang, options)
            results[text] = found["matches"]
        return results
