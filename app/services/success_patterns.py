"""
Success pattern detection over stored content performance data.

Three passes run per brand: element combinations (tone, CTA, complexity),
audience segments with above-average engagement, and weekday effects over
the last 90 days. Detected patterns are upserted by (brand_id, pattern_name).
"""
from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import (
    ContentElementPerformance,
    PerformanceAttribution,
    SuccessPattern,
    ValidationStatus,
)

logger = logging.getLogger(__name__)

ELEMENT_MIN_SCORE = 20
ELEMENT_MIN_USAGE = 1
ELEMENT_MIN_LIFT = 5
ELEMENT_BASELINE = 50

AUDIENCE_MIN_SAMPLES = 5
AUDIENCE_MIN_LIFT = 5

TEMPORAL_WINDOW_DAYS = 90
TEMPORAL_MIN_SAMPLES = 10
TEMPORAL_MIN_DAY_SAMPLES = 3
TEMPORAL_MIN_LIFT = 5

VALIDATED_CONFIDENCE = 75
USABLE_CONFIDENCE = 60

# Sunday first, matching the day_of_week stored in pattern rules
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def calculate_confidence(sample_size: int, lift: float) -> int:
    """Up to 50 points for sample size (saturating at 50) plus 50 for |lift| (saturating at 30)."""
    size_score = min(sample_size / 50, 1) * 50
    lift_score = min(abs(lift) / 30, 1) * 50
    return round(size_score + lift_score)


def _day_of_week(day: date) -> int:
    return (day.weekday() + 1) % 7


@dataclasses.dataclass
class DetectedPattern:
    pattern_name: str
    pattern_type: str
    pattern_description: str
    pattern_rules: Dict[str, Any]
    sample_size: int
    avg_performance_lift: float
    confidence_score: int
    applicable_audiences: List[str]
    applicable_channels: List[str]
    therapeutic_context: Optional[str] = None

    @property
    def validation_status(self) -> ValidationStatus:
        if self.confidence_score >= VALIDATED_CONFIDENCE:
            return ValidationStatus.VALIDATED
        return ValidationStatus.DISCOVERED


def _combine(first: ContentElementPerformance, second: ContentElementPerformance,
             name: str, description: str, channels: List[str]) -> Optional[DetectedPattern]:
    lift = (first.avg_performance_score + second.avg_performance_score) / 2 - ELEMENT_BASELINE
    if lift <= ELEMENT_MIN_LIFT:
        return None
    sample = min(first.usage_count, second.usage_count)
    return DetectedPattern(
        pattern_name=name,
        pattern_type="element_combination",
        pattern_description=description.format(lift=lift),
        pattern_rules={
            "elements": [
                {"type": first.element_type, "value": first.element_value},
                {"type": second.element_type, "value": second.element_value},
            ],
            "min_lift": lift,
        },
        sample_size=sample,
        avg_performance_lift=lift,
        confidence_score=calculate_confidence(sample, lift),
        applicable_audiences=[],
        applicable_channels=channels,
    )


class SuccessPatternService:
    """Detects, stores and serves a brand's success patterns."""

    async def _top_elements(self, db: AsyncSession, brand_id: int, element_type: str) -> List[ContentElementPerformance]:
        result = await db.execute(
            select(ContentElementPerformance)
            .where(
                ContentElementPerformance.brand_id == brand_id,
                ContentElementPerformance.element_type == element_type,
                ContentElementPerformance.avg_performance_score >= ELEMENT_MIN_SCORE,
                ContentElementPerformance.usage_count >= ELEMENT_MIN_USAGE,
            )
            .order_by(ContentElementPerformance.id)
        )
        return list(result.scalars().all())

    async def detect_element_combinations(self, db: AsyncSession, brand_id: int) -> List[DetectedPattern]:
        tones = await self._top_elements(db, brand_id, "tone")
        ctas = await self._top_elements(db, brand_id, "cta_type")
        complexities = await self._top_elements(db, brand_id, "complexity")

        patterns: List[DetectedPattern] = []
        for tone in tones:
            for cta in ctas:
                found = _combine(
                    tone, cta,
                    f"{tone.element_value} Tone + {cta.element_value} CTA",
                    f"Combining {tone.element_value} tone with {cta.element_value} CTA drives {{lift:.1f}}% performance lift",
                    ["email", "web"],
                )
                if found:
                    patterns.append(found)
        for complexity in complexities:
            for tone in tones:
                found = _combine(
                    complexity, tone,
                    f"{complexity.element_value} Complexity + {tone.element_value} Tone",
                    f"{complexity.element_value} complexity content with {tone.element_value} tone "
                    "performs {lift:.1f}% above baseline",
                    ["email", "web", "rep_presentation"],
                )
                if found:
                    patterns.append(found)
        return patterns

    async def detect_audience_matches(self, db: AsyncSession, brand_id: int) -> List[DetectedPattern]:
        result = await db.execute(
            select(PerformanceAttribution.audience_segment, PerformanceAttribution.engagement_rate).where(
                PerformanceAttribution.brand_id == brand_id,
                PerformanceAttribution.audience_segment.isnot(None),
                PerformanceAttribution.engagement_rate.isnot(None),
            )
        )
        groups: Dict[str, List[float]] = defaultdict(list)
        for segment, rate in result.all():
            groups[segment].append(rate)

        averages = {
            segment: sum(values) / len(values)
            for segment, values in groups.items()
            if len(values) >= AUDIENCE_MIN_SAMPLES
        }
        if not averages:
            return []
        overall = sum(averages.values()) / len(averages)
        if overall <= 0:
            return []

        patterns: List[DetectedPattern] = []
        for segment, avg in averages.items():
            lift = (avg - overall) / overall * 100
            if lift <= AUDIENCE_MIN_LIFT:
                continue
            sample = len(groups[segment])
            patterns.append(
                DetectedPattern(
                    pattern_name=f"High Engagement: {segment}",
                    pattern_type="audience_match",
                    pattern_description=f"{segment} audience shows {lift:.1f}% higher engagement than average",
                    pattern_rules={"target_audience": segment, "min_engagement_lift": lift},
                    sample_size=sample,
                    avg_performance_lift=lift,
                    confidence_score=calculate_confidence(sample, lift),
                    applicable_audiences=[segment],
                    applicable_channels=["email", "web", "rep_presentation"],
                )
            )
        return patterns

    async def detect_temporal(self, db: AsyncSession, brand_id: int, today: Optional[date] = None) -> List[DetectedPattern]:
        since = (today or datetime.now(timezone.utc).date()) - timedelta(days=TEMPORAL_WINDOW_DAYS)
        result = await db.execute(
            select(PerformanceAttribution.measurement_date, PerformanceAttribution.engagement_rate).where(
                PerformanceAttribution.brand_id == brand_id,
                PerformanceAttribution.measurement_date >= since,
            )
        )
        rows = result.all()
        if len(rows) < TEMPORAL_MIN_SAMPLES:
            return []

        totals: Dict[int, List[float]] = defaultdict(list)
        for measured, rate in rows:
            totals[_day_of_week(measured)].append(rate or 0.0)

        averages = {day: sum(v) / len(v) for day, v in totals.items()}
        overall = sum(averages.values()) / len(averages)
        if overall <= 0:
            return []

        patterns: List[DetectedPattern] = []
        for day in sorted(averages):
            lift = (averages[day] - overall) / overall * 100
            count = len(totals[day])
            if abs(lift) <= TEMPORAL_MIN_LIFT or count < TEMPORAL_MIN_DAY_SAMPLES:
                continue
            peak = lift > 0
            patterns.append(
                DetectedPattern(
                    pattern_name=f"{DAY_NAMES[day]} {'Peak' if peak else 'Low'} Performance",
                    pattern_type="temporal",
                    pattern_description=(
                        f"Content sent on {DAY_NAMES[day]} shows {abs(lift):.1f}% "
                        f"{'higher' if peak else 'lower'} engagement"
                    ),
                    pattern_rules={"day_of_week": day, "expected_lift": lift},
                    sample_size=count,
                    avg_performance_lift=lift,
                    confidence_score=calculate_confidence(count, abs(lift)),
                    applicable_audiences=[],
                    applicable_channels=["email"],
                )
            )
        return patterns

    async def save_patterns(self, db: AsyncSession, brand_id: int, patterns: List[DetectedPattern]) -> List[SuccessPattern]:
        """Upsert on (brand_id, pattern_name). Retired patterns keep their retired status."""
        saved: List[SuccessPattern] = []
        for pattern in patterns:
            result = await db.execute(
                select(SuccessPattern).where(
                    SuccessPattern.brand_id == brand_id,
                    SuccessPattern.pattern_name == pattern.pattern_name,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = SuccessPattern(brand_id=brand_id, pattern_name=pattern.pattern_name)
                db.add(row)

            row.pattern_type = pattern.pattern_type
            row.pattern_description = pattern.pattern_description
            row.pattern_rules = pattern.pattern_rules
            row.sample_size = pattern.sample_size
            row.avg_performance_lift = pattern.avg_performance_lift
            row.confidence_score = pattern.confidence_score
            row.applicable_audiences = pattern.applicable_audiences
            row.applicable_channels = pattern.applicable_channels
            row.therapeutic_context = pattern.therapeutic_context
            if row.retired_at is None:
                row.validation_status = pattern.validation_status
            saved.append(row)

        await db.flush()
        return saved

    async def run_detection(self, db: AsyncSession, brand_id: int) -> Dict[str, Any]:
        """Run all three passes, store the results and report per-pass counts."""
        elements = await self.detect_element_combinations(db, brand_id)
        audiences = await self.detect_audience_matches(db, brand_id)
        temporal = await self.detect_temporal(db, brand_id)

        saved = await self.save_patterns(db, brand_id, elements + audiences + temporal)
        logger.info(
            "Pattern detection brand=%d: %d element, %d audience, %d temporal",
            brand_id, len(elements), len(audiences), len(temporal),
        )
        return {
            "detected": len(saved),
            "element_combination": len(elements),
            "audience_match": len(audiences),
            "temporal": len(temporal),
            "patterns": saved,
        }

    async def get_validated_patterns(self, db: AsyncSession, brand_id: int, limit: int = 20) -> List[SuccessPattern]:
        result = await db.execute(
            select(SuccessPattern)
            .where(
                SuccessPattern.brand_id == brand_id,
                SuccessPattern.validation_status.in_([ValidationStatus.VALIDATED, ValidationStatus.DISCOVERED]),
                SuccessPattern.retired_at.is_(None),
                SuccessPattern.confidence_score >= USABLE_CONFIDENCE,
            )
            .order_by(SuccessPattern.avg_performance_lift.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def retire_pattern(self, db: AsyncSession, pattern: SuccessPattern, reason: Optional[str] = None) -> SuccessPattern:
        pattern.validation_status = ValidationStatus.RETIRED
        pattern.retired_at = datetime.now(timezone.utc)
        pattern.retirement_reason = reason
        await db.flush()
        logger.info("Retired pattern id=%d (%s)", pattern.id, pattern.pattern_name)
        return pattern
