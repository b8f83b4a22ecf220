"""
ROI model for platform-driven content operations.

Value is split into domestic (asset creation, rework, MLR cycles, labor,
administration) and global (translation savings through TM leverage,
regulatory review efficiency, quality) components, plus a per-asset view.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_ASSUMPTIONS: Dict[str, float] = {
    "annual_assets": 80,
    "email_count": 60,
    "dsa_count": 10,
    "website_count": 10,
    "localization_rate": 0.425,
    "email_localization_rate": 0.40,
    "dsa_localization_rate": 0.50,
    "website_localization_rate": 0.50,
    "avg_markets_per_asset": 3.0,
    "tm_leverage_rate": 0.30,
    "mlr_cycles_baseline": 3.2,
    "mlr_cycles_target": 1.5,
    "rework_rate_baseline": 0.60,
    "avg_hours_per_email_asset": 30,
    "avg_hours_per_dsa_asset": 200,
    "avg_hours_per_website_asset": 200,
    "avg_cost_per_email_asset": 500,
    "avg_cost_per_dsa_asset": 10000,
    "avg_cost_per_website_asset": 10000,
    "translation_cost_per_email_per_market": 2000,
    "translation_cost_per_dsa_per_market": 20000,
    "translation_cost_per_website_per_market": 20000,
    "opportunity_cost_per_week": 5000,
    "blended_labor_rate": 150,
    "regulatory_review_rate": 150,
}

SCENARIO_OVERRIDES: Dict[str, Dict[str, float]] = {
    "base": {},
    "conservative": {
        "email_localization_rate": 0.30,
        "dsa_localization_rate": 0.40,
        "website_localization_rate": 0.40,
        "localization_rate": 0.325,
        "avg_markets_per_asset": 3.0,
        "tm_leverage_rate": 0.20,
        "mlr_cycles_target": 2.0,
    },
    "aggressive": {
        "email_localization_rate": 0.50,
        "dsa_localization_rate": 0.60,
        "website_localization_rate": 0.60,
        "localization_rate": 0.525,
        "avg_markets_per_asset": 3.0,
        "tm_leverage_rate": 0.40,
        "mlr_cycles_target": 1.2,
    },
}

ASSET_TYPES = ("email", "dsa", "website")

BASELINE_EFFICIENCY = 0.10
TARGET_REWORK_RATE = 0.10
REWORK_COST_SHARE = 0.30
WEEKS_PER_MLR_CYCLE = 1
LABOR_TIME_REDUCTION = 0.40
ADMINISTRATIVE_MULTIPLIER = 2.5
REVIEW_HOURS_PER_MARKET = 4
REVIEW_TIME_REDUCTION = 0.40
QUALITY_VALUE_PER_ADAPTATION = 1500
# Per-asset rework share: (0.60 - 0.10) * 0.30
PER_ASSET_REWORK_SHARE = 0.15

TIMELINE_REDUCTIONS = [
    {"asset_type": "Email", "baseline_weeks": 4, "platform_weeks": 1, "reduction": 75},
    {"asset_type": "DSA", "baseline_weeks": 12, "platform_weeks": 3, "reduction": 75},
    {"asset_type": "Website", "baseline_weeks": 12, "platform_weeks": 3, "reduction": 75},
]


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def get_scenario_assumptions(scenario: str = "base") -> Dict[str, float]:
    if scenario not in SCENARIO_OVERRIDES:
        raise ValueError(f"Unknown scenario '{scenario}'. Use one of: {', '.join(SCENARIO_OVERRIDES)}")
    return {**DEFAULT_ASSUMPTIONS, **SCENARIO_OVERRIDES[scenario]}


def merge_assumptions(inputs: Optional[Dict[str, float]] = None, scenario: str = "base") -> Dict[str, float]:
    """Overlay *inputs* on the scenario assumptions. Unknown or negative inputs are rejected."""
    merged = get_scenario_assumptions(scenario)
    for key, value in (inputs or {}).items():
        if key not in merged:
            raise ValueError(f"Unknown ROI input '{key}'")
        if value is None or value < 0:
            raise ValueError(f"ROI input '{key}' must be a non-negative number")
        merged[key] = value
    return merged


def _localizations(a: Dict[str, float], asset: str) -> int:
    return round_half_up(a[f"{asset}_count"] * a[f"{asset}_localization_rate"])


def calculate_domestic_value(a: Dict[str, float]) -> Dict[str, Any]:
    creation_cost = {asset: a[f"{asset}_count"] * a[f"avg_cost_per_{asset}_asset"] for asset in ASSET_TYPES}

    baseline_savings = sum(cost * BASELINE_EFFICIENCY for cost in creation_cost.values())

    rework_reduction = a["rework_rate_baseline"] - TARGET_REWORK_RATE
    rework_elimination = sum(cost * rework_reduction * REWORK_COST_SHARE for cost in creation_cost.values())

    cycles_saved = a["mlr_cycles_baseline"] - a["mlr_cycles_target"]
    weeks_saved = a["annual_assets"] * cycles_saved * WEEKS_PER_MLR_CYCLE
    mlr_cycle_reduction = weeks_saved * a["opportunity_cost_per_week"]

    labor_efficiency = sum(
        a[f"{asset}_count"] * a[f"avg_hours_per_{asset}_asset"] * LABOR_TIME_REDUCTION * a["blended_labor_rate"]
        for asset in ASSET_TYPES
    )

    administrative = baseline_savings * ADMINISTRATIVE_MULTIPLIER

    components = {
        "baseline_savings": baseline_savings,
        "rework_elimination": rework_elimination,
        "mlr_cycle_reduction": mlr_cycle_reduction,
        "labor_efficiency": labor_efficiency,
        "administrative": administrative,
    }
    return {"total": sum(components.values()), "components": components}


def calculate_global_value(a: Dict[str, float]) -> Dict[str, Any]:
    localized = {asset: _localizations(a, asset) for asset in ASSET_TYPES}
    total_localized = sum(localized.values())

    translation_savings = sum(
        localized[asset] * a["avg_markets_per_asset"]
        * a[f"translation_cost_per_{asset}_per_market"] * a["tm_leverage_rate"]
        for asset in ASSET_TYPES
    )

    adaptations = total_localized * a["avg_markets_per_asset"]
    regulatory_efficiency = adaptations * REVIEW_HOURS_PER_MARKET * REVIEW_TIME_REDUCTION * a["regulatory_review_rate"]
    quality_improvements = adaptations * QUALITY_VALUE_PER_ADAPTATION

    components = {
        "translation_savings": translation_savings,
        "regulatory_efficiency": regulatory_efficiency,
        "quality_improvements": quality_improvements,
    }
    return {"total": sum(components.values()), "components": components, "localized_assets": localized}


def calculate_by_asset_type(a: Dict[str, float]) -> Dict[str, Dict[str, float]]:
    breakdown = {}
    for asset in ASSET_TYPES:
        cost = a[f"avg_cost_per_{asset}_asset"]
        domestic = (
            cost * BASELINE_EFFICIENCY
            + cost * PER_ASSET_REWORK_SHARE
            + a[f"avg_hours_per_{asset}_asset"] * LABOR_TIME_REDUCTION * a["blended_labor_rate"]
        )
        count = a[f"{asset}_count"]
        localized = _localizations(a, asset)
        if count > 0 and localized > 0:
            global_value = (
                localized * a["avg_markets_per_asset"]
                * a[f"translation_cost_per_{asset}_per_market"] * a["tm_leverage_rate"]
            ) / count
        else:
            global_value = 0.0
        breakdown[asset] = {"domestic": domestic, "global": global_value, "total": domestic + global_value}
    return breakdown


def calculate_roi(inputs: Optional[Dict[str, float]] = None, scenario: str = "base") -> Dict[str, Any]:
    """Full ROI result for *inputs* layered over the *scenario* assumptions."""
    assumptions = merge_assumptions(inputs, scenario)
    domestic = calculate_domestic_value(assumptions)
    global_value = calculate_global_value(assumptions)
    total = domestic["total"] + global_value["total"]
    logger.info("ROI calculated: scenario=%s total=%s", scenario, format_currency(total))
    return {
        "scenario": scenario,
        "total_value": total,
        "total_value_formatted": format_currency(total),
        "domestic": domestic,
        "global": global_value,
        "by_asset_type": calculate_by_asset_type(assumptions),
        "timeline_reductions": [dict(row) for row in TIMELINE_REDUCTIONS],
        "assumptions": assumptions,
        "calculated_at": datetime.now(timezone.utc).isoformat(),
    }


def compare_scenarios(inputs: Optional[Dict[str, float]] = None) -> List[Dict[str, Any]]:
    rows = []
    for scenario in SCENARIO_OVERRIDES:
        result = calculate_roi(inputs, scenario)
        rows.append(
            {
                "scenario": scenario,
                "total_value": result["total_value"],
                "domestic_value": result["domestic"]["total"],
                "global_value": result["global"]["total"],
                "total_value_formatted": result["total_value_formatted"],
            }
        )
    return rows


def format_currency(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    if value >= 1000:
        return f"${value / 1000:.0f}K"
    return f"${round_half_up(value):,}"


def format_percentage(value: float) -> str:
    return f"{round_half_up(value)}%"
