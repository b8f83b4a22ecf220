"""Tests for the ROI model and its endpoints."""
import pytest
from httpx import AsyncClient

from app.services import roi_calculator
from app.services.roi_calculator import (
    calculate_global_value,
    calculate_roi,
    compare_scenarios,
    format_currency,
    format_percentage,
    merge_assumptions,
)

BASE_TOTAL = 1_543_680


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

def test_base_scenario_totals():
    result = calculate_roi()

    domestic = result["domestic"]["components"]
    assert domestic["baseline_savings"] == pytest.approx(23_000)
    assert domestic["rework_elimination"] == pytest.approx(34_500)
    assert domestic["mlr_cycle_reduction"] == pytest.approx(680_000)
    assert domestic["labor_efficiency"] == pytest.approx(348_000)
    assert domestic["administrative"] == pytest.approx(57_500)
    assert result["domestic"]["total"] == pytest.approx(1_143_000)

    global_value = result["global"]
    assert global_value["localized_assets"] == {"email": 24, "dsa": 5, "website": 5}
    assert global_value["components"]["translation_savings"] == pytest.approx(223_200)
    assert global_value["components"]["regulatory_efficiency"] == pytest.approx(24_480)
    assert global_value["components"]["quality_improvements"] == pytest.approx(153_000)

    assert result["total_value"] == pytest.approx(BASE_TOTAL)
    assert result["total_value_formatted"] == "$1.5M"
    assert result["scenario"] == "base"


def test_per_asset_breakdown():
    email = calculate_roi()["by_asset_type"]["email"]
    assert email["domestic"] == pytest.approx(1925)
    assert email["global"] == pytest.approx(720)
    assert email["total"] == pytest.approx(2645)


def test_scenarios_side_by_side():
    rows = compare_scenarios()
    assert [r["scenario"] for r in rows] == ["base", "conservative", "aggressive"]
    totals = {r["scenario"]: r["total_value"] for r in rows}
    assert totals["conservative"] == pytest.approx(1_196_320)
    assert totals["base"] == pytest.approx(BASE_TOTAL)
    assert totals["aggressive"] == pytest.approx(1_842_240)
    assert rows[2]["total_value_formatted"] == "$1.8M"


def test_inputs_override_scenario():
    result = calculate_roi({"opportunity_cost_per_week": 0}, "base")
    assert result["domestic"]["components"]["mlr_cycle_reduction"] == 0
    assert result["assumptions"]["opportunity_cost_per_week"] == 0


def test_localized_counts_round_half_up():
    assumptions = merge_assumptions({"email_count": 5, "email_localization_rate": 0.5})
    assert calculate_global_value(assumptions)["localized_assets"]["email"] == 3


@pytest.mark.parametrize(
    "inputs, message",
    [
        ({"unknown_field": 1}, "Unknown ROI input 'unknown_field'"),
        ({"email_count": -1}, "ROI input 'email_count' must be a non-negative number"),
    ],
)
def test_invalid_inputs_rejected(inputs, message):
    with pytest.raises(ValueError) as exc_info:
        merge_assumptions(inputs)
    assert str(exc_info.value) == message


def test_unknown_scenario_rejected():
    with pytest.raises(ValueError, match="Unknown scenario"):
        roi_calculator.get_scenario_assumptions("wild")


@pytest.mark.parametrize(
    "value, expected",
    [(1_543_680, "$1.5M"), (25_000, "$25K"), (999.5, "$1,000"), (12.4, "$12")],
)
def test_format_currency(value, expected):
    assert format_currency(value) == expected


def test_format_percentage():
    assert format_percentage(72.5) == "73%"


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_calculate_endpoint(client: AsyncClient):
    resp = await client.post("/api/roi/calculate", json={})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_value"] == pytest.approx(BASE_TOTAL)
    assert len(data["timeline_reductions"]) == 3


@pytest.mark.asyncio
async def test_calculate_rejects_bad_input(client: AsyncClient):
    resp = await client.post("/api/roi/calculate", json={"inputs": {"unknown_field": 1}})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Unknown ROI input 'unknown_field'"

    resp = await client.post("/api/roi/calculate", json={"scenario": "wild"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_defaults_and_scenarios_endpoints(client: AsyncClient):
    resp = await client.get("/api/roi/defaults")
    assert resp.status_code == 200
    data = resp.json()
    assert data["assumptions"]["annual_assets"] == 80
    assert set(data["scenarios"]) == {"base", "conservative", "aggressive"}

    resp = await client.get("/api/roi/scenarios")
    assert [r["scenario"] for r in resp.json()] == ["base", "conservative", "aggressive"]

    resp = await client.post("/api/roi/scenarios", json={"inputs": {"opportunity_cost_per_week": 0}})
    assert resp.status_code == 200
    assert resp.json()[0]["domestic_value"] == pytest.approx(463_000)
