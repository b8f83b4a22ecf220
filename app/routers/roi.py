"""
ROI calculator endpoints.

GET  /api/roi/defaults    — default assumptions plus scenario overrides
POST /api/roi/calculate   — full ROI for inputs layered over a scenario
POST /api/roi/scenarios   — base / conservative / aggressive side by side
GET  /api/roi/scenarios   — same, with default inputs
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, status

from app.models.schemas import ROICalculateRequest
from app.services import roi_calculator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/defaults")
async def get_defaults() -> Dict[str, Any]:
    return {
        "assumptions": dict(roi_calculator.DEFAULT_ASSUMPTIONS),
        "scenarios": {name: dict(o) for name, o in roi_calculator.SCENARIO_OVERRIDES.items()},
        "timeline_reductions": [dict(row) for row in roi_calculator.TIMELINE_REDUCTIONS],
    }


@router.post("/calculate")
async def calculate(body: ROICalculateRequest) -> Dict[str, Any]:
    try:
        return roi_calculator.calculate_roi(body.inputs, body.scenario)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.get("/scenarios")
async def default_scenarios() -> List[Dict[str, Any]]:
    return roi_calculator.compare_scenarios()


@router.post("/scenarios")
async def compare_scenarios(body: ROICalculateRequest) -> List[Dict[str, Any]]:
    """Compare every scenario for the same inputs; ``scenario`` in the body is ignored."""
    try:
        return roi_calculator.compare_scenarios(body.inputs)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
