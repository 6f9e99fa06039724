"""
Risk Assessment endpoint.

GET /api/risk?area=parkhurst             - place name via the gazetteer
GET /api/risk?lng=28.0093&lat=-26.1414   - explicit point
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from safetynews.api.deps import get_risk_engine
from safetynews.engine.risk_engine import RiskAssessmentEngine

router = APIRouter(prefix="/api/risk", tags=["risk-engine"])


@router.get("")
async def assess_area_risk(
    area: Optional[str] = Query(default=None, min_length=1),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    radius_km: Optional[float] = Query(default=None, gt=0, le=500),
    window_hours: Optional[float] = Query(default=None, gt=0, le=24 * 365),
    engine: RiskAssessmentEngine = Depends(get_risk_engine),
):
    """Weighted six-factor assessment with trend and recommendations."""
    if lng is not None and lat is not None:
        target = (lng, lat)
    elif area is not None:
        target = area
    else:
        raise HTTPException(status_code=400, detail="Provide either area or both lng and lat")
    return engine.assess(target, radius_km, window_hours).to_dict()
