"""Incident read endpoints: filtered listing and store statistics."""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from safetynews.api.deps import get_store
from safetynews.db.store import IncidentStore

router = APIRouter(prefix="/api/incidents", tags=["incidents"])


@router.get("")
async def list_incidents(
    q: Optional[str] = Query(default=None, min_length=1),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    radius_km: float = Query(default=5.0, gt=0, le=500),
    since_hours: Optional[float] = Query(default=None, gt=0),
    limit: int = Query(default=50, ge=1, le=500),
    store: IncidentStore = Depends(get_store),
):
    incidents = store.matching(q) if q else store.all()
    if lng is not None and lat is not None:
        nearby = {id(i) for i in store.within_radius((lng, lat), radius_km)}
        incidents = [i for i in incidents if id(i) in nearby]
    if since_hours is not None:
        recent = {id(i) for i in store.since(timedelta(hours=since_hours))}
        incidents = [i for i in incidents if id(i) in recent]

    incidents.sort(key=lambda i: i.datetime, reverse=True)
    return {
        "incidents": [i.to_record() for i in incidents[:limit]],
        "total": len(incidents),
    }


@router.get("/stats")
async def incident_statistics(store: IncidentStore = Depends(get_store)):
    return store.statistics()
