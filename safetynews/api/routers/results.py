"""
Latest results endpoint.

GET /api/results/latest - newest saved batch (results file, or the last
batch appended in this process for non-file backends)
"""

import asyncio

from fastapi import APIRouter, Depends

from safetynews.api.deps import get_store
from safetynews.db.persistence import JsonResultsPersistence
from safetynews.db.store import IncidentStore

router = APIRouter(prefix="/api/results", tags=["results"])


@router.get("/latest")
async def latest_results(store: IncidentStore = Depends(get_store)):
    if isinstance(store.persistence, JsonResultsPersistence):
        latest = await asyncio.to_thread(store.persistence.latest)
        if latest is None:
            return {"incidents": []}
        timestamp, records = latest
        return {"incidents": records, "timestamp": timestamp, "totalIncidents": len(records)}

    batch = store.latest_batch()
    if batch is None:
        return {"incidents": []}
    appended_at, incidents = batch
    return {
        "incidents": [i.to_record() for i in incidents],
        "timestamp": appended_at.isoformat(),
        "totalIncidents": len(incidents),
    }
