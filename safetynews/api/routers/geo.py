"""
Geo-processing endpoints.

POST /api/geo-process          - queue a GeoAgent job (202)
GET  /api/geo-process/{job_id} - job status, result or error
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from safetynews.api.deps import get_geo_queue
from safetynews.schemas.api import GeoProcessRequest
from safetynews.services.geo_tasks import GeoTaskQueue

router = APIRouter(prefix="/api/geo-process", tags=["geo"])


@router.post("", status_code=202)
async def submit_geo_job(
    body: GeoProcessRequest,
    wait: bool = Query(default=False, description="Block until the job finishes"),
    queue: GeoTaskQueue = Depends(get_geo_queue),
):
    job = queue.submit(body.query, body.searchResults)
    if wait:
        await job.wait()
    return job.to_dict()


@router.get("/{job_id}")
async def get_geo_job(job_id: str, queue: GeoTaskQueue = Depends(get_geo_queue)):
    job = queue.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()
