"""
Dataset evaluation endpoint.

POST /api/evaluate - score a saved results file ({"filename"}) or an
inline batch ({"incidents"})
"""

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException

from safetynews.api.deps import get_evaluator, get_store
from safetynews.config import settings
from safetynews.db.persistence import JsonResultsPersistence
from safetynews.db.store import IncidentStore
from safetynews.pipeline.evaluator import IncidentEvaluator
from safetynews.schemas.api import EvaluateRequest

router = APIRouter(prefix="/api", tags=["evaluate"])


def _results_reader(store: IncidentStore) -> JsonResultsPersistence:
    if isinstance(store.persistence, JsonResultsPersistence):
        return store.persistence
    return JsonResultsPersistence(settings.results_dir)


@router.post("/evaluate")
async def evaluate(
    body: EvaluateRequest,
    store: IncidentStore = Depends(get_store),
    evaluator: IncidentEvaluator = Depends(get_evaluator),
):
    if body.incidents is not None:
        return evaluator.evaluate(body.incidents, source="inline").to_dict()

    reader = _results_reader(store)
    try:
        records = await asyncio.to_thread(reader.read_batch, body.filename)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON file")
    if not isinstance(records, list):
        raise HTTPException(status_code=400, detail="Results file must contain a JSON array")

    return evaluator.evaluate(records, source=body.filename).to_dict()
