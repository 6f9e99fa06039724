"""
Search endpoint.

POST /api/search - SearchAgent round; schedules background geo-processing
"""

from fastapi import APIRouter, Depends

from safetynews.api.deps import get_search_agent
from safetynews.schemas.api import SearchRequest
from safetynews.services.agents import SearchAgent

router = APIRouter(prefix="/api", tags=["search"])


@router.post("/search")
async def search(body: SearchRequest, agent: SearchAgent = Depends(get_search_agent)):
    """Answer, flattened search results, per-call summaries and the geo job id."""
    return await agent.search(body.query)
