"""
SearchAgent and GeoAgent.

SearchAgent answers a user query from the local crime data and hands the
raw results to the geo task queue. GeoAgent turns those results into
geolocated incidents: geocode + extract via the decision service, then
IncidentAssembler, then the store.
"""

import json
from typing import TYPE_CHECKING, Optional

import structlog

from safetynews.db.store import IncidentStore
from safetynews.pipeline.assembler import IncidentAssembler
from safetynews.services.orchestrator import ToolOrchestrator
from safetynews.tools import EXTRACT_TOOL, GEOCODE_TOOL, SEARCH_TOOL

if TYPE_CHECKING:
    from safetynews.services.geo_tasks import GeoTaskQueue

logger = structlog.get_logger(__name__)

SEARCH_SYSTEM_PROMPT = """You are a SearchAgent that helps users find crime and safety information. Your task is to:

1. Use the search_local_crime_data tool to find recent safety incidents for the user's query
2. Analyze the search results to provide a helpful summary with specific incident counts and types
3. Return both the summary and the raw search results

IMPORTANT: You MUST use the search_local_crime_data tool to get current information from our local crime database."""

SEARCH_SUMMARY_PROMPT = (
    "You are a SearchAgent. Analyze the search results and provide a helpful "
    "summary of the safety information found."
)

GEO_SYSTEM_PROMPT = """You are a GeoAgent that converts safety news into structured, geolocated data. Your tasks:

1. Use the geocode_location tool to get coordinates for locations mentioned
2. Use the extract_incident_data tool to analyze news content
3. Create structured incident objects based on the tool results

You have access to these tools:
- geocode_location: Convert location names to coordinates
- extract_incident_data: Extract crime type, severity, keywords from news text

IMPORTANT: You MUST use the tools to get accurate data. Do not generate coordinates or incident data without using the tools first."""

GEO_FINAL_PROMPT = """Based on the tool results, create an array of SafetyIncident objects. Each incident must have:
- datetime (ISO format)
- coordinates (GeoJSON Point with [lng, lat])
- type (one of the 6 crime categories)
- newsID (unique identifier)
- severity (1-5)
- keywords (array)
- summary (max 100 chars)

Return ONLY a JSON array of incidents."""


def search_user_message(query: str) -> str:
    return f'Please search for safety and crime information about: "{query}"'


def geo_user_message(query: str, search_results: list) -> str:
    return (
        "Process this safety query and search results into geolocated incident objects:\n\n"
        f'Query: "{query}"\n'
        f"Search Results: {json.dumps(search_results, indent=2)}\n\n"
        "Use the geocode_location tool for the location in the query, and "
        "extract_incident_data tool for each search result to create structured incident data."
    )


class SearchAgent:
    def __init__(self, orchestrator: ToolOrchestrator, geo_queue: Optional["GeoTaskQueue"] = None):
        self.orchestrator = orchestrator
        self.geo_queue = geo_queue

    async def search(self, query: str) -> dict:
        outcome = await self.orchestrator.run(
            search_user_message(query),
            SEARCH_SYSTEM_PROMPT,
            [SEARCH_TOOL],
            final_system_prompt=SEARCH_SUMMARY_PROMPT,
        )
        results = [
            item
            for payload in outcome.successful(SEARCH_TOOL)
            if isinstance(payload.get("results"), list)
            for item in payload["results"]
        ]

        job_id = None
        if self.geo_queue is not None:
            job_id = self.geo_queue.submit(query, results).job_id

        logger.info(
            "search_completed",
            query=query,
            results=len(results),
            run_id=outcome.run.run_id,
            geo_job_id=job_id,
        )
        return {
            "answer": outcome.answer,
            "results": results,
            "toolCalls": outcome.tool_call_summaries,
            "geoJobId": job_id,
        }


class GeoAgent:
    def __init__(
        self,
        orchestrator: ToolOrchestrator,
        store: IncidentStore,
        assembler: Optional[IncidentAssembler] = None,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.assembler = assembler or IncidentAssembler()

    async def process(self, query: str, search_results: list) -> dict:
        outcome = await self.orchestrator.run(
            geo_user_message(query, search_results),
            GEO_SYSTEM_PROMPT,
            [GEOCODE_TOOL, EXTRACT_TOOL],
            final_system_prompt=GEO_FINAL_PROMPT,
        )
        assembly = self.assembler.assemble_from_tool_results(outcome.results, query)
        await self.store.extend(assembly.incidents)

        logger.info(
            "geo_processing_completed",
            query=query,
            incidents=len(assembly.incidents),
            rejected=len(assembly.rejected),
            used_fallback=assembly.used_fallback,
        )
        return {
            "success": True,
            "incidentsGenerated": len(assembly.incidents),
            "rejectedRecords": len(assembly.rejected),
            "usedFallback": assembly.used_fallback,
            "toolExecutions": outcome.tool_call_summaries,
        }
