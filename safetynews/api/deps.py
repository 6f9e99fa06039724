"""
Service container and FastAPI dependencies.

Every router reaches its collaborators through get_services(), so tests can
swap the whole graph with ``app.dependency_overrides[get_services]``.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from safetynews.db.store import IncidentStore
from safetynews.engine.risk_engine import RiskAssessmentEngine
from safetynews.pipeline.evaluator import IncidentEvaluator
from safetynews.services.agents import GeoAgent, SearchAgent
from safetynews.services.decision import DecisionService, OpenRouterGateway
from safetynews.services.geo_tasks import GeoTaskQueue
from safetynews.services.orchestrator import ToolOrchestrator
from safetynews.tools import build_default_registry


@dataclass
class AppServices:
    store: IncidentStore
    orchestrator: ToolOrchestrator
    search_agent: SearchAgent
    geo_agent: GeoAgent
    geo_queue: GeoTaskQueue
    risk_engine: RiskAssessmentEngine
    evaluator: IncidentEvaluator


def build_services(
    store: IncidentStore,
    decision_service: Optional[DecisionService] = None,
    geo_concurrency: Optional[int] = None,
) -> AppServices:
    registry = build_default_registry(store)
    orchestrator = ToolOrchestrator(registry, decision_service or OpenRouterGateway())
    geo_agent = GeoAgent(orchestrator, store)
    geo_queue = GeoTaskQueue(geo_agent, concurrency=geo_concurrency)
    return AppServices(
        store=store,
        orchestrator=orchestrator,
        search_agent=SearchAgent(orchestrator, geo_queue),
        geo_agent=geo_agent,
        geo_queue=geo_queue,
        risk_engine=RiskAssessmentEngine(store),
        evaluator=IncidentEvaluator(),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_store(services: AppServices = Depends(get_services)) -> IncidentStore:
    return services.store


def get_search_agent(services: AppServices = Depends(get_services)) -> SearchAgent:
    return services.search_agent


def get_geo_queue(services: AppServices = Depends(get_services)) -> GeoTaskQueue:
    return services.geo_queue


def get_risk_engine(services: AppServices = Depends(get_services)) -> RiskAssessmentEngine:
    return services.risk_engine


def get_evaluator(services: AppServices = Depends(get_services)) -> IncidentEvaluator:
    return services.evaluator
