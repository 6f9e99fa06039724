"""
Local Safety News - FastAPI Application.

Run: uvicorn safetynews.main:app --host 0.0.0.0 --port 8000 --reload

  - POST /api/search               ← SearchAgent (schedules geo-processing)
  - POST /api/geo-process          ← queue a GeoAgent job
  - GET  /api/geo-process/{job_id}
  - GET  /api/results/latest
  - POST /api/evaluate
  - GET  /api/risk
  - GET  /api/incidents, /api/incidents/stats
  - GET  /health
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safetynews.api.deps import AppServices, build_services
from safetynews.api.routers.evaluate import router as evaluate_router
from safetynews.api.routers.geo import router as geo_router
from safetynews.api.routers.incidents import router as incidents_router
from safetynews.api.routers.results import router as results_router
from safetynews.api.routers.risk import router as risk_router
from safetynews.api.routers.search import router as search_router
from safetynews.config import settings
from safetynews.db.engine import close_db
from safetynews.db.persistence import build_persistence
from safetynews.db.store import IncidentStore
from safetynews.logging_config import configure_logging
from safetynews.middleware.error_handler import ErrorHandlerMiddleware
from safetynews.middleware.request_context import RequestContextMiddleware
from safetynews.services.resilience import decision_breaker

logger = structlog.get_logger(__name__)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Create the application; ``services`` skips building the production graph."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        logger.info("safetynews_starting", version=settings.app_version, backend=settings.persistence_backend)
        if services is None:
            store = await IncidentStore.open(
                await build_persistence(),
                seed_path=settings.seed_data_path or None,
            )
            app.state.services = build_services(store)
        yield
        await app.state.services.geo_queue.shutdown()
        if settings.persistence_backend == "sql":
            await close_db()
        logger.info("safetynews_shutdown")

    app = FastAPI(
        title=settings.app_name,
        description="Local safety news search, geolocated incidents and area risk assessment.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    if services is not None:
        app.state.services = services

    # ── Middleware (last added = outermost) ─────────────────────────────
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ──────────────────────────────────────────────────────────
    app.include_router(search_router)
    app.include_router(geo_router)
    app.include_router(results_router)
    app.include_router(evaluate_router)
    app.include_router(risk_router)
    app.include_router(incidents_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe; does not call the decision service."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "safetynews",
            "decisionService": decision_breaker.describe(),
        }

    return app


app = create_app()
