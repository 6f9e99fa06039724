"""
Local Safety News - agent-built safety incident map and area risk.

Architecture:
    safetynews/
    ├── api/             # FastAPI routers + service container
    ├── db/              # IncidentStore, persistence backends, SQLAlchemy models
    ├── engine/          # Risk assessment (factors, trend, recommendations)
    ├── middleware/      # Error handling, request context
    ├── pipeline/        # Incident schema validator, assembler, evaluator
    ├── schemas/         # Pydantic models (incident, tool inputs, API bodies)
    ├── services/        # Decision gateway, orchestrator, agents, geo jobs
    └── tools/           # Tool registry + search / geocode / extract tools
"""

__version__ = "1.0.0"
