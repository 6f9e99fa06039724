"""
Pytest configuration and shared fixtures.

Provides:
- A fixed clock (Wednesday 2025-08-20 14:00 UTC)
- Incident record / Incident factories
- An in-memory IncidentStore on the fixed clock
- ScriptedDecisionService: a DecisionService fake that replays queued decisions
"""

import os

# Settings are read at import time; pin them before importing the package
os.environ["ENVIRONMENT"] = "testing"
os.environ["PERSISTENCE_BACKEND"] = "memory"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import pytest

from safetynews.db.persistence import MemoryPersistence
from safetynews.db.store import IncidentStore
from safetynews.exceptions import DecisionServiceUnavailable
from safetynews.schemas.incident import Incident
from safetynews.services.decision import Decision, ToolCallRequest, ToolCallResult
from safetynews.tools.registry import ToolSpec

FIXED_NOW = datetime(2025, 8, 20, 14, 0, tzinfo=timezone.utc)
PARKHURST = (28.0093, -26.1414)


def build_record(**overrides) -> dict:
    record = {
        "datetime": "2025-08-20T10:30:00Z",
        "coordinates": {"type": "Point", "coordinates": list(PARKHURST)},
        "type": "Property & Financial Crimes",
        "newsID": "news-001",
        "severity": 3,
        "keywords": ["theft", "parkhurst"],
        "summary": "Vehicle break-in reported on 4th Avenue, Parkhurst.",
    }
    record.update(overrides)
    return record


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def record_factory() -> Callable[..., dict]:
    return build_record


@pytest.fixture
def incident_factory() -> Callable[..., Incident]:
    counter = {"n": 0}

    def _make(hours_ago: float = 1.0, point=PARKHURST, **overrides) -> Incident:
        counter["n"] += 1
        overrides.setdefault("newsID", f"news-{counter['n']:03d}")
        overrides.setdefault("datetime", (FIXED_NOW - timedelta(hours=hours_ago)).isoformat())
        overrides.setdefault("coordinates", {"type": "Point", "coordinates": list(point)})
        return Incident.model_validate(build_record(**overrides))

    return _make


@pytest.fixture
def store() -> IncidentStore:
    return IncidentStore(MemoryPersistence(), clock=lambda: FIXED_NOW)


def tool_call(name: str, arguments: str = "{}", call_id: Optional[str] = None) -> ToolCallRequest:
    return ToolCallRequest(call_id=call_id or f"call_{name}", name=name, arguments_json=arguments)


class ScriptedDecisionService:
    """Replays queued decisions (or raises queued exceptions) in order."""

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[dict] = []

    async def decide(
        self,
        system_prompt: str,
        user_message: str,
        tools: Sequence[ToolSpec] = (),
        prior_results: Sequence[ToolCallResult] = (),
    ) -> Decision:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_message": user_message,
            "tools": [t.name for t in tools],
            "prior_results": list(prior_results),
        })
        if not self.script:
            raise DecisionServiceUnavailable("script exhausted")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


@pytest.fixture
def scripted() -> Callable[..., ScriptedDecisionService]:
    return ScriptedDecisionService


@pytest.fixture
def call() -> Callable[..., ToolCallRequest]:
    return tool_call
