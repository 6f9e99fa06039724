"""
Tool Orchestrator - two-round decision/tool execution per request.

    AWAITING_DECISION → EXECUTING_TOOLS → AWAITING_FINAL_DECISION → DONE
                      ↘ DONE (direct answer, no tools)
    any step → FAILED (decision service unavailable, or cancellation)

Tool calls run concurrently; results are recorded in request order.
A failing tool never aborts its siblings, and a failing second round
degrades to PLACEHOLDER_ANSWER with the raw tool results intact.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Iterable, Optional

import structlog

from safetynews.exceptions import ToolError
from safetynews.services.decision import Decision, DecisionService, ToolCallRequest, ToolCallResult
from safetynews.tools.registry import ToolRegistry

logger = structlog.get_logger(__name__)

PLACEHOLDER_ANSWER = "Search completed but no summary available."


class OrchestrationState(StrEnum):
    AWAITING_DECISION = "awaiting_decision"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FINAL_DECISION = "awaiting_final_decision"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({OrchestrationState.DONE, OrchestrationState.FAILED})


@dataclass
class OrchestrationRun:
    """Observable state of one request, with its full transition history."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: OrchestrationState = OrchestrationState.AWAITING_DECISION
    history: list[OrchestrationState] = field(
        default_factory=lambda: [OrchestrationState.AWAITING_DECISION]
    )
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, state: OrchestrationState) -> None:
        if self.finished:
            raise RuntimeError(f"Run {self.run_id} already {self.state}")
        self.state = state
        self.history.append(state)
        logger.debug("orchestration_transition", run_id=self.run_id, state=state.value)

    def fail(self, reason: str) -> None:
        if self.finished:
            return
        self.error = reason
        self.transition(OrchestrationState.FAILED)
        logger.error("orchestration_failed", run_id=self.run_id, reason=reason)


@dataclass
class OrchestrationOutcome:
    answer: str
    results: list[ToolCallResult]
    run: OrchestrationRun

    @property
    def tool_call_summaries(self) -> list[dict]:
        return [r.to_summary() for r in self.results]

    def successful(self, tool_name: str) -> list[dict]:
        """Payloads of the successful calls to one tool, in request order."""
        return [r.result for r in self.results if r.ok and r.request.name == tool_name]


class ToolOrchestrator:
    def __init__(self, registry: ToolRegistry, decision_service: DecisionService):
        self.registry = registry
        self.decision_service = decision_service

    async def execute_call(self, call: ToolCallRequest) -> ToolCallResult:
        """Run one call; tool failures become an error entry."""
        try:
            payload = await self.registry.invoke(call.name, call.arguments_json)
        except ToolError as exc:
            logger.warning("tool_call_failed", tool=call.name, call_id=call.call_id, error=str(exc))
            return ToolCallResult(request=call, error=str(exc))
        return ToolCallResult(request=call, result=payload)

    async def execute_calls(self, calls: Iterable[ToolCallRequest]) -> list[ToolCallResult]:
        # gather preserves argument order regardless of completion order
        return list(await asyncio.gather(*(self.execute_call(c) for c in calls)))

    async def run(
        self,
        user_message: str,
        system_prompt: str,
        tool_names: Optional[Iterable[str]] = None,
        final_system_prompt: Optional[str] = None,
        run: Optional[OrchestrationRun] = None,
    ) -> OrchestrationOutcome:
        run = run or OrchestrationRun()
        tools = self.registry.specs(tool_names)
        log = logger.bind(run_id=run.run_id)

        try:
            decision = await self.decision_service.decide(system_prompt, user_message, tools)
        except (Exception, asyncio.CancelledError) as exc:
            run.fail(f"{type(exc).__name__}: {exc}")
            raise

        if not decision.tool_calls:
            run.transition(OrchestrationState.DONE)
            log.info("orchestration_direct_answer")
            return OrchestrationOutcome(decision.content or PLACEHOLDER_ANSWER, [], run)

        run.transition(OrchestrationState.EXECUTING_TOOLS)
        log.info("tool_calls_requested", tools=[c.name for c in decision.tool_calls])
        try:
            results = await self.execute_calls(decision.tool_calls)
        except asyncio.CancelledError:
            run.fail("cancelled while executing tools")
            raise

        run.transition(OrchestrationState.AWAITING_FINAL_DECISION)
        answer = await self._final_answer(
            final_system_prompt or system_prompt, user_message, results, run
        )
        run.transition(OrchestrationState.DONE)
        log.info(
            "orchestration_completed",
            calls=len(results),
            failed=sum(1 for r in results if not r.ok),
        )
        return OrchestrationOutcome(answer, results, run)

    async def _final_answer(
        self,
        system_prompt: str,
        user_message: str,
        results: list[ToolCallResult],
        run: OrchestrationRun,
    ) -> str:
        try:
            decision: Decision = await self.decision_service.decide(
                system_prompt, user_message, (), prior_results=results
            )
        except asyncio.CancelledError:
            run.fail("cancelled while awaiting final decision")
            raise
        except Exception as exc:
            logger.warning("final_decision_failed", run_id=run.run_id, error=str(exc))
            return PLACEHOLDER_ANSWER

        if decision.tool_calls or not decision.content:
            return PLACEHOLDER_ANSWER
        return decision.content
