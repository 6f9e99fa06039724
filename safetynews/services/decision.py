"""
Decision Service - the external LLM that picks tools and writes answers.

The core only depends on the DecisionService protocol. OpenRouterGateway is
the production implementation: an OpenAI-compatible chat-completions call
with function tools, wrapped in retry-with-backoff and a circuit breaker.
Any transport or protocol failure surfaces as DecisionServiceUnavailable.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence

import httpx
import structlog

from safetynews.config import settings
from safetynews.exceptions import DecisionServiceUnavailable
from safetynews.services.resilience import CircuitBreaker, RetryPolicy, decision_breaker, retry_with_backoff
from safetynews.tools.registry import ToolSpec

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ToolCallRequest:
    call_id: str
    name: str
    arguments_json: str = "{}"

    def to_message(self) -> dict:
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments_json},
        }


@dataclass(frozen=True)
class ToolCallResult:
    """A requested call paired with either its payload or its error. Never both."""

    request: ToolCallRequest
    result: Optional[dict] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("ToolCallResult needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_summary(self) -> dict:
        return {
            "tool": self.request.name,
            "status": "success" if self.ok else "error",
            "result": "Tool executed successfully" if self.ok else self.error,
        }

    def to_message(self) -> dict:
        return {
            "role": "tool",
            "tool_call_id": self.request.call_id,
            "content": json.dumps(self.result) if self.ok else f"Error: {self.error}",
        }


@dataclass(frozen=True)
class Decision:
    """Either a direct answer (content) or an ordered list of tool calls."""

    content: Optional[str] = None
    tool_calls: tuple[ToolCallRequest, ...] = field(default_factory=tuple)


class DecisionService(Protocol):
    async def decide(
        self,
        system_prompt: str,
        user_message: str,
        tools: Sequence[ToolSpec] = (),
        prior_results: Sequence[ToolCallResult] = (),
    ) -> Decision: ...


class TransientDecisionError(DecisionServiceUnavailable):
    """Rate limited or 5xx; worth retrying."""


def build_messages(
    system_prompt: str,
    user_message: str,
    prior_results: Sequence[ToolCallResult] = (),
) -> list[dict]:
    messages: list[dict] = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]
    if prior_results:
        messages.append({
            "role": "assistant",
            "content": None,
            "tool_calls": [r.request.to_message() for r in prior_results],
        })
        messages.extend(r.to_message() for r in prior_results)
    return messages


def parse_decision(data: Any) -> Decision:
    """Read ``choices[0].message`` into a Decision."""
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise DecisionServiceUnavailable("Decision service returned an unexpected response shape") from exc
    if not isinstance(message, Mapping):
        raise DecisionServiceUnavailable("Decision service returned a message that is not an object")

    raw_calls = message.get("tool_calls") or []
    if not isinstance(raw_calls, list):
        raise DecisionServiceUnavailable("Decision service returned malformed tool_calls")

    calls = []
    for index, raw in enumerate(raw_calls):
        function = raw.get("function") if isinstance(raw, Mapping) else None
        if not isinstance(function, Mapping):
            raise DecisionServiceUnavailable(f"Decision service returned malformed tool call #{index}")
        arguments = function.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        calls.append(ToolCallRequest(
            call_id=raw.get("id") or f"call_{index}",
            name=function.get("name", ""),
            arguments_json=arguments or "{}",
        ))
    return Decision(content=message.get("content"), tool_calls=tuple(calls))


class OpenRouterGateway:
    """Chat-completions client with tool calling."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        title: str = "Local Safety News",
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: float = 0.5,
        temperature: float = 0.3,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.url = url or settings.openrouter_url
        self.model = model or settings.decision_model
        self.title = title
        self.timeout = timeout or settings.decision_timeout_seconds
        self.retry_policy = RetryPolicy(
            max_retries=settings.decision_retry_attempts if max_retries is None else max_retries,
            base_delay=retry_base_delay,
            jitter=retry_base_delay / 2,
            retryable=(httpx.TransportError, TransientDecisionError),
        )
        self.temperature = temperature
        self.breaker = breaker or decision_breaker
        self.transport = transport
        if not self.api_key:
            logger.warning("openrouter_api_key_missing", msg="Search and geo-processing will be unavailable")

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.site_url,
            "X-Title": self.title,
        }

    def _payload(self, messages: list[dict], tools: Sequence[ToolSpec]) -> dict:
        payload: dict = {
            "model": self.model,
            "messages": messages,
            "max_tokens": settings.decision_max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = [t.to_function_schema() for t in tools]
            payload["tool_choice"] = "auto"
        return payload

    async def _post(self, payload: dict) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=payload, headers=self._headers())
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientDecisionError(f"Decision service error: HTTP {response.status_code}")
        if response.status_code != 200:
            logger.error(
                "decision_service_rejected",
                status=response.status_code,
                body=response.text[:500],
            )
            raise DecisionServiceUnavailable(f"Decision service error: HTTP {response.status_code}")
        return response.json()

    async def decide(
        self,
        system_prompt: str,
        user_message: str,
        tools: Sequence[ToolSpec] = (),
        prior_results: Sequence[ToolCallResult] = (),
    ) -> Decision:
        if not self.api_key:
            raise DecisionServiceUnavailable("OPENROUTER_API_KEY is not configured")

        payload = self._payload(build_messages(system_prompt, user_message, prior_results), tools)
        try:
            data = await self.breaker.call(
                retry_with_backoff, lambda: self._post(payload), self.retry_policy
            )
        except DecisionServiceUnavailable:
            raise
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("decision_service_unreachable", error=str(exc))
            raise DecisionServiceUnavailable(f"Decision service unreachable: {exc}") from exc

        decision = parse_decision(data)
        logger.info(
            "decision_received",
            model=self.model,
            tool_calls=len(decision.tool_calls),
            has_content=bool(decision.content),
        )
        return decision
