"""
OpenRouter gateway tests over httpx.MockTransport.
"""

import json

import httpx
import pytest

from safetynews.exceptions import DecisionServiceUnavailable
from safetynews.services.decision import (
    OpenRouterGateway,
    ToolCallRequest,
    ToolCallResult,
    build_messages,
    parse_decision,
)
from safetynews.services.resilience import CircuitBreaker, CircuitOpenError
from safetynews.tools import GEOCODE_TOOL, build_default_registry


def completion(message: dict) -> dict:
    return {"choices": [{"message": message}]}


def make_gateway(handler, **kwargs) -> OpenRouterGateway:
    return OpenRouterGateway(
        api_key="test-key",
        url="https://decision.test/v1/chat/completions",
        transport=httpx.MockTransport(handler),
        breaker=kwargs.pop("breaker", CircuitBreaker("test", failure_threshold=10)),
        retry_base_delay=0.0,
        **kwargs,
    )


@pytest.mark.asyncio
class TestOpenRouterGateway:
    async def test_tool_call_response(self, store):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=completion({
                "content": None,
                "tool_calls": [{
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": GEOCODE_TOOL, "arguments": '{"location": "parkhurst"}'},
                }],
            }))

        tools = build_default_registry(store).specs([GEOCODE_TOOL])
        decision = await make_gateway(handler).decide("sys", "where?", tools)

        assert decision.tool_calls == (ToolCallRequest("call_1", GEOCODE_TOOL, '{"location": "parkhurst"}'),)
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["tool_choice"] == "auto"
        assert seen["body"]["tools"][0]["function"]["name"] == GEOCODE_TOOL

    async def test_content_response_without_tools_omits_tool_choice(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion({"content": "Summary."}))

        decision = await make_gateway(handler).decide("sys", "q")
        assert decision.content == "Summary."
        assert decision.tool_calls == ()
        assert "tools" not in seen["body"]

    async def test_missing_api_key(self):
        gateway = OpenRouterGateway(api_key="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with pytest.raises(DecisionServiceUnavailable):
            await gateway.decide("sys", "q")

    async def test_server_errors_are_retried(self):
        attempts = {"n": 0}

        def handler(request):
            attempts["n"] += 1
            if attempts["n"] < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=completion({"content": "ok"}))

        decision = await make_gateway(handler, max_retries=2).decide("sys", "q")
        assert decision.content == "ok"
        assert attempts["n"] == 3

    async def test_client_error_is_not_retried(self):
        attempts = {"n": 0}

        def handler(request):
            attempts["n"] += 1
            return httpx.Response(401, json={"error": "bad key"})

        with pytest.raises(DecisionServiceUnavailable):
            await make_gateway(handler, max_retries=2).decide("sys", "q")
        assert attempts["n"] == 1

    async def test_transport_failure_becomes_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DecisionServiceUnavailable):
            await make_gateway(handler, max_retries=1).decide("sys", "q")

    async def test_malformed_body(self):
        with pytest.raises(DecisionServiceUnavailable):
            await make_gateway(lambda r: httpx.Response(200, json={"unexpected": True})).decide("sys", "q")

    async def test_open_breaker_rejects_without_calling(self):
        attempts = {"n": 0}

        def handler(request):
            attempts["n"] += 1
            return httpx.Response(500)

        breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=60)
        gateway = make_gateway(handler, breaker=breaker, max_retries=0)
        with pytest.raises(DecisionServiceUnavailable):
            await gateway.decide("sys", "q")
        with pytest.raises(CircuitOpenError):
            await gateway.decide("sys", "q")
        assert attempts["n"] == 1


class TestMessages:
    def test_prior_results_become_tool_messages(self):
        ok = ToolCallResult(ToolCallRequest("a", "geocode_location"), result={"x": 1})
        failed = ToolCallResult(ToolCallRequest("b", "extract_incident_data"), error="bad args")
        messages = build_messages("sys", "user", [ok, failed])

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool", "tool"]
        assert [c["id"] for c in messages[2]["tool_calls"]] == ["a", "b"]
        assert messages[3] == {"role": "tool", "tool_call_id": "a", "content": '{"x": 1}'}
        assert messages[4]["content"] == "Error: bad args"

    def test_parse_serialises_object_arguments(self):
        decision = parse_decision(completion({
            "tool_calls": [{"function": {"name": "geocode_location", "arguments": {"location": "x"}}}],
        }))
        assert decision.tool_calls[0].call_id == "call_0"
        assert json.loads(decision.tool_calls[0].arguments_json) == {"location": "x"}

    @pytest.mark.parametrize(
        "body",
        [
            {"choices": [{"message": None}]},
            {"choices": [{"message": "text"}]},
            completion({"tool_calls": "geocode_location"}),
            completion({"tool_calls": [None]}),
            completion({"tool_calls": [{"id": "a", "function": "geocode_location"}]}),
        ],
    )
    def test_malformed_message_shapes_are_unavailable(self, body):
        with pytest.raises(DecisionServiceUnavailable):
            parse_decision(body)

    def test_result_requires_exactly_one_outcome(self):
        with pytest.raises(ValueError):
            ToolCallResult(ToolCallRequest("a", "t"), result={"x": 1}, error="also")
        with pytest.raises(ValueError):
            ToolCallResult(ToolCallRequest("a", "t"))
