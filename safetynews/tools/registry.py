"""
Tool Registry - named, parameterised async operations the decision service may invoke.

Each tool declares a pydantic input contract and an async executor.
invoke() decodes raw arguments (JSON string or mapping), validates them
against the contract, then runs the executor. Failures surface as:
    UnknownTool        - no tool registered under that name
    ToolArgumentError  - undecodable JSON or contract mismatch
    ToolExecutionError - the executor raised or returned a non-object
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

import structlog
from pydantic import BaseModel, ValidationError

from safetynews.exceptions import ToolArgumentError, ToolExecutionError, UnknownTool

logger = structlog.get_logger(__name__)

Executor = Callable[[Any], Awaitable[dict]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    executor: Executor

    def parameters_schema(self) -> dict:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema

    def to_function_schema(self) -> dict:
        """OpenAI-style function declaration offered to the decision service."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        input_model: type[BaseModel],
        executor: Executor,
        description: str = "",
    ) -> ToolSpec:
        if name in self._tools:
            raise ValueError(f'Tool "{name}" is already registered')
        spec = ToolSpec(name=name, description=description, input_model=input_model, executor=executor)
        self._tools[name] = spec
        logger.debug("tool_registered", tool=name)
        return spec

    def get(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def specs(self, names: Optional[Iterable[str]] = None) -> list[ToolSpec]:
        if names is None:
            return list(self._tools.values())
        return [self.get(n) for n in names]

    def _decode(self, spec: ToolSpec, raw_args: Any) -> BaseModel:
        if raw_args is None or raw_args == "":
            raw_args = {}
        if isinstance(raw_args, (str, bytes)):
            try:
                raw_args = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                raise ToolArgumentError(spec.name, f"Arguments are not valid JSON: {exc.msg}") from exc
        if not isinstance(raw_args, Mapping):
            raise ToolArgumentError(spec.name, "Arguments must be a JSON object")
        try:
            return spec.input_model.model_validate(dict(raw_args))
        except ValidationError as exc:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in e['loc']) or 'arguments'}: {e['msg']}"
                for e in exc.errors(include_url=False)
            )
            raise ToolArgumentError(spec.name, f"Invalid arguments for {spec.name}: {detail}") from exc

    async def invoke(self, name: str, raw_args: Any = None) -> dict:
        spec = self.get(name)
        params = self._decode(spec, raw_args)
        logger.info("tool_execution_started", tool=name)
        try:
            result = await spec.executor(params)
        except Exception as exc:
            logger.error("tool_execution_failed", tool=name, error=str(exc))
            raise ToolExecutionError(name, f"{name} failed: {exc}") from exc
        if not isinstance(result, dict):
            logger.error("tool_execution_failed", tool=name, error="non-object result")
            raise ToolExecutionError(name, f"{name} returned {type(result).__name__}, expected an object")
        logger.info("tool_execution_completed", tool=name)
        return result
