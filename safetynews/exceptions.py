"""
Error taxonomy.

- SchemaViolation: per-field structural issues, surfaced as data
- UnknownTool / ToolArgumentError / ToolExecutionError: captured per tool call
- DecisionServiceUnavailable: terminal for an orchestration request

A fallback incident produced by the assembler is a degraded success,
not an error, and has no exception type.
"""

from dataclasses import dataclass
from typing import Sequence, Union

PathItem = Union[str, int]


@dataclass(frozen=True)
class SchemaIssue:
    """A single structural violation: where it happened and why."""

    path: tuple[PathItem, ...]
    message: str

    @property
    def location(self) -> str:
        """Dotted path, with list indexes in brackets: ``[2].coordinates``."""
        out = ""
        for part in self.path:
            if isinstance(part, int):
                out += f"[{part}]"
            else:
                out += f".{part}" if out else part
        return out or "<root>"

    def to_dict(self) -> dict:
        return {"path": list(self.path), "message": self.message}


class SafetyNewsError(Exception):
    """Base class for all domain errors."""


class SchemaViolation(SafetyNewsError):
    """Raised by the strict validators; carries every issue found."""

    def __init__(self, issues: Sequence[SchemaIssue]):
        self.issues: list[SchemaIssue] = list(issues)
        first = self.issues[0] if self.issues else None
        detail = f"{first.location}: {first.message}" if first else "invalid data"
        extra = f" (+{len(self.issues) - 1} more)" if len(self.issues) > 1 else ""
        super().__init__(f"Invalid safety incident data: {detail}{extra}")


class ToolError(SafetyNewsError):
    """Base for failures of a single tool invocation."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class UnknownTool(ToolError):
    def __init__(self, tool_name: str):
        super().__init__(tool_name, f'Tool "{tool_name}" not found')


class ToolArgumentError(ToolError):
    """Arguments could not be decoded or did not match the tool's input contract."""


class ToolExecutionError(ToolError):
    """The executor raised or returned something other than an object."""


class DecisionServiceUnavailable(SafetyNewsError):
    """The external decision service could not be reached or answered garbage."""
