"""
Incident Schema Validator - structural contract for untrusted incident data.

Checks, per record, in this order:
1. datetime parses as an ISO-8601 instant
2. coordinates is a "Point" with exactly two finite numbers
3. type is one of the six crime categories (exact match, never coerced)
4. newsID is a non-empty string
5. severity is an integer in [1, 5]
6. keywords is a sequence of non-empty strings
7. summary is at most 100 characters

Pure and synchronous. Three flavours:
- validate / validate_many: raise SchemaViolation
- validate_safe: never raises, returns {success, data, errors}
- partition: keeps valid records, reports issues for the rest
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from safetynews.exceptions import SchemaIssue, SchemaViolation
from safetynews.schemas.incident import Incident

logger = structlog.get_logger(__name__)

_batch_adapter = TypeAdapter(list[Incident])


def _issues_from(exc: ValidationError, prefix: tuple = ()) -> list[SchemaIssue]:
    return [
        SchemaIssue(path=prefix + tuple(err["loc"]), message=err["msg"])
        for err in exc.errors(include_url=False)
    ]


@dataclass
class SafeValidationResult:
    """Non-throwing validation outcome. ``data`` is None whenever ``success`` is False."""

    success: bool
    data: Optional[list[Incident]]
    errors: list[SchemaIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": [i.to_record() for i in self.data] if self.data is not None else None,
            "errors": [e.to_dict() for e in self.errors] if not self.success else None,
        }


@dataclass
class RejectedRecord:
    index: int
    record: Any
    issues: list[SchemaIssue]


class IncidentValidator:
    """Validates single incidents and batches of incidents."""

    def validate(self, candidate: Any) -> Incident:
        """Validate one record; identity on already-conforming input."""
        try:
            return Incident.model_validate(candidate)
        except ValidationError as exc:
            raise SchemaViolation(_issues_from(exc)) from exc

    def validate_many(self, candidates: Any) -> list[Incident]:
        """Validate a whole batch, raising with every issue found."""
        try:
            return _batch_adapter.validate_python(candidates)
        except ValidationError as exc:
            issues = _issues_from(exc)
            logger.warning(
                "incident_batch_validation_failed",
                errors=len(issues),
                first=issues[0].location if issues else None,
            )
            raise SchemaViolation(issues) from exc

    def validate_safe(self, candidates: Any) -> SafeValidationResult:
        try:
            data = _batch_adapter.validate_python(candidates)
        except ValidationError as exc:
            return SafeValidationResult(success=False, data=None, errors=_issues_from(exc))
        return SafeValidationResult(success=True, data=data)

    def partition(self, candidates: list[Any]) -> tuple[list[Incident], list[RejectedRecord]]:
        """Split a batch into valid incidents and rejected records (with issues)."""
        valid: list[Incident] = []
        rejected: list[RejectedRecord] = []
        for index, candidate in enumerate(candidates):
            try:
                valid.append(Incident.model_validate(candidate))
            except ValidationError as exc:
                rejected.append(RejectedRecord(
                    index=index,
                    record=candidate,
                    issues=_issues_from(exc, prefix=(index,)),
                ))

        if rejected:
            logger.info(
                "incident_records_rejected",
                accepted=len(valid),
                rejected=len(rejected),
            )
        return valid, rejected
