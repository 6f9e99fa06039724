"""
IncidentAssembler tests: pairing, tolerated repairs, rejection and the
never-empty fallback guarantee.
"""

from datetime import datetime, timezone

import pytest

from safetynews.config import settings
from safetynews.pipeline.assembler import (
    FALLBACK_CATEGORY,
    FALLBACK_KEYWORDS,
    FALLBACK_SEVERITY,
    PLACEHOLDER_SUMMARY,
    IncidentAssembler,
    geocode_point,
)
from safetynews.pipeline.validator import IncidentValidator
from safetynews.services.decision import ToolCallRequest, ToolCallResult
from safetynews.tools import EXTRACT_TOOL, GEOCODE_TOOL

NOW = datetime(2025, 8, 20, 14, 0, tzinfo=timezone.utc)
SANDTON = [28.0567, -26.1076]


def geocode(coords=SANDTON) -> dict:
    return {
        "location": "Sandton",
        "coordinates": {"type": "Point", "coordinates": coords},
        "confidence": "high",
    }


def extraction(**overrides) -> dict:
    payload = {
        "category": "Violent Crimes",
        "severity": 4,
        "keywords": ["robbery", "sandton"],
        "summary": "Armed robbery at a Sandton mall",
        "extractedLocation": "Sandton",
    }
    payload.update(overrides)
    return payload


class TestAssemble:
    def setup_method(self):
        self.assembler = IncidentAssembler(clock=lambda: NOW)

    def test_one_geocode_serves_every_extraction(self):
        result = self.assembler.assemble(
            geocode(),
            [extraction(), extraction(category="Sexual Offences", severity=5)],
            "sandton",
        )

        assert not result.used_fallback
        assert len(result.incidents) == 2
        assert all(i.point == tuple(SANDTON) for i in result.incidents)
        assert [i.external_id for i in result.incidents] == [
            f"geo-{int(NOW.timestamp() * 1000)}-0",
            f"geo-{int(NOW.timestamp() * 1000)}-1",
        ]
        assert all(i.datetime == NOW for i in result.incidents)

    def test_no_geocode_produces_single_fallback(self):
        result = self.assembler.assemble(None, [extraction()], "melville")

        assert result.used_fallback
        (incident,) = result.incidents
        assert incident.point == tuple(settings.default_city_center)
        assert incident.category is FALLBACK_CATEGORY
        assert incident.severity == FALLBACK_SEVERITY
        assert incident.keywords == FALLBACK_KEYWORDS
        assert incident.summary == "General safety information for melville area."

    def test_no_extractions_falls_back_at_geocoded_point(self):
        result = self.assembler.assemble(geocode(), [], "sandton")

        assert result.used_fallback
        assert result.incidents[0].point == tuple(SANDTON)

    def test_zero_inputs_still_yield_a_valid_incident(self):
        result = self.assembler.assemble(None, [])

        (incident,) = result.incidents
        assert IncidentValidator().validate(incident.to_record()) == incident

    def test_invalid_category_is_dropped_not_repaired(self):
        result = self.assembler.assemble(
            geocode(),
            [extraction(), extraction(category="violent crimes")],
        )

        assert len(result.incidents) == 1
        assert len(result.rejected) == 1
        assert result.rejected[0].index == 1
        assert not result.used_fallback

    def test_everything_rejected_falls_back(self):
        result = self.assembler.assemble(
            geocode(),
            [extraction(severity=9), extraction(category="Unknown")],
            "sandton",
        )

        assert result.used_fallback
        assert len(result.incidents) == 1
        assert len(result.rejected) == 2

    def test_long_query_fallback_summary_is_capped(self):
        incident = self.assembler.fallback("x" * 200, now=NOW)
        assert len(incident.summary) == 100

    def test_non_finite_geocode_falls_back_to_city_centre(self):
        result = self.assembler.assemble(geocode([float("nan"), -26.1]), [extraction()], "sandton")

        assert result.used_fallback
        assert result.incidents[0].point == tuple(settings.default_city_center)

    def test_fallback_ignores_non_finite_point(self):
        incident = self.assembler.fallback("sandton", (float("inf"), -26.1), now=NOW)
        assert incident.point == tuple(settings.default_city_center)

    def test_non_mapping_extractions_are_ignored(self):
        result = self.assembler.assemble(geocode(), ["not a dict", extraction()])
        assert len(result.incidents) == 1


class TestRepair:
    def setup_method(self):
        self.assembler = IncidentAssembler(clock=lambda: NOW)

    def test_missing_fields_are_filled(self):
        (record,) = self.assembler.repair(
            [{"datetime": None, "newsID": "", "keywords": "robbery", "summary": ""}],
            NOW,
        )

        assert record["datetime"] == NOW.isoformat()
        assert record["newsID"].startswith(f"incident-{int(NOW.timestamp() * 1000)}-")
        assert record["keywords"] == []
        assert record["summary"] == PLACEHOLDER_SUMMARY

    def test_duplicate_ids_are_replaced(self):
        records = self.assembler.repair(
            [{"newsID": "dup"}, {"newsID": "dup"}, {"newsID": "other"}],
            NOW,
        )
        ids = [r["newsID"] for r in records]

        assert ids[0] == "dup"
        assert ids[1] != "dup"
        assert ids[2] == "other"
        assert len(set(ids)) == 3

    def test_category_and_severity_untouched(self):
        (record,) = self.assembler.repair([{"type": "bogus", "severity": 0}], NOW)
        assert record["type"] == "bogus"
        assert record["severity"] == 0

    def test_overlong_summary_is_not_truncated(self):
        (record,) = self.assembler.repair([{"summary": "s" * 150}], NOW)
        assert len(record["summary"]) == 150


class TestToolResultSelection:
    def test_first_successful_geocode_is_used(self):
        results = [
            ToolCallResult(ToolCallRequest("g0", GEOCODE_TOOL), error="bad args"),
            ToolCallResult(ToolCallRequest("g1", GEOCODE_TOOL), result=geocode([18.4241, -33.9249])),
            ToolCallResult(ToolCallRequest("g2", GEOCODE_TOOL), result=geocode()),
            ToolCallResult(ToolCallRequest("e1", EXTRACT_TOOL), result=extraction()),
            ToolCallResult(ToolCallRequest("e2", EXTRACT_TOOL), error="failed"),
        ]
        result = IncidentAssembler(clock=lambda: NOW).assemble_from_tool_results(results, "cape town")

        (incident,) = result.incidents
        assert incident.point == (18.4241, -33.9249)


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        {"coordinates": "28,-26"},
        {"coordinates": {"coordinates": [28.0]}},
        {"coordinates": {"coordinates": [True, -26.0]}},
        {"coordinates": {"coordinates": [float("nan"), -26.1]}},
        {"coordinates": {"coordinates": [28.0, float("-inf")]}},
    ],
)
def test_unusable_geocode_payloads(payload):
    assert geocode_point(payload) is None
