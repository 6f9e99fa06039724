"""
Incident schema tests.

Covers validate / validate_many / validate_safe / partition and each of
the seven field rules.
"""

from datetime import timezone

import pytest

from safetynews.exceptions import SchemaViolation
from safetynews.pipeline.validator import IncidentValidator
from safetynews.schemas.incident import CrimeCategory, Incident


class TestValidateSingle:
    def setup_method(self):
        self.validator = IncidentValidator()

    def test_valid_record(self, record_factory):
        incident = self.validator.validate(record_factory())
        assert incident.category is CrimeCategory.PROPERTY_FINANCIAL
        assert incident.location.coordinates == (28.0093, -26.1414)
        assert incident.external_id == "news-001"

    def test_validate_is_identity_on_incident(self, record_factory):
        incident = self.validator.validate(record_factory())
        assert self.validator.validate(incident) == incident

    def test_record_round_trips_through_wire_names(self, record_factory):
        incident = self.validator.validate(record_factory())
        record = incident.to_record()
        assert set(record) == {"datetime", "coordinates", "type", "newsID", "severity", "keywords", "summary"}
        assert record["coordinates"] == {"type": "Point", "coordinates": [28.0093, -26.1414]}
        assert Incident.from_record(record) == incident

    def test_naive_datetime_read_as_utc(self, record_factory):
        incident = self.validator.validate(record_factory(datetime="2025-08-20T10:30:00"))
        assert incident.datetime.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["yesterday", "2025-08-20", "2025-13-01T00:00:00Z", 1692500000, None])
    def test_bad_datetime_rejected(self, record_factory, value):
        with pytest.raises(SchemaViolation) as exc:
            self.validator.validate(record_factory(datetime=value))
        assert exc.value.issues[0].path[0] == "datetime"

    def test_wrong_geometry_type_rejected(self, record_factory):
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(coordinates={"type": "Polygon", "coordinates": [28.0, -26.0]}))

    @pytest.mark.parametrize("coords", [[28.0], [28.0, -26.0, 5.0], ["28", "-26"], [True, -26.0], [float("nan"), -26.0], []])
    def test_bad_coordinates_rejected(self, record_factory, coords):
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(coordinates={"type": "Point", "coordinates": coords}))

    @pytest.mark.parametrize("value", ["violent crimes", "Burglary", "", None])
    def test_unknown_category_never_coerced(self, record_factory, value):
        with pytest.raises(SchemaViolation) as exc:
            self.validator.validate(record_factory(type=value))
        assert exc.value.issues[0].path == ("type",)

    def test_empty_news_id_rejected(self, record_factory):
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(newsID=""))

    @pytest.mark.parametrize("value", [0, 6, -1, 3.5, "3", True])
    def test_bad_severity_rejected(self, record_factory, value):
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(severity=value))

    @pytest.mark.parametrize("value", [1, 5])
    def test_severity_bounds_accepted(self, record_factory, value):
        assert self.validator.validate(record_factory(severity=value)).severity == value

    def test_empty_keywords_accepted(self, record_factory):
        assert self.validator.validate(record_factory(keywords=[])).keywords == ()

    @pytest.mark.parametrize("value", ["theft", [1, 2], [""]])
    def test_bad_keywords_rejected(self, record_factory, value):
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(keywords=value))

    def test_summary_cap(self, record_factory):
        assert self.validator.validate(record_factory(summary="x" * 100))
        with pytest.raises(SchemaViolation):
            self.validator.validate(record_factory(summary="x" * 101))

    def test_incident_is_immutable(self, record_factory):
        incident = self.validator.validate(record_factory())
        with pytest.raises(Exception):
            incident.severity = 5


class TestBatchValidation:
    def setup_method(self):
        self.validator = IncidentValidator()

    def test_validate_many_all_valid(self, record_factory):
        batch = [record_factory(newsID="a"), record_factory(newsID="b")]
        assert [i.external_id for i in self.validator.validate_many(batch)] == ["a", "b"]

    def test_validate_many_reports_every_issue(self, record_factory):
        batch = [record_factory(severity=9), record_factory(), record_factory(type="Nope")]
        with pytest.raises(SchemaViolation) as exc:
            self.validator.validate_many(batch)
        locations = [issue.location for issue in exc.value.issues]
        assert locations == ["[0].severity", "[2].type"]

    def test_validate_safe_mixed_batch(self, record_factory):
        result = self.validator.validate_safe([record_factory(), record_factory(summary="x" * 101)])
        assert result.success is False
        assert result.data is None
        assert result.errors
        assert result.errors[0].path[:2] == (1, "summary")

    def test_validate_safe_success(self, record_factory):
        result = self.validator.validate_safe([record_factory()])
        assert result.success is True
        assert len(result.data) == 1
        assert result.to_dict()["errors"] is None

    def test_validate_safe_non_list_input(self):
        result = self.validator.validate_safe({"not": "a list"})
        assert result.success is False
        assert result.errors

    def test_partition_keeps_valid_records(self, record_factory):
        valid, rejected = self.validator.partition([
            record_factory(newsID="keep"),
            record_factory(severity=0),
            record_factory(newsID="keep-too"),
        ])
        assert [i.external_id for i in valid] == ["keep", "keep-too"]
        assert len(rejected) == 1
        assert rejected[0].index == 1
        assert rejected[0].issues[0].path[:2] == (1, "severity")
