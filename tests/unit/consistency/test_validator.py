# tests/unit/consistency/test_validator.py — v1
"""Tests for consistency/validator.py — scoring, structural checks, drift."""

from __future__ import annotations

from typing import get_args

import pytest

from reqcache.consistency.history import ConsistencyHistory
from reqcache.consistency.models import CheckName
from reqcache.consistency.validator import ConsistencyValidator

HASH = "a" * 64


@pytest.fixture
def validator():
    return ConsistencyValidator(ConsistencyHistory())


def _ids(n: int, prefix: str = "BR") -> list[str]:
    return [f"{prefix}-{i:03d}" for i in range(1, n + 1)]


class TestScoring:
    def test_perfect_table(self, validator, make_table):
        report = validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        assert report.score == 100
        assert report.is_valid
        assert report.issues == []
        assert report.actual_count == 2
        assert report.row_count == 3
        assert report.ids == ["BR-001", "BR-002"]

    def test_duplicate_within_row_tolerance(self, validator, make_table):
        table = make_table(["BR-001", "BR-002", "BR-002"])
        report = validator.validate(table, content_hash=HASH, expected_count=2)
        assert report.score == 85
        assert report.is_valid
        row_issue = report.issues_for("row_count")[0]
        assert row_issue.severity == "info"
        assert row_issue.penalty == 0
        dup = report.issues_for("duplicate_ids")[0]
        assert "BR-002" in dup.message
        assert dup.penalty == 15

    def test_gap_in_sequence(self, validator, make_table):
        report = validator.validate(
            make_table(["BR-001", "BR-003"]), content_hash=HASH, expected_count=3
        )
        assert report.score == 95
        issue = report.issues_for("sequential_ids")[0]
        assert "BR-002" in issue.message

    def test_id_beyond_expected_range(self, validator, make_table):
        report = validator.validate(
            make_table(["BR-001", "BR-003"]), content_hash=HASH, expected_count=2
        )
        [issue] = report.issues_for("sequential_ids")
        assert "out of sequence" in issue.message
        assert "BR-003" in issue.message
        assert issue.penalty == 5
        assert report.score == 95

    def test_huge_id_number_bounded(self, validator, make_table):
        table = make_table(["BR-001", "BR-5000000", "BR-999999999"])
        report = validator.validate(table, content_hash=HASH, expected_count=3)
        [issue] = report.issues_for("sequential_ids")
        assert issue.penalty == 5
        assert "BR-5000000, BR-999999999" in issue.message
        assert len(issue.message) < 200
        assert report.score == 95

    def test_missing_ids_listing_capped(self, validator, make_table):
        table = make_table(["BR-001", "BR-030"])
        report = validator.validate(table, content_hash=HASH, expected_count=30)
        [issue] = report.issues_for("sequential_ids")
        assert issue.penalty == 5 * 28
        assert issue.message.startswith("Missing IDs in sequence: BR-002, BR-003")
        assert issue.message.endswith("BR-011 and 18 more")
        assert report.score == 0

    def test_row_count_outside_tolerance(self, validator, make_table):
        report = validator.validate(make_table(_ids(6)), content_hash=HASH, expected_count=2)
        issue = report.issues_for("row_count")[0]
        assert issue.severity == "warning"
        assert report.score == 85

    def test_count_tolerance_band(self, make_table):
        lenient = ConsistencyValidator(count_tolerance=4)
        report = lenient.validate(make_table(_ids(6)), content_hash=HASH, expected_count=2)
        assert report.score == 100
        assert report.issues_for("row_count")[0].severity == "info"

    def test_row_without_identifier(self, validator):
        table = "\n".join([
            "| Requirement ID | Description |",
            "|---|---|",
            "| BR-001 | first |",
            "| | orphan row |",
        ])
        report = validator.validate(table, content_hash=HASH, expected_count=2)
        issue = report.issues_for("sequential_ids")[0]
        assert issue.penalty == 5
        assert report.score == 95

    def test_below_threshold_invalid(self, validator, make_table):
        table = make_table(["BR-001", "BR-001", "BR-001", "BR-001"])
        report = validator.validate(table, content_hash=HASH, expected_count=4)
        assert report.score == 55
        assert not report.is_valid
        assert len(report.warnings) == 1

    def test_custom_threshold(self, make_table):
        strict = ConsistencyValidator(valid_score_threshold=90)
        report = strict.validate(
            make_table(["BR-001", "BR-002", "BR-002"]), content_hash=HASH, expected_count=2
        )
        assert report.score == 85
        assert not report.is_valid


class TestPlausibility:
    def test_over_extraction(self, validator, make_table):
        report = validator.validate(
            make_table(_ids(16)), content_hash=HASH, expected_count=16, source_length=300
        )
        assert report.issues_for("plausibility")
        assert report.score == 90

    def test_under_extraction(self, validator, make_table):
        report = validator.validate(
            make_table(_ids(2)), content_hash=HASH, expected_count=2, source_length=6000
        )
        assert "under-extraction" in report.issues_for("plausibility")[0].message
        assert report.score == 90

    def test_unknown_length_skipped(self, validator, make_table):
        report = validator.validate(make_table(_ids(16)), content_hash=HASH, expected_count=16)
        assert report.issues_for("plausibility") == []


class TestDrift:
    def test_first_extraction_has_no_drift(self, validator, make_table):
        report = validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        assert report.drift is None

    def test_changed_count_reported(self, validator, make_table):
        first = validator.validate(
            make_table(_ids(2)), content_hash=HASH, expected_count=2, request_id="req-1"
        )
        second = validator.validate(
            make_table(_ids(3)), content_hash=HASH, expected_count=2, request_id="req-2"
        )
        assert first.drift is None
        assert second.drift is not None
        assert second.drift.previous_request_id == "req-1"
        assert second.drift.delta == 1
        drift_issue = second.issues_for("drift")[0]
        assert drift_issue.severity == "info"
        assert drift_issue.penalty == 0

    def test_same_count_no_drift(self, validator, make_table):
        validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        report = validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        assert report.drift is None

    def test_other_digest_independent(self, validator, make_table):
        validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        report = validator.validate(make_table(_ids(5)), content_hash="b" * 64, expected_count=5)
        assert report.drift is None

    def test_history_recorded(self, validator, make_table):
        validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        record = validator.history.latest(HASH)
        assert record.requirement_count == 2
        assert record.consistency_score == 100


class TestEdgeCases:
    def test_generated_request_id(self, validator, make_table):
        report = validator.validate(make_table(_ids(1)), content_hash=HASH, expected_count=1)
        assert len(report.request_id) == 12

    def test_test_case_prefix(self, validator, make_table):
        table = make_table(_ids(3, "TC"), prefix_header="Test Case ID")
        report = validator.validate(table, content_hash=HASH, expected_count=3, id_prefix="TC")
        assert report.score == 100
        assert report.ids == ["TC-001", "TC-002", "TC-003"]

    def test_empty_artifact(self, validator):
        report = validator.validate("", content_hash=HASH, expected_count=0)
        assert report.actual_count == 0
        assert report.is_valid

    def test_internal_failure_returns_zero_score(self, validator, make_table, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr("reqcache.consistency.validator.parse_table", _boom)
        report = validator.validate(make_table(_ids(2)), content_hash=HASH, expected_count=2)
        assert report.score == 0
        assert not report.is_valid
        assert {i.check for i in report.issues} == {
            "row_count", "sequential_ids", "duplicate_ids", "plausibility",
        }
        assert validator.history.latest(HASH) is None

    def test_from_settings(self, settings, make_table):
        v = ConsistencyValidator.from_settings(settings.model_copy(update={"row_tolerance": 0}))
        report = v.validate(make_table(_ids(3)), content_hash=HASH, expected_count=2)
        assert report.issues_for("row_count")[0].severity == "warning"
        assert report.score == 85

    def test_check_names_all_produced(self):
        assert set(get_args(CheckName)) == {
            "row_count", "sequential_ids", "duplicate_ids", "plausibility", "drift",
        }
