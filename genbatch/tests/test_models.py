"""Unit tests for batch models."""

from datetime import datetime, timezone

import pytest

from genbatch.core.batch.models import (
    BatchRecord,
    BatchStatus,
    JobStatus,
    ProviderName,
    parse_timestamp,
    serialize_fields,
)
from genbatch.core.errors import InvalidProvider


class TestProviderName:
    """Test provider parsing."""

    @pytest.mark.parametrize("value", ["WaveSpeed", "wavespeed", " WAVESPEED "])
    def test_parse_is_case_insensitive(self, value):
        """Test names and slugs resolve regardless of case."""
        assert ProviderName.parse(value) is ProviderName.WAVESPEED

    def test_parse_unknown_raises(self):
        """Test an unknown provider raises InvalidProvider."""
        with pytest.raises(InvalidProvider) as exc_info:
            ProviderName.parse("Midjourney")
        assert exc_info.value.provider == "Midjourney"

    def test_slug(self):
        """Test slugs used in webhook paths."""
        assert ProviderName.FAL.slug == "fal"


class TestJobStatus:
    """Test job status helpers."""

    def test_terminal_states(self):
        """Test only pending is non-terminal."""
        assert not JobStatus.pending().is_terminal
        assert JobStatus.completed("https://x").is_terminal
        assert JobStatus.failed("boom").is_terminal


class TestBatchRecord:
    """Test BatchRecord functionality."""

    def test_pending_job_ids_excludes_seen_and_failed(self):
        """Test pending jobs keep submission order and skip accounted jobs."""
        record = BatchRecord(
            record_id="rec_1",
            provider=ProviderName.WAVESPEED,
            prompt="p",
            request_ids=["a", "b", "c", "d"],
            seen_ids=["c"],
            outputs=[{"url": "https://img/c", "job_id": "c"}],
            failed_job_ids=["a"],
        )

        assert record.pending_job_ids() == ["b", "d"]
        assert not record.is_fully_covered()

    def test_empty_batch_is_never_covered(self):
        """Test a record without request ids does not count as complete."""
        record = BatchRecord(record_id="rec_1", provider=ProviderName.FAL, prompt="p")
        assert not record.is_fully_covered()

    def test_consistent_record_has_no_violations(self):
        """Test a completed record with full coverage is consistent."""
        record = BatchRecord(
            record_id="rec_1",
            provider=ProviderName.FAL,
            prompt="p",
            status=BatchStatus.COMPLETED,
            request_ids=["a"],
            seen_ids=["a"],
            outputs=[{"url": "https://img/a", "job_id": "a"}],
        )
        assert record.invariant_violations() == []

    def test_violations_are_reported(self):
        """Test broken invariants are each listed."""
        record = BatchRecord(
            record_id="rec_1",
            provider=ProviderName.FAL,
            prompt="p",
            status=BatchStatus.COMPLETED,
            request_ids=["a", "b"],
            seen_ids=["a", "a", "z"],
            outputs=[{"url": "https://img/a", "job_id": "a"}],
        )

        violations = record.invariant_violations()
        assert "seen_ids not a subset of request_ids" in violations
        assert "outputs and seen_ids differ in length" in violations
        assert "completed status does not match coverage" in violations
        assert "duplicate id in seen_ids" in violations

    def test_from_row_accepts_comma_strings(self):
        """Test legacy comma-separated id fields are read as lists."""
        record = BatchRecord.from_row(
            "rec_1",
            {
                "provider": "Fal",
                "prompt": "p",
                "status": "processing",
                "request_ids": "a, b,c",
                "seen_ids": "",
                "last_update": "2026-01-01T12:00:00Z",
            },
        )

        assert record.request_ids == ["a", "b", "c"]
        assert record.seen_ids == []
        assert record.status is BatchStatus.PROCESSING
        assert record.last_update == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_to_fields_round_trips_through_from_row(self):
        """Test serialized fields rebuild an equal record."""
        record = BatchRecord(
            record_id="rec_1",
            provider=ProviderName.WAVESPEED,
            prompt="p",
            status=BatchStatus.PROCESSING,
            request_ids=["a", "b"],
            seen_ids=["a"],
            outputs=[{"url": "https://img/a", "job_id": "a"}],
            last_update=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
        )

        fields = record.to_fields()
        assert fields["provider"] == "WaveSpeed"
        assert fields["status"] == "processing"
        assert fields["last_update"] == "2026-01-01T12:00:00+00:00"
        assert BatchRecord.from_row("rec_1", fields) == record


class TestSerialization:
    """Test store value helpers."""

    def test_serialize_fields(self):
        """Test enums and datetimes become plain values."""
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert serialize_fields({"status": BatchStatus.FAILED, "at": now, "n": 1}) == {
            "status": "failed",
            "at": "2026-01-01T00:00:00+00:00",
            "n": 1,
        }

    def test_naive_timestamp_taken_as_utc(self):
        """Test naive timestamps from the store are treated as UTC."""
        assert parse_timestamp("2026-01-01T08:30:00") == datetime(
            2026, 1, 1, 8, 30, tzinfo=timezone.utc
        )
        assert parse_timestamp(None) is None
