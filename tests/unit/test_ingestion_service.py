"""
Unit tests for the Bulk Ingestion Service.
"""

from datetime import date

import pytest
from structlog.testing import capture_logs

from control_assurance.core.config import EngineConfig
from control_assurance.core.errors import (
    IngestionInputError,
    IngestionLimitError,
    QuickFillValidationError,
)
from control_assurance.ingestion.service import (
    BulkIngestionService,
    preview_paste,
    preview_upload,
)
from control_assurance.models.controls import TestResultValue
from control_assurance.models.ingestion import InputSource, QuickFillRequest


@pytest.fixture
def repository(seeded_repository):
    """Repository with two active entries and one removed entry."""
    return seeded_repository


@pytest.fixture
def service(repository):
    """Create a Bulk Ingestion Service instance."""
    return BulkIngestionService(repository)


class TestPreview:
    """Tests for preview_text and preview_file."""

    def test_csv_with_header_and_quoted_notes(self, service):
        content = (
            "control_ref,year,month,result,notes\n"
            'CTL-01,2025,1,FAIL,"Missing docs, escalated"\n'
            "CTL-02,2025,1,PASS,\n"
        ).encode("utf-8")

        preview = service.preview_file(content, "results.csv")

        assert preview.source == InputSource.FILE
        assert preview.header_skipped
        assert preview.valid_count == 2
        assert preview.invalid_count == 0
        assert [r.row_number for r in preview.rows] == [2, 3]
        assert preview.rows[0].parsed.notes == "Missing docs, escalated"

    def test_unknown_reference_excluded_others_accepted(self, service):
        text = "CTL-01\t2025\t2\tPASS\nCTL-99\t2025\t2\tPASS\nCTL-02\t2025\t2\tNOT TESTED"

        preview = service.preview_text(text)

        assert preview.valid_count == 2
        assert preview.invalid_count == 1
        assert preview.invalid_rows[0].row_number == 2
        assert "not found in testing schedule" in preview.invalid_rows[0].errors[0].message

    def test_removed_entry_reference_rejected(self, service):
        preview = service.preview_text("CTL-03\t2025\t1\tPASS")
        assert preview.invalid_count == 1

    def test_blank_rows_skipped_numbering_kept(self, service):
        preview = service.preview_text("CTL-01,2025,1,PASS\n,,,\nCTL-02,2025,1,PASS", InputSource.FILE)
        assert [r.row_number for r in preview.rows] == [1, 3]

    def test_empty_text_gives_empty_preview(self, service):
        preview = service.preview_text("   \n")
        assert preview.rows == []
        assert preview.to_dict()["valid_count"] == 0

    def test_utf8_bom_is_accepted(self, service):
        content = "\ufeffcontrol_ref,year,month,result\nCTL-01,2025,1,PASS".encode("utf-8")
        preview = service.preview_file(content, "bom.csv")
        assert preview.header_skipped
        assert preview.valid_count == 1

    def test_undecodable_file_raises(self, service):
        with pytest.raises(IngestionInputError) as exc_info:
            service.preview_file(b"\xff\xfe\xfa", "broken.csv")
        assert exc_info.value.file_name == "broken.csv"

    def test_row_limit(self, repository):
        service = BulkIngestionService(repository, EngineConfig(max_rows=2))
        text = "\n".join(["CTL-01,2025,1,PASS"] * 3)

        with pytest.raises(IngestionLimitError) as exc_info:
            service.preview_text(text, InputSource.FILE)

        assert exc_info.value.row_count == 3
        assert exc_info.value.max_rows == 2

    def test_row_limit_defaults_from_environment(self, repository, monkeypatch):
        monkeypatch.setenv("CONTROL_ASSURANCE_MAX_ROWS", "1")
        service = BulkIngestionService(repository)

        assert service.config.max_rows == 1
        with pytest.raises(IngestionLimitError):
            service.preview_text("CTL-01,2025,1,PASS\nCTL-02,2025,1,PASS", InputSource.FILE)
        with pytest.raises(IngestionLimitError):
            preview_paste(repository, "CTL-01\t2025\t1\tPASS\nCTL-02\t2025\t1\tPASS")

    def test_rows_after_multiline_note_report_source_line(self, service):
        content = (
            "control_ref,year,month,result,notes\n"
            'CTL-01,2025,1,FAIL,"first line\nsecond line"\n'
            "CTL-99,2025,1,PASS,\n"
        ).encode("utf-8")

        preview = service.preview_file(content, "multiline.csv")

        assert [r.row_number for r in preview.rows] == [2, 4]
        assert preview.rows[0].parsed.notes == "first line\nsecond line"
        assert preview.invalid_rows[0].row_number == 4

    def test_preview_does_not_write(self, service, repository):
        service.preview_text("CTL-01\t2025\t1\tPASS")
        assert repository.snapshot() == {}

    def test_preview_logs_outcome(self, service):
        with capture_logs() as logs:
            service.preview_text("CTL-01\t2025\t1\tPASS\nCTL-99\t2025\t1\tPASS")

        events = [e for e in logs if e["event"] == "ingestion_previewed"]
        assert len(events) == 1
        assert events[0]["valid"] == 1
        assert events[0]["invalid"] == 1

    def test_convenience_functions(self, repository):
        assert preview_paste(repository, "CTL-01\t2025\t1\tPASS").valid_count == 1
        assert preview_upload(repository, b"CTL-01,2025,1,PASS", "a.csv").valid_count == 1


class TestCommit:
    """Tests for commit."""

    def test_commit_applies_valid_rows_only(self, service, repository, reference_date):
        preview = service.preview_text(
            "CTL-01\t2025\t1\tPASS\nCTL-99\t2025\t1\tPASS\nCTL-02\t2025\t1\tFAIL\t",
        )

        summary = service.commit(preview, actor="importer", as_of=reference_date)

        assert summary.applied == 1
        assert summary.skipped_rows == 2
        assert summary.schedule_entry_ids == ["entry-1"]
        stored = repository.get_test_results("entry-1")
        assert stored[0].is_backdated
        assert stored[0].tested_by == "importer"

    def test_commit_writes_audit_entry(self, service, repository):
        preview = service.preview_text("CTL-01\t2025\t1\tPASS\nCTL-02\t2025\t1\tPASS")
        service.commit(preview, actor="importer")

        entries = repository.get_audit_entries(entity_type="TestResultBatch", action="bulk_import")
        assert len(entries) == 1
        assert entries[0].entity_id == "entry-1,entry-2"
        assert entries[0].new_state == {"applied": 2, "batch_id": preview.batch_id}

    def test_commit_carries_preview_batch_id(self, service):
        preview = service.preview_text("CTL-01\t2025\t1\tPASS")
        summary = service.commit(preview, actor="importer")
        assert summary.batch_id == preview.batch_id
        assert preview.to_dict()["batch_id"] == preview.batch_id

    def test_commit_of_nothing_writes_no_audit(self, service, repository):
        preview = service.preview_text("CTL-99\t2025\t1\tPASS")
        summary = service.commit(preview, actor="importer")
        assert summary.applied == 0
        assert repository.get_audit_entries() == []

    def test_recommit_is_idempotent(self, service, repository):
        preview = service.preview_text("CTL-01\t2025\t1\tPASS\nCTL-02\t2025\t2\tPASS")
        service.commit(preview, actor="importer", as_of=date(2025, 6, 1))
        first = repository.snapshot()
        service.commit(preview, actor="importer", as_of=date(2025, 6, 1))
        assert repository.snapshot() == first


class TestQuickFill:
    """Tests for quick_fill."""

    def test_quick_fill_writes_every_period(self, service, repository, reference_date):
        request = QuickFillRequest(
            schedule_entry_ids=["entry-1", "entry-2"],
            from_year=2025, from_month=1, to_year=2025, to_month=3,
            result=TestResultValue.PASS,
        )

        summary = service.quick_fill(request, actor="bulk", as_of=reference_date)

        assert summary.applied == 6
        assert len(repository.snapshot()) == 6
        audit = repository.get_audit_entries(action="quick_fill")
        assert len(audit) == 1

    def test_quick_fill_overwrites_existing(self, service, repository):
        repository.upsert_test_result("entry-1", 2025, 2, TestResultValue.FAIL, "old", [], True)
        request = QuickFillRequest(
            schedule_entry_ids=["entry-1"],
            from_year=2025, from_month=1, to_year=2025, to_month=3,
            result=TestResultValue.PASS,
        )

        service.quick_fill(request, actor="bulk")

        february = [r for r in repository.get_test_results("entry-1") if r.period_month == 2]
        assert february[0].result == TestResultValue.PASS
        assert february[0].notes is None

    @pytest.mark.parametrize("kwargs,message", [
        ({"schedule_entry_ids": []}, "At least one schedule entry"),
        ({"from_month": 4}, "Range start must not be after range end"),
        ({"result": TestResultValue.FAIL, "notes": "  "}, "Notes are required"),
    ])
    def test_invalid_requests_rejected(self, service, repository, kwargs, message):
        fields = {
            "schedule_entry_ids": ["entry-1"],
            "from_year": 2025, "from_month": 1, "to_year": 2025, "to_month": 3,
            "result": TestResultValue.PASS,
        }
        fields.update(kwargs)

        with pytest.raises(QuickFillValidationError) as exc_info:
            service.quick_fill(QuickFillRequest(**fields), actor="bulk")

        assert any(message in check for check in exc_info.value.failed_checks)
        assert repository.snapshot() == {}

    def test_unknown_and_removed_entries_rejected(self, service, repository):
        request = QuickFillRequest(
            schedule_entry_ids=["no-such-entry", "entry-3"],
            from_year=2025, from_month=1, to_year=2025, to_month=2,
            result=TestResultValue.PASS,
        )

        with pytest.raises(QuickFillValidationError) as exc_info:
            service.quick_fill(request, actor="bulk")

        checks = exc_info.value.failed_checks
        assert any("no-such-entry" in check and "entry-3" in check for check in checks)
        assert repository.snapshot() == {}
        assert repository.get_audit_entries() == []

    def test_one_removed_entry_rejects_whole_request(self, service, repository):
        request = QuickFillRequest(
            schedule_entry_ids=["entry-1", "entry-3"],
            from_year=2025, from_month=1, to_year=2025, to_month=1,
            result=TestResultValue.PASS,
        )

        with pytest.raises(QuickFillValidationError) as exc_info:
            service.quick_fill(request, actor="bulk")

        checks = exc_info.value.failed_checks
        assert any("entry-3" in check for check in checks)
        assert not any("entry-1" in check for check in checks)
        assert repository.snapshot() == {}
