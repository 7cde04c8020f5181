"""
Unit tests for the Control Testing Service.

Covers manual result entry, attestations, the consolidated view and the
quarterly summary workflow.
"""

from datetime import date

import pytest

from control_assurance.core.config import EngineConfig
from control_assurance.core.errors import RecordNotFoundError, ValidationError, WorkflowError
from control_assurance.models.audit import AuditAction, AuditEntity
from control_assurance.models.controls import (
    Control,
    QuarterlySummary,
    ScheduleEntry,
    SummaryStatus,
    TestingFrequency,
    TestResultValue,
)
from control_assurance.models.findings import FindingKind, TestingStatus
from control_assurance.services.control_testing import (
    ControlTestingService,
    consolidated_view,
    record_test_result,
)


@pytest.fixture
def repository(in_memory_repository):
    """Repository with one control and its monthly schedule entry."""
    in_memory_repository.add_control(Control(
        id="control-1",
        control_ref="CTL-01",
        name="Payment approvals",
        business_area="Payments",
    ))
    in_memory_repository.add_schedule_entry(ScheduleEntry(
        id="entry-1",
        control_id="control-1",
        testing_frequency=TestingFrequency.MONTHLY,
        assigned_tester="tester",
    ))
    return in_memory_repository


@pytest.fixture
def service(repository):
    """Create a Control Testing Service instance."""
    return ControlTestingService(repository)


@pytest.fixture
def draft_summary(repository):
    """Create a draft quarterly summary."""
    return repository.save_quarterly_summary(QuarterlySummary(
        id="summary-1",
        schedule_entry_id="entry-1",
        quarter="Q1 2025",
        author="tester",
    ))


class TestRecordTestResult:
    """Tests for record_test_result."""

    def test_records_and_audits(self, service, repository):
        result = service.record_test_result(
            "entry-1", 2025, 3, TestResultValue.PASS, tested_by="tester",
            evidence_links=["https://evidence/1"], as_of=date(2025, 3, 20),
        )

        assert result.is_backdated is False
        assert result.evidence_links == ["https://evidence/1"]
        audit = repository.get_audit_entries(entity_type="TestResult", entity_id=result.id)
        assert len(audit) == 1
        assert audit[0].action == "record_test_result"

    def test_earlier_period_is_backdated(self, service):
        result = service.record_test_result(
            "entry-1", 2025, 1, TestResultValue.PASS, tested_by="tester", as_of=date(2025, 3, 1),
        )
        assert result.is_backdated is True

    def test_rerecording_overwrites(self, service, repository):
        first = service.record_test_result(
            "entry-1", 2025, 3, TestResultValue.FAIL, tested_by="tester", notes="gap",
        )
        second = service.record_test_result(
            "entry-1", 2025, 3, TestResultValue.PASS, tested_by="tester",
        )

        stored = repository.get_test_results("entry-1")
        assert len(stored) == 1
        assert stored[0].result == TestResultValue.PASS
        assert second.id == first.id

    @pytest.mark.parametrize("value", [TestResultValue.FAIL, TestResultValue.PARTIALLY])
    def test_notes_required(self, service, repository, value):
        with pytest.raises(ValidationError) as exc_info:
            service.record_test_result("entry-1", 2025, 3, value, tested_by="tester", notes=" ")

        assert "Notes are required" in exc_info.value.failed_checks[0]
        assert repository.get_test_results("entry-1") == []

    def test_period_out_of_range(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.record_test_result("entry-1", 2019, 13, TestResultValue.PASS, tested_by="tester")
        assert len(exc_info.value.failed_checks) == 2

    def test_year_bounds_follow_config(self, repository):
        service = ControlTestingService(repository, EngineConfig(min_year=2010))
        result = service.record_test_result("entry-1", 2015, 6, TestResultValue.PASS, tested_by="tester")
        assert result.period_year == 2015

    def test_year_bounds_default_from_environment(self, repository, monkeypatch):
        monkeypatch.setenv("CONTROL_ASSURANCE_MAX_YEAR", "2030")
        service = ControlTestingService(repository)

        with pytest.raises(ValidationError) as exc_info:
            service.record_test_result("entry-1", 2031, 1, TestResultValue.PASS, tested_by="tester")

        assert exc_info.value.failed_checks == ["Year must be between 2020 and 2030"]

    def test_unknown_entry(self, service):
        with pytest.raises(RecordNotFoundError):
            service.record_test_result("missing", 2025, 1, TestResultValue.PASS, tested_by="tester")

    def test_convenience_function(self, repository):
        result = record_test_result(
            repository, "entry-1", 2025, 2, TestResultValue.NOT_TESTED, tested_by="tester",
        )
        assert result.result == TestResultValue.NOT_TESTED


class TestAttestations:
    """Tests for record_attestation and review_attestation."""

    def test_attestation_upserted_per_period(self, service, repository):
        first = service.record_attestation("control-1", 2025, 1, True, attested_by="owner")
        second = service.record_attestation(
            "control-1", 2025, 1, False, attested_by="owner", issues_flagged=True,
        )

        stored = repository.get_attestations("control-1")
        assert len(stored) == 1
        assert stored[0].attested is False
        assert second.id == first.id

    def test_unknown_control(self, service):
        with pytest.raises(RecordNotFoundError):
            service.record_attestation("missing", 2025, 1, True, attested_by="owner")

    def test_review_records_ccro_outcome(self, service, repository):
        attestation = service.record_attestation("control-1", 2025, 1, True, attested_by="owner")

        reviewed = service.review_attestation(
            attestation.id, agrees=False, reviewer="ccro", comments="evidence thin",
        )

        assert reviewed.ccro_agreement is False
        assert reviewed.ccro_reviewer == "ccro"
        audit = repository.get_audit_entries(action="review_attestation")
        assert audit[0].previous_state["ccro_agreement"] is None

    def test_review_unknown_attestation(self, service):
        with pytest.raises(RecordNotFoundError):
            service.review_attestation("missing", agrees=True, reviewer="ccro")


class TestConsolidatedView:
    """Tests for consolidated_view, control_status and attention_worklist."""

    def test_view_combines_status_and_findings(self, service):
        for month in (1, 2, 3):
            service.record_test_result(
                "entry-1", 2025, month, TestResultValue.FAIL, tested_by="tester", notes="gap",
            )
        attestation = service.record_attestation("control-1", 2025, 3, True, attested_by="owner")
        service.review_attestation(attestation.id, agrees=False, reviewer="ccro")

        view = service.consolidated_view("entry-1", 2025, 3)

        assert view.status == TestingStatus.FAIL
        assert view.control_ref == "CTL-01"
        assert [f.kind for f in view.findings] == [
            FindingKind.FAILED_THIS_PERIOD,
            FindingKind.CONSECUTIVE_FAILURES,
            FindingKind.DISCREPANCY,
            FindingKind.CCRO_DISAGREES,
        ]

    def test_view_uses_as_of_for_overdue(self, service):
        service.record_test_result("entry-1", 2025, 1, TestResultValue.PASS, tested_by="tester")
        view = service.consolidated_view("entry-1", 2025, 1, as_of=date(2025, 5, 1))
        assert view.status == TestingStatus.OVERDUE

    def test_removed_entry_has_no_findings(self, service, repository):
        service.record_test_result(
            "entry-1", 2025, 1, TestResultValue.FAIL, tested_by="tester", notes="gap",
        )
        entry = repository.get_schedule_entry("entry-1")
        entry.is_active = False
        repository.add_schedule_entry(entry)

        view = service.consolidated_view("entry-1", 2025, 1)

        assert view.status == TestingStatus.REMOVED
        assert view.findings == []

    def test_unknown_entry(self, service):
        with pytest.raises(RecordNotFoundError):
            service.consolidated_view("missing", 2025, 1)

    def test_control_status(self, service, repository):
        repository.add_control(Control(
            id="control-2", control_ref="CTL-02", name="Unscheduled", business_area="Ops",
        ))
        assert service.control_status("control-2", date(2025, 1, 1)) == TestingStatus.NOT_SCHEDULED
        assert service.control_status("control-1", date(2025, 1, 1)) == TestingStatus.AWAITING_TEST

    def test_attention_worklist(self, service):
        service.record_test_result(
            "entry-1", 2025, 2, TestResultValue.FAIL, tested_by="tester", notes="gap",
        )
        worklist = service.attention_worklist(2025, 2)
        assert [f.kind for f in worklist] == [FindingKind.FAILED_THIS_PERIOD]
        assert worklist[0].reason == "Failed in Feb 2025"

    def test_convenience_function(self, repository):
        view = consolidated_view(repository, "entry-1", 2025, 1)
        assert view.status == TestingStatus.AWAITING_TEST


class TestQuarterlySummaryWorkflow:
    """Tests for the quarterly summary workflow."""

    def test_submit_requires_narrative(self, service, draft_summary):
        with pytest.raises(WorkflowError) as exc_info:
            service.submit_quarterly_summary(draft_summary.id, actor="tester")
        assert exc_info.value.current_status == "DRAFT"

    def test_full_workflow(self, service, repository, draft_summary):
        service.update_narrative(draft_summary.id, "All tests passed.", actor="tester")
        submitted = service.submit_quarterly_summary(draft_summary.id, actor="tester")
        approved = service.approve_quarterly_summary(draft_summary.id, approver="head")

        assert submitted.status == SummaryStatus.SUBMITTED
        assert approved.status == SummaryStatus.APPROVED
        assert approved.approved_by == "head"
        assert approved.approved_at is not None
        actions = {e.action for e in repository.get_audit_entries(entity_type=AuditEntity.QUARTERLY_SUMMARY)}
        assert actions == {
            AuditAction.UPDATE_NARRATIVE,
            AuditAction.SUBMIT_QUARTERLY_SUMMARY,
            AuditAction.APPROVE_QUARTERLY_SUMMARY,
        }

    def test_approve_requires_submitted(self, service, draft_summary):
        with pytest.raises(WorkflowError) as exc_info:
            service.approve_quarterly_summary(draft_summary.id, approver="head")
        assert exc_info.value.requested_status == "APPROVED"

    def test_approved_narrative_is_locked(self, service, draft_summary):
        service.update_narrative(draft_summary.id, "Done.", actor="tester")
        service.submit_quarterly_summary(draft_summary.id, actor="tester")
        service.approve_quarterly_summary(draft_summary.id, approver="head")

        with pytest.raises(WorkflowError):
            service.update_narrative(draft_summary.id, "Changed.", actor="tester")
        with pytest.raises(WorkflowError):
            service.submit_quarterly_summary(draft_summary.id, actor="tester")

    def test_submitted_narrative_can_still_be_edited(self, service, draft_summary):
        service.update_narrative(draft_summary.id, "Draft.", actor="tester")
        service.submit_quarterly_summary(draft_summary.id, actor="tester")
        updated = service.update_narrative(draft_summary.id, "Revised.", actor="tester")
        assert updated.narrative == "Revised."
        assert updated.status == SummaryStatus.SUBMITTED

    def test_unknown_summary(self, service):
        with pytest.raises(RecordNotFoundError):
            service.submit_quarterly_summary("missing", actor="tester")
