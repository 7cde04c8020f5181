"""
Control Testing Service for the control assurance engine.

This module provides functions for recording test results and owner
attestations, building the consolidated status/anomaly view of a schedule
entry, and moving quarterly summaries through their approval workflow.
"""

from datetime import date, datetime
from typing import Optional

from control_assurance.analysis.anomalies import build_worklist, detect_anomalies
from control_assurance.analysis.status import derive_testing_status
from control_assurance.core.config import EngineConfig
from control_assurance.core.errors import RecordNotFoundError, ValidationError, WorkflowError
from control_assurance.core.logging import get_logger
from control_assurance.models.audit import ActorType, AuditAction, AuditEntity, AuditEntry
from control_assurance.models.controls import (
    NOTES_REQUIRED_RESULTS,
    ControlAttestation,
    QuarterlySummary,
    ScheduleEntry,
    SummaryStatus,
    TestResult,
    TestResultValue,
)
from control_assurance.models.findings import AnomalyFinding, ScheduleEntryView, TestingStatus
from control_assurance.periods import Period, is_backdated
from control_assurance.repository.base import ControlTestingRepository

logger = get_logger(__name__)


class ControlTestingService:
    """
    Service for recording control tests and attestations and reviewing
    their combined state.
    """

    def __init__(
        self,
        repository: ControlTestingRepository,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize the Control Testing Service.

        Args:
            repository: The record store for data persistence.
            config: Year bounds for manual entry; defaults to EngineConfig.from_env().
        """
        self.repository = repository
        self.config = config or EngineConfig.from_env()

    # ==================== Test Results ====================

    def record_test_result(
        self,
        schedule_entry_id: str,
        year: int,
        month: int,
        result: TestResultValue,
        tested_by: str,
        notes: Optional[str] = None,
        evidence_links: Optional[list[str]] = None,
        effective_date: Optional[date] = None,
        as_of: Optional[date] = None,
        actor_type: ActorType = "human",
    ) -> TestResult:
        """
        Record a single test result, overwriting any result for the period.

        Args:
            schedule_entry_id: The schedule entry tested.
            year: Period year.
            month: Period month.
            result: The outcome.
            tested_by: Who performed the test.
            notes: Free-text notes, required for FAIL and PARTIALLY.
            evidence_links: Evidence references.
            effective_date: Date the test effectively took place.
            as_of: Reference date for backdating; defaults to today.
            actor_type: The type of actor.

        Returns:
            The stored test result.

        Raises:
            RecordNotFoundError: If the schedule entry does not exist.
            ValidationError: If the period or notes are invalid.
        """
        entry = self._require_schedule_entry(schedule_entry_id)

        failed_checks = []
        min_year, max_year = self.config.min_year, self.config.max_year
        if not min_year <= year <= max_year:
            failed_checks.append(f"Year must be between {min_year} and {max_year}")
        if not 1 <= month <= 12:
            failed_checks.append("Month must be between 1 and 12")
        if result in NOTES_REQUIRED_RESULTS and not (notes or "").strip():
            failed_checks.append(f"Notes are required for {result.value} results")
        if failed_checks:
            raise ValidationError(
                "; ".join(failed_checks),
                field="test_result",
                failed_checks=failed_checks,
            )

        backdated = is_backdated(Period(year, month), as_of or date.today())
        stored = self.repository.upsert_test_result(
            schedule_entry_id=entry.id,
            year=year,
            month=month,
            result=result,
            notes=notes.strip() if notes else None,
            evidence_links=evidence_links or [],
            backdated=backdated,
            tested_by=tested_by,
            effective_date=effective_date,
        )

        self._create_audit_entry(
            actor=tested_by,
            actor_type=actor_type,
            action=AuditAction.RECORD_TEST_RESULT,
            entity_type=AuditEntity.TEST_RESULT,
            entity_id=stored.id,
            previous_state=None,
            new_state=stored.model_dump(mode="json"),
            rationale=f"{result.value} recorded for {year}-{month:02d}",
        )
        logger.info(
            "test_result_recorded",
            schedule_entry_id=entry.id,
            period=f"{year}-{month:02d}",
            result=result.value,
            backdated=backdated,
        )
        return stored

    # ==================== Attestations ====================

    def record_attestation(
        self,
        control_id: str,
        year: int,
        month: int,
        attested: bool,
        attested_by: str,
        comments: Optional[str] = None,
        issues_flagged: bool = False,
        actor_type: ActorType = "human",
    ) -> ControlAttestation:
        """
        Record an owner attestation, overwriting any for the same period.

        Raises:
            RecordNotFoundError: If the control does not exist.
        """
        if self.repository.get_control(control_id) is None:
            raise RecordNotFoundError(
                f"Control not found: {control_id}",
                entity_type="Control",
                entity_id=control_id,
            )

        stored = self.repository.upsert_attestation(ControlAttestation(
            control_id=control_id,
            period_year=year,
            period_month=month,
            attested=attested,
            attested_by=attested_by,
            comments=comments,
            issues_flagged=issues_flagged,
        ))

        self._create_audit_entry(
            actor=attested_by,
            actor_type=actor_type,
            action=AuditAction.RECORD_ATTESTATION,
            entity_type=AuditEntity.CONTROL_ATTESTATION,
            entity_id=stored.id,
            previous_state=None,
            new_state=stored.model_dump(mode="json"),
            rationale=f"Attestation {'given' if attested else 'withheld'} for {year}-{month:02d}",
        )
        return stored

    def review_attestation(
        self,
        attestation_id: str,
        agrees: bool,
        reviewer: str,
        comments: Optional[str] = None,
    ) -> ControlAttestation:
        """
        Record the CCRO review of an attestation.

        Raises:
            RecordNotFoundError: If the attestation does not exist.
        """
        attestation = self.repository.get_attestation(attestation_id)
        if attestation is None:
            raise RecordNotFoundError(
                f"Attestation not found: {attestation_id}",
                entity_type="ControlAttestation",
                entity_id=attestation_id,
            )

        previous_state = attestation.model_dump(mode="json")
        attestation.ccro_agreement = agrees
        attestation.ccro_reviewer = reviewer
        attestation.ccro_comments = comments
        stored = self.repository.upsert_attestation(attestation)

        self._create_audit_entry(
            actor=reviewer,
            actor_type="human",
            action=AuditAction.REVIEW_ATTESTATION,
            entity_type=AuditEntity.CONTROL_ATTESTATION,
            entity_id=stored.id,
            previous_state=previous_state,
            new_state=stored.model_dump(mode="json"),
            rationale="CCRO agrees" if agrees else "CCRO disagrees",
        )
        return stored

    # ==================== Consolidated View ====================

    def consolidated_view(
        self,
        schedule_entry_id: str,
        year: int,
        month: int,
        as_of: Optional[date] = None,
    ) -> ScheduleEntryView:
        """
        Status and findings for one schedule entry.

        Args:
            schedule_entry_id: The schedule entry.
            year: Reference period year for anomaly windows.
            month: Reference period month for anomaly windows.
            as_of: Reference date for the overdue check; defaults to the
                first day of the reference period.

        Raises:
            RecordNotFoundError: If the schedule entry does not exist.
        """
        entry = self._require_schedule_entry(schedule_entry_id)
        return self._view(entry, year, month, as_of or date(year, month, 1))

    def control_status(self, control_id: str, as_of: date) -> TestingStatus:
        """Status of a control, Not Scheduled when it has no schedule entry."""
        entry = self.repository.get_schedule_entry_for_control(control_id)
        results = self.repository.get_test_results(entry.id) if entry else []
        return derive_testing_status(entry, results, as_of)

    def attention_worklist(self, year: int, month: int) -> list[AnomalyFinding]:
        """De-duplicated findings across every active schedule entry."""
        findings: list[AnomalyFinding] = []
        for entry in self.repository.list_schedule_entries(active_only=True):
            findings.extend(self._view(entry, year, month, date(year, month, 1)).findings)
        return build_worklist(findings)

    def _view(self, entry: ScheduleEntry, year: int, month: int, as_of: date) -> ScheduleEntryView:
        control = self.repository.get_control(entry.control_id)
        control_ref = control.control_ref if control else None
        results = self.repository.get_test_results(entry.id)
        attestations = self.repository.get_attestations(entry.control_id)

        findings = []
        if entry.is_active:
            findings = build_worklist(detect_anomalies(
                entry, results, attestations, year, month, control_ref=control_ref,
            ))

        return ScheduleEntryView(
            schedule_entry_id=entry.id,
            control_id=entry.control_id,
            control_ref=control_ref,
            status=derive_testing_status(entry, results, as_of),
            findings=findings,
        )

    # ==================== Quarterly Summaries ====================

    def update_narrative(self, summary_id: str, narrative: str, actor: str) -> QuarterlySummary:
        """
        Replace the narrative of a summary.

        Raises:
            WorkflowError: If the summary is already approved.
        """
        summary = self._require_summary(summary_id)
        if summary.status == SummaryStatus.APPROVED:
            raise WorkflowError(
                "Cannot edit narrative of an approved summary",
                current_status=summary.status.value,
            )
        summary.narrative = narrative
        return self._save_summary(summary, actor, AuditAction.UPDATE_NARRATIVE)

    def submit_quarterly_summary(self, summary_id: str, actor: str) -> QuarterlySummary:
        """
        Move a summary to SUBMITTED, clearing any earlier approval.

        Raises:
            WorkflowError: If the narrative is blank or the summary is approved.
        """
        summary = self._require_summary(summary_id)
        if summary.status == SummaryStatus.APPROVED:
            raise WorkflowError(
                "Approved summaries cannot be resubmitted",
                current_status=summary.status.value,
                requested_status=SummaryStatus.SUBMITTED.value,
            )
        if not summary.narrative.strip():
            raise WorkflowError(
                "Narrative must not be empty to submit",
                current_status=summary.status.value,
                requested_status=SummaryStatus.SUBMITTED.value,
            )
        summary.status = SummaryStatus.SUBMITTED
        summary.approved_by = None
        summary.approved_at = None
        return self._save_summary(summary, actor, AuditAction.SUBMIT_QUARTERLY_SUMMARY)

    def approve_quarterly_summary(self, summary_id: str, approver: str) -> QuarterlySummary:
        """
        Approve a submitted summary.

        Raises:
            WorkflowError: If the summary is not SUBMITTED.
        """
        summary = self._require_summary(summary_id)
        if summary.status != SummaryStatus.SUBMITTED:
            raise WorkflowError(
                f"Only submitted summaries can be approved (status is {summary.status.value})",
                current_status=summary.status.value,
                requested_status=SummaryStatus.APPROVED.value,
            )
        summary.status = SummaryStatus.APPROVED
        summary.approved_by = approver
        summary.approved_at = datetime.now()
        return self._save_summary(summary, approver, AuditAction.APPROVE_QUARTERLY_SUMMARY)

    # ==================== Helpers ====================

    def _require_schedule_entry(self, schedule_entry_id: str) -> ScheduleEntry:
        entry = self.repository.get_schedule_entry(schedule_entry_id)
        if entry is None:
            raise RecordNotFoundError(
                f"Schedule entry not found: {schedule_entry_id}",
                entity_type="ScheduleEntry",
                entity_id=schedule_entry_id,
            )
        return entry

    def _require_summary(self, summary_id: str) -> QuarterlySummary:
        summary = self.repository.get_quarterly_summary(summary_id)
        if summary is None:
            raise RecordNotFoundError(
                f"Quarterly summary not found: {summary_id}",
                entity_type="QuarterlySummary",
                entity_id=summary_id,
            )
        return summary

    def _save_summary(self, summary: QuarterlySummary, actor: str, action: AuditAction) -> QuarterlySummary:
        stored = self.repository.save_quarterly_summary(summary)
        self._create_audit_entry(
            actor=actor,
            actor_type="human",
            action=action,
            entity_type=AuditEntity.QUARTERLY_SUMMARY,
            entity_id=stored.id,
            previous_state=None,
            new_state={"status": stored.status.value},
            rationale=f"Quarterly summary {stored.quarter} is {stored.status.value}",
        )
        return stored

    def _create_audit_entry(
        self,
        actor: str,
        actor_type: ActorType,
        action: AuditAction,
        entity_type: AuditEntity,
        entity_id: str,
        previous_state: Optional[dict],
        new_state: Optional[dict],
        rationale: str
    ) -> None:
        """Create an audit entry for a control testing action."""
        self.repository.create_audit_entry(AuditEntry(
            timestamp=datetime.now(),
            actor=actor,
            actor_type=actor_type,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            previous_state=previous_state,
            new_state=new_state,
            rationale=rationale,
        ))


# Convenience functions for direct use without service instantiation

def record_test_result(
    repository: ControlTestingRepository,
    schedule_entry_id: str,
    year: int,
    month: int,
    result: TestResultValue,
    tested_by: str,
    notes: Optional[str] = None,
    as_of: Optional[date] = None,
) -> TestResult:
    """
    Record a single test result.

    See ControlTestingService.record_test_result for details.
    """
    service = ControlTestingService(repository)
    return service.record_test_result(
        schedule_entry_id, year, month, result, tested_by, notes=notes, as_of=as_of
    )


def consolidated_view(
    repository: ControlTestingRepository,
    schedule_entry_id: str,
    year: int,
    month: int,
    as_of: Optional[date] = None,
) -> ScheduleEntryView:
    """
    Status and findings for one schedule entry.

    See ControlTestingService.consolidated_view for details.
    """
    service = ControlTestingService(repository)
    return service.consolidated_view(schedule_entry_id, year, month, as_of)
