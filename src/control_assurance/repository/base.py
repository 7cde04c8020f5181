"""
Abstract base class for control testing persistence.

This module defines the ControlTestingRepository interface that every
record store adapter must follow. The engine only needs read access by
identifier and idempotent upserts keyed by natural key.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from control_assurance.models.controls import (
    Control,
    ScheduleEntry,
    TestResult,
    TestResultValue,
    ControlAttestation,
    QuarterlySummary,
)
from control_assurance.models.audit import AuditEntry


class ControlTestingRepository(ABC):
    """
    Abstract base class for control testing persistence.

    Implementations must make each upsert individually atomic so that two
    writers targeting the same natural key resolve as last-write-wins.
    """

    # ==================== Controls ====================

    @abstractmethod
    def get_control(self, control_id: str) -> Optional[Control]:
        """
        Get a specific control by ID.

        Args:
            control_id: The unique identifier of the control.

        Returns:
            The control if found, None otherwise.
        """
        ...

    @abstractmethod
    def add_control(self, control: Control) -> Control:
        """
        Add or replace a control.

        Args:
            control: The control to store.

        Returns:
            The stored control.
        """
        ...

    # ==================== Schedule Entries ====================

    @abstractmethod
    def add_schedule_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        """
        Add or replace a schedule entry.

        Args:
            entry: The schedule entry to store.

        Returns:
            The stored schedule entry.
        """
        ...

    @abstractmethod
    def get_schedule_entry(self, schedule_entry_id: str) -> Optional[ScheduleEntry]:
        """
        Get a specific schedule entry by ID.

        Args:
            schedule_entry_id: The unique identifier of the entry.

        Returns:
            The schedule entry if found, None otherwise.
        """
        ...

    @abstractmethod
    def get_schedule_entry_for_control(self, control_id: str) -> Optional[ScheduleEntry]:
        """
        Get the schedule entry for a control.

        Prefers the active entry; falls back to the most recently added
        inactive one so removed schedules still report as such.

        Args:
            control_id: The control to look up.

        Returns:
            The schedule entry if one exists, None otherwise.
        """
        ...

    @abstractmethod
    def list_schedule_entries(self, active_only: bool = True) -> list[ScheduleEntry]:
        """
        List schedule entries.

        Args:
            active_only: Whether to exclude deactivated entries.

        Returns:
            List of schedule entries.
        """
        ...

    @abstractmethod
    def resolve_active_schedule_entries(self) -> list[tuple[str, str]]:
        """
        Resolve active schedule entries to their control references.

        Returns:
            List of (control_ref, schedule_entry_id) pairs.
        """
        ...

    # ==================== Test Results ====================

    @abstractmethod
    def upsert_test_result(
        self,
        schedule_entry_id: str,
        year: int,
        month: int,
        result: TestResultValue,
        notes: Optional[str],
        evidence_links: list[str],
        backdated: bool,
        tested_by: Optional[str] = None,
        effective_date: Optional[date] = None,
    ) -> TestResult:
        """
        Create or overwrite the result for (schedule_entry_id, year, month).

        Applying the same arguments twice leaves the same stored state.

        Args:
            schedule_entry_id: The schedule entry tested.
            year: Period year.
            month: Period month (1-12).
            result: The recorded outcome.
            notes: Free-text notes.
            evidence_links: Evidence URLs or references.
            backdated: Whether the period precedes the recording month.
            tested_by: Identity of the tester.
            effective_date: Date the test effectively took place.

        Returns:
            The stored test result.
        """
        ...

    @abstractmethod
    def get_test_results(self, schedule_entry_id: str) -> list[TestResult]:
        """
        Get all test results for a schedule entry.

        Args:
            schedule_entry_id: The schedule entry to look up.

        Returns:
            List of test results in no particular order.
        """
        ...

    # ==================== Attestations ====================

    @abstractmethod
    def upsert_attestation(self, attestation: ControlAttestation) -> ControlAttestation:
        """
        Create or overwrite the attestation for (control_id, year, month).

        Args:
            attestation: The attestation to store.

        Returns:
            The stored attestation, keeping the existing ID on overwrite.
        """
        ...

    @abstractmethod
    def get_attestation(self, attestation_id: str) -> Optional[ControlAttestation]:
        """
        Get a specific attestation by ID.

        Args:
            attestation_id: The unique identifier of the attestation.

        Returns:
            The attestation if found, None otherwise.
        """
        ...

    @abstractmethod
    def get_attestations(self, control_id: str) -> list[ControlAttestation]:
        """
        Get all attestations for a control.

        Args:
            control_id: The control to look up.

        Returns:
            List of attestations.
        """
        ...

    # ==================== Quarterly Summaries ====================

    @abstractmethod
    def get_quarterly_summary(self, summary_id: str) -> Optional[QuarterlySummary]:
        """
        Get a specific quarterly summary by ID.

        Args:
            summary_id: The unique identifier of the summary.

        Returns:
            The summary if found, None otherwise.
        """
        ...

    @abstractmethod
    def save_quarterly_summary(self, summary: QuarterlySummary) -> QuarterlySummary:
        """
        Create or replace a quarterly summary.

        Args:
            summary: The summary to store.

        Returns:
            The stored summary.
        """
        ...

    # ==================== Audit Trail ====================

    @abstractmethod
    def create_audit_entry(self, entry: AuditEntry) -> None:
        """
        Create a new audit entry.

        Args:
            entry: The audit entry to create.
        """
        ...

    @abstractmethod
    def get_audit_entries(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[AuditEntry]:
        """
        Get audit entries with optional filters.

        Args:
            entity_type: Optional entity type to filter by.
            entity_id: Optional entity ID to filter by.
            action: Optional action to filter by.
            since: Optional datetime to filter entries after.

        Returns:
            List of audit entries, most recent first.
        """
        ...
