"""
In-memory implementation of ControlTestingRepository.

This implementation is suitable for local development and testing.
All data is stored in memory and lost when the process terminates.
"""
import threading
from copy import deepcopy
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
from control_assurance.repository.base import ControlTestingRepository


class InMemoryControlTestingRepository(ControlTestingRepository):
    """
    In-memory implementation of ControlTestingRepository.

    Stores all data in dictionaries. Every read and write holds one lock,
    so reads during a running batch see a consistent state and concurrent
    upserts to one natural key resolve as last-write-wins.
    """

    def __init__(self):
        """Initialize empty storage containers."""
        self._lock = threading.Lock()
        self._controls: dict[str, Control] = {}  # control_id -> control
        self._schedule_entries: dict[str, ScheduleEntry] = {}  # entry_id -> entry
        self._test_results: dict[tuple[str, int, int], TestResult] = {}  # natural key -> result
        self._attestations: dict[tuple[str, int, int], ControlAttestation] = {}  # natural key -> attestation
        self._quarterly_summaries: dict[str, QuarterlySummary] = {}  # summary_id -> summary
        self._audit_entries: list[AuditEntry] = []

    # ==================== Controls ====================

    def get_control(self, control_id: str) -> Optional[Control]:
        """Get a specific control by ID."""
        with self._lock:
            control = self._controls.get(control_id)
            return deepcopy(control) if control else None

    def add_control(self, control: Control) -> Control:
        """Add or replace a control."""
        with self._lock:
            self._controls[control.id] = deepcopy(control)
        return deepcopy(control)

    # ==================== Schedule Entries ====================

    def add_schedule_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        """Add or replace a schedule entry."""
        with self._lock:
            self._schedule_entries[entry.id] = deepcopy(entry)
        return deepcopy(entry)

    def get_schedule_entry(self, schedule_entry_id: str) -> Optional[ScheduleEntry]:
        """Get a specific schedule entry by ID."""
        with self._lock:
            entry = self._schedule_entries.get(schedule_entry_id)
            return deepcopy(entry) if entry else None

    def get_schedule_entry_for_control(self, control_id: str) -> Optional[ScheduleEntry]:
        """Get the active schedule entry for a control, else the latest inactive one."""
        with self._lock:
            entries = [e for e in self._schedule_entries.values() if e.control_id == control_id]
            if not entries:
                return None
            active = [e for e in entries if e.is_active]
            return deepcopy(active[0] if active else entries[-1])

    def list_schedule_entries(self, active_only: bool = True) -> list[ScheduleEntry]:
        """List schedule entries."""
        with self._lock:
            entries = list(self._schedule_entries.values())
            if active_only:
                entries = [e for e in entries if e.is_active]
            return [deepcopy(e) for e in entries]

    def resolve_active_schedule_entries(self) -> list[tuple[str, str]]:
        """Resolve active schedule entries to (control_ref, schedule_entry_id) pairs."""
        pairs = []
        with self._lock:
            for entry in self._schedule_entries.values():
                if not entry.is_active:
                    continue
                control = self._controls.get(entry.control_id)
                if control is None or not control.is_active:
                    continue
                pairs.append((control.control_ref, entry.id))
        return pairs

    # ==================== Test Results ====================

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
        """Create or overwrite the result for (schedule_entry_id, year, month)."""
        key = (schedule_entry_id, year, month)
        with self._lock:
            existing = self._test_results.get(key)
            record = TestResult(
                schedule_entry_id=schedule_entry_id,
                period_year=year,
                period_month=month,
                result=result,
                notes=notes,
                evidence_links=list(evidence_links),
                tested_by=tested_by,
                effective_date=effective_date,
                is_backdated=backdated,
            )
            if existing is not None:
                record.id = existing.id
            self._test_results[key] = record
        return deepcopy(record)

    def get_test_results(self, schedule_entry_id: str) -> list[TestResult]:
        """Get all test results for a schedule entry."""
        with self._lock:
            return [
                deepcopy(r) for (entry_id, _, _), r in self._test_results.items()
                if entry_id == schedule_entry_id
            ]

    # ==================== Attestations ====================

    def upsert_attestation(self, attestation: ControlAttestation) -> ControlAttestation:
        """Create or overwrite the attestation for (control_id, year, month)."""
        key = (attestation.control_id, attestation.period_year, attestation.period_month)
        stored = deepcopy(attestation)
        with self._lock:
            existing = self._attestations.get(key)
            if existing is not None:
                stored.id = existing.id
            self._attestations[key] = stored
        return deepcopy(stored)

    def get_attestation(self, attestation_id: str) -> Optional[ControlAttestation]:
        """Get a specific attestation by ID."""
        with self._lock:
            for attestation in self._attestations.values():
                if attestation.id == attestation_id:
                    return deepcopy(attestation)
        return None

    def get_attestations(self, control_id: str) -> list[ControlAttestation]:
        """Get all attestations for a control."""
        with self._lock:
            return [
                deepcopy(a) for a in self._attestations.values()
                if a.control_id == control_id
            ]

    # ==================== Quarterly Summaries ====================

    def get_quarterly_summary(self, summary_id: str) -> Optional[QuarterlySummary]:
        """Get a specific quarterly summary by ID."""
        with self._lock:
            summary = self._quarterly_summaries.get(summary_id)
            return deepcopy(summary) if summary else None

    def save_quarterly_summary(self, summary: QuarterlySummary) -> QuarterlySummary:
        """Create or replace a quarterly summary."""
        with self._lock:
            self._quarterly_summaries[summary.id] = deepcopy(summary)
        return deepcopy(summary)

    # ==================== Audit Trail ====================

    def create_audit_entry(self, entry: AuditEntry) -> None:
        """Create a new audit entry."""
        with self._lock:
            self._audit_entries.append(deepcopy(entry))

    def get_audit_entries(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[AuditEntry]:
        """Get audit entries with optional filters."""
        with self._lock:
            entries = list(self._audit_entries)

        if entity_type:
            entries = [e for e in entries if e.entity_type == entity_type]

        if entity_id:
            entries = [e for e in entries if e.entity_id == entity_id]

        if action:
            entries = [e for e in entries if e.action == action]

        if since:
            entries = [e for e in entries if e.timestamp >= since]

        # Most recent first
        entries = sorted(entries, key=lambda e: e.timestamp, reverse=True)

        return [deepcopy(e) for e in entries]

    # ==================== Utility Methods ====================

    def snapshot(self) -> dict[tuple[str, int, int], tuple]:
        """
        Comparable view of stored test results keyed by natural key.

        Excludes generated timestamps so repeated identical writes compare equal.
        """
        with self._lock:
            return {
                key: (r.id, r.result, r.notes, tuple(r.evidence_links), r.is_backdated)
                for key, r in self._test_results.items()
            }

    def clear(self) -> None:
        """Clear all stored data. Useful for testing."""
        with self._lock:
            self._controls.clear()
            self._schedule_entries.clear()
            self._test_results.clear()
            self._attestations.clear()
            self._quarterly_summaries.clear()
            self._audit_entries.clear()
