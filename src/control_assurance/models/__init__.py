"""
Pydantic data models for the control assurance engine.
"""

# Control testing models
from control_assurance.models.controls import (
    ControlFrequency,
    TestingFrequency,
    TestResultValue,
    SummaryStatus,
    NOTES_REQUIRED_RESULTS,
    Control,
    ScheduleEntry,
    TestResult,
    ControlAttestation,
    QuarterlySummary,
)

# Status and anomaly models
from control_assurance.models.findings import (
    TestingStatus,
    FindingKind,
    Severity,
    FINDING_SEVERITY,
    AnomalyFinding,
    ScheduleEntryView,
    PersistentFailure,
)

# Ingestion models
from control_assurance.models.ingestion import (
    InputSource,
    ErrorKind,
    RowError,
    ParsedRow,
    ValidatedRow,
    UpsertOperation,
    CommitPlan,
    QuickFillRequest,
    IngestionPreview,
    CommitSummary,
)

# Audit models
from control_assurance.models.audit import (
    ActorType,
    AuditAction,
    AuditEntity,
    AuditEntry,
)

__all__ = [
    # Control testing
    "ControlFrequency",
    "TestingFrequency",
    "TestResultValue",
    "SummaryStatus",
    "NOTES_REQUIRED_RESULTS",
    "Control",
    "ScheduleEntry",
    "TestResult",
    "ControlAttestation",
    "QuarterlySummary",
    # Status and anomalies
    "TestingStatus",
    "FindingKind",
    "Severity",
    "FINDING_SEVERITY",
    "AnomalyFinding",
    "ScheduleEntryView",
    "PersistentFailure",
    # Ingestion
    "InputSource",
    "ErrorKind",
    "RowError",
    "ParsedRow",
    "ValidatedRow",
    "UpsertOperation",
    "CommitPlan",
    "QuickFillRequest",
    "IngestionPreview",
    "CommitSummary",
    # Audit
    "ActorType",
    "AuditAction",
    "AuditEntity",
    "AuditEntry",
]
