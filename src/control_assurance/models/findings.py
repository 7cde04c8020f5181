"""
Status and anomaly output models.

These are the shapes handed to presentation collaborators: a status label
for each schedule entry and a list of anomaly findings.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TestingStatus(str, Enum):
    """Display status derived for a control's testing schedule."""
    __test__ = False

    REMOVED = "Removed"
    AWAITING_TEST = "Awaiting Test"
    OVERDUE = "Overdue"
    PASS = "Pass"
    FAIL = "Fail"
    PARTIAL = "Partial"
    NOT_TESTED = "Not Tested"
    NOT_SCHEDULED = "Not Scheduled"


class FindingKind(str, Enum):
    """Kinds of anomaly raised against a schedule entry."""
    FAILED_THIS_PERIOD = "Failed-This-Period"
    CONSECUTIVE_FAILURES = "Consecutive-Failures"
    STALE = "Stale"
    DISCREPANCY = "Discrepancy"
    CCRO_DISAGREES = "CCRO-Disagrees"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


FINDING_SEVERITY: dict[FindingKind, Severity] = {
    FindingKind.FAILED_THIS_PERIOD: Severity.HIGH,
    FindingKind.CONSECUTIVE_FAILURES: Severity.HIGH,
    FindingKind.STALE: Severity.MEDIUM,
    FindingKind.DISCREPANCY: Severity.HIGH,
    FindingKind.CCRO_DISAGREES: Severity.MEDIUM,
}


class AnomalyFinding(BaseModel):
    """One worklist item for a schedule entry."""
    kind: FindingKind
    severity: Severity
    schedule_entry_id: str
    control_id: Optional[str] = None
    control_ref: Optional[str] = None
    period_year: int
    period_month: int
    reason: str

    @property
    def key(self) -> tuple[FindingKind, str]:
        """Composite key used to de-duplicate worklists."""
        return (self.kind, self.schedule_entry_id)


class ScheduleEntryView(BaseModel):
    """Consolidated view of one schedule entry as of a reference period."""
    schedule_entry_id: str
    control_id: str
    control_ref: Optional[str] = None
    status: TestingStatus
    findings: list[AnomalyFinding] = []


class PersistentFailure(BaseModel):
    """A schedule entry whose trailing results are an unbroken run of failures."""
    schedule_entry_id: str
    control_ref: Optional[str] = None
    consecutive_months: int
    last_notes: Optional[str] = None
