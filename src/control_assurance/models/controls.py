"""
Control testing models for the control assurance engine.

This module defines Pydantic models for controls, testing schedule entries,
monthly test results, owner attestations and quarterly summaries.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from control_assurance.periods import Period


class ControlFrequency(str, Enum):
    """How often the real-world control activity happens."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    BI_ANNUAL = "BI_ANNUAL"
    ANNUAL = "ANNUAL"
    EVENT_DRIVEN = "EVENT_DRIVEN"


class TestingFrequency(str, Enum):
    """How often a schedule entry must be tested."""
    __test__ = False

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    BI_ANNUAL = "BI_ANNUAL"
    ANNUAL = "ANNUAL"


class TestResultValue(str, Enum):
    """Outcome recorded for one tested period."""
    __test__ = False

    PASS = "PASS"
    FAIL = "FAIL"
    PARTIALLY = "PARTIALLY"
    NOT_TESTED = "NOT_TESTED"
    NOT_DUE = "NOT_DUE"


# Results that must carry explanatory notes
NOTES_REQUIRED_RESULTS = frozenset({TestResultValue.FAIL, TestResultValue.PARTIALLY})


class SummaryStatus(str, Enum):
    """Workflow status of a quarterly summary."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"


class Control(BaseModel):
    """A named compliance check owned by a business area."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    control_ref: str
    name: str
    description: str = ""
    business_area: str
    outcome_category: Optional[str] = None
    control_frequency: ControlFrequency = ControlFrequency.MONTHLY
    is_active: bool = True


class ScheduleEntry(BaseModel):
    """The obligation to periodically test a control."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    control_id: str
    testing_frequency: TestingFrequency
    assigned_tester: str
    is_active: bool = True
    standing_instructions: str = ""


class TestResult(BaseModel):
    """
    One performed test, unique per (schedule_entry_id, period_year, period_month).

    Re-recording a period overwrites the existing record.
    """
    __test__ = False

    id: str = Field(default_factory=lambda: str(uuid4()))
    schedule_entry_id: str
    period_year: int
    period_month: int = Field(ge=1, le=12)
    result: TestResultValue
    notes: Optional[str] = None
    evidence_links: list[str] = []
    tested_by: Optional[str] = None
    tested_date: datetime = Field(default_factory=datetime.now)
    effective_date: Optional[date] = None
    is_backdated: bool = False

    @property
    def period(self) -> Period:
        return Period(self.period_year, self.period_month)


class ControlAttestation(BaseModel):
    """An owner's self-certification for a control in one period."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    control_id: str
    period_year: int
    period_month: int = Field(ge=1, le=12)
    attested: bool
    attested_by: str
    comments: Optional[str] = None
    issues_flagged: bool = False
    ccro_agreement: Optional[bool] = None
    ccro_reviewer: Optional[str] = None
    ccro_comments: Optional[str] = None

    @property
    def period(self) -> Period:
        return Period(self.period_year, self.period_month)


class QuarterlySummary(BaseModel):
    """Narrative rollup of one schedule entry for one quarter."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    schedule_entry_id: str
    quarter: str
    narrative: str = ""
    status: SummaryStatus = SummaryStatus.DRAFT
    author: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
