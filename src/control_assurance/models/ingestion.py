"""
Ingestion models: row diagnostics, validated rows and commit plans.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from control_assurance.models.controls import TestResultValue
from control_assurance.periods import Period


class InputSource(str, Enum):
    """Where delimited text came from; decides the delimiter tie-break."""
    FILE = "file"
    PASTE = "paste"


class ErrorKind(str, Enum):
    """Row-level error taxonomy."""
    STRUCTURAL = "structural"
    REFERENTIAL = "referential"
    RANGE = "range"
    ENUMERATION = "enumeration"
    POLICY = "policy"


@dataclass
class RowError:
    """A single problem found in one input row."""
    kind: ErrorKind
    field_name: str
    message: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "field": self.field_name,
            "message": self.message,
        }


@dataclass
class ParsedRow:
    """Fully typed content of a row that passed validation."""
    schedule_entry_id: str
    control_ref: str
    year: int
    month: int
    result: TestResultValue
    notes: str = ""

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)


@dataclass
class ValidatedRow:
    """Outcome of validating one raw row.

    `parsed` is set only when `errors` is empty.
    """
    row_number: int
    raw: list[str]
    parsed: Optional[ParsedRow] = None
    errors: list[RowError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.parsed is not None

    def to_dict(self) -> dict:
        return {
            "row_number": self.row_number,
            "raw": self.raw,
            "valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


class UpsertOperation(BaseModel):
    """One idempotent write keyed by (schedule_entry_id, year, month)."""
    schedule_entry_id: str
    period_year: int
    period_month: int = Field(ge=1, le=12)
    result: TestResultValue
    notes: Optional[str] = None
    evidence_links: list[str] = []
    is_backdated: bool = False

    @property
    def natural_key(self) -> tuple[str, int, int]:
        return (self.schedule_entry_id, self.period_year, self.period_month)


class CommitPlan(BaseModel):
    """Ordered list of upserts produced by the planner."""
    operations: list[UpsertOperation] = []

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def schedule_entry_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for op in self.operations:
            seen.setdefault(op.schedule_entry_id, None)
        return list(seen)


class QuickFillRequest(BaseModel):
    """Declarative entry-set x date-range bulk generation request."""
    schedule_entry_ids: list[str]
    from_year: int
    from_month: int = Field(ge=1, le=12)
    to_year: int
    to_month: int = Field(ge=1, le=12)
    result: TestResultValue
    notes: Optional[str] = None

    @property
    def start(self) -> Period:
        return Period(self.from_year, self.from_month)

    @property
    def end(self) -> Period:
        return Period(self.to_year, self.to_month)

    @property
    def range_is_valid(self) -> bool:
        return self.start <= self.end


@dataclass
class IngestionPreview:
    """Every row of a batch with its validation outcome, before any write."""
    source: InputSource
    batch_id: str = field(default_factory=lambda: str(uuid4()))
    rows: list[ValidatedRow] = field(default_factory=list)
    header_skipped: bool = False

    @property
    def valid_rows(self) -> list[ValidatedRow]:
        return [r for r in self.rows if r.is_valid]

    @property
    def invalid_rows(self) -> list[ValidatedRow]:
        return [r for r in self.rows if not r.is_valid]

    @property
    def valid_count(self) -> int:
        return len(self.valid_rows)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_rows)

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "source": self.source.value,
            "header_skipped": self.header_skipped,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "rows": [r.to_dict() for r in self.rows],
        }


class CommitSummary(BaseModel):
    """Result of applying a commit plan to the store."""
    batch_id: Optional[str] = None
    applied: int
    schedule_entry_ids: list[str] = []
    skipped_rows: int = 0
    reference_date: Optional[date] = None
