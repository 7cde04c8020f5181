"""
Audit trail models for the control assurance engine.

Every write made on behalf of a tester, control owner or reviewer leaves
one AuditEntry; bulk writes leave one entry per batch.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


# Type alias
ActorType = Literal['human', 'system']


class AuditAction(str, Enum):
    """Audited operations."""
    RECORD_TEST_RESULT = "record_test_result"
    RECORD_ATTESTATION = "record_attestation"
    REVIEW_ATTESTATION = "review_attestation"
    UPDATE_NARRATIVE = "update_narrative"
    SUBMIT_QUARTERLY_SUMMARY = "submit_quarterly_summary"
    APPROVE_QUARTERLY_SUMMARY = "approve_quarterly_summary"
    BULK_IMPORT = "bulk_import"
    QUICK_FILL = "quick_fill"


class AuditEntity(str, Enum):
    """Record types an audit entry can point at."""
    TEST_RESULT = "TestResult"
    TEST_RESULT_BATCH = "TestResultBatch"
    CONTROL_ATTESTATION = "ControlAttestation"
    QUARTERLY_SUMMARY = "QuarterlySummary"


class AuditEntry(BaseModel):
    """
    One audited change.

    For TestResultBatch entries `entity_id` is the comma-joined list of
    affected schedule entry IDs.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    actor: str
    actor_type: ActorType
    action: AuditAction
    entity_type: AuditEntity
    entity_id: str
    previous_state: Optional[Any] = None
    new_state: Optional[Any] = None
    rationale: Optional[str] = None
