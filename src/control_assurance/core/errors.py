"""Custom exception classes for the control assurance engine.

Row-level ingestion problems are reported as data (see
``control_assurance.models.ingestion.RowError``); the exceptions here cover
caller mistakes, workflow violations and store-boundary failures.
"""

from typing import Optional


class ControlAssuranceError(Exception):
    """Base exception for all control assurance errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ValidationError(ControlAssuranceError):
    """A single manually entered record failed validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        failed_checks: Optional[list] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="VALIDATION", **kwargs)
        self.field = field
        self.failed_checks = failed_checks or []
        self.details.update({
            "field": field,
            "failed_checks": self.failed_checks,
        })


class RecordNotFoundError(ControlAssuranceError):
    """A referenced record does not exist in the store."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="NOT_FOUND", **kwargs)
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.details.update({
            "entity_type": entity_type,
            "entity_id": entity_id,
        })


class WorkflowError(ControlAssuranceError):
    """An illegal status transition was requested."""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        requested_status: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="WORKFLOW", **kwargs)
        self.current_status = current_status
        self.requested_status = requested_status
        self.details.update({
            "current_status": current_status,
            "requested_status": requested_status,
        })


class IngestionInputError(ControlAssuranceError):
    """Ingestion input could not be read at all (e.g. undecodable bytes)."""

    def __init__(
        self,
        message: str,
        file_name: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="INGESTION_INPUT", **kwargs)
        self.file_name = file_name
        self.details.update({"file_name": file_name})


class IngestionLimitError(ControlAssuranceError):
    """Ingestion input exceeds the configured row limit."""

    def __init__(
        self,
        message: str,
        row_count: int = 0,
        max_rows: int = 0,
        **kwargs,
    ):
        super().__init__(message, error_code="INGESTION_LIMIT", **kwargs)
        self.row_count = row_count
        self.max_rows = max_rows
        self.details.update({
            "row_count": row_count,
            "max_rows": max_rows,
        })


class QuickFillValidationError(ControlAssuranceError):
    """A quick-fill request is not acceptable as submitted."""

    def __init__(
        self,
        message: str,
        failed_checks: Optional[list] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="QUICK_FILL", **kwargs)
        self.failed_checks = failed_checks or []
        self.details.update({"failed_checks": self.failed_checks})


class StoreUnavailableError(ControlAssuranceError):
    """The record store failed while applying a commit plan.

    The whole batch should be retried; plans are idempotent by natural key.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        applied: int = 0,
        **kwargs,
    ):
        super().__init__(message, error_code="STORE_UNAVAILABLE", **kwargs)
        self.operation = operation
        self.applied = applied
        self.details.update({
            "operation": operation,
            "applied": applied,
        })
