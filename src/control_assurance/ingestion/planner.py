"""
Bulk commit planning.

Turns validated rows or a quick-fill request into a flat list of upserts
keyed by (schedule_entry_id, year, month). Plans are idempotent: applying
the same plan twice leaves the store as applying it once.
"""

from datetime import date
from typing import Iterable, Optional, TypeVar

from control_assurance.core.errors import StoreUnavailableError
from control_assurance.core.logging import get_logger
from control_assurance.models.ingestion import (
    CommitPlan,
    QuickFillRequest,
    UpsertOperation,
    ValidatedRow,
)
from control_assurance.periods import Period, is_backdated, period_range
from control_assurance.repository.base import ControlTestingRepository

logger = get_logger(__name__)

T = TypeVar("T")


def resolve_pending(stored: T, override: Optional[T]) -> T:
    """Value to show for a field with an optional unsaved edit over it."""
    return override if override is not None else stored


def _backdated(period: Period, reference_date: Optional[date]) -> bool:
    return reference_date is not None and is_backdated(period, reference_date)


def plan_from_rows(
    rows: Iterable[ValidatedRow],
    reference_date: Optional[date] = None,
) -> CommitPlan:
    """
    Map valid rows 1:1 to upserts.

    Rows with errors are skipped. When one batch repeats a natural key,
    the later row wins and takes the earlier row's position.

    Args:
        rows: Validator output, valid and invalid mixed.
        reference_date: Date used to flag backdated periods.

    Returns:
        The commit plan.
    """
    operations: dict[tuple[str, int, int], UpsertOperation] = {}
    for row in rows:
        if not row.is_valid:
            continue
        parsed = row.parsed
        op = UpsertOperation(
            schedule_entry_id=parsed.schedule_entry_id,
            period_year=parsed.year,
            period_month=parsed.month,
            result=parsed.result,
            notes=parsed.notes or None,
            evidence_links=[],
            is_backdated=_backdated(parsed.period, reference_date),
        )
        operations[op.natural_key] = op
    return CommitPlan(operations=list(operations.values()))


def plan_quick_fill(
    request: QuickFillRequest,
    reference_date: Optional[date] = None,
) -> CommitPlan:
    """
    Expand entry IDs x every period in the inclusive range into upserts.

    An inverted range produces an empty plan; callers guard against it.
    Existing results for the covered periods are overwritten when applied.
    """
    periods = period_range(request.start, request.end)
    notes = request.notes.strip() if request.notes else None
    entry_ids = list(dict.fromkeys(request.schedule_entry_ids))
    return CommitPlan(operations=[
        UpsertOperation(
            schedule_entry_id=entry_id,
            period_year=period.year,
            period_month=period.month,
            result=request.result,
            notes=notes or None,
            evidence_links=[],
            is_backdated=_backdated(period, reference_date),
        )
        for entry_id in entry_ids
        for period in periods
    ])


def apply_plan(
    plan: CommitPlan,
    repository: ControlTestingRepository,
    tested_by: Optional[str] = None,
) -> int:
    """
    Apply every upsert in order.

    Raises:
        StoreUnavailableError: If the store fails part way. The plan can be
            re-applied in full.

    Returns:
        Number of upserts applied.
    """
    applied = 0
    for op in plan.operations:
        try:
            repository.upsert_test_result(
                schedule_entry_id=op.schedule_entry_id,
                year=op.period_year,
                month=op.period_month,
                result=op.result,
                notes=op.notes,
                evidence_links=op.evidence_links,
                backdated=op.is_backdated,
                tested_by=tested_by,
            )
        except (ConnectionError, TimeoutError) as e:
            logger.error(
                "plan_apply_failed",
                applied=applied,
                total=len(plan.operations),
                schedule_entry_id=op.schedule_entry_id,
                error=str(e),
            )
            raise StoreUnavailableError(
                f"Record store failed after {applied} of {len(plan.operations)} upserts: {e}",
                operation="upsert_test_result",
                applied=applied,
            ) from e
        applied += 1

    logger.info("plan_applied", applied=applied)
    return applied
