"""
Bulk ingestion service for historical test results.

Implements the preview-then-commit flow shared by file upload, spreadsheet
paste and quick-fill:
- Preview parses and validates every row without writing anything
- Commit submits only the valid subset through idempotent upserts
- Quick-fill expands an entry set x date range into upserts
"""

from datetime import date
from typing import Optional
from uuid import uuid4

from control_assurance.core.config import EngineConfig
from control_assurance.core.errors import (
    IngestionInputError,
    IngestionLimitError,
    QuickFillValidationError,
)
from control_assurance.core.logging import batch_context, get_logger
from control_assurance.ingestion.parser import parse_records
from control_assurance.ingestion.planner import apply_plan, plan_from_rows, plan_quick_fill
from control_assurance.ingestion.validator import build_reference_lookup, validate_row
from control_assurance.models.audit import ActorType, AuditAction, AuditEntity, AuditEntry
from control_assurance.models.controls import NOTES_REQUIRED_RESULTS
from control_assurance.models.ingestion import (
    CommitPlan,
    CommitSummary,
    IngestionPreview,
    InputSource,
    QuickFillRequest,
)
from control_assurance.repository.base import ControlTestingRepository

logger = get_logger(__name__)


class BulkIngestionService:
    """
    Service for previewing and committing bulk test result batches.
    """

    def __init__(
        self,
        repository: ControlTestingRepository,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize the Bulk Ingestion Service.

        Args:
            repository: Record store used for lookups and upserts.
            config: Ingestion policy; defaults to EngineConfig.from_env().
        """
        self.repository = repository
        self.config = config or EngineConfig.from_env()

    def preview_text(
        self,
        text: str,
        source: InputSource = InputSource.PASTE,
    ) -> IngestionPreview:
        """
        Parse and validate a block of delimited text.

        Rows are numbered by the source line they start on, so diagnostics
        stay aligned with the input even after blank lines, a header or a
        quoted cell spanning several lines.

        Args:
            text: Decoded delimited text.
            source: FILE (comma preferred) or PASTE (tab preferred).

        Returns:
            Preview holding every row with its validation outcome.

        Raises:
            IngestionLimitError: If the batch has more rows than allowed.
        """
        preview = IngestionPreview(source=source)
        if not text.strip():
            return preview

        with batch_context(preview.batch_id, source=source.value):
            return self._validate(preview, text)

    def _validate(self, preview: IngestionPreview, text: str) -> IngestionPreview:
        source = preview.source
        records, header_skipped = parse_records(text, source)
        preview.header_skipped = header_skipped

        numbered = [(line, cells) for line, cells in records if any(cell for cell in cells)]

        max_rows = self.config.max_rows
        if max_rows is not None and len(numbered) > max_rows:
            raise IngestionLimitError(
                f"Batch has {len(numbered)} rows; at most {max_rows} are accepted",
                row_count=len(numbered),
                max_rows=max_rows,
            )

        lookup = build_reference_lookup(self.repository.resolve_active_schedule_entries())
        preview.rows = [
            validate_row(
                cells,
                lookup,
                row_number=row_number,
                min_year=self.config.min_year,
                max_year=self.config.max_year,
            )
            for row_number, cells in numbered
        ]

        logger.info(
            "ingestion_previewed",
            header_skipped=header_skipped,
            valid=preview.valid_count,
            invalid=preview.invalid_count,
        )
        return preview

    def preview_file(self, content: bytes, file_name: str) -> IngestionPreview:
        """
        Decode an uploaded file and preview it as comma-delimited text.

        Raises:
            IngestionInputError: If the content is not UTF-8 text.
        """
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("ingestion_file_undecodable", file_name=file_name, error=str(e))
            raise IngestionInputError(
                f"File {file_name} is not valid UTF-8 text",
                file_name=file_name,
            ) from e
        return self.preview_text(text, InputSource.FILE)

    def commit(
        self,
        preview: IngestionPreview,
        actor: str,
        actor_type: ActorType = "human",
        as_of: Optional[date] = None,
    ) -> CommitSummary:
        """
        Apply the valid rows of a preview.

        Invalid rows are skipped and reported in the summary count.

        Args:
            preview: Output of preview_text or preview_file.
            actor: Identity recorded as tester and in the audit trail.
            actor_type: The type of actor.
            as_of: Reference date for backdating; defaults to today.

        Returns:
            Summary of the applied upserts.
        """
        reference_date = as_of or date.today()
        with batch_context(preview.batch_id, actor=actor):
            plan = plan_from_rows(preview.rows, reference_date=reference_date)
            summary = self._apply(
                plan, actor, actor_type, reference_date, preview.batch_id,
                action=AuditAction.BULK_IMPORT,
            )
        summary.skipped_rows = preview.invalid_count
        return summary

    def quick_fill(
        self,
        request: QuickFillRequest,
        actor: str,
        actor_type: ActorType = "human",
        as_of: Optional[date] = None,
    ) -> CommitSummary:
        """
        Record one result for every selected entry across a date range.

        Existing results in the range are overwritten.

        Raises:
            QuickFillValidationError: If no entries are selected, an entry is
                unknown or inactive, the range is inverted, or notes are
                missing for FAIL/PARTIALLY.
        """
        failed_checks = []
        if not request.schedule_entry_ids:
            failed_checks.append("At least one schedule entry must be selected")
        if not request.range_is_valid:
            failed_checks.append("Range start must not be after range end")
        active_ids = {e.id for e in self.repository.list_schedule_entries(active_only=True)}
        unknown = [i for i in dict.fromkeys(request.schedule_entry_ids) if i not in active_ids]
        if unknown:
            failed_checks.append(
                f"Schedule entries not found or inactive: {', '.join(unknown)}"
            )
        if request.result in NOTES_REQUIRED_RESULTS and not (request.notes or "").strip():
            failed_checks.append(f"Notes are required for {request.result.value} results")
        if failed_checks:
            raise QuickFillValidationError("; ".join(failed_checks), failed_checks=failed_checks)

        reference_date = as_of or date.today()
        batch_id = str(uuid4())
        with batch_context(batch_id, actor=actor):
            plan = plan_quick_fill(request, reference_date=reference_date)
            return self._apply(
                plan, actor, actor_type, reference_date, batch_id,
                action=AuditAction.QUICK_FILL,
            )

    def _apply(
        self,
        plan: CommitPlan,
        actor: str,
        actor_type: ActorType,
        reference_date: date,
        batch_id: str,
        action: AuditAction,
    ) -> CommitSummary:
        applied = apply_plan(plan, self.repository, tested_by=actor)
        summary = CommitSummary(
            batch_id=batch_id,
            applied=applied,
            schedule_entry_ids=plan.schedule_entry_ids,
            reference_date=reference_date,
        )
        if applied:
            self.repository.create_audit_entry(AuditEntry(
                actor=actor,
                actor_type=actor_type,
                action=action,
                entity_type=AuditEntity.TEST_RESULT_BATCH,
                entity_id=",".join(summary.schedule_entry_ids),
                new_state={"applied": applied, "batch_id": batch_id},
                rationale=f"{applied} test results recorded via {action.value}",
            ))
        logger.info(action.value, applied=applied)
        return summary


# Convenience functions for direct use without service instantiation

def preview_paste(repository: ControlTestingRepository, text: str) -> IngestionPreview:
    """
    Preview pasted spreadsheet text.

    See BulkIngestionService.preview_text for details.
    """
    return BulkIngestionService(repository).preview_text(text, InputSource.PASTE)


def preview_upload(
    repository: ControlTestingRepository,
    content: bytes,
    file_name: str,
) -> IngestionPreview:
    """
    Preview an uploaded CSV file.

    See BulkIngestionService.preview_file for details.
    """
    return BulkIngestionService(repository).preview_file(content, file_name)
