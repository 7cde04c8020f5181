"""Bulk ingestion: delimited-text parsing, row validation and commit planning."""

from control_assurance.ingestion.parser import (
    detect_delimiter,
    tokenize,
    tokenize_records,
    parse_delimited,
    parse_records,
    is_header_row,
    strip_header,
)
from control_assurance.ingestion.validator import (
    MIN_YEAR,
    MAX_YEAR,
    VALID_RESULTS,
    normalize_reference,
    normalize_result,
    build_reference_lookup,
    validate_row,
    validate_rows,
)
from control_assurance.ingestion.planner import (
    resolve_pending,
    plan_from_rows,
    plan_quick_fill,
    apply_plan,
)
from control_assurance.ingestion.service import (
    BulkIngestionService,
    preview_paste,
    preview_upload,
)

__all__ = [
    # Parser
    "detect_delimiter",
    "tokenize",
    "tokenize_records",
    "parse_delimited",
    "parse_records",
    "is_header_row",
    "strip_header",
    # Validator
    "MIN_YEAR",
    "MAX_YEAR",
    "VALID_RESULTS",
    "normalize_reference",
    "normalize_result",
    "build_reference_lookup",
    "validate_row",
    "validate_rows",
    # Planner
    "resolve_pending",
    "plan_from_rows",
    "plan_quick_fill",
    "apply_plan",
    # Service
    "BulkIngestionService",
    "preview_paste",
    "preview_upload",
]
