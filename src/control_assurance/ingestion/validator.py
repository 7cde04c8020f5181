"""Row validation for bulk test result ingestion.

Maps raw cells (control_ref, year, month, result, notes) to typed fields.
Every problem in a row is collected so the operator sees all of them at
once; a row with any error produces no parsed record.
"""

import re
from typing import Iterable, Optional

from control_assurance.models.controls import NOTES_REQUIRED_RESULTS, TestResultValue
from control_assurance.models.ingestion import (
    ErrorKind,
    ParsedRow,
    RowError,
    ValidatedRow,
)


MIN_COLUMNS = 4
MIN_YEAR = 2020
MAX_YEAR = 2100

COLUMNS = ["control_ref", "year", "month", "result", "notes"]
VALID_RESULTS = [value.value for value in TestResultValue]

_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_reference(reference: str) -> str:
    """Case-insensitive lookup key for a control reference."""
    return reference.strip().upper()


def build_reference_lookup(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Build a control_ref -> schedule_entry_id lookup.

    Args:
        pairs: (control_ref, schedule_entry_id) pairs for active entries.
    """
    return {normalize_reference(ref): entry_id for ref, entry_id in pairs}


def normalize_result(token: str) -> Optional[TestResultValue]:
    """Match a result token ignoring case, padding and space/underscore differences."""
    key = _SEPARATORS.sub("_", token.strip().upper())
    try:
        return TestResultValue(key)
    except ValueError:
        return None


def _parse_int(value: str) -> Optional[int]:
    """Strict integer column parse: optional sign and ASCII digits only."""
    text = value.strip()
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(text)


def validate_row(
    cells: list[str],
    lookup: dict[str, str],
    row_number: int = 1,
    min_columns: int = MIN_COLUMNS,
    min_year: int = MIN_YEAR,
    max_year: int = MAX_YEAR,
) -> ValidatedRow:
    """Validate one raw row.

    Args:
        cells: Raw cells in column order.
        lookup: Normalized control_ref -> schedule_entry_id.
        row_number: Source position reported back with diagnostics.
        min_columns: Required number of cells.
        min_year: Lowest accepted year.
        max_year: Highest accepted year.

    Returns:
        ValidatedRow carrying either a ParsedRow or the collected errors.
    """
    validated = ValidatedRow(row_number=row_number, raw=list(cells))

    if len(cells) < min_columns:
        validated.errors.append(RowError(
            kind=ErrorKind.STRUCTURAL,
            field_name="row",
            message=(
                f"Row has fewer than {min_columns} columns "
                f"(expected: {', '.join(COLUMNS)})"
            ),
        ))
        return validated

    control_ref = cells[0].strip()
    year_str, month_str, result_str = cells[1], cells[2], cells[3]
    notes = cells[4].strip() if len(cells) > 4 else ""

    entry_id = lookup.get(normalize_reference(control_ref))
    if entry_id is None:
        validated.errors.append(RowError(
            kind=ErrorKind.REFERENTIAL,
            field_name="control_ref",
            message=f'Control ref "{control_ref}" not found in testing schedule',
        ))

    year = _parse_int(year_str)
    if year is None or not min_year <= year <= max_year:
        validated.errors.append(RowError(
            kind=ErrorKind.RANGE,
            field_name="year",
            message=f'Invalid year "{year_str}": must be between {min_year} and {max_year}',
        ))

    month = _parse_int(month_str)
    if month is None or not 1 <= month <= 12:
        validated.errors.append(RowError(
            kind=ErrorKind.RANGE,
            field_name="month",
            message=f'Invalid month "{month_str}": must be between 1 and 12',
        ))

    result = normalize_result(result_str)
    if result is None:
        validated.errors.append(RowError(
            kind=ErrorKind.ENUMERATION,
            field_name="result",
            message=f'Invalid result "{result_str}": must be one of: {", ".join(VALID_RESULTS)}',
        ))
    elif result in NOTES_REQUIRED_RESULTS and not notes:
        validated.errors.append(RowError(
            kind=ErrorKind.POLICY,
            field_name="notes",
            message=f"Notes are required for {result.value} results",
        ))

    if validated.errors:
        return validated

    validated.parsed = ParsedRow(
        schedule_entry_id=entry_id,
        control_ref=control_ref,
        year=year,
        month=month,
        result=result,
        notes=notes,
    )
    return validated


def validate_rows(
    rows: list[list[str]],
    lookup: dict[str, str],
    first_row_number: int = 1,
    **kwargs,
) -> list[ValidatedRow]:
    """Validate rows independently, preserving input order."""
    return [
        validate_row(cells, lookup, row_number=first_row_number + offset, **kwargs)
        for offset, cells in enumerate(rows)
    ]
