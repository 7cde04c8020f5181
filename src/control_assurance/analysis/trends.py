"""Trend reports across schedule entries."""

from typing import Iterable, Optional

from control_assurance.analysis.anomalies import (
    CONSECUTIVE_FAILURE_THRESHOLD,
    CONSECUTIVE_FAILURE_WINDOW,
    ResultLookup,
    build_result_lookup,
    result_for_period,
)
from control_assurance.models.controls import ScheduleEntry, TestResult, TestResultValue
from control_assurance.models.findings import PersistentFailure
from control_assurance.periods import Period, trailing_window


EntryResults = tuple[ScheduleEntry, list[TestResult]]


def trailing_failure_streak(
    lookup: ResultLookup,
    year: int,
    month: int,
    window: int = CONSECUTIVE_FAILURE_WINDOW,
) -> int:
    """Length of the FAIL run ending at (year, month), capped at `window`."""
    streak = 0
    for period in reversed(trailing_window(year, month, window)):
        if result_for_period(lookup, period) != TestResultValue.FAIL:
            break
        streak += 1
    return streak


def persistent_failures(
    entries: Iterable[EntryResults],
    year: int,
    month: int,
    window: int = CONSECUTIVE_FAILURE_WINDOW,
    threshold: int = CONSECUTIVE_FAILURE_THRESHOLD,
    control_refs: Optional[dict[str, str]] = None,
) -> list[PersistentFailure]:
    """
    Entries whose most recent `threshold`+ periods all failed.

    Sorted by streak length, longest first. `control_refs` maps control
    IDs to reference codes for display.
    """
    control_refs = control_refs or {}
    failures = []
    for entry, results in entries:
        lookup = build_result_lookup(results)
        streak = trailing_failure_streak(lookup, year, month, window)
        if streak < threshold:
            continue
        latest = lookup[Period(year, month)]
        failures.append(PersistentFailure(
            schedule_entry_id=entry.id,
            control_ref=control_refs.get(entry.control_id),
            consecutive_months=streak,
            last_notes=latest.notes,
        ))
    return sorted(failures, key=lambda f: f.consecutive_months, reverse=True)


def period_outcome_counts(
    entries: Iterable[EntryResults],
    year: int,
    month: int,
) -> dict[TestResultValue, int]:
    """Count each result value across entries for one period; missing counts as NOT_DUE."""
    counts = {value: 0 for value in TestResultValue}
    period = Period(year, month)
    for _, results in entries:
        counts[result_for_period(build_result_lookup(results), period)] += 1
    return counts


def pass_rate(counts: dict[TestResultValue, int]) -> Optional[float]:
    """Share of performed tests that passed, None when nothing was tested."""
    tested = (
        counts.get(TestResultValue.PASS, 0)
        + counts.get(TestResultValue.FAIL, 0)
        + counts.get(TestResultValue.PARTIALLY, 0)
    )
    if tested == 0:
        return None
    return counts.get(TestResultValue.PASS, 0) / tested
